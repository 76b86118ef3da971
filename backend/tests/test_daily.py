import pytest

from rgb_game.errors import Conflict, Expired, NotFound, Validation
from rgb_game.models import Challenge
from rgb_game.services.games import scoring


def _submit(daily_engine, user, color, challenge_id='2026-03-14'):
    return daily_engine.submit(challenge_id, user, user.title(), color)


def test_ensure_challenge_is_idempotent(daily_engine):
    first = daily_engine.ensure_challenge()
    second = daily_engine.ensure_challenge()
    assert first.challenge_id == second.challenge_id == '2026-03-14'
    assert first.prompt == 'The color of a calm sea'
    assert Challenge.query.count() == 1


def test_queued_prompt_is_used(daily_engine):
    daily_engine.queue_prompt('2026-03-15', 'Old library books')
    challenge = daily_engine.ensure_challenge('2026-03-15')
    assert challenge.prompt == 'Old library books'
    assert challenge.to_dict()['validFrom'].startswith('2026-03-15T00:00:00')
    assert challenge.to_dict()['validUntil'].startswith('2026-03-16T00:00:00')


def test_queue_prompt_validates(daily_engine):
    with pytest.raises(Validation):
        daily_engine.queue_prompt('tomorrow', 'Rust')
    with pytest.raises(Validation):
        daily_engine.queue_prompt('2026-03-15', '   ')


def test_first_submissions_score_full_marks(daily_engine):
    daily_engine.ensure_challenge()
    first = _submit(daily_engine, 'ann', {'h': 10, 's': 50, 'l': 50})
    second = _submit(daily_engine, 'bob', {'h': 200, 's': 80, 'l': 20})
    assert first['score'] == 100
    assert first['averageColor'] is None
    assert second['score'] == 100
    assert second['averageColor'] == {'h': 10, 's': 50, 'l': 50}


def test_scored_against_prior_average(daily_engine):
    daily_engine.ensure_challenge()
    _submit(daily_engine, 'ann', {'h': 0, 's': 0, 'l': 50})
    _submit(daily_engine, 'bob', {'h': 0, 's': 0, 'l': 50})
    result = _submit(daily_engine, 'cat', {'h': 0, 's': 100, 'l': 50})
    prior = result['averageColor']
    assert prior['l'] == pytest.approx(50)
    assert prior['s'] == pytest.approx(0)
    assert result['score'] == scoring.score(prior, {'h': 0, 's': 100, 'l': 50})
    assert result['distanceFromAverage'] == pytest.approx(1.0)
    assert result['rank'] == 3


def test_duplicate_submission_leaves_stats_alone(daily_engine):
    daily_engine.ensure_challenge()
    _submit(daily_engine, 'ann', {'h': 10, 's': 50, 'l': 50})
    before = daily_engine.stats('2026-03-14')
    with pytest.raises(Conflict):
        _submit(daily_engine, 'ann', {'h': 300, 's': 90, 'l': 90})
    assert daily_engine.stats('2026-03-14') == before
    assert before['totalSubmissions'] == 1


@pytest.mark.parametrize('hues', [(10, 20, 30), (30, 10, 20), (20, 30, 10), (30, 20, 10)])
def test_welford_statistics(daily_engine, hues):
    daily_engine.ensure_challenge()
    for user, hue in zip(('ann', 'bob', 'cat'), hues):
        _submit(daily_engine, user, {'h': hue, 's': 50, 'l': 50})
    stats = daily_engine.stats('2026-03-14')
    assert stats['totalSubmissions'] == 3
    assert stats['hue']['avg'] == pytest.approx(20)
    assert stats['hue']['stdDev'] == pytest.approx(8.165, abs=1e-3)
    assert stats['saturation'] == {'avg': pytest.approx(50), 'stdDev': pytest.approx(0)}


def test_stats_for_empty_challenge(daily_engine):
    daily_engine.ensure_challenge()
    stats = daily_engine.stats('2026-03-14')
    assert stats == {
        'totalSubmissions': 0,
        'averageColor': None,
        'hue': None,
        'saturation': None,
        'lightness': None,
    }


def test_submit_rejections(daily_engine, clock):
    daily_engine.ensure_challenge()
    with pytest.raises(Validation):
        _submit(daily_engine, 'ann', {'h': 10, 's': 500, 'l': 50})
    with pytest.raises(Validation):
        daily_engine.submit('2026-03-14', 'ann', '', {'h': 10, 's': 50, 'l': 50})
    with pytest.raises(NotFound):
        _submit(daily_engine, 'ann', {'h': 10, 's': 50, 'l': 50}, challenge_id='2020-01-01')
    daily_engine.ensure_challenge('2026-03-20')
    with pytest.raises(Validation):
        _submit(daily_engine, 'ann', {'h': 10, 's': 50, 'l': 50}, challenge_id='2026-03-20')
    clock.advance(days=1)
    with pytest.raises(Expired):
        _submit(daily_engine, 'ann', {'h': 10, 's': 50, 'l': 50})


def test_leaderboard_uses_strict_rank(daily_engine, clock):
    daily_engine.ensure_challenge()
    gray = {'h': 0, 's': 0, 'l': 50}
    for user, color in (('ann', gray), ('bob', gray), ('cat', gray), ('dan', {'h': 0, 's': 100, 'l': 50})):
        _submit(daily_engine, user, color)
        clock.advance(1)
    board = daily_engine.leaderboard('2026-03-14', user_id='dan')
    assert board['totalSubmissions'] == 4
    assert [row['rank'] for row in board['topScores']] == [1, 1, 1, 4]
    assert board['yourSubmission']['rank'] == 4
    assert daily_engine.leaderboard('2026-03-14', limit=2)['topScores'][1]['userName'] == 'Bob'


def test_current_and_history(daily_engine, clock):
    assert daily_engine.current('ann')['userSubmission'] is None
    _submit(daily_engine, 'ann', {'h': 10, 's': 50, 'l': 50})
    mine = daily_engine.current('ann')['userSubmission']
    assert mine['score'] == 100
    assert mine['rank'] == 1

    clock.advance(days=1)
    daily_engine.ensure_challenge()
    _submit(daily_engine, 'ann', {'h': 20, 's': 50, 'l': 50}, challenge_id='2026-03-15')
    history = daily_engine.history('ann')
    assert [s['challengeId'] for s in history['submissions']] == ['2026-03-15', '2026-03-14']
    assert history['stats']['totalPlayed'] == 2
    assert history['stats']['bestScore'] == 100
    assert history['stats']['currentStreak'] == 2

    clock.advance(days=2)
    assert daily_engine.history('ann')['stats']['currentStreak'] == 0


def test_cli_queue_and_create(flask_app):
    runner = flask_app.test_cli_runner()
    result = runner.invoke(args=['queue-prompt', '2026-03-15', 'Wet slate'])
    assert result.exit_code == 0
    result = runner.invoke(args=['create-daily-challenge', '--date', '2026-03-15'])
    assert result.exit_code == 0
    assert 'Wet slate' in result.output
    assert Challenge.query.filter_by(challenge_id='2026-03-15').one().prompt == 'Wet slate'
