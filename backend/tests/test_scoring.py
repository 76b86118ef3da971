import math
import random

import pytest

from rgb_game.services.games import scoring


RED = {'h': 0, 's': 100, 'l': 50}
CYAN = {'h': 180, 's': 100, 'l': 50}
GRAY = {'h': 0, 's': 0, 'l': 50}


def test_identical_colors_score_full_marks():
    assert scoring.distance(RED, RED) == 0
    assert scoring.score(RED, RED) == 100


def test_hue_is_irrelevant_at_the_poles():
    black_a = {'h': 0, 's': 100, 'l': 0}
    black_b = {'h': 200, 's': 40, 'l': 0}
    assert scoring.distance(black_a, black_b) == pytest.approx(0)
    assert scoring.score(black_a, black_b) == 100


def test_opposite_colors_score_zero():
    assert scoring.score(RED, CYAN) == 0
    assert scoring.score({'h': 0, 's': 0, 'l': 0}, {'h': 0, 's': 0, 'l': 100}) == 0


def test_gray_to_saturated_is_one_unit_apart():
    assert scoring.distance(GRAY, RED) == pytest.approx(1.0)
    assert scoring.score(GRAY, RED) == round(100 * (1 - 1 / math.sqrt(2)))


def test_hue_wraps_around():
    assert scoring.distance({'h': 359, 's': 100, 'l': 50}, {'h': 1, 's': 100, 'l': 50}) < 0.05


@pytest.mark.parametrize('color', [
    {'h': 361, 's': 50, 'l': 50},
    {'h': -1, 's': 50, 'l': 50},
    {'h': 10, 's': 101, 'l': 50},
    {'h': 10, 's': 50, 'l': float('nan')},
    {'h': True, 's': 50, 'l': 50},
    {'h': '10', 's': 50, 'l': 50},
    {'h': 10, 's': 50},
    None,
])
def test_invalid_colors_rejected(color):
    assert scoring.is_valid_color(color) is False


def test_score_round_credits_describer_the_mean():
    target = {'h': 120, 's': 60, 'l': 40}
    submissions = {'a': target, 'b': GRAY}
    scores = scoring.score_round(target, submissions, 'd')
    assert scores['a'] == 100
    assert scores['b'] == scoring.score(target, GRAY)
    assert scores['d'] == round((scores['a'] + scores['b']) / 2)


def test_score_round_without_guesses_gives_describer_zero():
    assert scoring.score_round(RED, {}, 'd') == {'d': 0}


def test_no_clue_scores():
    assert scoring.no_clue_scores(['d', 'a', 'b'], 'd') == {'d': 0, 'a': 100, 'b': 100}


def test_random_target_color_stays_in_range():
    rng = random.Random(3)
    for _ in range(200):
        color = scoring.random_target_color(rng)
        assert 0 <= color['h'] <= 360
        assert 10 <= color['s'] <= 100
        assert 15 <= color['l'] <= 95


def test_unembed_recovers_color():
    color = {'h': 210, 's': 70, 'l': 35}
    recovered = scoring.unembed(scoring.embed(color))
    assert recovered['h'] == pytest.approx(210)
    assert recovered['s'] == pytest.approx(70)
    assert recovered['l'] == pytest.approx(35)


@pytest.mark.parametrize('color', [
    {'h': 0, 's': 0, 'l': 0},
    {'h': 0, 's': 100, 'l': 50},
    {'h': 359, 's': 50, 'l': 20},
])
def test_self_distance_is_full_marks(color):
    assert scoring.score(color, color) == 100


def test_score_is_symmetric():
    rng = random.Random(9)
    for _ in range(50):
        a, b = scoring.random_target_color(rng), scoring.random_target_color(rng)
        assert scoring.score(a, b) == scoring.score(b, a)


def test_nearby_hue_beats_opposite_hue():
    assert scoring.score(RED, {'h': 10, 's': 100, 'l': 50}) > scoring.score(RED, CYAN) + 50
