def test_health(client):
    res = client.get('/health')
    assert res.status_code == 200
    assert res.get_json() == {'status': 'healthy'}


def test_state_for_unknown_game(client):
    res = client.get('/api/games/QQQQ/state')
    assert res.status_code == 404
    assert res.get_json()['code'] == 'not_found'


def test_state_snapshot(client, engine, clock):
    doc, host = engine.create_session('Ann')
    clock.advance(1)
    _, bob = engine.join_session(doc['gameId'], 'Bob')

    res = client.get(f"/api/games/{doc['gameId'].lower()}/state?playerId={bob}")
    assert res.status_code == 200
    state = res.get_json()
    assert state['gameId'] == doc['gameId']
    assert state['playerId'] == bob
    assert state['meta']['hostId'] == host
    assert [p['displayName'] for p in state['players']] == ['Ann', 'Bob']
    assert all(p['totalScore'] == 0 for p in state['players'])


def test_state_applies_overdue_deadline(client, engine, clock):
    doc, host = engine.create_session('Ann')
    clock.advance(1)
    engine.join_session(doc['gameId'], 'Bob')
    engine.start_round(doc['gameId'], host)
    clock.advance(31)
    state = client.get(f"/api/games/{doc['gameId']}/state").get_json()
    assert state['rounds'][0]['phase'] == 'reveal'


def test_daily_current(client):
    res = client.get('/api/daily/current?userId=ann')
    assert res.status_code == 200
    data = res.get_json()
    assert data['challengeId'] == '2026-03-14'
    assert data['prompt'] == 'The color of a calm sea'
    assert data['userSubmission'] is None


def test_daily_submit(client):
    client.get('/api/daily/current')
    body = {'challengeId': '2026-03-14', 'userId': 'ann', 'userName': 'Ann', 'color': {'h': 40, 's': 70, 'l': 60}}
    res = client.post('/api/daily/submit', json=body)
    assert res.status_code == 200
    data = res.get_json()
    assert data['success'] is True
    assert data['submission']['score'] == 100
    assert data['submission']['rank'] == 1

    again = client.post('/api/daily/submit', json=body)
    assert again.status_code == 409
    assert again.get_json()['code'] == 'conflict'

    current = client.get('/api/daily/current?userId=ann').get_json()
    assert current['totalSubmissions'] == 1
    assert current['userSubmission']['color'] == {'h': 40, 's': 70, 'l': 60}


def test_daily_submit_validation(client):
    client.get('/api/daily/current')
    res = client.post('/api/daily/submit', json={'challengeId': '2026-03-14', 'userId': 'ann'})
    assert res.status_code == 400
    assert res.get_json()['code'] == 'validation'

    res = client.post('/api/daily/submit', json={
        'challengeId': '2026-03-14', 'userId': 'ann', 'userName': 'Ann', 'color': {'h': 40, 's': 700, 'l': 60},
    })
    assert res.status_code == 400


def test_daily_submit_after_expiry(client, clock):
    client.get('/api/daily/current')
    clock.advance(days=1)
    res = client.post('/api/daily/submit', json={
        'challengeId': '2026-03-14', 'userId': 'ann', 'userName': 'Ann', 'color': {'h': 40, 's': 70, 'l': 60},
    })
    assert res.status_code == 410
    assert res.get_json()['code'] == 'expired'


def test_daily_leaderboard_stats_history(client):
    client.get('/api/daily/current')
    for user, hue in (('ann', 10), ('bob', 20), ('cat', 30)):
        client.post('/api/daily/submit', json={
            'challengeId': '2026-03-14', 'userId': user, 'userName': user.title(), 'color': {'h': hue, 's': 50, 'l': 50},
        })

    board = client.get('/api/daily/leaderboard/2026-03-14?userId=cat').get_json()
    assert board['totalSubmissions'] == 3
    assert len(board['topScores']) == 3
    assert board['yourSubmission']['submittedColor'] == {'h': 30, 's': 50, 'l': 50}

    stats = client.get('/api/daily/stats/2026-03-14').get_json()
    assert round(stats['hue']['avg']) == 20

    history = client.get('/api/daily/history/bob').get_json()
    assert history['stats']['totalPlayed'] == 1
    assert history['submissions'][0]['prompt'] == 'The color of a calm sea'


def test_daily_unknown_challenge(client):
    assert client.get('/api/daily/stats/1999-01-01').status_code == 404
    assert client.get('/api/daily/leaderboard/1999-01-01').status_code == 404


def test_daily_bad_limit(client):
    res = client.get('/api/daily/history/ann?limit=lots')
    assert res.status_code == 400
