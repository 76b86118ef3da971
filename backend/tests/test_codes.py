import random

import pytest

from rgb_game.codes import (
    ROOM_CODE_ALPHABET,
    generate_player_id,
    generate_room_code,
    normalise_room_code,
    region_for,
)
from rgb_game.errors import Validation
from rgb_game.messages import CreateGame, SubmitColor, parse_action


def test_room_codes_use_region_pair():
    rng = random.Random(5)
    for _ in range(50):
        code = generate_room_code('ST', rng)
        assert len(code) == 4
        assert set(code[:3]) <= set(ROOM_CODE_ALPHABET)
        assert code[-1] in 'ST'
        assert region_for(code) == 'us-east-1'


def test_unknown_region_falls_back_to_local():
    code = generate_room_code('??', random.Random(1))
    assert code[-1] in 'XZ'
    assert region_for(code) == 'local'


def test_player_ids():
    pid = generate_player_id(random.Random(2))
    assert len(pid) == 8
    assert pid.isalnum() and pid == pid.lower()


def test_normalise_room_code():
    assert normalise_room_code(' bcdx ') == 'BCDX'
    assert normalise_room_code(None) == ''


def test_parse_action_selects_model():
    action = parse_action({'action': 'createGame', 'displayName': 'Ann', 'config': {'maxPlayers': 4}})
    assert isinstance(action, CreateGame)
    assert action.config.maxPlayers == 4

    action = parse_action({
        'action': 'submitColor', 'gameId': 'BCDX', 'playerId': 'abc12345', 'color': {'h': 1, 's': 2, 'l': 3},
    })
    assert isinstance(action, SubmitColor)
    assert action.color.model_dump() == {'h': 1, 's': 2, 'l': 3}


@pytest.mark.parametrize('payload', [
    {'action': 'submitColor', 'gameId': 'BCDX', 'playerId': 'p', 'color': {'h': 1, 's': 2, 'l': 300}},
    {'action': 'submitColor', 'gameId': 'BCDX', 'playerId': 'p', 'color': {'h': 1, 's': 2, 'l': 3, 'a': 1}},
    {'action': 'startRound', 'gameId': 'BCDX'},
    {'action': 'nope'},
    {},
    ['createGame'],
])
def test_parse_action_rejects(payload):
    with pytest.raises(Validation):
        parse_action(payload)
