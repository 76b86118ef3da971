import random
import string

# No vowels, so generated codes never spell words
ROOM_CODE_ALPHABET = 'BCDFGHJKLMNPQRSTVWXZ'

# Last character of a room code identifies where the room is hosted
REGION_PAIRS = {
    'BC': 'ap-southeast-2',
    'DF': 'ap-northeast-1',
    'GH': 'ap-southeast-1',
    'JK': 'ap-south-1',
    'LM': 'eu-central-1',
    'NP': 'eu-west-2',
    'QR': 'sa-east-1',
    'ST': 'us-east-1',
    'VW': 'us-west-2',
    'XZ': 'local',
}

PLAYER_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_room_code(region_code='XZ', rng=None):
    """Three random letters plus one letter from the region pair."""
    rng = rng or random
    pair = region_code if region_code in REGION_PAIRS else 'XZ'
    return ''.join(rng.choices(ROOM_CODE_ALPHABET, k=3)) + rng.choice(pair)


def region_for(room_code):
    for pair, region in REGION_PAIRS.items():
        if room_code and room_code[-1] in pair:
            return region
    return None


def generate_player_id(rng=None, length=8):
    rng = rng or random
    return ''.join(rng.choices(PLAYER_ID_ALPHABET, k=length))


def normalise_room_code(code):
    return (code or '').strip().upper()
