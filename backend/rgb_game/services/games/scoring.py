import math
import random
from typing import Dict, Iterable, Mapping, Optional, Tuple


# Longest chord across the widest slice of the bicone; used to normalise
# distances into a 0-100 score.
MAX_DISTANCE = math.sqrt(2)

NO_CLUE_GUESSER_SCORE = 100
NO_CLUE_DESCRIBER_SCORE = 0


def is_valid_color(color) -> bool:
    """Check an HSL mapping: h in [0, 360], s and l in [0, 100], all finite numbers."""
    if not isinstance(color, Mapping):
        return False
    bounds = {'h': 360, 's': 100, 'l': 100}
    for key, upper in bounds.items():
        value = color.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        if not math.isfinite(value) or value < 0 or value > upper:
            return False
    return True


def embed(color: Mapping) -> Tuple[float, float, float]:
    """Map an HSL color onto bicone Cartesian coordinates.

    The radius shrinks towards the black and white poles, so hue and
    saturation carry no weight where they are not visible.
    """
    h, s, l = color['h'], color['s'], color['l']
    radius = (s / 100.0) * min(l, 100 - l) / 50.0
    hue_rad = math.radians(h)
    return (
        radius * math.cos(hue_rad),
        radius * math.sin(hue_rad),
        (l - 50) / 50.0,
    )


def unembed(point: Tuple[float, float, float]) -> Dict[str, float]:
    """Inverse of embed(); saturation is clamped to [0, 100]."""
    x, y, z = point
    l = z * 50 + 50
    h = (math.degrees(math.atan2(y, x)) + 360) % 360
    radius = math.hypot(x, y)
    span = min(l, 100 - l)
    s = (radius * 50 / span) * 100 if span > 0 else 0.0
    return {'h': h, 's': min(100.0, max(0.0, s)), 'l': l}


def distance(a: Mapping, b: Mapping) -> float:
    return math.dist(embed(a), embed(b))


def score(target: Mapping, guess: Mapping) -> int:
    normalised = min(distance(target, guess) / MAX_DISTANCE, 1.0)
    return int(round(100 * (1 - normalised)))


def describer_score(guesser_scores: Iterable[int]) -> int:
    values = list(guesser_scores)
    if not values:
        return 0
    return int(round(sum(values) / len(values)))


def score_round(target: Mapping, submissions: Mapping[str, Mapping], describer_id: str) -> Dict[str, int]:
    """Score every submission against the target and credit the describer the mean."""
    round_scores = {pid: score(target, color) for pid, color in submissions.items()}
    round_scores[describer_id] = describer_score(
        value for pid, value in round_scores.items() if pid != describer_id
    )
    return round_scores


def no_clue_scores(player_ids: Iterable[str], describer_id: str) -> Dict[str, int]:
    return {
        pid: NO_CLUE_DESCRIBER_SCORE if pid == describer_id else NO_CLUE_GUESSER_SCORE
        for pid in player_ids
    }


def random_target_color(rng: Optional[random.Random] = None) -> Dict[str, int]:
    rng = rng or random
    return {
        'h': rng.randint(0, 360),
        's': rng.randint(10, 100),
        'l': rng.randint(15, 95),
    }
