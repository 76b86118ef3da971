import math
from typing import Dict, Mapping, Optional, Tuple

from rgb_game.services.games.scoring import embed, unembed

COMPONENTS = ('h', 's', 'l')


def empty_stats() -> Dict[str, Dict[str, float]]:
    return {c: {'mean': 0.0, 'm2': 0.0} for c in COMPONENTS}


def welford_update(acc: Mapping, value: float, count: int) -> Dict[str, float]:
    """Fold one value into a {mean, m2} accumulator; `count` includes the new value."""
    delta = value - acc['mean']
    mean = acc['mean'] + delta / count
    delta2 = value - mean
    return {'mean': mean, 'm2': acc['m2'] + delta * delta2}


def std_dev(acc: Mapping, count: int) -> Optional[float]:
    if count <= 0:
        return None
    return math.sqrt(acc['m2'] / count)


def update_component_stats(stats: Optional[Mapping], color: Mapping, count: int) -> Dict[str, Dict[str, float]]:
    stats = stats or empty_stats()
    return {c: welford_update(stats[c], float(color[c]), count) for c in COMPONENTS}


def update_centroid(centroid: Optional[Tuple[float, float, float]], color: Mapping, count: int):
    """Running mean of bicone coordinates; `count` includes the new color."""
    point = embed(color)
    if centroid is None or count <= 1:
        return tuple(point)
    return tuple(old + (new - old) / count for old, new in zip(centroid, point))


def centroid_color(centroid) -> Optional[Dict[str, float]]:
    if centroid is None:
        return None
    return unembed(tuple(centroid))


def summarise(stats: Optional[Mapping], count: int) -> Dict[str, Optional[Dict[str, float]]]:
    names = {'h': 'hue', 's': 'saturation', 'l': 'lightness'}
    if not stats or count <= 0:
        return {name: None for name in names.values()}
    return {
        names[c]: {'avg': stats[c]['mean'], 'stdDev': std_dev(stats[c], count)}
        for c in COMPONENTS
    }
