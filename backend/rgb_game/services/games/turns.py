import random
from typing import Dict, List, Optional, Sequence


def clues_given(players: Sequence[dict], rounds: Sequence[dict]) -> Dict[str, int]:
    counts = {p['playerId']: 0 for p in players}
    for rnd in rounds:
        describer = rnd.get('describerId')
        if describer in counts:
            counts[describer] += 1
    return counts


def last_described(players: Sequence[dict], rounds: Sequence[dict]) -> Dict[str, int]:
    """Index of each player's most recent describing round, -1 if they never described."""
    latest = {p['playerId']: -1 for p in players}
    for idx, rnd in enumerate(rounds):
        describer = rnd.get('describerId')
        if describer in latest:
            latest[describer] = idx
    return latest


def select_describer(players: Sequence[dict], rounds: Sequence[dict],
                     rng: Optional[random.Random] = None) -> str:
    """Pick the next describer.

    Players with the fewest clues are eligible; the previous describer is
    skipped while anyone else is eligible. First turns are drawn at random,
    later turns go to whoever described longest ago. Equal staleness falls
    back to join order, then player id.
    """
    if not players:
        raise ValueError('cannot select a describer without players')
    rng = rng or random

    counts = clues_given(players, rounds)
    fewest = min(counts.values())
    eligible: List[dict] = [p for p in players if counts[p['playerId']] == fewest]

    if rounds:
        previous = rounds[-1].get('describerId')
        others = [p for p in eligible if p['playerId'] != previous]
        if others:
            eligible = others

    if fewest == 0:
        return rng.choice(eligible)['playerId']

    latest = last_described(players, rounds)
    chosen = min(
        eligible,
        key=lambda p: (latest[p['playerId']], p.get('joinedAt') or '', p['playerId']),
    )
    return chosen['playerId']


def is_complete(players: Sequence[dict], rounds: Sequence[dict], turns_per_player: int) -> bool:
    counts = clues_given(players, rounds)
    return all(count >= turns_per_player for count in counts.values())
