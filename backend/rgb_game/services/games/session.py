"""Helpers over the session document.

A session is a plain JSON document::

    {gameId, config{...}, meta{status, currentRoundIndex, createdAt},
     players[{playerId, displayName, joinedAt, draftColor, draftDescription}],
     rounds[{targetColor, startedAt, describerId, phase, description,
             submissions, scores, timers{descriptionDeadline, guessingDeadline}}]}

Host and total scores are never stored; they are derived here whenever a
snapshot is built.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from . import scoring

WAITING = 'waiting'
PLAYING = 'playing'

DESCRIBING = 'describing'
GUESSING = 'guessing'
REVEAL = 'reveal'
ENDGAME = 'endgame'


def iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat()


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_overdue(deadline: Optional[str], now: datetime) -> bool:
    moment = parse_iso(deadline)
    return moment is not None and now > moment


def new_player(player_id: str, display_name: str, now: datetime) -> dict:
    return {
        'playerId': player_id,
        'displayName': display_name,
        'joinedAt': iso(now),
        'draftColor': None,
        'draftDescription': None,
    }


def new_session(game_id: str, config: dict, creator: dict, now: datetime) -> dict:
    return {
        'gameId': game_id,
        'config': dict(config),
        'meta': {'status': WAITING, 'currentRoundIndex': None, 'createdAt': iso(now)},
        'players': [creator],
        'rounds': [],
    }


def new_round(describer_id: str, target_color: dict, description_limit: int, now: datetime) -> dict:
    return {
        'targetColor': target_color,
        'startedAt': iso(now),
        'describerId': describer_id,
        'phase': DESCRIBING,
        'description': None,
        'submissions': {},
        'scores': None,
        'timers': {
            'descriptionDeadline': iso(now + timedelta(seconds=description_limit)),
            'guessingDeadline': None,
        },
    }


def current_round(doc: dict) -> Optional[dict]:
    index = doc['meta'].get('currentRoundIndex')
    if index is None:
        return None
    rounds = doc.get('rounds') or []
    if 0 <= index < len(rounds):
        return rounds[index]
    return None


def find_player(doc: dict, player_id: str) -> Optional[dict]:
    return next((p for p in doc['players'] if p['playerId'] == player_id), None)


def find_player_by_name(doc: dict, display_name: str) -> Optional[dict]:
    return next((p for p in doc['players'] if p['displayName'] == display_name), None)


def host_id(players: List[dict]) -> Optional[str]:
    """Earliest joiner; list order breaks ties on equal timestamps."""
    if not players:
        return None
    ranked = min(
        enumerate(players),
        key=lambda item: (parse_iso(item[1]['joinedAt']), item[0]),
    )
    return ranked[1]['playerId']


def guesser_ids(doc: dict, rnd: dict) -> List[str]:
    return [p['playerId'] for p in doc['players'] if p['playerId'] != rnd['describerId']]


def all_guesses_in(doc: dict, rnd: dict) -> bool:
    guessers = guesser_ids(doc, rnd)
    submitted = rnd.get('submissions') or {}
    return bool(guessers) and all(pid in submitted for pid in guessers)


def reveal(rnd: dict) -> dict:
    rnd['scores'] = scoring.score_round(rnd['targetColor'], rnd.get('submissions') or {}, rnd['describerId'])
    rnd['phase'] = REVEAL
    return rnd


def reveal_without_clue(doc: dict, rnd: dict) -> dict:
    rnd['description'] = None
    rnd['submissions'] = {}
    rnd['scores'] = scoring.no_clue_scores((p['playerId'] for p in doc['players']), rnd['describerId'])
    rnd['phase'] = REVEAL
    return rnd


def open_guessing(doc: dict, rnd: dict, description: str, now: datetime) -> dict:
    rnd['description'] = description
    rnd['phase'] = GUESSING
    rnd['timers']['guessingDeadline'] = iso(now + timedelta(seconds=doc['config']['guessingTimeLimit']))
    return rnd


def total_scores(doc: dict) -> Dict[str, int]:
    totals = {p['playerId']: 0 for p in doc['players']}
    for rnd in doc.get('rounds') or []:
        for pid, value in (rnd.get('scores') or {}).items():
            if pid in totals:
                totals[pid] += value
    return totals


def players_view(doc: dict) -> List[dict]:
    totals = total_scores(doc)
    return [dict(p, totalScore=totals[p['playerId']]) for p in doc['players']]


def meta_view(doc: dict) -> dict:
    return dict(doc['meta'], hostId=host_id(doc['players']))


def gameplay_view(doc: dict) -> dict:
    return {
        'currentRoundIndex': doc['meta'].get('currentRoundIndex'),
        'rounds': doc.get('rounds') or [],
    }


def snapshot(doc: dict) -> dict:
    return {
        'gameId': doc['gameId'],
        'config': doc['config'],
        'meta': meta_view(doc),
        'players': players_view(doc),
        'rounds': doc.get('rounds') or [],
    }
