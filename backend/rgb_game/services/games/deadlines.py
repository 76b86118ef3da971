from datetime import datetime
from typing import Callable, Optional

from flask import current_app

from rgb_game.errors import Conflict
from . import session as gs
from .store import SessionStore


class DeadlineEnforcer:
    """Fast-forwards overdue phases when a session is next touched.

    There is no timer process: a room past its deadline stays as it is
    until the next read or action calls reconcile(). Each transition is a
    conditional write guarded on the phase it leaves, so concurrent
    reconcilers commit it once.
    """

    def __init__(self, store: SessionStore, clock: Callable[[], datetime]):
        self.store = store
        self.clock = clock

    def reconcile(self, game_id: str) -> Optional[dict]:
        """Return the committed document if a transition happened, else None."""
        doc = self.store.get(game_id)
        rnd = gs.current_round(doc)
        if rnd is None:
            return None
        now = self.clock()
        index = doc['meta']['currentRoundIndex']
        timers = rnd.get('timers') or {}

        if rnd['phase'] == gs.DESCRIBING and gs.is_overdue(timers.get('descriptionDeadline'), now):
            return self._transition(game_id, index, gs.DESCRIBING, 'descriptionDeadline',
                                    lambda d: self._expire_description(d, now))
        if rnd['phase'] == gs.GUESSING and gs.is_overdue(timers.get('guessingDeadline'), now):
            return self._transition(game_id, index, gs.GUESSING, 'guessingDeadline',
                                    self._expire_guessing)
        return None

    def _transition(self, game_id, index, phase, timer, mutate) -> Optional[dict]:
        now = self.clock()

        def still_overdue(d):
            rnd = gs.current_round(d)
            return (
                d['meta'].get('currentRoundIndex') == index
                and rnd is not None
                and rnd['phase'] == phase
                and gs.is_overdue((rnd.get('timers') or {}).get(timer), now)
            )

        try:
            updated = self.store.conditional_update(game_id, still_overdue, mutate)
        except Conflict:
            current_app.logger.info(f"[deadline] game={game_id} round={index} {phase} already moved on")
            return None
        current_app.logger.info(
            f"[deadline] game={game_id} round={index} {phase} -> {gs.current_round(updated)['phase']}"
        )
        return updated

    @staticmethod
    def _expire_description(doc: dict, now: datetime) -> dict:
        rnd = gs.current_round(doc)
        describer = gs.find_player(doc, rnd['describerId']) or {}
        draft = (describer.get('draftDescription') or '').strip()
        if draft:
            gs.open_guessing(doc, rnd, draft, now)
        else:
            gs.reveal_without_clue(doc, rnd)
        return doc

    @staticmethod
    def _expire_guessing(doc: dict) -> dict:
        rnd = gs.current_round(doc)
        submissions = rnd.setdefault('submissions', {})
        for player in doc['players']:
            pid = player['playerId']
            if pid == rnd['describerId'] or pid in submissions:
                continue
            if player.get('draftColor'):
                submissions[pid] = player['draftColor']
        gs.reveal(rnd)
        return doc
