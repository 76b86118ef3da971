import copy
from datetime import timedelta
from typing import Callable, Optional

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from rgb_game import db
from rgb_game.errors import Conflict, NotFound
from rgb_game.models import GameSession, utcnow


Predicate = Callable[[dict], bool]
Mutator = Callable[[dict], Optional[dict]]


class SessionStore:
    """Session documents keyed by room code.

    Writes go through conditional_update(): the predicate is judged against
    the exact version being replaced, so a transition guarded on "still in
    phase X" can only ever commit once.
    """

    def __init__(self, ttl_hours: int = 12, retry_limit: int = 5, clock=utcnow):
        self.ttl = timedelta(hours=ttl_hours)
        self.retry_limit = max(1, retry_limit)
        self.clock = clock

    def get(self, game_id: str) -> dict:
        row = db.session.get(GameSession, game_id)
        if row is None:
            raise NotFound(f'Game {game_id} not found')
        # Another request may have committed since this session last looked
        db.session.refresh(row)
        return copy.deepcopy(row.document)

    def exists(self, game_id: str) -> bool:
        return db.session.get(GameSession, game_id) is not None

    def create(self, game_id: str, document: dict) -> dict:
        now = self.clock()
        row = GameSession(
            game_id=game_id,
            document=copy.deepcopy(document),
            version=0,
            created_at=now,
            updated_at=now,
            expires_at=now + self.ttl,
        )
        db.session.add(row)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise Conflict(f'Game {game_id} already exists')
        return copy.deepcopy(document)

    def conditional_update(self, game_id: str, predicate: Predicate, mutator: Mutator) -> dict:
        """Apply `mutator` to the current document if `predicate` holds.

        Raises NotFound if the room is gone and Conflict if the predicate is
        false for the committed state. A lost race re-reads and re-judges.
        """
        for attempt in range(self.retry_limit):
            row = db.session.get(GameSession, game_id)
            if row is None:
                raise NotFound(f'Game {game_id} not found')
            db.session.refresh(row)
            read_version = row.version
            current = copy.deepcopy(row.document)
            if not predicate(current):
                db.session.rollback()
                raise Conflict('Game state has changed')

            draft = copy.deepcopy(current)
            result = mutator(draft)
            updated = result if result is not None else draft

            now = self.clock()
            outcome = db.session.execute(
                update(GameSession)
                .where(GameSession.game_id == game_id, GameSession.version == read_version)
                .values(
                    document=updated,
                    version=read_version + 1,
                    updated_at=now,
                    expires_at=now + self.ttl,
                )
                .execution_options(synchronize_session=False)
            )
            if outcome.rowcount == 1:
                db.session.commit()
                db.session.expire_all()
                return copy.deepcopy(updated)

            db.session.rollback()
            current_app.logger.info(
                f"[store-retry] game={game_id} version={read_version} attempt={attempt + 1}"
            )

        current_app.logger.warning(f"[store-conflict] game={game_id} retries exhausted")
        raise Conflict('Game is busy, please retry')

    def delete(self, game_id: str) -> bool:
        row = db.session.get(GameSession, game_id)
        if row is None:
            return False
        db.session.delete(row)
        db.session.commit()
        return True

    def purge_expired(self, now=None) -> int:
        now = now or self.clock()
        removed = GameSession.query.filter(GameSession.expires_at < now).delete(synchronize_session=False)
        db.session.commit()
        return removed
