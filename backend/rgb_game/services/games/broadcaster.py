from typing import Iterable, Optional

from flask import current_app

from rgb_game.messages import Event
from .registry import ConnectionRegistry


class Broadcaster:
    """Best-effort push of events to sockets on the /ws namespace."""

    def __init__(self, socketio, registry: ConnectionRegistry, namespace: str = '/ws'):
        self.socketio = socketio
        self.registry = registry
        self.namespace = namespace

    def send(self, connection_id: str, event: Event) -> bool:
        try:
            self.socketio.emit(event.type, event.payload(), to=connection_id, namespace=self.namespace)
            return True
        except Exception as exc:  # a dead socket must not fail the caller's action
            current_app.logger.warning(
                f"[broadcast] failed sid={connection_id} event={event.type} error={exc}"
            )
            return False

    def broadcast(self, game_id: str, event: Event, exclude: Optional[Iterable[str]] = None) -> int:
        skip = set(exclude or ())
        targets = [sid for sid in self.registry.connections_for(game_id) if sid not in skip]
        current_app.logger.info(
            f"[broadcast] game={game_id} event={event.type} recipients={len(targets)}"
        )
        return sum(1 for sid in targets if self.send(sid, event))
