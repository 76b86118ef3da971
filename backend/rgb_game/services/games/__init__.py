"""Game domain services: scoring, turn order, deadlines and the engine.

This package contains pure(ish) domain logic that should be imported by
socket handlers and HTTP routes, keeping transport concerns separated
from core game mechanics.
"""
from flask import current_app

from rgb_game import socketio
from .broadcaster import Broadcaster
from .engine import GameEngine
from .registry import ConnectionRegistry
from .store import SessionStore


def get_engine(app=None) -> GameEngine:
    """Build an engine wired to the app's config, database and Socket.IO server."""
    app = app or current_app._get_current_object()
    cfg = app.config
    runtime = app.extensions['rgb_game']
    clock = runtime['clock']
    store = SessionStore(
        ttl_hours=int(cfg.get('SESSION_TTL_HOURS', 12)),
        retry_limit=int(cfg.get('STORE_RETRY_LIMIT', 5)),
        clock=clock,
    )
    registry = ConnectionRegistry()
    return GameEngine(
        store=store,
        registry=registry,
        broadcaster=Broadcaster(socketio, registry),
        clock=clock,
        rng=runtime.get('rng'),
        region_code=cfg.get('REGION_CODE', 'XZ'),
        defaults={
            'maxPlayers': cfg.get('DEFAULT_MAX_PLAYERS', 10),
            'descriptionTimeLimit': cfg.get('DEFAULT_DESCRIPTION_TIME_LIMIT', 30),
            'guessingTimeLimit': cfg.get('DEFAULT_GUESSING_TIME_LIMIT', 15),
            'turnsPerPlayer': cfg.get('DEFAULT_TURNS_PER_PLAYER', 2),
        },
    )
