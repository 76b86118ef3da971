"""Daily challenge: one color per user per UTC day, scored against the crowd."""
from flask import current_app

from .engine import DailyChallengeEngine


def get_daily_engine(app=None) -> DailyChallengeEngine:
    app = app or current_app._get_current_object()
    cfg = app.config
    return DailyChallengeEngine(
        clock=app.extensions['rgb_game']['clock'],
        fallback_prompt=cfg.get('DAILY_FALLBACK_PROMPT', 'A color that makes you happy'),
        retry_limit=int(cfg.get('STORE_RETRY_LIMIT', 5)),
    )
