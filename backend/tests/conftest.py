import os
import random
import sys
from datetime import datetime, timedelta, timezone

import pytest

# Ensure the backend root (containing the `rgb_game` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from rgb_game import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:5173']
    REGION_CODE = 'XZ'
    DEFAULT_MAX_PLAYERS = 10
    DEFAULT_DESCRIPTION_TIME_LIMIT = 30
    DEFAULT_GUESSING_TIME_LIMIT = 15
    DEFAULT_TURNS_PER_PLAYER = 2
    SESSION_TTL_HOURS = 12
    STORE_RETRY_LIMIT = 5
    DAILY_FALLBACK_PROMPT = 'The color of a calm sea'
    LEADERBOARD_LIMIT = 100
    HISTORY_LIMIT = 30


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 3, 14, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds=0, **kwargs):
        self.now = self.now + timedelta(seconds=seconds, **kwargs)
        return self.now


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def flask_app(clock):
    application = create_app(TestConfig)
    application.extensions['rgb_game']['clock'] = clock
    application.extensions['rgb_game']['rng'] = random.Random(1234)
    with application.app_context():
        # Ensure models are imported so tables are created
        import rgb_game.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def engine(flask_app):
    from rgb_game.services.games import get_engine
    return get_engine(flask_app)


@pytest.fixture()
def daily_engine(flask_app):
    from rgb_game.services.daily import get_daily_engine
    return get_daily_engine(flask_app)


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')
