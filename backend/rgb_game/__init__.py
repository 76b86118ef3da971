import random

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Clock and randomness used by the engines; tests swap these out
    from rgb_game.models import utcnow
    flask_app.extensions['rgb_game'] = {'clock': utcnow, 'rng': random.Random()}

    from rgb_game.main import main
    flask_app.register_blueprint(main)

    from rgb_game.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from rgb_game.api.daily import daily
    flask_app.register_blueprint(daily, url_prefix='/api/daily')

    from rgb_game.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates all tables."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    @click.command('purge-sessions')
    def purge_sessions_command():
        """Deletes rooms idle past their TTL."""
        from rgb_game.services.games import get_engine
        with flask_app.app_context():
            removed = get_engine(flask_app).store.purge_expired()
            print(f'Purged {removed} idle session(s).')

    @click.command('create-daily-challenge')
    @click.option('--date', 'challenge_date', default=None, help='ISO date, defaults to today (UTC).')
    def create_daily_challenge_command(challenge_date):
        """Creates the daily challenge if it does not exist yet."""
        from rgb_game.services.daily import get_daily_engine
        with flask_app.app_context():
            challenge = get_daily_engine(flask_app).ensure_challenge(challenge_date)
            print(f'Challenge {challenge.challenge_id}: "{challenge.prompt}"')

    @click.command('queue-prompt')
    @click.argument('prompt_date')
    @click.argument('prompt')
    def queue_prompt_command(prompt_date, prompt):
        """Queues PROMPT for the challenge on PROMPT_DATE."""
        from rgb_game.services.daily import get_daily_engine
        with flask_app.app_context():
            get_daily_engine(flask_app).queue_prompt(prompt_date, prompt)
            print(f'Queued prompt for {prompt_date}: "{prompt}"')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(purge_sessions_command)
    flask_app.cli.add_command(create_daily_challenge_command)
    flask_app.cli.add_command(queue_prompt_command)

    return flask_app
