from flask import Blueprint, current_app, jsonify, request

from rgb_game.errors import GameError, Validation
from rgb_game.services.daily import get_daily_engine

daily = Blueprint('daily', __name__)


@daily.errorhandler(GameError)
def handle_game_error(exc):
    return jsonify({'error': exc.message, 'code': exc.code}), exc.status_code


def _limit(default):
    raw = request.args.get('limit')
    if raw is None:
        return default
    try:
        return max(1, int(raw))
    except ValueError:
        raise Validation('limit must be a number')


@daily.route('/current', methods=['GET'])
def get_current():
    return jsonify(get_daily_engine().current(request.args.get('userId')))


@daily.route('/submit', methods=['POST'])
def submit():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise Validation('Missing request body')
    if not all([data.get('challengeId'), data.get('userId'), data.get('userName'), data.get('color')]):
        raise Validation('Missing required fields')
    result = get_daily_engine().submit(
        data['challengeId'],
        data['userId'],
        data['userName'],
        data['color'],
        fingerprint=data.get('fingerprint'),
    )
    return jsonify({'success': True, 'submission': result})


@daily.route('/leaderboard/<string:challenge_id>', methods=['GET'])
def get_leaderboard(challenge_id):
    limit = _limit(current_app.config.get('LEADERBOARD_LIMIT', 100))
    return jsonify(get_daily_engine().leaderboard(challenge_id, request.args.get('userId'), limit=limit))


@daily.route('/stats/<string:challenge_id>', methods=['GET'])
def get_stats(challenge_id):
    return jsonify(get_daily_engine().stats(challenge_id))


@daily.route('/history/<string:user_id>', methods=['GET'])
def get_history(user_id):
    limit = _limit(current_app.config.get('HISTORY_LIMIT', 30))
    return jsonify(get_daily_engine().history(user_id, limit=limit))
