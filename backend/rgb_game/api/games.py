from flask import Blueprint, jsonify, request

from rgb_game.errors import GameError
from rgb_game.services.games import get_engine
from rgb_game.services.games import session as gs

games = Blueprint('games', __name__)


@games.errorhandler(GameError)
def handle_game_error(exc):
    return jsonify({'error': exc.message, 'code': exc.code}), exc.status_code


@games.route('/<string:game_code>/state', methods=['GET'])
def get_game_state(game_code):
    """Full snapshot for polling clients; overdue phases are settled first."""
    doc = get_engine().get_session(game_code)
    payload = gs.snapshot(doc)
    player_id = request.args.get('playerId')
    if player_id:
        payload['playerId'] = player_id if gs.find_player(doc, player_id) else None
    return jsonify(payload)
