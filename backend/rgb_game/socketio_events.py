from flask import current_app, request
from flask_socketio import emit

from rgb_game import socketio
from rgb_game.codes import normalise_room_code
from rgb_game.errors import GameError, Unauthorized
from rgb_game.messages import (
    CloseRoom,
    CreateGame,
    ErrorEvent,
    FinaliseGame,
    GetGame,
    JoinGame,
    KickPlayer,
    RejoinGame,
    ResetGame,
    StartRound,
    SubmitColor,
    SubmitDescription,
    UpdateDraftColor,
    UpdateDraftDescription,
    parse_action,
)
from rgb_game.services.games import get_engine


def _get_sid() -> str:
    return request.sid  # type: ignore[attr-defined]


def handle_connect():
    get_engine().registry.register(_get_sid())
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*_reason):
    sid = _get_sid()
    engine = get_engine()
    binding = engine.registry.remove(sid)
    if binding is None:
        return
    game_id, player_id = binding
    # Another tab may still speak for the same player
    if engine.registry.connections_for_player(game_id, player_id):
        return
    try:
        engine.kick_player(game_id, player_id, reason='disconnect')
    except GameError as exc:
        current_app.logger.info(f"[disconnect] game={game_id} player={player_id} skipped: {exc.message}")


def handle_action(data):
    sid = _get_sid()
    try:
        _dispatch(parse_action(data), sid)
    except GameError as exc:
        current_app.logger.info(f"[action] sid={sid} rejected code={exc.code} message={exc.message}")
        emit('error', ErrorEvent(code=exc.code, message=exc.message).payload())


def _require_binding(engine, sid: str, game_id: str, player_id: str) -> str:
    game_id = normalise_room_code(game_id)
    if engine.registry.lookup(sid) != (game_id, player_id):
        raise Unauthorized('Connection is not bound to this player')
    return game_id


def _dispatch(action, sid: str) -> None:
    engine = get_engine()

    if isinstance(action, CreateGame):
        config = action.config.model_dump(exclude_none=True) if action.config else None
        engine.create_session(action.displayName, config, connection_id=sid)
        return
    if isinstance(action, JoinGame):
        engine.join_session(action.gameId, action.displayName, connection_id=sid)
        return
    if isinstance(action, RejoinGame):
        engine.rejoin_session(action.gameId, action.playerId, connection_id=sid)
        return
    if isinstance(action, GetGame):
        engine.get_session(action.gameId, connection_id=sid)
        return

    game_id = _require_binding(engine, sid, action.gameId, action.playerId)
    player_id = action.playerId

    if isinstance(action, UpdateDraftColor):
        engine.update_draft_color(game_id, player_id, action.color.model_dump())
    elif isinstance(action, UpdateDraftDescription):
        engine.update_draft_description(game_id, player_id, action.description)
    elif isinstance(action, SubmitDescription):
        engine.submit_description(game_id, player_id, action.description)
    elif isinstance(action, SubmitColor):
        engine.submit_color(game_id, player_id, action.color.model_dump())
    elif isinstance(action, StartRound):
        engine.start_round(game_id, player_id)
    elif isinstance(action, FinaliseGame):
        engine.finalise_game(game_id, player_id)
    elif isinstance(action, ResetGame):
        engine.reset_game(game_id, player_id)
    elif isinstance(action, CloseRoom):
        engine.close_room(game_id, player_id)
    elif isinstance(action, KickPlayer):
        engine.kick_player(game_id, player_id, action.targetPlayerId)


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' for the test harness.
    """
    socketio.on_event('connect', handle_connect, namespace='/ws')
    socketio.on_event('disconnect', handle_disconnect, namespace='/ws')
    socketio.on_event('action', handle_action, namespace='/ws')

    if testing:
        socketio.on_event('connect', handle_connect, namespace='/')
        socketio.on_event('disconnect', handle_disconnect, namespace='/')
        socketio.on_event('action', handle_action, namespace='/')
