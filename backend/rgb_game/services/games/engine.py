import random
from datetime import datetime
from typing import Callable, Optional, Tuple

from flask import current_app

from rgb_game.codes import generate_player_id, generate_room_code, normalise_room_code
from rgb_game.errors import Capacity, Conflict, NotFound, Unauthorized, Validation
from rgb_game.messages import (
    GameplayUpdated,
    GameStateUpdated,
    Kicked,
    MetaUpdated,
    PlayersUpdated,
)
from rgb_game.models import utcnow
from . import scoring
from . import session as gs
from .broadcaster import Broadcaster
from .deadlines import DeadlineEnforcer
from .registry import ConnectionRegistry
from .store import SessionStore
from .turns import is_complete, select_describer


MAX_NAME_LENGTH = 16
MAX_DESCRIPTION_LENGTH = 100
NO_CLUE_SENTINEL = '<NO CLUE>'
ROOM_CODE_ATTEMPTS = 10

# (low, high) policy range per config field
CONFIG_LIMITS = {
    'maxPlayers': (2, 10),
    'descriptionTimeLimit': (10, 86400),
    'guessingTimeLimit': (5, 86400),
    'turnsPerPlayer': (1, 5),
}

CONFIG_DEFAULTS = {
    'maxPlayers': 10,
    'descriptionTimeLimit': 30,
    'guessingTimeLimit': 15,
    'turnsPerPlayer': 2,
}


def clamp_config(config: Optional[dict], defaults: Optional[dict] = None) -> dict:
    """Fill missing fields from defaults and clamp each into its policy range."""
    config = config or {}
    defaults = dict(CONFIG_DEFAULTS, **(defaults or {}))
    result = {}
    for key, (low, high) in CONFIG_LIMITS.items():
        raw = config.get(key)
        if raw is None or raw == 0:
            raw = defaults[key]
        if isinstance(raw, bool):
            raise Validation(f'{key} must be a number')
        try:
            value = int(raw)
        except (TypeError, ValueError):
            raise Validation(f'{key} must be a number')
        result[key] = min(max(value, low), high)
    return result


def clean_display_name(name) -> str:
    if not isinstance(name, str):
        raise Validation('Player name must be 1-16 characters')
    name = name.strip()
    if not name or len(name) > MAX_NAME_LENGTH:
        raise Validation('Player name must be 1-16 characters')
    return name


def check_color(color) -> dict:
    if not scoring.is_valid_color(color):
        raise Validation('Invalid color values. H: 0-360, S: 0-100, L: 0-100')
    return {'h': color['h'], 's': color['s'], 'l': color['l']}


def check_description(text) -> str:
    if not isinstance(text, str):
        raise Validation('Description must be text')
    if len(text) > MAX_DESCRIPTION_LENGTH:
        raise Validation(f'Description must be at most {MAX_DESCRIPTION_LENGTH} characters')
    return text


class GameEngine:
    """Room lifecycle and round-phase transitions.

    Every mutation is read-then-conditional-write against the SessionStore.
    Each public method reconciles overdue deadlines first, commits through a
    predicate on the fields it read, then pushes the committed state.
    """

    def __init__(self, store: SessionStore, registry: ConnectionRegistry, broadcaster: Broadcaster,
                 clock: Callable[[], datetime] = utcnow, rng: Optional[random.Random] = None,
                 region_code: str = 'XZ', defaults: Optional[dict] = None):
        self.store = store
        self.registry = registry
        self.broadcaster = broadcaster
        self.clock = clock
        self.rng = rng or random.Random()
        self.region_code = region_code
        self.defaults = defaults or {}
        self.deadlines = DeadlineEnforcer(store, clock)

    # ---- reads ----

    def reconcile(self, game_id: str) -> Optional[dict]:
        updated = self.deadlines.reconcile(game_id)
        if updated is not None:
            self._push(updated, meta=True, gameplay=True, players=True)
        return updated

    def load(self, game_id: str) -> dict:
        game_id = normalise_room_code(game_id)
        self.reconcile(game_id)
        return self.store.get(game_id)

    def get_session(self, game_id: str, connection_id: Optional[str] = None) -> dict:
        doc = self.load(game_id)
        if connection_id:
            self.broadcaster.send(connection_id, GameStateUpdated(gameState=gs.snapshot(doc)))
        return doc

    # ---- membership ----

    def create_session(self, display_name, config: Optional[dict] = None,
                       connection_id: Optional[str] = None) -> Tuple[dict, str]:
        name = clean_display_name(display_name)
        room_config = clamp_config(config, self.defaults)
        now = self.clock()
        player_id = generate_player_id(self.rng)
        doc = None
        for _ in range(ROOM_CODE_ATTEMPTS):
            game_id = generate_room_code(self.region_code, self.rng)
            if self.store.exists(game_id):
                continue
            try:
                doc = self.store.create(game_id, gs.new_session(game_id, room_config, gs.new_player(player_id, name, now), now))
                break
            except Conflict:
                continue
        if doc is None:
            raise Capacity('No room codes available, please retry')

        current_app.logger.info(f"[create] game={doc['gameId']} host={player_id} config={room_config}")
        if connection_id:
            self.registry.associate(connection_id, doc['gameId'], player_id)
            self.broadcaster.send(connection_id, GameStateUpdated(gameState=gs.snapshot(doc), playerId=player_id))
        return doc, player_id

    def join_session(self, game_id, display_name, connection_id: Optional[str] = None) -> Tuple[dict, str]:
        name = clean_display_name(display_name)
        doc = self.load(game_id)
        game_id = doc['gameId']

        existing = gs.find_player_by_name(doc, name)
        if existing is not None:
            if doc['meta']['status'] == gs.WAITING:
                raise Validation('Player name is already taken')
            # Same name in a running game is a reconnect
            player_id = existing['playerId']
            if self.registry.connections_for_player(game_id, player_id):
                raise Conflict('Player is already connected')
            current_app.logger.info(f"[join] game={game_id} player={player_id} reconnected by name")
            if connection_id:
                self.registry.associate(connection_id, game_id, player_id)
                self.broadcaster.send(connection_id, GameStateUpdated(gameState=gs.snapshot(doc), playerId=player_id))
            self.broadcaster.broadcast(game_id, PlayersUpdated(players=gs.players_view(doc)))
            return doc, player_id

        if doc['meta']['status'] != gs.WAITING:
            raise Conflict('Game is already in progress')
        if len(doc['players']) >= doc['config']['maxPlayers']:
            raise Capacity('Game is full')

        player_id = generate_player_id(self.rng)
        now = self.clock()

        def can_join(d):
            return (
                d['meta']['status'] == gs.WAITING
                and len(d['players']) < d['config']['maxPlayers']
                and gs.find_player_by_name(d, name) is None
            )

        def add_player(d):
            d['players'].append(gs.new_player(player_id, name, now))

        doc = self.store.conditional_update(game_id, can_join, add_player)
        current_app.logger.info(f"[join] game={game_id} player={player_id} players={len(doc['players'])}")

        if connection_id:
            self.registry.associate(connection_id, game_id, player_id)
            self.broadcaster.send(connection_id, GameStateUpdated(gameState=gs.snapshot(doc), playerId=player_id))
        self.broadcaster.broadcast(game_id, PlayersUpdated(players=gs.players_view(doc)),
                                   exclude=[connection_id] if connection_id else None)
        return doc, player_id

    def rejoin_session(self, game_id, player_id: str, connection_id: Optional[str] = None) -> dict:
        doc = self.load(game_id)
        if gs.find_player(doc, player_id) is None:
            raise NotFound('Player not found in game')
        current_app.logger.info(f"[rejoin] game={doc['gameId']} player={player_id}")
        if connection_id:
            self.registry.associate(connection_id, doc['gameId'], player_id)
            self.broadcaster.send(connection_id, GameStateUpdated(gameState=gs.snapshot(doc), playerId=player_id))
        return doc

    def kick_player(self, game_id, player_id: str, target_player_id: Optional[str] = None,
                    reason: Optional[str] = None) -> Optional[dict]:
        """Remove a player. Anyone may remove themself; removing others is host-only.

        Returns the committed document, or None if the room emptied and was deleted.
        """
        target = target_player_id or player_id
        if reason is None:
            reason = 'leave' if target == player_id else 'kick'
        doc = self.load(game_id)
        game_id = doc['gameId']
        if reason == 'kick' and player_id != gs.host_id(doc['players']):
            raise Unauthorized('Only the host can kick players')
        if gs.find_player(doc, target) is None:
            raise NotFound('Player not found in game')

        revealed = {}

        def present(d):
            return gs.find_player(d, target) is not None

        def remove(d):
            revealed.clear()
            d['players'] = [p for p in d['players'] if p['playerId'] != target]
            rnd = gs.current_round(d)
            if rnd is not None and rnd['phase'] == gs.DESCRIBING and rnd['describerId'] == target:
                # Nobody else can describe this round
                gs.reveal_without_clue(d, rnd)
                revealed['round'] = d['meta']['currentRoundIndex']
            elif rnd is not None and rnd['phase'] == gs.GUESSING:
                (rnd.get('submissions') or {}).pop(target, None)
                if gs.all_guesses_in(d, rnd):
                    gs.reveal(rnd)
                    revealed['round'] = d['meta']['currentRoundIndex']

        doc = self.store.conditional_update(game_id, present, remove)
        current_app.logger.info(f"[kick] game={game_id} target={target} by={player_id} reason={reason}")

        for sid in self.registry.connections_for_player(game_id, target):
            if reason == 'kick':
                self.broadcaster.send(sid, Kicked(message='You have been removed from the game by the host'))
            elif reason == 'leave':
                self.broadcaster.send(sid, Kicked(message='You have left the game'))
            self.registry.dissociate(sid)

        if not doc['players']:
            self.store.delete(game_id)
            self.registry.purge(game_id)
            current_app.logger.info(f"[close] game={game_id} last player left")
            return None

        if revealed:
            current_app.logger.info(f"[reveal] game={game_id} round={revealed['round']} after removal")
            self._push(doc, meta=True, gameplay=True, players=True)
        else:
            self._push(doc, players=True)
        return doc

    def close_room(self, game_id, player_id: str) -> None:
        doc = self.load(game_id)
        game_id = doc['gameId']
        self._require_host(doc, player_id, 'Only the host can close the room')
        self.broadcaster.broadcast(game_id, Kicked(message='The room has been closed by the host'))
        self.store.delete(game_id)
        self.registry.purge(game_id)
        current_app.logger.info(f"[close] game={game_id} by={player_id}")

    # ---- drafts ----

    def update_draft_color(self, game_id, player_id: str, color) -> dict:
        color = check_color(color)
        game_id = normalise_room_code(game_id)
        self.reconcile(game_id)

        def set_draft(d):
            gs.find_player(d, player_id)['draftColor'] = color

        doc = self._update_member(game_id, player_id, set_draft)
        self._push(doc, players=True)
        return doc

    def update_draft_description(self, game_id, player_id: str, text) -> dict:
        text = check_description(text)
        game_id = normalise_room_code(game_id)
        self.reconcile(game_id)

        def set_draft(d):
            gs.find_player(d, player_id)['draftDescription'] = text

        return self._update_member(game_id, player_id, set_draft)

    # ---- rounds ----

    def start_round(self, game_id, player_id: str) -> dict:
        doc = self.load(game_id)
        game_id = doc['gameId']
        self._require_player(doc, player_id)
        status = doc['meta']['status']
        expected_index = doc['meta']['currentRoundIndex']

        if status == gs.WAITING:
            self._require_host(doc, player_id, 'Only the host can start the game')
        else:
            rnd = gs.current_round(doc)
            if rnd is None or rnd['phase'] != gs.REVEAL:
                raise Conflict('A round can only start after the reveal')
        if len(doc['players']) < 2:
            raise Validation('At least 2 players are required')

        def can_start(d):
            if d['meta']['status'] != status or d['meta']['currentRoundIndex'] != expected_index:
                return False
            if len(d['players']) < 2:
                return False
            if status == gs.PLAYING:
                rnd = gs.current_round(d)
                return rnd is not None and rnd['phase'] == gs.REVEAL
            return True

        def add_round(d):
            now = self.clock()
            describer = select_describer(d['players'], d['rounds'], self.rng)
            target = scoring.random_target_color(self.rng)
            d['rounds'].append(gs.new_round(describer, target, d['config']['descriptionTimeLimit'], now))
            d['meta']['status'] = gs.PLAYING
            d['meta']['currentRoundIndex'] = len(d['rounds']) - 1
            for p in d['players']:
                p['draftDescription'] = None

        doc = self.store.conditional_update(game_id, can_start, add_round)
        rnd = gs.current_round(doc)
        current_app.logger.info(
            f"[round-start] game={game_id} round={doc['meta']['currentRoundIndex']} describer={rnd['describerId']}"
        )
        self._push(doc, meta=True, gameplay=True, players=True)
        return doc

    def submit_description(self, game_id, player_id: str, text) -> dict:
        text = check_description(text)
        clue = text.strip()
        no_clue = not clue or clue == NO_CLUE_SENTINEL

        doc = self.load(game_id)
        game_id = doc['gameId']
        self._require_player(doc, player_id)
        rnd = gs.current_round(doc)
        if rnd is None or rnd['phase'] != gs.DESCRIBING or rnd['describerId'] != player_id:
            raise Conflict('Not your turn to describe')
        index = doc['meta']['currentRoundIndex']

        def still_describing(d):
            r = gs.current_round(d)
            return (
                d['meta']['currentRoundIndex'] == index
                and r is not None
                and r['phase'] == gs.DESCRIBING
                and r['describerId'] == player_id
            )

        def commit(d):
            r = gs.current_round(d)
            if no_clue:
                gs.reveal_without_clue(d, r)
            else:
                gs.open_guessing(d, r, clue, self.clock())

        doc = self.store.conditional_update(game_id, still_describing, commit)
        current_app.logger.info(
            f"[describe] game={game_id} round={index} phase={gs.current_round(doc)['phase']} no_clue={no_clue}"
        )
        self._push(doc, meta=True, gameplay=True, players=no_clue)
        return doc

    def submit_color(self, game_id, player_id: str, color) -> dict:
        color = check_color(color)
        doc = self.load(game_id)
        game_id = doc['gameId']
        self._require_player(doc, player_id)
        rnd = gs.current_round(doc)
        if rnd is None or rnd['phase'] != gs.GUESSING:
            raise Conflict('Not accepting guesses at this time')
        if rnd['describerId'] == player_id:
            raise Validation('The describer cannot guess')
        if player_id in (rnd.get('submissions') or {}):
            raise Conflict('Color already submitted')
        index = doc['meta']['currentRoundIndex']

        def can_insert(d):
            r = gs.current_round(d)
            return (
                d['meta']['currentRoundIndex'] == index
                and r is not None
                and r['phase'] == gs.GUESSING
                and r['describerId'] != player_id
                and player_id not in (r.get('submissions') or {})
                and gs.find_player(d, player_id) is not None
            )

        def insert(d):
            r = gs.current_round(d)
            r.setdefault('submissions', {})[player_id] = color
            # The guess that completes the set reveals in the same write
            if gs.all_guesses_in(d, r):
                gs.reveal(r)

        doc = self.store.conditional_update(game_id, can_insert, insert)
        rnd = gs.current_round(doc)
        current_app.logger.info(
            f"[guess] game={game_id} round={index} player={player_id} "
            f"submitted={len(rnd['submissions'])}"
        )

        if rnd['phase'] == gs.REVEAL:
            current_app.logger.info(f"[reveal] game={game_id} round={index} scores={rnd['scores']}")
            self._push(doc, meta=True, gameplay=True, players=True)
        else:
            self._push(doc, gameplay=True)
        return doc

    def finalise_game(self, game_id, player_id: str) -> dict:
        doc = self.load(game_id)
        game_id = doc['gameId']
        self._require_host(doc, player_id, 'Only the host can end the game')
        rnd = gs.current_round(doc)
        if rnd is None or rnd['phase'] != gs.REVEAL:
            raise Conflict('The game can only end from the reveal')
        if not is_complete(doc['players'], doc['rounds'], doc['config']['turnsPerPlayer']):
            raise Conflict('Not every player has described yet')
        index = doc['meta']['currentRoundIndex']

        def can_finish(d):
            r = gs.current_round(d)
            return (
                d['meta']['currentRoundIndex'] == index
                and r is not None
                and r['phase'] == gs.REVEAL
                and is_complete(d['players'], d['rounds'], d['config']['turnsPerPlayer'])
            )

        def finish(d):
            gs.current_round(d)['phase'] = gs.ENDGAME

        doc = self.store.conditional_update(game_id, can_finish, finish)
        current_app.logger.info(f"[finalise] game={game_id} rounds={len(doc['rounds'])}")
        self._push(doc, gameplay=True)
        return doc

    def reset_game(self, game_id, player_id: str) -> dict:
        doc = self.load(game_id)
        game_id = doc['gameId']
        self._require_host(doc, player_id, 'Only the host can reset the game')

        def still_host(d):
            return gs.host_id(d['players']) == player_id

        def reset(d):
            d['meta']['status'] = gs.WAITING
            d['meta']['currentRoundIndex'] = None
            d['rounds'] = []
            for p in d['players']:
                p['draftColor'] = None
                p['draftDescription'] = None

        doc = self.store.conditional_update(game_id, still_host, reset)
        current_app.logger.info(f"[reset] game={game_id} by={player_id}")
        self.broadcaster.broadcast(game_id, GameStateUpdated(gameState=gs.snapshot(doc)))
        return doc

    # ---- internals ----

    def _update_member(self, game_id: str, player_id: str, mutate) -> dict:
        def member(d):
            return gs.find_player(d, player_id) is not None

        try:
            return self.store.conditional_update(game_id, member, mutate)
        except Conflict:
            if gs.find_player(self.store.get(game_id), player_id) is None:
                raise NotFound('Player not found in game')
            raise

    def _require_player(self, doc: dict, player_id: str) -> dict:
        player = gs.find_player(doc, player_id)
        if player is None:
            raise NotFound('Player not found in game')
        return player

    def _require_host(self, doc: dict, player_id: str, message: str) -> None:
        self._require_player(doc, player_id)
        if gs.host_id(doc['players']) != player_id:
            raise Unauthorized(message)

    def _push(self, doc: dict, meta=False, gameplay=False, players=False) -> None:
        game_id = doc['gameId']
        if meta:
            self.broadcaster.broadcast(game_id, MetaUpdated(meta=gs.meta_view(doc)))
        if gameplay:
            self.broadcaster.broadcast(game_id, GameplayUpdated(gameplay=gs.gameplay_view(doc)))
        if players:
            self.broadcaster.broadcast(game_id, PlayersUpdated(players=gs.players_view(doc)))
