"""Wire formats for the /ws namespace.

Inbound actions and outbound events are closed tagged unions: `action`
selects the inbound model, `type` names the outbound one. Anything that
does not parse is rejected as a Validation error.
"""
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from rgb_game.errors import Validation


class Color(BaseModel):
    model_config = ConfigDict(extra='forbid')

    h: float = Field(ge=0, le=360, allow_inf_nan=False)
    s: float = Field(ge=0, le=100, allow_inf_nan=False)
    l: float = Field(ge=0, le=100, allow_inf_nan=False)


class RoomConfig(BaseModel):
    maxPlayers: Optional[int] = None
    descriptionTimeLimit: Optional[int] = None
    guessingTimeLimit: Optional[int] = None
    turnsPerPlayer: Optional[int] = None


class _Action(BaseModel):
    model_config = ConfigDict(extra='ignore')


class _PlayerAction(_Action):
    gameId: str
    playerId: str


# ---- inbound ----

class CreateGame(_Action):
    action: Literal['createGame']
    displayName: str
    config: Optional[RoomConfig] = None


class JoinGame(_Action):
    action: Literal['joinGame']
    gameId: str
    displayName: str


class RejoinGame(_PlayerAction):
    action: Literal['rejoinGame']


class GetGame(_Action):
    action: Literal['getGame']
    gameId: str
    playerId: Optional[str] = None


class UpdateDraftColor(_PlayerAction):
    action: Literal['updateDraftColor']
    color: Color


class UpdateDraftDescription(_PlayerAction):
    action: Literal['updateDraftDescription']
    description: str


class SubmitDescription(_PlayerAction):
    action: Literal['submitDescription']
    description: str


class SubmitColor(_PlayerAction):
    action: Literal['submitColor']
    color: Color


class StartRound(_PlayerAction):
    action: Literal['startRound']


class FinaliseGame(_PlayerAction):
    action: Literal['finaliseGame']


class ResetGame(_PlayerAction):
    action: Literal['resetGame']


class CloseRoom(_PlayerAction):
    action: Literal['closeRoom']


class KickPlayer(_PlayerAction):
    action: Literal['kickPlayer']
    targetPlayerId: Optional[str] = None


Action = Annotated[
    Union[
        CreateGame, JoinGame, RejoinGame, GetGame,
        UpdateDraftColor, UpdateDraftDescription,
        SubmitDescription, SubmitColor,
        StartRound, FinaliseGame, ResetGame, CloseRoom, KickPlayer,
    ],
    Field(discriminator='action'),
]

_action_adapter = TypeAdapter(Action)


def parse_action(payload: Any):
    if not isinstance(payload, dict):
        raise Validation('Message must be a JSON object')
    try:
        return _action_adapter.validate_python(payload)
    except ValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        where = '.'.join(str(part) for part in first.get('loc', ())) or 'message'
        raise Validation(f"Invalid {where}: {first.get('msg', 'malformed message')}")


# ---- outbound ----

class _Event(BaseModel):
    def payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class MetaUpdated(_Event):
    type: Literal['metaUpdated'] = 'metaUpdated'
    meta: Dict[str, Any]


class PlayersUpdated(_Event):
    type: Literal['playersUpdated'] = 'playersUpdated'
    players: List[Dict[str, Any]]


class GameplayUpdated(_Event):
    type: Literal['gameplayUpdated'] = 'gameplayUpdated'
    gameplay: Dict[str, Any]


class GameStateUpdated(_Event):
    type: Literal['gameStateUpdated'] = 'gameStateUpdated'
    gameState: Dict[str, Any]
    playerId: Optional[str] = None


class ErrorEvent(_Event):
    type: Literal['error'] = 'error'
    code: str
    message: str


class Kicked(_Event):
    type: Literal['kicked'] = 'kicked'
    message: str


Event = Union[MetaUpdated, PlayersUpdated, GameplayUpdated, GameStateUpdated, ErrorEvent, Kicked]
