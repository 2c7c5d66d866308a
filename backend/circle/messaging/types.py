from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StrictInt, TypeAdapter

from circle.logic.enums import GameAction, GamePhase
from circle.logic.types import CategoryInfo, RoomView

# ASCII control character boundaries for input validation
_SPACE_ORD = 0x20
_DEL_ORD = 0x7F

_ROOM_CODE_FIELD = Field(min_length=1, max_length=8, pattern=r"^\s*[a-zA-Z]+\s*$")
_CARD_ID = Annotated[str, Field(min_length=1, max_length=64)]
_REQUEST_ID = Field(default=None, max_length=64)


class ClientMessageType(StrEnum):
    CREATE_ROOM = "create_room"
    JOIN_ROOM = "join_room"
    REJOIN_ROOM = "rejoin_room"
    LEAVE_ROOM = "leave_room"
    UPDATE_SETTINGS = "update_settings"
    START_GAME = "start_game"
    SUBMIT_SELF_POSITIONING = "submit_self_positioning"
    SUBMIT_SABOTAGE = "submit_sabotage"
    FINISH_PITCH = "finish_pitch"
    SUBMIT_VOTE = "submit_vote"
    PING = "ping"


class ServerMessageType(StrEnum):
    ACTION_RESULT = "action_result"
    ROOM_STATE = "room_state"
    PHASE_CHANGED = "phase_changed"
    ROOM_DISSOLVED = "room_dissolved"
    GAME_ENDED = "game_ended"
    ERROR = "session_error"
    PONG = "pong"


class SessionErrorCode(StrEnum):
    INVALID_MESSAGE = "invalid_message"
    ACTION_FAILED = "action_failed"
    ALREADY_IN_ROOM = "already_in_room"
    NOT_IN_ROOM = "not_in_room"
    SERVER_AT_CAPACITY = "server_at_capacity"


def _reject_control_chars(value: str) -> str:
    if any(ord(c) < _SPACE_ORD or ord(c) == _DEL_ORD for c in value):
        raise ValueError("must not contain control characters")
    return value


_PlayerName = Annotated[str, Field(min_length=1, max_length=64), AfterValidator(_reject_control_chars)]


class _ClientMessage(BaseModel):
    model_config = ConfigDict(extra="forbid")

    request_id: str | None = _REQUEST_ID


class CreateRoomMessage(_ClientMessage):
    type: Literal[ClientMessageType.CREATE_ROOM] = ClientMessageType.CREATE_ROOM
    name: _PlayerName
    category: str | None = Field(default=None, max_length=64)


class JoinRoomMessage(_ClientMessage):
    type: Literal[ClientMessageType.JOIN_ROOM] = ClientMessageType.JOIN_ROOM
    room_code: str = _ROOM_CODE_FIELD
    name: _PlayerName


class RejoinRoomMessage(_ClientMessage):
    type: Literal[ClientMessageType.REJOIN_ROOM] = ClientMessageType.REJOIN_ROOM
    room_code: str = _ROOM_CODE_FIELD
    name: _PlayerName


class LeaveRoomMessage(_ClientMessage):
    type: Literal[ClientMessageType.LEAVE_ROOM] = ClientMessageType.LEAVE_ROOM


class UpdateSettingsMessage(_ClientMessage):
    type: Literal[ClientMessageType.UPDATE_SETTINGS] = ClientMessageType.UPDATE_SETTINGS
    category: str = Field(min_length=1, max_length=64)


class StartGameMessage(_ClientMessage):
    type: Literal[ClientMessageType.START_GAME] = ClientMessageType.START_GAME


class SubmitSelfPositioningMessage(_ClientMessage):
    type: Literal[ClientMessageType.SUBMIT_SELF_POSITIONING] = ClientMessageType.SUBMIT_SELF_POSITIONING
    positions: dict[_CARD_ID, StrictInt] = Field(max_length=16)


class SubmitSabotageMessage(_ClientMessage):
    type: Literal[ClientMessageType.SUBMIT_SABOTAGE] = ClientMessageType.SUBMIT_SABOTAGE
    deltas: dict[_CARD_ID, StrictInt] = Field(max_length=16)


class FinishPitchMessage(_ClientMessage):
    type: Literal[ClientMessageType.FINISH_PITCH] = ClientMessageType.FINISH_PITCH
    expected_index: Annotated[StrictInt, Field(ge=0)] | None = None


class SubmitVoteMessage(_ClientMessage):
    type: Literal[ClientMessageType.SUBMIT_VOTE] = ClientMessageType.SUBMIT_VOTE
    candidate_name: str = Field(min_length=1, max_length=64)


class PingMessage(_ClientMessage):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING


ClientMessage = Annotated[
    CreateRoomMessage
    | JoinRoomMessage
    | RejoinRoomMessage
    | LeaveRoomMessage
    | UpdateSettingsMessage
    | StartGameMessage
    | SubmitSelfPositioningMessage
    | SubmitSabotageMessage
    | FinishPitchMessage
    | SubmitVoteMessage
    | PingMessage,
    Field(discriminator="type"),
]


class ActionResultMessage(BaseModel):
    """Reply to exactly one client action."""

    type: Literal[ServerMessageType.ACTION_RESULT] = ServerMessageType.ACTION_RESULT
    action: GameAction
    success: bool
    request_id: str | None = None
    code: str | None = None
    message: str | None = None
    room_code: str | None = None
    categories: list[CategoryInfo] | None = None


class RoomStateMessage(BaseModel):
    type: Literal[ServerMessageType.ROOM_STATE] = ServerMessageType.ROOM_STATE
    view: RoomView


class PhaseChangedMessage(BaseModel):
    type: Literal[ServerMessageType.PHASE_CHANGED] = ServerMessageType.PHASE_CHANGED
    phase: GamePhase


class RoomDissolvedMessage(BaseModel):
    """Terminal: the client should drop all session state for this room."""

    type: Literal[ServerMessageType.ROOM_DISSOLVED] = ServerMessageType.ROOM_DISSOLVED
    room_code: str


class GameEndedMessage(BaseModel):
    """Sent instead of a room state when a rejoin finds the game already over."""

    type: Literal[ServerMessageType.GAME_ENDED] = ServerMessageType.GAME_ENDED
    room_code: str


class ErrorMessage(BaseModel):
    type: Literal[ServerMessageType.ERROR] = ServerMessageType.ERROR
    code: SessionErrorCode
    message: str


class PongMessage(BaseModel):
    type: Literal[ServerMessageType.PONG] = ServerMessageType.PONG


_client_message_adapter: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a raw decoded frame into a typed client message. Raises ValidationError."""
    return _client_message_adapter.validate_python(data)
