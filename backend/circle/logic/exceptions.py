"""Typed domain exceptions for room rule violations.

Every rejected action raises a subclass of GameRuleError carrying a
RejectionCode. The state machine validates an action completely before it
mutates anything, so a raised GameRuleError always leaves the room exactly
as it was. The message router converts these into failed action results;
user-facing text is chosen there, not here.
"""

from enum import StrEnum


class RejectionCode(StrEnum):
    ROOM_NOT_FOUND = "room_not_found"
    PLAYER_NOT_FOUND = "player_not_found"
    GAME_IN_PROGRESS = "game_in_progress"
    NAME_TAKEN = "name_taken"
    INVALID_NAME = "invalid_name"
    UNKNOWN_CATEGORY = "unknown_category"
    WRONG_PHASE = "wrong_phase"
    NOT_JUDGE = "not_judge"
    NOT_A_CANDIDATE = "not_a_candidate"
    NOT_ENOUGH_PLAYERS = "not_enough_players"
    ALREADY_SUBMITTED = "already_submitted"
    NO_TARGET = "no_target"
    INVALID_POSITIONS = "invalid_positions"
    INVALID_SABOTAGE = "invalid_sabotage"
    OVER_BUDGET = "over_budget"
    NOT_YOUR_TURN = "not_your_turn"
    INVALID_VOTE = "invalid_vote"


class GameRuleError(Exception):
    """Base exception for rejected room actions.

    Attributes:
        code: Machine-readable reason, sent to the client as-is.
        reason: Developer-facing detail for logs.

    """

    def __init__(self, code: RejectionCode, reason: str = "") -> None:
        self.code = code
        self.reason = reason or code.value
        super().__init__(self.reason)


class RoomNotFoundError(GameRuleError):
    """The room code does not name a live room."""

    def __init__(self, room_code: str) -> None:
        self.room_code = room_code
        super().__init__(RejectionCode.ROOM_NOT_FOUND, f"room {room_code!r} not found")


class PreconditionError(GameRuleError):
    """The action is not valid for the room's phase or the actor's role."""


class InvalidPayloadError(GameRuleError):
    """The action payload is malformed or out of range."""
