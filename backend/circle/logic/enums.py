"""
String enum definitions for Inner Circle game concepts.
"""

from enum import StrEnum


class GamePhase(StrEnum):
    """Phase of a room. Phases only ever advance in declaration order."""

    LOBBY = "LOBBY"
    SELF_POSITIONING = "SELF_POSITIONING"
    SABOTAGE = "SABOTAGE"
    PITCHING = "PITCHING"
    VOTING = "VOTING"
    GAME_OVER = "GAME_OVER"


class GameAction(StrEnum):
    """Actions dispatched from a client to the room state machine."""

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


class ViewerRole(StrEnum):
    JUDGE = "judge"
    CANDIDATE = "candidate"


class SubjectRelation(StrEnum):
    """How the player whose hand is being projected relates to the viewer."""

    SELF = "self"
    TARGET = "target"
    CURRENT_PITCHER = "current_pitcher"
    CANDIDATE = "candidate"


class VisibilityTier(StrEnum):
    """Which fields of a hand a viewer may see."""

    NONE = "none"
    OWN_HAND = "own_hand"  # card id, label, self position
    TARGET_HAND = "target_hand"  # same fields as OWN_HAND, shown to the saboteur
    FULL_REVEAL = "full_reveal"  # adds final position and realized sabotage
