"""
Room membership across connections: rejoin, leave, disconnect and idle cleanup.

Connections come and go; players are identified by name. A rejoin only
rewrites the player's connection id (and the room's host reference for the
Judge). A departure mid-game reconciles every name-keyed relation that
pointed at the departed player so the round can continue without them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from circle.logic import phases
from circle.logic.enums import GamePhase
from circle.logic.exceptions import PreconditionError, RejectionCode, RoomNotFoundError
from circle.logic.rng import create_rng
from circle.logic.state import normalize_name

if TYPE_CHECKING:
    import random

    from circle.logic.registry import RoomRegistry
    from circle.logic.state import Player, Room

logger = structlog.get_logger()


@dataclass(frozen=True)
class LeaveOutcome:
    """Result of a leave. When dissolved is True the room is no longer in the registry."""

    room: Room
    departed: Player
    dissolved: bool


class RoomMembership:
    def __init__(self, registry: RoomRegistry, rng: random.Random | None = None) -> None:
        self.registry = registry
        self.rng = rng or create_rng()

    def rejoin_room(self, code: str, new_connection_id: str, name: str) -> Room:
        """
        Rebind the named player to a new connection and mark them connected.

        Phase, turn order and every other player are left alone. The caller
        decides what a rejoin into GAME_OVER means.
        """
        room = self.registry.get(code)
        if room is None:
            raise RoomNotFoundError(code)
        player = room.find_player(name)
        if player is None:
            raise PreconditionError(RejectionCode.PLAYER_NOT_FOUND, f"no player {name!r} in room {room.code}")
        player.connection_id = new_connection_id
        player.is_connected = True
        if player.is_judge:
            room.host_connection_id = new_connection_id
        logger.info("player rejoined", room_code=room.code, player_name=player.name, phase=room.phase.value)
        return room

    def leave_room(self, code: str, name: str) -> LeaveOutcome:
        """
        Remove the named player.

        The room dissolves when the Judge leaves, when nobody is left, or
        when a round in progress has no candidates remaining. After GAME_OVER
        a departure only shrinks the roster; the results stay as they were.
        """
        room = self.registry.get(code)
        if room is None:
            raise RoomNotFoundError(code)
        player = room.find_player(name)
        if player is None:
            raise PreconditionError(RejectionCode.PLAYER_NOT_FOUND, f"no player {name!r} in room {room.code}")

        in_round = room.in_progress and room.is_candidate(player)
        if in_round:
            self._reconcile_departure(room, player)
        room.players.remove(player)
        if room.phase != GamePhase.GAME_OVER:
            key = normalize_name(player.name)
            room.candidate_names = [n for n in room.candidate_names if normalize_name(n) != key]
        logger.info("player left", room_code=room.code, player_name=player.name, phase=room.phase.value)

        if player.is_judge or room.is_empty or (room.in_progress and not room.candidates):
            self.registry.delete(room.code)
            logger.info("room dissolved", room_code=room.code, reason="judge_left" if player.is_judge else "no_players")
            return LeaveOutcome(room=room, departed=player, dissolved=True)

        if in_round:
            phases.advance_if_complete(room, self.rng)
        return LeaveOutcome(room=room, departed=player, dissolved=False)

    @staticmethod
    def _reconcile_departure(room: Room, departed: Player) -> None:
        """Splice the departed candidate out of the sabotage cycle and the pitch order."""
        if room.phase == GamePhase.SABOTAGE:
            saboteur = room.saboteur_of(departed.name)
            if saboteur is not None and not saboteur.sabotage_submitted:
                inherited = departed.sabotage_target
                # the departed player's sabotage already landed on their target
                if departed.sabotage_submitted or inherited is None:
                    saboteur.sabotage_target = None
                elif normalize_name(inherited) == normalize_name(saboteur.name):
                    saboteur.sabotage_target = None
                else:
                    saboteur.sabotage_target = inherited
                logger.info(
                    "sabotage target reassigned",
                    room_code=room.code,
                    saboteur=saboteur.name,
                    target=saboteur.sabotage_target,
                )

        key = normalize_name(departed.name)
        for index, name in enumerate(room.pitch_order):
            if normalize_name(name) == key:
                del room.pitch_order[index]
                if index < room.current_pitcher_index:
                    room.current_pitcher_index -= 1
                break

    def player_disconnect(self, connection_id: str) -> Room | None:
        """Mark the player on this connection offline. Returns their room, or None."""
        room = self.registry.find_by_connection(connection_id)
        if room is None:
            return None
        player = room.player_by_connection(connection_id)
        if player is not None:
            player.is_connected = False
            logger.info("player disconnected", room_code=room.code, player_name=player.name)
        return room

    def cleanup_room(self, code: str) -> bool:
        """Delete the room if every player is disconnected. Returns True if it was deleted."""
        room = self.registry.get(code)
        if room is None or not room.all_disconnected:
            return False
        self.registry.delete(room.code)
        logger.info("idle room cleaned up", room_code=room.code)
        return True
