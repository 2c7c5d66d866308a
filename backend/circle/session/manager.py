from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

import structlog

from circle.logic.enums import GameAction, GamePhase
from circle.logic.exceptions import RoomNotFoundError
from circle.logic.state import normalize_room_code
from circle.logic.view import project_room
from circle.messaging.types import (
    ActionResultMessage,
    ErrorMessage,
    GameEndedMessage,
    PhaseChangedMessage,
    PongMessage,
    RoomDissolvedMessage,
    RoomStateMessage,
    SessionErrorCode,
)
from circle.session.cleanup import CleanupScheduler

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from circle.logic.machine import RoomStateMachine
    from circle.logic.membership import RoomMembership
    from circle.logic.state import Room
    from circle.logic.types import CategoryInfo
    from circle.messaging.protocol import ConnectionProtocol

logger = structlog.get_logger()

_SEND_ERRORS = (RuntimeError, OSError, ConnectionError)


class SessionManager:
    """
    Bridge between client connections and the room state machine.

    Tracks which room each connection is bound to, serializes mutations per
    room with an asyncio.Lock, and fans out a freshly projected view to every
    connected member after each successful mutation.

    Rule violations raised by the state machine propagate to the caller
    (the message router) which turns them into failed action results.
    """

    def __init__(
        self,
        machine: RoomStateMachine,
        membership: RoomMembership,
        *,
        idle_cleanup_seconds: float = 60,
        max_rooms: int = 500,
    ) -> None:
        self._machine = machine
        self._membership = membership
        self._max_rooms = max_rooms
        self._connections: dict[str, ConnectionProtocol] = {}
        self._bound_rooms: dict[str, str] = {}  # connection_id -> room code
        self._room_locks: dict[str, asyncio.Lock] = {}  # room code -> Lock
        self._cleanup = CleanupScheduler(idle_cleanup_seconds, self._cleanup_idle_room)

    # --- connection bookkeeping ---

    def register_connection(self, connection: ConnectionProtocol) -> None:
        self._connections[connection.connection_id] = connection

    def unregister_connection(self, connection: ConnectionProtocol) -> None:
        self._connections.pop(connection.connection_id, None)
        self._bound_rooms.pop(connection.connection_id, None)

    def room_code_for(self, connection_id: str) -> str | None:
        return self._bound_rooms.get(connection_id)

    @property
    def room_count(self) -> int:
        return len(self._machine.registry)

    @property
    def max_rooms(self) -> int:
        return self._max_rooms

    @property
    def cleanup(self) -> CleanupScheduler:
        return self._cleanup

    def categories(self) -> list[CategoryInfo]:
        return self._machine.card_source.categories()

    def _lock_for(self, room_code: str) -> asyncio.Lock:
        lock = self._room_locks.get(room_code)
        if lock is None:
            lock = asyncio.Lock()
            self._room_locks[room_code] = lock
        return lock

    def _unbind_room(self, connection: ConnectionProtocol) -> str | None:
        structlog.contextvars.unbind_contextvars("room_code")
        return self._bound_rooms.pop(connection.connection_id, None)

    def _forget_room(self, room_code: str) -> None:
        """Drop per-room session state once a room has left the registry."""
        self._room_locks.pop(room_code, None)
        self._cleanup.cancel(room_code)
        for connection_id, code in list(self._bound_rooms.items()):
            if code == room_code:
                del self._bound_rooms[connection_id]

    # --- outgoing messages ---

    async def _send(self, connection: ConnectionProtocol, payload: dict) -> None:
        with contextlib.suppress(*_SEND_ERRORS):
            await connection.send_message(payload)

    async def _send_error(self, connection: ConnectionProtocol, code: SessionErrorCode, message: str) -> None:
        logger.warning("session error sent to client", error_code=code.value, error_message=message)
        await self._send(connection, ErrorMessage(code=code, message=message).model_dump(mode="json"))

    async def _send_result(
        self,
        connection: ConnectionProtocol,
        action: GameAction,
        request_id: str | None,
        *,
        room_code: str | None = None,
        include_categories: bool = False,
    ) -> None:
        result = ActionResultMessage(
            action=action,
            success=True,
            request_id=request_id,
            room_code=room_code,
            categories=self.categories() if include_categories else None,
        )
        await self._send(connection, result.model_dump(mode="json"))

    def _member_connections(self, room: Room) -> list[tuple[ConnectionProtocol, str]]:
        """Connections of currently connected members, paired with the member's connection id."""
        members = []
        for player in room.players:
            if not player.is_connected:
                continue
            connection = self._connections.get(player.connection_id)
            if connection is not None:
                members.append((connection, player.connection_id))
        return members

    async def _broadcast_room(self, room: Room, previous_phase: GamePhase | None = None) -> None:
        """Push a phase change notice if the phase moved, then each member's own view."""
        members = self._member_connections(room)
        if previous_phase is not None and previous_phase != room.phase:
            notice = PhaseChangedMessage(phase=room.phase).model_dump(mode="json")
            for connection, _ in members:
                await self._send(connection, notice)
        for connection, connection_id in members:
            viewer = room.player_by_connection(connection_id)
            if viewer is None:
                continue
            view = project_room(room, viewer, self._machine.card_source, self._machine.settings)
            await self._send(connection, RoomStateMessage(view=view).model_dump(mode="json"))

    # --- room entry ---

    async def _require_unbound(self, connection: ConnectionProtocol) -> bool:
        if connection.connection_id in self._bound_rooms:
            await self._send_error(connection, SessionErrorCode.ALREADY_IN_ROOM, "Already in a room")
            return False
        return True

    async def create_room(
        self,
        connection: ConnectionProtocol,
        name: str,
        category: str | None = None,
        request_id: str | None = None,
    ) -> None:
        if not await self._require_unbound(connection):
            return
        if self.room_count >= self._max_rooms:
            await self._send_error(connection, SessionErrorCode.SERVER_AT_CAPACITY, "Server at capacity")
            return
        room = self._machine.create_room(connection.connection_id, name, category)
        self._bound_rooms[connection.connection_id] = room.code
        structlog.contextvars.bind_contextvars(room_code=room.code)
        await self._send_result(
            connection,
            GameAction.CREATE_ROOM,
            request_id,
            room_code=room.code,
            include_categories=True,
        )
        await self._broadcast_room(room)

    async def join_room(
        self,
        connection: ConnectionProtocol,
        room_code: str,
        name: str,
        request_id: str | None = None,
    ) -> None:
        if not await self._require_unbound(connection):
            return
        code = normalize_room_code(room_code)
        with structlog.contextvars.bound_contextvars(room_code=code):
            if code not in self._machine.registry:
                raise RoomNotFoundError(code)
            async with self._lock_for(code):
                room = self._machine.join_room(code, connection.connection_id, name)
                self._bound_rooms[connection.connection_id] = room.code
                await self._send_result(
                    connection,
                    GameAction.JOIN_ROOM,
                    request_id,
                    room_code=room.code,
                    include_categories=True,
                )
                await self._broadcast_room(room)
        structlog.contextvars.bind_contextvars(room_code=room.code)

    async def rejoin_room(
        self,
        connection: ConnectionProtocol,
        room_code: str,
        name: str,
        request_id: str | None = None,
    ) -> None:
        """
        Resume a room under this connection.

        A rejoin into a finished game is answered with game_ended and does not
        bind the connection. If the player's previous socket is still open it
        is detached and closed once the rebind is done.
        """
        if not await self._require_unbound(connection):
            return
        code = normalize_room_code(room_code)
        stale: ConnectionProtocol | None = None
        with structlog.contextvars.bound_contextvars(room_code=code):
            if code not in self._machine.registry:
                raise RoomNotFoundError(code)
            async with self._lock_for(code):
                room = self._machine.registry.get(code)
                if room is None:
                    raise RoomNotFoundError(code)
                if room.phase == GamePhase.GAME_OVER and room.find_player(name) is not None:
                    logger.info("rejoin after game over", player_name=name)
                    await self._send(connection, GameEndedMessage(room_code=room.code).model_dump(mode="json"))
                    return

                existing = room.find_player(name)
                previous_id = existing.connection_id if existing is not None else None
                room = self._membership.rejoin_room(code, connection.connection_id, name)
                if previous_id is not None and previous_id != connection.connection_id:
                    if self._bound_rooms.pop(previous_id, None) is not None:
                        stale = self._connections.get(previous_id)
                self._bound_rooms[connection.connection_id] = room.code
                await self._send_result(connection, GameAction.REJOIN_ROOM, request_id, room_code=room.code)
                await self._broadcast_room(room)
        structlog.contextvars.bind_contextvars(room_code=room.code)

        if stale is not None:
            with contextlib.suppress(*_SEND_ERRORS):
                await stale.close(code=1000, reason="replaced_by_rejoin")

    # --- room exit ---

    async def leave_room(
        self,
        connection: ConnectionProtocol,
        request_id: str | None = None,
    ) -> None:
        code = self._bound_rooms.get(connection.connection_id)
        if code is None:
            structlog.contextvars.unbind_contextvars("room_code")
            await self._send_error(connection, SessionErrorCode.NOT_IN_ROOM, "Not in a room")
            return
        structlog.contextvars.bind_contextvars(room_code=code)
        async with self._lock_for(code):
            room = self._machine.registry.get(code)
            player = room.player_by_connection(connection.connection_id) if room is not None else None
            if room is None or player is None:
                self._unbind_room(connection)
                await self._send_error(connection, SessionErrorCode.NOT_IN_ROOM, "Not in a room")
                return
            previous_phase = room.phase
            outcome = self._membership.leave_room(code, player.name)
            self._unbind_room(connection)
            await self._send_result(connection, GameAction.LEAVE_ROOM, request_id, room_code=room.code)

            if outcome.dissolved:
                notice = RoomDissolvedMessage(room_code=room.code).model_dump(mode="json")
                for member, _ in self._member_connections(outcome.room):
                    await self._send(member, notice)
                self._forget_room(room.code)
                return
            await self._broadcast_room(outcome.room, previous_phase)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        """Mark the player offline and start the idle-cleanup grace period for their room."""
        code = self._unbind_room(connection)
        self.unregister_connection(connection)
        if code is None:
            return
        with structlog.contextvars.bound_contextvars(room_code=code):
            async with self._lock_for(code):
                room = self._membership.player_disconnect(connection.connection_id)
                if room is None:
                    return
                self._cleanup.schedule(room.code)
                await self._broadcast_room(room)

    async def _cleanup_idle_room(self, room_code: str) -> None:
        async with self._lock_for(room_code):
            removed = self._membership.cleanup_room(room_code)
        if removed:
            self._forget_room(room_code)

    # --- in-room actions ---

    async def _room_action(
        self,
        connection: ConnectionProtocol,
        action: GameAction,
        request_id: str | None,
        mutate: Callable[[str], Room],
    ) -> None:
        code = self._bound_rooms.get(connection.connection_id)
        if code is None:
            structlog.contextvars.unbind_contextvars("room_code")
            await self._send_error(connection, SessionErrorCode.NOT_IN_ROOM, "Not in a room")
            return
        structlog.contextvars.bind_contextvars(room_code=code)
        async with self._lock_for(code):
            room = self._machine.registry.get(code)
            if room is None:
                raise RoomNotFoundError(code)
            previous_phase = room.phase
            room = mutate(code)
            await self._send_result(connection, action, request_id, room_code=room.code)
            await self._broadcast_room(room, previous_phase)

    async def update_settings(self, connection: ConnectionProtocol, category: str, request_id: str | None = None) -> None:
        await self._room_action(
            connection,
            GameAction.UPDATE_SETTINGS,
            request_id,
            lambda code: self._machine.update_settings(code, connection.connection_id, category),
        )

    async def start_game(self, connection: ConnectionProtocol, request_id: str | None = None) -> None:
        await self._room_action(
            connection,
            GameAction.START_GAME,
            request_id,
            lambda code: self._machine.start_game(code, connection.connection_id),
        )

    async def submit_self_positioning(
        self,
        connection: ConnectionProtocol,
        positions: Mapping[str, int],
        request_id: str | None = None,
    ) -> None:
        await self._room_action(
            connection,
            GameAction.SUBMIT_SELF_POSITIONING,
            request_id,
            lambda code: self._machine.submit_self_positioning(code, connection.connection_id, positions),
        )

    async def submit_sabotage(
        self,
        connection: ConnectionProtocol,
        deltas: Mapping[str, int],
        request_id: str | None = None,
    ) -> None:
        await self._room_action(
            connection,
            GameAction.SUBMIT_SABOTAGE,
            request_id,
            lambda code: self._machine.submit_sabotage(code, connection.connection_id, deltas),
        )

    async def finish_pitch(
        self,
        connection: ConnectionProtocol,
        expected_index: int | None = None,
        request_id: str | None = None,
    ) -> None:
        await self._room_action(
            connection,
            GameAction.FINISH_PITCH,
            request_id,
            lambda code: self._machine.finish_pitch(code, connection.connection_id, expected_index),
        )

    async def submit_vote(self, connection: ConnectionProtocol, candidate_name: str, request_id: str | None = None) -> None:
        await self._room_action(
            connection,
            GameAction.SUBMIT_VOTE,
            request_id,
            lambda code: self._machine.submit_vote(code, connection.connection_id, candidate_name),
        )

    async def handle_ping(self, connection: ConnectionProtocol) -> None:
        await self._send(connection, PongMessage().model_dump(mode="json"))

    def shutdown(self) -> None:
        self._cleanup.cancel_all()
