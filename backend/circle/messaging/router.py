from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from circle.logic.enums import GameAction
from circle.logic.exceptions import GameRuleError
from circle.messaging.types import (
    ActionResultMessage,
    CreateRoomMessage,
    ErrorMessage,
    FinishPitchMessage,
    JoinRoomMessage,
    LeaveRoomMessage,
    PingMessage,
    RejoinRoomMessage,
    SessionErrorCode,
    StartGameMessage,
    SubmitSabotageMessage,
    SubmitSelfPositioningMessage,
    SubmitVoteMessage,
    UpdateSettingsMessage,
    parse_client_message,
)

if TYPE_CHECKING:
    from circle.messaging.protocol import ConnectionProtocol
    from circle.messaging.types import ClientMessage
    from circle.session.manager import SessionManager

logger = logging.getLogger(__name__)


class MessageRouter:
    """
    Routes incoming messages to the session manager.

    Converts rule violations into failed action results and malformed input
    into invalid_message errors, so a bad message never ends the connection.
    """

    def __init__(self, session_manager: SessionManager) -> None:
        self._session_manager = session_manager

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        try:
            message = parse_client_message(raw_message)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            logger.warning("invalid message from %s: %s", connection.connection_id, e)
            await connection.send_message(
                ErrorMessage(code=SessionErrorCode.INVALID_MESSAGE, message=str(e)).model_dump(mode="json"),
            )
            return

        if isinstance(message, PingMessage):
            await self._session_manager.handle_ping(connection)
            return

        action = GameAction(message.type.value)
        try:
            await self._dispatch(connection, message)
        except GameRuleError as e:
            await connection.send_message(
                ActionResultMessage(
                    action=action,
                    success=False,
                    request_id=message.request_id,
                    code=e.code.value,
                    message=e.reason,
                ).model_dump(mode="json"),
            )
        except Exception:
            logger.exception("unexpected error handling %s for %s", action.value, connection.connection_id)
            await connection.send_message(
                ActionResultMessage(
                    action=action,
                    success=False,
                    request_id=message.request_id,
                    code=SessionErrorCode.ACTION_FAILED.value,
                    message="Internal error",
                ).model_dump(mode="json"),
            )

    async def _dispatch(self, connection: ConnectionProtocol, message: ClientMessage) -> None:
        sm = self._session_manager
        request_id = message.request_id
        if isinstance(message, CreateRoomMessage):
            await sm.create_room(connection, message.name, message.category, request_id)
        elif isinstance(message, JoinRoomMessage):
            await sm.join_room(connection, message.room_code, message.name, request_id)
        elif isinstance(message, RejoinRoomMessage):
            await sm.rejoin_room(connection, message.room_code, message.name, request_id)
        elif isinstance(message, LeaveRoomMessage):
            await sm.leave_room(connection, request_id)
        elif isinstance(message, UpdateSettingsMessage):
            await sm.update_settings(connection, message.category, request_id)
        elif isinstance(message, StartGameMessage):
            await sm.start_game(connection, request_id)
        elif isinstance(message, SubmitSelfPositioningMessage):
            await sm.submit_self_positioning(connection, message.positions, request_id)
        elif isinstance(message, SubmitSabotageMessage):
            await sm.submit_sabotage(connection, message.deltas, request_id)
        elif isinstance(message, FinishPitchMessage):
            await sm.finish_pitch(connection, message.expected_index, request_id)
        elif isinstance(message, SubmitVoteMessage):
            await sm.submit_vote(connection, message.candidate_name, request_id)

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        self._session_manager.register_connection(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self._session_manager.handle_disconnect(connection)
