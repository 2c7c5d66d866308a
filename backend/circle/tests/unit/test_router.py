import asyncio

import pytest

from circle.messaging.types import SessionErrorCode
from circle.tests.mocks import MockConnection


class TestMessageRouter:
    @pytest.fixture
    async def connection(self, message_router):
        connection = MockConnection(connection_id="conn-judge1")
        await message_router.handle_connect(connection)
        return connection

    async def test_invalid_message_reports_error(self, message_router, connection):
        await message_router.handle_message(connection, {"type": "teleport"})

        assert len(connection.sent_messages) == 1
        response = connection.sent_messages[0]
        assert response["type"] == "session_error"
        assert response["code"] == SessionErrorCode.INVALID_MESSAGE

    async def test_ping(self, message_router, connection):
        await message_router.handle_message(connection, {"type": "ping"})
        assert connection.sent_messages == [{"type": "pong"}]

    async def test_server_messages_serialize_enums_as_plain_strings(self, message_router, connection, monkeypatch):
        payloads = []
        send = connection.send_message

        async def record(data):
            payloads.append(data)
            await send(data)

        monkeypatch.setattr(connection, "send_message", record)
        await message_router.handle_message(connection, {"type": "teleport"})
        await message_router.handle_message(connection, {"type": "ping"})
        await message_router.handle_message(connection, {"type": "leave_room"})

        assert [p["type"] for p in payloads] == ["session_error", "pong", "session_error"]
        for payload in payloads:
            assert type(payload["type"]) is str
        assert type(payloads[0]["code"]) is str
        assert payloads[2]["code"] == "not_in_room"
        assert type(payloads[2]["code"]) is str

    async def test_create_room_echoes_request_id(self, message_router, connection, session_manager):
        await message_router.handle_message(
            connection,
            {"type": "create_room", "name": "Judge1", "category": "dating", "request_id": "r-1"},
        )

        result = connection.last_of_type("action_result")
        assert result["success"] is True
        assert result["action"] == "create_room"
        assert result["request_id"] == "r-1"
        assert result["room_code"] == session_manager.room_code_for("conn-judge1")
        assert [c["id"] for c in result["categories"]] == ["startup", "dating"]
        assert connection.last_of_type("room_state")["view"]["my_name"] == "Judge1"

    async def test_rule_violation_becomes_failed_result(self, message_router, connection):
        await message_router.handle_message(connection, {"type": "create_room", "name": "Judge1"})
        connection.clear()

        await message_router.handle_message(connection, {"type": "start_game", "request_id": "r-2"})

        assert len(connection.sent_messages) == 1
        result = connection.sent_messages[0]
        assert result["type"] == "action_result"
        assert result["success"] is False
        assert result["action"] == "start_game"
        assert result["code"] == "not_enough_players"
        assert result["request_id"] == "r-2"

    async def test_unknown_room(self, message_router, connection):
        await message_router.handle_message(connection, {"type": "join_room", "room_code": "zzzz", "name": "Cand1"})

        result = connection.last_of_type("action_result")
        assert result["success"] is False
        assert result["code"] == "room_not_found"

    async def test_unbound_action_reports_not_in_room(self, message_router, connection):
        await message_router.handle_message(connection, {"type": "start_game"})

        error = connection.last_of_type("session_error")
        assert error["code"] == SessionErrorCode.NOT_IN_ROOM

    async def test_unexpected_error_reported_as_action_failed(self, message_router, connection, session_manager, monkeypatch):
        async def boom(*_args, **_kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(session_manager, "start_game", boom)
        await message_router.handle_message(connection, {"type": "start_game"})

        result = connection.last_of_type("action_result")
        assert result["success"] is False
        assert result["code"] == SessionErrorCode.ACTION_FAILED
        assert result["message"] == "Internal error"

    async def test_disconnect_unregisters(self, message_router, connection, session_manager):
        await message_router.handle_message(connection, {"type": "create_room", "name": "Judge1"})
        code = session_manager.room_code_for("conn-judge1")

        await message_router.handle_disconnect(connection)

        assert session_manager.room_code_for("conn-judge1") is None
        assert code in session_manager.cleanup.pending
        session_manager.shutdown()
        await asyncio.sleep(0)
