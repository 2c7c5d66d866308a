import asyncio

import structlog

from circle.logic.enums import GamePhase
from circle.messaging.types import SessionErrorCode
from circle.tests.helpers.rooms import advance_to
from circle.tests.helpers.sessions import open_connection, seat_lobby


class TestSessionManagerLeave:
    async def test_candidate_leaves(self, manager):
        room, connections = await seat_lobby(manager)
        await manager.leave_room(connections["Cand1"], "r-bye")

        result = connections["Cand1"].last_of_type("action_result")
        assert (result["action"], result["success"], result["request_id"]) == ("leave_room", True, "r-bye")
        assert manager.room_code_for(connections["Cand1"].connection_id) is None
        roster = connections["Judge1"].last_of_type("room_state")["view"]["players"]
        assert [p["name"] for p in roster] == ["Judge1", "Cand2"]
        assert connections["Cand1"].messages_of_type("room_state") == []

    async def test_judge_leaving_dissolves_room(self, manager):
        room, connections = await seat_lobby(manager)
        await manager.leave_room(connections["Judge1"])

        assert manager.room_count == 0
        for name in ("Cand1", "Cand2"):
            assert connections[name].sent_messages == [{"type": "room_dissolved", "room_code": room.code}]
            assert manager.room_code_for(connections[name].connection_id) is None
        assert connections["Judge1"].messages_of_type("room_dissolved") == []

    async def test_leave_mid_game_advances_phase(self, manager, machine):
        room, connections = await seat_lobby(manager, candidates=["Cand1", "Cand2", "Cand3"])
        advance_to(machine, room, GamePhase.SELF_POSITIONING)
        for name in ("Cand1", "Cand2"):
            player = room.find_player(name)
            machine.submit_self_positioning(room.code, player.connection_id, {c.card_id: 5 for c in player.hand})

        await manager.leave_room(connections["Cand3"])

        assert room.phase == GamePhase.SABOTAGE
        assert connections["Cand1"].last_of_type("phase_changed")["phase"] == "SABOTAGE"
        assert connections["Cand1"].last_of_type("room_state")["view"]["sabotage_target"] == "Cand2"

    async def test_last_candidate_leaving_dissolves(self, manager, machine):
        room, connections = await seat_lobby(manager)
        advance_to(machine, room, GamePhase.PITCHING)
        await manager.leave_room(connections["Cand1"])
        await manager.leave_room(connections["Cand2"])

        assert manager.room_count == 0
        assert connections["Judge1"].last_of_type("room_dissolved")["room_code"] == room.code

    async def test_candidates_leaving_after_game_over_keep_judge_results(self, manager, machine):
        room, connections = await seat_lobby(manager)
        advance_to(machine, room, GamePhase.VOTING)
        await manager.submit_vote(connections["Judge1"], "Cand1")
        order = list(room.pitch_order)
        connections["Judge1"].clear()

        await manager.leave_room(connections["Cand1"])
        await manager.leave_room(connections["Cand2"])

        judge = connections["Judge1"]
        assert manager.room_count == 1
        assert manager.room_code_for(judge.connection_id) == room.code
        assert judge.messages_of_type("room_dissolved") == []
        view = judge.last_of_type("room_state")["view"]
        assert view["phase"] == "GAME_OVER"
        assert view["pitch_order"] == order
        assert view["judge_vote"] == "Cand1"
        assert len(view["sabotage_map"]) == 2
        assert [p["name"] for p in view["players"]] == ["Judge1"]

    async def test_leave_clears_room_from_log_context(self, manager):
        room, connections = await seat_lobby(manager)
        await manager.leave_room(connections["Cand1"])
        assert "room_code" not in structlog.contextvars.get_contextvars()

    async def test_leave_without_room(self, manager):
        stray = open_connection(manager, "Stray")
        await manager.leave_room(stray)
        assert stray.last_of_type("session_error")["code"] == SessionErrorCode.NOT_IN_ROOM


class TestSessionManagerDisconnect:
    async def test_disconnect_marks_offline_and_schedules_cleanup(self, manager):
        room, connections = await seat_lobby(manager)
        await manager.handle_disconnect(connections["Cand1"])

        assert not room.find_player("Cand1").is_connected
        assert room.code in manager.cleanup.pending
        roster = connections["Judge1"].last_of_type("room_state")["view"]["players"]
        assert {p["name"]: p["is_connected"] for p in roster}["Cand1"] is False
        assert connections["Cand1"].sent_messages == []

    async def test_disconnect_unbound_connection(self, manager):
        stray = open_connection(manager, "Stray")
        await manager.handle_disconnect(stray)
        assert manager.cleanup.pending == frozenset()

    async def test_idle_room_cleaned_up(self, eager_manager):
        room, connections = await seat_lobby(eager_manager)
        for connection in connections.values():
            await eager_manager.handle_disconnect(connection)

        await asyncio.sleep(0.05)

        assert eager_manager.room_count == 0
        assert room.code not in eager_manager.cleanup.pending

    async def test_room_with_returning_player_survives_cleanup(self, eager_manager):
        room, connections = await seat_lobby(eager_manager)
        await eager_manager.handle_disconnect(connections["Cand1"])

        await asyncio.sleep(0.05)

        assert eager_manager.room_count == 1
        assert room.code not in eager_manager.cleanup.pending

    async def test_shutdown_cancels_pending_cleanup(self, manager):
        room, connections = await seat_lobby(manager)
        await manager.handle_disconnect(connections["Cand1"])
        manager.shutdown()
        await asyncio.sleep(0)
        assert manager.cleanup.pending == frozenset()
        assert manager.room_count == 1
