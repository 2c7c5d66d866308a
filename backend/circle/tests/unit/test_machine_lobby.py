import pytest

from circle.logic.enums import GamePhase
from circle.logic.exceptions import (
    GameRuleError,
    InvalidPayloadError,
    PreconditionError,
    RejectionCode,
    RoomNotFoundError,
)
from circle.logic.rng import ROOM_CODE_ALPHABET, ROOM_CODE_LENGTH
from circle.tests.helpers.rooms import conn_id, create_lobby


class TestCreateRoom:
    def test_creator_is_sole_judge(self, machine, registry):
        room = machine.create_room("c-judge", "Judge1", "dating")
        assert room.phase == GamePhase.LOBBY
        assert room.host_connection_id == "c-judge"
        assert [(p.name, p.is_judge) for p in room.players] == [("Judge1", True)]
        assert registry.get(room.code) is room
        assert len(room.code) == ROOM_CODE_LENGTH
        assert set(room.code) <= set(ROOM_CODE_ALPHABET)

    def test_default_category(self, machine, game_settings):
        room = machine.create_room("c1", "Judge1")
        assert room.category == game_settings.default_category

    def test_unknown_category(self, machine, registry):
        with pytest.raises(InvalidPayloadError) as exc_info:
            machine.create_room("c1", "Judge1", "karaoke")
        assert exc_info.value.code == RejectionCode.UNKNOWN_CATEGORY
        assert len(registry) == 0

    @pytest.mark.parametrize("name", ["", "   ", "x" * 21])
    def test_invalid_name(self, machine, name):
        with pytest.raises(InvalidPayloadError) as exc_info:
            machine.create_room("c1", name)
        assert exc_info.value.code == RejectionCode.INVALID_NAME

    def test_name_is_trimmed(self, machine):
        room = machine.create_room("c1", "  Judge1  ")
        assert room.judge.name == "Judge1"

    def test_codes_never_collide(self, machine, registry):
        codes = {machine.create_room(f"c{i}", f"Judge{i}").code for i in range(300)}
        assert len(codes) == 300
        assert len(registry) == 300


class TestJoinRoom:
    def test_join_appends_candidate(self, machine):
        room = create_lobby(machine, candidates=["Cand1"])
        machine.join_room(room.code, "c-new", "Cand2")
        assert [p.name for p in room.players] == ["Judge1", "Cand1", "Cand2"]
        assert not room.players[-1].is_judge
        assert room.players[-1].connection_id == "c-new"

    def test_join_is_case_insensitive_on_code(self, machine):
        room = create_lobby(machine, candidates=[])
        joined = machine.join_room(f" {room.code.lower()} ", "c2", "Cand1")
        assert joined is room

    def test_unknown_room(self, machine):
        with pytest.raises(RoomNotFoundError) as exc_info:
            machine.join_room("ZZZZ", "c2", "Cand1")
        assert exc_info.value.code == RejectionCode.ROOM_NOT_FOUND

    def test_name_taken_case_insensitive(self, machine):
        room = create_lobby(machine, candidates=["Alice"])
        with pytest.raises(PreconditionError) as exc_info:
            machine.join_room(room.code, "c9", "aLiCe")
        assert exc_info.value.code == RejectionCode.NAME_TAKEN
        assert len(room.players) == 2

    def test_join_after_start_rejected(self, machine):
        room = create_lobby(machine)
        machine.start_game(room.code, conn_id("Judge1"))
        with pytest.raises(PreconditionError) as exc_info:
            machine.join_room(room.code, "c-late", "Late")
        assert exc_info.value.code == RejectionCode.GAME_IN_PROGRESS
        assert room.find_player("Late") is None


class TestUpdateSettings:
    def test_judge_changes_category(self, machine):
        room = create_lobby(machine)
        machine.update_settings(room.code, conn_id("Judge1"), "startup")
        assert room.category == "startup"

    def test_candidate_cannot_change_category(self, machine):
        room = create_lobby(machine)
        with pytest.raises(PreconditionError) as exc_info:
            machine.update_settings(room.code, conn_id("Cand1"), "startup")
        assert exc_info.value.code == RejectionCode.NOT_JUDGE
        assert room.category == "dating"

    def test_unknown_category(self, machine):
        room = create_lobby(machine)
        with pytest.raises(InvalidPayloadError) as exc_info:
            machine.update_settings(room.code, conn_id("Judge1"), "karaoke")
        assert exc_info.value.code == RejectionCode.UNKNOWN_CATEGORY

    def test_only_in_lobby(self, machine):
        room = create_lobby(machine)
        machine.start_game(room.code, conn_id("Judge1"))
        with pytest.raises(PreconditionError) as exc_info:
            machine.update_settings(room.code, conn_id("Judge1"), "startup")
        assert exc_info.value.code == RejectionCode.WRONG_PHASE


class TestStartGame:
    def test_deals_hands_and_enters_self_positioning(self, machine, game_settings):
        room = create_lobby(machine)
        machine.start_game(room.code, conn_id("Judge1"))
        assert room.phase == GamePhase.SELF_POSITIONING
        assert room.candidate_names == ["Cand1", "Cand2"]
        assert room.judge.hand is None
        for candidate in room.candidates:
            assert candidate.hand is not None
            assert len(candidate.hand) == game_settings.hand_size
            assert len({card.card_id for card in candidate.hand}) == game_settings.hand_size
            assert all(card.self_position == 5 for card in candidate.hand)
            assert all(card.final_position is None for card in candidate.hand)

    def test_requires_judge(self, machine):
        room = create_lobby(machine)
        with pytest.raises(PreconditionError) as exc_info:
            machine.start_game(room.code, conn_id("Cand1"))
        assert exc_info.value.code == RejectionCode.NOT_JUDGE
        assert room.phase == GamePhase.LOBBY

    def test_unknown_connection(self, machine):
        room = create_lobby(machine)
        with pytest.raises(PreconditionError) as exc_info:
            machine.start_game(room.code, "stranger")
        assert exc_info.value.code == RejectionCode.PLAYER_NOT_FOUND

    @pytest.mark.parametrize("candidates", [[], ["Cand1"]])
    def test_requires_two_candidates(self, machine, card_source, candidates):
        room = create_lobby(machine, candidates=candidates)
        with pytest.raises(PreconditionError) as exc_info:
            machine.start_game(room.code, conn_id("Judge1"))
        assert exc_info.value.code == RejectionCode.NOT_ENOUGH_PLAYERS
        assert room.phase == GamePhase.LOBBY
        assert card_source.deal_count == 0

    def test_cannot_start_twice(self, machine):
        room = create_lobby(machine)
        machine.start_game(room.code, conn_id("Judge1"))
        with pytest.raises(PreconditionError) as exc_info:
            machine.start_game(room.code, conn_id("Judge1"))
        assert exc_info.value.code == RejectionCode.WRONG_PHASE

    def test_rejection_is_logged(self, machine, caplog):
        room = create_lobby(machine, candidates=[])
        with caplog.at_level("INFO"), pytest.raises(GameRuleError):
            machine.start_game(room.code, conn_id("Judge1"))
        assert "action rejected" in caplog.text
        assert "not_enough_players" in caplog.text
