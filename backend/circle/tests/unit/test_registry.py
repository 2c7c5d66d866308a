from circle.logic.registry import RoomRegistry
from circle.logic.state import Player, Room


def _room(code: str, conn: str = "c1") -> Room:
    room = Room(code=code, host_connection_id=conn, category="dating")
    room.players.append(Player(name="Judge", connection_id=conn, is_judge=True))
    return room


class TestRoomRegistry:
    def test_set_get_delete(self):
        registry = RoomRegistry()
        room = _room("ABCD")
        registry.set(room)
        assert registry.get("ABCD") is room
        assert "ABCD" in registry
        assert len(registry) == 1
        assert registry.delete("ABCD") is room
        assert registry.get("ABCD") is None
        assert registry.delete("ABCD") is None

    def test_codes_are_case_insensitive(self):
        registry = RoomRegistry()
        room = _room("WXYZ")
        registry.set(room)
        assert registry.get(" wxyz ") is room
        assert "wXyZ" in registry

    def test_independent_registries(self):
        first = RoomRegistry()
        second = RoomRegistry()
        first.set(_room("ABCD"))
        assert second.get("ABCD") is None

    def test_find_by_connection(self):
        registry = RoomRegistry()
        room = _room("ABCD", conn="judge-conn")
        registry.set(room)
        assert registry.find_by_connection("judge-conn") is room
        assert registry.find_by_connection("nobody") is None

    def test_iteration_is_a_snapshot(self):
        registry = RoomRegistry()
        registry.set(_room("ABCD"))
        registry.set(_room("EFGH"))
        for room in registry:
            registry.delete(room.code)
        assert len(registry) == 0

    def test_contains_rejects_non_strings(self):
        assert 5 not in RoomRegistry()
