"""In-memory store of live rooms, keyed by normalized room code."""

from __future__ import annotations

from typing import TYPE_CHECKING

from circle.logic.state import normalize_room_code

if TYPE_CHECKING:
    from collections.abc import Iterator

    from circle.logic.state import Room


class RoomRegistry:
    """Map room codes to rooms.

    Injected into the state machine and the membership service instead of
    living at module level, so tests can run several independent registries
    in one process.
    """

    def __init__(self) -> None:
        self._rooms: dict[str, Room] = {}

    def get(self, code: str) -> Room | None:
        return self._rooms.get(normalize_room_code(code))

    def set(self, room: Room) -> None:
        self._rooms[normalize_room_code(room.code)] = room

    def delete(self, code: str) -> Room | None:
        """Remove a room and return it, or None if it was already gone."""
        return self._rooms.pop(normalize_room_code(code), None)

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and normalize_room_code(code) in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    def __iter__(self) -> Iterator[Room]:
        return iter(list(self._rooms.values()))

    def find_by_connection(self, connection_id: str) -> Room | None:
        """Return the room in which some player currently holds this connection id."""
        for room in self._rooms.values():
            if room.player_by_connection(connection_id) is not None:
                return room
        return None
