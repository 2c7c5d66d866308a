"""Builders that seat mock connections in rooms through the session manager."""

from __future__ import annotations

from typing import TYPE_CHECKING

from circle.tests.helpers.rooms import DEFAULT_CANDIDATES, conn_id
from circle.tests.mocks import MockConnection

if TYPE_CHECKING:
    from collections.abc import Sequence

    from circle.logic.state import Room
    from circle.session.manager import SessionManager


def open_connection(manager: SessionManager, name: str) -> MockConnection:
    connection = MockConnection(connection_id=conn_id(name))
    manager.register_connection(connection)
    return connection


async def seat_lobby(
    manager: SessionManager,
    judge: str = "Judge1",
    candidates: Sequence[str] = DEFAULT_CANDIDATES,
    category: str = "dating",
) -> tuple[Room, dict[str, MockConnection]]:
    """Create a room through the manager and join every candidate. Outboxes are cleared."""
    connections = {name: open_connection(manager, name) for name in (judge, *candidates)}
    await manager.create_room(connections[judge], judge, category)
    code = manager.room_code_for(connections[judge].connection_id)
    for name in candidates:
        await manager.join_room(connections[name], code, name)
    for connection in connections.values():
        connection.clear()
    return manager._machine.registry.get(code), connections
