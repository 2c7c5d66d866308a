"""Transport-neutral connection interface used by the session layer."""

from abc import ABC, abstractmethod
from typing import Any

from circle.messaging.encoder import decode, encode


class ConnectionProtocol(ABC):
    """
    One client connection.

    The session manager and router only talk to this interface, so they run
    unchanged against a real WebSocket or an in-memory mock.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Volatile identity of this socket. A reconnecting client gets a new one."""
        ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None: ...

    @abstractmethod
    async def receive_bytes(self) -> bytes: ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    async def send_message(self, data: dict[str, Any]) -> None:
        await self.send_bytes(encode(data))

    async def receive_message(self) -> dict[str, Any]:
        """Receive and decode one frame. Raises DecodeError on a malformed frame."""
        raw = await self.receive_bytes()
        return decode(raw)
