"""Delayed idle-room cleanup, one pending timer per room."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

# Callback type: (room_code) -> Awaitable[None]
CleanupCallback = Callable[[str], Awaitable[None]]


class CleanupScheduler:
    """Run a callback for a room after a grace period.

    Scheduling a room that already has a pending timer restarts the grace
    period. The callback decides whether the room is actually idle.
    """

    def __init__(self, delay_seconds: float, on_expire: CleanupCallback) -> None:
        self._delay_seconds = delay_seconds
        self._on_expire = on_expire
        self._tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def pending(self) -> frozenset[str]:
        return frozenset(self._tasks)

    def schedule(self, room_code: str) -> None:
        self.cancel(room_code)
        self._tasks[room_code] = asyncio.create_task(self._run(room_code))

    def cancel(self, room_code: str) -> None:
        task = self._tasks.pop(room_code, None)
        if task is not None and not task.done():
            task.cancel()

    def cancel_all(self) -> None:
        for room_code in list(self._tasks):
            self.cancel(room_code)

    async def _run(self, room_code: str) -> None:
        try:
            await asyncio.sleep(self._delay_seconds)
            # drop the entry first so the callback may reschedule the room
            if self._tasks.get(room_code) is asyncio.current_task():
                del self._tasks[room_code]
            await self._on_expire(room_code)
        except asyncio.CancelledError:
            pass
        except (RuntimeError, OSError, ConnectionError, ValueError):
            logger.exception("cleanup callback failed for room %s", room_code)
