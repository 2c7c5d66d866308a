import pytest

from circle.session.manager import SessionManager


@pytest.fixture
async def manager(session_manager):
    yield session_manager
    session_manager.shutdown()


@pytest.fixture
async def eager_manager(machine, membership):
    """A manager whose idle cleanup fires on the next loop iteration."""
    manager = SessionManager(machine, membership, idle_cleanup_seconds=0, max_rooms=5)
    yield manager
    manager.shutdown()
