import random

import pytest

from circle.logic.machine import RoomStateMachine
from circle.logic.membership import RoomMembership
from circle.logic.registry import RoomRegistry
from circle.logic.settings import GameSettings
from circle.messaging.router import MessageRouter
from circle.server.app import create_app
from circle.server.settings import CircleServerSettings
from circle.session.manager import SessionManager
from circle.tests.mocks import FixedCardSource, MockConnection


@pytest.fixture
def rng():
    return random.Random(1234)  # noqa: S311


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def card_source():
    return FixedCardSource()


@pytest.fixture
def game_settings():
    return GameSettings()


@pytest.fixture
def machine(registry, card_source, game_settings, rng):
    return RoomStateMachine(registry, card_source, settings=game_settings, rng=rng)


@pytest.fixture
def membership(registry, rng):
    return RoomMembership(registry, rng)


@pytest.fixture
def session_manager(machine, membership):
    return SessionManager(machine, membership, idle_cleanup_seconds=60, max_rooms=5)


@pytest.fixture
def message_router(session_manager):
    return MessageRouter(session_manager)


@pytest.fixture
def mock_connection():
    return MockConnection()


@pytest.fixture
def server_settings():
    return CircleServerSettings(cors_origins=["http://localhost:5173"], max_rooms=5)


@pytest.fixture
def app(server_settings, session_manager, message_router):
    return create_app(
        settings=server_settings,
        session_manager=session_manager,
        message_router=message_router,
    )
