from circle.tests.mocks.cards import FixedCardSource
from circle.tests.mocks.connection import MockConnection

__all__ = ["FixedCardSource", "MockConnection"]
