"""
Card sources: where dial-card hands and category copy come from.

The state machine only depends on the CardSource interface. DeckCardSource
is the built-in catalogue; tests substitute a deterministic source.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from circle.logic.types import CardDescriptor, CategoryInfo

if TYPE_CHECKING:
    import random


class CardSource(ABC):
    """
    Abstract interface for dial-card content.

    deal_hand must return `hand_size` descriptors with distinct card ids.
    Cards may repeat across hands.
    """

    @abstractmethod
    def categories(self) -> list[CategoryInfo]:
        """All categories a room may select."""
        ...

    @abstractmethod
    def deal_hand(self, category: str, hand_size: int) -> list[CardDescriptor]:
        """Sample a fresh hand for one candidate."""
        ...

    def has_category(self, category: str) -> bool:
        return any(c.id == category for c in self.categories())

    def get_category(self, category: str) -> CategoryInfo:
        """Return display strings for a category. Raise KeyError if unknown."""
        for info in self.categories():
            if info.id == category:
                return info
        raise KeyError(category)


_CATEGORIES: tuple[CategoryInfo, ...] = (
    CategoryInfo(id="startup", name="Startup Team", loser_message="The startup pivoted without you"),
    CategoryInfo(id="rap-group", name="Rap Group", loser_message="They left you on read"),
    CategoryInfo(id="dating", name="Dating Profile", loser_message="It's not you, it's your dials"),
)

_DIALS: dict[str, tuple[tuple[str, str], ...]] = {
    "startup": (
        ("Move fast", "Measure twice"),
        ("Visionary", "Operator"),
        ("Remote forever", "Office every day"),
        ("Bootstrapped", "Venture-backed"),
        ("Ships on Friday", "Never ships"),
        ("Meetings", "Async docs"),
        ("Generalist", "Specialist"),
        ("Risk taker", "Risk manager"),
    ),
    "rap-group": (
        ("Lyricist", "Hype man"),
        ("Underground", "Mainstream"),
        ("Freestyle", "Written"),
        ("Studio rat", "Stage animal"),
        ("Beef starter", "Peacekeeper"),
        ("Old school", "New wave"),
        ("Solo career", "Ride or die"),
    ),
    "dating": (
        ("Night owl", "Early bird"),
        ("Homebody", "Globetrotter"),
        ("Texts back instantly", "Texts back never"),
        ("Planner", "Spontaneous"),
        ("Cat person", "Dog person"),
        ("Brutally honest", "Diplomatic"),
        ("Big spender", "Coupon clipper"),
        ("Gym daily", "Couch daily"),
    ),
}


class DeckCardSource(CardSource):
    """
    Built-in catalogue of dial cards.

    Each category has a fixed pool of two-anchor spectra. A hand is a
    sample without replacement, so card ids never repeat within a hand.
    """

    def __init__(self, rng: random.Random) -> None:
        self._rng = rng

    def categories(self) -> list[CategoryInfo]:
        return list(_CATEGORIES)

    def deal_hand(self, category: str, hand_size: int) -> list[CardDescriptor]:
        dials = _DIALS[category]
        if hand_size > len(dials):
            raise ValueError(f"category {category!r} has {len(dials)} dials, cannot deal {hand_size}")
        indices = self._rng.sample(range(len(dials)), hand_size)
        return [
            CardDescriptor(card_id=f"{category}-{index}", label=f"{dials[index][0]} ↔ {dials[index][1]}")
            for index in indices
        ]
