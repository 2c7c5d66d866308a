from circle.logic.cards import CardSource
from circle.logic.types import CardDescriptor, CategoryInfo

TEST_CATEGORIES = (
    CategoryInfo(id="startup", name="Startup Team", loser_message="Pivoted without you"),
    CategoryInfo(id="dating", name="Dating Profile", loser_message="Left on read"),
)


class FixedCardSource(CardSource):
    """Deals the same predictable hand every time: `<category>-0` .. `<category>-{n-1}`."""

    def __init__(self) -> None:
        self.deal_count = 0

    def categories(self) -> list[CategoryInfo]:
        return list(TEST_CATEGORIES)

    def deal_hand(self, category: str, hand_size: int) -> list[CardDescriptor]:
        self.deal_count += 1
        return [CardDescriptor(card_id=f"{category}-{i}", label=f"Left {i} ↔ Right {i}") for i in range(hand_size)]
