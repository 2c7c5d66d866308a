"""
Pydantic models for data that crosses component boundaries.

Contains the category catalogue, the post-game sabotage reveal, and the
per-viewer room projection sent to clients.
"""

from pydantic import BaseModel, ConfigDict

from circle.logic.enums import GamePhase


class CardDescriptor(BaseModel):
    """A dial card as dealt by a card source, before any position is set."""

    model_config = ConfigDict(frozen=True)

    card_id: str
    label: str


class CategoryInfo(BaseModel):
    """Display strings for a card category. Opaque to the state machine."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    loser_message: str


class RevealCard(BaseModel):
    model_config = ConfigDict(frozen=True)

    card_id: str
    label: str
    self_position: int
    final_position: int
    sabotage_applied: int


class SabotageRevealEntry(BaseModel):
    """One candidate's hand as revealed at game end, with whoever sabotaged it."""

    model_config = ConfigDict(frozen=True)

    target: str
    saboteur: str | None
    cards: tuple[RevealCard, ...]


class CardView(BaseModel):
    """A dial card as one viewer may see it. Hidden fields are None."""

    card_id: str
    label: str
    self_position: int | None = None
    final_position: int | None = None
    sabotage_applied: int | None = None


class PlayerView(BaseModel):
    """Public roster entry. hand is None unless the viewer may see it."""

    name: str
    is_judge: bool
    is_candidate: bool
    is_connected: bool
    is_winner: bool
    self_positioning_submitted: bool
    sabotage_submitted: bool
    pitch_done: bool
    hand: list[CardView] | None = None


class RoomView(BaseModel):
    """Redacted snapshot of a room for a single viewer."""

    room_code: str
    phase: GamePhase
    category: CategoryInfo
    sabotage_budget: int
    my_name: str
    is_judge: bool
    players: list[PlayerView]
    sabotage_target: str | None = None  # viewer's own target, SABOTAGE phase only
    pitch_order: list[str] | None = None
    current_pitcher_index: int | None = None
    current_pitcher: str | None = None
    judge_vote: str | None = None
    sabotage_map: list[SabotageRevealEntry] | None = None
