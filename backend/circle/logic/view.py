"""
Per-viewer projection of a room.

Hand visibility is a pure lookup from (phase, viewer role, subject relation)
to a VisibilityTier. Anything not listed in the table is hidden. Views are
rebuilt from the room on every call and never cached.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from circle.logic.enums import GamePhase, SubjectRelation, ViewerRole, VisibilityTier
from circle.logic.state import normalize_name
from circle.logic.types import CardView, PlayerView, RoomView

if TYPE_CHECKING:
    from circle.logic.cards import CardSource
    from circle.logic.registry import RoomRegistry
    from circle.logic.settings import GameSettings
    from circle.logic.state import DialCard, Player, Room

_P = GamePhase
_J = ViewerRole.JUDGE
_C = ViewerRole.CANDIDATE

HAND_VISIBILITY: dict[tuple[GamePhase, ViewerRole, SubjectRelation], VisibilityTier] = {
    (_P.SELF_POSITIONING, _C, SubjectRelation.SELF): VisibilityTier.OWN_HAND,
    (_P.SABOTAGE, _C, SubjectRelation.TARGET): VisibilityTier.TARGET_HAND,
    (_P.PITCHING, _J, SubjectRelation.CURRENT_PITCHER): VisibilityTier.FULL_REVEAL,
    (_P.PITCHING, _C, SubjectRelation.CURRENT_PITCHER): VisibilityTier.FULL_REVEAL,
    (_P.PITCHING, _C, SubjectRelation.SELF): VisibilityTier.FULL_REVEAL,
    (_P.VOTING, _J, SubjectRelation.CANDIDATE): VisibilityTier.FULL_REVEAL,
    (_P.VOTING, _C, SubjectRelation.SELF): VisibilityTier.FULL_REVEAL,
}


def visibility_tier(phase: GamePhase, role: ViewerRole, relation: SubjectRelation) -> VisibilityTier:
    return HAND_VISIBILITY.get((phase, role, relation), VisibilityTier.NONE)


def subject_relation(room: Room, viewer: Player, subject: Player) -> SubjectRelation:
    """
    Classify how subject relates to viewer.

    When several relations hold the most specific wins: self, then current
    pitcher, then sabotage target.
    """
    if subject is viewer:
        return SubjectRelation.SELF
    pitcher = room.current_pitcher
    if pitcher is not None and normalize_name(pitcher) == normalize_name(subject.name):
        return SubjectRelation.CURRENT_PITCHER
    if viewer.sabotage_target is not None and normalize_name(viewer.sabotage_target) == normalize_name(subject.name):
        return SubjectRelation.TARGET
    return SubjectRelation.CANDIDATE


def project_card(card: DialCard, tier: VisibilityTier) -> CardView | None:
    if tier == VisibilityTier.NONE:
        return None
    if tier == VisibilityTier.FULL_REVEAL:
        return CardView(
            card_id=card.card_id,
            label=card.label,
            self_position=card.self_position,
            final_position=card.effective_final_position,
            sabotage_applied=card.sabotage_applied,
        )
    return CardView(card_id=card.card_id, label=card.label, self_position=card.self_position)


def _project_hand(room: Room, viewer: Player, subject: Player) -> list[CardView] | None:
    if subject.hand is None:
        return None
    role = ViewerRole.JUDGE if viewer.is_judge else ViewerRole.CANDIDATE
    tier = visibility_tier(room.phase, role, subject_relation(room, viewer, subject))
    if tier == VisibilityTier.NONE:
        return None
    return [view for card in subject.hand if (view := project_card(card, tier)) is not None]


def project_room(room: Room, viewer: Player, card_source: CardSource, settings: GameSettings) -> RoomView:
    """Build the redacted snapshot of room as viewer is allowed to see it."""
    players = [
        PlayerView(
            name=p.name,
            is_judge=p.is_judge,
            is_candidate=room.is_candidate(p),
            is_connected=p.is_connected,
            is_winner=p.is_winner,
            self_positioning_submitted=p.self_positioning_submitted,
            sabotage_submitted=p.sabotage_submitted,
            pitch_done=p.pitch_done,
            hand=_project_hand(room, viewer, p),
        )
        for p in room.players
    ]
    view = RoomView(
        room_code=room.code,
        phase=room.phase,
        category=card_source.get_category(room.category),
        sabotage_budget=settings.sabotage_budget,
        my_name=viewer.name,
        is_judge=viewer.is_judge,
        players=players,
    )
    if room.phase == GamePhase.SABOTAGE and not viewer.is_judge:
        view.sabotage_target = viewer.sabotage_target
    if room.phase in (GamePhase.PITCHING, GamePhase.VOTING, GamePhase.GAME_OVER):
        view.pitch_order = list(room.pitch_order)
    if room.phase == GamePhase.PITCHING:
        view.current_pitcher_index = room.current_pitcher_index
        view.current_pitcher = room.current_pitcher
    if room.phase == GamePhase.GAME_OVER:
        view.judge_vote = room.judge_vote
        view.sabotage_map = list(room.sabotage_map or ())
    return view


def get_player_view(
    registry: RoomRegistry,
    code: str,
    connection_id: str,
    card_source: CardSource,
    settings: GameSettings,
) -> RoomView | None:
    """Return the view of room `code` for the player on connection_id, or None if either is unknown."""
    room = registry.get(code)
    if room is None:
        return None
    viewer = room.player_by_connection(connection_id)
    if viewer is None:
        return None
    return project_room(room, viewer, card_source, settings)
