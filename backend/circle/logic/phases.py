"""
Phase transitions for a room.

Each enter_* helper performs one forward transition and the bookkeeping that
belongs to it. advance_if_complete re-evaluates the completion condition of
the current phase and chains transitions until the room reaches a phase that
is still waiting on someone. It is called after every successful submission
and after a candidate leaves mid-game.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from circle.logic.enums import GamePhase
from circle.logic.rng import assign_sabotage_targets, shuffled
from circle.logic.state import DialCard
from circle.logic.types import RevealCard, SabotageRevealEntry

if TYPE_CHECKING:
    import random

    from circle.logic.cards import CardSource
    from circle.logic.settings import GameSettings
    from circle.logic.state import Player, Room

logger = structlog.get_logger()


def _set_phase(room: Room, phase: GamePhase) -> None:
    logger.info("phase transition", room_code=room.code, from_phase=room.phase.value, to_phase=phase.value)
    room.phase = phase


def enter_self_positioning(room: Room, card_source: CardSource, settings: GameSettings) -> None:
    """Freeze the candidate set and deal every candidate a fresh hand at the start position."""
    candidates = room.candidates
    room.candidate_names = [p.name for p in candidates]
    for player in candidates:
        player.hand = [
            DialCard(card_id=card.card_id, label=card.label, self_position=settings.dial_start)
            for card in card_source.deal_hand(room.category, settings.hand_size)
        ]
        player.sabotage_target = None
        player.self_positioning_submitted = False
        player.sabotage_submitted = False
        player.pitch_done = False
        player.is_winner = False
    _set_phase(room, GamePhase.SELF_POSITIONING)


def enter_sabotage(room: Room, rng: random.Random) -> None:
    targets = assign_sabotage_targets([p.name for p in room.candidates], rng)
    for player in room.candidates:
        player.sabotage_target = targets.get(player.name)
        player.sabotage_submitted = False
    _set_phase(room, GamePhase.SABOTAGE)


def enter_pitching(room: Room, rng: random.Random) -> None:
    room.pitch_order = shuffled([p.name for p in room.candidates], rng)
    room.current_pitcher_index = 0
    for player in room.candidates:
        player.pitch_done = False
    _set_phase(room, GamePhase.PITCHING)


def enter_voting(room: Room) -> None:
    _set_phase(room, GamePhase.VOTING)


def enter_game_over(room: Room, winner: Player) -> None:
    """Record the Judge's vote, crown the winner and freeze the sabotage reveal."""
    room.judge_vote = winner.name
    winner.is_winner = True
    room.sabotage_map = build_sabotage_map(room)
    _set_phase(room, GamePhase.GAME_OVER)


def build_sabotage_map(room: Room) -> tuple[SabotageRevealEntry, ...]:
    """
    Build the post-game reveal: every candidate's hand with who sabotaged it.

    Cards the saboteur never touched report their self position as final
    position and a zero delta.
    """
    entries = []
    for candidate in room.candidates:
        saboteur = room.saboteur_of(candidate.name)
        cards = tuple(
            RevealCard(
                card_id=card.card_id,
                label=card.label,
                self_position=card.self_position,
                final_position=card.effective_final_position,
                sabotage_applied=card.sabotage_applied,
            )
            for card in candidate.hand or []
        )
        entries.append(
            SabotageRevealEntry(
                target=candidate.name,
                saboteur=saboteur.name if saboteur is not None else None,
                cards=cards,
            ),
        )
    return tuple(entries)


def sabotage_pending(player: Player) -> bool:
    """Whether a candidate still owes a sabotage submission. A targetless candidate owes nothing."""
    return player.sabotage_target is not None and not player.sabotage_submitted


def advance_if_complete(room: Room, rng: random.Random) -> bool:
    """
    Advance the room through every phase whose completion condition already holds.

    Returns True if the phase changed. LOBBY and VOTING are never left here:
    they wait on an explicit Judge action.
    """
    start = room.phase
    while True:
        candidates = room.candidates
        if room.phase == GamePhase.SELF_POSITIONING and all(p.self_positioning_submitted for p in candidates):
            enter_sabotage(room, rng)
        elif room.phase == GamePhase.SABOTAGE and not any(sabotage_pending(p) for p in candidates):
            enter_pitching(room, rng)
        elif room.phase == GamePhase.PITCHING and room.current_pitcher_index >= len(room.pitch_order):
            enter_voting(room)
        else:
            return room.phase != start
