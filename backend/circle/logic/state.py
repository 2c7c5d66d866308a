"""
Room state models for Inner Circle.

Rooms are mutated in place by the state machine. Every relation between
players (sabotage targets, pitch order, the Judge's vote) is keyed by the
player's stable name, never by the volatile connection id, so a reconnect
only has to rewrite Player.connection_id and Room.host_connection_id.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from circle.logic.enums import GamePhase

if TYPE_CHECKING:
    from circle.logic.types import SabotageRevealEntry


def normalize_name(name: str) -> str:
    """Case-insensitive comparison key for player names."""
    return name.strip().casefold()


def normalize_room_code(code: str) -> str:
    return code.strip().upper()


@dataclass
class DialCard:
    """
    A spectrum-valued trait card in a candidate's hand.
    """

    card_id: str
    label: str
    self_position: int
    final_position: int | None = None  # None until sabotage touches this card
    sabotage_applied: int = 0  # realized delta after clamping, not the requested one

    @property
    def effective_final_position(self) -> int:
        """Final position, defaulting to the self position when sabotage left the card alone."""
        return self.final_position if self.final_position is not None else self.self_position


@dataclass
class Player:
    name: str
    connection_id: str
    is_judge: bool = False
    is_connected: bool = True

    hand: list[DialCard] | None = None
    sabotage_target: str | None = None  # name of the candidate this player sabotages

    self_positioning_submitted: bool = False
    sabotage_submitted: bool = False
    pitch_done: bool = False
    is_winner: bool = False

    def card(self, card_id: str) -> DialCard | None:
        if self.hand is None:
            return None
        for card in self.hand:
            if card.card_id == card_id:
                return card
        return None


@dataclass
class Room:
    """
    Authoritative state of one game room.

    Lifecycle:
    - Created in LOBBY with the creator as the only player and Judge
    - candidate_names is frozen by start_game; later joins are refused
    - sabotage_map is built once on entering GAME_OVER and never mutated
    """

    code: str
    host_connection_id: str
    category: str
    phase: GamePhase = GamePhase.LOBBY
    players: list[Player] = field(default_factory=list)
    candidate_names: list[str] = field(default_factory=list)
    pitch_order: list[str] = field(default_factory=list)
    current_pitcher_index: int = 0
    judge_vote: str | None = None
    sabotage_map: tuple[SabotageRevealEntry, ...] | None = None
    created_at: float = field(default_factory=time.monotonic)

    @property
    def judge(self) -> Player:
        for player in self.players:
            if player.is_judge:
                return player
        raise LookupError(f"room {self.code} has no judge")

    @property
    def candidates(self) -> list[Player]:
        """Candidates in roster order. Before the game starts, every non-Judge player."""
        if self.phase == GamePhase.LOBBY:
            return [p for p in self.players if not p.is_judge]
        frozen = {normalize_name(n) for n in self.candidate_names}
        return [p for p in self.players if normalize_name(p.name) in frozen]

    @property
    def current_pitcher(self) -> str | None:
        if self.phase != GamePhase.PITCHING or self.current_pitcher_index >= len(self.pitch_order):
            return None
        return self.pitch_order[self.current_pitcher_index]

    @property
    def in_progress(self) -> bool:
        """True from the deal until the vote. LOBBY and GAME_OVER have no round to keep going."""
        return self.phase not in (GamePhase.LOBBY, GamePhase.GAME_OVER)

    @property
    def is_empty(self) -> bool:
        return not self.players

    @property
    def all_disconnected(self) -> bool:
        return all(not p.is_connected for p in self.players)

    def find_player(self, name: str) -> Player | None:
        """Look up a player by name, case-insensitively."""
        key = normalize_name(name)
        for player in self.players:
            if normalize_name(player.name) == key:
                return player
        return None

    def player_by_connection(self, connection_id: str) -> Player | None:
        for player in self.players:
            if player.connection_id == connection_id:
                return player
        return None

    def is_candidate(self, player: Player) -> bool:
        return any(c is player for c in self.candidates)

    def saboteur_of(self, name: str) -> Player | None:
        """Inverse lookup over sabotage_target. A self-loop never counts as a saboteur."""
        key = normalize_name(name)
        for player in self.candidates:
            if normalize_name(player.name) == key or player.sabotage_target is None:
                continue
            if normalize_name(player.sabotage_target) == key:
                return player
        return None
