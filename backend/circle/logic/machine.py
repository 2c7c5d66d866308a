"""
Room state machine: validation and application of every in-game action.

Each public method looks up the room, validates the action completely, and
only then mutates the room in place. A rejected action raises a
GameRuleError and leaves the room untouched. All methods are synchronous;
the session layer serializes calls per room.
"""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING, Concatenate

import structlog

from circle.logic import phases
from circle.logic.enums import GamePhase
from circle.logic.exceptions import (
    GameRuleError,
    InvalidPayloadError,
    PreconditionError,
    RejectionCode,
    RoomNotFoundError,
)
from circle.logic.rng import create_rng, generate_room_code
from circle.logic.settings import GameSettings
from circle.logic.state import Player, Room, normalize_name

if TYPE_CHECKING:
    import random
    from collections.abc import Callable, Mapping

    from circle.logic.cards import CardSource
    from circle.logic.registry import RoomRegistry

logger = structlog.get_logger()


def _logs_rejections[**P, R](
    method: Callable[Concatenate[RoomStateMachine, P], R],
) -> Callable[Concatenate[RoomStateMachine, P], R]:
    @functools.wraps(method)
    def wrapper(self: RoomStateMachine, *args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return method(self, *args, **kwargs)
        except GameRuleError as e:
            logger.info("action rejected", action=method.__name__, code=e.code.value, reason=e.reason)
            raise

    return wrapper


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class RoomStateMachine:
    """
    Authoritative game rules for every room in a registry.

    Relations between players are keyed by name, so none of these methods
    care which connection a player currently uses beyond resolving the actor.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        card_source: CardSource,
        settings: GameSettings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.registry = registry
        self.card_source = card_source
        self.settings = settings or GameSettings()
        self.rng = rng or create_rng()

    # --- lookups ---

    def _room(self, code: str) -> Room:
        room = self.registry.get(code)
        if room is None:
            raise RoomNotFoundError(code)
        return room

    def _actor(self, room: Room, connection_id: str) -> Player:
        player = room.player_by_connection(connection_id)
        if player is None:
            raise PreconditionError(RejectionCode.PLAYER_NOT_FOUND, f"connection {connection_id} is not in room {room.code}")
        return player

    def _candidate(self, room: Room, connection_id: str) -> Player:
        player = self._actor(room, connection_id)
        if not room.is_candidate(player):
            raise PreconditionError(RejectionCode.NOT_A_CANDIDATE, f"{player.name} is not a candidate")
        return player

    def _judge(self, room: Room, connection_id: str) -> Player:
        player = self._actor(room, connection_id)
        if not player.is_judge or room.host_connection_id != connection_id:
            raise PreconditionError(RejectionCode.NOT_JUDGE, f"{player.name} is not the judge")
        return player

    @staticmethod
    def _require_phase(room: Room, phase: GamePhase) -> None:
        if room.phase != phase:
            raise PreconditionError(RejectionCode.WRONG_PHASE, f"expected {phase.value}, room is in {room.phase.value}")

    def _clean_name(self, name: str) -> str:
        cleaned = name.strip()
        if not cleaned or len(cleaned) > self.settings.max_name_length:
            raise InvalidPayloadError(
                RejectionCode.INVALID_NAME,
                f"name must be 1 to {self.settings.max_name_length} characters",
            )
        return cleaned

    def _check_category(self, category: str) -> str:
        if not self.card_source.has_category(category):
            raise InvalidPayloadError(RejectionCode.UNKNOWN_CATEGORY, f"unknown category {category!r}")
        return category

    def _unused_room_code(self) -> str:
        while True:
            code = generate_room_code(self.rng)
            if code not in self.registry:
                return code

    # --- lobby ---

    @_logs_rejections
    def create_room(self, connection_id: str, name: str, category: str | None = None) -> Room:
        """Create a LOBBY room with the creator as its Judge."""
        cleaned = self._clean_name(name)
        chosen = self._check_category(category or self.settings.default_category)
        room = Room(code=self._unused_room_code(), host_connection_id=connection_id, category=chosen)
        room.players.append(Player(name=cleaned, connection_id=connection_id, is_judge=True))
        self.registry.set(room)
        logger.info("room created", room_code=room.code, category=chosen)
        return room

    @_logs_rejections
    def join_room(self, code: str, connection_id: str, name: str) -> Room:
        room = self._room(code)
        if room.phase != GamePhase.LOBBY:
            raise PreconditionError(RejectionCode.GAME_IN_PROGRESS, f"room {room.code} is in {room.phase.value}")
        cleaned = self._clean_name(name)
        if room.find_player(cleaned) is not None:
            raise PreconditionError(RejectionCode.NAME_TAKEN, f"{cleaned!r} is already in room {room.code}")
        room.players.append(Player(name=cleaned, connection_id=connection_id))
        logger.info("player joined", room_code=room.code, player_name=cleaned)
        return room

    @_logs_rejections
    def update_settings(self, code: str, connection_id: str, category: str) -> Room:
        """Change the room's card category. Judge only, before the game starts."""
        room = self._room(code)
        self._require_phase(room, GamePhase.LOBBY)
        self._judge(room, connection_id)
        room.category = self._check_category(category)
        return room

    @_logs_rejections
    def start_game(self, code: str, connection_id: str) -> Room:
        room = self._room(code)
        self._require_phase(room, GamePhase.LOBBY)
        self._judge(room, connection_id)
        if len(room.candidates) < self.settings.min_candidates:
            raise PreconditionError(
                RejectionCode.NOT_ENOUGH_PLAYERS,
                f"need {self.settings.min_candidates} candidates, have {len(room.candidates)}",
            )
        phases.enter_self_positioning(room, self.card_source, self.settings)
        return room

    # --- in-game submissions ---

    @_logs_rejections
    def submit_self_positioning(self, code: str, connection_id: str, positions: Mapping[str, int]) -> Room:
        """
        Set the submitter's own dial positions.

        positions must name every card in the submitter's hand and nothing
        else, each with an in-range integer.
        """
        room = self._room(code)
        self._require_phase(room, GamePhase.SELF_POSITIONING)
        player = self._candidate(room, connection_id)
        if player.self_positioning_submitted:
            raise PreconditionError(RejectionCode.ALREADY_SUBMITTED, f"{player.name} already positioned")
        hand = player.hand or []
        if set(positions) != {card.card_id for card in hand}:
            raise InvalidPayloadError(RejectionCode.INVALID_POSITIONS, "positions must cover exactly the cards in hand")
        for card_id, value in positions.items():
            if not _is_int(value) or not (self.settings.dial_min <= value <= self.settings.dial_max):
                raise InvalidPayloadError(RejectionCode.INVALID_POSITIONS, f"position for {card_id} out of range: {value!r}")

        for card in hand:
            card.self_position = positions[card.card_id]
        player.self_positioning_submitted = True
        phases.advance_if_complete(room, self.rng)
        return room

    @_logs_rejections
    def submit_sabotage(self, code: str, connection_id: str, deltas: Mapping[str, int]) -> Room:
        """
        Apply budgeted deltas to the submitter's target's cards.

        The whole request is checked against the budget before any card is
        touched. Each final position is clamped to the dial range, and the
        realized (post-clamp) delta is what gets recorded.
        """
        room = self._room(code)
        self._require_phase(room, GamePhase.SABOTAGE)
        player = self._candidate(room, connection_id)
        if player.sabotage_submitted:
            raise PreconditionError(RejectionCode.ALREADY_SUBMITTED, f"{player.name} already sabotaged")
        target = room.find_player(player.sabotage_target) if player.sabotage_target else None
        if target is None or target.hand is None:
            raise PreconditionError(RejectionCode.NO_TARGET, f"{player.name} has no sabotage target")
        touched = []
        for card_id, delta in deltas.items():
            card = target.card(card_id)
            if card is None:
                raise InvalidPayloadError(RejectionCode.INVALID_SABOTAGE, f"{card_id} is not in {target.name}'s hand")
            if not _is_int(delta):
                raise InvalidPayloadError(RejectionCode.INVALID_SABOTAGE, f"delta for {card_id} is not an integer")
            touched.append((card, delta))
        spent = sum(abs(delta) for delta in deltas.values())
        if spent > self.settings.sabotage_budget:
            raise InvalidPayloadError(
                RejectionCode.OVER_BUDGET,
                f"sabotage spends {spent}, budget is {self.settings.sabotage_budget}",
            )

        for card, delta in touched:
            card.final_position = self.settings.clamp_position(card.self_position + delta)
            card.sabotage_applied = card.final_position - card.self_position
        player.sabotage_submitted = True
        logger.info("sabotage applied", room_code=room.code, saboteur=player.name, target=target.name, spent=spent)
        phases.advance_if_complete(room, self.rng)
        return room

    @_logs_rejections
    def finish_pitch(self, code: str, connection_id: str, expected_index: int | None = None) -> Room:
        """
        End the current pitch. The current pitcher or the Judge may call this.

        A stale expected_index means another request already advanced past
        that pitch: the room is returned unchanged.
        """
        room = self._room(code)
        self._require_phase(room, GamePhase.PITCHING)
        player = self._actor(room, connection_id)
        if expected_index is not None and expected_index != room.current_pitcher_index:
            logger.debug(
                "stale finish_pitch ignored",
                room_code=room.code,
                expected_index=expected_index,
                current_index=room.current_pitcher_index,
            )
            return room
        pitcher_name = room.current_pitcher
        if pitcher_name is None:
            return room
        is_pitcher = normalize_name(player.name) == normalize_name(pitcher_name)
        if not is_pitcher and not player.is_judge:
            raise PreconditionError(RejectionCode.NOT_YOUR_TURN, f"{player.name} cannot end {pitcher_name}'s pitch")

        pitcher = room.find_player(pitcher_name)
        if pitcher is not None:
            pitcher.pitch_done = True
        room.current_pitcher_index += 1
        phases.advance_if_complete(room, self.rng)
        return room

    @_logs_rejections
    def submit_vote(self, code: str, connection_id: str, candidate_name: str) -> Room:
        room = self._room(code)
        self._require_phase(room, GamePhase.VOTING)
        self._judge(room, connection_id)
        key = normalize_name(candidate_name)
        winner = next((p for p in room.candidates if normalize_name(p.name) == key), None)
        if winner is None:
            raise InvalidPayloadError(RejectionCode.INVALID_VOTE, f"{candidate_name!r} is not a candidate")
        phases.enter_game_over(room, winner)
        return room
