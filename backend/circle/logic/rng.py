"""
Random number generation for room codes, target assignment and pitch order.

Uses stdlib random.Random. Statistical perfection is not critical for a
party game, and an injectable instance lets tests seed every shuffle.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Sequence

T = TypeVar("T")

ROOM_CODE_LENGTH = 4
# I and O are left out: they read as 1 and 0 on a shared screen
ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ"

# Only words spellable without I or O need listing
BLOCKED_ROOM_CODES = frozenset(
    {
        "ANAL",
        "ANUS",
        "ARSE",
        "CRAP",
        "CUNT",
        "DAMN",
        "FUCK",
        "FUKK",
        "KKKK",
        "PUSY",
        "RAPE",
        "SCUM",
        "SEXY",
        "SLUT",
        "SPAZ",
        "TURD",
        "TWAT",
        "WANK",
    },
)


def create_rng(seed: int | None = None) -> random.Random:
    """Create the RNG used by the state machine. A seed makes every draw reproducible."""
    if seed is None:
        return random.Random()  # noqa: S311
    return random.Random(seed)  # noqa: S311


def shuffled(items: Sequence[T], rng: random.Random) -> list[T]:
    """Return a shuffled copy. The input is left untouched."""
    result = list(items)
    rng.shuffle(result)
    return result


def generate_room_code(rng: random.Random) -> str:
    """Draw a room code that is not on the blocklist. Uniqueness is the registry's concern."""
    while True:
        code = "".join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))
        if code not in BLOCKED_ROOM_CODES:
            return code


def assign_sabotage_targets(names: Sequence[str], rng: random.Random) -> dict[str, str]:
    """
    Assign each name a target via a shuffled circular chain.

    Shuffle the names, then point every entry at the next one (wrapping
    around). For two or more names this is a single directed cycle, so no
    name targets itself. A single name yields an empty mapping.
    """
    if len(names) < 2:
        return {}
    chain = shuffled(names, rng)
    return {name: chain[(i + 1) % len(chain)] for i, name in enumerate(chain)}
