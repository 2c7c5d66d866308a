"""Centralized game settings for Inner Circle - all configurable gameplay rules."""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator


class GameSettings(BaseModel):
    """
    Rules shared by every room on the server.

    All fields have defaults matching the standard party-game rules.
    """

    model_config = ConfigDict(frozen=True)

    # --- Hands ---
    hand_size: int = Field(default=3, ge=1)
    dial_min: int = 0
    dial_max: int = 10
    dial_start: int = 5

    # --- Sabotage ---
    sabotage_budget: int = Field(default=8, ge=0)  # total |delta| one saboteur may spend

    # --- Room ---
    min_candidates: int = Field(default=2, ge=2)
    max_name_length: int = Field(default=20, ge=1)
    default_category: str = "startup"

    @model_validator(mode="after")
    def _validate_dial(self) -> Self:
        if self.dial_min >= self.dial_max:
            raise ValueError(f"dial_min ({self.dial_min}) must be below dial_max ({self.dial_max})")
        if not (self.dial_min <= self.dial_start <= self.dial_max):
            raise ValueError(f"dial_start must be within [{self.dial_min}, {self.dial_max}], got {self.dial_start}")
        return self

    def clamp_position(self, value: int) -> int:
        return max(self.dial_min, min(self.dial_max, value))
