"""Server configuration via CIRCLE_* environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from circle.logic.settings import GameSettings
from shared.validators import OriginListEnvSettingsSource, parse_origin_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class CircleServerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CIRCLE_")

    cors_origins: list[str] = ["http://localhost:5173"]
    log_dir: str | None = None
    idle_cleanup_seconds: float = Field(default=60, ge=0)
    max_rooms: int = Field(default=500, ge=1)
    sabotage_budget: int = Field(default=8, ge=0)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_origin_list(v)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, OriginListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings

    def game_settings(self) -> GameSettings:
        """Gameplay rules for every room on this server."""
        return GameSettings(sabotage_budget=self.sabotage_budget)
