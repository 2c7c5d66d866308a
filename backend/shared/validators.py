"""Settings helpers shared by server configuration classes."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic_settings import EnvSettingsSource

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo

_ORIGIN_LIST_FIELDS = frozenset({"cors_origins"})


def _require_items(items: list[str]) -> list[str]:
    if not items:
        raise ValueError("origin list must not be empty")
    return items


def parse_origin_list(value: str | list[str]) -> list[str]:
    """Parse an origin list given as a list, a JSON array string, or a comma-separated string.

    Surrounding whitespace is stripped from every entry and blank entries are
    dropped. Raises ValueError if nothing remains or the JSON is malformed.
    """
    if isinstance(value, list):
        return _require_items([item.strip() for item in value if item.strip()])

    text = value.strip()
    if text.startswith("["):
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON array: {e}") from e
        if not isinstance(decoded, list) or not all(isinstance(item, str) for item in decoded):
            raise ValueError("JSON value must be an array of strings")
        return _require_items([item.strip() for item in decoded if item.strip()])

    return _require_items([part.strip() for part in text.split(",") if part.strip()])


class OriginListEnvSettingsSource(EnvSettingsSource):
    """Env source that hands origin-list fields to their validator as raw strings.

    Without this, pydantic-settings JSON-decodes list fields itself and a
    comma-separated value fails before parse_origin_list ever sees it.
    """

    def prepare_field_value(
        self,
        field_name: str,
        field: FieldInfo,
        value: Any,  # noqa: ANN401
        value_is_complex: bool,  # noqa: FBT001
    ) -> Any:  # noqa: ANN401
        if field_name in _ORIGIN_LIST_FIELDS and isinstance(value, str):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)
