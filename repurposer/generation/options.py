"""Per-request generation options layered over the platform defaults."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from repurposer.exceptions import RequestValidationError

if TYPE_CHECKING:
    from repurposer.generation.platforms import PlatformRules

MAX_TEMPERATURE = 2.0
MAX_TOKENS_LIMIT = 4000

_KEYS = {"temperature": "temperature", "max_tokens": "max_tokens", "maxTokens": "max_tokens"}


def normalize_generation_options(options: dict[str, Any] | None) -> dict[str, Any]:
    """Return the canonical ``temperature``/``max_tokens`` subset of ``options``.

    camelCase keys are accepted; ``None`` values are dropped. Unknown keys and
    out-of-range values raise :class:`RequestValidationError`.
    """
    normalized: dict[str, Any] = {}
    for key, value in (options or {}).items():
        name = _KEYS.get(key)
        if name is None:
            raise RequestValidationError(
                f"Unknown generation option: {key}",
                details={"option": key, "allowed": sorted(_KEYS)},
            )
        if value is None:
            continue
        if name == "temperature":
            if (
                isinstance(value, bool)
                or not isinstance(value, int | float)
                or not 0 <= value <= MAX_TEMPERATURE
            ):
                raise RequestValidationError(
                    f"temperature must be between 0 and {MAX_TEMPERATURE}",
                    details={"option": key, "value": value},
                )
            normalized[name] = float(value)
        else:
            if (
                isinstance(value, bool)
                or not isinstance(value, int)
                or not 1 <= value <= MAX_TOKENS_LIMIT
            ):
                raise RequestValidationError(
                    f"maxTokens must be an integer between 1 and {MAX_TOKENS_LIMIT}",
                    details={"option": key, "value": value},
                )
            normalized[name] = value
    return normalized


def completion_settings(rules: PlatformRules, options: dict[str, Any] | None) -> tuple[float, int]:
    """``(temperature, max_tokens)`` for one slot: request values win over the platform's."""
    overrides = normalize_generation_options(options)
    return (
        overrides.get("temperature", rules.temperature),
        overrides.get("max_tokens", rules.max_tokens),
    )
