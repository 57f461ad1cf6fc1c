from __future__ import annotations

from typing import Any

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _ensure_api_token(value: str, *, name: str) -> str:
    if not value:
        msg = f"{name} API token is required"
        raise ValueError(msg)
    value = value.strip()
    if not value:
        msg = f"{name} API token is required"
        raise ValueError(msg)
    if len(value) > 500:
        msg = f"{name} API token appears to be too long"
        raise ValueError(msg)
    if any(char in value for char in [" ", "\n", "\t"]):
        msg = f"{name} API token contains invalid characters"
        raise ValueError(msg)
    return value


def _clean_token(value: Any, *, name: str) -> str:
    """Normalize an optional token: empty stays empty, anything else is validated."""
    if value in (None, ""):
        return ""
    return _ensure_api_token(str(value), name=name)


def _parse_int_in_range(
    value: Any,
    *,
    name: str,
    default: int,
    minimum: int,
    maximum: int,
) -> int:
    try:
        parsed = int(str(value if value not in (None, "") else default).strip())
    except ValueError as exc:
        msg = f"{name} must be a valid integer"
        raise ValueError(msg) from exc
    if parsed < minimum or parsed > maximum:
        msg = f"{name} must be between {minimum} and {maximum}"
        raise ValueError(msg)
    return parsed


def parse_bool_flag(value: Any) -> bool:
    """Interpret query-string or env style booleans ("1", "true", "yes", "on")."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    return False


def clamp_int(
    value: Any, *, default: int | None, minimum: int, maximum: int
) -> int | None:
    """Parse an int and clamp it into range, falling back to the default when unparseable."""
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return max(minimum, min(maximum, parsed))
