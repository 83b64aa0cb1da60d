from __future__ import annotations

from typing import Any

from medistock.models.stock import LOCATIONS, LOCATION_ALIASES


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


def coerce_int(key: str, value: Any) -> int:
    """
    Strict integer coercion for JSON input.

    Rejects floats, booleans, decimals and scientific notation so a price of
    "12.5" never silently becomes 12 cents.
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def require_field(payload: dict, key: str) -> Any:
    if key not in payload or payload[key] is None:
        raise ValidationError(f"Missing required field: {key}")
    return payload[key]


def require_int(payload: dict, key: str, *, minimum: int | None = None) -> int:
    value = coerce_int(key, require_field(payload, key))
    if minimum is not None and value < minimum:
        raise ValidationError(f"{key} must be >= {minimum}")
    return value


def optional_int(payload: dict, key: str, *, default: int | None = None, minimum: int | None = None) -> int | None:
    if payload.get(key) is None:
        return default
    return require_int(payload, key, minimum=minimum)


def require_text(payload: dict, key: str, *, max_length: int = 255) -> str:
    value = str(require_field(payload, key)).strip()
    if not value:
        raise ValidationError(f"{key} cannot be blank")
    if len(value) > max_length:
        raise ValidationError(f"{key} exceeds max length {max_length}")
    return value


def optional_text(payload: dict, key: str, *, max_length: int = 255) -> str:
    """Free-text field that may be absent; numbers are kept as their text ("500" for 500)."""
    value = payload.get(key)
    if value is None:
        return ""
    if isinstance(value, (bool, dict, list)):
        raise ValidationError(f"{key} must be a string")
    value = str(value).strip()
    if len(value) > max_length:
        raise ValidationError(f"{key} exceeds max length {max_length}")
    return value


def check_price_cents(key: str, value: int | None) -> None:
    if value is None:
        return
    if value < 0:
        raise ValidationError(f"{key} must be >= 0")
    if value > MAX_PRICE_CENTS:
        raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS}")


def normalize_location(value: Any) -> str:
    """
    Map a location name to its canonical code.

    Accepts the codes themselves and the display names ("Main Store",
    "point-of-sale", ...), case-insensitive.
    """
    if value is None:
        raise ValidationError("location is required")
    key = str(value).strip().upper().replace("-", "_").replace(" ", "_")
    key = LOCATION_ALIASES.get(key, key)
    if key not in LOCATIONS:
        raise ValidationError(
            f"Unknown location: {value!r} (expected one of {', '.join(LOCATIONS)})"
        )
    return key
