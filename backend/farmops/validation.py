from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable

from .errors import ValidationError
from .time_utils import parse_iso_date


# Maximum money amount: 9,999,999,999.99 fits NUMERIC(12, 2)
MAX_AMOUNT = 9_999_999_999.99


def coerce_int(field: str, value: Any, *, minimum: int | None = None) -> int:
    """
    Strict integer coercion for JSON input.

    Accepts ints and plain digit strings. Rejects bools, floats, decimals and
    scientific notation.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")

    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return result


def coerce_float(field: str, value: Any, *, minimum: float | None = None) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if result != result or result in (float("inf"), float("-inf")):
        raise ValidationError(f"{field} must be a finite number")
    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return result


def coerce_date(field: str, value: Any):
    try:
        result = parse_iso_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a date in YYYY-MM-DD format")
    if result is None:
        raise ValidationError(f"{field} is required")
    return result


def ensure_object(data: Any) -> dict:
    """JSON request bodies must be objects; anything else is a client error."""
    if not isinstance(data, Mapping):
        raise ValidationError("Request body must be an object")
    return dict(data)


def require_fields(data: dict, fields: Iterable[str]) -> None:
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        raise ValidationError(
            f"Missing required field(s): {', '.join(missing)}",
            details={"missing": missing},
        )


def reject_unknown_fields(data: dict, allowed: Iterable[str]) -> None:
    unknown = sorted(set(data) - set(allowed))
    if unknown:
        raise ValidationError(
            f"Unknown field(s): {', '.join(unknown)}",
            details={"unknown": unknown},
        )


def round_money(value: float) -> float:
    """Round a float amount to two decimals for persistence."""
    result = round(float(value), 2)
    if result > MAX_AMOUNT:
        raise ValidationError("Amount exceeds the maximum allowed value")
    return result
