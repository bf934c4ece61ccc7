"""Lenient coercion of model-supplied tool arguments."""

import math
from datetime import datetime
from typing import Annotated, Any

from pydantic import BeforeValidator, ValidationError

DEFAULT_ITEM_LIMIT = 10
DEFAULT_DOCUMENT_LIMIT = 50
DEFAULT_OFFSET = 0


def coerce_str(value: Any) -> str:
    """Accept any JSON value as a string; strings are trimmed."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def coerce_int(value: Any, default: int) -> int:
    """Numbers and numeric strings become ints; anything else falls back to ``default``."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


def parse_timestamp(value: Any) -> datetime:
    """Parse an RFC 3339 timestamp (date, time and UTC offset are all required)."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError("expected an RFC 3339 timestamp such as 2025-01-31T23:59:59Z")
    text = value.strip()
    if "T" not in text.upper():
        raise ValueError(f"{text!r} has no time part, expected RFC 3339")
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise ValueError(f"{text!r} is not an RFC 3339 timestamp") from e
    if parsed.tzinfo is None:
        raise ValueError(f"{text!r} has no UTC offset, expected RFC 3339")
    return parsed


LooseStr = Annotated[str, BeforeValidator(coerce_str)]
Timestamp = Annotated[datetime, BeforeValidator(parse_timestamp)]
ItemLimit = Annotated[int, BeforeValidator(lambda value: coerce_int(value, DEFAULT_ITEM_LIMIT))]
DocumentLimit = Annotated[int, BeforeValidator(lambda value: coerce_int(value, DEFAULT_DOCUMENT_LIMIT))]
Offset = Annotated[int, BeforeValidator(lambda value: coerce_int(value, DEFAULT_OFFSET))]


def describe_validation_error(error: ValidationError) -> str:
    """Turn a pydantic error into a short message naming the offending argument."""
    messages = []
    for detail in error.errors():
        field = ".".join(str(part) for part in detail["loc"]) or "arguments"
        if detail["type"] == "missing":
            messages.append(f"missing {field}")
        else:
            reason = detail["msg"].removeprefix("Value error, ")
            messages.append(f"invalid {field}: {reason}")
    return "; ".join(messages)
