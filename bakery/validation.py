# bakery/validation.py
"""
Request payload validation driven by SQLAlchemy column metadata.

Each service declares a ModelValidationPolicy next to its model. The policy
says which keys a client may write and which must be present on create;
column types, nullability and String lengths come from the mapper, so a new
column is validated as soon as it is added to the model.

Integer columns are strict: 3.75, "3.75", "1e3" and true are all refused.
Money is stored in integer cents.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Iterable

from flask import request
from sqlalchemy import Boolean, Date, DateTime, Integer, String, Text

from .errors import ValidationError
from .time_utils import parse_iso_datetime


# $9,999,999.99
MAX_MONEY_CENTS = 999_999_999


@dataclass(frozen=True)
class ModelValidationPolicy:
    writable_fields: set[str]
    required_on_create: frozenset[str] | set[str] = frozenset()
    # Closed string enums, compared upper-cased
    enums: dict[str, Iterable[str]] | None = None


def _to_int(key: str, value: Any) -> int:
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{key} must be a whole number")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text.startswith("-") else text
        if digits.isdigit():
            return int(text)
    raise ValidationError(f"{key} must be a whole number")


def _to_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValidationError(f"{key} must be a boolean")


def _parse_when(key: str, value: Any, kind: str) -> datetime:
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be an ISO-8601 {kind}")
    try:
        parsed = parse_iso_datetime(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{key} must be an ISO-8601 {kind}")
    return parsed


def _to_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return _parse_when(key, value, "datetime")


def _to_date(key: str, value: Any) -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    return _parse_when(key, value, "date").date()


def _to_text(key: str, value: Any) -> str:
    if isinstance(value, (dict, list)):
        raise ValidationError(f"{key} must be a string")
    return str(value).strip()


_COERCERS: tuple[tuple[type, Callable[[str, Any], Any]], ...] = (
    (Integer, _to_int),
    (Boolean, _to_bool),
    (DateTime, _to_datetime),
    (Date, _to_date),
    ((String, Text), _to_text),
)


def coerce_column_value(column, value: Any) -> Any:
    for column_type, coerce in _COERCERS:
        if isinstance(column.type, column_type):
            return coerce(column.key, value)
    return value


def require_json_object(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def request_json() -> dict:
    """The request body as a JSON object. A missing or unparsable body reads as {}."""
    return require_json_object(request.get_json(silent=True))


def validate_payload(*, model, payload: dict, policy: ModelValidationPolicy, partial: bool) -> dict:
    """
    Return the subset of payload the policy allows, coerced to column types.

    partial=False enforces required_on_create (create); partial=True only
    checks the keys that were sent (update).
    """
    payload = require_json_object(payload)

    if not partial:
        missing = sorted(
            name for name in policy.required_on_create
            if payload.get(name) is None or payload.get(name) == ""
        )
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)

    columns = {column.key: column for column in model.__mapper__.columns}
    for key in payload:
        if key not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {key}")
        if key not in columns:
            raise ValidationError(f"Unknown field: {key}")

    enums = policy.enums or {}
    cleaned: dict = {}
    for key, raw in payload.items():
        column = columns[key]
        if raw is None:
            if not column.nullable:
                raise ValidationError(f"{key} cannot be null")
            cleaned[key] = None
            continue

        value = coerce_column_value(column, raw)
        if isinstance(value, str):
            if value == "" and not column.nullable:
                raise ValidationError(f"{key} cannot be blank")
            max_length = getattr(column.type, "length", None)
            if max_length and len(value) > max_length:
                raise ValidationError(f"{key} exceeds max length {max_length}")

        if key in enums:
            allowed = tuple(enums[key])
            value = value.upper() if isinstance(value, str) else value
            if value not in allowed:
                raise ValidationError(f"{key} must be one of: {', '.join(allowed)}")

        cleaned[key] = value

    return cleaned


def enforce_money(patch: dict, *fields: str) -> None:
    for name in fields:
        cents = patch.get(name)
        if cents is None:
            continue
        if cents < 0:
            raise ValidationError(f"{name} must be >= 0")
        if cents > MAX_MONEY_CENTS:
            raise ValidationError(f"{name} cannot exceed {MAX_MONEY_CENTS} cents")


def enforce_non_negative(patch: dict, *fields: str) -> None:
    for name in fields:
        if patch.get(name) is not None and patch[name] < 0:
            raise ValidationError(f"{name} must be >= 0")


def enforce_positive(patch: dict, *fields: str) -> None:
    for name in fields:
        if patch.get(name) is not None and patch[name] <= 0:
            raise ValidationError(f"{name} must be > 0")


def require_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """Coerce a loose JSON value (route args, nested items) into an int."""
    if value is None:
        raise ValidationError(f"{field} must be an integer")
    try:
        result = _to_int(field, value)
    except ValidationError:
        raise ValidationError(f"{field} must be an integer")
    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return result


def require_items(payload: dict, key: str = "items") -> list[dict]:
    items = payload.get(key)
    if not isinstance(items, list) or not items:
        raise ValidationError(f"{key} must be a non-empty list", fields=[key])
    if not all(isinstance(item, dict) for item in items):
        raise ValidationError(f"Each entry in {key} must be an object")
    return items
