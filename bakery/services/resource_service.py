# Overview: Shared building blocks for every entity mutator (lookup, uniqueness, pagination, filters).

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable

from flask import current_app
from sqlalchemy import or_

from ..errors import ConflictError, NotFound, ValidationError
from ..extensions import db
from ..time_utils import utcnow
from ..validation import require_int
from .concurrency import lock_for_update


DATE_RANGES = ("today", "this_week", "this_month", "this_quarter", "all_time")


@dataclass
class Page:
    items: list
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def pagination(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "pages": self.pages,
        }

    def to_dict(self, key: str, serializer=None) -> dict:
        serializer = serializer or (lambda row: row.to_dict())
        return {
            key: [serializer(row) for row in self.items],
            "pagination": self.pagination(),
        }


def _positive_int(raw: Any, name: str, default: int) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a positive integer")
    if value < 1:
        raise ValidationError(f"{name} must be a positive integer")
    return value


def parse_pagination(args) -> tuple[int, int]:
    """Read page/limit from query args; defaults page=1, limit=DEFAULT_PAGE_SIZE."""
    cfg = current_app.config
    page = _positive_int(args.get("page"), "page", 1)
    limit = _positive_int(args.get("limit"), "limit", cfg.get("DEFAULT_PAGE_SIZE", 10))
    return page, min(limit, cfg.get("MAX_PAGE_SIZE", 100))


def paginate(query, page: int, limit: int) -> Page:
    """
    Count then slice. A page past the end is an empty list, not an error.
    """
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return Page(items=items, total=total, page=page, limit=limit)


def apply_search(query, columns: Iterable, term: str | None):
    """Case-insensitive substring match OR-ed across columns."""
    if not term or not term.strip():
        return query
    pattern = f"%{term.strip()}%"
    return query.filter(or_(*[col.ilike(pattern) for col in columns]))


def apply_enum_filter(query, column, value: str | None, allowed: Iterable[str], name: str):
    if value is None or value == "" or value.lower() == "all":
        return query
    value = value.upper()
    allowed = tuple(allowed)
    if value not in allowed:
        raise ValidationError(f"{name} must be one of: {', '.join(allowed)}")
    return query.filter(column == value)


def parse_bool_arg(value: str | None, name: str) -> bool | None:
    if value is None or value == "":
        return None
    lowered = value.strip().lower()
    if lowered in {"true", "1", "yes"}:
        return True
    if lowered in {"false", "0", "no"}:
        return False
    raise ValidationError(f"{name} must be true or false")


def parse_int_arg(value: str | None, name: str, *, default: int | None = None, minimum: int | None = None) -> int | None:
    if value is None or value == "":
        return default
    return require_int(value, name, minimum=minimum)


def date_range_bounds(keyword: str | None, now: datetime | None = None) -> tuple[datetime | None, datetime | None]:
    """
    Map a named range to [start, end) bounds.

    this_week runs Sunday 00:00 to the following Sunday 00:00.
    all_time (or no keyword) has no bounds.
    """
    if keyword is None or keyword == "" or keyword == "all_time":
        return None, None
    now = now or utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if keyword == "today":
        return today, today + timedelta(days=1)
    if keyword == "this_week":
        # Python weekday(): Monday=0 ... Sunday=6
        start = today - timedelta(days=(today.weekday() + 1) % 7)
        return start, start + timedelta(days=7)
    if keyword == "this_month":
        start = today.replace(day=1)
        end = (start.replace(year=start.year + 1, month=1) if start.month == 12
               else start.replace(month=start.month + 1))
        return start, end
    if keyword == "this_quarter":
        first_month = 3 * ((today.month - 1) // 3) + 1
        start = today.replace(month=first_month, day=1)
        end = (start.replace(year=start.year + 1, month=1) if first_month == 10
               else start.replace(month=first_month + 3))
        return start, end

    raise ValidationError(f"date_range must be one of: {', '.join(DATE_RANGES)}")


def apply_date_range(query, column, keyword: str | None, now: datetime | None = None):
    start, end = date_range_bounds(keyword, now)
    if start is not None:
        query = query.filter(column >= start)
    if end is not None:
        query = query.filter(column < end)
    return query


def get_or_404(model, entity_id, label: str | None = None, *, lock: bool = False):
    query = db.session.query(model).filter(model.id == entity_id)
    if lock:
        query = lock_for_update(query)
    obj = query.first()
    if obj is None:
        raise NotFound(f"{label or model.__name__} not found")
    return obj


def ensure_unique(model, column, value, *, exclude_id=None, label: str | None = None) -> None:
    if value is None:
        return
    query = db.session.query(model.id).filter(column == value)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first() is not None:
        name = label or column.key
        raise ConflictError(f"{model.__name__} with this {name} already exists", field=column.key)


def ensure_no_dependents(query, message: str) -> None:
    if query.first() is not None:
        raise ConflictError(message)


def apply_patch(obj, patch: dict) -> None:
    for key, value in patch.items():
        setattr(obj, key, value)


def replace_children(parent, relationship: str, new_rows: list) -> None:
    """
    Delete-all and recreate a parent's owned child rows.

    The parent row is locked first, so two concurrent replacements of the
    same parent serialize instead of interleaving their deletes and inserts.
    """
    model = type(parent)
    lock_for_update(db.session.query(model).filter(model.id == parent.id)).first()
    collection = getattr(parent, relationship)
    collection.clear()
    db.session.flush()
    collection.extend(new_rows)
    db.session.flush()
