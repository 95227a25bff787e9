"""Search and sort helpers for list endpoints."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from sqlalchemy import Select, String, cast, or_


# ── Sorting ─────────────────────────────────────────────────────────

def apply_sorting(
    query: Select,
    columns: Mapping[str, Any],
    sort_field: Optional[str],
    sort_order: Optional[str],
    *,
    default: str,
) -> Select:
    """
    ORDER BY the column registered under *sort_field*.

    Unknown fields fall back to *default*; ``sort_order`` is ``"asc"`` or
    ``"desc"`` (anything else sorts descending).
    """
    col = columns.get(sort_field or default, columns[default])
    return query.order_by(col.asc() if sort_order == "asc" else col.desc())


# ── Search ──────────────────────────────────────────────────────────

def apply_search(
    query: Select,
    search: Optional[str],
    columns: Sequence[Any],
) -> Select:
    """Case-insensitive substring match across *columns* (OR-ed)."""
    if not search or not search.strip():
        return query

    pattern = f"%{search.strip()}%"
    return query.where(or_(*(cast(col, String).ilike(pattern) for col in columns)))
