"""
Result Post-Processor.

Scan returns items in no particular order and cannot skip rows, so sort,
offset and limit are applied here after the store returns.
"""

from typing import Any, Sequence

from authstore.predicates import SortBy


def check_window(offset: int | None, limit: int | None) -> None:
    """Reject negative paging values before they reach a slice."""
    if offset is not None and offset < 0:
        raise ValueError(f"offset must not be negative, got {offset}")
    if limit is not None and limit < 0:
        raise ValueError(f"limit must not be negative, got {limit}")


def apply_window(
    rows: Sequence[dict[str, Any]],
    sort_by: SortBy | None = None,
    offset: int | None = None,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """
    Sort, then drop `offset` rows, then keep at most `limit` rows.
    A limit of 0 or None means no limit.

    Sorting is stable in both directions (ties keep input order). Rows
    missing the sort field always go last.
    """
    check_window(offset, limit)
    items = list(rows)

    if sort_by:
        present = [row for row in items if row.get(sort_by.field) is not None]
        missing = [row for row in items if row.get(sort_by.field) is None]
        present.sort(key=lambda row: row[sort_by.field], reverse=sort_by.direction == "desc")
        items = present + missing

    if offset:
        items = items[offset:]

    if limit:
        items = items[:limit]

    return items


def scan_cap(limit: int | None, offset: int | None) -> int | None:
    """How many matches to request from the store so offset + limit can be served."""
    check_window(offset, limit)
    if not limit:
        return None
    return limit + (offset or 0)
