"""Column-filter conventions for the data-grid engine.

Single source of truth for the "no filter" sentinel and the default matching
rule, so the pipeline, the engine and the view agree on what an active filter
is.
"""

from __future__ import annotations

from collections.abc import Mapping, Set
from typing import Any

# Sentinel value meaning "no filter" for a select-style column filter
# (the "Todos" option of a dropdown).
FILTER_ALL = "all"


def is_empty_filter_value(value: Any) -> bool:
    """True if ``value`` does not filter anything.

    Empty values are None, blank strings, FILTER_ALL and empty collections.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == "" or value == FILTER_ALL
    if isinstance(value, (list, tuple, Set)):
        return len(value) == 0
    return False


def active_filters(filters: Mapping[str, Any]) -> dict[str, Any]:
    """Subset of ``filters`` whose values actually filter."""
    return {k: v for k, v in filters.items() if not is_empty_filter_value(v)}


def has_active_filters(filters: Mapping[str, Any]) -> bool:
    return bool(active_filters(filters))


def stringify(value: Any) -> str:
    """String form used for text matching; None becomes ''."""
    if value is None:
        return ""
    return str(value)


def matches(cell_value: Any, filter_value: Any) -> bool:
    """Default column-filter predicate.

    Rules:
        - collection filter value: the cell matches one member (compared as strings,
          so a UI sending ``"2"`` matches a numeric ``2``)
        - string filter value: case-insensitive substring of the stringified cell
        - anything else: equality, falling back to string comparison
    """
    if isinstance(filter_value, (list, tuple, Set)):
        wanted = {stringify(v) for v in filter_value}
        return stringify(cell_value) in wanted
    if isinstance(filter_value, str):
        return filter_value.casefold() in stringify(cell_value).casefold()
    if cell_value == filter_value:
        return True
    return stringify(cell_value) == stringify(filter_value)


def matches_exact(cell_value: Any, filter_value: Any) -> bool:
    """Select-style predicate: membership for collections, equality otherwise.

    A dropdown value ``"activo"`` matches only ``"activo"``, never ``"inactivo"``.
    """
    if isinstance(filter_value, (list, tuple, Set)):
        wanted = {stringify(v) for v in filter_value}
        return stringify(cell_value) in wanted
    if cell_value == filter_value:
        return True
    return stringify(cell_value) == stringify(filter_value)


def contains_text(cell_value: Any, text: str) -> bool:
    """Case-insensitive containment used by the global filter."""
    return text.casefold() in stringify(cell_value).casefold()


def format_filter_display(filters: Mapping[str, Any]) -> str:
    """Short label for the active filters, or 'All'."""
    active = active_filters(filters)
    if not active:
        return "All"
    return ", ".join(f"{k}={v}" for k, v in active.items())
