"""Row selection as a set of row keys.

Selection is always a ``frozenset`` of row keys, never a set of row objects.
A selected row therefore stays selected while a filter hides it, after a
re-sort, on another page, and across a re-fetch as long as ``get_row_id``
returns the same key for the refreshed record.

"Select all" selects the rows currently materialized on the visible page,
not every row matching the filter. Callers showing bulk-action text such as
"N clientes seleccionados" should word it accordingly.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Sequence
from typing import Any, TypeVar

T = TypeVar("T")

Selection = frozenset


def toggle(selection: Selection, row_key: Hashable) -> Selection:
    if row_key in selection:
        return selection - {row_key}
    return selection | {row_key}


def set_selected(selection: Selection, row_key: Hashable, selected: bool) -> Selection:
    if selected:
        return selection | {row_key}
    return selection - {row_key}


def select_all(selection: Selection, current_page_keys: Iterable[Hashable]) -> Selection:
    """Add every key of the current page to ``selection``."""
    return selection | frozenset(current_page_keys)


def deselect_all(selection: Selection, keys: Iterable[Hashable]) -> Selection:
    return selection - frozenset(keys)


def clear() -> Selection:
    return frozenset()


def is_all_selected(selection: Selection, visible_keys: Iterable[Hashable]) -> bool:
    """True iff ``visible_keys`` is non-empty and every key is selected."""
    keys = list(visible_keys)
    return bool(keys) and all(k in selection for k in keys)


def is_partially_selected(selection: Selection, visible_keys: Iterable[Hashable]) -> bool:
    """True iff the selection intersects ``visible_keys`` without covering them.

    Drives the indeterminate state of a header checkbox.
    """
    keys = list(visible_keys)
    hit = sum(1 for k in keys if k in selection)
    return 0 < hit < len(keys)


def resolve_selected_rows(
    selection: Selection,
    rows: Sequence[T],
    get_row_id: Callable[[T], Hashable],
) -> list[T]:
    """Materialize the selected rows in Row Store order.

    Keys without a matching row in ``rows`` are skipped (they remain in the
    selection set).
    """
    if not selection:
        return []
    return [row for row in rows if get_row_id(row) in selection]


def prune(
    selection: Selection,
    rows: Sequence[Any],
    get_row_id: Callable[[Any], Hashable],
) -> Selection:
    """Drop keys that no longer identify a row of ``rows``."""
    present = {get_row_id(row) for row in rows}
    return frozenset(k for k in selection if k in present)


def selection_count_label(
    count: int,
    singular: str = "fila seleccionada",
    plural: str = "filas seleccionadas",
) -> str:
    """Bulk-action label, e.g. '3 filas seleccionadas' or '1 cliente seleccionado'."""
    return f"{count} {singular if count == 1 else plural}"
