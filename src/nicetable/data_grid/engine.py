# src/nicetable/data_grid/engine.py
from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import IO, Any, Generic, Optional, TYPE_CHECKING, TypeVar, Union

import pandas as pd

from nicetable.data_grid import column_layout, selection
from nicetable.data_grid.actions import (
    ActionMenuItem,
    Authorizer,
    RowAction,
    TableAction,
    authorize_for,
    build_action_menu,
    invoke_action,
)
from nicetable.data_grid.column_layout import ColumnLayout
from nicetable.data_grid.config import ColumnDescriptor, GridConfig, RowKey, index_columns
from nicetable.data_grid.export import export_csv
from nicetable.data_grid.filter_conventions import has_active_filters
from nicetable.data_grid.pagination import PageInfo, page_info
from nicetable.data_grid.pipeline import DerivedView, RenderedRow, derive_view, expandable_row_ids
from nicetable.data_grid.view_state import (
    EXPANDED_ALL,
    ColumnPinning,
    PageState,
    PinSide,
    SortKey,
    ViewState,
)
from nicetable.utils.logging import get_logger

logger = get_logger(__name__)

# Optional polars
try:  # pragma: no cover
    import polars as _pl  # type: ignore[import]
    HAS_POLARS = True
except Exception:  # pragma: no cover
    _pl = None  # type: ignore[assignment]
    HAS_POLARS = False

if TYPE_CHECKING:
    import polars as pl
else:
    pl = _pl  # type: ignore[assignment]

T = TypeVar("T")

DataLike = Union[Sequence[Any], "pd.DataFrame", "pl.DataFrame"]  # type: ignore[name-defined]
SelectionChangeHandler = Callable[[list[Any]], None]
SortLike = Union[SortKey, tuple[str, str], str]


def convert_input_to_rows(data: DataLike) -> list[Any]:
    """Normalize the Row Store input to a list.

    Lists and tuples keep their row objects; DataFrames become lists of dicts
    with missing cells (NaN, NaT, None) as ``None``.

    Raises:
        TypeError: For any other input type.
    """
    if isinstance(data, (list, tuple)):
        return list(data)

    if isinstance(data, pd.DataFrame):
        return data.astype(object).where(data.notna(), None).to_dict(orient="records")

    if HAS_POLARS and pl is not None and isinstance(data, pl.DataFrame):
        return data.to_dicts()

    raise TypeError("Unsupported data type: expected a list of rows, pandas.DataFrame, or polars.DataFrame.")


def initial_view_state(config: GridConfig[Any]) -> ViewState:
    """View-State built from the ``default_*`` options of ``config``."""
    return ViewState(
        sort=tuple(config.default_sort),
        column_filters=dict(config.default_column_filters),
        visibility=dict(config.default_column_visibility),
        pinning=ColumnPinning.from_dict(config.default_column_pinning),
        grouping=tuple(config.default_grouping),
        pagination=PageState(page_index=0, page_size=config.page_size),
    )


def _as_sort_key(item: SortLike) -> SortKey:
    if isinstance(item, SortKey):
        return item
    if isinstance(item, str):
        return SortKey(item)
    column_key, direction = item
    return SortKey(column_key, direction)  # type: ignore[arg-type]


class DataGridEngine(Generic[T]):
    """Owns the View-State of one grid instance and derives its rendered rows.

    The Row Store and column registry belong to the caller and may be replaced
    at any time with ``set_rows`` / ``set_columns``. The View-State is owned
    here: every setter builds a new immutable snapshot, commits it and returns
    it. After each commit the page index is re-clamped against the derived
    result, and ``on_row_selection_change`` handlers fire if the selection set
    changed.

    Derivation is memoized on (rows identity, columns identity, state), so
    calling ``view()`` repeatedly between mutations is cheap.

    Preconditions:
        ``config.get_row_id`` must return distinct keys for distinct rows.
        Duplicate keys cannot be detected and make selection ambiguous.

    Selection semantics:
        ``select_all_page_rows`` selects the rows materialized on the current
        page only, never every row matching the filter.
    """

    def __init__(
        self,
        rows: DataLike,
        columns: Sequence[ColumnDescriptor[T]],
        config: Optional[GridConfig[T]] = None,
        *,
        on_row_selection_change: Optional[SelectionChangeHandler] = None,
        initial_state: Optional[ViewState] = None,
    ) -> None:
        self._config: GridConfig[T] = config or GridConfig()
        self._rows: list[T] = convert_input_to_rows(rows)
        index_columns(columns)
        self._columns: list[ColumnDescriptor[T]] = list(columns)
        self._state: ViewState = initial_state or initial_view_state(self._config)

        self._selection_handlers: list[SelectionChangeHandler] = []
        if on_row_selection_change is not None:
            self._selection_handlers.append(on_row_selection_change)

        self._cache: Optional[tuple[list[T], list[ColumnDescriptor[T]], ViewState, DerivedView[T]]] = None
        self._reconcile()

        logger.info(
            "DataGridEngine initialized: rows=%s cols=%s page_size=%s selection=%s grouping=%s",
            len(self._rows),
            len(self._columns),
            self._state.pagination.page_size,
            self._config.enable_row_selection,
            self._config.enable_grouping,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> ViewState:
        """Current View-State snapshot."""
        return self._state

    @property
    def config(self) -> GridConfig[T]:
        return self._config

    @property
    def rows(self) -> list[T]:
        """Shallow copy of the Row Store."""
        return list(self._rows)

    @property
    def columns(self) -> list[ColumnDescriptor[T]]:
        return list(self._columns)

    def row_id(self, row: T) -> RowKey:
        return self._config.row_id(row)

    # ------------------------------------------------------------------
    # Event registration
    # ------------------------------------------------------------------

    def on_row_selection_change(self, handler: SelectionChangeHandler) -> None:
        """Register handler(selected_rows), fired whenever the selection set changes."""
        self._selection_handlers.append(handler)

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def recompute(self) -> DerivedView[T]:
        """Derived view for the current rows, columns and state (memoized)."""
        cached = self._cache
        if (
            cached is not None
            and cached[0] is self._rows
            and cached[1] is self._columns
            and cached[2] == self._state
        ):
            return cached[3]
        view = derive_view(self._rows, self._columns, self._state, self._config)
        self._cache = (self._rows, self._columns, self._state, view)
        return view

    view = recompute

    def get_row_model(self) -> list[RenderedRow[T]]:
        """Rendered rows of the current page."""
        return self.recompute().rows

    def get_page_count(self) -> int:
        return self.recompute().page_count

    def get_page_info(self) -> PageInfo:
        return page_info(self.recompute())

    def can_previous_page(self) -> bool:
        return self._state.pagination.page_index > 0

    def can_next_page(self) -> bool:
        return self._state.pagination.page_index < self.get_page_count() - 1

    # ------------------------------------------------------------------
    # Internal: commit
    # ------------------------------------------------------------------

    def _reconcile(self) -> None:
        """Re-derive and fold the clamped page index back into the state."""
        view = self.recompute()
        if view.page_index != self._state.pagination.page_index:
            self._state = self._state.with_page_index(view.page_index)
            self._cache = (self._rows, self._columns, self._state, view)

    def _commit(self, new_state: ViewState) -> ViewState:
        old = self._state
        if new_state == old:
            return old
        self._state = new_state
        self._reconcile()
        if old.selection != self._state.selection:
            self._fire_selection_change()
        return self._state

    def _fire_selection_change(self) -> None:
        selected = self.get_selected_rows()
        for handler in list(self._selection_handlers):
            try:
                handler(list(selected))
            except Exception:
                logger.exception("Error in row_selection_change handler")

    def _has_column(self, column_key: str, operation: str) -> bool:
        if any(c.key == column_key for c in self._columns):
            return True
        logger.warning("%s: ignoring unknown column %r", operation, column_key)
        return False

    def _column(self, column_key: str) -> Optional[ColumnDescriptor[T]]:
        for col in self._columns:
            if col.key == column_key:
                return col
        return None

    # ------------------------------------------------------------------
    # Row Store / column registry
    # ------------------------------------------------------------------

    def set_rows(self, rows: DataLike, *, prune_selection: bool = False) -> ViewState:
        """Replace the Row Store and re-derive.

        Selection keys survive the replacement. With ``prune_selection`` keys
        that no longer identify a row are dropped.
        """
        self._rows = convert_input_to_rows(rows)
        new_state = self._state
        if prune_selection:
            new_state = new_state.with_selection(
                selection.prune(new_state.selection, self._all_rows(), self._config.row_id)
            )
        old_selection = self._state.selection
        self._state = new_state
        self._reconcile()
        if old_selection != self._state.selection:
            self._fire_selection_change()
        return self._state

    def set_columns(self, columns: Sequence[ColumnDescriptor[T]]) -> ViewState:
        """Replace the column registry. State keys that became stale are kept and ignored."""
        index_columns(columns)
        self._columns = list(columns)
        self._reconcile()
        return self._state

    # ------------------------------------------------------------------
    # Sorting
    # ------------------------------------------------------------------

    def set_sorting(self, sort: Iterable[SortLike]) -> ViewState:
        """Replace the sort list. Items may be SortKey, (key, direction) or a bare key."""
        keys = [_as_sort_key(s) for s in sort]
        keys = [k for k in keys if self._has_column(k.column_key, "set_sorting")]
        return self._commit(self._state.with_sort(keys))

    def toggle_sort(self, column_key: str, *, multi: bool = False) -> ViewState:
        """Cycle a column through ascending -> descending -> unsorted.

        Args:
            column_key: Column to toggle.
            multi: Keep the other sort keys (shift-click). Otherwise this
                column becomes the only sort key.
        """
        col = self._column(column_key)
        if col is None:
            logger.warning("toggle_sort: ignoring unknown column %r", column_key)
            return self._state
        if not col.capabilities.sortable:
            logger.debug("toggle_sort: column %r is not sortable", column_key)
            return self._state

        current = next((s for s in self._state.sort if s.column_key == column_key), None)
        if current is None:
            nxt: Optional[SortKey] = SortKey(column_key, "asc")
        elif current.direction == "asc":
            nxt = SortKey(column_key, "desc")
        else:
            nxt = None

        if not multi:
            return self._commit(self._state.with_sort([nxt] if nxt else []))

        keys: list[SortKey] = []
        placed = False
        for s in self._state.sort:
            if s.column_key == column_key:
                placed = True
                if nxt is not None:
                    keys.append(nxt)
            else:
                keys.append(s)
        if not placed and nxt is not None:
            keys.append(nxt)
        return self._commit(self._state.with_sort(keys))

    def clear_sorting(self) -> ViewState:
        return self._commit(self._state.with_sort([]))

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------

    def set_column_filter(self, column_key: str, value: Any) -> ViewState:
        """Set (or clear, with None) the filter value of one column."""
        if not self._has_column(column_key, "set_column_filter"):
            return self._state
        return self._commit(self._state.with_column_filter(column_key, value))

    def set_global_filter(self, text: str) -> ViewState:
        return self._commit(self._state.with_global_filter(text))

    def reset_filters(self) -> ViewState:
        """Restore the configured default column filters and clear the search text."""
        state = self._state.with_column_filters(self._config.default_column_filters).with_global_filter("")
        return self._commit(state)

    def has_active_filters(self) -> bool:
        return has_active_filters(self._state.column_filters) or bool(self._state.global_filter.strip())

    # ------------------------------------------------------------------
    # Grouping / expansion
    # ------------------------------------------------------------------

    def set_grouping(self, column_keys: Iterable[str]) -> ViewState:
        keys = [k for k in column_keys if self._has_column(k, "set_grouping")]
        return self._commit(self._state.with_grouping(keys))

    def toggle_grouping(self, column_key: str) -> ViewState:
        col = self._column(column_key)
        if col is None or not col.capabilities.groupable:
            logger.debug("toggle_grouping: column %r is unknown or not groupable", column_key)
            return self._state
        grouping = list(self._state.grouping)
        if column_key in grouping:
            grouping.remove(column_key)
        else:
            grouping.append(column_key)
        return self._commit(self._state.with_grouping(grouping))

    def toggle_expanded(self, row_id: RowKey) -> ViewState:
        """Expand or collapse one row (group row or row with sub rows)."""
        if self._state.expanded == EXPANDED_ALL:
            ids = expandable_row_ids(self._rows, self._columns, self._state, self._config)
            return self._commit(self._state.with_expanded(k for k in ids if k != row_id))
        expanded = set(self._state.expanded)
        expanded.symmetric_difference_update({row_id})
        return self._commit(self._state.with_expanded(expanded))

    def set_all_expanded(self, expanded: bool) -> ViewState:
        return self._commit(self._state.with_expanded(EXPANDED_ALL if expanded else frozenset()))

    # ------------------------------------------------------------------
    # Pagination
    # ------------------------------------------------------------------

    def set_page_index(self, page_index: int) -> ViewState:
        """Go to ``page_index`` (0-based). Out-of-range values are clamped."""
        return self._commit(self._state.with_page_index(page_index))

    def next_page(self) -> ViewState:
        return self.set_page_index(self._state.pagination.page_index + 1)

    def previous_page(self) -> ViewState:
        return self.set_page_index(self._state.pagination.page_index - 1)

    def set_page_size(self, page_size: int) -> ViewState:
        """Change the page size and go back to the first page.

        Raises:
            ValueError: If ``page_size`` is not positive.
        """
        return self._commit(self._state.with_page_size(page_size))

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _selection_enabled(self, operation: str) -> bool:
        if not self._config.enable_row_selection:
            logger.debug("%s: row selection is disabled", operation)
            return False
        return True

    def _group_leaf_ids(self, row_id: RowKey) -> Optional[list[RowKey]]:
        for r in self.recompute().rows:
            if r.row_id == row_id and r.is_grouped:
                return [self._config.row_id(leaf) for leaf in r.leaf_rows]
        return None

    def toggle_row_selection(self, row_id: RowKey) -> ViewState:
        """Toggle one row. Toggling a group row on the page toggles all its members."""
        if not self._selection_enabled("toggle_row_selection"):
            return self._state
        leaf_ids = self._group_leaf_ids(row_id)
        if leaf_ids is not None:
            if selection.is_all_selected(self._state.selection, leaf_ids):
                new_sel = selection.deselect_all(self._state.selection, leaf_ids)
            else:
                new_sel = selection.select_all(self._state.selection, leaf_ids)
            return self._commit(self._state.with_selection(new_sel))
        return self._commit(self._state.with_selection(selection.toggle(self._state.selection, row_id)))

    def set_row_selected(self, row_id: RowKey, selected: bool) -> ViewState:
        if not self._selection_enabled("set_row_selected"):
            return self._state
        return self._commit(
            self._state.with_selection(selection.set_selected(self._state.selection, row_id, selected))
        )

    def select_all_page_rows(self) -> ViewState:
        """Select every row materialized on the current page (not the whole filtered set)."""
        if not self._selection_enabled("select_all_page_rows"):
            return self._state
        page_keys = self.recompute().page_row_ids
        return self._commit(self._state.with_selection(selection.select_all(self._state.selection, page_keys)))

    def toggle_all_page_rows_selected(self) -> ViewState:
        """Header checkbox: deselect the page when fully selected, else select it."""
        if not self._selection_enabled("toggle_all_page_rows_selected"):
            return self._state
        page_keys = self.recompute().page_row_ids
        if selection.is_all_selected(self._state.selection, page_keys):
            new_sel = selection.deselect_all(self._state.selection, page_keys)
        else:
            new_sel = selection.select_all(self._state.selection, page_keys)
        return self._commit(self._state.with_selection(new_sel))

    def clear_selection(self) -> ViewState:
        return self._commit(self._state.with_selection(selection.clear()))

    def is_all_page_rows_selected(self) -> bool:
        return selection.is_all_selected(self._state.selection, self.recompute().page_row_ids)

    def is_some_page_rows_selected(self) -> bool:
        return selection.is_partially_selected(self._state.selection, self.recompute().page_row_ids)

    def _all_rows(self) -> list[T]:
        out: list[T] = []

        def visit(rows: Iterable[T]) -> None:
            for row in rows:
                out.append(row)
                visit(self._config.sub_rows(row))

        visit(self._rows)
        return out

    def get_selected_rows(self) -> list[T]:
        """Selected rows resolved against the current Row Store (sub rows included)."""
        return selection.resolve_selected_rows(self._state.selection, self._all_rows(), self._config.row_id)

    # ------------------------------------------------------------------
    # Column layout
    # ------------------------------------------------------------------

    def set_column_visibility(self, column_key: str, visible: bool) -> ViewState:
        return self._commit(
            column_layout.set_visibility(self._state, self._columns, column_key, visible, self._config)
        )

    def toggle_all_columns_visible(self, visible: bool) -> ViewState:
        return self._commit(column_layout.toggle_all_visibility(self._state, self._columns, visible, self._config))

    def pin_column(self, column_key: str, side: PinSide) -> ViewState:
        return self._commit(column_layout.pin(self._state, self._columns, column_key, side, self._config))

    def resize_column(self, column_key: str, width: int) -> ViewState:
        return self._commit(column_layout.resize(self._state, self._columns, column_key, width, self._config))

    def reset_column_sizing(self) -> ViewState:
        return self._commit(column_layout.reset_sizing(self._state))

    def get_visible_columns(self) -> ColumnLayout:
        return column_layout.visible_columns(self._state, self._columns, self._config)

    def get_hideable_columns(self) -> list[ColumnDescriptor[T]]:
        """Columns offered in the visibility-toggle menu."""
        return column_layout.hideable_columns(self._columns)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def get_row_actions(
        self,
        row: T,
        actions: Sequence[RowAction[T]],
        authorizer: Authorizer,
    ) -> list[ActionMenuItem[T]]:
        """Authorized action menu for ``row`` (an original row, not a RenderedRow)."""
        return build_action_menu(authorize_for(actions, authorizer), row)

    def get_table_actions(self, actions: Sequence[TableAction], authorizer: Authorizer) -> list[TableAction]:
        return authorize_for(actions, authorizer)

    def invoke_row_action(self, action: RowAction[T], row: T) -> bool:
        """Run ``action`` on ``row`` unless it is disabled for that row."""
        return invoke_action(action, row)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_rows(self) -> list[T]:
        """Selected rows when a selection exists, otherwise the filtered rows in view order."""
        selected = self.get_selected_rows()
        if selected:
            return selected
        return list(self.recompute().filtered_rows)

    def export_csv(
        self,
        path_or_buf: Union[str, Path, IO[str], None] = None,
        *,
        column_keys: Optional[Sequence[str]] = None,
        required_keys: Sequence[str] = (),
    ) -> Optional[str]:
        return export_csv(
            self.export_rows(),
            self._columns,
            path_or_buf,
            column_keys=column_keys,
            required_keys=required_keys,
        )

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def reset(self) -> ViewState:
        """Return to the configured initial state (selection cleared)."""
        return self._commit(initial_view_state(self._config))
