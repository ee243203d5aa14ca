# src/nicetable/data_grid/config.py
#
# Declarative config objects for the data-grid engine and its NiceGUI view.

from __future__ import annotations

from collections.abc import Callable, Hashable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, Literal, Optional, TypeVar, Union

from nicetable.data_grid.view_state import SortKey

T = TypeVar("T")

RowKey = Hashable
Accessor = Callable[[Any], Any]
FilterFn = Callable[[Any, Any], bool]
FilterVariant = Literal["text", "select"]
AggregationName = Literal["count", "sum", "min", "max", "mean", "unique", "unique_count"]
Aggregation = Union[AggregationName, Callable[[list[Any]], Any]]


@dataclass(frozen=True)
class ColumnCapabilities:
    """Per-column capability flags.

    A capability set to False makes the matching View-State entries inert for
    that column: a non-sortable column is dropped from the sort list, a
    non-filterable column is never consulted by column or global filters, and
    so on.
    """

    sortable: bool = True
    groupable: bool = True
    hideable: bool = True
    pinnable: bool = True
    resizable: bool = True
    filterable: bool = True


def field_accessor(name: str) -> Accessor:
    """Return an accessor reading ``name`` from a mapping row or an attribute row."""

    def _get(row: Any) -> Any:
        if isinstance(row, Mapping):
            return row.get(name)
        return getattr(row, name, None)

    _get.__name__ = f"field_accessor_{name}"
    return _get


@dataclass
class ColumnDescriptor(Generic[T]):
    """Declarative description of one grid column.

    Attributes:
        key: Unique key within the column registry. View-State maps and lists
            reference columns by this key.
        accessor: Function returning the raw cell value for a row. Used for
            filtering, grouping, sorting and aggregation.
        header: Column label shown in the header. Defaults to ``key``.
        render: Function returning the display value for a row. Defaults to
            ``accessor``.
        capabilities: Capability flags (sortable, groupable, hideable,
            pinnable, resizable, filterable).
        default_width: Width used when View-State has no sizing entry.
        min_width: Lower clamp for resize.
        max_width: Upper clamp for resize.
        filter_fn: Optional ``(cell_value, filter_value) -> bool`` predicate
            replacing the default column-filter matcher.
        filter_variant: Default matcher when ``filter_fn`` is None. "text"
            matches strings as case-insensitive substrings; "select" matches
            dropdown values exactly.
        aggregation: Aggregation shown on grouped rows. Either one of the
            names in ``AggregationName`` or a callable receiving the member
            values.
        sort_key: Optional normalizer applied to cell values before comparison.
    """

    key: str
    accessor: Callable[[T], Any]
    header: Optional[str] = None
    render: Optional[Callable[[T], Any]] = None
    capabilities: ColumnCapabilities = field(default_factory=ColumnCapabilities)

    default_width: Optional[int] = None
    min_width: Optional[int] = None
    max_width: Optional[int] = None

    filter_fn: Optional[FilterFn] = None
    filter_variant: FilterVariant = "text"
    aggregation: Optional[Aggregation] = None
    sort_key: Optional[Callable[[Any], Any]] = None

    @classmethod
    def from_field(cls, name: str, **kwargs: Any) -> "ColumnDescriptor[Any]":
        """Build a column whose accessor reads ``name`` from dict or attribute rows."""
        return cls(key=name, accessor=field_accessor(name), **kwargs)

    @property
    def label(self) -> str:
        return self.header or self.key

    def value(self, row: T) -> Any:
        return self.accessor(row)

    def display(self, row: T) -> Any:
        if self.render is not None:
            return self.render(row)
        return self.accessor(row)


def index_columns(columns: Sequence[ColumnDescriptor[Any]]) -> dict[str, ColumnDescriptor[Any]]:
    """Map column key -> descriptor, preserving registry order.

    Raises:
        ValueError: If two descriptors share a key.
    """
    by_key: dict[str, ColumnDescriptor[Any]] = {}
    for col in columns:
        if col.key in by_key:
            raise ValueError(f"Duplicate column key {col.key!r} in column registry")
        by_key[col.key] = col
    return by_key


@dataclass
class GridConfig(Generic[T]):
    """Grid-level options for a DataGridEngine.

    Attributes:
        page_size: Rows (or groups, when grouping) per page.
        page_size_options: Choices offered by the page-size selector.
        enable_column_visibility: Honor and allow changes to column visibility.
        enable_column_pinning: Honor and allow changes to column pinning.
        enable_column_sizing: Honor and allow changes to column widths.
        enable_grouping: Honor ``ViewState.grouping``.
        enable_expanding: Expand leaf rows into ``get_sub_rows`` children.
            Group rows are always expandable when grouping is active.
        enable_row_selection: Allow selection mutations.
        enable_column_filtering: Honor ``ViewState.column_filters``. The
            global filter applies regardless.
        get_row_id: Stable row identity. Keys must be unique for distinct
            rows; the engine cannot detect duplicates. When None, ``id(row)``
            is used, which does not survive a re-fetch of the dataset.
        get_sub_rows: Children of a leaf row for hierarchical data.
        default_column_visibility: Initial ``ViewState.visibility``.
        default_column_pinning: Initial pinning, ``{"left": [...], "right": [...]}``.
        default_grouping: Initial ``ViewState.grouping``.
        default_sort: Initial ``ViewState.sort``.
        default_column_filters: Initial ``ViewState.column_filters``; also
            what ``reset_filters`` returns to.
    """

    page_size: int = 10
    page_size_options: tuple[int, ...] = (10, 20, 50, 100)

    enable_column_visibility: bool = True
    enable_column_pinning: bool = False
    enable_column_sizing: bool = False
    enable_grouping: bool = False
    enable_expanding: bool = False
    enable_row_selection: bool = False
    enable_column_filtering: bool = True

    get_row_id: Optional[Callable[[T], RowKey]] = None
    get_sub_rows: Optional[Callable[[T], Optional[Sequence[T]]]] = None

    default_column_visibility: dict[str, bool] = field(default_factory=dict)
    default_column_pinning: dict[str, list[str]] = field(default_factory=dict)
    default_grouping: list[str] = field(default_factory=list)
    default_sort: list[SortKey] = field(default_factory=list)
    default_column_filters: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.page_size <= 0:
            raise ValueError(f"page_size must be positive, got {self.page_size}")

    def row_id(self, row: T) -> RowKey:
        """Identity of ``row`` under this config."""
        if self.get_row_id is None:
            return id(row)
        return self.get_row_id(row)

    def sub_rows(self, row: T) -> list[T]:
        if not self.enable_expanding or self.get_sub_rows is None:
            return []
        return list(self.get_sub_rows(row) or [])


@dataclass
class ViewConfig:
    """Options for the NiceGUI rendering surface (DataGridView).

    Attributes:
        search_placeholder: Placeholder of the global search input.
        search_debounce_ms: Delay before a keystroke in the search input
            updates the global filter.
        empty_message: Text shown when no rows survive filtering.
        show_search: Show the global search input.
        show_pagination: Show the pagination bar.
        show_column_menu: Show the column visibility menu.
        theme_class: AG Grid theme CSS class.
        zebra_rows: Alternating row background colors.
        tight_layout: Reduce padding and font size slightly.
        row_height: Pixel height of each data row.
        header_height: Pixel height of the header row.
        indent_px: Horizontal indent per depth level for grouped/sub rows.
    """

    search_placeholder: str = "Buscar..."
    search_debounce_ms: int = 300
    empty_message: str = "No se encontraron resultados."
    show_search: bool = True
    show_pagination: bool = True
    show_column_menu: bool = True

    theme_class: str = "ag-theme-alpine"
    zebra_rows: bool = True
    tight_layout: bool = True

    row_height: int = 28
    header_height: int = 30
    indent_px: int = 16
