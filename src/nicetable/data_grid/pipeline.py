"""Derivation pipeline: (rows, columns, ViewState) -> rendered rows.

The pipeline is a pure function. It reads the View-State but never mutates
it, and two calls with the same inputs return equal results. Stages run in a
fixed order, each feeding the next:

1. filter    - column filters and the global filter
2. group     - hierarchical grouping with aggregation rows
3. sort      - stable multi-key sort, applied to every sibling list
4. paginate  - top-level rows only; the page index is clamped
5. annotate  - flatten expanded rows, attach selection/expansion flags

Column keys in the View-State that do not resolve to a usable column are
logged and ignored. A grid never fails because of stale state.
"""

from __future__ import annotations

import functools
import math
from collections.abc import Hashable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Optional, TypeVar

from nicetable.data_grid.column_layout import is_visible
from nicetable.data_grid.config import ColumnDescriptor, GridConfig, RowKey, index_columns
from nicetable.data_grid.filter_conventions import contains_text, is_empty_filter_value, matches, matches_exact
from nicetable.data_grid.view_state import EXPANDED_ALL, ViewState
from nicetable.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

GROUP_ID_SEPARATOR = ">"


def is_missing(value: Any) -> bool:
    """True for None and float NaN (missing pandas/numpy cells)."""
    return value is None or (isinstance(value, float) and math.isnan(value))


@dataclass(frozen=True)
class GroupId:
    """Row id of a synthetic group row: the (column key, value) path down to its level.

    Two ids are equal only when every column key and value is equal, so groups
    whose values share a string form (``1`` and ``"1"``, ``None`` and
    ``"None"``) stay distinct. ``str()`` gives a readable ``col:value>col:value``
    label for display only.
    """

    path: tuple[tuple[str, Hashable], ...]

    @classmethod
    def of(cls, *segments: tuple[str, Any]) -> "GroupId":
        """e.g. ``GroupId.of(("city", "Lima"), ("status", "activo"))``."""
        return cls(tuple((key, _hashable(value)) for key, value in segments))

    def child(self, column_key: str, value: Any) -> "GroupId":
        return GroupId((*self.path, (column_key, _hashable(value))))

    @property
    def depth(self) -> int:
        return len(self.path) - 1

    def __str__(self) -> str:
        return GROUP_ID_SEPARATOR.join(f"{key}:{value}" for key, value in self.path)


@dataclass(frozen=True)
class RenderedRow(Generic[T]):
    """One output row of the pipeline. Discarded on every re-derivation.

    For a grouped row, ``original`` is the first member leaf row and
    ``leaf_rows`` holds all members.
    """

    original: T
    row_id: RowKey
    depth: int = 0
    is_grouped: bool = False
    group_key: Optional[tuple[Any, ...]] = None
    grouping_column_key: Optional[str] = None
    sub_row_count: Optional[int] = None
    is_selected: bool = False
    is_expanded: bool = False
    can_expand: bool = False
    aggregates: Mapping[str, Any] = field(default_factory=dict)
    leaf_rows: tuple[T, ...] = ()
    parent_id: Optional[RowKey] = None

    @property
    def group_value(self) -> Any:
        if not self.group_key:
            return None
        return self.group_key[-1]


@dataclass(frozen=True)
class DerivedView(Generic[T]):
    """Pipeline output plus the metadata the rendering surface needs.

    Attributes:
        rows: Rendered rows of the current page, expanded children inlined.
        page_index: Effective (clamped) page index.
        page_size: Page size used.
        page_count: ``ceil(total_row_count / page_size)``; 0 for an empty result.
        total_row_count: Top-level rows after filtering and grouping (groups
            when grouped, leaf rows otherwise).
        filtered_rows: Leaf rows surviving the filter, in sorted order.
        page_row_ids: Keys of the leaf rows materialized on the page. A group
            row contributes all of its members.
    """

    rows: list[RenderedRow[T]]
    page_index: int
    page_size: int
    page_count: int
    total_row_count: int
    filtered_rows: list[T]
    page_row_ids: list[RowKey]


@dataclass
class _Node(Generic[T]):
    original: T
    row_id: RowKey
    children: list["_Node[T]"] = field(default_factory=list)
    is_grouped: bool = False
    group_key: Optional[tuple[Any, ...]] = None
    grouping_column_key: Optional[str] = None
    group_value: Any = None
    aggregates: dict[str, Any] = field(default_factory=dict)
    leaf_rows: list[T] = field(default_factory=list)
    leaf_ids: list[RowKey] = field(default_factory=list)


# ----------------------------------------------------------------------
# Stage 1: filter
# ----------------------------------------------------------------------


def _resolve_column_filters(
    state: ViewState,
    by_key: Mapping[str, ColumnDescriptor[Any]],
    config: GridConfig[Any],
) -> list[tuple[ColumnDescriptor[Any], Any]]:
    if not config.enable_column_filtering:
        return []
    resolved = []
    for key, value in state.column_filters.items():
        if is_empty_filter_value(value):
            continue
        col = by_key.get(key)
        if col is None:
            logger.warning("ignoring filter on unknown column %r", key)
            continue
        if not col.capabilities.filterable:
            logger.debug("ignoring filter on non-filterable column %r", key)
            continue
        resolved.append((col, value))
    return resolved


def _row_passes(
    row: Any,
    column_filters: Sequence[tuple[ColumnDescriptor[Any], Any]],
    global_text: str,
    global_columns: Sequence[ColumnDescriptor[Any]],
) -> bool:
    for col, filter_value in column_filters:
        predicate = col.filter_fn or (matches_exact if col.filter_variant == "select" else matches)
        if not predicate(col.value(row), filter_value):
            return False
    if global_text:
        return any(contains_text(col.value(row), global_text) for col in global_columns)
    return True


def _filter_rows(
    rows: Sequence[T],
    config: GridConfig[T],
    column_filters: Sequence[tuple[ColumnDescriptor[Any], Any]],
    global_text: str,
    global_columns: Sequence[ColumnDescriptor[Any]],
) -> list[_Node[T]]:
    nodes: list[_Node[T]] = []
    for row in rows:
        if not _row_passes(row, column_filters, global_text, global_columns):
            continue
        row_id = config.row_id(row)
        node = _Node(original=row, row_id=row_id, leaf_rows=[row], leaf_ids=[row_id])
        sub_rows = config.sub_rows(row)
        if sub_rows:
            node.children = _filter_rows(sub_rows, config, column_filters, global_text, global_columns)
        nodes.append(node)
    return nodes


# ----------------------------------------------------------------------
# Stage 2: group
# ----------------------------------------------------------------------


def _hashable(value: Any) -> Hashable:
    try:
        hash(value)
    except TypeError:
        return ("__unhashable__", repr(value))
    return value


def aggregate(values: list[Any], aggregation: Any) -> Any:
    """Apply a named or callable aggregation to member values.

    Missing values (None, NaN) are skipped by the numeric aggregations.

    Raises:
        ValueError: For an unknown aggregation name.
    """
    if callable(aggregation):
        return aggregation(values)
    present = [v for v in values if not is_missing(v)]
    if aggregation == "count":
        return len(values)
    if aggregation == "sum":
        return sum(present) if present else 0
    if aggregation == "min":
        return min(present) if present else None
    if aggregation == "max":
        return max(present) if present else None
    if aggregation == "mean":
        return sum(present) / len(present) if present else None
    if aggregation in ("unique", "unique_count"):
        seen: dict[Hashable, Any] = {}
        for v in values:
            seen.setdefault(_hashable(v), v)
        uniques = list(seen.values())
        return uniques if aggregation == "unique" else len(uniques)
    raise ValueError(f"Unknown aggregation {aggregation!r}")


def _aggregates_for(
    leaf_rows: list[Any],
    columns: Sequence[ColumnDescriptor[Any]],
) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for col in columns:
        if col.aggregation is None:
            continue
        try:
            result[col.key] = aggregate([col.value(r) for r in leaf_rows], col.aggregation)
        except (TypeError, ValueError):
            logger.warning("aggregation %r failed for column %r", col.aggregation, col.key, exc_info=True)
    return result


def _group_nodes(
    nodes: list[_Node[T]],
    group_columns: Sequence[ColumnDescriptor[Any]],
    columns: Sequence[ColumnDescriptor[Any]],
    level: int = 0,
    parent_key: tuple[Any, ...] = (),
    parent_id: Optional[GroupId] = None,
) -> list[_Node[T]]:
    if level >= len(group_columns):
        return nodes

    col = group_columns[level]
    buckets: dict[Hashable, tuple[Any, list[_Node[T]]]] = {}
    for node in nodes:
        value = col.value(node.original)
        entry = buckets.setdefault(_hashable(value), (value, []))
        entry[1].append(node)

    groups: list[_Node[T]] = []
    for value, members in buckets.values():
        group_id = GroupId.of((col.key, value)) if parent_id is None else parent_id.child(col.key, value)
        group_key = (*parent_key, value)
        leaf_rows = [r for m in members for r in m.leaf_rows]
        leaf_ids = [k for m in members for k in m.leaf_ids]
        aggregates = _aggregates_for(leaf_rows, columns)
        aggregates[col.key] = value
        groups.append(
            _Node(
                original=leaf_rows[0],
                row_id=group_id,
                children=_group_nodes(members, group_columns, columns, level + 1, group_key, group_id),
                is_grouped=True,
                group_key=group_key,
                grouping_column_key=col.key,
                group_value=value,
                aggregates=aggregates,
                leaf_rows=leaf_rows,
                leaf_ids=leaf_ids,
            )
        )
    return groups


# ----------------------------------------------------------------------
# Stage 3: sort
# ----------------------------------------------------------------------


def _compare_values(a: Any, b: Any) -> int:
    if isinstance(a, str) and isinstance(b, str):
        a, b = a.casefold(), b.casefold()
    try:
        if a < b:
            return -1
        if b < a:
            return 1
        return 0
    except TypeError:
        sa, sb = str(a), str(b)
        return (sa > sb) - (sa < sb)


def _sort_value(node: _Node[Any], col: ColumnDescriptor[Any]) -> Any:
    if node.is_grouped:
        if node.grouping_column_key == col.key:
            value = node.group_value
        else:
            value = node.aggregates.get(col.key)
    else:
        value = col.value(node.original)
    if not is_missing(value) and col.sort_key is not None:
        value = col.sort_key(value)
    return value


def _make_comparator(specs: Sequence[tuple[ColumnDescriptor[Any], bool]]) -> Callable[[_Node[Any], _Node[Any]], int]:
    def compare(a: _Node[Any], b: _Node[Any]) -> int:
        for col, descending in specs:
            va, vb = _sort_value(a, col), _sort_value(b, col)
            # missing values (None, NaN) always sort last, whatever the direction
            missing_a, missing_b = is_missing(va), is_missing(vb)
            if missing_a and missing_b:
                continue
            if missing_a:
                return 1
            if missing_b:
                return -1
            c = _compare_values(va, vb)
            if c:
                return -c if descending else c
        return 0

    return compare


def _sort_nodes(nodes: list[_Node[T]], key: Callable[[_Node[T]], Any]) -> list[_Node[T]]:
    ordered = sorted(nodes, key=key)  # list.sort is stable
    for node in ordered:
        if node.children:
            node.children = _sort_nodes(node.children, key)
    return ordered


def _resolve_sort(
    state: ViewState,
    by_key: Mapping[str, ColumnDescriptor[Any]],
) -> list[tuple[ColumnDescriptor[Any], bool]]:
    specs = []
    seen: set[str] = set()
    for sk in state.sort:
        col = by_key.get(sk.column_key)
        if col is None:
            logger.warning("ignoring sort on unknown column %r", sk.column_key)
            continue
        if not col.capabilities.sortable:
            logger.debug("ignoring sort on non-sortable column %r", sk.column_key)
            continue
        if col.key in seen:
            continue
        seen.add(col.key)
        specs.append((col, sk.descending))
    return specs


# ----------------------------------------------------------------------
# Stage 4/5: paginate, annotate
# ----------------------------------------------------------------------


def clamp_page_index(page_index: int, row_count: int, page_size: int) -> int:
    """Clamp ``page_index`` to ``[0, max(0, ceil(row_count / page_size) - 1)]``."""
    last = max(0, math.ceil(row_count / page_size) - 1)
    return min(max(0, page_index), last)


def _is_expanded(node: _Node[Any], state: ViewState) -> bool:
    if state.expanded == EXPANDED_ALL:
        return True
    return node.row_id in state.expanded


def _emit(
    node: _Node[T],
    state: ViewState,
    depth: int,
    parent_id: Optional[RowKey],
    out: list[RenderedRow[T]],
) -> None:
    can_expand = bool(node.children)
    expanded = can_expand and _is_expanded(node, state)
    if node.is_grouped:
        selected = bool(node.leaf_ids) and all(k in state.selection for k in node.leaf_ids)
    else:
        selected = node.row_id in state.selection
    out.append(
        RenderedRow(
            original=node.original,
            row_id=node.row_id,
            depth=depth,
            is_grouped=node.is_grouped,
            group_key=node.group_key,
            grouping_column_key=node.grouping_column_key,
            sub_row_count=len(node.leaf_rows) if node.is_grouped else (len(node.children) or None),
            is_selected=selected,
            is_expanded=expanded,
            can_expand=can_expand,
            aggregates=dict(node.aggregates),
            leaf_rows=tuple(node.leaf_rows) if node.is_grouped else (),
            parent_id=parent_id,
        )
    )
    if expanded:
        for child in node.children:
            _emit(child, state, depth + 1, node.row_id, out)


def _collect_leaves(nodes: Sequence[_Node[T]], out: list[T]) -> None:
    for node in nodes:
        if node.is_grouped:
            _collect_leaves(node.children, out)
        else:
            out.append(node.original)


def _page_row_ids(nodes: Sequence[_Node[Any]], state: ViewState) -> list[RowKey]:
    ids: dict[RowKey, None] = {}

    def visit(node: _Node[Any]) -> None:
        if node.is_grouped:
            for k in node.leaf_ids:
                ids.setdefault(k, None)
            return
        ids.setdefault(node.row_id, None)
        if node.children and _is_expanded(node, state):
            for child in node.children:
                visit(child)

    for n in nodes:
        visit(n)
    return list(ids)


def _build_tree(
    rows: Sequence[T],
    columns: Sequence[ColumnDescriptor[T]],
    state: ViewState,
    config: GridConfig[T],
    by_key: Mapping[str, ColumnDescriptor[Any]],
) -> list[_Node[T]]:
    # 1. filter
    column_filters = _resolve_column_filters(state, by_key, config)
    # matched as typed; only all-blank text disables the global filter
    global_text = state.global_filter or ""
    if not global_text.strip():
        global_text = ""
    global_columns = [c for c in columns if c.capabilities.filterable and is_visible(state, c, config)]
    nodes = _filter_rows(rows, config, column_filters, global_text, global_columns)

    # 2. group
    if config.enable_grouping and state.grouping:
        group_columns = []
        for key in state.grouping:
            col = by_key.get(key)
            if col is None:
                logger.warning("ignoring grouping on unknown column %r", key)
            elif not col.capabilities.groupable:
                logger.debug("ignoring grouping on non-groupable column %r", key)
            else:
                group_columns.append(col)
        if group_columns:
            nodes = _group_nodes(nodes, group_columns, columns)
    return nodes


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------


def expandable_row_ids(
    rows: Sequence[T],
    columns: Sequence[ColumnDescriptor[T]],
    state: ViewState,
    config: Optional[GridConfig[T]] = None,
) -> list[RowKey]:
    """Ids of every row that has children under ``state``, across all pages."""
    config = config or GridConfig()
    ids: list[RowKey] = []

    def visit(nodes: Sequence[_Node[T]]) -> None:
        for node in nodes:
            if node.children:
                ids.append(node.row_id)
                visit(node.children)

    visit(_build_tree(rows, columns, state, config, index_columns(columns)))
    return ids


def derive_view(
    rows: Sequence[T],
    columns: Sequence[ColumnDescriptor[T]],
    state: ViewState,
    config: Optional[GridConfig[T]] = None,
) -> DerivedView[T]:
    """Run the full pipeline and return rendered rows with page metadata.

    Args:
        rows: Row Store for this render cycle. Never mutated.
        columns: Column registry. Keys must be unique.
        state: View-State snapshot. Never mutated.
        config: Grid options (feature flags, row identity, sub rows). Defaults
            to ``GridConfig()``.

    Returns:
        DerivedView for the current page.

    Raises:
        ValueError: If two columns share a key.
    """
    config = config or GridConfig()
    by_key = index_columns(columns)
    nodes = _build_tree(rows, columns, state, config, by_key)

    # 3. sort
    specs = _resolve_sort(state, by_key)
    if specs:
        nodes = _sort_nodes(nodes, functools.cmp_to_key(_make_comparator(specs)))

    # 4. paginate
    page_size = state.pagination.page_size
    total = len(nodes)
    page_count = math.ceil(total / page_size)
    page_index = clamp_page_index(state.pagination.page_index, total, page_size)
    if page_index != state.pagination.page_index:
        logger.debug("page index %d clamped to %d (%d rows)", state.pagination.page_index, page_index, total)
    page_nodes = nodes[page_index * page_size:(page_index + 1) * page_size]

    # 5. annotate
    rendered: list[RenderedRow[T]] = []
    for node in page_nodes:
        _emit(node, state, 0, None, rendered)

    filtered_rows: list[T] = []
    _collect_leaves(nodes, filtered_rows)

    return DerivedView(
        rows=rendered,
        page_index=page_index,
        page_size=page_size,
        page_count=page_count,
        total_row_count=total,
        filtered_rows=filtered_rows,
        page_row_ids=_page_row_ids(page_nodes, state),
    )


def derive(
    rows: Sequence[T],
    columns: Sequence[ColumnDescriptor[T]],
    state: ViewState,
    config: Optional[GridConfig[T]] = None,
) -> list[RenderedRow[T]]:
    """Rendered rows of the current page. See ``derive_view``."""
    return derive_view(rows, columns, state, config).rows
