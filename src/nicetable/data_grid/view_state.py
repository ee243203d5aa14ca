"""View-State snapshot for the data-grid engine.

This module defines the immutable ViewState dataclass holding every piece of
interactive grid state that is independent of the dataset: sorting, filters,
column layout, grouping, expansion, selection and pagination.

Snapshots are never mutated. Every change produces a new ViewState through
``dataclasses.replace`` (see the ``with_*`` helpers), so two snapshots can be
compared with ``==`` and a derivation can be memoized on them.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Literal, Union

SortDirection = Literal["asc", "desc"]
PinSide = Literal["left", "right", "none"]

# Sentinel for ``ViewState.expanded`` meaning every expandable row is expanded.
EXPANDED_ALL = "all"

ExpandedState = Union[frozenset, Literal["all"]]


@dataclass(frozen=True)
class SortKey:
    """One entry of a multi-column sort; earlier entries take priority."""

    column_key: str
    direction: SortDirection = "asc"

    def __post_init__(self) -> None:
        if self.direction not in ("asc", "desc"):
            raise ValueError(f"Unknown sort direction {self.direction!r} for column {self.column_key!r}")

    @property
    def descending(self) -> bool:
        return self.direction == "desc"


@dataclass(frozen=True)
class ColumnPinning:
    """Ordered left/right pinned column keys. A key appears on one side at most."""

    left: tuple[str, ...] = ()
    right: tuple[str, ...] = ()

    def side_of(self, column_key: str) -> PinSide:
        if column_key in self.left:
            return "left"
        if column_key in self.right:
            return "right"
        return "none"

    def to_dict(self) -> dict[str, list[str]]:
        return {"left": list(self.left), "right": list(self.right)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Iterable[str]] | None) -> "ColumnPinning":
        data = data or {}
        left = tuple(dict.fromkeys(data.get("left") or ()))
        right = tuple(k for k in dict.fromkeys(data.get("right") or ()) if k not in left)
        return cls(left=left, right=right)


@dataclass(frozen=True)
class PageState:
    """Current page index (0-based) and page size."""

    page_index: int = 0
    page_size: int = 10

    def __post_init__(self) -> None:
        if self.page_size <= 0:
            raise ValueError(f"page_size must be positive, got {self.page_size}")


@dataclass(frozen=True)
class ViewState:
    """Immutable snapshot of all engine-owned interactive grid state.

    Column keys referenced here may be stale (the column registry can change
    between renders); derivation ignores keys it cannot resolve.
    """

    sort: tuple[SortKey, ...] = ()
    column_filters: Mapping[str, Any] = field(default_factory=dict)
    global_filter: str = ""
    visibility: Mapping[str, bool] = field(default_factory=dict)  # absent -> visible
    pinning: ColumnPinning = field(default_factory=ColumnPinning)
    sizing: Mapping[str, int] = field(default_factory=dict)
    grouping: tuple[str, ...] = ()
    expanded: ExpandedState = frozenset()
    selection: frozenset = frozenset()
    pagination: PageState = field(default_factory=PageState)

    # ------------------------------------------------------------------
    # Functional updates
    # ------------------------------------------------------------------

    def with_sort(self, sort: Iterable[SortKey]) -> "ViewState":
        return replace(self, sort=tuple(sort))

    def with_column_filter(self, column_key: str, value: Any) -> "ViewState":
        filters = dict(self.column_filters)
        if value is None:
            filters.pop(column_key, None)
        else:
            filters[column_key] = value
        return replace(self, column_filters=filters)

    def with_column_filters(self, filters: Mapping[str, Any]) -> "ViewState":
        return replace(self, column_filters=dict(filters))

    def with_global_filter(self, text: str) -> "ViewState":
        return replace(self, global_filter=text or "")

    def with_visibility(self, visibility: Mapping[str, bool]) -> "ViewState":
        return replace(self, visibility=dict(visibility))

    def with_pinning(self, pinning: ColumnPinning) -> "ViewState":
        return replace(self, pinning=pinning)

    def with_sizing(self, sizing: Mapping[str, int]) -> "ViewState":
        return replace(self, sizing=dict(sizing))

    def with_grouping(self, grouping: Iterable[str]) -> "ViewState":
        return replace(self, grouping=tuple(dict.fromkeys(grouping)))

    def with_expanded(self, expanded: ExpandedState | Iterable[Hashable]) -> "ViewState":
        if expanded == EXPANDED_ALL:
            return replace(self, expanded=EXPANDED_ALL)
        return replace(self, expanded=frozenset(expanded))

    def with_selection(self, selection: Iterable[Hashable]) -> "ViewState":
        return replace(self, selection=frozenset(selection))

    def with_page_index(self, page_index: int) -> "ViewState":
        return replace(self, pagination=replace(self.pagination, page_index=max(0, int(page_index))))

    def with_page_size(self, page_size: int) -> "ViewState":
        return replace(self, pagination=PageState(page_index=0, page_size=int(page_size)))

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to plain data (lists and dicts only).

        Returns:
            Dictionary with one entry per field. ``expanded`` is either the
            string ``"all"`` or a list of row keys.
        """
        return {
            "sort": [{"column_key": s.column_key, "direction": s.direction} for s in self.sort],
            "column_filters": dict(self.column_filters),
            "global_filter": self.global_filter,
            "visibility": dict(self.visibility),
            "pinning": self.pinning.to_dict(),
            "sizing": dict(self.sizing),
            "grouping": list(self.grouping),
            "expanded": EXPANDED_ALL if self.expanded == EXPANDED_ALL else list(self.expanded),
            "selection": list(self.selection),
            "pagination": {
                "page_index": self.pagination.page_index,
                "page_size": self.pagination.page_size,
            },
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ViewState":
        """Deserialize from the output of ``to_dict``.

        Missing fields take their defaults. Row keys in ``selection`` and
        ``expanded`` must be hashable.

        Raises:
            ValueError: If a sort entry has an unknown direction or the page
                size is not positive.
        """
        sort = tuple(
            SortKey(str(s["column_key"]), s.get("direction", "asc"))
            for s in data.get("sort") or []
        )
        expanded_raw = data.get("expanded")
        if expanded_raw == EXPANDED_ALL:
            expanded: ExpandedState = EXPANDED_ALL
        else:
            expanded = frozenset(expanded_raw or ())
        page = data.get("pagination") or {}
        return cls(
            sort=sort,
            column_filters=dict(data.get("column_filters") or {}),
            global_filter=str(data.get("global_filter") or ""),
            visibility={str(k): bool(v) for k, v in (data.get("visibility") or {}).items()},
            pinning=ColumnPinning.from_dict(data.get("pinning")),
            sizing={str(k): int(v) for k, v in (data.get("sizing") or {}).items()},
            grouping=tuple(str(k) for k in data.get("grouping") or ()),
            expanded=expanded,
            selection=frozenset(data.get("selection") or ()),
            pagination=PageState(
                page_index=int(page.get("page_index", 0)),
                page_size=int(page.get("page_size", 10)),
            ),
        )
