"""Column layout management: visibility, pinning and sizing.

All functions are pure: they take the current ViewState plus the column
registry and return a new ViewState (or a read-only view of it). Calls that
violate a column's capability flags are no-ops, and unknown column keys are
logged and ignored.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Optional

from nicetable.data_grid.config import ColumnDescriptor, GridConfig, index_columns
from nicetable.data_grid.view_state import ColumnPinning, PinSide, ViewState
from nicetable.utils.logging import get_logger

logger = get_logger(__name__)

Columns = Sequence[ColumnDescriptor[Any]]


@dataclass(frozen=True)
class ColumnLayout:
    """Visible columns split by pinned side, each part in display order."""

    left: tuple[ColumnDescriptor[Any], ...] = ()
    center: tuple[ColumnDescriptor[Any], ...] = ()
    right: tuple[ColumnDescriptor[Any], ...] = ()

    @property
    def ordered(self) -> list[ColumnDescriptor[Any]]:
        return [*self.left, *self.center, *self.right]

    @property
    def keys(self) -> list[str]:
        return [c.key for c in self.ordered]


def _lookup(columns: Columns, column_key: str, operation: str) -> Optional[ColumnDescriptor[Any]]:
    for col in columns:
        if col.key == column_key:
            return col
    logger.warning("%s: ignoring unknown column %r", operation, column_key)
    return None


# ----------------------------------------------------------------------
# Visibility
# ----------------------------------------------------------------------


def is_visible(state: ViewState, column: ColumnDescriptor[Any], config: Optional[GridConfig[Any]] = None) -> bool:
    """True if ``column`` is shown under ``state``.

    Non-hideable columns are always visible, and every column is visible when
    column visibility is disabled in ``config``.
    """
    if not column.capabilities.hideable:
        return True
    if config is not None and not config.enable_column_visibility:
        return True
    return bool(state.visibility.get(column.key, True))


def hideable_columns(columns: Columns) -> list[ColumnDescriptor[Any]]:
    """Columns offered in the visibility-toggle UI (``hideable=True`` only)."""
    return [c for c in columns if c.capabilities.hideable]


def set_visibility(
    state: ViewState,
    columns: Columns,
    column_key: str,
    visible: bool,
    config: Optional[GridConfig[Any]] = None,
) -> ViewState:
    """Show or hide one column. No-op for ``hideable=False`` columns."""
    if config is not None and not config.enable_column_visibility:
        return state
    col = _lookup(columns, column_key, "set_visibility")
    if col is None:
        return state
    if not col.capabilities.hideable:
        logger.debug("set_visibility: column %r is not hideable", column_key)
        return state
    visibility = dict(state.visibility)
    visibility[column_key] = bool(visible)
    return state.with_visibility(visibility)


def toggle_all_visibility(
    state: ViewState,
    columns: Columns,
    visible: bool,
    config: Optional[GridConfig[Any]] = None,
) -> ViewState:
    """Show or hide every hideable column at once."""
    if config is not None and not config.enable_column_visibility:
        return state
    visibility = dict(state.visibility)
    for col in hideable_columns(columns):
        visibility[col.key] = bool(visible)
    return state.with_visibility(visibility)


# ----------------------------------------------------------------------
# Pinning
# ----------------------------------------------------------------------


def pinned_side(state: ViewState, column_key: str) -> PinSide:
    return state.pinning.side_of(column_key)


def pin(
    state: ViewState,
    columns: Columns,
    column_key: str,
    side: PinSide,
    config: Optional[GridConfig[Any]] = None,
) -> ViewState:
    """Pin a column to ``side`` ("left", "right") or unpin it ("none").

    Pinning appends the key to the end of that side's list and removes it
    from the other side. No-op for ``pinnable=False`` columns.

    Raises:
        ValueError: If ``side`` is not one of "left", "right", "none".
    """
    if side not in ("left", "right", "none"):
        raise ValueError(f"Unknown pin side {side!r}")
    if config is not None and not config.enable_column_pinning:
        return state
    col = _lookup(columns, column_key, "pin")
    if col is None:
        return state
    if not col.capabilities.pinnable:
        logger.debug("pin: column %r is not pinnable", column_key)
        return state

    left = [k for k in state.pinning.left if k != column_key]
    right = [k for k in state.pinning.right if k != column_key]
    if side == "left":
        left.append(column_key)
    elif side == "right":
        right.append(column_key)
    return state.with_pinning(ColumnPinning(left=tuple(left), right=tuple(right)))


# ----------------------------------------------------------------------
# Sizing
# ----------------------------------------------------------------------


def clamp_width(column: ColumnDescriptor[Any], width: int) -> int:
    width = int(width)
    if column.min_width is not None:
        width = max(width, column.min_width)
    if column.max_width is not None:
        width = min(width, column.max_width)
    return width


def column_width(state: ViewState, column: ColumnDescriptor[Any]) -> Optional[int]:
    """Effective width: View-State sizing entry, else the column default."""
    width = state.sizing.get(column.key)
    if width is None:
        return column.default_width
    return width


def resize(
    state: ViewState,
    columns: Columns,
    column_key: str,
    width: int,
    config: Optional[GridConfig[Any]] = None,
) -> ViewState:
    """Set a column width, clamped to ``[min_width, max_width]`` when declared.

    Non-resizable columns reject the call and the state is returned unchanged.
    """
    if config is not None and not config.enable_column_sizing:
        return state
    col = _lookup(columns, column_key, "resize")
    if col is None:
        return state
    if not col.capabilities.resizable:
        logger.debug("resize: column %r is not resizable", column_key)
        return state
    sizing = dict(state.sizing)
    sizing[column_key] = clamp_width(col, width)
    return state.with_sizing(sizing)


def reset_sizing(state: ViewState) -> ViewState:
    return state.with_sizing({})


# ----------------------------------------------------------------------
# Layout
# ----------------------------------------------------------------------


def visible_columns(
    state: ViewState,
    columns: Columns,
    config: Optional[GridConfig[Any]] = None,
) -> ColumnLayout:
    """Split the visible columns into left-pinned, center and right-pinned parts.

    Pinned parts follow the order of the pinning lists; the center keeps
    registry order. Stale keys in the pinning lists are skipped.
    """
    by_key = index_columns(columns)
    shown = {c.key for c in columns if is_visible(state, c, config)}

    pinning_enabled = config is None or config.enable_column_pinning
    left_keys: list[str] = []
    right_keys: list[str] = []
    if pinning_enabled:
        for k in state.pinning.left:
            col = by_key.get(k)
            if col is not None and col.capabilities.pinnable and k in shown:
                left_keys.append(k)
        for k in state.pinning.right:
            col = by_key.get(k)
            if col is not None and col.capabilities.pinnable and k in shown and k not in left_keys:
                right_keys.append(k)

    pinned = set(left_keys) | set(right_keys)
    return ColumnLayout(
        left=tuple(by_key[k] for k in left_keys),
        center=tuple(c for c in columns if c.key in shown and c.key not in pinned),
        right=tuple(by_key[k] for k in right_keys),
    )
