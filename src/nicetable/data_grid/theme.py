"""Stylesheet for DataGridView, switched on by classes on the grid container."""

from __future__ import annotations

from nicegui import ui

from nicetable.data_grid.config import ViewConfig

ZEBRA_CLASS = "nicetable-zebra"
TIGHT_CLASS = "nicetable-tight"

_THEME_CSS = """
<style>
.nicetable-zebra .ag-row-even .ag-cell {
    background-color: #f7f7f7;
}
.nicetable-zebra .ag-row-odd .ag-cell {
    background-color: #ffffff;
}

.nicetable-tight .ag-cell,
.nicetable-tight .ag-header-cell {
    padding: 2px 6px;
    font-size: 0.80rem;
    line-height: 1.2;
}

/* set by rowClassRules */
.nicetable-group-row .ag-cell {
    font-weight: 600;
    background-color: #eef2f7;
}
.nicetable-selected-row .ag-cell {
    background-color: #dbeafe;
}

.nicetable-control-cell {
    cursor: pointer;
    user-select: none;
    text-align: center;
}
.ag-header-cell.nicetable-sortable-header {
    cursor: pointer;
}
</style>
"""

_theme_injected: bool = False


def container_classes(view_config: ViewConfig) -> str:
    """Tailwind and theme classes for the column wrapping toolbar, grid and pager."""
    classes = ["w-full", "min-w-0", "gap-2", view_config.theme_class]
    if view_config.zebra_rows:
        classes.append(ZEBRA_CLASS)
    if view_config.tight_layout:
        classes.append(TIGHT_CLASS)
    return " ".join(classes)


def ensure_aggrid_theme() -> None:
    """Add the stylesheet to the page head on first use."""
    global _theme_injected
    if _theme_injected:
        return
    ui.add_head_html(_THEME_CSS)
    _theme_injected = True
