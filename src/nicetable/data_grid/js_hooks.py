# src/nicetable/data_grid/js_hooks.py
from __future__ import annotations


def js_get_row_id(*, row_id_field: str) -> str:
    """Return an AG Grid `getRowId(params)` function reading the engine row id."""
    return f"(params) => params.data && String(params.data['{row_id_field}'])"


def js_on_cell_clicked(*, emit_event: str, row_id_field: str) -> str:
    """Return an AG Grid `onCellClicked(params)` hook that emits rowId + colId.

    The Python side decides what a click means (selection column, expander
    column, or a plain row click that opens the row actions).
    """
    return f"""
(params) => {{
  try {{
    const data = params?.data ?? null;
    const rowId = data ? String(data['{row_id_field}']) : null;
    const colId = params?.column?.getColId ? params.column.getColId() : null;

    emitEvent('{emit_event}', {{
      rowIndex: params?.rowIndex ?? null,
      rowId: rowId,
      colId: colId,
    }});
  }} catch (err) {{
    console.warn('[nicetable] onCellClicked failed', err);
  }}
}}
""".strip()


def js_on_column_header_clicked(*, emit_event: str) -> str:
    """Return an AG Grid `onColumnHeaderClicked(params)` hook that emits the colId.

    Native AG Grid sorting is disabled; header clicks are forwarded so the
    engine can cycle the sort. Shift-click requests a multi-column sort.
    """
    return f"""
(params) => {{
  try {{
    const colId = params?.column?.getColId ? params.column.getColId() : null;
    if (colId === null) return;
    const shift = Boolean(window.event && window.event.shiftKey);

    emitEvent('{emit_event}', {{
      colId: colId,
      multi: shift,
    }});
  }} catch (err) {{
    console.warn('[nicetable] onColumnHeaderClicked failed', err);
  }}
}}
""".strip()


def js_on_column_resized(*, emit_event: str) -> str:
    """Return an AG Grid `onColumnResized(params)` hook that emits the final width.

    Only user drags that finished are reported, so programmatic width
    updates from Python do not echo back.
    """
    return f"""
(params) => {{
  try {{
    if (!params?.finished) return;
    if (params?.source !== 'uiColumnResized' && params?.source !== 'uiColumnDragged') return;
    const column = params?.column ?? null;
    if (!column) return;

    emitEvent('{emit_event}', {{
      colId: column.getColId(),
      width: column.getActualWidth(),
    }});
  }} catch (err) {{
    console.warn('[nicetable] onColumnResized failed', err);
  }}
}}
""".strip()


def js_indent_cell_style(*, depth_field: str, indent_px: int) -> str:
    """Return a `cellStyle(params)` function indenting by row depth."""
    return f"(params) => ({{ paddingLeft: (6 + (params.data?.['{depth_field}'] ?? 0) * {int(indent_px)}) + 'px' }})"


def js_row_class_rules(*, group_field: str, selected_field: str) -> dict[str, str]:
    """Return AG Grid `rowClassRules` marking group rows and engine-selected rows."""
    return {
        "nicetable-group-row": f"(params) => Boolean(params.data?.['{group_field}'])",
        "nicetable-selected-row": f"(params) => Boolean(params.data?.['{selected_field}'])",
    }
