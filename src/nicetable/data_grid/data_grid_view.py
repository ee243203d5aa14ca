# src/nicetable/data_grid/data_grid_view.py
from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, Generic, Optional, TypeVar

from nicegui import events, ui

from nicetable.data_grid.actions import Authorizer, RowAction, StaticAuthorizer, TableAction
from nicetable.data_grid.column_layout import ColumnLayout, column_width
from nicetable.data_grid.config import ColumnDescriptor, GridConfig, RowKey, ViewConfig
from nicetable.data_grid.engine import DataGridEngine
from nicetable.data_grid.js_hooks import (
    js_get_row_id,
    js_indent_cell_style,
    js_on_cell_clicked,
    js_on_column_header_clicked,
    js_on_column_resized,
    js_row_class_rules,
)
from nicetable.data_grid.pagination import ELLIPSIS, page_numbers
from nicetable.data_grid.pipeline import DerivedView, RenderedRow
from nicetable.data_grid.selection import selection_count_label
from nicetable.data_grid.theme import container_classes, ensure_aggrid_theme
from nicetable.data_grid.view_state import ViewState
from nicetable.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Reserved row-data fields; column keys must not start with "__".
ROW_ID_FIELD = "__row_id__"
DEPTH_FIELD = "__depth__"
GROUP_FIELD = "__group__"
SELECTED_FIELD = "__selected__"
SELECT_COL_ID = "__select__"
EXPAND_COL_ID = "__expand__"

SORT_ASC_MARK = " ▲"
SORT_DESC_MARK = " ▼"


# ----------------------------------------------------------------------
# Pure builders (no NiceGUI client required)
# ----------------------------------------------------------------------


def header_name(column: ColumnDescriptor[Any], state: ViewState) -> str:
    """Column label with the sort direction (and priority for multi-sort)."""
    label = column.label
    for i, sk in enumerate(state.sort):
        if sk.column_key != column.key:
            continue
        mark = SORT_DESC_MARK if sk.descending else SORT_ASC_MARK
        if len(state.sort) > 1:
            mark += str(i + 1)
        return label + mark
    return label


def build_column_defs(
    layout: ColumnLayout,
    state: ViewState,
    grid_config: GridConfig[Any],
    view_config: Optional[ViewConfig] = None,
    *,
    show_expander: bool = False,
) -> list[dict[str, Any]]:
    """AG Grid columnDefs for the visible columns, in left/center/right order.

    Native AG Grid sorting and filtering are switched off; the engine owns both.
    """
    view_config = view_config or ViewConfig()
    defs: list[dict[str, Any]] = []

    if grid_config.enable_row_selection:
        defs.append(
            {
                "headerName": "",
                "colId": SELECT_COL_ID,
                "field": SELECT_COL_ID,
                "width": 44,
                "minWidth": 44,
                "maxWidth": 44,
                "pinned": "left",
                "sortable": False,
                "filter": False,
                "resizable": False,
                "suppressMovable": True,
                "lockPosition": True,
                "cellClass": "nicetable-control-cell",
            }
        )

    if show_expander:
        defs.append(
            {
                "headerName": "",
                "colId": EXPAND_COL_ID,
                "field": EXPAND_COL_ID,
                "width": 72,
                "minWidth": 48,
                "pinned": "left",
                "sortable": False,
                "filter": False,
                "resizable": False,
                "suppressMovable": True,
                "lockPosition": True,
                "cellClass": "nicetable-control-cell",
                ":cellStyle": js_indent_cell_style(depth_field=DEPTH_FIELD, indent_px=view_config.indent_px),
            }
        )

    parts = (("left", layout.left), (None, layout.center), ("right", layout.right))
    for side, cols in parts:
        for col in cols:
            col_def: dict[str, Any] = {
                "headerName": header_name(col, state),
                "colId": col.key,
                "field": col.key,
                "sortable": False,
                "filter": False,
                "resizable": grid_config.enable_column_sizing and col.capabilities.resizable,
                "suppressMovable": True,
            }
            if col.capabilities.sortable:
                col_def["headerClass"] = "nicetable-sortable-header"
            if side is not None:
                col_def["pinned"] = side
            width = column_width(state, col)
            if width is not None:
                col_def["width"] = width
            if col.min_width is not None:
                col_def["minWidth"] = col.min_width
            if col.max_width is not None:
                col_def["maxWidth"] = col.max_width
            defs.append(col_def)

    return defs


def row_key(row_id: RowKey) -> str:
    """String key for a row id in AG Grid row data.

    ``repr`` keeps ids of different types apart: ``1`` and ``"1"`` (or group
    ids built from them) map to different keys.
    """
    return repr(row_id)


def search_input_props(view_config: ViewConfig) -> str:
    """Quasar props for the global search input."""
    return f"dense outlined clearable debounce={view_config.search_debounce_ms}"


def _cell_value(row: RenderedRow[Any], col: ColumnDescriptor[Any]) -> Any:
    if not row.is_grouped:
        return col.display(row.original)
    if col.key == row.grouping_column_key:
        return f"{row.group_value} ({row.sub_row_count})"
    return row.aggregates.get(col.key, "")


def _expander_text(row: RenderedRow[Any]) -> str:
    if not row.can_expand:
        return ""
    return "▾" if row.is_expanded else "▸"


def build_row_data(view: DerivedView[Any], layout: ColumnLayout) -> list[dict[str, Any]]:
    """AG Grid rowData for the rendered rows of the current page.

    Each dict carries the engine row id (as ``row_key``), the depth, group and
    selection flags, and one display value per visible column.
    """
    data: list[dict[str, Any]] = []
    for row in view.rows:
        item: dict[str, Any] = {
            ROW_ID_FIELD: row_key(row.row_id),
            DEPTH_FIELD: row.depth,
            GROUP_FIELD: row.is_grouped,
            SELECTED_FIELD: row.is_selected,
            SELECT_COL_ID: "☑" if row.is_selected else "☐",
            EXPAND_COL_ID: _expander_text(row),
        }
        for col in layout.ordered:
            item[col.key] = _cell_value(row, col)
        data.append(item)
    return data


def select_header_text(engine: DataGridEngine[Any]) -> str:
    if engine.is_all_page_rows_selected():
        return "☑"
    if engine.is_some_page_rows_selected():
        return "◪"
    return "☐"


# ----------------------------------------------------------------------
# NiceGUI surface
# ----------------------------------------------------------------------


class DataGridView(Generic[T]):
    """NiceGUI rendering surface driven by a DataGridEngine.

    Layout (top to bottom):
        toolbar      - global search, table actions, column menu
        grid         - ui.aggrid showing the engine's rendered rows
        action bar   - authorized row actions for the last clicked row
        pagination   - "Mostrando X a Y de Z", page size, page buttons

    AG Grid only displays; sorting, filtering, grouping, selection and
    pagination all run in the engine. Header clicks, cell clicks and column
    resizes are forwarded from JS hooks via ``emitEvent``.

    Public API:
        engine: the DataGridEngine
        refresh(): re-render from the engine (call after external mutations)
        set_rows(rows): replace the Row Store and refresh
        on_row_clicked(handler): handler(row) with the original row object
    """

    def __init__(
        self,
        engine: DataGridEngine[T],
        *,
        view_config: Optional[ViewConfig] = None,
        row_actions: Sequence[RowAction[T]] = (),
        table_actions: Sequence[TableAction] = (),
        authorizer: Optional[Authorizer] = None,
        selection_noun: tuple[str, str] = ("fila seleccionada", "filas seleccionadas"),
        parent: ui.element | None = None,
        runtimeWidgetName: str = "UNDEFINED",
    ) -> None:
        ensure_aggrid_theme()

        self._engine: DataGridEngine[T] = engine
        self._view_config: ViewConfig = view_config or ViewConfig()
        self._row_actions: list[RowAction[T]] = list(row_actions)
        self._table_actions: list[TableAction] = list(table_actions)
        self._authorizer: Authorizer = authorizer or StaticAuthorizer()
        self._selection_noun = selection_noun
        self._runtimeWidgetName: str = runtimeWidgetName

        # Instance-unique emitted event names (avoid collisions across multiple grids)
        self._evt_cell: str = f"nicetable_cell_{id(self)}"
        self._evt_header: str = f"nicetable_header_{id(self)}"
        self._evt_resize: str = f"nicetable_resize_{id(self)}"

        # row_key(row id) -> rendered row of the last render
        self._rendered_by_id: dict[str, RenderedRow[T]] = {}
        self._active_row: Optional[T] = None
        self._row_clicked_handlers: list[Callable[[T], None]] = []

        self._container: ui.element = parent or ui.column()
        self._container.classes(container_classes(self._view_config))

        with self._container:
            self._build_toolbar()
            self._grid = (
                ui.aggrid(self._build_grid_options())
                .classes(f"w-full {self._view_config.theme_class}")
                .style("height: 420px;")
            )
            self._action_bar = ui.row().classes("items-center gap-2")
            self._pagination_bar = ui.row().classes("w-full items-center justify-between")

        ui.on(self._evt_cell, self._on_cell_emitted)
        ui.on(self._evt_header, self._on_header_emitted)
        ui.on(self._evt_resize, self._on_resize_emitted)

        self.refresh()

        logger.info(
            "DataGridView initialized: _runtimeWidgetName=%s row_actions=%s table_actions=%s",
            self._runtimeWidgetName,
            len(self._row_actions),
            len(self._table_actions),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def engine(self) -> DataGridEngine[T]:
        return self._engine

    @property
    def grid(self) -> ui.aggrid:
        """Underlying NiceGUI `ui.aggrid` element (escape hatch)."""
        return self._grid

    def on_row_clicked(self, handler: Callable[[T], None]) -> None:
        """Register handler(row) fired when a leaf row is clicked."""
        self._row_clicked_handlers.append(handler)

    def set_rows(self, rows: Any) -> None:
        self._engine.set_rows(rows)
        self._active_row = None
        self.refresh()

    def refresh(self) -> None:
        """Re-derive from the engine and push columnDefs/rowData to the grid."""
        engine = self._engine
        view = engine.view()
        layout = engine.get_visible_columns()

        self._rendered_by_id = {row_key(r.row_id): r for r in view.rows}

        column_defs = build_column_defs(
            layout,
            engine.state,
            engine.config,
            self._view_config,
            show_expander=self._show_expander(),
        )
        if engine.config.enable_row_selection and column_defs:
            column_defs[0]["headerName"] = select_header_text(engine)

        self._grid.options["columnDefs"] = column_defs
        self._grid.options["rowData"] = build_row_data(view, layout)
        self._grid.update()

        self._refresh_column_menu()
        self._refresh_selection_label()
        self._refresh_action_bar()
        self._refresh_pagination()

    # ------------------------------------------------------------------
    # Internal: building
    # ------------------------------------------------------------------

    def _show_expander(self) -> bool:
        cfg = self._engine.config
        grouped = cfg.enable_grouping and bool(self._engine.state.grouping)
        return grouped or (cfg.enable_expanding and cfg.get_sub_rows is not None)

    def _build_grid_options(self) -> dict[str, Any]:
        vc = self._view_config
        return {
            "columnDefs": [],
            "rowData": [],
            "defaultColDef": {"sortable": False, "filter": False, "resizable": False},
            "rowHeight": vc.row_height,
            "headerHeight": vc.header_height,
            "suppressRowHoverHighlight": False,
            "suppressCellFocus": True,
            "overlayNoRowsTemplate": vc.empty_message,
            ":getRowId": js_get_row_id(row_id_field=ROW_ID_FIELD),
            ":onCellClicked": js_on_cell_clicked(emit_event=self._evt_cell, row_id_field=ROW_ID_FIELD),
            ":onColumnHeaderClicked": js_on_column_header_clicked(emit_event=self._evt_header),
            ":onColumnResized": js_on_column_resized(emit_event=self._evt_resize),
            ":rowClassRules": js_row_class_rules(group_field=GROUP_FIELD, selected_field=SELECTED_FIELD),
        }

    def _build_toolbar(self) -> None:
        vc = self._view_config
        with ui.row().classes("w-full items-center gap-2"):
            if vc.show_search:
                ui.input(
                    placeholder=vc.search_placeholder,
                    value=self._engine.state.global_filter,
                    on_change=self._on_search_changed,
                ).props(search_input_props(vc)).classes("w-64")

            self._selection_label = ui.label("").classes("text-sm opacity-80")
            ui.space()

            for action in self._engine.get_table_actions(self._table_actions, self._authorizer):
                button = ui.button(action.label, on_click=lambda a=action: self._on_table_action(a))
                if action.icon:
                    button.props(f"icon={action.icon}")
                if action.variant == "destructive":
                    button.props("color=negative")
                if action.disabled:
                    button.disable()

            self._column_menu_button = ui.button(icon="view_column").props("flat dense")
            with self._column_menu_button:
                self._column_menu = ui.menu()
            if not (vc.show_column_menu and self._engine.config.enable_column_visibility):
                self._column_menu_button.set_visibility(False)

    def _refresh_column_menu(self) -> None:
        engine = self._engine
        self._column_menu.clear()
        with self._column_menu:
            with ui.column().classes("p-2 gap-1"):
                for col in engine.get_hideable_columns():
                    visible = engine.state.visibility.get(col.key, True)
                    with ui.row().classes("items-center gap-2 no-wrap"):
                        ui.checkbox(
                            col.label,
                            value=visible,
                            on_change=lambda e, key=col.key: self._on_visibility_changed(key, bool(e.value)),
                        )
                        if engine.config.enable_column_pinning and col.capabilities.pinnable:
                            ui.select(
                                {"none": "-", "left": "⇤", "right": "⇥"},
                                value=engine.state.pinning.side_of(col.key),
                                on_change=lambda e, key=col.key: self._on_pin_changed(key, e.value),
                            ).props("dense borderless").classes("w-12")
                with ui.row().classes("gap-1"):
                    ui.button("Mostrar todas", on_click=lambda: self._on_toggle_all_columns(True)).props("flat dense")
                    ui.button("Ocultar todas", on_click=lambda: self._on_toggle_all_columns(False)).props("flat dense")

    def _refresh_selection_label(self) -> None:
        count = len(self._engine.state.selection)
        if count and self._engine.config.enable_row_selection:
            singular, plural = self._selection_noun
            self._selection_label.set_text(selection_count_label(count, singular, plural))
        else:
            self._selection_label.set_text("")

    def _refresh_action_bar(self) -> None:
        self._action_bar.clear()
        row = self._active_row
        if row is None or not self._row_actions:
            return
        items = self._engine.get_row_actions(row, self._row_actions, self._authorizer)
        with self._action_bar:
            ui.label(f"Acciones ({self._engine.row_id(row)}):").classes("text-sm opacity-80")
            for item in items:
                button = ui.button(item.label, on_click=lambda it=item: self._on_row_action(it.action, row))
                button.props("dense flat" + (" color=negative" if item.variant == "destructive" else ""))
                if item.icon:
                    button.props(f"icon={item.icon}")
                if item.disabled:
                    button.disable()
                if item.separator_after:
                    ui.separator().props("vertical")

    def _refresh_pagination(self) -> None:
        self._pagination_bar.clear()
        if not self._view_config.show_pagination:
            return
        engine = self._engine
        info = engine.get_page_info()
        with self._pagination_bar:
            ui.label(info.summary()).classes("text-sm opacity-80")
            with ui.row().classes("items-center gap-1"):
                ui.select(
                    list(engine.config.page_size_options),
                    value=engine.state.pagination.page_size,
                    on_change=self._on_page_size_changed,
                ).props("dense borderless").classes("w-16")
                ui.button(icon="chevron_left", on_click=self._on_previous_page).props("flat dense").set_enabled(
                    info.can_previous
                )
                for item in page_numbers(info.page_number, info.page_count):
                    if item == ELLIPSIS:
                        ui.label("…").classes("px-1")
                        continue
                    button = ui.button(str(item), on_click=lambda n=item: self._on_go_to_page(n)).props("dense")
                    if item != info.page_number:
                        button.props("flat")
                ui.button(icon="chevron_right", on_click=self._on_next_page).props("flat dense").set_enabled(
                    info.can_next
                )
                ui.label(info.page_label()).classes("text-sm opacity-80 ml-2")

    # ------------------------------------------------------------------
    # Internal: UI callbacks
    # ------------------------------------------------------------------

    def _apply(self, mutate: Callable[[], Any]) -> None:
        try:
            mutate()
        except Exception:
            logger.exception("Error applying grid state change")
        self.refresh()

    def _on_search_changed(self, e: events.ValueChangeEventArguments) -> None:
        self._apply(lambda: self._engine.set_global_filter(e.value or ""))

    def _on_visibility_changed(self, column_key: str, visible: bool) -> None:
        self._apply(lambda: self._engine.set_column_visibility(column_key, visible))

    def _on_toggle_all_columns(self, visible: bool) -> None:
        self._apply(lambda: self._engine.toggle_all_columns_visible(visible))

    def _on_pin_changed(self, column_key: str, side: Any) -> None:
        self._apply(lambda: self._engine.pin_column(column_key, side or "none"))

    def _on_page_size_changed(self, e: events.ValueChangeEventArguments) -> None:
        self._apply(lambda: self._engine.set_page_size(int(e.value)))

    def _on_previous_page(self) -> None:
        self._apply(self._engine.previous_page)

    def _on_next_page(self) -> None:
        self._apply(self._engine.next_page)

    def _on_go_to_page(self, page_number: int) -> None:
        self._apply(lambda: self._engine.set_page_index(page_number - 1))

    def _on_table_action(self, action: TableAction) -> None:
        if action.disabled or action.on_invoke is None:
            return
        try:
            action.on_invoke()
        except Exception:
            logger.exception("Error in table action %r", action.label)
        self.refresh()

    def _on_row_action(self, action: RowAction[T], row: T) -> None:
        try:
            self._engine.invoke_row_action(action, row)
        except Exception:
            logger.exception("Error in row action handler")
        self.refresh()

    # ------------------------------------------------------------------
    # Internal: emitted event handlers
    # ------------------------------------------------------------------

    def _resolve(self, row_id: Any) -> Optional[RenderedRow[T]]:
        if row_id is None:
            return None
        return self._rendered_by_id.get(str(row_id))

    def _on_cell_emitted(self, e: events.GenericEventArguments) -> None:
        """Dispatch a cell click: selection toggle, expand toggle, or row click."""
        args: dict[str, Any] = e.args or {}
        rendered = self._resolve(args.get("rowId"))
        if rendered is None:
            return
        col_id = args.get("colId")
        key: RowKey = rendered.row_id

        if col_id == SELECT_COL_ID:
            self._apply(lambda: self._engine.toggle_row_selection(key))
            return
        if col_id == EXPAND_COL_ID or rendered.is_grouped:
            if rendered.can_expand:
                self._apply(lambda: self._engine.toggle_expanded(key))
            return

        self._active_row = rendered.original
        for handler in list(self._row_clicked_handlers):
            try:
                handler(rendered.original)
            except Exception:
                logger.exception("Error in row_clicked handler")
        self._refresh_action_bar()

    def _on_header_emitted(self, e: events.GenericEventArguments) -> None:
        args: dict[str, Any] = e.args or {}
        col_id = args.get("colId")
        if col_id is None or col_id == EXPAND_COL_ID:
            return
        if col_id == SELECT_COL_ID:
            self._apply(self._engine.toggle_all_page_rows_selected)
            return
        multi = bool(args.get("multi"))
        self._apply(lambda: self._engine.toggle_sort(str(col_id), multi=multi))

    def _on_resize_emitted(self, e: events.GenericEventArguments) -> None:
        args: dict[str, Any] = e.args or {}
        col_id = args.get("colId")
        width = args.get("width")
        if col_id is None or width is None or str(col_id).startswith("__"):
            return
        try:
            w = int(width)
        except (TypeError, ValueError):
            return
        # widths only live in engine state; no re-render needed
        try:
            self._engine.resize_column(str(col_id), w)
        except Exception:
            logger.exception("Error in column_resized handler")
