"""Tests for the pure AG Grid option builders of DataGridView (no NiceGUI client)."""

from nicetable.data_grid.config import GridConfig, ViewConfig
from nicetable.data_grid.data_grid_view import (
    EXPAND_COL_ID,
    ROW_ID_FIELD,
    SELECT_COL_ID,
    build_column_defs,
    build_row_data,
    header_name,
    row_key,
    search_input_props,
    select_header_text,
)
from nicetable.data_grid.engine import DataGridEngine
from nicetable.data_grid.js_hooks import js_on_cell_clicked, js_on_column_header_clicked
from nicetable.data_grid.pipeline import GroupId
from nicetable.data_grid.view_state import SortKey, ViewState


def test_header_name_marks_sort_direction(customer_columns):
    name = customer_columns[1]
    assert header_name(name, ViewState()) == "Nombre"
    assert header_name(name, ViewState(sort=(SortKey("name", "desc"),))) == "Nombre ▼"
    multi = ViewState(sort=(SortKey("city"), SortKey("name")))
    assert header_name(name, multi) == "Nombre ▲2"


def test_column_defs_follow_layout(customers, customer_columns, grid_config):
    engine = DataGridEngine(customers, customer_columns, grid_config)
    engine.pin_column("amount", "left")
    engine.set_column_visibility("city", False)
    engine.resize_column("name", 200)

    defs = build_column_defs(engine.get_visible_columns(), engine.state, engine.config)
    assert [d["colId"] for d in defs] == [SELECT_COL_ID, "amount", "id", "name", "status"]
    amount = defs[1]
    assert amount["pinned"] == "left"
    assert amount["sortable"] is False and amount["filter"] is False
    assert defs[3]["width"] == 200
    assert defs[3]["resizable"] is True


def test_column_defs_without_selection_or_sizing(customers, customer_columns):
    config = GridConfig(get_row_id=lambda r: r["id"])
    engine = DataGridEngine(customers, customer_columns, config)
    defs = build_column_defs(engine.get_visible_columns(), engine.state, config, show_expander=True)
    assert defs[0]["colId"] == EXPAND_COL_ID
    assert all(d["resizable"] is False for d in defs)
    assert SELECT_COL_ID not in [d["colId"] for d in defs]


def test_row_data_for_leaf_rows(customers, customer_columns, grid_config):
    engine = DataGridEngine(customers, customer_columns, grid_config)
    engine.toggle_row_selection(2)
    data = build_row_data(engine.view(), engine.get_visible_columns())
    assert len(data) == 10
    assert data[0][ROW_ID_FIELD] == "1"
    assert data[0]["name"] == "Cliente 01"
    assert data[1][SELECT_COL_ID] == "☑"
    assert data[0][SELECT_COL_ID] == "☐"


def test_row_data_for_group_rows(customers, customer_columns, grid_config):
    engine = DataGridEngine(customers, customer_columns, grid_config)
    engine.set_grouping(["city"])
    engine.toggle_expanded(GroupId.of(("city", "Lima")))
    data = build_row_data(engine.view(), engine.get_visible_columns())
    lima = data[0]
    assert lima[ROW_ID_FIELD] == row_key(GroupId.of(("city", "Lima")))
    assert lima["city"] == "Lima (9)"
    assert lima["amount"] == 1170.0
    assert lima["name"] == ""
    assert lima[EXPAND_COL_ID] == "▾"
    assert data[1]["__depth__"] == 1
    assert data[10][EXPAND_COL_ID] == "▸"


def test_select_header_text(customers, customer_columns, grid_config):
    engine = DataGridEngine(customers, customer_columns, grid_config)
    assert select_header_text(engine) == "☐"
    engine.toggle_row_selection(1)
    assert select_header_text(engine) == "◪"
    engine.select_all_page_rows()
    assert select_header_text(engine) == "☑"


def test_js_hooks_embed_event_names():
    assert "emitEvent('evt_cell'" in js_on_cell_clicked(emit_event="evt_cell", row_id_field=ROW_ID_FIELD)
    assert "data['__row_id__']" in js_on_cell_clicked(emit_event="evt_cell", row_id_field=ROW_ID_FIELD)
    assert "emitEvent('evt_header'" in js_on_column_header_clicked(emit_event="evt_header")


def test_row_key_keeps_types_apart():
    assert row_key(1) == "1"
    assert row_key(1) != row_key("1")
    assert row_key(GroupId.of(("code", 1))) != row_key(GroupId.of(("code", "1")))


def test_search_input_is_debounced():
    assert "debounce=300" in search_input_props(ViewConfig())
    assert "debounce=0" in search_input_props(ViewConfig(search_debounce_ms=0))
