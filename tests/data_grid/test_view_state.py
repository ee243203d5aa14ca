"""Unit tests for ViewState snapshots and filter conventions."""

import pytest

from nicetable.data_grid.filter_conventions import (
    FILTER_ALL,
    active_filters,
    format_filter_display,
    has_active_filters,
    is_empty_filter_value,
    matches,
    matches_exact,
)
from nicetable.data_grid.view_state import EXPANDED_ALL, ColumnPinning, PageState, SortKey, ViewState


def test_sort_key_rejects_unknown_direction():
    with pytest.raises(ValueError):
        SortKey("name", "up")  # type: ignore[arg-type]


def test_page_state_rejects_non_positive_size():
    with pytest.raises(ValueError):
        PageState(page_size=0)
    with pytest.raises(ValueError):
        ViewState().with_page_size(-5)


def test_with_helpers_return_new_snapshots():
    state = ViewState()
    updated = state.with_column_filter("city", "Lima").with_global_filter("x")
    assert state.column_filters == {}
    assert state.global_filter == ""
    assert updated.column_filters == {"city": "Lima"}
    assert updated.global_filter == "x"


def test_with_column_filter_none_removes_entry():
    state = ViewState().with_column_filter("city", "Lima").with_column_filter("city", None)
    assert "city" not in state.column_filters


def test_with_page_size_resets_page_index():
    state = ViewState().with_page_index(4).with_page_size(20)
    assert state.pagination == PageState(page_index=0, page_size=20)


def test_with_page_index_floors_at_zero():
    assert ViewState().with_page_index(-2).pagination.page_index == 0


def test_with_grouping_dedupes_in_order():
    assert ViewState().with_grouping(["city", "status", "city"]).grouping == ("city", "status")


def test_with_expanded_all_and_set():
    assert ViewState().with_expanded(EXPANDED_ALL).expanded == EXPANDED_ALL
    assert ViewState().with_expanded([1, 2]).expanded == frozenset({1, 2})


def test_equal_snapshots_compare_equal():
    a = ViewState().with_sort([SortKey("name")]).with_selection([1, 2])
    b = ViewState().with_selection([2, 1]).with_sort([SortKey("name", "asc")])
    assert a == b


def test_column_pinning_from_dict_keeps_key_on_one_side():
    pinning = ColumnPinning.from_dict({"left": ["id", "id", "name"], "right": ["name", "amount"]})
    assert pinning.left == ("id", "name")
    assert pinning.right == ("amount",)
    assert pinning.side_of("amount") == "right"
    assert pinning.side_of("city") == "none"


def test_to_dict_from_dict_round_trip():
    state = ViewState(
        sort=(SortKey("amount", "desc"),),
        column_filters={"status": ["activo"]},
        global_filter="cli",
        visibility={"email": False},
        pinning=ColumnPinning(left=("id",)),
        sizing={"name": 180},
        grouping=("city",),
        expanded=frozenset({"city:Lima"}),
        selection=frozenset({1, 3}),
        pagination=PageState(page_index=1, page_size=20),
    )
    d = state.to_dict()
    assert d["expanded"] == ["city:Lima"]
    assert d["pagination"] == {"page_index": 1, "page_size": 20}
    assert ViewState.from_dict(d) == state


def test_from_dict_defaults_and_expanded_all():
    state = ViewState.from_dict({"expanded": "all"})
    assert state.expanded == EXPANDED_ALL
    assert state.sort == ()
    assert state.pagination == PageState()


# ----------------------------------------------------------------------
# filter conventions
# ----------------------------------------------------------------------


@pytest.mark.parametrize("value", [None, "", "  ", FILTER_ALL, [], (), set()])
def test_empty_filter_values(value):
    assert is_empty_filter_value(value)


@pytest.mark.parametrize("value", ["a", 0, False, ["x"]])
def test_non_empty_filter_values(value):
    assert not is_empty_filter_value(value)


def test_active_filters_and_display():
    filters = {"status": "all", "city": "Lima", "id": []}
    assert active_filters(filters) == {"city": "Lima"}
    assert has_active_filters(filters)
    assert not has_active_filters({"status": FILTER_ALL})
    assert format_filter_display(filters) == "city=Lima"
    assert format_filter_display({}) == "All"


def test_matches_rules():
    assert matches("Madrid", "mad")
    assert not matches("Madrid", "lim")
    assert matches(None, ["", "x"])
    assert matches(3, ["1", "3"])
    assert matches(3, 3)
    assert matches(3, 3.0)
    assert not matches(3, 4)


def test_matches_exact_rules():
    assert matches_exact("activo", "activo")
    assert not matches_exact("inactivo", "activo")
    assert not matches_exact("Activo", "activo")
    assert matches_exact(2, "2")
    assert matches_exact("inactivo", ["activo", "inactivo"])
    assert not matches_exact("inactivo", ["activo"])
