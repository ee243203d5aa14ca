"""Unit tests for the derivation pipeline (filter -> group -> sort -> paginate -> annotate)."""

import pytest

from nicetable.data_grid.config import ColumnCapabilities, ColumnDescriptor, GridConfig
from nicetable.data_grid.pipeline import GroupId, aggregate, clamp_page_index, derive, derive_view, expandable_row_ids
from nicetable.data_grid.view_state import PageState, SortKey, ViewState


def _ids(view_or_rows):
    rows = getattr(view_or_rows, "rows", view_or_rows)
    return [r.row_id for r in rows]


def _city(name):
    return GroupId.of(("city", name))


def test_first_page_of_25_rows(customers, customer_columns, grid_config):
    view = derive_view(customers, customer_columns, ViewState(), grid_config)
    assert len(view.rows) == 10
    assert view.page_count == 3
    assert view.total_row_count == 25
    assert _ids(view) == list(range(1, 11))


def test_last_page_is_partial(customers, customer_columns, grid_config):
    state = ViewState(pagination=PageState(page_index=2, page_size=10))
    view = derive_view(customers, customer_columns, state, grid_config)
    assert _ids(view) == list(range(21, 26))


def test_empty_rows_have_zero_pages(customer_columns, grid_config):
    view = derive_view([], customer_columns, ViewState(), grid_config)
    assert view.rows == []
    assert view.page_count == 0
    assert view.page_index == 0


def test_page_index_is_clamped_when_filter_shrinks_dataset(customers, customer_columns, grid_config):
    state = ViewState(
        column_filters={"status": ["activo"]},
        pagination=PageState(page_index=2, page_size=10),
    )
    view = derive_view(customers, customer_columns, state, grid_config)
    # 12 "activo" rows -> 2 pages, last page index 1
    assert view.page_index == 1
    assert _ids(view) == [22, 24]
    # the input state is never mutated
    assert state.pagination.page_index == 2


def test_clamp_page_index_bounds():
    assert clamp_page_index(-3, 25, 10) == 0
    assert clamp_page_index(7, 25, 10) == 2
    assert clamp_page_index(5, 0, 10) == 0


def test_string_filter_is_case_insensitive_substring(customers, customer_columns, grid_config):
    state = ViewState(column_filters={"city": "lim"})
    view = derive_view(customers, customer_columns, state, grid_config)
    assert view.total_row_count == 9
    assert all(r.original["city"] == "Lima" for r in view.rows)


def test_list_filter_matches_membership_as_strings(customers, customer_columns, grid_config):
    state = ViewState(column_filters={"id": ["2", 3]})
    assert _ids(derive(customers, customer_columns, state, grid_config)) == [2, 3]


@pytest.mark.parametrize("value", ["all", "", "   ", None, []])
def test_empty_filter_values_do_not_filter(customers, customer_columns, grid_config, value):
    state = ViewState(column_filters={"status": value})
    assert derive_view(customers, customer_columns, state, grid_config).total_row_count == 25


def test_custom_filter_fn(customers, grid_config):
    columns = [
        ColumnDescriptor.from_field("id"),
        ColumnDescriptor.from_field("amount", filter_fn=lambda cell, minimum: cell >= minimum),
    ]
    state = ViewState(column_filters={"amount": 230.0})
    assert _ids(derive(customers, columns, state, grid_config)) == [23, 24, 25]


def test_non_filterable_column_is_never_consulted(customers, grid_config):
    columns = [
        ColumnDescriptor.from_field("id"),
        ColumnDescriptor.from_field("city", capabilities=ColumnCapabilities(filterable=False)),
    ]
    column_state = ViewState(column_filters={"city": "Lima"})
    assert derive_view(customers, columns, column_state, grid_config).total_row_count == 25

    global_state = ViewState(global_filter="Lima")
    assert derive_view(customers, columns, global_state, grid_config).total_row_count == 0


def test_global_filter_uses_visible_columns_only(customers, customer_columns, grid_config):
    state = ViewState(global_filter="cliente 0")
    assert derive_view(customers, customer_columns, state, grid_config).total_row_count == 9

    hidden = ViewState(global_filter="cliente 0", visibility={"name": False})
    assert derive_view(customers, customer_columns, hidden, grid_config).total_row_count == 0


def test_column_filtering_disabled_keeps_global_filter(customers, customer_columns):
    config = GridConfig(enable_column_filtering=False, get_row_id=lambda r: r["id"])
    state = ViewState(column_filters={"city": "Lima"}, global_filter="Cliente 2")
    view = derive_view(customers, customer_columns, state, config)
    assert view.total_row_count == 6  # Cliente 20..25


def test_select_filter_matches_whole_value(customers, customer_columns, grid_config):
    state = ViewState(column_filters={"status": "activo"})
    view = derive_view(customers, customer_columns, state, grid_config)
    assert view.total_row_count == 12
    assert all(r.original["status"] == "activo" for r in view.rows)

    text_columns = [c for c in customer_columns if c.key != "status"]
    text_columns.append(ColumnDescriptor.from_field("status"))
    assert derive_view(customers, text_columns, state, grid_config).total_row_count == 25


def test_global_filter_keeps_surrounding_spaces(grid_config):
    rows = [{"id": 1, "name": "Ana Maria"}, {"id": 2, "name": "Anabel"}]
    columns = [ColumnDescriptor.from_field("name")]
    assert _ids(derive(rows, columns, ViewState(global_filter="Ana "), grid_config)) == [1]
    assert _ids(derive(rows, columns, ViewState(global_filter="   "), grid_config)) == [1, 2]


def test_sort_descending(customers, customer_columns, grid_config):
    state = ViewState(sort=(SortKey("amount", "desc"),))
    assert _ids(derive(customers, customer_columns, state, grid_config))[:3] == [25, 24, 23]


def test_sort_is_stable(customers, customer_columns, grid_config):
    state = ViewState(sort=(SortKey("status"),), pagination=PageState(page_size=25))
    ids = _ids(derive(customers, customer_columns, state, grid_config))
    assert ids == [*range(2, 25, 2), *range(1, 26, 2)]


def test_multi_key_sort_breaks_ties_with_second_key(customers, customer_columns, grid_config):
    state = ViewState(
        sort=(SortKey("city"), SortKey("amount", "desc")),
        pagination=PageState(page_size=25),
    )
    ids = _ids(derive(customers, customer_columns, state, grid_config))
    # Lima first (case-insensitive alphabetical), highest amount first within the city
    assert ids[:3] == [25, 22, 19]


def test_none_sorts_last_in_both_directions(grid_config):
    rows = [{"id": 1, "v": 3}, {"id": 2, "v": None}, {"id": 3, "v": 1}]
    columns = [ColumnDescriptor.from_field("id"), ColumnDescriptor.from_field("v")]
    asc = ViewState(sort=(SortKey("v", "asc"),))
    desc = ViewState(sort=(SortKey("v", "desc"),))
    assert _ids(derive(rows, columns, asc, grid_config)) == [3, 1, 2]
    assert _ids(derive(rows, columns, desc, grid_config)) == [1, 3, 2]


def test_nan_sorts_last_and_is_skipped_by_aggregations(grid_config):
    nan = float("nan")
    rows = [{"id": 1, "v": 2.0}, {"id": 2, "v": nan}, {"id": 3, "v": 1.0}, {"id": 4, "v": nan}]
    columns = [ColumnDescriptor.from_field("id"), ColumnDescriptor.from_field("v")]
    assert _ids(derive(rows, columns, ViewState(sort=(SortKey("v"),)), grid_config)) == [3, 1, 2, 4]
    assert _ids(derive(rows, columns, ViewState(sort=(SortKey("v", "desc"),)), grid_config)) == [1, 3, 2, 4]
    assert aggregate([2.0, nan, 1.0], "sum") == 3.0
    assert aggregate([2.0, nan, None], "max") == 2.0


def test_non_sortable_and_unknown_sort_keys_are_ignored(customers, grid_config):
    columns = [
        ColumnDescriptor.from_field("id", capabilities=ColumnCapabilities(sortable=False)),
        ColumnDescriptor.from_field("name"),
    ]
    state = ViewState(sort=(SortKey("id", "desc"), SortKey("missing")))
    assert _ids(derive(customers, columns, state, grid_config)) == list(range(1, 11))


def test_sort_key_normalizer(grid_config):
    rows = [{"id": 1, "v": "10"}, {"id": 2, "v": "9"}, {"id": 3, "v": "100"}]
    columns = [ColumnDescriptor.from_field("id"), ColumnDescriptor.from_field("v", sort_key=int)]
    state = ViewState(sort=(SortKey("v"),))
    assert _ids(derive(rows, columns, state, grid_config)) == [2, 1, 3]


def test_grouping_in_first_seen_order(customers, customer_columns, grid_config):
    state = ViewState(grouping=("city",))
    view = derive_view(customers, customer_columns, state, grid_config)
    assert _ids(view) == [_city("Lima"), _city("Quito"), _city("Madrid")]
    lima = view.rows[0]
    assert lima.is_grouped
    assert lima.sub_row_count == 9
    assert lima.group_value == "Lima"
    assert lima.aggregates["amount"] == 1170.0
    assert lima.aggregates["city"] == "Lima"
    assert not lima.is_expanded
    assert lima.can_expand


def test_grouping_paginates_groups(customers, customer_columns):
    config = GridConfig(page_size=2, enable_grouping=True, get_row_id=lambda r: r["id"])
    state = ViewState(grouping=("city",), pagination=PageState(page_size=2))
    view = derive_view(customers, customer_columns, state, config)
    assert view.total_row_count == 3
    assert view.page_count == 2
    assert len(view.rows) == 2


def test_grouping_ignored_when_disabled(customers, customer_columns):
    config = GridConfig(get_row_id=lambda r: r["id"])
    view = derive_view(customers, customer_columns, ViewState(grouping=("city",)), config)
    assert view.total_row_count == 25
    assert not any(r.is_grouped for r in view.rows)


def test_sort_groups_by_group_value_and_aggregate(customers, customer_columns, grid_config):
    by_city = ViewState(grouping=("city",), sort=(SortKey("city"),))
    assert _ids(derive(customers, customer_columns, by_city, grid_config)) == [
        _city("Lima"),
        _city("Madrid"),
        _city("Quito"),
    ]
    by_amount = ViewState(grouping=("city",), sort=(SortKey("amount", "desc"),))
    assert _ids(derive(customers, customer_columns, by_amount, grid_config)) == [
        _city("Lima"),
        _city("Madrid"),
        _city("Quito"),
    ]


def test_expanded_group_inlines_members(customers, customer_columns, grid_config):
    state = ViewState(grouping=("city",), expanded=frozenset({_city("Quito")}))
    rows = derive(customers, customer_columns, state, grid_config)
    assert rows[0].row_id == _city("Lima")
    assert rows[1].row_id == _city("Quito")
    assert rows[1].is_expanded
    members = rows[2:10]
    assert [r.row_id for r in members] == [2, 5, 8, 11, 14, 17, 20, 23]
    assert all(r.depth == 1 and r.parent_id == _city("Quito") for r in members)
    assert rows[10].row_id == _city("Madrid")


def test_nested_grouping_ids(customers, customer_columns, grid_config):
    state = ViewState(grouping=("city", "status"), expanded="all")
    rows = derive(customers, customer_columns, state, grid_config)
    assert rows[1].row_id == GroupId.of(("city", "Lima"), ("status", "inactivo"))
    assert str(rows[1].row_id) == "city:Lima>status:inactivo"
    assert rows[1].group_key == ("Lima", "inactivo")
    assert rows[1].depth == 1


def test_group_row_selected_iff_all_members_selected(customers, customer_columns, grid_config):
    lima_ids = frozenset(range(1, 26, 3))
    state = ViewState(grouping=("city",), selection=lima_ids)
    rows = derive(customers, customer_columns, state, grid_config)
    assert rows[0].is_selected
    partial = ViewState(grouping=("city",), selection=lima_ids - {1})
    assert not derive(customers, customer_columns, partial, grid_config)[0].is_selected


def test_group_page_row_ids_include_members(customers, customer_columns, grid_config):
    view = derive_view(customers, customer_columns, ViewState(grouping=("city",)), grid_config)
    assert sorted(view.page_row_ids) == list(range(1, 26))


def _tree_config():
    return GridConfig(enable_expanding=True, get_row_id=lambda r: r["id"], get_sub_rows=lambda r: r.get("children"))


def _tree_rows():
    return [
        {"id": 1, "name": "alpha", "children": [{"id": 11, "name": "alpha-1"}, {"id": 12, "name": "beta-2"}]},
        {"id": 2, "name": "beta"},
    ]


def test_sub_rows_hidden_until_expanded():
    columns = [ColumnDescriptor.from_field("name")]
    config = _tree_config()
    collapsed = derive(_tree_rows(), columns, ViewState(), config)
    assert _ids(collapsed) == [1, 2]
    assert collapsed[0].can_expand and collapsed[0].sub_row_count == 2
    assert not collapsed[1].can_expand

    expanded = derive(_tree_rows(), columns, ViewState(expanded=frozenset({1})), config)
    assert _ids(expanded) == [1, 11, 12, 2]
    assert expanded[1].depth == 1 and expanded[1].parent_id == 1


def test_sub_rows_are_filtered_recursively():
    columns = [ColumnDescriptor.from_field("name")]
    state = ViewState(column_filters={"name": "alpha"}, expanded="all")
    rows = derive(_tree_rows(), columns, state, _tree_config())
    assert _ids(rows) == [1, 11]


def test_sub_rows_ignored_without_expanding_flag():
    columns = [ColumnDescriptor.from_field("name")]
    config = GridConfig(get_row_id=lambda r: r["id"], get_sub_rows=lambda r: r.get("children"))
    rows = derive(_tree_rows(), columns, ViewState(expanded="all"), config)
    assert _ids(rows) == [1, 2]


def test_expandable_row_ids_cover_all_pages(customers, customer_columns):
    config = GridConfig(page_size=1, enable_grouping=True, get_row_id=lambda r: r["id"])
    state = ViewState(grouping=("city",), pagination=PageState(page_size=1))
    assert expandable_row_ids(customers, customer_columns, state, config) == [
        _city("Lima"),
        _city("Quito"),
        _city("Madrid"),
    ]


def test_derive_is_idempotent_and_pure(customers, customer_columns, grid_config):
    state = ViewState(
        sort=(SortKey("city"), SortKey("amount", "desc")),
        column_filters={"status": "activo"},
        grouping=("city",),
        expanded="all",
        selection=frozenset({2, 4}),
    )
    before = state.to_dict()
    first = derive_view(customers, customer_columns, state, grid_config)
    second = derive_view(customers, customer_columns, state, grid_config)
    assert first == second
    assert state.to_dict() == before


def test_duplicate_column_keys_raise(customers, grid_config):
    columns = [ColumnDescriptor.from_field("id"), ColumnDescriptor.from_field("id")]
    with pytest.raises(ValueError):
        derive(customers, columns, ViewState(), grid_config)


def test_aggregate_functions():
    values = [1, 2, 2, None]
    assert aggregate(values, "count") == 4
    assert aggregate(values, "sum") == 5
    assert aggregate(values, "min") == 1
    assert aggregate(values, "max") == 2
    assert aggregate(values, "mean") == pytest.approx(5 / 3)
    assert aggregate(values, "unique") == [1, 2, None]
    assert aggregate(values, "unique_count") == 3
    assert aggregate(values, lambda vs: "custom") == "custom"
    with pytest.raises(ValueError):
        aggregate(values, "median")
