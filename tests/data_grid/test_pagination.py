"""Unit tests for page info and page-number buttons."""

import pytest

from nicetable.data_grid.pagination import ELLIPSIS, page_info, page_numbers
from nicetable.data_grid.pipeline import derive_view
from nicetable.data_grid.view_state import PageState, ViewState


def test_page_info_middle_page(customers, customer_columns, grid_config):
    state = ViewState(pagination=PageState(page_index=1, page_size=10))
    info = page_info(derive_view(customers, customer_columns, state, grid_config))
    assert (info.page_number, info.page_count, info.start, info.end, info.total) == (2, 3, 11, 20, 25)
    assert info.summary() == "Mostrando 11 a 20 de 25 resultados"
    assert info.page_label() == "Página 2 de 3"
    assert info.can_previous and info.can_next


def test_page_info_last_page(customers, customer_columns, grid_config):
    state = ViewState(pagination=PageState(page_index=2, page_size=10))
    info = page_info(derive_view(customers, customer_columns, state, grid_config))
    assert (info.start, info.end) == (21, 25)
    assert not info.can_next


def test_page_info_empty(customer_columns, grid_config):
    info = page_info(derive_view([], customer_columns, ViewState(), grid_config))
    assert (info.page_number, info.page_count, info.start, info.end, info.total) == (1, 1, 0, 0, 0)
    assert not info.can_previous and not info.can_next


@pytest.mark.parametrize(
    "page, count, expected",
    [
        (1, 3, [1, 2, 3]),
        (2, 5, [1, 2, 3, 4, 5]),
        (2, 10, [1, 2, 3, 4, ELLIPSIS, 10]),
        (9, 10, [1, ELLIPSIS, 7, 8, 9, 10]),
        (5, 10, [1, ELLIPSIS, 4, 5, 6, ELLIPSIS, 10]),
        (1, 0, []),
    ],
)
def test_page_numbers(page, count, expected):
    assert page_numbers(page, count) == expected
