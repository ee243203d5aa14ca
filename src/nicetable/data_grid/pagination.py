"""Pagination helpers for the rendering surface."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union

from nicetable.data_grid.pipeline import DerivedView

ELLIPSIS: Literal["ellipsis"] = "ellipsis"

PageItem = Union[int, Literal["ellipsis"]]


@dataclass(frozen=True)
class PageInfo:
    """1-based page/row numbers for display.

    Attributes:
        page_number: Current page, 1-based.
        page_count: Number of pages, at least 1.
        start: 1-based number of the first row on the page (0 when empty).
        end: 1-based number of the last row on the page (0 when empty).
        total: Top-level rows after filtering.
    """

    page_number: int
    page_count: int
    start: int
    end: int
    total: int

    @property
    def can_previous(self) -> bool:
        return self.page_number > 1

    @property
    def can_next(self) -> bool:
        return self.page_number < self.page_count

    def summary(self) -> str:
        """e.g. 'Mostrando 11 a 20 de 25 resultados'."""
        return f"Mostrando {self.start} a {self.end} de {self.total} resultados"

    def page_label(self) -> str:
        return f"Página {self.page_number} de {self.page_count}"


def page_info(view: DerivedView) -> PageInfo:
    total = view.total_row_count
    if total == 0:
        return PageInfo(page_number=1, page_count=1, start=0, end=0, total=0)
    start = view.page_index * view.page_size + 1
    end = min((view.page_index + 1) * view.page_size, total)
    return PageInfo(
        page_number=view.page_index + 1,
        page_count=max(1, view.page_count),
        start=start,
        end=end,
        total=total,
    )


def page_numbers(page_number: int, page_count: int, max_visible: int = 5) -> list[PageItem]:
    """Page buttons to show, with ellipses for long ranges.

    Args:
        page_number: Current page, 1-based.
        page_count: Total pages.
        max_visible: Show every page when ``page_count`` does not exceed this.

    Returns:
        List of 1-based page numbers and ``"ellipsis"`` markers, e.g.
        ``[1, "ellipsis", 4, 5, 6, "ellipsis", 10]``.
    """
    if page_count <= max_visible:
        return list(range(1, page_count + 1))
    if page_number <= 3:
        return [1, 2, 3, 4, ELLIPSIS, page_count]
    if page_number >= page_count - 2:
        return [1, ELLIPSIS, *range(page_count - 3, page_count + 1)]
    return [1, ELLIPSIS, page_number - 1, page_number, page_number + 1, ELLIPSIS, page_count]
