"""DataGrid - headless data-grid engine with a NiceGUI AG Grid view."""

from .actions import Authorizer, RowAction, StaticAuthorizer, TableAction
from .config import ColumnCapabilities, ColumnDescriptor, GridConfig, ViewConfig
from .data_grid_view import DataGridView
from .engine import DataGridEngine
from .pipeline import DerivedView, RenderedRow, derive, derive_view
from .view_state import ColumnPinning, PageState, SortKey, ViewState

__all__ = [
    "Authorizer",
    "ColumnCapabilities",
    "ColumnDescriptor",
    "ColumnPinning",
    "DataGridEngine",
    "DataGridView",
    "DerivedView",
    "GridConfig",
    "PageState",
    "RenderedRow",
    "RowAction",
    "SortKey",
    "StaticAuthorizer",
    "TableAction",
    "ViewConfig",
    "ViewState",
    "derive",
    "derive_view",
]
