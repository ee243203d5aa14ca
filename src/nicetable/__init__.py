"""
nicetable: Headless data-grid engine with a NiceGUI rendering surface.

This package provides:
- DataGridEngine: sorting, filtering, grouping, pagination, selection and
  column layout over a caller-owned list of rows
- DataGridView: NiceGUI AG Grid surface driven by the engine
- Row/table actions gated by an injected Authorizer
- Logging utilities for library and application use

For logging configuration in standalone scripts/demos:
    ```python
    from nicetable.utils.logging import configure_logging
    configure_logging(level="DEBUG")
    ```

When used as a library (imported by other applications), logging is
automatically handled by the parent application's configuration.
"""

import logging

from nicetable.utils.logging import configure_logging, get_logger

from nicetable.data_grid import (
    ColumnCapabilities,
    ColumnDescriptor,
    DataGridEngine,
    DataGridView,
    GridConfig,
    RowAction,
    SortKey,
    StaticAuthorizer,
    TableAction,
    ViewConfig,
    ViewState,
)

# Ensure nicetable logger has NullHandler so logs don't propagate to root
# when no application has configured logging. Applications/demos call
# configure_logging() to replace this with a real handler.
_logger = logging.getLogger("nicetable")
if not _logger.handlers:
    _logger.addHandler(logging.NullHandler())

__all__ = [
    "ColumnCapabilities",
    "ColumnDescriptor",
    "DataGridEngine",
    "DataGridView",
    "GridConfig",
    "RowAction",
    "SortKey",
    "StaticAuthorizer",
    "TableAction",
    "ViewConfig",
    "ViewState",
    "configure_logging",
    "get_logger",
]

__version__ = "0.1.0"
