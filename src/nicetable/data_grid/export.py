"""Export grid rows to pandas / CSV.

Columns are exported through their accessors (raw values, not the display
renderer), headed by the column label. Required columns are always exported,
even when the caller's column choice leaves them out.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import IO, Any, Optional, Union

import pandas as pd

from nicetable.data_grid.config import ColumnDescriptor, index_columns
from nicetable.utils.logging import get_logger

logger = get_logger(__name__)


def _export_columns(
    columns: Sequence[ColumnDescriptor[Any]],
    column_keys: Optional[Sequence[str]],
    required_keys: Sequence[str],
) -> list[ColumnDescriptor[Any]]:
    by_key = index_columns(columns)
    if column_keys is None:
        wanted = [c.key for c in columns]
    else:
        wanted = list(column_keys)
    for key in required_keys:
        if key not in wanted:
            wanted.append(key)
    # keep registry order
    selected = [c for c in columns if c.key in wanted]
    stale = [k for k in wanted if k not in by_key]
    if stale:
        logger.warning("export: ignoring unknown columns %s", stale)
    return selected


def rows_to_dataframe(
    rows: Sequence[Any],
    columns: Sequence[ColumnDescriptor[Any]],
    column_keys: Optional[Sequence[str]] = None,
    *,
    required_keys: Sequence[str] = (),
    use_labels: bool = True,
) -> pd.DataFrame:
    """Build a DataFrame with one column per exported descriptor.

    Args:
        rows: Rows to export, in output order.
        columns: Column registry.
        column_keys: Keys to export; None exports every column.
        required_keys: Keys always exported.
        use_labels: Use column labels as DataFrame headers instead of keys.
    """
    cols = _export_columns(columns, column_keys, required_keys)
    data = {(c.label if use_labels else c.key): [c.value(r) for r in rows] for c in cols}
    return pd.DataFrame(data, columns=list(data.keys()))


def export_csv(
    rows: Sequence[Any],
    columns: Sequence[ColumnDescriptor[Any]],
    path_or_buf: Union[str, Path, IO[str], None] = None,
    *,
    column_keys: Optional[Sequence[str]] = None,
    required_keys: Sequence[str] = (),
) -> Optional[str]:
    """Write rows as CSV.

    Returns:
        The CSV text when ``path_or_buf`` is None, otherwise None.
    """
    df = rows_to_dataframe(rows, columns, column_keys, required_keys=required_keys)
    logger.info("exporting %d rows x %d columns to CSV", len(df), len(df.columns))
    return df.to_csv(path_or_buf, index=False)
