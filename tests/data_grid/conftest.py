# tests/data_grid/conftest.py
"""Pytest configuration and shared fixtures for data_grid tests."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest


def pytest_configure() -> None:
    # Ensure nicetable package is importable when running tests from repo root.
    repo_root = Path(__file__).resolve().parents[2]
    src_dir = repo_root / "src"
    if src_dir.exists() and str(src_dir) not in sys.path:
        sys.path.insert(0, str(src_dir))


@pytest.fixture
def customers() -> list[dict[str, Any]]:
    """25 customer rows with ids 1..25."""
    cities = ["Madrid", "Lima", "Quito"]
    statuses = ["activo", "inactivo"]
    return [
        {
            "id": i,
            "name": f"Cliente {i:02d}",
            "city": cities[i % 3],
            "status": statuses[i % 2],
            "amount": float(i * 10),
        }
        for i in range(1, 26)
    ]


@pytest.fixture
def customer_columns() -> list[Any]:
    from nicetable.data_grid.config import ColumnCapabilities, ColumnDescriptor

    return [
        ColumnDescriptor.from_field("id", header="ID"),
        ColumnDescriptor.from_field("name", header="Nombre"),
        ColumnDescriptor.from_field("city", header="Ciudad"),
        ColumnDescriptor.from_field("status", header="Estado", filter_variant="select"),
        ColumnDescriptor.from_field(
            "amount",
            header="Importe",
            aggregation="sum",
            capabilities=ColumnCapabilities(hideable=False),
        ),
    ]


@pytest.fixture
def grid_config() -> Any:
    from nicetable.data_grid.config import GridConfig

    return GridConfig(
        page_size=10,
        enable_row_selection=True,
        enable_grouping=True,
        enable_column_pinning=True,
        enable_column_sizing=True,
        get_row_id=lambda r: r["id"],
    )
