# src/nicetable/data_grid/demo_data_grid_app.py
from __future__ import annotations

import random
from typing import Any, Dict, List

from nicegui import ui

from nicetable.data_grid.actions import RowAction, StaticAuthorizer, TableAction
from nicetable.data_grid.config import ColumnCapabilities, ColumnDescriptor, GridConfig, ViewConfig
from nicetable.data_grid.data_grid_view import DataGridView
from nicetable.data_grid.engine import DataGridEngine
from nicetable.data_grid.view_state import SortKey
from nicetable.utils.logging import configure_logging, get_logger

_STATUSES = ["activo", "inactivo", "pendiente"]
_CITIES = ["Madrid", "Bogotá", "Lima", "Santiago", "Quito"]


def _make_customers(n: int = 57) -> List[Dict[str, Any]]:
    rng = random.Random(7)
    return [
        {
            "id": i,
            "name": f"Cliente {i:03d}",
            "email": f"cliente{i}@example.com",
            "city": rng.choice(_CITIES),
            "status": rng.choice(_STATUSES),
            "amount": round(rng.uniform(10, 5000), 2),
        }
        for i in range(1, n + 1)
    ]


def build_ui() -> None:
    configure_logging(level="DEBUG")
    logger = get_logger(__name__)

    ui.label("nicetable DataGridView demo (clientes)").classes("text-lg font-semibold")

    customers = _make_customers()

    columns = [
        ColumnDescriptor.from_field("id", header="ID", default_width=80, capabilities=ColumnCapabilities(hideable=False)),
        ColumnDescriptor.from_field("name", header="Nombre", min_width=120),
        ColumnDescriptor.from_field("email", header="Email", aggregation="count"),
        ColumnDescriptor.from_field("city", header="Ciudad"),
        ColumnDescriptor.from_field("status", header="Estado", filter_variant="select"),
        ColumnDescriptor.from_field(
            "amount",
            header="Importe",
            aggregation="sum",
            render=lambda r: f"{r['amount']:,.2f} €",
            capabilities=ColumnCapabilities(hideable=False, groupable=False),
        ),
    ]

    cfg: GridConfig[Dict[str, Any]] = GridConfig(
        page_size=10,
        enable_row_selection=True,
        enable_grouping=True,
        enable_column_pinning=True,
        enable_column_sizing=True,
        get_row_id=lambda r: r["id"],
        default_sort=[SortKey("name")],
    )

    engine = DataGridEngine(
        customers,
        columns,
        cfg,
        on_row_selection_change=lambda rows: logger.debug("[demo] %d rows selected", len(rows)),
    )

    def _delete(row: Dict[str, Any]) -> None:
        customers[:] = [c for c in customers if c["id"] != row["id"]]
        engine.set_rows(list(customers), prune_selection=True)
        ui.notify(f"Eliminado {row['name']}")

    row_actions: list[RowAction[Dict[str, Any]]] = [
        RowAction("Ver", on_invoke=lambda r: ui.notify(f"Ver {r['name']}"), icon="visibility"),
        RowAction(
            "Editar",
            on_invoke=lambda r: ui.notify(f"Editar {r['name']}"),
            icon="edit",
            required_capability="crm:customers:update",
            separator=True,
        ),
        RowAction(
            "Desactivar",
            on_invoke=lambda r: ui.notify(f"Desactivar {r['name']}"),
            variant="warning",
            disabled=lambda r: r["status"] == "inactivo",
        ),
        RowAction(
            "Eliminar",
            on_invoke=_delete,
            icon="delete",
            variant="destructive",
            required_capability=["crm:delete", "crm:customers:delete"],
        ),
    ]

    def _export() -> None:
        csv_text = engine.export_csv(required_keys=["id", "email"])
        ui.download(csv_text.encode("utf-8"), "clientes.csv")

    table_actions = [
        TableAction("Exportar", on_invoke=_export, icon="download"),
        TableAction("Nuevo", on_invoke=lambda: ui.notify("Nuevo cliente"), icon="add", required_capability="crm:customers:create"),
    ]

    authorizer = StaticAuthorizer(["crm:customers:update", "crm:customers:delete"])

    view = DataGridView(
        engine,
        view_config=ViewConfig(search_placeholder="Buscar clientes..."),
        row_actions=row_actions,
        table_actions=table_actions,
        authorizer=authorizer,
        selection_noun=("cliente seleccionado", "clientes seleccionados"),
    )
    view.on_row_clicked(lambda row: logger.debug("[demo] clicked row=%r", row))

    def _filter_status(value: str) -> None:
        engine.set_column_filter("status", value)
        view.refresh()

    def _toggle_group_city() -> None:
        engine.toggle_grouping("city")
        view.refresh()

    def _reset() -> None:
        engine.reset()
        view.refresh()

    with ui.row().classes("gap-2 items-center"):
        ui.select(["all", *_STATUSES], value="all", label="Estado", on_change=lambda e: _filter_status(e.value)).classes("w-40")
        ui.button("Agrupar por ciudad", on_click=_toggle_group_city)
        ui.button("Expandir todo", on_click=lambda: (engine.set_all_expanded(True), view.refresh()))
        ui.button("Restablecer", on_click=_reset)

    ui.label(
        "Click a header to cycle the sort (shift-click for multi-sort). Click a row to see its actions."
    ).classes("text-sm opacity-80 mt-2")


if __name__ in {"__main__", "__mp_main__"}:
    build_ui()
    ui.run(reload=False, port=8003)
