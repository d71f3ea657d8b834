"""The resource table shared by `render services`, `render psql` and `render ssh`."""

from __future__ import annotations

from typing import Callable, Sequence

from ..tui.events import Effect
from ..tui.loader import AsyncLoader
from ..tui.table import Column, CustomOption, Row, TableWidget

RESOURCE_COLUMNS = [
    Column("id", "ID", 25),
    Column("type", "Type", 18),
    Column("project", "Project", 15),
    Column("environment", "Environment", 20),
    Column("name", "Name", 40),
]


def resource_row(resource: dict) -> Row[dict]:
    return Row(
        cells={c.key: str(resource.get(c.key) or "") for c in RESOURCE_COLUMNS},
        data=resource,
    )


def resource_table(
    loader: AsyncLoader,
    on_select: Callable[[dict], Effect | None],
    custom_options: Sequence[CustomOption] = (),
    header: str = "",
) -> TableWidget[dict]:
    return TableWidget(
        RESOURCE_COLUMNS,
        loader,
        resource_row,
        lambda rows: on_select(rows[0].data),
        identity=lambda r: r.get("id"),
        custom_options=custom_options,
        header=header,
    )
