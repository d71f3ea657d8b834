"""Command palette: the actions available for one selected resource."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from ..tui.events import Effect, Push
from ..tui.loader import AsyncLoader
from ..tui.stack import Frame
from ..tui.table import Column, Row, TableWidget


@dataclass
class PaletteCommand:
    name: str
    description: str
    action: Callable[[], Effect | None] = field(repr=False)


PALETTE_COLUMNS = [
    Column("name", "Command", 12),
    Column("description", "Description", 60),
]


def palette_row(command: PaletteCommand) -> Row[PaletteCommand]:
    return Row(cells={"name": command.name, "description": command.description}, data=command)


def palette_frame(commands: list[PaletteCommand], breadcrumb: str) -> Push:
    """A frame listing *commands*; selecting one runs its action."""
    table = TableWidget(
        PALETTE_COLUMNS,
        AsyncLoader(lambda ctx, cmds: list(cmds), commands),
        palette_row,
        lambda rows: rows[0].data.action(),
        identity=lambda c: c.name,
    )
    return Push(Frame(view=table, breadcrumb=breadcrumb))
