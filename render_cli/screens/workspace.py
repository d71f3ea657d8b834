"""`render workspace` and `render workspace current`."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .. import client as api
from .. import config
from ..command import runner
from ..command.context import CommandContext, OutputMode
from ..tui.events import Loaded, Push, Quit
from ..tui.loader import AsyncLoader
from ..tui.stack import Frame
from ..tui.table import Column, Row, TableWidget
from ..tui.views import TextView

if TYPE_CHECKING:
    from ..tui.events import Effect, LoaderEvent
    from ..tui.loader import LoadHandle


@dataclass(frozen=True)
class ListWorkspaceInput:
    pass


@dataclass(frozen=True)
class CurrentWorkspaceInput:
    pass


WORKSPACE_COLUMNS = [
    Column("id", "ID", 28),
    Column("name", "Name", 30),
    Column("email", "Email", 30),
]


def list_workspaces(ctx: CommandContext, input: ListWorkspaceInput) -> list[dict]:
    return api.default_client().list_owners()


def workspace_row(owner: dict) -> Row[dict]:
    return Row(
        cells={c.key: str(owner.get(c.key) or "") for c in WORKSPACE_COLUMNS},
        data=owner,
    )


def select_workspace(ctx: CommandContext, owner: dict) -> str:
    config.set_workspace(owner["id"])
    return f"Workspace set to {owner.get('name') or owner['id']}"


class SelectWorkspaceView(TextView):
    """Persists the chosen workspace off the UI thread, then quits."""

    def handle_load(self, handle: LoadHandle, event: LoaderEvent) -> Effect | None:
        effect = super().handle_load(handle, event)
        if isinstance(event, Loaded) and handle is self._handle:
            return Quit(event.data)
        return effect


def _on_select(rows: list[Row[dict]]) -> Push:
    owner = rows[0].data
    view = SelectWorkspaceView(AsyncLoader(select_workspace, owner))
    return Push(Frame(view=view, breadcrumb=owner.get("name") or owner.get("id", "")))


def render_workspaces(
    ctx: CommandContext, loader: AsyncLoader, input: ListWorkspaceInput
) -> TableWidget[dict]:
    return TableWidget(
        WORKSPACE_COLUMNS,
        loader,
        workspace_row,
        _on_select,
        identity=lambda o: o.get("id"),
        header=f"Current workspace: {config.workspace_id() or '(none)'}",
    )


def run_workspaces(ctx: CommandContext, input: ListWorkspaceInput) -> runner.RunResult:
    return runner.run(
        ctx, "workspace", input, list_workspaces, render_workspaces, breadcrumb="Workspaces"
    )


# ---------------------------------------------------------------------------
# current
# ---------------------------------------------------------------------------


def current_workspace(ctx: CommandContext, input: CurrentWorkspaceInput) -> dict:
    return api.default_client().get_owner(config.require_workspace())


def describe_workspace(owner: dict) -> str:
    return f"Active Workspace: {owner.get('name', '')} ({owner.get('id', '')})"


def run_current_workspace(ctx: CommandContext, input: CurrentWorkspaceInput) -> runner.RunResult:
    """One line of text unless json or yaml output was asked for."""
    if ctx.output.interactive:
        ctx = ctx.with_output(OutputMode.TEXT)
    if ctx.output is OutputMode.TEXT:
        def load(c: CommandContext, i: CurrentWorkspaceInput) -> str:
            return describe_workspace(current_workspace(c, i))
    else:
        load = current_workspace
    return runner.run_non_interactive(ctx, input, load)
