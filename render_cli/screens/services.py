"""`render services`: every service and database in the workspace."""

from __future__ import annotations

from dataclasses import dataclass

from .. import client as api
from .. import config
from ..command import runner
from ..command.context import CommandContext
from ..resources import POSTGRES, SERVICE_TYPES, SSH_TYPES, breadcrumb_for, list_resources
from ..tui.events import Push
from ..tui.loader import AsyncLoader
from ..tui.table import CustomOption, Row, TableWidget
from .deploys import DeployInput, ListDeployInput, run_deploy_create, run_deploy_list
from .logs import LogInput, run_logs
from .palette import PaletteCommand, palette_frame
from .resource_list import resource_table
from .restart import RestartInput, run_restart
from .sessions import PSQLInput, SSHInput, run_psql, run_ssh
from .workspace import ListWorkspaceInput, run_workspaces


@dataclass(frozen=True)
class ListResourceInput:
    pass


def load_resources(ctx: CommandContext, input: ListResourceInput) -> list[dict]:
    return list_resources(api.default_client(), config.workspace_id())


def palette_commands(ctx: CommandContext, resource: dict) -> list[PaletteCommand]:
    """The commands that apply to *resource*, in display order."""
    rid = resource["id"]
    kind = resource.get("type", "")
    commands = [
        PaletteCommand(
            "logs",
            "View resource logs",
            lambda: run_logs(ctx, LogInput(resource_ids=[rid])).effect,
        ),
        PaletteCommand(
            "restart",
            "Restart the resource",
            lambda: run_restart(ctx, RestartInput(resource_id=rid)).effect,
        ),
    ]
    if kind in SERVICE_TYPES:
        commands.append(PaletteCommand(
            "deploy",
            "Deploy the service",
            lambda: run_deploy_create(ctx, DeployInput(service_id=rid)).effect,
        ))
        commands.append(PaletteCommand(
            "deploys",
            "List recent deploys",
            lambda: run_deploy_list(ctx, ListDeployInput(service_id=rid)).effect,
        ))
    if kind == POSTGRES:
        commands.append(PaletteCommand(
            "psql",
            "Connect to the PostgreSQL database",
            lambda: run_psql(ctx, PSQLInput(postgres_id=rid)).effect,
        ))
    if kind in SSH_TYPES:
        commands.append(PaletteCommand(
            "ssh",
            "SSH into the service",
            lambda: run_ssh(ctx, SSHInput(service_id=rid)).effect,
        ))
    return commands


def select_resource(ctx: CommandContext, resource: dict) -> Push:
    return palette_frame(palette_commands(ctx, resource), breadcrumb_for(resource))


def render_resources(
    ctx: CommandContext, loader: AsyncLoader, input: ListResourceInput
) -> TableWidget[dict]:
    def change_workspace(row: Row[dict] | None) -> Push | None:
        return run_workspaces(ctx, ListWorkspaceInput()).effect

    return resource_table(
        loader,
        lambda resource: select_resource(ctx, resource),
        custom_options=[CustomOption("w", "Change Workspace", change_workspace)],
    )


def run_services(ctx: CommandContext, input: ListResourceInput) -> runner.RunResult:
    return runner.run(
        ctx, "services", input, load_resources, render_resources, breadcrumb="Services"
    )
