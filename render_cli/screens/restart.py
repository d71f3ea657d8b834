"""`render restart <resource-id>`."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .. import client as api
from .. import config
from ..command import runner
from ..command.context import CommandContext
from ..command.inputs import cli_field
from ..resources import breadcrumb_for, get_resource, restart_resource
from ..tui.loader import AsyncLoader
from ..tui.views import TextView

_log = logging.getLogger("render-cli")


@dataclass(frozen=True)
class RestartInput:
    resource_id: str = cli_field(arg=0)


def restart_confirm_message(ctx: CommandContext, input: RestartInput) -> str:
    resource = get_resource(api.default_client(), input.resource_id, config.workspace_id())
    return f"Are you sure you want to restart {breadcrumb_for(resource)}?"


def restart(ctx: CommandContext, input: RestartInput) -> str:
    client = api.default_client()
    get_resource(client, input.resource_id, config.workspace_id())
    _log.info("restarting %s", input.resource_id)
    restart_resource(client, input.resource_id)
    return f"{input.resource_id} restarted successfully"


def render_restart(ctx: CommandContext, loader: AsyncLoader, input: RestartInput) -> TextView:
    return TextView(loader)


def run_restart(ctx: CommandContext, input: RestartInput) -> runner.RunResult:
    return runner.run(
        ctx,
        "restart",
        input,
        restart,
        render_restart,
        breadcrumb=f"Restart {input.resource_id}",
        confirm_message_fn=restart_confirm_message,
    )
