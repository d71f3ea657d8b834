"""`render psql` and `render ssh`: hand the terminal to a sub-session."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .. import client as api
from .. import config
from ..command import runner
from ..command.context import CommandContext
from ..command.inputs import cli_field
from ..errors import RenderCLIError
from ..resources import POSTGRES, SSH_TYPES, get_resource, get_service, list_resources
from ..tui.events import Push
from ..tui.loader import AsyncLoader
from ..tui.views import ExecView
from .resource_list import resource_table

_log = logging.getLogger("render-cli")


@dataclass(frozen=True)
class PSQLInput:
    postgres_id: str = cli_field(arg=0, default="")


@dataclass(frozen=True)
class SSHInput:
    service_id: str = cli_field(arg=0, default="")


# ---------------------------------------------------------------------------
# psql
# ---------------------------------------------------------------------------


def psql_command(ctx: CommandContext, input: PSQLInput) -> list[str]:
    client = api.default_client()
    get_resource(client, input.postgres_id, config.workspace_id())
    info = client.postgres_connection_info(input.postgres_id)
    return ["psql", info.get("externalConnectionString", "")]


def render_psql(ctx: CommandContext, loader: AsyncLoader, input: PSQLInput) -> ExecView:
    return ExecView(loader, label="psql")


def run_psql(ctx: CommandContext, input: PSQLInput) -> runner.RunResult:
    return runner.run(
        ctx, "psql", input, psql_command, render_psql, breadcrumb=f"psql {input.postgres_id}"
    )


def _list_databases(ctx: CommandContext, input: PSQLInput) -> list[dict]:
    resources = list_resources(api.default_client(), config.workspace_id())
    return [r for r in resources if r["type"] == POSTGRES]


def run_psql_select(ctx: CommandContext, input: PSQLInput) -> runner.RunResult:
    """Pick a database first, then open psql on it."""

    def on_select(resource: dict) -> Push | None:
        return run_psql(ctx, PSQLInput(postgres_id=resource["id"])).effect

    return runner.run(
        ctx,
        "psql",
        input,
        _list_databases,
        lambda c, loader, i: resource_table(loader, on_select, header="Select a database"),
        breadcrumb="Select Database",
    )


# ---------------------------------------------------------------------------
# ssh
# ---------------------------------------------------------------------------


def ssh_command(ctx: CommandContext, input: SSHInput) -> list[str]:
    service = get_service(api.default_client(), input.service_id, config.workspace_id())
    if service.get("type") not in SSH_TYPES:
        raise RenderCLIError("unsupported service type")
    address = (service.get("serviceDetails") or {}).get("sshAddress")
    if not address:
        raise RenderCLIError("service does not support ssh")
    _log.info("opening ssh session to %s", input.service_id)
    return ["ssh", address]


def render_ssh(ctx: CommandContext, loader: AsyncLoader, input: SSHInput) -> ExecView:
    return ExecView(loader, label="ssh")


def run_ssh(ctx: CommandContext, input: SSHInput) -> runner.RunResult:
    return runner.run(
        ctx, "ssh", input, ssh_command, render_ssh, breadcrumb=f"ssh {input.service_id}"
    )


def _list_ssh_services(ctx: CommandContext, input: SSHInput) -> list[dict]:
    resources = list_resources(api.default_client(), config.workspace_id())
    return [r for r in resources if r["type"] in SSH_TYPES]


def run_ssh_select(ctx: CommandContext, input: SSHInput) -> runner.RunResult:
    def on_select(resource: dict) -> Push | None:
        return run_ssh(ctx, SSHInput(service_id=resource["id"])).effect

    return runner.run(
        ctx,
        "ssh",
        input,
        _list_ssh_services,
        lambda c, loader, i: resource_table(loader, on_select, header="Select a service"),
        breadcrumb="Select Service",
    )
