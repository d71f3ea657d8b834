"""`render deploys create` and `render deploys list`."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from .. import client as api
from .. import config
from ..command import runner
from ..command.context import CommandContext, OutputMode
from ..command.inputs import cli_field
from ..command.output import format_text
from ..errors import WaitTimeoutError
from ..resources import deploy_phase, get_service, is_successful, is_terminal
from ..tui.events import Loaded, Push
from ..tui.loader import AsyncLoader
from ..tui.stack import Frame
from ..tui.table import Column, CustomOption, Row, TableWidget
from ..tui.views import TextView
from .logs import LogInput, run_logs

if TYPE_CHECKING:
    from ..tui.events import Effect, LoaderEvent
    from ..tui.loader import LoadHandle

_log = logging.getLogger("render-cli")

POLL_INTERVAL = 5.0

_STATUS_STYLES: dict[str, str] = {
    "live": "bold #a6e3a1",
    "building": "bold #f9e2af",
    "deploying": "bold #f9e2af",
    "pending": "bold #f9e2af",
    "failed": "bold #f38ba8",
    "cancelled": "dim",
}


@dataclass(frozen=True)
class DeployInput:
    service_id: str = cli_field(arg=0)
    clear_cache: bool = cli_field(flag="clear-cache", default=False)
    commit: Optional[str] = cli_field(flag="commit", default=None)
    image: Optional[str] = cli_field(flag="image", default=None)
    wait: bool = cli_field(flag="wait", default=False)
    wait_timeout: Optional[float] = cli_field(flag="wait-timeout", default=None)


@dataclass(frozen=True)
class ListDeployInput:
    service_id: str = cli_field(arg=0)
    limit: int = cli_field(flag="limit", default=20)


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


def wait_for_deploy(
    ctx: CommandContext,
    client: api.RenderClient,
    service_id: str,
    deploy_id: str,
    timeout: float | None = None,
    poll_interval: float = POLL_INTERVAL,
    clock: Callable[[], float] = time.monotonic,
) -> dict:
    """Poll until the deploy reaches a terminal status.

    Returns the last deploy seen, which is non-terminal only when the
    command was cancelled. Raises WaitTimeoutError once *timeout* elapses.
    """
    deadline = None if timeout is None else clock() + timeout
    while True:
        deploy = client.get_deploy(service_id, deploy_id)
        status = deploy.get("status", "")
        _log.debug("deploy %s status %s", deploy_id, status)
        if is_terminal(status):
            return deploy
        if deadline is not None and clock() >= deadline:
            raise WaitTimeoutError(
                f"deploy {deploy_id} still {status or 'pending'} after {timeout:g}s"
            )
        if ctx.token.wait(poll_interval):
            _log.info("stopped waiting for deploy %s", deploy_id)
            return deploy


def deploy_confirm_message(ctx: CommandContext, input: DeployInput) -> str:
    service = get_service(api.default_client(), input.service_id, config.workspace_id())
    return f"Are you sure you want to deploy {service.get('name') or input.service_id}?"


def create_deploy(ctx: CommandContext, input: DeployInput) -> dict:
    client = api.default_client()
    get_service(client, input.service_id, config.workspace_id())
    deploy = client.create_deploy(
        input.service_id,
        clear_cache=input.clear_cache,
        commit_id=input.commit,
        image_url=input.image,
    )
    _log.info("created deploy %s for %s", deploy.get("id"), input.service_id)
    if input.wait:
        ctx.stderr.write(f"Waiting for deploy {deploy.get('id')} to complete...\n\n")
        ctx.stderr.flush()
        deploy = wait_for_deploy(
            ctx, client, input.service_id, deploy["id"], timeout=input.wait_timeout
        )
    return deploy


def _describe_deploy(deploy: dict) -> str:
    return (
        f"Deploy {deploy.get('id', '')} created "
        f"(status: {deploy_phase(deploy.get('status', ''))})"
    )


class DeployCreatedView(TextView):
    """Shows the new deploy, then hands over to its service's logs, tailing."""

    def __init__(self, ctx: CommandContext, loader: AsyncLoader, service_id: str) -> None:
        super().__init__(loader, format=_describe_deploy)
        self._run_ctx = ctx
        self._service_id = service_id

    def handle_load(self, handle: LoadHandle, event: LoaderEvent) -> Effect | None:
        super().handle_load(handle, event)
        if isinstance(event, Loaded) and handle is self._handle:
            deploy = event.data
            logs = LogInput(
                resource_ids=[self._service_id],
                start=deploy.get("createdAt"),
                tail=True,
            )
            return run_logs(self._run_ctx, logs).effect
        return None


def render_deploy_create(ctx: CommandContext, loader: AsyncLoader, input: DeployInput) -> TextView:
    return DeployCreatedView(ctx, loader, input.service_id)


def run_deploy_create(ctx: CommandContext, input: DeployInput) -> runner.RunResult:
    # Waiting only makes sense with a final status to print.
    if input.wait and ctx.output.interactive:
        ctx = ctx.with_output(OutputMode.TEXT)

    def succeeded(deploy: dict) -> bool:
        return not input.wait or is_successful(deploy.get("status", ""))

    return runner.run(
        ctx,
        "deploys create",
        input,
        create_deploy,
        render_deploy_create,
        breadcrumb=f"Deploy {input.service_id}",
        confirm_message_fn=deploy_confirm_message,
        succeeded=succeeded,
    )


# ---------------------------------------------------------------------------
# List
# ---------------------------------------------------------------------------

DEPLOY_COLUMNS = [
    Column("id", "ID", 25),
    Column("status", "Status", 10, styles=_STATUS_STYLES),
    Column("commit", "Commit", 8),
    Column("message", "Message", 40),
    Column("created", "Created", 20, filterable=False),
    Column("finished", "Finished", 20, filterable=False),
]


def list_deploys(ctx: CommandContext, input: ListDeployInput) -> list[dict]:
    client = api.default_client()
    get_service(client, input.service_id, config.workspace_id())
    return client.list_deploys(input.service_id, limit=input.limit)


def deploy_row(deploy: dict) -> Row[dict]:
    commit = deploy.get("commit") or {}
    message = (commit.get("message") or "").splitlines()
    return Row(
        cells={
            "id": deploy.get("id", ""),
            "status": deploy_phase(deploy.get("status", "")),
            "commit": (commit.get("id") or "")[:7],
            "message": message[0] if message else "",
            "created": deploy.get("createdAt") or "",
            "finished": deploy.get("finishedAt") or "",
        },
        data=deploy,
    )


def _deploy_detail(ctx: CommandContext, deploy: dict) -> Push:
    view = TextView(AsyncLoader(lambda c, d: d, deploy), format=format_text)
    return Push(Frame(view=view, breadcrumb=deploy.get("id", "Deploy")))


def render_deploy_list(
    ctx: CommandContext, loader: AsyncLoader, input: ListDeployInput
) -> TableWidget[dict]:
    def new_deploy(row: Row[dict] | None) -> Push | None:
        return run_deploy_create(ctx, DeployInput(service_id=input.service_id)).effect

    return TableWidget(
        DEPLOY_COLUMNS,
        loader,
        deploy_row,
        lambda rows: _deploy_detail(ctx, rows[0].data),
        identity=lambda d: d.get("id"),
        custom_options=[CustomOption("d", "New Deploy", new_deploy)],
        header=f"Deploys for {input.service_id}",
    )


def run_deploy_list(ctx: CommandContext, input: ListDeployInput) -> runner.RunResult:
    return runner.run(
        ctx,
        "deploys list",
        input,
        list_deploys,
        render_deploy_list,
        breadcrumb=f"Deploys {input.service_id}",
    )
