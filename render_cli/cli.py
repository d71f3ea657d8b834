"""The `render` command line."""

import logging
from typing import Any, List, Optional, Type

import typer

from .command.context import CommandContext, resolve_output_mode
from .command.inputs import decode_input
from .command.runner import RunResult, RunStatus
from .debug_log import configure_logging
from .errors import InputError
from .screens.deploys import DeployInput, ListDeployInput, run_deploy_create, run_deploy_list
from .screens.logs import LogInput, run_logs, validate_log_input
from .screens.restart import RestartInput, run_restart
from .screens.services import ListResourceInput, run_services
from .screens.sessions import PSQLInput, SSHInput, run_psql, run_psql_select, run_ssh, run_ssh_select
from .screens.workspace import (
    CurrentWorkspaceInput,
    ListWorkspaceInput,
    run_current_workspace,
    run_workspaces,
)

_log = logging.getLogger("render-cli")

app = typer.Typer(
    name="render",
    help="Manage Render services, deploys, logs and databases from the terminal.",
    no_args_is_help=True,
    add_completion=False,
)
deploys_app = typer.Typer(help="Create and list deploys.", no_args_is_help=True)
workspace_app = typer.Typer(help="Select the workspace commands run against.")

app.add_typer(deploys_app, name="deploys")
app.add_typer(workspace_app, name="workspace")


@app.callback()
def main_callback(
    ctx: typer.Context,
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Output format (interactive|json|yaml|text)"
    ),
    confirm: bool = typer.Option(
        False, "--confirm", help="Skip confirmation prompts"
    ),
    debug: bool = typer.Option(False, "--debug", help="Verbose logging to the log file"),
) -> None:
    """Global options."""
    configure_logging(debug=debug)
    try:
        mode = resolve_output_mode(output)
    except InputError as e:
        raise typer.BadParameter(str(e), param_hint="--output")
    _log.debug("output mode %s, confirm=%s", mode.value, confirm)
    ctx.obj = CommandContext(output=mode, confirm=confirm)


def _decode(cls: Type[Any], args: List[str], flags: Optional[dict] = None) -> Any:
    try:
        return decode_input(cls, args, flags)
    except InputError as e:
        raise typer.BadParameter(str(e))


def _finish(cmd_ctx: CommandContext, result: RunResult) -> None:
    """Run the TUI for interactive results; map the rest to an exit code."""
    if result.status is RunStatus.INTERACTIVE:
        from .tui.app import run_interactive

        message = run_interactive(cmd_ctx, result.effect)
        if message:
            typer.echo(message)
        return
    if result.exit_code:
        raise typer.Exit(code=result.exit_code)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("services")
def services_command(ctx: typer.Context) -> None:
    """List services and Postgres databases."""
    _finish(ctx.obj, run_services(ctx.obj, ListResourceInput()))


@app.command("restart")
def restart_command(
    ctx: typer.Context,
    resource_id: str = typer.Argument(..., metavar="RESOURCE_ID", help="Service or database ID"),
) -> None:
    """Restart a service or database."""
    input = _decode(RestartInput, [resource_id])
    _finish(ctx.obj, run_restart(ctx.obj, input))


@deploys_app.command("create")
def deploys_create_command(
    ctx: typer.Context,
    service_id: str = typer.Argument(..., metavar="SERVICE_ID"),
    clear_cache: bool = typer.Option(False, "--clear-cache", help="Clear the build cache"),
    commit: Optional[str] = typer.Option(None, "--commit", help="Commit ID to deploy"),
    image: Optional[str] = typer.Option(None, "--image", help="Image URL to deploy"),
    wait: bool = typer.Option(
        False, "--wait", help="Wait for the deploy to finish; exit 1 unless it goes live"
    ),
    wait_timeout: Optional[float] = typer.Option(
        None, "--wait-timeout", help="Give up waiting after this many seconds"
    ),
) -> None:
    """Trigger a deploy for a service."""
    input = _decode(
        DeployInput,
        [service_id],
        {
            "clear-cache": clear_cache,
            "commit": commit,
            "image": image,
            "wait": wait,
            "wait-timeout": wait_timeout,
        },
    )
    _finish(ctx.obj, run_deploy_create(ctx.obj, input))


@deploys_app.command("list")
def deploys_list_command(
    ctx: typer.Context,
    service_id: str = typer.Argument(..., metavar="SERVICE_ID"),
    limit: int = typer.Option(20, "--limit", help="Maximum deploys to list"),
) -> None:
    """List recent deploys for a service."""
    input = _decode(ListDeployInput, [service_id], {"limit": limit})
    _finish(ctx.obj, run_deploy_list(ctx.obj, input))


@app.command("logs")
def logs_command(
    ctx: typer.Context,
    resources: Optional[List[str]] = typer.Option(
        None, "--resources", "-r", help="Resource IDs (comma separated or repeated)"
    ),
    instance: Optional[List[str]] = typer.Option(None, "--instance"),
    start: Optional[str] = typer.Option(None, "--start", help="Start time, e.g. 15m or RFC 3339"),
    end: Optional[str] = typer.Option(None, "--end", help="End time, e.g. 5m or RFC 3339"),
    text: Optional[List[str]] = typer.Option(None, "--text", help="Filter by message text"),
    level: Optional[List[str]] = typer.Option(None, "--level", help="Filter by log level"),
    type_: Optional[List[str]] = typer.Option(None, "--type", help="Filter by log type"),
    host: Optional[List[str]] = typer.Option(None, "--host"),
    status_code: Optional[List[str]] = typer.Option(None, "--status-code"),
    method: Optional[List[str]] = typer.Option(None, "--method"),
    path: Optional[List[str]] = typer.Option(None, "--path"),
    limit: int = typer.Option(100, "--limit", help="Maximum log lines"),
    direction: str = typer.Option("backward", "--direction", help="backward or forward"),
    tail: bool = typer.Option(False, "--tail", help="Keep streaming new log lines until interrupted"),
) -> None:
    """Query logs for one or more resources."""
    input = _decode(
        LogInput,
        [],
        {
            "resources": resources or None,
            "instance": instance or None,
            "start": start,
            "end": end,
            "text": text or None,
            "level": level or None,
            "type": type_ or None,
            "host": host or None,
            "status-code": status_code or None,
            "method": method or None,
            "path": path or None,
            "limit": limit,
            "direction": direction,
            "tail": tail,
        },
    )
    try:
        validate_log_input(input)
    except InputError as e:
        raise typer.BadParameter(str(e))
    _finish(ctx.obj, run_logs(ctx.obj, input))


@workspace_app.callback(invoke_without_command=True)
def workspace_command(ctx: typer.Context) -> None:
    """Choose a workspace interactively, or list workspaces."""
    if ctx.invoked_subcommand is not None:
        return
    _finish(ctx.obj, run_workspaces(ctx.obj, ListWorkspaceInput()))


@workspace_app.command("current")
def workspace_current_command(ctx: typer.Context) -> None:
    """Show the active workspace."""
    _finish(ctx.obj, run_current_workspace(ctx.obj, CurrentWorkspaceInput()))


@app.command("psql")
def psql_command(
    ctx: typer.Context,
    postgres_id: Optional[str] = typer.Argument(None, metavar="[POSTGRES_ID]"),
) -> None:
    """Open a psql session to a Render Postgres database."""
    cmd_ctx: CommandContext = ctx.obj
    input = _decode(PSQLInput, [postgres_id] if postgres_id else [])
    if input.postgres_id:
        _finish(cmd_ctx, run_psql(cmd_ctx, input))
    elif cmd_ctx.output.interactive:
        _finish(cmd_ctx, run_psql_select(cmd_ctx, input))
    else:
        raise typer.BadParameter("a database ID is required in non-interactive mode")


@app.command("ssh")
def ssh_command(
    ctx: typer.Context,
    service_id: Optional[str] = typer.Argument(None, metavar="[SERVICE_ID]"),
) -> None:
    """Open an SSH session to a running service instance."""
    cmd_ctx: CommandContext = ctx.obj
    input = _decode(SSHInput, [service_id] if service_id else [])
    if input.service_id:
        _finish(cmd_ctx, run_ssh(cmd_ctx, input))
    elif cmd_ctx.output.interactive:
        _finish(cmd_ctx, run_ssh_select(cmd_ctx, input))
    else:
        raise typer.BadParameter("a service ID is required in non-interactive mode")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
