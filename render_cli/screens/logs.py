"""`render logs`: query the log API for one or more resources."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Iterator, List, Optional

from rich.markup import escape

from .. import client as api
from .. import config
from ..command import runner
from ..command.context import CommandContext
from ..command.inputs import args_to_input, cli_field, input_to_args
from ..command.output import format_text
from ..command.timeparse import parse_time, to_rfc3339
from ..errors import InputError
from ..tui.events import Pop, Push
from ..tui.loader import AsyncLoader
from ..tui.stack import Frame
from ..tui.table import Column, CustomOption, Row, TableWidget
from ..tui.views import TextView, View, render_error

if TYPE_CHECKING:
    from ..tui.events import Effect

_log = logging.getLogger("render-cli")

DIRECTIONS = ("backward", "forward")
TAIL_INTERVAL = 2.0

_LEVEL_STYLES = {
    "error": "bold #f38ba8",
    "warning": "#f9e2af",
    "debug": "dim",
}


@dataclass(frozen=True)
class LogInput:
    resource_ids: List[str] = cli_field(flag="resources", default_factory=list)
    instance: List[str] = cli_field(flag="instance", default_factory=list)
    start: Optional[str] = cli_field(flag="start", default=None)
    end: Optional[str] = cli_field(flag="end", default=None)
    text: List[str] = cli_field(flag="text", default_factory=list)
    level: List[str] = cli_field(flag="level", default_factory=list)
    type: List[str] = cli_field(flag="type", default_factory=list)
    host: List[str] = cli_field(flag="host", default_factory=list)
    status_code: List[str] = cli_field(flag="status-code", default_factory=list)
    method: List[str] = cli_field(flag="method", default_factory=list)
    path: List[str] = cli_field(flag="path", default_factory=list)
    limit: int = cli_field(flag="limit", default=100)
    direction: str = cli_field(flag="direction", default="backward")
    tail: bool = cli_field(flag="tail", default=False)


def _time_param(name: str, text: str | None, now: datetime) -> str | None:
    if not text:
        return None
    parsed = parse_time(now, text)
    if parsed is None:
        raise InputError(
            f"invalid --{name} {text!r}: use a relative time like 15m, 2h, 1d or RFC 3339"
        )
    return to_rfc3339(parsed)


def validate_log_input(input: LogInput) -> LogInput:
    """Checks that need no remote call. Raises InputError."""
    if not input.resource_ids:
        raise InputError("at least one resource is required (--resources/-r)")
    if input.direction not in DIRECTIONS:
        raise InputError(
            f"invalid --direction {input.direction!r}: expected backward or forward"
        )
    if input.limit <= 0:
        raise InputError("--limit must be positive")
    return input


def log_params(input: LogInput, owner_id: str, now: datetime | None = None) -> dict[str, Any]:
    """Query parameters for GET /logs."""
    now = now or datetime.now(timezone.utc)
    params: dict[str, Any] = {
        "ownerId": owner_id,
        "resource": list(input.resource_ids),
        "instance": list(input.instance),
        "startTime": _time_param("start", input.start, now),
        "endTime": _time_param("end", input.end, now),
        "text": list(input.text),
        "level": list(input.level),
        "type": list(input.type),
        "host": list(input.host),
        "statusCode": list(input.status_code),
        "method": list(input.method),
        "path": list(input.path),
        "limit": input.limit,
        "direction": input.direction,
    }
    return {k: v for k, v in params.items() if v not in (None, [])}


def load_logs(ctx: CommandContext, input: LogInput) -> list[dict]:
    validate_log_input(input)
    params = log_params(input, config.require_workspace())
    result = api.default_client().list_logs(params)
    logs = result.get("logs") or []
    _log.debug("fetched %d log lines (hasMore=%s)", len(logs), result.get("hasMore"))
    return logs


def _timestamp(entry: dict) -> str:
    return str(entry.get("timestamp") or "")


def tail_logs(
    ctx: CommandContext, input: LogInput, poll_interval: float | None = None
) -> Iterator[list[dict]]:
    """Yield the current page of logs, then each batch of newer lines.

    Every poll asks for lines from the newest timestamp seen so far, so lines
    sharing that timestamp come back again and are dropped by key. Runs until
    *ctx* is cancelled.
    """
    if poll_interval is None:
        poll_interval = TAIL_INTERVAL
    validate_log_input(input)
    client = api.default_client()
    params = log_params(input, config.require_workspace())
    params.pop("endTime", None)

    batch = sorted(client.list_logs(params).get("logs") or [], key=_timestamp)
    if batch:
        last = _timestamp(batch[-1])
    else:
        last = params.get("startTime") or to_rfc3339(datetime.now(timezone.utc))
    seen = {_log_key(e) for e in batch if _timestamp(e) == last}
    _log.debug("tailing %s from %s", ",".join(input.resource_ids), last)
    yield batch

    while not ctx.token.wait(poll_interval):
        poll = dict(params, startTime=last, direction="forward")
        logs = sorted(client.list_logs(poll).get("logs") or [], key=_timestamp)
        fresh = [e for e in logs if _log_key(e) not in seen]
        if not fresh:
            continue
        newest = _timestamp(fresh[-1])
        if newest != last:
            seen = set()
            last = newest
        seen.update(_log_key(e) for e in fresh if _timestamp(e) == last)
        yield fresh
    _log.debug("stopped tailing %s", ",".join(input.resource_ids))


def _label(entry: dict, name: str) -> str:
    for label in entry.get("labels") or []:
        if label.get("name") == name:
            return str(label.get("value") or "")
    return ""


LOG_COLUMNS = [
    Column("timestamp", "Time", 25, filterable=False),
    Column("level", "Level", 8, styles=_LEVEL_STYLES),
    Column("message", "Message", 100),
]


def log_row(entry: dict) -> Row[dict]:
    message = str(entry.get("message") or "").replace("\n", " ")
    return Row(
        cells={
            "timestamp": str(entry.get("timestamp") or ""),
            "level": _label(entry, "level"),
            "message": message,
        },
        data=entry,
    )


def _log_key(entry: dict) -> Any:
    return entry.get("id") or (entry.get("timestamp"), entry.get("message"))


class LogQueryView(View):
    """Edit the flags of a logs query and run it again."""

    captures_input = True

    def __init__(self, ctx: CommandContext, input: LogInput) -> None:
        super().__init__()
        self._run_ctx = ctx
        self.text = input_to_args(input)
        self.error: InputError | None = None

    def handle_key(self, key: str) -> Effect | None:
        if key == "esc":
            return Pop()
        if key == "enter":
            return self._submit()
        self.error = None
        if key == "backspace":
            self.text = self.text[:-1]
        elif key == "space":
            self.text += " "
        elif len(key) == 1 and key.isprintable():
            self.text += key
        return None

    def _submit(self) -> Effect | None:
        try:
            input = validate_log_input(args_to_input(LogInput, self.text))
        except InputError as e:
            self.error = e
            return None
        return run_logs(self._run_ctx, input).effect

    def render(self) -> str:
        lines = [
            f"render logs {escape(self.text)}█",
            "",
            "[dim]enter to run, esc to go back[/dim]",
        ]
        if self.error is not None:
            lines.append(render_error(self.error))
        return "\n".join(lines)


def render_logs(ctx: CommandContext, loader: AsyncLoader, input: LogInput) -> TableWidget[dict]:
    def detail(rows: list[Row[dict]]) -> Push:
        entry = rows[0].data
        view = TextView(AsyncLoader(lambda c, e: e, entry), format=format_text)
        return Push(Frame(view=view, breadcrumb=str(entry.get("timestamp") or "Log")))

    def edit_query(row: Row[dict] | None) -> Push:
        return Push(Frame(view=LogQueryView(ctx, input), breadcrumb="Query"))

    header = f"Logs for {', '.join(input.resource_ids)}"
    return TableWidget(
        LOG_COLUMNS,
        loader,
        log_row,
        detail,
        identity=_log_key,
        custom_options=[CustomOption("f", "Filter", edit_query)],
        header=header + " (tailing)" if input.tail else header,
    )


def run_logs(ctx: CommandContext, input: LogInput) -> runner.RunResult:
    return runner.run(
        ctx,
        "logs",
        input,
        tail_logs if input.tail else load_logs,
        render_logs,
        breadcrumb=f"Logs {', '.join(input.resource_ids)}",
        stream=input.tail,
    )
