"""DualModeRunner — the contract every command runs through.

The output mode picked at startup decides, once, between two paths:

* interactive: build the view, gate it behind ``ConfirmView`` when the command
  asks for confirmation, and hand back a ``Push`` for the navigation stack;
* scripted (json/yaml/text): confirm on stdin, call the load function, write
  the serialized result and report a status for the process exit code.

A streaming command passes ``stream=True`` and a load function that yields
batches: the interactive view fills in as batches arrive, and scripted runs
write every item as soon as it is fetched.

Both paths call the same load function, so the remote side effects match.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence, TypeVar

from ..tui.confirm import ConfirmGate, ConfirmView
from ..tui.events import Push
from ..tui.loader import AsyncLoader, AsyncStream
from ..tui.stack import Frame
from ..tui.views import View
from .context import CommandContext
from .inputs import command_text
from .output import write_output

_log = logging.getLogger("render-cli")

InputT = TypeVar("InputT")
DataT = TypeVar("DataT")

LoadFn = Callable[[CommandContext, InputT], DataT]
MessageFn = Callable[[CommandContext, InputT], str]
RenderFn = Callable[[CommandContext, AsyncLoader, InputT], View]


class RunStatus(enum.Enum):
    INTERACTIVE = "interactive"
    SUCCESS = "success"
    ABORTED = "aborted"
    FAILED = "failed"


@dataclass
class RunResult:
    status: RunStatus
    effect: Push | None = None
    data: Any = None
    error: BaseException | None = None

    @property
    def exit_code(self) -> int:
        return 1 if self.status is RunStatus.FAILED else 0


def build_frame(
    ctx: CommandContext,
    command: str,
    input: InputT,
    load_fn: LoadFn,
    render_fn: RenderFn,
    breadcrumb: str = "",
    confirm_message_fn: MessageFn | None = None,
    stream: bool = False,
) -> Frame:
    loader_cls = AsyncStream if stream else AsyncLoader
    view = render_fn(ctx, loader_cls(load_fn, input), input)
    if confirm_message_fn is not None and not ctx.confirm:
        view = ConfirmView(view, AsyncLoader(confirm_message_fn, input))
    return Frame(
        view=view,
        breadcrumb=breadcrumb or command,
        command_text=command_text(command, input),
    )


def run_non_interactive(
    ctx: CommandContext,
    input: InputT,
    load_fn: LoadFn,
    confirm_message_fn: MessageFn | None = None,
    succeeded: Callable[[Any], bool] | None = None,
) -> RunResult:
    message_fn = None
    if confirm_message_fn is not None:
        def message_fn(c: CommandContext) -> str:
            return confirm_message_fn(c, input)

    result = ConfirmGate().guard(ctx, message_fn, lambda c: load_fn(c, input))
    if result.aborted:
        return RunResult(RunStatus.ABORTED)
    if result.error is not None:
        _log.error("command failed: %s", result.error)
        ctx.stderr.write(f"{result.error}\n")
        ctx.stderr.flush()
        return RunResult(RunStatus.FAILED, error=result.error)

    write_output(ctx.stdout, result.value, ctx.output)
    if succeeded is not None and not succeeded(result.value):
        _log.info("command finished without reaching a successful state")
        return RunResult(RunStatus.FAILED, data=result.value)
    return RunResult(RunStatus.SUCCESS, data=result.value)


def run_streaming(
    ctx: CommandContext,
    input: InputT,
    stream_fn: Callable[[CommandContext, InputT], Iterable[Sequence[Any]]],
) -> RunResult:
    """Write every item as it arrives until the stream ends or the user hits ctrl+c."""
    written = 0
    try:
        for batch in stream_fn(ctx, input):
            for item in batch:
                write_output(ctx.stdout, item, ctx.output)
            written += len(batch)
    except KeyboardInterrupt:
        ctx.cancel()
        _log.info("stream interrupted after %d items", written)
    except Exception as err:
        _log.error("command failed: %s", err)
        ctx.stderr.write(f"{err}\n")
        ctx.stderr.flush()
        return RunResult(RunStatus.FAILED, error=err)
    return RunResult(RunStatus.SUCCESS)


def run(
    ctx: CommandContext,
    command: str,
    input: InputT,
    load_fn: LoadFn,
    render_fn: RenderFn,
    breadcrumb: str = "",
    confirm_message_fn: MessageFn | None = None,
    succeeded: Callable[[Any], bool] | None = None,
    stream: bool = False,
) -> RunResult:
    """Run *command* in whichever mode ``ctx.output`` selects.

    Streaming commands never ask for confirmation.
    """
    if stream and confirm_message_fn is not None:
        raise ValueError("a streaming command cannot ask for confirmation")
    if ctx.output.interactive:
        frame = build_frame(
            ctx, command, input, load_fn, render_fn, breadcrumb, confirm_message_fn, stream
        )
        return RunResult(RunStatus.INTERACTIVE, effect=Push(frame))
    if stream:
        return run_streaming(ctx, input, load_fn)
    return run_non_interactive(ctx, input, load_fn, confirm_message_fn, succeeded)
