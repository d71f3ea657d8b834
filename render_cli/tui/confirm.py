"""ConfirmGate — an optional confirmation step in front of a side-effecting action.

Interactive runs use ``ConfirmView``, which prompts inside the frame and never
blocks the loop. Scripted runs use ``ConfirmGate.guard``, which reads one line
from stdin; only the exact answer ``"y\\n"`` confirms.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, ClassVar

from rich.markup import escape

from ..errors import InvalidTransition
from .events import Failed, Loaded, Loading
from .loader import AsyncLoader, LoadState
from .views import LOADING_TEXT, View, render_error

if TYPE_CHECKING:
    from ..command.context import CommandContext
    from .events import Effect, LoaderEvent
    from .loader import LoadHandle

_log = logging.getLogger("render-cli")

CONFIRM_ANSWER = "y\n"
ABORTED_TEXT = "Aborted"


# ---------------------------------------------------------------------------
# ConfirmState
# ---------------------------------------------------------------------------


class ConfirmState:
    rank: ClassVar[int] = 0


@dataclass(frozen=True)
class Unconfirmed(ConfirmState):
    rank: ClassVar[int] = 0


@dataclass(frozen=True)
class PendingPrompt(ConfirmState):
    rank: ClassVar[int] = 1
    message: str


@dataclass(frozen=True)
class Confirmed(ConfirmState):
    rank: ClassVar[int] = 2


@dataclass(frozen=True)
class Aborted(ConfirmState):
    rank: ClassVar[int] = 2


UNCONFIRMED = Unconfirmed()
CONFIRMED = Confirmed()
ABORTED = Aborted()


def advance(current: ConfirmState, new: ConfirmState) -> ConfirmState:
    """Move forward only. Confirmed and Aborted are both final."""
    if new.rank <= current.rank:
        raise InvalidTransition(
            f"cannot move from {type(current).__name__} to {type(new).__name__}"
        )
    return new


# ---------------------------------------------------------------------------
# Scripted gate
# ---------------------------------------------------------------------------


@dataclass
class GateResult:
    state: ConfirmState
    value: Any = None
    error: BaseException | None = None

    @property
    def aborted(self) -> bool:
        return isinstance(self.state, Aborted)


class ConfirmGate:
    """Synchronous gate for non-interactive runs."""

    def guard(
        self,
        ctx: CommandContext,
        message_fn: Callable[[CommandContext], str] | None,
        action: Callable[[CommandContext], Any],
    ) -> GateResult:
        state: ConfirmState = UNCONFIRMED
        if message_fn is not None and not ctx.confirm:
            try:
                message = message_fn(ctx)
            except Exception as err:
                _log.debug("confirmation message failed: %s", err)
                return GateResult(state, error=err)

            state = advance(state, PendingPrompt(message))
            ctx.stdout.write(f"{message} (y/n): ")
            ctx.stdout.flush()
            answer = ctx.stdin.readline()
            if answer != CONFIRM_ANSWER:
                _log.info("confirmation declined (%r)", answer)
                ctx.stdout.write(f"{ABORTED_TEXT}\n")
                ctx.stdout.flush()
                return GateResult(advance(state, ABORTED))

        state = advance(state, CONFIRMED)
        try:
            value = action(ctx)
        except Exception as err:
            return GateResult(state, error=err)
        return GateResult(state, value=value)


# ---------------------------------------------------------------------------
# Interactive gate
# ---------------------------------------------------------------------------


class ConfirmView(View):
    """Shows ``<message> (y/n)`` and mounts *inner* only once the user says y."""

    def __init__(self, inner: View, message_loader: AsyncLoader[Any, str]) -> None:
        super().__init__()
        self.inner = inner
        self.confirm_state: ConfirmState = UNCONFIRMED
        self._message_loader = message_loader
        self._message = LoadState[str]()
        self._handle: LoadHandle | None = None

    @property
    def captures_input(self) -> bool:  # type: ignore[override]
        if isinstance(self.confirm_state, Confirmed):
            return self.inner.captures_input
        return isinstance(self.confirm_state, PendingPrompt)

    def mount(self, ctx: CommandContext) -> None:
        super().mount(ctx)
        self._handle = self._message_loader.start(ctx, owner=self)

    def handle_load(self, handle: LoadHandle, event: LoaderEvent) -> Effect | None:
        if handle is not self._handle:
            return None
        if isinstance(event, Loading):
            self._message.begin()
        elif isinstance(event, Loaded):
            self._message.resolve(event.data)
            self.confirm_state = advance(self.confirm_state, PendingPrompt(event.data))
        elif isinstance(event, Failed):
            self._message.fail(event.error)
        return None

    def handle_key(self, key: str) -> Effect | None:
        if isinstance(self.confirm_state, Confirmed):
            return self.inner.handle_key(key)
        if not isinstance(self.confirm_state, PendingPrompt):
            return None
        if key == "y":
            self.confirm_state = advance(self.confirm_state, CONFIRMED)
            self.inner.resize(self.width, self.height)
            self.inner.mount(self.ctx)
        elif key in ("n", "esc"):
            self.confirm_state = advance(self.confirm_state, ABORTED)
        return None

    def handle_exec(self, returncode: int) -> Effect | None:
        return self.inner.handle_exec(returncode)

    def resize(self, width: int, height: int) -> None:
        super().resize(width, height)
        self.inner.resize(width, height)

    def render(self) -> str:
        state = self.confirm_state
        if isinstance(state, Confirmed):
            return self.inner.render()
        if isinstance(state, Aborted):
            return ABORTED_TEXT
        if isinstance(state, PendingPrompt):
            return f"{escape(state.message)} [bold](y/n)[/bold]"
        if self._message.error is not None:
            return render_error(self._message.error)
        return LOADING_TEXT

    def close(self) -> None:
        if isinstance(self.confirm_state, Confirmed):
            self.inner.close()
