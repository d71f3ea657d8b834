"""NavigationStack — the chain of frames the user has drilled through."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rich.markup import escape

from .confirm import CONFIRMED, ConfirmState
from .events import Quit
from .views import render_error

if TYPE_CHECKING:
    from ..command.context import CommandContext
    from .views import View

_log = logging.getLogger("render-cli")

# breadcrumb, two spacer lines, command line
_CHROME_LINES = 4


@dataclass(eq=False)
class Frame:
    """One stack entry. Breadcrumb and command text are display-only."""

    view: View
    breadcrumb: str
    command_text: str = ""
    ctx: CommandContext | None = field(default=None, repr=False)
    size: tuple[int, int] = (0, 0)
    # last error raised while handling this frame's events; cleared on the next key
    error: BaseException | None = field(default=None, repr=False)

    @property
    def confirm_state(self) -> ConfirmState:
        return getattr(self.view, "confirm_state", CONFIRMED)

    def resize(self, width: int, height: int) -> None:
        self.size = (width, height)
        self.view.resize(width, max(0, height - _CHROME_LINES))

    def close(self) -> None:
        if self.ctx is not None:
            self.ctx.cancel()
        self.view.close()


class NavigationStack:
    """Only the top frame receives input; frames beneath keep their state."""

    def __init__(self, ctx: CommandContext) -> None:
        self._ctx = ctx
        self._frames: list[Frame] = []
        self.width = 0
        self.height = 0

    def __len__(self) -> int:
        return len(self._frames)

    @property
    def frames(self) -> tuple[Frame, ...]:
        return tuple(self._frames)

    def current(self) -> Frame:
        if not self._frames:
            raise LookupError("navigation stack is empty")
        return self._frames[-1]

    def push(self, frame: Frame) -> None:
        if any(f is frame or f.view is frame.view for f in self._frames):
            raise ValueError("view is already owned by a frame on the stack")
        frame.ctx = self._ctx.child()
        frame.resize(self.width, self.height)
        self._frames.append(frame)
        _log.debug("push %r (depth %d)", frame.breadcrumb, len(self._frames))
        frame.view.mount(frame.ctx)

    def pop(self) -> Quit | None:
        """Close the top frame and resume the one beneath.

        With a single frame left there is nothing to go back to, so the
        caller gets ``Quit`` and the frame stays put.
        """
        if len(self._frames) <= 1:
            return Quit()
        frame = self._frames.pop()
        frame.close()
        _log.debug("pop %r (depth %d)", frame.breadcrumb, len(self._frames))
        top = self._frames[-1]
        if top.size != (self.width, self.height):
            top.resize(self.width, self.height)
        return None

    def resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        if self._frames:
            self.current().resize(width, height)

    def report_error(self, error: BaseException, view: View | None = None) -> None:
        """Attach *error* to the frame owning *view*, or to the top frame."""
        if not self._frames:
            return
        owners = [
            f for f in self._frames
            if view is not None and view in (f.view, getattr(f.view, "inner", None))
        ]
        frame = owners[-1] if owners else self._frames[-1]
        frame.error = error

    def close_all(self) -> None:
        while self._frames:
            self._frames.pop().close()

    def render(self) -> str:
        if not self._frames:
            return ""
        frame = self.current()
        trail = " > ".join(escape(f.breadcrumb) for f in self._frames if f.breadcrumb)
        parts = [f"[bold #89b4fa]{trail}[/bold #89b4fa]", "", frame.view.render()]
        if frame.error is not None:
            parts.append(render_error(frame.error))
        if frame.command_text:
            parts.append("")
            parts.append(f"[dim]Command: {escape(frame.command_text)}[/dim]")
        return "\n".join(parts)
