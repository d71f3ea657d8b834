"""Request-scoped command context: output mode, confirm flag, streams, cancellation."""

from __future__ import annotations

import enum
import logging
import os
import sys
import threading
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Callable, Mapping, TextIO

from ..errors import InputError

if TYPE_CHECKING:
    from ..tui.loop import EventLoop

_log = logging.getLogger("render-cli")

OUTPUT_ENV = "RENDER_OUTPUT"


class OutputMode(str, enum.Enum):
    """Ambient presentation mode, resolved once per invocation."""

    INTERACTIVE = "interactive"
    JSON = "json"
    YAML = "yaml"
    TEXT = "text"

    @property
    def interactive(self) -> bool:
        return self is OutputMode.INTERACTIVE


def resolve_output_mode(
    flag: str | None, env: Mapping[str, str] | None = None
) -> OutputMode:
    """Flag wins over $RENDER_OUTPUT, which wins over interactive."""
    env = os.environ if env is None else env
    raw = flag or env.get(OUTPUT_ENV) or OutputMode.INTERACTIVE.value
    try:
        return OutputMode(raw.strip().lower())
    except ValueError:
        choices = ", ".join(m.value for m in OutputMode)
        raise InputError(f"invalid output format {raw!r}; expected one of: {choices}")


class CancelToken:
    """Cancellation flag that also cancels every token derived from it.

    A parent only tracks children that are still live: a child leaves its
    parent when it is cancelled or explicitly released.
    """

    def __init__(self, parent: CancelToken | None = None) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._children: set[CancelToken] = set()
        self._parent: CancelToken | None = None
        if parent is not None:
            parent._adopt(self)

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def live_children(self) -> int:
        with self._lock:
            return len(self._children)

    def cancel(self) -> None:
        with self._lock:
            self._event.set()
            children = list(self._children)
            self._children.clear()
        for child in children:
            child._parent = None
            child.cancel()
        self.release()

    def release(self) -> None:
        """Detach from the parent; its cancellation no longer reaches this token."""
        parent, self._parent = self._parent, None
        if parent is not None:
            with parent._lock:
                parent._children.discard(self)

    def wait(self, timeout: float | None = None) -> bool:
        """Sleep up to *timeout* seconds; True if cancelled meanwhile."""
        return self._event.wait(timeout)

    def _adopt(self, child: CancelToken) -> None:
        with self._lock:
            if not self._event.is_set():
                self._children.add(child)
                child._parent = self
                return
        child.cancel()


def spawn_thread(target: Callable[[], None]) -> None:
    """Run *target* on a daemon worker thread."""
    threading.Thread(target=target, name="render-loader", daemon=True).start()


@dataclass(frozen=True)
class CommandContext:
    """Everything a command needs that would otherwise be process-global.

    ``output`` is fixed at construction; ``with_output`` returns a copy so a
    command can pick its mode before it runs, never while running.
    """

    output: OutputMode = OutputMode.INTERACTIVE
    confirm: bool = False
    stdin: TextIO = field(default_factory=lambda: sys.stdin)
    stdout: TextIO = field(default_factory=lambda: sys.stdout)
    stderr: TextIO = field(default_factory=lambda: sys.stderr)
    token: CancelToken = field(default_factory=CancelToken)
    loop: EventLoop | None = None
    spawn: Callable[[Callable[[], None]], None] = spawn_thread

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def cancel(self) -> None:
        self.token.cancel()

    def child(self) -> CommandContext:
        return replace(self, token=CancelToken(self.token))

    def with_output(self, output: OutputMode) -> CommandContext:
        return replace(self, output=output)

    def with_loop(self, loop: EventLoop) -> CommandContext:
        return replace(self, loop=loop)
