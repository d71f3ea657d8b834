"""EventLoop — single-threaded dispatch of input, resize and loader events.

Workers only ever ``post``; everything that touches view state happens in
``process_pending`` on the loop's own thread.
"""

from __future__ import annotations

import logging
import queue
from typing import TYPE_CHECKING, Any, Callable

from .events import (
    LOADER_EVENTS,
    Complete,
    Exec,
    ExecFinished,
    KeyPress,
    Pop,
    Push,
    Quit,
    Resize,
)
from .stack import NavigationStack

if TYPE_CHECKING:
    from ..command.context import CommandContext
    from .events import Effect
    from .views import View

_log = logging.getLogger("render-cli")

QUIT_KEY = "ctrl+c"
BACK_KEY = "esc"


class EventLoop:
    def __init__(
        self, ctx: CommandContext, wakeup: Callable[[], None] | None = None
    ) -> None:
        self._queue: queue.SimpleQueue[Any] = queue.SimpleQueue()
        self._wakeup = wakeup
        self.ctx = ctx.with_loop(self)
        self.stack = NavigationStack(self.ctx)
        self.running = True
        self.exit_message = ""
        self._pending_exec: Exec | None = None

    def set_wakeup(self, wakeup: Callable[[], None] | None) -> None:
        self._wakeup = wakeup

    def post(self, event: Any) -> None:
        """Thread-safe. Queue *event* and nudge the host."""
        self._queue.put(event)
        if self._wakeup is not None:
            self._wakeup()

    def process_pending(self) -> int:
        handled = 0
        while True:
            try:
                event = self._queue.get_nowait()
            except queue.Empty:
                return handled
            self.dispatch(event)
            handled += 1

    def dispatch(self, event: Any) -> None:
        """Handle one event. A view that raises gets the error shown on its frame."""
        if not self.running:
            return
        try:
            self.apply(self._effect_for(event))
        except Exception as err:
            _log.exception("error handling %s", type(event).__name__)
            self.stack.report_error(err, self._view_for(event))

    def _effect_for(self, event: Any) -> Effect | None:
        if isinstance(event, KeyPress):
            return self._dispatch_key(event.key)
        if isinstance(event, Resize):
            self.stack.resize(event.width, event.height)
            return None
        if isinstance(event, LOADER_EVENTS):
            handle = event.handle
            if handle.cancelled:
                _log.debug("dropping %s for cancelled load %d", type(event).__name__, handle.id)
                return None
            if isinstance(event, Complete):
                handle.release()
            if handle.owner is None:
                return None
            return handle.owner.handle_load(handle, event)
        if isinstance(event, ExecFinished):
            return event.view.handle_exec(event.returncode)
        if isinstance(event, (Push, Pop, Quit, Exec)):
            return event
        _log.warning("unknown event %r", event)
        return None

    @staticmethod
    def _view_for(event: Any) -> View | None:
        if isinstance(event, LOADER_EVENTS):
            return event.handle.owner
        if isinstance(event, ExecFinished):
            return event.view
        return None

    def _dispatch_key(self, key: str) -> Effect | None:
        if key == QUIT_KEY:
            return Quit()
        if not len(self.stack):
            return None
        frame = self.stack.current()
        frame.error = None
        view = frame.view
        if key == BACK_KEY and not view.captures_input:
            return Pop()
        return view.handle_key(key)

    def apply(self, effect: Effect | None) -> None:
        if effect is None:
            return
        if isinstance(effect, Push):
            self.stack.push(effect.frame)
        elif isinstance(effect, Pop):
            self.apply(self.stack.pop())
        elif isinstance(effect, Quit):
            _log.debug("quit requested: %r", effect.message)
            self.running = False
            self.exit_message = effect.message
        elif isinstance(effect, Exec):
            self._pending_exec = effect

    def take_exec(self) -> Exec | None:
        """Hand the pending sub-process request (if any) to the host."""
        request, self._pending_exec = self._pending_exec, None
        return request

    def finish_exec(self, request: Exec, returncode: int) -> None:
        self.post(ExecFinished(request.view, returncode))

    def shutdown(self) -> None:
        self.running = False
        self.stack.close_all()
