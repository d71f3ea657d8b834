"""Textual host for the EventLoop.

Textual owns the terminal; the EventLoop owns the state. Keys and resizes
are posted into the loop, workers wake the app through ``call_from_thread``
and every drain re-renders the navigation stack into a single ``Static``.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from typing import TYPE_CHECKING

from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.screen import Screen
from textual.widgets import Static

from ..modals.help_screen import HelpScreen
from .events import Exec, KeyPress, Push, Resize
from .loop import BACK_KEY, QUIT_KEY, EventLoop

if TYPE_CHECKING:
    from ..command.context import CommandContext

_log = logging.getLogger("render-cli")


def normalize_key(event: events.Key) -> str:
    """Textual key names -> the loop's key vocabulary."""
    if event.key == "escape":
        return BACK_KEY
    if event.key == "space":
        return "space"
    if event.is_printable and event.character:
        return event.character
    return event.key


class StackScreen(Screen):
    """The single full-size screen the navigation stack renders into."""

    DEFAULT_CSS = """
    StackScreen #stack-view {
        width: 1fr;
        height: 1fr;
        padding: 0 1;
    }
    """

    def __init__(self, loop: EventLoop) -> None:
        super().__init__()
        self._loop = loop

    def compose(self) -> ComposeResult:
        yield Static("", id="stack-view")

    def on_key(self, event: events.Key) -> None:
        key = normalize_key(event)
        event.stop()
        stack = self._loop.stack
        captured = bool(len(stack)) and stack.current().view.captures_input
        if key == "?" and not captured:
            self.app.push_screen(HelpScreen(self._view_actions()))
            return
        self._loop.post(KeyPress(key))

    def _view_actions(self) -> list[tuple[str, str]]:
        if not len(self._loop.stack):
            return []
        options = getattr(self._loop.stack.current().view, "custom_options", [])
        return [(o.key, o.title) for o in options]

    def on_resize(self, event: events.Resize) -> None:
        self._loop.post(Resize(event.size.width, event.size.height))


class RenderApp(App[str]):
    """Runs one command's navigation stack until it quits."""

    TITLE = "Render"
    ENABLE_COMMAND_PALETTE = False

    BINDINGS = [
        Binding("ctrl+c", "interrupt", "Quit", priority=True, show=False),
    ]

    def __init__(self, loop: EventLoop, initial: Push) -> None:
        super().__init__()
        self._loop = loop
        self._initial = initial
        self._ui_thread: int | None = None

    def get_default_screen(self) -> Screen:
        return StackScreen(self._loop)

    def on_mount(self) -> None:
        self._ui_thread = threading.get_ident()
        self._loop.set_wakeup(self._wakeup)
        self._loop.post(Resize(self.size.width, self.size.height))
        self._loop.post(self._initial)

    def action_interrupt(self) -> None:
        self._loop.post(KeyPress(QUIT_KEY))

    # ------------------------------------------------------------------
    # Loop plumbing
    # ------------------------------------------------------------------

    def _wakeup(self) -> None:
        if threading.get_ident() == self._ui_thread:
            self.call_later(self._drain)
            return
        try:
            self.call_from_thread(self._drain)
        except RuntimeError:
            # app already closed; the loop is shutting down
            _log.debug("wakeup after app exit ignored")

    def _drain(self) -> None:
        self._loop.process_pending()
        if not self._loop.running:
            self.exit(self._loop.exit_message)
            return
        request = self._loop.take_exec()
        if request is not None:
            self._run_exec(request)
        self.screen_stack[0].query_one("#stack-view", Static).update(self._loop.stack.render())

    def _run_exec(self, request: Exec) -> None:
        _log.info("exec %s", request.argv[0] if request.argv else "")
        with self.suspend():
            try:
                returncode = subprocess.run(list(request.argv)).returncode
            except FileNotFoundError:
                _log.error("command not found: %s", request.argv[0])
                returncode = 127
        self._loop.finish_exec(request, returncode)


def run_interactive(ctx: CommandContext, initial: Push) -> str:
    """Run the TUI for *initial*; returns the message it quit with."""
    loop = EventLoop(ctx)
    app = RenderApp(loop, initial)
    try:
        app.run()
    finally:
        loop.set_wakeup(None)
        loop.shutdown()
    return loop.exit_message
