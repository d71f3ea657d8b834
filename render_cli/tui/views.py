"""View base class and the simple loader-backed views."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

from rich.markup import escape

from .events import Exec, Failed, Loaded, Loading
from .loader import AsyncLoader, LoadState, LoadStatus

if TYPE_CHECKING:
    from ..command.context import CommandContext
    from .events import Effect, LoaderEvent
    from .loader import LoadHandle

LOADING_TEXT = "Loading..."


def render_error(error: BaseException) -> str:
    return f"[bold red]Error:[/bold red] {escape(str(error))}"


class View:
    """A renderable, updatable screen owned by exactly one Frame.

    Subclasses override what they need; every hook defaults to a no-op.
    ``render`` returns Rich markup.
    """

    captures_input = False

    def __init__(self) -> None:
        self.ctx: CommandContext | None = None
        self.width = 0
        self.height = 0

    def mount(self, ctx: CommandContext) -> None:
        self.ctx = ctx

    def handle_key(self, key: str) -> Effect | None:
        return None

    def handle_load(self, handle: LoadHandle, event: LoaderEvent) -> Effect | None:
        return None

    def handle_exec(self, returncode: int) -> Effect | None:
        return None

    def resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height

    def render(self) -> str:
        return ""

    def close(self) -> None:
        pass


class MessageView(View):
    """Static text."""

    def __init__(self, message: str) -> None:
        super().__init__()
        self.message = message

    def render(self) -> str:
        return escape(self.message)


class TextView(View):
    """Runs a loader once and shows its result (or error) as text."""

    def __init__(
        self,
        loader: AsyncLoader[Any, Any],
        format: Callable[[Any], str] = str,
    ) -> None:
        super().__init__()
        self._loader = loader
        self._format = format
        self.load: LoadState[Any] = LoadState()
        self._handle: LoadHandle | None = None

    def mount(self, ctx: CommandContext) -> None:
        super().mount(ctx)
        self._handle = self._loader.start(ctx, owner=self)

    def handle_load(self, handle: LoadHandle, event: LoaderEvent) -> Effect | None:
        if handle is not self._handle:
            return None
        if isinstance(event, Loading):
            self.load.begin()
        elif isinstance(event, Loaded):
            self.load.resolve(event.data)
        elif isinstance(event, Failed):
            self.load.fail(event.error)
        return None

    def render(self) -> str:
        if self.load.status is LoadStatus.FAILED:
            return render_error(self.load.error)
        if self.load.status is LoadStatus.LOADED:
            return escape(self._format(self.load.data))
        return LOADING_TEXT


class ExecView(View):
    """Resolves a command line, hands the terminal to it, reports the exit code."""

    def __init__(self, loader: AsyncLoader[Any, Any], label: str = "") -> None:
        super().__init__()
        self._loader = loader
        self._label = label
        self.load: LoadState[Any] = LoadState()
        self._handle: LoadHandle | None = None
        self.returncode: int | None = None

    def mount(self, ctx: CommandContext) -> None:
        super().mount(ctx)
        self._handle = self._loader.start(ctx, owner=self)

    def handle_load(self, handle: LoadHandle, event: LoaderEvent) -> Effect | None:
        if handle is not self._handle:
            return None
        if isinstance(event, Loading):
            self.load.begin()
        elif isinstance(event, Failed):
            self.load.fail(event.error)
        elif isinstance(event, Loaded):
            self.load.resolve(event.data)
            return Exec(argv=tuple(event.data), view=self)
        return None

    def handle_exec(self, returncode: int) -> Effect | None:
        self.returncode = returncode
        return None

    def render(self) -> str:
        if self.load.status is LoadStatus.FAILED:
            return render_error(self.load.error)
        if self.returncode is not None:
            name = self._label or (self.load.data or ["command"])[0]
            return escape(f"{name} exited with code {self.returncode}. Press esc to go back.")
        if self.load.status is LoadStatus.LOADED:
            return escape(f"Running {self._label or self.load.data[0]}...")
        return LOADING_TEXT
