"""TableWidget — a filterable, refreshable list bound to a typed collection."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Generic, Hashable, Mapping, Sequence, TypeVar

from rich.markup import escape

from .events import Complete, Failed, Loaded, Loading, Streamed
from .loader import AsyncLoader, LoadState, LoadStatus
from .views import LOADING_TEXT, View, render_error

if TYPE_CHECKING:
    from ..command.context import CommandContext
    from .events import Effect, LoaderEvent
    from .loader import LoadHandle

_log = logging.getLogger("render-cli")

T = TypeVar("T")

NO_RESULTS_TEXT = "No Results"
DEFAULT_PAGE_SIZE = 25
# column header, filter line, footer
_TABLE_CHROME = 3


@dataclass(frozen=True)
class Column:
    key: str
    title: str
    width: int = 20
    filterable: bool = True
    # cell value -> Rich style
    styles: Mapping[str, str] | None = field(default=None, hash=False, compare=False)


@dataclass(frozen=True, eq=False)
class Row(Generic[T]):
    """Display cells plus the exact domain object they were projected from."""

    cells: dict[str, str]
    data: T


@dataclass
class CustomOption:
    """A single-key shortcut acting on the highlighted row (None when empty)."""

    key: str
    title: str
    function: Callable[[Row[Any] | None], Effect | None] = field(repr=False)

    def __str__(self) -> str:
        return f"[{self.key}] {self.title}"


SEARCH_OPTION_LABEL = "[/] Search"


def _fit(text: str, width: int) -> str:
    if len(text) > width:
        return text[: max(0, width - 1)] + "…"
    return text.ljust(width)


class TableWidget(View, Generic[T]):
    """Generic list view.

    ``project`` turns each loaded item into a Row; ``identity`` gives a stable
    key used to keep the cursor on the same item across refreshes and to
    track multi-select marks.

    ``multi_select`` lets space mark rows for bulk actions; custom options
    read the marks through ``highlighted_rows()``. No screen turns it on
    yet, and enter still only selects a single row.

    A streaming loader keeps appending rows after the first batch. If it
    fails part way, the rows stay and the error is shown beneath them.
    """

    def __init__(
        self,
        columns: Sequence[Column],
        loader: AsyncLoader[Any, list[T]],
        project: Callable[[T], Row[T]],
        on_select: Callable[[list[Row[T]]], Effect | None],
        identity: Callable[[T], Hashable] | None = None,
        custom_options: Sequence[CustomOption] = (),
        header: str = "",
        multi_select: bool = False,
    ) -> None:
        super().__init__()
        self.columns = list(columns)
        self._loader = loader
        self._project = project
        self._on_select = on_select
        self._identity = identity or id
        self.custom_options = list(custom_options)
        self.header = header
        self.multi_select = multi_select

        self.load: LoadState[list[T]] = LoadState()
        self._handle: LoadHandle | None = None
        self._in_flight = False
        self._rows: list[Row[T]] = []
        # set when a stream fails after its first batch; the rows stay visible
        self.stream_error: BaseException | None = None
        self._visible: list[Row[T]] = []
        self._marked: set[Hashable] = set()
        self.cursor = 0
        self.offset = 0
        self.filter_text = ""
        self.filter_focused = False

    # -- state ---------------------------------------------------------------

    @property
    def captures_input(self) -> bool:  # type: ignore[override]
        return self.filter_focused

    @property
    def rows(self) -> list[Row[T]]:
        return list(self._rows)

    @property
    def visible_rows(self) -> list[Row[T]]:
        return list(self._visible)

    @property
    def highlighted_row(self) -> Row[T] | None:
        if not self._visible:
            return None
        return self._visible[self.cursor]

    def highlighted_rows(self) -> list[Row[T]]:
        """Marked rows in multi-select mode, otherwise the cursor row."""
        if self.multi_select and self._marked:
            return [r for r in self._visible if self._key(r) in self._marked]
        row = self.highlighted_row
        return [row] if row is not None else []

    @property
    def page_size(self) -> int:
        if self.height <= 0:
            return DEFAULT_PAGE_SIZE
        chrome = _TABLE_CHROME + (1 if self.header else 0)
        return max(1, self.height - chrome)

    def _key(self, row: Row[T]) -> Hashable:
        return self._identity(row.data)

    # -- loading -------------------------------------------------------------

    def mount(self, ctx: CommandContext) -> None:
        super().mount(ctx)
        self._start_load()

    def _start_load(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self.load.reset()
        self._in_flight = True
        self.stream_error = None
        self._handle = self._loader.start(self.ctx, owner=self)

    def refresh(self) -> None:
        """Re-run the loader unless a load is already in flight."""
        if self.ctx is None or self._in_flight:
            return
        _log.debug("table refresh")
        self._start_load()

    def handle_load(self, handle: LoadHandle, event: LoaderEvent) -> Effect | None:
        if handle is not self._handle:
            return None
        if isinstance(event, Loading):
            self.load.begin()
        elif isinstance(event, Loaded):
            self.load.resolve(event.data)
            self._replace_rows(event.data)
        elif isinstance(event, Streamed):
            self._append_rows(event.data)
        elif isinstance(event, Failed) and self.load.status is LoadStatus.LOADED:
            self.stream_error = event.error
        elif isinstance(event, Failed):
            self.load.fail(event.error)
        elif isinstance(event, Complete):
            self._in_flight = False
        return None

    def _replace_rows(self, items: Sequence[T]) -> None:
        previous = self.highlighted_row
        keep = self._key(previous) if previous is not None else None
        self._rows = [self._project(item) for item in items]
        present = {self._key(r) for r in self._rows}
        self._marked &= present
        self._apply_filter(keep if keep in present else None)

    def _append_rows(self, items: Sequence[T]) -> None:
        previous = self.highlighted_row
        self._rows.extend(self._project(item) for item in items)
        self._apply_filter(self._key(previous) if previous is not None else None)

    # -- filtering -----------------------------------------------------------

    def set_filter(self, text: str) -> None:
        previous = self.highlighted_row
        self.filter_text = text
        self._apply_filter(self._key(previous) if previous is not None else None)

    def _matches(self, row: Row[T], needle: str) -> bool:
        return any(
            needle in str(row.cells.get(c.key, "")).casefold()
            for c in self.columns
            if c.filterable
        )

    def _apply_filter(self, keep: Hashable | None = None) -> None:
        needle = self.filter_text.casefold()
        if needle:
            self._visible = [r for r in self._rows if self._matches(r, needle)]
        else:
            self._visible = list(self._rows)

        index = None
        if keep is not None:
            index = next(
                (i for i, r in enumerate(self._visible) if self._key(r) == keep), None
            )
        if index is None:
            self.cursor = 0
            self.offset = 0
        else:
            self.cursor = index
            self._scroll_to_cursor()

    def _handle_filter_key(self, key: str) -> Effect | None:
        if key == "enter":
            self.filter_focused = False
        elif key == "esc":
            self.filter_focused = False
            self.set_filter("")
        elif key == "backspace":
            self.set_filter(self.filter_text[:-1])
        elif key == "space":
            self.set_filter(self.filter_text + " ")
        elif len(key) == 1 and key.isprintable():
            self.set_filter(self.filter_text + key)
        return None

    # -- navigation ----------------------------------------------------------

    def _move(self, delta: int) -> None:
        if not self._visible:
            return
        self.cursor = min(max(self.cursor + delta, 0), len(self._visible) - 1)
        self._scroll_to_cursor()

    def _scroll_to_cursor(self) -> None:
        page = self.page_size
        if self.cursor < self.offset:
            self.offset = self.cursor
        elif self.cursor >= self.offset + page:
            self.offset = self.cursor - page + 1
        self.offset = max(0, min(self.offset, max(0, len(self._visible) - page)))

    def _toggle_mark(self) -> None:
        row = self.highlighted_row
        if row is None:
            return
        key = self._key(row)
        if key in self._marked:
            self._marked.discard(key)
        else:
            self._marked.add(key)

    def handle_key(self, key: str) -> Effect | None:
        if self.filter_focused:
            return self._handle_filter_key(key)

        if key == "enter":
            rows = self.highlighted_rows()
            if len(rows) != 1:
                return None
            return self._on_select(rows)
        if key in ("up", "k"):
            self._move(-1)
        elif key in ("down", "j"):
            self._move(1)
        elif key == "pageup":
            self._move(-self.page_size)
        elif key == "pagedown":
            self._move(self.page_size)
        elif key == "home":
            self._move(-len(self._visible))
        elif key == "end":
            self._move(len(self._visible))
        elif key == "/":
            self.filter_focused = True
        elif key == "space" and self.multi_select:
            self._toggle_mark()
        else:
            for option in self.custom_options:
                if key == option.key:
                    return option.function(self.highlighted_row)
            if key == "r":
                self.refresh()
        return None

    def resize(self, width: int, height: int) -> None:
        super().resize(width, height)
        self._scroll_to_cursor()

    # -- rendering -----------------------------------------------------------

    def _render_line(self, cells: dict[str, str], styled: bool = True) -> str:
        parts = []
        for c in self.columns:
            value = str(cells.get(c.key, ""))
            text = escape(_fit(value, c.width))
            style = c.styles.get(value) if styled and c.styles else None
            parts.append(f"[{style}]{text}[/]" if style else text)
        return " ".join(parts)

    def _render_table(self) -> list[str]:
        titles = {c.key: c.title for c in self.columns}
        lines = [f"[bold] {self._render_line(titles, styled=False)}[/bold]"]
        window = self._visible[self.offset : self.offset + self.page_size]
        for i, row in enumerate(window, start=self.offset):
            mark = "*" if self.multi_select and self._key(row) in self._marked else " "
            line = mark + self._render_line(row.cells)
            if i == self.cursor:
                line = f"[reverse]{line}[/reverse]"
            lines.append(line)
        return lines

    def _render_footer(self) -> str:
        if not self.custom_options:
            return ""
        options = [str(o) for o in self.custom_options] + [SEARCH_OPTION_LABEL]
        return "[bold]Actions:[/bold]    " + escape(" ".join(options))

    def render(self) -> str:
        lines: list[str] = []
        if self.header:
            lines.append(f"[#f9e2af]{escape(self.header)}[/#f9e2af]")

        if self.load.status is LoadStatus.FAILED:
            lines.append(render_error(self.load.error))
        elif not self._rows and self.load.status is not LoadStatus.LOADED:
            lines.append(LOADING_TEXT)
        elif not self._rows:
            lines.append(NO_RESULTS_TEXT)
        else:
            lines.extend(self._render_table())
        if self.stream_error is not None:
            lines.append(render_error(self.stream_error))

        if self.filter_focused or self.filter_text:
            cursor = "█" if self.filter_focused else ""
            lines.append(f"/ {escape(self.filter_text)}{cursor}")

        footer = self._render_footer()
        if footer:
            lines.append(footer)
        return "\n".join(lines)
