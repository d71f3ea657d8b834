"""Help overlay listing the keys the navigation stack understands."""

from __future__ import annotations

from typing import Sequence

from rich.markup import escape
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Center, Vertical
from textual.screen import ModalScreen
from textual.widgets import Static

KEY_SECTIONS: list[tuple[str, list[tuple[str, str]]]] = [
    ("Navigation", [
        ("j / Down", "Move cursor down"),
        ("k / Up", "Move cursor up"),
        ("PgUp / PgDn", "Move one page"),
        ("Home / End", "First / last row"),
        ("Enter", "Select the highlighted row"),
        ("Esc", "Back to the previous screen"),
    ]),
    ("Tables", [
        ("/", "Filter rows (Enter keeps, Esc clears)"),
        ("r", "Reload"),
        ("Space", "Mark a row (multi-select tables)"),
    ]),
    ("Global", [
        ("?", "Show this help"),
        ("y / n", "Answer a confirmation prompt"),
        ("Ctrl+C", "Quit"),
    ]),
]

_KEY_WIDTH = 16


def _section(title: str, keys: Sequence[tuple[str, str]]) -> list[str]:
    lines = [f"[bold underline]{escape(title)}[/bold underline]"]
    for key, description in keys:
        pad = " " * max(1, _KEY_WIDTH - len(key))
        lines.append(f"  [bold]{escape(key)}[/bold]{pad}{escape(description)}")
    return lines


def help_text(actions: Sequence[tuple[str, str]] = ()) -> str:
    """Markup for the overlay; *actions* are the current screen's own keys."""
    lines = ["[bold]Render: keyboard shortcuts[/bold]", ""]
    sections = list(KEY_SECTIONS)
    if actions:
        sections.insert(0, ("This screen", list(actions)))
    for title, keys in sections:
        lines.extend(_section(title, keys))
        lines.append("")
    lines.append("[dim]Press Escape to close.[/dim]")
    return "\n".join(lines)


class HelpScreen(ModalScreen[None]):
    DEFAULT_CSS = """
    HelpScreen {
        align: center middle;
    }

    HelpScreen #help-dialog {
        width: 66;
        max-height: 80%;
        background: $surface;
        border: thick $primary;
        padding: 1 2;
    }
    """

    BINDINGS = [
        Binding("escape", "dismiss", "Close", show=False),
        Binding("question_mark", "dismiss", "Close", show=False),
    ]

    def __init__(self, actions: Sequence[tuple[str, str]] = ()) -> None:
        super().__init__()
        self._actions = list(actions)

    def compose(self) -> ComposeResult:
        with Center():
            with Vertical(id="help-dialog"):
                yield Static(help_text(self._actions), id="help-content")

    def action_dismiss(self) -> None:
        self.dismiss(None)
