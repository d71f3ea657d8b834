"""Events flowing into the UI loop, and the effects views hand back to it.

Kept in one module so views, loaders and the loop share a single vocabulary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from .loader import LoadHandle
    from .stack import Frame
    from .views import View


# ---------------------------------------------------------------------------
# Events: delivered by EventLoop.dispatch
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeyPress:
    key: str


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


@dataclass(frozen=True, eq=False)
class Loading:
    handle: LoadHandle


@dataclass(frozen=True, eq=False)
class Loaded:
    handle: LoadHandle
    data: Any


@dataclass(frozen=True, eq=False)
class Failed:
    handle: LoadHandle
    error: BaseException


@dataclass(frozen=True, eq=False)
class Streamed:
    """A later batch from a streaming load; arrives between Loaded and Complete."""

    handle: LoadHandle
    data: Any


@dataclass(frozen=True, eq=False)
class Complete:
    handle: LoadHandle


@dataclass(frozen=True, eq=False)
class ExecFinished:
    view: View
    returncode: int


LOADER_EVENTS = (Loading, Loaded, Streamed, Failed, Complete)
LoaderEvent = Union[Loading, Loaded, Streamed, Failed, Complete]


# ---------------------------------------------------------------------------
# Effects: returned by views, applied by EventLoop.apply (at most one per event)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class Push:
    frame: Frame


@dataclass(frozen=True)
class Pop:
    pass


@dataclass(frozen=True)
class Quit:
    message: str = ""


@dataclass(frozen=True, eq=False)
class Exec:
    """Run *argv* with the terminal handed over, then report back to *view*."""

    argv: tuple[str, ...]
    view: View


Effect = Union[Push, Pop, Quit, Exec]
