"""AsyncLoader — a failable fetch turned into an ordered stream of loop events.

A load posts ``Loading`` before its worker starts, then exactly one of
``Loaded``/``Failed``, then ``Complete``. Once a handle is cancelled none of
its events reach a view, including ones already sitting in the queue.
``AsyncStream`` may post any number of ``Streamed`` batches after ``Loaded``.
"""

from __future__ import annotations

import enum
import itertools
import logging
from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar

from ..errors import InvalidTransition
from .events import Complete, Failed, Loaded, Loading, Streamed

if TYPE_CHECKING:
    from ..command.context import CommandContext
    from .views import View

_log = logging.getLogger("render-cli")

I = TypeVar("I")
D = TypeVar("D")

_UNSET: Any = object()


class LoadStatus(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class LoadState(Generic[D]):
    """Idle -> Loading -> Loaded(data) | Failed(error).

    Leaving a terminal state takes an explicit ``reset()``; there is no
    implicit retry.
    """

    def __init__(self) -> None:
        self.status = LoadStatus.IDLE
        self._data: D | None = None
        self.error: BaseException | None = None

    @property
    def data(self) -> D | None:
        return self._data if self.status is LoadStatus.LOADED else None

    @property
    def terminal(self) -> bool:
        return self.status in (LoadStatus.LOADED, LoadStatus.FAILED)

    def begin(self) -> None:
        self._require(LoadStatus.IDLE, "begin")
        self.status = LoadStatus.LOADING

    def resolve(self, data: D) -> None:
        self._require(LoadStatus.LOADING, "resolve")
        self.status = LoadStatus.LOADED
        self._data = data

    def fail(self, error: BaseException) -> None:
        self._require(LoadStatus.LOADING, "fail")
        self.status = LoadStatus.FAILED
        self._data = None
        self.error = error

    def reset(self) -> None:
        self.status = LoadStatus.IDLE
        self._data = None
        self.error = None

    def _require(self, expected: LoadStatus, action: str) -> None:
        if self.status is not expected:
            raise InvalidTransition(
                f"cannot {action} a load in state {self.status.value!r}"
            )


class LoadHandle:
    """One in-flight load. Owned by the view that started it."""

    _ids = itertools.count(1)

    def __init__(
        self,
        ctx: CommandContext,
        post: Callable[[Any], None],
        owner: View | None = None,
    ) -> None:
        self.id = next(self._ids)
        self.ctx = ctx
        self.owner = owner
        self._post = post

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"<LoadHandle {self.id} {state}>"

    @property
    def cancelled(self) -> bool:
        return self.ctx.cancelled

    def cancel(self) -> None:
        if not self.cancelled:
            _log.debug("load %d cancelled", self.id)
        self.ctx.cancel()

    def release(self) -> None:
        """Called once ``Complete`` has been dispatched; the load holds nothing open."""
        self.ctx.token.release()

    def post(self, event: Any) -> None:
        if self.cancelled:
            return
        self._post(event)


class AsyncLoader(Generic[I, D]):
    """Wraps ``fn(ctx, input) -> data`` into a non-blocking unit of work.

    *input* may be bound at construction so views can start the load without
    knowing what it was built from. Exceptions raised by *fn* are passed
    through unchanged as ``Failed``.
    """

    def __init__(
        self,
        fn: Callable[[CommandContext, I], D],
        input: I = _UNSET,
        spawn: Callable[[Callable[[], None]], None] | None = None,
    ) -> None:
        self._fn = fn
        self._input = input
        self._spawn = spawn

    def start(
        self, ctx: CommandContext, input: I = _UNSET, owner: View | None = None
    ) -> LoadHandle:
        if ctx.loop is None:
            raise RuntimeError("AsyncLoader.start needs a context bound to an event loop")
        if input is _UNSET:
            input = self._input
        if input is _UNSET:
            input = None

        handle = LoadHandle(ctx.child(), ctx.loop.post, owner)
        handle.post(Loading(handle))

        def work() -> None:
            self._run(handle, input)
            handle.post(Complete(handle))

        spawn = self._spawn or ctx.spawn
        spawn(work)
        return handle

    def _run(self, handle: LoadHandle, input: Any) -> None:
        try:
            data = self._fn(handle.ctx, input)
        except Exception as err:
            if not handle.cancelled:
                _log.debug("load %d failed: %s", handle.id, err)
            handle.post(Failed(handle, err))
        else:
            handle.post(Loaded(handle, data))


class AsyncStream(AsyncLoader[I, D]):
    """Like AsyncLoader, but *fn* yields batches until it runs dry or is cancelled.

    The first batch arrives as ``Loaded``, later ones as ``Streamed``. An error
    raised after the first batch still ends the stream with ``Failed``.
    """

    def _run(self, handle: LoadHandle, input: Any) -> None:
        first = True
        try:
            for batch in self._fn(handle.ctx, input):
                if handle.cancelled:
                    break
                handle.post(Loaded(handle, batch) if first else Streamed(handle, batch))
                first = False
        except Exception as err:
            if not handle.cancelled:
                _log.debug("stream %d failed: %s", handle.id, err)
            handle.post(Failed(handle, err))
