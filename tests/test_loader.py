"""Tests for AsyncLoader, LoadHandle and the LoadState machine."""

from __future__ import annotations

import pytest

from render_cli.errors import APIError, InvalidTransition
from render_cli.command.context import CancelToken
from render_cli.tui.loader import AsyncLoader, AsyncStream, LoadState, LoadStatus
from render_cli.tui.views import View


class RecordingView(View):
    def __init__(self) -> None:
        super().__init__()
        self.events = []

    def handle_load(self, handle, event):
        self.events.append(event)
        return None


def names(view: RecordingView) -> list[str]:
    return [type(e).__name__ for e in view.events]


# =============================================================================
# LOAD STATE
# =============================================================================


class TestLoadState:
    def test_happy_path(self):
        state = LoadState()
        assert state.status is LoadStatus.IDLE
        state.begin()
        assert state.status is LoadStatus.LOADING
        state.resolve([1, 2])
        assert state.status is LoadStatus.LOADED
        assert state.data == [1, 2]
        assert state.terminal

    def test_failure_carries_no_data(self):
        state = LoadState()
        state.begin()
        err = RuntimeError("boom")
        state.fail(err)
        assert state.status is LoadStatus.FAILED
        assert state.error is err
        assert state.data is None

    def test_data_hidden_until_loaded(self):
        state = LoadState()
        state.begin()
        assert state.data is None

    @pytest.mark.parametrize("action", ["resolve", "fail"])
    def test_cannot_finish_without_starting(self, action):
        state = LoadState()
        with pytest.raises(InvalidTransition):
            getattr(state, action)(RuntimeError("x") if action == "fail" else 1)

    def test_no_implicit_retry(self):
        state = LoadState()
        state.begin()
        state.resolve("a")
        with pytest.raises(InvalidTransition):
            state.begin()
        state.reset()
        state.begin()
        assert state.status is LoadStatus.LOADING


# =============================================================================
# ASYNC LOADER
# =============================================================================


class TestAsyncLoader:
    def test_success_event_order(self, loop):
        view = RecordingView()
        AsyncLoader(lambda ctx, n: n * 2, 21).start(loop.ctx, owner=view)
        loop.process_pending()
        assert names(view) == ["Loading", "Loaded", "Complete"]
        assert view.events[1].data == 42

    def test_failure_passes_error_through_unchanged(self, loop):
        err = APIError(500, "boom")

        def fail(ctx, _):
            raise err

        view = RecordingView()
        AsyncLoader(fail).start(loop.ctx, owner=view)
        loop.process_pending()
        assert names(view) == ["Loading", "Failed", "Complete"]
        assert view.events[1].error is err

    def test_loading_is_posted_before_the_worker_runs(self, loop):
        pending = []
        view = RecordingView()
        AsyncLoader(lambda ctx, _: "done", spawn=pending.append).start(loop.ctx, owner=view)
        loop.process_pending()
        assert names(view) == ["Loading"]

        pending.pop()()
        loop.process_pending()
        assert names(view) == ["Loading", "Loaded", "Complete"]

    def test_cancelled_handle_delivers_nothing(self, loop):
        pending = []
        view = RecordingView()
        handle = AsyncLoader(lambda ctx, _: "late", spawn=pending.append).start(
            loop.ctx, owner=view
        )
        handle.cancel()
        pending.pop()()
        loop.process_pending()
        assert view.events == []
        assert handle.cancelled

    def test_cancelled_load_that_raises_delivers_nothing(self, loop):
        pending = []
        view = RecordingView()

        def fetch(ctx, _):
            raise APIError(500, "connection reset")

        handle = AsyncLoader(fetch, spawn=pending.append).start(loop.ctx, owner=view)
        loop.process_pending()
        handle.cancel()
        pending.pop()()
        loop.process_pending()
        assert names(view) == ["Loading"]

    def test_parent_cancellation_reaches_the_handle(self, loop):
        handle = AsyncLoader(lambda ctx, _: None, spawn=lambda work: None).start(loop.ctx)
        loop.ctx.cancel()
        assert handle.cancelled

    def test_worker_sees_cancellation(self, loop):
        seen = []
        pending = []
        handle = AsyncLoader(
            lambda ctx, _: seen.append(ctx.cancelled), spawn=pending.append
        ).start(loop.ctx)
        handle.cancel()
        pending.pop()()
        assert seen == [True]

    def test_input_given_at_start_overrides_bound_input(self, loop):
        view = RecordingView()
        loader = AsyncLoader(lambda ctx, value: value, "bound")
        loader.start(loop.ctx, "override", owner=view)
        loop.process_pending()
        assert view.events[1].data == "override"

    def test_start_needs_a_loop(self, ctx):
        with pytest.raises(RuntimeError):
            AsyncLoader(lambda c, _: None).start(ctx)

    def test_handles_are_distinct(self, loop):
        loader = AsyncLoader(lambda ctx, _: None)
        first = loader.start(loop.ctx)
        second = loader.start(loop.ctx)
        assert first.id != second.id

    def test_completed_load_is_released_from_its_parent(self, loop):
        handle = AsyncLoader(lambda ctx, _: "done").start(loop.ctx)
        assert loop.ctx.token.live_children == 1
        loop.process_pending()
        assert loop.ctx.token.live_children == 0
        assert not handle.cancelled


# =============================================================================
# ASYNC STREAM
# =============================================================================


class TestAsyncStream:
    def test_first_batch_loads_the_rest_stream(self, loop):
        view = RecordingView()
        AsyncStream(lambda ctx, _: iter([[1], [2, 3], [4]])).start(loop.ctx, owner=view)
        loop.process_pending()
        assert names(view) == ["Loading", "Loaded", "Streamed", "Streamed", "Complete"]
        assert [e.data for e in view.events[1:4]] == [[1], [2, 3], [4]]

    def test_error_after_first_batch_ends_the_stream(self, loop):
        view = RecordingView()

        def batches(ctx, _):
            yield ["a"]
            raise APIError(502, "bad gateway")

        AsyncStream(batches).start(loop.ctx, owner=view)
        loop.process_pending()
        assert names(view) == ["Loading", "Loaded", "Failed", "Complete"]
        assert "bad gateway" in str(view.events[2].error)

    def test_cancelling_stops_the_generator(self, loop):
        pending = []
        produced = []
        view = RecordingView()

        def batches(ctx, _):
            for i in range(100):
                produced.append(i)
                yield [i]

        handle = AsyncStream(batches, spawn=pending.append).start(loop.ctx, owner=view)
        loop.process_pending()
        handle.cancel()
        pending.pop()()
        loop.process_pending()
        assert produced == [0]
        assert names(view) == ["Loading"]


# =============================================================================
# CANCEL TOKEN
# =============================================================================


class TestCancelToken:
    def test_cancel_reaches_children(self):
        parent = CancelToken()
        child = CancelToken(parent)
        grandchild = CancelToken(child)
        parent.cancel()
        assert child.cancelled and grandchild.cancelled

    def test_child_of_cancelled_parent_starts_cancelled(self):
        parent = CancelToken()
        parent.cancel()
        assert CancelToken(parent).cancelled
        assert parent.live_children == 0

    def test_cancelled_child_leaves_its_parent(self):
        parent = CancelToken()
        children = [CancelToken(parent) for _ in range(50)]
        for child in children:
            child.cancel()
        assert parent.live_children == 0
        assert not parent.cancelled

    def test_released_child_no_longer_follows_its_parent(self):
        parent = CancelToken()
        child = CancelToken(parent)
        child.release()
        assert parent.live_children == 0
        parent.cancel()
        assert not child.cancelled

    def test_wait_returns_early_once_cancelled(self):
        token = CancelToken()
        assert token.wait(0) is False
        token.cancel()
        assert token.wait(10) is True
