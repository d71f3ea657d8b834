"""Tests for the confirmation gate, scripted and interactive."""

from __future__ import annotations

import pytest

from render_cli.command.context import OutputMode
from render_cli.errors import InvalidTransition
from render_cli.tui.confirm import (
    ABORTED,
    CONFIRMED,
    UNCONFIRMED,
    Aborted,
    ConfirmGate,
    Confirmed,
    ConfirmView,
    PendingPrompt,
    advance,
)
from render_cli.tui.events import KeyPress, Push
from render_cli.tui.loader import AsyncLoader, LoadStatus
from render_cli.tui.stack import Frame
from render_cli.tui.views import TextView


# =============================================================================
# STATE MACHINE
# =============================================================================


class TestAdvance:
    def test_forward_moves(self):
        pending = advance(UNCONFIRMED, PendingPrompt("sure?"))
        assert advance(pending, CONFIRMED) is CONFIRMED

    def test_skipping_the_prompt_is_allowed(self):
        assert advance(UNCONFIRMED, CONFIRMED) is CONFIRMED

    @pytest.mark.parametrize("final", [CONFIRMED, ABORTED])
    def test_final_states_are_final(self, final):
        for target in (UNCONFIRMED, PendingPrompt("again?"), CONFIRMED, ABORTED):
            with pytest.raises(InvalidTransition):
                advance(final, target)

    def test_no_backwards_moves(self):
        with pytest.raises(InvalidTransition):
            advance(PendingPrompt("sure?"), UNCONFIRMED)


# =============================================================================
# SCRIPTED GATE
# =============================================================================


class TestConfirmGate:
    def run(self, ctx, calls, message="Restart srv-1?"):
        def action(c):
            calls.append("action")
            return "done"

        return ConfirmGate().guard(ctx, lambda c: message, action)

    def test_yes_runs_the_action(self, ctx_factory):
        ctx = ctx_factory(OutputMode.JSON, stdin="y\n")
        calls = []
        result = self.run(ctx, calls)
        assert isinstance(result.state, Confirmed)
        assert result.value == "done"
        assert calls == ["action"]
        assert ctx.stdout.getvalue() == "Restart srv-1? (y/n): "

    @pytest.mark.parametrize("answer", ["n\n", "Y\n", "yes\n", "y", "", " y\n"])
    def test_anything_else_aborts(self, ctx_factory, answer):
        ctx = ctx_factory(OutputMode.JSON, stdin=answer)
        calls = []
        result = self.run(ctx, calls)
        assert result.aborted
        assert calls == []
        assert ctx.stdout.getvalue() == "Restart srv-1? (y/n): Aborted\n"

    def test_confirm_flag_skips_the_prompt(self, ctx_factory):
        ctx = ctx_factory(OutputMode.JSON, confirm=True)
        calls = []
        result = self.run(ctx, calls)
        assert isinstance(result.state, Confirmed)
        assert calls == ["action"]
        assert ctx.stdout.getvalue() == ""

    def test_no_message_means_no_prompt(self, ctx_factory):
        ctx = ctx_factory(OutputMode.JSON)
        result = ConfirmGate().guard(ctx, None, lambda c: 7)
        assert result.value == 7
        assert ctx.stdout.getvalue() == ""

    def test_message_failure_is_reported_without_prompting(self, ctx_factory):
        ctx = ctx_factory(OutputMode.JSON, stdin="y\n")
        err = LookupError("no such service")

        def message(c):
            raise err

        calls = []
        result = ConfirmGate().guard(ctx, message, lambda c: calls.append("action"))
        assert result.error is err
        assert calls == []
        assert ctx.stdout.getvalue() == ""

    def test_action_failure_is_captured(self, ctx_factory):
        ctx = ctx_factory(OutputMode.JSON, confirm=True)
        err = RuntimeError("api down")

        def action(c):
            raise err

        result = ConfirmGate().guard(ctx, lambda c: "sure?", action)
        assert result.error is err
        assert not result.aborted


# =============================================================================
# INTERACTIVE GATE
# =============================================================================


class TestConfirmView:
    @pytest.fixture
    def calls(self):
        return []

    @pytest.fixture
    def view(self, loop, calls):
        def restart(ctx, _):
            calls.append("restart")
            return "srv-1 restarted successfully"

        inner = TextView(AsyncLoader(restart))
        view = ConfirmView(inner, AsyncLoader(lambda ctx, _: "Restart srv-1?"))
        loop.apply(Push(Frame(view=view, breadcrumb="Restart")))
        loop.process_pending()
        return view

    def test_prompts_before_running(self, view, calls):
        assert view.confirm_state == PendingPrompt("Restart srv-1?")
        assert view.render() == "Restart srv-1? [bold](y/n)[/bold]"
        assert view.inner.load.status is LoadStatus.IDLE
        assert calls == []

    def test_yes_mounts_the_inner_view(self, loop, view, calls):
        loop.dispatch(KeyPress("y"))
        loop.process_pending()
        assert isinstance(view.confirm_state, Confirmed)
        assert calls == ["restart"]
        assert view.render() == "srv-1 restarted successfully"

    @pytest.mark.parametrize("key", ["n", "esc"])
    def test_no_aborts_without_running(self, loop, view, calls, key):
        loop.dispatch(KeyPress(key))
        loop.process_pending()
        assert isinstance(view.confirm_state, Aborted)
        assert view.render() == "Aborted"
        assert calls == []
        # esc was the answer, not a back navigation
        assert len(loop.stack) == 1

    def test_other_keys_are_ignored_while_prompting(self, loop, view, calls):
        for key in ("x", "enter", "j"):
            loop.dispatch(KeyPress(key))
        assert isinstance(view.confirm_state, PendingPrompt)
        assert calls == []

    def test_esc_after_abort_leaves(self, loop, view):
        loop.dispatch(KeyPress("n"))
        loop.dispatch(KeyPress("esc"))
        assert not loop.running

    def test_message_failure_renders_error(self, loop):
        def message(ctx, _):
            raise RuntimeError("service not found")

        view = ConfirmView(TextView(AsyncLoader(lambda c, _: None)), AsyncLoader(message))
        loop.apply(Push(Frame(view=view, breadcrumb="Restart")))
        loop.process_pending()
        assert "service not found" in view.render()
        assert view.confirm_state is UNCONFIRMED
