"""Tests for the dual-mode runner: one command, interactive or scripted."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from render_cli.command.context import OutputMode
from render_cli.command.inputs import cli_field
from render_cli.command.runner import RunStatus, run
from render_cli.errors import APIError
from render_cli.tui.confirm import ConfirmView
from render_cli.tui.events import Push
from render_cli.tui.views import TextView


@dataclass(frozen=True)
class ItemInput:
    item_id: str = cli_field(arg=0)
    verbose: bool = cli_field(flag="verbose", default=False)


def render_text(ctx, loader, input):
    return TextView(loader)


class Action:
    """Load function that counts its calls."""

    def __init__(self, result=None, error=None):
        self.calls = 0
        self.result = result
        self.error = error

    def __call__(self, ctx, input):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


# =============================================================================
# SCRIPTED MODES
# =============================================================================


class TestNonInteractive:
    def test_json_output_is_exact(self, ctx_factory):
        ctx = ctx_factory(OutputMode.JSON)
        result = run(ctx, "services", ItemInput("srv-1"), Action({"Id": "srv-1"}), render_text)
        assert ctx.stdout.getvalue() == '{\n  "Id": "srv-1"\n}\n'
        assert result.status is RunStatus.SUCCESS
        assert result.exit_code == 0

    def test_yaml_output(self, ctx_factory):
        ctx = ctx_factory(OutputMode.YAML)
        run(ctx, "services", ItemInput("srv-1"), Action({"Id": "srv-1", "Tags": ["a"]}), render_text)
        assert ctx.stdout.getvalue() == "Id: srv-1\nTags:\n- a\n"

    def test_confirmed_action_runs_once(self, ctx_factory):
        ctx = ctx_factory(OutputMode.TEXT, stdin="y\n")
        action = Action("srv-1 restarted successfully")
        result = run(
            ctx, "restart", ItemInput("srv-1"), action, render_text,
            confirm_message_fn=lambda c, i: f"Restart {i.item_id}?",
        )
        assert action.calls == 1
        assert result.exit_code == 0
        assert ctx.stdout.getvalue() == "Restart srv-1? (y/n): srv-1 restarted successfully\n"

    def test_declined_action_never_runs_and_is_not_a_failure(self, ctx_factory):
        ctx = ctx_factory(OutputMode.TEXT, stdin="n\n")
        action = Action("unused")
        result = run(
            ctx, "restart", ItemInput("srv-1"), action, render_text,
            confirm_message_fn=lambda c, i: "Restart srv-1?",
        )
        assert action.calls == 0
        assert result.status is RunStatus.ABORTED
        assert result.exit_code == 0
        assert "Aborted" in ctx.stdout.getvalue()
        assert ctx.stderr.getvalue() == ""

    def test_confirm_flag_reads_no_input(self, ctx_factory):
        ctx = ctx_factory(OutputMode.JSON, confirm=True)
        action = Action({"ok": True})
        result = run(
            ctx, "restart", ItemInput("srv-1"), action, render_text,
            confirm_message_fn=lambda c, i: "Restart srv-1?",
        )
        assert action.calls == 1
        assert result.exit_code == 0
        assert "(y/n)" not in ctx.stdout.getvalue()

    def test_errors_go_to_stderr_with_exit_code_1(self, ctx_factory):
        ctx = ctx_factory(OutputMode.JSON)
        result = run(
            ctx, "services", ItemInput("srv-1"), Action(error=APIError(401, "unauthorized")),
            render_text,
        )
        assert result.status is RunStatus.FAILED
        assert result.exit_code == 1
        assert ctx.stdout.getvalue() == ""
        assert ctx.stderr.getvalue() == "Render API returned 401: unauthorized\n"

    def test_unsuccessful_outcome_is_written_then_fails(self, ctx_factory):
        ctx = ctx_factory(OutputMode.JSON)
        result = run(
            ctx, "deploys create", ItemInput("srv-1"), Action({"status": "build_failed"}),
            render_text, succeeded=lambda d: d["status"] == "live",
        )
        assert result.exit_code == 1
        assert '"build_failed"' in ctx.stdout.getvalue()


# =============================================================================
# INTERACTIVE MODE
# =============================================================================


class TestInteractive:
    def test_returns_a_push_without_calling_load(self, ctx):
        action = Action("data")
        result = run(ctx, "restart", ItemInput("srv-1", verbose=True), action, render_text,
                     breadcrumb="Restart srv-1")
        assert result.status is RunStatus.INTERACTIVE
        assert isinstance(result.effect, Push)
        frame = result.effect.frame
        assert frame.breadcrumb == "Restart srv-1"
        assert frame.command_text == "render restart srv-1 --verbose"
        assert isinstance(frame.view, TextView)
        assert action.calls == 0
        assert result.exit_code == 0

    @pytest.mark.parametrize("confirm,wrapped", [(False, True), (True, False)])
    def test_confirmation_wraps_the_view(self, ctx_factory, confirm, wrapped):
        ctx = ctx_factory(OutputMode.INTERACTIVE, confirm=confirm)
        result = run(
            ctx, "restart", ItemInput("srv-1"), Action(), render_text,
            confirm_message_fn=lambda c, i: "Restart srv-1?",
        )
        assert isinstance(result.effect.frame.view, ConfirmView) is wrapped

    def test_same_load_function_in_both_modes(self, loop, ctx_factory):
        action = Action({"Id": "srv-1"})
        interactive = run(loop.ctx, "services", ItemInput("srv-1"), action, render_text)
        loop.apply(interactive.effect)
        loop.process_pending()

        scripted = ctx_factory(OutputMode.JSON)
        run(scripted, "services", ItemInput("srv-1"), action, render_text)
        assert action.calls == 2
        assert loop.stack.current().view.load.data == {"Id": "srv-1"}


class TestStreaming:
    def test_scripted_stream_writes_every_item(self, ctx_factory):
        ctx = ctx_factory(OutputMode.JSON)
        result = run(
            ctx, "logs", ItemInput("srv-1"), lambda c, i: iter([[1, 2], [3]]), render_text,
            stream=True,
        )
        assert result.status is RunStatus.SUCCESS
        assert ctx.stdout.getvalue() == "1\n2\n3\n"

    def test_error_mid_stream_fails_after_what_was_written(self, ctx_factory):
        def batches(ctx, input):
            yield ["first"]
            raise APIError(503, "unavailable")

        ctx = ctx_factory(OutputMode.TEXT)
        result = run(ctx, "logs", ItemInput("srv-1"), batches, render_text, stream=True)
        assert result.exit_code == 1
        assert ctx.stdout.getvalue() == "first\n"
        assert "unavailable" in ctx.stderr.getvalue()

    def test_interactive_stream_uses_a_streaming_loader(self, loop):
        result = run(
            loop.ctx, "logs", ItemInput("srv-1"), lambda c, i: iter([["a"], ["b"]]), render_text,
            stream=True,
        )
        loop.apply(result.effect)
        loop.process_pending()
        assert loop.stack.current().view.load.data == ["a"]

    def test_streams_cannot_ask_for_confirmation(self, ctx):
        with pytest.raises(ValueError):
            run(
                ctx, "logs", ItemInput("srv-1"), Action(), render_text,
                confirm_message_fn=lambda c, i: "sure?", stream=True,
            )
