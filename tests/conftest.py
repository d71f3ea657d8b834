"""Shared fixtures: isolated environment, inline workers, a fake Render API."""

from __future__ import annotations

import io
from typing import Any, Callable

import pytest

from render_cli.command.context import CommandContext, OutputMode
from render_cli.errors import APIError
from render_cli.tui.loop import EventLoop


def inline_spawn(target) -> None:
    """Run loader work synchronously; its events still queue on the loop."""
    target()


# =============================================================================
# ENVIRONMENT
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep logs and config out of the real home directory."""
    monkeypatch.setenv("RENDER_CLI_LOG", str(tmp_path / "render-cli.log"))
    monkeypatch.setenv("RENDER_CLI_CONFIG_PATH", str(tmp_path / "cli.yaml"))
    monkeypatch.setenv("RENDER_API_KEY", "rnd_test")
    monkeypatch.delenv("RENDER_OUTPUT", raising=False)
    monkeypatch.delenv("RENDER_HOST", raising=False)
    return tmp_path


def make_ctx(output: OutputMode = OutputMode.INTERACTIVE, stdin: str = "", confirm: bool = False) -> CommandContext:
    return CommandContext(
        output=output,
        confirm=confirm,
        stdin=io.StringIO(stdin),
        stdout=io.StringIO(),
        stderr=io.StringIO(),
        spawn=inline_spawn,
    )


@pytest.fixture
def ctx() -> CommandContext:
    return make_ctx()


@pytest.fixture
def loop(ctx) -> EventLoop:
    return EventLoop(ctx)


# =============================================================================
# FAKE API
# =============================================================================


class FakeClient:
    """In-memory stand-in for RenderClient, recording every mutating call."""

    def __init__(self) -> None:
        self.services: dict[str, dict] = {}
        self.postgres: dict[str, dict] = {}
        self.owners: list[dict] = []
        self.deploys: dict[str, list[dict]] = {}
        self.deploy_statuses: list[str] = ["live"]
        self.logs: list[dict] = []
        # successive list_logs responses; once drained, on_logs_drained runs and logs is served
        self.log_pages: list[list[dict]] = []
        self.on_logs_drained: Callable[[], None] | None = None
        self.calls: list[tuple[str, Any]] = []

    def add_service(self, service_id: str, name: str = "", type: str = "web_service", owner: str = "own-1", **extra: Any) -> dict:
        service = {"id": service_id, "name": name or service_id, "type": type, "ownerId": owner, **extra}
        self.services[service_id] = service
        return service

    # -- services --

    def list_services(self, owner_id: str = "") -> list[dict]:
        return [s for s in self.services.values() if not owner_id or s["ownerId"] == owner_id]

    def get_service(self, service_id: str) -> dict:
        if service_id not in self.services:
            raise APIError(404, "not found")
        return self.services[service_id]

    def restart_service(self, service_id: str) -> None:
        self.calls.append(("restart_service", service_id))

    # -- postgres --

    def list_postgres(self, owner_id: str = "") -> list[dict]:
        return [p for p in self.postgres.values() if not owner_id or p["ownerId"] == owner_id]

    def get_postgres(self, postgres_id: str) -> dict:
        if postgres_id not in self.postgres:
            raise APIError(404, "not found")
        return self.postgres[postgres_id]

    def restart_postgres(self, postgres_id: str) -> None:
        self.calls.append(("restart_postgres", postgres_id))

    def postgres_connection_info(self, postgres_id: str) -> dict:
        return {"externalConnectionString": f"postgres://user@host/{postgres_id}"}

    # -- projects --

    def list_projects(self, owner_id: str = "") -> list[dict]:
        return []

    def list_environments(self, project_id: str) -> list[dict]:
        return []

    # -- deploys --

    def create_deploy(self, service_id, clear_cache=False, commit_id=None, image_url=None) -> dict:
        self.calls.append(("create_deploy", service_id))
        return {"id": "dep-1", "status": "created"}

    def get_deploy(self, service_id: str, deploy_id: str) -> dict:
        self.calls.append(("get_deploy", deploy_id))
        status = self.deploy_statuses.pop(0) if len(self.deploy_statuses) > 1 else self.deploy_statuses[0]
        return {"id": deploy_id, "status": status}

    def list_deploys(self, service_id: str, limit: int = 20) -> list[dict]:
        return self.deploys.get(service_id, [])[:limit]

    # -- owners / logs --

    def list_owners(self) -> list[dict]:
        return list(self.owners)

    def get_owner(self, owner_id: str) -> dict:
        for owner in self.owners:
            if owner["id"] == owner_id:
                return owner
        raise APIError(404, "not found")

    def list_logs(self, params: dict) -> dict:
        self.calls.append(("list_logs", params))
        if self.log_pages:
            return {"logs": list(self.log_pages.pop(0)), "hasMore": False}
        if self.on_logs_drained is not None:
            self.on_logs_drained()
        return {"logs": list(self.logs), "hasMore": False}


@pytest.fixture
def fake_client(monkeypatch) -> FakeClient:
    client = FakeClient()
    monkeypatch.setattr("render_cli.client.default_client", lambda: client)
    return client


@pytest.fixture
def ctx_factory():
    """Build a CommandContext for a given output mode, stdin text and confirm flag."""
    return make_ctx
