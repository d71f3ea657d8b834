"""Services, Postgres databases and deploys as the screens see them."""

from __future__ import annotations

import logging

from .client import RenderClient
from .errors import RenderCLIError

_log = logging.getLogger("render-cli")

WEB_SERVICE = "web_service"
PRIVATE_SERVICE = "private_service"
BACKGROUND_WORKER = "background_worker"
STATIC_SITE = "static_site"
CRON_JOB = "cron_job"
POSTGRES = "postgres"

SERVICE_TYPES = (WEB_SERVICE, PRIVATE_SERVICE, BACKGROUND_WORKER, STATIC_SITE, CRON_JOB)
SSH_TYPES = (WEB_SERVICE, PRIVATE_SERVICE, BACKGROUND_WORKER)


# ---------------------------------------------------------------------------
# Workspace guard
# ---------------------------------------------------------------------------


def workspace_matches(owner_id: str, workspace: str) -> None:
    """Reject a resource that lives outside the selected workspace.

    An unset workspace accepts everything.
    """
    if workspace and owner_id != workspace:
        raise RenderCLIError(
            f"resource in workspace {owner_id} does not match the workspace in the "
            f"current workspace context {workspace}. Run `render workspace` to change contexts"
        )


def get_service(client: RenderClient, service_id: str, workspace: str = "") -> dict:
    service = client.get_service(service_id)
    workspace_matches(service.get("ownerId", ""), workspace)
    return service


def is_postgres_id(resource_id: str) -> bool:
    return resource_id.startswith("dpg-")


def get_resource(client: RenderClient, resource_id: str, workspace: str = "") -> dict:
    """A service or Postgres database, looked up by ID prefix."""
    if is_postgres_id(resource_id):
        raw = client.get_postgres(resource_id)
        workspace_matches(raw.get("ownerId", ""), workspace)
        return {**raw, "type": POSTGRES}
    return get_service(client, resource_id, workspace)


def restart_resource(client: RenderClient, resource_id: str) -> None:
    if is_postgres_id(resource_id):
        client.restart_postgres(resource_id)
    else:
        client.restart_service(resource_id)


# ---------------------------------------------------------------------------
# Resource listing
# ---------------------------------------------------------------------------


def _environment_names(client: RenderClient, owner_id: str) -> tuple[dict, dict]:
    """Map environment ID -> environment name and environment ID -> project name."""
    env_names: dict[str, str] = {}
    env_projects: dict[str, str] = {}
    for project in client.list_projects(owner_id):
        for env in client.list_environments(project.get("id", "")):
            env_names[env.get("id", "")] = env.get("name", "")
            env_projects[env.get("id", "")] = project.get("name", "")
    return env_names, env_projects


def _resource(raw: dict, type_: str, env_names: dict, env_projects: dict) -> dict:
    env_id = raw.get("environmentId") or ""
    return {
        "id": raw.get("id", ""),
        "type": type_,
        "name": raw.get("name", ""),
        "project": env_projects.get(env_id, ""),
        "environment": env_names.get(env_id, ""),
        "ownerId": raw.get("ownerId", ""),
    }


def list_resources(client: RenderClient, owner_id: str = "") -> list[dict]:
    """Services and Postgres databases, flattened into one sorted list."""
    env_names, env_projects = _environment_names(client, owner_id)
    resources = [
        _resource(s, s.get("type", ""), env_names, env_projects)
        for s in client.list_services(owner_id)
    ]
    resources.extend(
        _resource(p, POSTGRES, env_names, env_projects)
        for p in client.list_postgres(owner_id)
    )
    _log.debug("listed %d resources", len(resources))
    return sorted(resources, key=lambda r: (r["project"], r["environment"], r["name"]))


def breadcrumb_for(resource: dict) -> str:
    return f"{resource.get('type', '')}: {resource.get('name') or resource.get('id', '')}"


# ---------------------------------------------------------------------------
# Deploy status
# ---------------------------------------------------------------------------

STATUS_MAP = {
    "created": "pending",
    "queued": "pending",
    "build_in_progress": "building",
    "update_in_progress": "deploying",
    "pre_deploy_in_progress": "deploying",
    "live": "live",
    "build_failed": "failed",
    "update_failed": "failed",
    "pre_deploy_failed": "failed",
    "canceled": "cancelled",
    "deactivated": "cancelled",
}

TERMINAL_STATUSES = {s for s, mapped in STATUS_MAP.items() if mapped in ("live", "failed", "cancelled")}


def deploy_phase(status: str) -> str:
    return STATUS_MAP.get(status, status)


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def is_successful(status: str) -> bool:
    return status == "live"
