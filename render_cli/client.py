"""Render REST API client."""

from __future__ import annotations

import json
import logging
import os
import ssl
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

import certifi

from .errors import APIError, ConfigError

_log = logging.getLogger("render-cli")

SSL_CONTEXT = ssl.create_default_context(cafile=certifi.where())

DEFAULT_HOST = "https://api.render.com/v1"
API_KEY_ENV = "RENDER_API_KEY"
HOST_ENV = "RENDER_HOST"
TIMEOUT = 10
PAGE_LIMIT = 100


def unwrap(items: Any, key: str) -> list[dict]:
    """The API returns lists of ``{cursor, <key>: {...}}`` wrapper objects."""
    out: list[dict] = []
    if not isinstance(items, list):
        return out
    for item in items:
        if isinstance(item, dict) and key in item:
            out.append(item[key])
        else:
            out.append(item)
    return out


def _error_message(body: str) -> str:
    try:
        data = json.loads(body)
    except ValueError:
        return body.strip()
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return body.strip()


class RenderClient:
    """Thin JSON-over-HTTPS client with bearer authentication."""

    def __init__(self, api_key: str, host: str = DEFAULT_HOST, timeout: float = TIMEOUT) -> None:
        self._api_key = api_key
        self._host = host.rstrip("/")
        self._timeout = timeout

    def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: Any = None,
    ) -> Any:
        url = f"{self._host}{path}"
        if params:
            query = {k: v for k, v in params.items() if v not in (None, [], "")}
            if query:
                url = f"{url}?{urllib.parse.urlencode(query, doseq=True)}"
        data = json.dumps(body).encode() if body is not None else None
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "application/json",
        }
        if data is not None:
            headers["Content-Type"] = "application/json"
        req = urllib.request.Request(url, data=data, headers=headers, method=method)
        _log.debug("API %s %s", method, url)
        try:
            with urllib.request.urlopen(req, timeout=self._timeout, context=SSL_CONTEXT) as resp:
                _log.debug("API response %s %s", resp.status, url)
                raw = resp.read().decode()
        except urllib.error.HTTPError as e:
            text = e.read().decode() if e.fp else ""
            _log.error("API HTTP %s for %s: %s", e.code, url, text[:200])
            raise APIError(e.code, _error_message(text) or e.reason) from e
        except urllib.error.URLError as e:
            _log.error("API URLError for %s: %s", url, e.reason)
            raise APIError(None, f"could not reach Render API: {e.reason}") from e
        return json.loads(raw) if raw.strip() else None

    # -- services -------------------------------------------------------------

    def list_services(self, owner_id: str = "") -> list[dict]:
        params = {"limit": PAGE_LIMIT, "ownerId": owner_id or None}
        return unwrap(self.request("GET", "/services", params), "service")

    def get_service(self, service_id: str) -> dict:
        return self.request("GET", f"/services/{service_id}")

    def restart_service(self, service_id: str) -> None:
        self.request("POST", f"/services/{service_id}/restart")

    # -- deploys --------------------------------------------------------------

    def create_deploy(
        self,
        service_id: str,
        clear_cache: bool = False,
        commit_id: str | None = None,
        image_url: str | None = None,
    ) -> dict:
        body: dict[str, Any] = {"clearCache": "clear" if clear_cache else "do_not_clear"}
        if commit_id:
            body["commitId"] = commit_id
        if image_url:
            body["imageUrl"] = image_url
        return self.request("POST", f"/services/{service_id}/deploys", body=body)

    def get_deploy(self, service_id: str, deploy_id: str) -> dict:
        return self.request("GET", f"/services/{service_id}/deploys/{deploy_id}")

    def list_deploys(self, service_id: str, limit: int = 20) -> list[dict]:
        raw = self.request("GET", f"/services/{service_id}/deploys", {"limit": limit})
        return unwrap(raw, "deploy")

    # -- postgres -------------------------------------------------------------

    def list_postgres(self, owner_id: str = "") -> list[dict]:
        params = {"limit": PAGE_LIMIT, "ownerId": owner_id or None}
        return unwrap(self.request("GET", "/postgres", params), "postgres")

    def get_postgres(self, postgres_id: str) -> dict:
        return self.request("GET", f"/postgres/{postgres_id}")

    def restart_postgres(self, postgres_id: str) -> None:
        self.request("POST", f"/postgres/{postgres_id}/restart")

    def postgres_connection_info(self, postgres_id: str) -> dict:
        return self.request("GET", f"/postgres/{postgres_id}/connection-info")

    # -- projects / environments ---------------------------------------------

    def list_projects(self, owner_id: str = "") -> list[dict]:
        params = {"limit": PAGE_LIMIT, "ownerId": owner_id or None}
        return unwrap(self.request("GET", "/projects", params), "project")

    def list_environments(self, project_id: str) -> list[dict]:
        params = {"limit": PAGE_LIMIT, "projectId": project_id}
        return unwrap(self.request("GET", "/environments", params), "environment")

    # -- owners ---------------------------------------------------------------

    def list_owners(self) -> list[dict]:
        return unwrap(self.request("GET", "/owners", {"limit": PAGE_LIMIT}), "owner")

    def get_owner(self, owner_id: str) -> dict:
        return self.request("GET", f"/owners/{owner_id}")

    # -- logs -----------------------------------------------------------------

    def list_logs(self, params: dict[str, Any]) -> dict:
        return self.request("GET", "/logs", params) or {}


def default_client() -> RenderClient:
    """Client configured from $RENDER_API_KEY and $RENDER_HOST."""
    api_key = os.environ.get(API_KEY_ENV, "")
    if not api_key:
        raise ConfigError(
            f"environment variable {API_KEY_ENV} is not set. "
            f"Create an API key in the Render dashboard and export it."
        )
    return RenderClient(api_key, os.environ.get(HOST_ENV) or DEFAULT_HOST)
