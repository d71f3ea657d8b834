"""Config file helpers for the CLI's YAML config.

Config schema
-------------
workspace: own-xxx      # owner/workspace ID every command runs against

Path: $RENDER_CLI_CONFIG_PATH, else ~/.render/cli.yaml.
"""

from __future__ import annotations

import logging
import os

import yaml

from .errors import ConfigError

_log = logging.getLogger("render-cli")

CONFIG_PATH_ENV = "RENDER_CLI_CONFIG_PATH"


def config_path() -> str:
    return os.environ.get(CONFIG_PATH_ENV) or os.path.join(
        os.path.expanduser("~"), ".render", "cli.yaml"
    )


def config_read(config_file: str | None = None) -> dict:
    """Read and parse the config file. Returns dict or empty dict."""
    config_file = config_file or config_path()
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        return {}
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        _log.warning("ignoring unreadable config %s: %s", config_file, e)
        return {}
    return data if isinstance(data, dict) else {}


def config_write(data: dict, config_file: str | None = None) -> None:
    """Write config data to the config file."""
    config_file = config_file or config_path()
    directory = os.path.dirname(config_file)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(config_file, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)


def workspace_id(config_file: str | None = None) -> str:
    """Return the configured workspace ID, or empty string."""
    return str(config_read(config_file).get("workspace") or "")


def require_workspace(config_file: str | None = None) -> str:
    workspace = workspace_id(config_file)
    if not workspace:
        raise ConfigError("no workspace set. Run `render workspace` to select one")
    return workspace


def set_workspace(owner_id: str, config_file: str | None = None) -> None:
    """Merge the workspace into the config and persist."""
    cfg = config_read(config_file)
    cfg["workspace"] = owner_id
    config_write(cfg, config_file)
    _log.info("workspace set to %s", owner_id)
