"""Serialization for the non-interactive output modes."""

from __future__ import annotations

import dataclasses
import enum
import json
from typing import Any, TextIO

import yaml

from .context import OutputMode


def to_plain(data: Any) -> Any:
    """Reduce dataclasses, enums and tuples to JSON/YAML-safe builtins."""
    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        return {k: to_plain(v) for k, v in dataclasses.asdict(data).items()}
    if isinstance(data, enum.Enum):
        return data.value
    if isinstance(data, dict):
        return {str(k): to_plain(v) for k, v in data.items()}
    if isinstance(data, (list, tuple, set)):
        return [to_plain(v) for v in data]
    return data


def _text_dict(data: dict, level: int) -> list[str]:
    prefix = "  " * level
    lines = []
    for key, value in data.items():
        if isinstance(value, dict):
            lines.append(f"{prefix}{key}:")
            lines.extend(_text_dict(value, level + 1))
        elif isinstance(value, list):
            lines.append(f"{prefix}{key}:")
            lines.extend(_text_list(value, level + 1))
        else:
            lines.append(f"{prefix}{key}: {'' if value is None else value}")
    return lines


def _text_list(data: list, level: int) -> list[str]:
    prefix = "  " * level
    lines = []
    for item in data:
        if isinstance(item, dict):
            lines.append(f"{prefix}-")
            lines.extend(_text_dict(item, level + 1))
        elif isinstance(item, list):
            lines.append(f"{prefix}-")
            lines.extend(_text_list(item, level + 1))
        else:
            lines.append(f"{prefix}- {item}")
    return lines


def format_text(data: Any) -> str:
    data = to_plain(data)
    if isinstance(data, str):
        return data
    if isinstance(data, dict):
        return "\n".join(_text_dict(data, 0))
    if isinstance(data, list):
        return "\n".join(_text_list(data, 0))
    return "" if data is None else str(data)


def format_output(data: Any, mode: OutputMode) -> str:
    """Render *data* for *mode*. The result always ends with one newline."""
    if mode is OutputMode.JSON:
        out = json.dumps(to_plain(data), indent=2)
    elif mode is OutputMode.YAML:
        out = yaml.safe_dump(
            to_plain(data), default_flow_style=False, sort_keys=False, allow_unicode=True
        )
    elif mode is OutputMode.TEXT:
        out = format_text(data)
    else:
        raise ValueError(f"{mode.value} output is not serializable")
    return out if out.endswith("\n") else out + "\n"


def write_output(stream: TextIO, data: Any, mode: OutputMode) -> None:
    stream.write(format_output(data, mode))
    stream.flush()
