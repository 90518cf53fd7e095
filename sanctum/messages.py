"""Command requests and responses exchanged between the GUI and the engine."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


def _load_object(text: str | bytes) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    return data


def _string(data: dict[str, Any], name: str) -> str:
    if name not in data:
        raise ValueError(f"missing field `{name}`")
    value = data[name]
    if not isinstance(value, str):
        raise ValueError(f"field `{name}` must be a string")
    return value


def _dump(obj: dict[str, Any]) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


@dataclass
class CommandRequest:
    """A request for the engine to run a command, with optional JSON arguments."""

    command: str
    args: Any = None

    def to_json(self) -> str:
        return _dump({"command": self.command, "args": self.args})

    @classmethod
    def from_json(cls, text: str | bytes) -> CommandRequest:
        data = _load_object(text)
        return cls(command=_string(data, "command"), args=data.get("args"))


@dataclass
class CommandResponse:
    """The engine's reply to a command: a status and a message."""

    status: str
    message: str

    def to_json(self) -> str:
        return _dump({"status": self.status, "message": self.message})

    @classmethod
    def from_json(cls, text: str | bytes) -> CommandResponse:
        data = _load_object(text)
        return cls(status=_string(data, "status"), message=_string(data, "message"))