"""Records exchanged between the driver and user mode components."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any


def _mapping(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a mapping, got {type(data).__name__}")
    return data


def _field(data: Mapping[str, Any], name: str) -> Any:
    try:
        return data[name]
    except KeyError:
        raise ValueError(f"missing field `{name}`") from None


def _unsigned(data: Mapping[str, Any], name: str, bits: int) -> int:
    value = _field(data, name)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field `{name}` must be an integer")
    if not 0 <= value < (1 << bits):
        raise ValueError(f"field `{name}` out of range for u{bits}: {value}")
    return value


def _string(data: Mapping[str, Any], name: str) -> str:
    value = _field(data, name)
    if not isinstance(value, str):
        raise ValueError(f"field `{name}` must be a string")
    return value


@dataclass
class ProcessStarted:
    """A process creation reported by the driver."""

    image_name: str
    command_line: str
    parent_pid: int
    pid: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProcessStarted:
        data = _mapping(data)
        return cls(
            image_name=_string(data, "image_name"),
            command_line=_string(data, "command_line"),
            parent_pid=_unsigned(data, "parent_pid", 64),
            pid=_unsigned(data, "pid", 64),
        )


@dataclass
class ProcessTerminated:
    """A process termination reported by the driver."""

    pid: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProcessTerminated:
        data = _mapping(data)
        return cls(pid=_unsigned(data, "pid", 64))


@dataclass
class HandleObtained:
    """A handle one process obtained to another, with requested and granted rights."""

    source_pid: int
    dest_pid: int
    rights_desired: int
    rights_given: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HandleObtained:
        data = _mapping(data)
        return cls(
            source_pid=_unsigned(data, "source_pid", 64),
            dest_pid=_unsigned(data, "dest_pid", 64),
            rights_desired=_unsigned(data, "rights_desired", 32),
            rights_given=_unsigned(data, "rights_given", 32),
        )