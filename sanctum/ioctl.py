"""IOCTL control codes and the structures passed through them."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from sanctum.driver_ipc import HandleObtained, ProcessStarted, ProcessTerminated

FILE_DEVICE_UNKNOWN = 34
METHOD_NEITHER = 3
METHOD_BUFFERED = 0
FILE_ANY_ACCESS = 0


def ctl_code(device_type: int, function: int, method: int, access: int) -> int:
    """Build a device I/O control code from its parts."""
    return (device_type << 16) | (access << 14) | (function << 2) | method


SANC_IOCTL_PING = ctl_code(FILE_DEVICE_UNKNOWN, 0x800, METHOD_BUFFERED, FILE_ANY_ACCESS)
SANC_IOCTL_PING_WITH_STRUCT = ctl_code(FILE_DEVICE_UNKNOWN, 0x801, METHOD_BUFFERED, FILE_ANY_ACCESS)
SANC_IOCTL_CHECK_COMPATIBILITY = ctl_code(
    FILE_DEVICE_UNKNOWN, 0x802, METHOD_BUFFERED, FILE_ANY_ACCESS
)
SANC_IOCTL_DRIVER_GET_MESSAGES = ctl_code(
    FILE_DEVICE_UNKNOWN, 0x803, METHOD_BUFFERED, FILE_ANY_ACCESS
)
SANC_IOCTL_DRIVER_GET_MESSAGE_LEN = ctl_code(
    FILE_DEVICE_UNKNOWN, 0x804, METHOD_BUFFERED, FILE_ANY_ACCESS
)

SANC_IOCTL_PING_CAPACITY = 256


@dataclass
class SancIoctlPing:
    """Reply to a ping: whether it was received, and the driver version in a fixed buffer."""

    received: bool = False
    version: bytearray = field(default_factory=lambda: bytearray(SANC_IOCTL_PING_CAPACITY))
    str_len: int = 0
    capacity: int = SANC_IOCTL_PING_CAPACITY

    def __post_init__(self) -> None:
        if len(self.version) != SANC_IOCTL_PING_CAPACITY:
            raise ValueError(
                f"version buffer must be {SANC_IOCTL_PING_CAPACITY} bytes, got {len(self.version)}"
            )


def _field(data: Mapping[str, Any], name: str) -> Any:
    try:
        return data[name]
    except KeyError:
        raise ValueError(f"missing field `{name}`") from None


def _list(data: Mapping[str, Any], name: str) -> list[Any]:
    value = _field(data, name)
    if not isinstance(value, list):
        raise ValueError(f"field `{name}` must be a list")
    return value


@dataclass
class DriverMessages:
    """A batch of messages and events collected by the driver for user mode."""

    is_empty: bool = False
    messages: list[str] = field(default_factory=list)
    process_creations: list[ProcessStarted] = field(default_factory=list)
    process_terminations: list[ProcessTerminated] = field(default_factory=list)
    handles: list[HandleObtained] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_empty": self.is_empty,
            "messages": list(self.messages),
            "process_creations": [p.to_dict() for p in self.process_creations],
            "process_terminations": [p.to_dict() for p in self.process_terminations],
            "handles": [h.to_dict() for h in self.handles],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DriverMessages:
        if not isinstance(data, Mapping):
            raise ValueError(f"expected a mapping, got {type(data).__name__}")
        is_empty = _field(data, "is_empty")
        if not isinstance(is_empty, bool):
            raise ValueError("field `is_empty` must be a boolean")
        messages = _list(data, "messages")
        if not all(isinstance(m, str) for m in messages):
            raise ValueError("field `messages` must hold strings")
        return cls(
            is_empty=is_empty,
            messages=list(messages),
            process_creations=[
                ProcessStarted.from_dict(p) for p in _list(data, "process_creations")
            ],
            process_terminations=[
                ProcessTerminated.from_dict(p) for p in _list(data, "process_terminations")
            ],
            handles=[HandleObtained.from_dict(h) for h in _list(data, "handles")],
        )