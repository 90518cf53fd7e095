"""Process records, syscall events and the timers used to match them across telemetry sources."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum, IntEnum
from typing import Any, Union

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_UNIT = object()


def _mapping(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a mapping, got {type(data).__name__}")
    return data


def _field(data: Mapping[str, Any], name: str) -> Any:
    try:
        return data[name]
    except KeyError:
        raise ValueError(f"missing field `{name}`") from None


def _integer(data: Mapping[str, Any], name: str, low: int, high: int) -> int:
    value = _field(data, name)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field `{name}` must be an integer")
    if not low <= value <= high:
        raise ValueError(f"field `{name}` out of range: {value}")
    return value


def _unsigned(data: Mapping[str, Any], name: str, bits: int) -> int:
    return _integer(data, name, 0, (1 << bits) - 1)


def _signed(data: Mapping[str, Any], name: str, bits: int) -> int:
    limit = 1 << (bits - 1)
    return _integer(data, name, -limit, limit - 1)


def _string(data: Mapping[str, Any], name: str) -> str:
    value = _field(data, name)
    if not isinstance(value, str):
        raise ValueError(f"field `{name}` must be a string")
    return value


def _boolean(data: Mapping[str, Any], name: str) -> bool:
    value = _field(data, name)
    if not isinstance(value, bool):
        raise ValueError(f"field `{name}` must be a boolean")
    return value


def _list(data: Mapping[str, Any], name: str) -> list[Any]:
    value = _field(data, name)
    if not isinstance(value, list):
        raise ValueError(f"field `{name}` must be a list")
    return value


def _variant(value: Any) -> tuple[str, Any]:
    """Split an externally tagged enum value into its variant name and payload."""
    if isinstance(value, str):
        return value, _UNIT
    if isinstance(value, Mapping) and len(value) == 1:
        ((name, payload),) = value.items()
        if isinstance(name, str):
            return name, payload
    raise ValueError("expected an externally tagged enum value")


class SyscallEventSource(IntEnum):
    """Where an event was captured; the values are bit flags used to cancel timers."""

    KERNEL = 0x1
    SYSCALL_HOOK = 0x2
    ETW = 0x4


_SOURCE_NAMES = {
    SyscallEventSource.KERNEL: "EventSourceKernel",
    SyscallEventSource.SYSCALL_HOOK: "EventSourceSyscallHook",
    SyscallEventSource.ETW: "EventSourceEtw",
}
_SOURCES_BY_NAME = {name: source for source, name in _SOURCE_NAMES.items()}


def _source(data: Mapping[str, Any], name: str) -> SyscallEventSource:
    value = _field(data, name)
    try:
        return _SOURCES_BY_NAME[value]
    except (KeyError, TypeError):
        raise ValueError(f"field `{name}` is not a known event source: {value!r}") from None


@dataclass(frozen=True)
class NtOpenProcessData:
    """Details of an NtOpenProcess call."""

    target_pid: int


@dataclass(frozen=True)
class NtWriteVirtualMemoryData:
    """Details of an NtWriteVirtualMemory call."""

    target_pid: int
    base_address: int
    buf_len: int


@dataclass(frozen=True)
class NtAllocateVirtualMemory:
    """Details of an NtAllocateVirtualMemory call in a (possibly remote) process."""

    base_address: int
    region_size: int
    allocation_type: int
    protect: int
    remote_pid: int


NtPayload = Union[NtOpenProcessData, NtWriteVirtualMemoryData, NtAllocateVirtualMemory]


class NtFunctionKind(Enum):
    """The native API functions that are tracked."""

    NT_OPEN_PROCESS = "NtOpenProcess"
    NT_WRITE_VIRTUAL_MEMORY = "NtWriteVirtualMemory"
    NT_ALLOCATE_VIRTUAL_MEMORY = "NtAllocateVirtualMemory"


def _parse_open_process(payload: Any) -> NtOpenProcessData:
    data = _mapping(payload)
    return NtOpenProcessData(target_pid=_unsigned(data, "target_pid", 32))


def _parse_write_memory(payload: Any) -> NtWriteVirtualMemoryData:
    data = _mapping(payload)
    return NtWriteVirtualMemoryData(
        target_pid=_unsigned(data, "target_pid", 32),
        base_address=_unsigned(data, "base_address", 64),
        buf_len=_unsigned(data, "buf_len", 64),
    )


def _parse_allocate_memory(payload: Any) -> NtAllocateVirtualMemory:
    data = _mapping(payload)
    return NtAllocateVirtualMemory(
        base_address=_unsigned(data, "base_address", 64),
        region_size=_unsigned(data, "region_size", 64),
        allocation_type=_unsigned(data, "allocation_type", 32),
        protect=_unsigned(data, "protect", 32),
        remote_pid=_unsigned(data, "remote_pid", 32),
    )


_PAYLOAD_TYPES: dict[NtFunctionKind, type] = {
    NtFunctionKind.NT_OPEN_PROCESS: NtOpenProcessData,
    NtFunctionKind.NT_WRITE_VIRTUAL_MEMORY: NtWriteVirtualMemoryData,
    NtFunctionKind.NT_ALLOCATE_VIRTUAL_MEMORY: NtAllocateVirtualMemory,
}

_PAYLOAD_PARSERS = {
    NtFunctionKind.NT_OPEN_PROCESS: _parse_open_process,
    NtFunctionKind.NT_WRITE_VIRTUAL_MEMORY: _parse_write_memory,
    NtFunctionKind.NT_ALLOCATE_VIRTUAL_MEMORY: _parse_allocate_memory,
}


@dataclass(frozen=True)
class NtFunction:
    """A tracked native API call, optionally with the details of the call."""

    kind: NtFunctionKind
    data: NtPayload | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, NtFunctionKind):
            raise TypeError(f"kind must be an NtFunctionKind, got {self.kind!r}")
        expected = _PAYLOAD_TYPES[self.kind]
        if self.data is not None and not isinstance(self.data, expected):
            raise TypeError(
                f"{self.kind.value} takes {expected.__name__}, got {type(self.data).__name__}"
            )

    def to_dict(self) -> dict[str, Any]:
        return {self.kind.value: None if self.data is None else asdict(self.data)}

    @classmethod
    def from_dict(cls, data: Any) -> NtFunction:
        name, payload = _variant(data)
        try:
            kind = NtFunctionKind(name)
        except ValueError:
            raise ValueError(f"unknown NtFunction variant `{name}`") from None
        if payload is _UNIT:
            raise ValueError(f"variant `{name}` needs a payload")
        return cls(kind, None if payload is None else _PAYLOAD_PARSERS[kind](payload))


@dataclass
class Syscall:
    """A syscall event: which function, by which process, seen by which source."""

    nt_function: NtFunction
    pid: int
    source: SyscallEventSource
    evasion_weight: int

    @classmethod
    def new_etw(cls, pid: int, nt_function: NtFunction, evasion_weight: int) -> Syscall:
        """Create an event whose source is the ETW consumer."""
        return cls(
            nt_function=nt_function,
            pid=pid,
            source=SyscallEventSource.ETW,
            evasion_weight=evasion_weight,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "nt_function": self.nt_function.to_dict(),
            "pid": self.pid,
            "source": _SOURCE_NAMES[self.source],
            "evasion_weight": self.evasion_weight,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Syscall:
        data = _mapping(data)
        return cls(
            nt_function=NtFunction.from_dict(_field(data, "nt_function")),
            pid=_unsigned(data, "pid", 32),
            source=_source(data, "source"),
            evasion_weight=_signed(data, "evasion_weight", 16),
        )

    def to_json(self) -> str:
        """Serialise to compact JSON, the form sent over the pipe."""
        return json.dumps(self.to_dict(), separators=(",", ":"))


def _encode_time(moment: datetime) -> dict[str, int]:
    if moment.tzinfo is None:
        raise ValueError("timer must be timezone-aware")
    delta = moment - _EPOCH
    if delta < timedelta(0):
        raise ValueError("timer is before the Unix epoch")
    return {
        "secs_since_epoch": delta.days * 86400 + delta.seconds,
        "nanos_since_epoch": delta.microseconds * 1000,
    }


def _decode_time(value: Any) -> datetime:
    data = _mapping(value)
    secs = _unsigned(data, "secs_since_epoch", 64)
    nanos = _integer(data, "nanos_since_epoch", 0, 999_999_999)
    try:
        return _EPOCH + timedelta(seconds=secs, microseconds=nanos // 1000)
    except OverflowError:
        raise ValueError(f"timer out of range: {secs} seconds") from None


@dataclass
class GhostHuntingTimer:
    """A timer started by one event source that matching events from other sources cancel."""

    timer: datetime
    event_type: NtFunction
    origin: SyscallEventSource
    cancellable_by: int
    weight: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "timer": _encode_time(self.timer),
            "event_type": self.event_type.to_dict(),
            "origin": _SOURCE_NAMES[self.origin],
            "cancellable_by": self.cancellable_by,
            "weight": self.weight,
        }

    @classmethod
    def from_dict(cls, data: Any) -> GhostHuntingTimer:
        data = _mapping(data)
        return cls(
            timer=_decode_time(_field(data, "timer")),
            event_type=NtFunction.from_dict(_field(data, "event_type")),
            origin=_source(data, "origin"),
            cancellable_by=_signed(data, "cancellable_by", 64),
            weight=_signed(data, "weight", 16),
        )


@dataclass
class Process:
    """A running process with its risk score and outstanding ghost hunting timers."""

    pid: int
    process_image: str
    commandline_args: str
    risk_score: int = 0
    allow_listed: bool = False
    sanctum_protected_process: bool = False
    ghost_hunting_timers: list[GhostHuntingTimer] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pid": self.pid,
            "process_image": self.process_image,
            "commandline_args": self.commandline_args,
            "risk_score": self.risk_score,
            "allow_listed": self.allow_listed,
            "sanctum_protected_process": self.sanctum_protected_process,
            "ghost_hunting_timers": [t.to_dict() for t in self.ghost_hunting_timers],
        }

    @classmethod
    def from_dict(cls, data: Any) -> Process:
        data = _mapping(data)
        return cls(
            pid=_unsigned(data, "pid", 64),
            process_image=_string(data, "process_image"),
            commandline_args=_string(data, "commandline_args"),
            risk_score=_unsigned(data, "risk_score", 16),
            allow_listed=_boolean(data, "allow_listed"),
            sanctum_protected_process=_boolean(data, "sanctum_protected_process"),
            ghost_hunting_timers=[
                GhostHuntingTimer.from_dict(t) for t in _list(data, "ghost_hunting_timers")
            ],
        )


@dataclass
class DLLMessage:
    """A message from the injected DLL: a wrapped syscall, or an ntdll overwrite notice."""

    syscall: Syscall | None = None

    @property
    def is_ntdll_overwrite(self) -> bool:
        return self.syscall is None

    def to_dict(self) -> dict[str, Any] | str:
        """Return the JSON-ready value: a tagged object, or a bare variant name."""
        if self.syscall is None:
            return "NtdllOverwrite"
        return {"SyscallWrapper": self.syscall.to_dict()}

    @classmethod
    def from_dict(cls, data: Any) -> DLLMessage:
        name, payload = _variant(data)
        if name == "NtdllOverwrite" and (payload is _UNIT or payload is None):
            return cls()
        if name == "SyscallWrapper" and payload is not _UNIT:
            return cls(Syscall.from_dict(payload))
        raise ValueError(f"invalid DLLMessage variant `{name}`")