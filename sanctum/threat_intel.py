"""Handling of threat intelligence trace events for processes of interest."""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum, IntFlag

from sanctum.eventlog import EventID, EventType, event_log
from sanctum.pipe import send_etw_info_ipc
from sanctum.processes import NtFunction, NtFunctionKind, Syscall

ETW_TI_GUID = uuid.UUID("f4e1897c-bb5d-5668-f1d8-040f4d8dd344")
"""The provider GUID of the threat intelligence event source."""

SESSION_NAME = "SanctumETWThreatIntelligence"
EVASION_WEIGHT = 60

_WATCHED_NAMES = ("malware", "notepad")


class ThreatIntelTask(IntEnum):
    """Task identifiers published by the threat intelligence provider."""

    ALLOCVM = 1
    PROTECTVM = 2
    MAPVIEW = 3
    QUEUEUSERAPC = 4
    SETTHREADCONTEXT = 5
    READVM = 6
    WRITEVM = 7
    SUSPENDRESUME_THREAD = 8
    SUSPENDRESUME_PROCESS = 9
    DRIVER_DEVICE = 10


class ThreatIntelKeyword(IntFlag):
    """Keyword mask bits published by the threat intelligence provider."""

    ALLOCVM_LOCAL = 0x1
    ALLOCVM_LOCAL_KERNEL_CALLER = 0x2
    ALLOCVM_REMOTE = 0x4
    ALLOCVM_REMOTE_KERNEL_CALLER = 0x8
    PROTECTVM_LOCAL = 0x10
    PROTECTVM_LOCAL_KERNEL_CALLER = 0x20
    PROTECTVM_REMOTE = 0x40
    PROTECTVM_REMOTE_KERNEL_CALLER = 0x80
    MAPVIEW_LOCAL = 0x100
    MAPVIEW_LOCAL_KERNEL_CALLER = 0x200
    MAPVIEW_REMOTE = 0x400
    MAPVIEW_REMOTE_KERNEL_CALLER = 0x800
    QUEUEUSERAPC_REMOTE = 0x1000
    QUEUEUSERAPC_REMOTE_KERNEL_CALLER = 0x2000
    SETTHREADCONTEXT_REMOTE = 0x4000
    SETTHREADCONTEXT_REMOTE_KERNEL_CALLER = 0x8000
    READVM_LOCAL = 0x10000
    READVM_REMOTE = 0x20000
    WRITEVM_LOCAL = 0x40000
    WRITEVM_REMOTE = 0x80000
    SUSPEND_THREAD = 0x100000
    RESUME_THREAD = 0x200000
    SUSPEND_PROCESS = 0x400000
    RESUME_PROCESS = 0x800000
    FREEZE_PROCESS = 0x1000000
    THAW_PROCESS = 0x2000000
    CONTEXT_PARSE = 0x4000000
    EXECUTION_ADDRESS_VAD_PROBE = 0x8000000
    EXECUTION_ADDRESS_MMF_NAME_PROBE = 0x10000000
    READWRITEVM_NO_SIGNATURE_RESTRICTION = 0x20000000
    DRIVER_EVENTS = 0x40000000
    DEVICE_EVENTS = 0x80000000
    READVM_REMOTE_FILL_VAD = 0x100000000
    WRITEVM_REMOTE_FILL_VAD = 0x200000000
    PROTECTVM_LOCAL_FILL_VAD = 0x400000000
    PROTECTVM_LOCAL_KERNEL_CALLER_FILL_VAD = 0x800000000
    PROTECTVM_REMOTE_FILL_VAD = 0x1000000000
    PROTECTVM_REMOTE_KERNEL_CALLER_FILL_VAD = 0x2000000000


@dataclass(frozen=True)
class EventDescriptor:
    """The descriptor of a trace event: identifier, task, keyword mask and so on."""

    id: int = 0
    version: int = 0
    channel: int = 0
    level: int = 0
    opcode: int = 0
    task: int = 0
    keyword: int = 0


@dataclass(frozen=True)
class TraceEvent:
    """A trace event as delivered by the tracing session."""

    descriptor: EventDescriptor
    process_id: int
    flags: int = 0


def is_process_of_interest(process_image: str) -> bool:
    """Whether events from a process with this image path are acted upon."""
    image = process_image.lower()
    return any(name in image for name in _WATCHED_NAMES)


def _has(keyword: int, flag: ThreatIntelKeyword) -> bool:
    return keyword & flag == flag


def _details(event: TraceEvent) -> str:
    task = event.descriptor.task
    return (
        f"FLAGS: {event.flags:b}, Data: {event.descriptor!r}, "
        f"keyword - bin: {task:b} hex: {task:X}"
    )


def handle_trace_event(
    event: TraceEvent,
    image_lookup: Callable[[int], str],
    sender: Callable[[Syscall], None] | None = None,
) -> list[Syscall]:
    """Act on one trace event and return the syscall events sent to the engine.

    ``image_lookup`` maps a pid to its image path and raises OSError when it cannot.
    ``sender`` delivers each syscall event; by default it is written to the engine's pipe.
    """
    send = send_etw_info_ipc if sender is None else sender
    pid = event.process_id
    descriptor = event.descriptor

    try:
        process_image = image_lookup(pid)
    except (OSError, ValueError) as exc:
        event_log(
            f"Failed to get process image for pid: {pid} from event information: "
            f"{descriptor!r}. Error: {exc}",
            EventType.ERROR,
            EventID.GENERAL_ERROR,
        )
        return []

    if not is_process_of_interest(process_image):
        return []

    sent: list[Syscall] = []

    def dispatch(kind: NtFunctionKind) -> None:
        syscall = Syscall.new_etw(pid, NtFunction(kind), EVASION_WEIGHT)
        send(syscall)
        sent.append(syscall)

    keyword = descriptor.keyword

    if _has(keyword, ThreatIntelKeyword.ALLOCVM_REMOTE):
        event_log(
            f"Remote memory allocation caught for pid: {pid}, image: {process_image}. "
            f"Data: {descriptor!r}",
            EventType.SUCCESS,
            EventID.PROCESS_OF_INTEREST_TI,
        )
        dispatch(NtFunctionKind.NT_ALLOCATE_VIRTUAL_MEMORY)

    if _has(keyword, ThreatIntelKeyword.PROTECTVM_LOCAL):
        event_log(
            f"Mem protect for pid: {pid}, image: {process_image}. {_details(event)}.",
            EventType.SUCCESS,
            EventID.PROCESS_OF_INTEREST_TI,
        )

    if _has(keyword, ThreatIntelKeyword.WRITEVM_LOCAL):
        event_log(
            f"Write local for pid: {pid}, image: {process_image}. {_details(event)}",
            EventType.SUCCESS,
            EventID.PROCESS_OF_INTEREST_TI,
        )
        dispatch(NtFunctionKind.NT_WRITE_VIRTUAL_MEMORY)

    if _has(keyword, ThreatIntelKeyword.WRITEVM_REMOTE):
        dispatch(NtFunctionKind.NT_WRITE_VIRTUAL_MEMORY)
        event_log(
            f"Write remote memory for pid: {pid}, image: {process_image}, {_details(event)}",
            EventType.SUCCESS,
            EventID.PROCESS_OF_INTEREST_TI,
        )

    return sent