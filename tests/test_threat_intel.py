import logging

import pytest

from sanctum.eventlog import EVENT_SOURCE, EventID
from sanctum.processes import NtFunction, NtFunctionKind, Syscall, SyscallEventSource
from sanctum.threat_intel import (
    EventDescriptor,
    ThreatIntelKeyword,
    TraceEvent,
    handle_trace_event,
    is_process_of_interest,
)

NOTEPAD = r"\Device\HarddiskVolume3\Windows\System32\notepad.exe"


def _event(keyword, pid=4321):
    return TraceEvent(descriptor=EventDescriptor(task=1, keyword=int(keyword)), process_id=pid)


def _collect():
    sent = []
    return sent, sent.append


@pytest.mark.parametrize(
    "keyword, kinds",
    [
        (0x4, [NtFunctionKind.NT_ALLOCATE_VIRTUAL_MEMORY]),
        (0x40000, [NtFunctionKind.NT_WRITE_VIRTUAL_MEMORY]),
        (0x80000, [NtFunctionKind.NT_WRITE_VIRTUAL_MEMORY]),
        (0x10, []),
        (0x2000000000, []),
    ],
)
def test_raw_provider_keyword_bits(keyword, kinds):
    sent, sender = _collect()
    result = handle_trace_event(_event(keyword), lambda pid: NOTEPAD, sender)
    assert [s.nt_function.kind for s in result] == kinds
    assert sent == result


@pytest.mark.parametrize(
    "image, expected",
    [
        (NOTEPAD, True),
        (r"C:\Temp\MALWARE.EXE", True),
        (r"C:\Windows\explorer.exe", False),
        ("", False),
    ],
)
def test_is_process_of_interest(image, expected):
    assert is_process_of_interest(image) is expected


def test_remote_allocation_sends_allocate_event():
    sent, sender = _collect()
    result = handle_trace_event(_event(ThreatIntelKeyword.ALLOCVM_REMOTE), lambda pid: NOTEPAD, sender)
    expected = Syscall.new_etw(4321, NtFunction(NtFunctionKind.NT_ALLOCATE_VIRTUAL_MEMORY), 60)
    assert result == [expected]
    assert sent == [expected]
    assert sent[0].source is SyscallEventSource.ETW


def test_protect_local_only_logs(caplog):
    sent, sender = _collect()
    with caplog.at_level(logging.DEBUG, logger=EVENT_SOURCE):
        result = handle_trace_event(_event(ThreatIntelKeyword.PROTECTVM_LOCAL), lambda pid: NOTEPAD, sender)
    assert result == []
    assert sent == []
    assert len(caplog.records) == 1
    assert caplog.records[0].event_id is EventID.PROCESS_OF_INTEREST_TI
    assert "Mem protect for pid: 4321" in caplog.records[0].getMessage()


def test_local_and_remote_writes_each_send_an_event():
    sent, sender = _collect()
    keyword = ThreatIntelKeyword.WRITEVM_LOCAL | ThreatIntelKeyword.WRITEVM_REMOTE
    result = handle_trace_event(_event(keyword), lambda pid: NOTEPAD, sender)
    write = Syscall.new_etw(4321, NtFunction(NtFunctionKind.NT_WRITE_VIRTUAL_MEMORY), 60)
    assert result == [write, write]
    assert sent == result


def test_events_sent_in_keyword_order():
    sent, sender = _collect()
    keyword = ThreatIntelKeyword.WRITEVM_LOCAL | ThreatIntelKeyword.ALLOCVM_REMOTE
    result = handle_trace_event(_event(keyword), lambda pid: NOTEPAD, sender)
    assert [s.nt_function.kind for s in result] == [
        NtFunctionKind.NT_ALLOCATE_VIRTUAL_MEMORY,
        NtFunctionKind.NT_WRITE_VIRTUAL_MEMORY,
    ]
    assert sent == result


def test_uninteresting_process_is_ignored():
    sent, sender = _collect()
    result = handle_trace_event(
        _event(ThreatIntelKeyword.ALLOCVM_REMOTE), lambda pid: r"C:\Windows\explorer.exe", sender
    )
    assert result == []
    assert sent == []


def test_lookup_receives_event_pid():
    seen = []

    def lookup(pid):
        seen.append(pid)
        return NOTEPAD

    result = handle_trace_event(_event(ThreatIntelKeyword.ALLOCVM_REMOTE, pid=77), lookup, lambda s: None)
    assert seen == [77]
    assert [s.pid for s in result] == [77]


def test_failed_lookup_logs_error_and_sends_nothing(caplog):
    sent, sender = _collect()

    def lookup(pid):
        raise PermissionError("Access is denied")

    with caplog.at_level(logging.DEBUG, logger=EVENT_SOURCE):
        result = handle_trace_event(_event(ThreatIntelKeyword.ALLOCVM_REMOTE), lookup, sender)
    assert result == []
    assert sent == []
    assert caplog.records[0].levelno == logging.ERROR
    assert caplog.records[0].event_id is EventID.GENERAL_ERROR
    assert "Access is denied" in caplog.records[0].getMessage()


def test_unrelated_keyword_bits_send_nothing():
    sent, sender = _collect()
    keyword = ThreatIntelKeyword.ALLOCVM_LOCAL | ThreatIntelKeyword.MAPVIEW_REMOTE
    result = handle_trace_event(_event(keyword), lambda pid: NOTEPAD, sender)
    assert result == []
    assert sent == []