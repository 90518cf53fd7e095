# sanctum

Data models and message handling shared by the parts of the Sanctum endpoint
protection engine. The package holds four groups of code:

- the driver-facing IOCTL definitions;
- the JSON messages passed between the GUI, the engine and the
  protected-process service;
- a helper that writes syscall events to the engine's named pipe;
- the handling of Threat Intelligence trace events.

The package has no third-party dependencies.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `sanctum.constants`
  - Device, service, pipe and file-location names, such as `PIPE_FOR_ETW`,
    `PIPE_NAME` and `SANC_SYS_FILE_LOCATION`.
  - `SanctumVersion`, which formats as `major.minor.patch - name`.
  - `VERSION_DRIVER`, `VERSION_CLIENT` and `RELEASE_NAME`.
- `sanctum.ioctl`
  - `ctl_code(device_type, function, method, access)`, which builds a device
    control code.
  - The `SANC_IOCTL_*` codes.
  - `SancIoctlPing`, which has a fixed 256-byte version buffer.
  - `DriverMessages`, with `to_dict` and `from_dict`.
- `sanctum.driver_ipc`
  - `ProcessStarted`, `ProcessTerminated` and `HandleObtained`, with
    `to_dict` and `from_dict`.
  - `from_dict` checks the field types and the unsigned integer ranges.
- `sanctum.messages`
  - `CommandRequest` (a command and optional JSON `args`) and
    `CommandResponse` (status and message), with `to_json` and `from_json`.
- `sanctum.processes`
  - `SyscallEventSource`, a set of bit-flag values.
  - `NtFunctionKind` and `NtFunction`, which can carry an
    `NtOpenProcessData`, `NtWriteVirtualMemoryData` or
    `NtAllocateVirtualMemory` payload.
  - `Syscall`, which has `Syscall.new_etw` and `to_json`.
  - `GhostHuntingTimer`, `Process` and `DLLMessage`.
  - Enum-like values are encoded externally tagged. For example,
    `{"NtWriteVirtualMemory": null}` or the bare string `"NtdllOverwrite"`.
- `sanctum.driver_manager`
  - `DriverStateKind` and `DriverState`.
  - `KernelDbgMsgQueue`. Its `get` returns a deep copy. Its `get_and_empty`
    moves the contents out and leaves the queue empty.
- `sanctum.file_scanner`
  - `FileScannerStateKind` and `FileScannerState`. Only `FinishedWithError`
    carries a message.
  - `ScanType`, `MatchedIOC` and `ScanningLiveInfo`.
  - `ScanResult`. Its `results()` behaves as follows:
    - it returns the matches;
    - it raises the stored error if the scan failed;
    - it raises `RuntimeError` while the scan is still in progress.
- `sanctum.settings`
  - `SanctumSettings`, which holds a list of common scan areas as paths.
- `sanctum.eventlog`
  - `EventID`, `EventType` and `event_log(msg, event_type, event_id)`.
  - `event_log` records through the standard `logging` logger named
    `SanctumPPLRunner`. It passes the type and identifier as the record's
    `event_type` and `event_id` attributes.
  - Failures inside `event_log` are swallowed.
- `sanctum.pipe`
  - `send_etw_info_ipc(data, pipe_path=PIPE_FOR_ETW)` opens the pipe and
    writes the event as compact JSON.
  - While the pipe reports busy, it retries every 50 ms.
  - Any other failure raises `ConnectionError`.
- `sanctum.threat_intel`
  - `ThreatIntelTask`, `ThreatIntelKeyword`, `EventDescriptor` and
    `TraceEvent`.
  - `is_process_of_interest`.
  - `handle_trace_event(event, image_lookup, sender=None)`.

## Handling trace events

`handle_trace_event` works in these steps:

1. It looks up the image path of the event's process with `image_lookup`.
2. If the lookup raises `OSError` or `ValueError`, the failure is logged and
   nothing is sent.
3. The event is acted on only if the image path contains `malware` or
   `notepad`, ignoring case.
4. For such processes, each keyword is handled as follows:

| Keyword | Action |
| --- | --- |
| `ALLOCVM_REMOTE` | Logs, then sends an `NtAllocateVirtualMemory` event |
| `PROTECTVM_LOCAL` | Logs only |
| `WRITEVM_LOCAL` | Logs, then sends an `NtWriteVirtualMemory` event |
| `WRITEVM_REMOTE` | Sends an `NtWriteVirtualMemory` event, then logs |

Every event that is sent has the ETW source and an evasion weight of 60.
`handle_trace_event` returns the list of events it sent. If no `sender` is
given, events go to `send_etw_info_ipc`.

```python
from sanctum.threat_intel import (
    EventDescriptor, ThreatIntelKeyword, TraceEvent, handle_trace_event,
)

sent = []
event = TraceEvent(EventDescriptor(keyword=ThreatIntelKeyword.WRITEVM_REMOTE), process_id=1234)
result = handle_trace_event(event, lambda pid: r"\Device\HarddiskVolume3\notepad.exe", sent.append)
assert result == sent and len(sent) == 1
```

## Example

```python
from sanctum.processes import NtFunction, NtFunctionKind, Syscall
from sanctum.messages import CommandRequest

event = Syscall.new_etw(1234, NtFunction(NtFunctionKind.NT_WRITE_VIRTUAL_MEMORY), 60)
assert Syscall.from_dict(event.to_dict()) == event

request = CommandRequest(command="scanner_cancel_scan", args=None)
assert CommandRequest.from_json(request.to_json()) == request
```

The models round-trip through dictionaries (`to_dict` and `from_dict`).
`CommandRequest` and `CommandResponse` round-trip through JSON (`to_json` and
`from_json`). Malformed input raises `ValueError`.

## What this package does not do

The package provides models and event handling only. It does not do any of
the following:

- run a service;
- start or consume a tracing session;
- talk to a driver through device I/O control;
- write to an operating-system event log;
- look up process images.

The caller must supply trace events and the `image_lookup` function. Log
records go to Python's `logging`, and the caller decides where they are
stored.