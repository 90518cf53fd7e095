"""State and results of file and folder scans against the IOC list."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any

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


def _integer(data: Mapping[str, Any], name: str, high: int) -> int:
    value = _field(data, name)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field `{name}` must be an integer")
    if not 0 <= value <= high:
        raise ValueError(f"field `{name}` out of range: {value}")
    return value


def _string(data: Mapping[str, Any], name: str) -> str:
    value = _field(data, name)
    if not isinstance(value, str):
        raise ValueError(f"field `{name}` must be a string")
    return value


class FileScannerStateKind(Enum):
    """The phases a scanner can be in."""

    SCANNING = "Scanning"
    FINISHED = "Finished"
    FINISHED_WITH_ERROR = "FinishedWithError"
    INACTIVE = "Inactive"
    CANCELLED = "Cancelled"


@dataclass(frozen=True)
class FileScannerState:
    """The scanner's state; a scan that finished with an error carries its message."""

    kind: FileScannerStateKind
    error: str | None = None

    def __post_init__(self) -> None:
        if self.kind is FileScannerStateKind.FINISHED_WITH_ERROR:
            if self.error is None:
                raise ValueError("FinishedWithError needs an error message")
        elif self.error is not None:
            raise ValueError(f"{self.kind.value} carries no error message")

    def to_dict(self) -> dict[str, str] | str:
        """Return the JSON-ready value: a tagged object, or a bare variant name."""
        if self.kind is FileScannerStateKind.FINISHED_WITH_ERROR:
            return {self.kind.value: self.error}
        return self.kind.value

    @classmethod
    def from_dict(cls, data: Any) -> FileScannerState:
        if isinstance(data, str):
            name, payload = data, _UNIT
        elif isinstance(data, Mapping) and len(data) == 1:
            ((name, payload),) = data.items()
        else:
            raise ValueError("expected a variant name or a single-variant mapping")
        try:
            kind = FileScannerStateKind(name)
        except ValueError:
            raise ValueError(f"unknown scanner state `{name}`") from None
        if kind is FileScannerStateKind.FINISHED_WITH_ERROR:
            if not isinstance(payload, str):
                raise ValueError("FinishedWithError must carry a string")
            return cls(kind, payload)
        if payload is not _UNIT and payload is not None:
            raise ValueError(f"{name} carries no payload")
        return cls(kind)


class ScanType(Enum):
    """Whether a single file or a folder is being scanned."""

    FILE = "File"
    FOLDER = "Folder"


@dataclass
class MatchedIOC:
    """A file whose hash matched an indicator of compromise."""

    hash: str
    file: Path

    def to_dict(self) -> dict[str, str]:
        return {"hash": self.hash, "file": str(self.file)}

    @classmethod
    def from_dict(cls, data: Any) -> MatchedIOC:
        data = _mapping(data)
        return cls(hash=_string(data, "hash"), file=Path(_string(data, "file")))


def _encode_duration(duration: timedelta) -> dict[str, int]:
    if duration < timedelta(0):
        raise ValueError("duration cannot be negative")
    return {
        "secs": duration.days * 86400 + duration.seconds,
        "nanos": duration.microseconds * 1000,
    }


def _decode_duration(value: Any) -> timedelta:
    data = _mapping(value)
    secs = _integer(data, "secs", (1 << 64) - 1)
    nanos = _integer(data, "nanos", 999_999_999)
    try:
        return timedelta(seconds=secs, microseconds=nanos // 1000)
    except OverflowError:
        raise ValueError(f"duration out of range: {secs} seconds") from None


@dataclass
class ScanningLiveInfo:
    """Progress of a running scan: files scanned, time taken and matches so far."""

    num_files_scanned: int = 0
    time_taken: timedelta = field(default_factory=timedelta)
    scan_results: list[MatchedIOC] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "num_files_scanned": self.num_files_scanned,
            "time_taken": _encode_duration(self.time_taken),
            "scan_results": [r.to_dict() for r in self.scan_results],
        }

    @classmethod
    def from_dict(cls, data: Any) -> ScanningLiveInfo:
        data = _mapping(data)
        results = _field(data, "scan_results")
        if not isinstance(results, list):
            raise ValueError("field `scan_results` must be a list")
        return cls(
            num_files_scanned=_integer(data, "num_files_scanned", (1 << 128) - 1),
            time_taken=_decode_duration(_field(data, "time_taken")),
            scan_results=[MatchedIOC.from_dict(r) for r in results],
        )


@dataclass(frozen=True)
class ScanResult:
    """The outcome of a scan: its matches, the error it failed with, or neither while running."""

    matches: tuple[MatchedIOC, ...] | None = None
    error: OSError | None = None

    def __post_init__(self) -> None:
        if self.matches is not None and self.error is not None:
            raise ValueError("a scan result holds either matches or an error, not both")

    @property
    def in_progress(self) -> bool:
        return self.matches is None and self.error is None

    def results(self) -> list[MatchedIOC]:
        """Return the matches, raising the scan's error, or RuntimeError while it runs."""
        if self.error is not None:
            raise self.error
        if self.matches is None:
            raise RuntimeError("scan in progress")
        return list(self.matches)