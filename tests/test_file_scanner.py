import json
from datetime import timedelta
from pathlib import Path

import pytest

from sanctum.file_scanner import (
    FileScannerState,
    FileScannerStateKind,
    MatchedIOC,
    ScanningLiveInfo,
    ScanResult,
    ScanType,
)


def test_unit_state_is_bare_name():
    assert FileScannerState(FileScannerStateKind.SCANNING).to_dict() == "Scanning"


def test_error_state_wire_form():
    state = FileScannerState(FileScannerStateKind.FINISHED_WITH_ERROR, "disk gone")
    assert state.to_dict() == {"FinishedWithError": "disk gone"}


@pytest.mark.parametrize(
    "state",
    [
        FileScannerState(FileScannerStateKind.SCANNING),
        FileScannerState(FileScannerStateKind.FINISHED),
        FileScannerState(FileScannerStateKind.INACTIVE),
        FileScannerState(FileScannerStateKind.CANCELLED),
        FileScannerState(FileScannerStateKind.FINISHED_WITH_ERROR, "failure"),
    ],
)
def test_state_round_trip(state):
    assert FileScannerState.from_dict(json.loads(json.dumps(state.to_dict()))) == state


def test_error_state_requires_message():
    with pytest.raises(ValueError):
        FileScannerState(FileScannerStateKind.FINISHED_WITH_ERROR)


def test_unit_state_rejects_message():
    with pytest.raises(ValueError):
        FileScannerState(FileScannerStateKind.FINISHED, "unexpected")


def test_state_unknown_variant():
    with pytest.raises(ValueError):
        FileScannerState.from_dict("Paused")


def test_scan_type_values():
    assert ScanType("File") is ScanType.FILE
    assert ScanType("Folder") is ScanType.FOLDER


def test_matched_ioc_round_trip():
    match = MatchedIOC(hash="ab12cd", file=Path("some/dir/file.bin"))
    encoded = match.to_dict()
    assert encoded["file"] == str(Path("some/dir/file.bin"))
    assert MatchedIOC.from_dict(encoded) == match


def test_matched_ioc_missing_hash():
    with pytest.raises(ValueError):
        MatchedIOC.from_dict({"file": "x"})


def test_live_info_round_trip():
    info = ScanningLiveInfo(
        num_files_scanned=(1 << 70),
        time_taken=timedelta(seconds=12, microseconds=345),
        scan_results=[MatchedIOC(hash="ff", file=Path("a.exe"))],
    )
    assert ScanningLiveInfo.from_dict(json.loads(json.dumps(info.to_dict()))) == info


def test_live_info_duration_encoding():
    info = ScanningLiveInfo(time_taken=timedelta(seconds=3))
    assert info.to_dict()["time_taken"] == {"secs": 3, "nanos": 0}


def test_live_info_negative_duration():
    with pytest.raises(ValueError):
        ScanningLiveInfo(time_taken=timedelta(seconds=-1)).to_dict()


def test_live_info_nanos_out_of_range():
    data = ScanningLiveInfo().to_dict()
    data["time_taken"]["nanos"] = 1_000_000_000
    with pytest.raises(ValueError):
        ScanningLiveInfo.from_dict(data)


def test_scan_result_in_progress():
    result = ScanResult()
    assert result.in_progress
    with pytest.raises(RuntimeError):
        result.results()


def test_scan_result_matches():
    match = MatchedIOC(hash="aa", file=Path("b"))
    result = ScanResult(matches=(match,))
    assert not result.in_progress
    assert result.results() == [match]


def test_scan_result_error_is_raised():
    result = ScanResult(error=FileNotFoundError("missing"))
    with pytest.raises(FileNotFoundError):
        result.results()


def test_scan_result_rejects_both():
    with pytest.raises(ValueError):
        ScanResult(matches=(), error=OSError("x"))