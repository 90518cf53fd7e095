import json

import pytest

from sanctum import ioctl
from sanctum.driver_ipc import HandleObtained, ProcessStarted, ProcessTerminated
from sanctum.ioctl import DriverMessages, SancIoctlPing, ctl_code

CODES = [
    (ioctl.SANC_IOCTL_PING, 0x800),
    (ioctl.SANC_IOCTL_PING_WITH_STRUCT, 0x801),
    (ioctl.SANC_IOCTL_CHECK_COMPATIBILITY, 0x802),
    (ioctl.SANC_IOCTL_DRIVER_GET_MESSAGES, 0x803),
    (ioctl.SANC_IOCTL_DRIVER_GET_MESSAGE_LEN, 0x804),
]


@pytest.mark.parametrize("code,function", CODES)
def test_ioctl_codes_built_by_ctl_code(code, function):
    built = ctl_code(
        ioctl.FILE_DEVICE_UNKNOWN, function, ioctl.METHOD_BUFFERED, ioctl.FILE_ANY_ACCESS
    )
    assert built == code
    assert built >> 16 == ioctl.FILE_DEVICE_UNKNOWN
    assert (built >> 2) & 0xFFF == function


def test_ctl_code_ping_value():
    assert ctl_code(34, 0x800, 0, 0) == 0x222000


def test_ctl_code_method_in_low_bits():
    assert ctl_code(0, 0, ioctl.METHOD_NEITHER, 0) == ioctl.METHOD_NEITHER


def test_ioctl_codes_are_unique():
    built = {
        ctl_code(ioctl.FILE_DEVICE_UNKNOWN, function, ioctl.METHOD_BUFFERED, ioctl.FILE_ANY_ACCESS)
        for _, function in CODES
    }
    assert len(built) == len(CODES)


def test_ping_defaults():
    ping = SancIoctlPing()
    assert ping.received is False
    assert ping.str_len == 0
    assert ping.capacity == ioctl.SANC_IOCTL_PING_CAPACITY
    assert ping.version == bytearray(ping.capacity)


def test_ping_buffers_are_independent():
    first, second = SancIoctlPing(), SancIoctlPing()
    first.version[0] = 1
    assert second.version[0] == 0


def test_ping_rejects_wrong_buffer_size():
    with pytest.raises(ValueError):
        SancIoctlPing(version=bytearray(10))


def _messages():
    return DriverMessages(
        is_empty=False,
        messages=["driver loaded"],
        process_creations=[ProcessStarted("a.exe", "a.exe -x", 4, 8)],
        process_terminations=[ProcessTerminated(8)],
        handles=[HandleObtained(8, 12, 0x10, 0x10)],
    )


def test_driver_messages_default_is_empty_collections():
    default = DriverMessages()
    assert default.to_dict() == {
        "is_empty": False,
        "messages": [],
        "process_creations": [],
        "process_terminations": [],
        "handles": [],
    }


def test_driver_messages_round_trip_through_json():
    original = _messages()
    assert DriverMessages.from_dict(json.loads(json.dumps(original.to_dict()))) == original


def test_driver_messages_missing_field():
    data = _messages().to_dict()
    del data["handles"]
    with pytest.raises(ValueError, match="handles"):
        DriverMessages.from_dict(data)


def test_driver_messages_is_empty_must_be_bool():
    data = _messages().to_dict()
    data["is_empty"] = 0
    with pytest.raises(ValueError):
        DriverMessages.from_dict(data)


def test_driver_messages_nested_errors_propagate():
    data = _messages().to_dict()
    data["process_terminations"] = [{"pid": -5}]
    with pytest.raises(ValueError):
        DriverMessages.from_dict(data)


def test_driver_messages_messages_must_be_strings():
    data = _messages().to_dict()
    data["messages"] = [1]
    with pytest.raises(ValueError):
        DriverMessages.from_dict(data)