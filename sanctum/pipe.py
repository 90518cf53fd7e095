"""Delivery of syscall events to the engine over its named pipe."""

from __future__ import annotations

from time import sleep

from sanctum.constants import PIPE_FOR_ETW
from sanctum.processes import Syscall

ERROR_PIPE_BUSY = 231
_RETRY_DELAY = 0.05


def send_etw_info_ipc(data: Syscall, pipe_path: str = PIPE_FOR_ETW) -> None:
    """Write a syscall event, as JSON, to the engine's pipe.

    A busy pipe is retried every 50 ms; any other failure raises ConnectionError.
    """
    while True:
        try:
            client = open(pipe_path, "r+b")
            break
        except OSError as exc:
            if getattr(exc, "winerror", None) == ERROR_PIPE_BUSY:
                sleep(_RETRY_DELAY)
                continue
            raise ConnectionError(f"An error occurred talking to the engine, {exc}") from exc

    message = data.to_json().encode("utf-8")
    try:
        with client:
            client.write(message)
    except OSError as exc:
        raise ConnectionError(f"Error writing to named pipe to UM Engine. {exc}") from exc