"""Driver installation state and a queue of debug messages from the kernel."""

from __future__ import annotations

import copy
import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sanctum.driver_ipc import ProcessStarted


class DriverStateKind(Enum):
    """The lifecycle states of the driver."""

    UNINSTALLED = "Uninstalled"
    INSTALLED = "Installed"
    STARTED = "Started"
    STOPPED = "Stopped"


@dataclass(frozen=True)
class DriverState:
    """A driver state with an accompanying message."""

    kind: DriverStateKind
    message: str

    def to_dict(self) -> dict[str, str]:
        return {self.kind.value: self.message}

    @classmethod
    def from_dict(cls, data: Any) -> DriverState:
        if not isinstance(data, Mapping) or len(data) != 1:
            raise ValueError("expected a mapping with exactly one variant")
        ((name, message),) = data.items()
        try:
            kind = DriverStateKind(name)
        except ValueError:
            raise ValueError(f"unknown driver state `{name}`") from None
        if not isinstance(message, str):
            raise ValueError(f"driver state `{name}` must carry a string")
        return cls(kind, message)


@dataclass
class KernelDbgMsgQueue:
    """Messages and process creations collected from the kernel, waiting to be consumed."""

    messages: list[str] = field(default_factory=list)
    process_creations: list[ProcessStarted] = field(default_factory=list)

    def get(self) -> KernelDbgMsgQueue:
        """Return a deep copy of the queue's contents."""
        return copy.deepcopy(self)

    def push_process_creations(self, item: ProcessStarted) -> None:
        self.process_creations.append(dataclasses.replace(item))

    def push_message(self, item: str) -> None:
        self.messages.append(item)

    def get_and_empty(self) -> KernelDbgMsgQueue:
        """Move everything out of the queue into the returned one, leaving this one empty."""
        taken = KernelDbgMsgQueue(messages=self.messages, process_creations=self.process_creations)
        self.messages = []
        self.process_creations = []
        return taken