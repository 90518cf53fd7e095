"""Event logging for the service, filterable by event type and event identifier."""

from __future__ import annotations

import logging
from enum import IntEnum

EVENT_SOURCE = "SanctumPPLRunner"

_logger = logging.getLogger(EVENT_SOURCE)


class EventID(IntEnum):
    """Identifiers attached to logged events so they can be filtered and correlated."""

    INFO = 1
    """General information about the normal running of the service."""
    GENERAL_ERROR = 2
    """An error in a function related to the running of the service."""
    TI_GENERAL_NOTIFICATION = 3
    """A threat intelligence event of general security interest."""
    PROCESS_OF_INTEREST_TI = 4
    """A process of interest performed an action caught by the threat intelligence consumer."""


class EventType(IntEnum):
    """The kind of event being reported."""

    SUCCESS = 0x0
    ERROR = 0x1
    WARNING = 0x2
    INFORMATION = 0x4
    AUDIT_SUCCESS = 0x8
    AUDIT_FAILURE = 0x10


_LEVELS = {
    EventType.SUCCESS: logging.INFO,
    EventType.ERROR: logging.ERROR,
    EventType.WARNING: logging.WARNING,
    EventType.INFORMATION: logging.INFO,
    EventType.AUDIT_SUCCESS: logging.INFO,
    EventType.AUDIT_FAILURE: logging.WARNING,
}


def event_log(msg: str, event_type: EventType, event_id: EventID) -> None:
    """Record an event under the service's event source.

    Logging never disturbs the caller: any failure is swallowed and the event is lost.
    """
    try:
        kind = EventType(event_type)
        identifier = EventID(event_id)
        _logger.log(
            _LEVELS[kind],
            "%s",
            msg,
            extra={"event_type": kind, "event_id": identifier},
        )
    except Exception:
        return