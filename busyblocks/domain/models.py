"""
Domain models for free-busy requests, responses and busy block events.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Tuple

import pendulum
from pendulum import DateTime

MAILTO = "mailto:"


def strip_mailto(address: str) -> str:
    """Return an address without a leading (case-insensitive) mailto: scheme."""
    address = address.strip()
    if address.lower().startswith(MAILTO):
        return address[len(MAILTO):]
    return address


@dataclass(frozen=True)
class Identity:
    """
    An organizer or attendee of the proposed meeting.

    The address is kept without the ``mailto:`` scheme; ``calendar_address``
    gives the calendar user address used on the wire.
    """
    address: str
    role: str = "REQ-PARTICIPANT"
    common_name: str = ""
    cutype: str = "INDIVIDUAL"

    def __post_init__(self):
        address = strip_mailto(self.address)
        if not address:
            raise ValueError("Identity address must not be empty")
        object.__setattr__(self, "address", address)

    @property
    def calendar_address(self) -> str:
        return f"{MAILTO}{self.address}"


@dataclass(frozen=True)
class ResourceRef:
    """
    A bookable resource (room, equipment).

    Every produced busy block is tagged with the ids of all requested
    resources. A resource with an address is also asked for its own
    free-busy data.
    """
    id: str
    name: str = ""
    address: str = ""

    def as_attendee(self) -> Identity | None:
        """Return the resource as a ROOM attendee, or None without address."""
        if not self.address:
            return None
        return Identity(
            address=self.address,
            role="NON-PARTICIPANT",
            common_name=self.name or self.id,
            cutype="ROOM",
        )


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end instants.

    Both ends are normalised to UTC on construction.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        start = _to_utc(self.start)
        end = _to_utc(self.end)
        if start >= end:
            raise ValueError(f"Start time {start} must be before end time {end}")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)


def _to_utc(value: datetime) -> DateTime:
    if value.tzinfo is None:
        raise ValueError(f"Time range boundary {value} must be timezone-aware")
    return pendulum.instance(value).in_timezone("UTC")


@dataclass(frozen=True)
class FreeBusyRequestDocument:
    """A serialized VFREEBUSY request, consumed once by the transport."""
    data: bytes
    organizer: str
    recipients: Tuple[str, ...] = ()

    @property
    def text(self) -> str:
        return self.data.decode("utf-8")


@dataclass(frozen=True)
class RecipientResponse:
    """One recipient's answer from the scheduling outbox."""
    recipient: str
    success: bool
    calendar_data: str = ""
    request_status: str | None = None


@dataclass(frozen=True)
class FreeBusyPeriod:
    """A busy interval as found in a recipient's VFREEBUSY component."""
    start: datetime
    end: datetime
    fbtype: str = "BUSY"


@dataclass(frozen=True)
class BusyBlockEvent:
    """
    A background event blocking time for all requested resources.
    """
    group_id: str
    start: str
    end: str
    resource_ids: Tuple[str, ...]
    display: str = "background"
    all_day: bool = False
    editable: bool = False
    background_color: str = "lightgrey"
    border_color: str = "lightgrey"

    def to_dict(self) -> Dict[str, Any]:
        """Render the event in the shape the calendar view consumes."""
        return {
            "groupId": self.group_id,
            "start": self.start,
            "end": self.end,
            "resourceIds": list(self.resource_ids),
            "display": self.display,
            "allDay": self.all_day,
            "editable": self.editable,
            "backgroundColor": self.background_color,
            "borderColor": self.border_color,
        }


@dataclass(frozen=True)
class FreeBusyQuery:
    """The visible range and timezone requested by the calendar view."""
    start: DateTime
    end: DateTime
    display_timezone: str = "UTC"


class FreeBusyResult:
    """Outcome of a single pipeline run: loaded events or a failure."""

    ok: bool = False


@dataclass(frozen=True)
class BusyBlocksLoaded(FreeBusyResult):
    events: List[BusyBlockEvent] = field(default_factory=list)
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class BusyBlocksFailed(FreeBusyResult):
    error: BaseException
    ok: bool = field(default=False, init=False)
