"""
Builds iTIP VFREEBUSY request documents for the scheduling outbox.

Serialization is pure: the UID is derived from the request content and the
DTSTAMP from the requested range, so equal inputs always yield the same bytes.
"""

import uuid
from datetime import datetime, timezone
from typing import Iterable, List

from icalendar import Calendar, FreeBusy, vCalAddress, vText

from .models import FreeBusyRequestDocument, Identity, TimeRange

PRODID = "-//busyblocks//Free Busy Request//EN"

# Namespace for content-derived request UIDs
REQUEST_UID_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "urn:busyblocks:freebusy-request")


def utc_datetime(value: datetime) -> datetime:
    """Plain stdlib datetime in UTC so icalendar writes a ``Z`` suffix."""
    utc = value.astimezone(timezone.utc)
    return datetime(
        utc.year, utc.month, utc.day, utc.hour, utc.minute, utc.second,
        tzinfo=timezone.utc,
    )


def _calendar_address(identity: Identity) -> vCalAddress:
    address = vCalAddress(identity.calendar_address)
    if identity.common_name:
        address.params["CN"] = vText(identity.common_name)
    address.params["ROLE"] = vText(identity.role)
    address.params["CUTYPE"] = vText(identity.cutype)
    return address


class FreeBusyRequestBuilder:
    """
    Creates the VFREEBUSY request sent to the organizer's outbox.
    """

    def build(
        self,
        organizer: Identity,
        attendees: Iterable[Identity],
        time_range: TimeRange,
    ) -> FreeBusyRequestDocument:
        """
        Build and serialize a free-busy request.

        Args:
            organizer: The meeting organizer, owner of the outbox
            attendees: Participants and resources to query (may be empty)
            time_range: UTC range to ask about

        Returns:
            FreeBusyRequestDocument holding the iCalendar bytes
        """
        attendee_list: List[Identity] = list(attendees)
        start = utc_datetime(time_range.start)
        end = utc_datetime(time_range.end)

        freebusy = FreeBusy()
        freebusy.add("uid", self._request_uid(organizer, attendee_list, start, end))
        freebusy.add("dtstamp", start)
        freebusy.add("dtstart", start)
        freebusy.add("dtend", end)
        freebusy.add("organizer", _calendar_address(organizer))
        for attendee in attendee_list:
            freebusy.add("attendee", _calendar_address(attendee))

        calendar = Calendar()
        calendar.add("prodid", PRODID)
        calendar.add("version", "2.0")
        calendar.add("calscale", "GREGORIAN")
        calendar.add("method", "REQUEST")
        calendar.add_component(freebusy)

        return FreeBusyRequestDocument(
            data=calendar.to_ical(),
            organizer=organizer.calendar_address,
            recipients=tuple(attendee.calendar_address for attendee in attendee_list),
        )

    @staticmethod
    def _request_uid(
        organizer: Identity,
        attendees: List[Identity],
        start: datetime,
        end: datetime,
    ) -> str:
        parts = [organizer.calendar_address]
        parts.extend(attendee.calendar_address for attendee in attendees)
        parts.append(start.isoformat())
        parts.append(end.isoformat())
        return str(uuid.uuid5(REQUEST_UID_NAMESPACE, "\n".join(parts)))
