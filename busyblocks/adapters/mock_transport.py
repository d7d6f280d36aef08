"""
Mock scheduling transport for running without a CalDAV server.
"""

import json
from pathlib import Path
from typing import Any, Dict, List

import pendulum
from icalendar import Calendar, FreeBusy

from ..domain.freebusy_request import PRODID, utc_datetime
from ..domain.models import FreeBusyRequestDocument, RecipientResponse, strip_mailto

INVALID_USER_STATUS = "3.7;Invalid calendar user"
SUCCESS_STATUS = "2.0;Success"


class MockOutbox:
    """
    Answers VFREEBUSY requests from canned busy periods.

    Recipients without an entry in the data answer with a 3.7 status, the
    way a real server rejects unknown calendar users.
    """

    def __init__(self, busy_periods: List[Dict[str, Any]]):
        self.busy_periods = busy_periods
        self.requests: List[FreeBusyRequestDocument] = []

    async def request_freebusy(
        self,
        document: FreeBusyRequestDocument,
    ) -> Dict[str, RecipientResponse]:
        self.requests.append(document)

        request = Calendar.from_ical(document.data).walk("VFREEBUSY")[0]
        range_start = request.decoded("DTSTART")
        range_end = request.decoded("DTEND")
        known = {strip_mailto(entry["address"]).lower() for entry in self.busy_periods}

        responses: Dict[str, RecipientResponse] = {}
        for recipient in document.recipients:
            address = strip_mailto(recipient).lower()
            if address not in known:
                responses[recipient] = RecipientResponse(
                    recipient=recipient,
                    success=False,
                    request_status=INVALID_USER_STATUS,
                )
                continue

            responses[recipient] = RecipientResponse(
                recipient=recipient,
                success=True,
                calendar_data=self._reply_for(address, document, range_start, range_end),
                request_status=SUCCESS_STATUS,
            )

        return responses

    def _reply_for(self, address, document, range_start, range_end) -> str:
        freebusy = FreeBusy()
        freebusy.add("dtstamp", range_start)
        freebusy.add("dtstart", range_start)
        freebusy.add("dtend", range_end)
        freebusy.add("organizer", document.organizer)
        freebusy.add("attendee", f"mailto:{address}")

        for entry in self.busy_periods:
            if strip_mailto(entry["address"]).lower() != address:
                continue
            start = utc_datetime(pendulum.parse(entry["start"]))
            end = utc_datetime(pendulum.parse(entry["end"]))
            # Only periods overlapping the requested window
            if start < range_end and end > range_start:
                freebusy.add(
                    "freebusy",
                    (start, end),
                    parameters={"FBTYPE": entry.get("fbtype", "BUSY")},
                )

        calendar = Calendar()
        calendar.add("prodid", PRODID)
        calendar.add("version", "2.0")
        calendar.add("method", "REPLY")
        calendar.add_component(freebusy)
        return calendar.to_ical().decode("utf-8")


class MockSchedulingTransport:
    """
    Mock transport that loads busy periods from mock_freebusy_data.json.
    """

    def __init__(self, busy_periods: List[Dict[str, Any]] | None = None):
        if busy_periods is None:
            busy_periods = self._load_busy_periods()
        self.outbox = MockOutbox(busy_periods)

    @staticmethod
    def _load_busy_periods() -> List[Dict[str, Any]]:
        """Load mock busy periods from the JSON file next to this module."""
        data_file = Path(__file__).parent / "mock_freebusy_data.json"

        if data_file.exists():
            with open(data_file, "r", encoding="utf-8") as f:
                return json.load(f)

        return []

    async def locate_outbox(self) -> MockOutbox:
        return self.outbox
