"""
Extraction of busy periods from recipients' free-busy replies.

A single recipient never aborts the overall operation: failed entries,
unparseable payloads and payloads without a VFREEBUSY all contribute nothing.
"""

import logging
from datetime import datetime
from typing import List

import pendulum
from icalendar import Calendar, vPeriod
from icalendar.parser import Contentlines

from .models import FreeBusyPeriod, RecipientResponse
from .timezones import PendulumTimezoneProvider

logger = logging.getLogger(__name__)


class FreeBusyResponseParser:
    """
    Turns a RecipientResponse into FreeBusyPeriod objects in document order.

    Overlapping or adjacent periods are kept as they are.
    """

    def __init__(self, timezone_provider: PendulumTimezoneProvider | None = None):
        self._timezone_provider = timezone_provider or PendulumTimezoneProvider()

    def extract_periods(self, response: RecipientResponse) -> List[FreeBusyPeriod]:
        if not response.success:
            logger.debug(
                "Skipping failed recipient %s (%s)",
                response.recipient,
                response.request_status,
            )
            return []

        if not response.calendar_data:
            logger.debug("No calendar data for recipient %s", response.recipient)
            return []

        try:
            calendar = Calendar.from_ical(response.calendar_data)
        except ValueError as e:
            logger.debug(
                "Could not parse calendar data for %s: %s (offending lines: %s)",
                response.recipient,
                e,
                self._unparseable_lines(response.calendar_data),
            )
            return []

        components = calendar.walk("VFREEBUSY")
        if not components:
            logger.debug("No VFREEBUSY component for recipient %s", response.recipient)
            return []

        periods: List[FreeBusyPeriod] = []
        for prop in self._freebusy_properties(components[0]):
            fbtype = str(prop.params.get("FBTYPE", "BUSY")).upper()
            tzid = prop.params.get("TZID")
            periods.append(
                FreeBusyPeriod(
                    start=self._as_aware(prop.start, tzid),
                    end=self._as_aware(prop.end, tzid),
                    fbtype=fbtype,
                )
            )

        return periods

    @staticmethod
    def _freebusy_properties(component) -> list:
        """Return all FREEBUSY values; icalendar gives a single value or a list."""
        values = component.get("FREEBUSY")
        if values is None:
            return []
        if isinstance(values, list):
            return values
        return [values]

    @staticmethod
    def _unparseable_lines(calendar_data: str) -> List[str]:
        """Content lines, and FREEBUSY values, that icalendar cannot read."""
        bad: List[str] = []
        for line in Contentlines.from_ical(calendar_data):
            if not line:
                continue
            try:
                name, params, value = line.parts()
            except ValueError:
                bad.append(str(line))
                continue
            if name.upper() != "FREEBUSY":
                continue
            for part in value.split(","):
                try:
                    vPeriod.from_ical(part)
                except ValueError:
                    bad.append(f"FREEBUSY:{part}")
        return bad

    def _as_aware(self, value: datetime, tzid: str | None) -> datetime:
        """
        Free-busy times should be UTC. Floating values are localized to their
        TZID parameter when it names a known zone, and read as UTC otherwise.
        """
        if value.tzinfo is not None:
            return value

        timezone = None
        if tzid:
            timezone = self._timezone_provider.get_timezone_for_id(str(tzid))
        return pendulum.instance(value, tz=timezone or pendulum.UTC)
