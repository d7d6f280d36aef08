"""
Projection of busy periods into background display events.
"""

import uuid
from datetime import datetime
from typing import Iterable, List, Sequence

import pendulum
from pendulum import DateTime, Timezone

from .models import BusyBlockEvent, FreeBusyPeriod


def format_instant(value: DateTime) -> str:
    """
    Format a datetime as ISO-8601 with milliseconds.

    UTC values end in ``Z`` (``2024-01-01T10:00:00.000Z``), others carry
    their offset (``2024-01-01T11:00:00.000+01:00``).
    """
    stamp = value.format("YYYY-MM-DD[T]HH:mm:ss.SSS")
    if value.utcoffset().total_seconds() == 0:
        return f"{stamp}Z"
    return f"{stamp}{value.format('Z')}"


class EventProjector:
    """
    Converts busy periods into BusyBlockEvents for the display timezone.

    Every event is tagged with all requested resource ids, not only the
    resource whose reply contained the period.
    """

    def project(
        self,
        periods: Iterable[FreeBusyPeriod],
        display_timezone: Timezone,
        resource_ids: Sequence[str],
    ) -> List[BusyBlockEvent]:
        resource_tuple = tuple(resource_ids)
        events: List[BusyBlockEvent] = []

        for period in periods:
            events.append(
                BusyBlockEvent(
                    group_id=self._new_group_id(),
                    start=format_instant(self._in_timezone(period.start, display_timezone)),
                    end=format_instant(self._in_timezone(period.end, display_timezone)),
                    resource_ids=resource_tuple,
                )
            )

        return events

    @staticmethod
    def _in_timezone(value: datetime, display_timezone: Timezone) -> DateTime:
        return pendulum.instance(value).in_timezone(display_timezone)

    @staticmethod
    def _new_group_id() -> str:
        return uuid.uuid4().hex
