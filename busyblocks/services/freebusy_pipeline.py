"""
Application service resolving busy blocks for a proposed meeting.

The pipeline coordinates the scheduling transport with the pure domain steps:
resolve the display timezone, build the VFREEBUSY request, dispatch it,
parse every recipient's reply and project the periods into background events.
Collaborators are injected so tests can replace the transport with a stub.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from ..adapters.transport import SchedulingTransport
from ..domain.freebusy_request import FreeBusyRequestBuilder
from ..domain.freebusy_response import FreeBusyResponseParser
from ..domain.models import (
    BusyBlockEvent,
    BusyBlocksFailed,
    BusyBlocksLoaded,
    FreeBusyQuery,
    FreeBusyResult,
    Identity,
    ResourceRef,
    TimeRange,
)
from ..domain.projector import EventProjector
from ..domain.timezones import TimezoneResolver

logger = logging.getLogger(__name__)


class FreeBusyPipeline:
    """
    Resolves busy blocks for an organizer, attendees and resources.

    Only transport failures end a run as ``BusyBlocksFailed``; recipients that
    fail or return no free-busy data simply contribute no events.
    """

    def __init__(
        self,
        transport: SchedulingTransport,
        organizer: Identity,
        attendees: Sequence[Identity] = (),
        resources: Sequence[ResourceRef] = (),
        timezone_resolver: TimezoneResolver | None = None,
        request_builder: FreeBusyRequestBuilder | None = None,
        response_parser: FreeBusyResponseParser | None = None,
        projector: EventProjector | None = None,
    ) -> None:
        self._transport = transport
        self._organizer = organizer
        self._attendees = list(attendees)
        self._resources = list(resources)
        self._timezone_resolver = timezone_resolver or TimezoneResolver()
        self._request_builder = request_builder or FreeBusyRequestBuilder()
        self._response_parser = response_parser or FreeBusyResponseParser()
        self._projector = projector or EventProjector()

    @property
    def resource_ids(self) -> List[str]:
        return [resource.id for resource in self._resources]

    def recipients(self) -> List[Identity]:
        """Attendees plus every resource that has its own calendar address."""
        recipients = list(self._attendees)
        for resource in self._resources:
            attendee = resource.as_attendee()
            if attendee is not None:
                recipients.append(attendee)
        return recipients

    async def run(self, query: FreeBusyQuery) -> FreeBusyResult:
        """
        Fetch and project busy blocks for the queried range.

        Raises:
            ValueError: If the query range is empty or inverted
        """
        logger.debug(
            "Resolving busy blocks from %s to %s in %s",
            query.start,
            query.end,
            query.display_timezone,
        )

        display_timezone = self._timezone_resolver.resolve(query.display_timezone)
        time_range = TimeRange(start=query.start, end=query.end)
        document = self._request_builder.build(self._organizer, self.recipients(), time_range)

        try:
            outbox = await self._transport.locate_outbox()
            responses = await outbox.request_freebusy(document)
        except Exception as e:
            logger.debug("Free-busy dispatch failed: %s", e)
            return BusyBlocksFailed(error=e)

        resource_ids = self.resource_ids
        events: List[BusyBlockEvent] = []
        for response in responses.values():
            periods = self._response_parser.extract_periods(response)
            events.extend(self._projector.project(periods, display_timezone, resource_ids))

        logger.debug("Resolved %d busy block(s)", len(events))
        return BusyBlocksLoaded(events=events)
