"""
Scheduling transport interface consumed by the free-busy pipeline.
"""

from typing import Dict, Protocol

from ..domain.models import FreeBusyRequestDocument, RecipientResponse


class SchedulingOutbox(Protocol):
    """The organizer's scheduling outbox."""

    async def request_freebusy(
        self,
        document: FreeBusyRequestDocument,
    ) -> Dict[str, RecipientResponse]:
        """
        Deliver a VFREEBUSY request and return one response per recipient.

        Raises:
            RequestFailed: If the request fails as a whole
        """


class SchedulingTransport(Protocol):
    """Locates the scheduling outbox on the calendar server."""

    async def locate_outbox(self) -> SchedulingOutbox:
        """
        Find the organizer's outbox.

        Raises:
            TransportUnavailable: If no outbox can be found
        """
