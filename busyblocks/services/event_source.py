"""
Calendar view event source blocking busy time for all resources.
"""

from typing import Any, Callable, Dict, List, Sequence

from ..adapters.transport import SchedulingTransport
from ..domain.models import FreeBusyQuery, Identity, ResourceRef
from .freebusy_pipeline import FreeBusyPipeline

EVENT_SOURCE_ID = "free-busy-free-for-all"


class BlockedForAllEventSource:
    """
    Event source descriptor handed to the calendar view.

    The view calls ``events`` with its visible range and exactly one of the
    two callbacks is invoked, once, per call.
    """

    def __init__(
        self,
        transport: SchedulingTransport,
        organizer: Identity,
        attendees: Sequence[Identity],
        resources: Sequence[ResourceRef],
        pipeline: FreeBusyPipeline | None = None,
    ):
        self.pipeline = pipeline or FreeBusyPipeline(
            transport=transport,
            organizer=organizer,
            attendees=attendees,
            resources=resources,
        )

    def descriptor(self) -> Dict[str, Any]:
        return {
            "id": EVENT_SOURCE_ID,
            "editable": False,
            "startEditable": False,
            "durationEditable": False,
            "resourceEditable": False,
        }

    async def events(
        self,
        query: FreeBusyQuery,
        on_success: Callable[[List[Dict[str, Any]]], None],
        on_failure: Callable[[BaseException], None],
    ) -> None:
        try:
            result = await self.pipeline.run(query)
        except ValueError as e:
            # Rejected range, nothing was dispatched
            on_failure(e)
            return

        if result.ok:
            on_success([event.to_dict() for event in result.events])
        else:
            on_failure(result.error)
