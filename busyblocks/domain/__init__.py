"""
Domain layer - Pure free-busy logic without network access.
"""

from .freebusy_request import FreeBusyRequestBuilder
from .freebusy_response import FreeBusyResponseParser
from .models import (
    BusyBlockEvent,
    BusyBlocksFailed,
    BusyBlocksLoaded,
    FreeBusyPeriod,
    FreeBusyQuery,
    FreeBusyRequestDocument,
    FreeBusyResult,
    Identity,
    RecipientResponse,
    ResourceRef,
    TimeRange,
)
from .projector import EventProjector
from .timezones import PendulumTimezoneProvider, TimezoneResolver

__all__ = [
    "BusyBlockEvent",
    "BusyBlocksFailed",
    "BusyBlocksLoaded",
    "EventProjector",
    "FreeBusyPeriod",
    "FreeBusyQuery",
    "FreeBusyRequestBuilder",
    "FreeBusyRequestDocument",
    "FreeBusyResponseParser",
    "FreeBusyResult",
    "Identity",
    "PendulumTimezoneProvider",
    "RecipientResponse",
    "ResourceRef",
    "TimeRange",
    "TimezoneResolver",
]
