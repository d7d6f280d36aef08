"""
Adapters layer - External integrations (CalDAV scheduling).
"""

from .caldav_transport import CalDAVOutbox, CalDAVSchedulingTransport
from .mock_transport import MockOutbox, MockSchedulingTransport
from .transport import SchedulingOutbox, SchedulingTransport

__all__ = [
    "CalDAVOutbox",
    "CalDAVSchedulingTransport",
    "MockOutbox",
    "MockSchedulingTransport",
    "SchedulingOutbox",
    "SchedulingTransport",
]
