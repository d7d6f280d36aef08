"""
Domain-specific exception hierarchy for the busy block pipeline.
"""


class BusyBlocksError(Exception):
    """Base class for all application-level errors."""


class TransportUnavailable(BusyBlocksError):
    """Raised when the scheduling outbox cannot be located."""


class RequestFailed(BusyBlocksError):
    """Raised when the free-busy request to the outbox fails as a whole."""


class TimezoneNotFound(BusyBlocksError):
    """Raised when not even the UTC fallback timezone can be resolved."""
