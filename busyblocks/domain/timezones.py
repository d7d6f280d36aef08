"""
Timezone lookup with a UTC fallback.
"""

import logging
from typing import Protocol

import pendulum
from pendulum import Timezone
from pendulum.tz.exceptions import InvalidTimezone

from .exceptions import TimezoneNotFound

logger = logging.getLogger(__name__)

FALLBACK_TIMEZONE = "UTC"


class TimezoneProvider(Protocol):
    """Timezone database lookup needed by the resolver."""

    def get_timezone_for_id(self, timezone_id: str) -> Timezone | None:
        """Return the timezone for an id, or None if it is unknown."""


class PendulumTimezoneProvider:
    """Looks timezones up in the IANA database shipped with pendulum."""

    def get_timezone_for_id(self, timezone_id: str) -> Timezone | None:
        if not timezone_id:
            return None
        try:
            return pendulum.timezone(timezone_id)
        except (InvalidTimezone, ValueError):
            return None


class TimezoneResolver:
    """
    Resolves a timezone id to a conversion object.

    Unknown ids are logged and replaced by UTC; only a provider that cannot
    resolve UTC itself is treated as an error.
    """

    def __init__(self, provider: TimezoneProvider | None = None):
        self._provider = provider or PendulumTimezoneProvider()

    def resolve(self, timezone_id: str) -> Timezone:
        timezone = self._provider.get_timezone_for_id(timezone_id)
        if timezone is not None:
            return timezone

        logger.error("Timezone %s not found, falling back to UTC.", timezone_id)
        timezone = self._provider.get_timezone_for_id(FALLBACK_TIMEZONE)
        if timezone is None:
            raise TimezoneNotFound(f"Fallback timezone {FALLBACK_TIMEZONE} is not available")
        return timezone
