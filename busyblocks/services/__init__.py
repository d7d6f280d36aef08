"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .event_source import BlockedForAllEventSource
from .freebusy_pipeline import FreeBusyPipeline

__all__ = ["BlockedForAllEventSource", "FreeBusyPipeline"]
