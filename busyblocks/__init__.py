"""
busyblocks - Blocked-time background events from CalDAV free-busy data.
"""

__version__ = "0.1.0"
