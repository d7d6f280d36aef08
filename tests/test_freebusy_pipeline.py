"""
Tests for the FreeBusyPipeline orchestration layer and its event source.
"""

import asyncio
import logging
from typing import Dict, List

import pendulum
import pytest

from busyblocks.adapters.mock_transport import MockSchedulingTransport
from busyblocks.domain.exceptions import RequestFailed, TransportUnavailable
from busyblocks.domain.models import (
    BusyBlocksFailed,
    BusyBlocksLoaded,
    FreeBusyQuery,
    Identity,
    RecipientResponse,
    ResourceRef,
)
from busyblocks.services.event_source import BlockedForAllEventSource
from busyblocks.services.freebusy_pipeline import FreeBusyPipeline

ORGANIZER = Identity(address="alice@example.com", role="CHAIR")
ATTENDEE = Identity(address="max@example.com")


def _reply(*periods: str) -> str:
    lines = ["BEGIN:VCALENDAR", "VERSION:2.0", "PRODID:-//Test//EN", "BEGIN:VFREEBUSY"]
    lines.extend(f"FREEBUSY:{period}" for period in periods)
    lines.extend(["END:VFREEBUSY", "END:VCALENDAR"])
    return "\r\n".join(lines) + "\r\n"


def _ok(recipient: str, *periods: str) -> RecipientResponse:
    return RecipientResponse(recipient=recipient, success=True, calendar_data=_reply(*periods))


def _failed(recipient: str) -> RecipientResponse:
    return RecipientResponse(recipient=recipient, success=False, request_status="3.7;Invalid calendar user")


class StubOutbox:
    """Minimal outbox returning canned responses."""

    def __init__(self, responses: Dict[str, RecipientResponse], error: Exception | None = None):
        self.responses = responses
        self.error = error
        self.documents = []

    async def request_freebusy(self, document):
        self.documents.append(document)
        if self.error:
            raise self.error
        return self.responses


class StubTransport:
    """Minimal stub matching SchedulingTransport."""

    def __init__(self, outbox: StubOutbox | None = None, error: Exception | None = None):
        self.outbox = outbox
        self.error = error
        self.calls = 0

    async def locate_outbox(self):
        self.calls += 1
        if self.error:
            raise self.error
        return self.outbox


def _query(timezone: str = "UTC") -> FreeBusyQuery:
    return FreeBusyQuery(
        start=pendulum.parse("2024-01-01T09:00:00Z"),
        end=pendulum.parse("2024-01-01T17:00:00Z"),
        display_timezone=timezone,
    )


def _pipeline(transport, resources: List[ResourceRef] | None = None) -> FreeBusyPipeline:
    return FreeBusyPipeline(
        transport=transport,
        organizer=ORGANIZER,
        attendees=[ATTENDEE],
        resources=resources if resources is not None else [ResourceRef(id="room1")],
    )


class TestFreeBusyPipeline:
    """Tests for FreeBusyPipeline.run."""

    def test_single_busy_period(self):
        """One recipient with one period yields one background event."""
        outbox = StubOutbox({"mailto:max@example.com": _ok("mailto:max@example.com", "20240101T100000Z/20240101T110000Z")})

        result = asyncio.run(_pipeline(StubTransport(outbox)).run(_query()))

        assert isinstance(result, BusyBlocksLoaded)
        assert len(result.events) == 1
        event = result.events[0]
        assert event.start == "2024-01-01T10:00:00.000Z"
        assert event.end == "2024-01-01T11:00:00.000Z"
        assert event.resource_ids == ("room1",)
        assert event.display == "background"

    def test_sole_failed_recipient_yields_empty_list(self):
        """A failed sole recipient gives an empty, successful result."""
        outbox = StubOutbox({"mailto:max@example.com": _failed("mailto:max@example.com")})

        result = asyncio.run(_pipeline(StubTransport(outbox)).run(_query()))

        assert isinstance(result, BusyBlocksLoaded)
        assert result.events == []

    def test_locate_outbox_failure(self):
        """The transport error is handed back unchanged."""
        error = TransportUnavailable("no outbox")
        outbox = StubOutbox({"mailto:max@example.com": _ok("mailto:max@example.com", "20240101T100000Z/20240101T110000Z")})

        result = asyncio.run(_pipeline(StubTransport(outbox, error=error)).run(_query()))

        assert isinstance(result, BusyBlocksFailed)
        assert result.error is error
        assert outbox.documents == []

    def test_request_failure(self):
        """A failing free-busy request is handed back unchanged."""
        error = RequestFailed("500")
        outbox = StubOutbox({}, error=error)

        result = asyncio.run(_pipeline(StubTransport(outbox)).run(_query()))

        assert isinstance(result, BusyBlocksFailed)
        assert result.error is error

    def test_partial_failures_are_isolated(self):
        """Failed and empty recipients are skipped, the others are projected."""
        outbox = StubOutbox({
            "mailto:a@example.com": _ok("mailto:a@example.com", "20240101T100000Z/20240101T110000Z"),
            "mailto:b@example.com": _failed("mailto:b@example.com"),
            "mailto:c@example.com": RecipientResponse(recipient="mailto:c@example.com", success=True, calendar_data="garbage"),
            "mailto:d@example.com": _ok(
                "mailto:d@example.com",
                "20240101T103000Z/20240101T113000Z",
                "20240101T150000Z/20240101T160000Z",
            ),
        })

        result = asyncio.run(_pipeline(StubTransport(outbox)).run(_query()))

        assert result.ok
        assert [(e.start, e.end) for e in result.events] == [
            ("2024-01-01T10:00:00.000Z", "2024-01-01T11:00:00.000Z"),
            ("2024-01-01T10:30:00.000Z", "2024-01-01T11:30:00.000Z"),
            ("2024-01-01T15:00:00.000Z", "2024-01-01T16:00:00.000Z"),
        ]

    def test_unknown_timezone_matches_utc_output(self, caplog):
        """An unknown display timezone renders the same events as UTC."""
        responses = {"mailto:max@example.com": _ok("mailto:max@example.com", "20240101T100000Z/20240101T110000Z")}

        utc_result = asyncio.run(_pipeline(StubTransport(StubOutbox(responses))).run(_query("UTC")))
        with caplog.at_level(logging.ERROR):
            fallback_result = asyncio.run(
                _pipeline(StubTransport(StubOutbox(responses))).run(_query("Nowhere/Special"))
            )

        assert [(e.start, e.end) for e in fallback_result.events] == [
            (e.start, e.end) for e in utc_result.events
        ]
        assert len([r for r in caplog.records if r.levelno == logging.ERROR]) == 1

    def test_display_timezone_is_applied(self):
        """Events are rendered in the requested display timezone."""
        responses = {"mailto:max@example.com": _ok("mailto:max@example.com", "20240101T100000Z/20240101T110000Z")}

        result = asyncio.run(_pipeline(StubTransport(StubOutbox(responses))).run(_query("Europe/Berlin")))

        assert result.events[0].start == "2024-01-01T11:00:00.000+01:00"

    def test_invalid_range_is_rejected_before_dispatch(self):
        """An inverted range raises before the transport is touched."""
        transport = StubTransport(StubOutbox({}))
        query = FreeBusyQuery(
            start=pendulum.parse("2024-01-01T17:00:00Z"),
            end=pendulum.parse("2024-01-01T09:00:00Z"),
        )

        with pytest.raises(ValueError):
            asyncio.run(_pipeline(transport).run(query))

        assert transport.calls == 0

    def test_resources_with_address_are_queried(self):
        """Addressed resources are added to the request recipients."""
        outbox = StubOutbox({})
        pipeline = _pipeline(
            StubTransport(outbox),
            resources=[ResourceRef(id="room1", address="room1@example.com"), ResourceRef(id="beamer")],
        )

        result = asyncio.run(pipeline.run(_query()))

        assert result.ok
        assert outbox.documents[0].recipients == ("mailto:max@example.com", "mailto:room1@example.com")
        assert pipeline.resource_ids == ["room1", "beamer"]

    def test_mock_transport_end_to_end(self):
        """Mock data answers known users and rejects unknown ones."""
        transport = MockSchedulingTransport([
            {"address": "max@example.com", "start": "2024-01-01T10:00:00Z", "end": "2024-01-01T11:00:00Z"},
            {"address": "max@example.com", "start": "2024-01-03T10:00:00Z", "end": "2024-01-03T11:00:00Z"},
        ])
        pipeline = FreeBusyPipeline(
            transport=transport,
            organizer=ORGANIZER,
            attendees=[ATTENDEE, Identity(address="ghost@example.com")],
            resources=[ResourceRef(id="room1")],
        )

        result = asyncio.run(pipeline.run(_query()))

        assert result.ok
        assert [(e.start, e.end) for e in result.events] == [
            ("2024-01-01T10:00:00.000Z", "2024-01-01T11:00:00.000Z"),
        ]


class TestBlockedForAllEventSource:
    """Tests for the callback-style event source."""

    def _run(self, source, query):
        outcomes = []
        asyncio.run(
            source.events(
                query,
                lambda events: outcomes.append(("success", events)),
                lambda error: outcomes.append(("failure", error)),
            )
        )
        return outcomes

    def test_success_callback(self):
        """A successful run calls only the success callback with dicts."""
        outbox = StubOutbox({"mailto:max@example.com": _ok("mailto:max@example.com", "20240101T100000Z/20240101T110000Z")})
        source = BlockedForAllEventSource(StubTransport(outbox), ORGANIZER, [ATTENDEE], [ResourceRef(id="room1")])

        outcomes = self._run(source, _query())

        assert len(outcomes) == 1
        kind, events = outcomes[0]
        assert kind == "success"
        assert events[0]["start"] == "2024-01-01T10:00:00.000Z"
        assert events[0]["resourceIds"] == ["room1"]
        assert events[0]["display"] == "background"

    def test_failure_callback(self):
        """A transport error reaches only the failure callback."""
        error = RuntimeError("E")
        source = BlockedForAllEventSource(StubTransport(error=error), ORGANIZER, [ATTENDEE], [ResourceRef(id="room1")])

        outcomes = self._run(source, _query())

        assert outcomes == [("failure", error)]

    def test_invalid_range_reports_failure(self):
        """An empty range is reported through the failure callback."""
        transport = StubTransport(StubOutbox({}))
        source = BlockedForAllEventSource(transport, ORGANIZER, [ATTENDEE], [])
        query = FreeBusyQuery(
            start=pendulum.parse("2024-01-01T09:00:00Z"),
            end=pendulum.parse("2024-01-01T09:00:00Z"),
        )

        outcomes = self._run(source, query)

        assert len(outcomes) == 1
        assert outcomes[0][0] == "failure"
        assert isinstance(outcomes[0][1], ValueError)
        assert transport.calls == 0

    def test_descriptor(self):
        """The descriptor disables all editing."""
        source = BlockedForAllEventSource(StubTransport(), ORGANIZER, [], [])

        descriptor = source.descriptor()

        assert descriptor["id"] == "free-busy-free-for-all"
        assert not descriptor["editable"]
        assert not descriptor["resourceEditable"]
