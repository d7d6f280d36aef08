"""
CalDAV scheduling transport (RFC 6638) for free-busy lookups.
"""

import asyncio
import logging
import xml.etree.ElementTree as ET
from typing import Dict, Tuple
from urllib.parse import urljoin

import requests

from ..domain.exceptions import RequestFailed, TransportUnavailable
from ..domain.models import FreeBusyRequestDocument, RecipientResponse

logger = logging.getLogger(__name__)

DAV_NS = "DAV:"
CALDAV_NS = "urn:ietf:params:xml:ns:caldav"

CURRENT_USER_PRINCIPAL = f"{{{DAV_NS}}}current-user-principal"
SCHEDULE_OUTBOX_URL = f"{{{CALDAV_NS}}}schedule-outbox-URL"
HREF = f"{{{DAV_NS}}}href"


def build_propfind_body(prop_tag: str) -> bytes:
    """Build a depth-0 PROPFIND body asking for a single property."""
    propfind = ET.Element(f"{{{DAV_NS}}}propfind")
    prop = ET.SubElement(propfind, f"{{{DAV_NS}}}prop")
    ET.SubElement(prop, prop_tag)
    return ET.tostring(propfind, encoding="utf-8", xml_declaration=True)


def parse_href_property(content: bytes, prop_tag: str) -> str | None:
    """Return the href inside ``prop_tag`` of a multistatus body, if any."""
    root = ET.fromstring(content)
    for prop in root.iter(f"{{{DAV_NS}}}prop"):
        href = prop.find(f"{prop_tag}/{HREF}")
        if href is not None and href.text and href.text.strip():
            return href.text.strip()
    return None


def parse_schedule_response(content: bytes) -> Dict[str, RecipientResponse]:
    """
    Parse a CALDAV:schedule-response body.

    Response format:
    <C:schedule-response xmlns:D="DAV:" xmlns:C="urn:ietf:params:xml:ns:caldav">
      <C:response>
        <C:recipient><D:href>mailto:a@example.com</D:href></C:recipient>
        <C:request-status>2.0;Success</C:request-status>
        <C:calendar-data>BEGIN:VCALENDAR...</C:calendar-data>
      </C:response>
    </C:schedule-response>
    """
    root = ET.fromstring(content)
    responses: Dict[str, RecipientResponse] = {}

    for node in root.findall(f"{{{CALDAV_NS}}}response"):
        recipient = (node.findtext(f"{{{CALDAV_NS}}}recipient/{HREF}") or "").strip()
        if not recipient:
            logger.debug("Ignoring schedule response entry without recipient")
            continue

        status = (node.findtext(f"{{{CALDAV_NS}}}request-status") or "").strip()
        responses[recipient] = RecipientResponse(
            recipient=recipient,
            success=status.startswith("2."),
            calendar_data=node.findtext(f"{{{CALDAV_NS}}}calendar-data") or "",
            request_status=status or None,
        )

    return responses


class CalDAVOutbox:
    """A located scheduling outbox that accepts VFREEBUSY requests."""

    def __init__(self, session: requests.Session, url: str, timeout: float = 30):
        self.session = session
        self.url = url
        self.timeout = timeout

    async def request_freebusy(
        self,
        document: FreeBusyRequestDocument,
    ) -> Dict[str, RecipientResponse]:
        return await asyncio.to_thread(self._post_request, document)

    def _post_request(self, document: FreeBusyRequestDocument) -> Dict[str, RecipientResponse]:
        headers = {
            "Content-Type": "text/calendar; charset=utf-8",
            "Originator": document.organizer,
        }
        if document.recipients:
            headers["Recipient"] = ", ".join(document.recipients)

        try:
            response = self.session.post(
                self.url,
                data=document.data,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise RequestFailed(f"Free-busy request to {self.url} failed: {e}") from e

        try:
            return parse_schedule_response(response.content)
        except ET.ParseError as e:
            raise RequestFailed(f"Invalid schedule response from {self.url}: {e}") from e


class CalDAVSchedulingTransport:
    """
    Locates the current user's scheduling outbox on a CalDAV server.

    Discovery is two PROPFINDs: ``current-user-principal`` on the server URL,
    then ``schedule-outbox-URL`` on the principal.
    """

    def __init__(
        self,
        server_url: str,
        auth: Tuple[str, str] | None = None,
        timeout: float = 30,
        session: requests.Session | None = None,
    ):
        """
        Initialize the transport.

        Args:
            server_url: CalDAV root or principal URL
            auth: Optional (username, password) for HTTP basic auth
            timeout: Per-request timeout in seconds
            session: Optional pre-configured requests session
        """
        self.server_url = server_url
        self.timeout = timeout
        self.session = session or requests.Session()
        if auth:
            self.session.auth = auth

    async def locate_outbox(self) -> CalDAVOutbox:
        return await asyncio.to_thread(self._locate_outbox)

    def _locate_outbox(self) -> CalDAVOutbox:
        try:
            principal_url = self._find_href(self.server_url, CURRENT_USER_PRINCIPAL)
            outbox_url = self._find_href(principal_url, SCHEDULE_OUTBOX_URL)
        except requests.exceptions.RequestException as e:
            raise TransportUnavailable(f"Could not reach CalDAV server: {e}") from e
        except ET.ParseError as e:
            raise TransportUnavailable(f"Invalid PROPFIND response: {e}") from e

        logger.debug("Located scheduling outbox at %s", outbox_url)
        return CalDAVOutbox(self.session, outbox_url, timeout=self.timeout)

    def _find_href(self, url: str, prop_tag: str) -> str:
        response = self.session.request(
            "PROPFIND",
            url,
            data=build_propfind_body(prop_tag),
            headers={"Depth": "0", "Content-Type": "application/xml; charset=utf-8"},
            timeout=self.timeout,
        )
        response.raise_for_status()

        href = parse_href_property(response.content, prop_tag)
        if href is None:
            raise TransportUnavailable(f"{url} does not expose {prop_tag}")
        return urljoin(url, href)
