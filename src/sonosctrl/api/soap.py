"""SOAP 1.1 transport for speaker control URLs.

Every service client sends its actions through SoapClient.send(), which
builds the envelope, posts it over a shared aiohttp session and returns the
raw response body for the caller to scan.
"""

import asyncio
import logging
from collections.abc import Iterable
from enum import Enum
from typing import Any

import aiohttp

from sonosctrl.api.xmlscan import xml_escape

logger = logging.getLogger(__name__)

SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"
SOAP_ENCODING = "http://schemas.xmlsoap.org/soap/encoding/"

# (key, value) pairs; order is significant on the wire
SoapArgs = Iterable[tuple[str, Any]]


class Service(Enum):
    """Known UPnP services with their control path and service type."""

    AV_TRANSPORT = ("/MediaRenderer/AVTransport/Control", "AVTransport")
    RENDERING_CONTROL = ("/MediaRenderer/RenderingControl/Control", "RenderingControl")
    CONTENT_DIRECTORY = ("/MediaServer/ContentDirectory/Control", "ContentDirectory")
    ZONE_GROUP_TOPOLOGY = ("/ZoneGroupTopology/Control", "ZoneGroupTopology")
    DEVICE_PROPERTIES = ("/DeviceProperties/Control", "DeviceProperties")
    GROUP_RENDERING_CONTROL = (
        "/MediaRenderer/GroupRenderingControl/Control",
        "GroupRenderingControl",
    )

    @property
    def control_path(self) -> str:
        """Return the control URL path relative to the device base URL."""
        return self.value[0]

    @property
    def urn(self) -> str:
        """Return the service type URN."""
        return f"urn:schemas-upnp-org:service:{self.value[1]}:1"


class SoapError(Exception):
    """Base error for SOAP requests."""


class SoapHTTPError(SoapError):
    """The device answered with a non-200 status."""

    def __init__(self, status: int, action: str = "") -> None:
        """Initialize with the HTTP status.

        Args:
            status: HTTP status code.
            action: SOAP action that failed.
        """
        self.status = status
        self.action = action
        super().__init__(f"HTTP {status} for {action}" if action else f"HTTP {status}")


class SoapNoDataError(SoapError):
    """The response body could not be decoded as text."""


class SoapConnectionError(SoapError):
    """The request could not be delivered (refused, unreachable, timed out)."""


def build_envelope(
    service: Service,
    action: str,
    args: SoapArgs = (),
    instance_id: str | None = "0",
) -> str:
    """Build a SOAP 1.1 request envelope.

    Args:
        service: Target service.
        action: Action name, e.g. "Play".
        args: Argument (name, value) pairs; values are XML-escaped.
        instance_id: Value of the leading InstanceID element, or None to
            omit it (ZoneGroupTopology actions take no instance).

    Returns:
        The envelope as a string.
    """
    parts: list[str] = []
    if instance_id is not None:
        parts.append(f"<InstanceID>{instance_id}</InstanceID>")
    for key, value in args:
        parts.append(f"<{key}>{xml_escape(str(value))}</{key}>")
    body = "".join(parts)
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        f'<s:Envelope xmlns:s="{SOAP_ENV_NS}" s:encodingStyle="{SOAP_ENCODING}">'
        "<s:Body>"
        f'<u:{action} xmlns:u="{service.urn}">{body}</u:{action}>'
        "</s:Body>"
        "</s:Envelope>"
    )


class SoapClient:
    """Async SOAP client shared by all service facades.

    The aiohttp session is created lazily on the first request so the client
    can be constructed outside a running event loop.

    Example:
        async with SoapClient() as soap:
            body = await soap.send(device.base_url, Service.AV_TRANSPORT, "Play",
                                   [("Speed", "1")])
    """

    _CONNECT_TIMEOUT: float = 10.0
    _TOTAL_TIMEOUT: float = 15.0

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        connect_timeout: float = _CONNECT_TIMEOUT,
        total_timeout: float = _TOTAL_TIMEOUT,
    ) -> None:
        """Initialize the client.

        Args:
            session: Existing session to use (not closed by this client).
            connect_timeout: Connection timeout in seconds.
            total_timeout: Whole-request timeout in seconds.
        """
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=total_timeout, connect=connect_timeout)

    async def __aenter__(self) -> "SoapClient":
        """Enter async context."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Exit async context (close the session)."""
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the owned HTTP session."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def send(
        self,
        base_url: str,
        service: Service,
        action: str,
        args: SoapArgs = (),
        instance_id: str | None = "0",
    ) -> str:
        """Invoke a SOAP action and return the raw response body.

        Args:
            base_url: Device base URL, e.g. "http://192.168.1.20:1400".
            service: Target service.
            action: Action name.
            args: Argument (name, value) pairs, sent in order.
            instance_id: InstanceID value, or None to omit it.

        Returns:
            Response body text.

        Raises:
            SoapHTTPError: If the HTTP status is not 200.
            SoapNoDataError: If the body is not valid UTF-8.
            SoapConnectionError: If the request failed or timed out.
        """
        url = base_url.rstrip("/") + service.control_path
        envelope = build_envelope(service, action, args, instance_id)
        headers = {
            "SOAPAction": f'"{service.urn}#{action}"',
            "Content-Type": "text/xml; charset=utf-8",
        }
        logger.debug("SOAP %s -> %s", action, url)

        try:
            async with self._get_session().post(
                url, data=envelope.encode("utf-8"), headers=headers
            ) as response:
                raw = await response.read()
                status = response.status
        except (aiohttp.ClientError, TimeoutError, asyncio.TimeoutError) as e:
            raise SoapConnectionError(f"{action} to {url} failed: {e}") from e

        if status != 200:  # noqa: PLR2004
            logger.debug("SOAP %s returned HTTP %d", action, status)
            raise SoapHTTPError(status, action)

        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SoapNoDataError(f"{action} returned undecodable body") from e
