"""Device description fetcher."""

import asyncio
import logging
from typing import Any

import aiohttp

from sonosctrl.api.xmlscan import decode_entities, extract_value
from sonosctrl.models.device import DEFAULT_PORT, Device, category_for_model

logger = logging.getLogger(__name__)

DESCRIPTION_PATH = "/xml/device_description.xml"


def parse_description(xml: str, host: str, port: int = DEFAULT_PORT) -> Device | None:
    """Build a Device from a device description document.

    Args:
        xml: Description document body.
        host: Host the document was fetched from.
        port: Port the document was fetched from.

    Returns:
        The device, or None if the document carries no UDN.
    """
    udn = extract_value("UDN", xml)
    if not udn or not udn.strip():
        return None
    device_id = udn.strip().removeprefix("uuid:")

    def field(tag: str) -> str:
        value = extract_value(tag, xml)
        return decode_entities(value).strip() if value else ""

    room_name = field("roomName") or field("friendlyName") or "Unknown Room"
    model_name = field("modelName")
    return Device(
        id=device_id,
        host=host,
        port=port,
        room_name=room_name,
        model_name=model_name,
        model_number=field("modelNumber"),
        software_version=field("softwareVersion"),
        hardware_version=field("hardwareVersion"),
        category=category_for_model(model_name),
    )


class DeviceDescriptionResolver:
    """Resolves discovered (host, port) pairs into Device records."""

    _TIMEOUT: float = 5.0

    def __init__(self, timeout: float = _TIMEOUT) -> None:
        """Initialize the resolver.

        Args:
            timeout: Whole-request timeout in seconds.
        """
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "DeviceDescriptionResolver":
        """Enter async context."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Exit async context (close the session)."""
        await self.close()

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def fetch(self, host: str, port: int = DEFAULT_PORT) -> Device | None:
        """Fetch and parse the description of one device.

        Network errors and non-conforming responders both yield None; the
        caller simply does not learn about that host.

        Args:
            host: Device IP address or hostname.
            port: Device HTTP port.

        Returns:
            The device, or None.
        """
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)

        url = f"http://{host}:{port}{DESCRIPTION_PATH}"
        try:
            async with self._session.get(url) as response:
                if response.status != 200:  # noqa: PLR2004
                    logger.debug("Description fetch %s: HTTP %d", url, response.status)
                    return None
                body = await response.text(errors="replace")
        except (aiohttp.ClientError, TimeoutError, asyncio.TimeoutError) as e:
            logger.debug("Description fetch %s failed: %s", url, e)
            return None

        device = parse_description(body, host, port)
        if device is None:
            logger.debug("Ignoring non-conforming responder at %s:%d", host, port)
        return device
