"""GENA event subscription lifecycle (SUBSCRIBE / renew / UNSUBSCRIBE).

Only the subscription table is managed here; receiving NOTIFY callbacks is
left to whoever owns the callback URL.
"""

import asyncio
import logging
import re
import time
from typing import Any

import aiohttp

from sonosctrl.api.soap import SoapError
from sonosctrl.models.device import Device
from sonosctrl.models.subscription import Subscription

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 600


class EventPath:
    """Well-known event sub-paths."""

    AV_TRANSPORT = "/MediaRenderer/AVTransport/Event"
    RENDERING_CONTROL = "/MediaRenderer/RenderingControl/Event"
    ZONE_GROUP_TOPOLOGY = "/ZoneGroupTopology/Event"
    CONTENT_DIRECTORY = "/MediaServer/ContentDirectory/Event"
    GROUP_RENDERING_CONTROL = "/MediaRenderer/GroupRenderingControl/Event"


class SubscriptionError(SoapError):
    """SUBSCRIBE was rejected or returned no SID."""


def _granted_timeout(header: str | None, requested: int) -> int:
    """Parse a "Second-<n>" TIMEOUT header, falling back to the request."""
    if header:
        match = re.search(r"Second-(\d+)", header, re.IGNORECASE)
        if match:
            return int(match.group(1))
    return requested


class EventSubscriptionService:
    """Holds event subscriptions keyed by (device ID, service path)."""

    _TIMEOUT: float = 5.0

    def __init__(self, timeout: float = _TIMEOUT) -> None:
        """Initialize the service.

        Args:
            timeout: Per-request timeout in seconds.
        """
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None
        self._subscriptions: dict[tuple[str, str], Subscription] = {}

    async def __aenter__(self) -> "EventSubscriptionService":
        """Enter async context."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Exit async context (close the session)."""
        await self.close()

    @property
    def subscriptions(self) -> list[Subscription]:
        """Return the currently held subscriptions."""
        return list(self._subscriptions.values())

    def get(self, device: Device, service_path: str) -> Subscription | None:
        """Return the subscription for (device, path), if held."""
        return self._subscriptions.get((device.id, service_path))

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def close(self) -> None:
        """Close the HTTP session (subscriptions are left to expire)."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request(
        self, method: str, device: Device, service_path: str, headers: dict[str, str]
    ) -> tuple[int, str | None, str | None]:
        url = device.base_url + service_path
        try:
            async with self._get_session().request(method, url, headers=headers) as response:
                return (
                    response.status,
                    response.headers.get("SID"),
                    response.headers.get("TIMEOUT"),
                )
        except (aiohttp.ClientError, TimeoutError, asyncio.TimeoutError) as e:
            raise SubscriptionError(f"{method} {url} failed: {e}") from e

    async def subscribe(
        self,
        device: Device,
        service_path: str,
        callback_url: str,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> str:
        """Subscribe to events from one service on a device.

        Args:
            device: Device to subscribe to.
            service_path: Event sub-path, see EventPath.
            callback_url: URL the device should NOTIFY.
            timeout: Requested subscription lifetime in seconds.

        Returns:
            The subscription ID.

        Raises:
            SubscriptionError: If the request fails or no SID is returned.
        """
        status, sid, granted = await self._request(
            "SUBSCRIBE",
            device,
            service_path,
            {
                "CALLBACK": f"<{callback_url}>",
                "NT": "upnp:event",
                "TIMEOUT": f"Second-{timeout}",
            },
        )
        if status != 200 or not sid:  # noqa: PLR2004
            raise SubscriptionError(f"SUBSCRIBE {service_path} on {device.host}: HTTP {status}")

        seconds = _granted_timeout(granted, timeout)
        subscription = Subscription(
            device_id=device.id,
            service_path=service_path,
            sid=sid,
            timeout=seconds,
            expires_at=time.time() + seconds,
        )
        self._subscriptions[subscription.key] = subscription
        logger.debug("Subscribed %s%s as %s", device.host, service_path, sid)
        return sid

    async def renew(
        self, device: Device, service_path: str, timeout: int = DEFAULT_TIMEOUT
    ) -> bool:
        """Renew a held subscription.

        Returns:
            True if renewed, False if nothing was held for (device, path).

        Raises:
            SubscriptionError: If the device rejects the renewal.
        """
        current = self.get(device, service_path)
        if current is None:
            return False

        status, _, granted = await self._request(
            "SUBSCRIBE",
            device,
            service_path,
            {"SID": current.sid, "TIMEOUT": f"Second-{timeout}"},
        )
        if status != 200:  # noqa: PLR2004
            raise SubscriptionError(f"Renew {service_path} on {device.host}: HTTP {status}")

        seconds = _granted_timeout(granted, timeout)
        self._subscriptions[current.key] = Subscription(
            device_id=current.device_id,
            service_path=current.service_path,
            sid=current.sid,
            timeout=seconds,
            expires_at=time.time() + seconds,
        )
        return True

    async def unsubscribe(self, device: Device, service_path: str) -> None:
        """Cancel a subscription.

        The local entry is removed even if the device cannot be reached.
        """
        current = self._subscriptions.pop((device.id, service_path), None)
        if current is None:
            return
        try:
            await self._request("UNSUBSCRIBE", device, service_path, {"SID": current.sid})
        except SubscriptionError as e:
            logger.debug("Unsubscribe %s ignored: %s", current.sid, e)

    def unsubscribe_all(self, device: Device) -> None:
        """Forget every subscription held for a device without network calls."""
        for key in [k for k in self._subscriptions if k[0] == device.id]:
            del self._subscriptions[key]

    def due_for_renewal(self, margin: float = 60.0, now: float | None = None) -> list[Subscription]:
        """Return subscriptions that expire within margin seconds."""
        return [s for s in self._subscriptions.values() if s.seconds_left(now) <= margin]
