"""Subnet probe used when multicast discovery finds nothing.

Some networks drop multicast (client isolation, VLANs, firewalls). The scanner
probes the device description URL on every host of the local /24 instead.
"""

import asyncio
import logging
import socket
from collections.abc import Callable
from contextlib import suppress

import aiohttp

from sonosctrl.api.description import DESCRIPTION_PATH
from sonosctrl.models.device import DEFAULT_PORT

logger = logging.getLogger(__name__)

_MARKERS = ("Sonos", "ZonePlayer")


def local_ipv4_address() -> str | None:
    """Return the IPv4 address of the interface holding the default route.

    No packet is sent: connecting a UDP socket only selects a route.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.connect(("10.255.255.255", 1))
        address = sock.getsockname()[0]
    except OSError as e:
        logger.debug("Could not determine local address: %s", e)
        return None
    finally:
        with suppress(OSError):
            sock.close()
    if address.startswith("127."):
        return None
    return address


def subnet_hosts(address: str) -> list[str]:
    """Return hosts .1 to .254 of the /24 containing address."""
    parts = address.split(".")
    if len(parts) != 4:  # noqa: PLR2004
        return []
    prefix = ".".join(parts[:3])
    return [f"{prefix}.{i}" for i in range(1, 255)]


class SubnetScanner:
    """Probes every host of the local /24 for a speaker description."""

    def __init__(
        self,
        port: int = DEFAULT_PORT,
        batch_size: int = 32,
        probe_timeout: float = 1.5,
        local_address: str | None = None,
    ) -> None:
        """Initialize the scanner.

        Args:
            port: HTTP port to probe.
            batch_size: Number of concurrent probes.
            probe_timeout: Per-probe timeout in seconds.
            local_address: Address whose /24 is scanned (auto-detected if None).
        """
        self._port = port
        self._batch_size = max(1, batch_size)
        self._timeout = aiohttp.ClientTimeout(total=probe_timeout)
        self._local_address = local_address

    async def _probe(self, session: aiohttp.ClientSession, host: str) -> bool:
        url = f"http://{host}:{self._port}{DESCRIPTION_PATH}"
        try:
            async with session.get(url) as response:
                if response.status != 200:  # noqa: PLR2004
                    return False
                body = await response.text(errors="replace")
        except (aiohttp.ClientError, TimeoutError, asyncio.TimeoutError):
            return False
        return any(marker in body for marker in _MARKERS)

    async def scan(self, on_found: Callable[[str, int], None]) -> list[str]:
        """Scan the subnet.

        Args:
            on_found: Called with (host, port) for each responding speaker.

        Returns:
            Hosts found, in address order.
        """
        address = self._local_address or local_ipv4_address()
        if address is None:
            logger.warning("Subnet scan skipped: no local IPv4 address")
            return []

        hosts = subnet_hosts(address)
        logger.info("Scanning %s.1-254 on port %d", address.rsplit(".", 1)[0], self._port)

        found: list[str] = []
        async with aiohttp.ClientSession(timeout=self._timeout) as session:
            for i in range(0, len(hosts), self._batch_size):
                batch = hosts[i : i + self._batch_size]
                results = await asyncio.gather(*(self._probe(session, h) for h in batch))
                for host, ok in zip(batch, results, strict=True):
                    if ok:
                        logger.info("Subnet scan found speaker at %s", host)
                        found.append(host)
                        on_found(host, self._port)
        return found
