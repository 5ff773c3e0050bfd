"""SSDP discovery for speakers on the local network."""

from __future__ import annotations

import logging
import socket
import threading
import time
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass
from urllib.parse import urlsplit

from sonosctrl.models.device import DEFAULT_PORT

logger = logging.getLogger(__name__)

SSDP_ADDRESS = "239.255.255.250"
SSDP_PORT = 1900
ZONE_PLAYER_TARGET = "urn:schemas-upnp-org:device:ZonePlayer:1"
SEARCH_MX = 3

_RECV_BUFFER = 4096
_POLL_INTERVAL = 0.5


@dataclass(frozen=True, slots=True)
class DiscoveredDevice:
    """A host that answered an M-SEARCH."""

    host: str
    port: int
    location: str = ""


def build_search_request(search_target: str = ZONE_PLAYER_TARGET, mx: int = SEARCH_MX) -> bytes:
    """Build an SSDP M-SEARCH datagram."""
    lines = [
        "M-SEARCH * HTTP/1.1",
        f"HOST: {SSDP_ADDRESS}:{SSDP_PORT}",
        'MAN: "ssdp:discover"',
        f"MX: {mx}",
        f"ST: {search_target}",
        "",
        "",
    ]
    return "\r\n".join(lines).encode("ascii")


def parse_search_response(response: str) -> DiscoveredDevice | None:
    """Extract host and port from an M-SEARCH reply.

    Args:
        response: Reply datagram decoded as text.

    Returns:
        The device location, or None if the reply has no usable LOCATION.
        A LOCATION without a port is assumed to use the default port.
    """
    location = ""
    for line in response.splitlines():
        name, sep, value = line.partition(":")
        if sep and name.strip().upper() == "LOCATION":
            location = value.strip()
            break

    if not location:
        return None

    parts = urlsplit(location)
    if not parts.hostname:
        return None
    try:
        port = parts.port or DEFAULT_PORT
    except ValueError:
        return None
    return DiscoveredDevice(host=parts.hostname, port=port, location=location)


class SSDPDiscovery:
    """Searches for speakers with SSDP on a background thread.

    The engine reports every reply it receives; the same host can be
    reported more than once, so callers deduplicate.

    Example:
        discovery = SSDPDiscovery()
        discovery.search(on_found=lambda d: print(f"Found: {d.host}:{d.port}"))
        # ... later ...
        discovery.stop()
    """

    def __init__(
        self,
        search_target: str = ZONE_PLAYER_TARGET,
        window: float = 10.0,
        sends: int = 3,
    ) -> None:
        """Initialize the discovery engine.

        Args:
            search_target: SSDP ST header value.
            window: Total listening time in seconds.
            sends: Number of M-SEARCH datagrams sent, spread over the window.
        """
        self._search_target = search_target
        self._window = window
        self._sends = max(1, sends)
        self._lock = threading.Lock()
        self._sock: socket.socket | None = None
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    @property
    def is_searching(self) -> bool:
        """Return True while the receive thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def search(self, on_found: Callable[[DiscoveredDevice], None]) -> None:
        """Start a search in the background.

        Does nothing if a search is already running.

        Args:
            on_found: Called from the discovery thread for each reply.
        """
        if self.is_searching:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, args=(on_found,), name="ssdp-discovery", daemon=True
        )
        self._thread.start()
        logger.debug("Started SSDP discovery for %s", self._search_target)

    def stop(self) -> None:
        """Stop the search, unblocking a pending receive.

        Safe to call repeatedly and from any thread.
        """
        self._stop_event.set()
        self._close_socket()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)
        self._thread = None

    def _close_socket(self, expected: socket.socket | None = None) -> None:
        with self._lock:
            sock = self._sock
            if sock is None or (expected is not None and sock is not expected):
                return
            self._sock = None
        with suppress(OSError):
            sock.shutdown(socket.SHUT_RDWR)
        with suppress(OSError):
            sock.close()

    def _open_socket(self) -> socket.socket | None:
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        except OSError as e:
            logger.warning("SSDP socket creation failed: %s", e)
            return None
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, 2)
            sock.bind(("", 0))
            sock.settimeout(_POLL_INTERVAL)
        except OSError as e:
            logger.warning("SSDP socket setup failed: %s", e)
            sock.close()
            return None

        with self._lock:
            if self._stop_event.is_set():
                sock.close()
                return None
            self._sock = sock
        return sock

    def _run(self, on_found: Callable[[DiscoveredDevice], None]) -> None:
        sock = self._open_socket()
        if sock is None:
            return

        request = build_search_request(self._search_target)
        round_length = self._window / self._sends
        try:
            for _ in range(self._sends):
                if self._stop_event.is_set():
                    break
                try:
                    sock.sendto(request, (SSDP_ADDRESS, SSDP_PORT))
                except OSError as e:
                    logger.warning("SSDP send failed: %s", e)
                    break
                if not self._receive_until(sock, time.monotonic() + round_length, on_found):
                    break
        finally:
            self._close_socket(expected=sock)
            logger.debug("SSDP discovery finished")

    def _receive_until(
        self,
        sock: socket.socket,
        deadline: float,
        on_found: Callable[[DiscoveredDevice], None],
    ) -> bool:
        """Receive replies until deadline.

        Returns:
            False if the search was stopped or the socket closed.
        """
        while time.monotonic() < deadline:
            if self._stop_event.is_set():
                return False
            try:
                data, _ = sock.recvfrom(_RECV_BUFFER)
            except TimeoutError:
                continue
            except OSError:
                return False
            if not data:
                return False

            device = parse_search_response(data.decode("utf-8", errors="replace"))
            if device is None:
                continue
            logger.debug("SSDP reply from %s:%d", device.host, device.port)
            try:
                on_found(device)
            except Exception:
                logger.exception("Discovery callback failed for %s", device.host)
        return True

    @staticmethod
    def discover_all(timeout: float = 5.0) -> list[DiscoveredDevice]:
        """Search for timeout seconds and return the unique hosts found.

        Args:
            timeout: Time to search in seconds.

        Returns:
            Devices in the order they first answered.
        """
        found: dict[str, DiscoveredDevice] = {}
        lock = threading.Lock()

        def on_found(device: DiscoveredDevice) -> None:
            with lock:
                found.setdefault(device.host, device)

        discovery = SSDPDiscovery(window=timeout)
        discovery.search(on_found)
        try:
            threading.Event().wait(timeout=timeout)
        finally:
            discovery.stop()

        with lock:
            return list(found.values())
