"""Tests for SSDP discovery."""

import socket
import threading
import time
from unittest.mock import MagicMock, patch

from sonosctrl.core.discovery import (
    SSDP_ADDRESS,
    SSDP_PORT,
    ZONE_PLAYER_TARGET,
    DiscoveredDevice,
    SSDPDiscovery,
    build_search_request,
    parse_search_response,
)

REPLY = (
    "HTTP/1.1 200 OK\r\n"
    "CACHE-CONTROL: max-age = 1800\r\n"
    "EXT:\r\n"
    "LOCATION: http://192.168.1.20:1400/xml/device_description.xml\r\n"
    "SERVER: Linux UPnP/1.0 Sonos/79.1-56030 (ZPS19)\r\n"
    "ST: urn:schemas-upnp-org:device:ZonePlayer:1\r\n"
    "USN: uuid:RINCON_000E58A0000101400::urn:schemas-upnp-org:device:ZonePlayer:1\r\n"
    "\r\n"
)


class TestSearchRequest:
    """Tests for the M-SEARCH datagram."""

    def test_request_lines(self) -> None:
        request = build_search_request().decode("ascii")

        assert request.startswith("M-SEARCH * HTTP/1.1\r\n")
        assert f"HOST: {SSDP_ADDRESS}:{SSDP_PORT}\r\n" in request
        assert 'MAN: "ssdp:discover"\r\n' in request
        assert "MX: 3\r\n" in request
        assert f"ST: {ZONE_PLAYER_TARGET}\r\n" in request
        assert request.endswith("\r\n\r\n")


class TestParseSearchResponse:
    """Tests for reply parsing."""

    def test_location(self) -> None:
        device = parse_search_response(REPLY)

        assert device == DiscoveredDevice(
            host="192.168.1.20",
            port=1400,
            location="http://192.168.1.20:1400/xml/device_description.xml",
        )

    def test_header_name_is_case_insensitive(self) -> None:
        device = parse_search_response("HTTP/1.1 200 OK\r\nLocation: http://10.0.0.7:1410/x.xml\r\n")
        assert device is not None
        assert device.host == "10.0.0.7"
        assert device.port == 1410

    def test_default_port(self) -> None:
        device = parse_search_response("LOCATION: http://10.0.0.7/xml/device_description.xml")
        assert device is not None
        assert device.port == 1400

    def test_missing_location(self) -> None:
        assert parse_search_response("HTTP/1.1 200 OK\r\nST: x\r\n\r\n") is None

    def test_unparseable_location(self) -> None:
        assert parse_search_response("LOCATION: not a url") is None
        assert parse_search_response("LOCATION: http://10.0.0.7:abc/") is None


def _fake_socket(replies: list[bytes]) -> MagicMock:
    """Return a socket double that yields replies, then times out."""
    sock = MagicMock(spec=socket.socket)
    queue = list(replies)

    def recvfrom(_size: int) -> tuple[bytes, tuple[str, int]]:
        if queue:
            return queue.pop(0), ("192.168.1.20", 1900)
        time.sleep(0.01)
        raise TimeoutError

    sock.recvfrom.side_effect = recvfrom
    return sock


class TestSSDPDiscovery:
    """Tests for the background search engine."""

    def test_reports_every_reply(self) -> None:
        sock = _fake_socket([REPLY.encode(), b"garbage", REPLY.encode()])
        found: list[DiscoveredDevice] = []
        done = threading.Event()

        def on_found(device: DiscoveredDevice) -> None:
            found.append(device)
            if len(found) == 2:
                done.set()

        with patch("sonosctrl.core.discovery.socket.socket", return_value=sock):
            discovery = SSDPDiscovery(window=0.3, sends=1)
            discovery.search(on_found)
            assert done.wait(timeout=2.0)
            discovery.stop()

        assert [d.host for d in found] == ["192.168.1.20", "192.168.1.20"]
        sock.sendto.assert_called_with(build_search_request(), (SSDP_ADDRESS, SSDP_PORT))

    def test_sends_multiple_searches(self) -> None:
        sock = _fake_socket([])
        with patch("sonosctrl.core.discovery.socket.socket", return_value=sock):
            discovery = SSDPDiscovery(window=0.15, sends=3)
            discovery.search(lambda _: None)
            deadline = time.monotonic() + 2.0
            while discovery.is_searching and time.monotonic() < deadline:
                time.sleep(0.02)

        assert sock.sendto.call_count == 3
        sock.close.assert_called()

    def test_stop_closes_socket_and_is_idempotent(self) -> None:
        sock = _fake_socket([])
        with patch("sonosctrl.core.discovery.socket.socket", return_value=sock):
            discovery = SSDPDiscovery(window=30.0)
            discovery.search(lambda _: None)
            time.sleep(0.05)
            discovery.stop()
            discovery.stop()

        assert not discovery.is_searching
        sock.close.assert_called()

    def test_callback_error_does_not_stop_search(self) -> None:
        sock = _fake_socket([REPLY.encode(), REPLY.encode()])
        calls: list[int] = []
        done = threading.Event()

        def on_found(_: DiscoveredDevice) -> None:
            calls.append(1)
            if len(calls) == 2:
                done.set()
            raise RuntimeError("boom")

        with patch("sonosctrl.core.discovery.socket.socket", return_value=sock):
            discovery = SSDPDiscovery(window=1.0, sends=1)
            discovery.search(on_found)
            assert done.wait(timeout=2.0)
            discovery.stop()

        assert len(calls) == 2

    def test_socket_failure_ends_search_quietly(self) -> None:
        with patch("sonosctrl.core.discovery.socket.socket", side_effect=OSError("denied")):
            discovery = SSDPDiscovery(window=0.1)
            discovery.search(lambda _: None)
            time.sleep(0.05)
            discovery.stop()

        assert not discovery.is_searching

    def test_stop_without_search(self) -> None:
        discovery = SSDPDiscovery()
        discovery.stop()
        assert not discovery.is_searching
