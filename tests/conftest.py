"""Shared fixtures for sonosctrl tests."""

import os
from collections.abc import Callable
from unittest.mock import MagicMock

import pytest

# Run Qt headless when no display is available.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from sonosctrl.api.description import DeviceDescriptionResolver
from sonosctrl.api.events import EventSubscriptionService
from sonosctrl.api.library import MusicLibraryService
from sonosctrl.api.rendering import RenderingService
from sonosctrl.api.soap import SoapClient
from sonosctrl.api.transport import TransportService
from sonosctrl.api.xmlscan import xml_escape
from sonosctrl.api.zone import ZoneService
from sonosctrl.core.coordinator import Coordinator, CoordinatorSettings
from sonosctrl.core.discovery import SSDPDiscovery
from sonosctrl.core.scanner import SubnetScanner
from sonosctrl.core.state import StateStore
from sonosctrl.models.device import Device
from sonosctrl.models.transport import TransportInfo

LIVING_ROOM = Device(
    id="RINCON_000E58A0000101400",
    host="192.168.1.20",
    room_name="Living Room",
    model_name="Sonos Arc",
)
KITCHEN = Device(
    id="RINCON_000E58B0000201400",
    host="192.168.1.21",
    room_name="Kitchen",
    model_name="Sonos One",
)
BEDROOM = Device(
    id="RINCON_000E58C0000301400",
    host="192.168.1.22",
    room_name="Bedroom",
    model_name="Sonos Five",
)

DIDL_TRACK = (
    '<DIDL-Lite xmlns:dc="http://purl.org/dc/elements/1.1/" '
    'xmlns:upnp="urn:schemas-upnp-org:metadata-1-0/upnp/" '
    'xmlns:r="urn:schemas-rinconnetworks-com:metadata-1-0/" '
    'xmlns="urn:schemas-upnp-org:metadata-1-0/DIDL-Lite/">'
    '<item id="-1" parentID="-1" restricted="true">'
    '<res protocolInfo="sonos.com-http:*:audio/mp4:*" duration="0:04:12">'
    "x-sonos-http:song%3a123.mp4?sid=204&amp;flags=8232</res>"
    "<upnp:albumArtURI>/getaa?s=1&amp;u=x-sonos-http%3asong</upnp:albumArtURI>"
    "<upnp:class>object.item.audioItem.musicTrack</upnp:class>"
    "<dc:title>Song &amp; Dance</dc:title>"
    "<dc:creator>The Artist</dc:creator>"
    "<upnp:album>The Album</upnp:album>"
    "</item></DIDL-Lite>"
)


def _envelope(action: str, body: str, service: str) -> str:
    return (
        '<?xml version="1.0"?>'
        '<s:Envelope xmlns:s="http://schemas.xmlsoap.org/soap/envelope/" '
        's:encodingStyle="http://schemas.xmlsoap.org/soap/encoding/"><s:Body>'
        f'<u:{action}Response xmlns:u="urn:schemas-upnp-org:service:{service}:1">'
        f"{body}</u:{action}Response></s:Body></s:Envelope>"
    )


@pytest.fixture
def soap_response() -> Callable[..., str]:
    """Return a builder for SOAP response envelopes."""

    def build(action: str, body: str = "", service: str = "AVTransport") -> str:
        return _envelope(action, body, service)

    return build


def zone_group_state(*groups: tuple[Device, list[Device]]) -> str:
    """Build a raw ZoneGroupState document for (coordinator, members) pairs."""
    parts = ["<ZoneGroupState><ZoneGroups>"]
    for coordinator, members in groups:
        parts.append(f'<ZoneGroup Coordinator="{coordinator.id}" ID="{coordinator.id}:42">')
        for member in members:
            parts.append(
                f'<ZoneGroupMember UUID="{member.id}" '
                f'Location="{member.base_url}/xml/device_description.xml" '
                f'ZoneName="{member.room_name}" Invisible="0"/>'
            )
        parts.append("</ZoneGroup>")
    parts.append("</ZoneGroups><VanishedDevices></VanishedDevices></ZoneGroupState>")
    return "".join(parts)


def topology_response(*groups: tuple[Device, list[Device]]) -> str:
    """Wrap a ZoneGroupState document in a GetZoneGroupState response."""
    inner = xml_escape(zone_group_state(*groups))
    return _envelope(
        "GetZoneGroupState", f"<ZoneGroupState>{inner}</ZoneGroupState>", "ZoneGroupTopology"
    )


@pytest.fixture
def position_info_xml(soap_response: Callable[..., str]) -> str:
    """Return a GetPositionInfo response for a playing track."""
    return soap_response(
        "GetPositionInfo",
        "<Track>3</Track>"
        "<TrackDuration>0:04:12</TrackDuration>"
        f"<TrackMetaData>{xml_escape(DIDL_TRACK)}</TrackMetaData>"
        "<TrackURI>x-sonos-http:song%3a123.mp4?sid=204&amp;flags=8232</TrackURI>"
        "<RelTime>0:01:05</RelTime>"
        "<AbsTime>NOT_IMPLEMENTED</AbsTime>"
        "<RelCount>2147483647</RelCount>",
    )


@pytest.fixture
def fast_settings() -> CoordinatorSettings:
    """Return coordinator settings without artificial delays."""
    return CoordinatorSettings(
        discovery_window=0.01,
        poll_interval=60.0,
        tick_interval=60.0,
        settle_delay=0.0,
        regroup_delay=0.0,
        subnet_scan_fallback=False,
    )


@pytest.fixture
def state(qapp: object) -> StateStore:
    """Return a fresh StateStore for each test."""
    return StateStore()


@pytest.fixture
def services() -> dict[str, MagicMock]:
    """Return spec'd service doubles with benign defaults."""
    zone = MagicMock(spec=ZoneService)
    zone.get_topology.return_value = topology_response(
        (LIVING_ROOM, [LIVING_ROOM, KITCHEN]), (BEDROOM, [BEDROOM])
    )

    rendering = MagicMock(spec=RenderingService)
    rendering.get_group_volume.return_value = 30
    rendering.get_group_mute.return_value = False
    rendering.get_bass.return_value = 0
    rendering.get_treble.return_value = 0
    rendering.set_relative_volume.return_value = 35

    transport = MagicMock(spec=TransportService)
    transport.get_transport_info.return_value = TransportInfo()
    transport.get_queue.return_value = []
    transport.get_crossfade_mode.return_value = False
    transport.get_sleep_timer_duration.return_value = ""

    resolver = MagicMock(spec=DeviceDescriptionResolver)
    resolver.fetch.return_value = None

    events = MagicMock(spec=EventSubscriptionService)
    events.subscriptions = []
    events.due_for_renewal.return_value = []

    return {
        "soap": MagicMock(spec=SoapClient),
        "zone": zone,
        "rendering": rendering,
        "transport": transport,
        "library": MagicMock(spec=MusicLibraryService),
        "resolver": resolver,
        "discovery": MagicMock(spec=SSDPDiscovery),
        "scanner": MagicMock(spec=SubnetScanner),
        "events": events,
    }


@pytest.fixture
def coordinator(
    state: StateStore, fast_settings: CoordinatorSettings, services: dict[str, MagicMock]
) -> Coordinator:
    """Return a Coordinator wired to service doubles."""
    return Coordinator(state, fast_settings, **services)


@pytest.fixture
def known_devices() -> dict[str, Device]:
    """Return the three sample devices keyed by ID."""
    return {d.id: d for d in (LIVING_ROOM, KITCHEN, BEDROOM)}
