"""Tests for the catalog bridge."""

import pytest

from sonosctrl.api.catalog import CatalogBridge, CatalogItem, MusicServiceBridge
from sonosctrl.api.library import DIDL_FOOTER, DIDL_HEADER
from sonosctrl.api.xmlscan import decode_entities, extract_value, parse_track_metadata, xml_escape


@pytest.fixture
def bridge() -> MusicServiceBridge:
    """Return a bridge with default service settings."""
    return MusicServiceBridge()


@pytest.fixture
def item() -> CatalogItem:
    """Return a sample catalog item with characters that need escaping."""
    return CatalogItem(
        id="1440857781",
        title="Rock & Roll",
        artist="Led Zeppelin",
        album="IV <Remaster>",
        art_url="https://art.example/a.jpg?w=600&h=600",
    )


class TestUris:
    """Test URI construction."""

    def test_track_uri(self, bridge: MusicServiceBridge) -> None:
        assert bridge.track_uri("123") == "x-sonos-http:song%3a123.mp4?sid=204&flags=8232&sn=1"

    def test_album_uri(self, bridge: MusicServiceBridge) -> None:
        assert bridge.album_uri("55") == (
            "x-rincon-cpcontainer:0004206calbum%3a55?sid=204&flags=8232&sn=1"
        )

    def test_playlist_uri(self, bridge: MusicServiceBridge) -> None:
        assert bridge.playlist_uri("pl.9") == (
            "x-rincon-cpcontainer:1006206cplaylist%3apl.9?sid=204&flags=8232&sn=1"
        )

    def test_custom_service(self) -> None:
        bridge = MusicServiceBridge(service_id=12, flags=0, serial_number=3)
        assert bridge.track_uri("x").endswith("?sid=12&flags=0&sn=3")


class TestMetadata:
    """Test DIDL-Lite envelopes."""

    def test_track_metadata(self, bridge: MusicServiceBridge, item: CatalogItem) -> None:
        didl = bridge.track_metadata(item)

        assert didl.startswith(DIDL_HEADER)
        assert didl.endswith(DIDL_FOOTER)
        assert '<item id="10032020song%3a1440857781"' in didl
        assert "<dc:title>Rock &amp; Roll</dc:title>" in didl
        assert "<upnp:album>IV &lt;Remaster&gt;</upnp:album>" in didl
        assert "<upnp:class>object.item.audioItem.musicTrack</upnp:class>" in didl
        assert "SA_RINCON204_X_#Svc204-0-Token" in didl

    def test_track_metadata_decodes_back(
        self, bridge: MusicServiceBridge, item: CatalogItem
    ) -> None:
        track = parse_track_metadata(xml_escape(bridge.track_metadata(item)))

        assert track is not None
        assert track.title == "Rock & Roll"
        assert track.artist == "Led Zeppelin"
        assert track.album == "IV <Remaster>"
        assert track.album_art_uri == "https://art.example/a.jpg?w=600&h=600"

    def test_album_metadata(self, bridge: MusicServiceBridge, item: CatalogItem) -> None:
        didl = bridge.album_metadata(item)

        assert '<item id="0004206calbum%3a1440857781"' in didl
        assert "object.container.album.musicAlbum" in didl
        assert "<dc:creator>Led Zeppelin</dc:creator>" in didl
        assert extract_value("upnp:album", didl) is None

    def test_playlist_metadata_has_no_creator(
        self, bridge: MusicServiceBridge, item: CatalogItem
    ) -> None:
        didl = bridge.playlist_metadata(item)

        assert "object.container.playlistContainer" in didl
        assert extract_value("dc:creator", didl) is None
        assert decode_entities(extract_value("dc:title", didl) or "") == "Rock & Roll"


class TestCatalogBridge:
    """Test the abstract interface."""

    def test_cannot_instantiate_abstract_bridge(self) -> None:
        with pytest.raises(TypeError):
            CatalogBridge()  # type: ignore[abstract]
