"""Bridge from an external music catalog to playable speaker URIs.

A catalog provider (streaming service, search UI...) hands over item IDs and
display fields. The bridge turns them into the vendor URI scheme and the
DIDL-Lite envelope that AddURIToQueue / SetAVTransportURI expect. The
control engine treats both as opaque strings.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from sonosctrl.api.library import wrap_didl
from sonosctrl.api.xmlscan import xml_escape

TRACK_CLASS = "object.item.audioItem.musicTrack"
ALBUM_CLASS = "object.container.album.musicAlbum"
PLAYLIST_CLASS = "object.container.playlistContainer"


@dataclass(frozen=True, slots=True)
class CatalogItem:
    """An item selected in an external catalog.

    Attributes:
        id: Catalog identifier.
        title: Title (song, album or playlist name).
        artist: Artist name, if any.
        album: Album title, if any.
        art_url: Absolute artwork URL, if any.
    """

    id: str
    title: str
    artist: str = ""
    album: str = ""
    art_url: str = ""


class CatalogBridge(ABC):
    """Produces URIs and metadata for catalog items."""

    @abstractmethod
    def track_uri(self, item_id: str) -> str:
        """Return a playable URI for a single track."""

    @abstractmethod
    def album_uri(self, item_id: str) -> str:
        """Return a container URI for an album."""

    @abstractmethod
    def playlist_uri(self, item_id: str) -> str:
        """Return a container URI for a playlist."""

    @abstractmethod
    def track_metadata(self, item: CatalogItem) -> str:
        """Return DIDL-Lite for a track."""

    @abstractmethod
    def album_metadata(self, item: CatalogItem) -> str:
        """Return DIDL-Lite for an album."""

    @abstractmethod
    def playlist_metadata(self, item: CatalogItem) -> str:
        """Return DIDL-Lite for a playlist."""


class MusicServiceBridge(CatalogBridge):
    """Bridge for a linked music service addressed by service ID.

    The defaults match the Apple Music integration (service 204, first
    linked account).
    """

    def __init__(self, service_id: int = 204, flags: int = 8232, serial_number: int = 1) -> None:
        """Initialize the bridge.

        Args:
            service_id: Music service ID on the speaker.
            flags: Stream flags appended to URIs.
            serial_number: Linked account index.
        """
        self.service_id = service_id
        self.flags = flags
        self.serial_number = serial_number

    @property
    def _query(self) -> str:
        return f"sid={self.service_id}&flags={self.flags}&sn={self.serial_number}"

    @property
    def _token(self) -> str:
        return f"SA_RINCON{self.service_id}_X_#Svc{self.service_id}-0-Token"

    def track_uri(self, item_id: str) -> str:
        return f"x-sonos-http:song%3a{item_id}.mp4?{self._query}"

    def album_uri(self, item_id: str) -> str:
        return f"x-rincon-cpcontainer:0004206calbum%3a{item_id}?{self._query}"

    def playlist_uri(self, item_id: str) -> str:
        return f"x-rincon-cpcontainer:1006206cplaylist%3a{item_id}?{self._query}"

    def _metadata(self, didl_id: str, item: CatalogItem, item_class: str) -> str:
        parts = [
            f'<item id="{xml_escape(didl_id)}" parentID="" restricted="true">',
            f"<dc:title>{xml_escape(item.title)}</dc:title>",
            f"<upnp:class>{item_class}</upnp:class>",
        ]
        if item_class != PLAYLIST_CLASS:
            parts.append(f"<dc:creator>{xml_escape(item.artist)}</dc:creator>")
        if item_class == TRACK_CLASS:
            parts.append(f"<upnp:album>{xml_escape(item.album)}</upnp:album>")
        parts.append(f"<upnp:albumArtURI>{xml_escape(item.art_url)}</upnp:albumArtURI>")
        parts.append(
            '<desc id="cdudn" nameSpace="urn:schemas-rinconnetworks-com:metadata-1-0/">'
            f"{self._token}</desc>"
        )
        parts.append("</item>")
        return wrap_didl("".join(parts))

    def track_metadata(self, item: CatalogItem) -> str:
        return self._metadata(f"10032020song%3a{item.id}", item, TRACK_CLASS)

    def album_metadata(self, item: CatalogItem) -> str:
        return self._metadata(f"0004206calbum%3a{item.id}", item, ALBUM_CLASS)

    def playlist_metadata(self, item: CatalogItem) -> str:
        return self._metadata(f"1006206cplaylist%3a{item.id}", item, PLAYLIST_CLASS)
