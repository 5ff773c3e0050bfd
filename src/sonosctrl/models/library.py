"""Music library browse models."""

from dataclasses import dataclass, field
from enum import Enum

from sonosctrl.models.track import Track

QUEUE_CONTAINER = "Q:0"
FAVORITES_CONTAINER = "FV:2"
PLAYLISTS_CONTAINER = "SQ:"


class LibrarySection(str, Enum):
    """Top-level library containers."""

    ARTISTS = "A:ARTIST"
    ALBUMS = "A:ALBUM"
    GENRES = "A:GENRE"
    TRACKS = "A:TRACK"
    COMPOSERS = "A:COMPOSER"
    IMPORTED_PLAYLISTS = "A:PLAYLISTS"

    @property
    def display_name(self) -> str:
        """Return a human-readable section title."""
        return _SECTION_NAMES[self]


_SECTION_NAMES = {
    LibrarySection.ARTISTS: "Artists",
    LibrarySection.ALBUMS: "Albums",
    LibrarySection.GENRES: "Genres",
    LibrarySection.TRACKS: "Tracks",
    LibrarySection.COMPOSERS: "Composers",
    LibrarySection.IMPORTED_PLAYLISTS: "Imported Playlists",
}


@dataclass(frozen=True, slots=True)
class BrowsableItem:
    """An entry in a ContentDirectory listing.

    Attributes:
        id: Object ID, usable as a Browse ObjectID for containers.
        parent_id: Parent object ID.
        title: Display title.
        item_class: UPnP class, e.g. "object.container.album.musicAlbum".
        album_art_uri: Album art URI (may be device-relative).
        uri: Resource URI (empty for most containers).
        artist: Creator.
        album: Album title.
        metadata: Raw DIDL-Lite fragment for this entry.
    """

    id: str
    parent_id: str = ""
    title: str = "Unknown"
    item_class: str = ""
    album_art_uri: str = ""
    uri: str = ""
    artist: str = ""
    album: str = ""
    metadata: str = ""

    @property
    def is_container(self) -> bool:
        """Return True for containers (albums, artists, playlists...)."""
        return "container" in self.item_class

    def as_track(self) -> Track:
        """Convert to a Track for display next to queue entries."""
        return Track(
            title=self.title,
            artist=self.artist,
            album=self.album,
            album_art_uri=self.album_art_uri,
            uri=self.uri,
            item_id=self.id,
        )


@dataclass(frozen=True, slots=True)
class BrowseResult:
    """Result page of a Browse call.

    Attributes:
        object_id: Container that was browsed.
        items: Entries in this page.
        total_matches: Total number of children on the device.
        number_returned: Number of children in this page.
        start: Starting index of this page.
    """

    object_id: str = ""
    items: list[BrowsableItem] = field(default_factory=list)
    total_matches: int = 0
    number_returned: int = 0
    start: int = 0

    @property
    def has_more(self) -> bool:
        """Return True if more children remain after this page."""
        return self.start + len(self.items) < self.total_matches
