"""Track model for the current item and queue entries."""

from dataclasses import dataclass
from urllib.parse import urljoin


@dataclass(frozen=True, slots=True)
class Track:
    """A playable track.

    Attributes:
        title: Track title.
        artist: Artist (creator or album artist).
        album: Album title.
        album_art_uri: Absolute or device-relative album art URI.
        uri: Source URI of the resource.
        duration: Duration in seconds (0 when unknown).
        track_number: 1-based position within its container.
        item_id: DIDL item id when known (e.g. "Q:0/3").
    """

    title: str = "Not Playing"
    artist: str = ""
    album: str = ""
    album_art_uri: str = ""
    uri: str = ""
    duration: float = 0.0
    track_number: int = 0
    item_id: str = ""

    @property
    def has_metadata(self) -> bool:
        """Return True if any descriptive field is set."""
        return bool(self.artist or self.album or self.title not in ("", "Not Playing"))

    def album_art_url(self, base_url: str) -> str | None:
        """Resolve the album art URI against a device base URL.

        Args:
            base_url: Device base URL, e.g. "http://192.168.1.20:1400".

        Returns:
            Absolute URL, or None if the track has no album art.
        """
        if not self.album_art_uri:
            return None
        if self.album_art_uri.startswith("http"):
            return self.album_art_uri
        return urljoin(base_url + "/", self.album_art_uri)


EMPTY_TRACK = Track()
