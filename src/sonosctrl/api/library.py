"""ContentDirectory browsing for the music library, favorites and playlists."""

import logging

from sonosctrl.api.soap import Service, SoapClient
from sonosctrl.api.xmlscan import (
    decode_entities,
    extract_attribute,
    extract_value,
    split_didl_entries,
)
from sonosctrl.models.device import Device
from sonosctrl.models.library import BrowsableItem, BrowseResult

logger = logging.getLogger(__name__)

LIBRARY_FILTER = (
    "dc:title,res,dc:creator,upnp:albumArtURI,upnp:album,upnp:class,upnp:originalTrackNumber"
)

DIDL_HEADER = (
    '<DIDL-Lite xmlns:dc="http://purl.org/dc/elements/1.1/" '
    'xmlns:upnp="urn:schemas-upnp-org:metadata-1-0/upnp/" '
    'xmlns:r="urn:schemas-rinconnetworks-com:metadata-1-0/" '
    'xmlns="urn:schemas-upnp-org:metadata-1-0/DIDL-Lite/">'
)
DIDL_FOOTER = "</DIDL-Lite>"


def wrap_didl(fragment: str) -> str:
    """Wrap a single item/container fragment in a DIDL-Lite document."""
    return f"{DIDL_HEADER}{fragment}{DIDL_FOOTER}"


def _parse_entry(fragment: str, fallback_id: str, is_container: bool) -> BrowsableItem:
    def text(tag: str) -> str:
        value = extract_value(tag, fragment)
        return decode_entities(value).strip() if value else ""

    default_class = "object.container" if is_container else "object.item"
    return BrowsableItem(
        id=extract_attribute("id", fragment) or fallback_id,
        parent_id=extract_attribute("parentID", fragment) or "",
        title=text("dc:title") or "Unknown",
        item_class=text("upnp:class") or default_class,
        album_art_uri=text("upnp:albumArtURI"),
        uri=text("res"),
        artist=text("dc:creator"),
        album=text("upnp:album"),
        metadata=wrap_didl(fragment),
    )


def parse_browse_response(response: str, object_id: str = "", start: int = 0) -> BrowseResult:
    """Parse a Browse response into containers followed by items.

    Args:
        response: Browse response body.
        object_id: Container that was browsed.
        start: Starting index of the page.

    Returns:
        The parsed page.
    """
    total = extract_value("TotalMatches", response)
    returned = extract_value("NumberReturned", response)
    result = extract_value("Result", response)
    if result is None:
        return BrowseResult(object_id=object_id, start=start)

    decoded = decode_entities(result)
    items: list[BrowsableItem] = []
    for element, is_container in (("container", True), ("item", False)):
        for fragment in split_didl_entries(decoded, element):
            items.append(_parse_entry(fragment, str(start + len(items)), is_container))

    def as_int(value: str | None) -> int:
        try:
            return int(value.strip()) if value else 0
        except ValueError:
            return 0

    return BrowseResult(
        object_id=object_id,
        items=items,
        total_matches=as_int(total),
        number_returned=as_int(returned),
        start=start,
    )


class MusicLibraryService:
    """Browses ContentDirectory containers on a device."""

    def __init__(self, soap: SoapClient) -> None:
        """Initialize the service.

        Args:
            soap: Shared SOAP client.
        """
        self._soap = soap

    async def browse(
        self, device: Device, object_id: str, start: int = 0, count: int = 100
    ) -> BrowseResult:
        """Browse the direct children of a container.

        Args:
            device: Any device that shares the library.
            object_id: Container ID, e.g. "A:ALBUM", "FV:2" or "SQ:".
            start: 0-based starting index.
            count: Maximum number of entries.

        Returns:
            One page of children.
        """
        response = await self._soap.send(
            device.base_url,
            Service.CONTENT_DIRECTORY,
            "Browse",
            [
                ("ObjectID", object_id),
                ("BrowseFlag", "BrowseDirectChildren"),
                ("Filter", LIBRARY_FILTER),
                ("StartingIndex", start),
                ("RequestedCount", count),
                ("SortCriteria", ""),
            ],
            instance_id=None,
        )
        result = parse_browse_response(response, object_id=object_id, start=start)
        logger.debug(
            "Browsed %s: %d of %d", object_id, len(result.items), result.total_matches
        )
        return result
