"""AVTransport service: playback, queue, sleep timer and crossfade."""

import asyncio
import dataclasses
import logging

from sonosctrl.api.soap import Service, SoapClient
from sonosctrl.api.xmlscan import (
    decode_entities,
    extract_value,
    format_timestamp,
    parse_didl_items,
    parse_duration,
    parse_track_metadata,
)
from sonosctrl.models.device import Device
from sonosctrl.models.library import QUEUE_CONTAINER
from sonosctrl.models.track import EMPTY_TRACK, Track
from sonosctrl.models.transport import EnqueueResult, PlaybackState, PlayMode, TransportInfo

logger = logging.getLogger(__name__)

BROWSE_FILTER = "dc:title,res,dc:creator,upnp:albumArtURI,upnp:album,upnp:originalTrackNumber"
DEFAULT_PAGE_SIZE = 100


def _int(tag: str, xml: str, default: int = 0) -> int:
    value = extract_value(tag, xml)
    try:
        return int(value.strip()) if value else default
    except ValueError:
        return default


class TransportService:
    """Stateless AVTransport wrappers.

    All calls go to the group coordinator. Queue positions use the device's
    own 1-based addressing and are passed through unchanged.
    """

    def __init__(self, soap: SoapClient) -> None:
        """Initialize the service.

        Args:
            soap: Shared SOAP client.
        """
        self._soap = soap

    async def _send(
        self, device: Device, action: str, args: list[tuple[str, object]] | None = None
    ) -> str:
        return await self._soap.send(device.base_url, Service.AV_TRANSPORT, action, args or [])

    # Playback

    async def play(self, device: Device) -> None:
        """Start or resume playback."""
        await self._send(device, "Play", [("Speed", "1")])

    async def pause(self, device: Device) -> None:
        """Pause playback."""
        await self._send(device, "Pause")

    async def stop(self, device: Device) -> None:
        """Stop playback."""
        await self._send(device, "Stop")

    async def next(self, device: Device) -> None:
        """Skip to the next track."""
        await self._send(device, "Next")

    async def previous(self, device: Device) -> None:
        """Go back to the previous track."""
        await self._send(device, "Previous")

    async def seek(self, device: Device, position: float) -> None:
        """Seek within the current track.

        Args:
            device: Group coordinator.
            position: Target position in seconds.
        """
        await self._send(
            device, "Seek", [("Unit", "REL_TIME"), ("Target", format_timestamp(position))]
        )

    async def seek_track(self, device: Device, track_number: int) -> None:
        """Jump to a 1-based queue position."""
        await self._send(device, "Seek", [("Unit", "TRACK_NR"), ("Target", str(track_number))])

    async def set_play_mode(self, device: Device, mode: PlayMode) -> None:
        """Set the repeat/shuffle mode."""
        await self._send(device, "SetPlayMode", [("NewPlayMode", mode.value)])

    # State

    async def get_transport_info(self, device: Device) -> TransportInfo:
        """Fetch position, transport state and play mode concurrently.

        If any of the three calls fails, the whole call fails.

        Returns:
            Merged transport snapshot.
        """
        position_xml, transport_xml, settings_xml = await asyncio.gather(
            self._send(device, "GetPositionInfo"),
            self._send(device, "GetTransportInfo"),
            self._send(device, "GetTransportSettings"),
        )
        return parse_transport_info(position_xml, transport_xml, settings_xml)

    # Queue

    async def get_queue(
        self, device: Device, start: int = 0, count: int = DEFAULT_PAGE_SIZE
    ) -> list[Track]:
        """Browse one page of the current queue.

        Args:
            device: Group coordinator.
            start: 0-based starting index.
            count: Maximum number of entries.

        Returns:
            Queue tracks in play order.
        """
        response = await self._soap.send(
            device.base_url,
            Service.CONTENT_DIRECTORY,
            "Browse",
            [
                ("ObjectID", QUEUE_CONTAINER),
                ("BrowseFlag", "BrowseDirectChildren"),
                ("Filter", BROWSE_FILTER),
                ("StartingIndex", start),
                ("RequestedCount", count),
                ("SortCriteria", ""),
            ],
            instance_id=None,
        )
        result = extract_value("Result", response)
        if result is None:
            return []
        return parse_didl_items(result, start=start)

    async def set_av_transport_uri(self, device: Device, uri: str, metadata: str = "") -> None:
        """Point the transport at a URI (stream, line-in, queue or group)."""
        await self._send(
            device, "SetAVTransportURI", [("CurrentURI", uri), ("CurrentURIMetaData", metadata)]
        )

    async def add_uri_to_queue(
        self, device: Device, uri: str, metadata: str = "", position: int = 0
    ) -> EnqueueResult:
        """Add a URI to the queue.

        Args:
            device: Group coordinator.
            uri: Track or container URI.
            metadata: DIDL-Lite describing the URI.
            position: 1-based queue position, or 0 to append at the end.

        Returns:
            Where the item landed and the resulting queue length.
        """
        enqueue_as_next = position != 0
        response = await self._send(
            device,
            "AddURIToQueue",
            [
                ("EnqueuedURI", uri),
                ("EnqueuedURIMetaData", metadata),
                ("DesiredFirstTrackNumberEnqueued", position),
                ("EnqueueAsNext", "1" if enqueue_as_next else "0"),
            ],
        )
        return EnqueueResult(
            first_track_number=_int("FirstTrackNumberEnqueued", response),
            new_queue_length=_int("NewQueueLength", response),
            enqueued_as_next=enqueue_as_next,
        )

    async def remove_track_from_queue(self, device: Device, track_number: int) -> None:
        """Remove the track at a 1-based queue position."""
        await self._send(
            device, "RemoveTrackFromQueue", [("ObjectID", f"{QUEUE_CONTAINER}/{track_number}")]
        )

    async def remove_all_tracks_from_queue(self, device: Device) -> None:
        """Clear the queue."""
        await self._send(device, "RemoveAllTracksFromQueue")

    async def reorder_tracks_in_queue(
        self, device: Device, starting_index: int, number_of_tracks: int, insert_before: int
    ) -> None:
        """Move a run of tracks within the queue.

        Args:
            device: Group coordinator.
            starting_index: 1-based index of the first track to move.
            number_of_tracks: How many tracks to move.
            insert_before: 1-based index to insert the run before.
        """
        await self._send(
            device,
            "ReorderTracksInQueue",
            [
                ("StartingIndex", starting_index),
                ("NumberOfTracks", number_of_tracks),
                ("InsertBefore", insert_before),
                ("UpdateID", 0),
            ],
        )

    # Sleep timer

    async def configure_sleep_timer(self, device: Device, duration: str) -> None:
        """Set the sleep timer.

        Args:
            device: Group coordinator.
            duration: "H:MM:SS", or "" to cancel.
        """
        await self._send(device, "ConfigureSleepTimer", [("NewSleepTimerDuration", duration)])

    async def get_sleep_timer_duration(self, device: Device) -> str:
        """Return the remaining sleep time as "H:MM:SS" ("" when unset)."""
        response = await self._send(device, "GetRemainingSleepTimerDuration")
        return (extract_value("RemainingSleepTimerDuration", response) or "").strip()

    # Crossfade

    async def get_crossfade_mode(self, device: Device) -> bool:
        """Return True if crossfade is enabled."""
        response = await self._send(device, "GetCrossfadeMode")
        return (extract_value("CrossfadeMode", response) or "").strip() == "1"

    async def set_crossfade_mode(self, device: Device, enabled: bool) -> None:
        """Enable or disable crossfade."""
        await self._send(device, "SetCrossfadeMode", [("CrossfadeMode", "1" if enabled else "0")])


def parse_transport_info(position_xml: str, transport_xml: str, settings_xml: str) -> TransportInfo:
    """Merge the three transport responses into a TransportInfo.

    Args:
        position_xml: GetPositionInfo response.
        transport_xml: GetTransportInfo response.
        settings_xml: GetTransportSettings response.

    Returns:
        The merged snapshot; missing values fall back to defaults.
    """
    state = PlaybackState.from_wire(extract_value("CurrentTransportState", transport_xml))
    play_mode = PlayMode.from_wire(extract_value("PlayMode", settings_xml))

    track_uri = decode_entities(extract_value("TrackURI", position_xml) or "").strip()
    metadata = extract_value("TrackMetaData", position_xml) or ""
    track = parse_track_metadata(metadata, track_uri=track_uri) or dataclasses.replace(
        EMPTY_TRACK, uri=track_uri
    )
    track = dataclasses.replace(
        track, duration=parse_duration(extract_value("TrackDuration", position_xml))
    )

    return TransportInfo(
        state=state,
        current_track=track,
        play_mode=play_mode,
        position=parse_duration(extract_value("RelTime", position_xml)),
        number_of_tracks=_int("NrTracks", position_xml),
        current_track_number=_int("Track", position_xml),
    )
