"""Data models for speakers, groups, tracks, transport and library."""

from sonosctrl.models.device import Device, DeviceCategory, category_for_model
from sonosctrl.models.group import Group
from sonosctrl.models.library import (
    FAVORITES_CONTAINER,
    PLAYLISTS_CONTAINER,
    QUEUE_CONTAINER,
    BrowsableItem,
    BrowseResult,
    LibrarySection,
)
from sonosctrl.models.subscription import Subscription
from sonosctrl.models.track import EMPTY_TRACK, Track
from sonosctrl.models.transport import (
    EnqueueResult,
    InputSource,
    PlaybackState,
    PlayMode,
    TransportInfo,
)

__all__ = [
    "EMPTY_TRACK",
    "FAVORITES_CONTAINER",
    "PLAYLISTS_CONTAINER",
    "QUEUE_CONTAINER",
    "BrowsableItem",
    "BrowseResult",
    "Device",
    "DeviceCategory",
    "EnqueueResult",
    "Group",
    "InputSource",
    "LibrarySection",
    "PlayMode",
    "PlaybackState",
    "Subscription",
    "Track",
    "TransportInfo",
    "category_for_model",
]
