"""Device model representing a single networked speaker."""

from dataclasses import dataclass
from enum import Enum

DEFAULT_PORT = 1400


class DeviceCategory(str, Enum):
    """Coarse hardware category derived from the model name."""

    SUBWOOFER = "subwoofer"
    SOUNDBAR = "soundbar"
    PORTABLE = "portable"
    COMPACT = "compact"
    LARGE = "large"
    COMPONENT = "component"
    SPEAKER = "speaker"


def category_for_model(model_name: str) -> DeviceCategory:
    """Map a model name to a device category.

    Matching is a case-insensitive substring test, first match wins.

    Args:
        model_name: Model name as reported in the device description.

    Returns:
        The matching category, or SPEAKER when nothing matches.
    """
    lower = model_name.lower()
    if "sub" in lower:
        return DeviceCategory.SUBWOOFER
    if any(name in lower for name in ("beam", "arc", "ray", "playbar", "playbase")):
        return DeviceCategory.SOUNDBAR
    if "move" in lower or "roam" in lower:
        return DeviceCategory.PORTABLE
    if "one" in lower or "play:1" in lower:
        return DeviceCategory.COMPACT
    if "five" in lower or "play:5" in lower:
        return DeviceCategory.LARGE
    if any(name in lower for name in ("port", "amp", "connect")):
        return DeviceCategory.COMPONENT
    return DeviceCategory.SPEAKER


@dataclass(frozen=True, slots=True)
class Device:
    """A speaker on the local network.

    Attributes:
        id: Stable identifier from the UDN, without the "uuid:" prefix.
        host: IP address or hostname.
        port: HTTP port of the device (usually 1400).
        room_name: Display name (room or friendly name).
        model_name: Marketing model name.
        model_number: Model number string.
        software_version: Firmware version string.
        hardware_version: Hardware revision string.
        category: Category derived from the model name.
        is_coordinator: Whether this device currently coordinates a group.
    """

    id: str
    host: str
    port: int = DEFAULT_PORT
    room_name: str = "Unknown Room"
    model_name: str = ""
    model_number: str = ""
    software_version: str = ""
    hardware_version: str = ""
    category: DeviceCategory = DeviceCategory.SPEAKER
    is_coordinator: bool = False

    @property
    def base_url(self) -> str:
        """Return the HTTP base URL (no trailing slash)."""
        return f"http://{self.host}:{self.port}"

    @property
    def address(self) -> str:
        """Return host:port."""
        return f"{self.host}:{self.port}"

    @property
    def display_name(self) -> str:
        """Return room name or host as fallback for display."""
        return self.room_name or self.host
