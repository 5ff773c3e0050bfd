"""Rendering control: volume, mute and EQ."""

from sonosctrl.api.soap import Service, SoapClient
from sonosctrl.api.xmlscan import extract_value
from sonosctrl.models.device import Device

MASTER = "Master"

VOLUME_MIN = 0
VOLUME_MAX = 100
EQ_MIN = -10
EQ_MAX = 10


def clamp(value: int, low: int, high: int) -> int:
    """Clamp value to [low, high]."""
    return max(low, min(high, int(value)))


def _int_value(tag: str, xml: str) -> int:
    value = extract_value(tag, xml)
    try:
        return int(value.strip()) if value else 0
    except ValueError:
        return 0


def _bool_value(tag: str, xml: str) -> bool:
    value = extract_value(tag, xml)
    return bool(value) and value.strip() == "1"


class RenderingService:
    """Stateless wrappers around RenderingControl and GroupRenderingControl.

    Per-device actions target the member itself; group actions must be sent
    to the group coordinator. Values are clamped before sending, and
    missing response values read as 0 / False.
    """

    def __init__(self, soap: SoapClient) -> None:
        """Initialize the service.

        Args:
            soap: Shared SOAP client.
        """
        self._soap = soap

    async def _render(self, device: Device, action: str, args: list[tuple[str, object]]) -> str:
        return await self._soap.send(device.base_url, Service.RENDERING_CONTROL, action, args)

    async def _group(self, device: Device, action: str, args: list[tuple[str, object]]) -> str:
        return await self._soap.send(device.base_url, Service.GROUP_RENDERING_CONTROL, action, args)

    # Volume

    async def get_volume(self, device: Device, channel: str = MASTER) -> int:
        """Return the device volume (0-100)."""
        xml = await self._render(device, "GetVolume", [("Channel", channel)])
        return _int_value("CurrentVolume", xml)

    async def set_volume(self, device: Device, volume: int, channel: str = MASTER) -> None:
        """Set the device volume, clamped to 0-100."""
        await self._render(
            device,
            "SetVolume",
            [("Channel", channel), ("DesiredVolume", clamp(volume, VOLUME_MIN, VOLUME_MAX))],
        )

    async def set_relative_volume(
        self, device: Device, adjustment: int, channel: str = MASTER
    ) -> int:
        """Adjust the device volume by a signed step.

        Returns:
            The new volume reported by the device.
        """
        xml = await self._render(
            device, "SetRelativeVolume", [("Channel", channel), ("Adjustment", int(adjustment))]
        )
        return _int_value("NewVolume", xml)

    # Mute

    async def get_mute(self, device: Device, channel: str = MASTER) -> bool:
        """Return True if the device is muted."""
        xml = await self._render(device, "GetMute", [("Channel", channel)])
        return _bool_value("CurrentMute", xml)

    async def set_mute(self, device: Device, muted: bool, channel: str = MASTER) -> None:
        """Mute or unmute the device."""
        await self._render(
            device, "SetMute", [("Channel", channel), ("DesiredMute", "1" if muted else "0")]
        )

    # EQ

    async def get_bass(self, device: Device) -> int:
        """Return the bass level (-10..10)."""
        return _int_value("CurrentBass", await self._render(device, "GetBass", []))

    async def set_bass(self, device: Device, level: int) -> None:
        """Set the bass level, clamped to -10..10."""
        await self._render(device, "SetBass", [("DesiredBass", clamp(level, EQ_MIN, EQ_MAX))])

    async def get_treble(self, device: Device) -> int:
        """Return the treble level (-10..10)."""
        return _int_value("CurrentTreble", await self._render(device, "GetTreble", []))

    async def set_treble(self, device: Device, level: int) -> None:
        """Set the treble level, clamped to -10..10."""
        await self._render(
            device, "SetTreble", [("DesiredTreble", clamp(level, EQ_MIN, EQ_MAX))]
        )

    # Group

    async def get_group_volume(self, coordinator: Device) -> int:
        """Return the group volume via its coordinator."""
        return _int_value("CurrentVolume", await self._group(coordinator, "GetGroupVolume", []))

    async def set_group_volume(self, coordinator: Device, volume: int) -> None:
        """Set the group volume via its coordinator, clamped to 0-100."""
        await self._group(
            coordinator,
            "SetGroupVolume",
            [("DesiredVolume", clamp(volume, VOLUME_MIN, VOLUME_MAX))],
        )

    async def get_group_mute(self, coordinator: Device) -> bool:
        """Return True if the group is muted."""
        return _bool_value("CurrentMute", await self._group(coordinator, "GetGroupMute", []))

    async def set_group_mute(self, coordinator: Device, muted: bool) -> None:
        """Mute or unmute the whole group."""
        await self._group(coordinator, "SetGroupMute", [("DesiredMute", "1" if muted else "0")])
