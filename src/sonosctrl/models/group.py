"""Group model for speakers playing in sync."""

from dataclasses import dataclass, field

from sonosctrl.models.device import Device


@dataclass(frozen=True, slots=True)
class Group:
    """A zone group: one coordinator plus its members.

    Groups are rebuilt wholesale on every topology refresh, so instances
    are never patched in place.

    Attributes:
        coordinator: Device that accepts playback commands for the group.
        members: Member devices in topology order, coordinator included.
        volume: Group volume 0-100.
        muted: Whether the group is muted.
    """

    coordinator: Device
    members: list[Device] = field(default_factory=list)
    volume: int = 0
    muted: bool = False

    @property
    def id(self) -> str:
        """Group identity is the coordinator's device ID."""
        return self.coordinator.id

    @property
    def member_ids(self) -> list[str]:
        """Return member device IDs in order."""
        return [m.id for m in self.members]

    @property
    def member_count(self) -> int:
        """Return the number of members."""
        return len(self.members)

    @property
    def is_singleton(self) -> bool:
        """Return True if the coordinator plays alone."""
        return len(self.members) <= 1

    @property
    def display_name(self) -> str:
        """Return the coordinator room name followed by the other members."""
        if self.is_singleton:
            return self.coordinator.room_name
        others = [m.room_name for m in self.members if m.id != self.coordinator.id]
        return " + ".join([self.coordinator.room_name, *others])

    def contains(self, device_id: str) -> bool:
        """Return True if the device is a member of this group."""
        return any(m.id == device_id for m in self.members)
