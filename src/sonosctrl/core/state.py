"""Central state store with Qt signals for reactive UI updates.

The StateStore holds everything the coordinator knows about the household
and emits Qt signals when it changes. Only the Coordinator writes to it;
presentation code connects to the signals or reads a snapshot().

Signals may be emitted from the worker thread; Qt delivers them to
receivers in other threads through queued connections.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from PySide6.QtCore import QObject, Signal

from sonosctrl.models.device import Device
from sonosctrl.models.group import Group
from sonosctrl.models.library import BrowseResult
from sonosctrl.models.track import Track
from sonosctrl.models.transport import TransportInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CoordinatorSnapshot:
    """Immutable copy of the store at one point in time."""

    devices: tuple[Device, ...] = ()
    groups: tuple[Group, ...] = ()
    selected_group: Group | None = None
    transport: TransportInfo = field(default_factory=TransportInfo)
    queue: tuple[Track, ...] = ()
    volume: int = 0
    muted: bool = False
    bass: int = 0
    treble: int = 0
    crossfade: bool = False
    sleep_timer_end: float | None = None
    discovering: bool = False
    library: BrowseResult | None = None
    last_message: str = ""


class StateStore(QObject):
    """Central state store emitting Qt signals on changes.

    Every setter compares against the current value and emits only when
    something actually changed.

    Example:
        state = StateStore()
        state.groups_changed.connect(lambda groups: print(f"Groups: {groups}"))
        state.message_posted.connect(print)
    """

    devices_changed = Signal(object)  # list[Device]
    groups_changed = Signal(object)  # list[Group]
    selection_changed = Signal(object)  # Group | None
    transport_changed = Signal(object)  # TransportInfo
    queue_changed = Signal(object)  # list[Track]
    volume_changed = Signal(int, bool)  # volume, muted
    eq_changed = Signal(int, int)  # bass, treble
    crossfade_changed = Signal(bool)
    sleep_timer_changed = Signal(object)  # end time (float) or None
    discovering_changed = Signal(bool)
    library_changed = Signal(object)  # BrowseResult | None
    message_posted = Signal(str)

    def __init__(self) -> None:
        """Initialize the state store with empty state."""
        super().__init__()
        self._devices: dict[str, Device] = {}
        self._groups: dict[str, Group] = {}
        self._selected_id: str | None = None
        self._transport = TransportInfo()
        self._queue: list[Track] = []
        self._volume = 0
        self._muted = False
        self._bass = 0
        self._treble = 0
        self._crossfade = False
        self._sleep_timer_end: float | None = None
        self._discovering = False
        self._library: BrowseResult | None = None
        self._last_message = ""
        # List caches to avoid repeated list() conversions
        self._devices_cache: list[Device] | None = None
        self._groups_cache: list[Group] | None = None

    @staticmethod
    def _dict_changed(old: Mapping[str, object], new: Mapping[str, object]) -> bool:
        """Check if a dictionary changed, comparing keys before values."""
        if old.keys() != new.keys():
            return True
        return any(old[k] != new[k] for k in new)

    # -- Devices ----------------------------------------------------------------

    @property
    def devices(self) -> list[Device]:
        """Return all known devices (cached)."""
        if self._devices_cache is None:
            self._devices_cache = list(self._devices.values())
        return self._devices_cache

    @property
    def device_map(self) -> dict[str, Device]:
        """Return a copy of the known devices keyed by ID."""
        return dict(self._devices)

    def get_device(self, device_id: str) -> Device | None:
        """Get a device by ID."""
        return self._devices.get(device_id)

    def find_device_by_host(self, host: str) -> Device | None:
        """Get a device by host address."""
        for device in self._devices.values():
            if device.host == host:
                return device
        return None

    def add_device(self, device: Device) -> bool:
        """Add or replace a device.

        Returns:
            True if the device set changed.
        """
        if self._devices.get(device.id) == device:
            return False
        self._devices[device.id] = device
        self._devices_cache = None
        self.devices_changed.emit(self.devices)
        return True

    def set_devices(self, devices: Mapping[str, Device]) -> None:
        """Replace the known device set."""
        if not self._dict_changed(self._devices, devices):
            return
        self._devices = dict(devices)
        self._devices_cache = None
        self.devices_changed.emit(self.devices)

    # -- Groups and selection ----------------------------------------------------

    @property
    def groups(self) -> list[Group]:
        """Return all groups in topology order (cached)."""
        if self._groups_cache is None:
            self._groups_cache = list(self._groups.values())
        return self._groups_cache

    def get_group(self, group_id: str) -> Group | None:
        """Get a group by ID (coordinator device ID)."""
        return self._groups.get(group_id)

    def get_group_for_device(self, device_id: str) -> Group | None:
        """Find the group that contains a device."""
        for group in self._groups.values():
            if group.contains(device_id):
                return group
        return None

    def set_groups(self, groups: list[Group]) -> None:
        """Replace all groups.

        If the selected group is still present, the selection is kept and
        re-announced when its record changed. If it disappeared, the
        selection is cleared.
        """
        new_groups = {g.id: g for g in groups}
        changed = self._dict_changed(self._groups, new_groups) or list(
            self._groups
        ) != list(new_groups)
        if not changed:
            return

        old_selected = self.selected_group
        self._groups = new_groups
        self._groups_cache = None
        self.groups_changed.emit(self.groups)

        if self._selected_id is None:
            return
        new_selected = self._groups.get(self._selected_id)
        if new_selected is None:
            self._selected_id = None
            self.selection_changed.emit(None)
        elif new_selected != old_selected:
            self.selection_changed.emit(new_selected)

    def update_group(self, group: Group) -> None:
        """Replace one group record in place."""
        if group.id not in self._groups or self._groups[group.id] == group:
            return
        self._groups[group.id] = group
        self._groups_cache = None
        self.groups_changed.emit(self.groups)
        if group.id == self._selected_id:
            self.selection_changed.emit(group)

    @property
    def selected_group(self) -> Group | None:
        """Return the selected group, or None."""
        if self._selected_id is None:
            return None
        return self._groups.get(self._selected_id)

    @property
    def selected_group_id(self) -> str | None:
        """Return the selected group ID, or None."""
        return self._selected_id

    def select_group(self, group_id: str | None) -> bool:
        """Select a group by ID.

        Returns:
            True if the selection changed.
        """
        if group_id is not None and group_id not in self._groups:
            logger.debug("Cannot select unknown group %s", group_id)
            return False
        if group_id == self._selected_id:
            return False
        self._selected_id = group_id
        self.selection_changed.emit(self.selected_group)
        return True

    # -- Transport -----------------------------------------------------------------

    @property
    def transport(self) -> TransportInfo:
        """Return the current transport snapshot."""
        return self._transport

    def set_transport(self, info: TransportInfo) -> None:
        """Replace the transport snapshot."""
        if info == self._transport:
            return
        self._transport = info
        self.transport_changed.emit(info)

    def update_transport(self, **changes: object) -> TransportInfo:
        """Apply field changes to the transport snapshot.

        Returns:
            The previous snapshot, for reverting.
        """
        previous = self._transport
        self.set_transport(replace(previous, **changes))  # type: ignore[arg-type]
        return previous

    # -- Queue ---------------------------------------------------------------------

    @property
    def queue(self) -> list[Track]:
        """Return a copy of the current queue."""
        return list(self._queue)

    def set_queue(self, tracks: list[Track]) -> None:
        """Replace the queue."""
        if tracks == self._queue:
            return
        self._queue = list(tracks)
        self.queue_changed.emit(self.queue)

    # -- Rendering -------------------------------------------------------------------

    @property
    def volume(self) -> int:
        """Return the selected group's volume."""
        return self._volume

    @property
    def muted(self) -> bool:
        """Return the selected group's mute state."""
        return self._muted

    def set_volume(self, volume: int, muted: bool | None = None) -> None:
        """Set the selected group's volume (and optionally mute)."""
        new_muted = self._muted if muted is None else muted
        if volume == self._volume and new_muted == self._muted:
            return
        self._volume = volume
        self._muted = new_muted
        self.volume_changed.emit(volume, new_muted)

    def set_muted(self, muted: bool) -> None:
        """Set the selected group's mute state."""
        self.set_volume(self._volume, muted)

    @property
    def bass(self) -> int:
        """Return the coordinator's bass level."""
        return self._bass

    @property
    def treble(self) -> int:
        """Return the coordinator's treble level."""
        return self._treble

    def set_eq(self, bass: int | None = None, treble: int | None = None) -> None:
        """Set bass and/or treble."""
        new_bass = self._bass if bass is None else bass
        new_treble = self._treble if treble is None else treble
        if new_bass == self._bass and new_treble == self._treble:
            return
        self._bass = new_bass
        self._treble = new_treble
        self.eq_changed.emit(new_bass, new_treble)

    @property
    def crossfade(self) -> bool:
        """Return True if crossfade is on."""
        return self._crossfade

    def set_crossfade(self, enabled: bool) -> None:
        """Set the crossfade flag."""
        if enabled == self._crossfade:
            return
        self._crossfade = enabled
        self.crossfade_changed.emit(enabled)

    # -- Sleep timer -------------------------------------------------------------------

    @property
    def sleep_timer_end(self) -> float | None:
        """Return the sleep timer's wall-clock end time, or None."""
        return self._sleep_timer_end

    def set_sleep_timer_end(self, end: float | None) -> None:
        """Set or clear the sleep timer end time."""
        if end == self._sleep_timer_end:
            return
        self._sleep_timer_end = end
        self.sleep_timer_changed.emit(end)

    # -- Discovery, library and messages ---------------------------------------------------

    @property
    def discovering(self) -> bool:
        """Return True while a discovery round is running."""
        return self._discovering

    def set_discovering(self, discovering: bool) -> None:
        """Set the discovering flag."""
        if discovering == self._discovering:
            return
        self._discovering = discovering
        self.discovering_changed.emit(discovering)

    @property
    def library(self) -> BrowseResult | None:
        """Return the current library listing."""
        return self._library

    def set_library(self, result: BrowseResult | None) -> None:
        """Replace the library listing."""
        if result == self._library:
            return
        self._library = result
        self.library_changed.emit(result)

    @property
    def last_message(self) -> str:
        """Return the most recent user-facing message."""
        return self._last_message

    def post_message(self, message: str) -> None:
        """Publish a user-facing message (always emitted)."""
        self._last_message = message
        self.message_posted.emit(message)

    # -- Whole store ----------------------------------------------------------------------

    def snapshot(self) -> CoordinatorSnapshot:
        """Return an immutable copy of the current state."""
        return CoordinatorSnapshot(
            devices=tuple(self.devices),
            groups=tuple(self.groups),
            selected_group=self.selected_group,
            transport=self._transport,
            queue=tuple(self._queue),
            volume=self._volume,
            muted=self._muted,
            bass=self._bass,
            treble=self._treble,
            crossfade=self._crossfade,
            sleep_timer_end=self._sleep_timer_end,
            discovering=self._discovering,
            library=self._library,
            last_message=self._last_message,
        )

    def clear_selection_state(self) -> None:
        """Reset per-selection state (transport, queue, rendering, timer)."""
        self.set_transport(TransportInfo())
        self.set_queue([])
        self.set_volume(0, False)
        self.set_eq(0, 0)
        self.set_crossfade(False)
        self.set_sleep_timer_end(None)

    def clear(self) -> None:
        """Clear all state (app reset)."""
        self.select_group(None)
        self.set_groups([])
        self.set_devices({})
        self.clear_selection_state()
        self.set_library(None)
        self.set_discovering(False)
