"""Tests for StateStore with Qt signals."""

import dataclasses

from pytestqt.qtbot import QtBot

from conftest import BEDROOM, KITCHEN, LIVING_ROOM
from sonosctrl.core.state import CoordinatorSnapshot, StateStore
from sonosctrl.models.group import Group
from sonosctrl.models.library import BrowseResult
from sonosctrl.models.track import Track
from sonosctrl.models.transport import PlaybackState, TransportInfo


def sample_groups() -> list[Group]:
    """Return two groups: Living Room + Kitchen, and Bedroom alone."""
    return [
        Group(coordinator=LIVING_ROOM, members=[LIVING_ROOM, KITCHEN], volume=30),
        Group(coordinator=BEDROOM, members=[BEDROOM], volume=12),
    ]


class TestStateStoreBasics:
    """Test initial state and lookups."""

    def test_initial_state(self, state: StateStore) -> None:
        """Test that a new store is empty."""
        assert state.devices == []
        assert state.groups == []
        assert state.selected_group is None
        assert state.transport == TransportInfo()
        assert state.queue == []
        assert state.sleep_timer_end is None
        assert not state.discovering

    def test_device_lookups(self, state: StateStore) -> None:
        """Test device lookup by ID and by host."""
        state.set_devices({d.id: d for d in (LIVING_ROOM, KITCHEN)})

        assert state.get_device(KITCHEN.id) == KITCHEN
        assert state.find_device_by_host("192.168.1.20") == LIVING_ROOM
        assert state.find_device_by_host("192.168.1.99") is None
        assert state.device_map == {LIVING_ROOM.id: LIVING_ROOM, KITCHEN.id: KITCHEN}

    def test_add_device_reports_change(self, state: StateStore) -> None:
        """Test add_device returns False for an identical record."""
        assert state.add_device(LIVING_ROOM) is True
        assert state.add_device(LIVING_ROOM) is False
        assert state.add_device(dataclasses.replace(LIVING_ROOM, room_name="Den")) is True
        assert state.get_device(LIVING_ROOM.id).room_name == "Den"  # type: ignore[union-attr]

    def test_group_lookups(self, state: StateStore) -> None:
        """Test group lookup by ID and by member."""
        state.set_groups(sample_groups())

        assert state.get_group(BEDROOM.id).member_count == 1  # type: ignore[union-attr]
        assert state.get_group_for_device(KITCHEN.id).id == LIVING_ROOM.id  # type: ignore[union-attr]
        assert state.get_group_for_device("RINCON_UNKNOWN") is None


class TestStateStoreSelection:
    """Test group selection across topology changes."""

    def test_select_unknown_group(self, state: StateStore) -> None:
        """Test selecting a group that does not exist is refused."""
        assert state.select_group("RINCON_UNKNOWN") is False
        assert state.selected_group_id is None

    def test_select_group_emits(self, state: StateStore, qtbot: QtBot) -> None:
        """Test selection_changed carries the selected group."""
        state.set_groups(sample_groups())

        with qtbot.wait_signal(state.selection_changed, timeout=100) as blocker:
            assert state.select_group(BEDROOM.id) is True

        assert blocker.args == [state.get_group(BEDROOM.id)]
        assert state.select_group(BEDROOM.id) is False

    def test_selection_kept_when_group_survives(self, state: StateStore, qtbot: QtBot) -> None:
        """Test the selection survives a refresh that changes its record."""
        state.set_groups(sample_groups())
        state.select_group(LIVING_ROOM.id)
        regrouped = [
            Group(coordinator=LIVING_ROOM, members=[LIVING_ROOM], volume=30),
            Group(coordinator=BEDROOM, members=[BEDROOM, KITCHEN], volume=12),
        ]

        with qtbot.wait_signal(state.selection_changed, timeout=100) as blocker:
            state.set_groups(regrouped)

        assert state.selected_group_id == LIVING_ROOM.id
        assert blocker.args[0].member_ids == [LIVING_ROOM.id]

    def test_selection_cleared_when_group_vanishes(
        self, state: StateStore, qtbot: QtBot
    ) -> None:
        """Test the selection is cleared when its coordinator disappears."""
        state.set_groups(sample_groups())
        state.select_group(BEDROOM.id)

        with qtbot.wait_signal(state.selection_changed, timeout=100) as blocker:
            state.set_groups(
                [Group(coordinator=LIVING_ROOM, members=[LIVING_ROOM, KITCHEN, BEDROOM])]
            )

        assert blocker.args == [None]
        assert state.selected_group is None

    def test_identical_groups_do_not_emit(self, state: StateStore, qtbot: QtBot) -> None:
        """Test setting the same groups twice emits once."""
        state.set_groups(sample_groups())

        with qtbot.assert_not_emitted(state.groups_changed):
            state.set_groups(sample_groups())

    def test_group_order_change_emits(self, state: StateStore, qtbot: QtBot) -> None:
        """Test a pure reordering still counts as a change."""
        state.set_groups(sample_groups())

        with qtbot.wait_signal(state.groups_changed, timeout=100):
            state.set_groups(list(reversed(sample_groups())))

        assert [g.id for g in state.groups] == [BEDROOM.id, LIVING_ROOM.id]

    def test_update_group(self, state: StateStore, qtbot: QtBot) -> None:
        """Test replacing one group record re-announces the selection."""
        state.set_groups(sample_groups())
        state.select_group(LIVING_ROOM.id)
        updated = dataclasses.replace(state.get_group(LIVING_ROOM.id), volume=55)  # type: ignore[type-var]

        with qtbot.wait_signal(state.selection_changed, timeout=100) as blocker:
            state.update_group(updated)

        assert blocker.args == [updated]
        assert state.groups[0].volume == 55

    def test_update_unknown_group_is_ignored(self, state: StateStore, qtbot: QtBot) -> None:
        """Test update_group never adds groups."""
        with qtbot.assert_not_emitted(state.groups_changed):
            state.update_group(Group(coordinator=KITCHEN, members=[KITCHEN]))
        assert state.groups == []


class TestStateStoreTransport:
    """Test transport, queue and rendering state."""

    def test_update_transport_returns_previous(self, state: StateStore, qtbot: QtBot) -> None:
        """Test update_transport hands back the snapshot it replaced."""
        with qtbot.wait_signal(state.transport_changed, timeout=100) as blocker:
            previous = state.update_transport(state=PlaybackState.PLAYING, position=12.0)

        assert previous == TransportInfo()
        assert blocker.args[0].state == PlaybackState.PLAYING
        assert state.transport.position == 12.0

    def test_same_transport_does_not_emit(self, state: StateStore, qtbot: QtBot) -> None:
        """Test unchanged transport emits nothing."""
        with qtbot.assert_not_emitted(state.transport_changed):
            state.set_transport(TransportInfo())

    def test_queue_is_copied(self, state: StateStore) -> None:
        """Test callers cannot mutate the stored queue."""
        tracks = [Track(title="A"), Track(title="B")]
        state.set_queue(tracks)
        state.queue.append(Track(title="C"))
        tracks.append(Track(title="D"))

        assert [t.title for t in state.queue] == ["A", "B"]

    def test_volume_and_mute(self, state: StateStore, qtbot: QtBot) -> None:
        """Test volume_changed carries both values."""
        with qtbot.wait_signal(state.volume_changed, timeout=100) as blocker:
            state.set_volume(40)
        assert blocker.args == [40, False]

        with qtbot.wait_signal(state.volume_changed, timeout=100) as blocker:
            state.set_muted(True)
        assert blocker.args == [40, True]

        with qtbot.assert_not_emitted(state.volume_changed):
            state.set_volume(40, True)

    def test_eq_partial_update(self, state: StateStore, qtbot: QtBot) -> None:
        """Test set_eq keeps the value that was not given."""
        state.set_eq(bass=3, treble=-2)

        with qtbot.wait_signal(state.eq_changed, timeout=100) as blocker:
            state.set_eq(treble=5)

        assert blocker.args == [3, 5]

    def test_crossfade_and_sleep_timer(self, state: StateStore, qtbot: QtBot) -> None:
        """Test crossfade and sleep timer setters emit on change."""
        with qtbot.wait_signal(state.crossfade_changed, timeout=100):
            state.set_crossfade(True)
        with qtbot.wait_signal(state.sleep_timer_changed, timeout=100) as blocker:
            state.set_sleep_timer_end(1000.0)

        assert blocker.args == [1000.0]
        assert state.crossfade


class TestStateStoreMisc:
    """Test messages, snapshots and clearing."""

    def test_post_message_always_emits(self, state: StateStore, qtbot: QtBot) -> None:
        """Test identical messages are delivered each time."""
        state.post_message("Play failed")

        with qtbot.wait_signal(state.message_posted, timeout=100) as blocker:
            state.post_message("Play failed")

        assert blocker.args == ["Play failed"]
        assert state.last_message == "Play failed"

    def test_snapshot(self, state: StateStore) -> None:
        """Test snapshot copies every field."""
        state.set_devices({LIVING_ROOM.id: LIVING_ROOM})
        state.set_groups(sample_groups())
        state.select_group(LIVING_ROOM.id)
        state.set_queue([Track(title="A")])
        state.set_volume(25, True)
        state.set_library(BrowseResult(object_id="A:ALBUM"))
        state.set_discovering(True)

        snapshot = state.snapshot()

        assert isinstance(snapshot, CoordinatorSnapshot)
        assert snapshot.devices == (LIVING_ROOM,)
        assert snapshot.selected_group == state.get_group(LIVING_ROOM.id)
        assert snapshot.queue == (Track(title="A"),)
        assert (snapshot.volume, snapshot.muted) == (25, True)
        assert snapshot.library == BrowseResult(object_id="A:ALBUM")
        assert snapshot.discovering

    def test_clear_selection_state(self, state: StateStore) -> None:
        """Test per-selection state is reset but topology is kept."""
        state.set_groups(sample_groups())
        state.update_transport(state=PlaybackState.PLAYING)
        state.set_queue([Track(title="A")])
        state.set_volume(50, True)
        state.set_sleep_timer_end(99.0)

        state.clear_selection_state()

        assert state.transport == TransportInfo()
        assert state.queue == []
        assert (state.volume, state.muted) == (0, False)
        assert state.sleep_timer_end is None
        assert len(state.groups) == 2

    def test_clear(self, state: StateStore, qtbot: QtBot) -> None:
        """Test clear empties everything."""
        state.set_devices({LIVING_ROOM.id: LIVING_ROOM})
        state.set_groups(sample_groups())
        state.select_group(LIVING_ROOM.id)
        state.set_discovering(True)

        with qtbot.wait_signal(state.groups_changed, timeout=100):
            state.clear()

        assert state.devices == []
        assert state.groups == []
        assert state.selected_group is None
        assert not state.discovering
