"""Coordinator: discovery, topology, polling and user commands.

The Coordinator is the single owner of household state. It runs on one
asyncio loop; protocol calls are awaited concurrently, but every write to
the StateStore happens on that loop, so no two completions interleave.

Lifecycle::

    Idle --start_discovery()--> Discovering --window expires--> Idle + Polling

Background failures (discovery, polling) are logged and ignored. Failed
user commands post one message through StateStore.post_message().
"""

import asyncio
import dataclasses
import logging
import time
from collections.abc import Awaitable, Callable, Coroutine
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Literal

from sonosctrl.api.catalog import CatalogBridge, CatalogItem, MusicServiceBridge
from sonosctrl.api.description import DeviceDescriptionResolver
from sonosctrl.api.events import EventPath, EventSubscriptionService
from sonosctrl.api.library import MusicLibraryService
from sonosctrl.api.rendering import EQ_MAX, EQ_MIN, RenderingService, clamp
from sonosctrl.api.soap import SoapClient, SoapError
from sonosctrl.api.transport import TransportService
from sonosctrl.api.zone import ZoneService, parse_groups
from sonosctrl.core.discovery import DiscoveredDevice, SSDPDiscovery
from sonosctrl.core.scanner import SubnetScanner
from sonosctrl.core.sleep_timer import SleepTimer
from sonosctrl.core.state import StateStore
from sonosctrl.models.device import DEFAULT_PORT, Device
from sonosctrl.models.group import Group
from sonosctrl.models.library import BrowsableItem, BrowseResult
from sonosctrl.models.transport import EnqueueResult, PlaybackState, PlayMode

logger = logging.getLogger(__name__)

CatalogKind = Literal["track", "album", "playlist"]


@dataclass(frozen=True, slots=True)
class CoordinatorSettings:
    """Timing and behaviour knobs for the Coordinator.

    Attributes:
        discovery_window: Seconds discovery runs before polling starts.
        poll_interval: Seconds between transport refreshes.
        tick_interval: Seconds between local position updates.
        settle_delay: Wait after next/previous/track jumps before refreshing.
        regroup_delay: Wait after group/ungroup before refetching topology.
        max_volume: Ceiling applied to volume setters.
        revert_failed_commands: Revert every failed optimistic update, not
            only mute and crossfade.
        subnet_scan_fallback: Probe the local /24 if SSDP found nothing.
        manual_hosts: (host, port) pairs added on every discovery.
        renewal_margin: Renew event subscriptions this many seconds early.
    """

    discovery_window: float = 5.0
    poll_interval: float = 3.0
    tick_interval: float = 1.0
    settle_delay: float = 0.3
    regroup_delay: float = 0.5
    max_volume: int = 100
    revert_failed_commands: bool = False
    subnet_scan_fallback: bool = True
    manual_hosts: tuple[tuple[str, int], ...] = ()
    renewal_margin: float = 60.0


class Coordinator:
    """Orchestrates services and owns all household state.

    Example:
        state = StateStore()
        coordinator = Coordinator(state)
        await coordinator.start_discovery()
        ...
        await coordinator.play()
        await coordinator.shutdown()
    """

    def __init__(
        self,
        state: StateStore,
        settings: CoordinatorSettings | None = None,
        *,
        soap: SoapClient | None = None,
        zone: ZoneService | None = None,
        rendering: RenderingService | None = None,
        transport: TransportService | None = None,
        library: MusicLibraryService | None = None,
        resolver: DeviceDescriptionResolver | None = None,
        discovery: SSDPDiscovery | None = None,
        scanner: SubnetScanner | None = None,
        events: EventSubscriptionService | None = None,
        catalog: CatalogBridge | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            state: Store that receives every state change.
            settings: Timing and behaviour settings.
            soap: Shared SOAP client for the service facades.
            zone: Topology service.
            rendering: Volume/EQ service.
            transport: AVTransport service.
            library: ContentDirectory service.
            resolver: Device description resolver.
            discovery: SSDP engine.
            scanner: Subnet scan fallback.
            events: Event subscription table.
            catalog: Bridge for external catalog items.
        """
        self._state = state
        self._settings = settings or CoordinatorSettings()
        self._soap = soap or SoapClient()
        self._zone = zone or ZoneService(self._soap)
        self._rendering = rendering or RenderingService(self._soap)
        self._transport = transport or TransportService(self._soap)
        self._library = library or MusicLibraryService(self._soap)
        self._resolver = resolver or DeviceDescriptionResolver()
        self._discovery = discovery or SSDPDiscovery()
        self._scanner = scanner or SubnetScanner()
        self._events = events or EventSubscriptionService()
        self._catalog = catalog or MusicServiceBridge()

        self._sleep_timer = SleepTimer()
        self._known_hosts: set[str] = set()
        self._resolving: set[asyncio.Task[None]] = set()
        self._discovery_task: asyncio.Task[None] | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._tick_task: asyncio.Task[None] | None = None
        self._last_tick = time.monotonic()

    @property
    def state(self) -> StateStore:
        """Return the state store."""
        return self._state

    @property
    def settings(self) -> CoordinatorSettings:
        """Return the active settings."""
        return self._settings

    @property
    def is_polling(self) -> bool:
        """Return True while the poll loops run."""
        return self._poll_task is not None and not self._poll_task.done()

    # -- Helpers ------------------------------------------------------------------

    def _selected(self) -> Group | None:
        return self._state.selected_group

    def _is_current(self, group_id: str) -> bool:
        """Return True if group_id is still the selection (stale-result guard)."""
        return self._state.selected_group_id == group_id

    def _patch_group(self, group_id: str, **changes: Any) -> None:
        """Apply field changes to the stored record of a group, if it still exists."""
        current = self._state.get_group(group_id)
        if current is not None:
            self._state.update_group(dataclasses.replace(current, **changes))

    async def _command(
        self,
        label: str,
        call: Awaitable[Any],
        revert: Callable[[], None] | None = None,
        always_revert: bool = False,
    ) -> bool:
        """Await a user command, reporting failure as a message.

        Args:
            label: Human-readable action name.
            call: The protocol call.
            revert: Undo for the optimistic update, if any.
            always_revert: Revert even when reverting is not enabled.

        Returns:
            True on success.
        """
        try:
            await call
        except SoapError as e:
            logger.warning("%s failed: %s", label, e)
            if revert is not None and (always_revert or self._settings.revert_failed_commands):
                revert()
            self._state.post_message(f"{label} failed: {e}")
            return False
        return True

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro)
        self._resolving.add(task)
        task.add_done_callback(self._resolving.discard)
        return task

    # -- Discovery -----------------------------------------------------------------

    async def start_discovery(self) -> None:
        """Start a discovery round.

        Clears the host dedup set, cancels all timers, runs SSDP for the
        discovery window, then refreshes topology once and starts polling.
        """
        await self._cancel_timers()
        await asyncio.to_thread(self._discovery.stop)
        self._known_hosts.clear()
        self._state.set_discovering(True)

        loop = asyncio.get_running_loop()

        def on_found(found: DiscoveredDevice) -> None:
            # Called from the discovery thread
            loop.call_soon_threadsafe(self.handle_discovered, found.host, found.port)

        self._discovery.search(on_found)
        for host, port in self._settings.manual_hosts:
            self.handle_discovered(host, port)

        self._discovery_task = loop.create_task(self._finish_discovery())

    async def _finish_discovery(self) -> None:
        await asyncio.sleep(self._settings.discovery_window)
        await asyncio.to_thread(self._discovery.stop)
        await self._drain_resolving()

        if not self._state.devices and self._settings.subnet_scan_fallback:
            logger.info("No speakers answered SSDP, scanning subnet")
            try:
                await self._scanner.scan(self.handle_discovered)
            except Exception:
                logger.exception("Subnet scan failed")
            await self._drain_resolving()

        self._state.set_discovering(False)
        await self.refresh_groups()
        self.start_polling()

    async def _drain_resolving(self) -> None:
        if self._resolving:
            await asyncio.gather(*list(self._resolving), return_exceptions=True)

    def handle_discovered(self, host: str, port: int = DEFAULT_PORT) -> None:
        """Resolve a discovered host unless it was already seen this round."""
        if host in self._known_hosts:
            return
        self._known_hosts.add(host)
        self._spawn(self._resolve(host, port))

    async def _resolve(self, host: str, port: int) -> None:
        try:
            device = await self._resolver.fetch(host, port)
        except Exception:
            logger.exception("Resolving %s:%d failed", host, port)
            return
        if device is None:
            return
        logger.info("Found %s (%s) at %s", device.room_name, device.model_name, device.address)
        self._state.add_device(device)

    async def add_device_manually(self, host: str, port: int = DEFAULT_PORT) -> Device | None:
        """Resolve a host the user typed in and merge it.

        Returns:
            The device, or None if nothing answered like a speaker.
        """
        device = await self._resolver.fetch(host, port)
        if device is None:
            self._state.post_message(f"No speaker found at {host}:{port}")
            return None
        self._known_hosts.add(host)
        self._state.add_device(device)
        await self.refresh_groups()
        return device

    # -- Topology --------------------------------------------------------------------

    async def refresh_groups(self) -> None:
        """Refetch topology and rebuild all groups.

        A failed fetch keeps the previous groups. Per-group volume failures
        keep that group's previous volume.
        """
        devices = self._state.devices
        if not devices:
            return

        xml: str | None = None
        for device in devices:
            try:
                xml = await self._zone.get_topology(device)
                break
            except SoapError as e:
                logger.debug("Topology from %s failed: %s", device.host, e)
        if xml is None:
            self._state.post_message("Failed to fetch zone groups")
            return

        groups = parse_groups(xml, self._state.device_map)
        previous = {g.id: g for g in self._state.groups}
        volumes = await asyncio.gather(
            *(self._rendering.get_group_volume(g.coordinator) for g in groups),
            return_exceptions=True,
        )
        merged: list[Group] = []
        for group, volume in zip(groups, volumes, strict=True):
            old = previous.get(group.id)
            if isinstance(volume, BaseException):
                logger.warning("Group volume for %s failed: %s", group.display_name, volume)
                volume = old.volume if old else group.volume
            merged.append(
                dataclasses.replace(group, volume=volume, muted=old.muted if old else False)
            )

        coordinator_ids = {g.id for g in merged}
        self._state.set_devices(
            {
                d.id: dataclasses.replace(d, is_coordinator=d.id in coordinator_ids)
                for d in self._state.devices
            }
        )
        self._state.set_groups(merged)

        if self._state.selected_group is None and merged:
            await self.select_group(merged[0].id)

    async def select_group(self, group_id: str) -> None:
        """Select a group and load everything shown for it.

        Transport, queue, volume, EQ, crossfade and sleep timer load
        concurrently; each failure is reported on its own.
        """
        if self._state.get_group(group_id) is None:
            return
        if self._state.select_group(group_id):
            self._sleep_timer.cancel()
            self._state.clear_selection_state()
        await asyncio.gather(
            self.refresh_transport(quiet=False),
            self.refresh_queue(),
            self.refresh_volume(quiet=False),
            self.refresh_eq(quiet=False),
            self.refresh_crossfade(quiet=False),
            self.refresh_sleep_timer(quiet=False),
        )

    async def join_group(self, device_id: str, coordinator_id: str) -> None:
        """Add a speaker to the group led by coordinator_id."""
        device = self._state.get_device(device_id)
        coordinator = self._state.get_device(coordinator_id)
        if device is None or coordinator is None:
            return
        if await self._command("Group", self._zone.join_group(device, coordinator)):
            await asyncio.sleep(self._settings.regroup_delay)
            await self.refresh_groups()

    async def leave_group(self, device_id: str) -> None:
        """Make a speaker play on its own."""
        device = self._state.get_device(device_id)
        if device is None:
            return
        if await self._command("Ungroup", self._zone.leave_group(device)):
            await asyncio.sleep(self._settings.regroup_delay)
            await self.refresh_groups()

    # -- Refreshes -------------------------------------------------------------------

    def _report(self, what: str, error: SoapError, quiet: bool) -> None:
        if quiet:
            logger.debug("%s refresh failed: %s", what, error)
        else:
            logger.warning("%s refresh failed: %s", what, error)
            self._state.post_message(f"Failed to load {what.lower()}: {error}")

    async def refresh_transport(self, quiet: bool = True) -> None:
        """Fetch the selected group's transport and resync the position."""
        group = self._selected()
        if group is None:
            return
        try:
            info = await self._transport.get_transport_info(group.coordinator)
        except SoapError as e:
            self._report("Transport", e, quiet)
            return
        if not self._is_current(group.id):
            return
        self._state.set_transport(info)
        self._last_tick = time.monotonic()

    async def refresh_queue(self) -> None:
        """Fetch the selected group's queue."""
        group = self._selected()
        if group is None:
            return
        try:
            tracks = await self._transport.get_queue(group.coordinator)
        except SoapError as e:
            self._report("Queue", e, quiet=False)
            return
        if self._is_current(group.id):
            self._state.set_queue(tracks)

    async def refresh_volume(self, quiet: bool = True) -> None:
        """Fetch the selected group's volume and mute state."""
        group = self._selected()
        if group is None:
            return
        try:
            volume, muted = await asyncio.gather(
                self._rendering.get_group_volume(group.coordinator),
                self._rendering.get_group_mute(group.coordinator),
            )
        except SoapError as e:
            self._report("Volume", e, quiet)
            return
        if not self._is_current(group.id):
            return
        self._state.set_volume(volume, muted)
        self._patch_group(group.id, volume=volume, muted=muted)

    async def refresh_eq(self, quiet: bool = True) -> None:
        """Fetch bass and treble of the selected coordinator."""
        group = self._selected()
        if group is None:
            return
        try:
            bass, treble = await asyncio.gather(
                self._rendering.get_bass(group.coordinator),
                self._rendering.get_treble(group.coordinator),
            )
        except SoapError as e:
            self._report("EQ", e, quiet)
            return
        if self._is_current(group.id):
            self._state.set_eq(bass, treble)

    async def refresh_crossfade(self, quiet: bool = True) -> None:
        """Fetch the crossfade flag."""
        group = self._selected()
        if group is None:
            return
        try:
            enabled = await self._transport.get_crossfade_mode(group.coordinator)
        except SoapError as e:
            self._report("Crossfade", e, quiet)
            return
        if self._is_current(group.id):
            self._state.set_crossfade(enabled)

    async def refresh_sleep_timer(self, quiet: bool = True) -> None:
        """Fetch the remaining sleep time and re-anchor the countdown."""
        group = self._selected()
        if group is None:
            return
        try:
            remaining = await self._transport.get_sleep_timer_duration(group.coordinator)
        except SoapError as e:
            self._report("Sleep timer", e, quiet)
            return
        if not self._is_current(group.id):
            return
        self._sleep_timer.sync_from_device(remaining)
        self._state.set_sleep_timer_end(self._sleep_timer.end_time)

    # -- Polling -------------------------------------------------------------------------

    def start_polling(self) -> None:
        """Start the transport poll and the position tick."""
        self.stop_polling()
        loop = asyncio.get_running_loop()
        self._last_tick = time.monotonic()
        self._poll_task = loop.create_task(self._poll_loop())
        self._tick_task = loop.create_task(self._tick_loop())

    def stop_polling(self) -> None:
        """Cancel both poll loops."""
        for task in (self._poll_task, self._tick_task):
            if task is not None:
                task.cancel()
        self._poll_task = None
        self._tick_task = None

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._settings.poll_interval)
            try:
                await self.refresh_transport()
                await self.renew_subscriptions()
            except Exception:
                logger.exception("Transport poll failed")

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self._settings.tick_interval)
            try:
                self.tick()
            except Exception:
                logger.exception("Position tick failed")

    def tick(self, now: float | None = None) -> None:
        """Advance the cached position by the elapsed wall-clock time.

        Only while playing, and never past a known duration. Also clears
        an expired sleep timer.
        """
        now = time.monotonic() if now is None else now
        elapsed = max(0.0, now - self._last_tick)
        self._last_tick = now

        info = self._state.transport
        if info.is_playing and elapsed > 0:
            position = info.position + elapsed
            duration = info.current_track.duration
            if duration > 0:
                position = min(position, duration)
            if position != info.position:
                self._state.update_transport(position=position)

        if self._state.sleep_timer_end is not None and self._sleep_timer.remaining() is None:
            self._state.set_sleep_timer_end(None)

    async def _cancel_timers(self) -> None:
        tasks = [t for t in (self._discovery_task, self._poll_task, self._tick_task) if t]
        self._discovery_task = None
        self.stop_polling()
        for task in tasks:
            task.cancel()
        for task in tasks:
            if task is asyncio.current_task():
                continue
            with suppress(asyncio.CancelledError):
                await task

    async def shutdown(self) -> None:
        """Stop discovery and timers, drop subscriptions and close sessions."""
        await asyncio.to_thread(self._discovery.stop)
        await self._cancel_timers()
        for task in list(self._resolving):
            task.cancel()
        await self._drain_resolving()

        for subscription in self._events.subscriptions:
            device = self._state.get_device(subscription.device_id)
            if device is not None:
                await self._events.unsubscribe(device, subscription.service_path)
        await self._events.close()
        await self._resolver.close()
        await self._soap.close()

    # -- Transport commands -------------------------------------------------------------

    async def play(self) -> None:
        """Start playback."""
        group = self._selected()
        if group is None:
            return
        previous = self._state.update_transport(state=PlaybackState.PLAYING)
        await self._command(
            "Play",
            self._transport.play(group.coordinator),
            revert=lambda: self._state.update_transport(state=previous.state),
        )

    async def pause(self) -> None:
        """Pause playback."""
        group = self._selected()
        if group is None:
            return
        previous = self._state.update_transport(state=PlaybackState.PAUSED)
        await self._command(
            "Pause",
            self._transport.pause(group.coordinator),
            revert=lambda: self._state.update_transport(state=previous.state),
        )

    async def stop(self) -> None:
        """Stop playback."""
        group = self._selected()
        if group is None:
            return
        previous = self._state.update_transport(state=PlaybackState.STOPPED, position=0.0)
        await self._command(
            "Stop",
            self._transport.stop(group.coordinator),
            revert=lambda: self._state.update_transport(
                state=previous.state, position=previous.position
            ),
        )

    async def toggle_play_pause(self) -> None:
        """Pause while playing, otherwise play."""
        if self._state.transport.is_playing:
            await self.pause()
        else:
            await self.play()

    async def _settle_and_refresh(self) -> None:
        await asyncio.sleep(self._settings.settle_delay)
        await self.refresh_transport()

    async def next(self) -> None:
        """Skip to the next track."""
        group = self._selected()
        if group is not None and await self._command(
            "Next", self._transport.next(group.coordinator)
        ):
            await self._settle_and_refresh()

    async def previous(self) -> None:
        """Go back to the previous track."""
        group = self._selected()
        if group is not None and await self._command(
            "Previous", self._transport.previous(group.coordinator)
        ):
            await self._settle_and_refresh()

    async def seek(self, position: float) -> None:
        """Seek within the current track (seconds)."""
        group = self._selected()
        if group is None:
            return
        position = max(0.0, position)
        previous = self._state.update_transport(position=position)
        self._last_tick = time.monotonic()
        await self._command(
            "Seek",
            self._transport.seek(group.coordinator, position),
            revert=lambda: self._state.update_transport(position=previous.position),
        )

    async def play_track(self, track_number: int) -> None:
        """Play the queue entry at a 1-based position."""
        group = self._selected()
        if group is None:
            return

        async def jump() -> None:
            await self._transport.seek_track(group.coordinator, track_number)
            await self._transport.play(group.coordinator)

        if await self._command("Play track", jump()):
            await self._settle_and_refresh()

    async def set_play_mode(self, mode: PlayMode) -> None:
        """Set the repeat/shuffle mode."""
        group = self._selected()
        if group is None:
            return
        previous = self._state.update_transport(play_mode=mode)
        await self._command(
            "Play mode",
            self._transport.set_play_mode(group.coordinator, mode),
            revert=lambda: self._state.update_transport(play_mode=previous.play_mode),
        )

    async def toggle_shuffle(self) -> None:
        """Toggle shuffle, keeping the repeat setting."""
        await self.set_play_mode(self._state.transport.play_mode.toggled_shuffle())

    async def toggle_repeat(self) -> None:
        """Cycle repeat off, all, one."""
        await self.set_play_mode(self._state.transport.play_mode.toggled_repeat())

    # -- Rendering commands ---------------------------------------------------------------

    def _clamp_volume(self, volume: int) -> int:
        return clamp(volume, 0, self._settings.max_volume)

    async def set_volume(self, volume: int) -> None:
        """Set the selected group's volume."""
        group = self._selected()
        if group is None:
            return
        volume = self._clamp_volume(volume)
        previous = self._state.volume
        self._state.set_volume(volume)
        self._patch_group(group.id, volume=volume)

        def revert() -> None:
            self._state.set_volume(previous)
            self._patch_group(group.id, volume=previous)

        await self._command(
            "Volume", self._rendering.set_group_volume(group.coordinator, volume), revert=revert
        )

    async def adjust_volume(self, delta: int) -> None:
        """Change the group volume by a signed step."""
        await self.set_volume(self._state.volume + delta)

    async def set_mute(self, muted: bool) -> None:
        """Mute or unmute the selected group (reverted on failure)."""
        group = self._selected()
        if group is None:
            return
        previous = self._state.muted
        self._state.set_muted(muted)
        await self._command(
            "Mute",
            self._rendering.set_group_mute(group.coordinator, muted),
            revert=lambda: self._state.set_muted(previous),
            always_revert=True,
        )

    async def toggle_mute(self) -> None:
        """Toggle the selected group's mute."""
        await self.set_mute(not self._state.muted)

    async def set_device_volume(self, device_id: str, volume: int) -> None:
        """Set one member's own volume."""
        device = self._state.get_device(device_id)
        if device is not None:
            await self._command(
                "Device volume", self._rendering.set_volume(device, self._clamp_volume(volume))
            )

    async def adjust_device_volume(self, device_id: str, delta: int) -> int | None:
        """Nudge one member's volume.

        Returns:
            The new volume reported by the device, or None on failure.
        """
        device = self._state.get_device(device_id)
        if device is None:
            return None
        try:
            return await self._rendering.set_relative_volume(device, delta)
        except SoapError as e:
            logger.warning("Device volume failed: %s", e)
            self._state.post_message(f"Device volume failed: {e}")
            return None

    async def set_device_mute(self, device_id: str, muted: bool) -> None:
        """Mute or unmute one member."""
        device = self._state.get_device(device_id)
        if device is not None:
            await self._command("Device mute", self._rendering.set_mute(device, muted))

    async def set_bass(self, level: int) -> None:
        """Set bass on the selected coordinator (-10..10)."""
        group = self._selected()
        if group is None:
            return
        level = clamp(level, EQ_MIN, EQ_MAX)
        previous = self._state.bass
        self._state.set_eq(bass=level)
        await self._command(
            "Bass",
            self._rendering.set_bass(group.coordinator, level),
            revert=lambda: self._state.set_eq(bass=previous),
        )

    async def set_treble(self, level: int) -> None:
        """Set treble on the selected coordinator (-10..10)."""
        group = self._selected()
        if group is None:
            return
        level = clamp(level, EQ_MIN, EQ_MAX)
        previous = self._state.treble
        self._state.set_eq(treble=level)
        await self._command(
            "Treble",
            self._rendering.set_treble(group.coordinator, level),
            revert=lambda: self._state.set_eq(treble=previous),
        )

    async def reset_eq(self) -> None:
        """Set bass and treble back to flat."""
        await self.set_bass(0)
        await self.set_treble(0)

    async def set_crossfade(self, enabled: bool) -> None:
        """Enable or disable crossfade (reverted on failure)."""
        group = self._selected()
        if group is None:
            return
        previous = self._state.crossfade
        self._state.set_crossfade(enabled)
        await self._command(
            "Crossfade",
            self._transport.set_crossfade_mode(group.coordinator, enabled),
            revert=lambda: self._state.set_crossfade(previous),
            always_revert=True,
        )

    async def toggle_crossfade(self) -> None:
        """Toggle crossfade."""
        await self.set_crossfade(not self._state.crossfade)

    # -- Sleep timer ------------------------------------------------------------------------

    async def set_sleep_timer(self, seconds: float | None) -> None:
        """Start a sleep timer, or cancel it with None / 0."""
        group = self._selected()
        if group is None:
            return
        previous_end = self._sleep_timer.end_time
        if seconds and seconds > 0:
            self._sleep_timer.start(seconds)
        else:
            self._sleep_timer.cancel()
        self._state.set_sleep_timer_end(self._sleep_timer.end_time)

        def revert() -> None:
            if previous_end is None:
                self._sleep_timer.cancel()
            else:
                self._sleep_timer.start(previous_end - time.time())
            self._state.set_sleep_timer_end(previous_end)

        await self._command(
            "Sleep timer",
            self._transport.configure_sleep_timer(
                group.coordinator, SleepTimer.wire_duration(seconds)
            ),
            revert=revert,
        )

    def sleep_timer_remaining(self) -> float | None:
        """Return seconds until the sleep timer fires, or None."""
        return self._sleep_timer.remaining()

    # -- Queue --------------------------------------------------------------------------------

    async def clear_queue(self) -> None:
        """Remove every track from the queue."""
        group = self._selected()
        if group is not None and await self._command(
            "Clear queue", self._transport.remove_all_tracks_from_queue(group.coordinator)
        ):
            self._state.set_queue([])

    async def remove_from_queue(self, track_number: int) -> None:
        """Remove the track at a 1-based position, then reload the queue."""
        group = self._selected()
        if group is not None and await self._command(
            "Remove track",
            self._transport.remove_track_from_queue(group.coordinator, track_number),
        ):
            await self.refresh_queue()

    async def move_queue_item(self, source: int, destination: int) -> None:
        """Move one queue entry.

        Args:
            source: 0-based index of the entry to move.
            destination: 0-based index, in the list before the move, that
                the entry is inserted in front of.
        """
        group = self._selected()
        if group is None:
            return
        previous = self._state.queue
        if not 0 <= source < len(previous) or not 0 <= destination <= len(previous):
            return
        if destination in (source, source + 1):
            return

        moved = list(previous)
        item = moved.pop(source)
        moved.insert(destination - 1 if destination > source else destination, item)
        self._state.set_queue(moved)

        await self._command(
            "Move track",
            self._transport.reorder_tracks_in_queue(
                group.coordinator,
                starting_index=source + 1,
                number_of_tracks=1,
                insert_before=destination + 1,
            ),
            revert=lambda: self._state.set_queue(previous),
        )

    # -- URIs and inputs -------------------------------------------------------------------------

    async def play_uri(self, uri: str, metadata: str = "") -> None:
        """Replace the transport source with a URI and play it."""
        group = self._selected()
        if group is None:
            return

        async def start() -> None:
            await self._transport.set_av_transport_uri(group.coordinator, uri, metadata)
            await self._transport.play(group.coordinator)

        if await self._command("Play", start()):
            await self._settle_and_refresh()

    async def enqueue_uri(
        self, uri: str, metadata: str = "", play_next: bool = False
    ) -> EnqueueResult | None:
        """Add a URI to the queue, at the end or right after the current track.

        Returns:
            Where it landed, or None on failure.
        """
        group = self._selected()
        if group is None:
            return None
        position = self._state.transport.current_track_number + 1 if play_next else 0
        try:
            result = await self._transport.add_uri_to_queue(
                group.coordinator, uri, metadata, position
            )
        except SoapError as e:
            logger.warning("Add to queue failed: %s", e)
            self._state.post_message(f"Add to queue failed: {e}")
            return None
        await self.refresh_queue()
        return result

    async def switch_to_queue(self) -> None:
        """Play from the group's queue."""
        group = self._selected()
        if group is None:
            return
        uri = f"x-rincon-queue:{group.coordinator.id}#0"
        if await self._command(
            "Switch to queue", self._transport.set_av_transport_uri(group.coordinator, uri)
        ):
            await self._settle_and_refresh()

    async def switch_to_line_in(self, device_id: str | None = None) -> None:
        """Play the analog input of a member (the coordinator by default)."""
        group = self._selected()
        if group is None:
            return
        source = self._state.get_device(device_id) if device_id else group.coordinator
        if source is None:
            return
        uri = f"x-rincon-stream:{source.id}"
        if await self._command(
            "Switch to line-in", self._transport.set_av_transport_uri(group.coordinator, uri)
        ):
            await self.play()
            await self._settle_and_refresh()

    async def switch_to_tv(self, device_id: str | None = None) -> None:
        """Play the TV input of a member soundbar (the coordinator by default)."""
        group = self._selected()
        if group is None:
            return
        source = self._state.get_device(device_id) if device_id else group.coordinator
        if source is None:
            return
        uri = f"x-sonos-htastream:{source.id}:spdif"
        if await self._command(
            "Switch to TV", self._transport.set_av_transport_uri(group.coordinator, uri)
        ):
            await self._settle_and_refresh()

    # -- Library --------------------------------------------------------------------------------

    def _library_device(self) -> Device | None:
        group = self._selected()
        if group is not None:
            return group.coordinator
        devices = self._state.devices
        return devices[0] if devices else None

    async def browse_library(self, object_id: str) -> BrowseResult | None:
        """Load the first page of a library container."""
        device = self._library_device()
        if device is None:
            return None
        try:
            result = await self._library.browse(device, object_id)
        except SoapError as e:
            self._report("Library", e, quiet=False)
            return None
        self._state.set_library(result)
        return result

    async def load_more_library_items(self) -> BrowseResult | None:
        """Append the next page of the current library container."""
        current = self._state.library
        device = self._library_device()
        if current is None or device is None or not current.has_more:
            return current
        try:
            page = await self._library.browse(
                device, current.object_id, start=current.start + len(current.items)
            )
        except SoapError as e:
            self._report("Library", e, quiet=False)
            return current
        if self._state.library is not current:
            return self._state.library
        merged = dataclasses.replace(
            current,
            items=[*current.items, *page.items],
            total_matches=page.total_matches or current.total_matches,
            number_returned=current.number_returned + page.number_returned,
        )
        self._state.set_library(merged)
        return merged

    async def add_library_item_to_queue(
        self, item: BrowsableItem, play_now: bool = False
    ) -> EnqueueResult | None:
        """Queue a library entry, optionally starting playback at it."""
        if not item.uri:
            self._state.post_message(f"{item.title} cannot be queued")
            return None
        result = await self.enqueue_uri(item.uri, item.metadata)
        if result is not None and play_now:
            await self.switch_to_queue()
            await self.play_track(result.first_track_number)
        return result

    async def queue_catalog_item(
        self, item: CatalogItem, kind: CatalogKind = "track", play_now: bool = False
    ) -> EnqueueResult | None:
        """Queue an external catalog item through the catalog bridge."""
        if kind == "album":
            uri, metadata = self._catalog.album_uri(item.id), self._catalog.album_metadata(item)
        elif kind == "playlist":
            uri = self._catalog.playlist_uri(item.id)
            metadata = self._catalog.playlist_metadata(item)
        else:
            uri, metadata = self._catalog.track_uri(item.id), self._catalog.track_metadata(item)
        result = await self.enqueue_uri(uri, metadata)
        if result is not None and play_now:
            await self.switch_to_queue()
            await self.play_track(result.first_track_number)
        return result

    # -- Events -----------------------------------------------------------------------------------

    async def subscribe_events(self, callback_url: str) -> list[str]:
        """Subscribe to transport and group rendering events of the selection.

        Returns:
            Subscription IDs obtained.
        """
        group = self._selected()
        if group is None:
            return []
        sids: list[str] = []
        for path in (EventPath.AV_TRANSPORT, EventPath.GROUP_RENDERING_CONTROL):
            try:
                sids.append(await self._events.subscribe(group.coordinator, path, callback_url))
            except SoapError as e:
                logger.warning("Subscribe %s failed: %s", path, e)
                self._state.post_message(f"Event subscription failed: {e}")
        return sids

    async def renew_subscriptions(self) -> None:
        """Renew subscriptions close to expiry; drop those that fail."""
        for subscription in self._events.due_for_renewal(self._settings.renewal_margin):
            device = self._state.get_device(subscription.device_id)
            if device is None:
                continue
            try:
                await self._events.renew(device, subscription.service_path)
            except SoapError as e:
                logger.debug("Renew %s failed: %s", subscription.sid, e)
                await self._events.unsubscribe(device, subscription.service_path)
