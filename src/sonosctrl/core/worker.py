"""QThread worker hosting the Coordinator's asyncio loop.

Qt objects live in the main thread, but the Coordinator and its services
use asyncio. This worker runs the event loop in a background thread; the
Coordinator publishes through the StateStore's signals, which Qt delivers
to the main thread.
"""

import asyncio
import concurrent.futures
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from PySide6.QtCore import QThread, Signal

from sonosctrl.core.coordinator import Coordinator, CoordinatorSettings
from sonosctrl.core.state import StateStore
from sonosctrl.models.transport import PlayMode

logger = logging.getLogger(__name__)

CoordinatorCall = Callable[[Coordinator], Coroutine[Any, Any, Any]]


class CoordinatorWorker(QThread):
    """Background thread running the Coordinator.

    Every public command is thread-safe: it schedules the matching
    Coordinator coroutine on the worker loop and returns immediately.

    Example:
        state = StateStore()
        worker = CoordinatorWorker(state)
        worker.ready.connect(worker.start_discovery)
        state.groups_changed.connect(lambda groups: print(f"Groups: {groups}"))
        worker.start()
    """

    ready = Signal()  # Loop is running, commands are accepted
    error_occurred = Signal(object)  # Exception

    def __init__(
        self,
        state: StateStore,
        settings: CoordinatorSettings | None = None,
        coordinator_factory: Callable[[StateStore, CoordinatorSettings], Coordinator] | None = None,
    ) -> None:
        """Initialize the worker.

        Args:
            state: Store the coordinator writes to.
            settings: Coordinator settings.
            coordinator_factory: Builds the coordinator inside the worker
                thread (defaults to the Coordinator constructor).
        """
        super().__init__()
        self._state = state
        self._settings = settings or CoordinatorSettings()
        self._factory = coordinator_factory or (lambda s, c: Coordinator(s, c))
        self._coordinator: Coordinator | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop_event: asyncio.Event | None = None

    @property
    def coordinator(self) -> Coordinator | None:
        """Return the coordinator while the worker runs."""
        return self._coordinator

    @property
    def is_running_loop(self) -> bool:
        """Return True if commands can be scheduled."""
        return self._loop is not None and self._loop.is_running() and self._coordinator is not None

    def stop(self) -> None:
        """Signal the worker to shut down (called from main thread)."""
        loop, event = self._loop, self._stop_event
        if loop and event and loop.is_running():
            loop.call_soon_threadsafe(event.set)

    def submit(self, call: CoordinatorCall) -> concurrent.futures.Future[Any] | None:
        """Schedule call(coordinator) on the worker loop.

        Thread-safe. Unexpected errors are emitted via error_occurred.

        Returns:
            A future for the result, or None if the loop is not running.
        """
        if not self.is_running_loop:
            logger.debug("Worker not running, dropping command")
            return None
        assert self._loop is not None
        return asyncio.run_coroutine_threadsafe(self._safe(call), self._loop)

    async def _safe(self, call: CoordinatorCall) -> Any:
        """Run a coordinator call with error handling."""
        if self._coordinator is None:
            return None
        try:
            return await call(self._coordinator)
        except Exception as e:
            logger.exception("Coordinator command failed")
            self.error_occurred.emit(e)
            return None

    # -- Commands ---------------------------------------------------------------

    def start_discovery(self) -> None:
        """Start a discovery round."""
        self.submit(lambda c: c.start_discovery())

    def add_device(self, host: str, port: int) -> None:
        """Resolve and add a speaker by address."""
        self.submit(lambda c: c.add_device_manually(host, port))

    def select_group(self, group_id: str) -> None:
        """Select a group."""
        self.submit(lambda c: c.select_group(group_id))

    def play(self) -> None:
        """Start playback."""
        self.submit(lambda c: c.play())

    def pause(self) -> None:
        """Pause playback."""
        self.submit(lambda c: c.pause())

    def toggle_play_pause(self) -> None:
        """Toggle between playing and paused."""
        self.submit(lambda c: c.toggle_play_pause())

    def next_track(self) -> None:
        """Skip forward."""
        self.submit(lambda c: c.next())

    def previous_track(self) -> None:
        """Skip back."""
        self.submit(lambda c: c.previous())

    def seek(self, position: float) -> None:
        """Seek within the current track."""
        self.submit(lambda c: c.seek(position))

    def set_play_mode(self, mode: PlayMode) -> None:
        """Set repeat/shuffle mode."""
        self.submit(lambda c: c.set_play_mode(mode))

    def set_volume(self, volume: int) -> None:
        """Set the selected group's volume."""
        self.submit(lambda c: c.set_volume(volume))

    def toggle_mute(self) -> None:
        """Toggle the selected group's mute."""
        self.submit(lambda c: c.toggle_mute())

    def join_group(self, device_id: str, coordinator_id: str) -> None:
        """Add a speaker to another group."""
        self.submit(lambda c: c.join_group(device_id, coordinator_id))

    def leave_group(self, device_id: str) -> None:
        """Make a speaker play on its own."""
        self.submit(lambda c: c.leave_group(device_id))

    # -- Thread entry ---------------------------------------------------------------

    def run(self) -> None:
        """Run the worker thread (entry point)."""
        # Create new event loop for this thread
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop

        try:
            loop.run_until_complete(self._main())
        except Exception as e:
            logger.exception("Worker loop crashed")
            self.error_occurred.emit(e)
        finally:
            if self._coordinator is not None:
                try:
                    loop.run_until_complete(self._coordinator.shutdown())
                except Exception:
                    logger.exception("Coordinator shutdown failed")
            loop.close()
            self._loop = None
            self._coordinator = None
            self._stop_event = None

    async def _main(self) -> None:
        """Build the coordinator and wait for stop()."""
        self._stop_event = asyncio.Event()
        self._coordinator = self._factory(self._state, self._settings)
        self.ready.emit()
        await self._stop_event.wait()
