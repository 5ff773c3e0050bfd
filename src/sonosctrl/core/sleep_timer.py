"""Sleep timer countdown anchored to a wall-clock end time."""

import time

from sonosctrl.api.xmlscan import format_timestamp, parse_duration


class SleepTimer:
    """Tracks when a configured sleep timer fires.

    Remaining time is always computed from the absolute end time, so the
    countdown stays correct across suspended polling or system sleep.
    """

    def __init__(self) -> None:
        """Initialize an inactive timer."""
        self._end: float | None = None

    @property
    def end_time(self) -> float | None:
        """Return the wall-clock end time, or None when inactive."""
        return self._end

    @property
    def is_active(self) -> bool:
        """Return True while a countdown is running."""
        return self._end is not None

    def start(self, seconds: float, now: float | None = None) -> float:
        """Start a countdown of seconds from now.

        Returns:
            The wall-clock end time.
        """
        self._end = (time.time() if now is None else now) + max(0.0, seconds)
        return self._end

    def cancel(self) -> None:
        """Stop the countdown."""
        self._end = None

    def remaining(self, now: float | None = None) -> float | None:
        """Return seconds left, or None when inactive or expired.

        An expired timer clears itself.
        """
        if self._end is None:
            return None
        left = self._end - (time.time() if now is None else now)
        if left <= 0:
            self._end = None
            return None
        return left

    def sync_from_device(self, duration: str, now: float | None = None) -> None:
        """Adopt the device's "H:MM:SS" remaining time ("" cancels)."""
        seconds = parse_duration(duration)
        if seconds > 0:
            self.start(seconds, now)
        else:
            self.cancel()

    @staticmethod
    def wire_duration(seconds: float | None) -> str:
        """Return the ConfigureSleepTimer argument for a duration."""
        if not seconds or seconds <= 0:
            return ""
        return format_timestamp(seconds)
