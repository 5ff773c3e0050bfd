"""Event subscription record."""

import time
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Subscription:
    """A GENA event subscription held against one device service.

    Attributes:
        device_id: ID of the subscribed device.
        service_path: Event sub-path, e.g. "/MediaRenderer/AVTransport/Event".
        sid: Server-issued subscription identifier.
        timeout: Granted timeout in seconds.
        expires_at: Wall-clock time at which the subscription lapses.
    """

    device_id: str
    service_path: str
    sid: str
    timeout: int
    expires_at: float

    @property
    def key(self) -> tuple[str, str]:
        """Return the (device, path) table key."""
        return (self.device_id, self.service_path)

    def seconds_left(self, now: float | None = None) -> float:
        """Return seconds until expiry (negative once expired)."""
        return self.expires_at - (time.time() if now is None else now)
