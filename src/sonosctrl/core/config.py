"""Configuration manager using QSettings for persistent storage."""

import logging
from typing import cast

from PySide6.QtCore import QSettings

from sonosctrl.core.coordinator import CoordinatorSettings
from sonosctrl.models.device import DEFAULT_PORT

logger = logging.getLogger(__name__)

# Discovery
_KEY_AUTO_DISCOVER = "discovery/auto_discover"
_KEY_DISCOVERY_WINDOW = "discovery/window"
_KEY_SUBNET_SCAN = "discovery/subnet_scan_fallback"
_KEY_MANUAL_HOSTS = "discovery/manual_hosts"

# Polling
_KEY_POLL_INTERVAL = "polling/transport_interval"
_KEY_TICK_INTERVAL = "polling/position_tick"

# Playback
_KEY_MAX_VOLUME = "playback/max_volume"
_KEY_REVERT_FAILED = "playback/revert_failed_commands"


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class ConfigManager:
    """Wrapper around QSettings for type-safe config access.

    QSettings stores config in platform-specific locations:
    - Windows: HKEY_CURRENT_USER\\Software\\SonosCTRL\\SonosCTRL
    - macOS: ~/Library/Preferences/com.SonosCTRL.SonosCTRL.plist
    - Linux: ~/.config/SonosCTRL/SonosCTRL.conf

    Example:
        config = ConfigManager()
        config.set_poll_interval(5)
        coordinator = Coordinator(state, settings=config.coordinator_settings())
    """

    def __init__(self, organization: str = "SonosCTRL", application: str = "SonosCTRL") -> None:
        """Initialize the config manager.

        Args:
            organization: Organization name for QSettings.
            application: Application name for QSettings.
        """
        self._settings = QSettings(organization, application)

    @property
    def settings(self) -> QSettings:
        """Return the underlying QSettings instance."""
        return self._settings

    # -- Discovery settings ----------------------------------------------------

    def get_auto_discover(self) -> bool:
        """Return whether discovery starts on launch (default True)."""
        return bool(self._settings.value(_KEY_AUTO_DISCOVER, True, bool))

    def set_auto_discover(self, enabled: bool) -> None:
        """Enable or disable discovery on launch."""
        self._settings.setValue(_KEY_AUTO_DISCOVER, enabled)

    def get_discovery_window(self) -> float:
        """Return how long discovery runs before polling starts.

        Returns:
            Seconds (default 5, range 2-30).
        """
        value = self._settings.value(_KEY_DISCOVERY_WINDOW, 5.0, float)
        return _clamp(float(value), 2.0, 30.0)  # type: ignore[arg-type]

    def set_discovery_window(self, seconds: float) -> None:
        """Set the discovery window.

        Args:
            seconds: Window in seconds (2-30).
        """
        self._settings.setValue(_KEY_DISCOVERY_WINDOW, _clamp(seconds, 2.0, 30.0))

    def get_subnet_scan_fallback(self) -> bool:
        """Return whether to scan the subnet when SSDP finds nothing."""
        return bool(self._settings.value(_KEY_SUBNET_SCAN, True, bool))

    def set_subnet_scan_fallback(self, enabled: bool) -> None:
        """Enable or disable the subnet scan fallback."""
        self._settings.setValue(_KEY_SUBNET_SCAN, enabled)

    def get_manual_hosts(self) -> list[tuple[str, int]]:
        """Load manually added speaker addresses.

        Returns:
            List of (host, port) tuples, or empty list if none saved.
        """
        raw_data = self._settings.value(_KEY_MANUAL_HOSTS, [], list)
        hosts: list[tuple[str, int]] = []
        if not isinstance(raw_data, list):
            return hosts

        for raw_item in cast(list[object], raw_data):
            if not isinstance(raw_item, str) or not raw_item.strip():
                continue
            host, _, port_str = raw_item.strip().rpartition(":")
            if not host:
                host, port_str = port_str, ""
            try:
                port = int(port_str) if port_str else DEFAULT_PORT
            except ValueError:
                logger.warning("Skipping invalid manual host entry: %s", raw_item)
                continue
            hosts.append((host, port))
        return hosts

    def set_manual_hosts(self, hosts: list[tuple[str, int]]) -> None:
        """Persist manually added speaker addresses."""
        self._settings.setValue(_KEY_MANUAL_HOSTS, [f"{h}:{p}" for h, p in hosts])

    def add_manual_host(self, host: str, port: int = DEFAULT_PORT) -> None:
        """Add a manual host (no duplicates)."""
        hosts = [h for h in self.get_manual_hosts() if h != (host, port)]
        hosts.append((host, port))
        self.set_manual_hosts(hosts)

    def remove_manual_host(self, host: str) -> bool:
        """Remove all entries for a host.

        Returns:
            True if anything was removed.
        """
        hosts = self.get_manual_hosts()
        remaining = [h for h in hosts if h[0] != host]
        if len(remaining) < len(hosts):
            self.set_manual_hosts(remaining)
            return True
        return False

    # -- Polling settings --------------------------------------------------------

    def get_poll_interval(self) -> float:
        """Return the transport poll interval.

        Returns:
            Seconds (default 3, range 1-30).
        """
        value = self._settings.value(_KEY_POLL_INTERVAL, 3.0, float)
        return _clamp(float(value), 1.0, 30.0)  # type: ignore[arg-type]

    def set_poll_interval(self, seconds: float) -> None:
        """Set the transport poll interval (1-30 s)."""
        self._settings.setValue(_KEY_POLL_INTERVAL, _clamp(seconds, 1.0, 30.0))

    def get_tick_interval(self) -> float:
        """Return the position extrapolation tick.

        Returns:
            Seconds (default 1, range 0.25-5).
        """
        value = self._settings.value(_KEY_TICK_INTERVAL, 1.0, float)
        return _clamp(float(value), 0.25, 5.0)  # type: ignore[arg-type]

    def set_tick_interval(self, seconds: float) -> None:
        """Set the position extrapolation tick (0.25-5 s)."""
        self._settings.setValue(_KEY_TICK_INTERVAL, _clamp(seconds, 0.25, 5.0))

    # -- Playback settings ---------------------------------------------------------

    def get_max_volume(self) -> int:
        """Return the volume ceiling applied to setters (default 100)."""
        value = self._settings.value(_KEY_MAX_VOLUME, 100, int)
        return max(0, min(100, int(value)))  # type: ignore[arg-type]

    def set_max_volume(self, volume: int) -> None:
        """Set the volume ceiling (0-100)."""
        self._settings.setValue(_KEY_MAX_VOLUME, max(0, min(100, volume)))

    def get_revert_failed_commands(self) -> bool:
        """Return whether every failed command reverts its optimistic update.

        When False (default) only mute and crossfade revert.
        """
        return bool(self._settings.value(_KEY_REVERT_FAILED, False, bool))

    def set_revert_failed_commands(self, enabled: bool) -> None:
        """Enable or disable reverting all failed commands."""
        self._settings.setValue(_KEY_REVERT_FAILED, enabled)

    # -- Coordinator -----------------------------------------------------------------

    def coordinator_settings(self) -> CoordinatorSettings:
        """Build the immutable settings the coordinator runs with."""
        return CoordinatorSettings(
            discovery_window=self.get_discovery_window(),
            poll_interval=self.get_poll_interval(),
            tick_interval=self.get_tick_interval(),
            max_volume=self.get_max_volume(),
            revert_failed_commands=self.get_revert_failed_commands(),
            subnet_scan_fallback=self.get_subnet_scan_fallback(),
            manual_hosts=tuple(self.get_manual_hosts()),
        )

    # -- General settings --------------------------------------------------------------

    def clear(self) -> None:
        """Clear all settings (useful for testing or reset)."""
        self._settings.clear()

    def sync(self) -> None:
        """Force settings to be written to disk."""
        self._settings.sync()
