"""Core application layer.

This module contains the logic that drives the speaker services and
publishes household state to Qt.

Classes:
    StateStore: Central state store with Qt signals.
    Coordinator: Discovery, topology, polling and commands.
    CoordinatorWorker: QThread hosting the coordinator's asyncio loop.
    ConfigManager: QSettings wrapper for configuration.
"""

from sonosctrl.core.config import ConfigManager
from sonosctrl.core.coordinator import Coordinator, CoordinatorSettings
from sonosctrl.core.state import CoordinatorSnapshot, StateStore
from sonosctrl.core.worker import CoordinatorWorker

__all__ = [
    "ConfigManager",
    "Coordinator",
    "CoordinatorSettings",
    "CoordinatorSnapshot",
    "CoordinatorWorker",
    "StateStore",
]
