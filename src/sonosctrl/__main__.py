"""Main entry point for the SonosCTRL control point.

Runs headless: discovers speakers, selects the first group and logs what
it is playing until interrupted.
"""

import argparse
import logging
import signal
import sys
from dataclasses import replace

from PySide6.QtCore import QCoreApplication, QTimer

from sonosctrl import __version__
from sonosctrl.api.xmlscan import format_duration
from sonosctrl.core.config import ConfigManager
from sonosctrl.core.state import StateStore
from sonosctrl.core.worker import CoordinatorWorker
from sonosctrl.models.device import DEFAULT_PORT
from sonosctrl.models.group import Group
from sonosctrl.models.transport import TransportInfo

logger = logging.getLogger(__name__)


def _parse_host(value: str) -> tuple[str, int]:
    host, _, port = value.rpartition(":")
    if not host:
        return value, DEFAULT_PORT
    return host, int(port)


def main() -> int:
    """Run the SonosCTRL control point.

    Returns:
        Exit code (0 for success).
    """
    parser = argparse.ArgumentParser(prog="sonosctrl", description="SonosCTRL speaker controller")
    parser.add_argument(
        "--host",
        action="append",
        default=[],
        metavar="HOST[:PORT]",
        help="speaker address to add besides discovery (repeatable)",
    )
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parsed = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if parsed.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    QCoreApplication.setApplicationName("SonosCTRL")
    QCoreApplication.setOrganizationName("SonosCTRL")
    app = QCoreApplication(sys.argv)

    config = ConfigManager()
    try:
        extra_hosts = [_parse_host(h) for h in parsed.host]
    except ValueError:
        parser.error("invalid --host, expected HOST or HOST:PORT")
    settings = config.coordinator_settings()
    if extra_hosts:
        settings = replace(settings, manual_hosts=(*settings.manual_hosts, *extra_hosts))

    state = StateStore()
    worker = CoordinatorWorker(state, settings)

    def on_groups(groups: list[Group]) -> None:
        for group in groups:
            logger.info("Group %s (volume %d)", group.display_name, group.volume)

    last_track: list[str] = [""]

    def on_transport(info: TransportInfo) -> None:
        track = info.current_track
        key = f"{info.state.value}|{track.title}|{track.artist}"
        if key == last_track[0]:
            return
        last_track[0] = key
        logger.info(
            "%s: %s - %s [%s]",
            info.state.value,
            track.artist or "?",
            track.title,
            format_duration(track.duration),
        )

    state.groups_changed.connect(on_groups)
    state.transport_changed.connect(on_transport)
    state.message_posted.connect(lambda message: logger.warning("%s", message))
    state.discovering_changed.connect(
        lambda discovering: logger.info("Discovery %s", "started" if discovering else "finished")
    )
    worker.error_occurred.connect(lambda e: logger.error("Worker error: %s", e))

    if config.get_auto_discover() or extra_hosts:
        worker.ready.connect(worker.start_discovery)

    def shutdown(*_: object) -> None:
        logger.info("Shutting down")
        worker.stop()
        worker.wait(5000)
        app.quit()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    # Let the Python interpreter run periodically so signal handlers fire
    heartbeat = QTimer()
    heartbeat.timeout.connect(lambda: None)
    heartbeat.start(250)

    worker.start()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
