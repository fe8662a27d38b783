"""
Main entry point for the flat panel ASCOM Alpaca driver.

Usage:
    python -m flatpanel_alpaca [--config CONFIG_PATH] [--connect]
"""

import argparse
import logging
import signal
import sys

import uvicorn

from flatpanel_alpaca import __version__
from flatpanel_alpaca.api.app import create_app
from flatpanel_alpaca.api.discovery import DiscoveryServer
from flatpanel_alpaca.config.loader import ConfigurationError, load_config
from flatpanel_alpaca.config.models import AppConfig
from flatpanel_alpaca.panel.state import DeviceState
from flatpanel_alpaca.panel.synchronizer import StateSynchronizer
from flatpanel_alpaca.protocol.parser import ResponseParser
from flatpanel_alpaca.protocol.port_locator import PortLocator, list_available_ports
from flatpanel_alpaca.protocol.transport import SerialTransport
from flatpanel_alpaca.simulator.mock_panel import SimulatedPortLocator
from flatpanel_alpaca.utils.exceptions import FlatPanelException
from flatpanel_alpaca.utils.logging_setup import setup_logging


logger = logging.getLogger(__name__)


# Global resources for cleanup
discovery_server = None
panel = None


def signal_handler(signum, frame):
    """Handle shutdown signals (SIGINT, SIGTERM)."""
    logger.info(f"Received signal {signum}, shutting down...")

    if discovery_server:
        discovery_server.stop()

    if panel:
        panel.disconnect()

    sys.exit(0)


class StateChangeLogger:
    """Publishes state changes to the log, one line per change."""

    def __init__(self):
        self._last = None

    def __call__(self, state: DeviceState) -> None:
        summary = (state.connected, state.cover, state.brightness)
        if summary != self._last:
            logger.info(f"Panel state: {state.status_message} (brightness {state.brightness})")
            self._last = summary


def build_panel(config: AppConfig):
    """
    Create the state synchronizer for hardware or simulator mode.

    Returns:
        Tuple of (StateSynchronizer, simulated device or None).
    """
    if config.simulator.enabled:
        logger.info("Using SIMULATOR mode")
        locator = SimulatedPortLocator(config.simulator)
        simulator = locator.device
    else:
        logger.info("Using REAL HARDWARE mode")
        locator = PortLocator(
            pattern=config.serial.port_pattern,
            preferred_port=config.serial.port,
        )
        simulator = None

        available_ports = list_available_ports()
        if available_ports:
            logger.info(f"Available serial ports: {', '.join(p.name for p in available_ports)}")
        else:
            logger.warning("No serial ports found on system")

    synchronizer = StateSynchronizer(
        locator,
        SerialTransport(config.serial),
        parser=ResponseParser(config.serial.max_line_length),
        line_terminator=config.serial.line_terminator,
    )
    synchronizer.add_listener(StateChangeLogger())
    return synchronizer, simulator


def main():
    """Main application entry point."""
    global discovery_server, panel

    parser = argparse.ArgumentParser(description="Flat Panel Cover ASCOM Alpaca Driver")
    parser.add_argument(
        "--config",
        type=str,
        default="config.json",
        help="Path to configuration file (default: config.json)"
    )
    parser.add_argument(
        "--connect",
        action="store_true",
        help="Connect to the panel at startup instead of waiting for a client"
    )
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.logging)

    logger.info("=" * 60)
    logger.info(f"Flat Panel Cover ASCOM Alpaca Driver v{__version__}")
    logger.info("=" * 60)

    panel, simulator = build_panel(config)

    if args.connect:
        try:
            panel.connect()
        except FlatPanelException as e:
            # Not fatal: a client can connect later
            logger.error(f"Initial connect failed: {e}")

    app = create_app(config, panel, simulator=simulator)

    server_port = config.server.port

    if config.server.discovery_enabled:
        discovery_server = DiscoveryServer(server_port)
        try:
            discovery_server.start()
        except OSError as e:
            logger.error(f"Failed to start discovery server: {e}")
            logger.warning("Continuing without discovery (NINA won't auto-detect)")
            discovery_server = None

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info(f"Starting Alpaca API server on {config.server.ip}:{server_port}")
    logger.info("Press Ctrl+C to stop")

    try:
        uvicorn.run(
            app,
            host=config.server.ip,
            port=server_port,
            log_level=config.logging.level.lower(),
            access_log=False  # Disable noisy HTTP access logs
        )
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    except Exception as e:
        logger.error(f"Server error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        if discovery_server:
            discovery_server.stop()
        if panel:
            panel.disconnect()

        logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
