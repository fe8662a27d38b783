"""
Serial device enumeration and discovery.

The panel's microcontroller shows up as a USB-serial node (/dev/ttyUSB*).
Candidates are tried in enumeration order and the first one that opens is
used.
"""

import glob
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import serial
import serial.tools.list_ports
from serial import SerialException

from flatpanel_alpaca.protocol.interface import PortLocatorInterface


logger = logging.getLogger(__name__)

DEFAULT_PORT_PATTERN = "/dev/ttyUSB*"


@dataclass
class PortInfo:
    """Information about an available serial port."""

    name: str
    description: str
    hardware_id: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "description": self.description,
            "hardware_id": self.hardware_id,
        }


def list_available_ports() -> List[PortInfo]:
    """
    List all serial ports known to the operating system.

    Returns:
        List of PortInfo objects sorted by device name.
    """
    ports = [
        PortInfo(
            name=port.device,
            description=port.description or "Unknown",
            hardware_id=port.hwid or "",
        )
        for port in serial.tools.list_ports.comports()
    ]
    ports.sort(key=lambda p: p.name)

    logger.debug(f"Found {len(ports)} serial ports")
    return ports


def open_nonblocking(port_name: str) -> serial.Serial:
    """
    Open a serial device without blocking.

    pyserial opens POSIX devices with O_RDWR | O_NOCTTY | O_NONBLOCK, so
    the device never becomes our controlling terminal and reads return
    immediately (timeout=0).

    Raises:
        SerialException: If the device cannot be opened.
    """
    return serial.Serial(port=port_name, timeout=0)


class PortLocator(PortLocatorInterface):
    """
    Find the panel by opening glob candidates in enumeration order.

    No preference is imposed beyond enumeration order (and the optional
    explicitly configured port, which is tried first).
    """

    def __init__(
        self,
        pattern: str = DEFAULT_PORT_PATTERN,
        preferred_port: str = "",
        opener: Optional[Callable[[str], serial.Serial]] = None,
        enumerate_paths: Callable[[str], List[str]] = glob.glob,
    ):
        """
        Initialize locator.

        Args:
            pattern: Glob pattern for candidate device paths.
            preferred_port: Device path to try before the glob candidates.
            opener: Opens one device path; raises on failure.
            enumerate_paths: Expands the glob pattern.
        """
        self.pattern = pattern
        self.preferred_port = preferred_port
        self._opener = opener or open_nonblocking
        self._enumerate_paths = enumerate_paths

    def candidates(self) -> List[str]:
        """Device paths to try, in order."""
        paths = list(self._enumerate_paths(self.pattern))
        if self.preferred_port:
            paths = [self.preferred_port] + [p for p in paths if p != self.preferred_port]
        return paths

    def locate(self) -> Optional[Tuple[str, serial.Serial]]:
        """
        Open the first candidate that opens.

        Returns:
            (path, handle) for the first successful open, or None.
        """
        paths = self.candidates()
        if not paths:
            logger.warning(f"No serial devices match {self.pattern}")
            return None

        for path in paths:
            logger.info(f"Trying port: {path}")
            try:
                handle = self._opener(path)
            except (SerialException, OSError, ValueError) as e:
                logger.debug(f"Skipping {path}: {e}")
                continue

            return path, handle

        logger.warning(f"None of {len(paths)} candidate port(s) could be opened")
        return None
