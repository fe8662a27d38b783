"""
Mock serial device for the flat panel simulator.

Emulates the panel firmware behind a pyserial-like handle so the whole
driver (transport, parser, synchronizer) runs without hardware.
"""

import logging
import time
from typing import Callable, Optional, Tuple

from serial import SerialException

from flatpanel_alpaca.config.models import SimulatorConfig
from flatpanel_alpaca.protocol.commands import MAX_BRIGHTNESS, MIN_BRIGHTNESS
from flatpanel_alpaca.protocol.interface import PortLocatorInterface


logger = logging.getLogger(__name__)

SIMULATOR_PORT_NAME = "sim://flatpanel"


class MockPanelSerial:
    """
    Simulated panel firmware.

    Commands written to the handle are answered with status lines in the
    firmware's format. Cover movement completes movement_seconds after the
    command; time is evaluated whenever the handle is read, so no
    background thread is needed.
    """

    def __init__(self, config: SimulatorConfig, clock: Callable[[], float] = time.monotonic):
        """
        Initialize simulator.

        Args:
            config: Simulator configuration.
            clock: Monotonic time source in seconds.
        """
        self.config = config
        self._clock = clock

        # Line settings, accepted and ignored
        self.baudrate = 9600
        self.bytesize = 8
        self.parity = "N"
        self.stopbits = 1
        self.xonxoff = False
        self.rtscts = False
        self.dsrdtr = False
        self.timeout = 0
        self.write_timeout = None

        self.is_open = False

        # Virtual hardware state
        self._cover = config.initial_state
        self._brightness = config.initial_brightness
        self._motion: Optional[Tuple[str, float]] = None

        self._rx_pending = b""
        self._output = bytearray()

        logger.info("MockPanelSerial initialized")

    @property
    def cover(self) -> str:
        """Simulated cover position: OPEN, CLOSED, MOVING or HALTED."""
        self._advance()
        return "MOVING" if self._motion else self._cover

    @property
    def brightness(self) -> int:
        return self._brightness

    def open(self) -> None:
        """Power on: the firmware announces its state on every open."""
        self.is_open = True
        self._rx_pending = b""
        self._output.clear()
        self._emit(f"STATE {self.cover}")
        self._emit(f"BRIGHTNESS {self._brightness}")
        logger.info("Simulator opened")

    def close(self) -> None:
        self.is_open = False

    def emit_line(self, line: str) -> None:
        """Queue an arbitrary line, e.g. to test noise tolerance."""
        self._emit(line)

    @property
    def in_waiting(self) -> int:
        self._check_open()
        self._advance()
        return len(self._output)

    def read(self, size: int = 1) -> bytes:
        self._check_open()
        self._advance()
        data = bytes(self._output[:size])
        del self._output[:size]
        return data

    def write(self, data: bytes) -> int:
        self._check_open()
        self._rx_pending += data

        *lines, self._rx_pending = self._rx_pending.replace(b"\r", b"\n").split(b"\n")
        for raw in lines:
            line = raw.decode("ascii", errors="replace").strip()
            if line:
                self._handle(line)

        return len(data)

    def flush(self) -> None:
        self._check_open()

    def _check_open(self) -> None:
        if not self.is_open:
            raise SerialException("Attempting to use a port that is not open")

    def _emit(self, line: str) -> None:
        self._output += (line + "\r\n").encode("ascii")

    def _advance(self) -> None:
        if self._motion is None:
            return
        target, done_at = self._motion
        if self._clock() >= done_at:
            self._motion = None
            self._cover = target
            self._emit(f"STATE {target}")
            logger.info(f"[SIMULATOR] Cover {target.lower()}")

    def _handle(self, line: str) -> None:
        logger.debug(f"[SIMULATOR] RX command: {line}")

        if line == "OPEN":
            self._start_motion("OPEN")
        elif line == "CLOSE":
            self._start_motion("CLOSED")
        elif line == "HALT":
            if self._motion is not None:
                # Stopped part way; the firmware has no state line for this
                self._motion = None
                self._cover = "HALTED"
            self._emit("HALTED")
        elif line.startswith("BRIGHTNESS "):
            try:
                value = int(line[len("BRIGHTNESS "):])
            except ValueError:
                self._emit(f"ERR BAD VALUE {line}")
                return
            self._brightness = max(MIN_BRIGHTNESS, min(value, MAX_BRIGHTNESS))
            self._emit(f"BRIGHTNESS {self._brightness}")
        else:
            self._emit(f"ERR UNKNOWN COMMAND {line}")

    def _start_motion(self, target: str) -> None:
        self._advance()
        if self._motion is None and self._cover == target:
            self._emit(f"STATE {target}")
            return

        self._motion = (target, self._clock() + self.config.movement_seconds)
        self._emit("STATE MOVING")
        logger.info(f"[SIMULATOR] Cover moving to {target}")


class SimulatedPortLocator(PortLocatorInterface):
    """Locator that always 'finds' the simulated panel."""

    def __init__(self, config: SimulatorConfig, clock: Callable[[], float] = time.monotonic):
        self.device = MockPanelSerial(config, clock)

    def locate(self) -> Tuple[str, MockPanelSerial]:
        self.device.open()
        return SIMULATOR_PORT_NAME, self.device
