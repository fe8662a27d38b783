"""
Flat panel state synchronizer (Layer 2 - State Machine).

Holds the authoritative in-memory device state, reconciles it with the
status lines the firmware sends, and turns user requests into protocol
commands.

All entry points are called from one event loop (poll ticks and API
handlers), so there is exactly one mutator and no locking.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Mapping, Optional, Union

from flatpanel_alpaca.panel.state import CoverState, DeviceState
from flatpanel_alpaca.protocol import commands
from flatpanel_alpaca.protocol.interface import PortLocatorInterface
from flatpanel_alpaca.protocol.parser import (
    BrightnessReported,
    CoverStateChanged,
    Event,
    ResponseParser,
)
from flatpanel_alpaca.protocol.transport import SerialTransport
from flatpanel_alpaca.utils.exceptions import (
    InvalidValueError,
    NotConnectedError,
    PortNotFoundError,
    TransportReadError,
    TransportWriteError,
)


logger = logging.getLogger(__name__)

# Element names of the exclusive cover switch
SWITCH_OPEN = "OPEN"
SWITCH_CLOSE = "CLOSE"


class CommandKind(Enum):
    OPEN = "open"
    CLOSE = "close"
    HALT = "halt"
    BRIGHTNESS = "brightness"


@dataclass(frozen=True)
class PanelCommand:
    """A user request routed to the panel."""
    kind: CommandKind
    value: Optional[Union[int, float]] = None


StateListener = Callable[[DeviceState], None]


class StateSynchronizer:
    """
    Connection state machine and device state owner.

    Disconnected -> Connected on a successful locate() + configure().
    Connected -> Disconnected on disconnect() or a fatal read error.
    """

    def __init__(
        self,
        locator: PortLocatorInterface,
        transport: SerialTransport,
        parser: Optional[ResponseParser] = None,
        line_terminator: str = "\n",
    ):
        """
        Initialize synchronizer.

        Args:
            locator: Finds and opens the serial device (real or simulator).
            transport: Serial transport that will own the opened handle.
            parser: Status line parser. Optional.
            line_terminator: Terminator appended to outbound commands.
        """
        self.locator = locator
        self.transport = transport
        self._parser = parser or ResponseParser()
        self._line_terminator = line_terminator

        # State
        self._connected = False
        self._cover = CoverState.UNKNOWN
        self._brightness = 0

        self._listeners: List[StateListener] = []

        logger.info("StateSynchronizer initialized")

    @property
    def connected(self) -> bool:
        """Check if the panel is connected."""
        return self._connected and self.transport.is_open

    @property
    def cover_state(self) -> CoverState:
        return self._cover

    @property
    def brightness(self) -> int:
        return self._brightness

    @property
    def status_message(self) -> str:
        return self.snapshot().status_message

    def snapshot(self) -> DeviceState:
        """Immutable copy of the current device state."""
        return DeviceState(
            connected=self.connected,
            cover=self._cover,
            brightness=self._brightness,
            port=self.transport.port_name,
        )

    def add_listener(self, listener: StateListener) -> None:
        """Register a callback that receives every published state."""
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _publish(self) -> None:
        state = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"State listener {listener!r} failed: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """
        Find the panel's serial device and start talking to it.

        Cover state starts as Unknown; it is learned from the next status
        line the firmware sends.

        Raises:
            PortNotFoundError: If no candidate device could be opened.
            DriverError: If the opened device could not be configured.
        """
        if self.connected:
            logger.warning("Already connected")
            return

        located = self.locator.locate()
        if located is None:
            logger.error("No valid serial port found for the flat panel")
            raise PortNotFoundError("No valid serial port found for the flat panel")

        port_name, handle = located
        self.transport.configure(port_name, handle)

        self._parser.reset()
        self._cover = CoverState.UNKNOWN
        self._brightness = 0
        self._connected = True

        logger.info(f"Connected to flat panel at {port_name}")
        self._publish()

    def disconnect(self) -> None:
        """
        Stop talking to the panel and release the serial device.

        Safe to call at any time, including when already disconnected.
        """
        was_connected = self._connected
        self._connected = False
        self.transport.close()

        if was_connected:
            logger.info("Flat panel disconnected")
            self._publish()

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def tick(self) -> List[Event]:
        """
        Run one poll cycle.

        Reads whatever the firmware has sent since the last tick, applies
        each recognized status line in arrival order and publishes the
        result. Does nothing (not even a read) while disconnected.

        Returns:
            The events applied during this tick.
        """
        if not self.connected:
            return []

        try:
            data = self.transport.read_available()
        except TransportReadError as e:
            logger.error(f"Lost connection to flat panel: {e}")
            self.disconnect()
            return []

        if not data:
            return []

        events = self._parser.feed(data)
        for event in events:
            self._apply(event)

        self._publish()
        return events

    def _apply(self, event: Event) -> None:
        if isinstance(event, CoverStateChanged):
            if event.state != self._cover:
                logger.info(f"Cover state: {self._cover.name} -> {event.state.name}")
            self._cover = event.state
        elif isinstance(event, BrightnessReported):
            level = commands.clamp_brightness(event.value)
            if level != event.value:
                logger.warning(f"Firmware reported brightness {event.value}, clamped to {level}")
            self._brightness = level

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _require_connected(self, action: str) -> None:
        if not self.connected:
            raise NotConnectedError(f"Cannot execute {action}, flat panel not connected")

    def _send(self, command: str) -> None:
        if not self.transport.write(commands.to_wire(command, self._line_terminator)):
            raise TransportWriteError(f"Failed to send {command} to flat panel")
        logger.info(f"Sent command: {command}")

    def open_cover(self) -> None:
        """
        Raises:
            NotConnectedError: If not connected.
            TransportWriteError: If the command was not fully sent.
        """
        self._require_connected("OpenCover")
        self._send(commands.encode_open())

    def close_cover(self) -> None:
        """
        Raises:
            NotConnectedError: If not connected.
            TransportWriteError: If the command was not fully sent.
        """
        self._require_connected("CloseCover")
        self._send(commands.encode_close())

    def halt_cover(self) -> None:
        """
        Stop cover movement.

        The firmware reports no position after a halt, so the cover is
        Unknown until the next status line.
        """
        self._require_connected("HaltCover")
        self._send(commands.encode_halt())

        self._cover = CoverState.UNKNOWN
        self._publish()

    def set_brightness(self, value: Union[int, float]) -> int:
        """
        Send a brightness command and echo the level locally.

        The value is clamped into [0, 4095]. The local level is updated
        only after the command was sent in full; the next BRIGHTNESS status
        line from the firmware overrides it.

        Returns:
            The level actually sent.

        Raises:
            NotConnectedError: If not connected.
            InvalidValueError: If value is not a finite number.
            TransportWriteError: If the command was not fully sent.
        """
        self._require_connected("SetBrightness")

        level = commands.clamp_brightness(value)
        self._send(commands.encode_brightness(level))

        self._brightness = level
        self._publish()
        return level

    def calibrator_on(self, brightness: int) -> None:
        """
        Turn the light panel on at an exact level.

        Unlike set_brightness(), out-of-range values are rejected.

        Raises:
            InvalidValueError: If brightness is outside [0, 4095].
        """
        self._require_connected("CalibratorOn")
        if brightness < commands.MIN_BRIGHTNESS or brightness > commands.MAX_BRIGHTNESS:
            raise InvalidValueError(
                f"Brightness must be between {commands.MIN_BRIGHTNESS} and {commands.MAX_BRIGHTNESS}, got {brightness}"
            )
        self.set_brightness(brightness)

    def calibrator_off(self) -> None:
        self._require_connected("CalibratorOff")
        self.set_brightness(0)

    def handle_cover_switch(self, states: Mapping[str, bool]) -> Optional[str]:
        """
        Apply a write to the exclusive Open/Close switch.

        Only an element switched on is acted upon; OPEN is checked before
        CLOSE. A write that turns everything off sends nothing.

        Args:
            states: Element name -> on/off, e.g. {"OPEN": True, "CLOSE": False}.

        Returns:
            Name of the element that triggered a command, or None.

        Raises:
            NotConnectedError: If not connected.
            TransportWriteError: If the command was not fully sent.
        """
        self._require_connected("CoverSwitch")

        if states.get(SWITCH_OPEN):
            self.open_cover()
            return SWITCH_OPEN
        if states.get(SWITCH_CLOSE):
            self.close_cover()
            return SWITCH_CLOSE

        logger.debug(f"Cover switch write with nothing on: {dict(states)}")
        return None

    def handle_command(self, command: PanelCommand) -> None:
        """
        Dispatch a user command.

        Raises:
            NotConnectedError: If not connected.
            InvalidValueError: If a brightness command carries no value.
            TransportWriteError: If the command was not fully sent.
        """
        if command.kind is CommandKind.OPEN:
            self.open_cover()
        elif command.kind is CommandKind.CLOSE:
            self.close_cover()
        elif command.kind is CommandKind.HALT:
            self.halt_cover()
        elif command.kind is CommandKind.BRIGHTNESS:
            if command.value is None:
                raise InvalidValueError("Brightness command requires a value")
            self.set_brightness(command.value)
        else:
            raise InvalidValueError(f"Unsupported command: {command.kind}")
