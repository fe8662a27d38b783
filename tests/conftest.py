"""
Shared fixtures: fake serial handles and a synchronizer wired to them.
"""

from typing import List, Optional

import pytest
from serial import SerialException, SerialTimeoutException

from flatpanel_alpaca.config.models import SerialConfig
from flatpanel_alpaca.panel.synchronizer import StateSynchronizer
from flatpanel_alpaca.protocol.interface import PortLocatorInterface
from flatpanel_alpaca.protocol.transport import SerialTransport


class FakeSerial:
    """pyserial stand-in that records writes and serves queued input."""

    def __init__(self, port: str = "/dev/ttyUSB0"):
        self.port = port
        self.is_open = True
        self.written = bytearray()
        self._incoming = bytearray()

        self.baudrate = None
        self.bytesize = None
        self.parity = None
        self.stopbits = None
        self.xonxoff = None
        self.rtscts = None
        self.dsrdtr = None
        self.timeout = None
        self.write_timeout = None

        self.fail_writes = False
        self.short_writes = False
        self.fail_reads = False
        self.poll_calls = 0
        self.close_calls = 0

    def feed(self, data: bytes) -> None:
        """Queue bytes as if the firmware had sent them."""
        self._incoming += data

    @property
    def in_waiting(self) -> int:
        self.poll_calls += 1
        if self.fail_reads:
            raise SerialException("device reports readiness to read but returned no data")
        return len(self._incoming)

    def read(self, size: int = 1) -> bytes:
        data = bytes(self._incoming[:size])
        del self._incoming[:size]
        return data

    def write(self, data: bytes) -> int:
        if self.fail_writes:
            raise SerialTimeoutException("Write timeout")
        if self.short_writes:
            half = len(data) // 2
            self.written += data[:half]
            return half
        self.written += data
        return len(data)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        self.close_calls += 1
        self.is_open = False


class StaticLocator(PortLocatorInterface):
    """Locator returning a fixed handle (or nothing)."""

    def __init__(self, handle: Optional[FakeSerial]):
        self.handle = handle
        self.calls = 0

    def locate(self):
        self.calls += 1
        if self.handle is None:
            return None
        return self.handle.port, self.handle


class RecordingListener:
    def __init__(self):
        self.states: List = []

    def __call__(self, state) -> None:
        self.states.append(state)


@pytest.fixture
def fake_serial() -> FakeSerial:
    return FakeSerial()


@pytest.fixture
def panel(fake_serial) -> StateSynchronizer:
    """Disconnected synchronizer that will find fake_serial."""
    return StateSynchronizer(StaticLocator(fake_serial), SerialTransport(SerialConfig()))


@pytest.fixture
def connected_panel(panel) -> StateSynchronizer:
    panel.connect()
    return panel
