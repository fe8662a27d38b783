"""Tests for the serial transport."""

import pytest
import serial

from flatpanel_alpaca.config.models import SerialConfig
from flatpanel_alpaca.protocol.logger import get_protocol_logger
from flatpanel_alpaca.protocol.transport import SerialTransport
from flatpanel_alpaca.utils.exceptions import TransportReadError


@pytest.fixture
def transport(fake_serial):
    transport = SerialTransport(SerialConfig(read_chunk_bytes=8))
    transport.configure(fake_serial.port, fake_serial)
    return transport


def test_configure_sets_raw_line_mode(transport, fake_serial):
    assert fake_serial.baudrate == 9600
    assert fake_serial.bytesize == serial.EIGHTBITS
    assert fake_serial.parity == serial.PARITY_NONE
    assert fake_serial.stopbits == serial.STOPBITS_ONE
    assert fake_serial.xonxoff is False
    assert fake_serial.rtscts is False
    assert fake_serial.dsrdtr is False
    assert fake_serial.timeout == 0
    assert transport.is_open
    assert transport.port_name == "/dev/ttyUSB0"


def test_write_whole_buffer(transport, fake_serial):
    assert transport.write(b"OPEN\n") is True
    assert bytes(fake_serial.written) == b"OPEN\n"


def test_short_write_is_failure(transport, fake_serial):
    fake_serial.short_writes = True
    assert transport.write(b"BRIGHTNESS 10\n") is False


def test_write_error_is_failure(transport, fake_serial):
    fake_serial.fail_writes = True
    assert transport.write(b"OPEN\n") is False


def test_write_when_closed():
    assert SerialTransport().write(b"OPEN\n") is False


def test_read_without_data(transport):
    assert transport.read_available() == b""


def test_read_is_bounded_by_chunk_size(transport, fake_serial):
    fake_serial.feed(b"STATE MOVING\n")

    assert transport.read_available() == b"STATE MO"
    assert transport.read_available() == b"VING\n"
    assert transport.read_available() == b""


def test_read_error_raises(transport, fake_serial):
    fake_serial.fail_reads = True
    with pytest.raises(TransportReadError):
        transport.read_available()


def test_traffic_is_recorded(transport, fake_serial):
    protocol_logger = get_protocol_logger()
    protocol_logger.clear()

    fake_serial.feed(b"STATE OPEN\r\n")
    transport.write(b"CLOSE\n")
    transport.read_available(max_len=64)

    messages = protocol_logger.get_messages(limit=10)
    assert [m["direction"] for m in messages] == ["TX", "RX"]
    assert messages[0]["text"] == "CLOSE[0A]"
    assert protocol_logger.get_stats()["tx_count"] == 1


def test_close_is_idempotent(transport, fake_serial):
    transport.close()
    transport.close()

    assert fake_serial.close_calls == 1
    assert not transport.is_open
    assert transport.port_name == ""
    assert transport.read_available() == b""
