"""
Serial transport for the flat panel.

Owns the open serial handle for the whole lifetime of a connection.
Reads never block: the poll tick takes whatever bytes are already waiting.
"""

import logging
from typing import Optional

import serial
from serial import SerialException

from flatpanel_alpaca.config.models import SerialConfig
from flatpanel_alpaca.protocol.logger import get_protocol_logger
from flatpanel_alpaca.utils.exceptions import DriverError, TransportReadError


logger = logging.getLogger(__name__)


class SerialTransport:
    """
    Byte-level access to the panel's serial line.

    A transport without a handle is simply disconnected; every operation
    is safe in that state.
    """

    # Serial port settings (fixed by the panel firmware)
    DATA_BITS = serial.EIGHTBITS
    PARITY = serial.PARITY_NONE
    STOP_BITS = serial.STOPBITS_ONE

    def __init__(self, config: Optional[SerialConfig] = None):
        """
        Initialize transport.

        Args:
            config: Serial port configuration.
        """
        self._config = config or SerialConfig()
        self._port = None
        self._port_name = ""

    @property
    def port_name(self) -> str:
        """Device path of the open connection ("" when closed)."""
        return self._port_name

    @property
    def is_open(self) -> bool:
        return self._port is not None

    def configure(self, port_name: str, handle) -> None:
        """
        Take ownership of an open handle and set raw 9600 8N1 line mode.

        Flow control is disabled and reads are made non-blocking. On
        failure the handle is closed before the error is raised.

        Args:
            port_name: Device path the handle was opened from.
            handle: Open pyserial-compatible handle.

        Raises:
            DriverError: If the line settings cannot be applied.
        """
        if self._port is not None:
            self.close()

        try:
            handle.baudrate = self._config.baud
            handle.bytesize = self.DATA_BITS
            handle.parity = self.PARITY
            handle.stopbits = self.STOP_BITS
            handle.xonxoff = False
            handle.rtscts = False
            handle.dsrdtr = False
            handle.timeout = 0
            handle.write_timeout = self._config.write_timeout_seconds
        except (SerialException, ValueError, OSError) as e:
            try:
                handle.close()
            except (SerialException, OSError) as close_error:
                logger.warning(f"Error closing {port_name}: {close_error}")
            raise DriverError(f"Failed to configure {port_name}: {e}") from e

        self._port = handle
        self._port_name = port_name
        logger.info(f"Serial port {port_name} configured ({self._config.baud} baud, 8N1, raw)")

    def write(self, data: bytes) -> bool:
        """
        Send the whole buffer.

        Returns:
            True if every byte was written, False otherwise. Partial writes
            are not retried.
        """
        protocol_logger = get_protocol_logger()

        if self._port is None:
            logger.warning("Write attempted on closed transport")
            return False

        try:
            written = self._port.write(data)
            self._port.flush()
        except (SerialException, OSError) as e:
            logger.error(f"Write to {self._port_name} failed: {e}")
            protocol_logger.log_error(f"Write failed: {e}", data)
            return False

        if written != len(data):
            logger.error(f"Short write to {self._port_name}: {written}/{len(data)} bytes")
            protocol_logger.log_error(f"Short write: {written}/{len(data)} bytes", data)
            return False

        protocol_logger.log_tx(data)
        logger.debug(f"TX: {data!r}")
        return True

    def read_available(self, max_len: Optional[int] = None) -> bytes:
        """
        Read bytes that have already arrived, without waiting.

        Args:
            max_len: Upper bound on bytes returned (defaults to read_chunk_bytes).

        Returns:
            Received bytes, or b"" if nothing is waiting.

        Raises:
            TransportReadError: If the device can no longer be read.
        """
        if self._port is None:
            return b""

        limit = max_len if max_len is not None else self._config.read_chunk_bytes

        try:
            waiting = self._port.in_waiting
            if waiting <= 0:
                return b""
            data = self._port.read(min(waiting, limit))
        except (SerialException, OSError) as e:
            get_protocol_logger().log_error(f"Read failed: {e}")
            raise TransportReadError(f"Read from {self._port_name} failed: {e}") from e

        if data:
            get_protocol_logger().log_rx(data)
            logger.debug(f"RX: {data!r}")
        return data

    def close(self) -> None:
        """Release the handle. Closing twice is a no-op."""
        if self._port is None:
            return

        port, self._port = self._port, None
        try:
            port.close()
            logger.info(f"Serial port {self._port_name} closed")
        except (SerialException, OSError) as e:
            logger.warning(f"Error closing {self._port_name}: {e}")
        finally:
            self._port_name = ""
