"""
ASCOM Alpaca UDP discovery protocol.

Listens on UDP port 32227 and answers "alpacadiscovery1" probes with the
HTTP port of this driver.
"""

import json
import logging
import socket
import threading
from typing import Optional


logger = logging.getLogger(__name__)

DISCOVERY_PORT = 32227
DISCOVERY_MESSAGE = b"alpacadiscovery1"


def build_discovery_response(alpaca_port: int) -> bytes:
    """Payload sent back to a discovering client."""
    return json.dumps({"AlpacaPort": alpaca_port}).encode("utf-8")


def is_discovery_probe(data: bytes) -> bool:
    """Probes may carry trailing whitespace or NULs from some clients."""
    return data.rstrip(b"\x00 \r\n") == DISCOVERY_MESSAGE


class DiscoveryServer:
    """UDP discovery responder running in a daemon thread."""

    def __init__(self, alpaca_port: int, bind_ip: str = "0.0.0.0", discovery_port: int = DISCOVERY_PORT):
        """
        Args:
            alpaca_port: HTTP port where the Alpaca API is running.
            bind_ip: Interface to listen on.
            discovery_port: UDP port to listen on.
        """
        self.alpaca_port = alpaca_port
        self._bind = (bind_ip, discovery_port)
        self._socket: Optional[socket.socket] = None
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """
        Bind the socket and start answering probes.

        Raises:
            OSError: If the UDP port cannot be bound.
        """
        if self.running:
            logger.warning("Discovery server already running")
            return

        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind(self._bind)
        except OSError:
            sock.close()
            raise
        sock.settimeout(1.0)  # lets the thread notice stop()

        self._socket = sock
        self._stop.clear()
        self._thread = threading.Thread(target=self._listen, name="alpaca-discovery", daemon=True)
        self._thread.start()

        logger.info(f"Discovery server started on UDP port {self._bind[1]}")

    def stop(self) -> None:
        if self._thread is None:
            return

        self._stop.set()
        self._thread.join(timeout=3.0)
        self._thread = None

        if self._socket:
            self._socket.close()
            self._socket = None

        logger.info("Discovery server stopped")

    def _listen(self) -> None:
        while not self._stop.is_set():
            try:
                data, addr = self._socket.recvfrom(1024)
            except socket.timeout:
                continue
            except OSError as e:
                if not self._stop.is_set():
                    logger.error(f"Error in discovery server: {e}")
                break

            if is_discovery_probe(data):
                self._respond(addr)

    def _respond(self, addr: tuple) -> None:
        try:
            self._socket.sendto(build_discovery_response(self.alpaca_port), addr)
            logger.info(f"Discovery response sent to {addr[0]}:{addr[1]} (AlpacaPort={self.alpaca_port})")
        except OSError as e:
            logger.error(f"Failed to send discovery response: {e}")
