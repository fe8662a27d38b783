"""
Serial traffic recorder for the /panel/protocol view.

Keeps the most recent commands sent to the panel and the raw chunks read
back from it, so a user can see exactly what the firmware said.
"""

import threading
from collections import Counter, deque
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import List, Optional


TX = "TX"
RX = "RX"
ERR = "ERR"


@dataclass(frozen=True)
class TrafficRecord:
    """One entry of serial traffic."""
    timestamp: str
    direction: str  # TX, RX or ERR
    text: str
    raw_hex: str
    error: Optional[str] = None


def _printable(data: bytes) -> str:
    """Render bytes as text, escaping control characters."""
    return "".join(chr(b) if 32 <= b < 127 else f"[{b:02X}]" for b in data)


class ProtocolLogger:
    """
    Bounded, thread-safe history of serial traffic.

    The oldest entries fall off once capacity is reached; the per-direction
    counters keep counting until clear().
    """

    DEFAULT_CAPACITY = 500

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        self._records: deque = deque(maxlen=capacity)
        self._counts: Counter = Counter()
        self._lock = threading.Lock()

    def _record(self, direction: str, data: bytes, error: Optional[str] = None) -> None:
        record = TrafficRecord(
            timestamp=datetime.now().isoformat(timespec="milliseconds"),
            direction=direction,
            text=_printable(data),
            raw_hex=data.hex().upper(),
            error=error,
        )
        with self._lock:
            self._records.append(record)
            self._counts[direction] += 1

    def log_tx(self, data: bytes) -> None:
        """Record a command line written to the panel."""
        self._record(TX, data)

    def log_rx(self, data: bytes) -> None:
        """Record a chunk read from the panel (may hold partial lines)."""
        self._record(RX, data)

    def log_error(self, error_msg: str, data: bytes = b"") -> None:
        self._record(ERR, data, error=error_msg)

    def get_messages(self, limit: int = 100) -> List[dict]:
        """Most recent records, oldest first."""
        with self._lock:
            records = list(self._records)[-limit:]
        return [asdict(r) for r in records]

    def get_stats(self) -> dict:
        with self._lock:
            return {
                "total_messages": len(self._records),
                "tx_count": self._counts[TX],
                "rx_count": self._counts[RX],
                "error_count": self._counts[ERR],
                "max_messages": self._records.maxlen,
            }

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._counts.clear()


_protocol_logger: Optional[ProtocolLogger] = None


def get_protocol_logger() -> ProtocolLogger:
    """Process-wide traffic recorder, created on first use."""
    global _protocol_logger
    if _protocol_logger is None:
        _protocol_logger = ProtocolLogger()
    return _protocol_logger
