"""
Device state model for the flat panel cover.
"""

from dataclasses import dataclass
from enum import Enum


class CoverState(Enum):
    """Cover position as reported by the firmware.

    Values are the ASCOM CoverStatus codes.
    """
    CLOSED = 1
    MOVING = 2
    OPEN = 3
    UNKNOWN = 4


class CalibratorState(Enum):
    """Light panel state (ASCOM CalibratorStatus codes)."""
    OFF = 1
    READY = 3
    UNKNOWN = 4


STATUS_DISCONNECTED = "Disconnected"

_STATUS_MESSAGES = {
    CoverState.UNKNOWN: "Cover State Unknown",
    CoverState.OPEN: "Cover Open",
    CoverState.CLOSED: "Cover Closed",
    CoverState.MOVING: "Cover Moving...",
}


@dataclass(frozen=True)
class DeviceState:
    """Snapshot of everything the driver knows about the panel."""

    connected: bool = False
    cover: CoverState = CoverState.UNKNOWN
    brightness: int = 0
    port: str = ""

    @property
    def status_message(self) -> str:
        """Human-readable status derived from the cover state."""
        if not self.connected:
            return STATUS_DISCONNECTED
        return _STATUS_MESSAGES[self.cover]

    @property
    def calibrator(self) -> CalibratorState:
        if not self.connected:
            return CalibratorState.UNKNOWN
        return CalibratorState.READY if self.brightness > 0 else CalibratorState.OFF

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "connected": self.connected,
            "port": self.port,
            "cover_state": self.cover.name,
            "brightness": self.brightness,
            "calibrator_state": self.calibrator.name,
            "status": self.status_message,
        }
