"""
Abstract interface for serial device discovery.

This interface allows transparent substitution between real hardware and simulator.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple


class PortLocatorInterface(ABC):
    """Abstract base class for finding and opening the panel's serial device."""

    @abstractmethod
    def locate(self) -> Optional[Tuple[str, Any]]:
        """
        Find the panel's serial device and open it.

        Returns:
            Tuple of (device path, open pyserial-compatible handle), or None
            if no candidate could be opened. The caller owns the handle.
        """
        pass
