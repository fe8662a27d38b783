"""
Command encoding for the flat panel line protocol.

Every command is a bare ASCII token line; the firmware acts on the line
once the terminator arrives.
"""

import math
from typing import Union

from flatpanel_alpaca.utils.exceptions import InvalidValueError


MIN_BRIGHTNESS = 0
MAX_BRIGHTNESS = 4095

CMD_OPEN = "OPEN"
CMD_CLOSE = "CLOSE"
CMD_HALT = "HALT"
CMD_BRIGHTNESS = "BRIGHTNESS"


def clamp_brightness(value: Union[int, float]) -> int:
    """
    Clamp a brightness request into the range the firmware accepts.

    Fractional values are truncated toward zero before clamping.

    Raises:
        InvalidValueError: If value is NaN or infinite.

    Example:
        >>> clamp_brightness(9000)
        4095
        >>> clamp_brightness(-50)
        0
    """
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidValueError(f"Brightness must be a finite number, got {value}")

    level = int(value)
    return max(MIN_BRIGHTNESS, min(level, MAX_BRIGHTNESS))


def encode_open() -> str:
    return CMD_OPEN


def encode_close() -> str:
    return CMD_CLOSE


def encode_halt() -> str:
    """Stop the cover motor wherever it is."""
    return CMD_HALT


def encode_brightness(value: Union[int, float]) -> str:
    """
    Encode a brightness command.

    Out-of-range values are clamped, never rejected, so no out-of-range
    level is ever transmitted.

    Example:
        >>> encode_brightness(2048)
        'BRIGHTNESS 2048'
        >>> encode_brightness(5000)
        'BRIGHTNESS 4095'
    """
    return f"{CMD_BRIGHTNESS} {clamp_brightness(value)}"


def to_wire(command: str, terminator: str = "\n") -> bytes:
    """
    Render a command line as the bytes sent on the serial port.

    Args:
        command: Command token line (e.g., "OPEN").
        terminator: Line terminator expected by the firmware.

    Returns:
        ASCII bytes.
    """
    return (command + terminator).encode("ascii")
