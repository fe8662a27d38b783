"""
Status line decoding for the flat panel line protocol.

The firmware reports its state asynchronously with lines such as
"STATE OPEN" or "BRIGHTNESS 2048". Lines are matched by substring so
that surrounding chatter (debug prints, partial echoes) is tolerated.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Union

from flatpanel_alpaca.panel.state import CoverState


logger = logging.getLogger(__name__)


# Checked in this order; the first match wins
STATE_PATTERNS = (
    ("STATE OPEN", CoverState.OPEN),
    ("STATE CLOSED", CoverState.CLOSED),
    ("STATE MOVING", CoverState.MOVING),
)

BRIGHTNESS_TOKEN = "BRIGHTNESS"
# The value starts right after "BRIGHTNESS "
BRIGHTNESS_VALUE_OFFSET = len(BRIGHTNESS_TOKEN) + 1

_LEADING_INT = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")
_LINE_BREAK = re.compile(rb"\r\n|\r|\n")


@dataclass(frozen=True)
class CoverStateChanged:
    """The firmware reported a new cover state."""
    state: CoverState


@dataclass(frozen=True)
class BrightnessReported:
    """The firmware reported its current brightness (raw, unclamped)."""
    value: int


Event = Union[CoverStateChanged, BrightnessReported]


def parse_int_prefix(text: str) -> int:
    """
    Best-effort integer parse of the start of text.

    Leading whitespace and a sign are accepted; parsing stops at the first
    non-digit. Text with no leading digits parses as 0.

    Example:
        >>> parse_int_prefix(" 2048 ok")
        2048
        >>> parse_int_prefix("abc")
        0
    """
    match = _LEADING_INT.match(text)
    if match is None:
        return 0
    return int(match.group(1))


def parse_line(line: str) -> Optional[Event]:
    """
    Decode one status line.

    Args:
        line: Status line text, with or without its terminator.

    Returns:
        The event the line reports, or None if the line is not recognized.
    """
    for token, state in STATE_PATTERNS:
        if token in line:
            return CoverStateChanged(state)

    index = line.find(BRIGHTNESS_TOKEN)
    if index >= 0:
        start = index + BRIGHTNESS_VALUE_OFFSET
        value_text = line[start:] if start <= len(line) else ""
        return BrightnessReported(parse_int_prefix(value_text))

    return None


class LineAssembler:
    """
    Split a serial byte stream into complete lines.

    Bytes after the last terminator are held until the rest of the line
    arrives on a later read. The held tail is bounded; an over-long tail
    is discarded together with the rest of its line, up to the next
    terminator.
    """

    def __init__(self, max_line_length: int = 128):
        self._max_line_length = max_line_length
        self._pending = b""
        self._skipping = False

    @property
    def pending(self) -> bytes:
        """Bytes received but not yet terminated."""
        return self._pending

    def feed(self, data: bytes) -> List[str]:
        """
        Add received bytes and return every line they complete.

        Empty lines are dropped. Lines are decoded as ASCII with
        undecodable bytes replaced.
        """
        parts = _LINE_BREAK.split(self._pending + data)
        self._pending = parts.pop()

        if self._skipping and parts:
            # Tail of a line whose head was already discarded
            parts.pop(0)
            self._skipping = False

        if len(self._pending) > self._max_line_length:
            logger.warning(
                f"Discarding {len(self._pending)} unterminated bytes (limit {self._max_line_length})"
            )
            self._pending = b""
            self._skipping = True

        lines = []
        for raw in parts:
            text = raw.decode("ascii", errors="replace").strip()
            if text:
                lines.append(text)
        return lines

    def reset(self) -> None:
        self._pending = b""
        self._skipping = False


class ResponseParser:
    """Turn raw serial reads into protocol events."""

    def __init__(self, max_line_length: int = 128):
        self._assembler = LineAssembler(max_line_length)

    def feed(self, data: bytes) -> List[Event]:
        """
        Decode all complete lines in data.

        Unrecognized lines are logged at DEBUG and skipped.

        Returns:
            Events in the order their lines arrived.
        """
        events = []
        for line in self._assembler.feed(data):
            event = parse_line(line)
            if event is None:
                logger.debug(f"Ignoring unrecognized line: {line!r}")
                continue
            events.append(event)
        return events

    def reset(self) -> None:
        """Forget any partially received line."""
        self._assembler.reset()
