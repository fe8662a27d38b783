"""
Protocol package for flat panel serial communication.
"""

from flatpanel_alpaca.protocol.interface import PortLocatorInterface
from flatpanel_alpaca.protocol.port_locator import (
    PortInfo,
    PortLocator,
    list_available_ports,
)
from flatpanel_alpaca.protocol.transport import SerialTransport
from flatpanel_alpaca.protocol.commands import (
    clamp_brightness,
    encode_brightness,
    encode_close,
    encode_halt,
    encode_open,
    to_wire,
)
from flatpanel_alpaca.protocol.parser import (
    BrightnessReported,
    CoverStateChanged,
    LineAssembler,
    ResponseParser,
    parse_line,
)

__all__ = [
    "PortLocatorInterface",
    "PortInfo",
    "PortLocator",
    "list_available_ports",
    "SerialTransport",
    "clamp_brightness",
    "encode_brightness",
    "encode_close",
    "encode_halt",
    "encode_open",
    "to_wire",
    "BrightnessReported",
    "CoverStateChanged",
    "LineAssembler",
    "ResponseParser",
    "parse_line",
]
