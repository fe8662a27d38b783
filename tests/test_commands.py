"""Tests for outbound command encoding."""

import pytest

from flatpanel_alpaca.protocol.commands import (
    clamp_brightness,
    encode_brightness,
    encode_close,
    encode_halt,
    encode_open,
    to_wire,
)
from flatpanel_alpaca.utils.exceptions import InvalidValueError


@pytest.mark.parametrize("requested,expected", [
    (-50, 0),
    (0, 0),
    (2048, 2048),
    (4095, 4095),
    (9000, 4095),
    (12.9, 12),
])
def test_clamp_brightness(requested, expected):
    assert clamp_brightness(requested) == expected


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_clamp_rejects_non_finite(value):
    with pytest.raises(InvalidValueError):
        clamp_brightness(value)


def test_cover_commands():
    assert encode_open() == "OPEN"
    assert encode_close() == "CLOSE"
    assert encode_halt() == "HALT"


def test_brightness_command_is_clamped():
    assert encode_brightness(2048) == "BRIGHTNESS 2048"
    assert encode_brightness(5000) == "BRIGHTNESS 4095"
    assert encode_brightness(-1) == "BRIGHTNESS 0"


def test_to_wire_appends_terminator():
    assert to_wire("OPEN") == b"OPEN\n"
    assert to_wire("CLOSE", "\r\n") == b"CLOSE\r\n"
