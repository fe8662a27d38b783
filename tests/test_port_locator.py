"""Tests for serial device discovery."""

from serial import SerialException

from flatpanel_alpaca.protocol.port_locator import PortLocator

from conftest import FakeSerial


class RecordingOpener:
    def __init__(self, failing=()):
        self.failing = set(failing)
        self.attempts = []
        self.opened = []

    def __call__(self, path):
        self.attempts.append(path)
        if path in self.failing:
            raise SerialException(f"could not open port {path}")
        handle = FakeSerial(path)
        self.opened.append(handle)
        return handle


def _paths(*paths):
    return lambda pattern: list(paths)


def test_skips_device_that_fails_to_open():
    opener = RecordingOpener(failing={"/dev/ttyUSB0"})
    locator = PortLocator(opener=opener, enumerate_paths=_paths("/dev/ttyUSB0", "/dev/ttyUSB1"))

    path, handle = locator.locate()

    assert path == "/dev/ttyUSB1"
    assert handle.port == "/dev/ttyUSB1"
    assert opener.attempts == ["/dev/ttyUSB0", "/dev/ttyUSB1"]
    assert opener.opened == [handle]


def test_stops_at_first_success():
    opener = RecordingOpener()
    locator = PortLocator(opener=opener, enumerate_paths=_paths("/dev/ttyUSB0", "/dev/ttyUSB1"))

    path, _ = locator.locate()

    assert path == "/dev/ttyUSB0"
    assert opener.attempts == ["/dev/ttyUSB0"]


def test_no_candidates():
    opener = RecordingOpener()
    locator = PortLocator(opener=opener, enumerate_paths=_paths())

    assert locator.locate() is None
    assert opener.attempts == []


def test_all_candidates_fail():
    opener = RecordingOpener(failing={"/dev/ttyUSB0"})
    locator = PortLocator(opener=opener, enumerate_paths=_paths("/dev/ttyUSB0"))

    assert locator.locate() is None


def test_preferred_port_tried_first_without_duplicates():
    locator = PortLocator(
        preferred_port="/dev/ttyUSB3",
        opener=RecordingOpener(),
        enumerate_paths=_paths("/dev/ttyUSB0", "/dev/ttyUSB3"),
    )

    assert locator.candidates() == ["/dev/ttyUSB3", "/dev/ttyUSB0"]


def test_glob_pattern_expansion(tmp_path):
    (tmp_path / "ttyUSB0").touch()
    (tmp_path / "ttyACM0").touch()
    opener = RecordingOpener()
    locator = PortLocator(pattern=str(tmp_path / "ttyUSB*"), opener=opener)

    path, _ = locator.locate()

    assert path == str(tmp_path / "ttyUSB0")
