"""Tests for the connection state machine and device state reconciliation."""

import pytest

from flatpanel_alpaca.config.models import SerialConfig
from flatpanel_alpaca.panel.state import CalibratorState, CoverState
from flatpanel_alpaca.panel.synchronizer import CommandKind, PanelCommand, StateSynchronizer
from flatpanel_alpaca.protocol.parser import BrightnessReported, CoverStateChanged
from flatpanel_alpaca.protocol.transport import SerialTransport
from flatpanel_alpaca.utils.exceptions import (
    InvalidValueError,
    NotConnectedError,
    PortNotFoundError,
    TransportWriteError,
)

from conftest import RecordingListener, StaticLocator


def test_initially_disconnected(panel):
    state = panel.snapshot()

    assert not state.connected
    assert state.status_message == "Disconnected"
    assert state.calibrator is CalibratorState.UNKNOWN


def test_connect_without_device():
    panel = StateSynchronizer(StaticLocator(None), SerialTransport(SerialConfig()))

    with pytest.raises(PortNotFoundError):
        panel.connect()
    assert not panel.connected


def test_connect_starts_with_unknown_cover(connected_panel, fake_serial):
    assert connected_panel.connected
    assert connected_panel.cover_state is CoverState.UNKNOWN
    assert connected_panel.brightness == 0
    assert connected_panel.status_message == "Cover State Unknown"
    assert connected_panel.snapshot().port == "/dev/ttyUSB0"
    assert fake_serial.baudrate == 9600


def test_connect_twice_is_noop(panel):
    panel.connect()
    panel.connect()

    assert panel.locator.calls == 1


def test_moving_line_keeps_brightness(connected_panel, fake_serial):
    fake_serial.feed(b"BRIGHTNESS 300\n")
    connected_panel.tick()

    fake_serial.feed(b"STATE MOVING\n")
    events = connected_panel.tick()

    assert events == [CoverStateChanged(CoverState.MOVING)]
    assert connected_panel.cover_state is CoverState.MOVING
    assert connected_panel.status_message == "Cover Moving..."
    assert connected_panel.brightness == 300


def test_lines_applied_in_arrival_order(connected_panel, fake_serial):
    fake_serial.feed(b"STATE MOVING\r\nSTATE OPEN\r\nBRIGHTNESS 12\r\n")
    events = connected_panel.tick()

    assert events == [
        CoverStateChanged(CoverState.MOVING),
        CoverStateChanged(CoverState.OPEN),
        BrightnessReported(12),
    ]
    assert connected_panel.cover_state is CoverState.OPEN
    assert connected_panel.status_message == "Cover Open"
    assert connected_panel.brightness == 12


def test_line_split_across_ticks(connected_panel, fake_serial):
    fake_serial.feed(b"STATE CLO")
    assert connected_panel.tick() == []
    assert connected_panel.cover_state is CoverState.UNKNOWN

    fake_serial.feed(b"SED\n")
    connected_panel.tick()
    assert connected_panel.cover_state is CoverState.CLOSED
    assert connected_panel.status_message == "Cover Closed"


def test_reported_brightness_is_clamped(connected_panel, fake_serial):
    fake_serial.feed(b"BRIGHTNESS 9000\n")
    connected_panel.tick()

    assert connected_panel.brightness == 4095


def test_noise_is_ignored(connected_panel, fake_serial):
    fake_serial.feed(b"hello world\nERR UNKNOWN COMMAND X\n")

    assert connected_panel.tick() == []
    assert connected_panel.cover_state is CoverState.UNKNOWN


def test_set_brightness_clamps_and_echoes(connected_panel, fake_serial):
    level = connected_panel.set_brightness(5000)

    assert level == 4095
    assert bytes(fake_serial.written) == b"BRIGHTNESS 4095\n"
    assert connected_panel.brightness == 4095
    assert connected_panel.snapshot().calibrator is CalibratorState.READY


def test_set_brightness_failed_write(connected_panel, fake_serial):
    fake_serial.feed(b"BRIGHTNESS 100\n")
    connected_panel.tick()
    fake_serial.short_writes = True

    with pytest.raises(TransportWriteError):
        connected_panel.set_brightness(2000)
    assert connected_panel.brightness == 100


def test_firmware_report_overrides_local_echo(connected_panel, fake_serial):
    connected_panel.set_brightness(2000)
    fake_serial.feed(b"BRIGHTNESS 1999\n")
    connected_panel.tick()

    assert connected_panel.brightness == 1999


def test_motion_commands_do_not_change_cover_state(connected_panel, fake_serial):
    connected_panel.open_cover()

    assert bytes(fake_serial.written) == b"OPEN\n"
    assert connected_panel.cover_state is CoverState.UNKNOWN


def test_halt_resets_cover_to_unknown(connected_panel, fake_serial):
    listener = RecordingListener()
    connected_panel.add_listener(listener)
    fake_serial.feed(b"STATE MOVING\n")
    connected_panel.tick()

    connected_panel.halt_cover()

    assert bytes(fake_serial.written) == b"HALT\n"
    assert connected_panel.cover_state is CoverState.UNKNOWN
    assert listener.states[-1].cover is CoverState.UNKNOWN


def test_failed_halt_keeps_cover_state(connected_panel, fake_serial):
    fake_serial.feed(b"STATE MOVING\n")
    connected_panel.tick()
    fake_serial.fail_writes = True

    with pytest.raises(TransportWriteError):
        connected_panel.halt_cover()
    assert connected_panel.cover_state is CoverState.MOVING


@pytest.mark.parametrize("action", [
    lambda p: p.open_cover(),
    lambda p: p.close_cover(),
    lambda p: p.halt_cover(),
    lambda p: p.set_brightness(10),
    lambda p: p.calibrator_off(),
    lambda p: p.handle_cover_switch({"OPEN": True}),
])
def test_commands_require_connection(panel, fake_serial, action):
    with pytest.raises(NotConnectedError):
        action(panel)
    assert fake_serial.written == b""


def test_disconnect_then_tick_does_not_read(connected_panel, fake_serial):
    fake_serial.feed(b"STATE OPEN\n")
    connected_panel.tick()
    connected_panel.disconnect()
    polls = fake_serial.poll_calls

    fake_serial.feed(b"STATE CLOSED\n")
    assert connected_panel.tick() == []

    assert fake_serial.poll_calls == polls
    assert connected_panel.cover_state is CoverState.OPEN
    assert connected_panel.status_message == "Disconnected"
    assert fake_serial.close_calls == 1


def test_disconnect_when_disconnected(panel):
    panel.disconnect()
    assert not panel.connected


def test_reconnect_resets_cover(connected_panel, fake_serial):
    fake_serial.feed(b"STATE OPEN\nBRIGHTNESS 50\n")
    connected_panel.tick()
    connected_panel.disconnect()

    fake_serial.is_open = True
    connected_panel.connect()

    assert connected_panel.cover_state is CoverState.UNKNOWN
    assert connected_panel.brightness == 0


def test_read_error_disconnects(connected_panel, fake_serial):
    fake_serial.fail_reads = True

    assert connected_panel.tick() == []
    assert not connected_panel.connected
    assert fake_serial.close_calls == 1


@pytest.mark.parametrize("states,sent,triggered", [
    ({"OPEN": True, "CLOSE": False}, b"OPEN\n", "OPEN"),
    ({"OPEN": False, "CLOSE": True}, b"CLOSE\n", "CLOSE"),
    ({"OPEN": True, "CLOSE": True}, b"OPEN\n", "OPEN"),
    ({"OPEN": False, "CLOSE": False}, b"", None),
    ({}, b"", None),
])
def test_cover_switch(connected_panel, fake_serial, states, sent, triggered):
    assert connected_panel.handle_cover_switch(states) == triggered
    assert bytes(fake_serial.written) == sent


def test_handle_command_dispatch(connected_panel, fake_serial):
    connected_panel.handle_command(PanelCommand(CommandKind.OPEN))
    connected_panel.handle_command(PanelCommand(CommandKind.CLOSE))
    connected_panel.handle_command(PanelCommand(CommandKind.HALT))
    connected_panel.handle_command(PanelCommand(CommandKind.BRIGHTNESS, 12.7))

    assert bytes(fake_serial.written) == b"OPEN\nCLOSE\nHALT\nBRIGHTNESS 12\n"


def test_brightness_command_requires_value(connected_panel):
    with pytest.raises(InvalidValueError):
        connected_panel.handle_command(PanelCommand(CommandKind.BRIGHTNESS))


def test_calibrator_on_rejects_out_of_range(connected_panel, fake_serial):
    with pytest.raises(InvalidValueError):
        connected_panel.calibrator_on(5000)
    assert fake_serial.written == b""


def test_calibrator_on_and_off(connected_panel, fake_serial):
    connected_panel.calibrator_on(2048)
    assert connected_panel.snapshot().calibrator is CalibratorState.READY

    connected_panel.calibrator_off()
    assert connected_panel.snapshot().calibrator is CalibratorState.OFF
    assert bytes(fake_serial.written) == b"BRIGHTNESS 2048\nBRIGHTNESS 0\n"


def test_custom_line_terminator(fake_serial):
    panel = StateSynchronizer(
        StaticLocator(fake_serial), SerialTransport(SerialConfig()), line_terminator="\r\n"
    )
    panel.connect()
    panel.close_cover()

    assert bytes(fake_serial.written) == b"CLOSE\r\n"


def test_listeners_receive_published_state(connected_panel, fake_serial):
    listener = RecordingListener()
    connected_panel.add_listener(listener)

    connected_panel.tick()
    assert listener.states == []

    fake_serial.feed(b"STATE OPEN\n")
    connected_panel.tick()
    connected_panel.disconnect()

    assert [s.cover for s in listener.states] == [CoverState.OPEN, CoverState.OPEN]
    assert [s.connected for s in listener.states] == [True, False]

    connected_panel.remove_listener(listener)
    connected_panel.disconnect()
    assert len(listener.states) == 2


def test_failing_listener_does_not_break_tick(connected_panel, fake_serial):
    def broken(state):
        raise RuntimeError("boom")

    recorder = RecordingListener()
    connected_panel.add_listener(broken)
    connected_panel.add_listener(recorder)

    fake_serial.feed(b"STATE CLOSED\n")
    connected_panel.tick()

    assert connected_panel.cover_state is CoverState.CLOSED
    assert len(recorder.states) == 1
