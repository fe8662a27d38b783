"""
Property-style endpoints mirroring the panel's three controls.

Exposes the exclusive Open/Close switch, the brightness number and the
read-only status text the way a device-management client sees them.
Controls are only defined while the panel is connected.
"""

import logging
from fastapi import APIRouter, HTTPException, Query, Request

from flatpanel_alpaca.api.models import (
    BrightnessRequest,
    CoverSwitchRequest,
    NumberProperty,
    PanelProperties,
    SwitchElement,
    SwitchProperty,
    TextProperty,
)
from flatpanel_alpaca.panel.state import CoverState, DeviceState
from flatpanel_alpaca.panel.synchronizer import SWITCH_CLOSE, SWITCH_OPEN, StateSynchronizer
from flatpanel_alpaca.protocol.commands import MAX_BRIGHTNESS, MIN_BRIGHTNESS
from flatpanel_alpaca.protocol.logger import get_protocol_logger
from flatpanel_alpaca.utils.exceptions import (
    DriverError,
    FlatPanelException,
    NotConnectedError,
    PortNotFoundError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/panel", tags=["panel"])


def get_panel(request: Request) -> StateSynchronizer:
    """Get state synchronizer from app.state."""
    panel = getattr(request.app.state, 'panel', None)
    if panel is None:
        raise HTTPException(status_code=503, detail="Flat panel not available")
    return panel


def build_properties(state: DeviceState) -> PanelProperties:
    """Map device state onto the three controls."""
    if not state.connected:
        return PanelProperties(connected=False)

    return PanelProperties(
        connected=True,
        cover=SwitchProperty(elements=[
            SwitchElement(name=SWITCH_OPEN, label="Open Cover", on=state.cover is CoverState.OPEN),
            SwitchElement(name=SWITCH_CLOSE, label="Close Cover", on=state.cover is CoverState.CLOSED),
        ]),
        brightness=NumberProperty(value=state.brightness, min=MIN_BRIGHTNESS, max=MAX_BRIGHTNESS),
        status=TextProperty(value=state.status_message),
    )


def _raise_http(e: FlatPanelException) -> None:
    if isinstance(e, NotConnectedError):
        raise HTTPException(status_code=409, detail=str(e)) from e
    if isinstance(e, PortNotFoundError):
        raise HTTPException(status_code=404, detail=str(e)) from e
    if isinstance(e, DriverError):
        raise HTTPException(status_code=502, detail=str(e)) from e
    raise HTTPException(status_code=400, detail=str(e)) from e


@router.get("/state")
async def get_state(request: Request):
    """Get the driver's view of the panel."""
    return get_panel(request).snapshot().to_dict()


@router.get("/properties", response_model=PanelProperties)
async def get_properties(request: Request):
    return build_properties(get_panel(request).snapshot())


@router.put("/cover", response_model=PanelProperties)
async def put_cover(request: Request, body: CoverSwitchRequest):
    """Write the exclusive cover switch. Only an element switched on acts."""
    panel = get_panel(request)
    try:
        triggered = panel.handle_cover_switch({SWITCH_OPEN: body.OPEN, SWITCH_CLOSE: body.CLOSE})
    except FlatPanelException as e:
        logger.error(f"Cover switch write failed: {e}")
        _raise_http(e)

    logger.debug(f"Cover switch write triggered: {triggered}")
    return build_properties(panel.snapshot())


@router.put("/brightness", response_model=PanelProperties)
async def put_brightness(request: Request, body: BrightnessRequest):
    """Write the brightness number. Out-of-range values are clamped."""
    panel = get_panel(request)
    try:
        panel.set_brightness(body.value)
    except FlatPanelException as e:
        logger.error(f"Brightness write failed: {e}")
        _raise_http(e)

    return build_properties(panel.snapshot())


@router.post("/connect")
async def connect(request: Request):
    """Discover the serial device and connect."""
    panel = get_panel(request)
    try:
        panel.connect()
    except FlatPanelException as e:
        logger.error(f"Connect failed: {e}")
        _raise_http(e)
    return panel.snapshot().to_dict()


@router.post("/disconnect")
async def disconnect(request: Request):
    panel = get_panel(request)
    panel.disconnect()
    return panel.snapshot().to_dict()


@router.get("/protocol")
async def get_protocol_log(limit: int = Query(100, ge=1, le=500)):
    """Recent TX/RX traffic on the serial line."""
    protocol_logger = get_protocol_logger()
    return {
        "messages": protocol_logger.get_messages(limit=limit),
        "stats": protocol_logger.get_stats(),
    }


@router.delete("/protocol")
async def clear_protocol_log():
    get_protocol_logger().clear()
    return {"cleared": True}
