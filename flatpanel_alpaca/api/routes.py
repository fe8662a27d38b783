"""
ASCOM Alpaca API endpoints for the CoverCalibrator device.
"""

import logging
from fastapi import APIRouter, Depends, Form, Query, Request

from flatpanel_alpaca import __version__
from flatpanel_alpaca.api.models import AlpacaResponse, get_next_transaction_id, make_response
from flatpanel_alpaca.panel.state import CoverState
from flatpanel_alpaca.panel.synchronizer import StateSynchronizer
from flatpanel_alpaca.protocol.commands import MAX_BRIGHTNESS
from flatpanel_alpaca.utils.exceptions import NotConnectedError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/covercalibrator/0", tags=["covercalibrator"])

INTERFACE_VERSION = 1


def get_panel(request: Request) -> StateSynchronizer:
    """Dependency to get the state synchronizer from app.state."""
    panel = getattr(request.app.state, 'panel', None)
    if panel is None:
        raise RuntimeError("Flat panel not initialized")
    return panel


def get_client_id(ClientTransactionID: int = Query(0)) -> int:
    """Extract client transaction ID from query params."""
    return ClientTransactionID


def get_client_id_form(ClientTransactionID: int = Form(0)) -> int:
    """Extract client transaction ID from form data."""
    return ClientTransactionID


def _connected_state(panel: StateSynchronizer):
    state = panel.snapshot()
    if not state.connected:
        raise NotConnectedError("Flat panel not connected")
    return state


# GET endpoints

@router.get("/connected", response_model=AlpacaResponse)
async def get_connected(
    client_id: int = Depends(get_client_id),
    panel: StateSynchronizer = Depends(get_panel)
):
    """Get connection status."""
    return make_response(panel.connected, client_id, get_next_transaction_id())


@router.get("/coverstate", response_model=AlpacaResponse)
async def get_coverstate(
    client_id: int = Depends(get_client_id),
    panel: StateSynchronizer = Depends(get_panel)
):
    """Get cover state as an ASCOM CoverStatus code."""
    try:
        value = _connected_state(panel).cover.value
        logger.debug(f"GET /coverstate -> {value}")
        return make_response(value, client_id, get_next_transaction_id())
    except Exception as e:
        logger.error(f"Error in /coverstate: {e}")
        return make_response(None, client_id, get_next_transaction_id(), e)


@router.get("/covermoving", response_model=AlpacaResponse)
async def get_covermoving(
    client_id: int = Depends(get_client_id),
    panel: StateSynchronizer = Depends(get_panel)
):
    """Check if the cover is moving."""
    try:
        value = _connected_state(panel).cover is CoverState.MOVING
        return make_response(value, client_id, get_next_transaction_id())
    except Exception as e:
        logger.error(f"Error in /covermoving: {e}")
        return make_response(None, client_id, get_next_transaction_id(), e)


@router.get("/brightness", response_model=AlpacaResponse)
async def get_brightness(
    client_id: int = Depends(get_client_id),
    panel: StateSynchronizer = Depends(get_panel)
):
    """Get current brightness level."""
    try:
        value = _connected_state(panel).brightness
        return make_response(value, client_id, get_next_transaction_id())
    except Exception as e:
        logger.error(f"Error in /brightness: {e}")
        return make_response(None, client_id, get_next_transaction_id(), e)


@router.get("/maxbrightness", response_model=AlpacaResponse)
async def get_maxbrightness(
    client_id: int = Depends(get_client_id)
):
    """Get highest brightness level."""
    return make_response(MAX_BRIGHTNESS, client_id, get_next_transaction_id())


@router.get("/calibratorstate", response_model=AlpacaResponse)
async def get_calibratorstate(
    client_id: int = Depends(get_client_id),
    panel: StateSynchronizer = Depends(get_panel)
):
    """Get light panel state as an ASCOM CalibratorStatus code."""
    try:
        value = _connected_state(panel).calibrator.value
        return make_response(value, client_id, get_next_transaction_id())
    except Exception as e:
        logger.error(f"Error in /calibratorstate: {e}")
        return make_response(None, client_id, get_next_transaction_id(), e)


@router.get("/calibratorchanging", response_model=AlpacaResponse)
async def get_calibratorchanging(
    client_id: int = Depends(get_client_id),
    panel: StateSynchronizer = Depends(get_panel)
):
    """The panel light settles immediately (always False)."""
    try:
        _connected_state(panel)
        return make_response(False, client_id, get_next_transaction_id())
    except Exception as e:
        return make_response(None, client_id, get_next_transaction_id(), e)


@router.get("/interfaceversion", response_model=AlpacaResponse)
async def get_interfaceversion(
    client_id: int = Depends(get_client_id)
):
    """Get ASCOM interface version (ICoverCalibratorV1)."""
    return make_response(INTERFACE_VERSION, client_id, get_next_transaction_id())


@router.get("/driverversion", response_model=AlpacaResponse)
async def get_driverversion(
    client_id: int = Depends(get_client_id)
):
    return make_response(__version__, client_id, get_next_transaction_id())


@router.get("/driverinfo", response_model=AlpacaResponse)
async def get_driverinfo(
    client_id: int = Depends(get_client_id)
):
    info = "ASCOM Alpaca Driver for the PrometheusAstro Flat Panel Cover"
    return make_response(info, client_id, get_next_transaction_id())


@router.get("/description", response_model=AlpacaResponse)
async def get_description(
    client_id: int = Depends(get_client_id)
):
    return make_response("Motorized flat panel telescope cover", client_id, get_next_transaction_id())


@router.get("/name", response_model=AlpacaResponse)
async def get_name(
    client_id: int = Depends(get_client_id)
):
    return make_response("PrometheusAstro Flat Panel Cover", client_id, get_next_transaction_id())


@router.get("/supportedactions", response_model=AlpacaResponse)
async def get_supportedactions(
    client_id: int = Depends(get_client_id)
):
    """Get list of supported actions (empty)."""
    return make_response([], client_id, get_next_transaction_id())


# PUT endpoints

@router.put("/connected", response_model=AlpacaResponse)
async def put_connected(
    Connected: bool = Form(...),
    client_id: int = Depends(get_client_id_form),
    panel: StateSynchronizer = Depends(get_panel)
):
    """Connect or disconnect the panel."""
    try:
        if Connected:
            panel.connect()
            logger.info("Flat panel connected via API")
        else:
            panel.disconnect()
            logger.info("Flat panel disconnected via API")
        return make_response(None, client_id, get_next_transaction_id())
    except Exception as e:
        logger.error(f"Error in /connected PUT: {e}")
        return make_response(None, client_id, get_next_transaction_id(), e)


@router.put("/opencover", response_model=AlpacaResponse)
async def put_opencover(
    client_id: int = Depends(get_client_id_form),
    panel: StateSynchronizer = Depends(get_panel)
):
    """Start opening the cover (non-blocking)."""
    try:
        panel.open_cover()
        return make_response(None, client_id, get_next_transaction_id())
    except Exception as e:
        logger.error(f"Error in /opencover: {e}")
        return make_response(None, client_id, get_next_transaction_id(), e)


@router.put("/closecover", response_model=AlpacaResponse)
async def put_closecover(
    client_id: int = Depends(get_client_id_form),
    panel: StateSynchronizer = Depends(get_panel)
):
    """Start closing the cover (non-blocking)."""
    try:
        panel.close_cover()
        return make_response(None, client_id, get_next_transaction_id())
    except Exception as e:
        logger.error(f"Error in /closecover: {e}")
        return make_response(None, client_id, get_next_transaction_id(), e)


@router.put("/haltcover", response_model=AlpacaResponse)
async def put_haltcover(
    client_id: int = Depends(get_client_id_form),
    panel: StateSynchronizer = Depends(get_panel)
):
    """Stop cover movement immediately."""
    try:
        panel.halt_cover()
        logger.info("Halt command executed")
        return make_response(None, client_id, get_next_transaction_id())
    except Exception as e:
        logger.error(f"Error in /haltcover: {e}")
        return make_response(None, client_id, get_next_transaction_id(), e)


@router.put("/calibratoron", response_model=AlpacaResponse)
async def put_calibratoron(
    Brightness: int = Form(...),
    client_id: int = Depends(get_client_id_form),
    panel: StateSynchronizer = Depends(get_panel)
):
    """Turn the light panel on at the given brightness (0 to MaxBrightness)."""
    try:
        panel.calibrator_on(Brightness)
        return make_response(None, client_id, get_next_transaction_id())
    except Exception as e:
        logger.error(f"Error in /calibratoron: {e}")
        return make_response(None, client_id, get_next_transaction_id(), e)


@router.put("/calibratoroff", response_model=AlpacaResponse)
async def put_calibratoroff(
    client_id: int = Depends(get_client_id_form),
    panel: StateSynchronizer = Depends(get_panel)
):
    """Turn the light panel off."""
    try:
        panel.calibrator_off()
        return make_response(None, client_id, get_next_transaction_id())
    except Exception as e:
        logger.error(f"Error in /calibratoroff: {e}")
        return make_response(None, client_id, get_next_transaction_id(), e)
