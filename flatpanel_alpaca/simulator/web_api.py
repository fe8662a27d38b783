"""
Web API endpoints for simulator inspection and fault injection.
"""

import logging
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from flatpanel_alpaca.simulator.mock_panel import MockPanelSerial


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/simulator", tags=["simulator"])


def get_simulator(request: Request) -> MockPanelSerial:
    """Get simulator from app.state."""
    simulator = getattr(request.app.state, 'simulator', None)
    if simulator is None:
        raise HTTPException(status_code=503, detail="Simulator not available")
    return simulator


class SimulatorStatus(BaseModel):
    """Simulator status response."""
    cover: str
    brightness: int
    is_open: bool
    movement_seconds: float


class EmitRequest(BaseModel):
    """Line the simulated firmware should send."""
    line: str = Field(..., min_length=1, max_length=120, description="Status line, without terminator")


@router.get("/status", response_model=SimulatorStatus)
async def get_status(request: Request):
    """Get the simulated hardware state (not the driver's view of it)."""
    simulator = get_simulator(request)
    return SimulatorStatus(
        cover=simulator.cover,
        brightness=simulator.brightness,
        is_open=simulator.is_open,
        movement_seconds=simulator.config.movement_seconds,
    )


@router.post("/emit")
async def emit_line(request: Request, body: EmitRequest):
    """Make the simulated firmware send an arbitrary line."""
    simulator = get_simulator(request)
    if not body.line.isascii():
        raise HTTPException(status_code=400, detail="Line must be ASCII")

    simulator.emit_line(body.line)
    logger.info(f"[SIMULATOR] Injected line: {body.line!r}")
    return {"queued": body.line}
