"""
FastAPI application factory.
"""

import html
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from flatpanel_alpaca import __version__
from flatpanel_alpaca.api.models import get_next_transaction_id, make_response
from flatpanel_alpaca.api.panel_api import router as panel_router
from flatpanel_alpaca.api.routes import router as covercalibrator_router
from flatpanel_alpaca.config.models import AppConfig
from flatpanel_alpaca.panel.scheduler import PollScheduler
from flatpanel_alpaca.panel.synchronizer import StateSynchronizer
from flatpanel_alpaca.protocol.port_locator import list_available_ports
from flatpanel_alpaca.simulator.mock_panel import MockPanelSerial
from flatpanel_alpaca.simulator.web_api import router as simulator_router


logger = logging.getLogger(__name__)

DEVICE_NAME = "PrometheusAstro Flat Panel Cover"


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """Run the poll loop for as long as the server runs."""
    scheduler: Optional[PollScheduler] = getattr(app.state, "scheduler", None)
    if scheduler:
        scheduler.start()
    try:
        yield
    finally:
        if scheduler:
            await scheduler.stop()
        panel = getattr(app.state, "panel", None)
        if panel:
            panel.disconnect()


def create_app(
    config: AppConfig,
    panel: StateSynchronizer,
    simulator: Optional[MockPanelSerial] = None,
) -> FastAPI:
    """
    Create FastAPI application instance.

    Args:
        config: Application configuration.
        panel: State synchronizer the routes operate on.
        simulator: Simulated device, when running without hardware.

    Returns:
        Configured FastAPI app.
    """
    app = FastAPI(
        title="Flat Panel Cover ASCOM Alpaca Driver",
        description="ASCOM Alpaca CoverCalibrator driver for the PrometheusAstro flat panel cover",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=_lifespan,
    )

    app.state.config = config
    app.state.panel = panel
    app.state.simulator = simulator
    app.state.scheduler = PollScheduler(panel, config.panel.poll_interval_ms)

    # CORS middleware (allow all origins for Alpaca compatibility)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch all unhandled exceptions and return Alpaca error response."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)

        client_id = 0
        try:
            client_id = int(request.query_params.get("ClientTransactionID", 0))
        except (ValueError, TypeError):
            logger.debug("Ignoring malformed ClientTransactionID")

        response = make_response(
            value=None,
            client_id=client_id,
            server_id=get_next_transaction_id(),
            error=exc
        )

        return JSONResponse(
            status_code=200,  # Alpaca always returns 200
            content=response.model_dump()
        )

    # Management API endpoints (required for NINA discovery)
    @app.get("/management/apiversions")
    async def get_api_versions():
        """Return supported Alpaca API versions."""
        return {"Value": [1]}

    @app.get("/management/v1/configureddevices")
    async def get_configured_devices():
        """Return list of configured devices."""
        return {
            "Value": [
                {
                    "DeviceName": DEVICE_NAME,
                    "DeviceType": "CoverCalibrator",
                    "DeviceNumber": 0,
                    "UniqueID": "flatpanel-alpaca-0"
                }
            ]
        }

    @app.get("/management/v1/description")
    async def get_server_description():
        """Return server description."""
        return {
            "Value": {
                "ServerName": "Flat Panel Cover Alpaca Driver",
                "Manufacturer": "PrometheusAstro",
                "ManufacturerVersion": __version__,
                "Location": "localhost"
            }
        }

    @app.get("/api/v1/management/ports")
    async def get_available_ports():
        """List all serial ports on the system."""
        return {"Value": [p.to_dict() for p in list_available_ports()]}

    @app.get("/setup/v1/covercalibrator/0/setup", response_class=HTMLResponse)
    async def covercalibrator_setup_page(request: Request):
        """ASCOM Alpaca setup page: current connection and panel state."""
        state = request.app.state.panel.snapshot()
        mode = "Simulator" if request.app.state.simulator is not None else "Hardware"
        return HTMLResponse(content=_get_setup_page_html(
            mode=mode,
            port=state.port or "--",
            pattern=config.serial.port_pattern,
            status=state.status_message,
            brightness=state.brightness,
        ))

    app.include_router(covercalibrator_router)
    app.include_router(panel_router)
    if simulator is not None:
        app.include_router(simulator_router)

    logger.info("FastAPI application created")
    return app


def _get_setup_page_html(mode: str, port: str, pattern: str, status: str, brightness: int) -> str:
    """Generate setup page HTML."""
    rows = [
        ("Mode", mode),
        ("Port", port),
        ("Port pattern", pattern),
        ("Status", status),
        ("Brightness", str(brightness)),
    ]
    body = "\n".join(
        f'        <div class="info-row"><span class="info-label">{html.escape(label)}:</span>'
        f'<span class="info-value">{html.escape(value)}</span></div>'
        for label, value in rows
    )
    return f'''<!DOCTYPE html>
<html>
<head>
    <title>Flat Panel Driver Setup</title>
    <style>
        body {{
            font-family: 'Segoe UI', Tahoma, sans-serif;
            max-width: 600px;
            margin: 40px auto;
            padding: 20px;
            background: #1a1a2e;
            color: #eee;
        }}
        h1 {{ color: #4CAF50; }}
        .section {{ background: #16213e; border-radius: 8px; padding: 20px; }}
        .info-row {{ display: flex; justify-content: space-between; padding: 8px 0; border-bottom: 1px solid #333; }}
        .info-label {{ color: #aaa; }}
        .info-value {{ font-weight: bold; }}
    </style>
</head>
<body>
    <h1>Flat Panel Driver Setup</h1>
    <div class="section">
{body}
    </div>
    <p>The serial device is discovered automatically. Set <code>serial.port</code> in config.json to try a specific device first.</p>
</body>
</html>'''
