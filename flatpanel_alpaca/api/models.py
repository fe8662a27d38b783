"""
Pydantic models for the Alpaca envelope and the panel property surface.
"""

import itertools
import threading
from typing import Any, List, Optional
from pydantic import BaseModel, Field

from flatpanel_alpaca.api.error_mapper import map_exception_to_alpaca


# Server transaction ID counter (thread-safe)
_transaction_counter = itertools.count(1)
_transaction_lock = threading.Lock()


def get_next_transaction_id() -> int:
    """
    Get next server transaction ID (thread-safe).

    Returns:
        Incremented transaction ID.
    """
    with _transaction_lock:
        return next(_transaction_counter)


class AlpacaResponse(BaseModel):
    """
    Standard ASCOM Alpaca response envelope.

    All device endpoints return this format.
    """
    Value: Any = Field(None, description="Response value (type varies by endpoint)")
    ClientTransactionID: int = Field(0, description="Client transaction ID (echo from request)")
    ServerTransactionID: int = Field(description="Server transaction ID (auto-incremented)")
    ErrorNumber: int = Field(0, description="Error code (0 = success)")
    ErrorMessage: str = Field("", description="Error message (empty string if no error)")


def make_response(
    value: Any,
    client_id: int = 0,
    server_id: int = 0,
    error: Optional[Exception] = None
) -> AlpacaResponse:
    """
    Build an Alpaca response, mapping error to its Alpaca error number.

    Args:
        value: Response value (ignored if error is set).
        client_id: Client transaction ID.
        server_id: Server transaction ID.
        error: Exception raised by the operation, if any.
    """
    if error is None:
        return AlpacaResponse(
            Value=value,
            ClientTransactionID=client_id,
            ServerTransactionID=server_id,
        )

    error_number, error_message = map_exception_to_alpaca(error)
    return AlpacaResponse(
        Value=None,
        ClientTransactionID=client_id,
        ServerTransactionID=server_id,
        ErrorNumber=error_number,
        ErrorMessage=error_message,
    )


# Property surface: the three controls the panel exposes

class SwitchElement(BaseModel):
    name: str
    label: str
    on: bool


class SwitchProperty(BaseModel):
    """Exclusive switch: at most one element is on."""
    name: str = "COVER_CONTROL"
    label: str = "Cover Control"
    rule: str = "ONE_OF_MANY"
    elements: List[SwitchElement]


class NumberProperty(BaseModel):
    name: str = "BRIGHTNESS_CONTROL"
    label: str = "Brightness Level"
    value: int
    min: int = 0
    max: int = 4095
    step: int = 1


class TextProperty(BaseModel):
    """Read-only status text."""
    name: str = "DEVICE_STATUS"
    label: str = "Device Status"
    value: str
    read_only: bool = True


class PanelProperties(BaseModel):
    """Controls currently defined for the panel (empty while disconnected)."""
    connected: bool
    cover: Optional[SwitchProperty] = None
    brightness: Optional[NumberProperty] = None
    status: Optional[TextProperty] = None


class CoverSwitchRequest(BaseModel):
    """Write to the exclusive cover switch."""
    OPEN: bool = False
    CLOSE: bool = False


class BrightnessRequest(BaseModel):
    """Write to the brightness number control (clamped, not rejected)."""
    value: float = Field(..., description="Requested brightness; clamped into 0-4095")
