"""
Map Python exceptions to ASCOM Alpaca error codes.
"""

from typing import Tuple
from flatpanel_alpaca.utils.exceptions import (
    DriverError,
    InvalidValueError,
    NotConnectedError,
)


# ASCOM Alpaca Error Codes
ERROR_INVALID_VALUE = 0x401  # 1025
ERROR_NOT_CONNECTED = 0x407  # 1031
ERROR_DRIVER_ERROR = 0x500  # 1280


def map_exception_to_alpaca(exception: Exception) -> Tuple[int, str]:
    """
    Map exception to Alpaca error code and message.

    PortNotFoundError, TransportWriteError and TransportReadError are
    DriverErrors and share the generic driver error number.

    Returns:
        Tuple of (ErrorNumber, ErrorMessage).
    """
    if isinstance(exception, NotConnectedError):
        return (ERROR_NOT_CONNECTED, str(exception))

    if isinstance(exception, InvalidValueError):
        return (ERROR_INVALID_VALUE, str(exception))

    if isinstance(exception, DriverError):
        return (ERROR_DRIVER_ERROR, str(exception))

    return (ERROR_DRIVER_ERROR, f"Internal error: {type(exception).__name__}: {exception}")
