"""
Custom exception classes for the flat panel Alpaca driver.
"""


class FlatPanelException(Exception):
    """Base exception for all flat panel driver errors."""
    pass


class NotConnectedError(FlatPanelException):
    """Raised when a command arrives while the panel is disconnected."""
    pass


class DriverError(FlatPanelException):
    """General driver error (maps to Alpaca ErrorNumber 1280)."""
    pass


class InvalidValueError(FlatPanelException):
    """Invalid parameter value (maps to Alpaca ErrorNumber 1025)."""
    pass


class PortNotFoundError(DriverError):
    """No candidate serial device could be opened."""
    pass


class TransportWriteError(DriverError):
    """A command was not transmitted in full."""
    pass


class TransportReadError(DriverError):
    """Reading from the serial device failed; the connection is unusable."""
    pass
