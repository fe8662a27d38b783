"""
Configuration models using Pydantic for validation.

All configuration is loaded from config.json and validated at startup.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    ip: str = Field(default="0.0.0.0", description="IP address to bind to")
    port: int = Field(default=5000, ge=1, le=65535, description="HTTP port")
    discovery_enabled: bool = Field(
        default=True, description="Enable UDP discovery protocol"
    )


class SerialConfig(BaseModel):
    """Serial port configuration."""

    port: str = Field(
        default="",
        description="Serial device path tried before the glob candidates (e.g., /dev/ttyUSB0). Empty for glob only."
    )
    port_pattern: str = Field(
        default="/dev/ttyUSB*", description="Glob pattern enumerating candidate USB-serial devices"
    )
    baud: int = Field(default=9600, description="Baud rate")
    write_timeout_seconds: float = Field(
        default=2.0, ge=0.1, le=30.0, description="Write timeout in seconds"
    )
    read_chunk_bytes: int = Field(
        default=128, ge=1, le=4096, description="Maximum bytes read per poll tick"
    )
    line_terminator: str = Field(
        default="\n", description="Terminator appended to every outbound command"
    )
    max_line_length: int = Field(
        default=128, ge=16, le=4096, description="Longest status line kept while waiting for its terminator"
    )

    @field_validator("line_terminator")
    @classmethod
    def validate_terminator(cls, v):
        """Terminator must be plain ASCII."""
        if not v.isascii():
            raise ValueError("line_terminator must be ASCII")
        return v


class PanelConfig(BaseModel):
    """Flat panel behaviour configuration."""

    poll_interval_ms: int = Field(
        default=1000, ge=50, le=60000, description="Delay between status polls (ms)"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )
    file: Optional[str] = Field(
        default="flatpanel_alpaca.log",
        description="Log file path (None for console only)"
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v):
        """Validate logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class SimulatorConfig(BaseModel):
    """Hardware simulator configuration."""

    enabled: bool = Field(default=False, description="Use simulator instead of real hardware")
    movement_seconds: float = Field(
        default=3.0, ge=0.0, le=120.0, description="Simulated time for the cover to open or close"
    )
    initial_state: str = Field(default="CLOSED", description="Cover state at power-on: OPEN or CLOSED")
    initial_brightness: int = Field(default=0, ge=0, le=4095, description="Panel brightness at power-on")

    @field_validator("initial_state")
    @classmethod
    def validate_initial_state(cls, v):
        """Validate initial cover state."""
        if v.upper() not in ("OPEN", "CLOSED"):
            raise ValueError("initial_state must be OPEN or CLOSED")
        return v.upper()


class AppConfig(BaseModel):
    """Root configuration model."""

    model_config = ConfigDict(extra="forbid")  # Raise error on unknown fields

    server: ServerConfig = Field(default_factory=ServerConfig)
    serial: SerialConfig = Field(default_factory=SerialConfig)
    panel: PanelConfig = Field(default_factory=PanelConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    simulator: SimulatorConfig = Field(default_factory=SimulatorConfig)
