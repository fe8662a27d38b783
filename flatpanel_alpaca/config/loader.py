"""
config.json loading and validation.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .models import AppConfig


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.json"

# Top-level keys starting with this prefix are documentation, not settings
COMMENT_PREFIX = "_"


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""
    pass


def _write_default_config(config_path: Path) -> AppConfig:
    """
    Write a config.json holding every default, so users can see what is
    tunable. A write failure is not fatal; the defaults are still used.
    """
    config = AppConfig()
    document = {
        "_comment": "Flat panel driver settings. Delete a key to fall back to its default.",
        **config.model_dump(),
    }
    try:
        config_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        logger.info(f"Created default config file: {config_path}")
    except OSError as e:
        logger.warning(f"Could not write default config to {config_path}: {e}")
    return config


def _read_document(config_path: Path) -> dict:
    try:
        document = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to read {config_path}: {e}") from e

    if not isinstance(document, dict):
        raise ConfigurationError(f"{config_path} must contain a JSON object")

    return {k: v for k, v in document.items() if not k.startswith(COMMENT_PREFIX)}


def _describe_validation_error(error: ValidationError) -> str:
    lines = ["Configuration validation failed:"]
    for problem in error.errors():
        location = ".".join(str(part) for part in problem["loc"]) or "<root>"
        lines.append(f"  - {location}: {problem['msg']}")
    return "\n".join(lines)


def load_config(path: Optional[str] = None) -> AppConfig:
    """
    Load and validate the driver configuration.

    A missing file is created with defaults.

    Args:
        path: Path to the config file (default: ./config.json).

    Returns:
        Validated AppConfig instance.

    Raises:
        ConfigurationError: If the file is unreadable, not a JSON object,
            or fails validation.
    """
    config_path = Path(path or DEFAULT_CONFIG_PATH)

    if not config_path.exists():
        logger.info(f"Config file not found: {config_path}, using defaults")
        return _write_default_config(config_path)

    document = _read_document(config_path)
    try:
        config = AppConfig.model_validate(document)
    except ValidationError as e:
        raise ConfigurationError(_describe_validation_error(e)) from e

    logger.info(f"Configuration loaded from {config_path}")
    return config
