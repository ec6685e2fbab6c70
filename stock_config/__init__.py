"""
stock_config -- single public entrypoint for service configuration.

Responsibility:
    Provides the only way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files directly.

Architecture position:
    Configuration.  Imported by ``stock_api`` and scripts; the kernel and
    services never import from here and receive plain values instead.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``KeyError`` -- a required key is missing.
    - ``ValueError`` -- a value is malformed.

Every successful call logs ``config_loaded`` with the set name and
checksum so a running process can be tied to an exact configuration.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from stock_config.loader import load_configuration
from stock_config.schema import (
    CloseConfig,
    DatabaseConfig,
    LoggingConfig,
    StockConfiguration,
)

_logger = logging.getLogger("stock_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

CONFIG_ENV_VAR = "STOCK_CONFIG"


def get_active_config(config_path: Path | str | None = None) -> StockConfiguration:
    """The only public configuration entrypoint.

    Resolution order: ``config_path`` argument, then the ``STOCK_CONFIG``
    environment variable, then ``stock_config/sets/default.yaml``.
    """
    path = Path(
        config_path
        or os.environ.get(CONFIG_ENV_VAR)
        or _DEFAULT_CONFIG_PATH
    )
    config = load_configuration(path)

    _logger.info(
        "config_loaded",
        extra={
            "config_name": config.name,
            "config_path": str(path),
            "checksum": config.checksum,
        },
    )
    return config


__all__ = [
    "CloseConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "StockConfiguration",
    "get_active_config",
]
