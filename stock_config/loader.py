"""
Configuration Loader (``stock_config.loader``).

Responsibility
--------------
Reads a YAML configuration set and parses it into the frozen
``stock_config.schema`` dataclasses.  Callers outside this package use
``stock_config.get_active_config()`` instead.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required fields have no silent defaults.
* ``compute_checksum`` is a deterministic SHA-256 over the canonical JSON
  form of the loaded mapping.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``database.url``  -> ``KeyError``.
* Non-numeric pool sizes, unknown log level, bad currency code
  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from stock_config.schema import (
    CloseConfig,
    DatabaseConfig,
    LoggingConfig,
    StockConfiguration,
)

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if ``path`` does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _as_int(section: str, key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{section}.{key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{section}.{key} must be an integer, got {value!r}") from exc


def _as_bool(section: str, key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{section}.{key} must be true or false, got {value!r}")
    return value


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    defaults = DatabaseConfig(url="")
    return DatabaseConfig(
        url=str(data["url"]),
        echo=_as_bool("database", "echo", data.get("echo", defaults.echo)),
        pool_size=_as_int("database", "pool_size", data.get("pool_size", defaults.pool_size)),
        max_overflow=_as_int(
            "database", "max_overflow", data.get("max_overflow", defaults.max_overflow),
        ),
        pool_timeout=_as_int(
            "database", "pool_timeout", data.get("pool_timeout", defaults.pool_timeout),
        ),
        pool_recycle=_as_int(
            "database", "pool_recycle", data.get("pool_recycle", defaults.pool_recycle),
        ),
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    level = str(data.get("level", LoggingConfig.level)).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {sorted(_LOG_LEVELS)}, got {level!r}")
    return LoggingConfig(level=level)


def parse_close(data: dict[str, Any]) -> CloseConfig:
    defaults = CloseConfig()
    currency = str(data.get("currency", defaults.currency))
    if len(currency) != 3:
        raise ValueError(f"close.currency must be a 3-letter code, got {currency!r}")

    max_comment_length = _as_int(
        "close", "max_comment_length",
        data.get("max_comment_length", defaults.max_comment_length),
    )
    if max_comment_length <= 0:
        raise ValueError("close.max_comment_length must be positive")

    return CloseConfig(
        currency=currency,
        default_copy_prices=_as_bool(
            "close", "default_copy_prices",
            data.get("default_copy_prices", defaults.default_copy_prices),
        ),
        max_comment_length=max_comment_length,
    )


def parse_configuration(data: dict[str, Any]) -> StockConfiguration:
    """Parse a loaded mapping into a ``StockConfiguration``."""
    return StockConfiguration(
        name=str(data.get("name", "default")),
        database=parse_database(data["database"]),
        logging=parse_logging(data.get("logging") or {}),
        close=parse_close(data.get("close") or {}),
        checksum=compute_checksum(data),
    )


def load_configuration(path: Path) -> StockConfiguration:
    return parse_configuration(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
