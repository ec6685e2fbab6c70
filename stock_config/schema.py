"""
StockConfiguration schema.

Frozen dataclasses the loader parses a YAML configuration set into.
Nothing outside ``stock_config`` builds these by hand except tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseConfig:
    """Engine settings passed to ``init_engine_from_url``."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class CloseConfig:
    """Period close workflow settings."""

    currency: str = "SAR"
    default_copy_prices: bool = True
    max_comment_length: int = 1000


@dataclass(frozen=True)
class StockConfiguration:
    """One loaded configuration set."""

    name: str
    database: DatabaseConfig
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    close: CloseConfig = field(default_factory=CloseConfig)
    checksum: str = ""
