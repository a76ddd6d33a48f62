"""
MarketConfig schema.

Frozen dataclasses the loader parses YAML into.  Nothing here reads files or
the environment.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = "sqlite:///market.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    busy_timeout_seconds: float = 30.0


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class CheckoutConfig:
    """Limits enforced before any checkout mutation."""

    max_lines: int = 50
    max_line_quantity: int = 500


@dataclass(frozen=True)
class MarketConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    checkout: CheckoutConfig = field(default_factory=CheckoutConfig)
    currency: str = "USD"
    source: str = "<defaults>"
    checksum: str = ""
