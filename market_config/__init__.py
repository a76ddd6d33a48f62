"""
market_config -- single public entrypoint for market kernel configuration.

Responsibility:
    ``get_active_config()`` is the only way to obtain configuration at
    runtime.  It loads ``defaults.yaml`` (or the given file), applies the
    ``MARKET_DATABASE_URL`` / ``DATABASE_URL`` and ``MARKET_LOG_LEVEL``
    environment overrides and returns a frozen ``MarketConfig``.

Architecture position:
    Sits beside ``market_kernel``.  The kernel never imports this package;
    callers (scripts, EventRunner.from_config, tests) pass the values in.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- a value fails validation.

Audit relevance:
    Every call emits a ``CONFIG_TRACE`` log entry with the source file and
    checksum, tying a run to the exact configuration it used.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from market_config.loader import load_config
from market_config.schema import (
    CheckoutConfig,
    DatabaseConfig,
    LoggingConfig,
    MarketConfig,
)

_logger = logging.getLogger("market_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(
    path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> MarketConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: YAML file to load.  Defaults to market_config/defaults.yaml.
        env: Environment mapping for overrides.  Defaults to ``os.environ``.

    Returns:
        Frozen MarketConfig.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If validation fails.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = load_config(config_path, env=os.environ if env is None else env)

    _logger.info(
        "CONFIG_TRACE",
        extra={
            "trace_type": "CONFIG_TRACE",
            "config_source": config.source,
            "checksum": config.checksum,
            "database_dialect": config.database.url.split(":", 1)[0],
            "log_level": config.logging.level,
        },
    )
    return config


__all__ = [
    "get_active_config",
    "MarketConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "CheckoutConfig",
    "DEFAULT_CONFIG_PATH",
]
