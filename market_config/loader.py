"""
YAML loader for MarketConfig.

Responsibility:
    Reads a YAML file, validates each section and builds the frozen
    ``MarketConfig``.  Environment overrides are applied to the raw mapping
    before parsing so they go through the same validation.

Failure modes:
    * Missing file     -> ``FileNotFoundError`` propagates.
    * Malformed YAML   -> ``yaml.YAMLError`` propagates.
    * Bad values       -> ``ValueError`` naming the offending key.
"""

from __future__ import annotations

import copy
import hashlib
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from market_config.schema import (
    CheckoutConfig,
    DatabaseConfig,
    LoggingConfig,
    MarketConfig,
)

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

ENV_DATABASE_URL = "MARKET_DATABASE_URL"
ENV_DATABASE_URL_FALLBACK = "DATABASE_URL"
ENV_LOG_LEVEL = "MARKET_LOG_LEVEL"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def apply_env_overrides(data: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    """Return a copy of ``data`` with environment overrides applied."""
    merged = copy.deepcopy(data)
    url = env.get(ENV_DATABASE_URL) or env.get(ENV_DATABASE_URL_FALLBACK)
    if url:
        merged.setdefault("database", {})["url"] = url
    level = env.get(ENV_LOG_LEVEL)
    if level:
        merged.setdefault("logging", {})["level"] = level
    return merged


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form; identical data, identical checksum."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"'{name}' must be a mapping")
    return value


def _int(section: dict[str, Any], key: str, default: int, minimum: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{key}' must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"'{key}' must be >= {minimum}, got {value}")
    return value


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    defaults = DatabaseConfig()
    url = data.get("url", defaults.url)
    if not isinstance(url, str) or not url.strip():
        raise ValueError("'database.url' must be a non-empty string")
    echo = data.get("echo", defaults.echo)
    if not isinstance(echo, bool):
        raise ValueError(f"'database.echo' must be a boolean, got {echo!r}")
    busy = data.get("busy_timeout_seconds", defaults.busy_timeout_seconds)
    if isinstance(busy, bool) or not isinstance(busy, (int, float)) or busy < 0:
        raise ValueError(f"'busy_timeout_seconds' must be a non-negative number, got {busy!r}")
    return DatabaseConfig(
        url=url.strip(),
        echo=echo,
        pool_size=_int(data, "pool_size", defaults.pool_size, 1),
        max_overflow=_int(data, "max_overflow", defaults.max_overflow, 0),
        pool_timeout=_int(data, "pool_timeout", defaults.pool_timeout, 1),
        busy_timeout_seconds=float(busy),
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    level = str(data.get("level", LoggingConfig().level)).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"'logging.level' must be one of {sorted(_LOG_LEVELS)}, got {level!r}")
    return LoggingConfig(level=level)


def parse_checkout(data: dict[str, Any]) -> CheckoutConfig:
    defaults = CheckoutConfig()
    return CheckoutConfig(
        max_lines=_int(data, "max_lines", defaults.max_lines, 1),
        max_line_quantity=_int(data, "max_line_quantity", defaults.max_line_quantity, 1),
    )


def parse_config(data: dict[str, Any], source: str = "<memory>") -> MarketConfig:
    """Build a MarketConfig from an already-loaded mapping."""
    currency = data.get("currency", "USD")
    if not isinstance(currency, str) or len(currency.strip()) != 3:
        raise ValueError(f"'currency' must be a 3-letter code, got {currency!r}")
    return MarketConfig(
        database=parse_database(_section(data, "database")),
        logging=parse_logging(_section(data, "logging")),
        checkout=parse_checkout(_section(data, "checkout")),
        currency=currency.strip().upper(),
        source=source,
        checksum=compute_checksum(data),
    )


def load_config(path: Path, env: Mapping[str, str] | None = None) -> MarketConfig:
    """Load ``path``, apply overrides from ``env`` (if given) and parse."""
    data = load_yaml_file(path)
    if env is not None:
        data = apply_env_overrides(data, env)
    return parse_config(data, source=str(path))
