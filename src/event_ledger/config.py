# Event Ledger - Cash-flow dashboard for event-planning businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for Event Ledger.

This module is responsible for:
- loading the application configuration from a TOML file,
- applying defaults for every missing section or key,
- exposing typed dataclasses used by the rest of the application.
"""

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .api_client import DEFAULT_COLLECTION_PATH
from .exchange import DEFAULT_RATE_URL

DEFAULT_CONFIG_FILE = "event_ledger_config.toml"
TOKEN_ENV_VAR = "EVENT_LEDGER_API_TOKEN"

DISPLAY_MODES = ("table", "csv", "both")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class LedgerConfig:
    """Currency codes used to label the local and foreign buckets."""

    local_currency: str = "ARS"
    foreign_currency: str = "USD"


@dataclass(frozen=True)
class BackendConfig:
    """Where and how to reach the accounting REST endpoint."""

    base_url: str = "http://localhost:3000"
    collection_path: str = DEFAULT_COLLECTION_PATH
    token: Optional[str] = None
    per_page: int = 500
    timeout: float = 15.0


@dataclass(frozen=True)
class ExchangeRateConfig:
    url: str = DEFAULT_RATE_URL
    timeout: float = 10.0


@dataclass(frozen=True)
class DisplayConfig:
    mode: str = "table"
    output_dir: Path = Path("data/output")


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for Event Ledger.

    This aggregates:
    - the currency labels of the ledger,
    - the backend connection settings,
    - the exchange-rate source,
    - display options for tables and CSV export,
    - the logging level.
    """

    ledger: LedgerConfig
    backend: BackendConfig
    exchange_rate: ExchangeRateConfig
    display: DisplayConfig
    log_level: str


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        raise ValueError(f"Config entry [{name}] must be a table.")
    return section


def _positive_number(section: Mapping[str, Any], key: str, default, kind, where):
    raw = section.get(key, default)
    try:
        value = kind(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{where}.{key}' in the configuration. "
            f"Expected a positive number."
        ) from exc
    if value <= 0:
        raise ValueError(f"'{where}.{key}' must be greater than 0.")
    return value


def _parse_backend(raw: Mapping[str, Any]) -> BackendConfig:
    """
    Extract the [backend] section.

    The token falls back to the EVENT_LEDGER_API_TOKEN environment variable
    so it does not have to be written in the config file.
    """
    section = _section(raw, "backend")
    defaults = BackendConfig()

    token = section.get("token") or os.environ.get(TOKEN_ENV_VAR) or None

    return BackendConfig(
        base_url=str(section.get("base_url") or defaults.base_url),
        collection_path=str(section.get("collection_path") or defaults.collection_path),
        token=str(token) if token else None,
        per_page=_positive_number(section, "per_page", defaults.per_page, int, "backend"),
        timeout=_positive_number(section, "timeout", defaults.timeout, float, "backend"),
    )


def _parse_exchange_rate(raw: Mapping[str, Any]) -> ExchangeRateConfig:
    section = _section(raw, "exchange_rate")
    defaults = ExchangeRateConfig()
    return ExchangeRateConfig(
        url=str(section.get("url") or defaults.url),
        timeout=_positive_number(
            section, "timeout", defaults.timeout, float, "exchange_rate"
        ),
    )


def _parse_display(raw: Mapping[str, Any], base_dir: Path) -> DisplayConfig:
    section = _section(raw, "display")

    mode = str(section.get("mode", "table")).lower()
    if mode not in DISPLAY_MODES:
        raise ValueError(
            f"Invalid display mode {mode!r}, expected one of {', '.join(DISPLAY_MODES)}."
        )

    output_dir_raw = section.get("output_dir") or "data/output"
    return DisplayConfig(mode=mode, output_dir=(base_dir / str(output_dir_raw)).resolve())


def _parse_log_level(raw: Mapping[str, Any]) -> str:
    section = _section(raw, "logging")
    level = str(section.get("level", "INFO")).upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"Invalid logging level {level!r}.")
    return level


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the Event Ledger configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [ledger]
        Currency codes of the local and foreign buckets (labels only).

    [backend]
        Base URL of the dashboard, path of the accounting endpoint, API
        token, page size and request timeout.

    [exchange_rate]
        URL of the buy/sell quote service and its timeout.

    [display]
        Output mode ("table", "csv" or "both") and CSV output directory.

    [logging]
        Root logging level.

    Notes
    -----
    - Every section is optional; missing keys take their default value.
    - When no path is given and ``event_ledger_config.toml`` does not exist
      in the working directory, the defaults are returned. An explicit path
      that does not exist raises FileNotFoundError.
    - Relative paths are resolved against the directory of the TOML file.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML configuration file.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
        raw = _load_toml(config_file) if config_file.is_file() else {}
    else:
        config_file = Path(config_path).resolve()
        raw = _load_toml(config_file)

    base_dir = config_file.parent

    ledger_section = _section(raw, "ledger")
    ledger = LedgerConfig(
        local_currency=str(ledger_section.get("local_currency") or "ARS").upper(),
        foreign_currency=str(ledger_section.get("foreign_currency") or "USD").upper(),
    )

    return AppConfig(
        ledger=ledger,
        backend=_parse_backend(raw),
        exchange_rate=_parse_exchange_rate(raw),
        display=_parse_display(raw, base_dir),
        log_level=_parse_log_level(raw),
    )
