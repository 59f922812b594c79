# SMB Ledger - Bookkeeping & Dashboard engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for SMB Ledger.

This module is responsible for:
- loading the application configuration from a TOML file,
- validating and defaulting every section,
- exposing typed dataclasses used by the rest of the application.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .activity import (
    DEFAULT_ACTIVITY_LIMIT,
    DEFAULT_RECENT_EXPENSES,
    DEFAULT_RECENT_INVOICES,
)
from .db import DatabaseConfig
from .invoices import DEFAULT_NUMBER_PREFIX

DEFAULT_CONFIG_FILE = "smb_ledger_config.toml"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class BusinessConfig:
    """
    Business profile settings read by the engine.

    A single currency is assumed for the whole profile. The default tax rate
    pre-fills new line items in an invoice draft.
    """

    name: str
    currency: str
    default_tax_rate: float


@dataclass(frozen=True)
class InvoicesConfig:
    """Invoice creation settings."""

    number_prefix: str
    strict_statuses: bool


@dataclass(frozen=True)
class DashboardConfig:
    """Limits applied when loading the dashboard activity feed."""

    recent_invoices: int
    recent_expenses: int
    activity_limit: int


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for SMB Ledger.

    This aggregates:
    - the business profile (name, currency, default tax rate),
    - the database configuration (where records are stored),
    - invoice creation options,
    - dashboard limits,
    - display and logging options.
    """

    business: BusinessConfig
    database: DatabaseConfig
    invoices: InvoicesConfig
    dashboard: DashboardConfig
    amount_decimals: int
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
    """Return a top-level table, or an empty mapping if missing or invalid."""
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _non_negative_int(
    section: Mapping[str, Any], key: str, default: int, where: str
) -> int:
    raw_value = section.get(key, default)
    try:
        value = int(raw_value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{where}.{key}' in the configuration. "
            "Expected an integer."
        ) from exc
    if value < 0:
        raise ValueError(f"'{where}.{key}' cannot be negative.")
    return value


def _parse_business(raw: Mapping[str, Any]) -> BusinessConfig:
    section = _section(raw, "business")

    raw_rate = section.get("default_tax_rate", 0.0)
    try:
        default_tax_rate = float(raw_rate)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid value for 'business.default_tax_rate' in the configuration. "
            "Expected a number."
        ) from exc
    if not 0 <= default_tax_rate <= 100:
        raise ValueError("'business.default_tax_rate' must be between 0 and 100.")

    return BusinessConfig(
        name=str(section.get("name") or ""),
        currency=str(section.get("currency") or "USD").upper(),
        default_tax_rate=default_tax_rate,
    )


def _parse_database(raw: Mapping[str, Any], base_dir: Path) -> DatabaseConfig:
    section = _section(raw, "database")

    db_engine = str(section.get("engine") or "sqlite").strip().lower()
    if db_engine != "sqlite":
        raise ValueError(
            f"Invalid value for 'database.engine': {db_engine!r}. "
            "Only 'sqlite' is supported."
        )
    db_path_raw = section.get("path") or "data/db/smb_ledger.sqlite"
    db_path = (base_dir / str(db_path_raw)).resolve()

    return DatabaseConfig(engine=db_engine, path=db_path)


def _parse_invoices(raw: Mapping[str, Any]) -> InvoicesConfig:
    section = _section(raw, "invoices")

    strict_statuses = section.get("strict_statuses", False)
    if not isinstance(strict_statuses, bool):
        raise ValueError(
            "Invalid value for 'invoices.strict_statuses' in the configuration. "
            "Expected true or false."
        )

    return InvoicesConfig(
        number_prefix=str(section.get("number_prefix", DEFAULT_NUMBER_PREFIX)),
        strict_statuses=strict_statuses,
    )


def _parse_dashboard(raw: Mapping[str, Any]) -> DashboardConfig:
    section = _section(raw, "dashboard")
    return DashboardConfig(
        recent_invoices=_non_negative_int(
            section, "recent_invoices", DEFAULT_RECENT_INVOICES, "dashboard"
        ),
        recent_expenses=_non_negative_int(
            section, "recent_expenses", DEFAULT_RECENT_EXPENSES, "dashboard"
        ),
        activity_limit=_non_negative_int(
            section, "activity_limit", DEFAULT_ACTIVITY_LIMIT, "dashboard"
        ),
    )


def default_app_config(db_path: Path) -> AppConfig:
    """Configuration with every default applied, storing data at `db_path`."""
    return AppConfig(
        business=_parse_business({}),
        database=DatabaseConfig(engine="sqlite", path=db_path),
        invoices=_parse_invoices({}),
        dashboard=_parse_dashboard({}),
        amount_decimals=2,
        log_level="WARNING",
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the SMB Ledger application configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [business]
        name, currency (default "USD"), default_tax_rate (default 0).

    [database]
        engine ("sqlite" only) and the SQLite file path.

    [invoices]
        number_prefix (default "INV-") and strict_statuses (default false).
        With strict_statuses, an invoice row holding an unknown status makes
        reads fail with UnknownStatusError instead of being flagged.

    [dashboard]
        recent_invoices (5), recent_expenses (3), activity_limit (8).

    [display]
        amount_decimals (2).

    [logging]
        level (default "WARNING").

    Notes
    -----
    All file paths in the TOML are resolved relative to the directory of
    the TOML file itself.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML configuration file. Defaults to
        'smb_ledger_config.toml' in the current directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    display_section = _section(raw, "display")
    amount_decimals = _non_negative_int(
        display_section, "amount_decimals", 2, "display"
    )

    logging_section = _section(raw, "logging")
    log_level = str(logging_section.get("level", "WARNING")).upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(
            f"Invalid value for 'logging.level': {log_level!r}. "
            f"Expected one of: {', '.join(sorted(_LOG_LEVELS))}."
        )

    return AppConfig(
        business=_parse_business(raw),
        database=_parse_database(raw, base_dir),
        invoices=_parse_invoices(raw),
        dashboard=_parse_dashboard(raw),
        amount_decimals=amount_decimals,
        log_level=log_level,
    )
