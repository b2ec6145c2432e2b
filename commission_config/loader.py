"""
Settings loader (``commission_config.loader``).

Responsibility
--------------
Reads a YAML settings file and parses it into ``CommissionSettings``.  The
single runtime entry point is ``commission_config.get_active_config()``;
this module is what it calls.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key or unknown policy value  -> ``ValueError`` from ``parse_settings``.
* Out-of-range rate or malformed default currency  -> ``ValueError`` raised by
  ``CommissionSettings.__post_init__``; it reaches the caller of
  ``parse_settings`` unchanged.
* Float rate in the file  -> ``ValueError``; rates must be quoted strings
  or integers so no binary rounding reaches the formula.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from commission_config.schema import CommissionSettings, MissingCurrencyPolicy

_KNOWN_KEYS = frozenset(
    {
        "config_id",
        "version",
        "default_withholding_rate",
        "default_currency",
        "on_missing_currency",
        "include_hq_default",
        "database_url",
    }
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_rate(value: Any) -> Decimal:
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"Withholding rate must be quoted, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Cannot parse withholding rate from {value!r}") from exc


def parse_settings(data: dict[str, Any], checksum: str = "") -> CommissionSettings:
    """
    Parse ``CommissionSettings`` from a dict.

    Missing keys take the schema defaults; unknown keys are rejected so a
    typo cannot silently fall back to a default.
    """
    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        raise ValueError(f"Unknown settings keys: {', '.join(sorted(unknown))}")

    defaults = CommissionSettings()
    raw_policy = data.get("on_missing_currency", defaults.on_missing_currency.value)
    try:
        policy = MissingCurrencyPolicy(str(raw_policy).lower())
    except ValueError as exc:
        raise ValueError(
            f"on_missing_currency must be one of "
            f"{[p.value for p in MissingCurrencyPolicy]}, got {raw_policy!r}"
        ) from exc

    return CommissionSettings(
        config_id=str(data.get("config_id", defaults.config_id)),
        version=int(data.get("version", defaults.version)),
        default_withholding_rate=(
            parse_rate(data["default_withholding_rate"])
            if "default_withholding_rate" in data
            else defaults.default_withholding_rate
        ),
        default_currency=str(data.get("default_currency", defaults.default_currency)),
        on_missing_currency=policy,
        include_hq_default=bool(data.get("include_hq_default", defaults.include_hq_default)),
        database_url=data.get("database_url"),
        checksum=checksum,
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form.  Same data, same checksum."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def load_settings(path: Path) -> CommissionSettings:
    data = load_yaml_file(path)
    return parse_settings(data, checksum=compute_checksum(data))
