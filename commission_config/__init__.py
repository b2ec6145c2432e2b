"""
commission_config -- single public entrypoint for commission settings.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains settings.
    The result is handed to ``LedgerSynchronizer`` at construction; the
    kernel never reads files or environment variables on its own.

Audit relevance:
    Every successful call emits a ``COMMISSION_CONFIG_TRACE`` log entry with
    the config id, version and checksum, tying each ledger regeneration back
    to the settings that governed it.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from commission_config.loader import compute_checksum, load_settings, parse_settings
from commission_config.schema import CommissionSettings, MissingCurrencyPolicy

__all__ = [
    "CONFIG_PATH_ENV",
    "CommissionSettings",
    "MissingCurrencyPolicy",
    "compute_checksum",
    "get_active_config",
    "parse_settings",
]

_logger = logging.getLogger("commission_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

# Environment variable naming an alternative settings file
CONFIG_PATH_ENV = "COMMISSION_CONFIG_PATH"


def get_active_config(config_path: Path | None = None) -> CommissionSettings:
    """
    Load and validate the active commission settings.

    Resolution order: ``config_path`` argument, then the file named by
    ``COMMISSION_CONFIG_PATH``, then the bundled ``sets/default.yaml``.

    Raises:
        FileNotFoundError: If the resolved file does not exist.
        ValueError: If the file fails validation.
    """
    path = config_path
    if path is None:
        env_path = os.environ.get(CONFIG_PATH_ENV)
        path = Path(env_path) if env_path else _DEFAULT_CONFIG_PATH

    settings = load_settings(Path(path))

    _logger.info(
        "COMMISSION_CONFIG_TRACE",
        extra={
            "trace_type": "COMMISSION_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_version": settings.version,
            "checksum": settings.checksum,
            "config_path": str(path),
            "on_missing_currency": settings.on_missing_currency.value,
        },
    )

    return settings
