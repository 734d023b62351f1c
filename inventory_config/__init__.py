"""
inventory_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files.

Architecture position:
    Configuration -- sits above ``inventory_kernel``.  The kernel MUST NEVER
    import from ``inventory_config``; ``bridges.build_ledger_settings``
    translates the config into the kernel's LedgerSettings.

Failure modes:
    - ``FileNotFoundError`` -- the requested file does not exist.
    - ``ConfigError`` (a ``ValueError``) -- validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``INVENTORY_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying operations back to the configuration that governed them.
"""

from __future__ import annotations

from pathlib import Path

from inventory_config.loader import ConfigError, load_config_file
from inventory_config.schema import EngineConfig, LocationDef, LocationKind
from inventory_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> EngineConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: YAML file to load.  Defaults to
            inventory_config/sets/default.yaml.

    Returns:
        A validated, frozen EngineConfig.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigError: If validation fails.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = load_config_file(path)

    _logger.info(
        "INVENTORY_CONFIG_TRACE",
        extra={
            "trace_type": "INVENTORY_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "location_count": len(config.locations),
            "payment_method_count": len(config.payment_methods),
        },
    )
    return config


__all__ = [
    "ConfigError",
    "EngineConfig",
    "LocationDef",
    "LocationKind",
    "get_active_config",
]
