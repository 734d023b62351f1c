"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into a validated
``EngineConfig``.  Runtime callers go through
``inventory_config.get_active_config()``.

Invariants enforced
-------------------
* Every problem in a file is reported at once in a single ``ConfigError``.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  document for configuration identity.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Structural or value problems  -> ``ConfigError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import EngineConfig, LocationDef, LocationKind

_DEFAULT_PAYMENT_METHODS = ("cash", "card", "bank_transfer", "mobile_wallet")


class ConfigError(ValueError):
    """Configuration failed validation."""

    def __init__(self, errors: list[str], source: str | None = None):
        self.errors = errors
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(
            f"Configuration validation failed{where}:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _parse_locations(raw: Any, errors: list[str]) -> tuple[LocationDef, ...]:
    if not isinstance(raw, list) or not raw:
        errors.append("locations must be a non-empty list")
        return ()

    locations = []
    seen: set[str] = set()
    for i, item in enumerate(raw):
        if not isinstance(item, dict) or not item.get("code"):
            errors.append(f"locations[{i}] must be a mapping with a 'code'")
            continue
        code = str(item["code"])
        if code in seen:
            errors.append(f"duplicate location code {code!r}")
            continue
        seen.add(code)
        try:
            kind = LocationKind(item.get("kind"))
        except ValueError:
            errors.append(
                f"location {code!r} has kind {item.get('kind')!r}; "
                f"expected one of {[k.value for k in LocationKind]}"
            )
            continue
        locations.append(LocationDef(code=code, kind=kind, name=str(item.get("name", code))))

    kinds = {loc.kind for loc in locations}
    for required in LocationKind:
        if required not in kinds:
            errors.append(f"at least one {required.value} location is required")
    return tuple(locations)


def _int_setting(data: dict, key: str, default: int, minimum: int, errors: list[str]) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        errors.append(f"{key} must be an integer >= {minimum}, got {value!r}")
        return default
    return value


def parse_config(data: dict[str, Any], source: str | None = None) -> EngineConfig:
    """
    Parse and validate a configuration document.

    Raises:
        ConfigError: listing every problem found.
    """
    errors: list[str] = []

    locations = _parse_locations(data.get("locations"), errors)
    near_expiry_days = _int_setting(data, "near_expiry_days", 30, 0, errors)
    max_attempts = _int_setting(data, "max_attempts", 5, 1, errors)
    version = _int_setting(data, "version", 1, 1, errors)
    currency_places = _int_setting(data, "currency_places", 2, 0, errors)

    backoff = data.get("retry_backoff_seconds", 0.05)
    if isinstance(backoff, bool) or not isinstance(backoff, (int, float)) or backoff < 0:
        errors.append(f"retry_backoff_seconds must be a number >= 0, got {backoff!r}")
        backoff = 0.05

    methods = data.get("payment_methods", list(_DEFAULT_PAYMENT_METHODS))
    if methods is None:
        methods = []
    if not isinstance(methods, list) or not all(isinstance(m, str) and m for m in methods):
        errors.append("payment_methods must be a list of non-empty strings")
        methods = list(_DEFAULT_PAYMENT_METHODS)

    database = data.get("database") or {}
    if not isinstance(database, dict):
        errors.append("database must be a mapping")
        database = {}

    if errors:
        raise ConfigError(errors, source)

    return EngineConfig(
        config_id=str(data.get("config_id", "default")),
        version=version,
        locations=locations,
        near_expiry_days=near_expiry_days,
        max_attempts=max_attempts,
        retry_backoff_seconds=float(backoff),
        currency_places=currency_places,
        payment_methods=tuple(methods),
        database_url=database.get("url"),
        checksum=compute_checksum(data),
    )


def load_config_file(path: Path) -> EngineConfig:
    """Load and validate one YAML file."""
    return parse_config(load_yaml_file(path), source=str(path))
