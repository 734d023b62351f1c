"""
Config -> Kernel Bridges.

Functions that convert EngineConfig into kernel inputs.  They live here
because the kernel must never import inventory_config.

Usage:
    from inventory_config import get_active_config
    from inventory_config.bridges import build_ledger_settings

    settings = build_ledger_settings(get_active_config())
"""

from __future__ import annotations

from uuid import UUID

from inventory_config.loader import ConfigError
from inventory_config.schema import EngineConfig
from inventory_kernel.db.engine import build_engine, create_tables, make_session_factory
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.settings import LedgerSettings
from inventory_kernel.services.inventory_ledger import InventoryLedger


def build_ledger_settings(config: EngineConfig) -> LedgerSettings:
    """Build the kernel's LedgerSettings from a validated EngineConfig."""
    return LedgerSettings(
        location_codes=config.location_codes,
        payment_methods=config.payment_methods,
        near_expiry_days=config.near_expiry_days,
        max_attempts=config.max_attempts,
        retry_backoff_seconds=config.retry_backoff_seconds,
        currency_places=config.currency_places,
    )


def build_ledger(
    config: EngineConfig,
    database_url: str | None = None,
    clock: Clock | None = None,
    actor_id: UUID | None = None,
    create_schema: bool = True,
) -> InventoryLedger:
    """
    Build an InventoryLedger on its own engine.

    Args:
        config: Validated configuration.
        database_url: Overrides ``config.database_url``.
        clock: Injected clock; SystemClock when omitted.
        actor_id: Recorded on every entry the ledger writes.
        create_schema: Create missing tables before returning.

    Raises:
        ConfigError: If neither argument nor config supplies a database URL.
    """
    url = database_url or config.database_url
    if not url:
        raise ConfigError(["database.url is not set"])

    engine = build_engine(url)
    if create_schema:
        create_tables(engine)
    return InventoryLedger(
        make_session_factory(engine),
        build_ledger_settings(config),
        clock=clock,
        actor_id=actor_id,
    )
