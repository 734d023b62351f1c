"""
EngineConfig schema.

Frozen dataclasses for the human-authored YAML configuration.  The loader
parses YAML into these types; bridges.py converts them into the kernel's
LedgerSettings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class LocationKind(str, Enum):
    """Role a location plays in the store."""

    BACKROOM = "backroom"
    COUNTER = "counter"


@dataclass(frozen=True)
class LocationDef:
    """A physical place where lots can sit."""

    code: str
    kind: LocationKind
    name: str = ""


@dataclass(frozen=True)
class EngineConfig:
    """
    Validated engine configuration.

    Invariants (checked by the loader):
        - At least one backroom and one counter location; codes unique.
        - near_expiry_days >= 0, max_attempts >= 1,
          retry_backoff_seconds >= 0, currency_places >= 0.
    """

    config_id: str
    version: int
    locations: tuple[LocationDef, ...]
    near_expiry_days: int = 30
    max_attempts: int = 5
    retry_backoff_seconds: float = 0.05
    currency_places: int = 2
    payment_methods: tuple[str, ...] = ("cash", "card", "bank_transfer", "mobile_wallet")
    database_url: str | None = None
    checksum: str = field(default="", compare=False)

    @property
    def location_codes(self) -> frozenset[str]:
        return frozenset(loc.code for loc in self.locations)

    def locations_of_kind(self, kind: LocationKind) -> tuple[LocationDef, ...]:
        return tuple(loc for loc in self.locations if loc.kind == kind)

    @property
    def backrooms(self) -> tuple[LocationDef, ...]:
        return self.locations_of_kind(LocationKind.BACKROOM)

    @property
    def counters(self) -> tuple[LocationDef, ...]:
        return self.locations_of_kind(LocationKind.COUNTER)
