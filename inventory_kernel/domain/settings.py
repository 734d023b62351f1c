"""
LedgerSettings -- the kernel-side view of engine configuration.

The kernel never imports inventory_config; the config package converts its
EngineConfig into this structure (inventory_config.bridges).  Defaults
match the shipped configuration so the kernel is usable standalone.
"""

from dataclasses import dataclass

DEFAULT_LOCATIONS: frozenset[str] = frozenset({"backroom", "counter-1", "counter-2"})
DEFAULT_PAYMENT_METHODS: tuple[str, ...] = ("cash", "card", "bank_transfer", "mobile_wallet")


@dataclass(frozen=True)
class LedgerSettings:
    """
    Runtime knobs for the ledger engine.

    Guarantees:
        - ``location_codes`` is non-empty.
        - An empty ``payment_methods`` tuple means any method is accepted.
    """

    location_codes: frozenset[str] = DEFAULT_LOCATIONS
    payment_methods: tuple[str, ...] = DEFAULT_PAYMENT_METHODS
    near_expiry_days: int = 30
    max_attempts: int = 5
    retry_backoff_seconds: float = 0.05
    currency_places: int = 2

    def __post_init__(self):
        if not self.location_codes:
            raise ValueError("LedgerSettings requires at least one location")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.currency_places < 0:
            raise ValueError("currency_places must be >= 0")

    def is_known_location(self, code: str) -> bool:
        return code in self.location_codes

    def accepts_payment_method(self, method: str) -> bool:
        return not self.payment_methods or method in self.payment_methods
