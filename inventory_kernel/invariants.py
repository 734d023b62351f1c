"""
Kernel Invariants Contract.

These invariants are structural law for the inventory ledger. No
configuration value may switch them off.

This module only declares them. Enforcement is distributed across
LotStore, MovementLedger, the operation services, the immutability
listeners and the database check constraints.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    NON_NEGATIVE_STOCK = "non_negative_stock"
    """Lot quantity is never below zero. Enforced by LotStore.set_quantity
    and the ck_lot_quantity_non_negative check constraint."""

    CONSERVATION = "conservation"
    """A transfer never changes the total quantity of a product across
    locations. Enforced by TransferService (decrement and increment of the
    same amount in one transaction)."""

    LEDGER_COMPLETENESS = "ledger_completeness"
    """Every quantity change is explained by exactly one movement entry
    whose magnitude equals the change. Enforced by the operation services
    appending through MovementLedger in the same transaction."""

    LEDGER_IMMUTABILITY = "ledger_immutability"
    """Movement entries, sales and sale lines are append-only. Enforced by
    inventory_kernel.db.immutability."""

    SALE_ATOMICITY = "sale_atomicity"
    """A sale is persisted in full or not at all. Enforced by validating and
    locking every line before the first write."""

    SALE_TOTAL = "sale_total"
    """A sale's total equals the sum of its line subtotals exactly.
    Enforced by SaleService with currency-quantized Decimal arithmetic."""

