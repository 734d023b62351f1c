"""
Inventory Kernel - perishable stock ledger engine.

A lot-based, append-only inventory ledger with:
- FIFO (first-expire-first-out) lot selection
- Atomic transfer, sale and adjustment operations
- Non-negative quantity enforcement under concurrency
- Immutable movement ledger explaining every quantity change
"""

__version__ = "0.1.0"
