"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (UI, API layers) must be able to tell an oversell apart from a typo in
a location code without parsing message strings. Every error therefore has:
  1. Its own exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured attributes carrying the offending values

Example:
    try:
        ledger.record_sale(lines, payment_method="cash")
    except InsufficientStockError as e:
        api_response(code=e.code, lot=e.lot_id, available=e.available)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidQuantityError
    |   +-- InvalidPriceError
    |   +-- UnknownLocationError
    |   +-- InvalidDestinationError
    |   +-- InvalidPaymentMethodError
    |   +-- EmptySaleError
    |   +-- InvalidSaleLineError
    |
    +-- StockError
    |   +-- InsufficientStockError
    |
    +-- NotFoundError
    |   +-- ProductNotFoundError
    |   +-- LotNotFoundError
    |   +-- SaleNotFoundError
    |
    +-- ProductInactiveError
    |
    +-- ConcurrencyError
    |   +-- ConflictError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                    | When Raised
-------------|-------------------------|------------------------------------------
Validation   | INVALID_QUANTITY        | Quantity not positive (or negative count)
             | INVALID_PRICE           | Negative unit price on a sale line
             | UNKNOWN_LOCATION        | Location not in the configured set
             | INVALID_DESTINATION     | Transfer destination == source location
             | INVALID_PAYMENT_METHOD  | Payment method not configured
             | EMPTY_SALE              | Sale submitted without lines
             | INVALID_SALE_LINE       | Sale line mapping missing a required key
-------------|-------------------------|------------------------------------------
Stock        | INSUFFICIENT_STOCK      | Decrement exceeds current lot quantity
-------------|-------------------------|------------------------------------------
Not found    | PRODUCT_NOT_FOUND       | Product id doesn't exist
             | LOT_NOT_FOUND           | Lot id doesn't exist
             | SALE_NOT_FOUND          | Sale id doesn't exist
-------------|-------------------------|------------------------------------------
Product      | PRODUCT_INACTIVE        | Stocking a deactivated product
-------------|-------------------------|------------------------------------------
Concurrency  | CONFLICT                | Retry budget exhausted
-------------|-------------------------|------------------------------------------
Immutability | IMMUTABILITY_VIOLATION  | Update/delete of a ledger or sale record

All validation errors are raised before any write reaches the database, and
the surrounding transaction is rolled back, so no operation partially applies.
"""


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"


# Validation exceptions


class ValidationError(InventoryKernelError):
    """Base exception for rejected input."""

    code: str = "VALIDATION_ERROR"


class InvalidQuantityError(ValidationError):
    """A quantity was outside the allowed range for the operation."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity, reason: str = "must be a positive integer"):
        self.quantity = quantity
        self.reason = reason
        super().__init__(f"Invalid quantity {quantity!r}: {reason}")


class InvalidPriceError(ValidationError):
    """A unit price was negative or not a number."""

    code: str = "INVALID_PRICE"

    def __init__(self, unit_price):
        self.unit_price = unit_price
        super().__init__(f"Invalid unit price {unit_price!r}: must be >= 0")


class UnknownLocationError(ValidationError):
    """Location code is not part of the configured location set."""

    code: str = "UNKNOWN_LOCATION"

    def __init__(self, location: str, known: tuple[str, ...] = ()):
        self.location = location
        self.known = tuple(known)
        super().__init__(
            f"Unknown location {location!r}; configured: {', '.join(self.known) or '-'}"
        )


class InvalidDestinationError(ValidationError):
    """Transfer destination is the same as the source location."""

    code: str = "INVALID_DESTINATION"

    def __init__(self, lot_id: str, location: str):
        self.lot_id = lot_id
        self.location = location
        super().__init__(
            f"Lot {lot_id} is already at {location!r}; destination must differ"
        )


class InvalidPaymentMethodError(ValidationError):
    """Payment method is not one of the configured methods."""

    code: str = "INVALID_PAYMENT_METHOD"

    def __init__(self, payment_method: str, allowed: tuple[str, ...] = ()):
        self.payment_method = payment_method
        self.allowed = tuple(allowed)
        super().__init__(
            f"Unsupported payment method {payment_method!r}; "
            f"allowed: {', '.join(self.allowed)}"
        )


class EmptySaleError(ValidationError):
    """A sale was submitted without any lines."""

    code: str = "EMPTY_SALE"

    def __init__(self):
        super().__init__("A sale requires at least one line")


class InvalidSaleLineError(ValidationError):
    """A sale line mapping lacked one or more required keys."""

    code: str = "INVALID_SALE_LINE"

    def __init__(self, missing: tuple[str, ...]):
        self.missing = tuple(missing)
        super().__init__(f"Sale line is missing: {', '.join(self.missing)}")


# Stock exceptions


class StockError(InventoryKernelError):
    """Base exception for stock level violations."""

    code: str = "STOCK_ERROR"


class InsufficientStockError(StockError):
    """Requested decrement exceeds the lot's current quantity."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, lot_id: str, requested: int, available: int):
        self.lot_id = lot_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock in lot {lot_id}: "
            f"requested {requested}, available {available}"
        )


# Lookup exceptions


class NotFoundError(InventoryKernelError):
    """Base exception for references that do not resolve."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class ProductNotFoundError(NotFoundError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__("Product", product_id)


class LotNotFoundError(NotFoundError):
    """Lot with given ID was not found."""

    code: str = "LOT_NOT_FOUND"

    def __init__(self, lot_id: str):
        self.lot_id = lot_id
        super().__init__("Lot", lot_id)


class SaleNotFoundError(NotFoundError):
    """Sale with given ID was not found."""

    code: str = "SALE_NOT_FOUND"

    def __init__(self, sale_id: str):
        self.sale_id = sale_id
        super().__init__("Sale", sale_id)


class ProductInactiveError(InventoryKernelError):
    """Product is deactivated in the catalog and cannot be stocked."""

    code: str = "PRODUCT_INACTIVE"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product {product_id} is inactive")


# Concurrency exceptions


class ConcurrencyError(InventoryKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConflictError(ConcurrencyError):
    """Concurrent modification retry budget exhausted."""

    code: str = "CONFLICT"

    def __init__(self, operation: str, attempts: int):
        self.operation = operation
        self.attempts = attempts
        super().__init__(
            f"Operation {operation!r} aborted after {attempts} attempts: "
            "lots were modified by concurrent transactions"
        )


# Immutability exceptions


class ImmutabilityError(InventoryKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
