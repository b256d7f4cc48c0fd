"""
Typed Exception Hierarchy for the Distribution Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the engine (UI dialogs, the public confirmation endpoint, report
jobs) must be able to react to a failure without parsing message strings.
Every error therefore:
  1. Has a TYPED exception class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes, exported via ``to_dict()``

Example:
    try:
        engine.create_order(...)
    except InsufficientBalanceError as e:
        show_error(code=e.code, item=e.contract_item_id,
                   requested=e.requested, available=e.available)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    DistributionKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidQuantityError
    |   +-- DeliveryDateInPastError
    |
    +-- BalanceError
    |   +-- InsufficientBalanceError
    |   +-- BalanceOverflowError
    |
    +-- InvalidStateError
    |   +-- ContractInactiveError
    |   +-- OrderNotConfirmedError
    |   +-- OrderNotCancellableError
    |   +-- ReceiptNotPendingError
    |   +-- ReceiptNotAdjustableError
    |   +-- ReceiptAlreadyAdjustedError
    |
    +-- NotFoundError
    |   +-- ContractNotFoundError
    |   +-- ContractItemNotFoundError
    |   +-- UnitNotFoundError
    |   +-- OrderNotFoundError
    |   +-- ReceiptNotFoundError
    |   +-- ReceiptItemNotFoundError
    |   +-- ConfirmationTokenNotFoundError
    |
    +-- PersistenceError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                      | When Raised
-------------|---------------------------|------------------------------------------
Validation   | VALIDATION_ERROR          | Malformed input (names the field)
             | INVALID_QUANTITY          | Quantity <= 0, or received outside range
             | DELIVERY_DATE_IN_PAST     | Requested delivery date before today
-------------|---------------------------|------------------------------------------
Balance      | INSUFFICIENT_BALANCE      | Reservation larger than remaining balance
             | BALANCE_OVERFLOW          | Release would exceed total quantity
-------------|---------------------------|------------------------------------------
State        | INVALID_STATE             | Operation not allowed in current state
             | CONTRACT_INACTIVE         | Ordering against a non-active contract
             | ORDER_NOT_CONFIRMED       | Generating receipts for non-confirmed order
             | ORDER_NOT_CANCELLABLE     | Cancelling after dispatch or twice
             | RECEIPT_NOT_PENDING       | Token already used / receipt confirmed
             | RECEIPT_NOT_ADJUSTABLE    | Adjusting a pending or confirmed receipt
             | RECEIPT_ALREADY_ADJUSTED  | Second adjustment of the same receipt
-------------|---------------------------|------------------------------------------
Not found    | *_NOT_FOUND               | Unknown id or confirmation token
-------------|---------------------------|------------------------------------------
Persistence  | PERSISTENCE_ERROR         | Database failure wrapped at the facade

===============================================================================
DESIGN DECISIONS
===============================================================================

1. ValidationError, BalanceError, InvalidStateError and NotFoundError are
   siblings, so "bad input" and "wrong state" are always distinguishable.

2. Confirmation tokens are never stored on an exception.  A token that
   does not resolve raises ConfirmationTokenNotFoundError with no payload.

3. PersistenceError is raised only by the facade, which wraps SQLAlchemy
   errors so callers never see a raw database exception.

===============================================================================
"""

from decimal import Decimal
from typing import Any


class DistributionKernelError(Exception):
    """
    Base exception for all distribution kernel errors.

    All subclasses define a ``code`` class attribute for machine-readable
    identification.
    """

    code: str = "DISTRIBUTION_KERNEL_ERROR"

    def to_dict(self) -> dict[str, Any]:
        """Structured reason suitable for an API response body."""
        data: dict[str, Any] = {"code": self.code, "message": str(self)}
        for key, value in vars(self).items():
            if key.startswith("_"):
                continue
            data[key] = str(value) if isinstance(value, Decimal) else value
        return data


# Validation exceptions


class ValidationError(DistributionKernelError):
    """Malformed input, rejected before any state is touched."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Invalid {field}: {message}")


class InvalidQuantityError(ValidationError):
    """A quantity is non-positive or outside its allowed range."""

    code: str = "INVALID_QUANTITY"

    def __init__(
        self,
        field: str,
        value: Decimal,
        minimum: Decimal | None = None,
        maximum: Decimal | None = None,
    ):
        self.value = value
        self.minimum = minimum
        self.maximum = maximum
        if maximum is None:
            detail = f"{value} must be greater than zero"
        else:
            detail = f"{value} outside [{minimum}, {maximum}]"
        super().__init__(field, detail)


class DeliveryDateInPastError(ValidationError):
    """Requested delivery date is earlier than today."""

    code: str = "DELIVERY_DATE_IN_PAST"

    def __init__(self, delivery_date: str, today: str):
        self.delivery_date = delivery_date
        self.today = today
        super().__init__(
            "delivery_date", f"{delivery_date} is before {today}"
        )


# Balance exceptions


class BalanceError(DistributionKernelError):
    """Base exception for contract balance ledger errors."""

    code: str = "BALANCE_ERROR"


class InsufficientBalanceError(BalanceError):
    """Requested quantity exceeds the contract item's remaining balance."""

    code: str = "INSUFFICIENT_BALANCE"

    def __init__(
        self,
        contract_item_id: str,
        requested: Decimal,
        available: Decimal,
    ):
        self.contract_item_id = contract_item_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient balance for contract item {contract_item_id}: "
            f"requested {requested}, available {available}"
        )


class BalanceOverflowError(BalanceError):
    """Releasing quantity would push the balance above the total quantity."""

    code: str = "BALANCE_OVERFLOW"

    def __init__(self, contract_item_id: str, quantity: Decimal):
        self.contract_item_id = contract_item_id
        self.quantity = quantity
        super().__init__(
            f"Releasing {quantity} on contract item {contract_item_id} "
            f"would exceed its total quantity"
        )


# State exceptions


class InvalidStateError(DistributionKernelError):
    """Operation is not allowed in the entity's current state."""

    code: str = "INVALID_STATE"

    def __init__(self, entity: str, entity_id: str, state: str, message: str):
        self.entity = entity
        self.entity_id = entity_id
        self.state = state
        super().__init__(message)


class ContractInactiveError(InvalidStateError):
    """Contract is not active and cannot receive orders."""

    code: str = "CONTRACT_INACTIVE"

    def __init__(self, contract_id: str, status: str):
        super().__init__(
            "contract", contract_id, status,
            f"Contract {contract_id} is {status}, not active",
        )


class OrderNotConfirmedError(InvalidStateError):
    """Receipts can only be generated for confirmed orders."""

    code: str = "ORDER_NOT_CONFIRMED"

    def __init__(self, order_id: str, status: str):
        super().__init__(
            "order", order_id, status,
            f"Order {order_id} is {status}; receipts require a confirmed order",
        )


class OrderNotCancellableError(InvalidStateError):
    """Order already dispatched or cancelled."""

    code: str = "ORDER_NOT_CANCELLABLE"

    def __init__(self, order_id: str, status: str, reason: str):
        self.reason = reason
        super().__init__(
            "order", order_id, status,
            f"Order {order_id} cannot be cancelled: {reason}",
        )


class ReceiptNotPendingError(InvalidStateError):
    """Receipt has left pending; its confirmation token is spent."""

    code: str = "RECEIPT_NOT_PENDING"

    def __init__(self, receipt_id: str, status: str):
        super().__init__(
            "receipt", receipt_id, status,
            f"Receipt {receipt_id} is already {status}",
        )


class ReceiptNotAdjustableError(InvalidStateError):
    """Only partial or rejected receipts can be adjusted."""

    code: str = "RECEIPT_NOT_ADJUSTABLE"

    def __init__(self, receipt_id: str, status: str):
        super().__init__(
            "receipt", receipt_id, status,
            f"Receipt {receipt_id} is {status}; only partial or rejected "
            f"receipts can be adjusted",
        )


class ReceiptAlreadyAdjustedError(InvalidStateError):
    """Receipt shortfall was already resolved by an earlier adjustment."""

    code: str = "RECEIPT_ALREADY_ADJUSTED"

    def __init__(self, receipt_id: str, status: str):
        super().__init__(
            "receipt", receipt_id, status,
            f"Receipt {receipt_id} has already been adjusted",
        )


# Not-found exceptions


class NotFoundError(DistributionKernelError):
    """Base exception for unknown identifiers."""

    code: str = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} not found: {entity_id}")


class ContractNotFoundError(NotFoundError):
    code: str = "CONTRACT_NOT_FOUND"

    def __init__(self, contract_id: str):
        super().__init__("contract", contract_id)


class ContractItemNotFoundError(NotFoundError):
    code: str = "CONTRACT_ITEM_NOT_FOUND"

    def __init__(self, contract_item_id: str):
        super().__init__("contract item", contract_item_id)


class UnitNotFoundError(NotFoundError):
    code: str = "UNIT_NOT_FOUND"

    def __init__(self, unit_id: str):
        super().__init__("unit", unit_id)


class OrderNotFoundError(NotFoundError):
    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        super().__init__("order", order_id)


class ReceiptNotFoundError(NotFoundError):
    code: str = "RECEIPT_NOT_FOUND"

    def __init__(self, receipt_id: str):
        super().__init__("receipt", receipt_id)


class ReceiptItemNotFoundError(NotFoundError):
    code: str = "RECEIPT_ITEM_NOT_FOUND"

    def __init__(self, receipt_item_id: str):
        super().__init__("receipt item", receipt_item_id)


class ConfirmationTokenNotFoundError(NotFoundError):
    """No receipt matches the presented token.  The token is not echoed."""

    code: str = "CONFIRMATION_TOKEN_NOT_FOUND"

    def __init__(self) -> None:
        super().__init__("confirmation token", "<redacted>")


# Persistence


class PersistenceError(DistributionKernelError):
    """A database failure, reported without driver details."""

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Could not complete {operation}; no changes were saved")
