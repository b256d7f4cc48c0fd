"""
Domain value objects for the distribution kernel.

Commands coming in (allocations, confirmation submissions, adjustments)
and read models going out (order, receipt, consolidation).  All are frozen
dataclasses; none carries an ORM reference.

The raw confirmation token appears in exactly one type, ConfirmationLink,
and is excluded from its repr.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class ContractStatus(str, Enum):
    """Contract lifecycle status."""

    ACTIVE = "active"        # Accepting orders
    INACTIVE = "inactive"    # Suspended by the administration
    EXPIRED = "expired"      # Past its end date


class OrderStatus(str, Enum):
    """Order lifecycle status."""

    PENDING = "pending"          # Created, not yet committed against the ledger
    CONFIRMED = "confirmed"      # Balances reserved, awaiting dispatch
    DELIVERED = "delivered"      # Receipts generated and dispatched
    CANCELLED = "cancelled"      # Reserved balances released


class ReceiptStatus(str, Enum):
    """Receipt confirmation states."""

    PENDING = "pending"        # Dispatched, awaiting the unit's confirmation
    CONFIRMED = "confirmed"    # Every item arrived complete and conforming
    PARTIAL = "partial"        # Something arrived, something is missing/defective
    REJECTED = "rejected"      # Nothing arrived


class MovementType(str, Enum):
    """Kinds of stock movement."""

    ENTRY = "entry"              # Goods confirmed on a receipt
    ADJUSTMENT = "adjustment"    # Upward correction made during adjustment


class ConsolidationStatus(str, Enum):
    """Order-level delivery status derived from the receipt forest."""

    COMPLETO = "completo"        # Every unit confirmed
    CONFIRMADO = "confirmado"    # Dispatched and every root receipt answered
    PARCIAL = "parcial"          # Some units confirmed
    PENDENTE = "pendente"        # Nothing confirmed yet


class AdjustmentChoice(str, Enum):
    """What the adjusting operator decided for one receipt item."""

    MARK_CONFORMING = "mark_conforming"
    LEAVE_SHORTFALL = "leave_shortfall"


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Allocation:
    """Quantity of one contract item requested for one unit."""
    contract_item_id: UUID
    unit_id: UUID
    quantity: Decimal


@dataclass(frozen=True)
class ItemSubmission:
    """A unit's report for one order item on the receipt it is confirming."""
    order_item_id: UUID
    quantity_received: Decimal
    defect_reported: bool = False
    notes: str | None = None


@dataclass(frozen=True)
class ItemAdjustment:
    """
    Operator decision for one receipt item of a partial/rejected receipt.

    corrected_quantity is required for MARK_CONFORMING and ignored
    otherwise.
    """
    receipt_item_id: UUID
    choice: AdjustmentChoice
    corrected_quantity: Decimal | None = None
    notes: str | None = None


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ContractItemInfo:
    id: UUID
    contract_id: UUID
    name: str
    unit_of_measure: str
    unit_price: Decimal
    total_quantity: Decimal
    remaining_balance: Decimal


@dataclass(frozen=True)
class ContractInfo:
    id: UUID
    contract_number: str
    supplier_name: str
    start_date: date
    end_date: date
    status: ContractStatus
    items: tuple[ContractItemInfo, ...] = ()


@dataclass(frozen=True)
class UnitInfo:
    id: UUID
    code: str
    name: str
    is_active: bool


@dataclass(frozen=True)
class OrderItemInfo:
    id: UUID
    order_id: UUID
    contract_item_id: UUID
    unit_id: UUID
    quantity: Decimal
    item_name: str
    unit_of_measure: str
    unit_price: Decimal


@dataclass(frozen=True)
class OrderInfo:
    id: UUID
    order_number: str
    contract_id: UUID
    order_date: date
    requested_delivery_date: date
    status: OrderStatus
    total_value: Decimal
    items: tuple[OrderItemInfo, ...] = ()

    @property
    def unit_ids(self) -> frozenset[UUID]:
        return frozenset(item.unit_id for item in self.items)


@dataclass(frozen=True)
class ReceiptItemInfo:
    id: UUID
    receipt_id: UUID
    order_item_id: UUID
    quantity_requested: Decimal
    quantity_received: Decimal
    conforming: bool | None
    defect_reported: bool
    notes: str | None = None

    @property
    def delivered_quantity(self) -> Decimal:
        """Quantity the unit reported receiving; 0 while the receipt is unanswered."""
        if self.conforming is None:
            return Decimal("0")
        return self.quantity_received

    @property
    def shortfall(self) -> Decimal:
        return self.quantity_requested - self.delivered_quantity


@dataclass(frozen=True)
class ReceiptInfo:
    """Receipt as seen by every caller.  Never carries the confirmation token."""
    id: UUID
    receipt_number: str
    order_id: UUID
    unit_id: UUID
    parent_receipt_id: UUID | None
    status: ReceiptStatus
    delivered_by: str
    delivery_date: date
    received_by: str | None = None
    received_at: datetime | None = None
    notes: str | None = None
    adjusted_by: str | None = None
    adjusted_at: datetime | None = None
    items: tuple[ReceiptItemInfo, ...] = ()

    @property
    def is_root(self) -> bool:
        return self.parent_receipt_id is None


@dataclass(frozen=True)
class ConfirmationLink:
    """
    The one place a raw confirmation token leaves the engine.

    qr_payload is the string the QR renderer encodes; it equals url.
    """
    receipt_id: UUID
    receipt_number: str
    token: str = field(repr=False)
    url: str = field(repr=False)
    qr_payload: str = field(repr=False)


@dataclass(frozen=True)
class IssuedReceipt:
    """A freshly created receipt together with its confirmation link."""
    receipt: ReceiptInfo
    link: ConfirmationLink


@dataclass(frozen=True)
class AdjustmentResult:
    updated_receipt: ReceiptInfo
    complementary: IssuedReceipt | None = None


@dataclass(frozen=True)
class ReceiptNode:
    """A receipt with its complementary receipts nested beneath it."""
    receipt: ReceiptInfo
    children: tuple[ReceiptNode, ...] = ()

    def walk(self):
        """Yield this node's receipt and every descendant, depth first."""
        yield self.receipt
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True)
class UnitConsolidation:
    unit_id: UUID
    root_receipt_id: UUID | None
    confirmed: bool
    quantity_requested: Decimal
    quantity_received: Decimal


@dataclass(frozen=True)
class ConsolidationView:
    """Order completion derived from its receipt forest.  Never persisted."""
    order_id: UUID
    total_units: int
    confirmed_units: int
    percent_confirmed: Decimal
    status: ConsolidationStatus
    units: tuple[UnitConsolidation, ...] = ()


@dataclass(frozen=True)
class OrderStats:
    total: int
    by_status: dict[str, int]
    total_value: Decimal


@dataclass(frozen=True)
class ReceiptStats:
    total: int
    by_status: dict[str, int]


@dataclass(frozen=True)
class UnitStockInfo:
    unit_id: UUID
    contract_item_id: UUID
    item_name: str
    quantity: Decimal


@dataclass(frozen=True)
class StockMovementInfo:
    id: UUID
    unit_id: UUID
    contract_item_id: UUID
    receipt_id: UUID
    movement_type: MovementType
    quantity: Decimal
    previous_quantity: Decimal
    new_quantity: Decimal
    occurred_at: datetime
