"""ORM models for contracts, units, orders, receipts, and stock."""

from distribution_kernel.models.contract import Contract, ContractItem, ContractStatus
from distribution_kernel.models.order import Order, OrderItem, OrderStatus
from distribution_kernel.models.receipt import Receipt, ReceiptItem, ReceiptStatus
from distribution_kernel.models.sequence import SequenceCounter
from distribution_kernel.models.stock import MovementType, StockMovement, UnitStock
from distribution_kernel.models.unit import SchoolUnit

__all__ = [
    "Contract",
    "ContractItem",
    "ContractStatus",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Receipt",
    "ReceiptItem",
    "ReceiptStatus",
    "SchoolUnit",
    "SequenceCounter",
    "MovementType",
    "StockMovement",
    "UnitStock",
]
