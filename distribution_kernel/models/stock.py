"""
Module: distribution_kernel.models.stock
Responsibility: ORM persistence for per-unit stock balances and the
    movement journal that feeds them.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    One stock row per (unit, contract item) -- uq_unit_stock_item.
    Movements are append-only; UnitStock.quantity equals the sum of the
           unit's movements for that item.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from distribution_kernel.db.base import TrackedBase, UUIDString
from distribution_kernel.domain.dtos import MovementType


class UnitStock(TrackedBase):
    """Current on-hand quantity of one contract item at one unit."""

    __tablename__ = "unit_stock"

    __table_args__ = (
        UniqueConstraint("unit_id", "contract_item_id", name="uq_unit_stock_item"),
        CheckConstraint("quantity >= 0", name="ck_unit_stock_quantity"),
    )

    unit_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("school_units.id"),
        nullable=False,
    )

    contract_item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("contract_items.id"),
        nullable=False,
    )

    quantity: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))


class StockMovement(TrackedBase):
    """
    One posted stock movement.

    Guarantees:
        - quantity > 0; the movement type gives the direction.
        - receipt_id points at the receipt that caused the movement.
        - new_quantity = previous_quantity + quantity.
    """

    __tablename__ = "stock_movements"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_movement_quantity"),
        Index("idx_stock_movement_unit_item", "unit_id", "contract_item_id"),
        Index("idx_stock_movement_receipt", "receipt_id"),
    )

    unit_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("school_units.id"),
        nullable=False,
    )

    contract_item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("contract_items.id"),
        nullable=False,
    )

    receipt_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("receipts.id"),
        nullable=False,
    )

    movement_type: Mapped[str] = mapped_column(String(20), nullable=False)

    quantity: Mapped[Decimal] = mapped_column(nullable=False)

    previous_quantity: Mapped[Decimal] = mapped_column(nullable=False)

    new_quantity: Mapped[Decimal] = mapped_column(nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
