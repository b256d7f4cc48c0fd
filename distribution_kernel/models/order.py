"""
Module: distribution_kernel.models.order
Responsibility: ORM persistence for delivery orders and their per-unit
    allocation lines.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    One row per (order, contract item, unit) -- uq_order_item_allocation.
    quantity > 0 -- ck_order_item_quantity_positive.
    Order contents are frozen once any receipt exists; only status moves
           (enforced at service layer, not ORM).
"""

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from distribution_kernel.db.base import TrackedBase, UUIDString
from distribution_kernel.domain.dtos import OrderInfo, OrderItemInfo, OrderStatus

if TYPE_CHECKING:
    from distribution_kernel.models.contract import ContractItem


class Order(TrackedBase):
    """
    A delivery order drawn from one contract.

    Guarantees:
        - order_number is unique (PD-<year>-<sequence>).
        - total_value = sum(quantity * unit_price) over its items, rounded.
        - status never moves back from DELIVERED; delivery outcomes are
          reported by the consolidation view only.
    """

    __tablename__ = "orders"

    __table_args__ = (
        UniqueConstraint("order_number", name="uq_order_number"),
        Index("idx_order_contract", "contract_id"),
        Index("idx_order_status", "status"),
    )

    order_number: Mapped[str] = mapped_column(String(50), nullable=False)

    contract_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("contracts.id"),
        nullable=False,
    )

    order_date: Mapped[date] = mapped_column(Date, nullable=False)

    requested_delivery_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=OrderStatus.PENDING.value,
    )

    total_value: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_dto(self) -> OrderInfo:
        return OrderInfo(
            id=self.id,
            order_number=self.order_number,
            contract_id=self.contract_id,
            order_date=self.order_date,
            requested_delivery_date=self.requested_delivery_date,
            status=OrderStatus(self.status),
            total_value=self.total_value,
            items=tuple(item.to_dto() for item in self.items),
        )


class OrderItem(TrackedBase):
    """
    Quantity of one contract item allocated to one destination unit.

    Guarantees:
        - quantity > 0.
        - contract_item is shared by reference; many orders may draw on it.
    """

    __tablename__ = "order_items"

    __table_args__ = (
        UniqueConstraint(
            "order_id", "contract_item_id", "unit_id",
            name="uq_order_item_allocation",
        ),
        CheckConstraint("quantity > 0", name="ck_order_item_quantity_positive"),
        Index("idx_order_item_order", "order_id"),
        Index("idx_order_item_contract_item", "contract_item_id"),
    )

    order_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("orders.id"),
        nullable=False,
    )

    contract_item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("contract_items.id"),
        nullable=False,
    )

    unit_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("school_units.id"),
        nullable=False,
    )

    quantity: Mapped[Decimal] = mapped_column(nullable=False)

    order: Mapped["Order"] = relationship("Order", back_populates="items")

    contract_item: Mapped["ContractItem"] = relationship(
        "ContractItem",
        lazy="selectin",
    )

    def to_dto(self) -> OrderItemInfo:
        return OrderItemInfo(
            id=self.id,
            order_id=self.order_id,
            contract_item_id=self.contract_item_id,
            unit_id=self.unit_id,
            quantity=self.quantity,
            item_name=self.contract_item.name,
            unit_of_measure=self.contract_item.unit_of_measure,
            unit_price=self.contract_item.unit_price,
        )
