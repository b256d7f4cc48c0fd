"""
Module: distribution_kernel.models.contract
Responsibility: ORM persistence for supply contracts and their line items.
    A ContractItem holds the contracted total quantity of one supply and the
    remaining balance still available for allocation into orders.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.
    MUST NOT import from services/, selectors/, or outer layers.

Invariants enforced:
    Balance bounds -- 0 <= remaining_balance <= total_quantity, as a CHECK
           constraint (ck_contract_item_balance_bounds).
    Ledger ownership -- remaining_balance is mutated only by
           BalanceLedgerService through conditional UPDATEs; never assigned
           from application code.

Failure modes:
    - IntegrityError on duplicate contract number (uq_contract_number).
    - IntegrityError if a write would break the balance bounds.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from distribution_kernel.db.base import TrackedBase, UUIDString
from distribution_kernel.domain.dtos import ContractInfo, ContractItemInfo, ContractStatus


class Contract(TrackedBase):
    """
    Supply contract signed with one supplier.

    Guarantees:
        - contract_number is globally unique.
        - Only ACTIVE contracts accept new orders (checked by OrderAllocator).
    """

    __tablename__ = "contracts"

    __table_args__ = (
        UniqueConstraint("contract_number", name="uq_contract_number"),
        Index("idx_contract_status", "status"),
    )

    contract_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        doc="Contract number as printed on the signed document",
    )

    supplier_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Supplier legal name",
    )

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ContractStatus.ACTIVE.value,
    )

    items: Mapped[list["ContractItem"]] = relationship(
        "ContractItem",
        back_populates="contract",
        lazy="selectin",
        order_by="ContractItem.name",
    )

    @property
    def is_active(self) -> bool:
        return self.status == ContractStatus.ACTIVE.value

    def to_dto(self) -> ContractInfo:
        return ContractInfo(
            id=self.id,
            contract_number=self.contract_number,
            supplier_name=self.supplier_name,
            start_date=self.start_date,
            end_date=self.end_date,
            status=ContractStatus(self.status),
            items=tuple(item.to_dto() for item in self.items),
        )


class ContractItem(TrackedBase):
    """
    One contracted supply with its committed-balance ledger.

    Guarantees:
        - total_quantity is fixed at signature.
        - remaining_balance reflects quantity not yet committed to an order.
          Deliveries never change it; only order allocation (decrement) and
          cancellation before dispatch (increment) do.
    """

    __tablename__ = "contract_items"

    __table_args__ = (
        CheckConstraint(
            "remaining_balance >= 0 AND remaining_balance <= total_quantity",
            name="ck_contract_item_balance_bounds",
        ),
        CheckConstraint("unit_price >= 0", name="ck_contract_item_price"),
        Index("idx_contract_item_contract", "contract_id"),
    )

    contract_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("contracts.id"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    unit_of_measure: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="Unit of measure abbreviation (kg, pct, un)",
    )

    unit_price: Mapped[Decimal] = mapped_column(nullable=False)

    total_quantity: Mapped[Decimal] = mapped_column(nullable=False)

    remaining_balance: Mapped[Decimal] = mapped_column(nullable=False)

    contract: Mapped["Contract"] = relationship(
        "Contract",
        back_populates="items",
    )

    def to_dto(self) -> ContractItemInfo:
        return ContractItemInfo(
            id=self.id,
            contract_id=self.contract_id,
            name=self.name,
            unit_of_measure=self.unit_of_measure,
            unit_price=self.unit_price,
            total_quantity=self.total_quantity,
            remaining_balance=self.remaining_balance,
        )
