"""
Module: distribution_kernel.models.receipt
Responsibility: ORM persistence for delivery receipts and their items.
    Receipts form a forest per order: each unit has exactly one root
    receipt (parent_receipt_id IS NULL) and any number of complementary
    receipts chained beneath it through parent_receipt_id.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    One root receipt per (order, unit) -- partial unique index
           uq_receipt_root_per_unit (PostgreSQL and SQLite).
    Token secrecy -- only the SHA-256 of the confirmation token is stored
           (token_hash, unique).  The raw token is never persisted.
    Item bounds -- 0 <= quantity_received <= quantity_requested and
           quantity_requested > 0 (CHECK constraints).

Design notes:
    The tree is stored as flat rows with an explicit parent foreign key.
    There are no in-memory child collections; traversal is an indexed
    lookup on parent_receipt_id (see selectors/receipt_selector.py).
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from distribution_kernel.db.base import TrackedBase, UUIDString
from distribution_kernel.domain.dtos import ReceiptInfo, ReceiptItemInfo, ReceiptStatus


class Receipt(TrackedBase):
    """
    Delivery receipt for one unit within one order.

    Guarantees:
        - receipt_number is unique (RB-<year>-<sequence>).
        - token_hash resolves the receipt from the public confirmation link.
        - token_consumed_at is stamped on the first transition out of
          PENDING; the hash is kept so a replayed token reports the state
          conflict instead of looking unknown.
        - adjusted_at is stamped once; a receipt is adjusted at most once.
    """

    __tablename__ = "receipts"

    __table_args__ = (
        UniqueConstraint("receipt_number", name="uq_receipt_number"),
        UniqueConstraint("token_hash", name="uq_receipt_token_hash"),
        Index("idx_receipt_order", "order_id"),
        Index("idx_receipt_parent", "parent_receipt_id"),
        Index("idx_receipt_status", "status"),
        Index(
            "uq_receipt_root_per_unit",
            "order_id",
            "unit_id",
            unique=True,
            postgresql_where=text("parent_receipt_id IS NULL"),
            sqlite_where=text("parent_receipt_id IS NULL"),
        ),
    )

    receipt_number: Mapped[str] = mapped_column(String(50), nullable=False)

    order_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("orders.id"),
        nullable=False,
    )

    unit_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("school_units.id"),
        nullable=False,
    )

    parent_receipt_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("receipts.id"),
        nullable=True,
        doc="Receipt whose shortfall this complementary receipt covers",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ReceiptStatus.PENDING.value,
    )

    delivery_date: Mapped[date] = mapped_column(Date, nullable=False)

    delivered_by: Mapped[str] = mapped_column(String(255), nullable=False)

    # Confirmation token (hash only)
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    token_consumed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Filled in by the receiving unit
    received_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    received_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    notes: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    # Filled in by the adjustment action
    adjusted_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    adjusted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    adjustment_notes: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    items: Mapped[list["ReceiptItem"]] = relationship(
        "ReceiptItem",
        back_populates="receipt",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def is_root(self) -> bool:
        return self.parent_receipt_id is None

    def to_dto(self) -> ReceiptInfo:
        """Receipt DTO.  Never includes token_hash."""
        return ReceiptInfo(
            id=self.id,
            receipt_number=self.receipt_number,
            order_id=self.order_id,
            unit_id=self.unit_id,
            parent_receipt_id=self.parent_receipt_id,
            status=ReceiptStatus(self.status),
            delivered_by=self.delivered_by,
            delivery_date=self.delivery_date,
            received_by=self.received_by,
            received_at=self.received_at,
            notes=self.notes,
            adjusted_by=self.adjusted_by,
            adjusted_at=self.adjusted_at,
            items=tuple(item.to_dto() for item in self.items),
        )


class ReceiptItem(TrackedBase):
    """
    Requested versus received quantity of one order item on one receipt.

    Guarantees:
        - conforming is NULL until the receipt is confirmed.
        - conforming is True only when the full quantity arrived and no
          defect was reported.
        - On complementary receipts, quantity_requested is the shortfall
          left open by the parent, not the original order quantity.
    """

    __tablename__ = "receipt_items"

    __table_args__ = (
        UniqueConstraint("receipt_id", "order_item_id", name="uq_receipt_item_order_item"),
        CheckConstraint("quantity_requested > 0", name="ck_receipt_item_requested_positive"),
        CheckConstraint(
            "quantity_received >= 0 AND quantity_received <= quantity_requested",
            name="ck_receipt_item_received_bounds",
        ),
        Index("idx_receipt_item_receipt", "receipt_id"),
        Index("idx_receipt_item_order_item", "order_item_id"),
    )

    receipt_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("receipts.id"),
        nullable=False,
    )

    order_item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("order_items.id"),
        nullable=False,
    )

    quantity_requested: Mapped[Decimal] = mapped_column(nullable=False)

    quantity_received: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    conforming: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    defect_reported: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    notes: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    receipt: Mapped["Receipt"] = relationship("Receipt", back_populates="items")

    def to_dto(self) -> ReceiptItemInfo:
        return ReceiptItemInfo(
            id=self.id,
            receipt_id=self.receipt_id,
            order_item_id=self.order_item_id,
            quantity_requested=self.quantity_requested,
            quantity_received=self.quantity_received,
            conforming=self.conforming,
            defect_reported=self.defect_reported,
            notes=self.notes,
        )
