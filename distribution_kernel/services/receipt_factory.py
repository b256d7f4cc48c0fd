"""
ReceiptFactory -- splits a confirmed order into per-unit delivery receipts.

Responsibility:
    For a CONFIRMED order, create one PENDING receipt per destination unit
    carrying that unit's order items, each receipt with its own
    single-use confirmation token.  Moves the order to DELIVERED.  Also
    issues complementary receipts for ComplementaryReceiptService and
    rotates the token of a pending receipt.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    One root receipt per (order, unit) -- uq_receipt_root_per_unit.
    Quantity preservation -- the multiset of receipt item requested
           quantities equals the multiset of order item quantities.
    Token secrecy -- only hash_token(token) is written; the raw token is
           returned inside a ConfirmationLink and never logged.

Failure modes:
    - OrderNotFoundError, OrderNotConfirmedError.
    - ValidationError: blank delivered_by or an order without items.
    - ReceiptNotFoundError / ReceiptNotPendingError when reissuing a link.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from distribution_kernel.domain.clock import Clock
from distribution_kernel.domain.dtos import (
    ConfirmationLink,
    IssuedReceipt,
    OrderStatus,
    ReceiptStatus,
)
from distribution_kernel.domain.tokens import (
    DEFAULT_TOKEN_BYTES,
    build_link,
    generate_token,
    hash_token,
)
from distribution_kernel.domain.workflow import ORDER_WORKFLOW, require_transition
from distribution_kernel.exceptions import (
    OrderNotConfirmedError,
    OrderNotFoundError,
    ReceiptNotFoundError,
    ReceiptNotPendingError,
    ValidationError,
)
from distribution_kernel.logging_config import get_logger
from distribution_kernel.models.order import Order
from distribution_kernel.models.receipt import Receipt, ReceiptItem
from distribution_kernel.services.base import BaseService
from distribution_kernel.services.sequence_service import SequenceService

logger = get_logger("services.receipt_factory")


class ReceiptFactory(BaseService[Receipt]):

    def __init__(
        self,
        session: Session,
        clock: Clock,
        sequences: SequenceService | None = None,
        receipt_number_prefix: str = "RB",
        token_bytes: int = DEFAULT_TOKEN_BYTES,
        confirmation_base_url: str = "http://localhost:5173",
        confirmation_path: str = "/confirmacao-recebimento",
    ):
        super().__init__(session)
        self._clock = clock
        self._sequences = sequences or SequenceService(session)
        self._receipt_number_prefix = receipt_number_prefix
        self._token_bytes = token_bytes
        self._base_url = confirmation_base_url
        self._path = confirmation_path

    def generate_receipts(
        self,
        order_id: UUID,
        delivered_by: str,
        actor_id: UUID,
        delivery_date: date | None = None,
    ) -> list[IssuedReceipt]:
        """
        Create one pending receipt per unit of a confirmed order.

        Args:
            delivery_date: Defaults to the order's requested delivery date.

        Returns:
            One IssuedReceipt per unit, ordered by receipt number.
        """
        order = self.session.execute(
            select(Order)
            .where(Order.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(str(order_id))
        if order.status != OrderStatus.CONFIRMED.value:
            raise OrderNotConfirmedError(str(order_id), order.status)
        if not order.items:
            raise ValidationError("order", f"Order {order.order_number} has no items")
        delivered_by = _required_text("delivered_by", delivered_by)

        by_unit: dict[UUID, list[tuple[UUID, Decimal]]] = defaultdict(list)
        for item in order.items:
            by_unit[item.unit_id].append((item.id, item.quantity))

        issued: list[IssuedReceipt] = []
        for unit_id in sorted(by_unit, key=str):
            receipt, link = self.issue_receipt(
                order_id=order.id,
                unit_id=unit_id,
                lines=by_unit[unit_id],
                delivered_by=delivered_by,
                delivery_date=delivery_date or order.requested_delivery_date,
                actor_id=actor_id,
            )
            issued.append(IssuedReceipt(receipt=receipt.to_dto(), link=link))

        require_transition(
            ORDER_WORKFLOW, OrderStatus.CONFIRMED.value, OrderStatus.DELIVERED.value, "dispatch",
        )
        order.status = OrderStatus.DELIVERED.value
        order.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "receipts_generated",
            extra={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "receipt_count": len(issued),
            },
        )
        return issued

    def issue_receipt(
        self,
        order_id: UUID,
        unit_id: UUID,
        lines: Sequence[tuple[UUID, Decimal]],
        delivered_by: str,
        delivery_date: date,
        actor_id: UUID,
        parent_receipt_id: UUID | None = None,
    ) -> tuple[Receipt, ConfirmationLink]:
        """
        Persist one pending receipt with a fresh token.

        Args:
            lines: (order_item_id, quantity_requested) pairs.
            parent_receipt_id: Set for complementary receipts.
        """
        token = generate_token(self._token_bytes)
        receipt = Receipt(
            receipt_number=self._sequences.next_number(
                self._receipt_number_prefix, self._clock.today().year,
            ),
            order_id=order_id,
            unit_id=unit_id,
            parent_receipt_id=parent_receipt_id,
            status=ReceiptStatus.PENDING.value,
            delivered_by=delivered_by,
            delivery_date=delivery_date,
            token_hash=hash_token(token),
            created_by_id=actor_id,
        )
        for order_item_id, quantity in lines:
            receipt.items.append(
                ReceiptItem(
                    order_item_id=order_item_id,
                    quantity_requested=quantity,
                    quantity_received=Decimal("0"),
                    conforming=None,
                    defect_reported=False,
                    created_by_id=actor_id,
                )
            )
        self.session.add(receipt)
        self.session.flush()

        logger.info(
            "receipt_issued",
            extra={
                "receipt_id": str(receipt.id),
                "receipt_number": receipt.receipt_number,
                "unit_id": str(unit_id),
                "parent_receipt_id": str(parent_receipt_id) if parent_receipt_id else None,
                "item_count": len(lines),
            },
        )
        return receipt, self._link(receipt, token)

    def reissue_link(self, receipt_id: UUID, actor_id: UUID) -> ConfirmationLink:
        """
        Replace the token of a pending receipt; the previous link stops working.
        """
        receipt = self.session.execute(
            select(Receipt)
            .where(Receipt.id == receipt_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if receipt is None:
            raise ReceiptNotFoundError(str(receipt_id))
        if receipt.status != ReceiptStatus.PENDING.value:
            raise ReceiptNotPendingError(str(receipt_id), receipt.status)

        token = generate_token(self._token_bytes)
        receipt.token_hash = hash_token(token)
        receipt.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "confirmation_link_reissued",
            extra={"receipt_id": str(receipt.id), "receipt_number": receipt.receipt_number},
        )
        return self._link(receipt, token)

    def _link(self, receipt: Receipt, token: str) -> ConfirmationLink:
        return build_link(
            receipt_id=receipt.id,
            receipt_number=receipt.receipt_number,
            token=token,
            base_url=self._base_url,
            path=self._path,
        )


def _required_text(field: str, value: str | None) -> str:
    if value is None or not value.strip():
        raise ValidationError(field, "Required")
    return value.strip()
