"""
ComplementaryReceiptService -- adjustment of partial/rejected receipts.

Responsibility:
    Apply an operator's adjustment to a closed receipt: correct
    undercounted items (marking them conforming), and open exactly one
    complementary receipt, parented to the adjusted one, for everything
    still short.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by DistributionEngine.adjust_receipt.

Invariants enforced:
    Same transaction -- the adjustment and its complementary receipt are
           flushed in the caller's transaction; nothing is committed here,
           so a crash cannot leave a shortfall untracked.
    Shortfall only -- complementary items request requested - received,
           never the original full quantity.
    Adjust once -- adjusted_at is stamped; a second adjustment fails.
    Parent status unchanged -- the adjusted receipt keeps PARTIAL/REJECTED.

Failure modes:
    - ReceiptNotFoundError, ReceiptItemNotFoundError
    - ReceiptNotAdjustableError, ReceiptAlreadyAdjustedError
    - ValidationError, InvalidQuantityError
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from distribution_kernel.domain.clock import Clock
from distribution_kernel.domain.dtos import (
    AdjustmentResult,
    IssuedReceipt,
    ItemAdjustment,
    ReceiptStatus,
)
from distribution_kernel.domain.quantities import ZERO
from distribution_kernel.domain.receipt_lifecycle import plan_adjustment
from distribution_kernel.exceptions import ReceiptNotFoundError, ValidationError
from distribution_kernel.logging_config import get_logger
from distribution_kernel.models.receipt import Receipt
from distribution_kernel.services.base import BaseService
from distribution_kernel.services.confirmation_service import item_states
from distribution_kernel.services.receipt_factory import ReceiptFactory
from distribution_kernel.services.stock_service import UnitStockService

logger = get_logger("services.complementary")


class ComplementaryReceiptService(BaseService[Receipt]):

    def __init__(
        self,
        session: Session,
        clock: Clock,
        factory: ReceiptFactory | None = None,
        stock: UnitStockService | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._factory = factory or ReceiptFactory(session, clock)
        self._stock = stock or UnitStockService(session, clock)

    def adjust_receipt(
        self,
        receipt_id: UUID,
        adjustments: Sequence[ItemAdjustment],
        adjusted_by: str,
        actor_id: UUID,
        notes: str | None = None,
        delivered_by: str | None = None,
        delivery_date: date | None = None,
    ) -> AdjustmentResult:
        """
        Adjust a partial or rejected receipt.

        Args:
            adjustments: Decisions per receipt item; unmentioned items keep
                their shortfall.
            delivered_by: Carrier of the complementary delivery; defaults to
                the adjusted receipt's.
            delivery_date: Of the complementary delivery; defaults to today.

        Returns:
            The adjusted receipt and, when something is still short, the
            complementary receipt with its confirmation link.
        """
        receipt = self.session.execute(
            select(Receipt)
            .where(Receipt.id == receipt_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if receipt is None:
            raise ReceiptNotFoundError(str(receipt_id))

        plan = plan_adjustment(
            str(receipt.id),
            ReceiptStatus(receipt.status),
            receipt.adjusted_at is not None,
            item_states(receipt),
            adjustments,
        )
        if adjusted_by is None or not adjusted_by.strip():
            raise ValidationError("adjusted_by", "Required")
        if delivered_by is not None and not delivered_by.strip():
            raise ValidationError("delivered_by", "Must not be blank")

        by_id = {item.id: item for item in receipt.items}
        for correction in plan.corrections:
            item = by_id[correction.receipt_item_id]
            item.quantity_received = correction.corrected_quantity
            item.defect_reported = False
            item.conforming = True
            if correction.notes:
                item.notes = correction.notes
            item.updated_by_id = actor_id
            if correction.increase > ZERO:
                self._stock.post_correction(receipt, item.order_item_id, correction.increase, actor_id)

        receipt.adjusted_at = self._clock.now()
        receipt.adjusted_by = adjusted_by.strip()
        receipt.adjustment_notes = notes
        receipt.updated_by_id = actor_id
        self.session.flush()

        complementary: IssuedReceipt | None = None
        if plan.needs_complementary:
            child, link = self._factory.issue_receipt(
                order_id=receipt.order_id,
                unit_id=receipt.unit_id,
                lines=[(s.order_item_id, s.quantity) for s in plan.shortfalls],
                delivered_by=(delivered_by or receipt.delivered_by).strip(),
                delivery_date=delivery_date or self._clock.today(),
                actor_id=actor_id,
                parent_receipt_id=receipt.id,
            )
            complementary = IssuedReceipt(receipt=child.to_dto(), link=link)
            logger.info(
                "complementary_receipt_created",
                extra={
                    "receipt_id": str(receipt.id),
                    "complementary_receipt_id": str(child.id),
                    "complementary_receipt_number": child.receipt_number,
                    "shortfall_items": len(plan.shortfalls),
                },
            )

        logger.info(
            "receipt_adjusted",
            extra={
                "receipt_id": str(receipt.id),
                "receipt_number": receipt.receipt_number,
                "corrections": len(plan.corrections),
                "complementary_created": complementary is not None,
            },
        )
        return AdjustmentResult(updated_receipt=receipt.to_dto(), complementary=complementary)
