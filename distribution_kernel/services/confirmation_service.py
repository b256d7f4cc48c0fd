"""
ConfirmationService -- applies a unit's confirmation to a pending receipt.

Responsibility:
    Resolve the receipt from its confirmation token, run the pure
    confirmation transition (receipt_lifecycle.evaluate_confirmation), write
    the outcome and post the received goods to the unit's stock.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by DistributionEngine.confirm_receipt.

Invariants enforced:
    Single use -- the receipt row is locked (SELECT ... FOR UPDATE) and
           its status re-read before writing; token_consumed_at is stamped
           on the transition out of PENDING.  A second submission with the
           same token resolves the same receipt and fails with
           ReceiptNotPendingError.
    No ledger effect -- confirmation never changes contract balances.

Failure modes:
    - ConfirmationTokenNotFoundError: unknown token.
    - ReceiptNotPendingError: receipt already confirmed/partial/rejected.
    - ValidationError / InvalidQuantityError: malformed submission.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from distribution_kernel.domain.clock import Clock
from distribution_kernel.domain.dtos import ItemSubmission, ReceiptInfo, ReceiptStatus
from distribution_kernel.domain.receipt_lifecycle import ItemState, evaluate_confirmation
from distribution_kernel.domain.tokens import hash_token
from distribution_kernel.exceptions import ConfirmationTokenNotFoundError, ValidationError
from distribution_kernel.logging_config import get_logger
from distribution_kernel.models.receipt import Receipt
from distribution_kernel.services.base import BaseService
from distribution_kernel.services.stock_service import UnitStockService

logger = get_logger("services.confirmation")


def item_states(receipt: Receipt) -> list[ItemState]:
    """Lifecycle snapshot of a receipt's items."""
    return [
        ItemState(
            receipt_item_id=item.id,
            order_item_id=item.order_item_id,
            quantity_requested=item.quantity_requested,
            quantity_received=item.quantity_received,
            conforming=item.conforming,
            defect_reported=item.defect_reported,
        )
        for item in receipt.items
    ]


class ConfirmationService(BaseService[Receipt]):

    def __init__(
        self,
        session: Session,
        clock: Clock,
        stock: UnitStockService | None = None,
    ):
        super().__init__(session)
        self._clock = clock
        self._stock = stock or UnitStockService(session, clock)

    def _locked_by_token(self, token: str) -> Receipt:
        if not token or not token.strip():
            raise ConfirmationTokenNotFoundError()
        receipt = self.session.execute(
            select(Receipt)
            .where(Receipt.token_hash == hash_token(token.strip()))
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if receipt is None:
            raise ConfirmationTokenNotFoundError()
        return receipt

    def preview(self, token: str) -> ReceiptInfo:
        """The receipt behind a token, for the public confirmation page."""
        if not token or not token.strip():
            raise ConfirmationTokenNotFoundError()
        receipt = self.session.execute(
            select(Receipt).where(Receipt.token_hash == hash_token(token.strip()))
        ).scalar_one_or_none()
        if receipt is None:
            raise ConfirmationTokenNotFoundError()
        return receipt.to_dto()

    def confirm_receipt(
        self,
        token: str,
        submissions: Sequence[ItemSubmission],
        received_by: str,
        actor_id: UUID,
        notes: str | None = None,
    ) -> ReceiptInfo:
        """
        Record what a unit received.

        Postconditions:
            Receipt status is CONFIRMED, PARTIAL or REJECTED; every item has
            conforming set; the token is consumed; an ENTRY stock movement
            exists for each item with quantity received > 0.
        """
        receipt = self._locked_by_token(token)

        outcome = evaluate_confirmation(
            str(receipt.id),
            ReceiptStatus(receipt.status),
            item_states(receipt),
            submissions,
        )
        if received_by is None or not received_by.strip():
            raise ValidationError("received_by", "Required")

        by_id = {item.id: item for item in receipt.items}
        for confirmed in outcome.items:
            item = by_id[confirmed.receipt_item_id]
            item.quantity_received = confirmed.quantity_received
            item.conforming = confirmed.conforming
            item.defect_reported = confirmed.defect_reported
            item.notes = confirmed.notes
            item.updated_by_id = actor_id

        now = self._clock.now()
        receipt.status = outcome.status.value
        receipt.received_by = received_by.strip()
        receipt.received_at = now
        receipt.notes = notes
        receipt.token_consumed_at = now
        receipt.updated_by_id = actor_id
        self.session.flush()

        self._stock.post_receipt_entries(receipt, actor_id)

        logger.info(
            "receipt_confirmed",
            extra={
                "receipt_id": str(receipt.id),
                "receipt_number": receipt.receipt_number,
                "status": outcome.status.value,
                "conforming_items": sum(1 for i in outcome.items if i.conforming),
                "item_count": len(outcome.items),
            },
        )
        return receipt.to_dto()
