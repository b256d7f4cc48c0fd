"""
ReceiptSelector -- receipts, receipt chains and the receipt forest.

Complementary receipts are flat rows linked by parent_receipt_id.
Traversal is breadth-first over an indexed lookup on that column, one
query per level; chains are short (one level per redelivery).

No method here returns or accepts the confirmation token.
"""

from dataclasses import replace
from uuid import UUID

from sqlalchemy import func, select

from distribution_kernel.domain.consolidation import build_forest
from distribution_kernel.domain.dtos import ReceiptInfo, ReceiptNode, ReceiptStats, ReceiptStatus
from distribution_kernel.exceptions import ReceiptNotFoundError
from distribution_kernel.models.receipt import Receipt
from distribution_kernel.selectors.base import BaseSelector


class ReceiptSelector(BaseSelector[Receipt]):

    def get_receipt(self, receipt_id: UUID) -> ReceiptInfo:
        receipt = self.session.get(Receipt, receipt_id)
        if receipt is None:
            raise ReceiptNotFoundError(str(receipt_id))
        return receipt.to_dto()

    def load_receipts_by_order(self, order_id: UUID) -> list[ReceiptInfo]:
        """Every receipt of an order, roots and complementary, by number."""
        receipts = self.session.execute(
            select(Receipt)
            .where(Receipt.order_id == order_id)
            .order_by(Receipt.receipt_number)
        ).scalars()
        return [r.to_dto() for r in receipts]

    def load_receipt_chain(self, root_id: UUID) -> list[ReceiptInfo]:
        """
        The receipt ``root_id`` followed by all of its descendants,
        level by level.
        """
        root = self.session.get(Receipt, root_id)
        if root is None:
            raise ReceiptNotFoundError(str(root_id))

        chain = [root.to_dto()]
        frontier = [root.id]
        while frontier:
            children = list(
                self.session.execute(
                    select(Receipt)
                    .where(Receipt.parent_receipt_id.in_(frontier))
                    .order_by(Receipt.receipt_number)
                ).scalars()
            )
            chain.extend(child.to_dto() for child in children)
            frontier = [child.id for child in children]
        return chain

    def get_receipt_tree(self, root_id: UUID) -> ReceiptNode:
        """Nested view of ``root_id`` and its complementary receipts."""
        (tree,) = build_forest(self._as_root(self.load_receipt_chain(root_id)))
        return tree

    @staticmethod
    def _as_root(chain: list[ReceiptInfo]) -> list[ReceiptInfo]:
        # The requested receipt may itself be complementary; treat it as
        # the root of the subtree being displayed.
        head, *rest = chain
        if head.parent_receipt_id is None:
            return chain
        return [replace(head, parent_receipt_id=None), *rest]

    def get_order_forest(self, order_id: UUID) -> tuple[ReceiptNode, ...]:
        return build_forest(self.load_receipts_by_order(order_id))

    def list_receipts(
        self,
        status: ReceiptStatus | None = None,
        search: str | None = None,
        order_id: UUID | None = None,
        unit_id: UUID | None = None,
    ) -> list[ReceiptInfo]:
        """Receipts, newest number first.  ``search`` matches the receipt number."""
        stmt = select(Receipt).order_by(Receipt.receipt_number.desc())
        if status is not None:
            stmt = stmt.where(Receipt.status == ReceiptStatus(status).value)
        if search:
            stmt = stmt.where(Receipt.receipt_number.ilike(f"%{search}%"))
        if order_id is not None:
            stmt = stmt.where(Receipt.order_id == order_id)
        if unit_id is not None:
            stmt = stmt.where(Receipt.unit_id == unit_id)
        return [r.to_dto() for r in self.session.execute(stmt).scalars()]

    def get_stats(self) -> ReceiptStats:
        rows = self.session.execute(
            select(Receipt.status, func.count(Receipt.id)).group_by(Receipt.status)
        ).all()
        by_status = {status.value: 0 for status in ReceiptStatus}
        for status, count in rows:
            by_status[status] = count
        return ReceiptStats(total=sum(by_status.values()), by_status=by_status)
