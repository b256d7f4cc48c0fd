"""
ConsolidationSelector -- loads an order and its receipt forest and runs
the pure consolidation computation over them.
"""

from uuid import UUID

from distribution_kernel.domain.consolidation import consolidate
from distribution_kernel.domain.dtos import ConsolidationView
from distribution_kernel.models.order import Order
from distribution_kernel.selectors.base import BaseSelector
from distribution_kernel.selectors.order_selector import OrderSelector
from distribution_kernel.selectors.receipt_selector import ReceiptSelector


class ConsolidationSelector(BaseSelector[Order]):

    def get_consolidation(self, order_id: UUID) -> ConsolidationView:
        order = OrderSelector(self.session).get_order(order_id)
        receipts = ReceiptSelector(self.session).load_receipts_by_order(order_id)
        return consolidate(order, receipts)
