"""
OrderSelector -- order detail, listing and statistics.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from distribution_kernel.domain.dtos import OrderInfo, OrderStats, OrderStatus
from distribution_kernel.exceptions import OrderNotFoundError
from distribution_kernel.models.order import Order
from distribution_kernel.selectors.base import BaseSelector


class OrderSelector(BaseSelector[Order]):

    def get_order(self, order_id: UUID) -> OrderInfo:
        order = self.session.get(Order, order_id)
        if order is None:
            raise OrderNotFoundError(str(order_id))
        return order.to_dto()

    def list_orders(
        self,
        status: OrderStatus | None = None,
        search: str | None = None,
        contract_id: UUID | None = None,
    ) -> list[OrderInfo]:
        """Orders, newest number first.  ``search`` matches the order number."""
        stmt = select(Order).order_by(Order.order_number.desc())
        if status is not None:
            stmt = stmt.where(Order.status == OrderStatus(status).value)
        if search:
            stmt = stmt.where(Order.order_number.ilike(f"%{search}%"))
        if contract_id is not None:
            stmt = stmt.where(Order.contract_id == contract_id)
        return [order.to_dto() for order in self.session.execute(stmt).scalars()]

    def get_stats(self) -> OrderStats:
        rows = self.session.execute(
            select(Order.status, func.count(Order.id), func.sum(Order.total_value))
            .group_by(Order.status)
        ).all()
        by_status = {status.value: 0 for status in OrderStatus}
        total_value = Decimal("0")
        for status, count, value in rows:
            by_status[status] = count
            if status != OrderStatus.CANCELLED.value and value is not None:
                total_value += Decimal(value)
        return OrderStats(
            total=sum(by_status.values()),
            by_status=by_status,
            total_value=total_value,
        )
