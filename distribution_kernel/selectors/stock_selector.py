"""
StockSelector -- per-unit stock balances and movement history.
"""

from uuid import UUID

from sqlalchemy import select

from distribution_kernel.domain.dtos import MovementType, StockMovementInfo, UnitStockInfo
from distribution_kernel.models.contract import ContractItem
from distribution_kernel.models.stock import StockMovement, UnitStock
from distribution_kernel.selectors.base import BaseSelector


class StockSelector(BaseSelector[UnitStock]):

    def list_unit_stock(self, unit_id: UUID) -> list[UnitStockInfo]:
        rows = self.session.execute(
            select(UnitStock, ContractItem.name)
            .join(ContractItem, ContractItem.id == UnitStock.contract_item_id)
            .where(UnitStock.unit_id == unit_id)
            .order_by(ContractItem.name)
        ).all()
        return [
            UnitStockInfo(
                unit_id=stock.unit_id,
                contract_item_id=stock.contract_item_id,
                item_name=name,
                quantity=stock.quantity,
            )
            for stock, name in rows
        ]

    def movements_for_receipt(self, receipt_id: UUID) -> list[StockMovementInfo]:
        movements = self.session.execute(
            select(StockMovement)
            .where(StockMovement.receipt_id == receipt_id)
            .order_by(StockMovement.occurred_at, StockMovement.contract_item_id)
        ).scalars()
        return [
            StockMovementInfo(
                id=m.id,
                unit_id=m.unit_id,
                contract_item_id=m.contract_item_id,
                receipt_id=m.receipt_id,
                movement_type=MovementType(m.movement_type),
                quantity=m.quantity,
                previous_quantity=m.previous_quantity,
                new_quantity=m.new_quantity,
                occurred_at=m.occurred_at,
            )
            for m in movements
        ]
