"""
UnitStockService -- per-unit stock fed by confirmed deliveries.

Responsibility:
    Post a StockMovement and update the matching UnitStock row whenever a
    unit confirms goods on a receipt, or an adjustment corrects a received
    quantity upward.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by ConfirmationService and ComplementaryReceiptService.

Invariants enforced:
    UnitStock.quantity == sum of the unit's movements for that item;
    every movement records previous and new quantity.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from distribution_kernel.domain.clock import Clock
from distribution_kernel.domain.dtos import MovementType
from distribution_kernel.domain.quantities import ZERO
from distribution_kernel.logging_config import get_logger
from distribution_kernel.models.order import OrderItem
from distribution_kernel.models.receipt import Receipt
from distribution_kernel.models.stock import StockMovement, UnitStock
from distribution_kernel.services.base import BaseService

logger = get_logger("services.stock")


class UnitStockService(BaseService[UnitStock]):

    def __init__(self, session, clock: Clock):
        super().__init__(session)
        self._clock = clock

    def _locked_stock(self, unit_id: UUID, contract_item_id: UUID) -> UnitStock | None:
        return self.session.execute(
            select(UnitStock)
            .where(
                UnitStock.unit_id == unit_id,
                UnitStock.contract_item_id == contract_item_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _get_or_create_stock(
        self, unit_id: UUID, contract_item_id: UUID, actor_id: UUID,
    ) -> UnitStock:
        stock = self._locked_stock(unit_id, contract_item_id)
        if stock is not None:
            return stock

        savepoint = self.session.begin_nested()
        try:
            stock = UnitStock(
                unit_id=unit_id,
                contract_item_id=contract_item_id,
                quantity=ZERO,
                created_by_id=actor_id,
            )
            self.session.add(stock)
            self.session.flush()
            savepoint.commit()
            return stock
        except IntegrityError:
            savepoint.rollback()
            stock = self._locked_stock(unit_id, contract_item_id)
            if stock is None:
                raise
            return stock

    def post_movement(
        self,
        unit_id: UUID,
        contract_item_id: UUID,
        receipt_id: UUID,
        movement_type: MovementType,
        quantity: Decimal,
        actor_id: UUID,
        description: str | None = None,
    ) -> StockMovement:
        stock = self._get_or_create_stock(unit_id, contract_item_id, actor_id)
        previous = stock.quantity
        stock.quantity = previous + quantity
        stock.updated_by_id = actor_id

        movement = StockMovement(
            unit_id=unit_id,
            contract_item_id=contract_item_id,
            receipt_id=receipt_id,
            movement_type=movement_type.value,
            quantity=quantity,
            previous_quantity=previous,
            new_quantity=stock.quantity,
            occurred_at=self._clock.now(),
            description=description,
            created_by_id=actor_id,
        )
        self.session.add(movement)
        self.session.flush()

        logger.info(
            "stock_movement_posted",
            extra={
                "unit_id": str(unit_id),
                "contract_item_id": str(contract_item_id),
                "movement_type": movement_type.value,
                "quantity": str(quantity),
                "new_quantity": str(stock.quantity),
            },
        )
        return movement

    def _contract_items_for(self, order_item_ids: list[UUID]) -> dict[UUID, UUID]:
        rows = self.session.execute(
            select(OrderItem.id, OrderItem.contract_item_id).where(
                OrderItem.id.in_(order_item_ids)
            )
        ).all()
        return {row.id: row.contract_item_id for row in rows}

    def post_receipt_entries(self, receipt: Receipt, actor_id: UUID) -> list[StockMovement]:
        """One ENTRY movement per item of a confirmed receipt with quantity received > 0."""
        received = [item for item in receipt.items if item.quantity_received > ZERO]
        if not received:
            return []
        contract_items = self._contract_items_for([item.order_item_id for item in received])
        return [
            self.post_movement(
                unit_id=receipt.unit_id,
                contract_item_id=contract_items[item.order_item_id],
                receipt_id=receipt.id,
                movement_type=MovementType.ENTRY,
                quantity=item.quantity_received,
                actor_id=actor_id,
                description=f"Receipt {receipt.receipt_number}",
            )
            for item in sorted(received, key=lambda i: str(i.order_item_id))
        ]

    def post_correction(
        self,
        receipt: Receipt,
        order_item_id: UUID,
        increase: Decimal,
        actor_id: UUID,
    ) -> StockMovement:
        """ADJUSTMENT movement for a received quantity corrected upward."""
        contract_items = self._contract_items_for([order_item_id])
        return self.post_movement(
            unit_id=receipt.unit_id,
            contract_item_id=contract_items[order_item_id],
            receipt_id=receipt.id,
            movement_type=MovementType.ADJUSTMENT,
            quantity=increase,
            actor_id=actor_id,
            description=f"Correction on receipt {receipt.receipt_number}",
        )
