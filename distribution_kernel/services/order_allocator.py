"""
OrderAllocatorService -- turns a contract order request into a confirmed order.

Responsibility:
    Validate the requested (contract item, unit, quantity) triples, reserve
    the contract balances and persist the Order with its OrderItems.  Also
    cancels orders that were never dispatched, releasing their reservations.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by DistributionEngine.create_order / cancel_order.

Invariants enforced:
    All-or-nothing -- validation runs before any write; a failed ledger
           reservation raises and the caller rolls back the whole
           transaction, including reservations already made for other
           items in the same order.
    Lock ordering -- contract items are reserved in ascending id order so
           concurrent orders over the same items cannot deadlock.
    Frozen contents -- once receipts exist an order cannot be cancelled.

Failure modes:
    - ContractNotFoundError / ContractInactiveError
    - DeliveryDateInPastError, InvalidQuantityError, ValidationError
    - ContractItemNotFoundError / UnitNotFoundError
    - InsufficientBalanceError (pre-check or ledger race)
    - OrderNotFoundError / OrderNotCancellableError on cancel
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from distribution_kernel.domain.allocation import validate_allocations
from distribution_kernel.domain.clock import Clock
from distribution_kernel.domain.dtos import Allocation, ContractStatus, OrderInfo, OrderStatus
from distribution_kernel.domain.quantities import MONEY_DECIMAL_PLACES, ZERO
from distribution_kernel.domain.workflow import ORDER_WORKFLOW, require_transition
from distribution_kernel.exceptions import (
    ContractInactiveError,
    ContractNotFoundError,
    OrderNotCancellableError,
    OrderNotFoundError,
)
from distribution_kernel.logging_config import get_logger
from distribution_kernel.models.contract import Contract
from distribution_kernel.models.order import Order, OrderItem
from distribution_kernel.models.receipt import Receipt
from distribution_kernel.selectors.directory_selector import DirectorySelector
from distribution_kernel.services.base import BaseService
from distribution_kernel.services.ledger_service import BalanceLedgerService
from distribution_kernel.services.sequence_service import SequenceService

logger = get_logger("services.order_allocator")


class OrderAllocatorService(BaseService[Order]):
    """
    Builds and cancels delivery orders.

    Non-goals:
        - Does NOT generate receipts; dispatch is a separate explicit step
          (ReceiptFactory), so an order can sit confirmed but undispatched.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock,
        ledger: BalanceLedgerService | None = None,
        sequences: SequenceService | None = None,
        order_number_prefix: str = "PD",
        money_decimal_places: int = MONEY_DECIMAL_PLACES,
    ):
        super().__init__(session)
        self._clock = clock
        self._ledger = ledger or BalanceLedgerService(session)
        self._sequences = sequences or SequenceService(session)
        self._directory = DirectorySelector(session)
        self._order_number_prefix = order_number_prefix
        self._money_decimal_places = money_decimal_places

    def create_order(
        self,
        contract_id: UUID,
        delivery_date: date,
        allocations: Sequence[Allocation],
        actor_id: UUID,
    ) -> OrderInfo:
        """
        Create a confirmed order with its balances reserved.

        Preconditions:
            Caller holds an open transaction and rolls it back on any
            exception raised here.

        Postconditions:
            Order is CONFIRMED; every contract item's remaining balance was
            decremented by the sum of its allocations; total_value is
            sum(quantity * unit_price) rounded half-up.
        """
        contract = self.session.get(Contract, contract_id)
        if contract is None:
            raise ContractNotFoundError(str(contract_id))
        if contract.status != ContractStatus.ACTIVE.value:
            raise ContractInactiveError(str(contract_id), contract.status)

        today = self._clock.today()
        plan = validate_allocations(
            contract_id=contract_id,
            delivery_date=delivery_date,
            today=today,
            allocations=allocations,
            contract_items=self._directory.contract_items_by_id(
                a.contract_item_id for a in allocations
            ),
            units=self._directory.units_by_id(a.unit_id for a in allocations),
            money_decimal_places=self._money_decimal_places,
        )

        for contract_item_id, quantity in plan.reservations:
            self._ledger.reserve(contract_item_id, quantity, actor_id)

        order = Order(
            order_number=self._sequences.next_number(self._order_number_prefix, today.year),
            contract_id=contract_id,
            order_date=today,
            requested_delivery_date=delivery_date,
            status=OrderStatus.PENDING.value,
            total_value=plan.total_value,
            created_by_id=actor_id,
        )
        for allocation in plan.allocations:
            order.items.append(
                OrderItem(
                    contract_item_id=allocation.contract_item_id,
                    unit_id=allocation.unit_id,
                    quantity=allocation.quantity,
                    created_by_id=actor_id,
                )
            )
        self.session.add(order)

        require_transition(
            ORDER_WORKFLOW, OrderStatus.PENDING.value, OrderStatus.CONFIRMED.value, "allocate",
        )
        order.status = OrderStatus.CONFIRMED.value
        self.session.flush()

        logger.info(
            "order_created",
            extra={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "contract_id": str(contract_id),
                "item_count": len(plan.allocations),
                "unit_count": len({a.unit_id for a in plan.allocations}),
                "total_value": str(plan.total_value),
            },
        )
        return order.to_dto()

    def cancel_order(self, order_id: UUID, actor_id: UUID) -> OrderInfo:
        """
        Cancel an order that has not been dispatched and release its balances.

        Raises:
            OrderNotFoundError: Unknown order.
            OrderNotCancellableError: Order delivered/cancelled, or receipts exist.
        """
        order = self.session.execute(
            select(Order)
            .where(Order.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(str(order_id))

        status = OrderStatus(order.status)
        if status not in (OrderStatus.PENDING, OrderStatus.CONFIRMED):
            raise OrderNotCancellableError(
                str(order_id), status.value, "only pending or confirmed orders can be cancelled",
            )
        has_receipts = self.session.execute(
            select(exists().where(Receipt.order_id == order_id))
        ).scalar()
        if has_receipts:
            raise OrderNotCancellableError(
                str(order_id), status.value, "receipts were already generated",
            )

        if status == OrderStatus.CONFIRMED:
            totals: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
            for item in order.items:
                totals[item.contract_item_id] += item.quantity
            for contract_item_id in sorted(totals, key=str):
                self._ledger.release(contract_item_id, totals[contract_item_id], actor_id)

        require_transition(ORDER_WORKFLOW, status.value, OrderStatus.CANCELLED.value, "cancel")
        order.status = OrderStatus.CANCELLED.value
        order.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "order_cancelled",
            extra={"order_id": str(order.id), "order_number": order.order_number},
        )
        return order.to_dto()
