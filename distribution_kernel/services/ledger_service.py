"""
BalanceLedgerService -- committed-quantity ledger for contract items.

Responsibility:
    Reserve contract quantity when an order is allocated and release it
    when an order is cancelled before dispatch.  Deliveries never touch
    the ledger: remaining_balance reflects committed, not delivered,
    quantity.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by OrderAllocatorService (reserve on create, release on cancel).

Invariants enforced:
    0 <= remaining_balance <= total_quantity after every operation.
    Check-then-decrement is ONE conditional UPDATE:

        UPDATE contract_items
           SET remaining_balance = remaining_balance - :q
         WHERE id = :id AND remaining_balance >= :q

    A row count of 0 means the balance was insufficient (or the item is
    unknown).  Two concurrent reservations can never both pass the check:
    PostgreSQL re-evaluates the WHERE clause after waiting for the row
    lock, and SQLite serializes writers with BEGIN IMMEDIATE.  The CHECK
    constraint ck_contract_item_balance_bounds backs this up.

Failure modes:
    - InvalidQuantityError: quantity <= 0.
    - InsufficientBalanceError: reserve larger than the remaining balance.
    - BalanceOverflowError: release would push the balance above total.
    - ContractItemNotFoundError: unknown contract item.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update

from distribution_kernel.domain.quantities import ZERO
from distribution_kernel.exceptions import (
    BalanceOverflowError,
    ContractItemNotFoundError,
    InsufficientBalanceError,
    InvalidQuantityError,
)
from distribution_kernel.logging_config import get_logger
from distribution_kernel.models.contract import ContractItem
from distribution_kernel.services.base import BaseService

logger = get_logger("services.ledger")


class BalanceLedgerService(BaseService[ContractItem]):
    """Atomic compare-and-decrement on contract item balances."""

    def available(self, contract_item_id: UUID) -> Decimal:
        balance = self.session.execute(
            select(ContractItem.remaining_balance).where(ContractItem.id == contract_item_id)
        ).scalar_one_or_none()
        if balance is None:
            raise ContractItemNotFoundError(str(contract_item_id))
        return balance

    def reserve(self, contract_item_id: UUID, quantity: Decimal, actor_id: UUID) -> None:
        """
        Decrement the remaining balance by ``quantity``.

        Postconditions:
            On success the decrement is flushed in the caller's transaction.
            On failure nothing was written.
        """
        if quantity <= ZERO:
            raise InvalidQuantityError("quantity", quantity, minimum=ZERO)

        result = self.session.execute(
            update(ContractItem)
            .where(
                ContractItem.id == contract_item_id,
                ContractItem.remaining_balance >= quantity,
            )
            .values(
                remaining_balance=ContractItem.remaining_balance - quantity,
                updated_by_id=actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        self._expire_cached(contract_item_id)

        if result.rowcount != 1:
            available = self.available(contract_item_id)
            logger.info(
                "balance_reservation_refused",
                extra={
                    "contract_item_id": str(contract_item_id),
                    "requested": str(quantity),
                    "available": str(available),
                },
            )
            raise InsufficientBalanceError(str(contract_item_id), quantity, available)

        logger.info(
            "balance_reserved",
            extra={"contract_item_id": str(contract_item_id), "quantity": str(quantity)},
        )

    def release(self, contract_item_id: UUID, quantity: Decimal, actor_id: UUID) -> None:
        """Increment the remaining balance by ``quantity``, never above total."""
        if quantity <= ZERO:
            raise InvalidQuantityError("quantity", quantity, minimum=ZERO)

        result = self.session.execute(
            update(ContractItem)
            .where(
                ContractItem.id == contract_item_id,
                ContractItem.remaining_balance + quantity <= ContractItem.total_quantity,
            )
            .values(
                remaining_balance=ContractItem.remaining_balance + quantity,
                updated_by_id=actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        self._expire_cached(contract_item_id)

        if result.rowcount != 1:
            self.available(contract_item_id)  # raises if the item is unknown
            logger.error(
                "balance_release_overflow",
                extra={"contract_item_id": str(contract_item_id), "quantity": str(quantity)},
            )
            raise BalanceOverflowError(str(contract_item_id), quantity)

        logger.info(
            "balance_released",
            extra={"contract_item_id": str(contract_item_id), "quantity": str(quantity)},
        )

    def _expire_cached(self, contract_item_id: UUID) -> None:
        """Drop a stale in-session copy of the row we just updated in SQL."""
        key = self.session.identity_key(ContractItem, contract_item_id)
        cached = self.session.identity_map.get(key)
        if cached is not None:
            self.session.expire(cached)
