"""
DistributionEngine -- the public face of the distribution kernel.

Responsibility:
    Exposes the operations that the UI, report jobs and the public
    confirmation endpoint call: create/cancel orders, generate receipts,
    confirm and adjust receipts, reissue confirmation links, and the read
    side (consolidation, order and receipt views).  Wires kernel services
    together with configuration values and owns the transaction boundary.

Architecture position:
    Services -- orchestration over ``distribution_kernel``.  The only
    layer that commits or rolls back.

Transaction contract:
    * One write call = one transaction.  ``commit`` on success.
    * Any exception -> ``rollback``, so no partial order, no half-made
      adjustment, and no ledger decrement without its order survive.
    * ``SQLAlchemyError`` is re-raised as ``PersistenceError``; callers
      never see raw database errors.
    * Read calls end their transaction with ``rollback`` (nothing to keep).

Logging:
    Every call binds ``correlation_id`` and ``actor_id`` (plus the order
    or receipt id when known) into LogContext.  Tokens are never logged.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import date
from typing import TypeVar
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from distribution_config import EngineConfig, get_active_config
from distribution_kernel.db.engine import get_session, init_engine_from_url
from distribution_kernel.domain.clock import Clock, SystemClock
from distribution_kernel.domain.dtos import (
    AdjustmentResult,
    Allocation,
    ConfirmationLink,
    ConsolidationView,
    ContractInfo,
    ContractItemInfo,
    IssuedReceipt,
    ItemAdjustment,
    ItemSubmission,
    OrderInfo,
    OrderStats,
    OrderStatus,
    ReceiptInfo,
    ReceiptNode,
    ReceiptStats,
    ReceiptStatus,
    UnitInfo,
    UnitStockInfo,
)
from distribution_kernel.exceptions import (
    DistributionKernelError,
    PersistenceError,
    ValidationError,
)
from distribution_kernel.logging_config import LogContext, get_logger
from distribution_kernel.selectors import (
    ConsolidationSelector,
    DirectorySelector,
    OrderSelector,
    ReceiptSelector,
    StockSelector,
)
from distribution_kernel.services import (
    BalanceLedgerService,
    ComplementaryReceiptService,
    ConfirmationService,
    OrderAllocatorService,
    ReceiptFactory,
    SequenceService,
    UnitStockService,
)

logger = get_logger("services.engine")

T = TypeVar("T")


class DistributionEngine:
    """
    Facade over the distribution kernel.

    Usage:
        engine = DistributionEngine(session)
        order = engine.create_order(contract_id, date(2024, 3, 1), allocations, actor_id=me)
        issued = engine.generate_receipts(order.id, "Transportadora X", actor_id=me)
        # hand issued[i].link.url / .qr_payload to the PDF renderer
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()

        sequences = SequenceService(session)
        stock = UnitStockService(session, self._clock)
        self._ledger = BalanceLedgerService(session)
        self._allocator = OrderAllocatorService(
            session,
            self._clock,
            ledger=self._ledger,
            sequences=sequences,
            order_number_prefix=self._config.order_number_prefix,
            money_decimal_places=self._config.money_decimal_places,
        )
        self._factory = ReceiptFactory(
            session,
            self._clock,
            sequences=sequences,
            receipt_number_prefix=self._config.receipt_number_prefix,
            token_bytes=self._config.token_bytes,
            confirmation_base_url=self._config.confirmation_base_url,
            confirmation_path=self._config.confirmation_path,
        )
        self._confirmation = ConfirmationService(session, self._clock, stock=stock)
        self._complementary = ComplementaryReceiptService(
            session, self._clock, factory=self._factory, stock=stock,
        )

        self._directory = DirectorySelector(session)
        self._orders = OrderSelector(session)
        self._receipts = ReceiptSelector(session)
        self._consolidation = ConsolidationSelector(session)
        self._stock = StockSelector(session)

    @classmethod
    def connect(
        cls,
        config: EngineConfig | None = None,
        clock: Clock | None = None,
    ) -> DistributionEngine:
        """Open an engine on a new session against ``config.database_url``."""
        config = config or get_active_config()
        init_engine_from_url(config.database_url)
        return cls(get_session(), clock=clock, config=config)

    @property
    def session(self) -> Session:
        return self._session

    # ------------------------------------------------------------------
    # Transaction plumbing
    # ------------------------------------------------------------------

    def _write(
        self,
        operation: str,
        actor_id: UUID,
        fn: Callable[[], T],
        **context: object,
    ) -> T:
        if actor_id is None:
            raise ValidationError("actor_id", "Required")
        correlation_id = LogContext.get_all().get("correlation_id") or str(uuid4())
        with LogContext.bind(correlation_id=correlation_id, actor_id=str(actor_id), **context):
            logger.info(f"{operation}_started")
            try:
                result = fn()
                self._session.commit()
            except DistributionKernelError as exc:
                self._session.rollback()
                logger.info(
                    "transaction_rolled_back",
                    extra={"operation": operation, "reason": exc.code},
                )
                raise
            except SQLAlchemyError as exc:
                self._session.rollback()
                logger.error(
                    "transaction_rolled_back",
                    extra={"operation": operation, "reason": "PERSISTENCE_ERROR"},
                    exc_info=True,
                )
                raise PersistenceError(operation) from exc
            except Exception:
                self._session.rollback()
                logger.exception(
                    "transaction_rolled_back",
                    extra={"operation": operation, "reason": "UNEXPECTED"},
                )
                raise
            logger.info(f"{operation}_committed")
            return result

    def _read(self, operation: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except SQLAlchemyError as exc:
            logger.error("read_failed", extra={"operation": operation}, exc_info=True)
            raise PersistenceError(operation) from exc
        finally:
            self._session.rollback()

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def create_order(
        self,
        contract_id: UUID,
        delivery_date: date,
        allocations: Sequence[Allocation],
        actor_id: UUID,
    ) -> OrderInfo:
        """
        Create a confirmed order, reserving contract balances.

        All-or-nothing: on any failure no order exists and no balance moved.
        """
        return self._write(
            "create_order",
            actor_id,
            lambda: self._allocator.create_order(contract_id, delivery_date, allocations, actor_id),
        )

    def cancel_order(self, order_id: UUID, actor_id: UUID) -> OrderInfo:
        """Cancel an undispatched order and release its reservations."""
        return self._write(
            "cancel_order",
            actor_id,
            lambda: self._allocator.cancel_order(order_id, actor_id),
            order_id=str(order_id),
        )

    def generate_receipts(
        self,
        order_id: UUID,
        delivered_by: str,
        actor_id: UUID,
        delivery_date: date | None = None,
    ) -> list[IssuedReceipt]:
        """One pending receipt (and confirmation link) per unit of the order."""
        return self._write(
            "generate_receipts",
            actor_id,
            lambda: self._factory.generate_receipts(order_id, delivered_by, actor_id, delivery_date),
            order_id=str(order_id),
        )

    # ------------------------------------------------------------------
    # Receipts
    # ------------------------------------------------------------------

    def confirm_receipt(
        self,
        token: str,
        submissions: Sequence[ItemSubmission],
        received_by: str,
        actor_id: UUID,
        notes: str | None = None,
    ) -> ReceiptInfo:
        """Apply a unit's confirmation.  The token works once."""
        return self._write(
            "confirm_receipt",
            actor_id,
            lambda: self._confirmation.confirm_receipt(
                token, submissions, received_by, actor_id, notes,
            ),
        )

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
        """Adjust a partial/rejected receipt, opening a complementary one if needed."""
        return self._write(
            "adjust_receipt",
            actor_id,
            lambda: self._complementary.adjust_receipt(
                receipt_id,
                adjustments,
                adjusted_by,
                actor_id,
                notes=notes,
                delivered_by=delivered_by,
                delivery_date=delivery_date,
            ),
            receipt_id=str(receipt_id),
        )

    def reissue_confirmation_link(self, receipt_id: UUID, actor_id: UUID) -> ConfirmationLink:
        """Rotate the token of a pending receipt (e.g. lost printout)."""
        return self._write(
            "reissue_confirmation_link",
            actor_id,
            lambda: self._factory.reissue_link(receipt_id, actor_id),
            receipt_id=str(receipt_id),
        )

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_consolidation(self, order_id: UUID) -> ConsolidationView:
        return self._read(
            "get_consolidation", lambda: self._consolidation.get_consolidation(order_id),
        )

    def get_contract(self, contract_id: UUID) -> ContractInfo:
        return self._read("get_contract", lambda: self._directory.get_contract(contract_id))

    def get_contract_item(self, contract_item_id: UUID) -> ContractItemInfo:
        return self._read(
            "get_contract_item", lambda: self._directory.get_contract_item(contract_item_id),
        )

    def list_units(self, active_only: bool = False) -> list[UnitInfo]:
        return self._read("list_units", lambda: self._directory.list_units(active_only))

    def get_order(self, order_id: UUID) -> OrderInfo:
        return self._read("get_order", lambda: self._orders.get_order(order_id))

    def list_orders(
        self,
        status: OrderStatus | None = None,
        search: str | None = None,
        contract_id: UUID | None = None,
    ) -> list[OrderInfo]:
        return self._read(
            "list_orders", lambda: self._orders.list_orders(status, search, contract_id),
        )

    def get_order_stats(self) -> OrderStats:
        return self._read("get_order_stats", self._orders.get_stats)

    def get_receipt(self, receipt_id: UUID) -> ReceiptInfo:
        return self._read("get_receipt", lambda: self._receipts.get_receipt(receipt_id))

    def preview_confirmation(self, token: str) -> ReceiptInfo:
        """What the public confirmation page shows before the unit submits."""
        return self._read("preview_confirmation", lambda: self._confirmation.preview(token))

    def load_receipts_by_order(self, order_id: UUID) -> list[ReceiptInfo]:
        return self._read(
            "load_receipts_by_order", lambda: self._receipts.load_receipts_by_order(order_id),
        )

    def load_receipt_chain(self, root_id: UUID) -> list[ReceiptInfo]:
        return self._read(
            "load_receipt_chain", lambda: self._receipts.load_receipt_chain(root_id),
        )

    def get_receipt_tree(self, root_id: UUID) -> ReceiptNode:
        return self._read("get_receipt_tree", lambda: self._receipts.get_receipt_tree(root_id))

    def list_receipts(
        self,
        status: ReceiptStatus | None = None,
        search: str | None = None,
        order_id: UUID | None = None,
        unit_id: UUID | None = None,
    ) -> list[ReceiptInfo]:
        return self._read(
            "list_receipts",
            lambda: self._receipts.list_receipts(status, search, order_id, unit_id),
        )

    def get_receipt_stats(self) -> ReceiptStats:
        return self._read("get_receipt_stats", self._receipts.get_stats)

    def list_unit_stock(self, unit_id: UUID) -> list[UnitStockInfo]:
        return self._read("list_unit_stock", lambda: self._stock.list_unit_stock(unit_id))
