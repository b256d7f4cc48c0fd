"""Write-side kernel services.  All flush, none commit."""

from distribution_kernel.services.complementary_service import ComplementaryReceiptService
from distribution_kernel.services.confirmation_service import ConfirmationService
from distribution_kernel.services.ledger_service import BalanceLedgerService
from distribution_kernel.services.order_allocator import OrderAllocatorService
from distribution_kernel.services.receipt_factory import ReceiptFactory
from distribution_kernel.services.sequence_service import SequenceService
from distribution_kernel.services.stock_service import UnitStockService

__all__ = [
    "BalanceLedgerService",
    "ComplementaryReceiptService",
    "ConfirmationService",
    "OrderAllocatorService",
    "ReceiptFactory",
    "SequenceService",
    "UnitStockService",
]
