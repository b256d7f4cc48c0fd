"""Read-only query selectors returning DTOs."""

from distribution_kernel.selectors.consolidation_selector import ConsolidationSelector
from distribution_kernel.selectors.directory_selector import DirectorySelector
from distribution_kernel.selectors.order_selector import OrderSelector
from distribution_kernel.selectors.receipt_selector import ReceiptSelector
from distribution_kernel.selectors.stock_selector import StockSelector

__all__ = [
    "ConsolidationSelector",
    "DirectorySelector",
    "OrderSelector",
    "ReceiptSelector",
    "StockSelector",
]
