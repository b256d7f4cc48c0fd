"""
Module: distribution_kernel.db.types
Responsibility: Annotated type aliases for quantity, money and identifier
    columns, so every model uses identical column definitions.
Architecture position: Kernel > DB.  May be imported by models/, services/
    and selectors/.
"""

from decimal import Decimal
from typing import Annotated

from sqlalchemy import BigInteger, Numeric, String

# Delivered/ordered quantity (kg, packages, units...)
Quantity = Annotated[Decimal, Numeric(38, 9)]

# Monetary amount
Money = Annotated[Decimal, Numeric(38, 9)]

# Monotonic sequence number
Sequence = Annotated[int, BigInteger]

# SHA-256 hash as hex string (64 characters)
TokenHash = Annotated[str, String(64)]

# Short identifier strings (order/receipt numbers, codes)
ShortCode = Annotated[str, String(50)]
