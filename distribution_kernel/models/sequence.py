"""
Module: distribution_kernel.models.sequence
Responsibility: Named counter rows backing order and receipt numbering.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from distribution_kernel.db.base import Base


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row is one named sequence (for example ``order:2024``) holding the
    last value handed out.  Rows are locked while being incremented.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )
