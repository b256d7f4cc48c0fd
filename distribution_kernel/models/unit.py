"""
Module: distribution_kernel.models.unit
Responsibility: ORM persistence for the school units that receive deliveries.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.
"""

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from distribution_kernel.db.base import TrackedBase
from distribution_kernel.domain.dtos import UnitInfo


class SchoolUnit(TrackedBase):
    """
    A school or daycare unit that receives supply deliveries.

    Guarantees:
        - code is unique.
        - Only active units may be targeted by new allocations.
    """

    __tablename__ = "school_units"

    __table_args__ = (
        UniqueConstraint("code", name="uq_school_unit_code"),
        Index("idx_school_unit_active", "is_active"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self) -> UnitInfo:
        return UnitInfo(id=self.id, code=self.code, name=self.name, is_active=self.is_active)
