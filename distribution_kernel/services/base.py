"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and session-handling contract for every write-side
    service.  Services persist with ``session.flush()`` -- never
    ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries -- services flush within the caller's
    transaction and never commit or rollback themselves.  The caller
    (DistributionEngine or a test holding ``session_scope()``) owns
    commit/rollback, which is what makes an order and its ledger
    reservations, or an adjustment and its complementary receipt, land
    together or not at all.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from distribution_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide query-only (read) methods -- those belong
          in ``distribution_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
