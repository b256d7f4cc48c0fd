"""Database layer - engine, base classes, and column types."""

from distribution_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from distribution_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    session_scope,
)
from distribution_kernel.db.types import Money, Quantity, Sequence, TokenHash

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "Money",
    "Quantity",
    "Sequence",
    "TokenHash",
]
