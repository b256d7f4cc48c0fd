"""session_scope(): commit on success, rollback on error, real transactions."""

import pytest
from sqlalchemy import func, select

from distribution_kernel.db.engine import session_scope
from distribution_kernel.models.unit import SchoolUnit


def _unit_count(factory) -> int:
    session = factory()
    try:
        return session.execute(select(func.count(SchoolUnit.id))).scalar_one()
    finally:
        session.close()


def test_commits_on_success(committed_session_factory, test_actor_id):
    with session_scope() as session:
        session.add(SchoolUnit(code="EM-500", name="Escola 500", created_by_id=test_actor_id))

    assert _unit_count(committed_session_factory) == 1


def test_rolls_back_on_error(committed_session_factory, test_actor_id):
    with pytest.raises(RuntimeError):
        with session_scope() as session:
            session.add(SchoolUnit(code="EM-501", name="Escola 501", created_by_id=test_actor_id))
            session.flush()
            raise RuntimeError("boom")

    assert _unit_count(committed_session_factory) == 0
