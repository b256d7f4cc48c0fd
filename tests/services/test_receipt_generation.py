"""
Tests for receipt generation and confirmation links.

- One pending receipt per destination unit
- Requested quantities on receipts mirror the order items exactly
- Only the token hash is stored; the link is built from configuration
"""

from collections import Counter
from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import select

from distribution_kernel.domain.dtos import ItemSubmission, OrderStatus, ReceiptStatus
from distribution_kernel.domain.tokens import hash_token
from distribution_kernel.exceptions import (
    ConfirmationTokenNotFoundError,
    OrderNotConfirmedError,
    OrderNotFoundError,
    ReceiptNotPendingError,
    ValidationError,
)
from distribution_kernel.models.receipt import Receipt

from tests.conftest import CONFIRMATION_BASE_URL, DELIVERY_DATE


@pytest.fixture
def three_unit_order(place_order):
    return place_order([
        ("rice", 0, "10"), ("beans", 0, "5"),
        ("rice", 1, "20"),
        ("milk", 2, "30"), ("beans", 2, "5"),
    ])


class TestGenerateReceipts:

    def test_one_receipt_per_unit(self, three_unit_order, distribution_engine, test_actor_id):
        issued = distribution_engine.generate_receipts(
            three_unit_order.id, "Transportadora Sul", actor_id=test_actor_id,
        )

        assert len(issued) == 3
        assert {i.receipt.unit_id for i in issued} == three_unit_order.unit_ids
        assert [i.receipt.receipt_number for i in issued] == [
            "RB-2024-000001", "RB-2024-000002", "RB-2024-000003",
        ]
        for item in issued:
            assert item.receipt.status == ReceiptStatus.PENDING
            assert item.receipt.is_root
            assert item.receipt.delivered_by == "Transportadora Sul"
            assert item.receipt.delivery_date == DELIVERY_DATE

    def test_quantities_mirror_order_items(self, three_unit_order, distribution_engine, test_actor_id):
        issued = distribution_engine.generate_receipts(
            three_unit_order.id, "Transportadora Sul", actor_id=test_actor_id,
        )

        ordered = Counter((i.id, i.quantity) for i in three_unit_order.items)
        receipted = Counter(
            (item.order_item_id, item.quantity_requested)
            for i in issued for item in i.receipt.items
        )
        assert receipted == ordered
        for i in issued:
            assert all(item.conforming is None for item in i.receipt.items)

    def test_order_moves_to_delivered(self, three_unit_order, distribution_engine, test_actor_id):
        distribution_engine.generate_receipts(three_unit_order.id, "X", actor_id=test_actor_id)
        assert distribution_engine.get_order(three_unit_order.id).status == OrderStatus.DELIVERED

    def test_explicit_delivery_date(self, three_unit_order, distribution_engine, test_actor_id):
        issued = distribution_engine.generate_receipts(
            three_unit_order.id, "X", actor_id=test_actor_id, delivery_date=date(2024, 1, 20),
        )
        assert {i.receipt.delivery_date for i in issued} == {date(2024, 1, 20)}

    def test_second_generation_is_refused(self, three_unit_order, distribution_engine, test_actor_id):
        distribution_engine.generate_receipts(three_unit_order.id, "X", actor_id=test_actor_id)
        with pytest.raises(OrderNotConfirmedError):
            distribution_engine.generate_receipts(three_unit_order.id, "X", actor_id=test_actor_id)
        assert len(distribution_engine.load_receipts_by_order(three_unit_order.id)) == 3

    def test_cancelled_order_is_refused(self, three_unit_order, distribution_engine, test_actor_id):
        distribution_engine.cancel_order(three_unit_order.id, actor_id=test_actor_id)
        with pytest.raises(OrderNotConfirmedError):
            distribution_engine.generate_receipts(three_unit_order.id, "X", actor_id=test_actor_id)

    def test_blank_carrier_leaves_order_confirmed(self, three_unit_order, distribution_engine, test_actor_id):
        with pytest.raises(ValidationError, match="delivered_by"):
            distribution_engine.generate_receipts(three_unit_order.id, "   ", actor_id=test_actor_id)
        assert distribution_engine.get_order(three_unit_order.id).status == OrderStatus.CONFIRMED
        assert distribution_engine.load_receipts_by_order(three_unit_order.id) == []

    def test_unknown_order(self, distribution_engine, test_actor_id):
        with pytest.raises(OrderNotFoundError):
            distribution_engine.generate_receipts(uuid4(), "X", actor_id=test_actor_id)


class TestConfirmationLinks:

    def test_link_uses_configured_frontend(self, three_unit_order, distribution_engine, test_actor_id):
        issued = distribution_engine.generate_receipts(three_unit_order.id, "X", actor_id=test_actor_id)
        for i in issued:
            assert i.link.receipt_id == i.receipt.id
            assert i.link.url == (
                f"{CONFIRMATION_BASE_URL}/confirmacao-recebimento/{i.link.token}"
            )
            assert i.link.qr_payload == i.link.url

    def test_only_token_hash_is_stored(self, three_unit_order, distribution_engine, session, test_actor_id):
        issued = distribution_engine.generate_receipts(three_unit_order.id, "X", actor_id=test_actor_id)
        stored = {
            r.id: r.token_hash for r in session.execute(select(Receipt)).scalars()
        }
        for i in issued:
            assert stored[i.receipt.id] == hash_token(i.link.token)
            assert i.link.token not in stored.values()

    def test_tokens_are_distinct(self, three_unit_order, distribution_engine, test_actor_id):
        issued = distribution_engine.generate_receipts(three_unit_order.id, "X", actor_id=test_actor_id)
        assert len({i.link.token for i in issued}) == 3

    def test_preview_resolves_token(self, three_unit_order, distribution_engine, test_actor_id):
        first, *_ = distribution_engine.generate_receipts(three_unit_order.id, "X", actor_id=test_actor_id)
        assert distribution_engine.preview_confirmation(first.link.token).id == first.receipt.id

    def test_preview_unknown_token(self, distribution_engine):
        with pytest.raises(ConfirmationTokenNotFoundError):
            distribution_engine.preview_confirmation("not-a-real-token")

    def test_reissue_invalidates_previous_link(self, three_unit_order, distribution_engine, test_actor_id):
        first, *_ = distribution_engine.generate_receipts(three_unit_order.id, "X", actor_id=test_actor_id)

        link = distribution_engine.reissue_confirmation_link(first.receipt.id, actor_id=test_actor_id)

        assert link.token != first.link.token
        assert distribution_engine.preview_confirmation(link.token).id == first.receipt.id
        with pytest.raises(ConfirmationTokenNotFoundError):
            distribution_engine.preview_confirmation(first.link.token)

    def test_tokens_never_reach_the_logs(self, three_unit_order, distribution_engine, test_actor_id, captured_logs):
        issued = distribution_engine.generate_receipts(three_unit_order.id, "X", actor_id=test_actor_id)
        raw_logs = str(captured_logs())
        for i in issued:
            assert i.link.token not in raw_logs


def test_reissue_requires_pending_receipt(place_order, distribution_engine, test_actor_id):
    order = place_order([("rice", 0, "10")])
    (issued,) = distribution_engine.generate_receipts(order.id, "X", actor_id=test_actor_id)
    distribution_engine.confirm_receipt(
        issued.link.token,
        [ItemSubmission(item.order_item_id, item.quantity_requested) for item in issued.receipt.items],
        received_by="Diretora Ana",
        actor_id=test_actor_id,
    )
    with pytest.raises(ReceiptNotPendingError):
        distribution_engine.reissue_confirmation_link(issued.receipt.id, actor_id=test_actor_id)
