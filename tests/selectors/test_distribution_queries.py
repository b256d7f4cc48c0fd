"""
Read-side tests: order and receipt listings, stats, receipt chains and
the contract directory, all through DistributionEngine.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from distribution_kernel.domain.dtos import (
    ItemSubmission,
    OrderStatus,
    ReceiptStatus,
)
from distribution_kernel.exceptions import (
    ContractItemNotFoundError,
    OrderNotFoundError,
    ReceiptNotFoundError,
)
from distribution_kernel.selectors.receipt_selector import ReceiptSelector


def _confirm_all(engine, issued, actor_id, received: str | None = None):
    return engine.confirm_receipt(
        issued.link.token,
        [
            ItemSubmission(
                item.order_item_id,
                Decimal(received) if received is not None else item.quantity_requested,
            )
            for item in issued.receipt.items
        ],
        received_by="Ana",
        actor_id=actor_id,
    )


class TestOrderQueries:

    def test_list_orders_filters(self, place_order, distribution_engine, directory, test_actor_id):
        first = place_order([("rice", 0, "1")])
        second = place_order([("rice", 1, "1")])
        distribution_engine.cancel_order(first.id, actor_id=test_actor_id)

        assert [o.id for o in distribution_engine.list_orders()] == [second.id, first.id]
        assert [o.id for o in distribution_engine.list_orders(status=OrderStatus.CANCELLED)] == [first.id]
        assert [o.id for o in distribution_engine.list_orders(search="000002")] == [second.id]
        assert distribution_engine.list_orders(contract_id=uuid4()) == []
        assert len(distribution_engine.list_orders(contract_id=directory.contract.id)) == 2

    def test_stats_exclude_cancelled_value(self, place_order, distribution_engine, test_actor_id):
        kept = place_order([("rice", 0, "2")])          # 11.00
        dropped = place_order([("beans", 0, "1")])      # 8.00
        distribution_engine.cancel_order(dropped.id, actor_id=test_actor_id)

        stats = distribution_engine.get_order_stats()

        assert stats.total == 2
        assert stats.by_status[OrderStatus.CONFIRMED.value] == 1
        assert stats.by_status[OrderStatus.CANCELLED.value] == 1
        assert stats.by_status[OrderStatus.DELIVERED.value] == 0
        assert stats.total_value == kept.total_value == Decimal("11.00")

    def test_unknown_order(self, distribution_engine):
        with pytest.raises(OrderNotFoundError):
            distribution_engine.get_order(uuid4())


class TestReceiptQueries:

    def test_list_receipts_filters_and_stats(self, place_order, distribution_engine, directory, test_actor_id):
        order = place_order([("rice", 0, "5"), ("rice", 1, "5")])
        first, second = distribution_engine.generate_receipts(order.id, "X", actor_id=test_actor_id)
        _confirm_all(distribution_engine, first, test_actor_id)

        confirmed = distribution_engine.list_receipts(status=ReceiptStatus.CONFIRMED)
        assert [r.id for r in confirmed] == [first.receipt.id]
        assert [r.id for r in distribution_engine.list_receipts(unit_id=second.receipt.unit_id)] == [
            second.receipt.id,
        ]
        assert len(distribution_engine.list_receipts(order_id=order.id)) == 2
        assert [r.id for r in distribution_engine.list_receipts(search="000002")] == [second.receipt.id]

        stats = distribution_engine.get_receipt_stats()
        assert stats.total == 2
        assert stats.by_status == {"pending": 1, "confirmed": 1, "partial": 0, "rejected": 0}

    def test_receipt_chain_and_forest(self, place_order, distribution_engine, session, test_actor_id):
        order = place_order([("milk", 0, "10"), ("milk", 1, "10")])
        first, second = distribution_engine.generate_receipts(order.id, "X", actor_id=test_actor_id)
        _confirm_all(distribution_engine, first, test_actor_id, received="4")
        adjusted = distribution_engine.adjust_receipt(first.receipt.id, [], "Bia", actor_id=test_actor_id)

        chain = distribution_engine.load_receipt_chain(first.receipt.id)
        assert [r.id for r in chain] == [first.receipt.id, adjusted.complementary.receipt.id]

        subtree = distribution_engine.get_receipt_tree(adjusted.complementary.receipt.id)
        assert subtree.receipt.is_root
        assert subtree.children == ()

        forest = ReceiptSelector(session).get_order_forest(order.id)
        assert [tree.receipt.id for tree in forest] == [first.receipt.id, second.receipt.id]
        assert len(forest[0].children) == 1

        assert len(distribution_engine.load_receipts_by_order(order.id)) == 3

    def test_receipt_dto_never_carries_the_token(self, place_order, distribution_engine, test_actor_id):
        order = place_order([("rice", 0, "1")])
        (issued,) = distribution_engine.generate_receipts(order.id, "X", actor_id=test_actor_id)
        receipt = distribution_engine.get_receipt(issued.receipt.id)
        assert issued.link.token not in repr(receipt)
        assert not hasattr(receipt, "token_hash")

    def test_unknown_receipt(self, distribution_engine):
        with pytest.raises(ReceiptNotFoundError):
            distribution_engine.get_receipt(uuid4())
        with pytest.raises(ReceiptNotFoundError):
            distribution_engine.load_receipt_chain(uuid4())


class TestDirectoryQueries:

    def test_list_units(self, distribution_engine, directory):
        all_codes = {u.code for u in distribution_engine.list_units()}
        active_codes = {u.code for u in distribution_engine.list_units(active_only=True)}
        assert directory.inactive_unit.code in all_codes
        assert directory.inactive_unit.code not in active_codes
        assert len(active_codes) == 3

    def test_contract_with_items(self, distribution_engine, directory):
        contract = distribution_engine.get_contract(directory.contract.id)
        assert contract.contract_number == "CT-2024-001"
        assert {i.name for i in contract.items} == {"Arroz tipo 1", "Feijao carioca", "Leite integral"}

    def test_unknown_contract_item(self, distribution_engine):
        with pytest.raises(ContractItemNotFoundError):
            distribution_engine.get_contract_item(uuid4())
