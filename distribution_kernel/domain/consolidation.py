"""
Consolidation -- order completion derived from the receipt forest.

Pure read-side computation: never persisted, always recomputed, so it
cannot drift from the receipts it summarizes.

A unit counts as confirmed when, for every item of its root receipt, the
received quantity summed over the root and all of its complementary
descendants reaches the root's requested quantity.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from decimal import Decimal
from uuid import UUID

from distribution_kernel.domain.dtos import (
    ConsolidationStatus,
    ConsolidationView,
    OrderInfo,
    OrderStatus,
    ReceiptInfo,
    ReceiptNode,
    ReceiptStatus,
    UnitConsolidation,
)
from distribution_kernel.domain.quantities import HUNDRED, ZERO, round_money


def build_forest(receipts: Iterable[ReceiptInfo]) -> tuple[ReceiptNode, ...]:
    """
    Arrange flat receipts into trees via parent_receipt_id.

    Roots are sorted by receipt number, children likewise.  Receipts whose
    parent is not in the input are dropped.
    """
    receipts = list(receipts)
    children: dict[UUID, list[ReceiptInfo]] = defaultdict(list)
    roots: list[ReceiptInfo] = []
    for receipt in receipts:
        if receipt.parent_receipt_id is None:
            roots.append(receipt)
        else:
            children[receipt.parent_receipt_id].append(receipt)

    def node(receipt: ReceiptInfo) -> ReceiptNode:
        kids = sorted(children.get(receipt.id, ()), key=lambda r: r.receipt_number)
        return ReceiptNode(receipt=receipt, children=tuple(node(k) for k in kids))

    return tuple(node(r) for r in sorted(roots, key=lambda r: r.receipt_number))


def _unit_consolidation(unit_id: UUID, tree: ReceiptNode | None) -> UnitConsolidation:
    if tree is None:
        return UnitConsolidation(
            unit_id=unit_id,
            root_receipt_id=None,
            confirmed=False,
            quantity_requested=ZERO,
            quantity_received=ZERO,
        )

    received: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    for receipt in tree.walk():
        for item in receipt.items:
            received[item.order_item_id] += item.delivered_quantity

    root_items = tree.receipt.items
    confirmed = bool(root_items) and all(
        received[item.order_item_id] >= item.quantity_requested for item in root_items
    )
    requested_total = sum((i.quantity_requested for i in root_items), ZERO)
    received_total = sum(
        (min(received[i.order_item_id], i.quantity_requested) for i in root_items), ZERO,
    )
    return UnitConsolidation(
        unit_id=unit_id,
        root_receipt_id=tree.receipt.id,
        confirmed=confirmed,
        quantity_requested=requested_total,
        quantity_received=received_total,
    )


def consolidate(order: OrderInfo, receipts: Sequence[ReceiptInfo]) -> ConsolidationView:
    """Compute the ConsolidationView of ``order`` from all of its receipts."""
    unit_ids = sorted(order.unit_ids, key=str)
    trees = {
        tree.receipt.unit_id: tree
        for tree in build_forest(r for r in receipts if r.order_id == order.id)
        if tree.receipt.unit_id in order.unit_ids
    }

    units = tuple(_unit_consolidation(uid, trees.get(uid)) for uid in unit_ids)
    total_units = len(units)
    confirmed_units = sum(1 for u in units if u.confirmed)

    if total_units == 0:
        percent = ZERO
    else:
        percent = round_money(Decimal(confirmed_units) * HUNDRED / Decimal(total_units))

    if total_units > 0 and confirmed_units == total_units:
        status = ConsolidationStatus.COMPLETO
    elif (
        order.status == OrderStatus.DELIVERED
        and len(trees) == total_units
        and all(t.receipt.status != ReceiptStatus.PENDING for t in trees.values())
    ):
        status = ConsolidationStatus.CONFIRMADO
    elif confirmed_units > 0:
        status = ConsolidationStatus.PARCIAL
    else:
        status = ConsolidationStatus.PENDENTE

    return ConsolidationView(
        order_id=order.id,
        total_units=total_units,
        confirmed_units=confirmed_units,
        percent_confirmed=percent,
        status=status,
        units=units,
    )
