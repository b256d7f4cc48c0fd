"""
Allocation validator -- pure checks for a new delivery order.

Responsibility:
    Validate a contract order request against the contract directory and a
    snapshot of remaining balances, and compute what must be reserved.  The
    ledger's conditional UPDATE remains the authority on balance; this
    pre-check only gives the caller a precise reason before anything is
    written.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Check order:
    (a) requested delivery date >= today
    (b) every quantity > 0
    (c) contract items exist and belong to the contract, units exist and
        are active, no (item, unit) pair repeats
    (d) per contract item, sum of requested quantities <= remaining balance
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from distribution_kernel.domain.dtos import Allocation, ContractItemInfo, UnitInfo
from distribution_kernel.domain.quantities import (
    MONEY_DECIMAL_PLACES,
    ZERO,
    round_money,
    to_quantity,
)
from distribution_kernel.exceptions import (
    ContractItemNotFoundError,
    DeliveryDateInPastError,
    InsufficientBalanceError,
    InvalidQuantityError,
    UnitNotFoundError,
    ValidationError,
)


@dataclass(frozen=True)
class AllocationPlan:
    """
    Validated order request.

    reservations is sorted by contract item id so that concurrent orders
    touching the same items lock them in the same order.
    """
    allocations: tuple[Allocation, ...]
    reservations: tuple[tuple[UUID, Decimal], ...]
    total_value: Decimal


def validate_allocations(
    contract_id: UUID,
    delivery_date: date,
    today: date,
    allocations: Sequence[Allocation],
    contract_items: Mapping[UUID, ContractItemInfo],
    units: Mapping[UUID, UnitInfo],
    money_decimal_places: int = MONEY_DECIMAL_PLACES,
) -> AllocationPlan:
    """
    Validate an order request; all-or-nothing.

    Args:
        contract_items: Every contract item referenced by ``allocations``
            that exists, keyed by id.  Missing keys mean "not found".
        units: Every unit referenced by ``allocations`` that exists.

    Raises:
        DeliveryDateInPastError, InvalidQuantityError, ValidationError,
        ContractItemNotFoundError, UnitNotFoundError,
        InsufficientBalanceError.
    """
    if delivery_date < today:
        raise DeliveryDateInPastError(delivery_date.isoformat(), today.isoformat())

    if not allocations:
        raise ValidationError("allocations", "At least one allocation is required")

    normalized: list[Allocation] = []
    for index, allocation in enumerate(allocations):
        field = f"allocations[{index}].quantity"
        try:
            quantity = to_quantity(allocation.quantity)
        except (TypeError, ValueError) as exc:
            raise ValidationError(field, str(exc)) from exc
        if quantity <= ZERO:
            raise InvalidQuantityError(field, quantity, minimum=ZERO)
        normalized.append(
            Allocation(
                contract_item_id=allocation.contract_item_id,
                unit_id=allocation.unit_id,
                quantity=quantity,
            )
        )

    seen_pairs: set[tuple[UUID, UUID]] = set()
    for index, allocation in enumerate(normalized):
        item = contract_items.get(allocation.contract_item_id)
        if item is None:
            raise ContractItemNotFoundError(str(allocation.contract_item_id))
        if item.contract_id != contract_id:
            raise ValidationError(
                f"allocations[{index}].contract_item_id",
                f"Item {item.id} does not belong to contract {contract_id}",
            )
        unit = units.get(allocation.unit_id)
        if unit is None:
            raise UnitNotFoundError(str(allocation.unit_id))
        if not unit.is_active:
            raise ValidationError(
                f"allocations[{index}].unit_id", f"Unit {unit.code} is inactive",
            )
        pair = (allocation.contract_item_id, allocation.unit_id)
        if pair in seen_pairs:
            raise ValidationError(
                f"allocations[{index}]",
                f"Item {item.id} allocated to unit {unit.code} more than once",
            )
        seen_pairs.add(pair)

    totals: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    for allocation in normalized:
        totals[allocation.contract_item_id] += allocation.quantity

    reservations = tuple(sorted(totals.items(), key=lambda kv: str(kv[0])))
    for item_id, requested in reservations:
        available = contract_items[item_id].remaining_balance
        if requested > available:
            raise InsufficientBalanceError(str(item_id), requested, available)

    total_value = round_money(
        sum(
            (a.quantity * contract_items[a.contract_item_id].unit_price for a in normalized),
            ZERO,
        ),
        money_decimal_places,
    )

    return AllocationPlan(
        allocations=tuple(normalized),
        reservations=reservations,
        total_value=total_value,
    )
