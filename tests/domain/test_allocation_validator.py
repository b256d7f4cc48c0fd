"""
Tests for the pure allocation validator.

Check order matters: the caller gets the first applicable reason, and a
later problem never masks an earlier one.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from distribution_kernel.domain.allocation import validate_allocations
from distribution_kernel.domain.dtos import Allocation, ContractItemInfo, UnitInfo
from distribution_kernel.exceptions import (
    ContractItemNotFoundError,
    DeliveryDateInPastError,
    InsufficientBalanceError,
    InvalidQuantityError,
    UnitNotFoundError,
    ValidationError,
)

TODAY = date(2024, 3, 1)
CONTRACT_ID = uuid4()


def _item(remaining: str = "100", price: str = "2.50", contract_id=CONTRACT_ID) -> ContractItemInfo:
    return ContractItemInfo(
        id=uuid4(),
        contract_id=contract_id,
        name="Arroz",
        unit_of_measure="kg",
        unit_price=Decimal(price),
        total_quantity=Decimal("100"),
        remaining_balance=Decimal(remaining),
    )


def _unit(active: bool = True) -> UnitInfo:
    return UnitInfo(id=uuid4(), code="EM-1", name="Escola", is_active=active)


def _validate(allocations, items, units, delivery_date=TODAY):
    return validate_allocations(
        contract_id=CONTRACT_ID,
        delivery_date=delivery_date,
        today=TODAY,
        allocations=allocations,
        contract_items={i.id: i for i in items},
        units={u.id: u for u in units},
    )


class TestValidateAllocations:

    def test_valid_request_produces_sorted_reservations_and_total(self):
        a, b = _item(price="2.50"), _item(price="1.333")
        unit = _unit()
        plan = _validate(
            [
                Allocation(a.id, unit.id, Decimal("4")),
                Allocation(b.id, unit.id, Decimal("3")),
            ],
            [a, b], [unit],
        )
        assert [rid for rid, _ in plan.reservations] == sorted([a.id, b.id], key=str)
        # 10.00 + 3.999 -> 14.00 (half-up to cents)
        assert plan.total_value == Decimal("14.00")

    def test_reservations_sum_per_item_across_units(self):
        item = _item()
        u1, u2 = _unit(), _unit()
        plan = _validate(
            [Allocation(item.id, u1.id, Decimal("60")), Allocation(item.id, u2.id, Decimal("40"))],
            [item], [u1, u2],
        )
        assert plan.reservations == ((item.id, Decimal("100")),)

    def test_past_delivery_date_is_checked_first(self):
        with pytest.raises(DeliveryDateInPastError):
            _validate([], [], [], delivery_date=date(2024, 2, 29))

    def test_today_is_an_acceptable_delivery_date(self):
        item, unit = _item(), _unit()
        plan = _validate([Allocation(item.id, unit.id, Decimal("1"))], [item], [unit])
        assert plan.allocations[0].quantity == Decimal("1")

    def test_empty_request_is_refused(self):
        with pytest.raises(ValidationError):
            _validate([], [], [])

    @pytest.mark.parametrize("quantity", ["0", "-5"])
    def test_non_positive_quantity_is_refused(self, quantity):
        item, unit = _item(), _unit()
        with pytest.raises(InvalidQuantityError):
            _validate([Allocation(item.id, unit.id, Decimal(quantity))], [item], [unit])

    def test_unknown_contract_item(self):
        unit = _unit()
        with pytest.raises(ContractItemNotFoundError):
            _validate([Allocation(uuid4(), unit.id, Decimal("1"))], [], [unit])

    def test_item_of_another_contract(self):
        item, unit = _item(contract_id=uuid4()), _unit()
        with pytest.raises(ValidationError, match="does not belong"):
            _validate([Allocation(item.id, unit.id, Decimal("1"))], [item], [unit])

    def test_unknown_unit(self):
        item = _item()
        with pytest.raises(UnitNotFoundError):
            _validate([Allocation(item.id, uuid4(), Decimal("1"))], [item], [])

    def test_inactive_unit(self):
        item, unit = _item(), _unit(active=False)
        with pytest.raises(ValidationError, match="inactive"):
            _validate([Allocation(item.id, unit.id, Decimal("1"))], [item], [unit])

    def test_repeated_item_unit_pair(self):
        item, unit = _item(), _unit()
        with pytest.raises(ValidationError, match="more than once"):
            _validate(
                [Allocation(item.id, unit.id, Decimal("1")), Allocation(item.id, unit.id, Decimal("2"))],
                [item], [unit],
            )

    def test_sum_over_remaining_balance(self):
        item = _item(remaining="40")
        u1, u2 = _unit(), _unit()
        with pytest.raises(InsufficientBalanceError) as exc_info:
            _validate(
                [Allocation(item.id, u1.id, Decimal("30")), Allocation(item.id, u2.id, Decimal("11"))],
                [item], [u1, u2],
            )
        assert exc_info.value.requested == Decimal("41")
        assert exc_info.value.available == Decimal("40")
