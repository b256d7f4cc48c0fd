"""
DirectorySelector -- contracts, contract items and school units.

These are the lookups the order allocator needs from the contract and
unit directories (``getContractItem``, ``listUnits``).
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select

from distribution_kernel.domain.dtos import ContractInfo, ContractItemInfo, UnitInfo
from distribution_kernel.exceptions import (
    ContractItemNotFoundError,
    ContractNotFoundError,
    UnitNotFoundError,
)
from distribution_kernel.models.contract import Contract, ContractItem
from distribution_kernel.models.unit import SchoolUnit
from distribution_kernel.selectors.base import BaseSelector


class DirectorySelector(BaseSelector[Contract]):

    def get_contract(self, contract_id: UUID) -> ContractInfo:
        contract = self.session.get(Contract, contract_id)
        if contract is None:
            raise ContractNotFoundError(str(contract_id))
        return contract.to_dto()

    def get_contract_item(self, contract_item_id: UUID) -> ContractItemInfo:
        item = self.session.execute(
            select(ContractItem)
            .where(ContractItem.id == contract_item_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if item is None:
            raise ContractItemNotFoundError(str(contract_item_id))
        return item.to_dto()

    def contract_items_by_id(self, ids: Iterable[UUID]) -> dict[UUID, ContractItemInfo]:
        """Existing contract items among ``ids``, with fresh balances."""
        ids = set(ids)
        if not ids:
            return {}
        items = self.session.execute(
            select(ContractItem)
            .where(ContractItem.id.in_(ids))
            .execution_options(populate_existing=True)
        ).scalars()
        return {item.id: item.to_dto() for item in items}

    def get_unit(self, unit_id: UUID) -> UnitInfo:
        unit = self.session.get(SchoolUnit, unit_id)
        if unit is None:
            raise UnitNotFoundError(str(unit_id))
        return unit.to_dto()

    def units_by_id(self, ids: Iterable[UUID]) -> dict[UUID, UnitInfo]:
        ids = set(ids)
        if not ids:
            return {}
        units = self.session.execute(
            select(SchoolUnit).where(SchoolUnit.id.in_(ids))
        ).scalars()
        return {unit.id: unit.to_dto() for unit in units}

    def list_units(self, active_only: bool = False) -> list[UnitInfo]:
        stmt = select(SchoolUnit).order_by(SchoolUnit.name)
        if active_only:
            stmt = stmt.where(SchoolUnit.is_active.is_(True))
        return [unit.to_dto() for unit in self.session.execute(stmt).scalars()]
