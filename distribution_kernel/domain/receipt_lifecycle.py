"""
Receipt lifecycle -- pure transition functions for confirmation and adjustment.

Responsibility:
    Given the current state of a receipt and what the unit (or the adjusting
    operator) submitted, compute the new item values, the new receipt status
    and the shortfalls that remain open.  Nothing here touches the database;
    ConfirmationService and ComplementaryReceiptService apply the outcome.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Rules:
    - A submission must name every item of the receipt exactly once.
    - 0 <= received <= requested, otherwise InvalidQuantityError.  Values
      are never clamped.
    - conforming = (received == requested) and not defect_reported.
    - Receipt status: CONFIRMED if every item conforms, REJECTED if every
      item received 0, otherwise PARTIAL.
    - Delivered quantity = received, defect or not.  Shortfall = requested -
      delivered; replacing defective goods is the operator's call.
    - Adjustment applies only to PARTIAL/REJECTED receipts that were not
      adjusted before.  MARK_CONFORMING needs received <= corrected <=
      requested; it clears the defect flag and marks the item conforming.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from distribution_kernel.domain.dtos import (
    AdjustmentChoice,
    ItemAdjustment,
    ItemSubmission,
    ReceiptStatus,
)
from distribution_kernel.domain.quantities import ZERO, to_quantity
from distribution_kernel.domain.workflow import RECEIPT_WORKFLOW, require_transition
from distribution_kernel.exceptions import (
    InvalidQuantityError,
    ReceiptAlreadyAdjustedError,
    ReceiptItemNotFoundError,
    ReceiptNotAdjustableError,
    ReceiptNotPendingError,
    ValidationError,
)

ADJUSTABLE_STATES = frozenset({ReceiptStatus.PARTIAL, ReceiptStatus.REJECTED})


@dataclass(frozen=True)
class ItemState:
    """Snapshot of one receipt item, as the lifecycle functions see it."""
    receipt_item_id: UUID
    order_item_id: UUID
    quantity_requested: Decimal
    quantity_received: Decimal = ZERO
    conforming: bool | None = None
    defect_reported: bool = False

    @property
    def delivered_quantity(self) -> Decimal:
        if self.conforming is None:
            return ZERO
        return self.quantity_received

    @property
    def shortfall(self) -> Decimal:
        return self.quantity_requested - self.delivered_quantity


@dataclass(frozen=True)
class ItemConfirmation:
    receipt_item_id: UUID
    order_item_id: UUID
    quantity_received: Decimal
    conforming: bool
    defect_reported: bool
    notes: str | None


@dataclass(frozen=True)
class ConfirmationOutcome:
    status: ReceiptStatus
    items: tuple[ItemConfirmation, ...]


@dataclass(frozen=True)
class ItemCorrection:
    receipt_item_id: UUID
    previous_quantity: Decimal
    corrected_quantity: Decimal
    notes: str | None

    @property
    def increase(self) -> Decimal:
        return self.corrected_quantity - self.previous_quantity


@dataclass(frozen=True)
class Shortfall:
    order_item_id: UUID
    quantity: Decimal


@dataclass(frozen=True)
class AdjustmentPlan:
    corrections: tuple[ItemCorrection, ...]
    shortfalls: tuple[Shortfall, ...]

    @property
    def needs_complementary(self) -> bool:
        return bool(self.shortfalls)


def derive_status(items: Sequence[ItemConfirmation]) -> ReceiptStatus:
    """Receipt status implied by a set of confirmed items."""
    if all(item.conforming for item in items):
        return ReceiptStatus.CONFIRMED
    if all(item.quantity_received == ZERO for item in items):
        return ReceiptStatus.REJECTED
    return ReceiptStatus.PARTIAL


def evaluate_confirmation(
    receipt_id: str,
    current_status: ReceiptStatus,
    items: Sequence[ItemState],
    submissions: Sequence[ItemSubmission],
) -> ConfirmationOutcome:
    """
    Compute the result of a unit's confirmation.

    Raises:
        ReceiptNotPendingError: The receipt already left PENDING.
        ValidationError: Unknown, duplicate or missing items.
        InvalidQuantityError: A received quantity outside [0, requested].
    """
    if current_status != ReceiptStatus.PENDING:
        raise ReceiptNotPendingError(receipt_id, current_status.value)
    if not submissions:
        raise ValidationError("submissions", "At least one item must be submitted")

    by_order_item = {item.order_item_id: item for item in items}
    seen: dict[UUID, ItemSubmission] = {}
    for index, submission in enumerate(submissions):
        field = f"submissions[{index}].order_item_id"
        if submission.order_item_id not in by_order_item:
            raise ValidationError(field, f"Item {submission.order_item_id} is not on this receipt")
        if submission.order_item_id in seen:
            raise ValidationError(field, f"Item {submission.order_item_id} submitted twice")
        seen[submission.order_item_id] = submission

    missing = [str(oid) for oid in by_order_item if oid not in seen]
    if missing:
        raise ValidationError("submissions", f"Missing items: {', '.join(sorted(missing))}")

    confirmed: list[ItemConfirmation] = []
    for index, submission in enumerate(submissions):
        item = by_order_item[submission.order_item_id]
        field = f"submissions[{index}].quantity_received"
        try:
            received = to_quantity(submission.quantity_received)
        except (TypeError, ValueError) as exc:
            raise ValidationError(field, str(exc)) from exc
        if received < ZERO or received > item.quantity_requested:
            raise InvalidQuantityError(
                field, received, minimum=ZERO, maximum=item.quantity_requested,
            )
        conforming = received == item.quantity_requested and not submission.defect_reported
        confirmed.append(
            ItemConfirmation(
                receipt_item_id=item.receipt_item_id,
                order_item_id=item.order_item_id,
                quantity_received=received,
                conforming=conforming,
                defect_reported=submission.defect_reported,
                notes=submission.notes,
            )
        )

    status = derive_status(confirmed)
    require_transition(RECEIPT_WORKFLOW, ReceiptStatus.PENDING.value, status.value, "confirm")
    return ConfirmationOutcome(status=status, items=tuple(confirmed))


def plan_adjustment(
    receipt_id: str,
    current_status: ReceiptStatus,
    already_adjusted: bool,
    items: Sequence[ItemState],
    adjustments: Sequence[ItemAdjustment],
) -> AdjustmentPlan:
    """
    Decide corrections and remaining shortfalls for an adjustment.

    Items not named in ``adjustments`` keep their shortfall.

    Raises:
        ReceiptAlreadyAdjustedError: The receipt was adjusted before.
        ReceiptNotAdjustableError: The receipt is PENDING or CONFIRMED.
        ReceiptItemNotFoundError: An adjustment names an item not on the receipt.
        ValidationError: Duplicate entries, missing corrected quantity, or
            marking an already conforming item.
        InvalidQuantityError: Corrected quantity outside [received, requested].
    """
    if already_adjusted:
        raise ReceiptAlreadyAdjustedError(receipt_id, current_status.value)
    if current_status not in ADJUSTABLE_STATES:
        raise ReceiptNotAdjustableError(receipt_id, current_status.value)
    require_transition(RECEIPT_WORKFLOW, current_status.value, current_status.value, "adjust")

    by_id = {item.receipt_item_id: item for item in items}
    decisions: dict[UUID, ItemAdjustment] = {}
    for index, adjustment in enumerate(adjustments):
        if adjustment.receipt_item_id not in by_id:
            raise ReceiptItemNotFoundError(str(adjustment.receipt_item_id))
        if adjustment.receipt_item_id in decisions:
            raise ValidationError(
                f"adjustments[{index}].receipt_item_id",
                f"Item {adjustment.receipt_item_id} adjusted twice",
            )
        decisions[adjustment.receipt_item_id] = adjustment

    corrections: list[ItemCorrection] = []
    delivered: dict[UUID, Decimal] = {}
    for index, adjustment in enumerate(adjustments):
        if adjustment.choice != AdjustmentChoice.MARK_CONFORMING:
            continue
        item = by_id[adjustment.receipt_item_id]
        field = f"adjustments[{index}].corrected_quantity"
        if item.conforming:
            raise ValidationError(
                f"adjustments[{index}].choice",
                f"Item {item.receipt_item_id} is already conforming",
            )
        if adjustment.corrected_quantity is None:
            raise ValidationError(field, "Required when marking an item conforming")
        try:
            corrected = to_quantity(adjustment.corrected_quantity)
        except (TypeError, ValueError) as exc:
            raise ValidationError(field, str(exc)) from exc
        if corrected < item.quantity_received or corrected > item.quantity_requested:
            raise InvalidQuantityError(
                field, corrected,
                minimum=item.quantity_received, maximum=item.quantity_requested,
            )
        corrections.append(
            ItemCorrection(
                receipt_item_id=item.receipt_item_id,
                previous_quantity=item.quantity_received,
                corrected_quantity=corrected,
                notes=adjustment.notes,
            )
        )
        delivered[item.receipt_item_id] = corrected

    shortfalls: list[Shortfall] = []
    for item in items:
        remaining = item.quantity_requested - delivered.get(
            item.receipt_item_id, item.delivered_quantity,
        )
        if remaining > ZERO:
            shortfalls.append(Shortfall(order_item_id=item.order_item_id, quantity=remaining))

    return AdjustmentPlan(corrections=tuple(corrections), shortfalls=tuple(shortfalls))
