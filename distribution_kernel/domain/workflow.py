"""
Workflow value objects (``distribution_kernel.domain.workflow``).

Responsibility
--------------
Pure descriptions of the order and receipt state machines.  Services look
up the transition they are about to make with :func:`require_transition`
instead of comparing status strings inline, so every legal move is listed
in one place.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
"""

from __future__ import annotations

from dataclasses import dataclass

from distribution_kernel.domain.dtos import OrderStatus, ReceiptStatus


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Descriptive only; the code performing the transition evaluates it.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle.

    ``terminal_states`` are states with no outgoing transitions.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(f"{self.name}: initial state {self.initial_state!r} not in states")
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"{self.name}: transition {t.action!r} references unknown state"
                )

    def find(self, from_state: str, to_state: str, action: str) -> Transition | None:
        for t in self.transitions:
            if t.from_state == from_state and t.to_state == to_state and t.action == action:
                return t
        return None

    def actions_from(self, from_state: str) -> tuple[str, ...]:
        return tuple(sorted({t.action for t in self.transitions if t.from_state == from_state}))


def require_transition(
    workflow: Workflow, from_state: str, to_state: str, action: str,
) -> Transition:
    """Return the declared transition or raise ValueError.

    Callers check business preconditions first and raise their own typed
    errors; a ValueError here means the code tried a move the workflow
    does not declare.
    """
    transition = workflow.find(from_state, to_state, action)
    if transition is None:
        raise ValueError(
            f"{workflow.name}: no '{action}' transition from {from_state!r} to {to_state!r}"
        )
    return transition


# ---------------------------------------------------------------------------
# Order workflow
# ---------------------------------------------------------------------------

_O = OrderStatus

ORDER_WORKFLOW = Workflow(
    name="order",
    description="Delivery order from allocation through dispatch",
    initial_state=_O.PENDING.value,
    states=tuple(s.value for s in _O),
    transitions=(
        Transition(
            _O.PENDING.value, _O.CONFIRMED.value, "allocate",
            guard=Guard("balance_reserved", "Every contract item reserved on the ledger"),
        ),
        Transition(
            _O.CONFIRMED.value, _O.DELIVERED.value, "dispatch",
            guard=Guard("has_receipts", "At least one receipt was generated"),
        ),
        Transition(_O.PENDING.value, _O.CANCELLED.value, "cancel"),
        Transition(
            _O.CONFIRMED.value, _O.CANCELLED.value, "cancel",
            guard=Guard("no_receipts", "No receipt exists for the order"),
        ),
    ),
    terminal_states=(_O.DELIVERED.value, _O.CANCELLED.value),
)


# ---------------------------------------------------------------------------
# Receipt workflow
# ---------------------------------------------------------------------------

_R = ReceiptStatus

RECEIPT_WORKFLOW = Workflow(
    name="receipt",
    description="Unit confirmation of one delivery",
    initial_state=_R.PENDING.value,
    states=tuple(s.value for s in _R),
    transitions=(
        Transition(
            _R.PENDING.value, _R.CONFIRMED.value, "confirm",
            guard=Guard("all_conforming", "Every item received in full without defect"),
        ),
        Transition(
            _R.PENDING.value, _R.REJECTED.value, "confirm",
            guard=Guard("nothing_received", "Every item received with quantity 0"),
        ),
        Transition(_R.PENDING.value, _R.PARTIAL.value, "confirm"),
        # Adjustment spawns a complementary receipt but leaves the status alone.
        Transition(_R.PARTIAL.value, _R.PARTIAL.value, "adjust"),
        Transition(_R.REJECTED.value, _R.REJECTED.value, "adjust"),
    ),
    terminal_states=(_R.CONFIRMED.value,),
)
