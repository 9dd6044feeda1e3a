# Overview: Central state/transition tables for every workflow entity.

"""
EuroDoor Workflow Lifecycles

================================================================================
Every workflow record moves through a closed set of states. The tables below
are the only place legal moves are defined; services call
`require_transition` before mutating a status column.
================================================================================

RULES:
1. Cannot skip states (a task cannot go assigned -> completed in one write)
2. Cannot reverse states (no backwards movement anywhere)
3. Terminal states have no outgoing edges
4. Same-state "transitions" are refused: repeating an operation is an error
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..errors import InvalidStateError


@dataclass(frozen=True)
class StateMachine:
    name: str
    states: tuple[str, ...]
    transitions: frozenset[tuple[str, str]] = field(default_factory=frozenset)

    def validate_status(self, status: str) -> None:
        if status not in self.states:
            raise InvalidStateError(
                f"Invalid {self.name} status '{status}'. Must be one of: {', '.join(self.states)}"
            )

    def can_transition(self, from_status: str, to_status: str) -> bool:
        if from_status not in self.states or to_status not in self.states:
            return False
        return (from_status, to_status) in self.transitions

    def require_transition(self, from_status: str, to_status: str) -> None:
        self.validate_status(to_status)
        if not self.can_transition(from_status, to_status):
            raise InvalidStateError(
                f"Cannot move {self.name} from '{from_status}' to '{to_status}'",
                details={"entity": self.name, "from": from_status, "to": to_status},
            )

    def successors(self, status: str) -> list[str]:
        return [to for (frm, to) in self.transitions if frm == status]


def _chain(*states: str) -> frozenset[tuple[str, str]]:
    return frozenset(zip(states, states[1:]))


# =============================================================================
# RAW MATERIAL PROCUREMENT
# =============================================================================

RAW_PENDING = "pending"
RAW_APPROVED = "approved"
RAW_REJECTED = "rejected"
RAW_SUPPLIED = "supplied"
RAW_ACCEPTED = "accepted"
RAW_REJECTED_BY_INVENTORY = "rejected-by-inventory"

PAYMENT_UNPAID = "unpaid"
PAYMENT_PAID = "paid"

RAW_MATERIAL_REQUEST = StateMachine(
    name="raw material request",
    states=(RAW_PENDING, RAW_APPROVED, RAW_REJECTED, RAW_SUPPLIED, RAW_ACCEPTED, RAW_REJECTED_BY_INVENTORY),
    transitions=frozenset({
        (RAW_PENDING, RAW_APPROVED),
        (RAW_PENDING, RAW_REJECTED),
        (RAW_APPROVED, RAW_SUPPLIED),
        (RAW_SUPPLIED, RAW_ACCEPTED),
        (RAW_SUPPLIED, RAW_REJECTED_BY_INVENTORY),
    }),
)

SUPPLY_PAYMENT = StateMachine(
    name="supply payment",
    states=(PAYMENT_UNPAID, PAYMENT_PAID),
    transitions=_chain(PAYMENT_UNPAID, PAYMENT_PAID),
)


# =============================================================================
# PRODUCTION
# =============================================================================

PROD_PENDING = "pending"
PROD_DOOR_REQUESTED = "door-requested"
PROD_DOOR_APPROVED = "door-approved"
PROD_DOOR_ASSIGNED = "door-assigned"
PROD_IN_PRODUCTION = "in-production"
PROD_COMPLETED = "completed"
PROD_APPROVED = "approved"

PRODUCTION_REQUEST = StateMachine(
    name="production request",
    states=(
        PROD_PENDING,
        PROD_DOOR_REQUESTED,
        PROD_DOOR_APPROVED,
        PROD_DOOR_ASSIGNED,
        PROD_IN_PRODUCTION,
        PROD_COMPLETED,
        PROD_APPROVED,
    ),
    transitions=_chain(
        PROD_PENDING,
        PROD_DOOR_REQUESTED,
        PROD_DOOR_APPROVED,
        PROD_DOOR_ASSIGNED,
        PROD_IN_PRODUCTION,
        PROD_COMPLETED,
        PROD_APPROVED,
    ),
)

TASK_ASSIGNED = "assigned"
TASK_IN_PRODUCTION = "in-production"
TASK_COMPLETED = "completed"
TASK_APPROVED = "approved"

ASSIGNED_TASK = StateMachine(
    name="assigned task",
    states=(TASK_ASSIGNED, TASK_IN_PRODUCTION, TASK_COMPLETED, TASK_APPROVED),
    transitions=_chain(TASK_ASSIGNED, TASK_IN_PRODUCTION, TASK_COMPLETED, TASK_APPROVED),
)

RELEASE_PENDING = "pending"
RELEASE_RELEASED = "released"
RELEASE_APPROVED = "approved"
RELEASE_REJECTED = "rejected"

MATERIAL_RELEASE = StateMachine(
    name="material release request",
    states=(RELEASE_PENDING, RELEASE_RELEASED, RELEASE_APPROVED, RELEASE_REJECTED),
    transitions=frozenset({
        (RELEASE_PENDING, RELEASE_RELEASED),
        (RELEASE_RELEASED, RELEASE_APPROVED),
        (RELEASE_RELEASED, RELEASE_REJECTED),
    }),
)


# =============================================================================
# ORDERS
# =============================================================================

ORDER_PLACED = "placed"
ORDER_RELEASED = "released"
ORDER_SHIPPED = "shipped"
ORDER_DELIVERED = "delivered"

ORDER = StateMachine(
    name="order",
    states=(ORDER_PLACED, ORDER_RELEASED, ORDER_SHIPPED, ORDER_DELIVERED),
    transitions=_chain(ORDER_PLACED, ORDER_RELEASED, ORDER_SHIPPED, ORDER_DELIVERED),
)

ORDER_PAYMENT_PAID = "paid"
ORDER_PAYMENT_CONFIRMED = "confirmed"

ORDER_PAYMENT = StateMachine(
    name="payment",
    states=(ORDER_PAYMENT_PAID, ORDER_PAYMENT_CONFIRMED),
    transitions=_chain(ORDER_PAYMENT_PAID, ORDER_PAYMENT_CONFIRMED),
)

DISPATCH_ASSIGNED = "assigned"
DISPATCH_DELIVERED = "delivered"

DISPATCH = StateMachine(
    name="dispatch",
    states=(DISPATCH_ASSIGNED, DISPATCH_DELIVERED),
    transitions=_chain(DISPATCH_ASSIGNED, DISPATCH_DELIVERED),
)


# =============================================================================
# SERVICE BOOKINGS
# =============================================================================

BOOKING_PAYMENT_PENDING = "pending"
BOOKING_PAYMENT_CONFIRMED = "confirmed"

BOOKING_PAYMENT = StateMachine(
    name="booking payment",
    states=(BOOKING_PAYMENT_PENDING, BOOKING_PAYMENT_CONFIRMED),
    transitions=_chain(BOOKING_PAYMENT_PENDING, BOOKING_PAYMENT_CONFIRMED),
)

SERVICE_REQUESTED = "requested"
SERVICE_PAYMENT_CONFIRMED = "payment_confirmed"
SERVICE_ALLOCATED = "allocated_to_supervisor"
SERVICE_TECHNICIAN_ASSIGNED = "technician_assigned"
SERVICE_IN_PROGRESS = "in_progress"
SERVICE_RENDERED = "rendered"
SERVICE_SUPERVISOR_APPROVED = "supervisor_approved"
SERVICE_MANAGER_CONFIRMED = "service_manager_confirmed"
SERVICE_COMPLETED = "completed"

SERVICE_CHAIN = (
    SERVICE_REQUESTED,
    SERVICE_PAYMENT_CONFIRMED,
    SERVICE_ALLOCATED,
    SERVICE_TECHNICIAN_ASSIGNED,
    SERVICE_IN_PROGRESS,
    SERVICE_RENDERED,
    SERVICE_SUPERVISOR_APPROVED,
    SERVICE_MANAGER_CONFIRMED,
    SERVICE_COMPLETED,
)

SERVICE_BOOKING = StateMachine(
    name="service booking",
    states=SERVICE_CHAIN,
    transitions=_chain(*SERVICE_CHAIN),
)


# =============================================================================
# TOOLS
# =============================================================================

TOOL_PENDING = "Pending"
TOOL_APPROVED = "Approved"
TOOL_REJECTED = "Rejected"
TOOL_RETURNED = "Returned"

TOOL_REQUEST = StateMachine(
    name="tool request",
    states=(TOOL_PENDING, TOOL_APPROVED, TOOL_REJECTED, TOOL_RETURNED),
    transitions=frozenset({
        (TOOL_PENDING, TOOL_APPROVED),
        (TOOL_PENDING, TOOL_REJECTED),
        (TOOL_APPROVED, TOOL_RETURNED),
    }),
)

RETURN_NONE = "Not Returned"
RETURN_PARTIAL = "Partially Returned"
RETURN_FULL = "Fully Returned"
