"""
Workflow transition table tests.

Verifies:
- Chains move one step at a time
- No backwards moves or re-entry of the same state
- Terminal states have no successors
"""

import pytest

from eurodoor.errors import InvalidStateError
from eurodoor.services import lifecycle_service as lc


ALL_MACHINES = [
    lc.RAW_MATERIAL_REQUEST,
    lc.SUPPLY_PAYMENT,
    lc.PRODUCTION_REQUEST,
    lc.ASSIGNED_TASK,
    lc.MATERIAL_RELEASE,
    lc.ORDER,
    lc.ORDER_PAYMENT,
    lc.DISPATCH,
    lc.BOOKING_PAYMENT,
    lc.SERVICE_BOOKING,
    lc.TOOL_REQUEST,
]


@pytest.mark.parametrize("machine", ALL_MACHINES, ids=lambda m: m.name)
def test_no_self_transitions(machine):
    for state in machine.states:
        assert not machine.can_transition(state, state)


@pytest.mark.parametrize("machine", ALL_MACHINES, ids=lambda m: m.name)
def test_transitions_only_reference_known_states(machine):
    for frm, to in machine.transitions:
        assert frm in machine.states
        assert to in machine.states


def test_production_chain_cannot_skip():
    pr = lc.PRODUCTION_REQUEST
    assert pr.can_transition(lc.PROD_PENDING, lc.PROD_DOOR_REQUESTED)
    assert not pr.can_transition(lc.PROD_PENDING, lc.PROD_DOOR_APPROVED)
    assert not pr.can_transition(lc.PROD_DOOR_ASSIGNED, lc.PROD_COMPLETED)
    assert not pr.can_transition(lc.PROD_COMPLETED, lc.PROD_IN_PRODUCTION)


def test_raw_material_branches():
    raw = lc.RAW_MATERIAL_REQUEST
    assert sorted(raw.successors(lc.RAW_PENDING)) == sorted([lc.RAW_APPROVED, lc.RAW_REJECTED])
    assert sorted(raw.successors(lc.RAW_SUPPLIED)) == sorted([lc.RAW_ACCEPTED, lc.RAW_REJECTED_BY_INVENTORY])
    assert raw.successors(lc.RAW_REJECTED) == []
    assert raw.successors(lc.RAW_ACCEPTED) == []


def test_service_chain_is_linear():
    chain = lc.SERVICE_CHAIN
    for i, state in enumerate(chain[:-1]):
        assert lc.SERVICE_BOOKING.successors(state) == [chain[i + 1]]
    assert lc.SERVICE_BOOKING.successors(lc.SERVICE_COMPLETED) == []


def test_tool_request_terminal_states():
    assert lc.TOOL_REQUEST.successors(lc.TOOL_REJECTED) == []
    assert lc.TOOL_REQUEST.successors(lc.TOOL_RETURNED) == []


def test_require_transition_raises_with_details():
    with pytest.raises(InvalidStateError) as exc:
        lc.ORDER.require_transition(lc.ORDER_RELEASED, lc.ORDER_RELEASED)
    assert exc.value.status_code == 409
    assert exc.value.details == {"entity": "order", "from": "released", "to": "released"}


def test_require_transition_rejects_unknown_target():
    with pytest.raises(InvalidStateError, match="Invalid order status"):
        lc.ORDER.require_transition(lc.ORDER_PLACED, "dispatched")
