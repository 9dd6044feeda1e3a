"""
Tool custody tests: request, approve, return.
"""

import pytest

from eurodoor.errors import InsufficientStockError, InvalidInputError, InvalidStateError, UnauthorizedError
from eurodoor.services import stock_service, tool_service
from eurodoor.services.stock_service import StockKey


def _available(tool):
    return stock_service.query(StockKey.tool(tool.id))


@pytest.fixture
def drill(make_tool):
    return make_tool("Cordless Drill", quantity=5)


@pytest.fixture
def level(make_tool):
    return make_tool("Spirit Level", quantity=1)


class TestToolRequests:

    def test_create_request(self, db_session, technician, drill):
        req = tool_service.create_tool_request(
            email=technician.email.upper(), tools=[{"tool_id": drill.id, "quantity_requested": 2}]
        )

        assert req.status == "Pending"
        assert req.technician_email == technician.email
        assert req.lines[0].quantity_requested == 2
        assert req.lines[0].return_status == "Not Returned"

    def test_only_technicians_request(self, db_session, inventory_manager, drill):
        with pytest.raises(UnauthorizedError):
            tool_service.create_tool_request(
                email=inventory_manager.email, tools=[{"tool_id": drill.id, "quantity_requested": 1}]
            )

    def test_duplicate_tool_lines(self, db_session, technician, drill):
        with pytest.raises(InvalidInputError):
            tool_service.create_tool_request(
                email=technician.email,
                tools=[
                    {"tool_id": drill.id, "quantity_requested": 1},
                    {"tool_id": drill.id, "quantity_requested": 1},
                ],
            )

    def test_reject(self, db_session, technician, drill):
        req = tool_service.create_tool_request(
            email=technician.email, tools=[{"tool_id": drill.id, "quantity_requested": 1}]
        )
        req = tool_service.reject_tool_request(req.id)

        assert req.status == "Rejected"
        with pytest.raises(InvalidStateError):
            tool_service.approve_tool_request(req.id, approvals=[{"tool_id": drill.id, "quantity_approved": 1}])


class TestApproval:

    def test_approval_debits_stock(self, db_session, technician, drill):
        req = tool_service.create_tool_request(
            email=technician.email, tools=[{"tool_id": drill.id, "quantity_requested": 3}]
        )
        req = tool_service.approve_tool_request(req.id, approvals=[{"tool_id": drill.id, "quantity_approved": 2}])

        assert req.status == "Approved"
        assert req.lines[0].quantity_approved == 2
        assert _available(drill) == 3

    def test_shortage_rolls_back_every_line(self, db_session, technician, drill, level):
        req = tool_service.create_tool_request(
            email=technician.email,
            tools=[
                {"tool_id": drill.id, "quantity_requested": 2},
                {"tool_id": level.id, "quantity_requested": 3},
            ],
        )

        with pytest.raises(InsufficientStockError, match="Spirit Level") as exc:
            tool_service.approve_tool_request(
                req.id,
                approvals=[
                    {"tool_id": drill.id, "quantity_approved": 2},
                    {"tool_id": level.id, "quantity_approved": 3},
                ],
            )

        assert [s["name"] for s in exc.value.details["shortages"]] == ["Spirit Level"]
        assert _available(drill) == 5
        assert _available(level) == 1
        assert tool_service.get_tool_request(req.id).status == "Pending"

    def test_cannot_approve_more_than_requested(self, db_session, technician, drill):
        req = tool_service.create_tool_request(
            email=technician.email, tools=[{"tool_id": drill.id, "quantity_requested": 1}]
        )
        with pytest.raises(InvalidInputError):
            tool_service.approve_tool_request(req.id, approvals=[{"tool_id": drill.id, "quantity_approved": 2}])

    def test_unmentioned_line_approved_at_zero(self, db_session, technician, drill, level):
        req = tool_service.create_tool_request(
            email=technician.email,
            tools=[
                {"tool_id": drill.id, "quantity_requested": 1},
                {"tool_id": level.id, "quantity_requested": 1},
            ],
        )
        req = tool_service.approve_tool_request(req.id, approvals=[{"tool_id": drill.id, "quantity_approved": 1}])

        by_tool = {line.tool_id: line for line in req.lines}
        assert by_tool[level.id].quantity_approved == 0
        assert by_tool[level.id].return_status == "Fully Returned"
        assert _available(level) == 1

    def test_approving_nothing_is_refused(self, db_session, technician, drill):
        req = tool_service.create_tool_request(
            email=technician.email, tools=[{"tool_id": drill.id, "quantity_requested": 2}]
        )

        with pytest.raises(InvalidInputError, match="at least one tool"):
            tool_service.approve_tool_request(req.id, approvals=[{"tool_id": drill.id, "quantity_approved": 0}])

        assert tool_service.get_tool_request(req.id).status == "Pending"
        assert _available(drill) == 5
        assert tool_service.reject_tool_request(req.id).status == "Rejected"


class TestReturns:

    @pytest.fixture
    def approved(self, db_session, technician, drill):
        req = tool_service.create_tool_request(
            email=technician.email, tools=[{"tool_id": drill.id, "quantity_requested": 3}]
        )
        return tool_service.approve_tool_request(req.id, approvals=[{"tool_id": drill.id, "quantity_approved": 3}])

    def test_partial_then_full(self, db_session, approved, drill):
        req = tool_service.return_tools(approved.id, returns=[{"tool_id": drill.id, "quantity_returned": 1}])
        assert req.status == "Approved"
        assert req.lines[0].return_status == "Partially Returned"
        assert _available(drill) == 3

        req = tool_service.return_tools(approved.id, returns=[{"tool_id": drill.id, "quantity_returned": 2}])
        assert req.status == "Returned"
        assert req.returned_at is not None
        assert req.lines[0].return_status == "Fully Returned"
        assert _available(drill) == 5

    def test_over_return(self, db_session, approved, drill):
        with pytest.raises(InvalidInputError, match="only 3 outstanding"):
            tool_service.return_tools(approved.id, returns=[{"tool_id": drill.id, "quantity_returned": 4}])
        assert _available(drill) == 2

    def test_pending_request_takes_no_returns(self, db_session, technician, drill):
        req = tool_service.create_tool_request(
            email=technician.email, tools=[{"tool_id": drill.id, "quantity_requested": 1}]
        )
        with pytest.raises(InvalidStateError):
            tool_service.return_tools(req.id, returns=[{"tool_id": drill.id, "quantity_returned": 1}])

    def test_returned_request_is_closed(self, db_session, approved, drill):
        tool_service.return_tools(approved.id, returns=[{"tool_id": drill.id, "quantity_returned": 3}])
        with pytest.raises(InvalidStateError):
            tool_service.return_tools(approved.id, returns=[{"tool_id": drill.id, "quantity_returned": 1}])
