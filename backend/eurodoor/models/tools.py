from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class ToolRequest(db.Model):
    """
    Technician's request to check tools out of the store.

    status: Pending -> Approved|Rejected; Approved -> Returned once every
    line has been fully returned.
    """
    __tablename__ = "tool_requests"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    technician_email = db.Column(db.String(255), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default="Pending", index=True)

    request_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    returned_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "ToolRequestLine",
        backref="request",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="ToolRequestLine.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "technician_email": self.technician_email,
            "status": self.status,
            "request_date": to_utc_z(self.request_date),
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
            "returned_at": to_utc_z(self.returned_at) if self.returned_at else None,
            "tools": [line.to_dict() for line in self.lines],
            "version_id": self.version_id,
        }


class ToolRequestLine(db.Model):
    __tablename__ = "tool_request_lines"
    __table_args__ = (
        db.UniqueConstraint("request_id", "tool_id", name="uq_tool_request_lines_request_tool"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(db.Integer, db.ForeignKey("tool_requests.id"), nullable=False, index=True)
    tool_id = db.Column(db.Integer, db.ForeignKey("tools.id"), nullable=False)

    quantity_requested = db.Column(db.Integer, nullable=False)
    quantity_approved = db.Column(db.Integer, nullable=False, default=0)
    quantity_returned = db.Column(db.Integer, nullable=False, default=0)
    return_status = db.Column(db.String(32), nullable=False, default="Not Returned")

    tool = db.relationship("Tool")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tool_id": self.tool_id,
            "name": self.tool.name if self.tool else None,
            "unit": self.tool.unit if self.tool else None,
            "quantity_requested": self.quantity_requested,
            "quantity_approved": self.quantity_approved,
            "quantity_returned": self.quantity_returned,
            "return_status": self.return_status,
        }
