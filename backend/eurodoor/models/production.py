from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class ProductionRequest(db.Model):
    """Inventory's request for a batch of doors to be produced."""
    __tablename__ = "production_requests"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    door_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(1024), nullable=False)
    status = db.Column(db.String(32), nullable=False, default="pending", index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "door_name": self.door_name,
            "quantity": self.quantity,
            "description": self.description,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class MaterialReleaseRequest(db.Model):
    """Production's request to draw raw material out of the store."""
    __tablename__ = "material_release_requests"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    material_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    requested_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    decided_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "material_name": self.material_name,
            "quantity": self.quantity,
            "status": self.status,
            "requested_at": to_utc_z(self.requested_at),
            "processed_at": to_utc_z(self.processed_at) if self.processed_at else None,
            "decided_at": to_utc_z(self.decided_at) if self.decided_at else None,
            "version_id": self.version_id,
        }


class AssignedTask(db.Model):
    """
    Blacksmith work order spawned from a production request.

    door_name/quantity/description are copied at assignment time;
    production_request_id is the explicit link back to the originating request.
    """
    __tablename__ = "assigned_tasks"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    production_request_id = db.Column(
        db.Integer, db.ForeignKey("production_requests.id"), nullable=True, index=True
    )
    door_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(1024), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="assigned", index=True)

    assigned_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    production_request = db.relationship("ProductionRequest", backref=db.backref("tasks", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "production_request_id": self.production_request_id,
            "door_name": self.door_name,
            "quantity": self.quantity,
            "description": self.description,
            "status": self.status,
            "assigned_at": to_utc_z(self.assigned_at),
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
            "version_id": self.version_id,
        }
