from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class RawMaterialRequest(db.Model):
    """
    Purchase of raw material from an external supplier.

    status:         pending -> approved|rejected -> supplied -> accepted|rejected-by-inventory
    payment_status: unpaid -> paid (only while status=accepted)

    total_cost_cents is fixed when the supplier approves and never recomputed.
    """
    __tablename__ = "raw_material_requests"
    __table_args__ = (
        db.Index("ix_raw_material_requests_status_payment", "status", "payment_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    material_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit = db.Column(db.String(32), nullable=False)
    note = db.Column(db.String(1024), nullable=True)
    supplier = db.Column(db.String(255), nullable=False)

    status = db.Column(db.String(32), nullable=False, default="pending", index=True)

    unit_cost_cents = db.Column(db.Integer, nullable=True)
    total_cost_cents = db.Column(db.Integer, nullable=True)

    amount_paid_cents = db.Column(db.Integer, nullable=True)
    payment_code = db.Column(db.String(16), nullable=True)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=True)
    payment_status = db.Column(db.String(16), nullable=False, default="unpaid")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "material_name": self.material_name,
            "quantity": self.quantity,
            "unit": self.unit,
            "note": self.note,
            "supplier": self.supplier,
            "status": self.status,
            "unit_cost_cents": self.unit_cost_cents,
            "total_cost_cents": self.total_cost_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "payment_code": self.payment_code,
            "payment_date": to_utc_z(self.payment_date) if self.payment_date else None,
            "payment_status": self.payment_status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
