from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class ServiceBooking(db.Model):
    """
    After-sales installation/repair booking.

    Two independent axes:
    - payment_status: pending -> confirmed (finance)
    - service_status: requested -> payment_confirmed -> allocated_to_supervisor
      -> technician_assigned -> in_progress -> rendered -> supervisor_approved
      -> service_manager_confirmed -> completed
    """
    __tablename__ = "service_bookings"
    __table_args__ = (
        db.Index("ix_service_bookings_status", "service_status", "payment_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    door_type = db.Column(db.String(255), nullable=False)

    # Location details
    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(128), nullable=True)
    county = db.Column(db.String(128), nullable=True)
    postal_code = db.Column(db.String(32), nullable=True)
    instructions = db.Column(db.Text, nullable=True)

    price_cents = db.Column(db.Integer, nullable=False)
    payment_code = db.Column(db.String(16), nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, default="pending")
    service_status = db.Column(db.String(32), nullable=False, default="requested")

    supervisor_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    technician_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("service_bookings", lazy=True))
    supervisor = db.relationship("Employee", foreign_keys=[supervisor_id])
    technician = db.relationship("Employee", foreign_keys=[technician_id])
    __mapper_args__ = {"version_id_col": version_id}

    def location_dict(self) -> dict:
        return {
            "address": self.address,
            "city": self.city,
            "county": self.county,
            "postal_code": self.postal_code,
            "instructions": self.instructions,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "door_type": self.door_type,
            "location_details": self.location_dict(),
            "price_cents": self.price_cents,
            "payment_code": self.payment_code,
            "payment_status": self.payment_status,
            "service_status": self.service_status,
            "supervisor_id": self.supervisor_id,
            "technician_id": self.technician_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class ServiceFeedback(db.Model):
    __tablename__ = "service_feedback"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("service_bookings.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False)
    message = db.Column(db.Text, nullable=False)
    reply = db.Column(db.Text, nullable=True)
    service_manager_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    replied_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "customer_id": self.customer_id,
            "message": self.message,
            "reply": self.reply,
            "service_manager_id": self.service_manager_id,
            "created_at": to_utc_z(self.created_at),
            "replied_at": to_utc_z(self.replied_at) if self.replied_at else None,
        }


class ServiceReceipt(db.Model):
    __tablename__ = "service_receipts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False)
    booking_id = db.Column(db.Integer, db.ForeignKey("service_bookings.id"), nullable=False, unique=True)
    amount_paid_cents = db.Column(db.Integer, nullable=False)
    code = db.Column(db.String(16), nullable=False)
    generated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "booking_id": self.booking_id,
            "amount_paid_cents": self.amount_paid_cents,
            "code": self.code,
            "generated_at": to_utc_z(self.generated_at),
        }
