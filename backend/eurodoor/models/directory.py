from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ROLE_INVENTORY_MANAGER = "Inventory Manager"
ROLE_PRODUCTION_MANAGER = "Production Manager"
ROLE_BLACKSMITH = "Blacksmith"
ROLE_FINANCE_MANAGER = "Finance Manager"
ROLE_DISPATCH_MANAGER = "Dispatch Manager"
ROLE_DRIVER = "Driver"
ROLE_SERVICE_MANAGER = "Service Manager"
ROLE_SUPERVISOR = "Supervisor"
ROLE_TECHNICIAN = "Technician"

EMPLOYEE_ROLES = (
    ROLE_INVENTORY_MANAGER,
    ROLE_PRODUCTION_MANAGER,
    ROLE_BLACKSMITH,
    ROLE_FINANCE_MANAGER,
    ROLE_DISPATCH_MANAGER,
    ROLE_DRIVER,
    ROLE_SERVICE_MANAGER,
    ROLE_SUPERVISOR,
    ROLE_TECHNICIAN,
)

EMPLOYEE_STATUS_ACTIVE = "active"
EMPLOYEE_STATUS_INACTIVE = "inactive"


class Customer(db.Model):
    """Customer display record (login/credentials live outside this service)."""
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    phone = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "created_at": to_utc_z(self.created_at),
        }


class Employee(db.Model):
    """
    Employee directory entry.

    Role-scoped actions (driver deliveries, technician tool requests,
    supervisor approvals) resolve the actor here and require status=active.
    """
    __tablename__ = "employees"
    __table_args__ = (
        db.Index("ix_employees_role_status", "role", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    role = db.Column(db.String(32), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=EMPLOYEE_STATUS_ACTIVE)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def is_active(self) -> bool:
        return self.status == EMPLOYEE_STATUS_ACTIVE

    def __repr__(self) -> str:
        return f"<Employee id={self.id} email={self.email!r} role={self.role!r} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
