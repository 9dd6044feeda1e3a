# Overview: Employee/customer directory lookups used to authorize actors.

from __future__ import annotations

from typing import Any

from flask import current_app

from ..errors import InvalidInputError, NotFoundError, UnauthorizedError
from ..extensions import db
from ..models import Customer, Employee
from ..models.directory import EMPLOYEE_ROLES, EMPLOYEE_STATUS_ACTIVE, EMPLOYEE_STATUS_INACTIVE
from ..validation import coerce_int, require_text
from .concurrency import run_with_retry


def get_customer(customer_id: Any) -> Customer:
    customer_id = coerce_int(customer_id, "customer_id")
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError(f"Customer {customer_id} not found")
    return customer


def find_active_employee(*, role: str, employee_id: Any = None, email: str | None = None) -> Employee:
    """
    Resolve an actor by id or email and require an active employee holding `role`.

    Any mismatch (unknown, inactive, wrong role) is UnauthorizedError:
    the caller is not allowed to act in that role.
    """
    if employee_id is None and not email:
        raise UnauthorizedError(f"An active {role} is required")

    q = db.session.query(Employee)
    if employee_id is not None:
        employee = q.filter_by(id=coerce_int(employee_id, "employee_id")).first()
    else:
        employee = q.filter(Employee.email == email.strip().lower()).first()

    if not employee or employee.role != role or not employee.is_active:
        raise UnauthorizedError(
            f"Not an active {role}",
            details={"role": role, "employee_id": employee_id, "email": email},
        )
    return employee


def list_employees(*, role: str | None = None, active_only: bool = False) -> list[Employee]:
    q = db.session.query(Employee)
    if role:
        q = q.filter(Employee.role == role)
    if active_only:
        q = q.filter(Employee.status == EMPLOYEE_STATUS_ACTIVE)
    return q.order_by(Employee.name.asc(), Employee.id.asc()).all()


def create_employee(*, name: Any, email: Any, role: Any, status: str = EMPLOYEE_STATUS_ACTIVE) -> Employee:
    name = require_text(name, "name", max_length=255)
    email = require_text(email, "email", max_length=255).lower()
    if role not in EMPLOYEE_ROLES:
        raise InvalidInputError(f"Unknown role '{role}'", details={"allowed": list(EMPLOYEE_ROLES)})
    if status not in (EMPLOYEE_STATUS_ACTIVE, EMPLOYEE_STATUS_INACTIVE):
        raise InvalidInputError(f"Unknown status '{status}'")

    def _op():
        if db.session.query(Employee).filter_by(email=email).first():
            raise InvalidInputError(f"Employee with email {email} already exists")
        employee = Employee(name=name, email=email, role=role, status=status)
        db.session.add(employee)
        db.session.commit()
        current_app.logger.info("Employee %s created with role %s", employee.id, role)
        return employee

    return run_with_retry(_op)


def create_customer(*, name: Any, email: Any, phone: Any = None) -> Customer:
    name = require_text(name, "name", max_length=255)
    email = require_text(email, "email", max_length=255).lower()

    def _op():
        if db.session.query(Customer).filter_by(email=email).first():
            raise InvalidInputError(f"Customer with email {email} already exists")
        customer = Customer(name=name, email=email, phone=(str(phone).strip() if phone else None))
        db.session.add(customer)
        db.session.commit()
        return customer

    return run_with_retry(_op)
