"""
Pytest fixtures for EuroDoor backend tests.

Provides the application on an in-memory database, a per-test table wipe,
and factories for customers, employees, catalog products and tools.
"""

import pytest

from eurodoor import create_app
from eurodoor.extensions import db
from eurodoor.models import Customer, Employee
from eurodoor.models.directory import (
    ROLE_BLACKSMITH,
    ROLE_DISPATCH_MANAGER,
    ROLE_DRIVER,
    ROLE_FINANCE_MANAGER,
    ROLE_INVENTORY_MANAGER,
    ROLE_PRODUCTION_MANAGER,
    ROLE_SERVICE_MANAGER,
    ROLE_SUPERVISOR,
    ROLE_TECHNICIAN,
)
from eurodoor.services import order_service, tool_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'WORKFLOW_RETRY_BACKOFF': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


# =============================================================================
# FACTORIES
# =============================================================================

@pytest.fixture(scope='function')
def make_employee(db_session):
    counter = {"n": 0}

    def _make(role: str, *, status: str = "active", name: str | None = None) -> Employee:
        counter["n"] += 1
        slug = role.lower().replace(" ", ".")
        employee = Employee(
            name=name or f"{role} {counter['n']}",
            email=f"{slug}.{counter['n']}@eurodoor.test",
            role=role,
            status=status,
        )
        db_session.add(employee)
        db_session.commit()
        return employee

    return _make


@pytest.fixture(scope='function')
def customer(db_session):
    c = Customer(name="Wanjiru Kamau", email="wanjiru@example.com", phone="+254711000000")
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def other_customer(db_session):
    c = Customer(name="Otieno Odhiambo", email="otieno@example.com")
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def make_product(db_session):
    def _make(title: str = "Oak Panel Door", *, price_cents: int = 10_000, quantity: int = 10, **kwargs):
        return order_service.create_product(title=title, price_cents=price_cents, quantity=quantity, **kwargs)

    return _make


@pytest.fixture(scope='function')
def make_tool(db_session):
    def _make(name: str = "Cordless Drill", *, unit: str = "pcs", quantity: int = 5):
        return tool_service.add_tool(name=name, unit=unit, quantity_available=quantity)

    return _make


@pytest.fixture(scope='function')
def inventory_manager(make_employee):
    return make_employee(ROLE_INVENTORY_MANAGER)


@pytest.fixture(scope='function')
def production_manager(make_employee):
    return make_employee(ROLE_PRODUCTION_MANAGER)


@pytest.fixture(scope='function')
def blacksmith(make_employee):
    return make_employee(ROLE_BLACKSMITH)


@pytest.fixture(scope='function')
def finance_manager(make_employee):
    return make_employee(ROLE_FINANCE_MANAGER)


@pytest.fixture(scope='function')
def dispatch_manager(make_employee):
    return make_employee(ROLE_DISPATCH_MANAGER)


@pytest.fixture(scope='function')
def driver(make_employee):
    return make_employee(ROLE_DRIVER)


@pytest.fixture(scope='function')
def service_manager(make_employee):
    return make_employee(ROLE_SERVICE_MANAGER)


@pytest.fixture(scope='function')
def supervisor(make_employee):
    return make_employee(ROLE_SUPERVISOR)


@pytest.fixture(scope='function')
def technician(make_employee):
    return make_employee(ROLE_TECHNICIAN)


def employee_headers(employee) -> dict:
    """Helper to create the acting-employee header."""
    return {'X-Employee-Id': str(employee.id)}
