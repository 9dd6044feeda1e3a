# Overview: Click CLI commands for bootstrapping and inspecting the EuroDoor backend.

# CLI Commands
#
# Database:
# - python -m flask --app eurodoor eurodoor init-db
#   Create all tables (use `flask db upgrade` once migrations exist).
# - python -m flask --app eurodoor eurodoor seed
#   Seed one employee per role, a demo customer, catalog products and tools.
#
# Employees:
# - python -m flask --app eurodoor eurodoor employees list [--role Driver]
# - python -m flask --app eurodoor eurodoor employees create --name "Jane" --email jane@eurodoor.com --role Driver

import click
from flask.cli import with_appcontext

from .errors import WorkflowError
from .extensions import db
from .models import Customer, Employee, Product, Tool
from .models.directory import EMPLOYEE_ROLES
from .services import directory_service, order_service, tool_service


@click.group('eurodoor')
def eurodoor_group():
    """EuroDoor bootstrap and inspection commands."""


@eurodoor_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables for the configured database."""
    db.create_all()
    click.echo(f"PASS Tables created on {db.engine.url.render_as_string(hide_password=True)}")


SEED_PRODUCTS = [
    ("Oak Panel Door", "Solid oak, 2100x900", 1_250_000, 10),
    ("Glass Panel Door", "Tempered glass, aluminium frame", 980_000, 6),
    ("Steel Security Door", "Double-skin steel, 3-point lock", 1_850_000, 4),
]

SEED_TOOLS = [
    ("Cordless Drill", "pcs", 5),
    ("Spirit Level", "pcs", 8),
    ("Hinge Jig", "pcs", 3),
]


@eurodoor_group.command('seed')
@with_appcontext
def seed():
    """Seed demo data. Safe to run repeatedly: existing rows are skipped."""
    db.create_all()

    click.echo("USERS Seeding employees...")
    for role in EMPLOYEE_ROLES:
        email = role.lower().replace(" ", ".") + "@eurodoor.com"
        if db.session.query(Employee).filter_by(email=email).first():
            click.echo(f"WARN  {email} already exists, skipping...")
            continue
        employee = directory_service.create_employee(name=role, email=email, role=role)
        click.echo(f"PASS {employee.role:<20} id={employee.id} {employee.email}")

    if not db.session.query(Customer).filter_by(email="customer@eurodoor.com").first():
        customer = directory_service.create_customer(
            name="Demo Customer", email="customer@eurodoor.com", phone="+254700000000"
        )
        click.echo(f"PASS Customer id={customer.id} {customer.email}")

    click.echo("\nLIST Seeding catalog...")
    for title, description, price_cents, quantity in SEED_PRODUCTS:
        if db.session.query(Product).filter_by(title=title).first():
            continue
        product = order_service.create_product(
            title=title, description=description, price_cents=price_cents, quantity=quantity
        )
        click.echo(f"PASS Product id={product.id} {product.title} x{product.quantity}")

    click.echo("\nLIST Seeding tools...")
    for name, unit, quantity in SEED_TOOLS:
        if db.session.query(Tool).filter_by(name=name).first():
            continue
        tool = tool_service.add_tool(name=name, unit=unit, quantity_available=quantity)
        click.echo(f"PASS Tool id={tool.id} {tool.name} x{tool.quantity_available}")

    click.echo("\nDONE Seed complete")


@eurodoor_group.group('employees')
def employees_group():
    """Employee directory management."""


@employees_group.command('list')
@click.option('--role', type=click.Choice(EMPLOYEE_ROLES), help='Filter by role')
@click.option('--active-only', is_flag=True, help='Hide inactive employees')
@with_appcontext
def list_employees(role, active_only):
    """List employees with role and status."""
    employees = directory_service.list_employees(role=role, active_only=active_only)

    if not employees:
        click.echo("No employees found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<35} {'Role':<20} {'Status'}")
    click.echo("=" * 90)
    for e in employees:
        click.echo(f"{e.id:<5} {e.name:<25} {e.email:<35} {e.role:<20} {e.status}")
    click.echo("=" * 90 + "\n")


@employees_group.command('create')
@click.option('--name', prompt=True, help='Full name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--role', type=click.Choice(EMPLOYEE_ROLES), prompt=True, help='Role')
@click.option('--inactive', is_flag=True, help='Create the employee as inactive')
@with_appcontext
def create_employee(name, email, role, inactive):
    """Add an employee to the directory."""
    try:
        employee = directory_service.create_employee(
            name=name,
            email=email,
            role=role,
            status="inactive" if inactive else "active",
        )
    except WorkflowError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created employee id={employee.id} {employee.email} ({employee.role})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(eurodoor_group)
