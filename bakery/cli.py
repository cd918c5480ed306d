# bakery/cli.py
# Commands (run with FLASK_APP=wsgi.py):
# - flask system init-db
#   Create all tables directly (dev/test; production uses `flask db upgrade`).
# - flask system seed
#   Idempotent demo data: one user per role, a warehouse, suppliers, products, customers.
# - flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables.
# - flask users list [--role CASHIER]
# - flask users create --email a@b.c --first-name A --last-name B --password secret1 --role MANAGER
# - flask perms list [--role CASHIER]

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import ApiError
from .models import Customer, Product, Supplier, User, Warehouse, USER_ROLES
from .permissions import PERMISSION_DEFINITIONS, roles_with_permission
from .services import user_service
from .services.auth_service import hash_password


DEMO_USERS = [
    ("admin@bakery.local", "Admin", "User", "ADMIN", "admin123"),
    ("manager@bakery.local", "Store", "Manager", "STORE_MANAGER", "manager123"),
    ("production@bakery.local", "Production", "Lead", "PRODUCTION_TEAM", "prod123"),
    ("delivery@bakery.local", "Delivery", "Driver", "DELIVERY_TEAM", "driver123"),
    ("cashier@bakery.local", "Front", "Cashier", "CASHIER", "cashier123"),
]

DEMO_PRODUCTS = [
    ("BRD-001", "Sourdough Loaf", "BREAD", "PIECE", 650, 250),
    ("BRD-002", "Whole Wheat Bread", "BREAD", "PIECE", 500, 180),
    ("CAK-001", "Chocolate Cake", "CAKE", "PIECE", 3200, 1400),
    ("PST-001", "Butter Croissant", "PASTRY", "PIECE", 325, 110),
    ("CKE-001", "Oatmeal Cookies", "COOKIE", "DOZEN", 900, 300),
    ("BEV-001", "Cold Brew Coffee", "BEVERAGE", "LITER", 750, 200),
]

DEMO_SUPPLIERS = [
    ("Golden Mill Flour Co.", "Maria Lopez", "orders@goldenmill.example", "NET30"),
    ("Dairy Fresh Farms", "Tom Becker", "sales@dairyfresh.example", "NET15"),
]

DEMO_CUSTOMERS = [
    ("jane.doe@example.com", "Jane", "Doe", "5551234567", "INDIVIDUAL"),
    ("orders@corner-cafe.example", "Corner", "Cafe", "5559876543", "B2B"),
    ("events@cityhall.example", "City", "Hall", "5555550100", "COMMUNITY"),
]


@click.group('system')
def system_group():
    """Database bootstrap and demo data commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create every table from the model metadata."""
    db.create_all()
    click.echo("PASS Tables created")


@system_group.command('seed')
@with_appcontext
def seed():
    """
    Load demo data. Safe to run repeatedly: existing rows are left alone.
    """
    db.create_all()

    click.echo("\nUSERS  Seeding staff accounts...")
    for email, first, last, role, password in DEMO_USERS:
        if db.session.query(User).filter_by(email=email).first():
            click.echo(f"   SKIP {email} (exists)")
            continue
        db.session.add(User(
            email=email,
            first_name=first,
            last_name=last,
            role=role,
            password_hash=hash_password(password),
        ))
        click.echo(f"   PASS {email} ({role})")

    click.echo("\nSTORE  Seeding warehouse...")
    if not db.session.query(Warehouse).filter_by(name="Main Bakery").first():
        db.session.add(Warehouse(name="Main Bakery", location="Back room", city="Springfield", capacity=5000))
        click.echo("   PASS Main Bakery")

    click.echo("\nSUPPLY Seeding suppliers...")
    for name, contact, email, terms in DEMO_SUPPLIERS:
        if db.session.query(Supplier).filter_by(email=email).first():
            continue
        db.session.add(Supplier(name=name, contact_person=contact, email=email, payment_terms=terms))
        click.echo(f"   PASS {name}")

    click.echo("\nGOODS  Seeding products...")
    for sku, name, category, unit_type, price, cost in DEMO_PRODUCTS:
        if db.session.query(Product).filter_by(sku=sku).first():
            continue
        db.session.add(Product(
            sku=sku,
            name=name,
            category=category,
            unit_type=unit_type,
            base_price_cents=price,
            cost_price_cents=cost,
            min_stock_level=10,
        ))
        click.echo(f"   PASS {sku} {name}")

    click.echo("\nCUSTOM Seeding customers...")
    for email, first, last, phone, customer_type in DEMO_CUSTOMERS:
        if db.session.query(Customer).filter_by(email=email).first():
            continue
        db.session.add(Customer(
            email=email, first_name=first, last_name=last, phone=phone, customer_type=customer_type
        ))
        click.echo(f"   PASS {email}")

    db.session.commit()

    click.echo("\nPASS Seed complete. Demo logins:")
    for email, _, _, role, password in DEMO_USERS:
        click.echo(f"   {role:<16} -> {email:<26} / {password}")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'flask system seed' for demo data.")


@click.group('users')
def users_group():
    """Staff account commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--first-name', prompt=True, help='First name')
@click.option('--last-name', prompt=True, help='Last name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(USER_ROLES), prompt=True, help='Role')
@with_appcontext
def create_user_cli(email, first_name, last_name, password, role):
    """Create a staff user. The CLI acts as an administrator."""
    try:
        user = user_service.create_user(
            {
                "email": email,
                "first_name": first_name,
                "last_name": last_name,
                "password": password,
                "role": role,
            },
            actor_role="ADMIN",
        )
        db.session.commit()
    except ApiError as e:
        db.session.rollback()
        click.echo(f"FAIL {e.message}", err=True)
        raise SystemExit(1)

    click.echo(f"PASS Created user {user.email} (id={user.id}, role={user.role})")


@users_group.command('list')
@click.option('--role', type=click.Choice(USER_ROLES), help='Filter by role')
@with_appcontext
def list_users(role):
    """List staff users."""
    query = db.session.query(User).order_by(User.id)
    if role:
        query = query.filter(User.role == role)
    users = query.all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Email':<32} {'Role':<18} {'Active':<8}")
    click.echo("=" * 80)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.email:<32} {user.role:<18} {active_str:<8}")
    click.echo("=" * 80 + "\n")


@click.group('perms')
def perms_group():
    """Permission table inspection."""


@perms_group.command('list')
@click.option('--role', type=click.Choice(USER_ROLES), help='Only permissions granted to this role')
@with_appcontext
def list_permissions(role):
    """List permission codes with the roles holding each one."""
    for code, name, _description, category in PERMISSION_DEFINITIONS:
        roles = roles_with_permission(code)
        if role and role not in roles:
            continue
        click.echo(f"{code:<28} {category:<14} {name:<32} {', '.join(roles)}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
