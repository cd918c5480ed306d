"""
CLI command tests.

Verifies:
- system seed is idempotent
- users create goes through the same validation as the API
- perms list filters by role
"""

from bakery.cli import DEMO_PRODUCTS, DEMO_USERS
from bakery.models import Product, User


def test_seed_is_idempotent(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["system", "seed"])
    assert result.exit_code == 0, result.output
    assert "Seed complete" in result.output
    assert db_session.query(User).count() == len(DEMO_USERS)
    assert db_session.query(Product).count() == len(DEMO_PRODUCTS)

    result = runner.invoke(args=["system", "seed"])
    assert result.exit_code == 0
    assert "SKIP admin@bakery.local (exists)" in result.output
    assert db_session.query(User).count() == len(DEMO_USERS)


def test_users_create(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create",
        "--email", "Baker@Bakery.Local",
        "--first-name", "Bo",
        "--last-name", "Baker",
        "--password", "rise4ever",
        "--role", "PRODUCTION_TEAM",
    ])
    assert result.exit_code == 0, result.output
    assert db_session.query(User).filter_by(email="baker@bakery.local").one().role == "PRODUCTION_TEAM"


def test_users_create_weak_password(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "users", "create",
        "--email", "weak@bakery.local",
        "--first-name", "W",
        "--last-name", "K",
        "--password", "abc",
        "--role", "CASHIER",
    ])
    assert result.exit_code == 1
    assert db_session.query(User).count() == 0


def test_perms_list_for_role(app, db_session):
    result = app.test_cli_runner().invoke(args=["perms", "list", "--role", "CASHIER"])
    assert result.exit_code == 0
    codes = sorted(line.split()[0] for line in result.output.splitlines() if line.strip())
    assert codes == ["USE_POS", "VIEW_CUSTOMERS", "VIEW_PRODUCTS"]
