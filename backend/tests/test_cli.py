"""Flask CLI commands run against the test database."""

import pytest

from spa_pos.models import FinanceRecord, Product, Sale, Service, Transaction, User


@pytest.fixture
def runner(app, db_session):
    return app.test_cli_runner()


def test_system_init_is_idempotent(runner, db_session):
    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0
    assert "Created user: admin" in result.output

    result = runner.invoke(args=["system", "init"])
    assert "already exists" in result.output

    roles = {u.username: u.role for u in db_session.query(User).all()}
    assert roles == {"admin": "admin", "staff": "staff"}


def test_users_deactivate(runner, db_session, staff_user):
    result = runner.invoke(args=["users", "deactivate", "staff"])
    assert "Deactivated 'staff'" in result.output
    assert db_session.get(User, staff_user.id).is_active is False

    result = runner.invoke(args=["users", "deactivate", "ghost"])
    assert "not found" in result.output


def test_users_create(runner, db_session):
    result = runner.invoke(args=[
        "users", "create",
        "--username", "kim",
        "--email", "kim@spa.local",
        "--password", "Glow!ing2025",
        "--role", "staff",
    ])
    assert result.exit_code == 0
    assert db_session.query(User).filter_by(username="kim").one().role == "staff"


def test_seed_demo_requires_admin(runner, db_session):
    result = runner.invoke(args=["seed", "demo"])
    assert "No active admin" in result.output
    assert db_session.query(Product).count() == 0


def test_seed_demo_and_wipe(runner, db_session, admin_user):
    result = runner.invoke(args=["seed", "demo", "--days-history", "3"])
    assert result.exit_code == 0, result.output

    assert db_session.query(Product).count() == 10
    assert db_session.query(Product).filter_by(for_sale=False).count() == 2
    assert db_session.query(Service).count() == 5
    assert db_session.query(Transaction).filter_by(type="restock").count() == 8
    # Weekly expense lands on day 0 only
    assert db_session.query(FinanceRecord).filter_by(type="expense").count() == 1

    result = runner.invoke(args=["system", "wipe", "--yes"])
    assert result.exit_code == 0
    assert db_session.query(Sale).count() == 0
    assert db_session.query(FinanceRecord).count() == 0
    assert db_session.query(Product).count() == 10
