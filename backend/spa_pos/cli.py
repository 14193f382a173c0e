# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/spa_pos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the default admin and staff users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system wipe --yes
#   Clear sales, finance records, carts and events; keep users and the catalog.
# - python -m flask system cleanup-sessions
#   Delete session tokens that expired or were revoked over 30 days ago.
#
# Users:
# - python -m flask users list
# - python -m flask users create --username jane --email jane@spa.local --password "Password123!" --role staff
# - python -m flask users deactivate jane
#
# Demo data:
# - python -m flask seed demo [--days-history 30]
#   Demo product and service catalog plus sales and finance history.

import random
from datetime import timedelta

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import (
    CartLine,
    CartSession,
    DomainEvent,
    FinanceRecord,
    Product,
    Sale,
    Service,
    Transaction,
    User,
)
from .models.auth import ROLES
from .services.auth_service import AuthError, PasswordValidationError, create_user
from .services import session_service
from spa_pos.time_utils import utcnow

DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the spa POS: tables plus default users.

    Creates:
    - admin/admin@spa.local (admin)
    - staff/staff@spa.local (staff)
    - Both passwords default to: "Password123!"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing spa POS...")

    db.create_all()
    click.echo("PASS Tables ready")

    default_users = [
        ("admin", "admin@spa.local", "admin", "Spa Admin"),
        ("staff", "staff@spa.local", "staff", "Front Desk"),
    ]

    for username, email, role, name in default_users:
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        try:
            create_user(username=username, email=email, password=DEFAULT_PASSWORD, role=role, name=name)
            click.echo(f"PASS Created user: {username} ({email}) with role '{role}'")
        except (AuthError, PasswordValidationError) as e:
            click.echo(f"FAIL Failed to create user '{username}': {str(e)}")

    click.echo("\n" + "="*60)
    click.echo("DONE Spa POS Initialized")
    click.echo("="*60)
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo(f"   admin -> admin@spa.local / {DEFAULT_PASSWORD}")
    click.echo(f"   staff -> staff@spa.local / {DEFAULT_PASSWORD}")
    click.echo("")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@system_group.command('wipe')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def wipe_data(yes):
    """Clear sales, finance records, carts and events. Users and catalog stay."""
    if not yes:
        click.confirm("WARN This will delete all sales and finance history. Are you sure?", abort=True)

    counts = {}
    for label, model in (
        ("cart_lines", CartLine),
        ("carts", CartSession),
        ("finance_records", FinanceRecord),
        ("transactions", Transaction),
        ("sales", Sale),
        ("events", DomainEvent),
    ):
        counts[label] = db.session.query(model).delete(synchronize_session=False)
    db.session.commit()

    for label, n in counts.items():
        click.echo(f"DELETE  {label}: {n}")
    click.echo("PASS Wipe complete")


@system_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"Deleted {deleted} expired or revoked sessions.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@click.option('--name', default=None, help='Display name')
@with_appcontext
def create_user_cli(username, email, password, role, name):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        create_user(username=username, email=email, password=password, role=role, name=name)
        click.echo(f"PASS Created user: {username} ({email}) with role '{role}'")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
    except AuthError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their role and active status."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Active':<8} {'Role'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {active_str:<8} {user.role}")

    click.echo("="*80 + "\n")


@users_group.command('deactivate')
@click.argument('username')
@with_appcontext
def deactivate_user_cli(username):
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        click.echo(f"FAIL User '{username}' not found")
        return

    user.is_active = False
    revoked = session_service.revoke_all_user_sessions(user.id)
    db.session.commit()
    click.echo(f"PASS Deactivated '{username}', revoked {revoked} sessions")


DEMO_PRODUCTS = [
    # name, category, cost, sell, stock, size
    ("Hydrating Serum", "Serums", 1800, 4800, 24, "30 ml"),
    ("Vitamin C Serum", "Serums", 2100, 5600, 18, "30 ml"),
    ("Gentle Foam Cleanser", "Cleansers", 900, 2400, 30, "150 ml"),
    ("Clay Detox Mask", "Masks", 1200, 3200, 12, "75 ml"),
    ("Rose Toner", "Toners", 800, 2200, 20, "200 ml"),
    ("Mineral Sunscreen SPF 40", "Sun Care", 1400, 3800, 16, "50 ml"),
    ("Night Repair Cream", "Moisturizers", 2600, 6800, 10, "50 ml"),
    ("Lip Balm", "Body", 250, 900, 40, "4 g"),
]

# Back-bar stock: used in treatments, not sold
DEMO_SUPPLIES = [
    ("Professional Enzyme Peel", "Back Bar", 3500, 0, 4, "500 ml"),
    ("Cotton Rounds (bulk)", "Back Bar", 600, 0, 15, None),
]

DEMO_SERVICES = [
    ("Signature Facial", "60 minute customized facial", 9500),
    ("Express Facial", "30 minute cleanse, exfoliate and mask", 5500),
    ("Swedish Massage", "60 minute full body massage", 11000),
    ("Brow Wax", None, 2200),
    ("LED Light Therapy", "Add-on to any facial", 3500),
]

DEMO_CUSTOMERS = ["Ana Lopez", "Beth Carter", "Chloe Nguyen", "Dana Smith", "Erin Walsh", "Fiona Park"]


@click.group('seed')
def seed_group():
    """Demo data commands."""


@seed_group.command('demo')
@click.option('--days-history', type=int, default=30, show_default=True, help='How far back demo sales go')
@click.option('--seed', 'rng_seed', type=int, default=7, show_default=True, help='Random seed')
@with_appcontext
def seed_demo(days_history, rng_seed):
    """
    Seed a demo catalog with sales and finance history.

    Safe to rerun: catalog rows are matched by name and skipped when they
    exist. History is only generated when there are no sales yet.
    """
    from .services.finance_service import record_expense, record_income
    from .services.inventory_service import record_restock
    from .services.sales_service import ProductSaleItem, SaleError, record_product_sale

    rng = random.Random(rng_seed)
    created = {"products": 0, "services": 0, "sales": 0, "incomes": 0, "expenses": 0}

    admin = db.session.query(User).filter_by(role="admin", is_active=True).first()
    if admin is None:
        click.echo("FAIL No active admin. Run 'python -m flask system init' first.")
        return

    for name, category, cost, sell, stock, size in DEMO_PRODUCTS + DEMO_SUPPLIES:
        if db.session.query(Product).filter_by(name=name).first():
            continue
        db.session.add(Product(
            name=name,
            category=category,
            cost_price_cents=cost,
            sell_price_cents=sell,
            stock_quantity=stock,
            size=size,
            for_sale=sell > 0,
        ))
        created["products"] += 1

    for name, description, price in DEMO_SERVICES:
        if db.session.query(Service).filter_by(name=name).first():
            continue
        db.session.add(Service(name=name, description=description, price_cents=price, active=True))
        created["services"] += 1
    db.session.commit()

    if db.session.query(Sale).first() is None and days_history > 0:
        sellable = db.session.query(Product).filter_by(for_sale=True).all()
        services = db.session.query(Service).filter_by(active=True).all()
        now = utcnow()

        for product in sellable:
            record_restock(product.id, 12, user=admin, occurred_at=now - timedelta(days=days_history))

        for days_ago in range(days_history, -1, -1):
            day = now - timedelta(days=days_ago, hours=rng.randint(0, 6))

            for _ in range(rng.randint(0, 3)):
                product = rng.choice(sellable)
                try:
                    record_product_sale(
                        [ProductSaleItem(product_id=product.id, quantity=rng.randint(1, 2))],
                        rng.choice(["cash", "card", "venmo"]),
                        admin,
                        occurred_at=day,
                    )
                    created["sales"] += 1
                except SaleError:
                    db.session.rollback()

            for _ in range(rng.randint(0, 2)):
                picked = rng.sample(services, k=rng.randint(1, 2))
                record_income(
                    rng.choice(DEMO_CUSTOMERS),
                    [s.id for s in picked],
                    date=day,
                    payment_method=rng.choice(["cash", "card", "zelle"]),
                    tip_cents=rng.choice([0, 0, 500, 1000]),
                    user=admin,
                )
                created["incomes"] += 1

            if days_ago % 7 == 0:
                record_expense(
                    rng.randint(30, 250) * 100,
                    rng.choice(["Beauty Supply Co", "City Power", "Linen Service"]),
                    rng.choice(["Supplies", "Utilities", "Maintenance"]),
                    date=day,
                    user=admin,
                )
                created["expenses"] += 1

    for label, n in created.items():
        click.echo(f"PASS {label}: {n}")
    click.echo("DONE Demo data seeded")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(seed_group)
