# Overview: Flask CLI command groups for bootstrap, account and quota administration.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to storefront (PowerShell: $env:FLASK_APP="storefront").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use "flask db upgrade" for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Accounts:
# - python -m flask users create --username admin --email admin@shop.local --password "Password123!" --role admin
#   Create an account with default quotas.
# - python -m flask users list
#   List accounts with role, points and today's usage.
#
# Quotas:
# - python -m flask quotas show 3
#   Print quotas and usage of user 3.
# - python -m flask quotas set 3 --max-orders-per-day 5 --orders-today 0
#   Partial override; negative values are stored as 0.

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services import auth_service, quota_service
from .validation import ValidationError, ConflictError, NotFoundError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.confirm("This deletes ALL data. Continue?", abort=True)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """Account inspection and bootstrap."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(['user', 'admin']), default='user', show_default=True, help='Role')
@with_appcontext
def create_user_cmd(username, email, password, role):
    """Create an account."""
    try:
        user = auth_service.create_user(username=username, email=email, password=password, role=role)
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}' (ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all accounts."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<7} {'Points':<8} {'Today':<7} {'Last order'}")
    click.echo("="*100)

    for user in users:
        last = user.last_order_date.isoformat() if user.last_order_date else "-"
        click.echo(
            f"{user.id:<5} {user.username:<20} {user.email:<30} {user.role:<7} "
            f"{user.discount_points:<8} {user.orders_today:<7} {last}"
        )

    click.echo("="*100 + "\n")


@click.group('quotas')
def quotas_group():
    """Per-user order quota administration."""


@quotas_group.command('show')
@click.argument('user_id', type=int)
@with_appcontext
def show_quotas(user_id):
    """Print quotas and usage for a user."""
    try:
        data = quota_service.get_quotas(user_id)
    except NotFoundError as e:
        raise click.ClickException(str(e))
    click.echo(json.dumps(data, indent=2))


@quotas_group.command('set')
@click.argument('user_id', type=int)
@click.option('--max-orders-per-day', type=int, help='Orders allowed per UTC day')
@click.option('--max-products-per-order', type=int, help='Products allowed in one order')
@click.option('--max-total-order-value', type=str, help='Highest order total allowed')
@click.option('--orders-today', type=int, help='Reset/override today\'s order counter')
@with_appcontext
def set_quotas_cmd(user_id, max_orders_per_day, max_products_per_order, max_total_order_value, orders_today):
    """Override quotas/usage for a user (only the given options change)."""
    quotas = {}
    if max_orders_per_day is not None:
        quotas["maxOrdersPerDay"] = max_orders_per_day
    if max_products_per_order is not None:
        quotas["maxProductsPerOrder"] = max_products_per_order
    if max_total_order_value is not None:
        quotas["maxTotalOrderValue"] = max_total_order_value
    usage = {"ordersToday": orders_today} if orders_today is not None else None

    if not quotas and usage is None:
        raise click.UsageError("Nothing to update; pass at least one option")

    try:
        result = quota_service.set_quotas(user_id, quotas=quotas or None, usage=usage, actor="cli")
    except (ValidationError, NotFoundError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS {result['message']}: {json.dumps(result['updatedData'])}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(quotas_group)
