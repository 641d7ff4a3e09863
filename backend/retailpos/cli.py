# Overview: Flask CLI command groups for seeding, schema checks, stock alerts, reports and settings.

# backend/retailpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Schema (Flask-Migrate provides `flask db upgrade|downgrade|current|history`):
# - python -m flask schema check
#   Compare the live database with the migration head, the models and the FK policy registry.
#
# Seed data:
# - python -m flask seed list
# - python -m flask seed run [--only 20230601000002-default-inventory]
# - python -m flask seed undo --yes [--only NAME]
#
# Inventory:
# - python -m flask inventory low-stock
# - python -m flask inventory scan-expiry [--today 2025-08-20]
#
# Notifications:
# - python -m flask notifications list --username admin [--unread]
#
# Reports (dates are inclusive):
# - python -m flask reports sales --start 2025-03-01 --end 2025-03-31 [--group-by day|week|month]
# - python -m flask reports top-products --start 2025-03-01 --end 2025-03-31 [--limit 10]
# - python -m flask reports inventory
#
# Settings:
# - python -m flask settings show
# - python -m flask settings set tax_rate 5
#
# Users:
# - python -m flask users list
# - python -m flask users create --username cashier1 --password "Cashier123" --role cashier
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables from the models (deletes all data).

import sys

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .models.catalog import money_str
from .services import (
    auth_service,
    inventory_service,
    notification_service,
    reporting_service,
    schema_service,
    seed_service,
    settings_service,
)
from .services.auth_service import PasswordValidationError
from .time_utils import coerce_date
from .validation import ValidationError


@click.group('schema')
def schema_group():
    """Schema inspection commands."""


@schema_group.command('check')
@with_appcontext
def schema_check():
    """Report migration head, missing tables/columns and FK policy drift."""
    report = schema_service.check_schema()

    if report.up_to_date:
        click.echo(f"PASS Database at head revision {report.current_revision}")
    else:
        click.echo(f"FAIL Database at {report.current_revision or '(none)'}, head is {report.head_revision}")

    for problem in report.missing:
        click.echo(f"FAIL {problem}")
    for problem in report.policy_problems:
        click.echo(f"FAIL {problem}")

    if report.ok:
        click.echo("PASS No schema drift detected")
    else:
        sys.exit(1)


@click.group('seed')
def seed_group():
    """Baseline data seeders."""


@seed_group.command('list')
@with_appcontext
def seed_list():
    for seeder in seed_service.SEEDERS:
        click.echo(seeder.name)


@seed_group.command('run')
@click.option('--only', 'only', multiple=True, help='Seeder name (repeatable)')
@with_appcontext
def seed_run(only):
    """Insert baseline rows that are not there yet."""
    try:
        results = seed_service.run_seeders(list(only) or None)
    except seed_service.SeedError as e:
        click.echo(f"FAIL {e}")
        sys.exit(1)
    except Exception:
        current_app.logger.exception("Seeding failed")
        click.echo("FAIL Seeding failed; see log for details")
        sys.exit(1)

    for result in results:
        click.echo(f"PASS {result.name}: inserted {result.inserted}, already present {len(result.skipped)}")


@seed_group.command('undo')
@click.option('--only', 'only', multiple=True, help='Seeder name (repeatable)')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def seed_undo(only, yes):
    """Remove seeded rows (reverse order). Referenced rows are kept."""
    if not yes:
        click.confirm("WARN This deletes seeded users, products and inventory. Continue?", abort=True)

    try:
        results = seed_service.undo_seeders(list(only) or None)
    except seed_service.SeedError as e:
        click.echo(f"FAIL {e}")
        sys.exit(1)
    except Exception:
        current_app.logger.exception("Seed undo failed")
        click.echo("FAIL Seed undo failed; see log for details")
        sys.exit(1)

    for result in results:
        click.echo(f"PASS {result.name}: deleted {result.deleted}")
        for kept in result.skipped:
            click.echo(f"WARN {result.name}: kept {kept} (still referenced)")


@click.group('inventory')
def inventory_group():
    """Stock inspection commands."""


@inventory_group.command('low-stock')
@with_appcontext
def inventory_low_stock():
    items = inventory_service.low_stock_items()
    if not items:
        click.echo("PASS No low stock items")
        return

    click.echo(f"{'ID':<6} {'Product':<30} {'Location':<10} {'Qty':>6} {'Min':>6}")
    for inv in items:
        click.echo(
            f"{inv.id:<6} {inv.product.name:<30} {inv.location or '':<10} {inv.quantity:>6} {inv.min_stock_level:>6}"
        )
    click.echo(f"WARN {len(items)} item(s) at or below minimum stock")


@inventory_group.command('scan-expiry')
@click.option('--today', default=None, help='Reference date (YYYY-MM-DD), defaults to today (UTC)')
@with_appcontext
def inventory_scan_expiry(today):
    """Create expiry / near-expiry notifications for admins and managers."""
    try:
        reference = coerce_date(today) if today else None
    except ValueError:
        click.echo(f"FAIL Invalid date: {today}")
        sys.exit(1)

    created = notification_service.scan_expiring(today=reference)
    click.echo(f"PASS Created {len(created)} expiry notification(s)")


@click.group('notifications')
def notifications_group():
    """Notification inspection commands."""


@notifications_group.command('list')
@click.option('--username', required=True)
@click.option('--unread', is_flag=True, help='Only unread notifications')
@with_appcontext
def notifications_list(username, unread):
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        click.echo(f"FAIL User not found: {username}")
        sys.exit(1)

    rows = notification_service.list_for_user(user.id, unread_only=unread)
    if not rows:
        click.echo("No notifications.")
        return
    for n in rows:
        flag = " " if n.is_read else "*"
        click.echo(f"{flag} {n.id:<5} {n.type:<16} {n.title}: {n.message}")


@click.group('reports')
def reports_group():
    """Sales and stock summaries."""


def _echo_money(label, value):
    click.echo(f"{label:<20} {money_str(value):>12}")


@reports_group.command('sales')
@click.option('--start', required=True, help='First day (YYYY-MM-DD)')
@click.option('--end', required=True, help='Last day, included (YYYY-MM-DD)')
@click.option('--group-by', 'group_by', type=click.Choice(reporting_service.GROUPINGS), default='day', show_default=True)
@with_appcontext
def report_sales(start, end, group_by):
    try:
        report = reporting_service.revenue_report(start=start, end=end, group_by=group_by)
    except reporting_service.ReportError as e:
        click.echo(f"FAIL {e}")
        sys.exit(1)

    click.echo(f"{'Period':<12} {'Sales':>6} {'Subtotal':>12} {'Discount':>10} {'Tax':>10} {'Revenue':>12}")
    for row in report["rows"]:
        click.echo(
            f"{row['period']:<12} {row['sales_count']:>6} {money_str(row['subtotal']):>12} "
            f"{money_str(row['discount']):>10} {money_str(row['tax']):>10} {money_str(row['revenue']):>12}"
        )
    summary = report["summary"]
    click.echo(f"Sales: {summary['sales_count']}")
    _echo_money("Revenue", summary["total_revenue"])
    _echo_money("Tax", summary["total_tax"])
    _echo_money("Discount", summary["total_discount"])


@reports_group.command('top-products')
@click.option('--start', required=True, help='First day (YYYY-MM-DD)')
@click.option('--end', required=True, help='Last day, included (YYYY-MM-DD)')
@click.option('--limit', type=int, default=10, show_default=True)
@with_appcontext
def report_top_products(start, end, limit):
    try:
        report = reporting_service.top_selling_products(start=start, end=end, limit=limit)
    except reporting_service.ReportError as e:
        click.echo(f"FAIL {e}")
        sys.exit(1)

    if not report["rows"]:
        click.echo("No sales in range.")
        return
    click.echo(f"{'Product':<30} {'Category':<16} {'Qty':>6} {'Revenue':>12}")
    for row in report["rows"]:
        click.echo(f"{row['name']:<30} {row['category']:<16} {row['quantity']:>6} {money_str(row['revenue']):>12}")


@reports_group.command('inventory')
@with_appcontext
def report_inventory():
    report = reporting_service.inventory_status()
    for category in report["categories"]:
        click.echo(
            f"{category['category']:<20} products {category['product_count']:>4}  "
            f"qty {category['total_quantity']:>6}  low {category['low_stock_count']:>3}"
        )
    summary = report["summary"]
    click.echo(
        f"Total: {summary['total_products']} products, {summary['total_items']} units, "
        f"{summary['low_stock_items']} low stock"
    )


@click.group('settings')
def settings_group():
    """Store settings commands."""


@settings_group.command('show')
@with_appcontext
def settings_show():
    settings = settings_service.get_settings()
    for key, value in settings.to_dict().items():
        click.echo(f"{key:<30} {value}")


@settings_group.command('set')
@click.argument('field')
@click.argument('value')
@with_appcontext
def settings_set(field, value):
    """Set one setting (values are parsed according to the column type)."""
    try:
        settings_service.update_settings(**{field: value})
    except ValidationError as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")
        sys.exit(1)
    click.echo(f"PASS {field} updated")


@click.group('users')
def users_group():
    """User inspection/bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.username).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'Username':<20} {'Email':<30} {'Role':<12} {'Active':<8} {'Last login'}")
    click.echo("="*90)
    for user in users:
        last_login = user.last_login.strftime("%Y-%m-%d %H:%M") if user.last_login else "-"
        click.echo(f"{user.username:<20} {user.email or '':<30} {user.role:<12} {str(user.is_active):<8} {last_login}")


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--email', default=None)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--full-name', default=None)
@click.option('--role', default='staff', show_default=True)
@with_appcontext
def create_user_cmd(username, email, password, full_name, role):
    """Create a user (prompts if options are omitted)."""
    try:
        user = auth_service.create_user(username, password, email=email, full_name=full_name, role=role)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e}")
        sys.exit(1)
    except ValueError as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")
        sys.exit(1)
    click.echo(f"PASS Created user {user.username} ({user.role})")


@click.group('system')
def system_group():
    """System maintenance commands."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema from the models.

    This will DELETE ALL DATA and bypasses migrations; use `flask db upgrade` for real databases.
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask seed run' to add baseline data.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(schema_group)
    app.cli.add_command(seed_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(notifications_group)
    app.cli.add_command(reports_group)
    app.cli.add_command(settings_group)
    app.cli.add_command(users_group)
    app.cli.add_command(system_group)
