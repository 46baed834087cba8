# Overview: Flask CLI command groups for database bootstrap and cashier session inspection.

# backend/settlement/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "settlement:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Cashier sessions:
# - python -m flask sessions list [--cashier user_123] [--status open]
#   List recent sessions with their running totals.
# - python -m flask sessions reconcile 42 [--apply]
#   Compare running totals with totals summed from payments.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import CashierSession
from .services import cashier_session_service
from .validation import SettlementError, money_str


@click.group('system')
def system_group():
    """Database bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db_command():
    """Create missing tables."""
    db.create_all()
    click.echo("Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm dropping all data.')
@with_appcontext
def reset_db_command(yes):
    """Drop and recreate all tables."""
    if not yes:
        raise click.ClickException("Refusing to reset without --yes")
    db.drop_all()
    db.create_all()
    click.echo("Database reset.")


@click.group('sessions')
def sessions_group():
    """Cashier session inspection."""


@sessions_group.command('list')
@click.option('--cashier', 'cashier_id', default=None, help='Identity subject of the cashier.')
@click.option('--status', type=click.Choice(['open', 'closed']), default=None)
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
def list_sessions_command(cashier_id, status, limit):
    """List recent cashier sessions."""
    query = db.session.query(CashierSession)
    if cashier_id:
        query = query.filter_by(cashier_id=cashier_id)
    if status:
        query = query.filter_by(status=status)

    sessions = query.order_by(CashierSession.id.desc()).limit(limit).all()
    if not sessions:
        click.echo("No sessions found.")
        return

    for s in sessions:
        click.echo(
            f"#{s.id} {s.cashier_id} {s.status:<6} opened={s.opened_at:%Y-%m-%d %H:%M} "
            f"cash={money_str(s.total_cash_sales)} card={money_str(s.total_card_sales)} "
            f"qr={money_str(s.total_qr_sales)} credit={money_str(s.total_credit_sales)} "
            f"orders={s.total_orders}"
        )


@sessions_group.command('reconcile')
@click.argument('session_id', type=int)
@click.option('--apply', is_flag=True, help='Write recomputed totals back to the session.')
@with_appcontext
def reconcile_session_command(session_id, apply):
    """Show drift between running totals and payments."""
    try:
        drift = cashier_session_service.reconcile_session_totals(session_id, apply=apply)
    except SettlementError as exc:
        raise click.ClickException(str(exc))

    for field, value in sorted(drift.items()):
        click.echo(f"{field}: {money_str(value)}")
    if not any(drift.values()):
        click.echo("Session totals match payments.")
    elif apply:
        click.echo("Recomputed totals written.")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(sessions_group)
