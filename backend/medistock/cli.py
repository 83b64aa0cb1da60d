# Overview: Flask CLI command groups for database bootstrap, stock inspection and reports.

# backend/medistock/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Stock inspection:
# - python -m flask stock list MAIN_STORE
#   List cost lots at a location.
# - python -m flask stock low --location MAIN_STORE --min-packs 20
#   List critical / warning lots.
#
# Reports:
# - python -m flask reports metrics --start 2026-01-01 --end 2026-01-31
#   Revenue and profit for a period.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import LOCATIONS, MAIN_STORE
from .services import ledger_service, metrics_service, stock_status


def _money(cents: int) -> str:
    return f"{cents / 100:,.2f}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create database tables (existing tables are left alone)."""
    db.create_all()
    click.echo("PASS Database tables created.")


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

    click.echo("PASS Database reset complete.")


@click.group('stock')
def stock_group():
    """Stock inspection commands."""


@stock_group.command('list')
@click.argument('location', type=click.Choice(LOCATIONS, case_sensitive=False))
@with_appcontext
def list_stock(location):
    """List cost lots at LOCATION."""
    valuation = ledger_service.location_valuation(location)
    if not valuation["entries"]:
        click.echo(f"No stock at {valuation['location']}.")
        return

    for row in valuation["entries"]:
        click.echo(
            f"  {row['item_id']:>5}  {row['name']:<30} {row['weight']:<10} "
            f"cost={_money(row['unit_cost_cents']):>10}  packs={row['pack_qty']:>5}  pills={row['pill_qty']:>5}"
        )
    click.echo(
        f"TOTAL {valuation['total_packs']} packs, value {_money(valuation['total_value_cents'])}"
    )


@stock_group.command('low')
@click.option('--location', default=MAIN_STORE, type=click.Choice(LOCATIONS, case_sensitive=False))
@click.option('--min-packs', type=int, default=None, help='Minimum pack threshold (default from config)')
@with_appcontext
def low_stock(location, min_packs):
    """List lots at or below the minimum pack threshold."""
    report = stock_status.low_stock_report(location=location, min_packs=min_packs)
    click.echo(
        f"{report['location']}: {report['critical_count']} critical, "
        f"{report['warning_count']} warning (min {report['min_packs']} packs)"
    )
    for row in report["items"]:
        click.echo(f"  [{row['status'].upper():<8}] {row['name']} {row['weight']}  packs={row['pack_qty']}")


@click.group('reports')
def reports_group():
    """Financial report commands."""


@reports_group.command('metrics')
@click.option('--start', default=None, help='ISO-8601 start (inclusive)')
@click.option('--end', default=None, help='ISO-8601 end (inclusive)')
@with_appcontext
def metrics(start, end):
    """Revenue and profit from recorded sales."""
    report = metrics_service.compute_metrics(start=start, end=end)
    click.echo(f"Sales:    {report['sale_count']}")
    click.echo(f"Items:    {report['items_sold']}")
    click.echo(f"Revenue:  {_money(report['revenue_cents'])}")
    click.echo(f"Cost:     {_money(report['cost_cents'])}")
    click.echo(f"Profit:   {_money(report['profit_cents'])}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(reports_group)
