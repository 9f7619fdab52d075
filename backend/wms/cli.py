# Overview: Flask CLI command groups for bootstrap, demo data, and inspection.

# backend/wms/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Inventory inspection/bootstrap:
# - python -m flask inventory seed-demo
#   Create a handful of demo items with opening stock (skips existing SKUs).
# - python -m flask inventory list [--low-stock 5]
#   List items with on-hand quantities.
# - python -m flask inventory movements --sku W-100
#   Show the movement journal for one SKU.
#
# Audit inspection:
# - python -m flask audit tail --limit 20
#   Show the most recent audit events.

import click
from flask.cli import with_appcontext

from .errors import ConflictError
from .extensions import db
from .services import audit_service, inventory_service

CLI_ACTOR = "cli"

DEMO_ITEMS = [
    {"sku": "W-100", "name": "Widget", "type": "Product", "rate": "2.50", "quantity": 120},
    {"sku": "G-200", "name": "Gadget", "type": "Product", "rate": "14.99", "quantity": 40},
    {"sku": "B-300", "name": "Packing Box (M)", "type": "Material", "rate": "0.35", "quantity": 500},
    {"sku": "S-400", "name": "Gift Wrapping", "type": "Service", "rate": "3.00", "quantity": 0},
]


@click.group('system')
def system_group():
    """Database bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    db.create_all()
    click.echo("OK Database schema is up to date")


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
    click.echo("CREATE  Recreating schema...")
    db.create_all()
    click.echo("OK Database reset complete")


@click.group('inventory')
def inventory_group():
    """Inventory ledger commands."""


@inventory_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Create demo inventory items with opening stock."""
    created = 0
    for spec in DEMO_ITEMS:
        try:
            item = inventory_service.create_item(dict(spec), actor_id=CLI_ACTOR)
        except ConflictError:
            click.echo(f"SKIP {spec['sku']} already exists")
            continue
        created += 1
        click.echo(f"OK   {item.sku:<8} {item.name:<20} qty={item.quantity}")
    click.echo(f"{created} item(s) created")


@inventory_group.command('list')
@click.option('--low-stock', type=int, default=None, help='Only items at or below this quantity')
@with_appcontext
def list_items(low_stock):
    """List inventory items."""
    items, total = inventory_service.list_items(low_stock_threshold=low_stock, limit=500)
    if not items:
        click.echo("No inventory items")
        return
    for item in items:
        click.echo(f"{item.id:>5}  {item.sku:<12} {item.name:<30} {item.quantity:>7}  @ {item.rate}")
    click.echo(f"{total} item(s)")


@inventory_group.command('movements')
@click.option('--sku', required=True, help='Item SKU')
@with_appcontext
def list_movements(sku):
    """Show the movement journal for one SKU."""
    item = inventory_service.get_item_by_sku(sku)
    for m in inventory_service.movements(item.id):
        ref = f"{m.reference_type}:{m.reference_id}" if m.reference_type else "-"
        click.echo(f"{m.created_at:%Y-%m-%d %H:%M}  {m.delta:>+6}  -> {m.quantity_after:>6}  {m.reason:<18} {ref}")


@click.group('audit')
def audit_group():
    """Audit trail commands."""


@audit_group.command('tail')
@click.option('--limit', type=int, default=20, help='Number of events')
@with_appcontext
def audit_tail(limit):
    """Show the most recent audit events."""
    events, _ = audit_service.list_events(limit=limit)
    for e in events:
        click.echo(f"{e.created_at:%Y-%m-%d %H:%M:%S}  {e.actor_id or '-':<12} {e.action:<30} {e.entity_type}:{e.entity_id}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(audit_group)
