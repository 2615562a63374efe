# Overview: Flask CLI command group for bootstrap, import and inspection.

# backend/cladstock/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# - python -m flask system init
#   Idempotent bootstrap: creates tables (SQL backend) and the default admin.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables, or empty the local JSON file.
# - python -m flask system seed-admin
#   Create the default admin (PIN 1234) if there are no users.
# - python -m flask system import-file data/stock.xlsx [--dry-run]
#   Import items from an .xlsx or .csv file.
# - python -m flask system list-users
#   List users with role and active status.

import os

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import spreadsheet_service, user_service
from .storage import get_storage


def _require_configured():
    if not get_storage().is_configured:
        raise click.ClickException("No storage backend configured (STORAGE_BACKEND=none)")


@click.group("system")
def system_group():
    """System bootstrap and repair commands."""


@system_group.command("init")
@with_appcontext
def init_system():
    """Create the schema (SQL backend) and make sure someone can log in."""
    _require_configured()
    storage = get_storage()
    click.echo(f"START Initializing storage ({storage.name})...")

    if storage.name == "sql":
        db.create_all()
        click.echo("PASS Tables created")

    admin = user_service.seed_default_user()
    storage.commit()
    click.echo(f"PASS Users ready (first user: {admin.name})")


@system_group.command("reset-db")
@click.option("--yes", is_flag=True, help="Skip confirmation")
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    _require_configured()
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    storage = get_storage()
    if storage.name == "sql":
        click.echo("DELETE  Dropping all tables...")
        db.drop_all()
        click.echo("BUILD  Creating all tables...")
        db.create_all()
    else:
        click.echo("DELETE  Clearing local data file...")
        storage.delete_all()
        storage.commit()

    click.echo("PASS Reset complete. Run 'python -m flask system init' to create the admin user.")


@system_group.command("seed-admin")
@with_appcontext
def seed_admin():
    _require_configured()
    had_users = bool(user_service.list_users())
    user = user_service.seed_default_user()
    get_storage().commit()
    if had_users:
        click.echo(f"SKIP Users already exist (first user: {user.name})")
    else:
        click.echo(f"PASS Created {user.name} with PIN {user_service.DEFAULT_ADMIN_PIN}")


@system_group.command("import-file")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--dry-run", is_flag=True, help="Parse and report without saving")
@with_appcontext
def import_file(path, dry_run):
    """Import items from an .xlsx or .csv file."""
    _require_configured()
    with open(path, "rb") as fh:
        result = spreadsheet_service.parse_upload(os.path.basename(path), fh.read())

    for error in result.errors:
        click.echo(f"WARN {error}")
    if not result.success:
        raise click.ClickException("Import failed")

    click.echo(f"PASS Parsed {result.imported} items from {path}")
    if dry_run:
        for row in result.items:
            click.echo(f"  {row['name']:<40} {row['category']:<12} qty={row['quantity']}")
        return

    created = spreadsheet_service.import_items(result.items)
    get_storage().commit()
    click.echo(f"PASS Imported {created} items")


@system_group.command("list-users")
@with_appcontext
def list_users():
    users = user_service.list_users()
    if not users:
        click.echo("No users found.")
        return
    for user in users:
        status = "active" if user.active else "inactive"
        click.echo(f"{user.id:<34} {user.name:<24} {user.role:<8} {status}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
