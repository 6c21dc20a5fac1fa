# Overview: Flask CLI command groups for bootstrap, account support, and backups.

# backend/counterpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent: create tables and the default settings row.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Account support:
# - python -m flask users list
#   List all users with role, active and online status.
# - python -m flask users create --username admin --password "secret1" --role admin
#   Create a user (prompts if options are omitted).
# - python -m flask users logout alice
#   Force an account offline (e.g. a till left logged in on a broken terminal).
#
# Backups:
# - python -m flask backup export backup.json
#   Write the full store (tables + images) to a JSON file.
# - python -m flask backup import backup.json --yes
#   Replace the full store with a JSON backup.

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .validation import ValidationError, ConflictError
from .services.auth_service import register_user
from .services import backup_service, session_service, settings_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create tables (if missing) and the default settings row.

    Accounts are created by the setup wizard or `flask users create`.
    """
    click.echo("START Initializing CounterPOS...")

    db.create_all()
    click.echo("PASS Tables ready")

    settings = settings_service.get_settings()
    click.echo(f"PASS Settings ready (store: {settings.store_name}, currency: {settings.currency})")

    if db.session.query(User).count() == 0:
        click.echo("\nNo accounts yet. Open the app to run the setup wizard, or run:")
        click.echo("  python -m flask users create --role admin")


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


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(['admin', 'cashier']), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, password, role):
    """
    Create a new user.

    Password must be at least 6 characters.
    """
    try:
        user = register_user(username, password, role)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.username} with role '{user.role}' (ID: {user.id})")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their role and status."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*72)
    click.echo(f"{'ID':<5} {'Username':<24} {'Role':<10} {'Active':<8} {'Online'}")
    click.echo("="*72)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        online_str = "Yes" if user.is_online else "No"
        click.echo(f"{user.id:<5} {user.username:<24} {user.role:<10} {active_str:<8} {online_str}")

    click.echo("="*72 + "\n")


@users_group.command('logout')
@click.argument('username')
@with_appcontext
def logout_user_cli(username):
    """Force USERNAME offline by clearing its session."""
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        click.echo(f"FAIL User '{username}' not found")
        raise SystemExit(1)

    if session_service.revoke_user_session(user.id):
        click.echo(f"PASS {username} logged out")
    else:
        click.echo(f"PASS {username} had no active session")


@click.group('backup')
def backup_group():
    """Full-store backup commands."""


@backup_group.command('export')
@click.argument('path', type=click.Path(dir_okay=False, writable=True))
@with_appcontext
def export_backup_cli(path):
    """Write a JSON backup to PATH."""
    payload = backup_service.export_backup()
    with open(path, 'w', encoding='utf-8') as fh:
        json.dump(payload, fh)

    click.echo(
        f"PASS Exported {len(payload['users'])} users, {len(payload['products'])} products, "
        f"{len(payload['sales'])} sales, {len(payload['images'])} images to {path}"
    )


@backup_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def import_backup_cli(path, yes):
    """
    Replace ALL data with the backup at PATH.

    Every account comes back logged out.
    """
    if not yes:
        click.confirm("WARN This will REPLACE ALL DATA. Are you sure?", abort=True)

    with open(path, encoding='utf-8') as fh:
        try:
            data = json.load(fh)
        except ValueError as e:
            click.echo(f"FAIL {path} is not valid JSON: {e}")
            raise SystemExit(1)

    try:
        counts = backup_service.import_backup(data)
    except ValidationError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(
        f"PASS Restored {counts['users']} users, {counts['products']} products, "
        f"{counts['sales']} sales, {counts['images']} images"
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(backup_group)
