# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/lynn_ops/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (idempotent; use "flask db upgrade" once migrations exist).
# - python -m flask system create-superadmin --username root --name "Root" --password secret
#   Create the one superadmin account. Refused if one already exists.
#
# Inspection:
# - python -m flask users list [--role admin]
#   List accounts with role and creator.
# - python -m flask locations list
#   List locations with their owning admin.
# - python -m flask perms check <username> <location_id> [CAPABILITY]
#   Evaluate view access (or one capability) for a user on a location.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions [--older-than-days 30]
#   Delete expired or revoked sessions older than the cutoff.

import click
from flask.cli import with_appcontext

from .errors import ServiceError
from .extensions import db
from .models import Location, User
from .permissions import ROLES, get_capability_definition
from .services import auth_service, permission_service, session_service
from .services.session_service import Actor


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all database tables."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('create-superadmin')
@click.option('--username', required=True, help='Login name')
@click.option('--name', required=True, help='Display name')
@click.option('--password', required=True, help='Password (min 6 characters)')
@with_appcontext
def create_superadmin(username, name, password):
    """
    Create the superadmin account.

    Same rules as POST /api/auth/init: only one superadmin may exist.
    """
    try:
        user = auth_service.init_superadmin(username, name, password)
    except ServiceError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)

    click.echo(f"PASS Superadmin '{user.username}' created (id={user.id})")


@click.group('users')
def users_group():
    """User inspection commands."""


@users_group.command('list')
@click.option('--role', type=click.Choice(ROLES), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all accounts with their roles."""
    query = db.session.query(User)

    if role:
        query = query.filter_by(role=role)

    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Name':<30} {'Role':<12} {'Created by'}")
    click.echo("="*80)

    for user in users:
        created_by = str(user.created_by_id) if user.created_by_id else "-"
        click.echo(f"{user.id:<5} {user.username:<20} {user.name:<30} {user.role:<12} {created_by}")

    click.echo("="*80 + "\n")


@click.group('locations')
def locations_group():
    """Location inspection commands."""


@locations_group.command('list')
@with_appcontext
def list_locations():
    """List all locations."""
    locations = db.session.query(Location).order_by(Location.id.asc()).all()

    if not locations:
        click.echo("No locations found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Type':<12} {'Currency':<10} {'Admin'}")
    click.echo("="*80)

    for loc in locations:
        admin = loc.admin.username if loc.admin else f"#{loc.admin_id}"
        click.echo(f"{loc.id:<5} {loc.name:<30} {loc.type:<12} {loc.currency:<10} {admin}")

    click.echo("="*80 + "\n")


@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('check')
@click.argument('username')
@click.argument('location_id', type=int)
@click.argument('capability', required=False)
@with_appcontext
def check_permission_cli(username, location_id, capability):
    """Check if a user may act on a location."""
    user = db.session.query(User).filter_by(username=username).first()

    if not user:
        click.echo(f"FAIL User '{username}' not found")
        return

    if capability:
        capability = capability.upper()
        definition = get_capability_definition(capability)
        if definition is None:
            click.echo(f"FAIL Unknown capability '{capability}'")
            return

    allowed = permission_service.has_location_access(Actor.from_user(user), location_id, capability)
    what = capability or "VIEW"

    if allowed:
        click.echo(f"PASS User '{username}' HAS {what} on location {location_id}")
    else:
        click.echo(f"FAIL User '{username}' DOES NOT HAVE {what} on location {location_id}")

    grant = permission_service.get_grant(user.id, location_id)
    if capability:
        click.echo(f"\nCapability: {definition['name']} ({definition['description']})")
    click.echo(f"\nRole: {user.role}")
    if grant is not None:
        click.echo(f"Granted: {', '.join(grant.permissions or []) or 'view only'}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--older-than-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(older_than_days):
    """Delete expired and revoked sessions."""
    deleted = session_service.cleanup_expired_sessions(older_than_days=older_than_days)
    click.echo(f"Deleted {deleted} sessions older than {older_than_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(locations_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(maintenance_group)
