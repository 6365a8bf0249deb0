# Overview: Flask CLI command groups for bootstrap and tenant setup.

# backend/farmops/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "farmops:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users and farms:
# - python -m flask users create --email owner@example.com --role customer
#   Create a user. Farm roles (farm_owner, manager, staff) need --farm-id.
# - python -m flask farms create --name "Sunrise Layers" --location "Nakuru" --owner-id 1
#   Create a farm and bind the owner to it (admins stay unbound).

import click
from flask.cli import with_appcontext
from sqlalchemy.exc import IntegrityError

from .extensions import db
from .errors import FarmOpsError
from .models import User
from .models.tenancy import FARM_ROLES, VALID_ROLES
from .services import tenant_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db_command():
    """Create all tables."""
    db.create_all()
    click.echo("Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset.')
@with_appcontext
def reset_db_command(yes: bool):
    """Drop and recreate all tables."""
    if not yes:
        raise click.UsageError("Refusing to reset without --yes")
    db.drop_all()
    db.create_all()
    click.echo("Database reset complete.")


@click.group('users')
def users_group():
    """User bootstrap commands."""


@users_group.command('create')
@click.option('--email', required=True)
@click.option('--role', type=click.Choice(sorted(VALID_ROLES)), default='customer', show_default=True)
@click.option('--farm-id', type=int, default=None)
@click.option('--first-name', default=None)
@click.option('--last-name', default=None)
@with_appcontext
def create_user_command(email, role, farm_id, first_name, last_name):
    """Create a user honouring the role/farm binding rule."""
    if role in FARM_ROLES and farm_id is None:
        raise click.UsageError(f"--farm-id is required for role {role}")
    if role not in FARM_ROLES and farm_id is not None:
        raise click.UsageError(f"Role {role} cannot be bound to a farm")

    user = User(email=email, role=role, farm_id=farm_id, first_name=first_name, last_name=last_name)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise click.ClickException(f"User with email {email} already exists")
    click.echo(f"Created user {user.id} ({user.email}, role={user.role}, farm_id={user.farm_id})")


@click.group('farms')
def farms_group():
    """Farm (tenant) commands."""


@farms_group.command('create')
@click.option('--name', required=True)
@click.option('--location', required=True)
@click.option('--owner-id', type=int, required=True, help='User creating the farm.')
@click.option('--specialization', default=None)
@with_appcontext
def create_farm_command(name, location, owner_id, specialization):
    """Create a farm and bind its owner."""
    farm_data = {"name": name, "location": location}
    if specialization:
        farm_data["specialization"] = specialization

    try:
        binding = tenant_service.create_farm_with_owner(farm_data, owner_id)
    except FarmOpsError as e:
        raise click.ClickException(e.message)

    click.echo(
        f"Created farm {binding.farm.id} ({binding.farm.name}); "
        f"user {binding.user.id} role={binding.user.role} farm_id={binding.user.farm_id}"
    )


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(farms_group)
