# Overview: Flask CLI command groups for bootstrap, tenant administration and maintenance.

# backend/tiendapos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: flask --app tiendapos:create_app <group> <command> [options]
#
# System bootstrap:
# - flask system init-db
#   Create all tables (use `flask db upgrade` for migrated deployments).
# - flask system seed-demo
#   Idempotent demo tenant: owner, cashier, super-admin and a few products.
#
# Tenant administration:
# - flask tenants list [--search cafe]
# - flask tenants suspend <profile_id>
# - flask tenants activate <profile_id>
# - flask tenants grant-super-admin <profile_id>
#
# Registers:
# - flask registers list-open
#
# Maintenance:
# - flask sessions cleanup --retention-days 30
# - flask sessions revoke <operator_id>

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import CashRegister, Product, Profile, TeamMember
from .models.registers import REGISTER_OPEN
from .services import session_service, tenant_service
from .validation import ConflictError, NotFoundError


DEMO_PRODUCTS = [
    ("Cafe americano", 15000, 40, "coffee"),
    ("Croissant", 9000, 25, "croissant"),
    ("Jugo de naranja", 12000, 30, "juice"),
]


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db_cli():
    """Create all tables for the configured database."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo_cli():
    """
    Create a demo tenant (idempotent).

    Creates:
    - owner profile "demo-owner" with products
    - cashier profile "demo-cashier" on the owner's team
    - super-admin profile "demo-admin"
    """
    click.echo("START Seeding demo tenant...")

    owner = db.session.query(Profile).filter_by(id="demo-owner").first()
    if not owner:
        owner = tenant_service.create_profile({
            "id": "demo-owner",
            "email": "owner@demo.local",
            "business_name": "Demo Cafe",
            "currency": "COP",
        })
        click.echo(f"PASS Created owner profile: {owner.id}")
    else:
        click.echo(f"PASS Using existing owner profile: {owner.id}")

    for name, price, stock, icon in DEMO_PRODUCTS:
        exists = db.session.query(Product).filter_by(tenant_id=owner.id, name=name).first()
        if not exists:
            db.session.add(Product(tenant_id=owner.id, name=name, price=price, stock=stock, icon=icon))
    db.session.commit()
    click.echo(f"PASS Products ready: {len(DEMO_PRODUCTS)}")

    cashier = db.session.query(Profile).filter_by(id="demo-cashier").first()
    if not cashier:
        cashier = tenant_service.create_profile({"id": "demo-cashier", "email": "cashier@demo.local"})
    if not db.session.query(TeamMember).filter_by(user_id=cashier.id).first():
        db.session.add(TeamMember(user_id=cashier.id, owner_id=owner.id, role="cashier", status="active"))
        db.session.commit()
    click.echo(f"PASS Cashier ready: {cashier.id}")

    admin = db.session.query(Profile).filter_by(id="demo-admin").first()
    if not admin:
        admin = tenant_service.create_profile({"id": "demo-admin", "email": "admin@demo.local"})
    tenant_service.set_super_admin(admin.id, True)
    click.echo(f"PASS Super-admin ready: {admin.id}")

    click.echo("DONE Demo tenant seeded")


@click.group('tenants')
def tenants_group():
    """Tenant profile administration."""


@tenants_group.command('list')
@click.option('--search', default=None, help='Match business name, email or id')
@with_appcontext
def list_tenants_cli(search):
    """List profiles with status and super-admin flag."""
    profiles = tenant_service.list_profiles(search)

    if not profiles:
        click.echo("No profiles found.")
        return

    click.echo("\n" + "=" * 100)
    click.echo(f"{'ID':<38} {'Business':<25} {'Email':<25} {'Status':<10} {'Admin'}")
    click.echo("=" * 100)
    for profile in profiles:
        click.echo(
            f"{profile.id:<38} {(profile.business_name or '-'):<25} {(profile.email or '-'):<25} "
            f"{profile.status:<10} {'yes' if profile.is_super_admin else ''}"
        )
    click.echo("=" * 100 + "\n")


def _set_status(profile_id: str, status: str):
    try:
        profile = tenant_service.set_tenant_status(profile_id, status)
    except (NotFoundError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS {profile.id} is now {profile.status}")


@tenants_group.command('suspend')
@click.argument('profile_id')
@with_appcontext
def suspend_tenant_cli(profile_id):
    """Suspend a tenant: owner and team lose access on their next request."""
    _set_status(profile_id, "suspended")


@tenants_group.command('activate')
@click.argument('profile_id')
@with_appcontext
def activate_tenant_cli(profile_id):
    """Reactivate a suspended tenant."""
    _set_status(profile_id, "active")


@tenants_group.command('grant-super-admin')
@click.argument('profile_id')
@with_appcontext
def grant_super_admin_cli(profile_id):
    """Mark a profile as platform super-admin."""
    try:
        profile = tenant_service.set_super_admin(profile_id, True)
    except NotFoundError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS {profile.id} is now a super-admin")


@click.group('registers')
def registers_group():
    """Cash register inspection."""


@registers_group.command('list-open')
@with_appcontext
def list_open_registers_cli():
    """List every open cash register."""
    registers = db.session.query(CashRegister).filter_by(status=REGISTER_OPEN).order_by(CashRegister.opened_at).all()

    if not registers:
        click.echo("No open registers.")
        return

    click.echo(f"{'ID':<6} {'Operator':<38} {'Opening':>12} {'Opened at'}")
    for register in registers:
        click.echo(f"{register.id:<6} {register.operator_id:<38} {register.opening_amount:>12} {register.opened_at}")


@click.group('sessions')
def sessions_group():
    """Operator session maintenance."""


@sessions_group.command('cleanup')
@click.option('--retention-days', type=int, default=30, help='Keep expired/revoked sessions this long')
@with_appcontext
def cleanup_sessions_cli(retention_days):
    """Delete expired and revoked sessions older than the retention window."""
    deleted = session_service.cleanup_expired_sessions(retention_days)
    click.echo(f"PASS Deleted {deleted} session(s)")


@sessions_group.command('revoke')
@click.argument('operator_id')
@with_appcontext
def revoke_sessions_cli(operator_id):
    """
    Revoke every active session of an operator (forces sign-in).

    The running server drops their carts on its next registry sweep.
    """
    session_ids = session_service.revoke_all_operator_sessions(operator_id, reason="Revoked by administrator")
    click.echo(f"PASS Revoked {len(session_ids)} session(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tenants_group)
    app.cli.add_command(registers_group)
    app.cli.add_command(sessions_group)
