"""
Custom Flask CLI commands.

These commands are registered with the app via ``register_commands()``
in the application factory. Run them with ``flask <command_name>``.

Usage::

    flask db-check            # Verify database connectivity and tables
    flask seed-admin          # Create the initial administrator
    flask seed-service-types  # Load the starter service catalog
    flask send-reminders      # Dispatch due service reminders (cron)
"""

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy import inspect

from carhub.extensions import db
from carhub.services import reminder_service, service_type_service, user_service

# Tables the application expects after ``flask db upgrade``.
_EXPECTED_TABLES = (
    "users",
    "customers",
    "vehicles",
    "service_types",
    "services",
    "service_items",
    "payments",
    "service_reminders",
    "photos",
    "audit_log",
)


@click.command("db-check")
@with_appcontext
def db_check_command():
    """
    Verify database connectivity and confirm the expected tables exist.

    Runs a simple query against the configured database and lists the
    application tables it finds.  Useful for confirming DATABASE_URL
    is correct and the migrations have been applied.
    """
    click.echo("=" * 60)
    click.echo("  CarHub — Database Connectivity Check")
    click.echo("=" * 60)

    db_uri = db.engine.url.render_as_string(hide_password=True)
    click.echo(f"\n  Connection string: {db_uri}\n")

    # -- Step 1: Basic connectivity ----------------------------------------
    click.echo("[1/2] Testing connection...")
    try:
        result = db.session.execute(db.text("SELECT 1 AS connected"))
        row = result.fetchone()
        if row and row[0] == 1:
            click.secho("      ✓ Connected successfully.", fg="green")
        else:
            click.secho("      ✗ Unexpected result from test query.", fg="red")
            return
    except Exception as exc:  # pylint: disable=broad-exception-caught
        click.secho(f"      ✗ Connection failed: {exc}", fg="red")
        click.echo("\n  Troubleshooting tips:")
        click.echo("    - Does DATABASE_URL point at a reachable database?")
        click.echo("    - For SQLite, is the directory writable?")
        return

    # -- Step 2: Tables ----------------------------------------------------
    click.echo("[2/2] Checking tables...\n")
    existing = set(inspect(db.engine).get_table_names())
    missing = [name for name in _EXPECTED_TABLES if name not in existing]
    for name in _EXPECTED_TABLES:
        if name in existing:
            count = db.session.execute(db.text(f"SELECT COUNT(*) FROM {name}")).scalar()
            click.echo(f"      {name:>18}  — {count} row(s)")
        else:
            click.secho(f"      {name:>18}  — missing", fg="red")

    click.echo("\n" + "=" * 60)
    if missing:
        click.secho(
            "  Some tables are missing. Run `flask db upgrade`.", fg="yellow", bold=True
        )
    else:
        click.secho("  All checks passed. Database is ready.", fg="green", bold=True)
    click.echo("=" * 60)


@click.command("seed-admin")
@click.option("--username", default=None, help="Defaults to DEFAULT_ADMIN_USERNAME.")
@click.option("--password", default=None, help="Defaults to DEFAULT_ADMIN_PASSWORD.")
@click.option("--email", default=None, help="Defaults to DEFAULT_ADMIN_EMAIL.")
@with_appcontext
def seed_admin_command(username, password, email):
    """Create the initial administrator if it does not exist."""
    config = current_app.config
    user, created = user_service.ensure_default_admin(
        username=username or config["DEFAULT_ADMIN_USERNAME"],
        password=password or config["DEFAULT_ADMIN_PASSWORD"],
        email=email or config["DEFAULT_ADMIN_EMAIL"],
    )
    if created:
        click.secho(f"Created admin user '{user.username}'.", fg="green")
    else:
        click.secho(f"Admin user '{user.username}' already exists.", fg="yellow")


@click.command("seed-service-types")
@with_appcontext
def seed_service_types_command():
    """Load the starter service catalog (existing names are skipped)."""
    created = service_type_service.seed_default_service_types()
    click.echo(f"Created {created} service type(s).")


@click.command("send-reminders")
@with_appcontext
def send_reminders_command():
    """Dispatch every due service reminder and mark it sent."""
    delivered = reminder_service.dispatch_due_reminders()
    click.echo(f"Delivered {delivered} reminder(s).")


def register_commands(app):
    """Register all custom CLI commands with the Flask application."""
    app.cli.add_command(db_check_command)
    app.cli.add_command(seed_admin_command)
    app.cli.add_command(seed_service_types_command)
    app.cli.add_command(send_reminders_command)
