# Overview: Flask CLI commands for bootstrap and data checks.

# backend/festdesk/cli.py
# Commands (run from the backend directory with FLASK_APP=wsgi.py):
# - python -m flask fest init-db
#   Create all tables (use `flask db upgrade` for migrated deployments).
# - python -m flask fest create-admin --email lead@example.org --name "Lead" --role super_admin
#   Create an admin account (prompts for the password).
# - python -m flask fest seed-email-templates
#   Insert any missing default email templates.
# - python -m flask fest seed-events [--file events.json]
#   Insert events that are not yet in the catalogue.
# - python -m flask fest check-integrity
#   Report stale stored totals, review metadata problems and group id collisions.

import json

import click
from flask.cli import with_appcontext

from .errors import StoreUnavailableError
from .extensions import db
from .models import Event
from .services import aggregation_service
from .services import notification_service
from .services.auth_service import create_admin, AdminAccountError, PasswordValidationError
from .services.authorization import VALID_ROLES, ROLE_COORDINATOR


DEFAULT_EVENTS = [
    {"name": "Battle of Bands", "category": "Cultural", "price": 250, "max_participants": 60},
    {"name": "Solo Singing", "category": "Cultural", "price": 150, "max_participants": None},
    {"name": "Group Dance", "category": "Cultural", "price": 200, "max_participants": 120},
    {"name": "Football", "category": "Sports", "price": 300, "max_participants": 176},
    {"name": "Chess", "category": "Sports", "price": 100, "max_participants": 64},
    {"name": "Canvas Painting", "category": "Fine Arts", "price": 150, "max_participants": 40},
    {"name": "Debate", "category": "Literary", "price": 100, "max_participants": 48},
    {"name": "Medical Quiz", "category": "Academic", "price": 200, "max_participants": 90},
]


@click.group('fest')
def fest_group():
    """Festival registration bootstrap and checks."""


@fest_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Tables created.")


@fest_group.command('create-admin')
@click.option('--email', required=True, help='Login email; stamped into reviewed_by')
@click.option('--name', required=True, help='Display name')
@click.option('--role', type=click.Choice(sorted(VALID_ROLES)), default=ROLE_COORDINATOR, show_default=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def create_admin_cli(email, name, role, password):
    try:
        user = create_admin(email, name, password, role=role)
    except (AdminAccountError, PasswordValidationError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created admin {user.email} (role: {user.role}, ID: {user.id})")


@fest_group.command('seed-email-templates')
@with_appcontext
def seed_email_templates():
    created = notification_service.ensure_default_templates()
    click.echo(f"PASS {created} email template(s) created.")


@fest_group.command('seed-events')
@click.option('--file', 'path', type=click.Path(exists=True, dir_okay=False), help='JSON list of events')
@with_appcontext
def seed_events(path):
    """Insert catalogue events by name; existing events are left untouched."""
    events = DEFAULT_EVENTS
    if path:
        with open(path, encoding="utf-8") as fh:
            events = json.load(fh)

    existing = {name for (name,) in db.session.query(Event.name).all()}
    created = 0
    for data in events:
        if data["name"] in existing:
            continue
        db.session.add(Event(
            name=data["name"],
            category=data["category"],
            price=int(data.get("price", 0)),
            max_participants=data.get("max_participants"),
            description=data.get("description"),
            venue=data.get("venue"),
            is_active=data.get("is_active", True),
        ))
        existing.add(data["name"])
        created += 1
    db.session.commit()
    click.echo(f"PASS {created} event(s) created, {len(events) - created} already present.")


@fest_group.command('check-integrity')
@with_appcontext
def check_integrity():
    """Exit status 1 when any integrity issue is found."""
    try:
        records = aggregation_service.fetch_all_records()
    except StoreUnavailableError as e:
        raise click.ClickException(f"Registration store unavailable: {e}")

    issues = aggregation_service.collect_integrity_issues(records)
    click.echo(f"Checked {len(records)} registration group(s).")
    for issue in issues:
        click.echo(f"FAIL [{issue['kind']}] {issue['group_id']}: {issue['issue']}")

    if issues:
        raise click.exceptions.Exit(1)
    click.echo("PASS No integrity issues.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(fest_group)
