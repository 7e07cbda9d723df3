# cli.py
"""
Operator commands, registered on the app as ``flask <command>``
"""

import logging

import click
from flask import Flask
from flask.cli import with_appcontext

from core.database_models import Admin, ContactOffice, Section
from core.errors import ApiError
from core.extensions import db
from core.localization import TARGET_LANGUAGES, stored_translation
from core.security_manager import normalize_email
from services.geocoding import geocoder
from services.translation import TranslationError, merge_translations, translator

logger = logging.getLogger(__name__)


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create all database tables."""
    db.create_all()
    click.echo('Database tables created')


@click.command('seed-admin')
@click.argument('email')
@click.argument('password')
@with_appcontext
def seed_admin_command(email, password):
    """Create an admin account, or reset the password of an existing one."""
    try:
        admin = Admin.query.filter_by(email=normalize_email(email)).first()
        if admin is None:
            admin = Admin(email=email, password=password)
            db.session.add(admin)
            action = 'created'
        else:
            admin.password = password
            admin.is_active = True
            action = 'updated'
        db.session.commit()
    except ApiError as e:
        db.session.rollback()
        raise click.ClickException(e.message)
    click.echo(f"Admin {action}: {admin.email}")


@click.command('translate-sections')
@click.argument('section_ids', nargs=-1)
@with_appcontext
def translate_sections_command(section_ids):
    """Fill in missing section translations (all sections when no ids are given)."""
    if not translator.enabled:
        raise click.ClickException('Machine translation is not configured (TRANSLATE_API_KEY)')

    query = Section.query
    if section_ids:
        query = query.filter(Section.id.in_(section_ids))

    translated = 0
    for section in query.all():
        fresh = {}
        for lang in TARGET_LANGUAGES:
            if stored_translation(section.translations, lang):
                continue
            try:
                fresh[lang] = translator.translate_document(
                    {'title': section.title, 'bodyText': section.body_text}, lang
                )
            except TranslationError as e:
                logger.warning(f"Section {section.id} translation to {lang} failed: {e}")
        if fresh:
            section.translations = merge_translations(section.translations, fresh)
            db.session.commit()
            translated += 1
            click.echo(f"{section.id}: {', '.join(sorted(fresh))}")

    click.echo(f"Translated {translated} sections")


@click.command('geocode-offices')
@with_appcontext
def geocode_offices_command():
    """Look up coordinates for offices that have none."""
    offices = ContactOffice.query.filter(
        (ContactOffice.latitude.is_(None)) | (ContactOffice.longitude.is_(None))
    ).all()

    updated = 0
    for office in offices:
        result = geocoder.lookup(office.address, force=True)
        if result is None:
            click.echo(f"No result for {office.office_name}: {office.address}")
            continue
        office.latitude = result.latitude
        office.longitude = result.longitude
        db.session.commit()
        updated += 1

    click.echo(f"Geocoded {updated} of {len(offices)} offices")


def register_commands(app: Flask) -> None:
    app.cli.add_command(init_db_command)
    app.cli.add_command(seed_admin_command)
    app.cli.add_command(translate_sections_command)
    app.cli.add_command(geocode_offices_command)
