#!/usr/bin/env python3
"""
Script to seed the database with the supported languages and an admin user.
Existing rows are left untouched, so it is safe to run multiple times.

Usage: python populate_languages.py

Environment:
    ADMIN_EMAIL     (default: admin@learningapp.com)
    ADMIN_PASSWORD  (default: admin123)
"""

import os

from models import db
from models.language import Language
from models.user import User

# (code, original_name, en_name, display_order), sorted by English name
LANGUAGES_DATA = [
    ('en', 'English', 'English', 1),
    ('fr', 'Français', 'French', 2),
    ('de', 'Deutsch', 'German', 3),
    ('it', 'Italiano', 'Italian', 4),
    ('pt', 'Português', 'Portuguese', 5),
    ('es', 'Español', 'Spanish', 6),
]

DEFAULT_ADMIN_EMAIL = 'admin@learningapp.com'
DEFAULT_ADMIN_PASSWORD = 'admin123'


def seed_languages():
    """Insert missing languages; returns the number inserted"""
    inserted_count = 0
    for code, original_name, en_name, display_order in LANGUAGES_DATA:
        if Language.query.get(code):
            continue
        db.session.add(Language(
            code=code,
            original_name=original_name,
            en_name=en_name,
            display_order=display_order
        ))
        inserted_count += 1
        print(f"  [{display_order:2d}] {code:6s} - {en_name:25s} ({original_name})")

    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return inserted_count


def seed_admin_user(email=None, password=None):
    """Create the admin user if it does not exist yet; returns the admin"""
    email = (email or os.getenv('ADMIN_EMAIL', DEFAULT_ADMIN_EMAIL)).strip().lower()
    password = password or os.getenv('ADMIN_PASSWORD', DEFAULT_ADMIN_PASSWORD)

    admin = User.query.filter_by(email=email).first()
    if admin:
        return admin

    admin = User(
        email=email,
        role='ADMIN',
        native_language_code='es',
        learning_language_code='en'
    )
    admin.set_password(password)

    try:
        db.session.add(admin)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return admin


def populate_languages():
    """Create tables, then seed languages and the admin user"""
    from app import create_app

    app = create_app()

    with app.app_context():
        print("Creating database tables...")
        db.create_all()

        print(f"\nInserting up to {len(LANGUAGES_DATA)} languages...")
        try:
            inserted_count = seed_languages()
            print(f"\n✓ Inserted {inserted_count} new language(s)")
            print(f"✓ Database now contains {Language.query.count()} languages")

            admin = seed_admin_user()
            print(f"✓ Admin user: {admin.email}")
        except Exception as e:
            print(f"\n✗ Error occurred: {e}")
            raise


if __name__ == '__main__':
    populate_languages()
