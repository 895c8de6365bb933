#!/usr/bin/env python3
"""
Migration: Fold legacy flat content fields into language variants.

Content imported from the pre-bilingual catalog stores its text and media
in the legacy_* columns of the contents table. This migration moves those
values into the default-language variant of each record and clears the
legacy columns, so every record has a single source of truth.

Changes:
- Creates a default-language content_variants row where none exists
- Clears legacy_title, legacy_description, legacy_audio_url,
  legacy_image_url and legacy_thumbnail_url

The migration is idempotent: records without legacy values are skipped.

Run this script to upgrade an existing database:
    python -m kids_catalog.migrations.fold_legacy_fields

Or import and call migrate() from Python:
    from kids_catalog.migrations.fold_legacy_fields import migrate
    migrate()
"""

import sys

from sqlalchemy import or_

from kids_catalog.models import db
from kids_catalog.models.content import Content
from kids_catalog.services.legacy_adapter import fold_legacy_fields

BATCH_SIZE = 200


def fold_all(db_session, batch_size=BATCH_SIZE):
    """
    Fold every record that still carries legacy fields.

    Commits once per batch so a large catalog does not hold one long
    transaction.

    Returns:
        Number of records changed
    """
    changed = 0
    while True:
        batch = db_session.query(Content).filter(or_(
            Content.legacy_title.is_not(None),
            Content.legacy_audio_url.is_not(None),
            Content.legacy_image_url.is_not(None),
            Content.legacy_description.is_not(None),
            Content.legacy_thumbnail_url.is_not(None),
        )).order_by(Content.id).limit(batch_size).all()
        if not batch:
            return changed

        for content in batch:
            if not fold_legacy_fields(content):
                # Only description or thumbnail left: nothing playable to keep
                content.legacy_description = None
                content.legacy_thumbnail_url = None
            changed += 1
        db_session.commit()


def migrate(config_name=None):
    """Run the migration against the configured database."""
    from kids_catalog.app import create_app

    app = create_app(config_name)
    with app.app_context():
        print(f"Migrating database: {app.config['SQLALCHEMY_DATABASE_URI']}")
        try:
            changed = fold_all(db.session)
        except Exception as e:
            db.session.rollback()
            print(f"\nMigration failed: {e}")
            return False

    print(f"  {changed} content records folded")
    print("\nMigration completed successfully!")
    return True


if __name__ == '__main__':
    success = migrate()
    sys.exit(0 if success else 1)
