"""
Adapter between the pre-bilingual flat content shape and language variants.

Older clients and imports send content as flat title/description/audio/
image/thumbnail fields. New records never store those fields: the create
path turns them into the default-language variant here, and records that
were imported with legacy columns are folded once by the
fold_legacy_fields migration.
"""

import logging
from typing import Optional

from kids_catalog.models.content import Content, ContentVariant, LanguageVariant

logger = logging.getLogger(__name__)


def variant_from_flat_fields(
    title: Optional[str],
    description: Optional[str] = None,
    audio_url: Optional[str] = None,
    image_url: Optional[str] = None,
    thumbnail_url: Optional[str] = None,
    key_value: Optional[str] = None,
    summary: Optional[str] = None,
) -> Optional[LanguageVariant]:
    """
    Build a variant from flat legacy-style fields.

    Returns None when no media field was given, so a bare canonical title
    does not count as a legacy payload.
    """
    if not (audio_url or image_url or thumbnail_url or description):
        return None
    return LanguageVariant(
        title=title,
        description=description,
        audio_url=audio_url,
        image_url=image_url,
        thumbnail_url=thumbnail_url,
        key_value=key_value,
        summary=summary,
    )


def fold_legacy_fields(content: Content) -> bool:
    """
    Move a record's legacy flat columns into its default-language variant.

    An existing default-language variant wins over the legacy values;
    the legacy columns are cleared either way so the record ends up with
    a single source of truth.

    Args:
        content: Content instance attached to a session

    Returns:
        True if the record was changed
    """
    legacy = content.legacy_variant()
    if legacy is None:
        return False

    if content.default_language not in content.variants:
        row = ContentVariant(language=content.default_language)
        row.update_from(legacy)
        content.variants[content.default_language] = row
        logger.info(f"Folded legacy fields of content {content.id} into '{content.default_language}' variant")
    else:
        logger.info(f"Content {content.id} already has a '{content.default_language}' variant, dropping legacy fields")

    content.legacy_title = None
    content.legacy_description = None
    content.legacy_audio_url = None
    content.legacy_image_url = None
    content.legacy_thumbnail_url = None
    return True
