"""
Unit tests for ContentService in Kids Catalog service.

Tests ContentService functionality including:
- Content creation, validation and slug allocation
- Language variant upsert
- Language resolution and CDN normalization
- Rename and editorial updates
- Archive/restore/delete with category ledger updates
- Listing, filtering, sorting and search
"""

from datetime import datetime, timedelta, timezone

import pytest

from kids_catalog.models import Category, Content, Favorite
from kids_catalog.services.category_service import CategoryService
from kids_catalog.services.content_service import ContentService
from kids_catalog.services.errors import ConflictError, NotFoundError, ValidationError
from kids_catalog.tests.conftest import create_test_content, days_ago, variant_payload


# =============================================================================
# create_content Tests
# =============================================================================

class TestCreateContent:
    """Tests for ContentService.create_content."""

    def test_create_derives_slug(self, app, db_session):
        """Creating 'The Sleepy Forest' should allocate slug 'the-sleepy-forest'."""
        content = create_test_content(db_session, 'The Sleepy Forest')

        assert content.id is not None
        assert content.slug == 'the-sleepy-forest'
        assert content.status == 'active'
        assert content.available_languages == ['en']

    def test_flat_fields_seed_default_variant(self, app, db_session):
        content = create_test_content(db_session, 'The Sleepy Forest')

        variant = content.variants['en']
        assert variant.title == 'The Sleepy Forest'
        assert variant.audio_url == '/assets/audio/the-sleepy-forest.mp3'
        assert content.legacy_audio_url is None

    def test_create_with_languages(self, app, db_session):
        content = create_test_content(
            db_session,
            'Moon Tale',
            default_language='hi',
            languages={'hi': variant_payload('चाँद की कहानी', 'moon-hi')}
        )

        assert content.default_language == 'hi'
        assert content.available_languages == ['hi']

    def test_slug_collision_raises_conflict(self, app, db_session):
        """A second title with the same slug should be rejected, not suffixed."""
        create_test_content(db_session, 'Moon Tale')
        db_session.commit()

        with pytest.raises(ConflictError) as exc_info:
            create_test_content(db_session, 'Moon Tale!')

        assert exc_info.value.details['slug'] == 'moon-tale'
        assert db_session.query(Content).filter_by(slug='moon-tale').count() == 1

    def test_unique_index_decides_slug_race(self, app, db_session, monkeypatch):
        """When the lookup misses a concurrent insert, the unique index still rejects the slug."""
        create_test_content(db_session, 'Moon Tale')
        db_session.commit()
        monkeypatch.setattr(ContentService, '_slug_taken', lambda *args, **kwargs: False)

        with pytest.raises(ConflictError) as exc_info:
            create_test_content(db_session, 'Moon Tale!')

        assert exc_info.value.details == {'slug': 'moon-tale'}
        assert db_session.query(Content).filter_by(slug='moon-tale').count() == 1

    def test_published_at_stored_in_utc(self, app, db_session):
        india = timezone(timedelta(hours=5, minutes=30))
        content = create_test_content(
            db_session, 'Morning Raga', published_at=datetime(2024, 1, 15, 13, 30, tzinfo=india)
        )
        db_session.commit()
        db_session.expire_all()

        stored = db_session.get(Content, content.id).published_at
        assert stored.replace(tzinfo=None) == datetime(2024, 1, 15, 8, 0)

    def test_invalid_enum_values_rejected(self, app, db_session):
        with pytest.raises(ValidationError):
            create_test_content(db_session, 'Podcast', type='podcast')
        with pytest.raises(ValidationError):
            create_test_content(db_session, 'Teen Story', age_range='13-16')
        with pytest.raises(ValidationError):
            create_test_content(db_session, 'Tagged', tags=['scary'])
        with pytest.raises(ValidationError):
            create_test_content(db_session, 'French', default_language='fr')

    def test_duration_must_be_positive(self, app, db_session):
        with pytest.raises(ValidationError):
            create_test_content(db_session, 'Silent', duration_sec=0)

    def test_default_variant_requires_media(self, app, db_session):
        """The default-language variant needs audio and image URLs."""
        with pytest.raises(ValidationError) as exc_info:
            create_test_content(db_session, 'No Image', image_url=None)
        assert exc_info.value.details['missing'] == ['image_url']

    def test_missing_default_variant_rejected(self, app, db_session):
        with pytest.raises(ValidationError):
            ContentService.create_content(
                db_session,
                type='story',
                title='Empty',
                duration_sec=60,
                age_range='3-5'
            )

    def test_unknown_category_raises_not_found(self, app, db_session):
        with pytest.raises(NotFoundError):
            create_test_content(db_session, 'Lost', category_id='missing-category')

    def test_create_increments_category_count(self, app, db_session, sample_category):
        create_test_content(db_session, 'Story One', category_id=sample_category.id)
        create_test_content(db_session, 'Story Two', category_id=sample_category.id)
        db_session.commit()

        assert sample_category.content_count == 2


# =============================================================================
# set_language_content Tests
# =============================================================================

class TestSetLanguageContent:
    """Tests for ContentService.set_language_content."""

    def test_new_language_becomes_available(self, app, db_session, sample_content):
        ContentService.set_language_content(
            db_session, sample_content.id, 'hi',
            variant_payload('नींद वाला जंगल', 'forest-hi')
        )
        db_session.commit()

        assert sample_content.available_languages == ['en', 'hi']
        assert sample_content.default_language == 'en'

    def test_existing_language_replaced(self, app, db_session, sample_content):
        ContentService.set_language_content(
            db_session, sample_content.id, 'en',
            variant_payload('The Sleepy Forest (Remastered)', 'forest-v2')
        )
        db_session.commit()

        assert len(sample_content.variants) == 1
        assert sample_content.variants['en'].audio_url == '/assets/audio/forest-v2.mp3'

    def test_unsupported_language_rejected(self, app, db_session, sample_content):
        with pytest.raises(ValidationError):
            ContentService.set_language_content(
                db_session, sample_content.id, 'fr', variant_payload('Forêt', 'forest-fr')
            )

    def test_incomplete_variant_rejected(self, app, db_session, sample_content):
        with pytest.raises(ValidationError):
            ContentService.set_language_content(db_session, sample_content.id, 'hi', {'title': 'जंगल'})


# =============================================================================
# resolve Tests
# =============================================================================

class TestResolve:
    """Tests for ContentService.resolve."""

    def test_requested_language_served(self, app, db_session, sample_bilingual_content):
        resolved = ContentService.resolve(db_session, sample_bilingual_content.id, 'hi')

        assert resolved.language == 'hi'
        assert resolved.source == 'requested'
        assert resolved.variant.title == 'चाँद की कहानी'
        assert resolved.available_languages == ['en', 'hi']

    def test_missing_language_falls_back_to_default(self, app, db_session, sample_content):
        resolved = ContentService.resolve(db_session, sample_content.id, 'hi')

        assert resolved.requested_language == 'hi'
        assert resolved.language == 'en'
        assert resolved.source == 'default'

    def test_no_requested_language_uses_default(self, app, db_session, sample_content):
        resolved = ContentService.resolve(db_session, sample_content.id)
        assert resolved.language == 'en'
        assert resolved.requested_language == 'en'

    def test_asset_urls_rewritten_to_cdn(self, app, db_session, sample_content):
        variant = ContentService.resolve(db_session, sample_content.id).variant

        assert variant.audio_url == 'https://cdn.test.local/assets/audio/the-sleepy-forest.mp3'
        assert variant.image_url == 'https://cdn.test.local/assets/images/the-sleepy-forest.jpg'

    def test_explicit_cdn_base(self, app, db_session, sample_content):
        variant = ContentService.resolve(
            db_session, sample_content.id, cdn_base='https://media.example.com'
        ).variant
        assert variant.audio_url == 'https://media.example.com/assets/audio/the-sleepy-forest.mp3'

    def test_absolute_urls_untouched(self, app, db_session):
        content = create_test_content(
            db_session, 'Remote Song',
            audio_url='https://other-cdn.example.org/song.mp3'
        )

        variant = ContentService.resolve(db_session, content.id).variant

        assert variant.audio_url == 'https://other-cdn.example.org/song.mp3'

    def test_unsupported_language_rejected(self, app, db_session, sample_content):
        with pytest.raises(ValidationError):
            ContentService.resolve(db_session, sample_content.id, 'xx')

    def test_archived_content_not_found(self, app, db_session, sample_archived_content):
        with pytest.raises(NotFoundError):
            ContentService.resolve(db_session, sample_archived_content.id)

        resolved = ContentService.resolve(db_session, sample_archived_content.id, include_archived=True)
        assert resolved.content.status == 'archived'

    def test_to_dict_echoes_languages(self, app, db_session, sample_content):
        data = ContentService.resolve(db_session, sample_content.id, 'hi').to_dict()

        assert data['id'] == sample_content.uuid
        assert data['requested_language'] == 'hi'
        assert data['language'] == 'en'
        assert data['available_languages'] == ['en']
        assert data['title'] == 'The Sleepy Forest'


# =============================================================================
# rename Tests
# =============================================================================

class TestRename:
    """Tests for ContentService.rename."""

    def test_rename_regenerates_slug(self, app, db_session, sample_content):
        ContentService.rename(db_session, sample_content.id, 'The Quiet Forest')
        db_session.commit()

        assert sample_content.slug == 'the-quiet-forest'

    def test_same_title_keeps_slug(self, app, db_session, sample_content):
        content = ContentService.rename(db_session, sample_content.id, 'The Sleepy Forest')
        assert content.slug == 'the-sleepy-forest'

    def test_rename_to_taken_slug_raises_conflict(self, app, db_session, sample_content):
        create_test_content(db_session, 'Moon Tale')
        db_session.commit()

        with pytest.raises(ConflictError):
            ContentService.rename(db_session, sample_content.id, 'Moon Tale!')

    def test_rename_race_raises_conflict(self, app, db_session, monkeypatch, sample_content):
        create_test_content(db_session, 'Moon Tale')
        db_session.commit()
        monkeypatch.setattr(ContentService, '_slug_taken', lambda *args, **kwargs: False)

        with pytest.raises(ConflictError):
            ContentService.rename(db_session, sample_content.id, 'Moon Tale')

        db_session.expire_all()
        assert db_session.get(Content, sample_content.id).slug == 'the-sleepy-forest'

    def test_punctuation_only_change_keeps_slug(self, app, db_session, sample_content):
        ContentService.rename(db_session, sample_content.id, 'The Sleepy Forest!')
        db_session.commit()

        assert sample_content.title == 'The Sleepy Forest!'
        assert sample_content.slug == 'the-sleepy-forest'


# =============================================================================
# update_content Tests
# =============================================================================

class TestUpdateContent:
    """Tests for ContentService.update_content."""

    def test_update_editorial_fields(self, app, db_session, sample_content):
        ContentService.update_content(
            db_session, sample_content.id,
            is_featured=True,
            tags=['adventure'],
            duration_sec=600
        )
        db_session.commit()

        assert sample_content.is_featured is True
        assert sample_content.tags == ['adventure']
        assert sample_content.duration_sec == 600

    def test_move_category_updates_both_counts(self, app, db_session, sample_content, sample_category):
        other = CategoryService.create_category(db_session, name='Music Time')
        db_session.commit()

        ContentService.update_content(db_session, sample_content.id, category_id=other.id)
        db_session.commit()

        assert sample_category.content_count == 0
        assert other.content_count == 1

    def test_detach_from_category(self, app, db_session, sample_content, sample_category):
        ContentService.update_content(db_session, sample_content.id, category_id=None)
        db_session.commit()

        assert sample_content.category_id is None
        assert sample_category.content_count == 0

    def test_default_language_needs_variant(self, app, db_session, sample_content):
        with pytest.raises(ValidationError):
            ContentService.update_content(db_session, sample_content.id, default_language='hi')

    def test_published_at_normalized_to_utc(self, app, db_session, sample_content):
        new_york = timezone(timedelta(hours=-5))
        ContentService.update_content(
            db_session, sample_content.id, published_at=datetime(2024, 3, 1, 19, 0, tzinfo=new_york)
        )

        assert sample_content.published_at == datetime(2024, 3, 2, 0, 0, tzinfo=timezone.utc)
        assert sample_content.published_at.utcoffset() == timedelta(0)


# =============================================================================
# Lifecycle Tests
# =============================================================================

class TestLifecycle:
    """Tests for archive, restore and delete."""

    def test_archive_decrements_category_count(self, app, db_session, sample_content, sample_category):
        ContentService.archive_content(db_session, sample_content.id)
        db_session.commit()

        assert sample_content.is_active is False
        assert sample_category.content_count == 0

    def test_archive_twice_is_noop(self, app, db_session, sample_content, sample_category):
        ContentService.archive_content(db_session, sample_content.id)
        ContentService.archive_content(db_session, sample_content.id)
        db_session.commit()

        assert sample_category.content_count == 0

    def test_restore_increments_category_count(self, app, db_session, sample_content, sample_category):
        ContentService.archive_content(db_session, sample_content.id)
        ContentService.restore_content(db_session, sample_content.id)
        db_session.commit()

        assert sample_content.is_active is True
        assert sample_category.content_count == 1

    def test_archived_content_hidden_from_lookups(self, app, db_session, sample_archived_content):
        assert ContentService.get_content(db_session, sample_archived_content.id) is None
        assert ContentService.get_content_by_slug(db_session, sample_archived_content.slug) is None
        assert ContentService.get_content_by_uuid(db_session, sample_archived_content.uuid) is None
        assert ContentService.get_content_by_uuid(
            db_session, sample_archived_content.uuid, include_archived=True
        ) is not None

    def test_delete_refused_while_favorited(self, app, db_session, sample_content, sample_kid):
        db_session.add(Favorite(user_id=sample_kid.user_id, kid_id=sample_kid.id, content_id=sample_content.id))
        db_session.commit()

        with pytest.raises(ConflictError):
            ContentService.delete_content(db_session, sample_content.id)

    def test_delete_removes_content_and_variants(self, app, db_session, sample_content, sample_category):
        content_id = sample_content.id

        ContentService.delete_content(db_session, content_id)
        db_session.commit()

        assert db_session.get(Content, content_id) is None
        assert sample_category.content_count == 0


# =============================================================================
# list_content / search_content Tests
# =============================================================================

@pytest.fixture
def catalog(db_session):
    """A small catalog with distinct flags, ages and publication dates."""
    items = {
        'featured': create_test_content(
            db_session, 'Featured Story', is_featured=True, popularity_score=1.0,
            published_at=days_ago(50), duration_sec=900
        ),
        'popular': create_test_content(
            db_session, 'Popular Song', type='music', popularity_score=80.0,
            published_at=days_ago(40), tags=['music'], duration_sec=120
        ),
        'fresh': create_test_content(
            db_session, 'Fresh Meditation', type='meditation', age_range='6-8',
            popularity_score=3.0, published_at=days_ago(1), is_new_collection=True,
            tags=['calming'], duration_sec=300
        ),
    }
    db_session.commit()
    return items


class TestListContent:
    """Tests for ContentService.list_content."""

    def test_default_order_is_featured_then_popularity(self, app, db_session, catalog):
        items, total = ContentService.list_content(db_session)

        assert total == 3
        assert [c.slug for c in items] == ['featured-story', 'popular-song', 'fresh-meditation']

    def test_sort_new(self, app, db_session, catalog):
        items, _ = ContentService.list_content(db_session, sort='new')
        assert [c.slug for c in items] == ['fresh-meditation', 'popular-song', 'featured-story']

    def test_sort_duration(self, app, db_session, catalog):
        items, _ = ContentService.list_content(db_session, sort='duration')
        assert [c.slug for c in items] == ['popular-song', 'fresh-meditation', 'featured-story']

    def test_sort_ranked(self, app, db_session, catalog):
        """Ranked order uses the computed score: featured boost, log popularity, recency."""
        items, _ = ContentService.list_content(db_session, sort='ranked')
        assert [c.slug for c in items] == ['featured-story', 'popular-song', 'fresh-meditation']

    def test_invalid_sort_rejected(self, app, db_session, catalog):
        with pytest.raises(ValidationError):
            ContentService.list_content(db_session, sort='random')

    def test_filters(self, app, db_session, catalog):
        by_type, _ = ContentService.list_content(db_session, type='music')
        by_age, _ = ContentService.list_content(db_session, age_range='6-8')
        by_tag, _ = ContentService.list_content(db_session, tags=['calming', 'adventure'])
        by_flag, _ = ContentService.list_content(db_session, is_new_collection=True)

        assert [c.slug for c in by_type] == ['popular-song']
        assert [c.slug for c in by_age] == ['fresh-meditation']
        assert [c.slug for c in by_tag] == ['fresh-meditation']
        assert [c.slug for c in by_flag] == ['fresh-meditation']

    def test_language_filter(self, app, db_session, catalog, sample_bilingual_content):
        items, total = ContentService.list_content(db_session, language='hi')

        assert total == 1
        assert items[0].id == sample_bilingual_content.id

    def test_archived_content_excluded(self, app, db_session, catalog, sample_archived_content):
        _, total = ContentService.list_content(db_session)
        assert total == 3

    def test_limit_clamped(self, app, db_session, catalog):
        items, total = ContentService.list_content(db_session, limit=0)
        assert len(items) == 1
        assert total == 3

        items, _ = ContentService.list_content(db_session, limit=500, offset=-5)
        assert len(items) == 3

    def test_offset(self, app, db_session, catalog):
        items, _ = ContentService.list_content(db_session, limit=2, offset=2)
        assert [c.slug for c in items] == ['fresh-meditation']


class TestSearchContent:
    """Tests for ContentService.search_content."""

    def test_search_title_case_insensitive(self, app, db_session, catalog):
        items, total = ContentService.search_content(db_session, 'popular SONG')
        assert total == 1
        assert items[0].slug == 'popular-song'

    def test_search_variant_title(self, app, db_session, sample_bilingual_content):
        items, _ = ContentService.search_content(db_session, 'कहानी')
        assert [c.id for c in items] == [sample_bilingual_content.id]

    def test_search_tags(self, app, db_session, sample_content):
        items, _ = ContentService.search_content(db_session, 'folk tales')
        assert [c.id for c in items] == [sample_content.id]

    def test_wildcards_are_literal(self, app, db_session, catalog):
        _, total = ContentService.search_content(db_session, '%%')
        assert total == 0

    def test_short_query_rejected(self, app, db_session):
        with pytest.raises(ValidationError):
            ContentService.search_content(db_session, ' a ')


# =============================================================================
# available_languages Tests
# =============================================================================

class TestAvailableLanguages:
    """Tests for ContentService.available_languages."""

    def test_english_always_included(self, app, db_session):
        assert [lang.value for lang in ContentService.available_languages(db_session)] == ['en']

    def test_includes_variant_languages(self, app, db_session, sample_bilingual_content):
        assert [lang.value for lang in ContentService.available_languages(db_session)] == ['en', 'hi']

    def test_archived_content_ignored(self, app, db_session, sample_bilingual_content):
        ContentService.archive_content(db_session, sample_bilingual_content.id)
        db_session.commit()

        assert [lang.value for lang in ContentService.available_languages(db_session)] == ['en']


# =============================================================================
# Home Sections and Stats Tests
# =============================================================================

class TestHomeContent:
    """Tests for ContentService.home_content."""

    def test_sections(self, app, db_session, catalog, sample_archived_content):
        sections = ContentService.home_content(db_session)
        ranked, _ = ContentService.list_content(db_session, sort='ranked')

        assert [item.id for item in sections['featured']] == [catalog['featured'].id]
        assert [item.id for item in sections['recommended']] == [item.id for item in ranked]
        assert sample_archived_content.id not in [item.id for item in sections['recommended']]

    def test_section_limits(self, app, db_session, catalog):
        sections = ContentService.home_content(db_session, featured_limit=1, recommended_limit=2)

        assert len(sections['featured']) == 1
        assert len(sections['recommended']) == 2


class TestContentStats:
    """Tests for ContentService.content_stats."""

    def test_empty_catalog(self, app, db_session):
        stats = ContentService.content_stats(db_session)

        assert stats['total'] == 0
        assert set(stats['by_type'].values()) == {0}
        assert stats['by_age_range'] == {'3-5': 0, '6-8': 0, '9-12': 0}
        assert stats['by_tag'] == {}

    def test_counts_active_content_only(self, app, db_session, catalog, sample_archived_content):
        stats = ContentService.content_stats(db_session)

        assert stats['total'] == 3
        assert stats['by_type'] == {'story': 1, 'affirmation': 0, 'meditation': 1, 'music': 1}
        assert stats['by_age_range'] == {'3-5': 2, '6-8': 1, '9-12': 0}
        assert list(stats['by_tag'].items()) == [('calming', 1), ('music', 1)]

    def test_tags_ordered_by_use(self, app, db_session, catalog, sample_content):
        stats = ContentService.content_stats(db_session)

        assert list(stats['by_tag'].items()) == [('calming', 2), ('folk_tales', 1), ('music', 1)]
