"""
Content Service for Kids Catalog.

Provides content management for the catalog: creation with slug
allocation, per-language variants, language resolution for delivery,
lifecycle changes, listing and search.

Key features:
- Content creation with enum validation and unique slugs
- Language variant upsert and fallback resolution (requested, default, legacy)
- CDN normalization of every delivered media URL
- Archive/restore with category ledger updates
- Listing with filtering, sorting and pagination
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError

from kids_catalog.models.category import Category
from kids_catalog.models.content import (
    Content,
    ContentTagAssignment,
    ContentVariant,
    LanguageVariant,
)
from kids_catalog.models.enums import (
    AgeRange,
    ContentTag,
    ContentType,
    DEFAULT_LANGUAGE,
    Language,
    LifecycleStatus,
)
from kids_catalog.models.favorite import Favorite
from kids_catalog.services.category_service import CategoryService
from kids_catalog.services.errors import (
    ConflictError,
    NotFoundError,
    RetryableError,
    ValidationError,
    storage_errors,
)
from kids_catalog.services.legacy_adapter import variant_from_flat_fields
from kids_catalog.services.ranking_service import RankingService
from kids_catalog.services.slug_service import slugify
from kids_catalog.utils.cdn import build_asset_url

logger = logging.getLogger(__name__)

_ACTIVE = LifecycleStatus.ACTIVE.value
_ARCHIVED = LifecycleStatus.ARCHIVED.value

# Marks "argument not given" where None is a meaningful value
_UNSET = object()

SOURCE_REQUESTED = 'requested'
SOURCE_DEFAULT = 'default'
SOURCE_LEGACY = 'legacy'


@dataclass
class ResolvedContent:
    """
    A content item as delivered in one language.

    Attributes:
        content: The stored content item
        variant: Effective variant with CDN-normalized URLs
        requested_language: Language the client asked for
        language: Language actually served
        source: Which fallback step produced the variant
        available_languages: Every language the client can switch to
    """
    content: Content
    variant: LanguageVariant
    requested_language: str
    language: str
    source: str
    available_languages: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        content = self.content
        data = {
            'id': content.uuid,
            'slug': content.slug,
            'type': content.type,
            'canonical_title': content.title,
            'duration_sec': content.duration_sec,
            'age_range': content.age_range,
            'tags': content.tags,
            'default_language': content.default_language,
            'is_featured': content.is_featured,
            'is_new_collection': content.is_new_collection,
            'is_trending_now': content.is_trending_now,
            'popularity_score': content.popularity_score,
            'published_at': content.published_at.isoformat() if content.published_at else None,
            'view_count': content.view_count,
            'favorite_count': content.favorite_count,
            'category_id': content.category_id,
            'requested_language': self.requested_language,
            'language': self.language,
            'language_source': self.source,
            'available_languages': self.available_languages,
        }
        data.update(self.variant.to_dict())
        return data


class ContentService:
    """
    Content management service for the Kids Catalog.

    This service handles:
    1. Creating content with a unique slug and a default-language variant
    2. Adding or replacing language variants
    3. Resolving the variant to serve for a requested language
    4. Renaming, editing, archiving and restoring content
    5. Listing and searching active content

    Usage:
        content = ContentService.create_content(
            db.session,
            type='story',
            title='The Sleepy Forest',
            duration_sec=420,
            age_range='3-5',
            audio_url='/assets/audio/sleepy-forest.mp3',
            image_url='/assets/images/sleepy-forest.jpg'
        )

        ContentService.set_language_content(db.session, content.id, 'hi', {
            'title': 'नींद वाला जंगल',
            'audio_url': '/assets/audio/sleepy-forest-hi.mp3',
            'image_url': '/assets/images/sleepy-forest.jpg'
        })

        resolved = ContentService.resolve(db.session, content.id, 'hi')

        items, total = ContentService.list_content(db.session, age_range='3-5', sort='new')

    Note:
        Changes are flushed but not committed. The caller is responsible
        for committing the transaction.
    """

    TITLE_MAX_LENGTH = 200
    DEFAULT_LIMIT = 20
    MAX_LIMIT = 50
    MIN_SEARCH_LENGTH = 2

    SORTS = ('popular', 'new', 'duration', 'ranked')

    HOME_FEATURED_LIMIT = 5
    HOME_RECOMMENDED_LIMIT = 10

    # -------------------------------------------------------------------------
    # Creation and variants
    # -------------------------------------------------------------------------

    @classmethod
    def create_content(
        cls,
        db_session,
        type: str,
        title: str,
        duration_sec: int,
        age_range: str,
        default_language: str = DEFAULT_LANGUAGE.value,
        languages: Optional[Dict[str, Union[Dict, LanguageVariant]]] = None,
        tags: Optional[Iterable[str]] = None,
        description: Optional[str] = None,
        audio_url: Optional[str] = None,
        image_url: Optional[str] = None,
        thumbnail_url: Optional[str] = None,
        key_value: Optional[str] = None,
        summary: Optional[str] = None,
        category_id: Optional[str] = None,
        is_featured: bool = False,
        is_new_collection: bool = False,
        is_trending_now: bool = False,
        popularity_score: float = 0.0,
        published_at: Optional[datetime] = None
    ) -> Content:
        """
        Create a new content item.

        Variants come from `languages` (language code -> variant payload).
        Flat description/audio/image fields, as sent by older clients, are
        turned into the default-language variant when `languages` has none.

        Args:
            db_session: SQLAlchemy database session
            type: Content type (story/affirmation/meditation/music)
            title: Canonical title, the slug is derived from it
            duration_sec: Playback duration in seconds (>= 1)
            age_range: Target age bracket (3-5/6-8/9-12)
            default_language: Language served when the requested one is missing
            languages: Variants keyed by language code
            tags: Editorial tag values
            description..summary: Flat default-language fields
            category_id: Optional owning category
            is_featured: Editorial featuring flag
            is_new_collection: Show in the new collection rail
            is_trending_now: Show in the trending now rail
            popularity_score: Initial popularity score
            published_at: Publication time, defaults to now

        Returns:
            Content: The created content item

        Raises:
            ValidationError: If fields are missing, malformed or not in their enum
            NotFoundError: If the category does not exist
            ConflictError: If another content item already has the derived slug
        """
        content_type = cls._parse_enum(ContentType, type, 'type')
        age = cls._parse_enum(AgeRange, age_range, 'age_range')
        default = cls._parse_language(default_language)
        title = cls._validate_title(title)
        duration_sec = cls._validate_duration(duration_sec)
        tag_values = cls._parse_tags(tags)

        variants = {}
        for code, payload in (languages or {}).items():
            variants[cls._parse_language(code).value] = cls._coerce_variant(payload, code)

        if default.value not in variants:
            flat = variant_from_flat_fields(
                title,
                description=description,
                audio_url=audio_url,
                image_url=image_url,
                thumbnail_url=thumbnail_url,
                key_value=key_value,
                summary=summary,
            )
            if flat is None:
                raise ValidationError(
                    'Content needs a variant in its default language',
                    {'default_language': default.value}
                )
            variants[default.value] = cls._coerce_variant(flat, default.value)

        slug = slugify(title)
        if not slug:
            raise ValidationError('Title must contain letters or digits', {'title': title})

        if category_id is not None and db_session.get(Category, category_id) is None:
            raise NotFoundError('Category not found', {'category_id': category_id})

        # Fast-path check; the unique index decides on a race
        if cls._slug_taken(db_session, slug):
            raise ConflictError('Content slug already exists', {'slug': slug})

        content = Content(
            type=content_type.value,
            age_range=age.value,
            title=title,
            slug=slug,
            duration_sec=duration_sec,
            default_language=default.value,
            is_featured=bool(is_featured),
            is_new_collection=bool(is_new_collection),
            is_trending_now=bool(is_trending_now),
            popularity_score=cls._validate_popularity(popularity_score),
            published_at=cls._normalize_published_at(published_at) if published_at else datetime.now(timezone.utc),
            status=_ACTIVE,
            view_count=0,
            favorite_count=0,
            category_id=category_id
        )
        for code, variant in variants.items():
            row = ContentVariant(language=code)
            row.update_from(variant)
            content.variants[code] = row
        content.set_tags(tag_values)

        db_session.add(content)
        cls._flush_unique(db_session, {'slug': slug})

        CategoryService.apply_content_delta(db_session, category_id, 1)

        logger.info(f"Created content '{title}' ({content.uuid}) with languages {content.available_languages}")
        return content

    @classmethod
    def set_language_content(
        cls,
        db_session,
        content_id: int,
        language: str,
        variant: Union[Dict, LanguageVariant]
    ) -> Content:
        """
        Add or replace the variant of one language.

        A new language becomes available immediately. The default language
        is never changed here.

        Raises:
            NotFoundError: If the content does not exist
            ValidationError: If the language is unsupported or the variant incomplete
            RetryableError: If a concurrent writer inserted the same language first
        """
        content = cls._get_or_404(db_session, content_id, include_archived=True)
        code = cls._parse_language(language).value
        value = cls._coerce_variant(variant, code)

        row = content.variants.get(code)
        if row is None:
            row = ContentVariant(language=code)
            content.variants[code] = row
        row.update_from(value)

        try:
            with storage_errors():
                db_session.flush()
        except IntegrityError as e:
            db_session.rollback()
            raise RetryableError(
                'Language variant was written concurrently',
                {'content_id': content_id, 'language': code}
            ) from e

        logger.info(f"Stored '{code}' variant of content {content.uuid}")
        return content

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    @classmethod
    def resolve(
        cls,
        db_session,
        content_id: int,
        requested_language: Optional[str] = None,
        include_archived: bool = False,
        cdn_base: Optional[str] = None
    ) -> ResolvedContent:
        """
        Resolve the variant to serve for a requested language.

        Fallback order: the requested language, then the default language,
        then the legacy flat fields. Media URLs are CDN-normalized.

        Raises:
            ValidationError: If the requested language is unsupported
            NotFoundError: If the content is missing, archived or has nothing to serve
        """
        with storage_errors():
            content = db_session.get(Content, content_id)
        if content is None:
            raise NotFoundError('Content not found', {'content_id': content_id})
        return cls.localize(content, requested_language, include_archived=include_archived, cdn_base=cdn_base)

    @classmethod
    def localize(
        cls,
        content: Content,
        requested_language: Optional[str] = None,
        include_archived: bool = False,
        cdn_base: Optional[str] = None
    ) -> ResolvedContent:
        """Resolve an already loaded content item. See resolve()."""
        if requested_language is None or requested_language == '':
            requested = content.default_language
        else:
            requested = cls._parse_language(requested_language).value

        if not content.is_active and not include_archived:
            raise NotFoundError('Content not found', {'content_id': content.uuid})

        if requested in content.variants:
            served, source = requested, SOURCE_REQUESTED
            variant = content.variants[requested].to_variant()
        elif content.default_language in content.variants:
            served, source = content.default_language, SOURCE_DEFAULT
            variant = content.variants[content.default_language].to_variant()
        else:
            variant = content.legacy_variant()
            served, source = content.default_language, SOURCE_LEGACY
            if variant is None:
                raise NotFoundError(
                    'Content has no playable variant',
                    {'content_id': content.uuid, 'requested_language': requested}
                )

        variant = variant.with_urls(lambda url: build_asset_url(url, cdn_base=cdn_base))
        return ResolvedContent(
            content=content,
            variant=variant,
            requested_language=requested,
            language=served,
            source=source,
            available_languages=content.available_languages,
        )

    # -------------------------------------------------------------------------
    # Edits and lifecycle
    # -------------------------------------------------------------------------

    @classmethod
    def rename(cls, db_session, content_id: int, new_title: str) -> Content:
        """
        Change the canonical title.

        The slug is regenerated only when the title actually changes.

        Raises:
            NotFoundError: If the content does not exist
            ValidationError: If the title is empty or has no letters or digits
            ConflictError: If another content item already has the new slug
        """
        content = cls._get_or_404(db_session, content_id, include_archived=True)
        title = cls._validate_title(new_title)
        if title == content.title:
            return content

        slug = slugify(title)
        if not slug:
            raise ValidationError('Title must contain letters or digits', {'title': title})

        if slug != content.slug:
            if cls._slug_taken(db_session, slug, exclude_id=content.id):
                raise ConflictError('Content slug already exists', {'slug': slug})

        old_slug = content.slug
        content.title = title
        content.slug = slug
        cls._flush_unique(db_session, {'slug': slug})

        logger.info(f"Renamed content {content.uuid}: slug '{old_slug}' -> '{slug}'")
        return content

    @classmethod
    def update_content(
        cls,
        db_session,
        content_id: int,
        title: Optional[str] = None,
        type: Optional[str] = None,
        age_range: Optional[str] = None,
        duration_sec: Optional[int] = None,
        tags: Optional[Iterable[str]] = None,
        default_language: Optional[str] = None,
        is_featured: Optional[bool] = None,
        is_new_collection: Optional[bool] = None,
        is_trending_now: Optional[bool] = None,
        popularity_score: Optional[float] = None,
        published_at: Optional[datetime] = None,
        category_id: Any = _UNSET
    ) -> Content:
        """
        Update editorial fields of a content item.

        Only provided fields are updated. Pass category_id=None to detach
        the item from its category.

        Raises:
            NotFoundError: If the content or the new category does not exist
            ValidationError: If provided values are invalid
            ConflictError: If a new title collides with another slug
        """
        content = cls._get_or_404(db_session, content_id, include_archived=True)

        if title is not None:
            cls.rename(db_session, content.id, title)

        if type is not None:
            content.type = cls._parse_enum(ContentType, type, 'type').value
        if age_range is not None:
            content.age_range = cls._parse_enum(AgeRange, age_range, 'age_range').value
        if duration_sec is not None:
            content.duration_sec = cls._validate_duration(duration_sec)
        if tags is not None:
            content.set_tags(cls._parse_tags(tags))
        if default_language is not None:
            code = cls._parse_language(default_language).value
            if code not in content.variants:
                raise ValidationError(
                    'Default language needs a stored variant',
                    {'default_language': code}
                )
            content.default_language = code
        if is_featured is not None:
            content.is_featured = bool(is_featured)
        if is_new_collection is not None:
            content.is_new_collection = bool(is_new_collection)
        if is_trending_now is not None:
            content.is_trending_now = bool(is_trending_now)
        if popularity_score is not None:
            content.popularity_score = cls._validate_popularity(popularity_score)
        if published_at is not None:
            content.published_at = cls._normalize_published_at(published_at)

        old_category_id = content.category_id
        if category_id is not _UNSET and category_id != old_category_id:
            if category_id is not None and db_session.get(Category, category_id) is None:
                raise NotFoundError('Category not found', {'category_id': category_id})
            content.category_id = category_id

        with storage_errors():
            db_session.flush()

        if content.is_active and content.category_id != old_category_id:
            CategoryService.apply_content_delta(db_session, old_category_id, -1)
            CategoryService.apply_content_delta(db_session, content.category_id, 1)

        return content

    @classmethod
    def archive_content(cls, db_session, content_id: int) -> Content:
        """Hide a content item from end users. Archiving twice is a no-op."""
        content = cls._get_or_404(db_session, content_id, include_archived=True)
        if not content.is_active:
            return content

        content.status = _ARCHIVED
        with storage_errors():
            db_session.flush()
        CategoryService.apply_content_delta(db_session, content.category_id, -1)

        logger.info(f"Archived content {content.uuid}")
        return content

    @classmethod
    def restore_content(cls, db_session, content_id: int) -> Content:
        """
        Make an archived content item visible again.

        Raises:
            NotFoundError: If the content does not exist
            ValidationError: If the item has nothing to serve in its default language
        """
        content = cls._get_or_404(db_session, content_id, include_archived=True)
        if content.is_active:
            return content

        if content.default_language not in content.variants and not content.has_legacy_fields:
            raise ValidationError(
                'Content has no variant in its default language',
                {'content_id': content.uuid, 'default_language': content.default_language}
            )

        content.status = _ACTIVE
        with storage_errors():
            db_session.flush()
        CategoryService.apply_content_delta(db_session, content.category_id, 1)

        logger.info(f"Restored content {content.uuid}")
        return content

    @classmethod
    def delete_content(cls, db_session, content_id: int) -> None:
        """
        Permanently delete a content item.

        Raises:
            NotFoundError: If the content does not exist
            ConflictError: If favorites still reference it (archive it instead)
        """
        content = cls._get_or_404(db_session, content_id, include_archived=True)

        with storage_errors():
            favorites = db_session.scalar(
                select(func.count()).select_from(Favorite).where(Favorite.content_id == content.id)
            )
        if favorites:
            raise ConflictError(
                'Content is referenced by favorites, archive it instead',
                {'content_id': content.uuid, 'favorites': favorites}
            )

        was_active = content.is_active
        category_id = content.category_id
        with storage_errors():
            db_session.delete(content)
            db_session.flush()
        if was_active:
            CategoryService.apply_content_delta(db_session, category_id, -1)

        logger.info(f"Deleted content {content.uuid}")

    @classmethod
    def record_view(cls, db_session, content_id: int) -> None:
        RankingService.record_view(db_session, content_id)

    # -------------------------------------------------------------------------
    # Lookup, listing and search
    # -------------------------------------------------------------------------

    @classmethod
    def get_content(cls, db_session, content_id: int, include_archived: bool = False) -> Optional[Content]:
        with storage_errors():
            content = db_session.get(Content, content_id)
        if content is None or (not include_archived and not content.is_active):
            return None
        return content

    @classmethod
    def get_content_by_uuid(cls, db_session, content_uuid: str, include_archived: bool = False) -> Optional[Content]:
        query = db_session.query(Content).filter_by(uuid=content_uuid)
        if not include_archived:
            query = query.filter_by(status=_ACTIVE)
        with storage_errors():
            return query.first()

    @classmethod
    def get_content_by_slug(cls, db_session, slug: str) -> Optional[Content]:
        """Get an active content item by slug."""
        with storage_errors():
            return db_session.query(Content).filter_by(slug=slug, status=_ACTIVE).first()

    @classmethod
    def list_content(
        cls,
        db_session,
        type: Optional[str] = None,
        age_range: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        language: Optional[str] = None,
        category_id: Optional[str] = None,
        is_featured: Optional[bool] = None,
        is_new_collection: Optional[bool] = None,
        is_trending_now: Optional[bool] = None,
        sort: str = 'popular',
        limit: int = DEFAULT_LIMIT,
        offset: int = 0
    ) -> Tuple[List[Content], int]:
        """
        List active content with optional filtering, sorting and pagination.

        Args:
            db_session: SQLAlchemy database session
            type: Filter by content type
            age_range: Filter by age bracket
            tags: Keep items carrying any of these tags
            language: Keep items available in this language
            category_id: Filter by category
            is_featured: Filter by featuring flag
            is_new_collection: Filter by new collection flag
            is_trending_now: Filter by trending flag
            sort: 'popular' (default), 'new', 'duration' or 'ranked'
            limit: Page size, clamped to 1..50
            offset: Number of items to skip

        Returns:
            Tuple of (list of Content instances, total count)

        Example:
            items, total = ContentService.list_content(
                db.session,
                type='story',
                tags=['calming'],
                sort='ranked',
                limit=10
            )
        """
        if sort not in cls.SORTS:
            raise ValidationError(f"sort must be one of {', '.join(cls.SORTS)}", {'sort': sort})
        limit, offset = cls._page(limit, offset)

        query = db_session.query(Content).filter(Content.status == _ACTIVE)

        if type is not None:
            query = query.filter(Content.type == cls._parse_enum(ContentType, type, 'type').value)
        if age_range is not None:
            query = query.filter(Content.age_range == cls._parse_enum(AgeRange, age_range, 'age_range').value)
        if tags:
            values = [tag.value for tag in cls._parse_tags(tags)]
            query = query.filter(Content.tag_assignments.any(ContentTagAssignment.tag.in_(values)))
        if language is not None:
            code = cls._parse_language(language).value
            query = query.filter(or_(
                Content.default_language == code,
                Content.variants.any(ContentVariant.language == code)
            ))
        if category_id is not None:
            query = query.filter(Content.category_id == category_id)
        if is_featured is not None:
            query = query.filter(Content.is_featured.is_(bool(is_featured)))
        if is_new_collection is not None:
            query = query.filter(Content.is_new_collection.is_(bool(is_new_collection)))
        if is_trending_now is not None:
            query = query.filter(Content.is_trending_now.is_(bool(is_trending_now)))

        with storage_errors():
            total = query.count()

            if sort == 'ranked':
                # Score depends on the current time, so it is ordered in memory
                ranked = RankingService.rank(query.all())
                return ranked[offset:offset + limit], total

            if sort == 'new':
                query = query.order_by(Content.published_at.desc(), Content.id.asc())
            elif sort == 'duration':
                query = query.order_by(Content.duration_sec.asc(), Content.id.asc())
            else:
                query = query.order_by(*RankingService.listing_order())

            items = query.offset(offset).limit(limit).all()

        return items, total

    @classmethod
    def search_content(
        cls,
        db_session,
        query: str,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0
    ) -> Tuple[List[Content], int]:
        """
        Case-insensitive search over titles, descriptions and tags of active content.

        Raises:
            ValidationError: If the query is shorter than two characters
        """
        term = (query or '').strip()
        if len(term) < cls.MIN_SEARCH_LENGTH:
            raise ValidationError(
                f'Search query must be at least {cls.MIN_SEARCH_LENGTH} characters',
                {'query': query}
            )
        limit, offset = cls._page(limit, offset)
        tag_term = term.lower().replace(' ', '_')

        search = db_session.query(Content).filter(
            Content.status == _ACTIVE,
            or_(
                Content.title.icontains(term, autoescape=True),
                Content.legacy_title.icontains(term, autoescape=True),
                Content.legacy_description.icontains(term, autoescape=True),
                Content.variants.any(or_(
                    ContentVariant.title.icontains(term, autoescape=True),
                    ContentVariant.description.icontains(term, autoescape=True)
                )),
                Content.tag_assignments.any(ContentTagAssignment.tag.icontains(tag_term, autoescape=True))
            )
        )

        with storage_errors():
            total = search.count()
            items = search.order_by(*RankingService.listing_order()).offset(offset).limit(limit).all()
        return items, total

    @classmethod
    def available_languages(cls, db_session) -> List[Language]:
        """Languages offered by active content, English always included."""
        with storage_errors():
            variant_codes = db_session.scalars(
                select(ContentVariant.language)
                .join(Content, ContentVariant.content_id == Content.id)
                .where(Content.status == _ACTIVE)
                .distinct()
            ).all()
            default_codes = db_session.scalars(
                select(Content.default_language).where(Content.status == _ACTIVE).distinct()
            ).all()

        codes = set(variant_codes) | set(default_codes) | {DEFAULT_LANGUAGE.value}
        return [language for language in Language if language.value in codes]

    @classmethod
    def home_content(
        cls,
        db_session,
        featured_limit: int = HOME_FEATURED_LIMIT,
        recommended_limit: int = HOME_RECOMMENDED_LIMIT
    ) -> Dict[str, List[Content]]:
        """
        Sections of the home screen.

        'featured' holds featured items in listing order, 'recommended' the
        best ranked items overall. An item may appear in both.
        """
        featured, _ = cls.list_content(db_session, is_featured=True, limit=featured_limit)
        recommended, _ = cls.list_content(db_session, sort='ranked', limit=recommended_limit)
        return {'featured': featured, 'recommended': recommended}

    @classmethod
    def content_stats(cls, db_session) -> Dict[str, Any]:
        """
        Count active content overall and per type, age range and tag.

        Every type and age range is listed, with 0 where nothing matches.
        Tags are listed only when in use, most used first.
        """
        active = Content.status == _ACTIVE
        with storage_errors():
            by_type = dict(db_session.execute(
                select(Content.type, func.count(Content.id)).where(active).group_by(Content.type)
            ).all())
            by_age_range = dict(db_session.execute(
                select(Content.age_range, func.count(Content.id)).where(active).group_by(Content.age_range)
            ).all())
            tag_count = func.count(ContentTagAssignment.id)
            by_tag = dict(db_session.execute(
                select(ContentTagAssignment.tag, tag_count)
                .join(Content, ContentTagAssignment.content_id == Content.id)
                .where(active)
                .group_by(ContentTagAssignment.tag)
                .order_by(tag_count.desc(), ContentTagAssignment.tag.asc())
            ).all())

        return {
            'total': sum(by_type.values()),
            'by_type': {item.value: by_type.get(item.value, 0) for item in ContentType},
            'by_age_range': {item.value: by_age_range.get(item.value, 0) for item in AgeRange},
            'by_tag': by_tag,
        }

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @classmethod
    def _get_or_404(cls, db_session, content_id: int, include_archived: bool = False) -> Content:
        content = cls.get_content(db_session, content_id, include_archived=include_archived)
        if content is None:
            raise NotFoundError('Content not found', {'content_id': content_id})
        return content

    @classmethod
    def _flush_unique(cls, db_session, details: Dict) -> None:
        try:
            with storage_errors():
                db_session.flush()
        except IntegrityError as e:
            db_session.rollback()
            raise ConflictError('Content slug already exists', details) from e

    @classmethod
    def _slug_taken(cls, db_session, slug: str, exclude_id: Optional[int] = None) -> bool:
        query = db_session.query(Content.id).filter(Content.slug == slug)
        if exclude_id is not None:
            query = query.filter(Content.id != exclude_id)
        with storage_errors():
            return query.first() is not None

    @staticmethod
    def _normalize_published_at(value: datetime) -> datetime:
        """Store publication times in UTC; naive values are taken as UTC."""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @classmethod
    def _page(cls, limit, offset) -> Tuple[int, int]:
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise ValidationError('limit must be an integer', {'limit': limit})
        if isinstance(offset, bool) or not isinstance(offset, int):
            raise ValidationError('offset must be an integer', {'offset': offset})
        return max(1, min(limit, cls.MAX_LIMIT)), max(0, offset)

    @staticmethod
    def _parse_enum(enum_class, value, field_name: str):
        if isinstance(value, enum_class):
            return value
        try:
            return enum_class(value)
        except ValueError:
            allowed = ', '.join(member.value for member in enum_class)
            raise ValidationError(
                f'{field_name} must be one of: {allowed}',
                {field_name: value}
            ) from None

    @classmethod
    def _parse_language(cls, value) -> Language:
        return cls._parse_enum(Language, value, 'language')

    @classmethod
    def _parse_tags(cls, tags) -> List[ContentTag]:
        if tags is None:
            return []
        if isinstance(tags, str):
            raise ValidationError('tags must be a list', {'tags': tags})
        parsed = []
        for tag in tags:
            value = cls._parse_enum(ContentTag, tag, 'tags')
            if value not in parsed:
                parsed.append(value)
        return parsed

    @classmethod
    def _validate_title(cls, title) -> str:
        if not isinstance(title, str) or not title.strip():
            raise ValidationError('Title is required')
        title = title.strip()
        if len(title) > cls.TITLE_MAX_LENGTH:
            raise ValidationError(f'Title must be at most {cls.TITLE_MAX_LENGTH} characters')
        return title

    @staticmethod
    def _validate_duration(duration_sec) -> int:
        if isinstance(duration_sec, bool) or not isinstance(duration_sec, int) or duration_sec < 1:
            raise ValidationError('duration_sec must be a positive integer', {'duration_sec': duration_sec})
        return duration_sec

    @staticmethod
    def _validate_popularity(score) -> float:
        if isinstance(score, bool) or not isinstance(score, (int, float)) or score < 0:
            raise ValidationError('popularity_score must be a non-negative number', {'popularity_score': score})
        return float(score)

    @classmethod
    def _coerce_variant(cls, value, language: str) -> LanguageVariant:
        """Turn a payload into a LanguageVariant and check its required fields."""
        if isinstance(value, dict):
            value = LanguageVariant.from_dict(value)
        elif not isinstance(value, LanguageVariant):
            raise ValidationError('Language content must be an object', {'language': language})

        missing = [
            name for name in ('title', 'audio_url', 'image_url')
            if not isinstance(getattr(value, name), str) or not getattr(value, name).strip()
        ]
        if missing:
            raise ValidationError(
                f"Language content is missing {', '.join(missing)}",
                {'language': language, 'missing': missing}
            )
        return value
