"""
Content Models for Kids Catalog Service.

Represents playable media items (stories, affirmations, meditations, music)
with their per-language variants, editorial tags, engagement counters and
lifecycle status.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional
import uuid

from sqlalchemy import CheckConstraint, Index, UniqueConstraint
from sqlalchemy.orm.collections import attribute_keyed_dict

from kids_catalog.models import db
from kids_catalog.models.enums import (
    ContentTag,
    Language,
    LifecycleStatus,
)


@dataclass(frozen=True)
class LanguageVariant:
    """
    Language-specific text and media of a content item.

    A value object: it is stored as a ContentVariant row but is never
    addressed on its own, only through its content item and language.
    """
    title: str
    description: Optional[str] = None
    audio_url: Optional[str] = None
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    key_value: Optional[str] = None
    summary: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict) -> 'LanguageVariant':
        """Build a variant from an API payload (snake_case keys)."""
        metadata = data.get('metadata') or {}
        return cls(
            title=data.get('title'),
            description=data.get('description'),
            audio_url=data.get('audio_url'),
            image_url=data.get('image_url'),
            thumbnail_url=data.get('thumbnail_url'),
            key_value=data.get('key_value', metadata.get('key_value')),
            summary=data.get('summary', metadata.get('summary')),
        )

    def with_urls(self, normalize: Callable[[Optional[str]], Optional[str]]) -> 'LanguageVariant':
        """Return a copy with every media URL passed through normalize."""
        return replace(
            self,
            audio_url=normalize(self.audio_url),
            image_url=normalize(self.image_url),
            thumbnail_url=normalize(self.thumbnail_url),
        )

    def to_dict(self) -> Dict:
        return {
            'title': self.title,
            'description': self.description,
            'audio_url': self.audio_url,
            'image_url': self.image_url,
            'thumbnail_url': self.thumbnail_url,
            'metadata': {
                'key_value': self.key_value,
                'summary': self.summary,
            },
        }


class ContentVariant(db.Model):
    """
    Stored form of a LanguageVariant.

    One row per (content, language); the unique constraint makes the
    languages mapping of a content item a true map.
    """

    __tablename__ = 'content_variants'

    id = db.Column(db.Integer, primary_key=True)
    content_id = db.Column(db.Integer, db.ForeignKey('contents.id', ondelete='CASCADE'), nullable=False, index=True)
    language = db.Column(db.String(5), nullable=False)

    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    audio_url = db.Column(db.String(1000), nullable=True)
    image_url = db.Column(db.String(1000), nullable=True)
    thumbnail_url = db.Column(db.String(1000), nullable=True)

    # Per-language metadata
    key_value = db.Column(db.String(100), nullable=True)
    summary = db.Column(db.String(1000), nullable=True)

    __table_args__ = (
        UniqueConstraint('content_id', 'language', name='uq_content_variant_language'),
        CheckConstraint("language IN ('en', 'hi')", name='check_content_variant_language'),
    )

    def to_variant(self) -> LanguageVariant:
        return LanguageVariant(
            title=self.title,
            description=self.description,
            audio_url=self.audio_url,
            image_url=self.image_url,
            thumbnail_url=self.thumbnail_url,
            key_value=self.key_value,
            summary=self.summary,
        )

    def update_from(self, variant: LanguageVariant) -> None:
        self.title = variant.title
        self.description = variant.description
        self.audio_url = variant.audio_url
        self.image_url = variant.image_url
        self.thumbnail_url = variant.thumbnail_url
        self.key_value = variant.key_value
        self.summary = variant.summary

    def __repr__(self):
        return f'<ContentVariant {self.content_id}:{self.language}>'


class ContentTagAssignment(db.Model):
    """Editorial tag attached to a content item."""

    __tablename__ = 'content_tags'

    id = db.Column(db.Integer, primary_key=True)
    content_id = db.Column(db.Integer, db.ForeignKey('contents.id', ondelete='CASCADE'), nullable=False, index=True)
    tag = db.Column(db.String(50), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint('content_id', 'tag', name='uq_content_tag'),
    )

    def __repr__(self):
        return f'<ContentTagAssignment {self.content_id}:{self.tag}>'


class Content(db.Model):
    """
    SQLAlchemy model representing a playable content item.

    Text and media live in per-language variants. Records imported from
    the pre-bilingual catalog may still carry legacy flat fields until
    the fold_legacy_fields migration moves them into a variant.

    Attributes:
        id: Integer primary key (internal, used as stable sort tie-break)
        uuid: UUID for external API references
        type: Content type (story/affirmation/meditation/music)
        title: Canonical title the slug is derived from
        slug: Globally unique URL identifier
        duration_sec: Playback duration in seconds
        age_range: Target age bracket
        default_language: Language served when the requested one is missing
        legacy_*: Flat pre-bilingual fields, read only as a last fallback
        is_featured: Editorial featuring flag
        is_new_collection: Shown in the "new collection" rail
        is_trending_now: Shown in the "trending now" rail
        popularity_score: Engagement score (meaning depends on POPULARITY_SCHEME)
        published_at: Publication timestamp used for recency
        status: Lifecycle status ('active' / 'archived')
        view_count: Number of detail views
        favorite_count: Number of favorites across all kids
        category_id: Optional owning category
        created_at: Timestamp when content was created
        updated_at: Timestamp of last update
    """

    __tablename__ = 'contents'

    # Primary key (internal use)
    id = db.Column(db.Integer, primary_key=True)

    # UUID for external API references
    uuid = db.Column(db.String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()), index=True)

    # Classification
    type = db.Column(db.String(20), nullable=False)
    age_range = db.Column(db.String(10), nullable=False)

    # Canonical title and slug
    title = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(220), nullable=False, unique=True, index=True)

    duration_sec = db.Column(db.Integer, nullable=False)
    default_language = db.Column(db.String(5), nullable=False, default=Language.EN.value)

    # Legacy flat fields (pre-bilingual records only)
    legacy_title = db.Column(db.String(200), nullable=True)
    legacy_description = db.Column(db.Text, nullable=True)
    legacy_audio_url = db.Column(db.String(1000), nullable=True)
    legacy_image_url = db.Column(db.String(1000), nullable=True)
    legacy_thumbnail_url = db.Column(db.String(1000), nullable=True)

    # Editorial flags
    is_featured = db.Column(db.Boolean, default=False, nullable=False)
    is_new_collection = db.Column(db.Boolean, default=False, nullable=False)
    is_trending_now = db.Column(db.Boolean, default=False, nullable=False)

    # Ranking inputs
    popularity_score = db.Column(db.Float, default=0.0, nullable=False)
    published_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)
    view_count = db.Column(db.Integer, default=0, nullable=False)
    favorite_count = db.Column(db.Integer, default=0, nullable=False)

    # Lifecycle
    status = db.Column(db.String(20), default=LifecycleStatus.ACTIVE.value, nullable=False)

    # Categorization
    category_id = db.Column(db.String(36), db.ForeignKey('categories.id'), nullable=True, index=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, nullable=True, onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        CheckConstraint(
            "type IN ('story', 'affirmation', 'meditation', 'music')",
            name='check_content_type'
        ),
        CheckConstraint(
            "age_range IN ('3-5', '6-8', '9-12')",
            name='check_content_age_range'
        ),
        CheckConstraint("status IN ('active', 'archived')", name='check_content_status'),
        CheckConstraint('duration_sec >= 1', name='check_content_duration'),
        CheckConstraint('view_count >= 0', name='check_content_view_count'),
        CheckConstraint('favorite_count >= 0', name='check_content_favorite_count'),
        Index('ix_contents_type_status', 'type', 'status'),
        Index('ix_contents_age_range_status', 'age_range', 'status'),
        Index('ix_contents_featured_status', 'is_featured', 'status'),
        Index('ix_contents_popularity_status', 'popularity_score', 'status'),
        Index('ix_contents_published_status', 'published_at', 'status'),
    )

    # Relationships
    variants = db.relationship(
        'ContentVariant',
        collection_class=attribute_keyed_dict('language'),
        cascade='all, delete-orphan',
        backref='content'
    )
    tag_assignments = db.relationship(
        'ContentTagAssignment',
        cascade='all, delete-orphan',
        backref='content'
    )
    category = db.relationship('Category', backref=db.backref('contents', lazy='dynamic'))

    @property
    def is_active(self) -> bool:
        return self.status == LifecycleStatus.ACTIVE.value

    @property
    def languages(self) -> Dict[Language, LanguageVariant]:
        """Stored variants keyed by language."""
        return {
            Language(code): row.to_variant()
            for code, row in self.variants.items()
        }

    @property
    def available_languages(self) -> List[str]:
        """Language codes a client can switch to, default language included."""
        codes = set(self.variants.keys())
        codes.add(self.default_language)
        return [language.value for language in Language if language.value in codes]

    @property
    def tags(self) -> List[str]:
        return sorted(assignment.tag for assignment in self.tag_assignments)

    def set_tags(self, tags: List[ContentTag]) -> None:
        """Replace the tag set, keeping rows for tags that stay."""
        wanted = {tag.value for tag in tags}
        self.tag_assignments = [a for a in self.tag_assignments if a.tag in wanted]
        present = {a.tag for a in self.tag_assignments}
        for value in sorted(wanted - present):
            self.tag_assignments.append(ContentTagAssignment(tag=value))

    @property
    def has_legacy_fields(self) -> bool:
        return bool(self.legacy_title or self.legacy_audio_url or self.legacy_image_url)

    def legacy_variant(self) -> Optional[LanguageVariant]:
        """The flat pre-bilingual fields as a variant, if any were stored."""
        if not self.has_legacy_fields:
            return None
        return LanguageVariant(
            title=self.legacy_title or self.title,
            description=self.legacy_description,
            audio_url=self.legacy_audio_url,
            image_url=self.legacy_image_url,
            thumbnail_url=self.legacy_thumbnail_url,
        )

    def to_dict(self):
        """
        Serialize the content item with all stored variants.

        Used by admin endpoints; end-user responses go through
        ContentService.resolve to get a single-language view.
        """
        return {
            'id': self.id,
            'uuid': self.uuid,
            'type': self.type,
            'title': self.title,
            'slug': self.slug,
            'duration_sec': self.duration_sec,
            'age_range': self.age_range,
            'tags': self.tags,
            'default_language': self.default_language,
            'available_languages': self.available_languages,
            'languages': {
                language.value: variant.to_dict()
                for language, variant in self.languages.items()
            },
            'is_featured': self.is_featured,
            'is_new_collection': self.is_new_collection,
            'is_trending_now': self.is_trending_now,
            'popularity_score': self.popularity_score,
            'published_at': self.published_at.isoformat() if self.published_at else None,
            'status': self.status,
            'view_count': self.view_count,
            'favorite_count': self.favorite_count,
            'category_id': self.category_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

    def __repr__(self):
        return f'<Content {self.slug}>'
