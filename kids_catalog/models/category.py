"""
Category Model for Kids Catalog Service.

Represents a named grouping of content items. Categories support
hierarchical nesting via parent_id and carry a denormalized count of
the active content that references them.
"""

from datetime import datetime, timezone
import uuid

from sqlalchemy import CheckConstraint

from kids_catalog.models import db
from kids_catalog.models.enums import LifecycleStatus


class Category(db.Model):
    """
    SQLAlchemy model representing a content category.

    Examples:
    - "Bedtime Stories" > "Folk Tales"
    - "Calm Down" > "Breathing"

    Attributes:
        id: UUID primary key
        name: Unique category name
        slug: Unique slug derived from the name
        description: Description shown in the app
        parent_id: Foreign key to parent category (for nesting)
        status: Lifecycle status ('active' / 'archived')
        content_count: Cached count of active content in this category
        sort_order: Display order within parent
        color: Hex display color (#RRGGBB)
        icon: Icon name used by the apps
        image_url: Optional cover image path or URL
        created_at: Timestamp when category was created
        updated_at: Timestamp of last update
    """

    __tablename__ = 'categories'

    DEFAULT_COLOR = '#6366f1'
    DEFAULT_ICON = 'folder'

    # Primary key (UUID)
    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Category info
    name = db.Column(db.String(100), nullable=False, unique=True)
    slug = db.Column(db.String(120), nullable=False, unique=True, index=True)
    description = db.Column(db.String(500), nullable=False, default='')

    # Hierarchical nesting
    parent_id = db.Column(db.String(36), db.ForeignKey('categories.id'), nullable=True, index=True)

    # Lifecycle
    status = db.Column(db.String(20), default=LifecycleStatus.ACTIVE.value, nullable=False, index=True)

    # Denormalized cache, reconciled by CategoryService.recompute_all_counts
    content_count = db.Column(db.Integer, default=0, nullable=False)

    # Display
    sort_order = db.Column(db.Integer, default=0, nullable=False, index=True)
    color = db.Column(db.String(7), default=DEFAULT_COLOR, nullable=False)
    icon = db.Column(db.String(50), default=DEFAULT_ICON, nullable=False)
    image_url = db.Column(db.String(1000), nullable=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, nullable=True, onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        CheckConstraint('content_count >= 0', name='check_category_content_count'),
        CheckConstraint("status IN ('active', 'archived')", name='check_category_status'),
    )

    # Self-referential relationship for subcategories
    children = db.relationship(
        'Category',
        backref=db.backref('parent', remote_side=[id]),
        lazy='dynamic'
    )

    @property
    def is_active(self):
        return self.status == LifecycleStatus.ACTIVE.value

    def to_dict(self, include_children=False):
        """
        Serialize category to dictionary.

        Args:
            include_children: Whether to include nested active subcategories

        Returns:
            Dictionary representation of category
        """
        result = {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'description': self.description,
            'parent_id': self.parent_id,
            'status': self.status,
            'is_active': self.is_active,
            'content_count': self.content_count,
            'sort_order': self.sort_order,
            'metadata': {
                'color': self.color,
                'icon': self.icon,
                'image_url': self.image_url,
            },
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

        if include_children:
            result['children'] = [
                child.to_dict(include_children=True)
                for child in self.children.filter_by(
                    status=LifecycleStatus.ACTIVE.value
                ).order_by(Category.sort_order, Category.name)
            ]

        return result

    def __repr__(self):
        return f'<Category {self.name}>'
