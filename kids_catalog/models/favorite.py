"""
Favorite Model for Kids Catalog Service.

A per-kid bookmark of a content item. Favorites are only created and
removed, never updated.
"""

from datetime import datetime, timezone

from sqlalchemy import Index, UniqueConstraint

from kids_catalog.models import db


class Favorite(db.Model):
    """
    SQLAlchemy model representing a kid's favorite content item.

    Attributes:
        id: Integer primary key
        user_id: Parent account that owns the kid profile
        kid_id: Kid profile the favorite belongs to
        content_id: Foreign key to the favorited content
        created_at: Timestamp when the favorite was added
    """

    __tablename__ = 'favorites'

    id = db.Column(db.Integer, primary_key=True)

    # Identity references (owned by the external account service)
    user_id = db.Column(db.String(36), nullable=False, index=True)
    kid_id = db.Column(db.String(36), nullable=False, index=True)

    content_id = db.Column(db.Integer, db.ForeignKey('contents.id'), nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)

    __table_args__ = (
        UniqueConstraint('kid_id', 'content_id', name='uq_favorite_kid_content'),
        Index('ix_favorites_user_kid', 'user_id', 'kid_id'),
    )

    content = db.relationship('Content', backref=db.backref('favorites', lazy='dynamic'))

    def to_dict(self, include_content=False):
        result = {
            'id': self.id,
            'user_id': self.user_id,
            'kid_id': self.kid_id,
            'content_id': self.content_id,
            'added_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_content and self.content is not None:
            result['content'] = self.content.to_dict()
        return result

    def __repr__(self):
        return f'<Favorite kid={self.kid_id} content={self.content_id}>'
