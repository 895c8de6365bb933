"""
Kid Profile Model for Kids Catalog Service.

Local copy of the kid profiles owned by the account service. The catalog
only reads it to check that a kid belongs to a parent account.
"""

from datetime import datetime, timezone
import uuid

from kids_catalog.models import db


class KidProfile(db.Model):
    """
    SQLAlchemy model representing a kid profile under a parent account.

    Attributes:
        id: UUID primary key
        user_id: Parent account id
        name: Display name
        is_active: Whether the profile is active
        created_at: Timestamp when the profile was created
    """

    __tablename__ = 'kid_profiles'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'name': self.name,
            'is_active': self.is_active,
        }

    def __repr__(self):
        return f'<KidProfile {self.name}>'
