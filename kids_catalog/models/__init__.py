"""
Kids Catalog Models Package.

SQLAlchemy models for the Kids Catalog service including:
- Content (playable media items with per-language variants and tags)
- Categories (groupings with a denormalized content count)
- Favorites (per-kid bookmarks)
- Kid Profiles (backing store for the kid ownership lookup)
"""

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    All models should inherit from db.Model which uses this Base class.
    """
    pass


# SQLAlchemy database instance
db = SQLAlchemy(model_class=Base)


# Import models after db is defined to avoid circular imports
from kids_catalog.models.enums import (
    AgeRange,
    ContentTag,
    ContentType,
    Language,
    LifecycleStatus,
)
from kids_catalog.models.category import Category
from kids_catalog.models.content import (
    Content,
    ContentTagAssignment,
    ContentVariant,
    LanguageVariant,
)
from kids_catalog.models.favorite import Favorite
from kids_catalog.models.kid import KidProfile

__all__ = [
    'db',
    'Base',
    'AgeRange',
    'ContentTag',
    'ContentType',
    'Language',
    'LifecycleStatus',
    'Category',
    'Content',
    'ContentTagAssignment',
    'ContentVariant',
    'LanguageVariant',
    'Favorite',
    'KidProfile',
]
