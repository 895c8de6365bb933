"""
Kids Catalog Services Package.

Business logic for the Kids Catalog service:
- ContentService: content records, language variants and resolution
- RankingService: popularity counters and ranking scores
- CategoryService: categories and the content-count ledger
- FavoriteService: per-kid favorites
- KidDirectory: kid ownership lookup

Services take the SQLAlchemy session as their first argument, flush but
never commit, and raise CatalogError subclasses (see services.errors).
"""

from kids_catalog.services.errors import (
    CatalogError,
    CategoryHasChildrenError,
    CategoryHasContentError,
    ConflictError,
    DuplicateError,
    NotFoundError,
    OwnershipError,
    RetryableError,
    ValidationError,
)

__all__ = [
    'CatalogError',
    'CategoryHasChildrenError',
    'CategoryHasContentError',
    'ConflictError',
    'DuplicateError',
    'NotFoundError',
    'OwnershipError',
    'RetryableError',
    'ValidationError',
]
