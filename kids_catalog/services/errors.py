"""
Error taxonomy for the Kids Catalog services.

Every service raises subclasses of CatalogError. Each class carries the
HTTP status and machine-readable code the API boundary maps it to.

Example:
    from kids_catalog.services.errors import CatalogError, ConflictError

    try:
        ContentService.rename(db.session, content_id, 'Moon Tale!')
    except ConflictError as e:
        logger.warning(f"Rename rejected: {e}")
"""

from contextlib import contextmanager

from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError


class CatalogError(Exception):
    """
    Base exception for all catalog service errors.

    All service-specific exceptions inherit from this class so the
    boundary can catch any catalog error with a single except clause.
    """

    status_code = 500
    code = 'INTERNAL_ERROR'

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ValidationError(CatalogError):
    """Raised for malformed or missing fields and enum violations."""

    status_code = 400
    code = 'VALIDATION_ERROR'


class NotFoundError(CatalogError):
    """Raised when a referenced record does not exist or is archived."""

    status_code = 404
    code = 'NOT_FOUND'


class OwnershipError(CatalogError):
    """Raised when a kid profile does not belong to the acting user."""

    status_code = 403
    code = 'KID_NOT_OWNED'


class ConflictError(CatalogError):
    """Raised when a slug or name collides with an existing record."""

    status_code = 409
    code = 'CONFLICT'


class DuplicateError(CatalogError):
    """Raised when a kid already has the content in favorites."""

    status_code = 409
    code = 'DUPLICATE_FAVORITE'


class CategoryHasContentError(CatalogError):
    """Raised when deleting a category that still owns active content."""

    status_code = 409
    code = 'CATEGORY_HAS_CONTENT'


class CategoryHasChildrenError(CatalogError):
    """Raised when deleting a category that still has subcategories."""

    status_code = 409
    code = 'CATEGORY_HAS_CHILDREN'


class RetryableError(CatalogError):
    """
    Raised when the storage backend fails transiently.

    Callers may retry with backoff; the services never retry on their own.
    """

    status_code = 503
    code = 'STORAGE_UNAVAILABLE'


@contextmanager
def storage_errors():
    """
    Translate transient storage failures into RetryableError.

    Integrity violations are left alone; each service maps those to the
    domain error that fits the constraint involved.
    """
    try:
        yield
    except (OperationalError, PoolTimeoutError, DisconnectionError) as e:
        raise RetryableError('Storage backend unavailable', {'reason': type(e).__name__}) from e
