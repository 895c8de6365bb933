"""
Category Service for Kids Catalog.

Category management and the content-count ledger.

Key features:
- Category create/update/archive with unique name and slug
- Atomic content_count increment/decrement, never below zero
- Full recompute that reconciles every cached count with the content table
- Deletion guarded by subcategory and active-content checks
"""

import logging
import re
from typing import Dict, List, Optional

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from kids_catalog.models.category import Category
from kids_catalog.models.content import Content
from kids_catalog.models.enums import LifecycleStatus
from kids_catalog.services.errors import (
    CategoryHasChildrenError,
    CategoryHasContentError,
    ConflictError,
    NotFoundError,
    RetryableError,
    ValidationError,
    storage_errors,
)
from kids_catalog.services.slug_service import slugify
from kids_catalog.utils.db import expire_cached

logger = logging.getLogger(__name__)

_COLOR_PATTERN = re.compile(r'^#[0-9A-Fa-f]{6}$')

_ACTIVE = LifecycleStatus.ACTIVE.value


class CategoryService:
    """
    Category management service for the Kids Catalog.

    This service handles:
    1. Creating and editing categories
    2. Maintaining the denormalized content_count per category
    3. Reconciling cached counts against the content table
    4. Deleting categories once they are empty

    Usage:
        category = CategoryService.create_category(
            db.session,
            name='Bedtime Stories',
            description='Stories for winding down'
        )

        CategoryService.increment_content_count(db.session, category.id)

        counts = CategoryService.recompute_all_counts(db.session)

    Note:
        Changes are flushed but not committed. The caller is responsible
        for committing the transaction.
    """

    NAME_MAX_LENGTH = 100
    DESCRIPTION_MAX_LENGTH = 500

    # -------------------------------------------------------------------------
    # Category management
    # -------------------------------------------------------------------------

    @classmethod
    def create_category(
        cls,
        db_session,
        name: str,
        description: Optional[str] = None,
        parent_id: Optional[str] = None,
        sort_order: int = 0,
        color: Optional[str] = None,
        icon: Optional[str] = None,
        image_url: Optional[str] = None
    ) -> Category:
        """
        Create a new category.

        Args:
            db_session: SQLAlchemy database session
            name: Unique category name
            description: Optional description
            parent_id: Optional parent category id for nesting
            sort_order: Display order within parent
            color: Display color as #RRGGBB
            icon: Icon name
            image_url: Optional cover image path or URL

        Returns:
            Category: The created category

        Raises:
            ValidationError: If fields are missing or malformed
            NotFoundError: If the parent category does not exist
            ConflictError: If the name or derived slug is already taken
        """
        name = cls._validate_name(name)
        slug = slugify(name)
        if not slug:
            raise ValidationError('Category name must contain letters or digits', {'name': name})

        if parent_id is not None and db_session.get(Category, parent_id) is None:
            raise NotFoundError('Parent category not found', {'parent_id': parent_id})

        # Fast-path check; the unique indexes decide on a race
        if cls._name_taken(db_session, name, slug):
            raise ConflictError('Category name already exists', {'name': name, 'slug': slug})

        category = Category(
            name=name,
            slug=slug,
            description=cls._validate_description(description),
            parent_id=parent_id,
            sort_order=cls._validate_sort_order(sort_order),
            color=cls._validate_color(color) if color is not None else Category.DEFAULT_COLOR,
            icon=icon.strip() if icon else Category.DEFAULT_ICON,
            image_url=image_url,
            status=_ACTIVE,
            content_count=0
        )
        db_session.add(category)
        cls._flush_unique(db_session, {'name': name, 'slug': slug})

        logger.info(f"Created category '{name}' ({category.id})")
        return category

    @classmethod
    def update_category(
        cls,
        db_session,
        category_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        sort_order: Optional[int] = None,
        color: Optional[str] = None,
        icon: Optional[str] = None,
        image_url: Optional[str] = None
    ) -> Category:
        """
        Update a category's information.

        Only provided fields are updated. A changed name regenerates the slug.

        Raises:
            NotFoundError: If the category does not exist
            ValidationError: If provided values are invalid
            ConflictError: If the new name or slug is already taken
        """
        category = cls._get_or_404(db_session, category_id)

        if name is not None:
            name = cls._validate_name(name)
            if name != category.name:
                slug = slugify(name)
                if not slug:
                    raise ValidationError('Category name must contain letters or digits', {'name': name})
                if cls._name_taken(db_session, name, slug, exclude_id=category.id):
                    raise ConflictError('Category name already exists', {'name': name, 'slug': slug})
                category.name = name
                category.slug = slug

        if description is not None:
            category.description = cls._validate_description(description)

        if sort_order is not None:
            category.sort_order = cls._validate_sort_order(sort_order)

        if color is not None:
            category.color = cls._validate_color(color)

        if icon is not None:
            category.icon = icon.strip() or Category.DEFAULT_ICON

        if image_url is not None:
            category.image_url = image_url or None

        cls._flush_unique(db_session, {'name': category.name, 'slug': category.slug})
        return category

    @classmethod
    def archive_category(cls, db_session, category_id: str) -> Category:
        """Hide a category from listings without touching its content."""
        category = cls._get_or_404(db_session, category_id)
        category.status = LifecycleStatus.ARCHIVED.value
        return category

    @classmethod
    def restore_category(cls, db_session, category_id: str) -> Category:
        category = cls._get_or_404(db_session, category_id)
        category.status = _ACTIVE
        return category

    @classmethod
    def delete_category(cls, db_session, category_id: str) -> None:
        """
        Permanently delete a category.

        The check runs against the content table rather than the cached
        count, so a drifted cache can neither block nor allow a delete
        wrongly. Archived content still pointing at the category is
        detached.

        Raises:
            NotFoundError: If the category does not exist
            CategoryHasChildrenError: If any subcategory exists
            CategoryHasContentError: If active content references it
        """
        category = cls._get_or_404(db_session, category_id)

        with storage_errors():
            child_count = db_session.scalar(
                select(func.count()).select_from(Category).where(Category.parent_id == category.id)
            )
            if child_count:
                raise CategoryHasChildrenError(
                    f'Cannot delete category with {child_count} subcategories',
                    {'category_id': category.id, 'children': child_count}
                )

            active_count = cls.count_active_content(db_session, category.id)
            if active_count:
                raise CategoryHasContentError(
                    f'Cannot delete category with {active_count} active content items',
                    {'category_id': category.id, 'active_content': active_count}
                )

            db_session.execute(
                update(Content)
                .where(Content.category_id == category.id)
                .values(category_id=None)
                .execution_options(synchronize_session=False)
            )
            db_session.delete(category)
            db_session.flush()

        logger.info(f"Deleted category '{category.name}' ({category.id})")

    @classmethod
    def get_category(cls, db_session, category_id: str) -> Optional[Category]:
        return db_session.get(Category, category_id)

    @classmethod
    def get_category_by_slug(cls, db_session, slug: str) -> Optional[Category]:
        """Get an active category by slug."""
        return db_session.query(Category).filter_by(slug=slug, status=_ACTIVE).first()

    @classmethod
    def list_categories(cls, db_session, top_level_only: bool = False, include_archived: bool = False) -> List[Category]:
        """
        List categories ordered by sort_order, then name.

        Args:
            db_session: SQLAlchemy database session
            top_level_only: Only return categories without a parent
            include_archived: Include archived categories
        """
        query = db_session.query(Category)
        if not include_archived:
            query = query.filter(Category.status == _ACTIVE)
        if top_level_only:
            query = query.filter(Category.parent_id.is_(None))
        return query.order_by(Category.sort_order.asc(), Category.name.asc()).all()

    @classmethod
    def list_subcategories(cls, db_session, parent_slug: str) -> List[Category]:
        parent = cls.get_category_by_slug(db_session, parent_slug)
        if parent is None:
            raise NotFoundError('Category not found', {'slug': parent_slug})
        return parent.children.filter_by(status=_ACTIVE).order_by(
            Category.sort_order.asc(), Category.name.asc()
        ).all()

    # -------------------------------------------------------------------------
    # Content-count ledger
    # -------------------------------------------------------------------------

    @classmethod
    def increment_content_count(cls, db_session, category_id: str, amount: int = 1) -> None:
        """Atomically add amount to a category's cached content count."""
        amount = cls._validate_amount(amount)
        with storage_errors():
            db_session.execute(
                update(Category)
                .where(Category.id == category_id)
                .values(content_count=Category.content_count + amount)
                .execution_options(synchronize_session=False)
            )
        expire_cached(db_session, Category, category_id, 'content_count')

    @classmethod
    def decrement_content_count(cls, db_session, category_id: str, amount: int = 1) -> None:
        """Atomically subtract amount from a category's cached count, stopping at zero."""
        amount = cls._validate_amount(amount)
        with storage_errors():
            db_session.execute(
                update(Category)
                .where(Category.id == category_id)
                .values(content_count=case(
                    (Category.content_count > amount, Category.content_count - amount),
                    else_=0
                ))
                .execution_options(synchronize_session=False)
            )
        expire_cached(db_session, Category, category_id, 'content_count')

    @classmethod
    def apply_content_delta(cls, db_session, category_id: Optional[str], delta: int) -> bool:
        """
        Apply a content-count change caused by a content write.

        Failures are logged and swallowed: a drifted count is repaired by
        recompute_all_counts, while a failed user-facing write is not.

        Returns:
            True if the count was updated
        """
        if not category_id or delta == 0:
            return False
        try:
            if delta > 0:
                cls.increment_content_count(db_session, category_id, delta)
            else:
                cls.decrement_content_count(db_session, category_id, -delta)
            return True
        except (SQLAlchemyError, RetryableError) as e:
            logger.error(f"Content count update failed for category {category_id} (delta {delta}): {e}")
        return False

    @classmethod
    def count_active_content(cls, db_session, category_id: str) -> int:
        return db_session.scalar(
            select(func.count()).select_from(Content).where(
                Content.category_id == category_id,
                Content.status == _ACTIVE
            )
        ) or 0

    @classmethod
    def recompute_all_counts(cls, db_session) -> Dict[str, int]:
        """
        Reconcile every category's content_count with the content table.

        Counts are read with one grouped query and written back per
        category with a single-row UPDATE, so no lock is held across
        the scan and live increments keep flowing. Increments that land
        between the read and the write are corrected by the next run.

        Returns:
            Mapping of category id to the count written

        Note:
            Per-category failures are logged and skipped.
        """
        with storage_errors():
            rows = db_session.execute(
                select(Content.category_id, func.count())
                .where(Content.category_id.is_not(None), Content.status == _ACTIVE)
                .group_by(Content.category_id)
            ).all()
            actual = {category_id: count for category_id, count in rows}
            category_ids = db_session.scalars(select(Category.id)).all()

        reconciled = {}
        for category_id in category_ids:
            target = actual.get(category_id, 0)
            try:
                db_session.execute(
                    update(Category)
                    .where(Category.id == category_id, Category.content_count != target)
                    .values(content_count=target)
                    .execution_options(synchronize_session=False)
                )
                expire_cached(db_session, Category, category_id, 'content_count')
                reconciled[category_id] = target
            except SQLAlchemyError as e:
                logger.error(f"Recompute failed for category {category_id}: {e}")

        logger.info(f"Recomputed content counts for {len(reconciled)} of {len(category_ids)} categories")
        return reconciled

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @classmethod
    def _get_or_404(cls, db_session, category_id: str) -> Category:
        with storage_errors():
            category = db_session.get(Category, category_id)
        if category is None:
            raise NotFoundError('Category not found', {'category_id': category_id})
        return category

    @classmethod
    def _flush_unique(cls, db_session, details: Dict) -> None:
        try:
            with storage_errors():
                db_session.flush()
        except IntegrityError as e:
            db_session.rollback()
            raise ConflictError('Category name already exists', details) from e

    @classmethod
    def _name_taken(cls, db_session, name: str, slug: str, exclude_id: Optional[str] = None) -> bool:
        query = db_session.query(Category.id).filter((Category.name == name) | (Category.slug == slug))
        if exclude_id is not None:
            query = query.filter(Category.id != exclude_id)
        with storage_errors():
            return query.first() is not None

    @classmethod
    def _validate_name(cls, name) -> str:
        if not isinstance(name, str) or not name.strip():
            raise ValidationError('Category name is required')
        name = name.strip()
        if len(name) > cls.NAME_MAX_LENGTH:
            raise ValidationError(f'Category name must be at most {cls.NAME_MAX_LENGTH} characters')
        return name

    @classmethod
    def _validate_description(cls, description) -> str:
        if description is None:
            return ''
        if not isinstance(description, str):
            raise ValidationError('Category description must be a string')
        description = description.strip()
        if len(description) > cls.DESCRIPTION_MAX_LENGTH:
            raise ValidationError(f'Category description must be at most {cls.DESCRIPTION_MAX_LENGTH} characters')
        return description

    @staticmethod
    def _validate_sort_order(sort_order) -> int:
        if isinstance(sort_order, bool) or not isinstance(sort_order, int):
            raise ValidationError('sort_order must be an integer')
        return sort_order

    @staticmethod
    def _validate_color(color) -> str:
        if not isinstance(color, str) or not _COLOR_PATTERN.match(color):
            raise ValidationError('color must be a hex color like #6366f1', {'color': color})
        return color

    @staticmethod
    def _validate_amount(amount) -> int:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 1:
            raise ValidationError('amount must be a positive integer', {'amount': amount})
        return amount
