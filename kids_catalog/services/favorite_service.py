"""
Favorite Service for Kids Catalog.

Per-kid favorites with ownership validation and idempotent semantics.

Key features:
- Kid ownership check against the identity lookup on every write
- One favorite per (kid, content), enforced by a unique index
- Atomic favorite_count maintenance on the content item
- Bulk add with a per-item report, stored all or nothing on a race
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from kids_catalog.models.content import Content
from kids_catalog.models.enums import LifecycleStatus
from kids_catalog.models.favorite import Favorite
from kids_catalog.services.errors import (
    DuplicateError,
    NotFoundError,
    OwnershipError,
    RetryableError,
    ValidationError,
    storage_errors,
)
from kids_catalog.services.identity_service import KidDirectory, SqlKidDirectory
from kids_catalog.services.ranking_service import RankingService

logger = logging.getLogger(__name__)

_ACTIVE = LifecycleStatus.ACTIVE.value


class FavoriteService:
    """
    Favorite management service for the Kids Catalog.

    This service handles:
    1. Adding and removing favorites for a kid
    2. Checking whether a kid favorited a content item
    3. Listing favorites per kid or per parent account
    4. Keeping Content.favorite_count in step with the favorites table

    Usage:
        favorite = FavoriteService.add_favorite(
            db.session,
            user_id='user-1',
            kid_id=kid.id,
            content_id=content.id
        )

        if FavoriteService.is_favorite(db.session, kid.id, content.id):
            FavoriteService.remove_favorite(db.session, kid.id, content.id)

    Note:
        Ownership is checked through a KidDirectory; by default the local
        kid_profiles table is used. Changes are flushed but not committed.
    """

    MAX_BULK_SIZE = 100
    DEFAULT_MOST_FAVORITED = 10

    @classmethod
    def ensure_kid_owned(
        cls,
        db_session,
        user_id: str,
        kid_id: str,
        kid_directory: Optional[KidDirectory] = None
    ) -> None:
        """
        Raise OwnershipError unless the kid belongs to the user.

        A kid that does not exist at all is reported the same way, so the
        response does not reveal which kid ids exist.
        """
        directory = kid_directory or SqlKidDirectory(db_session)
        with storage_errors():
            owned = directory.kid_belongs_to(kid_id, user_id)
        if not owned:
            raise OwnershipError('Kid profile not found for this account', {'kid_id': kid_id})

    @classmethod
    def add_favorite(
        cls,
        db_session,
        user_id: str,
        kid_id: str,
        content_id: int,
        kid_directory: Optional[KidDirectory] = None
    ) -> Favorite:
        """
        Add a content item to a kid's favorites.

        Args:
            db_session: SQLAlchemy database session
            user_id: Acting parent account
            kid_id: Kid profile to add the favorite for
            content_id: Content item id
            kid_directory: Ownership lookup, defaults to the local kid profiles

        Returns:
            Favorite: The created favorite

        Raises:
            OwnershipError: If the kid does not belong to the user
            NotFoundError: If the content does not exist or is archived
            DuplicateError: If the kid already favorited the content
        """
        cls.ensure_kid_owned(db_session, user_id, kid_id, kid_directory)
        cls._check_addable(db_session, kid_id, content_id)

        try:
            favorite = cls._insert(db_session, user_id, kid_id, content_id)
        except IntegrityError as e:
            raise DuplicateError(
                'Content already in favorites',
                {'kid_id': kid_id, 'content_id': content_id}
            ) from e

        logger.info(f"Kid {kid_id} favorited content {content_id}")
        return favorite

    @classmethod
    def remove_favorite(
        cls,
        db_session,
        kid_id: str,
        content_id: int,
        user_id: Optional[str] = None,
        kid_directory: Optional[KidDirectory] = None
    ) -> bool:
        """
        Remove a content item from a kid's favorites.

        Removing a favorite that does not exist is a no-op. When user_id is
        given the kid's ownership is checked first. The favorite count only
        moves when this call actually deleted the row, so two overlapping
        removals decrement once.

        Returns:
            True if a favorite was removed
        """
        if user_id is not None:
            cls.ensure_kid_owned(db_session, user_id, kid_id, kid_directory)

        if not cls._delete(db_session, kid_id, content_id):
            return False

        logger.info(f"Kid {kid_id} unfavorited content {content_id}")
        return True

    @classmethod
    def is_favorite(cls, db_session, kid_id: str, content_id: int) -> bool:
        with storage_errors():
            found = db_session.query(Favorite.id).filter_by(kid_id=kid_id, content_id=content_id).first()
        return found is not None

    @classmethod
    def find_by_kid(cls, db_session, kid_id: str) -> List[Favorite]:
        """Favorites of one kid with their content, most recent first."""
        return cls._ordered(db_session.query(Favorite).filter(Favorite.kid_id == kid_id))

    @classmethod
    def find_by_user(cls, db_session, user_id: str) -> List[Favorite]:
        """Favorites of every kid under a parent account, most recent first."""
        return cls._ordered(db_session.query(Favorite).filter(Favorite.user_id == user_id))

    @classmethod
    def count_by_kid(cls, db_session, kid_id: str) -> int:
        with storage_errors():
            return db_session.scalar(
                select(func.count()).select_from(Favorite).where(Favorite.kid_id == kid_id)
            ) or 0

    @classmethod
    def remove_all_for_kid(
        cls,
        db_session,
        user_id: str,
        kid_id: str,
        kid_directory: Optional[KidDirectory] = None
    ) -> int:
        """
        Remove every favorite of a kid.

        Returns:
            Number of favorites this call deleted
        """
        cls.ensure_kid_owned(db_session, user_id, kid_id, kid_directory)

        with storage_errors():
            content_ids = db_session.scalars(
                select(Favorite.content_id).where(Favorite.kid_id == kid_id)
            ).all()

        removed = sum(1 for content_id in content_ids if cls._delete(db_session, kid_id, content_id))

        logger.info(f"Removed {removed} favorites of kid {kid_id}")
        return removed

    @classmethod
    def bulk_add_favorites(
        cls,
        db_session,
        user_id: str,
        kid_id: str,
        content_ids: Iterable[int],
        kid_directory: Optional[KidDirectory] = None
    ) -> Dict[str, List]:
        """
        Add several favorites for one kid.

        Already favorited items are skipped; missing or archived items are
        reported as errors. Ownership is checked once, up front.

        When a concurrent writer inserts one of the same favorites first, the
        unique index rejects the flush and the session is rolled back, taking
        the items added earlier in the batch with it. The whole batch is then
        reported as retryable rather than returning a report for rows that
        were never stored.

        Returns:
            {'added': [content ids], 'skipped': [content ids], 'errors': [{content_id, error}]}

        Raises:
            OwnershipError: If the kid does not belong to the user
            ValidationError: If more than MAX_BULK_SIZE ids are given
            RetryableError: If a concurrent insert aborted the batch
        """
        content_ids = list(dict.fromkeys(content_ids))
        if len(content_ids) > cls.MAX_BULK_SIZE:
            raise ValidationError(
                f'At most {cls.MAX_BULK_SIZE} favorites can be added at once',
                {'count': len(content_ids)}
            )

        cls.ensure_kid_owned(db_session, user_id, kid_id, kid_directory)

        report = {'added': [], 'skipped': [], 'errors': []}
        for content_id in content_ids:
            try:
                cls._check_addable(db_session, kid_id, content_id)
            except DuplicateError:
                report['skipped'].append(content_id)
                continue
            except NotFoundError as e:
                report['errors'].append({'content_id': content_id, 'error': e.message})
                continue

            try:
                cls._insert(db_session, user_id, kid_id, content_id)
            except IntegrityError as e:
                raise RetryableError(
                    'Favorites changed while the batch was being saved; nothing was stored',
                    {'kid_id': kid_id, 'content_id': content_id}
                ) from e
            report['added'].append(content_id)

        logger.info(
            f"Bulk favorites for kid {kid_id}: {len(report['added'])} added, "
            f"{len(report['skipped'])} skipped, {len(report['errors'])} failed"
        )
        return report

    @classmethod
    def most_favorited(cls, db_session, limit: int = DEFAULT_MOST_FAVORITED) -> List[Tuple[Content, int]]:
        """Active content with the most favorites, as (content, count) pairs."""
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError('limit must be a positive integer', {'limit': limit})

        with storage_errors():
            rows = db_session.execute(
                select(Content, func.count(Favorite.id).label('favorites'))
                .join(Favorite, Favorite.content_id == Content.id)
                .where(Content.status == _ACTIVE)
                .group_by(Content.id)
                .order_by(func.count(Favorite.id).desc(), Content.id.asc())
                .limit(limit)
            ).all()
        return [(content, count) for content, count in rows]

    @classmethod
    def _find(cls, db_session, kid_id: str, content_id: int) -> Optional[Favorite]:
        with storage_errors():
            return db_session.query(Favorite).filter_by(kid_id=kid_id, content_id=content_id).first()

    @classmethod
    def _check_addable(cls, db_session, kid_id: str, content_id: int) -> None:
        with storage_errors():
            content = db_session.get(Content, content_id)
        if content is None or content.status != _ACTIVE:
            raise NotFoundError('Content not found', {'content_id': content_id})

        # Fast-path check; the unique index decides on a race
        if cls._find(db_session, kid_id, content_id) is not None:
            raise DuplicateError(
                'Content already in favorites',
                {'kid_id': kid_id, 'content_id': content_id}
            )

    @classmethod
    def _insert(cls, db_session, user_id: str, kid_id: str, content_id: int) -> Favorite:
        """Insert one favorite row; an IntegrityError leaves the session rolled back."""
        favorite = Favorite(user_id=user_id, kid_id=kid_id, content_id=content_id)
        db_session.add(favorite)
        try:
            with storage_errors():
                db_session.flush()
        except IntegrityError:
            db_session.rollback()
            raise

        RankingService.record_favorite_change(db_session, content_id, 1)
        return favorite

    @classmethod
    def _delete(cls, db_session, kid_id: str, content_id: int) -> bool:
        with storage_errors():
            result = db_session.execute(
                delete(Favorite).where(Favorite.kid_id == kid_id, Favorite.content_id == content_id)
            )
        if result.rowcount != 1:
            return False

        RankingService.record_favorite_change(db_session, content_id, -1)
        return True

    @classmethod
    def _ordered(cls, query) -> List[Favorite]:
        with storage_errors():
            return (
                query.options(joinedload(Favorite.content))
                .order_by(Favorite.created_at.desc(), Favorite.id.desc())
                .all()
            )
