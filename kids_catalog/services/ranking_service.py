"""
Ranking Service for Kids Catalog.

Popularity counters and ranking scores.

Two popularity schemes exist and a deployment uses exactly one, chosen by
the POPULARITY_SCHEME setting:

- 'log': popularity_score is an unbounded play counter. Ranking adds a
  featured boost, ln(1 + popularity_score) and a recency boost that fades
  over 60 days.
- 'bounded': popularity_score is derived from favorites and views as
  min(5, (favorites * 2 + views * 0.1) / 100), rounded to one decimal.

Counter updates are single UPDATE statements (x = x + n) so concurrent
playback events never lose increments.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from flask import current_app
from sqlalchemy import case, select, update

from kids_catalog.models.content import Content
from kids_catalog.models.enums import LifecycleStatus
from kids_catalog.services.errors import NotFoundError, ValidationError, storage_errors
from kids_catalog.utils.db import expire_cached

logger = logging.getLogger(__name__)

SCHEME_LOG = 'log'
SCHEME_BOUNDED = 'bounded'

_ACTIVE = LifecycleStatus.ACTIVE.value


class RankingService:
    """
    Ranking and popularity service for the Kids Catalog.

    Usage:
        score = RankingService.compute_ranking_score(content)

        RankingService.increment_popularity(db.session, content.id)

        query = select(Content).order_by(*RankingService.listing_order())
    """

    FEATURED_BOOST = 5.0
    RECENCY_BOOST = 2.0
    RECENCY_DECAY_DAYS = 30.0

    BOUNDED_MAX_SCORE = 5.0
    FAVORITE_WEIGHT = 2.0
    VIEW_WEIGHT = 0.1
    BOUNDED_DIVISOR = 100.0

    @classmethod
    def compute_ranking_score(cls, content: Content, now: Optional[datetime] = None) -> float:
        """
        Compute the ranking score of a content item.

        score = featured boost (5 or 0)
              + ln(1 + popularity_score)
              + max(0, 2 - days_since_published / 30)

        Computed on every read and never stored, so it cannot go stale
        while counters change.

        Args:
            content: Content instance
            now: Reference time, defaults to the current UTC time

        Returns:
            The ranking score
        """
        if now is None:
            now = datetime.now(timezone.utc)

        featured = cls.FEATURED_BOOST if content.is_featured else 0.0
        popularity = math.log1p(max(0.0, content.popularity_score or 0.0))

        recency = 0.0
        if content.published_at is not None:
            published_at = _as_utc(content.published_at)
            days = max(0.0, (_as_utc(now) - published_at).total_seconds() / 86400.0)
            recency = max(0.0, cls.RECENCY_BOOST - days / cls.RECENCY_DECAY_DAYS)

        return featured + popularity + recency

    @classmethod
    def bounded_popularity_score(cls, favorite_count: int, view_count: int) -> float:
        """Derive the 0-5 popularity score from engagement counters."""
        raw = ((favorite_count or 0) * cls.FAVORITE_WEIGHT + (view_count or 0) * cls.VIEW_WEIGHT) / cls.BOUNDED_DIVISOR
        return round(min(cls.BOUNDED_MAX_SCORE, raw), 1)

    @staticmethod
    def listing_order() -> list:
        """ORDER BY clauses for catalog listings: featured, popularity, recency, id."""
        return [
            Content.is_featured.desc(),
            Content.popularity_score.desc(),
            Content.published_at.desc(),
            Content.id.asc(),
        ]

    @classmethod
    def rank(cls, contents: Iterable[Content], now: Optional[datetime] = None) -> List[Content]:
        """Sort content by ranking score, highest first, ties broken by id."""
        if now is None:
            now = datetime.now(timezone.utc)
        return sorted(contents, key=lambda c: (-cls.compute_ranking_score(c, now), c.id))

    @staticmethod
    def popularity_scheme() -> str:
        return current_app.config.get('POPULARITY_SCHEME', SCHEME_LOG)

    @classmethod
    def increment_popularity(cls, db_session, content_id: int, amount: int = 1) -> None:
        """
        Record playback of a content item.

        Under the 'log' scheme this adds amount to popularity_score. Under
        'bounded' a play counts as a view and the derived score is refreshed.

        Raises:
            ValidationError: If amount is not a positive integer
            NotFoundError: If no active content has this id
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 1:
            raise ValidationError('amount must be a positive integer', {'amount': amount})

        if cls.popularity_scheme() == SCHEME_BOUNDED:
            cls._increment(db_session, content_id, view_count=Content.view_count + amount)
            cls.refresh_bounded_score(db_session, content_id)
        else:
            cls._increment(db_session, content_id, popularity_score=Content.popularity_score + amount)

        logger.info(f"Content {content_id} popularity incremented by {amount}")

    @classmethod
    def record_view(cls, db_session, content_id: int) -> None:
        """Count one detail view of a content item."""
        cls._increment(db_session, content_id, view_count=Content.view_count + 1)
        if cls.popularity_scheme() == SCHEME_BOUNDED:
            cls.refresh_bounded_score(db_session, content_id)

    @classmethod
    def record_favorite_change(cls, db_session, content_id: int, delta: int) -> None:
        """Adjust favorite_count by delta, never going below zero."""
        if delta == 0:
            return
        if delta > 0:
            new_value = Content.favorite_count + delta
        else:
            new_value = case(
                (Content.favorite_count > -delta, Content.favorite_count + delta),
                else_=0
            )
        with storage_errors():
            db_session.execute(
                update(Content)
                .where(Content.id == content_id)
                .values(favorite_count=new_value)
                .execution_options(synchronize_session=False)
            )
        expire_cached(db_session, Content, content_id, 'favorite_count', 'popularity_score')
        if cls.popularity_scheme() == SCHEME_BOUNDED:
            cls.refresh_bounded_score(db_session, content_id)

    @classmethod
    def refresh_bounded_score(cls, db_session, content_id: int) -> Optional[float]:
        """
        Re-derive the bounded popularity score from the stored counters.

        The score is a pure function of the counters, so a refresh that
        races another one converges on the next event.
        """
        with storage_errors():
            row = db_session.execute(
                select(Content.favorite_count, Content.view_count).where(Content.id == content_id)
            ).first()
            if row is None:
                return None
            score = cls.bounded_popularity_score(row.favorite_count, row.view_count)
            db_session.execute(
                update(Content)
                .where(Content.id == content_id)
                .values(popularity_score=score)
                .execution_options(synchronize_session=False)
            )
        expire_cached(db_session, Content, content_id, 'popularity_score')
        return score

    @classmethod
    def _increment(cls, db_session, content_id: int, **values) -> None:
        with storage_errors():
            result = db_session.execute(
                update(Content)
                .where(Content.id == content_id, Content.status == _ACTIVE)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
        if result.rowcount == 0:
            raise NotFoundError('Content not found', {'content_id': content_id})
        expire_cached(db_session, Content, content_id, *values.keys())


def _as_utc(value: datetime) -> datetime:
    # SQLite returns naive datetimes; stored values are always UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
