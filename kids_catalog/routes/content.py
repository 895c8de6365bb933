"""
Kids Catalog Content Routes

Blueprint for end-user content endpoints:
- GET /: List active content with filters and sorting
- GET /search: Search active content
- GET /languages: Languages offered by the catalog
- GET /home: Featured and recommended sections of the home screen
- GET /featured: Featured content
- GET /most-favorited: Content with the most favorites
- GET /slug/<slug>: Get content by slug (counts a view)
- GET /<content_id>: Get content by UUID
- POST /<content_id>/play: Record playback

Every content response is resolved to one language: pass ?lang=<code> to
pick it, the content's default language is used otherwise.

All endpoints are prefixed with /api/v1/content when registered with the app.
"""

from flask import Blueprint, current_app, request

from kids_catalog.models import db
from kids_catalog.routes.common import bool_arg, commit, int_arg, json_body, list_arg
from kids_catalog.services.category_service import CategoryService
from kids_catalog.services.content_service import ContentService
from kids_catalog.services.errors import NotFoundError, ValidationError
from kids_catalog.services.favorite_service import FavoriteService
from kids_catalog.services.ranking_service import RankingService
from kids_catalog.utils.envelope import success


# Create content blueprint
content_bp = Blueprint('content', __name__)


def _localized(items):
    lang = request.args.get('lang')
    return [ContentService.localize(item, lang).to_dict() for item in items]


def _page_args():
    return (
        int_arg('limit', current_app.config['DEFAULT_PAGE_LIMIT']),
        int_arg('offset', 0),
    )


def _get_active_or_404(content_id):
    content = ContentService.get_content_by_uuid(db.session, content_id)
    if content is None:
        raise NotFoundError('Content not found', {'content_id': content_id})
    return content


@content_bp.route('', methods=['GET'])
def list_content():
    """
    List active content.

    Query Parameters:
        type: story, affirmation, meditation or music
        age_range: 3-5, 6-8 or 9-12
        tags: Comma-separated tags, items with any of them match
        language: Only items available in this language
        category: Category slug
        featured / newcollection / trendingnow: true or false
        sort: popular (default), new, duration or ranked
        limit: Page size (1-50, default 20)
        offset: Items to skip
        lang: Language to resolve each item in

    Returns:
        200: {"items": [...], "total": 42, "limit": 20, "offset": 0}
        400: Invalid filter value
        404: Unknown category
    """
    limit, offset = _page_args()

    category_id = None
    category_slug = request.args.get('category')
    if category_slug:
        category = CategoryService.get_category_by_slug(db.session, category_slug)
        if category is None:
            raise NotFoundError('Category not found', {'slug': category_slug})
        category_id = category.id

    items, total = ContentService.list_content(
        db.session,
        type=request.args.get('type') or None,
        age_range=request.args.get('age_range') or None,
        tags=list_arg('tags'),
        language=request.args.get('language') or None,
        category_id=category_id,
        is_featured=bool_arg('featured'),
        is_new_collection=bool_arg('newcollection'),
        is_trending_now=bool_arg('trendingnow'),
        sort=request.args.get('sort', 'popular'),
        limit=limit,
        offset=offset
    )

    return success({
        'items': _localized(items),
        'total': total,
        'limit': max(1, min(limit, ContentService.MAX_LIMIT)),
        'offset': max(0, offset),
    })


@content_bp.route('/search', methods=['GET'])
def search_content():
    """
    Search active content by title, description and tags.

    Query Parameters:
        q: Search text, at least 2 characters
        limit / offset / lang: As for the listing
    """
    limit, offset = _page_args()
    items, total = ContentService.search_content(
        db.session,
        request.args.get('q', ''),
        limit=limit,
        offset=offset
    )
    return success({'items': _localized(items), 'total': total, 'query': request.args.get('q', '').strip()})


@content_bp.route('/languages', methods=['GET'])
def list_languages():
    """Languages offered by active content; English is always listed."""
    languages = ContentService.available_languages(db.session)
    return success([language.to_dict() for language in languages])


@content_bp.route('/home', methods=['GET'])
def home_content():
    """
    Home screen sections, each resolved to ?lang.

    Returns:
        200: {"featured": [...], "recommended": [...]}
    """
    sections = ContentService.home_content(db.session)
    return success({name: _localized(items) for name, items in sections.items()})


@content_bp.route('/featured', methods=['GET'])
def featured_content():
    limit, _ = _page_args()
    items, total = ContentService.list_content(db.session, is_featured=True, limit=limit)
    return success({'items': _localized(items), 'total': total})


@content_bp.route('/most-favorited', methods=['GET'])
def most_favorited():
    limit = int_arg('limit', FavoriteService.DEFAULT_MOST_FAVORITED)
    lang = request.args.get('lang')
    rows = FavoriteService.most_favorited(db.session, limit=limit)
    return success([
        dict(ContentService.localize(content, lang).to_dict(), favorites=count)
        for content, count in rows
    ])


@content_bp.route('/slug/<slug>', methods=['GET'])
def get_content_by_slug(slug):
    """
    Get a content item by slug.

    Opening the detail page counts as a view.

    Returns:
        200: Resolved content
        404: Content not found or archived
    """
    content = ContentService.get_content_by_slug(db.session, slug)
    if content is None:
        raise NotFoundError('Content not found', {'slug': slug})

    resolved = ContentService.localize(content, request.args.get('lang'))
    ContentService.record_view(db.session, content.id)
    commit()

    return success(resolved.to_dict())


@content_bp.route('/<content_id>', methods=['GET'])
def get_content(content_id):
    content = _get_active_or_404(content_id)
    return success(ContentService.localize(content, request.args.get('lang')).to_dict())


@content_bp.route('/<content_id>/play', methods=['POST'])
def play_content(content_id):
    """
    Record playback of a content item.

    Request Body (optional):
        {"amount": 1}  (1-10)

    Returns:
        200: {"id": "...", "popularity_score": 12.0, "view_count": 3}
        400: Invalid amount
        404: Content not found or archived
    """
    data = json_body() if request.get_data() else {}
    amount = data.get('amount', 1)
    max_amount = current_app.config['MAX_POPULARITY_INCREMENT']
    if isinstance(amount, bool) or not isinstance(amount, int) or not 1 <= amount <= max_amount:
        raise ValidationError(f'amount must be an integer between 1 and {max_amount}', {'amount': amount})

    content = _get_active_or_404(content_id)
    RankingService.increment_popularity(db.session, content.id, amount)
    commit()

    return success({
        'id': content.uuid,
        'popularity_score': content.popularity_score,
        'view_count': content.view_count,
    }, message='Playback recorded')
