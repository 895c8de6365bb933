"""
Kids Catalog Admin Routes

Blueprint for editorial endpoints. Requires an access token whose 'role'
claim is one of ADMIN_ROLES.

Content:
- GET /content: List content including archived items (all variants)
- POST /content: Create content
- GET /content/stats: Counts of active content by type, age range and tag
- GET /content/<content_id>: Get content with all variants
- PUT /content/<content_id>: Update editorial fields
- POST /content/<content_id>/rename: Change the title (and slug)
- PUT /content/<content_id>/languages/<language>: Add or replace a language variant
- POST /content/<content_id>/archive: Archive content
- POST /content/<content_id>/restore: Restore archived content
- DELETE /content/<content_id>: Delete content without favorites

Categories:
- GET /categories: List categories including archived ones
- POST /categories: Create a category
- PUT /categories/<category_id>: Update a category
- POST /categories/<category_id>/archive: Archive a category
- POST /categories/<category_id>/restore: Restore a category
- DELETE /categories/<category_id>: Delete an empty category
- POST /categories/recompute: Reconcile every category's content count

All endpoints are prefixed with /api/v1/admin when registered with the app.
"""

from datetime import datetime
from functools import wraps

from flask import Blueprint, current_app
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request

from kids_catalog.models import db
from kids_catalog.models.content import Content
from kids_catalog.routes.categories import category_dict
from kids_catalog.routes.common import commit, json_body
from kids_catalog.services.category_service import CategoryService
from kids_catalog.services.content_service import ContentService
from kids_catalog.services.errors import NotFoundError, ValidationError
from kids_catalog.utils.envelope import error, success


# Create admin blueprint
admin_bp = Blueprint('admin', __name__)

# Body fields passed straight to ContentService.update_content
_CONTENT_UPDATE_FIELDS = (
    'title', 'type', 'age_range', 'duration_sec', 'tags', 'default_language',
    'is_featured', 'is_new_collection', 'is_trending_now', 'popularity_score',
)

_CONTENT_CREATE_FIELDS = _CONTENT_UPDATE_FIELDS + (
    'languages', 'description', 'audio_url', 'image_url', 'thumbnail_url',
    'key_value', 'summary', 'category_id',
)

_CATEGORY_FIELDS = ('name', 'description', 'sort_order', 'color', 'icon', 'image_url')


def admin_required(fn):
    """Require a valid access token with an admin role claim."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        role = get_jwt().get('role')
        if role not in current_app.config['ADMIN_ROLES']:
            current_app.logger.warning(f'Admin access denied for {get_jwt_identity()} (role={role})')
            return error('FORBIDDEN', 'Admin role required', 403)
        return fn(*args, **kwargs)
    return wrapper


def _content_or_404(content_id) -> Content:
    content = ContentService.get_content_by_uuid(db.session, content_id, include_archived=True)
    if content is None:
        raise NotFoundError('Content not found', {'content_id': content_id})
    return content


def _parse_published_at(data):
    value = data.get('published_at')
    if value is None:
        return None
    if isinstance(value, str) and value.endswith(('Z', 'z')):
        # fromisoformat only accepts a Z suffix from Python 3.11 on
        value = value[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError('published_at must be an ISO 8601 timestamp', {'published_at': value}) from None


# =============================================================================
# Content
# =============================================================================

@admin_bp.route('/content', methods=['GET'])
@admin_required
def list_all_content():
    items = db.session.query(Content).order_by(Content.created_at.desc(), Content.id.desc()).all()
    return success([content.to_dict() for content in items])


@admin_bp.route('/content', methods=['POST'])
@admin_required
def create_content():
    """
    Create a content item.

    Request Body:
        {
            "type": "story",
            "title": "The Sleepy Forest",
            "duration_sec": 420,
            "age_range": "3-5",
            "tags": ["calming"],
            "default_language": "en",
            "languages": {
                "en": {"title": "...", "audio_url": "/assets/...", "image_url": "/assets/..."}
            },
            "category_id": "category-uuid"
        }

        Older clients may send description/audio_url/image_url/thumbnail_url
        at the top level instead of "languages".

    Returns:
        201: Created content with all variants
        400: Validation error
        404: Category not found
        409: Slug already exists
    """
    data = json_body()
    for required in ('type', 'title', 'duration_sec', 'age_range'):
        if data.get(required) in (None, ''):
            raise ValidationError(f'{required} is required')

    kwargs = {name: data[name] for name in _CONTENT_CREATE_FIELDS if name in data}
    kwargs['published_at'] = _parse_published_at(data)

    content = ContentService.create_content(db.session, **kwargs)
    commit()

    current_app.logger.info(f'Content {content.uuid} created by {get_jwt_identity()}')
    return success(content.to_dict(), message='Content created', status_code=201)


@admin_bp.route('/content/stats', methods=['GET'])
@admin_required
def content_stats():
    return success(ContentService.content_stats(db.session))


@admin_bp.route('/content/<content_id>', methods=['GET'])
@admin_required
def get_content(content_id):
    return success(_content_or_404(content_id).to_dict())


@admin_bp.route('/content/<content_id>', methods=['PUT'])
@admin_required
def update_content(content_id):
    """
    Update editorial fields. Only fields present in the body change;
    "category_id": null detaches the item from its category.
    """
    data = json_body()
    content = _content_or_404(content_id)

    kwargs = {name: data[name] for name in _CONTENT_UPDATE_FIELDS if name in data}
    if 'category_id' in data:
        kwargs['category_id'] = data['category_id']
    published_at = _parse_published_at(data)
    if published_at is not None:
        kwargs['published_at'] = published_at

    ContentService.update_content(db.session, content.id, **kwargs)
    commit()

    return success(content.to_dict(), message='Content updated')


@admin_bp.route('/content/<content_id>/rename', methods=['POST'])
@admin_required
def rename_content(content_id):
    content = _content_or_404(content_id)
    ContentService.rename(db.session, content.id, json_body().get('title'))
    commit()
    return success(content.to_dict(), message='Content renamed')


@admin_bp.route('/content/<content_id>/languages/<language>', methods=['PUT'])
@admin_required
def set_language_content(content_id, language):
    """
    Add or replace one language variant.

    Request Body:
        {"title": "...", "description": "...", "audio_url": "...", "image_url": "...",
         "thumbnail_url": "...", "metadata": {"key_value": "...", "summary": "..."}}
    """
    data = json_body()
    content = _content_or_404(content_id)
    ContentService.set_language_content(db.session, content.id, language, data)
    commit()
    return success(content.to_dict(), message=f"Language '{language}' saved")


@admin_bp.route('/content/<content_id>/archive', methods=['POST'])
@admin_required
def archive_content(content_id):
    content = _content_or_404(content_id)
    ContentService.archive_content(db.session, content.id)
    commit()
    return success(content.to_dict(), message='Content archived')


@admin_bp.route('/content/<content_id>/restore', methods=['POST'])
@admin_required
def restore_content(content_id):
    content = _content_or_404(content_id)
    ContentService.restore_content(db.session, content.id)
    commit()
    return success(content.to_dict(), message='Content restored')


@admin_bp.route('/content/<content_id>', methods=['DELETE'])
@admin_required
def delete_content(content_id):
    content = _content_or_404(content_id)
    ContentService.delete_content(db.session, content.id)
    commit()
    return success({'id': content_id}, message='Content deleted')


# =============================================================================
# Categories
# =============================================================================

@admin_bp.route('/categories', methods=['GET'])
@admin_required
def list_all_categories():
    categories = CategoryService.list_categories(db.session, include_archived=True)
    return success([category_dict(category) for category in categories])


@admin_bp.route('/categories', methods=['POST'])
@admin_required
def create_category():
    """
    Create a category.

    Request Body:
        {"name": "Bedtime", "description": "...", "parent_id": null,
         "sort_order": 0, "color": "#6366f1", "icon": "moon", "image_url": "/assets/..."}

    Returns:
        201: Created category
        409: Name already exists
    """
    data = json_body()
    kwargs = {name: data[name] for name in _CATEGORY_FIELDS if name in data}
    category = CategoryService.create_category(
        db.session,
        parent_id=data.get('parent_id'),
        **kwargs
    )
    commit()
    return success(category_dict(category), message='Category created', status_code=201)


@admin_bp.route('/categories/recompute', methods=['POST'])
@admin_required
def recompute_category_counts():
    counts = CategoryService.recompute_all_counts(db.session)
    commit()
    return success({'counts': counts, 'categories': len(counts)}, message='Content counts recomputed')


@admin_bp.route('/categories/<category_id>', methods=['PUT'])
@admin_required
def update_category(category_id):
    data = json_body()
    kwargs = {name: data[name] for name in _CATEGORY_FIELDS if name in data}
    category = CategoryService.update_category(db.session, category_id, **kwargs)
    commit()
    return success(category_dict(category), message='Category updated')


@admin_bp.route('/categories/<category_id>/archive', methods=['POST'])
@admin_required
def archive_category(category_id):
    category = CategoryService.archive_category(db.session, category_id)
    commit()
    return success(category_dict(category), message='Category archived')


@admin_bp.route('/categories/<category_id>/restore', methods=['POST'])
@admin_required
def restore_category(category_id):
    category = CategoryService.restore_category(db.session, category_id)
    commit()
    return success(category_dict(category), message='Category restored')


@admin_bp.route('/categories/<category_id>', methods=['DELETE'])
@admin_required
def delete_category(category_id):
    CategoryService.delete_category(db.session, category_id)
    commit()
    return success({'id': category_id}, message='Category deleted')
