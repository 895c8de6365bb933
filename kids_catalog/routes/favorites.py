"""
Kids Catalog Favorites Routes

Blueprint for per-kid favorites. Every endpoint requires a valid access
token; the token identity is the parent account id, and each kid_id is
checked against it.

- GET /: Favorites of every kid of the account
- GET /kids/<kid_id>: Favorites of one kid
- GET /kids/<kid_id>/count: Number of favorites of one kid
- POST /kids/<kid_id>: Add a favorite
- POST /kids/<kid_id>/bulk: Add several favorites
- DELETE /kids/<kid_id>: Remove all favorites of one kid
- GET /kids/<kid_id>/<content_id>: Check whether content is a favorite
- DELETE /kids/<kid_id>/<content_id>: Remove a favorite

All endpoints are prefixed with /api/v1/favorites when registered with the app.
"""

from flask import Blueprint, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from kids_catalog.models import db
from kids_catalog.routes.common import commit, json_body
from kids_catalog.services.content_service import ContentService
from kids_catalog.services.errors import NotFoundError, ValidationError
from kids_catalog.services.favorite_service import FavoriteService
from kids_catalog.utils.envelope import success


# Create favorites blueprint
favorites_bp = Blueprint('favorites', __name__)


def _favorite_dict(favorite):
    result = favorite.to_dict()
    result['content_id'] = favorite.content.uuid
    result['content'] = ContentService.localize(
        favorite.content,
        request.args.get('lang'),
        include_archived=True
    ).to_dict()
    return result


def _content_or_404(content_id):
    # Archived content can still be unfavorited, so it is looked up too
    content = ContentService.get_content_by_uuid(db.session, content_id, include_archived=True)
    if content is None:
        raise NotFoundError('Content not found', {'content_id': content_id})
    return content


@favorites_bp.route('', methods=['GET'])
@jwt_required()
def list_account_favorites():
    favorites = FavoriteService.find_by_user(db.session, get_jwt_identity())
    return success([_favorite_dict(favorite) for favorite in favorites])


@favorites_bp.route('/kids/<kid_id>', methods=['GET'])
@jwt_required()
def list_kid_favorites(kid_id):
    FavoriteService.ensure_kid_owned(db.session, get_jwt_identity(), kid_id)
    favorites = FavoriteService.find_by_kid(db.session, kid_id)
    return success([_favorite_dict(favorite) for favorite in favorites])


@favorites_bp.route('/kids/<kid_id>/count', methods=['GET'])
@jwt_required()
def count_kid_favorites(kid_id):
    FavoriteService.ensure_kid_owned(db.session, get_jwt_identity(), kid_id)
    return success({'kid_id': kid_id, 'count': FavoriteService.count_by_kid(db.session, kid_id)})


@favorites_bp.route('/kids/<kid_id>', methods=['POST'])
@jwt_required()
def add_favorite(kid_id):
    """
    Add a content item to a kid's favorites.

    Request Body:
        {"content_id": "content-uuid"}

    Returns:
        201: Created favorite
        400: Missing content_id
        403: Kid does not belong to the account
        404: Content not found or archived
        409: Already a favorite
    """
    data = json_body()
    content_id = data.get('content_id')
    if not content_id:
        raise ValidationError('content_id is required')

    user_id = get_jwt_identity()
    FavoriteService.ensure_kid_owned(db.session, user_id, kid_id)
    content = _content_or_404(content_id)

    favorite = FavoriteService.add_favorite(db.session, user_id, kid_id, content.id)
    commit()

    return success(_favorite_dict(favorite), message='Added to favorites', status_code=201)


@favorites_bp.route('/kids/<kid_id>/bulk', methods=['POST'])
@jwt_required()
def bulk_add_favorites(kid_id):
    """
    Add several content items to a kid's favorites.

    Request Body:
        {"content_ids": ["content-uuid", ...]}

    Returns:
        200: {"added": [...], "skipped": [...], "errors": [{"content_id": ..., "error": ...}]}
    """
    content_ids = json_body().get('content_ids')
    if not isinstance(content_ids, list) or not content_ids:
        raise ValidationError('content_ids must be a non-empty list')

    user_id = get_jwt_identity()
    FavoriteService.ensure_kid_owned(db.session, user_id, kid_id)

    uuid_by_id = {}
    errors = []
    for content_uuid in content_ids:
        content = ContentService.get_content_by_uuid(db.session, content_uuid)
        if content is None:
            errors.append({'content_id': content_uuid, 'error': 'Content not found'})
        else:
            uuid_by_id[content.id] = content_uuid

    report = FavoriteService.bulk_add_favorites(db.session, user_id, kid_id, list(uuid_by_id))
    commit()

    return success({
        'added': [uuid_by_id[content_id] for content_id in report['added']],
        'skipped': [uuid_by_id[content_id] for content_id in report['skipped']],
        'errors': errors + [
            {'content_id': uuid_by_id[item['content_id']], 'error': item['error']}
            for item in report['errors']
        ],
    })


@favorites_bp.route('/kids/<kid_id>', methods=['DELETE'])
@jwt_required()
def remove_all_favorites(kid_id):
    removed = FavoriteService.remove_all_for_kid(db.session, get_jwt_identity(), kid_id)
    commit()
    return success({'kid_id': kid_id, 'removed': removed})


@favorites_bp.route('/kids/<kid_id>/<content_id>', methods=['GET'])
@jwt_required()
def check_favorite(kid_id, content_id):
    FavoriteService.ensure_kid_owned(db.session, get_jwt_identity(), kid_id)
    content = _content_or_404(content_id)
    return success({
        'kid_id': kid_id,
        'content_id': content.uuid,
        'is_favorite': FavoriteService.is_favorite(db.session, kid_id, content.id),
    })


@favorites_bp.route('/kids/<kid_id>/<content_id>', methods=['DELETE'])
@jwt_required()
def remove_favorite(kid_id, content_id):
    """Remove a favorite. Removing one that does not exist succeeds with removed=false."""
    user_id = get_jwt_identity()
    FavoriteService.ensure_kid_owned(db.session, user_id, kid_id)
    content = _content_or_404(content_id)

    removed = FavoriteService.remove_favorite(db.session, kid_id, content.id)
    commit()

    return success({'kid_id': kid_id, 'content_id': content.uuid, 'removed': removed})
