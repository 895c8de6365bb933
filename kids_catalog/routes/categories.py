"""
Kids Catalog Category Routes

Blueprint for end-user category endpoints:
- GET /: List active categories
- GET /<slug>: Get a category by slug
- GET /<slug>/subcategories: List active subcategories

All endpoints are prefixed with /api/v1/categories when registered with the app.
"""

from flask import Blueprint

from kids_catalog.models import db
from kids_catalog.routes.common import bool_arg
from kids_catalog.services.category_service import CategoryService
from kids_catalog.services.errors import NotFoundError
from kids_catalog.utils.cdn import build_asset_url
from kids_catalog.utils.envelope import success


# Create categories blueprint
categories_bp = Blueprint('categories', __name__)


def category_dict(category, include_children=False):
    """Serialize a category with its cover image on the CDN."""
    return _with_cdn_images(category.to_dict(include_children=include_children))


def _with_cdn_images(data):
    data['metadata']['image_url'] = build_asset_url(data['metadata']['image_url'])
    for child in data.get('children', []):
        _with_cdn_images(child)
    return data


@categories_bp.route('', methods=['GET'])
def list_categories():
    """
    List active categories ordered by sort_order, then name.

    Query Parameters:
        top_level: true to only return root categories
        tree: true to nest subcategories under their parents
    """
    tree = bool_arg('tree') or False
    categories = CategoryService.list_categories(
        db.session,
        top_level_only=bool_arg('top_level') or tree
    )
    return success([category_dict(category, include_children=tree) for category in categories])


@categories_bp.route('/<slug>', methods=['GET'])
def get_category(slug):
    category = CategoryService.get_category_by_slug(db.session, slug)
    if category is None:
        raise NotFoundError('Category not found', {'slug': slug})
    return success(category_dict(category, include_children=True))


@categories_bp.route('/<slug>/subcategories', methods=['GET'])
def list_subcategories(slug):
    children = CategoryService.list_subcategories(db.session, slug)
    return success([category_dict(child) for child in children])
