"""
Kids Catalog Routes Package.

Blueprint registration for all API route modules:
- Content: Listing, search, detail and playback endpoints
- Categories: Category browsing
- Favorites: Per-kid favorites (JWT required)
- Admin: Editorial content and category management (admin role required)
"""

# Import blueprints for registration
from kids_catalog.routes.content import content_bp
from kids_catalog.routes.categories import categories_bp
from kids_catalog.routes.favorites import favorites_bp
from kids_catalog.routes.admin import admin_bp

__all__ = [
    'content_bp',
    'categories_bp',
    'favorites_bp',
    'admin_bp',
]
