"""
Pytest configuration and fixtures for Kids Catalog tests.

This module provides shared fixtures for testing:
- Flask application with test configuration
- In-memory SQLite database
- Test client
- Sample categories, content items and kid profiles
- Access tokens for parent and admin accounts
- Helper functions for creating test data
"""

import os
import sys
from datetime import datetime, timedelta, timezone

import pytest
from flask_jwt_extended import create_access_token

# Add project root to path for kids_catalog package imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from kids_catalog.app import create_app
from kids_catalog.models import db, KidProfile
from kids_catalog.services.category_service import CategoryService
from kids_catalog.services.content_service import ContentService


TEST_USER_ID = 'user-parent-1'
OTHER_USER_ID = 'user-parent-2'
ADMIN_USER_ID = 'user-admin-1'


@pytest.fixture(scope='function')
def app():
    """
    Create a Flask application configured for testing.

    This fixture provides an isolated Flask app with:
    - In-memory SQLite database
    - Testing mode enabled
    - Clean database tables

    Yields:
        Flask application instance
    """
    application = create_app(config_name='testing')
    application.config['TESTING'] = True
    application.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///:memory:'

    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """
    Create a test client for the Flask application.

    Args:
        app: Flask application fixture

    Yields:
        Flask test client
    """
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """
    Provide a database session for testing.

    Args:
        app: Flask application fixture

    Yields:
        SQLAlchemy session
    """
    with app.app_context():
        yield db.session


# =============================================================================
# Auth Fixtures
# =============================================================================

@pytest.fixture(scope='function')
def auth_headers(app):
    """Authorization headers for the parent account that owns sample_kid."""
    with app.app_context():
        token = create_access_token(identity=TEST_USER_ID)
    return get_auth_headers(token)


@pytest.fixture(scope='function')
def other_auth_headers(app):
    """Authorization headers for a parent account that owns no sample kid."""
    with app.app_context():
        token = create_access_token(identity=OTHER_USER_ID)
    return get_auth_headers(token)


@pytest.fixture(scope='function')
def admin_headers(app):
    """Authorization headers for an admin account."""
    with app.app_context():
        token = create_access_token(identity=ADMIN_USER_ID, additional_claims={'role': 'admin'})
    return get_auth_headers(token)


# =============================================================================
# Kid Profile Fixtures
# =============================================================================

@pytest.fixture(scope='function')
def sample_kid(db_session):
    """
    Create a kid profile owned by TEST_USER_ID.

    Args:
        db_session: Database session fixture

    Returns:
        KidProfile instance
    """
    kid = KidProfile(user_id=TEST_USER_ID, name='Asha')
    db_session.add(kid)
    db_session.commit()
    return kid


@pytest.fixture(scope='function')
def other_kid(db_session):
    """Create a kid profile owned by OTHER_USER_ID."""
    kid = KidProfile(user_id=OTHER_USER_ID, name='Ravi')
    db_session.add(kid)
    db_session.commit()
    return kid


# =============================================================================
# Category Fixtures
# =============================================================================

@pytest.fixture(scope='function')
def sample_category(db_session):
    """
    Create an active top-level category.

    Args:
        db_session: Database session fixture

    Returns:
        Category instance
    """
    category = CategoryService.create_category(
        db_session,
        name='Bedtime Stories',
        description='Stories for winding down',
        icon='moon',
        image_url='/assets/categories/bedtime.png'
    )
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def sample_subcategory(db_session, sample_category):
    """Create a subcategory under sample_category."""
    category = CategoryService.create_category(
        db_session,
        name='Animal Tales',
        parent_id=sample_category.id,
        sort_order=1
    )
    db_session.commit()
    return category


# =============================================================================
# Content Fixtures
# =============================================================================

@pytest.fixture(scope='function')
def sample_content(db_session, sample_category):
    """
    Create an active English story in sample_category.

    Args:
        db_session: Database session fixture
        sample_category: Category fixture

    Returns:
        Content instance
    """
    content = create_test_content(
        db_session,
        'The Sleepy Forest',
        category_id=sample_category.id,
        tags=['calming', 'folk_tales']
    )
    db_session.commit()
    return content


@pytest.fixture(scope='function')
def sample_bilingual_content(db_session):
    """Create an active story with English and Hindi variants."""
    content = create_test_content(
        db_session,
        'Moon Tale',
        languages={
            'en': variant_payload('Moon Tale', 'moon-tale'),
            'hi': variant_payload('चाँद की कहानी', 'moon-tale-hi'),
        }
    )
    db_session.commit()
    return content


@pytest.fixture(scope='function')
def sample_archived_content(db_session):
    """Create a content item and archive it."""
    content = create_test_content(db_session, 'Old Lullaby', type='music')
    ContentService.archive_content(db_session, content.id)
    db_session.commit()
    return content


# =============================================================================
# Helper Functions
# =============================================================================

def variant_payload(title, asset_name, **overrides):
    """
    Build a language variant payload with relative asset URLs.

    Args:
        title: Variant title
        asset_name: Base name for the audio and image paths

    Returns:
        Variant payload dictionary
    """
    payload = {
        'title': title,
        'description': f'{title} description',
        'audio_url': f'/assets/audio/{asset_name}.mp3',
        'image_url': f'/assets/images/{asset_name}.jpg',
        'thumbnail_url': f'/assets/thumbs/{asset_name}.jpg',
    }
    payload.update(overrides)
    return payload


def create_test_content(db_session, title, **overrides):
    """
    Helper function to create a test content item.

    Uses flat default-language fields unless `languages` is given.

    Args:
        db_session: Database session
        title: Canonical title
        **overrides: Any ContentService.create_content keyword

    Returns:
        Content instance (flushed, not committed)
    """
    asset_name = overrides.pop('asset_name', None) or title.lower().replace(' ', '-')
    kwargs = {
        'type': 'story',
        'duration_sec': 300,
        'age_range': '3-5',
    }
    if 'languages' not in overrides:
        kwargs.update(
            description=f'{title} description',
            audio_url=f'/assets/audio/{asset_name}.mp3',
            image_url=f'/assets/images/{asset_name}.jpg',
        )
    kwargs.update(overrides)
    return ContentService.create_content(db_session, title=title, **kwargs)


def days_ago(days):
    """Return a UTC timestamp the given number of days in the past."""
    return datetime.now(timezone.utc) - timedelta(days=days)


def get_auth_headers(token):
    """
    Helper function to create authorization headers for JWT authentication.

    Args:
        token: JWT access token

    Returns:
        Dictionary with Authorization header
    """
    return {'Authorization': f'Bearer {token}'}
