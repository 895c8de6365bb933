"""
Kids Catalog Configuration Module

Configuration settings for database, CDN delivery, ranking and JWT verification.
All sensitive values are loaded from environment variables.
"""

import os
from pathlib import Path


def get_database_url():
    """Get database URL, handling Railway's postgres:// to postgresql:// conversion."""
    url = os.environ.get('DATABASE_URL')
    if url:
        # Railway uses postgres:// but SQLAlchemy requires postgresql://
        if url.startswith('postgres://'):
            url = url.replace('postgres://', 'postgresql://', 1)
        return url
    # Fallback to SQLite for development
    base_dir = Path(__file__).parent.resolve()
    db_path = Path(os.environ.get('KIDS_CATALOG_DATABASE_PATH', base_dir / 'data' / 'kids_catalog.db'))
    return f'sqlite:///{db_path}'


class Config:
    """Base configuration class with default settings."""

    # Flask Settings
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')

    # Base Directory
    BASE_DIR = Path(__file__).parent.resolve()

    # Database Settings
    DATABASE_PATH = Path(os.environ.get('KIDS_CATALOG_DATABASE_PATH', BASE_DIR / 'data' / 'kids_catalog.db'))
    SQLALCHEMY_DATABASE_URI = get_database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CDN Delivery
    # Stored asset paths under ASSET_PATH_PREFIX are served from CDN_BASE
    CDN_BASE = os.environ.get('CDN_BASE', 'https://cdn.example.com')
    ASSET_PATH_PREFIX = os.environ.get('ASSET_PATH_PREFIX', '/assets/')

    # Ranking
    # 'log' keeps an unbounded play counter, 'bounded' derives a 0-5 score
    POPULARITY_SCHEME = os.environ.get('POPULARITY_SCHEME', 'log')

    # Listing limits
    DEFAULT_PAGE_LIMIT = 20
    MAX_PAGE_LIMIT = 50
    MAX_POPULARITY_INCREMENT = 10

    # Server Settings
    PORT = int(os.environ.get('KIDS_CATALOG_PORT', 5004))
    HOST = os.environ.get('KIDS_CATALOG_HOST', '0.0.0.0')

    # JWT Settings (tokens are issued by the auth service, only verified here)
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY', 'dev-jwt-secret-change-in-production')
    JWT_ACCESS_TOKEN_EXPIRES = int(os.environ.get('JWT_ACCESS_TOKEN_EXPIRES', 900))  # 15 minutes default

    # Roles (from the 'role' token claim) allowed to use the admin endpoints
    ADMIN_ROLES = ('admin', 'content_manager')

    @classmethod
    def init_app(cls, app):
        """Initialize application with this configuration."""
        # Only create SQLite database directory if using SQLite
        db_url = cls.SQLALCHEMY_DATABASE_URI
        if db_url and db_url.startswith('sqlite'):
            try:
                cls.DATABASE_PATH.parent.mkdir(parents=True, exist_ok=True)
            except (PermissionError, OSError) as e:
                app.logger.warning(f"Could not create database directory: {e}")

        if cls.POPULARITY_SCHEME not in ('log', 'bounded'):
            raise ValueError(f"POPULARITY_SCHEME must be 'log' or 'bounded', got {cls.POPULARITY_SCHEME!r}")


class DevelopmentConfig(Config):
    """Development configuration with debug enabled."""

    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration with an in-memory database."""

    DEBUG = True
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    CDN_BASE = 'https://cdn.test.local'
    POPULARITY_SCHEME = 'log'
    JWT_SECRET_KEY = 'test-jwt-secret-with-enough-length-for-hs256'


class ProductionConfig(Config):
    """Production configuration with strict security settings."""

    DEBUG = False
    TESTING = False

    @classmethod
    def init_app(cls, app):
        """Production-specific initialization."""
        Config.init_app(app)

        # Verify required environment variables are set
        required_vars = [
            'SECRET_KEY',
            'JWT_SECRET_KEY',
            'DATABASE_URL',
            'CDN_BASE',
        ]
        missing = [var for var in required_vars if not os.environ.get(var)]
        if missing:
            raise ValueError(f"Missing required environment variables: {', '.join(missing)}")

        # Refuse default secret keys
        if os.environ.get('SECRET_KEY') == 'dev-secret-key-change-in-production':
            raise ValueError("SECRET_KEY must be changed from default in production")
        if os.environ.get('JWT_SECRET_KEY') == 'dev-jwt-secret-change-in-production':
            raise ValueError("JWT_SECRET_KEY must be changed from default in production")


# Configuration mapping by environment name
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig,
}


def get_config(env_name=None):
    """Get configuration class by environment name.

    Args:
        env_name: Environment name ('development', 'testing', 'production').
                  If None, reads from FLASK_ENV environment variable.

    Returns:
        Configuration class for the specified environment.
    """
    if env_name is None:
        env_name = os.environ.get('FLASK_ENV', 'development')
    return config.get(env_name, config['default'])
