"""
Flask Application Factory for Kids Catalog Service.

This module provides the create_app() factory function that creates and
configures the Flask application. It initializes:
- SQLAlchemy database connection (SQLite or PostgreSQL)
- Flask-JWT-Extended for access token verification
- Blueprint registration
- Error handlers (catalog errors and HTTP errors share one envelope)
- Logging configuration

Usage:
    # Development
    python -m kids_catalog.app

    # Production
    gunicorn -w 4 -b 0.0.0.0:5004 'kids_catalog.app:create_app()'
"""

import logging
import os
import sys
from datetime import datetime, timedelta, timezone
from typing import Optional

from flask import Flask
from flask_jwt_extended import JWTManager

from kids_catalog.config import get_config
from kids_catalog.models import db
from kids_catalog.services.errors import CatalogError
from kids_catalog.utils.envelope import error, success


# Initialize extensions outside of create_app for import access
jwt = JWTManager()


def create_app(config_name: Optional[str] = None) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name ('development', 'testing', 'production').
                    If None, reads from FLASK_ENV environment variable.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    # Load configuration
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    config_class.init_app(app)

    # Store config class for reference
    app.config['CONFIG_CLASS'] = config_class

    # Configure JWT token expiration from config
    app.config['JWT_ACCESS_TOKEN_EXPIRES'] = timedelta(
        seconds=app.config.get('JWT_ACCESS_TOKEN_EXPIRES', 900)
    )

    # Initialize extensions
    db.init_app(app)
    jwt.init_app(app)

    # Create database tables
    with app.app_context():
        db.create_all()

    # Configure logging
    _configure_logging(app)

    # Register blueprints
    _register_blueprints(app)

    # Register error handlers
    _register_error_handlers(app)

    # Register JWT error handlers
    _register_jwt_handlers(app)

    # Register health check endpoint
    @app.route('/health')
    @app.route('/api/v1/health')
    def health_check():
        """Health check endpoint for monitoring."""
        return success({
            'status': 'healthy',
            'service': 'kids_catalog',
            'popularity_scheme': app.config['POPULARITY_SCHEME'],
            'timestamp': datetime.now(timezone.utc).isoformat()
        })

    return app


def _configure_logging(app: Flask) -> None:
    """
    Configure application logging.

    Logs go to stdout for container logging. In debug mode a log file is
    also written when the log directory is writable.

    Args:
        app: Flask application instance.
    """
    log_format = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(logging.INFO)
    stream_handler.setFormatter(log_format)
    app.logger.addHandler(stream_handler)

    # Service modules log under the package logger
    package_logger = logging.getLogger('kids_catalog')
    package_logger.addHandler(stream_handler)

    if app.config.get('DEBUG', False) and not app.config.get('TESTING', False):
        log_dir = os.path.join(str(app.config.get('BASE_DIR', os.getcwd())), 'logs')
        try:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.FileHandler(os.path.join(log_dir, 'kids_catalog.log'))
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(log_format)
            app.logger.addHandler(file_handler)
            package_logger.addHandler(file_handler)
        except OSError:
            # Log path not writable, skip file logging
            pass

    log_level = logging.DEBUG if app.config.get('DEBUG', False) else logging.INFO
    app.logger.setLevel(log_level)
    package_logger.setLevel(log_level)


def _register_blueprints(app: Flask) -> None:
    """
    Register API blueprints under /api/v1.

    Args:
        app: Flask application instance.
    """
    from kids_catalog.routes import admin_bp, categories_bp, content_bp, favorites_bp

    app.register_blueprint(content_bp, url_prefix='/api/v1/content')
    app.register_blueprint(categories_bp, url_prefix='/api/v1/categories')
    app.register_blueprint(favorites_bp, url_prefix='/api/v1/favorites')
    app.register_blueprint(admin_bp, url_prefix='/api/v1/admin')
    app.logger.debug('Registered content, categories, favorites and admin blueprints at /api/v1')


def _register_error_handlers(app: Flask) -> None:
    """
    Register error handlers.

    Catalog errors carry their own status and code. The request's unit of
    work is rolled back before any error response.

    Args:
        app: Flask application instance.
    """
    @app.errorhandler(CatalogError)
    def catalog_error(e):
        db.session.rollback()
        if e.status_code >= 500:
            app.logger.error(f'{e.code}: {e}')
        else:
            app.logger.info(f'{e.code}: {e}')
        return error(e.code, e.message, e.status_code, data=e.details or None)

    @app.errorhandler(400)
    def bad_request(e):
        return error('BAD_REQUEST', getattr(e, 'description', None) or 'Invalid request', 400)

    @app.errorhandler(404)
    def not_found(e):
        return error('NOT_FOUND', 'The requested resource was not found', 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return error('METHOD_NOT_ALLOWED', 'The method is not allowed for this resource', 405)

    @app.errorhandler(500)
    def internal_server_error(e):
        db.session.rollback()
        return error('INTERNAL_ERROR', 'An unexpected error occurred', 500)


def _register_jwt_handlers(app: Flask) -> None:
    """
    Register JWT-specific error handlers.

    Args:
        app: Flask application instance.
    """
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return error('TOKEN_EXPIRED', 'The access token has expired', 401)

    @jwt.invalid_token_loader
    def invalid_token_callback(error_string):
        return error('INVALID_TOKEN', 'The access token is invalid', 401)

    @jwt.unauthorized_loader
    def missing_token_callback(error_string):
        return error('UNAUTHORIZED', 'Access token is missing', 401)


if __name__ == '__main__':
    # Development server
    application = create_app()
    config = application.config['CONFIG_CLASS']
    application.run(
        host=config.HOST,
        port=config.PORT,
        debug=config.DEBUG
    )
