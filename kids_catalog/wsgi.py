"""
WSGI Entry Point for Kids Catalog Service.

This module provides the WSGI application object for production deployment
with gunicorn or other WSGI servers.

Usage:
    gunicorn -w 4 -b 0.0.0.0:5004 kids_catalog.wsgi:application
"""

from kids_catalog.app import create_app

# Create the application instance
application = create_app()

# Alias for compatibility
app = application

if __name__ == "__main__":
    application.run()
