"""
Kids Catalog Utilities Package.

- cdn: delivery URL normalization
- db: session helpers for bulk counter updates
- envelope: API response envelope helpers
"""
