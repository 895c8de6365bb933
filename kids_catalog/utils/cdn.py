"""
CDN URL normalization.

Media URLs are stored either as absolute URLs or as relative asset paths
under the internal asset prefix (``/assets/...``). Delivery responses
must only ever contain the former, so relative asset paths are joined to
the configured CDN base.
"""

from typing import Optional

from flask import current_app

_ABSOLUTE_SCHEMES = ('http://', 'https://')


def is_absolute_url(url: str) -> bool:
    return url.lower().startswith(_ABSOLUTE_SCHEMES)


def build_asset_url(
    url: Optional[str],
    cdn_base: Optional[str] = None,
    asset_prefix: Optional[str] = None,
) -> Optional[str]:
    """
    Normalize a stored media URL for delivery.

    - Absolute URLs are returned unchanged, so normalizing twice is a no-op.
    - Paths under the internal asset prefix become ``<cdn_base>/<path>``.
    - Any other relative value is returned unmodified.

    Args:
        url: Stored URL or path (None and empty values pass through)
        cdn_base: CDN base URL, defaults to the app's CDN_BASE
        asset_prefix: Internal asset prefix, defaults to ASSET_PATH_PREFIX

    Returns:
        The delivery URL
    """
    if not url:
        return url

    if is_absolute_url(url):
        return url

    if asset_prefix is None:
        asset_prefix = current_app.config.get('ASSET_PATH_PREFIX', '/assets/')
    if not url.startswith(asset_prefix):
        return url

    if cdn_base is None:
        cdn_base = current_app.config['CDN_BASE']
    return f"{cdn_base.rstrip('/')}/{url.lstrip('/')}"
