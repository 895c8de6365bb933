"""
Slug allocation for catalog records.

Slugs are derived from titles with a pure function so that re-saving a
record with the same title always yields the same slug. Uniqueness is
not checked here; the unique indexes on contents.slug and
categories.slug are the authority and the calling service maps their
rejection to ConflictError.
"""

import re

_DISALLOWED = re.compile(r'[^a-z0-9\s-]+')
_SEPARATORS = re.compile(r'[\s-]+')


def slugify(title: str) -> str:
    """
    Derive a URL-safe slug from a title.

    Lowercases, drops characters outside [a-z0-9, whitespace, hyphen],
    collapses whitespace and hyphen runs into a single hyphen and trims
    hyphens from both ends.

    Args:
        title: Human-readable title

    Returns:
        The slug, possibly empty if the title has no usable characters

    Example:
        >>> slugify('The Sleepy Forest')
        'the-sleepy-forest'
        >>> slugify('Moon Tale!')
        'moon-tale'
    """
    if not title:
        return ''
    slug = _DISALLOWED.sub('', title.lower())
    slug = _SEPARATORS.sub('-', slug)
    return slug.strip('-')
