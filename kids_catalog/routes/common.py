"""
Request helpers shared by the Kids Catalog blueprints.
"""

from typing import List, Optional

from flask import request

from kids_catalog.models import db
from kids_catalog.services.errors import ValidationError, storage_errors

_TRUE_VALUES = ('true', '1', 'yes')
_FALSE_VALUES = ('false', '0', 'no')


def json_body() -> dict:
    """Return the JSON object body of the request or raise ValidationError."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def bool_arg(name: str) -> Optional[bool]:
    """
    Parse an optional boolean query parameter.

    Returns None when the parameter is absent.
    """
    value = request.args.get(name)
    if value is None or value == '':
        return None
    value = value.lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValidationError(f'{name} must be true or false', {name: value})


def list_arg(name: str) -> Optional[List[str]]:
    """Parse a comma-separated query parameter (also accepts repeated keys)."""
    values = []
    for raw in request.args.getlist(name):
        values.extend(part.strip() for part in raw.split(',') if part.strip())
    return values or None


def int_arg(name: str, default: int) -> int:
    value = request.args.get(name)
    if value is None or value == '':
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f'{name} must be an integer', {name: value}) from None


def commit() -> None:
    """Commit the request's unit of work."""
    with storage_errors():
        db.session.commit()
