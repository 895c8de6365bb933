"""
Standard response envelope for all API responses.

Format: {"success": bool, "data": ..., "error": [str], "message": str}
"""

from flask import jsonify


def success(data=None, message='', status_code=200):
    """Return a success envelope response."""
    return jsonify({
        'success': True,
        'data': data,
        'error': [],
        'message': message,
    }), status_code


def error(errors, message='An error occurred', status_code=400, data=None):
    """
    Return an error envelope response.

    Args:
        errors: Error code or list of error codes/messages
        message: Human-readable error message
        status_code: HTTP status code
        data: Optional error payload

    Returns:
        Tuple of (response, status_code)
    """
    if not isinstance(errors, (list, tuple)):
        errors = [errors]
    return jsonify({
        'success': False,
        'data': data,
        'error': list(errors),
        'message': message,
    }), status_code
