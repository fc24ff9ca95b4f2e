"""Helper functions for the application."""
from datetime import datetime, timezone
from typing import Any

from flask import jsonify

def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching what the database stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def handle_error(error, status_code: int, kind: str = None):
    """Handle application errors with consistent format."""
    message = getattr(error, 'description', None) or str(error)
    return error_response(message, status_code, kind)

def success_response(data: Any = None, message: str = "Success", status_code: int = 200):
    """Return consistent success response."""
    response = {
        'error': False,
        'message': message
    }

    if data is not None:
        response['data'] = data

    return jsonify(response), status_code

def error_response(message: str, status_code: int = 400, kind: str = None):
    """Return consistent error response."""
    body = {
        'error': True,
        'message': message,
        'status_code': status_code
    }
    if kind:
        body['kind'] = kind
    return jsonify(body), status_code

def domain_error_response(error):
    """Turn an AttendanceError into the JSON error envelope."""
    return jsonify(error.to_dict()), error.status_code

def isoformat(value: datetime) -> str:
    """ISO-8601 with an explicit UTC marker for naive UTC datetimes."""
    if value is None:
        return None
    return value.isoformat() + 'Z'
