"""Helper functions for the application."""
from datetime import datetime, timezone
from typing import Any, Optional

from flask import jsonify

from attendance_engine.utils.errors import AttendanceError, InvalidInput


def utc_now() -> datetime:
    """Naive UTC timestamp, the format stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_datetime(value: Any, field: str) -> Optional[datetime]:
    """Parse an ISO-8601 string into a naive UTC datetime."""
    if value is None or value == '':
        return None
    try:
        if isinstance(value, datetime):
            parsed = value
        else:
            parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        # Offsets near year 1 or 9999 overflow when shifted to UTC
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    except (ValueError, OverflowError):
        raise InvalidInput(f"Invalid {field} format. Use ISO-8601", {'field': field})
    return parsed


def handle_error(error, status_code: int):
    """Handle application errors with consistent format."""
    if isinstance(error, AttendanceError):
        body = {
            'error': True,
            'message': error.message,
            'status_code': error.status_code,
        }
        body.update(error.to_dict())
        return jsonify(body), error.status_code

    return jsonify({
        'error': True,
        'message': str(error),
        'status_code': status_code
    }), status_code


def success_response(data: Any = None, message: str = "Success", status_code: int = 200):
    """Return consistent success response."""
    response = {
        'error': False,
        'message': message
    }

    if data is not None:
        response['data'] = data

    return jsonify(response), status_code


def error_response(message: str, status_code: int = 400):
    """Return consistent error response."""
    return jsonify({
        'error': True,
        'message': message,
        'status_code': status_code
    }), status_code
