"""
Error Handler for Green Sprint
Centralized error handling and logging
"""

from flask import jsonify
from werkzeug.exceptions import HTTPException
import logging
import traceback

logger = logging.getLogger(__name__)

class GreenSprintError(Exception):
    """Base exception class for Green Sprint"""
    def __init__(self, message, status_code=500, error_code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code

class ValidationError(GreenSprintError):
    """Raised when input validation fails"""
    def __init__(self, message, field=None):
        super().__init__(message, status_code=400, error_code='VALIDATION_ERROR')
        self.field = field

class NotFoundError(GreenSprintError):
    """Raised when requested resource is not found"""
    def __init__(self, message):
        super().__init__(message, status_code=404, error_code='NOT_FOUND')

class DatabaseError(GreenSprintError):
    """Raised when the record store itself fails (not an empty result)"""
    def __init__(self, message):
        super().__init__(message, status_code=503, error_code='STORE_UNAVAILABLE')

def handle_error(error):
    """
    Central error handler that converts exceptions to JSON responses
    """
    # Routing errors (404, 405, ...) keep their own responses
    if isinstance(error, HTTPException):
        return error

    if isinstance(error, GreenSprintError):
        if error.status_code >= 500:
            logger.error(f"Green Sprint error: {error.message}")
        else:
            logger.warning(f"Green Sprint error: {error.message}")
        return jsonify({
            'error': error.message,
            'error_code': error.error_code,
            'status': 'error'
        }), error.status_code

    elif isinstance(error, ValueError):
        logger.warning(f"Validation error: {str(error)}")
        return jsonify({
            'error': str(error),
            'error_code': 'VALIDATION_ERROR',
            'status': 'error'
        }), 400

    elif isinstance(error, KeyError):
        logger.warning(f"Missing key error: {str(error)}")
        return jsonify({
            'error': f'Missing required field: {str(error)}',
            'error_code': 'MISSING_FIELD',
            'status': 'error'
        }), 400

    # Log full traceback for debugging
    logger.error(f"Unhandled error: {str(error)}")
    logger.error(traceback.format_exc())

    return jsonify({
        'error': 'An unexpected error occurred',
        'error_code': 'INTERNAL_ERROR',
        'status': 'error'
    }), 500

def validate_request_data(data, required_fields, optional_fields=None):
    """
    Validate request data against required and optional fields
    """
    if not data:
        raise ValidationError("Request body cannot be empty")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    missing_fields = [
        field for field in required_fields
        if field not in data or data[field] is None
    ]
    if missing_fields:
        raise ValidationError(f"Missing required fields: {', '.join(missing_fields)}")

    # Validate field types if specified
    if optional_fields:
        for field, expected_type in optional_fields.items():
            if field in data and data[field] is not None:
                if not isinstance(data[field], expected_type):
                    types = expected_type if isinstance(expected_type, tuple) else (expected_type,)
                    raise ValidationError(
                        f"Field '{field}' must be of type {' or '.join(t.__name__ for t in types)}",
                        field=field
                    )

    return True

def format_success_response(data, message=None):
    """
    Format successful API response
    """
    response = {
        'status': 'success',
        'data': data
    }

    if message:
        response['message'] = message

    return response
