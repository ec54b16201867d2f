"""
Authentication Middleware for Green Sprint
Handles Firebase token validation and request authentication
"""

from functools import wraps
from flask import request, jsonify
from firebase_admin import auth
import logging

logger = logging.getLogger(__name__)

def _bearer_token():
    auth_header = request.headers.get('Authorization', '')
    return auth_header.replace('Bearer ', '').strip()

def require_auth(f):
    """
    Decorator to require authentication for API endpoints
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not request.headers.get('Authorization'):
            return jsonify({'error': 'Authorization header required'}), 401

        token = _bearer_token()
        if not token:
            return jsonify({'error': 'Valid token required'}), 401

        try:
            decoded_token = auth.verify_id_token(token)
        except auth.ExpiredIdTokenError:
            logger.warning("Expired token provided")
            return jsonify({'error': 'Token expired'}), 401
        except auth.RevokedIdTokenError:
            logger.warning("Revoked token provided")
            return jsonify({'error': 'Token revoked'}), 401
        except auth.InvalidIdTokenError:
            logger.warning("Invalid token provided")
            return jsonify({'error': 'Invalid token'}), 401
        except (ValueError, auth.CertificateFetchError) as e:
            logger.error(f"Authentication error: {str(e)}")
            return jsonify({'error': 'Authentication failed'}), 401

        # Add user info to request context
        request.current_user = decoded_token
        return f(*args, **kwargs)

    return decorated_function

def optional_auth(f):
    """
    Decorator for endpoints where auth is optional (anonymous scans, public boards)
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        request.current_user = None

        token = _bearer_token()
        if token:
            try:
                request.current_user = auth.verify_id_token(token)
            except (ValueError, auth.InvalidIdTokenError, auth.CertificateFetchError) as e:
                # Invalid token, but continue without auth
                logger.info(f"Ignoring unusable token on optional-auth route: {str(e)}")

        return f(*args, **kwargs)

    return decorated_function

def current_user_id():
    """
    Uid of the authenticated caller, or None
    """
    decoded_token = getattr(request, 'current_user', None)
    if not decoded_token:
        return None
    return decoded_token.get('uid')
