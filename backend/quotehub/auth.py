import hmac
import logging
from functools import wraps

from flask import request, jsonify, current_app

logger = logging.getLogger(__name__)


def require_admin_token(f):
    """Bearer token check against ADMIN_API_TOKEN. Without a token configured the route is disabled."""
    @wraps(f)
    def decorated(*args, **kwargs):
        expected = current_app.config.get('ADMIN_API_TOKEN')
        if not expected:
            return jsonify({'success': False, 'error': 'Admin endpoints are disabled'}), 403

        auth_header = request.headers.get('Authorization')
        if not auth_header:
            return jsonify({'success': False, 'error': 'Missing Authorization header'}), 401

        # Format: "Bearer <token>"
        parts = auth_header.split(' ')
        if len(parts) < 2 or parts[0] != 'Bearer':
            return jsonify({'success': False, 'error': 'Invalid Authorization header format'}), 401

        if not hmac.compare_digest(parts[1].encode(), expected.encode()):
            logger.warning(f"[Auth] Rejected admin call to {request.path}")
            return jsonify({'success': False, 'error': 'Invalid token'}), 401

        return f(*args, **kwargs)
    return decorated
