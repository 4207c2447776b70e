"""
Authorization decorators for route-level access control.

Used together with Flask-Login's ``@login_required``:

    @bp.route('/api/admin/users')
    @login_required
    @role_required('admin')
    def list_users():
        ...

Denials abort with 401/403; the app-level error handlers turn those
into JSON bodies.
"""

import logging
from functools import wraps

from flask import abort, request
from flask_login import current_user

logger = logging.getLogger(__name__)


def role_required(*role_names: str):
    """
    Decorator that restricts access to users with one of the specified roles.

    Args:
        role_names: One or more role name strings (e.g., 'admin').
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                abort(401)
            if not current_user.has_role(*role_names):
                logger.warning(
                    "Access denied: user %d (%s) with role '%s' "
                    "attempted %s %s (requires one of: %s)",
                    current_user.id,
                    current_user.username,
                    current_user.role,
                    request.method,
                    request.path,
                    ", ".join(role_names),
                )
                abort(403, description="Admin access required.")
            return func(*args, **kwargs)

        return wrapper

    return decorator
