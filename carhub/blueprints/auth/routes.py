"""
Routes for the auth blueprint — session-cookie authentication.

The single-page frontend posts credentials as JSON; Flask-Login keeps
the user ID in the signed session cookie.  Unsafe requests must carry
the token from ``/api/csrf-token`` in the ``X-CSRFToken`` header.
"""

from flask import jsonify
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from carhub.api import error_response, json_body, message_response
from carhub.blueprints.auth import bp
from carhub.services import auth_service
from carhub.validators import ValidationError


@bp.route("/api/csrf-token")
def csrf_token():
    """Issue a CSRF token for the session."""
    return jsonify({"csrf_token": generate_csrf()})


@bp.route("/api/register", methods=["POST"])
def register():
    """Create a technician account and sign it in."""
    data = json_body()
    try:
        user = auth_service.register(
            username=data.get("username"),
            password=data.get("password"),
            email=data.get("email"),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
        )
    except (ValueError, ValidationError) as exc:
        return error_response(exc)

    login_user(user, remember=False)
    return jsonify(user.to_dict()), 201


@bp.route("/api/login", methods=["POST"])
def login():
    """Check credentials and start a session."""
    data = json_body()
    try:
        user = auth_service.authenticate(data.get("username"), data.get("password"))
    except ValueError as exc:
        return message_response(str(exc), 401)

    login_user(user, remember=bool(data.get("remember")))
    return jsonify(user.to_dict())


@bp.route("/api/logout", methods=["POST"])
@login_required
def logout():
    """End the session."""
    auth_service.logout(current_user.id)
    logout_user()
    return message_response("Logged out")


@bp.route("/api/user")
@login_required
def current_user_info():
    """The signed-in user, or 401 when anonymous."""
    return jsonify(current_user.to_dict())
