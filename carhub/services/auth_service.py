"""
Auth service — username/password authentication.

Verifies credentials against the Werkzeug password hash, records the
login, and keeps only the user ID in the Flask session (via
Flask-Login).  Self-registration always creates a ``technician``; only
admins can grant the ``admin`` role.
"""

import logging

from flask import session

from carhub.extensions import db
from carhub.models.user import User
from carhub.services import audit_service, user_service

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid username or password"


def authenticate(username: str, password: str) -> User:
    """
    Check a username/password pair and record the login.

    Returns:
        The authenticated User.

    Raises:
        ValueError: If the credentials are wrong or the account is
                    inactive.  The message never reveals which.
    """
    user = user_service.get_user_by_username((username or "").strip())
    if user is None or not user.check_password(password or ""):
        logger.warning("Failed login attempt for username '%s'", username)
        raise ValueError(INVALID_CREDENTIALS)
    if not user.is_active:
        logger.warning("Login refused for inactive user %s", user.username)
        raise ValueError(INVALID_CREDENTIALS)

    user_service.record_login(user)
    audit_service.log_login(user.id)
    db.session.commit()

    logger.info("User %s logged in", user.username)
    return user


def register(
    username: str,
    password: str,
    email: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
) -> User:
    """Self-service sign-up; the new account is always a technician."""
    return user_service.create_user(
        username=username,
        password=password,
        email=email,
        first_name=first_name,
        last_name=last_name,
        role="technician",
    )


def logout(user_id: int) -> None:
    """Record the logout and drop app-specific session keys."""
    audit_service.log_logout(user_id)
    db.session.commit()
    clear_session()


def clear_session() -> None:
    """Remove application-specific keys from the Flask session on logout."""
    for key in ("csrf_token",):
        session.pop(key, None)
