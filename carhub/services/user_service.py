"""
User service — staff account lookup, creation, and administration.

Passwords are hashed on the model (Werkzeug); this module never sees or
logs a stored hash.
"""

import logging

from sqlalchemy import func

from carhub import clock
from carhub.extensions import db
from carhub.models.service import Service
from carhub.models.user import ROLES, User
from carhub.services import audit_service
from carhub.validators import ValidationError, validate_email

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


# -- User lookup -----------------------------------------------------------


def get_user_by_id(user_id: int) -> User | None:
    """Return a user by primary key, or None if not found."""
    return db.session.get(User, user_id)


def get_user_by_username(username: str) -> User | None:
    """Return a user by username (case-insensitive)."""
    return User.query.filter(
        func.lower(User.username) == (username or "").lower()
    ).first()


def get_all_users(include_inactive: bool = True) -> list[User]:
    """Return all users ordered by username."""
    query = User.query.order_by(User.username)
    if not include_inactive:
        query = query.filter(User.is_active == True)  # noqa: E712
    return query.all()


# -- User creation ---------------------------------------------------------


def create_user(
    username: str,
    password: str,
    email: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
    role: str = "technician",
    created_by: int | None = None,
) -> User:
    """
    Create a new staff account.

    Raises:
        ValidationError: If the username is taken, the role unknown,
                         the email malformed, or the password too short.
    """
    username = (username or "").strip()
    if not username:
        raise ValidationError("Username is required", field="username")
    if get_user_by_username(username) is not None:
        raise ValidationError("Username already exists", field="username")
    if role not in ROLES:
        raise ValidationError(
            f"Role must be one of: {', '.join(ROLES)}", field="role"
        )
    _check_password(password)
    if email:
        is_valid, error = validate_email(email)
        if not is_valid:
            raise ValidationError(error, field="email")

    user = User(
        username=username,
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role,
    )
    user.set_password(password)
    db.session.add(user)
    db.session.flush()

    audit_service.log_change(
        user_id=created_by,
        action_type="CREATE",
        entity_type="user",
        entity_id=user.id,
        new_value={
            "username": username,
            "email": email,
            "first_name": first_name,
            "last_name": last_name,
            "role": role,
        },
    )
    db.session.commit()

    logger.info("Created user %s with role %s", username, role)
    return user


def update_user(
    user_id: int,
    email: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
    role: str | None = None,
    is_active: bool | None = None,
    password: str | None = None,
    changed_by: int | None = None,
) -> User:
    """
    Partially update a user; ``None`` arguments are left unchanged.

    Raises:
        ValueError: If the user is not found.
        ValidationError: If a new value is invalid, or an admin tries to
                         demote or deactivate themselves.
    """
    user = get_user_by_id(user_id)
    if user is None:
        raise ValueError(f"User ID {user_id} not found.")

    previous = {
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "role": user.role,
        "is_active": user.is_active,
    }

    if role is not None:
        if role not in ROLES:
            raise ValidationError(
                f"Role must be one of: {', '.join(ROLES)}", field="role"
            )
        if user_id == changed_by and role != "admin":
            raise ValidationError("You cannot remove your own admin role", field="role")
        user.role = role
    if is_active is not None:
        if user_id == changed_by and not is_active:
            raise ValidationError("You cannot deactivate yourself", field="is_active")
        user.is_active = is_active
    if email is not None:
        is_valid, error = validate_email(email)
        if not is_valid:
            raise ValidationError(error, field="email")
        user.email = email
    if first_name is not None:
        user.first_name = first_name
    if last_name is not None:
        user.last_name = last_name
    if password:
        _check_password(password)
        user.set_password(password)
    user.updated_at = clock.utcnow()

    audit_service.log_change(
        user_id=changed_by,
        action_type="UPDATE",
        entity_type="user",
        entity_id=user.id,
        previous_value=previous,
        new_value={
            "email": user.email,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "role": user.role,
            "is_active": user.is_active,
            "password_changed": bool(password),
        },
    )
    db.session.commit()

    logger.info("Updated user ID %d", user_id)
    return user


def delete_user(user_id: int, deleted_by: int | None = None) -> str:
    """
    Remove a user account.

    Users referenced by service orders are deactivated instead of
    deleted so the order history keeps its technician.

    Returns:
        ``"deleted"`` or ``"deactivated"``.

    Raises:
        ValueError: If the user is not found or is the caller.
    """
    user = get_user_by_id(user_id)
    if user is None:
        raise ValueError(f"User ID {user_id} not found.")
    if user_id == deleted_by:
        raise ValueError("You cannot delete your own account.")

    has_services = (
        db.session.query(Service.id).filter(Service.technician_id == user_id).first()
        is not None
    )
    if has_services:
        user.is_active = False
        user.updated_at = clock.utcnow()
        outcome = "deactivated"
        action = "DEACTIVATE"
    else:
        db.session.delete(user)
        outcome = "deleted"
        action = "DELETE"

    audit_service.log_change(
        user_id=deleted_by,
        action_type=action,
        entity_type="user",
        entity_id=user_id,
        previous_value={"username": user.username, "role": user.role},
    )
    db.session.commit()

    logger.info("User ID %d %s", user_id, outcome)
    return outcome


# -- Login bookkeeping -----------------------------------------------------


def record_login(user: User) -> None:
    """Stamp ``last_login`` (committed by the caller's audit entry)."""
    user.last_login = clock.utcnow()


def ensure_default_admin(
    username: str,
    password: str,
    email: str | None = None,
) -> tuple[User, bool]:
    """
    Create the initial administrator when no user has that username.

    Returns:
        Tuple of (user, created).
    """
    existing = get_user_by_username(username)
    if existing is not None:
        return existing, False

    user = create_user(
        username=username,
        password=password,
        email=email,
        first_name="Administrator",
        last_name="System",
        role="admin",
    )
    logger.info("Seeded default administrator %s", username)
    return user, True


def _check_password(password: str | None) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            field="password",
        )
