"""
Auth blueprint — session login, logout, registration, CSRF token.
"""

from flask import Blueprint

bp = Blueprint("auth", __name__)

# Import routes after blueprint creation to avoid circular imports.
from carhub.blueprints.auth import routes  # noqa: E402, F401
