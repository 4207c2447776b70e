"""
Admin blueprint — user management, service catalog, audit logs.
"""

from flask import Blueprint

bp = Blueprint("admin", __name__)

# Import routes after blueprint creation to avoid circular imports.
from carhub.blueprints.admin import routes  # noqa: E402, F401
