"""
Dashboard blueprint — dashboard figures and the schedule calendar.
"""

from flask import Blueprint

bp = Blueprint("dashboard", __name__)

# Import routes after blueprint creation to avoid circular imports.
from carhub.blueprints.dashboard import routes  # noqa: E402, F401
