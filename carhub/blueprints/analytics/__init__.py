"""
Analytics blueprint — shop-wide breakdowns (admin only).
"""

from flask import Blueprint

bp = Blueprint("analytics", __name__)

# Import routes after blueprint creation to avoid circular imports.
from carhub.blueprints.analytics import routes  # noqa: E402, F401
