"""
Vehicles blueprint — vehicle records and service history.
"""

from flask import Blueprint

bp = Blueprint("vehicles", __name__)

# Import routes after blueprint creation to avoid circular imports.
from carhub.blueprints.vehicles import routes  # noqa: E402, F401
