"""
Photos blueprint — upload, list, edit and delete photos.
"""

from flask import Blueprint

bp = Blueprint("photos", __name__)

# Import routes after blueprint creation to avoid circular imports.
from carhub.blueprints.photos import routes  # noqa: E402, F401
