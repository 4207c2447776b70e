"""
Catalog blueprint — the active service types offered by the shop.
"""

from flask import Blueprint

bp = Blueprint("catalog", __name__)

# Import routes after blueprint creation to avoid circular imports.
from carhub.blueprints.catalog import routes  # noqa: E402, F401
