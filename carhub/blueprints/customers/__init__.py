"""
Customers blueprint — customer records and their vehicles/orders.
"""

from flask import Blueprint

bp = Blueprint("customers", __name__)

# Import routes after blueprint creation to avoid circular imports.
from carhub.blueprints.customers import routes  # noqa: E402, F401
