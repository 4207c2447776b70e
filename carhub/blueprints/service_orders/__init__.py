"""
Service orders blueprint — orders, line items, reminders, payments.
"""

from flask import Blueprint

bp = Blueprint("service_orders", __name__)

# Import routes after blueprint creation to avoid circular imports.
from carhub.blueprints.service_orders import routes  # noqa: E402, F401
