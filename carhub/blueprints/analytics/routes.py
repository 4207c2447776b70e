"""
Routes for the analytics blueprint.  Admin only.
"""

from flask import jsonify
from flask_login import login_required

from carhub.blueprints.analytics import bp
from carhub.decorators import role_required
from carhub.services import analytics_service


@bp.route("/api/analytics/services")
@login_required
@role_required("admin")
def services():
    return jsonify(analytics_service.get_service_analytics())


@bp.route("/api/analytics/customers")
@login_required
@role_required("admin")
def customers():
    return jsonify(analytics_service.get_customer_analytics())


@bp.route("/api/analytics/vehicles")
@login_required
@role_required("admin")
def vehicles():
    return jsonify(analytics_service.get_vehicle_analytics())


@bp.route("/api/analytics/payments")
@login_required
@role_required("admin")
def payments():
    """Per-method totals and the paid/partial/pending overview."""
    return jsonify(analytics_service.get_payment_analytics())
