"""
Routes for the customers blueprint.

Any signed-in user may read and edit customers; the service layer
validates documents and refuses to delete customers still in use.
"""

from flask import jsonify, request
from flask_login import current_user, login_required

from carhub.api import error_response, json_body, message_response
from carhub.blueprints.customers import bp
from carhub.services import customer_service, service_order_service
from carhub.validators import ValidationError


@bp.route("/api/customers")
@login_required
def list_customers():
    """Customers ordered by name, optionally filtered by ``search``."""
    customers = customer_service.get_customers(search=request.args.get("search"))
    return jsonify([customer.to_dict() for customer in customers])


@bp.route("/api/customers/<int:customer_id>")
@login_required
def get_customer(customer_id):
    customer = customer_service.get_customer_by_id(customer_id)
    if customer is None:
        return message_response("Customer not found", 404)
    return jsonify(customer.to_dict())


@bp.route("/api/customers", methods=["POST"])
@login_required
def create_customer():
    try:
        customer = customer_service.create_customer(json_body(), user_id=current_user.id)
    except (ValueError, ValidationError) as exc:
        return error_response(exc)
    return jsonify(customer.to_dict()), 201


@bp.route("/api/customers/<int:customer_id>", methods=["PUT", "PATCH"])
@login_required
def update_customer(customer_id):
    try:
        customer = customer_service.update_customer(
            customer_id, json_body(), user_id=current_user.id
        )
    except (ValueError, ValidationError) as exc:
        return error_response(exc)
    return jsonify(customer.to_dict())


@bp.route("/api/customers/<int:customer_id>", methods=["DELETE"])
@login_required
def delete_customer(customer_id):
    """Delete a customer with no vehicles or service orders (400 otherwise)."""
    try:
        customer_service.delete_customer(customer_id, user_id=current_user.id)
    except ValueError as exc:
        return error_response(exc)
    return message_response("Customer deleted")


@bp.route("/api/customers/<int:customer_id>/vehicles")
@login_required
def customer_vehicles(customer_id):
    try:
        vehicles = customer_service.get_customer_vehicles(customer_id)
    except ValueError as exc:
        return error_response(exc)
    return jsonify([vehicle.to_dict() for vehicle in vehicles])


@bp.route("/api/customers/<int:customer_id>/services")
@login_required
def customer_services(customer_id):
    """The customer's service orders visible to the current user."""
    try:
        services = customer_service.get_customer_services(customer_id)
    except ValueError as exc:
        return error_response(exc)
    visible = [s for s in services if service_order_service.can_access(current_user, s)]
    return jsonify([service.to_dict(include_items=True) for service in visible])
