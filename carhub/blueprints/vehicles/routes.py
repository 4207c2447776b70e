"""
Routes for the vehicles blueprint.
"""

from flask import jsonify
from flask_login import current_user, login_required

from carhub.api import arg_int, error_response, json_body, message_response
from carhub.blueprints.vehicles import bp
from carhub.services import service_order_service, vehicle_service
from carhub.validators import ValidationError


@bp.route("/api/vehicles")
@login_required
def list_vehicles():
    """Vehicles ordered by plate; ``customerId`` narrows to one owner."""
    vehicles = vehicle_service.get_vehicles(
        customer_id=arg_int("customerId", "customer_id")
    )
    return jsonify([vehicle.to_dict(include_customer=True) for vehicle in vehicles])


@bp.route("/api/vehicles/<int:vehicle_id>")
@login_required
def get_vehicle(vehicle_id):
    vehicle = vehicle_service.get_vehicle_by_id(vehicle_id)
    if vehicle is None:
        return message_response("Vehicle not found", 404)
    return jsonify(vehicle.to_dict(include_customer=True))


@bp.route("/api/vehicles", methods=["POST"])
@login_required
def create_vehicle():
    try:
        vehicle = vehicle_service.create_vehicle(json_body(), user_id=current_user.id)
    except (ValueError, ValidationError) as exc:
        return error_response(exc)
    return jsonify(vehicle.to_dict(include_customer=True)), 201


@bp.route("/api/vehicles/<int:vehicle_id>", methods=["PUT", "PATCH"])
@login_required
def update_vehicle(vehicle_id):
    try:
        vehicle = vehicle_service.update_vehicle(
            vehicle_id, json_body(), user_id=current_user.id
        )
    except (ValueError, ValidationError) as exc:
        return error_response(exc)
    return jsonify(vehicle.to_dict(include_customer=True))


@bp.route("/api/vehicles/<int:vehicle_id>", methods=["DELETE"])
@login_required
def delete_vehicle(vehicle_id):
    """Delete a vehicle and its closed history; 400 while orders are open."""
    try:
        vehicle_service.delete_vehicle(vehicle_id, user_id=current_user.id)
    except ValueError as exc:
        return error_response(exc)
    return message_response("Vehicle deleted")


@bp.route("/api/vehicles/<int:vehicle_id>/services")
@login_required
def vehicle_history(vehicle_id):
    try:
        services = vehicle_service.get_vehicle_history(vehicle_id)
    except ValueError as exc:
        return error_response(exc)
    visible = [s for s in services if service_order_service.can_access(current_user, s)]
    return jsonify([service.to_dict(include_items=True) for service in visible])
