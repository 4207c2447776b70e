"""
Routes for the service orders blueprint — orders, line items,
reminders and payments.

Technicians are limited to the orders assigned to them; the service
layer raises ``PermissionError`` for anything else, which becomes 403.
"""

from flask import jsonify, request
from flask_login import current_user, login_required

from carhub.api import arg_int, error_response, json_body, message_response
from carhub.blueprints.service_orders import bp
from carhub.services import payment_service, reminder_service, service_order_service
from carhub.validators import ValidationError, parse_bool, parse_int

_SERVICE_ERRORS = (ValueError, ValidationError, PermissionError)


# =========================================================================
# Service orders
# =========================================================================


@bp.route("/api/services")
@login_required
def list_services():
    """Visible orders, newest first, filtered by status/customer/vehicle."""
    try:
        services = service_order_service.get_services(
            current_user,
            status=request.args.get("status") or None,
            customer_id=arg_int("customerId", "customer_id"),
            vehicle_id=arg_int("vehicleId", "vehicle_id"),
        )
    except ValidationError as exc:
        return error_response(exc)
    return jsonify([service.to_dict(include_items=True) for service in services])


@bp.route("/api/services/<int:service_id>")
@login_required
def get_service(service_id):
    try:
        service = service_order_service.get_service_for_user(service_id, current_user)
    except _SERVICE_ERRORS as exc:
        return error_response(exc)
    data = service.to_dict(include_items=True)
    data["reminder"] = reminder_service.get_reminder_info(service.id)
    return jsonify(data)


@bp.route("/api/services", methods=["POST"])
@login_required
def create_service():
    """Open an order; at least one item is required."""
    try:
        service = service_order_service.create_service(json_body(), current_user)
    except _SERVICE_ERRORS as exc:
        return error_response(exc)
    return jsonify(service.to_dict(include_items=True)), 201


@bp.route("/api/services/<int:service_id>", methods=["PUT", "PATCH"])
@login_required
def update_service(service_id):
    try:
        service = service_order_service.update_service(
            service_id, json_body(), current_user
        )
    except _SERVICE_ERRORS as exc:
        return error_response(exc)
    return jsonify(service.to_dict(include_items=True))


@bp.route("/api/services/<int:service_id>", methods=["DELETE"])
@login_required
def delete_service(service_id):
    """Delete an order with its items, payments, reminders and photos."""
    try:
        service_order_service.delete_service(service_id, current_user)
    except _SERVICE_ERRORS as exc:
        return error_response(exc)
    return message_response("Service deleted")


@bp.route("/api/services/<int:service_id>/items")
@login_required
def service_items(service_id):
    try:
        items = service_order_service.get_service_items(service_id, current_user)
    except _SERVICE_ERRORS as exc:
        return error_response(exc)
    return jsonify([item.to_dict() for item in items])


# =========================================================================
# Reminders
# =========================================================================


@bp.route("/api/services/<int:service_id>/reminders")
@login_required
def get_reminder(service_id):
    try:
        service_order_service.get_service_for_user(service_id, current_user)
    except _SERVICE_ERRORS as exc:
        return error_response(exc)
    return jsonify(reminder_service.get_reminder_info(service_id))


@bp.route("/api/services/<int:service_id>/reminders", methods=["PUT", "POST"])
@login_required
def set_reminder(service_id):
    """
    Turn the order's reminder on or off.

    Body: ``{"reminder_enabled": bool, "reminder_minutes": int}``.
    """
    data = json_body()
    try:
        service_order_service.get_service_for_user(service_id, current_user)
        info = reminder_service.set_reminder(
            service_id,
            enabled=parse_bool(data.get("reminder_enabled", data.get("enabled")), True),
            minutes=parse_int(data.get("reminder_minutes"), "reminder_minutes"),
            user_id=current_user.id,
        )
    except _SERVICE_ERRORS as exc:
        return error_response(exc)
    return jsonify(info)


# =========================================================================
# Payments
# =========================================================================


@bp.route("/api/services/<int:service_id>/payments")
@login_required
def service_payments(service_id):
    try:
        payments = payment_service.get_payments(service_id, current_user)
    except _SERVICE_ERRORS as exc:
        return error_response(exc)
    return jsonify([payment.to_dict() for payment in payments])


@bp.route("/api/payments", methods=["POST"])
@login_required
def record_payment():
    """Record a payment; returns it with the updated order totals."""
    try:
        payment = payment_service.record_payment(json_body(), current_user)
    except _SERVICE_ERRORS as exc:
        return error_response(exc)
    return jsonify(
        {"payment": payment.to_dict(), "service": payment.service.to_dict()}
    ), 201


@bp.route("/api/payments/<int:payment_id>", methods=["DELETE"])
@login_required
def delete_payment(payment_id):
    try:
        payment_service.delete_payment(payment_id, current_user)
    except _SERVICE_ERRORS as exc:
        return error_response(exc)
    return message_response("Payment deleted")
