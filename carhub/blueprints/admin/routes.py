"""
Routes for the admin blueprint — user management, the service
catalog, and audit logs.

All routes require the 'admin' role.
"""

from flask import jsonify, request
from flask_login import current_user, login_required

from carhub.api import error_response, json_body, message_response
from carhub.blueprints.admin import bp
from carhub.decorators import role_required
from carhub.services import audit_service, service_type_service, user_service
from carhub.validators import ValidationError, clean_str, parse_bool, parse_date


# =========================================================================
# User Management
# =========================================================================


@bp.route("/api/admin/users")
@login_required
@role_required("admin")
def list_users():
    """All staff accounts; ``show_inactive=0`` hides deactivated ones."""
    include_inactive = request.args.get("show_inactive", "1") != "0"
    users = user_service.get_all_users(include_inactive=include_inactive)
    return jsonify([user.to_dict() for user in users])


@bp.route("/api/admin/users", methods=["POST"])
@login_required
@role_required("admin")
def create_user():
    """Create a staff account with any role."""
    data = json_body()
    try:
        user = user_service.create_user(
            username=data.get("username"),
            password=data.get("password"),
            email=clean_str(data.get("email")),
            first_name=clean_str(data.get("first_name")),
            last_name=clean_str(data.get("last_name")),
            role=data.get("role") or "technician",
            created_by=current_user.id,
        )
    except (ValueError, ValidationError) as exc:
        return error_response(exc)
    return jsonify(user.to_dict()), 201


@bp.route("/api/admin/users/<int:user_id>", methods=["PATCH", "PUT"])
@login_required
@role_required("admin")
def update_user(user_id):
    """Change role, active flag, contact details or password."""
    data = json_body()
    try:
        user = user_service.update_user(
            user_id,
            email=clean_str(data["email"]) if "email" in data else None,
            first_name=clean_str(data["first_name"]) if "first_name" in data else None,
            last_name=clean_str(data["last_name"]) if "last_name" in data else None,
            role=data.get("role"),
            is_active=parse_bool(data["is_active"]) if "is_active" in data else None,
            password=data.get("password"),
            changed_by=current_user.id,
        )
    except (ValueError, ValidationError) as exc:
        return error_response(exc)
    return jsonify(user.to_dict())


@bp.route("/api/admin/users/<int:user_id>", methods=["DELETE"])
@login_required
@role_required("admin")
def delete_user(user_id):
    """
    Delete a user, or deactivate one referenced by service orders.
    Admins cannot delete themselves.
    """
    try:
        outcome = user_service.delete_user(user_id, deleted_by=current_user.id)
    except ValueError as exc:
        return error_response(exc)
    return jsonify({"message": f"User {outcome}", "result": outcome})


# =========================================================================
# Service catalog
# =========================================================================


@bp.route("/api/admin/service-types")
@login_required
@role_required("admin")
def list_service_types():
    """Every service type, including inactive ones."""
    service_types = service_type_service.get_service_types(include_inactive=True)
    return jsonify([service_type.to_dict() for service_type in service_types])


@bp.route("/api/admin/service-types", methods=["POST"])
@login_required
@role_required("admin")
def create_service_type():
    try:
        service_type = service_type_service.create_service_type(
            json_body(), user_id=current_user.id
        )
    except (ValueError, ValidationError) as exc:
        return error_response(exc)
    return jsonify(service_type.to_dict()), 201


@bp.route("/api/admin/service-types/<int:service_type_id>", methods=["PUT", "PATCH"])
@login_required
@role_required("admin")
def update_service_type(service_type_id):
    try:
        service_type = service_type_service.update_service_type(
            service_type_id, json_body(), user_id=current_user.id
        )
    except (ValueError, ValidationError) as exc:
        return error_response(exc)
    return jsonify(service_type.to_dict())


@bp.route("/api/admin/service-types/<int:service_type_id>", methods=["DELETE"])
@login_required
@role_required("admin")
def delete_service_type(service_type_id):
    """Deactivate; past orders keep referencing the type."""
    try:
        service_type_service.deactivate_service_type(
            service_type_id, user_id=current_user.id
        )
    except ValueError as exc:
        return error_response(exc)
    return message_response("Service type deactivated")


# =========================================================================
# Audit logs
# =========================================================================


@bp.route("/api/admin/audit-logs")
@login_required
@role_required("admin")
def audit_logs():
    """
    Paginated audit trail, newest first.

    Query Parameters:
        page, per_page: Pagination (per_page capped at 200).
        user_id, action_type, entity_type: Filters.
        start_date, end_date (YYYY-MM-DD): Inclusive date range.
    """
    try:
        start = parse_date(request.args.get("start_date"), "start_date")
        end = parse_date(request.args.get("end_date"), "end_date")
    except ValidationError as exc:
        return error_response(exc)

    pagination = audit_service.get_audit_logs(
        page=request.args.get("page", 1, type=int),
        per_page=min(request.args.get("per_page", 50, type=int), 200),
        user_id=request.args.get("user_id", type=int),
        action_type=request.args.get("action_type") or None,
        entity_type=request.args.get("entity_type") or None,
        start=start,
        end=end,
    )
    return jsonify(audit_service.page_to_dict(pagination))
