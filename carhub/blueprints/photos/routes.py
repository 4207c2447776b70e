"""
Routes for the photos blueprint.

Photos are posted either as a multipart ``photo`` file or as a JSON /
form ``photo`` field holding a base64 data URL from the camera
capture.  Every upload is recompressed by ``photo_service``.
"""

from flask import jsonify, request
from flask_login import current_user, login_required

from carhub.api import arg_int, error_response, json_body, message_response
from carhub.blueprints.photos import bp
from carhub.services import photo_service, service_order_service
from carhub.validators import ValidationError, parse_int

_PHOTO_ERRORS = (ValueError, ValidationError, PermissionError)


@bp.route("/api/photos")
@login_required
def list_photos():
    """Photos filtered by customerId, vehicleId, serviceId and category."""
    service_id = arg_int("serviceId", "service_id")
    try:
        if service_id is not None:
            service_order_service.get_service_for_user(service_id, current_user)
    except _PHOTO_ERRORS as exc:
        return error_response(exc)
    photos = photo_service.get_photos(
        customer_id=arg_int("customerId", "customer_id"),
        vehicle_id=arg_int("vehicleId", "vehicle_id"),
        service_id=service_id,
        category=request.args.get("category") or None,
        user=current_user,
    )
    return jsonify([photo.to_dict() for photo in photos])


@bp.route("/api/photos/<int:photo_id>")
@login_required
def get_photo(photo_id):
    try:
        photo = _visible_photo(photo_id)
    except _PHOTO_ERRORS as exc:
        return error_response(exc)
    return jsonify(photo.to_dict())


@bp.route("/api/photos/<int:photo_id>", methods=["PUT", "PATCH"])
@login_required
def update_photo(photo_id):
    """Change the category or description."""
    try:
        _visible_photo(photo_id)
        photo = photo_service.update_photo(photo_id, json_body(), user_id=current_user.id)
    except _PHOTO_ERRORS as exc:
        return error_response(exc)
    return jsonify(photo.to_dict())


@bp.route("/api/photos/<int:photo_id>", methods=["DELETE"])
@login_required
def delete_photo(photo_id):
    try:
        _visible_photo(photo_id)
        photo_service.delete_photo(photo_id, user_id=current_user.id)
    except _PHOTO_ERRORS as exc:
        return error_response(exc)
    return message_response("Photo deleted")


@bp.route("/api/photos/upload", methods=["POST"])
@login_required
def upload_photo():
    """
    Generic upload; the owner comes from ``entity_type`` + ``entity_id``
    or from one of ``customerId`` / ``vehicleId`` / ``serviceId``.
    """
    fields = _upload_fields()
    entity_type = fields.get("entity_type")
    entity_id = fields.get("entity_id")
    if not entity_type:
        for candidate, keys in (
            ("service", ("serviceId", "service_id")),
            ("vehicle", ("vehicleId", "vehicle_id")),
            ("customer", ("customerId", "customer_id")),
        ):
            found = next((fields[key] for key in keys if fields.get(key)), None)
            if found:
                entity_type, entity_id = candidate, found
                break
    try:
        if not entity_type or parse_int(entity_id, "entity_id") is None:
            raise ValidationError("Photo owner is required", field="entity_id")
        return _save(entity_type, parse_int(entity_id, "entity_id"), fields)
    except _PHOTO_ERRORS as exc:
        return error_response(exc)


# -- Per-entity galleries --------------------------------------------------


@bp.route("/api/customers/<int:customer_id>/photos")
@login_required
def customer_photos(customer_id):
    photos = photo_service.get_photos(customer_id=customer_id, user=current_user)
    return jsonify([photo.to_dict() for photo in photos])


@bp.route("/api/customers/<int:customer_id>/photos", methods=["POST"])
@login_required
def upload_customer_photo(customer_id):
    try:
        return _save("customer", customer_id, _upload_fields())
    except _PHOTO_ERRORS as exc:
        return error_response(exc)


@bp.route("/api/vehicles/<int:vehicle_id>/photos")
@login_required
def vehicle_photos(vehicle_id):
    photos = photo_service.get_photos(vehicle_id=vehicle_id, user=current_user)
    return jsonify([photo.to_dict() for photo in photos])


@bp.route("/api/vehicles/<int:vehicle_id>/photos", methods=["POST"])
@login_required
def upload_vehicle_photo(vehicle_id):
    try:
        return _save("vehicle", vehicle_id, _upload_fields())
    except _PHOTO_ERRORS as exc:
        return error_response(exc)


@bp.route("/api/services/<int:service_id>/photos")
@login_required
def service_photos(service_id):
    try:
        service_order_service.get_service_for_user(service_id, current_user)
    except _PHOTO_ERRORS as exc:
        return error_response(exc)
    return jsonify([p.to_dict() for p in photo_service.get_photos(service_id=service_id)])


@bp.route("/api/services/<int:service_id>/photos", methods=["POST"])
@login_required
def upload_service_photo(service_id):
    try:
        return _save("service", service_id, _upload_fields())
    except _PHOTO_ERRORS as exc:
        return error_response(exc)


# -- Helpers ---------------------------------------------------------------


def _upload_fields() -> dict:
    """Form fields for multipart uploads, otherwise the JSON body."""
    if request.files or request.form:
        return request.form.to_dict()
    return json_body()


def _visible_photo(photo_id: int):
    """The photo, provided its service order (if any) is visible to the user."""
    photo = photo_service.get_photo_by_id(photo_id)
    if photo is None:
        raise ValueError(f"Photo ID {photo_id} not found.")
    if photo.entity_type == "service":
        service_order_service.get_service_for_user(photo.entity_id, current_user)
    return photo


def _save(entity_type: str, entity_id: int, fields: dict):
    if entity_type == "service":
        service_order_service.get_service_for_user(entity_id, current_user)

    data_url = fields.get("photo")
    photo = photo_service.save_photo(
        entity_type,
        entity_id,
        file=request.files.get("photo"),
        data_url=data_url if isinstance(data_url, str) else None,
        category=fields.get("category"),
        description=fields.get("description"),
        user_id=current_user.id,
    )
    return jsonify(photo.to_dict()), 201
