"""
Vehicle service — CRUD for customer vehicles.

Plates are normalized before storage and lookup.  A vehicle with open
service orders (scheduled or in progress) cannot be deleted; closed
history (completed or cancelled orders) is removed with it.
"""

import logging
from typing import Any

from carhub import clock
from carhub.extensions import db
from carhub.models.customer import FUEL_TYPES, Customer, Vehicle
from carhub.models.service import OPEN_STATUSES, Service
from carhub.services import audit_service, photo_service
from carhub.validators import (
    ValidationError,
    clean_str,
    normalize_plate,
    parse_choice,
    validate_plate,
    validate_year,
)

logger = logging.getLogger(__name__)

_TEXT_FIELDS = {
    "brand": 100,
    "model": 100,
    "color": 50,
    "chassis": 50,
    "engine": 50,
    "notes": None,
}


# -- Lookup ----------------------------------------------------------------


def get_vehicles(customer_id: int | None = None) -> list[Vehicle]:
    """Return vehicles ordered by plate, optionally for one customer."""
    query = Vehicle.query.order_by(Vehicle.license_plate)
    if customer_id is not None:
        query = query.filter(Vehicle.customer_id == customer_id)
    return query.all()


def get_vehicle_by_id(vehicle_id: int) -> Vehicle | None:
    """Return a vehicle by primary key."""
    return db.session.get(Vehicle, vehicle_id)


def get_vehicle_by_plate(plate: str) -> Vehicle | None:
    return Vehicle.query.filter_by(license_plate=normalize_plate(plate)).first()


def get_vehicle_history(vehicle_id: int) -> list[Service]:
    """All service orders for a vehicle, newest first."""
    _require_vehicle(vehicle_id)
    return (
        Service.query.filter_by(vehicle_id=vehicle_id)
        .order_by(Service.scheduled_date.desc(), Service.created_at.desc())
        .all()
    )


def count_open_services(vehicle_id: int) -> int:
    return Service.query.filter(
        Service.vehicle_id == vehicle_id,
        Service.status.in_(OPEN_STATUSES),
    ).count()


# -- Create / update / delete ----------------------------------------------


def create_vehicle(data: dict[str, Any], user_id: int | None = None) -> Vehicle:
    """
    Register a vehicle for an existing customer.

    Raises:
        ValidationError: For missing/invalid fields, an unknown
                         customer, or a plate already registered.
    """
    fields = _parse_payload(data, partial=False)

    if get_vehicle_by_plate(fields["license_plate"]) is not None:
        raise ValidationError(
            "License plate already registered", field="license_plate"
        )

    vehicle = Vehicle(**fields)
    db.session.add(vehicle)
    db.session.flush()

    audit_service.log_change(
        user_id=user_id,
        action_type="CREATE",
        entity_type="vehicle",
        entity_id=vehicle.id,
        new_value=_audit_snapshot(vehicle),
    )
    db.session.commit()

    logger.info("Created vehicle %s for customer %d", vehicle.license_plate, vehicle.customer_id)
    return vehicle


def update_vehicle(
    vehicle_id: int,
    data: dict[str, Any],
    user_id: int | None = None,
) -> Vehicle:
    """
    Update the fields present in ``data``.

    Raises:
        ValueError: If the vehicle is not found.
        ValidationError: For invalid values, a duplicate plate, or a
                         change of owner once service orders exist.
    """
    vehicle = _require_vehicle(vehicle_id)
    fields = _parse_payload(data, partial=True)

    new_owner = fields.get("customer_id")
    if (
        new_owner is not None
        and new_owner != vehicle.customer_id
        and vehicle.services.count()
    ):
        # Orders record the owner at the time of service.
        raise ValidationError(
            "Vehicle has service orders and cannot change owner",
            field="customer_id",
        )

    new_plate = fields.get("license_plate")
    if new_plate and new_plate != vehicle.license_plate:
        other = get_vehicle_by_plate(new_plate)
        if other is not None and other.id != vehicle.id:
            raise ValidationError(
                "License plate already registered", field="license_plate"
            )

    previous = _audit_snapshot(vehicle)
    for name, value in fields.items():
        setattr(vehicle, name, value)
    vehicle.updated_at = clock.utcnow()

    audit_service.log_change(
        user_id=user_id,
        action_type="UPDATE",
        entity_type="vehicle",
        entity_id=vehicle.id,
        previous_value=previous,
        new_value=_audit_snapshot(vehicle),
    )
    db.session.commit()

    logger.info("Updated vehicle ID %d", vehicle_id)
    return vehicle


def delete_vehicle(vehicle_id: int, user_id: int | None = None) -> None:
    """
    Delete a vehicle and its closed service history.

    Raises:
        ValueError: If not found, or open service orders exist.
    """
    vehicle = _require_vehicle(vehicle_id)

    open_count = count_open_services(vehicle_id)
    if open_count:
        raise ValueError(
            f"Vehicle cannot be deleted: {open_count} open service(s)."
        )

    previous = _audit_snapshot(vehicle)
    for service in Service.query.filter_by(vehicle_id=vehicle_id).all():
        photo_service.delete_photos_for("service", service.id)
        db.session.delete(service)
    photo_service.delete_photos_for("vehicle", vehicle_id)
    db.session.delete(vehicle)

    audit_service.log_change(
        user_id=user_id,
        action_type="DELETE",
        entity_type="vehicle",
        entity_id=vehicle_id,
        previous_value=previous,
    )
    db.session.commit()

    logger.info("Deleted vehicle ID %d", vehicle_id)


# -- Internal helpers ------------------------------------------------------


def _require_vehicle(vehicle_id: int) -> Vehicle:
    vehicle = get_vehicle_by_id(vehicle_id)
    if vehicle is None:
        raise ValueError(f"Vehicle ID {vehicle_id} not found.")
    return vehicle


def _parse_payload(data: dict[str, Any], partial: bool) -> dict[str, Any]:
    fields: dict[str, Any] = {}

    for name, max_length in _TEXT_FIELDS.items():
        if name in data:
            fields[name] = clean_str(data[name], max_length)

    for required in ("brand", "model"):
        if (not partial or required in data) and not fields.get(required):
            raise ValidationError(f"{required.capitalize()} is required", field=required)

    if not partial or "customer_id" in data:
        customer_id = data.get("customer_id")
        try:
            customer = db.session.get(Customer, int(customer_id)) if customer_id else None
        except (TypeError, ValueError):
            customer = None
        if customer is None:
            raise ValidationError("Customer not found", field="customer_id")
        fields["customer_id"] = customer.id

    if not partial or "license_plate" in data:
        is_valid, error = validate_plate(data.get("license_plate"))
        if not is_valid:
            raise ValidationError(error, field="license_plate")
        fields["license_plate"] = normalize_plate(data["license_plate"])

    if not partial or "year" in data:
        is_valid, error = validate_year(data.get("year"), clock.today().year + 1)
        if not is_valid:
            raise ValidationError(error, field="year")
        fields["year"] = int(data["year"])

    if "fuel_type" in data:
        fields["fuel_type"] = parse_choice(
            clean_str(data["fuel_type"]), "fuel_type", FUEL_TYPES
        )

    return fields


def _audit_snapshot(vehicle: Vehicle) -> dict[str, Any]:
    return {
        "customer_id": vehicle.customer_id,
        "license_plate": vehicle.license_plate,
        "brand": vehicle.brand,
        "model": vehicle.model,
        "year": vehicle.year,
        "color": vehicle.color,
        "fuel_type": vehicle.fuel_type,
    }
