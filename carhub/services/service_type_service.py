"""
Service type service — the catalog of work the shop offers.

Types are never hard-deleted.  "Deleting" a type deactivates it, so it
disappears from the public list while historical orders keep their
labels.
"""

import logging
from typing import Any

from sqlalchemy import func

from carhub import clock
from carhub.extensions import db
from carhub.models.service import ZERO, ServiceType
from carhub.services import audit_service
from carhub.validators import (
    ValidationError,
    clean_str,
    parse_bool,
    parse_decimal,
    parse_int,
)

logger = logging.getLogger(__name__)

# Starter catalog loaded by ``flask seed-service-types``.
DEFAULT_SERVICE_TYPES = [
    {"name": "Oil change", "default_price": "120.00", "estimated_duration": 30,
     "is_recurring": True, "interval_months": 6, "loyalty_points": 10},
    {"name": "Wheel alignment", "default_price": "80.00", "estimated_duration": 45,
     "is_recurring": True, "interval_months": 12, "loyalty_points": 5},
    {"name": "Brake service", "default_price": "250.00", "estimated_duration": 90,
     "loyalty_points": 20},
    {"name": "General inspection", "default_price": "150.00", "estimated_duration": 60,
     "is_recurring": True, "interval_months": 12, "loyalty_points": 10},
    {"name": "Car wash", "default_price": "50.00", "estimated_duration": 40,
     "loyalty_points": 2},
]


# -- Lookup ----------------------------------------------------------------


def get_service_types(include_inactive: bool = False) -> list[ServiceType]:
    """Return service types ordered by name."""
    query = ServiceType.query.order_by(ServiceType.name)
    if not include_inactive:
        query = query.filter(ServiceType.is_active == True)  # noqa: E712
    return query.all()


def get_service_type_by_id(service_type_id: int) -> ServiceType | None:
    """Return a service type by primary key."""
    return db.session.get(ServiceType, service_type_id)


# -- Create / update / deactivate ------------------------------------------


def create_service_type(data: dict[str, Any], user_id: int | None = None) -> ServiceType:
    """
    Add a catalog entry.

    Raises:
        ValidationError: If the name is missing or already used.
    """
    fields = _parse_payload(data, partial=False)
    if _name_taken(fields["name"]):
        raise ValidationError("A service type with this name exists", field="name")

    service_type = ServiceType(**fields)
    db.session.add(service_type)
    db.session.flush()

    audit_service.log_change(
        user_id=user_id,
        action_type="CREATE",
        entity_type="service_type",
        entity_id=service_type.id,
        new_value=_audit_snapshot(service_type),
    )
    db.session.commit()

    logger.info("Created service type: %s", service_type.name)
    return service_type


def update_service_type(
    service_type_id: int,
    data: dict[str, Any],
    user_id: int | None = None,
) -> ServiceType:
    """
    Update the fields present in ``data``.

    Raises:
        ValueError: If the service type is not found.
    """
    service_type = get_service_type_by_id(service_type_id)
    if service_type is None:
        raise ValueError(f"Service type ID {service_type_id} not found.")

    fields = _parse_payload(data, partial=True)
    new_name = fields.get("name")
    if new_name and new_name.lower() != service_type.name.lower():
        if _name_taken(new_name):
            raise ValidationError("A service type with this name exists", field="name")

    recurring = fields.get("is_recurring", service_type.is_recurring)
    interval = fields.get("interval_months", service_type.interval_months)
    if recurring and not interval:
        raise ValidationError(
            "Recurring services need an interval in months", field="interval_months"
        )

    previous = _audit_snapshot(service_type)
    for name, value in fields.items():
        setattr(service_type, name, value)
    service_type.updated_at = clock.utcnow()

    audit_service.log_change(
        user_id=user_id,
        action_type="UPDATE",
        entity_type="service_type",
        entity_id=service_type.id,
        previous_value=previous,
        new_value=_audit_snapshot(service_type),
    )
    db.session.commit()

    logger.info("Updated service type ID %d", service_type_id)
    return service_type


def deactivate_service_type(
    service_type_id: int,
    user_id: int | None = None,
) -> ServiceType:
    """
    Soft-delete a service type by setting ``is_active`` to False.

    Raises:
        ValueError: If the service type is not found.
    """
    service_type = get_service_type_by_id(service_type_id)
    if service_type is None:
        raise ValueError(f"Service type ID {service_type_id} not found.")

    service_type.is_active = False
    service_type.updated_at = clock.utcnow()

    audit_service.log_change(
        user_id=user_id,
        action_type="DEACTIVATE",
        entity_type="service_type",
        entity_id=service_type.id,
    )
    db.session.commit()

    logger.info("Deactivated service type ID %d", service_type_id)
    return service_type


def seed_default_service_types() -> int:
    """Insert the starter catalog entries that do not exist yet."""
    created = 0
    for entry in DEFAULT_SERVICE_TYPES:
        if _name_taken(entry["name"]):
            continue
        db.session.add(ServiceType(**_parse_payload(entry, partial=False)))
        created += 1
    db.session.commit()
    logger.info("Seeded %d service type(s)", created)
    return created


# -- Internal helpers ------------------------------------------------------


def _name_taken(name: str) -> bool:
    """Case-insensitive exact match against existing names."""
    query = ServiceType.query.filter(func.lower(ServiceType.name) == name.lower())
    return query.first() is not None


def _parse_payload(data: dict[str, Any], partial: bool) -> dict[str, Any]:
    fields: dict[str, Any] = {}

    if not partial or "name" in data:
        name = clean_str(data.get("name"), 100)
        if not name:
            raise ValidationError("Name is required", field="name")
        fields["name"] = name
    if "description" in data:
        fields["description"] = clean_str(data["description"])
    if not partial or "default_price" in data:
        fields["default_price"] = parse_decimal(
            data.get("default_price"), "default_price", default=ZERO
        )
    if "estimated_duration" in data:
        duration = parse_int(data["estimated_duration"], "estimated_duration")
        if duration is not None and duration <= 0:
            raise ValidationError(
                "Estimated duration must be positive", field="estimated_duration"
            )
        fields["estimated_duration"] = duration
    for flag in ("is_active", "is_recurring"):
        if flag in data:
            fields[flag] = parse_bool(data[flag], default=flag == "is_active")
    if "interval_months" in data:
        fields["interval_months"] = parse_int(data["interval_months"], "interval_months")
    if "loyalty_points" in data:
        points = parse_int(data["loyalty_points"], "loyalty_points", default=0)
        if points < 0:
            raise ValidationError(
                "Loyalty points cannot be negative", field="loyalty_points"
            )
        fields["loyalty_points"] = points

    if not partial and fields.get("is_recurring") and not fields.get("interval_months"):
        raise ValidationError(
            "Recurring services need an interval in months", field="interval_months"
        )

    return fields


def _audit_snapshot(service_type: ServiceType) -> dict[str, Any]:
    return {
        "name": service_type.name,
        "default_price": str(service_type.default_price),
        "estimated_duration": service_type.estimated_duration,
        "is_active": service_type.is_active,
        "is_recurring": service_type.is_recurring,
        "interval_months": service_type.interval_months,
    }
