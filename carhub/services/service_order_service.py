"""
Service order service — scheduling and tracking work on vehicles.

Rules enforced here:
  - An order needs at least one line item, and the vehicle must belong
    to the order's customer.
  - Missing schedule fields default to the current business date/time.
  - ``estimated_value`` defaults to the items total; a completed order
    without a ``final_value`` is billed at the items total.
  - Status transitions stamp ``started_at`` / ``completed_at``;
    completing an order credits the customer's loyalty points once.
  - ``amount_paid`` is derived from the per-method breakdown.
  - Technicians only see and edit orders assigned to them.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any

from carhub import clock
from carhub.extensions import db
from carhub.models.customer import Customer, Vehicle
from carhub.models.service import (
    SERVICE_STATUSES,
    ZERO,
    Service,
    ServiceItem,
    ServiceType,
)
from carhub.models.user import User
from carhub.services import (
    audit_service,
    customer_service,
    photo_service,
    reminder_service,
)
from carhub.validators import (
    ValidationError,
    clean_str,
    parse_bool,
    parse_choice,
    parse_date,
    parse_decimal,
    parse_int,
    parse_time,
)

logger = logging.getLogger(__name__)

PAYMENT_FIELDS = ("paid_pix", "paid_cash", "paid_check", "paid_card")


# =========================================================================
# Lookup and scoping
# =========================================================================


def scoped_query(user: User | None):
    """
    Base query of the service orders ``user`` may see.

    Admins (and system callers passing ``None``) see everything;
    technicians see the orders assigned to them.
    """
    query = Service.query
    if user is not None and not user.is_admin:
        query = query.filter(Service.technician_id == user.id)
    return query


def get_services(
    user: User | None,
    status: str | None = None,
    customer_id: int | None = None,
    vehicle_id: int | None = None,
) -> list[Service]:
    """Return visible service orders, newest first."""
    query = scoped_query(user)
    if status:
        parse_choice(status, "status", SERVICE_STATUSES)
        query = query.filter(Service.status == status)
    if customer_id is not None:
        query = query.filter(Service.customer_id == customer_id)
    if vehicle_id is not None:
        query = query.filter(Service.vehicle_id == vehicle_id)
    return query.order_by(Service.created_at.desc(), Service.id.desc()).all()


def get_service_by_id(service_id: int) -> Service | None:
    """Return a service order by primary key."""
    return db.session.get(Service, service_id)


def can_access(user: User | None, service: Service) -> bool:
    if user is None or user.is_admin:
        return True
    return service.technician_id == user.id


def get_service_for_user(service_id: int, user: User | None) -> Service:
    """
    Fetch an order the user is allowed to see.

    Raises:
        ValueError: If not found.
        PermissionError: If a technician asks for someone else's order.
    """
    service = get_service_by_id(service_id)
    if service is None:
        raise ValueError(f"Service ID {service_id} not found.")
    if not can_access(user, service):
        raise PermissionError(f"Service ID {service_id} is not assigned to you.")
    return service


def get_service_items(service_id: int, user: User | None = None) -> list[ServiceItem]:
    return list(get_service_for_user(service_id, user).items)


def get_services_in_range(
    user: User | None,
    start: date | None = None,
    end: date | None = None,
    status: str | None = None,
) -> list[Service]:
    """Visible orders scheduled between ``start`` and ``end`` (inclusive)."""
    query = scoped_query(user)
    if start is not None:
        query = query.filter(Service.scheduled_date >= start)
    if end is not None:
        query = query.filter(Service.scheduled_date <= end)
    if status:
        parse_choice(status, "status", SERVICE_STATUSES)
        query = query.filter(Service.status == status)
    return query.order_by(
        Service.scheduled_date, Service.scheduled_time, Service.id
    ).all()


# =========================================================================
# Create
# =========================================================================


def create_service(data: dict[str, Any], user: User | None = None) -> Service:
    """
    Open a service order with its line items.

    Raises:
        ValidationError: For invalid fields, a missing item list, or a
                         vehicle that is not the customer's.
    """
    vehicle, customer = _resolve_vehicle_and_customer(data)
    items = _parse_items(data.get("items"))

    now = clock.now()
    service = Service(
        customer=customer,
        vehicle=vehicle,
        technician_id=_resolve_technician(data, user),
        status=parse_choice(data.get("status"), "status", SERVICE_STATUSES, default="scheduled"),
        scheduled_date=parse_date(data.get("scheduled_date"), "scheduled_date") or now.date(),
        scheduled_time=(
            parse_time(data.get("scheduled_time"), "scheduled_time")
            or now.time().replace(second=0, microsecond=0)
        ),
        notes=clean_str(data.get("notes")),
        final_value=parse_decimal(data.get("final_value"), "final_value"),
    )
    for field_name in PAYMENT_FIELDS:
        setattr(service, field_name, parse_decimal(data.get(field_name), field_name, default=ZERO))
    service.recompute_amount_paid()
    service.items = items
    service.estimated_value = parse_decimal(
        data.get("estimated_value"), "estimated_value", default=service.items_total
    )

    db.session.add(service)
    _apply_status_side_effects(service, previous_status=None)
    db.session.flush()

    if parse_bool(data.get("reminder_enabled")):
        reminder_service.schedule_reminder(
            service,
            parse_int(data.get("reminder_minutes"), "reminder_minutes"),
        )

    audit_service.log_change(
        user_id=user.id if user else None,
        action_type="CREATE",
        entity_type="service",
        entity_id=service.id,
        new_value=_audit_snapshot(service),
    )
    db.session.commit()

    logger.info(
        "Created service #%d for vehicle %s with %d item(s)",
        service.id,
        vehicle.license_plate,
        len(items),
    )
    return service


# =========================================================================
# Update
# =========================================================================


def update_service(
    service_id: int,
    data: dict[str, Any],
    user: User | None = None,
) -> Service:
    """
    Update the fields present in ``data``.

    ``items``, when given, replaces the whole item list.

    Raises:
        ValueError: If not found.
        PermissionError: If a technician edits someone else's order.
        ValidationError: For invalid values.
    """
    service = get_service_for_user(service_id, user)
    previous = _audit_snapshot(service)
    previous_status = service.status
    schedule_changed = False

    if "vehicle_id" in data or "customer_id" in data:
        merged = {
            "vehicle_id": data.get("vehicle_id", service.vehicle_id),
            "customer_id": data.get("customer_id"),
        }
        vehicle, customer = _resolve_vehicle_and_customer(merged)
        service.vehicle = vehicle
        service.customer = customer

    if "technician_id" in data:
        if user is not None and not user.is_admin:
            raise ValidationError(
                "Only admins can reassign service orders", field="technician_id"
            )
        service.technician_id = _resolve_technician(data, user)

    if "status" in data:
        service.status = parse_choice(data["status"], "status", SERVICE_STATUSES)
    if "scheduled_date" in data:
        service.scheduled_date = parse_date(data["scheduled_date"], "scheduled_date")
        schedule_changed = True
    if "scheduled_time" in data:
        service.scheduled_time = parse_time(data["scheduled_time"], "scheduled_time")
        schedule_changed = True
    if "notes" in data:
        service.notes = clean_str(data["notes"])
    if "final_value" in data:
        service.final_value = parse_decimal(data["final_value"], "final_value")

    if data.get("items") is not None:
        service.items = _parse_items(data["items"])
        if "estimated_value" not in data:
            service.estimated_value = service.items_total
    if "estimated_value" in data:
        service.estimated_value = parse_decimal(
            data["estimated_value"], "estimated_value", default=service.items_total
        )

    if any(field_name in data for field_name in PAYMENT_FIELDS):
        for field_name in PAYMENT_FIELDS:
            if field_name in data:
                setattr(
                    service,
                    field_name,
                    parse_decimal(data[field_name], field_name, default=ZERO),
                )
        service.recompute_amount_paid()

    _apply_status_side_effects(service, previous_status=previous_status)
    service.updated_at = clock.utcnow()

    if "reminder_enabled" in data:
        if parse_bool(data["reminder_enabled"]):
            reminder_service.schedule_reminder(
                service, parse_int(data.get("reminder_minutes"), "reminder_minutes")
            )
        else:
            reminder_service.clear_reminders(service)
    elif schedule_changed:
        reminder_service.reschedule(service)

    audit_service.log_change(
        user_id=user.id if user else None,
        action_type="UPDATE",
        entity_type="service",
        entity_id=service.id,
        previous_value=previous,
        new_value=_audit_snapshot(service),
    )
    db.session.commit()

    logger.info("Updated service #%d (status %s)", service.id, service.status)
    return service


# =========================================================================
# Delete
# =========================================================================


def delete_service(service_id: int, user: User | None = None) -> None:
    """
    Delete an order together with its items, payments and reminders.

    Raises:
        ValueError: If not found.
        PermissionError: If a technician deletes someone else's order.
    """
    service = get_service_for_user(service_id, user)
    previous = _audit_snapshot(service)

    photo_service.delete_photos_for("service", service_id)
    db.session.delete(service)
    audit_service.log_change(
        user_id=user.id if user else None,
        action_type="DELETE",
        entity_type="service",
        entity_id=service_id,
        previous_value=previous,
    )
    db.session.commit()

    logger.info("Deleted service #%d", service_id)


# =========================================================================
# Internal helpers
# =========================================================================


def _resolve_vehicle_and_customer(data: dict[str, Any]) -> tuple[Vehicle, Customer]:
    vehicle_id = parse_int(data.get("vehicle_id"), "vehicle_id")
    vehicle = db.session.get(Vehicle, vehicle_id) if vehicle_id else None
    if vehicle is None:
        raise ValidationError("Vehicle not found", field="vehicle_id")

    customer_id = parse_int(data.get("customer_id"), "customer_id")
    if customer_id is None:
        customer_id = vehicle.customer_id
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise ValidationError("Customer not found", field="customer_id")
    if vehicle.customer_id != customer.id:
        raise ValidationError(
            "Vehicle does not belong to this customer", field="vehicle_id"
        )
    return vehicle, customer


def _resolve_technician(data: dict[str, Any], user: User | None) -> int | None:
    technician_id = parse_int(data.get("technician_id"), "technician_id")
    if technician_id is None:
        # Technicians own the orders they open.
        if user is not None and not user.is_admin:
            return user.id
        return None
    if user is not None and not user.is_admin and technician_id != user.id:
        raise ValidationError(
            "Only admins can assign orders to other technicians",
            field="technician_id",
        )
    technician = db.session.get(User, technician_id)
    if technician is None or not technician.is_active:
        raise ValidationError("Technician not found", field="technician_id")
    return technician.id


def _parse_items(raw_items: Any) -> list[ServiceItem]:
    """Build line items; at least one is required."""
    if not raw_items or not isinstance(raw_items, list):
        raise ValidationError("At least one service item is required", field="items")

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"Item {index + 1} is malformed", field="items")
        type_id = parse_int(raw.get("service_type_id"), "service_type_id")
        service_type = db.session.get(ServiceType, type_id) if type_id else None
        if service_type is None or not service_type.is_active:
            raise ValidationError(
                f"Item {index + 1}: service type not found", field="items"
            )
        quantity = parse_int(raw.get("quantity"), "quantity", default=1)
        if quantity < 1:
            raise ValidationError(
                f"Item {index + 1}: quantity must be at least 1", field="items"
            )
        unit_price = parse_decimal(
            raw.get("unit_price"), "unit_price", default=service_type.default_price
        )
        items.append(
            ServiceItem(
                service_type=service_type,
                quantity=quantity,
                unit_price=unit_price,
                total_price=unit_price * Decimal(quantity),
                notes=clean_str(raw.get("notes")),
            )
        )
    return items


def _apply_status_side_effects(service: Service, previous_status: str | None) -> None:
    """Stamp transition timestamps and credit loyalty on completion."""
    if service.status == previous_status:
        return
    stamp = clock.now()
    if previous_status == "completed":
        service.completed_at = None
    if service.status == "in_progress" and service.started_at is None:
        service.started_at = stamp
    elif service.status == "completed":
        if service.started_at is None:
            service.started_at = stamp
        service.completed_at = stamp
        if service.final_value is None:
            service.final_value = service.items_total
        if not service.loyalty_credited:
            points = sum(
                (item.service_type.loyalty_points or 0) * item.quantity
                for item in service.items
            )
            customer_service.add_loyalty_points(service.customer, points)
            service.loyalty_credited = True


def _audit_snapshot(service: Service) -> dict[str, Any]:
    return {
        "customer_id": service.customer_id,
        "vehicle_id": service.vehicle_id,
        "technician_id": service.technician_id,
        "status": service.status,
        "scheduled_date": service.scheduled_date,
        "scheduled_time": service.scheduled_time,
        "estimated_value": service.estimated_value,
        "final_value": service.final_value,
        "amount_paid": service.amount_paid,
        "items": [
            {
                "service_type_id": item.service_type.id,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
            }
            for item in service.items
        ],
    }
