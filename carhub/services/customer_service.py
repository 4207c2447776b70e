"""
Customer service — CRUD for shop customers.

Documents (CPF/CNPJ) are validated with their check digits and stored
as bare digits, so "123.456.789-09" and "12345678909" are the same
customer.  A customer whose vehicles or service orders still exist
cannot be deleted.
"""

import logging
from typing import Any

from sqlalchemy import or_

from carhub import clock
from carhub.extensions import db
from carhub.models.customer import DOCUMENT_TYPES, Customer, Vehicle
from carhub.models.service import Service
from carhub.services import audit_service, photo_service
from carhub.validators import (
    ValidationError,
    clean_str,
    detect_document_type,
    only_digits,
    parse_choice,
    parse_int,
    validate_document,
    validate_email,
)

logger = logging.getLogger(__name__)

CODE_PREFIX = "CLI"

# Fields copied verbatim (after stripping) from the payload.
_TEXT_FIELDS = {
    "name": 200,
    "email": 200,
    "phone": 20,
    "address": 300,
    "city": 100,
    "zip_code": 10,
    "observations": None,
}


# -- Lookup ----------------------------------------------------------------


def get_customers(search: str | None = None) -> list[Customer]:
    """
    Return customers ordered by name, optionally filtered.

    ``search`` matches name, code, email or phone (case-insensitive
    substring) and, when it contains digits, the stored document.
    """
    query = Customer.query.order_by(Customer.name)
    if search:
        pattern = f"%{search.strip()}%"
        conditions = [
            Customer.name.ilike(pattern),
            Customer.code.ilike(pattern),
            Customer.email.ilike(pattern),
            Customer.phone.ilike(pattern),
        ]
        digits = only_digits(search)
        if digits:
            conditions.append(Customer.document.like(f"%{digits}%"))
        query = query.filter(or_(*conditions))
    return query.all()


def get_customer_by_id(customer_id: int) -> Customer | None:
    """Return a customer by primary key."""
    return db.session.get(Customer, customer_id)


def get_customer_by_document(document: str) -> Customer | None:
    return Customer.query.filter_by(document=only_digits(document)).first()


def get_customer_vehicles(customer_id: int) -> list[Vehicle]:
    customer = _require_customer(customer_id)
    return list(customer.vehicles)


def get_customer_services(customer_id: int) -> list[Service]:
    """Service history for a customer, newest scheduled first."""
    _require_customer(customer_id)
    return (
        Service.query.filter_by(customer_id=customer_id)
        .order_by(Service.scheduled_date.desc(), Service.created_at.desc())
        .all()
    )


# -- Create / update / delete ----------------------------------------------


def create_customer(data: dict[str, Any], user_id: int | None = None) -> Customer:
    """
    Create a customer from a request payload.

    Raises:
        ValidationError: For missing/invalid fields, or a document or
                         code that is already registered.
    """
    fields = _parse_payload(data, partial=False)

    if get_customer_by_document(fields["document"]) is not None:
        raise ValidationError("Document already registered", field="document")
    if fields.get("code") and Customer.query.filter_by(code=fields["code"]).first():
        raise ValidationError("Customer code already in use", field="code")

    customer = Customer(**fields)
    db.session.add(customer)
    db.session.flush()

    if not customer.code:
        customer.code = f"{CODE_PREFIX}{customer.id:05d}"

    audit_service.log_change(
        user_id=user_id,
        action_type="CREATE",
        entity_type="customer",
        entity_id=customer.id,
        new_value=_audit_snapshot(customer),
    )
    db.session.commit()

    logger.info("Created customer %s (%s)", customer.code, customer.name)
    return customer


def update_customer(
    customer_id: int,
    data: dict[str, Any],
    user_id: int | None = None,
) -> Customer:
    """
    Update the fields present in ``data``.

    Raises:
        ValueError: If the customer is not found.
        ValidationError: For invalid values or a duplicate document/code.
    """
    customer = _require_customer(customer_id)
    fields = _parse_payload(data, partial=True, current=customer)

    new_document = fields.get("document")
    if new_document and new_document != customer.document:
        other = get_customer_by_document(new_document)
        if other is not None and other.id != customer.id:
            raise ValidationError("Document already registered", field="document")
    new_code = fields.get("code")
    if new_code and new_code != customer.code:
        other = Customer.query.filter_by(code=new_code).first()
        if other is not None and other.id != customer.id:
            raise ValidationError("Customer code already in use", field="code")

    previous = _audit_snapshot(customer)
    for name, value in fields.items():
        setattr(customer, name, value)
    customer.updated_at = clock.utcnow()

    audit_service.log_change(
        user_id=user_id,
        action_type="UPDATE",
        entity_type="customer",
        entity_id=customer.id,
        previous_value=previous,
        new_value=_audit_snapshot(customer),
    )
    db.session.commit()

    logger.info("Updated customer ID %d", customer_id)
    return customer


def delete_customer(customer_id: int, user_id: int | None = None) -> None:
    """
    Delete a customer with no vehicles and no service orders.

    Raises:
        ValueError: If not found, or still referenced.
    """
    customer = _require_customer(customer_id)

    vehicle_count = Vehicle.query.filter_by(customer_id=customer_id).count()
    service_count = Service.query.filter_by(customer_id=customer_id).count()
    if vehicle_count or service_count:
        raise ValueError(
            "Cannot delete customer: "
            f"{vehicle_count} vehicle(s) and {service_count} service(s) linked."
        )

    previous = _audit_snapshot(customer)
    photo_service.delete_photos_for("customer", customer_id)
    db.session.delete(customer)
    audit_service.log_change(
        user_id=user_id,
        action_type="DELETE",
        entity_type="customer",
        entity_id=customer_id,
        previous_value=previous,
    )
    db.session.commit()

    logger.info("Deleted customer ID %d", customer_id)


def add_loyalty_points(customer: Customer, points: int) -> None:
    """Credit loyalty points (no commit; caller owns the transaction)."""
    if points > 0:
        customer.loyalty_points = (customer.loyalty_points or 0) + points


# -- Internal helpers ------------------------------------------------------


def _require_customer(customer_id: int) -> Customer:
    customer = get_customer_by_id(customer_id)
    if customer is None:
        raise ValueError(f"Customer ID {customer_id} not found.")
    return customer


def _parse_payload(
    data: dict[str, Any],
    partial: bool,
    current: Customer | None = None,
) -> dict[str, Any]:
    """
    Validate a customer payload and return model-ready fields.

    With ``partial=True`` only the keys present in ``data`` are
    returned; otherwise ``name`` and ``document`` are required.
    """
    fields: dict[str, Any] = {}

    for name, max_length in _TEXT_FIELDS.items():
        if name in data:
            fields[name] = clean_str(data[name], max_length)

    if not partial or "name" in data:
        if not fields.get("name"):
            raise ValidationError("Name is required", field="name")

    if "code" in data:
        fields["code"] = clean_str(data["code"], 20)

    if not partial or "document" in data or "document_type" in data:
        raw_document = data.get("document", current.document if current else None)
        document = only_digits(clean_str(raw_document) or "")
        if not document:
            raise ValidationError("Document (CPF/CNPJ) is required", field="document")
        document_type = parse_choice(
            data.get("document_type"),
            "document_type",
            DOCUMENT_TYPES,
            default=detect_document_type(document),
        )
        is_valid, error = validate_document(document, document_type)
        if not is_valid:
            raise ValidationError(error, field="document")
        fields["document"] = document
        fields["document_type"] = document_type

    if fields.get("email"):
        is_valid, error = validate_email(fields["email"])
        if not is_valid:
            raise ValidationError(error, field="email")

    if "state" in data:
        state = clean_str(data["state"])
        if state is not None:
            state = state.upper()
            if len(state) != 2 or not state.isalpha():
                raise ValidationError("State must be a 2-letter code", field="state")
        fields["state"] = state

    if "loyalty_points" in data:
        points = parse_int(data["loyalty_points"], "loyalty_points", default=0)
        if points < 0:
            raise ValidationError(
                "Loyalty points cannot be negative", field="loyalty_points"
            )
        fields["loyalty_points"] = points

    return fields


def _audit_snapshot(customer: Customer) -> dict[str, Any]:
    return {
        "code": customer.code,
        "name": customer.name,
        "document": customer.document,
        "document_type": customer.document_type,
        "email": customer.email,
        "phone": customer.phone,
        "city": customer.city,
        "state": customer.state,
    }
