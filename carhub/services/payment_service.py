"""
Payment service — money received against service orders.

Each payment row is also folded into the order's per-method column
(``paid_pix`` / ``paid_cash`` / ``paid_check`` / ``paid_card``), and
``amount_paid`` is recomputed from those columns, so the order's
payment status always reflects the recorded payments.
"""

import logging
from typing import Any

from carhub import clock
from carhub.extensions import db
from carhub.models.service import PAYMENT_METHODS, ZERO, Payment, Service
from carhub.models.user import User
from carhub.services import audit_service, service_order_service
from carhub.validators import (
    ValidationError,
    clean_str,
    parse_choice,
    parse_date,
    parse_decimal,
    parse_int,
    require_fields,
)

logger = logging.getLogger(__name__)


def get_payments(service_id: int, user: User | None = None) -> list[Payment]:
    """Payments for an order, oldest first."""
    service = service_order_service.get_service_for_user(service_id, user)
    return list(service.payments)


def record_payment(data: dict[str, Any], user: User | None = None) -> Payment:
    """
    Record a payment and add it to the order's totals.

    Raises:
        ValueError: If the service order is not found.
        PermissionError: If a technician pays into someone else's order.
        ValidationError: For a missing or non-positive amount or an
                         unknown method.
    """
    require_fields(data, ["service_id", "amount", "payment_method"])
    service_id = parse_int(data["service_id"], "service_id")
    service = service_order_service.get_service_for_user(service_id, user)

    amount = parse_decimal(data["amount"], "amount")
    if amount <= ZERO:
        raise ValidationError("Amount must be greater than zero", field="amount")
    method = parse_choice(data["payment_method"], "payment_method", PAYMENT_METHODS)

    payment = Payment(
        service=service,
        amount=amount,
        payment_method=method,
        payment_date=parse_date(data.get("payment_date"), "payment_date") or clock.today(),
        notes=clean_str(data.get("notes")),
        created_by=user.id if user else None,
    )
    db.session.add(payment)
    _apply_to_service(service, method, amount)
    db.session.flush()

    audit_service.log_change(
        user_id=user.id if user else None,
        action_type="CREATE",
        entity_type="payment",
        entity_id=payment.id,
        new_value={
            "service_id": service.id,
            "amount": str(amount),
            "payment_method": method,
            "payment_date": payment.payment_date.isoformat(),
        },
    )
    db.session.commit()

    logger.info(
        "Recorded %s payment of %s for service #%d", method, amount, service.id
    )
    return payment


def delete_payment(payment_id: int, user: User | None = None) -> None:
    """
    Remove a payment and subtract it from the order's totals.

    Raises:
        ValueError: If the payment is not found.
    """
    payment = db.session.get(Payment, payment_id)
    if payment is None:
        raise ValueError(f"Payment ID {payment_id} not found.")
    service = service_order_service.get_service_for_user(payment.service_id, user)

    _apply_to_service(service, payment.payment_method, -payment.amount)
    previous = {
        "service_id": service.id,
        "amount": str(payment.amount),
        "payment_method": payment.payment_method,
    }
    db.session.delete(payment)

    audit_service.log_change(
        user_id=user.id if user else None,
        action_type="DELETE",
        entity_type="payment",
        entity_id=payment_id,
        previous_value=previous,
    )
    db.session.commit()

    logger.info("Deleted payment ID %d from service #%d", payment_id, service.id)


def _apply_to_service(service: Service, method: str, amount) -> None:
    column = f"paid_{method}"
    current = getattr(service, column) or ZERO
    updated = current + amount
    # Manual edits to the breakdown can leave less than the payment.
    setattr(service, column, updated if updated > ZERO else ZERO)
    service.recompute_amount_paid()
