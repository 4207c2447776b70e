"""
Service-order models: the catalog of service types, the orders
themselves, their line items, received payments, and reminders.

Money columns are ``Numeric(10, 2)`` and surface as ``Decimal``.

Amount-paid rules:
  - ``amount_paid`` always equals the sum of the four per-method
    columns (``paid_pix``, ``paid_cash``, ``paid_check``, ``paid_card``).
  - Payment status is derived, never stored: nothing paid is
    ``pending``, less than the estimate is ``partial``, otherwise
    ``paid``.
"""

from decimal import Decimal

from carhub.clock import utcnow
from carhub.extensions import db
from carhub.validators import format_money

ZERO = Decimal("0.00")

SERVICE_STATUSES = ("scheduled", "in_progress", "completed", "cancelled")
# Statuses that still block deleting the vehicle.
OPEN_STATUSES = ("scheduled", "in_progress")
PAYMENT_METHODS = ("pix", "cash", "check", "card")

_MONEY = db.Numeric(10, 2)


class ServiceType(db.Model):
    """
    Catalog entry for a kind of work the shop performs
    (e.g., "Oil change", "Wheel alignment").

    Recurring types carry an ``interval_months`` used to suggest the
    customer's next visit.
    """

    __tablename__ = "service_types"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.Text, nullable=True)
    default_price = db.Column(_MONEY, nullable=False, default=ZERO)
    estimated_duration = db.Column(db.Integer, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_recurring = db.Column(db.Boolean, nullable=False, default=False)
    interval_months = db.Column(db.Integer, nullable=True)
    loyalty_points = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(
        db.DateTime, nullable=False, default=utcnow, server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime, nullable=False, default=utcnow, server_default=db.func.now()
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "default_price": format_money(self.default_price),
            "estimated_duration": self.estimated_duration,
            "is_active": self.is_active,
            "is_recurring": self.is_recurring,
            "interval_months": self.interval_months,
            "loyalty_points": self.loyalty_points,
        }

    def __repr__(self) -> str:
        return f"<ServiceType {self.name}>"


class Service(db.Model):
    """
    A service order: work scheduled or performed on one vehicle.

    ``scheduled_date`` / ``scheduled_time`` are business-local values.
    ``started_at`` / ``completed_at`` are stamped by the service layer
    on status transitions.
    """

    __tablename__ = "services"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    customer_id = db.Column(
        db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True
    )
    vehicle_id = db.Column(
        db.Integer, db.ForeignKey("vehicles.id"), nullable=False, index=True
    )
    technician_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=True, index=True
    )
    status = db.Column(db.String(20), nullable=False, default="scheduled")
    scheduled_date = db.Column(db.Date, nullable=True, index=True)
    scheduled_time = db.Column(db.Time, nullable=True)
    started_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    estimated_value = db.Column(_MONEY, nullable=True)
    final_value = db.Column(_MONEY, nullable=True)
    amount_paid = db.Column(_MONEY, nullable=False, default=ZERO)
    paid_pix = db.Column(_MONEY, nullable=False, default=ZERO)
    paid_cash = db.Column(_MONEY, nullable=False, default=ZERO)
    paid_check = db.Column(_MONEY, nullable=False, default=ZERO)
    paid_card = db.Column(_MONEY, nullable=False, default=ZERO)
    # Set once the customer has been credited for this order.
    loyalty_credited = db.Column(db.Boolean, nullable=False, default=False)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime, nullable=False, default=utcnow, server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime, nullable=False, default=utcnow, server_default=db.func.now()
    )

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('scheduled', 'in_progress', 'completed', 'cancelled')",
            name="CK_services_status",
        ),
    )

    # -- Relationships -----------------------------------------------------
    customer = db.relationship("Customer", back_populates="services")
    vehicle = db.relationship("Vehicle", back_populates="services")
    technician = db.relationship("User", back_populates="services")
    items = db.relationship(
        "ServiceItem",
        back_populates="service",
        cascade="all, delete-orphan",
        order_by="ServiceItem.id",
    )
    payments = db.relationship(
        "Payment",
        back_populates="service",
        cascade="all, delete-orphan",
        order_by="Payment.payment_date",
    )
    reminders = db.relationship(
        "ServiceReminder",
        back_populates="service",
        cascade="all, delete-orphan",
    )

    # ---- Derived values --------------------------------------------------

    @property
    def items_total(self) -> Decimal:
        """Sum of the line totals; equals the displayed order total."""
        return sum((item.total_price or ZERO for item in self.items), ZERO)

    @property
    def billed_value(self) -> Decimal:
        """Final value once completed, otherwise the estimate."""
        if self.status == "completed" and self.final_value is not None:
            return self.final_value
        return self.estimated_value or ZERO

    @property
    def payment_status(self) -> str:
        paid = self.amount_paid or ZERO
        if paid <= ZERO:
            return "pending"
        if paid < (self.estimated_value or ZERO):
            return "partial"
        return "paid"

    @property
    def balance_due(self) -> Decimal:
        remaining = (self.estimated_value or ZERO) - (self.amount_paid or ZERO)
        return remaining if remaining > ZERO else ZERO

    def recompute_amount_paid(self) -> None:
        """Keep ``amount_paid`` equal to the per-method breakdown."""
        self.amount_paid = sum(
            (
                self.paid_pix or ZERO,
                self.paid_cash or ZERO,
                self.paid_check or ZERO,
                self.paid_card or ZERO,
            ),
            ZERO,
        )

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "customer_id": self.customer_id,
            "vehicle_id": self.vehicle_id,
            "technician_id": self.technician_id,
            "status": self.status,
            "scheduled_date": (
                self.scheduled_date.isoformat() if self.scheduled_date else None
            ),
            "scheduled_time": (
                self.scheduled_time.strftime("%H:%M") if self.scheduled_time else None
            ),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
            "estimated_value": format_money(self.estimated_value),
            "final_value": format_money(self.final_value),
            "amount_paid": format_money(self.amount_paid),
            "paid_pix": format_money(self.paid_pix),
            "paid_cash": format_money(self.paid_cash),
            "paid_check": format_money(self.paid_check),
            "paid_card": format_money(self.paid_card),
            "payment_status": self.payment_status,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "customer": (
                {"id": self.customer.id, "name": self.customer.name}
                if self.customer
                else None
            ),
            "vehicle": (
                {
                    "id": self.vehicle.id,
                    "license_plate": self.vehicle.license_plate,
                    "brand": self.vehicle.brand,
                    "model": self.vehicle.model,
                }
                if self.vehicle
                else None
            ),
            "technician": (
                {"id": self.technician.id, "name": self.technician.full_name}
                if self.technician
                else None
            ),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
            data["items_total"] = format_money(self.items_total)
        return data

    def __repr__(self) -> str:
        return f"<Service {self.id} status={self.status}>"


class ServiceItem(db.Model):
    """One line of a service order: a service type, quantity, and price."""

    __tablename__ = "service_items"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    service_id = db.Column(
        db.Integer,
        db.ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    service_type_id = db.Column(
        db.Integer, db.ForeignKey("service_types.id"), nullable=False
    )
    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price = db.Column(_MONEY, nullable=False, default=ZERO)
    total_price = db.Column(_MONEY, nullable=False, default=ZERO)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime, nullable=False, default=utcnow, server_default=db.func.now()
    )

    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="CK_service_items_qty"),
    )

    # -- Relationships -----------------------------------------------------
    service = db.relationship("Service", back_populates="items")
    service_type = db.relationship("ServiceType")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "service_id": self.service_id,
            "service_type_id": self.service_type_id,
            "service_type_name": self.service_type.name if self.service_type else None,
            "quantity": self.quantity,
            "unit_price": format_money(self.unit_price),
            "total_price": format_money(self.total_price),
            "notes": self.notes,
        }

    def __repr__(self) -> str:
        return f"<ServiceItem service={self.service_id} type={self.service_type_id}>"


class Payment(db.Model):
    """A payment received against a service order."""

    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    service_id = db.Column(
        db.Integer,
        db.ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount = db.Column(_MONEY, nullable=False)
    payment_method = db.Column(db.String(10), nullable=False)
    payment_date = db.Column(db.Date, nullable=False)
    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = db.Column(
        db.DateTime, nullable=False, default=utcnow, server_default=db.func.now()
    )

    __table_args__ = (
        db.CheckConstraint("amount > 0", name="CK_payments_amount"),
        db.CheckConstraint(
            "payment_method IN ('pix', 'cash', 'check', 'card')",
            name="CK_payments_method",
        ),
    )

    # -- Relationships -----------------------------------------------------
    service = db.relationship("Service", back_populates="payments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "service_id": self.service_id,
            "amount": format_money(self.amount),
            "payment_method": self.payment_method,
            "payment_date": self.payment_date.isoformat(),
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Payment {self.amount} {self.payment_method} service={self.service_id}>"


class ServiceReminder(db.Model):
    """
    Advance notice for a scheduled service order.

    ``scheduled_for`` is the service's local scheduled datetime minus
    ``reminder_minutes``.  A service has at most one pending reminder;
    creating a new one replaces the old.
    """

    __tablename__ = "service_reminders"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    service_id = db.Column(
        db.Integer,
        db.ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reminder_minutes = db.Column(db.Integer, nullable=False, default=30)
    scheduled_for = db.Column(db.DateTime, nullable=False, index=True)
    notification_sent = db.Column(db.Boolean, nullable=False, default=False)
    sent_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(
        db.DateTime, nullable=False, default=utcnow, server_default=db.func.now()
    )

    # -- Relationships -----------------------------------------------------
    service = db.relationship("Service", back_populates="reminders")

    def to_dict(self) -> dict:
        return {
            "has_reminder": True,
            "reminder_minutes": self.reminder_minutes,
            "scheduled_for": self.scheduled_for.isoformat(),
            "notification_sent": self.notification_sent,
        }

    def __repr__(self) -> str:
        return f"<ServiceReminder service={self.service_id} at={self.scheduled_for}>"
