"""
Reminder service — advance notices for scheduled service orders.

A reminder fires ``reminder_minutes`` before the order's scheduled
local date/time.  Reminders are dispatched by the ``flask
send-reminders`` command (run from cron or a Windows scheduled task);
dispatching writes a notice to the application log and marks the
reminder sent so it is never delivered twice.
"""

import logging
from datetime import timedelta

from flask import current_app

from carhub import clock
from carhub.extensions import db
from carhub.models.service import Service, ServiceReminder
from carhub.services import audit_service
from carhub.validators import ValidationError

logger = logging.getLogger(__name__)

# One week ahead is the longest notice the shop sends.
MAX_REMINDER_MINUTES = 7 * 24 * 60


def default_minutes() -> int:
    return current_app.config.get("DEFAULT_REMINDER_MINUTES", 30)


# -- Lookup ----------------------------------------------------------------


def get_reminder(service_id: int) -> ServiceReminder | None:
    """The latest reminder for a service order, sent or not."""
    return (
        ServiceReminder.query.filter_by(service_id=service_id)
        .order_by(ServiceReminder.id.desc())
        .first()
    )


def get_pending_reminder(service_id: int) -> ServiceReminder | None:
    """The reminder still waiting to be delivered, if any."""
    return (
        ServiceReminder.query.filter(
            ServiceReminder.service_id == service_id,
            ServiceReminder.notification_sent == False,  # noqa: E712
        )
        .order_by(ServiceReminder.id.desc())
        .first()
    )


def get_reminder_info(service_id: int) -> dict:
    """
    Reminder settings in the shape the service form expects.

    Delivered (or already past) reminders read as no reminder.
    """
    reminder = get_pending_reminder(service_id)
    if reminder is None:
        return {"has_reminder": False, "reminder_minutes": default_minutes()}
    return reminder.to_dict()


def get_due_reminders(now=None) -> list[ServiceReminder]:
    """Unsent reminders whose time has come, oldest first."""
    now = now or clock.now()
    return (
        ServiceReminder.query.filter(
            ServiceReminder.notification_sent == False,  # noqa: E712
            ServiceReminder.scheduled_for <= now,
        )
        .order_by(ServiceReminder.scheduled_for)
        .all()
    )


# -- Create / replace ------------------------------------------------------


def schedule_reminder(service: Service, minutes: int | None = None) -> ServiceReminder | None:
    """
    Replace any reminder on ``service`` with a new one (no commit).

    A reminder whose time has already passed is stored as sent so the
    dispatcher does not fire a stale notice.  Orders without a
    scheduled date get no reminder.

    Raises:
        ValidationError: If minutes is not between 1 and one week.
    """
    minutes = minutes if minutes is not None else default_minutes()
    if not 0 < minutes <= MAX_REMINDER_MINUTES:
        raise ValidationError(
            f"Reminder minutes must be between 1 and {MAX_REMINDER_MINUTES}",
            field="reminder_minutes",
        )

    clear_reminders(service)
    if service.scheduled_date is None:
        return None

    scheduled_for = clock.combine(
        service.scheduled_date, service.scheduled_time
    ) - timedelta(minutes=minutes)

    reminder = ServiceReminder(
        service=service,
        reminder_minutes=minutes,
        scheduled_for=scheduled_for,
    )
    if scheduled_for <= clock.now():
        reminder.notification_sent = True
        reminder.sent_at = clock.utcnow()
    db.session.add(reminder)
    return reminder


def set_reminder(
    service_id: int,
    enabled: bool,
    minutes: int | None = None,
    user_id: int | None = None,
) -> dict:
    """
    Turn the reminder for a service order on or off.

    Raises:
        ValueError: If the service order is not found.
        ValidationError: If minutes is out of range.
    """
    service = db.session.get(Service, service_id)
    if service is None:
        raise ValueError(f"Service ID {service_id} not found.")
    if enabled:
        schedule_reminder(service, minutes)
    else:
        clear_reminders(service)

    audit_service.log_change(
        user_id=user_id,
        action_type="UPDATE",
        entity_type="service_reminder",
        entity_id=service_id,
        new_value={"enabled": enabled, "reminder_minutes": minutes},
    )
    db.session.commit()

    logger.info("Reminder for service %d %s", service_id, "set" if enabled else "cleared")
    return get_reminder_info(service_id)


def reschedule(service: Service) -> None:
    """Recompute an existing reminder after the schedule moved (no commit)."""
    current = get_reminder(service.id)
    if current is not None:
        schedule_reminder(service, current.reminder_minutes)


# -- Dispatch --------------------------------------------------------------


def dispatch_due_reminders(now=None) -> int:
    """
    Deliver every due reminder and mark it sent.

    Orders that were cancelled or completed in the meantime are marked
    sent without a notice.

    Returns:
        The number of notices delivered.
    """
    delivered = 0
    for reminder in get_due_reminders(now):
        service = reminder.service
        if service.status in ("scheduled", "in_progress"):
            logger.info(
                "Reminder: service #%d for %s, vehicle %s at %s %s",
                service.id,
                service.customer.name,
                service.vehicle.license_plate,
                service.scheduled_date.isoformat(),
                service.scheduled_time.strftime("%H:%M") if service.scheduled_time else "",
            )
            delivered += 1
        reminder.notification_sent = True
        reminder.sent_at = clock.utcnow()
    db.session.commit()

    logger.info("Dispatched %d reminder(s)", delivered)
    return delivered


def clear_reminders(service: Service) -> None:
    for existing in list(service.reminders):
        service.reminders.remove(existing)
