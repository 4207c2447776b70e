"""
Tests for payment_service and reminder_service.
"""

from datetime import datetime, time, timedelta
from decimal import Decimal

import pytest

from carhub import clock
from carhub.models.service import Payment, ServiceReminder
from carhub.services import payment_service, reminder_service
from carhub.validators import ValidationError


@pytest.fixture()
def order(make_customer, make_vehicle, make_service, service_types):
    vehicle = make_vehicle(make_customer())
    return make_service(
        vehicle,
        items=[(service_types["oil"], 1, "200.00")],
        estimated_value="200.00",
    )


class TestRecordPayment:
    def test_payment_folds_into_method_column(self, app, order):
        payment = payment_service.record_payment(
            {"service_id": order.id, "amount": "80", "payment_method": "pix"}
        )
        assert payment.payment_date == clock.today()
        assert order.paid_pix == Decimal("80.00")
        assert order.amount_paid == Decimal("80.00")
        assert order.payment_status == "partial"

        payment_service.record_payment(
            {"service_id": order.id, "amount": "120", "payment_method": "card"}
        )
        assert order.amount_paid == Decimal("200.00")
        assert order.payment_status == "paid"
        assert order.balance_due == Decimal("0.00")
        assert len(payment_service.get_payments(order.id)) == 2

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_non_positive_amount_rejected(self, app, order, amount):
        with pytest.raises(ValidationError) as exc_info:
            payment_service.record_payment(
                {"service_id": order.id, "amount": amount, "payment_method": "cash"}
            )
        assert exc_info.value.field == "amount"

    def test_unknown_method_rejected(self, app, order):
        with pytest.raises(ValidationError) as exc_info:
            payment_service.record_payment(
                {"service_id": order.id, "amount": "10", "payment_method": "boleto"}
            )
        assert exc_info.value.field == "payment_method"

    def test_missing_order(self, app):
        with pytest.raises(ValueError, match="not found"):
            payment_service.record_payment(
                {"service_id": 99, "amount": "10", "payment_method": "cash"}
            )

    def test_technician_cannot_pay_into_others_order(self, app, order, tech_user):
        with pytest.raises(PermissionError):
            payment_service.record_payment(
                {"service_id": order.id, "amount": "10", "payment_method": "cash"},
                user=tech_user,
            )


class TestDeletePayment:
    def test_delete_subtracts_from_totals(self, app, order):
        payment = payment_service.record_payment(
            {"service_id": order.id, "amount": "50", "payment_method": "cash"}
        )
        payment_service.delete_payment(payment.id)
        assert Payment.query.count() == 0
        assert order.paid_cash == Decimal("0.00")
        assert order.payment_status == "pending"

    def test_missing_payment(self, app):
        with pytest.raises(ValueError, match="Payment ID 3 not found."):
            payment_service.delete_payment(3)


class TestReminders:
    """Reminder scheduling and dispatch."""

    def test_reminder_fires_minutes_before_schedule(
        self, app, make_customer, make_vehicle, make_service, service_types
    ):
        tomorrow = clock.today() + timedelta(days=1)
        service = make_service(
            make_vehicle(make_customer()),
            items=[(service_types["oil"], 1, "1")],
            scheduled_date=tomorrow,
            scheduled_time=time(10, 0),
        )
        info = reminder_service.set_reminder(service.id, enabled=True, minutes=60)

        assert info["has_reminder"] is True
        assert info["reminder_minutes"] == 60
        reminder = reminder_service.get_reminder(service.id)
        assert reminder.scheduled_for == datetime.combine(tomorrow, time(9, 0))
        assert reminder.notification_sent is False

    def test_setting_again_replaces_reminder(self, app, order):
        order.scheduled_date = clock.today() + timedelta(days=2)
        reminder_service.set_reminder(order.id, enabled=True, minutes=30)
        reminder_service.set_reminder(order.id, enabled=True, minutes=90)
        assert ServiceReminder.query.count() == 1
        assert reminder_service.get_reminder(order.id).reminder_minutes == 90

    def test_disable_clears(self, app, order):
        order.scheduled_date = clock.today() + timedelta(days=2)
        reminder_service.set_reminder(order.id, enabled=True)
        info = reminder_service.set_reminder(order.id, enabled=False)
        assert info == {"has_reminder": False, "reminder_minutes": 30}

    def test_past_reminder_stored_as_sent(self, app, order):
        order.scheduled_date = clock.today() - timedelta(days=1)
        info = reminder_service.set_reminder(order.id, enabled=True, minutes=45)

        assert reminder_service.get_reminder(order.id).notification_sent is True
        # A delivered reminder no longer counts as pending.
        assert info == {"has_reminder": False, "reminder_minutes": 30}
        assert reminder_service.get_pending_reminder(order.id) is None

    def test_dispatched_reminder_reads_as_none(self, app, order):
        tomorrow = clock.today() + timedelta(days=1)
        order.scheduled_date = tomorrow
        reminder_service.set_reminder(order.id, enabled=True, minutes=15)
        reminder_service.dispatch_due_reminders(now=datetime.combine(tomorrow, time(9, 0)))

        assert reminder_service.get_reminder_info(order.id)["has_reminder"] is False

    @pytest.mark.parametrize("minutes", [0, -600, 7 * 24 * 60 + 1, 10**12])
    def test_out_of_range_minutes_rejected(self, app, order, minutes):
        order.scheduled_date = clock.today() + timedelta(days=2)
        with pytest.raises(ValidationError) as exc_info:
            reminder_service.set_reminder(order.id, enabled=True, minutes=minutes)
        assert exc_info.value.field == "reminder_minutes"
        assert ServiceReminder.query.count() == 0

    def test_one_week_notice_allowed(self, app, order):
        order.scheduled_date = clock.today() + timedelta(days=10)
        info = reminder_service.set_reminder(order.id, enabled=True, minutes=7 * 24 * 60)
        assert info["reminder_minutes"] == 7 * 24 * 60

    def test_dispatch_delivers_due_reminders_once(
        self, app, make_customer, make_vehicle, make_service, service_types
    ):
        vehicle = make_vehicle(make_customer())
        items = [(service_types["oil"], 1, "1")]
        tomorrow = clock.today() + timedelta(days=1)
        active = make_service(vehicle, items=items, scheduled_date=tomorrow)
        cancelled = make_service(
            vehicle, items=items, scheduled_date=tomorrow, status="cancelled"
        )
        reminder_service.set_reminder(active.id, enabled=True, minutes=15)
        reminder_service.set_reminder(cancelled.id, enabled=True, minutes=15)

        later = datetime.combine(tomorrow, time(9, 0))
        assert reminder_service.dispatch_due_reminders(now=later) == 1
        assert reminder_service.get_due_reminders(now=later) == []
        assert reminder_service.dispatch_due_reminders(now=later) == 0
