"""
Dashboard service — the figures behind the dashboard and schedule pages.

Every function takes the requesting user and works on
``service_order_service.scoped_query(user)``, so a technician's
dashboard only ever counts the orders assigned to them.  Record sets
are small; totals are summed in Python with ``Decimal`` so a day's
revenue always equals the sum of the orders behind it.

Dates are business-local (see :mod:`carhub.clock`).  Functions that
depend on "today" accept a ``today`` argument for tests.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, time, timedelta
from decimal import Decimal

from carhub import clock
from carhub.models.service import ZERO, Service
from carhub.models.user import User
from carhub.services import service_order_service
from carhub.validators import format_money

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"
WEEKDAY_ABBREVIATIONS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
TOP_LIMIT = 5


# =========================================================================
# Result data classes
# =========================================================================


@dataclass
class DashboardStats:
    """Headline money and payment counters."""

    realized_revenue: Decimal = ZERO  # sum of amount_paid
    pending_revenue: Decimal = ZERO  # sum of estimate - paid, where unpaid
    completed_services: int = 0
    pending_payments: int = 0  # nothing paid yet
    partial_payments: int = 0
    total_services: int = 0

    def to_dict(self) -> dict:
        return {
            "realized_revenue": format_money(self.realized_revenue),
            "pending_revenue": format_money(self.pending_revenue),
            "predicted_revenue": format_money(
                self.realized_revenue + self.pending_revenue
            ),
            "completed_services": self.completed_services,
            "pending_payments": self.pending_payments,
            "partial_payments": self.partial_payments,
            "total_services": self.total_services,
        }


@dataclass
class RevenuePoint:
    """Revenue for one calendar day."""

    day: date
    revenue: Decimal = ZERO

    def to_dict(self) -> dict:
        return {
            "date": WEEKDAY_ABBREVIATIONS[self.day.weekday()],
            "full_date": self.day.isoformat(),
            "revenue": format_money(self.revenue),
        }


@dataclass
class TopService:
    name: str
    count: int = 0
    revenue: Decimal = ZERO

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "count": self.count,
            "revenue": format_money(self.revenue),
        }


@dataclass
class ScheduleStats:
    """Counts for the schedule page header."""

    today: int = 0
    this_week: int = 0
    completed: int = 0
    overdue: int = 0

    def to_dict(self) -> dict:
        return {
            "today": self.today,
            "this_week": self.this_week,
            "completed": self.completed,
            "overdue": self.overdue,
        }


@dataclass
class ScheduleDay:
    """All orders scheduled on one date."""

    day: date
    services: list[Service] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "date": self.day.isoformat(),
            "count": len(self.services),
            "services": [service.to_dict() for service in self.services],
        }


@dataclass
class DashboardAnalytics:
    top_customers: list[dict] = field(default_factory=list)
    top_services: dict[str, list[dict]] = field(default_factory=dict)
    cancelled_services: int = 0
    weekly_appointments: int = 0
    monthly_appointments: int = 0
    weekly_estimated_value: Decimal = ZERO

    def to_dict(self) -> dict:
        return {
            "top_customers": self.top_customers,
            "top_services": self.top_services,
            "cancelled_services": self.cancelled_services,
            "weekly_appointments": self.weekly_appointments,
            "monthly_appointments": self.monthly_appointments,
            "weekly_estimated_value": format_money(self.weekly_estimated_value),
        }


# =========================================================================
# Headline figures
# =========================================================================


def get_stats(user: User | None) -> DashboardStats:
    """
    Money and payment counters over every visible order.

    An order counts as a pending payment when nothing has been paid,
    and as partial when something but less than the estimate has.
    """
    stats = DashboardStats()
    for service in service_order_service.scoped_query(user).all():
        estimated = service.estimated_value or ZERO
        paid = service.amount_paid or ZERO

        stats.total_services += 1
        if paid > ZERO:
            stats.realized_revenue += paid
        if paid < estimated:
            stats.pending_revenue += estimated - paid
        if service.status == "completed":
            stats.completed_services += 1
        if paid == ZERO:
            stats.pending_payments += 1
        elif paid < estimated:
            stats.partial_payments += 1
    return stats


def get_revenue_by_day(
    user: User | None, days: int = 7, today: date | None = None
) -> list[RevenuePoint]:
    """
    Billed value per scheduled day for the last ``days`` days.

    A completed order counts at its final value, anything else at its
    estimate; cancelled orders are left out.  Days without orders are
    present with zero revenue.
    """
    return _daily_totals(
        user,
        days,
        today,
        lambda service: (
            service.billed_value if service.status != "cancelled" else ZERO
        ),
    )


def get_realized_revenue_by_day(
    user: User | None, days: int = 7, today: date | None = None
) -> list[RevenuePoint]:
    """Amount actually paid per scheduled day, zero-filled."""
    return _daily_totals(user, days, today, lambda service: service.amount_paid or ZERO)


def get_top_services(user: User | None, limit: int = TOP_LIMIT) -> list[TopService]:
    """
    Most frequent service types with the amount paid on their orders.

    An order is attributed to the type of its first line item (orders
    without items fall under "Uncategorized"), so the revenue column
    adds up to the realized revenue.  Ties on count are broken by
    revenue.
    """
    totals: dict[str, TopService] = {}
    for service in service_order_service.scoped_query(user).all():
        name = _primary_type_name(service)
        entry = totals.setdefault(name, TopService(name=name))
        entry.count += 1
        entry.revenue += service.amount_paid or ZERO

    ranked = sorted(totals.values(), key=lambda t: (-t.count, -t.revenue, t.name))
    return ranked[:limit]


# =========================================================================
# Lists
# =========================================================================


def get_recent_services(user: User | None, limit: int = 5) -> list[Service]:
    """The most recently created orders."""
    return (
        service_order_service.scoped_query(user)
        .order_by(Service.created_at.desc(), Service.id.desc())
        .limit(limit)
        .all()
    )


def get_upcoming_appointments(
    user: User | None, limit: int = 5, today: date | None = None
) -> list[Service]:
    """Scheduled orders from today on, soonest first."""
    today = today or clock.today()
    return (
        service_order_service.scoped_query(user)
        .filter(Service.scheduled_date >= today, Service.status == "scheduled")
        .order_by(Service.scheduled_date, Service.scheduled_time, Service.id)
        .limit(limit)
        .all()
    )


def get_today_appointments(user: User | None, today: date | None = None) -> list[Service]:
    """Every order scheduled for today, by time (untimed first)."""
    today = today or clock.today()
    services = (
        service_order_service.scoped_query(user)
        .filter(Service.scheduled_date == today)
        .all()
    )
    return sorted(
        services,
        key=lambda s: (s.scheduled_time is not None, s.scheduled_time or time.min, s.id),
    )


# =========================================================================
# Schedule
# =========================================================================


def get_schedule_stats(user: User | None, today: date | None = None) -> ScheduleStats:
    """
    Counts for today, this week (Monday up to today), orders completed
    this week, and overdue orders (still scheduled on a past date).
    """
    today = today or clock.today()
    monday = clock.week_start(today)

    stats = ScheduleStats()
    for service in service_order_service.scoped_query(user).filter(
        Service.scheduled_date.isnot(None)
    ):
        scheduled = service.scheduled_date
        if scheduled == today:
            stats.today += 1
        if monday <= scheduled <= today:
            stats.this_week += 1
            if service.status == "completed":
                stats.completed += 1
        if scheduled < today and service.status == "scheduled":
            stats.overdue += 1
    return stats


def get_schedule(
    user: User | None, start: date | None = None, end: date | None = None
) -> list[ScheduleDay]:
    """
    Orders between ``start`` and ``end`` (inclusive) grouped by date.

    Defaults to the current week, Monday to Sunday.  Only dates with
    orders are returned, in ascending order.

    Raises:
        ValueError: If ``end`` is before ``start``.
    """
    start = start or clock.week_start()
    end = end or start + timedelta(days=6)
    if end < start:
        raise ValueError("Schedule end date must not be before the start date.")

    services = (
        service_order_service.scoped_query(user)
        .filter(Service.scheduled_date >= start, Service.scheduled_date <= end)
        .order_by(Service.scheduled_date, Service.scheduled_time, Service.id)
        .all()
    )

    grouped: dict[date, ScheduleDay] = {}
    for service in services:
        grouped.setdefault(
            service.scheduled_date, ScheduleDay(day=service.scheduled_date)
        ).services.append(service)
    return list(grouped.values())


# =========================================================================
# Dashboard analytics panel
# =========================================================================


def get_dashboard_analytics(
    user: User | None, today: date | None = None
) -> DashboardAnalytics:
    """
    Top customers, most used services over 30/90/180 days, cancelled
    orders, upcoming appointments, and the value of work in the coming
    week.
    """
    today = today or clock.today()
    services = service_order_service.scoped_query(user).all()
    result = DashboardAnalytics()

    # Top customers by order count, with the sum of their final values.
    per_customer: dict[int, dict] = {}
    for service in services:
        entry = per_customer.setdefault(
            service.customer_id,
            {
                "customer_id": service.customer_id,
                "customer_name": service.customer.name,
                "service_count": 0,
                "total_value": ZERO,
            },
        )
        entry["service_count"] += 1
        entry["total_value"] += service.final_value or ZERO
    ranked = sorted(
        per_customer.values(),
        key=lambda e: (-e["service_count"], -e["total_value"], e["customer_name"]),
    )
    result.top_customers = [
        {**entry, "total_value": format_money(entry["total_value"])}
        for entry in ranked[:TOP_LIMIT]
    ]

    for label, window in (("one_month", 30), ("three_months", 90), ("six_months", 180)):
        result.top_services[label] = _top_item_types(services, today - timedelta(days=window))

    week_end = today + timedelta(days=7)
    month_end = today + timedelta(days=30)
    for service in services:
        scheduled = service.scheduled_date
        if service.status == "cancelled":
            result.cancelled_services += 1
        if scheduled is None or scheduled < today:
            continue
        if service.status == "scheduled":
            if scheduled <= week_end:
                result.weekly_appointments += 1
            if scheduled <= month_end:
                result.monthly_appointments += 1
        if service.status in ("completed", "in_progress") and scheduled <= week_end:
            value = service.final_value
            result.weekly_estimated_value += (
                value if value is not None else service.estimated_value or ZERO
            )
    return result


# =========================================================================
# Internal helpers
# =========================================================================


def _daily_totals(user, days, today, value_of) -> list[RevenuePoint]:
    if days < 1:
        raise ValueError("Days must be at least 1.")
    today = today or clock.today()
    window = clock.date_range(today, days)

    points = {day: RevenuePoint(day=day) for day in window}
    services = (
        service_order_service.scoped_query(user)
        .filter(Service.scheduled_date >= window[0], Service.scheduled_date <= today)
        .all()
    )
    for service in services:
        points[service.scheduled_date].revenue += value_of(service)

    logger.debug("Daily totals over %d day(s) from %d order(s)", days, len(services))
    return list(points.values())


def _primary_type_name(service: Service) -> str:
    for item in service.items:
        if item.service_type is not None:
            return item.service_type.name
    return UNCATEGORIZED


def _top_item_types(services: list[Service], since: date) -> list[dict]:
    """Service types by total quantity on orders scheduled since ``since``."""
    counts: dict[str, int] = defaultdict(int)
    for service in services:
        if service.scheduled_date is None or service.scheduled_date < since:
            continue
        for item in service.items:
            name = item.service_type.name if item.service_type else UNCATEGORIZED
            counts[name] += item.quantity or 1
    ranked = sorted(counts.items(), key=lambda pair: (-pair[1], pair[0]))
    return [{"service_name": name, "count": count} for name, count in ranked[:TOP_LIMIT]]
