"""
Analytics service — shop-wide breakdowns for the admin analytics pages.

Unlike the dashboard these figures are never scoped to a technician;
the routes restrict them to admins.  Percentages are whole numbers
(rounded half up) and are 0 when there is nothing to divide by.
"""

import logging
from collections import Counter
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func

from carhub import clock
from carhub.extensions import db
from carhub.models.customer import Customer, Vehicle
from carhub.models.service import PAYMENT_METHODS, ZERO, Service, ServiceItem, ServiceType
from carhub.validators import CENTS, format_money

logger = logging.getLogger(__name__)

NOT_INFORMED = "Not informed"
TOP_LIMIT = 5

# (label, maximum age in years); the last bucket is open-ended.
AGE_BUCKETS = (
    ("new", 2),
    ("semi_new", 5),
    ("used", 10),
    ("old", None),
)


def percentage(part, whole) -> int:
    """``part`` as a whole-number percentage of ``whole`` (0 if empty)."""
    if not whole:
        return 0
    ratio = Decimal(part) * 100 / Decimal(whole)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# -- Services --------------------------------------------------------------


def get_service_analytics(today: date | None = None) -> dict:
    """
    Order counts (all time, last 7 and last 30 days by scheduled date),
    the five service types with the most line items on non-cancelled
    orders, and the average order value.

    The average uses each order's billed value (final if completed,
    else estimate) and ignores orders with no value.
    """
    today = today or clock.today()
    week_ago = today - timedelta(days=7)
    month_ago = today - timedelta(days=30)

    services = Service.query.all()
    total = len(services)
    this_week = sum(
        1 for s in services if s.scheduled_date and s.scheduled_date >= week_ago
    )
    this_month = sum(
        1 for s in services if s.scheduled_date and s.scheduled_date >= month_ago
    )

    top_types = (
        db.session.query(
            ServiceType.id,
            ServiceType.name,
            func.count(ServiceItem.id).label("item_count"),
        )
        .join(ServiceItem, ServiceItem.service_type_id == ServiceType.id)
        .join(Service, ServiceItem.service_id == Service.id)
        .filter(Service.status != "cancelled")
        .group_by(ServiceType.id, ServiceType.name)
        .order_by(func.count(ServiceItem.id).desc(), ServiceType.name)
        .limit(TOP_LIMIT)
        .all()
    )

    values = [s.billed_value for s in services if s.billed_value > ZERO]
    average = (sum(values, ZERO) / len(values)).quantize(CENTS) if values else ZERO

    return {
        "total": total,
        "this_week": this_week,
        "this_month": this_month,
        "top_service_types": [
            {
                "service_type_id": row.id,
                "service_type_name": row.name,
                "service_count": row.item_count,
            }
            for row in top_types
        ],
        "average_value": format_money(average),
    }


# -- Customers -------------------------------------------------------------


def get_customer_analytics(now: datetime | None = None) -> dict:
    """
    Customer totals, sign-ups in the last 7 and 30 days, and the five
    customers with the most service orders.
    """
    now = now or clock.utcnow()

    total = Customer.query.count()
    new_week = Customer.query.filter(
        Customer.created_at >= now - timedelta(days=7)
    ).count()
    new_month = Customer.query.filter(
        Customer.created_at >= now - timedelta(days=30)
    ).count()

    top = (
        db.session.query(
            Customer.id,
            Customer.name,
            func.count(Service.id).label("service_count"),
        )
        .join(Service, Service.customer_id == Customer.id)
        .group_by(Customer.id, Customer.name)
        .order_by(func.count(Service.id).desc(), Customer.name)
        .limit(TOP_LIMIT)
        .all()
    )

    return {
        "total": total,
        "new_this_week": new_week,
        "new_this_month": new_month,
        "top_customers": [
            {
                "customer_id": row.id,
                "customer_name": row.name,
                "service_count": row.service_count,
            }
            for row in top
        ],
    }


# -- Vehicles --------------------------------------------------------------


def age_bucket(age: int) -> str:
    for label, max_age in AGE_BUCKETS[:-1]:
        if age <= max_age:
            return label
    return AGE_BUCKETS[-1][0]


def get_vehicle_analytics(current_year: int | None = None) -> dict:
    """Brand, fuel type and age distributions of the fleet."""
    current_year = current_year or clock.today().year
    vehicles = Vehicle.query.all()
    total = len(vehicles)

    brands = Counter(v.brand for v in vehicles)
    fuels = Counter(v.fuel_type or NOT_INFORMED for v in vehicles)
    ages = Counter(age_bucket(max(current_year - v.year, 0)) for v in vehicles)

    return {
        "total_vehicles": total,
        "brand_distribution": [
            {"brand": brand, "count": count, "percentage": percentage(count, total)}
            for brand, count in brands.most_common()
        ],
        "fuel_distribution": [
            {"fuel_type": fuel, "count": count, "percentage": percentage(count, total)}
            for fuel, count in fuels.most_common()
        ],
        "age_distribution": [
            {
                "range": label,
                "count": ages.get(label, 0),
                "percentage": percentage(ages.get(label, 0), total),
            }
            for label, _ in AGE_BUCKETS
        ],
    }


# -- Payments --------------------------------------------------------------


def get_payment_analytics() -> dict:
    """
    Money received per payment method and the payment status overview.

    ``count`` is the number of orders with a positive amount in that
    method, so an order paid half in cash and half by card counts once
    under each.
    """
    services = Service.query.all()

    amounts = {method: ZERO for method in PAYMENT_METHODS}
    counts = {method: 0 for method in PAYMENT_METHODS}
    for service in services:
        for method in PAYMENT_METHODS:
            value = getattr(service, f"paid_{method}") or ZERO
            if value > ZERO:
                amounts[method] += value
                counts[method] += 1

    total_amount = sum(amounts.values(), ZERO)
    total_count = sum(counts.values())

    status_counts = Counter(service.payment_status for service in services)
    status_total = len(services)

    return {
        "total_amount": format_money(total_amount),
        "methods": [
            {
                "method": method,
                "amount": format_money(amounts[method]),
                "count": counts[method],
                "value_percentage": percentage(amounts[method], total_amount),
                "count_percentage": percentage(counts[method], total_count),
            }
            for method in PAYMENT_METHODS
        ],
        "status_overview": [
            {
                "status": status,
                "count": status_counts.get(status, 0),
                "percentage": percentage(status_counts.get(status, 0), status_total),
            }
            for status in ("paid", "partial", "pending")
        ],
    }
