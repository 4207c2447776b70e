"""
Routes for the dashboard blueprint.

All figures come from ``dashboard_service`` and are scoped to the
current user: technicians see their own orders only.
"""

from flask import jsonify, request
from flask_login import current_user, login_required

from carhub.api import error_response
from carhub.blueprints.dashboard import bp
from carhub.services import dashboard_service
from carhub.validators import ValidationError, parse_date

MAX_DAYS = 366
MAX_LIMIT = 100


def _bounded_arg(name: str, default: int, upper: int) -> int:
    value = request.args.get(name, default, type=int)
    return min(max(value, 1), upper)


@bp.route("/api/dashboard/stats")
@login_required
def stats():
    """Realized/pending revenue and payment counters."""
    return jsonify(dashboard_service.get_stats(current_user).to_dict())


@bp.route("/api/dashboard/revenue")
@login_required
def revenue():
    """Billed value per day over ``days`` (default 7)."""
    points = dashboard_service.get_revenue_by_day(
        current_user, days=_bounded_arg("days", 7, MAX_DAYS)
    )
    return jsonify([point.to_dict() for point in points])


@bp.route("/api/dashboard/realized-revenue")
@login_required
def realized_revenue():
    """Amount paid per day over ``days`` (default 7)."""
    points = dashboard_service.get_realized_revenue_by_day(
        current_user, days=_bounded_arg("days", 7, MAX_DAYS)
    )
    return jsonify([point.to_dict() for point in points])


@bp.route("/api/dashboard/top-services")
@login_required
def top_services():
    return jsonify(
        [entry.to_dict() for entry in dashboard_service.get_top_services(current_user)]
    )


@bp.route("/api/dashboard/recent-services")
@login_required
def recent_services():
    services = dashboard_service.get_recent_services(
        current_user, limit=_bounded_arg("limit", 5, MAX_LIMIT)
    )
    return jsonify([service.to_dict(include_items=True) for service in services])


@bp.route("/api/dashboard/upcoming-appointments")
@login_required
def upcoming_appointments():
    services = dashboard_service.get_upcoming_appointments(
        current_user, limit=_bounded_arg("limit", 5, MAX_LIMIT)
    )
    return jsonify([service.to_dict(include_items=True) for service in services])


@bp.route("/api/dashboard/today-appointments")
@login_required
def today_appointments():
    services = dashboard_service.get_today_appointments(current_user)
    return jsonify([service.to_dict(include_items=True) for service in services])


@bp.route("/api/dashboard/schedule-stats")
@login_required
def schedule_stats():
    return jsonify(dashboard_service.get_schedule_stats(current_user).to_dict())


@bp.route("/api/dashboard/schedule")
@login_required
def schedule():
    """
    Orders grouped by scheduled date between ``start`` and ``end``
    (YYYY-MM-DD, inclusive; defaults to the current week).
    """
    try:
        days = dashboard_service.get_schedule(
            current_user,
            start=parse_date(request.args.get("start"), "start"),
            end=parse_date(request.args.get("end"), "end"),
        )
    except (ValueError, ValidationError) as exc:
        return error_response(exc)
    return jsonify([day.to_dict() for day in days])


@bp.route("/api/dashboard/analytics")
@login_required
def analytics():
    return jsonify(dashboard_service.get_dashboard_analytics(current_user).to_dict())
