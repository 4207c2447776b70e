"""
Routes for the reports blueprint — service order and customer exports.

Each export is offered as CSV or Excel, chosen by the URL suffix.
"""

from flask import abort, make_response, request
from flask_login import current_user, login_required

from carhub.api import error_response
from carhub.blueprints.reports import bp
from carhub.services import customer_service, export_service, service_order_service
from carhub.validators import ValidationError, parse_date

_XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
_FORMATS = ("csv", "xlsx")


@bp.route("/api/reports/services.<fmt>")
@login_required
def export_services(fmt):
    """
    Export service orders as CSV or Excel.

    Query Parameters:
        start, end (YYYY-MM-DD): Scheduled date range, inclusive.
        status: Only orders in this status.
    """
    if fmt not in _FORMATS:
        abort(404)
    try:
        services = service_order_service.get_services_in_range(
            current_user,
            start=parse_date(request.args.get("start"), "start"),
            end=parse_date(request.args.get("end"), "end"),
            status=request.args.get("status") or None,
        )
    except ValidationError as exc:
        return error_response(exc)

    if fmt == "xlsx":
        buffer = export_service.export_services_excel(services)
    else:
        buffer = export_service.export_services_csv(services)
    return _attachment(buffer, fmt, "service_orders")


@bp.route("/api/reports/customers.<fmt>")
@login_required
def export_customers(fmt):
    """Export the customer list (honours ``search``) as CSV or Excel."""
    if fmt not in _FORMATS:
        abort(404)
    customers = customer_service.get_customers(search=request.args.get("search"))

    if fmt == "xlsx":
        buffer = export_service.export_customers_excel(customers)
    else:
        buffer = export_service.export_customers_csv(customers)
    return _attachment(buffer, fmt, "customers")


def _attachment(buffer, fmt: str, name: str):
    response = make_response(buffer.read())
    if fmt == "xlsx":
        response.headers["Content-Type"] = _XLSX_TYPE
    else:
        response.headers["Content-Type"] = "text/csv; charset=utf-8"
    response.headers["Content-Disposition"] = f"attachment; filename={name}.{fmt}"
    return response
