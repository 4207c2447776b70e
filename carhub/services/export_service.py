"""
Export service: service-order and customer reports as CSV or Excel.

Each exporter hands back an in-memory file; the reports blueprint
turns it into a download with the matching Content-Type.
"""

import csv
import io
import logging
from decimal import Decimal

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from carhub.models.customer import Customer
from carhub.models.service import ZERO, Service
from carhub.validators import format_document, format_phone

logger = logging.getLogger(__name__)

# Header row look for every worksheet.
_HEADER_FONT = Font(bold=True, color="FFFFFF")
_HEADER_FILL = PatternFill(start_color="1F4E79", end_color="1F4E79", fill_type="solid")
_HEADER_ALIGN = Alignment(horizontal="center", wrap_text=True)
_CURRENCY_FORMAT = '#,##0.00'

SERVICE_HEADERS = [
    "Order",
    "Scheduled Date",
    "Time",
    "Customer",
    "Plate",
    "Vehicle",
    "Services",
    "Technician",
    "Status",
    "Payment Status",
    "Estimated Value",
    "Final Value",
    "Amount Paid",
]

CUSTOMER_HEADERS = [
    "Code",
    "Name",
    "Document",
    "Email",
    "Phone",
    "City",
    "State",
    "Vehicles",
    "Service Orders",
    "Loyalty Points",
]

# Columns (1-based) holding money in the service sheet.
_SERVICE_MONEY_COLUMNS = (11, 12, 13)


# =========================================================================
# Row builders
# =========================================================================


def service_row(service: Service) -> list:
    """One report row for a service order; money stays ``Decimal``."""
    return [
        service.id,
        service.scheduled_date.isoformat() if service.scheduled_date else "",
        service.scheduled_time.strftime("%H:%M") if service.scheduled_time else "",
        service.customer.name,
        service.vehicle.license_plate,
        f"{service.vehicle.brand} {service.vehicle.model}",
        ", ".join(
            item.service_type.name for item in service.items if item.service_type
        ),
        service.technician.full_name if service.technician else "",
        service.status,
        service.payment_status,
        service.estimated_value or ZERO,
        service.final_value,
        service.amount_paid or ZERO,
    ]


def customer_row(customer: Customer) -> list:
    return [
        customer.code or "",
        customer.name,
        format_document(customer.document, customer.document_type),
        customer.email or "",
        format_phone(customer.phone) if customer.phone else "",
        customer.city or "",
        customer.state or "",
        len(customer.vehicles),
        customer.services.count(),
        customer.loyalty_points or 0,
    ]


# =========================================================================
# CSV Exports
# =========================================================================


def export_services_csv(services: list[Service]) -> io.BytesIO:
    """
    Export service orders to CSV.

    A final totals row carries the sums of the money columns.

    Returns:
        In-memory UTF-8 CSV (with BOM for Excel).
    """
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(SERVICE_HEADERS)

    for service in services:
        writer.writerow([_csv_value(value) for value in service_row(service)])

    estimated, final, paid = _service_totals(services)
    writer.writerow(
        ["Total"]
        + [""] * (len(SERVICE_HEADERS) - 4)
        + [_format_decimal(estimated), _format_decimal(final), _format_decimal(paid)]
    )

    logger.info("Exported %d service order(s) to CSV", len(services))
    return _to_bytes(output)


def export_customers_csv(customers: list[Customer]) -> io.BytesIO:
    """Export the customer list to CSV."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(CUSTOMER_HEADERS)
    for customer in customers:
        writer.writerow(customer_row(customer))

    logger.info("Exported %d customer(s) to CSV", len(customers))
    return _to_bytes(output)


# =========================================================================
# Excel Exports
# =========================================================================


def export_services_excel(services: list[Service]) -> io.BytesIO:
    """
    Export service orders to an Excel workbook with a totals row.

    Returns:
        In-memory .xlsx workbook.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = "Service Orders"
    _write_header_row(ws, SERVICE_HEADERS)

    row_idx = 1
    for row_idx, service in enumerate(services, start=2):
        for col_idx, value in enumerate(service_row(service), start=1):
            cell = ws.cell(row=row_idx, column=col_idx, value=value)
            if col_idx in _SERVICE_MONEY_COLUMNS:
                cell.number_format = _CURRENCY_FORMAT

    total_row = row_idx + 1
    ws.cell(row=total_row, column=1, value="Total").font = Font(bold=True)
    for col_idx, total in zip(_SERVICE_MONEY_COLUMNS, _service_totals(services)):
        cell = ws.cell(row=total_row, column=col_idx, value=total)
        cell.number_format = _CURRENCY_FORMAT
        cell.font = Font(bold=True)

    _auto_fit_columns(ws)
    logger.info("Exported %d service order(s) to Excel", len(services))
    return _save(wb)


def export_customers_excel(customers: list[Customer]) -> io.BytesIO:
    """Export the customer list to an Excel workbook."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Customers"
    _write_header_row(ws, CUSTOMER_HEADERS)

    for row_idx, customer in enumerate(customers, start=2):
        for col_idx, value in enumerate(customer_row(customer), start=1):
            ws.cell(row=row_idx, column=col_idx, value=value)

    _auto_fit_columns(ws)
    logger.info("Exported %d customer(s) to Excel", len(customers))
    return _save(wb)


# =========================================================================
# Helpers
# =========================================================================


def _service_totals(services: list[Service]) -> tuple[Decimal, Decimal, Decimal]:
    estimated = sum((s.estimated_value or ZERO for s in services), ZERO)
    final = sum((s.final_value or ZERO for s in services), ZERO)
    paid = sum((s.amount_paid or ZERO for s in services), ZERO)
    return estimated, final, paid


def _write_header_row(ws, headers: list[str]) -> None:
    """Bold white-on-blue headers in row 1."""
    for col_idx, header in enumerate(headers, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        cell.alignment = _HEADER_ALIGN
    ws.freeze_panes = "A2"


def _auto_fit_columns(ws) -> None:
    """Size each column to its longest value, capped at 40."""
    for col in ws.columns:
        max_length = 0
        col_letter = get_column_letter(col[0].column)
        for cell in col:
            if cell.value:
                max_length = max(max_length, len(str(cell.value)))
        ws.column_dimensions[col_letter].width = min(max_length + 4, 40)


def _csv_value(value):
    if isinstance(value, Decimal):
        return _format_decimal(value)
    return "" if value is None else value


def _format_decimal(value: Decimal) -> str:
    """Two-decimal string, the form money takes in CSV."""
    return f"{value:.2f}"


def _to_bytes(output: io.StringIO) -> io.BytesIO:
    # utf-8-sig so Excel opens accented names correctly.
    buffer = io.BytesIO()
    buffer.write(output.getvalue().encode("utf-8-sig"))
    buffer.seek(0)
    return buffer


def _save(wb: Workbook) -> io.BytesIO:
    buffer = io.BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    return buffer
