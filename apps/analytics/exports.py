"""XLSX export of owner earnings."""

from __future__ import annotations

from io import BytesIO
from typing import Any

from openpyxl import Workbook  # type: ignore
from openpyxl.styles import Font  # type: ignore


def _autosize(workbook: Workbook) -> None:
    for sheet in workbook.worksheets:
        for cell in sheet[1]:
            cell.font = Font(bold=True)
        for column in sheet.columns:
            max_length = 0
            column_letter = column[0].column_letter
            for cell in column:
                value = cell.value
                if isinstance(value, float):
                    cell.number_format = "#,##0.00"
                if value is not None:
                    max_length = max(max_length, len(str(value)))
            sheet.column_dimensions[column_letter].width = min(max_length + 2, 40)


def earnings_workbook(earnings: dict[str, Any], owner_name: str = "") -> bytes:
    """Render the owner earnings report as an XLSX document."""

    workbook = Workbook()
    summary = earnings["summary"]

    worksheet = workbook.active
    worksheet.title = "Summary"
    worksheet.append(["Metric", "Value"])
    if owner_name:
        worksheet.append(["Owner", owner_name])
    worksheet.append(["Period, days", earnings["days"]])
    worksheet.append(["Earnings, INR", float(summary["total_earnings"])])
    worksheet.append(["Bookings", int(summary["total_bookings"])])
    worksheet.append(["Refunds, INR", float(summary["total_refunds"])])
    worksheet.append(["Net earnings, INR", float(summary["net_earnings"])])
    worksheet.append(["Pending payments, INR", float(summary["pending_payments"])])

    monthly = workbook.create_sheet("Monthly")
    monthly.append(["Month", "Earnings, INR", "Bookings"])
    for row in earnings["monthly"]:
        monthly.append([row["month"], float(row["earnings"]), int(row["bookings"])])

    venues = workbook.create_sheet("Venues")
    venues.append(["#", "Venue", "Earnings, INR", "Bookings"])
    for idx, row in enumerate(earnings["venues"], start=1):
        venues.append([idx, row["facility_name"], float(row["earnings"]), int(row["bookings"])])

    transactions = workbook.create_sheet("Transactions")
    transactions.append(["Payment", "Booking", "Venue", "Court", "Customer", "Amount, INR", "Completed"])
    for row in earnings["recent_transactions"]:
        completed = row["completed_at"]
        transactions.append(
            [
                row["payment_id"],
                row["booking_id"],
                row["facility_name"],
                row["court_name"],
                row["customer"],
                float(row["amount"]),
                completed.strftime("%d.%m.%Y %H:%M") if completed else "",
            ]
        )

    _autosize(workbook)

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
