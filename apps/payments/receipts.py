"""PDF rendering of payment receipts."""

from __future__ import annotations

from io import BytesIO
from typing import Any

from reportlab.lib import colors  # type: ignore
from reportlab.lib.pagesizes import A4  # type: ignore
from reportlab.lib.styles import getSampleStyleSheet  # type: ignore
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle  # type: ignore

HEADER_STYLE = [
    ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
    ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("BOTTOMPADDING", (0, 0), (-1, 0), 8),
    ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
]


def _table(rows: list[list[str]], widths: list[int]) -> Table:
    table = Table(rows, colWidths=widths)
    table.setStyle(TableStyle(HEADER_STYLE))
    return table


def render_receipt_pdf(receipt: dict[str, Any]) -> bytes:
    """Render the dict produced by ``build_receipt`` as an A4 PDF."""

    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title=receipt["receipt_number"])
    styles = getSampleStyleSheet()
    story = []

    story.append(Paragraph(f"<b>CourtBook receipt {receipt['receipt_number']}</b>", styles["Title"]))
    story.append(Paragraph(f"Invoice {receipt['invoice_number']}", styles["Normal"]))
    story.append(Spacer(1, 16))

    customer = receipt["customer"]
    venue = receipt["venue"]
    booking = receipt["booking"]
    story.append(
        _table(
            [
                ["Booking", f"#{booking['id']}"],
                ["Customer", f"{customer['name']} <{customer['email']}>"],
                ["Venue", f"{venue['name']}, {venue['city']}"],
                ["Court", f"{booking['court_name']} ({booking['sport_type']})"],
                ["Date", booking["date"]],
                ["Time", f"{booking['start_time']} - {booking['end_time']}"],
            ],
            [120, 330],
        )
    )
    story.append(Spacer(1, 16))

    payment = receipt["payment"]
    currency = payment["currency"]
    rows = [
        ["Item", "Amount"],
        ["Court fee", f"{payment['base_amount'] + payment['discount']} {currency}"],
        ["Discount", f"-{payment['discount']} {currency}"],
        ["Processing fee", f"{payment['platform_fee']} {currency}"],
        ["GST", f"{payment['gst']} {currency}"],
        ["Total paid", f"{payment['total_amount']} {currency}"],
    ]
    for refund in receipt["refunds"]:
        rows.append([f"Refund ({refund['status'].lower()})", f"-{refund['amount']} {currency}"])
    rows.append(["Net amount", f"{receipt['net_amount']} {currency}"])
    story.append(_table(rows, [250, 200]))
    story.append(Spacer(1, 16))
    story.append(Paragraph(f"Payment method: {payment['method']} / status: {payment['status']}", styles["Normal"]))

    doc.build(story)
    return buffer.getvalue()
