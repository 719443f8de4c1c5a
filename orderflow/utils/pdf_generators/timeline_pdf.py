# orderflow/utils/pdf_generators/timeline_pdf.py
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from orderflow.schemas.orders.order_schemas import Order
from orderflow.services.orders.timeline import format_timestamp, sorted_history
from orderflow.utils.dates import utcnow
from orderflow.utils.decimal_utils import format_inr


def generate_timeline_pdf(order: Order) -> bytes:
    """
    Render an order's status timeline, oldest entry first, as a PDF document.
    """
    styles = getSampleStyleSheet()
    cell = styles["BodyText"]
    story = []

    # -----------------------------
    # HEADER
    # -----------------------------
    story.append(Paragraph(f"<b>ORDER TIMELINE #{escape(order.order_number)}</b>", styles["Title"]))
    story.append(Spacer(1, 8))
    story.append(Paragraph(f"Client: {escape(order.client_name)}", styles["Normal"]))
    story.append(Paragraph(f"Department: {order.current_department.value}", styles["Normal"]))
    story.append(Paragraph(f"Status: {order.status.value}", styles["Normal"]))
    story.append(Paragraph(f"Export Date: {format_timestamp(utcnow())}", styles["Normal"]))
    story.append(Spacer(1, 15))

    # -----------------------------
    # HISTORY
    # -----------------------------
    story.append(Paragraph("<b>Status History:</b>", styles["Heading3"]))
    data = [["#", "Date", "Department", "Status", "Updated By", "Remarks"]]

    for index, entry in enumerate(sorted_history(order), start=1):
        remarks = entry.remarks or ""
        if entry.estimated_time:
            remarks = f"{remarks} (ETA: {entry.estimated_time})".strip()
        data.append([
            str(index),
            Paragraph(format_timestamp(entry.timestamp), cell),
            entry.department.value,
            Paragraph(escape(entry.status), cell),
            Paragraph(escape(entry.updated_by), cell),
            Paragraph(escape(remarks), cell),
        ])

    table = Table(data, colWidths=[25, 85, 65, 90, 75, 160], repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.black),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
    ]))
    story.append(table)
    story.append(Spacer(1, 20))

    # -----------------------------
    # PAYMENT SUMMARY
    # -----------------------------
    story.append(Paragraph("<b>Payment Summary:</b>", styles["Heading3"]))
    story.append(Paragraph(f"Order Amount: {format_inr(order.amount)}", styles["Normal"]))
    story.append(Paragraph(f"Total Paid: {format_inr(order.paid_amount)}", styles["Normal"]))
    story.append(Paragraph(f"<b>Pending: {format_inr(order.pending_amount)}</b>", styles["Normal"]))
    story.append(Paragraph(f"Payment Status: {order.payment_status.value}", styles["Normal"]))

    # -----------------------------
    # GENERATE PDF
    # -----------------------------
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title=f"Order {order.order_number} timeline")
    doc.build(story)
    return buffer.getvalue()
