# backend/servicebook/services/receipt_pdf.py
"""
Receipt PDF for a completed booking, rendered in memory and attached to the
completion email.
"""
import io
import logging
from dataclasses import dataclass
from datetime import datetime
from html import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..config import settings
from ..models.booking import Booking

logger = logging.getLogger(__name__)

BRAND = colors.HexColor("#4f46e5")
DARK = colors.HexColor("#111827")
BOX = colors.HexColor("#f3f4f6")
BOX_BORDER = colors.HexColor("#e5e7eb")
PAID = colors.HexColor("#16a34a")
PAID_BOX = colors.HexColor("#f0fdf4")


@dataclass(frozen=True)
class ReceiptDetails:
    """Everything the PDF needs, detached from the DB session."""
    receipt_id: int
    completion_date: datetime | None
    personnel_name: str
    final_price: float
    starting_price: float
    booking_id: int
    service_name: str
    day: str
    time: str
    address: str | None
    notes: str | None
    customer_name: str
    customer_email: str
    customer_phone: str | None

    @classmethod
    def from_booking(cls, booking: Booking) -> "ReceiptDetails | None":
        receipt = booking.receipt
        if receipt is None:
            return None
        return cls(
            receipt_id=receipt.id,
            completion_date=receipt.completion_date,
            personnel_name=receipt.service_personnel_name,
            final_price=receipt.final_price,
            starting_price=booking.starting_price,
            booking_id=booking.id,
            service_name=booking.service.name,
            day=booking.date.isoformat(),
            time=booking.time,
            address=booking.address,
            notes=booking.notes,
            customer_name=booking.user.name,
            customer_email=booking.user.email,
            customer_phone=booking.user.phone,
        )

    @property
    def filename(self) -> str:
        return f"receipt_{self.receipt_id}.pdf"


def _box(rows, background=BOX, border=BOX_BORDER) -> Table:
    table = Table(rows, colWidths=[1.8 * inch, 4.6 * inch])
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, -1), background),
                ("BOX", (0, 0), (-1, -1), 0.75, border),
                ("FONT", (0, 0), (0, -1), "Helvetica-Bold", 10),
                ("FONT", (1, 0), (1, -1), "Helvetica", 10),
                ("TEXTCOLOR", (0, 0), (-1, -1), DARK),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("LEFTPADDING", (0, 0), (-1, -1), 10),
                ("TOPPADDING", (0, 0), (-1, -1), 5),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
            ]
        )
    )
    return table


def render_receipt_pdf(details: ReceiptDetails) -> bytes:
    buffer = io.BytesIO()
    business = settings.BUSINESS_NAME
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=0.75 * inch,
        rightMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
        title=f"Receipt - {details.service_name}",
        author=business,
        subject="Service Receipt",
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "ReceiptTitle", parent=styles["Heading1"], fontSize=24, textColor=BRAND, alignment=1, spaceAfter=4,
    )
    subtitle_style = ParagraphStyle(
        "ReceiptSubtitle", parent=styles["Normal"], fontSize=12, textColor=DARK, alignment=1,
    )
    heading_style = ParagraphStyle(
        "ReceiptHeading", parent=styles["Heading2"], fontSize=12, textColor=DARK, spaceBefore=14, spaceAfter=6,
    )
    footer_style = ParagraphStyle(
        "ReceiptFooter", parent=styles["Normal"], fontSize=8, textColor=colors.grey, alignment=1,
    )

    completed = details.completion_date or datetime.now()
    story = [
        Paragraph(escape(business), title_style),
        Paragraph("Official Receipt", subtitle_style),
        Spacer(1, 0.3 * inch),
        Paragraph("Receipt Information", heading_style),
        _box([
            ["Receipt ID:", str(details.receipt_id)],
            ["Date:", completed.strftime("%B %d, %Y")],
            ["Service Personnel:", details.personnel_name],
        ]),
        Paragraph("Service Details", heading_style),
        _box([
            ["Service:", details.service_name],
            ["Booking ID:", str(details.booking_id)],
            ["Date:", details.day],
            ["Time:", details.time],
            ["Location:", details.address or "-"],
        ]),
        Paragraph("Customer Information", heading_style),
        _box([
            ["Name:", details.customer_name],
            ["Email:", details.customer_email],
            ["Phone:", details.customer_phone or "-"],
        ]),
        Paragraph("Payment Summary", heading_style),
    ]

    payment = [["Starting Price:", f"${details.starting_price:.2f}"]]
    if details.notes:
        payment.append(["Notes:", details.notes])
    payment.append(["Final Price:", f"${details.final_price:.2f}"])
    summary = _box(payment, background=PAID_BOX, border=colors.HexColor("#dcfce7"))
    summary.setStyle(
        TableStyle(
            [
                ("LINEABOVE", (0, -1), (-1, -1), 0.75, DARK),
                ("FONT", (1, -1), (1, -1), "Helvetica-Bold", 13),
                ("TEXTCOLOR", (1, -1), (1, -1), PAID),
            ]
        )
    )
    story += [
        summary,
        Spacer(1, 0.5 * inch),
        Paragraph(f"Thank you for choosing {escape(business)}!", footer_style),
        Paragraph("This is an automatically generated receipt. Please keep it for your records.", footer_style),
    ]

    doc.build(story)
    pdf_bytes = buffer.getvalue()
    buffer.close()

    logger.info("Generated receipt PDF for booking %s (%d bytes)", details.booking_id, len(pdf_bytes))
    return pdf_bytes
