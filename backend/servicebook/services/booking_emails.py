# backend/servicebook/services/booking_emails.py
"""Booking-related emails. All senders are best-effort: errors are logged."""
import logging
import re
from html import escape

from sqlalchemy.orm import Session

from ..config import settings
from ..models.user import User, Role
from .email_gmail import Attachment, send_email_html
from .receipt_pdf import ReceiptDetails, render_receipt_pdf

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_STATUS_COLORS = {
    "pending": "#f59e0b",
    "confirmed": "#2563eb",
    "completed": "#16a34a",
    "cancelled": "#dc2626",
}


def _dedup(addresses) -> list[str]:
    seen = set()
    out: list[str] = []
    for a in addresses or []:
        key = (a or "").strip().lower()
        if key and key not in seen:
            seen.add(key)
            out.append(a.strip())
    return out


def send_to_many(addresses: list[str], subject: str, html: str, attachments: tuple[Attachment, ...] = ()) -> int:
    """Case-insensitive dedup, one send per address. Returns how many went out."""
    sent = 0
    for a in _dedup(addresses):
        try:
            send_email_html(a, subject, html, attachments=attachments)
            sent += 1
        except Exception as e:
            logger.error("Failed to send email to %s (%s): %s", a, subject, e)
    return sent


def parse_admin_emails(raw: str | None) -> list[str]:
    """ADMIN_EMAIL: CSV, ';' or newline separated; invalid entries dropped."""
    raw = (raw or "").strip()
    if not raw:
        return []
    parts = [p.strip() for p in re.split(r"[,\n;]+", raw)]
    return _dedup(p for p in parts if p and _EMAIL_RE.match(p))


def admin_emails(db: Session) -> list[str]:
    """ADMIN_EMAIL from env first; fallback to the active admins in the DB."""
    env_emails = parse_admin_emails(settings.ADMIN_EMAIL)
    if env_emails:
        return env_emails
    admins = db.query(User).filter(User.role == Role.ADMIN, User.is_active == True).all()  # noqa: E712
    return _dedup(a.email for a in admins)


def _layout(title: str, color: str, body: str) -> str:
    return f"""
    <div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto;color:#111;font-size:15px">
      <div style="background-color:{color};padding:20px;text-align:center;color:white">
        <h1 style="margin:0;font-size:22px">{escape(title)}</h1>
      </div>
      <div style="padding:20px;border:1px solid #e5e7eb;border-top:none">
        {body}
      </div>
    </div>
    """


def _details(booking_id: int, service_name: str, day: str, time: str, extra: str = "") -> str:
    return f"""
        <div style="background-color:#f9fafb;padding:15px;margin:15px 0;border-radius:5px">
          <p><strong>Booking ID:</strong> {booking_id}</p>
          <p><strong>Service:</strong> {escape(service_name)}</p>
          <p><strong>Date:</strong> {escape(day)}</p>
          <p><strong>Time:</strong> {escape(time)}</p>
          {extra}
        </div>
    """


def new_booking_to_admins(
    recipients: list[str], *, booking_id: int, service_name: str, day: str, time: str,
    customer_name: str, customer_email: str, address: str | None = None, notes: str | None = None,
) -> int:
    extra = f"<p><strong>Customer:</strong> {escape(customer_name)} ({escape(customer_email)})</p>"
    if address:
        extra += f"<p><strong>Address:</strong> {escape(address)}</p>"
    if notes:
        extra += f"<p><strong>Notes:</strong> {escape(notes)}</p>"
    body = f"""
        <p>Hello Admin,</p>
        <p>A new booking has been requested:</p>
        {_details(booking_id, service_name, day, time, extra)}
        <p>Please log in to the admin dashboard to confirm it.</p>
    """
    return send_to_many(recipients, f"New Booking: {service_name}", _layout("New Booking", "#4f46e5", body))


def booking_received_to_customer(
    to: str, *, customer_name: str, booking_id: int, service_name: str, day: str, time: str,
) -> int:
    body = f"""
        <p>Hello {escape(customer_name)},</p>
        <p>Thank you for your booking. We have received your request and will confirm it shortly.</p>
        {_details(booking_id, service_name, day, time)}
    """
    return send_to_many([to], f"Booking Received: {service_name}", _layout("Booking Received", "#4f46e5", body))


def receipt_attachment(receipt: ReceiptDetails | None) -> tuple[Attachment, ...]:
    """The receipt PDF as an attachment; empty when there is none or rendering fails."""
    if receipt is None:
        return ()
    try:
        return (Attachment(receipt.filename, render_receipt_pdf(receipt)),)
    except Exception as e:
        logger.error("Receipt PDF for booking %s could not be generated: %s", receipt.booking_id, e)
        return ()


def status_update_to_customer(
    to: str, *, customer_name: str, booking_id: int, service_name: str, day: str, time: str,
    status: str, cancellation_reason: str | None = None, final_price: float | None = None,
    receipt: ReceiptDetails | None = None,
) -> int:
    extra = f"<p><strong>Status:</strong> {escape(status.capitalize())}</p>"
    if status == "cancelled" and cancellation_reason:
        extra += f"<p><strong>Reason:</strong> {escape(cancellation_reason)}</p>"
    if status == "completed" and final_price is not None:
        extra += f"<p><strong>Final price:</strong> {final_price:.2f}</p>"
    attachments = receipt_attachment(receipt) if status == "completed" else ()
    if attachments:
        extra += "<p>Your receipt is attached to this email.</p>"
    body = f"""
        <p>Hello {escape(customer_name)},</p>
        <p>Your booking for <b>{escape(service_name)}</b> has been <b>{escape(status)}</b>.</p>
        {_details(booking_id, service_name, day, time, extra)}
    """
    subject = f"Booking {status.capitalize()}: {service_name}"
    color = _STATUS_COLORS.get(status, "#4f46e5")
    sent = send_to_many([to], subject, _layout("Booking Update", color, body), attachments)
    if attachments and not sent:
        # attachment rejected: the customer still gets the status update
        logger.warning("Resending status email for booking %s without the receipt", booking_id)
        body = body.replace("<p>Your receipt is attached to this email.</p>", "")
        sent = send_to_many([to], subject, _layout("Booking Update", color, body))
    return sent


def cancellation_to_admins(
    recipients: list[str], *, booking_id: int, service_name: str, day: str, time: str,
    customer_name: str, customer_email: str, reason: str,
) -> int:
    extra = (
        f"<p><strong>Customer:</strong> {escape(customer_name)} ({escape(customer_email)})</p>"
        f"<p><strong>Reason:</strong> {escape(reason)}</p>"
    )
    body = f"""
        <p>Hello Admin,</p>
        <p>A customer has cancelled their booking:</p>
        {_details(booking_id, service_name, day, time, extra)}
        <p>Please log in to the admin dashboard for more details.</p>
    """
    return send_to_many(
        recipients, f"Booking Cancelled: {service_name}", _layout("Booking Cancellation", "#dc2626", body)
    )


def password_reset(to: str, reset_link: str) -> int:
    body = f"""
        <p>Hello,</p>
        <p>To reset your password click the link below (valid for 2 hours):</p>
        <p><a href="{escape(reset_link)}">{escape(reset_link)}</a></p>
        <p>If you did not request this, ignore this email.</p>
    """
    return send_to_many([to], "Reset your password", _layout("Password Reset", "#4f46e5", body))
