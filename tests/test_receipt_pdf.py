"""
Tests for the receipt PDF and its delivery with the completion email.
"""
from datetime import datetime

import pytest

from servicebook.services import booking_emails
from servicebook.services.email_gmail import Attachment, build_message
from servicebook.services.receipt_pdf import ReceiptDetails, render_receipt_pdf

DETAILS = ReceiptDetails(
    receipt_id=5,
    completion_date=datetime(2024, 6, 11, 12, 30),
    personnel_name="Marco",
    final_price=95.5,
    starting_price=80.0,
    booking_id=3,
    service_name="Deep Cleaning",
    day="2024-06-11",
    time="10:00",
    address="Via Roma 1 & co <2nd floor>",
    notes=None,
    customer_name="Alice",
    customer_email="alice@example.com",
    customer_phone=None,
)


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    def capture(to, subject, html, attachments=()):
        sent.append({"to": to, "subject": subject, "html": html, "attachments": list(attachments)})

    monkeypatch.setattr(booking_emails, "send_email_html", capture)
    return sent


def complete_booking(client, admin_headers, customer_headers, service, personnel="Marco"):
    b = client.post(
        "/bookings",
        json={"service_id": service.id, "date": "2024-06-11", "time": "10:00"},
        headers=customer_headers,
    ).json()
    body = {"status": "completed", "completed_price": 95.5}
    if personnel:
        body["service_personnel_name"] = personnel
    client.patch(f"/bookings/{b['id']}/status", json=body, headers=admin_headers)
    return b


def completion_emails(outbox):
    return [m for m in outbox if m["subject"].startswith("Booking Completed")]


class TestRender:

    def test_pdf_bytes(self):
        pdf = render_receipt_pdf(DETAILS)
        assert pdf.startswith(b"%PDF")
        assert len(pdf) > 1000

    def test_notes_and_missing_completion_date(self):
        details = ReceiptDetails(**{**DETAILS.__dict__, "notes": "extra hour", "completion_date": None})
        assert render_receipt_pdf(details).startswith(b"%PDF")

    def test_filename(self):
        assert DETAILS.filename == "receipt_5.pdf"


class TestMimeMessage:

    def test_attachment_part(self):
        msg = build_message("alice@example.com", "Receipt", "<p>hi</p>", [Attachment("receipt_5.pdf", b"%PDF-1.4 x")])

        parts = msg.get_payload()
        assert msg.get_content_type() == "multipart/mixed"
        assert parts[0].get_content_type() == "text/html"
        assert parts[1].get_content_type() == "application/pdf"
        assert parts[1].get_filename() == "receipt_5.pdf"
        assert parts[1].get_payload(decode=True) == b"%PDF-1.4 x"

    def test_plain_message_has_only_the_body(self):
        assert len(build_message("a@x.com", "s", "<p>x</p>").get_payload()) == 1


class TestCompletionEmail:

    def test_receipt_attached(self, client, admin_headers, customer_headers, service, outbox):
        b = complete_booking(client, admin_headers, customer_headers, service)

        [email] = completion_emails(outbox)
        assert email["to"] == "alice@example.com"
        assert len(email["attachments"]) == 1
        attachment = email["attachments"][0]
        assert attachment.filename.startswith("receipt_")
        assert attachment.content.startswith(b"%PDF")
        assert "receipt is attached" in email["html"]
        assert f"<strong>Booking ID:</strong> {b['id']}" in email["html"]

    def test_no_receipt_no_attachment(self, client, admin_headers, customer_headers, service, outbox):
        complete_booking(client, admin_headers, customer_headers, service, personnel=None)

        [email] = completion_emails(outbox)
        assert email["attachments"] == []

    def test_render_failure_falls_back_to_plain_email(
        self, client, admin_headers, customer_headers, service, outbox, monkeypatch,
    ):
        def broken(details):
            raise RuntimeError("font missing")

        monkeypatch.setattr(booking_emails, "render_receipt_pdf", broken)

        complete_booking(client, admin_headers, customer_headers, service)

        [email] = completion_emails(outbox)
        assert email["attachments"] == []
        assert "receipt is attached" not in email["html"]

    def test_send_failure_retries_without_attachment(self, monkeypatch):
        attempts = []

        def flaky(to, subject, html, attachments=()):
            attempts.append(len(attachments))
            if attachments:
                raise RuntimeError("attachment too large")

        monkeypatch.setattr(booking_emails, "send_email_html", flaky)

        sent = booking_emails.status_update_to_customer(
            "alice@example.com", customer_name="Alice", booking_id=3, service_name="Deep Cleaning",
            day="2024-06-11", time="10:00", status="completed", final_price=95.5, receipt=DETAILS,
        )

        assert sent == 1
        assert attempts == [1, 0]
