# backend/servicebook/services/email_gmail.py
import base64
import logging
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import NamedTuple, Sequence

from googleapiclient.discovery import build
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

from ..config import settings

logger = logging.getLogger(__name__)

GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.send"]
TOKEN_URI = "https://oauth2.googleapis.com/token"


class Attachment(NamedTuple):
    filename: str
    content: bytes
    subtype: str = "pdf"


def gmail_configured() -> bool:
    return bool(
        settings.GOOGLE_CLIENT_ID
        and settings.GOOGLE_CLIENT_SECRET
        and settings.GOOGLE_REFRESH_TOKEN
        and settings.EMAIL_FROM
    )


def _gmail_service():
    creds = Credentials(
        token=None,
        refresh_token=settings.GOOGLE_REFRESH_TOKEN,
        token_uri=TOKEN_URI,
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        scopes=GMAIL_SCOPES,
    )
    creds.refresh(Request())
    return build("gmail", "v1", credentials=creds, cache_discovery=False)


def build_message(to: str, subject: str, html: str, attachments: Sequence[Attachment] = ()) -> MIMEMultipart:
    """multipart/mixed: the HTML body first, then one part per attachment."""
    msg = MIMEMultipart("mixed")
    msg["to"] = to
    msg["from"] = settings.EMAIL_FROM or ""
    msg["subject"] = subject
    msg.attach(MIMEText(html, "html", "utf-8"))
    for a in attachments:
        part = MIMEApplication(a.content, _subtype=a.subtype)
        part.add_header("Content-Disposition", "attachment", filename=a.filename)
        msg.attach(part)
    return msg


def send_email_html(to: str, subject: str, html: str, attachments: Sequence[Attachment] = ()) -> None:
    """
    Send an HTML email (optionally with attachments) through the Gmail API.
    Without GOOGLE_* / EMAIL_FROM the message is logged and nothing is sent.
    """
    names = ", ".join(a.filename for a in attachments)
    if not gmail_configured():
        logger.info("Gmail not configured, skipping email to %s: %s %s", to, subject, names)
        logger.debug("Email body for %s:\n%s", to, html)
        return

    # Gmail wants URL-safe base64 of the whole MIME message
    raw = base64.urlsafe_b64encode(build_message(to, subject, html, attachments).as_bytes()).decode("utf-8")

    svc = _gmail_service()
    svc.users().messages().send(userId="me", body={"raw": raw}).execute()
    logger.info("Email sent to %s: %s %s", to, subject, names)
