"""Fire-and-forget booking confirmation e-mails."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from photostudio.core.config import get_settings
from photostudio.models import Album, Booking
from photostudio.models.booking import session_type_label

logger = logging.getLogger(__name__)

__all__ = [
    "deliver_email",
    "dispatch_booking_confirmation",
    "render_booking_confirmation",
]

_TEMPLATE_DIR = Path(__file__).resolve().parents[1] / "templates"
_ENV = Environment(
    loader=FileSystemLoader(_TEMPLATE_DIR),
    autoescape=select_autoescape(["html", "xml"]),
)

# Keeps scheduled sends alive until they finish.
_pending: set[asyncio.Task[bool]] = set()


def gallery_url_for(album: Album | None) -> str | None:
    if album is None:
        return None
    base = get_settings().public_gallery_base_url.rstrip("/")
    return f"{base}/{album.share_token}"


def render_booking_confirmation(
    booking: Booking, album: Album | None, *, studio_name: str
) -> tuple[str, str]:
    """Return ``(subject, html)`` for a confirmed booking."""

    label = session_type_label(booking.session_type)
    subject = f"Booking confirmed: {label} with {studio_name}"
    html = _ENV.get_template("booking_confirmation.html").render(
        client_name=booking.client_name,
        studio_name=studio_name,
        session_label=label,
        event_date=booking.event_date,
        location=booking.location,
        notes=booking.notes,
        deposit_amount=booking.deposit_amount,
        gallery_url=gallery_url_for(album),
    )
    return subject, html


def deliver_email(to_email: str, subject: str, html_body: str) -> bool:
    """Send immediately over SMTP.

    Returns False when SMTP is not configured. Raises on transport errors.
    """

    settings = get_settings()
    if not settings.smtp_host or not settings.smtp_port:
        logger.info("SMTP configuration missing; skipping email to %s", to_email)
        return False

    message = EmailMessage()
    message["Subject"] = subject
    message["To"] = to_email
    message["From"] = (
        settings.smtp_from or settings.smtp_username or "no-reply@photostudio.local"
    )
    message.set_content("This message contains HTML content.")
    message.add_alternative(html_body, subtype="html")

    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=5) as server:
        if settings.smtp_username and settings.smtp_password:
            try:
                server.starttls()
            except smtplib.SMTPException:
                logger.debug("SMTP server does not support STARTTLS")
            server.login(settings.smtp_username, settings.smtp_password)
        server.send_message(message)
    return True


async def _send_confirmation(to_email: str, subject: str, html: str) -> bool:
    try:
        return await asyncio.to_thread(deliver_email, to_email, subject, html)
    except Exception:  # pragma: no cover - network dependent
        logger.exception("Failed to send booking confirmation to %s", to_email)
        return False


def dispatch_booking_confirmation(
    booking: Booking, album: Album | None, *, studio_name: str
) -> asyncio.Task[bool]:
    """Schedule the confirmation e-mail and return the task without awaiting it."""

    subject, html = render_booking_confirmation(booking, album, studio_name=studio_name)
    task = asyncio.create_task(_send_confirmation(booking.client_email, subject, html))
    _pending.add(task)
    task.add_done_callback(_pending.discard)
    return task
