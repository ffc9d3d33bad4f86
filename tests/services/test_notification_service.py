"""Tests for booking confirmation rendering and dispatch."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from photostudio.core.config import get_settings
from photostudio.models import Album, Booking
from photostudio.services import notification_service

pytestmark = pytest.mark.asyncio


def _booking() -> tuple[Booking, Album]:
    booking = Booking(
        id=uuid.uuid4(),
        studio_id=uuid.uuid4(),
        client_name="Ana <Souza>",
        client_email="ana@example.com",
        client_phone="+5511999990000",
        session_type="pre_wedding",
        event_date=datetime(2026, 12, 5, 10, 30, tzinfo=UTC),
        location="Ibirapuera Park",
        deposit_amount=Decimal("150.00"),
    )
    album = Album(
        studio_id=booking.studio_id,
        booking_id=booking.id,
        name="Pre-Wedding - Ana",
        share_token="share-abc",
    )
    return booking, album


async def test_render_includes_session_and_gallery_link() -> None:
    booking, album = _booking()

    subject, html = notification_service.render_booking_confirmation(
        booking, album, studio_name="Luz Photo Studio"
    )

    assert subject == "Booking confirmed: Pre-Wedding with Luz Photo Studio"
    assert "Ana &lt;Souza&gt;" in html
    assert "R$ 150.00" in html
    assert "05/12/2026 10:30" in html
    assert notification_service.gallery_url_for(album) in html
    assert notification_service.gallery_url_for(None) is None


async def test_deliver_email_skips_without_smtp(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.delenv("SMTP_HOST", raising=False)
    monkeypatch.delenv("SMTP_PORT", raising=False)
    get_settings.cache_clear()
    try:
        assert notification_service.deliver_email("a@example.com", "s", "<p/>") is False
    finally:
        get_settings.cache_clear()


async def test_dispatch_runs_in_background(monkeypatch: pytest.MonkeyPatch) -> None:
    sent: list[tuple[str, str, str]] = []

    def fake_deliver(to_email: str, subject: str, html_body: str) -> bool:
        sent.append((to_email, subject, html_body))
        return True

    monkeypatch.setattr(notification_service, "deliver_email", fake_deliver)
    booking, album = _booking()

    task = notification_service.dispatch_booking_confirmation(
        booking, album, studio_name="Luz Photo Studio"
    )

    assert await task is True
    assert sent[0][0] == "ana@example.com"
    assert "share-abc" in sent[0][2]


async def test_send_failures_are_logged_not_raised(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    def broken_deliver(to_email: str, subject: str, html_body: str) -> bool:
        raise OSError("connection refused")

    monkeypatch.setattr(notification_service, "deliver_email", broken_deliver)
    booking, album = _booking()

    task = notification_service.dispatch_booking_confirmation(
        booking, album, studio_name="Luz Photo Studio"
    )

    assert await task is False
    assert "Failed to send booking confirmation" in caplog.text
