"""Test fixtures for the photo studio backend."""
from __future__ import annotations

import asyncio
import itertools
import json
import os
import uuid
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("APP_ENV", "local")

from photostudio.api import deps
from photostudio.core.config import get_settings
from photostudio.db.base import Base
from photostudio.db.session import dispose_engine, get_sessionmaker
from photostudio.integrations import MercadoPagoClient
from photostudio.main import app
from photostudio.models import Album, Booking, Photo, Studio
from photostudio.models.studio import default_discount_tiers
from photostudio.services import notification_service

STUDIO_TOKEN = "TEST-1234567890-studio-token"
GATEWAY_BASE_URL = "https://api.mercadopago.test"


class FakeMercadoPago:
    """In-memory stand-in for the payments API, served over MockTransport."""

    def __init__(self) -> None:
        self.payments: dict[str, dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self._ids = itertools.count(1000)

    def set_status(
        self,
        payment_id: str,
        status: str,
        *,
        fees: list[dict[str, Any]] | None = None,
    ) -> None:
        payment = self.payments[payment_id]
        payment["status"] = status
        payment["status_detail"] = f"{status}_by_test"
        if fees is not None:
            payment["fee_details"] = fees

    def add_payment(self, payment_id: str, status: str, amount: str = "150.00") -> None:
        self.payments[payment_id] = {
            "id": int(payment_id),
            "status": status,
            "status_detail": None,
            "transaction_amount": float(amount),
            "payment_method_id": "pix",
            "payer": {"email": "payer@example.com"},
            "fee_details": [],
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "POST" and path == "/v1/payments":
            body = json.loads(request.content)
            payment_id = str(next(self._ids))
            self.payments[payment_id] = {
                "id": int(payment_id),
                "status": "pending",
                "status_detail": "pending_waiting_transfer",
                "transaction_amount": body["transaction_amount"],
                "external_reference": body.get("external_reference"),
                "payment_method_id": "pix",
                "payer": {"email": body["payer"]["email"]},
                "fee_details": [],
                "point_of_interaction": {
                    "transaction_data": {
                        "qr_code": f"00020126-pix-{payment_id}",
                        "qr_code_base64": "aGVsbG8=",
                        "ticket_url": f"https://pix.test/{payment_id}",
                    }
                },
            }
            return httpx.Response(201, json=self.payments[payment_id])
        if request.method == "GET" and path.startswith("/v1/payments/"):
            payment_id = path.rsplit("/", 1)[-1]
            payment = self.payments.get(payment_id)
            if payment is None:
                return httpx.Response(404, json={"message": "Payment not found"})
            return httpx.Response(200, json=payment)
        return httpx.Response(404, json={"message": "not found"})

    def client(self, access_token: str) -> MercadoPagoClient:
        return MercadoPagoClient(
            access_token,
            base_url=GATEWAY_BASE_URL,
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


@pytest.fixture()
def fake_gateway() -> FakeMercadoPago:
    return FakeMercadoPago()


async def seed_studio(
    session, *, access_token: str | None = STUDIO_TOKEN
) -> Studio:
    studio = Studio(
        business_name="Luz Photo Studio",
        slug=f"luz-{uuid.uuid4().hex[:6]}",
        contact_email="studio@example.com",
        package_photo_count=10,
        package_price=Decimal("300.00"),
        extra_photo_price=Decimal("30.00"),
        advance_payment_percentage=Decimal("50"),
        discount_tiers=default_discount_tiers(),
        mercadopago_access_token=access_token,
    )
    session.add(studio)
    await session.commit()
    return studio


async def seed_gallery(
    session, studio: Studio, *, photo_count: int = 25
) -> tuple[Album, list[Photo]]:
    booking = Booking(
        studio_id=studio.id,
        client_name="Ana Souza",
        client_email="ana@example.com",
        client_phone="+5511999990000",
        session_type="birthday",
        event_date=datetime(2026, 11, 20, 15, tzinfo=UTC),
    )
    session.add(booking)
    await session.flush()
    album = Album(studio_id=studio.id, booking_id=booking.id, name="Birthday - Ana")
    session.add(album)
    await session.flush()
    photos = [
        Photo(
            album_id=album.id,
            filename=f"IMG_{index:04d}.jpg",
            original_path=f"albums/{album.id}/IMG_{index:04d}.jpg",
        )
        for index in range(photo_count)
    ]
    session.add_all(photos)
    await session.commit()
    return album, photos


@pytest_asyncio.fixture()
async def app_context(
    reset_database: None,
    db_url: str,
    fake_gateway: FakeMercadoPago,
) -> AsyncIterator[dict[str, Any]]:
    """Yield an async client, a seeded studio with a gallery and the fake gateway."""
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        studio = await seed_studio(session)
        album, photos = await seed_gallery(session, studio)
        context: dict[str, Any] = {
            "studio_id": studio.id,
            "share_token": album.share_token,
            "album_id": album.id,
            "photo_ids": [str(photo.id) for photo in photos],
            "gateway": fake_gateway,
        }

    app.dependency_overrides[deps.get_gateway_factory] = lambda: fake_gateway.client
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            context["client"] = client
            yield context
        if notification_service._pending:
            await asyncio.gather(*notification_service._pending)
    finally:
        app.dependency_overrides.pop(deps.get_gateway_factory, None)
