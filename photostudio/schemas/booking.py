"""Booking deposit schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, EmailStr, Field

from photostudio.models import PaymentStatus


class DepositCreate(BaseModel):
    """Client details collected before the advance payment."""

    client_name: str = Field(min_length=1, max_length=255)
    client_email: EmailStr
    client_phone: str = Field(min_length=1, max_length=32)
    session_type: str = Field(min_length=1, max_length=64)
    event_date: datetime
    location: str = Field(default="Studio", max_length=255)
    notes: str | None = Field(default=None, max_length=1024)
    payer_document: str | None = Field(default=None, max_length=32)
    device_id: str | None = None


class DepositStartRead(BaseModel):
    """PIX charge the client has to pay."""

    external_id: str
    status: str
    amount: Decimal
    qr_code: str | None = None
    qr_code_base64: str | None = None
    ticket_url: str | None = None


class DepositStatusRead(BaseModel):
    external_id: str
    status: PaymentStatus
    booking_id: uuid.UUID | None = None
    album_share_token: str | None = None
    gallery_url: str | None = None
