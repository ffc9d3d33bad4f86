"""Public gallery and photo selection schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from photostudio.models import PaymentStatus
from photostudio.schemas.pricing import PriceBreakdownRead, PricingConfigRead


class PhotoRead(BaseModel):
    id: uuid.UUID
    filename: str
    thumbnail_path: str | None = None
    watermarked_path: str | None = None
    is_selected: bool

    model_config = ConfigDict(from_attributes=True)


class GalleryRead(BaseModel):
    """Album as shown to the client through its share link."""

    id: uuid.UUID
    name: str
    share_token: str
    expires_at: datetime | None = None
    photos: list[PhotoRead]
    pricing: PricingConfigRead


class SelectionRequest(BaseModel):
    photo_ids: list[str] = Field(default_factory=list)


class SelectionCheckoutRequest(SelectionRequest):
    client_email: EmailStr
    client_name: str | None = None
    device_id: str | None = None


class SelectionQuoteRead(BaseModel):
    album_id: uuid.UUID
    selected_photo_ids: list[str]
    breakdown: PriceBreakdownRead


class SelectionCheckoutRead(BaseModel):
    """Result of submitting a selection; QR data is set for paid checkouts."""

    external_id: str
    status: str
    total_due: Decimal
    order_id: uuid.UUID | None = None
    qr_code: str | None = None
    qr_code_base64: str | None = None
    ticket_url: str | None = None
    breakdown: PriceBreakdownRead


class SelectionStatusRead(BaseModel):
    external_id: str
    status: PaymentStatus
