"""Order schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from photostudio.models import OrderKind, OrderStatus


class OrderRead(BaseModel):
    """Serialized order with its gateway fee metadata."""

    id: uuid.UUID
    studio_id: uuid.UUID
    booking_id: uuid.UUID | None = None
    album_id: uuid.UUID | None = None
    kind: OrderKind
    client_email: str
    selected_photo_ids: list[str]
    total_amount: Decimal
    status: OrderStatus
    external_reference: str
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="meta")
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
