"""Payment attempt and webhook log models."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, Enum, ForeignKey, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from photostudio.db.base import Base
from photostudio.models.mixins import TimestampMixin, utcnow
from photostudio.models.types import JSONB_TYPE


class PaymentStatus(str, enum.Enum):
    """Lifecycle states of a payment attempt."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not PaymentStatus.PENDING


class PaymentKind(str, enum.Enum):
    """Flow that initiated the payment."""

    DEPOSIT = "deposit"
    SELECTION = "selection"


class PaymentAttempt(TimestampMixin, Base):
    """A PIX charge created with the gateway and awaiting confirmation."""

    __tablename__ = "payment_attempts"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    studio_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("studios.id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[PaymentKind] = mapped_column(Enum(PaymentKind), nullable=False)
    external_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING
    )
    gateway_status: Mapped[str | None] = mapped_column(String(32))
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    booking_draft: Mapped[dict[str, Any] | None] = mapped_column(JSONB_TYPE)
    album_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("albums.id", ondelete="SET NULL")
    )
    selected_photo_ids: Mapped[list[str]] = mapped_column(
        JSONB_TYPE, nullable=False, default=list
    )
    failure_reason: Mapped[str | None] = mapped_column(Text())
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class WebhookLogStatus(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"


class WebhookLog(Base):
    """Raw gateway notifications and dispatch outcomes for auditing."""

    __tablename__ = "webhook_logs"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    provider_event_id: Mapped[str | None] = mapped_column(String(255), unique=True)
    event_type: Mapped[str] = mapped_column(String(128), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONB_TYPE, nullable=False)
    status: Mapped[WebhookLogStatus] = mapped_column(
        Enum(WebhookLogStatus), nullable=False, default=WebhookLogStatus.SUCCESS
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
