"""Order records keyed on the gateway's payment reference."""

from __future__ import annotations

import enum
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import Enum, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from photostudio.db.base import Base
from photostudio.models.mixins import TimestampMixin
from photostudio.models.types import JSONB_TYPE

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from photostudio.models.booking import Booking
    from photostudio.models.studio import Studio


class OrderStatus(str, enum.Enum):
    """Settlement states for an order."""

    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    @property
    def is_final(self) -> bool:
        return self is not OrderStatus.PENDING


class OrderKind(str, enum.Enum):
    """What the order pays for."""

    ADVANCE_BOOKING = "advance_booking"
    EXTRA_PHOTOS = "extra_photos"


class Order(TimestampMixin, Base):
    """Persisted payment outcome; unique per external payment reference."""

    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    studio_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("studios.id", ondelete="CASCADE"), nullable=False
    )
    booking_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("bookings.id", ondelete="SET NULL")
    )
    album_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("albums.id", ondelete="SET NULL")
    )
    kind: Mapped[OrderKind] = mapped_column(Enum(OrderKind), nullable=False)
    client_email: Mapped[str] = mapped_column(String(255), nullable=False)
    selected_photo_ids: Mapped[list[str]] = mapped_column(
        JSONB_TYPE, nullable=False, default=list
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING
    )
    external_reference: Mapped[str] = mapped_column(
        String(128), unique=True, nullable=False
    )
    meta: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONB_TYPE, nullable=False, default=dict
    )

    studio: Mapped["Studio"] = relationship("Studio", back_populates="orders")
    booking: Mapped["Booking | None"] = relationship("Booking")
