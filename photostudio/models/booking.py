"""Booking (photo session) model."""
from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from photostudio.db.base import Base
from photostudio.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from photostudio.models.album import Album
    from photostudio.models.studio import Studio


class BookingStatus(str, enum.Enum):
    """Lifecycle states for a booked session."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


SESSION_TYPE_LABELS: dict[str, str] = {
    "maternity": "Maternity Session",
    "birthday": "Birthday",
    "commercial": "Commercial",
    "pre_wedding": "Pre-Wedding",
    "graduation": "Graduation",
    "gender_reveal": "Gender Reveal",
}


def session_type_label(session_type: str | None) -> str:
    if not session_type:
        return "Session"
    return SESSION_TYPE_LABELS.get(session_type, session_type)


class Booking(TimestampMixin, Base):
    """A client's booked photo session, created once its deposit is paid."""

    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    studio_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("studios.id", ondelete="CASCADE"), nullable=False
    )
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    client_email: Mapped[str] = mapped_column(String(255), nullable=False)
    client_phone: Mapped[str] = mapped_column(String(32), nullable=False)
    session_type: Mapped[str] = mapped_column(String(64), nullable=False)
    event_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    location: Mapped[str] = mapped_column(
        String(255), nullable=False, default="Studio"
    )
    notes: Mapped[str | None] = mapped_column(String(1024))
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus), default=BookingStatus.SCHEDULED, nullable=False
    )
    deposit_external_id: Mapped[str | None] = mapped_column(
        String(64), unique=True
    )
    deposit_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))

    studio: Mapped["Studio"] = relationship("Studio", back_populates="bookings")
    album: Mapped["Album | None"] = relationship(
        "Album", back_populates="booking", uselist=False
    )
