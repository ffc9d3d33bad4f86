"""Studio model representing a tenant photography business."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from photostudio.db.base import Base
from photostudio.models.mixins import TimestampMixin
from photostudio.models.types import JSONB_TYPE

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from photostudio.models.booking import Booking
    from photostudio.models.order import Order


def default_discount_tiers() -> list[dict[str, Any]]:
    return [
        {"extra_count_above": 10, "rate": "0.10"},
        {"extra_count_above": 5, "rate": "0.05"},
    ]


class Studio(TimestampMixin, Base):
    """A photography studio and its pricing configuration."""

    __tablename__ = "studios"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    business_name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    contact_email: Mapped[str | None] = mapped_column(String(255))
    phone: Mapped[str | None] = mapped_column(String(32))

    package_photo_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=10
    )
    package_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("300.00")
    )
    extra_photo_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("30.00")
    )
    advance_payment_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("50")
    )
    discount_tiers: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB_TYPE, nullable=False, default=default_discount_tiers
    )
    mercadopago_access_token: Mapped[str | None] = mapped_column(String(255))

    bookings: Mapped[list["Booking"]] = relationship(
        "Booking", back_populates="studio", cascade="all, delete-orphan"
    )
    orders: Mapped[list["Order"]] = relationship(
        "Order", back_populates="studio", cascade="all, delete-orphan"
    )
