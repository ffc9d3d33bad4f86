"""ORM models package export."""

from photostudio.models.album import Album, Photo
from photostudio.models.booking import Booking, BookingStatus
from photostudio.models.order import Order, OrderKind, OrderStatus
from photostudio.models.payment import (
    PaymentAttempt,
    PaymentKind,
    PaymentStatus,
    WebhookLog,
    WebhookLogStatus,
)
from photostudio.models.studio import Studio

__all__ = [
    "Album",
    "Booking",
    "BookingStatus",
    "Order",
    "OrderKind",
    "OrderStatus",
    "PaymentAttempt",
    "PaymentKind",
    "PaymentStatus",
    "Photo",
    "Studio",
    "WebhookLog",
    "WebhookLogStatus",
]
