"""Service layer exports."""
from photostudio.services import (
    booking_service,
    notification_service,
    order_service,
    payment_poller,
    pricing_service,
    selection_service,
    status_resolver,
    studio_service,
    webhook_service,
)

__all__ = [
    "booking_service",
    "notification_service",
    "order_service",
    "payment_poller",
    "pricing_service",
    "selection_service",
    "status_resolver",
    "studio_service",
    "webhook_service",
]
