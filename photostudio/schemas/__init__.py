"""Schema exports."""

from photostudio.schemas.booking import (
    DepositCreate,
    DepositStartRead,
    DepositStatusRead,
)
from photostudio.schemas.gallery import (
    GalleryRead,
    PhotoRead,
    SelectionCheckoutRead,
    SelectionCheckoutRequest,
    SelectionQuoteRead,
    SelectionRequest,
    SelectionStatusRead,
)
from photostudio.schemas.order import OrderRead
from photostudio.schemas.payment import SimulatedPaymentEvent, WebhookAck
from photostudio.schemas.pricing import (
    DiscountTierRead,
    PriceBreakdownRead,
    PriceLineRead,
    PriceQuoteRequest,
    PricingConfigRead,
)

__all__ = [
    "DepositCreate",
    "DepositStartRead",
    "DepositStatusRead",
    "DiscountTierRead",
    "GalleryRead",
    "OrderRead",
    "PhotoRead",
    "PriceBreakdownRead",
    "PriceLineRead",
    "PriceQuoteRequest",
    "PricingConfigRead",
    "SelectionCheckoutRead",
    "SelectionCheckoutRequest",
    "SelectionQuoteRead",
    "SelectionRequest",
    "SelectionStatusRead",
    "SimulatedPaymentEvent",
    "WebhookAck",
]
