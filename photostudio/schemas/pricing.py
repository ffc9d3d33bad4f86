"""Pricing schema definitions."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel


class DiscountTierRead(BaseModel):
    extra_count_above: int
    rate: Decimal


class PricingConfigRead(BaseModel):
    """A studio's current photo pricing."""

    package_photo_count: int
    package_price: Decimal
    extra_photo_price: Decimal
    advance_payment_percentage: Decimal
    advance_payment_amount: Decimal
    discount_tiers: list[DiscountTierRead]


class PriceQuoteRequest(BaseModel):
    """Number of photos the client wants to keep."""

    selected_count: int


class PriceLineRead(BaseModel):
    description: str
    amount: Decimal


class PriceBreakdownRead(BaseModel):
    """Priced selection with its line items."""

    selected_count: int
    included_count: int
    extra_count: int
    extra_gross_amount: Decimal
    discount_rate: Decimal
    discount_amount: Decimal
    extra_net_amount: Decimal
    total_due: Decimal
    is_free_tier: bool
    items: list[PriceLineRead]
