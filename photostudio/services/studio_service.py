"""Per-studio configuration loading.

Pricing and gateway credentials are read once into an immutable
:class:`StudioConfig` and passed to the pricing, selection and booking
services instead of being fetched by each of them.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from photostudio.core.exceptions import ConfigurationMissing, NotFound
from photostudio.core.settings import get_payment_settings
from photostudio.models import Studio
from photostudio.services.pricing_service import PricingConfig


@dataclass(frozen=True, slots=True)
class StudioConfig:
    """Snapshot of a studio's pricing and payment configuration."""

    studio_id: UUID
    business_name: str
    contact_email: str | None
    pricing: PricingConfig
    gateway_access_token: str | None = None

    def require_gateway_token(self) -> str:
        if not self.gateway_access_token:
            raise ConfigurationMissing(
                "Payment gateway credentials are not configured for this studio. "
                "Add a Mercado Pago access token in the studio settings."
            )
        return self.gateway_access_token


def pricing_from_studio(studio: Studio) -> PricingConfig:
    return PricingConfig.build(
        package_photo_count=studio.package_photo_count,
        package_price=studio.package_price,
        extra_photo_price=studio.extra_photo_price,
        discount_tiers=studio.discount_tiers or [],
        advance_payment_percentage=studio.advance_payment_percentage,
    )


def config_from_studio(studio: Studio) -> StudioConfig:
    fallback_token = get_payment_settings().mercadopago_access_token
    return StudioConfig(
        studio_id=studio.id,
        business_name=studio.business_name,
        contact_email=studio.contact_email,
        pricing=pricing_from_studio(studio),
        gateway_access_token=studio.mercadopago_access_token or fallback_token,
    )


async def get_studio(session: AsyncSession, studio_id: UUID) -> Studio:
    result = await session.execute(select(Studio).where(Studio.id == studio_id))
    studio = result.scalar_one_or_none()
    if studio is None:
        raise NotFound("Studio not found")
    return studio


async def load_studio_config(session: AsyncSession, studio_id: UUID) -> StudioConfig:
    """Load the configuration snapshot for ``studio_id``."""

    studio = await get_studio(session, studio_id)
    return config_from_studio(studio)
