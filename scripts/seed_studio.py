"""Seed a studio with the default package pricing and discount tiers."""

from __future__ import annotations

import asyncio
import os
from decimal import Decimal

from sqlalchemy import select

from photostudio.db.session import get_sessionmaker
from photostudio.models import Studio
from photostudio.models.studio import default_discount_tiers

DEFAULT_SLUG = "demo-studio"


async def seed_studio() -> None:
    slug = os.environ.get("STUDIO_SLUG", DEFAULT_SLUG)
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        existing = (
            await session.execute(select(Studio).where(Studio.slug == slug))
        ).scalar_one_or_none()
        if existing is not None:
            print(f"Studio {slug} already exists ({existing.id}); nothing to seed.")
            return

        studio = Studio(
            business_name=os.environ.get("STUDIO_NAME", "Demo Photo Studio"),
            slug=slug,
            contact_email=os.environ.get("STUDIO_EMAIL"),
            package_photo_count=10,
            package_price=Decimal("300.00"),
            extra_photo_price=Decimal("30.00"),
            advance_payment_percentage=Decimal("50"),
            discount_tiers=default_discount_tiers(),
            mercadopago_access_token=os.environ.get("STUDIO_MERCADOPAGO_TOKEN"),
        )
        session.add(studio)
        await session.commit()
        print(f"Seeded studio {slug} ({studio.id}).")


if __name__ == "__main__":
    asyncio.run(seed_studio())
