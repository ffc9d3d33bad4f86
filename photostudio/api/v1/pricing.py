"""Studio pricing endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from photostudio.api import deps
from photostudio.core.exceptions import StudioError
from photostudio.schemas.pricing import (
    PriceBreakdownRead,
    PriceQuoteRequest,
    PricingConfigRead,
)
from photostudio.services import pricing_service
from photostudio.services.studio_service import StudioConfig

router = APIRouter(prefix="/studios/{studio_id}/pricing", tags=["pricing"])


def pricing_read(config: StudioConfig) -> PricingConfigRead:
    pricing = config.pricing
    return PricingConfigRead.model_validate(
        {
            **pricing.to_dict(),
            "advance_payment_amount": pricing_service.advance_payment_amount(pricing),
        }
    )


@router.get(
    "",
    response_model=PricingConfigRead,
    summary="Current photo pricing",
    dependencies=[deps.DEFAULT_RATE_LIMIT],
)
async def get_pricing(
    config: Annotated[StudioConfig, Depends(deps.get_studio_config)],
) -> PricingConfigRead:
    return pricing_read(config)


@router.post(
    "/quote",
    response_model=PriceBreakdownRead,
    summary="Price a number of selected photos",
    dependencies=[deps.PUBLIC_RATE_LIMIT],
)
async def quote_pricing(
    payload: PriceQuoteRequest,
    config: Annotated[StudioConfig, Depends(deps.get_studio_config)],
) -> PriceBreakdownRead:
    try:
        breakdown = pricing_service.calculate_breakdown(
            payload.selected_count, config.pricing
        )
    except StudioError as exc:
        raise deps.http_error(exc) from exc
    return PriceBreakdownRead.model_validate(breakdown.to_dict())
