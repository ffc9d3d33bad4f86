"""Public gallery endpoints reached through an album's share token."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from photostudio.api import deps
from photostudio.api.v1.pricing import pricing_read
from photostudio.core.exceptions import StudioError
from photostudio.models import Album
from photostudio.schemas.gallery import (
    GalleryRead,
    PhotoRead,
    SelectionCheckoutRead,
    SelectionCheckoutRequest,
    SelectionQuoteRead,
    SelectionRequest,
    SelectionStatusRead,
)
from photostudio.services import selection_service
from photostudio.services.studio_service import StudioConfig, load_studio_config

router = APIRouter(prefix="/galleries/{share_token}", tags=["galleries"])


async def _gallery_with_config(
    session: AsyncSession, share_token: str
) -> tuple[Album, StudioConfig]:
    try:
        album = await selection_service.get_gallery(session, share_token)
        config = await load_studio_config(session, album.studio_id)
    except StudioError as exc:
        raise deps.http_error(exc) from exc
    return album, config


@router.get("", response_model=GalleryRead, summary="Open a shared gallery")
async def get_gallery(
    share_token: str,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> GalleryRead:
    album, config = await _gallery_with_config(session, share_token)
    return GalleryRead(
        id=album.id,
        name=album.name,
        share_token=album.share_token,
        expires_at=album.expires_at,
        photos=[PhotoRead.model_validate(photo) for photo in album.photos],
        pricing=pricing_read(config),
    )


@router.post(
    "/selection/quote",
    response_model=SelectionQuoteRead,
    summary="Price a photo selection",
    dependencies=[deps.PUBLIC_RATE_LIMIT],
)
async def quote_selection(
    share_token: str,
    payload: SelectionRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> SelectionQuoteRead:
    _, config = await _gallery_with_config(session, share_token)
    try:
        quote = await selection_service.quote_selection(
            session, share_token=share_token, photo_ids=payload.photo_ids, config=config
        )
    except StudioError as exc:
        raise deps.http_error(exc) from exc
    return SelectionQuoteRead.model_validate(quote.to_dict())


@router.post(
    "/selection/checkout",
    response_model=SelectionCheckoutRead,
    summary="Submit a photo selection",
    dependencies=[deps.PUBLIC_RATE_LIMIT],
)
async def checkout_selection(
    share_token: str,
    payload: SelectionCheckoutRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    gateway_factory: Annotated[deps.GatewayFactory, Depends(deps.get_gateway_factory)],
) -> SelectionCheckoutRead:
    _, config = await _gallery_with_config(session, share_token)
    token = config.gateway_access_token
    gateway = gateway_factory(token) if token else None
    try:
        result = await selection_service.checkout_selection(
            session,
            share_token=share_token,
            photo_ids=payload.photo_ids,
            client_email=payload.client_email,
            client_name=payload.client_name,
            config=config,
            gateway=gateway,
            device_id=payload.device_id,
        )
    except StudioError as exc:
        raise deps.http_error(exc) from exc
    finally:
        if gateway is not None:
            await gateway.aclose()
    return SelectionCheckoutRead.model_validate(result.to_dict())


@router.get(
    "/selection/checkout/{external_id}",
    response_model=SelectionStatusRead,
    summary="Check a selection payment once",
)
async def get_selection_status(
    share_token: str,
    external_id: str,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    gateway_factory: Annotated[deps.GatewayFactory, Depends(deps.get_gateway_factory)],
) -> SelectionStatusRead:
    _, config = await _gallery_with_config(session, share_token)
    token = config.gateway_access_token
    gateway = gateway_factory(token) if token else None
    try:
        payment_status = await selection_service.poll_selection(
            session,
            share_token=share_token,
            external_id=external_id,
            resolver=deps.build_status_resolver(gateway),
        )
    except StudioError as exc:
        raise deps.http_error(exc) from exc
    finally:
        if gateway is not None:
            await gateway.aclose()
    return SelectionStatusRead(external_id=external_id, status=payment_status)
