"""Booking deposit endpoints."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from photostudio.api import deps
from photostudio.core.exceptions import StudioError
from photostudio.schemas.booking import (
    DepositCreate,
    DepositStartRead,
    DepositStatusRead,
)
from photostudio.services import booking_service, notification_service
from photostudio.services.studio_service import StudioConfig

router = APIRouter(prefix="/studios/{studio_id}/bookings", tags=["bookings"])


@router.post(
    "/deposit",
    response_model=DepositStartRead,
    status_code=status.HTTP_201_CREATED,
    summary="Start the advance payment for a booking",
    dependencies=[deps.PUBLIC_RATE_LIMIT],
)
async def start_deposit(
    payload: DepositCreate,
    config: Annotated[StudioConfig, Depends(deps.get_studio_config)],
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    gateway_factory: Annotated[deps.GatewayFactory, Depends(deps.get_gateway_factory)],
) -> DepositStartRead:
    draft = booking_service.BookingDraft(
        client_name=payload.client_name,
        client_email=payload.client_email,
        client_phone=payload.client_phone,
        session_type=payload.session_type,
        event_date=payload.event_date,
        location=payload.location,
        notes=payload.notes,
        payer_document=payload.payer_document,
    )
    try:
        token = config.require_gateway_token()
        async with gateway_factory(token) as gateway:
            started = await booking_service.start_deposit(
                session,
                config=config,
                draft=draft,
                gateway=gateway,
                device_id=payload.device_id,
            )
    except StudioError as exc:
        raise deps.http_error(exc) from exc
    return DepositStartRead.model_validate(started.to_dict())


@router.get(
    "/deposit/{external_id}",
    response_model=DepositStatusRead,
    summary="Check a deposit payment once",
)
async def get_deposit_status(
    studio_id: UUID,
    external_id: str,
    config: Annotated[StudioConfig, Depends(deps.get_studio_config)],
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    gateway_factory: Annotated[deps.GatewayFactory, Depends(deps.get_gateway_factory)],
) -> DepositStatusRead:
    token = config.gateway_access_token
    gateway = gateway_factory(token) if token else None
    try:
        poll = await booking_service.poll_deposit(
            session,
            studio_id=studio_id,
            external_id=external_id,
            resolver=deps.build_status_resolver(gateway),
        )
    except StudioError as exc:
        raise deps.http_error(exc) from exc
    finally:
        if gateway is not None:
            await gateway.aclose()
    return DepositStatusRead(
        external_id=poll.external_id,
        status=poll.status,
        booking_id=poll.booking.id if poll.booking else None,
        album_share_token=poll.album.share_token if poll.album else None,
        gallery_url=notification_service.gallery_url_for(poll.album),
    )
