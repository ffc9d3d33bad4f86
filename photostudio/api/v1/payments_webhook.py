"""Mercado Pago notification receiver and local simulator."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from photostudio.api import deps
from photostudio.core.config import get_settings
from photostudio.core.exceptions import StudioError
from photostudio.core.settings import get_payment_settings
from photostudio.schemas.payment import SimulatedPaymentEvent, WebhookAck
from photostudio.services import webhook_service

router = APIRouter(prefix="/payments", tags=["payments-webhook"])


@router.post("/webhook", response_model=WebhookAck, status_code=status.HTTP_200_OK)
async def handle_webhook(
    request: Request,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    gateway_factory: Annotated[deps.GatewayFactory, Depends(deps.get_gateway_factory)],
) -> dict[str, Any]:
    settings = get_payment_settings()
    try:
        payload = await request.json()
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload"
        ) from exc
    if not isinstance(payload, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload"
        )
    query = dict(request.query_params)

    try:
        if settings.webhook_secret and settings.payments_webhook_verify:
            data_id = webhook_service.extract_payment_id(payload, query)
            if not data_id:
                raise webhook_service.WebhookSignatureError("Missing data.id")
            webhook_service.verify_signature(
                secret=settings.webhook_secret,
                header=request.headers.get("x-signature"),
                request_id=request.headers.get("x-request-id"),
                data_id=data_id,
            )
        result = await webhook_service.process_notification(
            session, payload, gateway_factory=gateway_factory, query=query
        )
    except StudioError as exc:
        raise deps.http_error(exc) from exc
    return result.to_dict()


@router.post(
    "/dev/simulate-webhook",
    response_model=WebhookAck,
    status_code=status.HTTP_200_OK,
)
async def simulate_webhook(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    payload: SimulatedPaymentEvent = Body(...),
) -> dict[str, Any]:
    settings = get_settings()
    if settings.app_env.lower() != "local":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Simulation route available in local environment only",
        )
    try:
        result = await webhook_service.simulate_payment_event(
            session,
            external_id=payload.external_id,
            status=payload.status,
            status_detail=payload.status_detail,
        )
    except StudioError as exc:
        raise deps.http_error(exc) from exc
    return result.to_dict()
