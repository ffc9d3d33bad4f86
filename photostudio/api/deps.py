"""Common API dependencies."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
from sqlalchemy.ext.asyncio import AsyncSession

from photostudio.core.config import get_settings
from photostudio.core.exceptions import (
    ConfigurationMissing,
    GatewayError,
    InvalidInput,
    NotFound,
    PaymentRejected,
    StudioError,
    TransientNetworkFailure,
)
from photostudio.db.session import get_session, session_scope
from photostudio.integrations import MercadoPagoClient, build_gateway_client
from photostudio.services.status_resolver import StatusResolver
from photostudio.services.studio_service import StudioConfig, load_studio_config

GatewayFactory = Callable[[str], MercadoPagoClient]

settings = get_settings()

_STATUS_FOR_ERROR: tuple[tuple[type[StudioError], int], ...] = (
    (InvalidInput, status.HTTP_400_BAD_REQUEST),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (PaymentRejected, status.HTTP_402_PAYMENT_REQUIRED),
    (ConfigurationMissing, status.HTTP_503_SERVICE_UNAVAILABLE),
    (TransientNetworkFailure, status.HTTP_503_SERVICE_UNAVAILABLE),
    (GatewayError, status.HTTP_502_BAD_GATEWAY),
)


def http_error(exc: StudioError) -> HTTPException:
    """Translate a domain error into the HTTP response the client sees."""

    for error_type, status_code in _STATUS_FOR_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
    )


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session."""
    async for session in get_session():
        yield session


async def get_studio_config(
    studio_id: UUID,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> StudioConfig:
    """Load the studio's configuration once per request."""
    try:
        return await load_studio_config(session, studio_id)
    except StudioError as exc:
        raise http_error(exc) from exc


def get_gateway_factory() -> GatewayFactory:
    """Return a callable that builds a gateway client for an access token."""
    return build_gateway_client


def build_status_resolver(client: MercadoPagoClient | None) -> StatusResolver:
    """Resolver that checks the gateway first and then local records."""
    return StatusResolver(
        session_scope,
        client.get_payment if client is not None else None,
    )


def parse_rate(value: str, *, fallback: tuple[int, int]) -> tuple[int, int]:
    try:
        count_str, window_str = value.split("/", 1)
        count = int(count_str.strip())
    except ValueError:
        return fallback
    window = window_str.strip().lower()
    seconds_map = {
        "second": 1,
        "seconds": 1,
        "minute": 60,
        "minutes": 60,
        "hour": 3600,
        "hours": 3600,
        "day": 86400,
        "days": 86400,
    }
    return count, seconds_map.get(window, fallback[1])


def rate_limit(limit: tuple[int, int]):
    async def _dependency(request: Request, response: Response) -> None:
        if FastAPILimiter.redis is None:
            return None
        limiter = RateLimiter(times=limit[0], seconds=limit[1])
        await limiter(request, response)

    return Depends(_dependency)


PUBLIC_RATE_LIMIT = rate_limit(parse_rate(settings.rate_limit_public, fallback=(20, 60)))
DEFAULT_RATE_LIMIT = rate_limit(
    parse_rate(settings.rate_limit_default, fallback=(100, 60))
)
