"""Studio order listing."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from photostudio.api import deps
from photostudio.models import OrderStatus
from photostudio.schemas.order import OrderRead
from photostudio.services import order_service
from photostudio.services.studio_service import StudioConfig

router = APIRouter(prefix="/studios/{studio_id}/orders", tags=["orders"])


@router.get(
    "",
    response_model=list[OrderRead],
    summary="List studio orders",
    dependencies=[deps.DEFAULT_RATE_LIMIT],
)
async def list_orders(
    config: Annotated[StudioConfig, Depends(deps.get_studio_config)],
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    status: OrderStatus | None = None,
) -> list[OrderRead]:
    orders = await order_service.list_orders(
        session, studio_id=config.studio_id, status=status
    )
    return [OrderRead.model_validate(order) for order in orders]
