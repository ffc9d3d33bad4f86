"""Versioned API router."""

from fastapi import APIRouter

from . import bookings, galleries, health, orders, payments_webhook, pricing

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(pricing.router, tags=["pricing"])
router.include_router(bookings.router, tags=["bookings"])
router.include_router(orders.router, tags=["orders"])
router.include_router(galleries.router, tags=["galleries"])
router.include_router(payments_webhook.router, tags=["payments-webhook"])

__all__ = ["router"]
