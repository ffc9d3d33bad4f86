"""Payment notification schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class WebhookAck(BaseModel):
    received: bool = True
    status: str
    external_id: str | None = None
    payment_status: str | None = None
    order_status: str | None = None


class SimulatedPaymentEvent(BaseModel):
    """Local-only shortcut to push a gateway status onto a payment."""

    external_id: str
    status: Literal[
        "pending",
        "approved",
        "rejected",
        "cancelled",
        "expired",
        "refunded",
    ]
    status_detail: str | None = None
