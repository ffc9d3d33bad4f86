"""Integration shortcuts."""

from .mercadopago_client import (
    GatewayPayment,
    MercadoPagoClient,
    PaymentIntent,
    build_gateway_client,
    normalize_gateway_status,
)

__all__ = [
    "GatewayPayment",
    "MercadoPagoClient",
    "PaymentIntent",
    "build_gateway_client",
    "normalize_gateway_status",
]
