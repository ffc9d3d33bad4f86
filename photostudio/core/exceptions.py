"""Domain errors raised by the service layer.

Routers translate these into HTTP responses; services never build
``HTTPException`` themselves.
"""

from __future__ import annotations


class StudioError(Exception):
    """Base class for domain errors."""


class InvalidInput(StudioError, ValueError):
    """Bad pricing or selection parameters; rejected without retry."""


class NotFound(StudioError, LookupError):
    """A referenced studio, gallery or payment does not exist."""


class ConfigurationMissing(StudioError):
    """A required piece of studio configuration is absent."""


class TransientNetworkFailure(StudioError):
    """A gateway or network call failed in a way worth retrying."""


class GatewayError(StudioError):
    """The payment gateway refused a request."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        detail: object = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class PaymentRejected(StudioError):
    """Terminal, user-visible payment failure."""

    def __init__(
        self,
        external_id: str,
        status: str = "rejected",
        *,
        hint: str = "No booking was created; please start a new payment.",
    ) -> None:
        super().__init__(f"Payment {external_id} was {status}. {hint}")
        self.external_id = external_id
        self.status = status


class PersistenceConflict(StudioError):
    """A concurrent writer already stored the same external reference."""

    def __init__(self, external_reference: str) -> None:
        super().__init__(f"Record for {external_reference} already exists")
        self.external_reference = external_reference


class InvalidTransition(StudioError):
    """A state machine was asked to leave a terminal state."""


__all__ = [
    "ConfigurationMissing",
    "GatewayError",
    "InvalidInput",
    "InvalidTransition",
    "NotFound",
    "PaymentRejected",
    "PersistenceConflict",
    "StudioError",
    "TransientNetworkFailure",
]
