"""Payment confirmation polling state machine.

``idle -> awaiting_payment -> {approved, rejected, timed_out, cancelled}``

Each tick asks the :class:`StatusResolver` for the payment state. Pending
answers are retried with exponential backoff until the attempt or
wall-clock budget of the :class:`RetryPolicy` runs out, which ends in the
``timed_out`` state. Terminal states are final: no further transitions
happen and callbacks fire once.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
)

from photostudio.core.exceptions import InvalidTransition, TransientNetworkFailure
from photostudio.core.settings import PollingSettings
from photostudio.models import PaymentStatus
from photostudio.services.status_resolver import ResolvedStatus, StatusResolver

logger = logging.getLogger(__name__)


class PollerState(str, enum.Enum):
    IDLE = "idle"
    AWAITING_PAYMENT = "awaiting_payment"
    APPROVED = "approved"
    REJECTED = "rejected"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self not in (PollerState.IDLE, PollerState.AWAITING_PAYMENT)


_ALLOWED: dict[PollerState, frozenset[PollerState]] = {
    PollerState.IDLE: frozenset({PollerState.AWAITING_PAYMENT, PollerState.CANCELLED}),
    PollerState.AWAITING_PAYMENT: frozenset(
        {
            PollerState.APPROVED,
            PollerState.REJECTED,
            PollerState.TIMED_OUT,
            PollerState.CANCELLED,
        }
    ),
}


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Backoff and cut-off parameters for one polling run."""

    interval_seconds: float = 3.0
    max_interval_seconds: float = 15.0
    max_attempts: int = 120
    timeout_seconds: float = 600.0

    @classmethod
    def from_settings(cls, settings: PollingSettings) -> "RetryPolicy":
        return cls(
            interval_seconds=settings.interval_seconds,
            max_interval_seconds=settings.max_interval_seconds,
            max_attempts=settings.max_attempts,
            timeout_seconds=settings.timeout_seconds,
        )


Callback = Callable[[ResolvedStatus | None], Awaitable[None]]
Sleep = Callable[[float], Awaitable[None]]


class PaymentPoller:
    """Drive one payment from ``awaiting_payment`` to a terminal state."""

    def __init__(
        self,
        resolver: StatusResolver,
        policy: RetryPolicy | None = None,
        *,
        on_approved: Callback | None = None,
        on_rejected: Callback | None = None,
        on_timeout: Callback | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._resolver = resolver
        self._policy = policy or RetryPolicy()
        self._on_approved = on_approved
        self._on_rejected = on_rejected
        self._on_timeout = on_timeout
        self._sleep = sleep
        self.state = PollerState.IDLE
        self.external_id: str | None = None
        self.attempts = 0
        self.last_result: ResolvedStatus | None = None
        self.history: list[tuple[PollerState, PollerState]] = []

    def transition(self, target: PollerState) -> None:
        if target not in _ALLOWED.get(self.state, frozenset()):
            raise InvalidTransition(
                f"Cannot move payment poller from {self.state.value} to {target.value}"
            )
        self.history.append((self.state, target))
        logger.info(
            "Payment %s: %s -> %s", self.external_id, self.state.value, target.value
        )
        self.state = target

    def start(self, external_id: str) -> None:
        """Begin awaiting confirmation for ``external_id``."""

        self.external_id = external_id
        self.transition(PollerState.AWAITING_PAYMENT)

    def cancel(self) -> bool:
        """Stop polling; returns False if a terminal state was already reached."""

        if self.state.is_terminal:
            return False
        self.transition(PollerState.CANCELLED)
        return True

    async def _tick(self) -> ResolvedStatus | None:
        if self.state is not PollerState.AWAITING_PAYMENT:
            return None
        assert self.external_id is not None
        self.attempts += 1
        try:
            result = await self._resolver.resolve(self.external_id)
        except TransientNetworkFailure as exc:
            logger.warning("Transient failure polling %s: %s", self.external_id, exc)
            result = ResolvedStatus(status=PaymentStatus.PENDING, source="none")

        # cancel() may have run while the resolver was awaiting
        if self.state is not PollerState.AWAITING_PAYMENT:
            return None
        self.last_result = result
        if result.status is PaymentStatus.APPROVED:
            self.transition(PollerState.APPROVED)
        elif result.status is PaymentStatus.REJECTED:
            self.transition(PollerState.REJECTED)
        return result

    def _keep_polling(self, result: ResolvedStatus | None) -> bool:
        return (
            self.state is PollerState.AWAITING_PAYMENT
            and result is not None
            and result.status is PaymentStatus.PENDING
        )

    @staticmethod
    def _exhausted(retry_state: RetryCallState) -> None:
        return None

    async def run(self) -> PollerState:
        """Poll until a terminal state is reached and return it."""

        if self.state.is_terminal:
            return self.state
        if self.state is PollerState.IDLE:
            raise InvalidTransition("Payment poller was not started")

        policy = self._policy
        retrying = AsyncRetrying(
            sleep=self._sleep,
            retry=retry_if_result(self._keep_polling),
            wait=wait_exponential(
                multiplier=policy.interval_seconds,
                min=policy.interval_seconds,
                max=policy.max_interval_seconds,
            ),
            stop=(
                stop_after_attempt(policy.max_attempts)
                | stop_after_delay(policy.timeout_seconds)
            ),
            retry_error_callback=self._exhausted,
        )
        try:
            await retrying(self._tick)
        except asyncio.CancelledError:
            self.cancel()
            raise

        if self.state is PollerState.AWAITING_PAYMENT:
            logger.warning(
                "Payment %s still pending after %s attempt(s)",
                self.external_id,
                self.attempts,
            )
            self.transition(PollerState.TIMED_OUT)

        callback = {
            PollerState.APPROVED: self._on_approved,
            PollerState.REJECTED: self._on_rejected,
            PollerState.TIMED_OUT: self._on_timeout,
        }.get(self.state)
        if callback is not None:
            await callback(self.last_result)
        return self.state


__all__ = ["PaymentPoller", "PollerState", "RetryPolicy"]
