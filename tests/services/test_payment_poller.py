"""Tests for the payment confirmation polling state machine."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable

import pytest

from photostudio.core.exceptions import InvalidTransition, TransientNetworkFailure
from photostudio.core.settings import PollingSettings
from photostudio.models import PaymentStatus
from photostudio.services.payment_poller import PaymentPoller, PollerState, RetryPolicy
from photostudio.services.status_resolver import ResolvedStatus

pytestmark = pytest.mark.asyncio

PENDING = ResolvedStatus(status=PaymentStatus.PENDING, source="gateway")
APPROVED = ResolvedStatus(
    status=PaymentStatus.APPROVED, source="gateway", gateway_status="approved"
)
REJECTED = ResolvedStatus(
    status=PaymentStatus.REJECTED, source="gateway", gateway_status="rejected"
)


class ScriptedResolver:
    def __init__(self, answers: Iterable[ResolvedStatus | Exception]) -> None:
        self._answers = list(answers)
        self.calls = 0

    async def resolve(self, external_id: str) -> ResolvedStatus:
        self.calls += 1
        answer = self._answers[min(self.calls, len(self._answers)) - 1]
        if isinstance(answer, Exception):
            raise answer
        return answer


class Recorder:
    def __init__(self) -> None:
        self.sleeps: list[float] = []
        self.events: list[tuple[str, ResolvedStatus | None]] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)

    def callback(self, name: str):
        async def _record(result: ResolvedStatus | None) -> None:
            self.events.append((name, result))

        return _record


def _poller(resolver, recorder: Recorder, **policy) -> PaymentPoller:
    values = {"interval_seconds": 1.0, "max_interval_seconds": 4.0, "max_attempts": 5}
    values.update(policy)
    return PaymentPoller(
        resolver,
        RetryPolicy(**values),
        on_approved=recorder.callback("approved"),
        on_rejected=recorder.callback("rejected"),
        on_timeout=recorder.callback("timeout"),
        sleep=recorder.sleep,
    )


async def test_pending_then_approved_fires_approved_once() -> None:
    recorder = Recorder()
    poller = _poller(ScriptedResolver([PENDING, PENDING, APPROVED]), recorder)
    poller.start("pay-1")

    state = await poller.run()

    assert state is PollerState.APPROVED
    assert poller.attempts == 3
    assert recorder.sleeps == [1.0, 2.0]
    assert recorder.events == [("approved", APPROVED)]
    assert poller.history == [
        (PollerState.IDLE, PollerState.AWAITING_PAYMENT),
        (PollerState.AWAITING_PAYMENT, PollerState.APPROVED),
    ]

    assert await poller.run() is PollerState.APPROVED
    assert len(recorder.events) == 1


async def test_rejection_is_terminal() -> None:
    recorder = Recorder()
    poller = _poller(ScriptedResolver([PENDING, REJECTED]), recorder)
    poller.start("pay-2")

    assert await poller.run() is PollerState.REJECTED
    assert recorder.events == [("rejected", REJECTED)]
    assert poller.cancel() is False
    with pytest.raises(InvalidTransition):
        poller.transition(PollerState.APPROVED)


async def test_exhausted_attempts_time_out() -> None:
    recorder = Recorder()
    poller = _poller(ScriptedResolver([PENDING]), recorder, max_attempts=3)
    poller.start("pay-3")

    assert await poller.run() is PollerState.TIMED_OUT
    assert poller.attempts == 3
    assert recorder.events == [("timeout", PENDING)]


async def test_backoff_is_capped_at_max_interval() -> None:
    recorder = Recorder()
    poller = _poller(ScriptedResolver([PENDING]), recorder, max_attempts=6)
    poller.start("pay-4")

    await poller.run()

    assert recorder.sleeps == [1.0, 2.0, 4.0, 4.0, 4.0]


async def test_transient_failures_count_as_pending() -> None:
    recorder = Recorder()
    resolver = ScriptedResolver([TransientNetworkFailure("timeout"), APPROVED])
    poller = _poller(resolver, recorder)
    poller.start("pay-5")

    assert await poller.run() is PollerState.APPROVED
    assert resolver.calls == 2


async def test_cancel_while_resolving_stops_without_callbacks() -> None:
    recorder = Recorder()
    poller: PaymentPoller

    class CancellingResolver:
        async def resolve(self, external_id: str) -> ResolvedStatus:
            poller.cancel()
            return APPROVED

    poller = _poller(CancellingResolver(), recorder)
    poller.start("pay-6")

    assert await poller.run() is PollerState.CANCELLED
    assert recorder.events == []
    assert poller.last_result is None


async def test_task_cancellation_moves_to_cancelled() -> None:
    blocker = asyncio.Event()

    async def blocking_sleep(seconds: float) -> None:
        await blocker.wait()

    poller = PaymentPoller(
        ScriptedResolver([PENDING]), RetryPolicy(max_attempts=10), sleep=blocking_sleep
    )
    poller.start("pay-7")
    task = asyncio.create_task(poller.run())
    while poller.attempts == 0:
        await asyncio.sleep(0)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert poller.state is PollerState.CANCELLED


async def test_run_requires_start() -> None:
    poller = PaymentPoller(ScriptedResolver([APPROVED]))

    with pytest.raises(InvalidTransition):
        await poller.run()
    assert poller.cancel() is True
    assert poller.state is PollerState.CANCELLED


async def test_policy_reads_polling_settings() -> None:
    policy = RetryPolicy.from_settings(
        PollingSettings(
            interval_seconds=2.0,
            max_interval_seconds=8.0,
            max_attempts=7,
            timeout_seconds=30.0,
        )
    )

    assert policy == RetryPolicy(2.0, 8.0, 7, 30.0)
