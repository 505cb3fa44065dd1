"""
Per-attempt cancellation tokens and the cancellable inter-retry delay.

A token is created for exactly one attempt (or one wait) and thrown away
afterwards, so a late cancel aimed at an old attempt can never reach a new one.
"""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, TypeVar

from .errors import OperationCancelled

if TYPE_CHECKING:
    from .progress import ProgressReporter

logger = logging.getLogger(__name__)

T = TypeVar("T")

POLL_INTERVAL_SECONDS = 0.1


class CancellationToken:
    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason = ""

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "Operation cancelled by user.") -> None:
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OperationCancelled(self.reason or "Operation cancelled by user.")

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        When the token wins the awaitable is cancelled and
        ``OperationCancelled`` is raised, even if its result arrived in the
        same loop iteration.
        """
        task = asyncio.ensure_future(awaitable)
        if self.cancelled:
            task.cancel()
            await _drain(task)
            self.raise_if_cancelled()

        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            task.cancel()
            await _drain(task)
            raise
        finally:
            waiter.cancel()

        if self.cancelled:
            if not task.done():
                task.cancel()
            await _drain(task)
            self.raise_if_cancelled()
        return task.result()


async def _drain(task: asyncio.Future) -> None:
    # Let a cancelled task finish unwinding; its outcome is discarded.
    if not task.done():
        await asyncio.wait({task})
    if not task.cancelled():
        task.exception()


async def cancellable_delay(
    delay_ms: float,
    reporter: "ProgressReporter",
    token: CancellationToken | None = None,
) -> None:
    """Sleep for ``delay_ms`` or raise ``OperationCancelled`` once the reporter is cancelled.

    The wait token is attached to the reporter so ``request_cancel`` wakes it
    at once; the reporter flag is polled as well, every ``POLL_INTERVAL_SECONDS``.
    """
    token = token or CancellationToken()
    if reporter.cancelled:
        token.cancel()
    token.raise_if_cancelled()

    loop = asyncio.get_running_loop()
    deadline = loop.time() + max(0.0, delay_ms) / 1000.0
    reporter.attach_token(token)
    try:
        while True:
            if reporter.cancelled:
                token.cancel()
            token.raise_if_cancelled()
            remaining = deadline - loop.time()
            if remaining <= 0:
                return
            try:
                await asyncio.wait_for(token.wait(), timeout=min(POLL_INTERVAL_SECONDS, remaining))
            except asyncio.TimeoutError:
                continue
    finally:
        reporter.detach_token(token)
