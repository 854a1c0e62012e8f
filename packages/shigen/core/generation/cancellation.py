"""Per-call cancellation tokens.

A token is created by the caller for one user action and passed into every
operation it should stop. Tokens are never shared implicitly, so two
concurrent generations cannot cancel each other.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from shigen.core.generation.errors import GenerationCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """Cooperative cancellation signal for one operation.

    Example:
        >>> token = CancellationToken()
        >>> task = asyncio.create_task(client.generate(turns, "openai", cancel=token))
        >>> token.cancel()  # safe to call repeatedly
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled by caller") -> None:
        """Signal cancellation. Idempotent; the first reason wins."""
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()
        logger.debug(f"Cancellation requested: {reason}")

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise GenerationCancelled()

    async def wait(self) -> None:
        """Block until cancelled."""
        await self._event.wait()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        On cancellation the pending awaitable is cancelled and awaited so its
        resources unwind before ``GenerationCancelled`` is raised.

        Raises:
            GenerationCancelled: If the token is (or becomes) cancelled
        """
        self.raise_if_cancelled()
        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            await asyncio.wait({work})
            raise
        finally:
            waiter.cancel()
        if work.done():
            return work.result()
        work.cancel()
        await asyncio.wait({work})
        raise GenerationCancelled()

    async def sleep(self, delay: float) -> None:
        """Sleep for ``delay`` seconds, waking early on cancellation.

        Raises:
            GenerationCancelled: If cancelled before the delay elapses
        """
        await self.run(asyncio.sleep(delay))


def ensure_token(token: CancellationToken | None) -> CancellationToken:
    """Return ``token`` or a fresh, never-cancelled one."""
    return token if token is not None else CancellationToken()
