"""Bounded-backoff loading of generated images.

Image backends render on first request and fail transiently and often. The
loader owns one :class:`RetryState` per resource key and at most one retry
chain per key. States are replaced, never mutated, so a snapshot handed to a
caller stays valid.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass, replace
from enum import Enum

from shigen.core.api.http import ApiError, AsyncApiClient, RetryPolicy

logger = logging.getLogger(__name__)

Probe = Callable[[str], Awaitable[bool]]
Sleep = Callable[[float], Awaitable[None]]


def image_retry_policy(max_retries: int = 4, base_delay_s: float = 1.0, max_delay_s: float = 8.0) -> RetryPolicy:
    """Deterministic doubling schedule (1s, 2s, 4s, 8s by default)."""
    return RetryPolicy(
        max_attempts=max_retries + 1,
        base_delay_s=base_delay_s,
        max_delay_s=max_delay_s,
        jitter=0.0,
    )


class LoadStatus(str, Enum):
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True)
class RetryState:
    """Load progress of one resource.

    Attributes:
        url: Resource being loaded
        attempt: Retries used so far (0 on the first attempt)
        status: Current load status
    """

    url: str
    attempt: int = 0
    status: LoadStatus = LoadStatus.LOADING

    @property
    def done(self) -> bool:
        return self.status is not LoadStatus.LOADING


@dataclass
class _Slot:
    state: RetryState
    task: asyncio.Task[None] | None = None


def http_probe(http: AsyncApiClient) -> Probe:
    """Probe that GETs the URL and expects a 2xx image response.

    Pass a client without transport retries; the loader does its own backoff.
    """

    async def probe(url: str) -> bool:
        try:
            response = await http.get(url, raise_for_status=False)
        except ApiError as e:
            logger.debug(f"Image probe failed for {url}: {e}")
            return False
        content_type = response.headers.get("content-type", "")
        return response.is_success and content_type.startswith("image/")

    return probe


class ResourceLoader:
    """Keyed arena of image load chains.

    Args:
        probe: Async check returning True once the resource is available
        policy: Backoff schedule; ``max_attempts`` includes the first try
        sleep: Delay function (``asyncio.sleep`` by default)
        on_change: Called with ``(key, state)`` on every state transition

    Example:
        >>> loader = ResourceLoader(http_probe(http))
        >>> loader.load("msg-1", url)
        >>> state = await loader.wait("msg-1")
        >>> state.status
        <LoadStatus.LOADED: 'loaded'>
    """

    def __init__(
        self,
        probe: Probe,
        *,
        policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
        on_change: Callable[[Hashable, RetryState], None] | None = None,
    ) -> None:
        self._probe = probe
        self.policy = policy or image_retry_policy()
        self._sleep = sleep
        self._on_change = on_change
        self._slots: dict[Hashable, _Slot] = {}

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._slots

    def state(self, key: Hashable) -> RetryState | None:
        slot = self._slots.get(key)
        return slot.state if slot else None

    def load(self, key: Hashable, url: str) -> RetryState:
        """Start loading ``url`` into slot ``key``.

        Loading the URL a slot already holds is a no-op unless its last chain
        failed. Any other URL cancels the pending chain and starts from
        attempt 0. Must be called with a running event loop.
        """
        slot = self._slots.get(key)
        if slot is not None:
            if slot.state.url == url and slot.state.status is not LoadStatus.FAILED:
                return slot.state
            self._cancel(slot)

        slot = _Slot(state=RetryState(url=url))
        self._slots[key] = slot
        self._notify(key, slot.state)
        slot.task = asyncio.create_task(self._run(key, slot))
        return slot.state

    def discard(self, key: Hashable) -> None:
        """Forget ``key`` and abandon its chain; no further requests are made."""
        slot = self._slots.pop(key, None)
        if slot is not None:
            self._cancel(slot)
            logger.debug(f"Discarded image slot {key!r}")

    async def wait(self, key: Hashable) -> RetryState:
        """Wait until the chain for ``key`` finishes and return its final state.

        Raises:
            KeyError: If ``key`` is unknown
            asyncio.CancelledError: If the chain is discarded or replaced meanwhile
        """
        slot = self._slots[key]
        if slot.task is not None:
            await asyncio.shield(slot.task)
        return slot.state

    async def aclose(self) -> None:
        """Cancel every chain and wait for them to unwind."""
        tasks = [slot.task for slot in self._slots.values() if slot.task is not None]
        for slot in self._slots.values():
            self._cancel(slot)
        self._slots.clear()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _cancel(self, slot: _Slot) -> None:
        if slot.task is not None and not slot.task.done():
            slot.task.cancel()

    def _notify(self, key: Hashable, state: RetryState) -> None:
        if self._on_change is not None:
            self._on_change(key, state)

    def _update(self, key: Hashable, slot: _Slot, **changes) -> None:
        slot.state = replace(slot.state, **changes)
        self._notify(key, slot.state)

    async def _run(self, key: Hashable, slot: _Slot) -> None:
        while True:
            if await self._probe(slot.state.url):
                self._update(key, slot, status=LoadStatus.LOADED)
                logger.debug(f"Image {key!r} loaded after {slot.state.attempt} retries")
                return

            if slot.state.attempt >= self.policy.max_retries:
                self._update(key, slot, status=LoadStatus.FAILED)
                logger.warning(f"Image {key!r} failed after {slot.state.attempt + 1} attempts")
                return

            delay = self.policy.compute_delay(slot.state.attempt + 1)
            self._update(key, slot, attempt=slot.state.attempt + 1)
            logger.debug(f"Retrying image {key!r} in {delay:.1f}s (retry {slot.state.attempt})")
            await self._sleep(delay)
