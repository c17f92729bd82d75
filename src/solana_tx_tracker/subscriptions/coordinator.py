"""Subscription lifecycle coordinator - start, synchronize, and tear down streams.

Each named subscription runs in its own task. The task opens its stream,
fires a one-shot ready future, hands its Teardown back to the handle, and
then forwards stream events to the subscription's handler until the stream
ends. Only the opening task can produce a Teardown, but only the caller
decides when to use it, so teardowns are collected on the handle and run by
shutdown().

A stream that ends before shutdown() (the node dropped it) is closed and
reopened every backoff interval until it is live again or shutdown begins.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Sequence

from solana_tx_tracker.errors import SubscribeError, TransientError
from solana_tx_tracker.interfaces.rpc import Teardown

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpenedStream:
    """A live stream and the action that unsubscribes it."""

    events: AsyncIterator[Any]
    teardown: Teardown


@dataclass(frozen=True)
class Subscription:
    """A named stream to open and the async handler for each of its events."""

    name: str
    open: Callable[[], Awaitable[OpenedStream]]
    handle: Callable[[Any], Awaitable[None]]


class _Backoff:
    """Holds a stream's next dispatch until its latest backoff deadline.

    Overlapping failures extend the deadline; they never shorten it.
    """

    def __init__(self) -> None:
        self._resume_at = 0.0

    def extend(self, interval: float) -> None:
        now = asyncio.get_running_loop().time()
        self._resume_at = max(self._resume_at, now + interval)

    async def wait(self) -> None:
        loop = asyncio.get_running_loop()
        while (delay := self._resume_at - loop.time()) > 0:
            await asyncio.sleep(delay)


class SubscriptionHandle:
    """Tracks the tasks, readiness, and teardowns of one start() call."""

    def __init__(self, names: Sequence[str]) -> None:
        self.names: tuple[str, ...] = tuple(names)
        self._ready: dict[str, asyncio.Future[None]] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._teardowns: list[tuple[str, Teardown]] = []
        self._reopening: set[str] = set()
        self._in_flight: set[asyncio.Task] = set()
        self._closing = False
        self._closed = asyncio.Event()

    @property
    def ready_count(self) -> int:
        """Diagnostic: subscriptions whose first open succeeded."""
        return sum(
            1 for f in self._ready.values()
            if f.done() and not f.cancelled() and f.exception() is None
        )

    @property
    def in_flight(self) -> int:
        """Diagnostic: event handler tasks still running."""
        return len(self._in_flight)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def running(self) -> list[str]:
        """Names of subscriptions whose task has not finished."""
        return [name for name, task in self._tasks.items() if not task.done()]

    def _spawn(self, coro: Awaitable[None], name: str) -> None:
        task = asyncio.ensure_future(coro)
        task.set_name(name)
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)


class SubscriptionCoordinator:
    """Runs N independent subscriptions and shuts them down in order."""

    def __init__(self, backoff_interval: float = 5.0) -> None:
        self._backoff_interval = backoff_interval

    # ── Lifecycle ─────────────────────────────────────────

    def start(self, subscriptions: Sequence[Subscription]) -> SubscriptionHandle:
        """Launch one task per subscription. Must be called inside a running loop."""
        names = [s.name for s in subscriptions]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate subscription names: {names}")

        loop = asyncio.get_running_loop()
        handle = SubscriptionHandle(names)
        for sub in subscriptions:
            handle._ready[sub.name] = loop.create_future()
            handle._tasks[sub.name] = loop.create_task(
                self._run(handle, sub), name=f"subscription:{sub.name}",
            )

        log.info("Starting %d subscription(s): %s", len(names), ", ".join(names))
        return handle

    async def wait_ready(self, handle: SubscriptionHandle) -> None:
        """Wait until every subscription is live.

        Raises the SubscribeError of the first stream that fails to open
        without waiting for the others.
        """
        if not handle._ready:
            return

        done, _ = await asyncio.wait(
            handle._ready.values(), return_when=asyncio.FIRST_EXCEPTION,
        )
        for name in handle.names:
            fut = handle._ready[name]
            if fut not in done:
                continue
            if fut.cancelled():
                raise SubscribeError(name, RuntimeError("cancelled before ready"))
            exc = fut.exception()
            if exc is not None:
                raise exc

        log.info("All %d subscription(s) ready", len(handle.names))

    async def shutdown(self, handle: SubscriptionHandle) -> None:
        """Unsubscribe everything, then wait for forwarding loops and in-flight handlers.

        Safe to call more than once; later calls wait for the first to finish.
        """
        if handle._closing:
            await handle._closed.wait()
            return
        handle._closing = True

        log.info("Shutting down %d subscription(s)", len(handle.names))

        # Teardowns run one at a time, in registration order
        failed: set[str] = set()
        while handle._teardowns:
            name, teardown = handle._teardowns.pop(0)
            if not await self._close(name, teardown):
                failed.add(name)

        # No teardown can end these: still opening, reopening, or teardown failed
        for name, task in handle._tasks.items():
            if not handle._ready[name].done() or name in handle._reopening or name in failed:
                task.cancel()

        await asyncio.gather(*handle._tasks.values(), return_exceptions=True)

        while handle._in_flight:
            await asyncio.gather(*list(handle._in_flight), return_exceptions=True)

        # Open failures nobody awaited
        for fut in handle._ready.values():
            if fut.done() and not fut.cancelled():
                fut.exception()

        handle._closed.set()
        log.info("All subscriptions shut down")

    # ── Per-subscription task ─────────────────────────────

    async def _run(self, handle: SubscriptionHandle, sub: Subscription) -> None:
        ready = handle._ready[sub.name]
        try:
            opened = await sub.open()
        except asyncio.CancelledError:
            if not ready.done():
                ready.cancel()
            raise
        except Exception as exc:
            log.error("Subscription %s failed to open: %s", sub.name, exc)
            ready.set_exception(SubscribeError(sub.name, exc))
            return

        ready.set_result(None)
        backoff = _Backoff()

        while True:
            if handle._closing:
                # shutdown() already ran; nobody else will close this stream
                await self._close(sub.name, opened.teardown)
                return

            entry = (sub.name, opened.teardown)
            handle._teardowns.append(entry)
            log.info("Subscription %s active", sub.name)

            await self._forward(handle, sub, opened.events, backoff)
            if handle._closing:
                return

            if entry in handle._teardowns:
                handle._teardowns.remove(entry)
            log.warning(
                "Subscription %s ended unexpectedly; reopening in %.1fs",
                sub.name, self._backoff_interval,
            )
            await self._close(sub.name, opened.teardown)

            handle._reopening.add(sub.name)
            try:
                reopened = await self._reopen(handle, sub)
            finally:
                handle._reopening.discard(sub.name)
            if reopened is None:
                return
            opened = reopened

    async def _reopen(self, handle: SubscriptionHandle, sub: Subscription) -> OpenedStream | None:
        """Retry open() every backoff interval until it succeeds or shutdown begins."""
        while not handle._closing:
            await asyncio.sleep(self._backoff_interval)
            if handle._closing:
                break
            try:
                return await sub.open()
            except Exception as exc:
                log.warning("Subscription %s reopen failed: %s", sub.name, exc)
        return None

    async def _forward(
        self,
        handle: SubscriptionHandle,
        sub: Subscription,
        events: AsyncIterator[Any],
        backoff: _Backoff,
    ) -> None:
        """Dispatch each stream event to its own handler task, in arrival order."""
        count = 0
        try:
            async for event in events:
                await backoff.wait()
                count += 1
                handle._spawn(
                    self._dispatch(sub, event, backoff),
                    name=f"{sub.name}:event:{count}",
                )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            log.error("Subscription %s stream error: %s", sub.name, exc)
            return
        log.info("Subscription %s stream ended after %d event(s)", sub.name, count)

    async def _dispatch(self, sub: Subscription, event: Any, backoff: _Backoff) -> None:
        try:
            await sub.handle(event)
        except TransientError as exc:
            log.warning(
                "Subscription %s: %s (backing off %.1fs)",
                sub.name, exc, self._backoff_interval,
            )
            backoff.extend(self._backoff_interval)
        except Exception as exc:
            log.error("Subscription %s handler error: %s", sub.name, exc, exc_info=True)
            backoff.extend(self._backoff_interval)

    async def _close(self, name: str, teardown: Teardown) -> bool:
        try:
            await teardown.close()
        except Exception as exc:
            log.error("Unsubscribe failed for %s: %s", name, exc)
            return False
        log.info("Unsubscribed %s", name)
        return True
