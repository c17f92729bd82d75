"""Solana websocket pubsub client - slotsUpdates subscriptions over one connection."""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from typing import Any, AsyncIterator

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from solana_tx_tracker.errors import RpcError, RpcTransportError
from solana_tx_tracker.models.events import SlotUpdate, SlotUpdateKind

log = logging.getLogger(__name__)

_END = object()


def _parse_slot_update(result: Any) -> SlotUpdate | None:
    """Parse a slotsUpdatesNotification result into a SlotUpdate.

    Returns None if the update type is unrecognized or malformed.
    """
    if not isinstance(result, dict):
        return None
    try:
        kind = SlotUpdateKind(result.get("type"))
    except ValueError:
        log.debug("Ignoring slot update type: %s", result.get("type"))
        return None
    try:
        return SlotUpdate(
            kind=kind,
            slot=int(result["slot"]),
            timestamp=result.get("timestamp"),
            parent=result.get("parent"),
        )
    except (KeyError, TypeError, ValueError) as exc:
        log.warning("Malformed slot update %r: %s", result, exc)
        return None


class _SlotUpdateStream:
    """Async iterator over one subscription's notifications."""

    def __init__(self, queue: asyncio.Queue) -> None:
        self._queue = queue

    def __aiter__(self) -> _SlotUpdateStream:
        return self

    async def __anext__(self) -> SlotUpdate:
        while True:
            item = await self._queue.get()
            if item is _END:
                # Leave the marker for any other reader
                self._queue.put_nowait(_END)
                raise StopAsyncIteration
            update = _parse_slot_update(item)
            if update is not None:
                return update


class _PubsubTeardown:
    """Sends the matching *Unsubscribe request and ends the stream."""

    def __init__(self, client: SolanaPubsubClient, method: str, subscription_id: int) -> None:
        self._client = client
        self._method = method
        self._subscription_id = subscription_id
        self._closed = False

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._client.request(self._method, [self._subscription_id])
        except (RpcError, RpcTransportError) as exc:
            log.warning("%s(%d) failed: %s", self._method, self._subscription_id, exc)
        finally:
            self._client._end_stream(self._subscription_id)


class SolanaPubsubClient:
    """Shares one websocket connection between any number of subscriptions.

    A background reader task routes responses to pending requests by id and
    notifications to per-subscription queues by subscription id.
    """

    def __init__(self, ws_url: str, request_timeout: float = 30.0) -> None:
        self._ws_url = ws_url
        self._request_timeout = request_timeout
        self._ws: Any = None
        self._reader: asyncio.Task | None = None
        self._ids = itertools.count(1)
        self._pending: dict[int, tuple[asyncio.Future, str]] = {}
        self._streams: dict[int, asyncio.Queue] = {}

    @property
    def connected(self) -> bool:
        return self._ws is not None and self._reader is not None and not self._reader.done()

    async def connect(self) -> None:
        """Open the websocket and start the reader task."""
        if self.connected:
            return
        try:
            self._ws = await websockets.connect(
                self._ws_url,
                ping_interval=30,
                ping_timeout=60,
                close_timeout=10,
                max_size=None,
            )
        except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
            raise RpcTransportError(f"websocket connect to {self._ws_url}: {exc}") from exc
        self._reader = asyncio.create_task(self._read_loop(), name="pubsub-reader")
        log.info("Connected to %s", self._ws_url)

    async def close(self) -> None:
        """Close the websocket; ends every open stream."""
        if self._ws is not None:
            await self._ws.close()
        if self._reader is not None:
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
            self._reader = None
        self._ws = None

    async def request(self, method: str, params: list[Any]) -> Any:
        """Send a JSON-RPC request over the socket and wait for its result."""
        if not self.connected:
            raise RpcTransportError(f"{method}: websocket not connected")

        request_id = next(self._ids)
        fut = asyncio.get_running_loop().create_future()
        self._pending[request_id] = (fut, method)
        try:
            await self._ws.send(json.dumps({
                "jsonrpc": "2.0",
                "id": request_id,
                "method": method,
                "params": params,
            }))
            return await asyncio.wait_for(fut, self._request_timeout)
        except ConnectionClosed as exc:
            raise RpcTransportError(f"{method}: connection closed") from exc
        except asyncio.TimeoutError as exc:
            raise RpcTransportError(f"{method}: no response in {self._request_timeout}s") from exc
        finally:
            self._pending.pop(request_id, None)

    async def slots_updates_subscribe(self) -> tuple[AsyncIterator[SlotUpdate], _PubsubTeardown]:
        """Subscribe to slot updates; returns the stream and its teardown.

        Reconnects first if the websocket was dropped.
        """
        if not self.connected:
            await self.connect()
        subscription_id = await self.request("slotsUpdatesSubscribe", [])
        queue = self._streams.setdefault(subscription_id, asyncio.Queue())
        log.info("slotsUpdatesSubscribe -> subscription %s", subscription_id)
        return (
            _SlotUpdateStream(queue),
            _PubsubTeardown(self, "slotsUpdatesUnsubscribe", subscription_id),
        )

    def _end_stream(self, subscription_id: int) -> None:
        queue = self._streams.pop(subscription_id, None)
        if queue is not None:
            queue.put_nowait(_END)

    async def _read_loop(self) -> None:
        try:
            async for raw in self._ws:
                try:
                    msg = json.loads(raw)
                except ValueError:
                    log.warning("Discarding non-JSON frame: %.200s", raw)
                    continue
                if isinstance(msg, dict):
                    self._route(msg)
        except ConnectionClosed as exc:
            log.warning("Websocket closed: %s", exc)
        finally:
            for subscription_id in list(self._streams):
                self._end_stream(subscription_id)
            for fut, method in self._pending.values():
                if not fut.done():
                    fut.set_exception(RpcTransportError(f"{method}: connection closed"))

    def _route(self, msg: dict[str, Any]) -> None:
        request_id = msg.get("id")
        if request_id is not None:
            entry = self._pending.get(request_id)
            if entry is None:
                return
            fut, method = entry
            if fut.done():
                return
            error = msg.get("error")
            if error:
                if not isinstance(error, dict):
                    error = {"message": str(error)}
                fut.set_exception(RpcError(
                    int(error.get("code", 0)), str(error.get("message", error)),
                ))
                return
            result = msg.get("result")
            if method.endswith("Subscribe"):
                # Register before any notification for this id can be routed
                self._streams.setdefault(result, asyncio.Queue())
            fut.set_result(result)
            return

        params = msg.get("params")
        if not isinstance(params, dict):
            return
        queue = self._streams.get(params.get("subscription"))
        if queue is not None:
            queue.put_nowait(params.get("result"))
