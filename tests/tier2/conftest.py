"""Tier 2 fixtures: a local fake Solana node (HTTP JSON-RPC + websocket pubsub)."""

from __future__ import annotations

import json
from typing import Any

import pytest
from aiohttp import WSMsgType, web
from aiohttp.test_utils import TestServer

SUBSCRIPTION_ID = 42


class FakeNode:
    """Serves getBlock/getSlot over POST / and slotsUpdates over /ws."""

    def __init__(self) -> None:
        self.blocks: dict[int, Any] = {}
        self.errors: dict[int, tuple[int, str]] = {}
        self.http_status = 200
        self.latest_slot = 250_000_999
        self.requests: list[tuple[str, list]] = []
        self.ws_methods: list[str] = []
        self.sockets: list[web.WebSocketResponse] = []
        self.rpc_url = ""
        self.ws_url = ""

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/", self.handle_rpc)
        app.router.add_get("/ws", self.handle_ws)
        return app

    # ── HTTP JSON-RPC ─────────────────────────────────────────────

    async def handle_rpc(self, request: web.Request) -> web.Response:
        if self.http_status != 200:
            return web.Response(status=self.http_status, text="unavailable")
        body = await request.json()
        method, params = body["method"], body.get("params", [])
        self.requests.append((method, params))

        if method == "getSlot":
            return self._result(body, self.latest_slot)
        if method == "getBlock":
            slot = params[0]
            if slot in self.errors:
                code, message = self.errors[slot]
                return self._error(body, code, message)
            return self._result(body, self.blocks.get(slot))
        return self._error(body, -32601, "Method not found")

    @staticmethod
    def _result(body: dict, result: Any) -> web.Response:
        return web.json_response({"jsonrpc": "2.0", "result": result, "id": body["id"]})

    @staticmethod
    def _error(body: dict, code: int, message: str) -> web.Response:
        return web.json_response({
            "jsonrpc": "2.0",
            "error": {"code": code, "message": message},
            "id": body["id"],
        })

    # ── Websocket pubsub ──────────────────────────────────────────

    async def handle_ws(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self.sockets.append(ws)

        async for msg in ws:
            if msg.type != WSMsgType.TEXT:
                continue
            body = json.loads(msg.data)
            self.ws_methods.append(body["method"])
            if body["method"] == "slotsUpdatesSubscribe":
                await ws.send_json({"jsonrpc": "2.0", "result": SUBSCRIPTION_ID, "id": body["id"]})
            elif body["method"] == "slotsUpdatesUnsubscribe":
                await ws.send_json({"jsonrpc": "2.0", "result": True, "id": body["id"]})
            else:
                await ws.send_json({
                    "jsonrpc": "2.0",
                    "error": {"code": -32601, "message": "Method not found"},
                    "id": body["id"],
                })
        return ws

    async def notify(self, **update: Any) -> None:
        """Push one slotsUpdatesNotification to every open socket."""
        for ws in self.sockets:
            if not ws.closed:
                await ws.send_json({
                    "jsonrpc": "2.0",
                    "method": "slotsUpdatesNotification",
                    "params": {"result": update, "subscription": SUBSCRIPTION_ID},
                })

    async def notify_completed(self, slot: int) -> None:
        await self.notify(type="completed", slot=slot, timestamp=1_700_000_000_000)

    async def drop_connections(self) -> None:
        for ws in self.sockets:
            await ws.close()


@pytest.fixture
async def fake_node():
    """Running FakeNode with rpc_url / ws_url filled in."""
    node = FakeNode()
    server = TestServer(node.app())
    await server.start_server()
    node.rpc_url = str(server.make_url("/"))
    node.ws_url = str(server.make_url("/ws")).replace("http://", "ws://", 1)
    yield node
    await node.drop_connections()
    await server.close()
