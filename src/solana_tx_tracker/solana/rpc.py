"""Solana JSON-RPC client - getBlock and getSlot over HTTP."""

from __future__ import annotations

import itertools
import logging
from typing import Any

import httpx

from solana_tx_tracker.errors import BlockNotFoundError, RpcError, RpcTransportError

log = logging.getLogger(__name__)

# Node error codes meaning "there is no block to return for this slot"
#   -32004: block not available for slot
#   -32007: slot skipped or missing due to ledger jump
#   -32009: slot missing in long-term storage
BLOCK_NOT_AVAILABLE_CODES = frozenset({-32004, -32007, -32009})


class SolanaRpcClient:
    """Minimal async JSON-RPC client for the reads the tracker needs.

    One httpx.AsyncClient is reused across calls; call close() when done.
    """

    def __init__(
        self,
        rpc_url: str,
        commitment: str = "finalized",
        timeout: float = 30.0,
        max_supported_transaction_version: int = 0,
    ) -> None:
        self._rpc_url = rpc_url
        self._commitment = commitment
        self._timeout = timeout
        self._max_tx_version = max_supported_transaction_version
        self._ids = itertools.count(1)
        self._client: httpx.AsyncClient | None = None

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout, connect=10))
        return self._client

    async def close(self) -> None:
        """Close the underlying httpx client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def call(self, method: str, params: list[Any] | None = None) -> Any:
        """Issue one JSON-RPC request and return its `result`."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        try:
            resp = await self._http().post(self._rpc_url, json=payload)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise RpcTransportError(
                f"{method}: HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RpcTransportError(f"{method}: {exc}") from exc
        except ValueError as exc:
            raise RpcTransportError(f"{method}: invalid JSON response") from exc

        if not isinstance(data, dict):
            raise RpcTransportError(f"{method}: unexpected response {data!r:.200}")

        error = data.get("error")
        if error:
            code = error.get("code", 0) if isinstance(error, dict) else 0
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            raise RpcError(int(code), str(message))

        return data.get("result")

    async def get_block(self, slot: int) -> dict[str, Any]:
        """Fetch a full, JSON-encoded block with transaction metadata."""
        config = {
            "encoding": "json",
            "transactionDetails": "full",
            "rewards": False,
            "commitment": self._commitment,
            "maxSupportedTransactionVersion": self._max_tx_version,
        }
        try:
            result = await self.call("getBlock", [slot, config])
        except RpcError as exc:
            if exc.code in BLOCK_NOT_AVAILABLE_CODES:
                raise BlockNotFoundError(slot, exc.message) from exc
            raise

        if result is None:
            raise BlockNotFoundError(slot)
        if not isinstance(result, dict):
            raise RpcTransportError(f"getBlock: unexpected result {result!r:.200}")

        log.debug(
            "Fetched block %d (%d transactions)",
            slot, len(result.get("transactions") or []),
        )
        return result

    async def get_slot(self) -> int:
        """Latest slot at the configured commitment."""
        result = await self.call("getSlot", [{"commitment": self._commitment}])
        return int(result)
