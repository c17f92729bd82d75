"""Exception hierarchy for RPC, subscription, and block-fetch failures."""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for all solana_tx_tracker errors."""


class TransientError(TrackerError):
    """Retryable failure; a stream backs off and keeps listening."""


class RpcTransportError(TransientError):
    """HTTP or network failure while talking to the node."""


class RpcError(TransientError):
    """JSON-RPC error object returned by the node."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message


class BlockFetchError(TransientError):
    """A block could not be fetched for a slot."""

    def __init__(self, slot: int, detail: str) -> None:
        super().__init__(f"slot {slot}: {detail}")
        self.slot = slot
        self.detail = detail


class BlockNotFoundError(BlockFetchError):
    """The node has no block for the slot (skipped, pruned, or not yet available)."""

    def __init__(self, slot: int, detail: str = "block not available") -> None:
        super().__init__(slot, detail)


class SubscribeError(TrackerError):
    """A subscription stream failed to open."""

    def __init__(self, name: str, cause: BaseException) -> None:
        super().__init__(f"subscription {name!r} failed to open: {cause}")
        self.name = name
        self.cause = cause
