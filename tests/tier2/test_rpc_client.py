"""SolanaRpcClient against the local fake node."""

from __future__ import annotations

import pytest

from solana_tx_tracker.errors import BlockNotFoundError, RpcError, RpcTransportError
from solana_tx_tracker.solana.rpc import SolanaRpcClient

from tests.factories import make_raw_block, make_usdc_transfer

pytestmark = pytest.mark.node

SLOT = 250_000_500


@pytest.fixture
async def rpc(fake_node):
    client = SolanaRpcClient(fake_node.rpc_url, timeout=5)
    yield client
    await client.close()


async def test_get_block_request_shape(rpc, fake_node):
    fake_node.blocks[SLOT] = make_raw_block(make_usdc_transfer(), blockhash="HashRpc")

    raw = await rpc.get_block(SLOT)

    assert raw["blockhash"] == "HashRpc"
    assert len(raw["transactions"]) == 1
    method, params = fake_node.requests[-1]
    assert method == "getBlock"
    assert params[0] == SLOT
    assert params[1] == {
        "encoding": "json",
        "transactionDetails": "full",
        "rewards": False,
        "commitment": "finalized",
        "maxSupportedTransactionVersion": 0,
    }


async def test_get_block_null_result_is_not_found(rpc):
    with pytest.raises(BlockNotFoundError):
        await rpc.get_block(SLOT)


@pytest.mark.parametrize("code", [-32004, -32007, -32009])
async def test_get_block_not_available_codes(rpc, fake_node, code):
    fake_node.errors[SLOT] = (code, f"Slot {SLOT} was skipped")

    with pytest.raises(BlockNotFoundError) as exc_info:
        await rpc.get_block(SLOT)
    assert "skipped" in exc_info.value.detail


async def test_get_block_other_rpc_error(rpc, fake_node):
    fake_node.errors[SLOT] = (-32603, "Internal error")

    with pytest.raises(RpcError) as exc_info:
        await rpc.get_block(SLOT)

    assert exc_info.value.code == -32603
    assert not isinstance(exc_info.value, BlockNotFoundError)


async def test_http_error_is_transport_error(rpc, fake_node):
    fake_node.http_status = 503

    with pytest.raises(RpcTransportError, match="HTTP 503"):
        await rpc.get_slot()


async def test_get_slot(rpc, fake_node):
    assert await rpc.get_slot() == fake_node.latest_slot
    assert fake_node.requests[-1] == ("getSlot", [{"commitment": "finalized"}])


async def test_unknown_method(rpc):
    with pytest.raises(RpcError) as exc_info:
        await rpc.call("getNothing")
    assert exc_info.value.code == -32601


async def test_unreachable_node():
    client = SolanaRpcClient("http://127.0.0.1:1", timeout=2)
    try:
        with pytest.raises(RpcTransportError):
            await client.get_slot()
    finally:
        await client.close()


async def test_get_block_non_object_result(rpc, fake_node):
    fake_node.blocks[SLOT] = "not-a-block"

    with pytest.raises(RpcTransportError, match="unexpected result"):
        await rpc.get_block(SLOT)
