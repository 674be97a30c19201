"""Testnet fixtures: live Starknet Sepolia node, read-only.

Skipped unless BITVM_BRIDGE_TESTNET_RPC names a Sepolia JSON-RPC endpoint.
"""

from __future__ import annotations

import os

import httpx
import pytest

from bitvm_bridge.starknet.rpc import StarknetRpcClient

RPC_URL = os.environ.get("BITVM_BRIDGE_TESTNET_RPC", "")


@pytest.fixture(scope="session")
def testnet_reachable():
    """Skip testnet tests when no endpoint is configured or it is down."""
    if not RPC_URL:
        pytest.skip("BITVM_BRIDGE_TESTNET_RPC not set")
    try:
        r = httpx.post(
            RPC_URL,
            json={"jsonrpc": "2.0", "id": 1, "method": "starknet_blockNumber", "params": []},
            timeout=10,
        )
        if r.status_code == 200 and "result" in r.json():
            return True
    except (httpx.HTTPError, ValueError):
        pass
    pytest.skip(f"Starknet node not reachable at {RPC_URL}")


@pytest.fixture
async def live_rpc(testnet_reachable):
    client = StarknetRpcClient(RPC_URL)
    yield client
    await client.close()
