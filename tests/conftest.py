"""Shared fixtures for bitvm_bridge tests."""

from __future__ import annotations

import pytest
from aiohttp import web
from pytest_metadata.plugin import metadata_key

from bitvm_bridge.models.config import BridgeConfig
from bitvm_bridge.starknet.rpc import StarknetRpcClient
from bitvm_bridge.storage.sqlite import SQLiteEventStore, StoreEventHandler

from tests.factories import BRIDGE_ADDRESS, LIGHT_CLIENT_ADDRESS
from tests.fake_node import FAKE_NODE_HOST, FAKE_NODE_PORT, FAKE_NODE_URL, FakeStarknetNode
from tests.mocks import MockLedger, MockSubmitter, RecordingHandler

RPC_URL = "https://starknet-sepolia.public.blastapi.io/rpc/v0_8"


def pytest_configure(config):
    """Add network info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Network"] = "Starknet Sepolia (mocked)"
    meta["Bridge Contract"] = BRIDGE_ADDRESS
    meta["Light Client Contract"] = LIGHT_CLIENT_ADDRESS


def make_test_config(**overrides) -> BridgeConfig:
    """Build a BridgeConfig suitable for testing."""
    defaults = dict(
        idle_interval=0.01,
        active_interval=0.01,
        error_backoff=0.01,
        network="sepolia",
        rpc_url=RPC_URL,
        bridge_contract=BRIDGE_ADDRESS,
        light_client_contract=LIGHT_CLIENT_ADDRESS,
        start_block=0,
        confirmations=6,
        blocks_per_batch=100,
        chunk_size=100,
        db_path=":memory:",
    )
    defaults.update(overrides)
    return BridgeConfig(**defaults)


@pytest.fixture
def test_config():
    """Default BridgeConfig for tests."""
    return make_test_config()


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteEventStore."""
    s = SQLiteEventStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def store_handler(store):
    return StoreEventHandler(store)


@pytest.fixture
def ledger():
    return MockLedger(tip=1000)


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def submitter():
    return MockSubmitter()


@pytest.fixture
async def fake_node():
    """FakeStarknetNode listening on FAKE_NODE_URL."""
    node = FakeStarknetNode()
    runner = web.AppRunner(node.app())
    await runner.setup()
    site = web.TCPSite(runner, FAKE_NODE_HOST, FAKE_NODE_PORT)
    await site.start()
    yield node
    await runner.cleanup()


@pytest.fixture
async def rpc(fake_node):
    """StarknetRpcClient pointed at the fake node."""
    client = StarknetRpcClient(FAKE_NODE_URL, timeout=5)
    yield client
    await client.close()
