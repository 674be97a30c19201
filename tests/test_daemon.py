"""BridgeWatcher: cursor persistence, pacing and the polling loop."""

from __future__ import annotations

import asyncio
import logging

import pytest

from bitvm_bridge.daemon import BridgeWatcher, next_poll_delay
from bitvm_bridge.errors import RpcFailure
from bitvm_bridge.starknet.felt import encode_short_string
from bitvm_bridge.starknet.monitor import EventMonitor
from bitvm_bridge.storage.sqlite import SQLiteEventStore

from tests.conftest import make_test_config
from tests.factories import BRIDGE_ADDRESS, make_mint_raw
from tests.mocks import MockLedger

IDLE = 0.5
ACTIVE = 0.01


@pytest.fixture
async def watcher():
    w = BridgeWatcher(make_test_config(idle_interval=IDLE, active_interval=ACTIVE))
    await w.store.initialize()
    yield w
    await w.rpc.close()
    await w.store.close()


def attach(watcher: BridgeWatcher, ledger: MockLedger, cursor: int = 990, **kwargs) -> None:
    watcher.monitor = EventMonitor(BRIDGE_ADDRESS, ledger, watcher.handler, cursor, **kwargs)


# ── Pacing ────────────────────────────────────────────────


@pytest.mark.parametrize(
    "latest, before, after, expected",
    [
        (1100, 990, 1000, 0.0),  # still behind the confirmed tip
        (1000, 990, 994, ACTIVE),  # caught up after progress
        (1000, 994, 994, IDLE),  # nothing new
        (3, 0, 0, IDLE),  # chain shorter than the confirmation depth
    ],
)
def test_next_poll_delay(latest, before, after, expected):
    assert next_poll_delay(latest, before, after, 6, IDLE, ACTIVE) == expected


# ── Single pass ───────────────────────────────────────────


async def test_run_once_records_events_and_cursor(watcher):
    ledger = MockLedger(tip=1000, events=[make_mint_raw(block_number=993, tx_hash=0xABC)])
    attach(watcher, ledger)

    delay = await watcher.run_once()

    assert delay == ACTIVE
    assert await watcher.store.get_cursor() == 994
    (record,) = await watcher.store.get_recent_events()
    assert (record.kind, record.tx_hash, record.account, record.value) == (
        "mint", "0xabc", "alice", 500,
    )


async def test_run_once_without_progress_leaves_cursor(watcher):
    attach(watcher, MockLedger(tip=1000), cursor=994)

    assert await watcher.run_once() == IDLE
    assert await watcher.store.get_cursor() is None


class AdvancingLedger(MockLedger):
    """Chain that grows by 50 blocks between tip queries."""

    async def block_number(self) -> int:
        tip = await super().block_number()
        self.tip += 50
        return tip


async def test_run_once_behind_tip_returns_zero_delay(watcher):
    attach(watcher, AdvancingLedger(tip=1000), cursor=0)

    assert await watcher.run_once() == 0.0
    assert await watcher.store.get_cursor() == 994


async def test_run_once_propagates_rpc_failure(watcher):
    ledger = MockLedger(tip=1000)
    ledger.block_number_error = RpcFailure("down")
    attach(watcher, ledger)

    with pytest.raises(RpcFailure):
        await watcher.run_once()
    assert await watcher.store.get_cursor() is None


# ── Loop ──────────────────────────────────────────────────


async def test_main_loop_keeps_partial_progress_on_error(watcher, caplog):
    ledger = MockLedger(tip=16, events=[make_mint_raw(block_number=2)])
    ledger.fail_from_block = 5
    attach(watcher, ledger, cursor=0, blocks_per_batch=4)
    watcher._running = True

    with caplog.at_level(logging.ERROR, logger="bitvm_bridge.daemon"):
        task = asyncio.create_task(watcher._main_loop())
        await asyncio.sleep(0.1)
        await watcher.stop()
        await asyncio.wait_for(task, timeout=2)

    assert await watcher.store.get_cursor() == 4
    assert await watcher.store.count_events() == 1
    assert "Error processing events" in caplog.text


async def test_main_loop_survives_cursor_write_failure(watcher, monkeypatch, caplog):
    ledger = MockLedger(tip=1000)
    ledger.block_number_error = RpcFailure("down")
    attach(watcher, ledger)
    watcher._running = True

    async def broken_set_cursor(block_number: int) -> None:
        raise RuntimeError("database is locked")

    monkeypatch.setattr(watcher.store, "set_cursor", broken_set_cursor)

    with caplog.at_level(logging.ERROR, logger="bitvm_bridge.daemon"):
        task = asyncio.create_task(watcher._main_loop())
        await asyncio.sleep(0.1)
        await watcher.stop()
        await asyncio.wait_for(task, timeout=2)

    assert task.exception() is None
    assert ledger.block_number_calls >= 2
    assert "Could not persist cursor: database is locked" in caplog.text


async def test_main_loop_exits_on_cancel(watcher):
    attach(watcher, MockLedger(tip=1000), cursor=994)
    watcher._running = True

    task = asyncio.create_task(watcher._main_loop())
    await asyncio.sleep(0.05)
    task.cancel()
    await asyncio.wait_for(task, timeout=2)
    assert task.done()


# ── Startup ───────────────────────────────────────────────


async def _start_without_loop(watcher: BridgeWatcher, ledger: MockLedger) -> dict:
    """Run start() with the polling loop replaced by a snapshot of the monitor."""
    await watcher.rpc.close()
    watcher.rpc = ledger
    seen: dict = {}

    async def capture():
        seen["height"] = watcher.monitor.processed_height()
        seen["source"] = watcher.monitor._source

    watcher._main_loop = capture
    await watcher.start()
    return seen


async def test_start_restores_saved_cursor(tmp_path):
    cfg = make_test_config(db_path=str(tmp_path / "events.db"), start_block=10)
    pre = SQLiteEventStore(cfg.db_path)
    await pre.initialize()
    await pre.set_cursor(1234)
    await pre.close()

    ledger = MockLedger()
    seen = await _start_without_loop(BridgeWatcher(cfg), ledger)

    assert seen["height"] == 1234
    assert seen["source"] is ledger
    assert ledger.closed


async def test_start_falls_back_to_start_block(tmp_path):
    cfg = make_test_config(db_path=str(tmp_path / "events.db"), start_block=10)
    seen = await _start_without_loop(BridgeWatcher(cfg), MockLedger())
    assert seen["height"] == 10


async def test_chain_id_mismatch_warns(tmp_path, caplog):
    cfg = make_test_config(db_path=str(tmp_path / "events.db"))
    ledger = MockLedger()
    ledger.chain = encode_short_string("SN_MAIN")

    with caplog.at_level(logging.WARNING, logger="bitvm_bridge.daemon"):
        await _start_without_loop(BridgeWatcher(cfg), ledger)

    assert "SN_MAIN" in caplog.text
    assert "sepolia" in caplog.text
