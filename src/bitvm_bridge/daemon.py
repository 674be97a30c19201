"""Watcher daemon - drives the EventMonitor and persists its cursor."""

from __future__ import annotations

import asyncio
import logging
import signal

from bitvm_bridge.errors import RpcFailure
from bitvm_bridge.models.config import BridgeConfig
from bitvm_bridge.starknet.chain import StarknetChainId
from bitvm_bridge.starknet.felt import decode_short_string
from bitvm_bridge.starknet.monitor import EventMonitor
from bitvm_bridge.starknet.rpc import StarknetRpcClient
from bitvm_bridge.storage.sqlite import SQLiteEventStore, StoreEventHandler

log = logging.getLogger(__name__)


def next_poll_delay(
    latest_block: int,
    processed_before: int,
    processed_after: int,
    confirmations: int,
    idle_interval: float,
    active_interval: float,
) -> float:
    """Seconds to wait before the next process() call.

    Still behind the confirmed tip: no wait. Caught up: wait longer when
    the last call made no progress.
    """
    if latest_block > processed_after + confirmations:
        return 0.0
    if processed_after == processed_before:
        return idle_interval
    return active_interval


class BridgeWatcher:
    """Runs the bridge event monitor until stopped.

    Events are recorded through a StoreEventHandler; the cursor is saved
    after every successful pass so a restart resumes where it left off.
    """

    def __init__(self, cfg: BridgeConfig) -> None:
        self._cfg = cfg
        self._running = False

        self.store = SQLiteEventStore(cfg.db_path)
        self.rpc = StarknetRpcClient(cfg.rpc_url, cfg.request_timeout)
        self.handler = StoreEventHandler(self.store)
        self.monitor: EventMonitor | None = None

    def _build_monitor(self, start_height: int) -> EventMonitor:
        return EventMonitor(
            self._cfg.bridge_contract,
            self.rpc,
            self.handler,
            start_height,
            confirmations=self._cfg.confirmations,
            blocks_per_batch=self._cfg.blocks_per_batch,
            chunk_size=self._cfg.chunk_size,
        )

    async def start(self) -> None:
        """Initialize components and run the main loop."""
        log.info("Starting bitvm_bridge watcher")
        log.info("  Network: %s", self._cfg.network)
        log.info("  Contract: %s", self._cfg.bridge_contract)
        log.info("  RPC: %s", self._cfg.rpc_url)

        await self.store.initialize()

        saved = await self.store.get_cursor()
        start_height = saved if saved is not None else self._cfg.start_block
        if saved is not None:
            log.info("Restored cursor: block %d", saved)
        else:
            log.info("No saved cursor, starting after block %d", start_height)
        self.monitor = self._build_monitor(start_height)

        await self._check_chain_id()

        self._running = True
        try:
            await self._main_loop()
        finally:
            await self.rpc.close()
            await self.store.close()
            log.info("Watcher shut down cleanly")

    async def stop(self) -> None:
        """Signal the watcher to stop gracefully."""
        log.info("Stop requested")
        self._running = False

    async def _check_chain_id(self) -> None:
        expected = StarknetChainId(self._cfg.network).to_felt()
        try:
            actual = await self.rpc.chain_id()
        except RpcFailure as exc:
            log.warning("Could not read chain id: %s", exc)
            return
        if actual != expected:
            try:
                name = decode_short_string(actual)
            except ValueError:
                name = hex(actual)
            log.warning(
                "RPC endpoint serves chain %s, configured network is %s",
                name, self._cfg.network,
            )

    async def run_once(self) -> float:
        """One monitor pass; persists the cursor and returns the next delay."""
        assert self.monitor is not None, "Watcher not started"
        before = self.monitor.processed_height()
        await self.monitor.process()
        after = self.monitor.processed_height()
        if after != before:
            await self.store.set_cursor(after)

        latest = await self.monitor.latest_block_number()
        log.debug("latest_block_number: %d, processed_height: %d", latest, after)
        return next_poll_delay(
            latest, before, after, self._cfg.confirmations,
            self._cfg.idle_interval, self._cfg.active_interval,
        )

    async def _main_loop(self) -> None:
        """The core polling loop."""
        while self._running:
            try:
                delay = await self.run_once()
                if delay:
                    await asyncio.sleep(delay)
                else:
                    log.debug("Still catching up, processing next batch")
            except asyncio.CancelledError:
                log.info("Main loop cancelled")
                break
            except Exception as exc:
                log.error("Error processing events: %s", exc, exc_info=True)
                # Keep whatever progress the failed pass made
                if self.monitor is not None:
                    try:
                        await self.store.set_cursor(self.monitor.processed_height())
                    except Exception as store_exc:
                        log.error("Could not persist cursor: %s", store_exc, exc_info=True)
                await asyncio.sleep(self._cfg.error_backoff)


async def run_watcher(cfg: BridgeConfig) -> None:
    """Entry point for running the watcher."""
    watcher = BridgeWatcher(cfg)

    loop = asyncio.get_running_loop()

    def _signal_handler():
        asyncio.ensure_future(watcher.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await watcher.start()
