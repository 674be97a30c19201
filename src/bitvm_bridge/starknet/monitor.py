"""Bridge event monitor - confirmed-block cursor over Mint/Burn contract events."""

from __future__ import annotations

import logging
from typing import AsyncIterator

from bitvm_bridge.errors import HandlerFailure, MalformedEvent, UnsupportedEventKind
from bitvm_bridge.interfaces.handler import EventHandler
from bitvm_bridge.interfaces.ledger import EventSource
from bitvm_bridge.models.config import BLOCKS_PER_BATCH, CHUNK_SIZE, CONFIRMED_BLOCKS
from bitvm_bridge.models.events import (
    BridgeEvent,
    BurnEvent,
    EventFilter,
    EventsPage,
    MintEvent,
    RawEvent,
)
from bitvm_bridge.starknet.events import EVENT_SELECTORS, decode_event
from bitvm_bridge.starknet.felt import parse_address, to_hex
from bitvm_bridge.starknet.rpc import StarknetRpcClient

log = logging.getLogger(__name__)


async def iter_event_pages(
    source: EventSource,
    event_filter: EventFilter,
    chunk_size: int = CHUNK_SIZE,
    continuation_token: str | None = None,
) -> AsyncIterator[EventsPage]:
    """Yield event pages for a filter until the node stops returning a token.

    Passing a previously returned token resumes from that page.
    """
    token = continuation_token
    while True:
        page = await source.get_events(event_filter, token, chunk_size)
        yield page
        token = page.continuation_token
        if token is None:
            return


class EventMonitor:
    """Polls a Starknet node for bridge events in confirmed blocks.

    Each process() call walks the blocks in
    ``(processed_height, tip - confirmations]`` in fixed-size batches,
    paginates the matching events of each batch, decodes them and hands
    them to the handler. The cursor advances only after a batch has been
    fully dispatched. Pacing between calls is left to the caller; the
    monitor must not be driven re-entrantly.
    """

    def __init__(
        self,
        contract_address: str | int,
        source: EventSource,
        handler: EventHandler,
        last_processed_height: int,
        confirmations: int = CONFIRMED_BLOCKS,
        blocks_per_batch: int = BLOCKS_PER_BATCH,
        chunk_size: int = CHUNK_SIZE,
    ) -> None:
        if last_processed_height < 0:
            raise ValueError("last_processed_height must be non-negative")
        if confirmations < 0:
            raise ValueError("confirmations must be non-negative")
        if blocks_per_batch < 1 or chunk_size < 1:
            raise ValueError("blocks_per_batch and chunk_size must be positive")

        if isinstance(contract_address, str):
            contract_address = parse_address(contract_address)
        self._contract_address = contract_address
        self._source = source
        self._handler = handler
        self._last_processed_height = last_processed_height
        self._confirmations = confirmations
        self._blocks_per_batch = blocks_per_batch
        self._chunk_size = chunk_size

    @classmethod
    def from_url(
        cls,
        rpc_url: str,
        contract_address: str,
        handler: EventHandler,
        last_processed_height: int,
        **kwargs: int,
    ) -> "EventMonitor":
        """Build a monitor backed by a StarknetRpcClient for ``rpc_url``."""
        return cls(
            contract_address, StarknetRpcClient(rpc_url), handler, last_processed_height,
            **kwargs,
        )

    @property
    def contract_address(self) -> int:
        return self._contract_address

    @property
    def confirmations(self) -> int:
        return self._confirmations

    def processed_height(self) -> int:
        """Highest block whose events have been fully dispatched."""
        return self._last_processed_height

    async def latest_block_number(self) -> int:
        return await self._source.block_number()

    async def process(self) -> None:
        """Dispatch events from every newly confirmed block.

        RpcFailure propagates; the cursor then stays at the last completed
        batch so a retry does not redeliver finished batches.
        """
        tip = await self._source.block_number()
        if tip < self._confirmations:
            log.debug("Chain tip %d below confirmation depth %d", tip, self._confirmations)
            return

        end_block = tip - self._confirmations
        if self._last_processed_height >= end_block:
            return

        current = self._last_processed_height
        while current < end_block:
            from_block = current + 1
            to_block = min(from_block + self._blocks_per_batch - 1, end_block)
            dispatched = await self._process_batch(from_block, to_block)
            current = to_block
            self._last_processed_height = current
            log.debug(
                "Processed blocks %d-%d (%d event(s) dispatched)",
                from_block, to_block, dispatched,
            )

        log.info("Processed up to block %d (tip %d)", self._last_processed_height, tip)

    async def _process_batch(self, from_block: int, to_block: int) -> int:
        event_filter = EventFilter(
            from_block=from_block,
            to_block=to_block,
            address=self._contract_address,
            keys=(EVENT_SELECTORS,),
        )
        # Block timestamps, fetched on first use per block
        timestamps: dict[int, int] = {}
        # Events seen so far per transaction; a transaction never spans batches
        per_tx: dict[int, int] = {}
        dispatched = 0

        async for page in iter_event_pages(self._source, event_filter, self._chunk_size):
            for raw in page.events:
                event_index = per_tx.get(raw.transaction_hash, 0)
                per_tx[raw.transaction_hash] = event_index + 1
                if await self._process_single_event(raw, timestamps, event_index):
                    dispatched += 1
        return dispatched

    async def _process_single_event(
        self, raw: RawEvent, timestamps: dict[int, int], event_index: int,
    ) -> bool:
        tx_hash = to_hex(raw.transaction_hash)
        try:
            event = decode_event(raw)
        except UnsupportedEventKind as exc:
            log.debug("Skipping event in tx %s: %s", tx_hash, exc)
            return False
        except MalformedEvent as exc:
            log.warning("Skipping malformed event in tx %s: %s", tx_hash, exc)
            return False

        block_number = raw.block_number or 0
        block_timestamp = 0
        if block_number > 0:
            if block_number not in timestamps:
                timestamps[block_number] = await self._source.get_block_timestamp(block_number)
            block_timestamp = timestamps[block_number]

        try:
            await self._dispatch(block_number, block_timestamp, tx_hash, event, event_index)
        except Exception as exc:
            failure = HandlerFailure(type(event).__name__, tx_hash, exc)
            log.error("Error processing event: %s", failure, exc_info=exc)
            return False
        return True

    async def _dispatch(
        self,
        block_number: int,
        block_timestamp: int,
        tx_hash: str,
        event: BridgeEvent,
        event_index: int,
    ) -> None:
        if isinstance(event, MintEvent):
            await self._handler.handle_mint(
                block_number, block_timestamp, tx_hash, event.to, event.value,
                event_index=event_index,
            )
        elif isinstance(event, BurnEvent):
            await self._handler.handle_burn(
                block_number,
                block_timestamp,
                tx_hash,
                event.sender,
                event.btc_addr,
                event.fee_rate,
                event.value,
                event.operator_id,
                event_index=event_index,
            )
