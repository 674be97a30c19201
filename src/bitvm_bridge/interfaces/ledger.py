"""Ledger RPC protocols - the Starknet node as seen by the monitor and client."""

from __future__ import annotations

from typing import Protocol, Sequence

from bitvm_bridge.models.events import EventFilter, EventsPage
from bitvm_bridge.models.records import TransactionStatus


class EventSource(Protocol):
    """Read access needed by the EventMonitor."""

    async def block_number(self) -> int:
        """Current chain tip height."""
        ...

    async def get_events(
        self,
        event_filter: EventFilter,
        continuation_token: str | None,
        chunk_size: int,
    ) -> EventsPage:
        """One page of matching events; follow the returned token for more."""
        ...

    async def get_block_timestamp(self, block_number: int) -> int:
        ...


class ContractReader(Protocol):
    """Account and contract state reads needed by the BridgeClient."""

    async def get_nonce(self, account: int) -> int:
        ...

    async def call(
        self, contract_address: int, selector: int, calldata: Sequence[int] = ()
    ) -> list[int]:
        ...

    async def get_transaction_status(self, tx_hash: str) -> TransactionStatus:
        ...
