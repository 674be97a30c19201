"""EventHandler protocol - receives decoded bridge events from the monitor."""

from __future__ import annotations

from typing import Protocol


class EventHandler(Protocol):
    """Caller-supplied callbacks, one per bridge event kind.

    A raised exception marks that single event as failed; the monitor logs
    it and moves on to the next event.

    ``event_index`` is the event's position among the contract's events in
    its transaction, so identical events in one transaction stay distinct.
    """

    async def handle_mint(
        self,
        block_number: int,
        block_timestamp: int,
        tx_hash: str,
        to: str,
        value: int,
        *,
        event_index: int = 0,
    ) -> None:
        ...

    async def handle_burn(
        self,
        block_number: int,
        block_timestamp: int,
        tx_hash: str,
        sender: str,
        btc_addr: str,
        fee_rate: int,
        value: int,
        operator_id: int,
        *,
        event_index: int = 0,
    ) -> None:
        ...
