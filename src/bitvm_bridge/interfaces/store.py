"""EventStore protocol - persists the monitor cursor and delivered events."""

from __future__ import annotations

from typing import Protocol

from bitvm_bridge.models.events import BurnEvent, MintEvent
from bitvm_bridge.models.records import EventRecord


class EventStore(Protocol):
    """Persists watcher state for restart recovery."""

    async def initialize(self) -> None:
        ...

    async def close(self) -> None:
        ...

    async def get_cursor(self) -> int | None:
        ...

    async def set_cursor(self, block_number: int) -> None:
        ...

    async def save_mint(
        self, block_number: int, block_timestamp: int, tx_hash: str, event: MintEvent,
        event_index: int = 0,
    ) -> bool:
        """Returns False when the event was already recorded.

        Events are keyed by kind, transaction, block and ``event_index``.
        """
        ...

    async def save_burn(
        self, block_number: int, block_timestamp: int, tx_hash: str, event: BurnEvent,
        event_index: int = 0,
    ) -> bool:
        ...

    async def get_recent_events(
        self, limit: int = 50, kind: str | None = None,
    ) -> list[EventRecord]:
        ...

    async def count_events(self, kind: str | None = None) -> int:
        ...
