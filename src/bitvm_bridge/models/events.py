"""Raw emitted events and the typed bridge events decoded from them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class RawEvent:
    """An emitted event as returned by starknet_getEvents.

    ``keys[0]`` is the event selector; for keyed events ``keys[1]`` carries
    the indexed field. ``data`` holds the non-indexed fields in ABI order.
    """

    from_address: int
    keys: tuple[int, ...]
    data: tuple[int, ...]
    transaction_hash: int
    block_number: int | None = None  # None while the block is pending
    block_hash: int | None = None


@dataclass(frozen=True)
class EventFilter:
    """Block range, emitter and first-key allowlist for an event query."""

    from_block: int
    to_block: int
    address: int
    keys: tuple[tuple[int, ...], ...] = ()


@dataclass(frozen=True)
class EventsPage:
    """One page of an event query plus the token for the next page."""

    events: list[RawEvent] = field(default_factory=list)
    continuation_token: str | None = None


@dataclass(frozen=True)
class MintEvent:
    """Tokens minted to ``to`` on the Starknet side (Mint event)."""

    to: str  # short-string identity from keys[1]
    value: int  # u64


@dataclass(frozen=True)
class BurnEvent:
    """Tokens burned by ``sender`` for a Bitcoin-side withdrawal (Burn event)."""

    sender: str  # short-string identity from keys[1]
    btc_addr: str
    fee_rate: int  # u32, sat/vB
    value: int  # u64
    operator_id: int  # u32


BridgeEvent = Union[MintEvent, BurnEvent]
