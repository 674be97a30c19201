"""Bridge event decoder - maps raw emitted events to typed Mint/Burn records."""

from __future__ import annotations

from typing import Callable

from bitvm_bridge.errors import MalformedEvent, UnsupportedEventKind
from bitvm_bridge.models.events import BridgeEvent, BurnEvent, MintEvent, RawEvent
from bitvm_bridge.starknet.felt import FeltReader, decode_short_string, felt_to_u64
from bitvm_bridge.starknet.selectors import BURN_EVENT_SELECTOR, MINT_EVENT_SELECTOR


def _indexed_identity(raw: RawEvent, kind: str) -> str:
    """keys[1] carries the indexed account as a Cairo short string."""
    if len(raw.keys) < 2:
        raise MalformedEvent(f"{kind} event missing indexed key")
    try:
        return decode_short_string(raw.keys[1])
    except ValueError as exc:
        raise MalformedEvent(f"{kind} event has invalid indexed key: {exc}") from None


def _decode_mint(raw: RawEvent) -> MintEvent:
    to = _indexed_identity(raw, "Mint")
    if not raw.data:
        raise MalformedEvent("Mint event has no data")
    # Amount is the trailing word; only its low 64 bits are meaningful
    return MintEvent(to=to, value=felt_to_u64(raw.data[-1]))


def _decode_burn(raw: RawEvent) -> BurnEvent:
    sender = _indexed_identity(raw, "Burn")
    reader = FeltReader(raw.data)
    try:
        btc_addr = reader.read_byte_array()
        fee_rate = reader.read_u32()
        value = reader.read_u64()
        operator_id = reader.read_u32()
    except ValueError as exc:
        raise MalformedEvent(f"Burn event data invalid: {exc}") from None
    return BurnEvent(
        sender=sender,
        btc_addr=btc_addr,
        fee_rate=fee_rate,
        value=value,
        operator_id=operator_id,
    )


EVENT_DECODERS: dict[int, Callable[[RawEvent], BridgeEvent]] = {
    MINT_EVENT_SELECTOR: _decode_mint,
    BURN_EVENT_SELECTOR: _decode_burn,
}

# First-key allowlist for event queries
EVENT_SELECTORS: tuple[int, ...] = tuple(EVENT_DECODERS)


def decode_event(raw: RawEvent) -> BridgeEvent:
    """Identify and decode a raw event.

    Raises MalformedEvent when the key list is empty or the payload does not
    match the kind's layout, UnsupportedEventKind for unknown selectors.
    """
    if not raw.keys:
        raise MalformedEvent("event has no keys")
    decoder = EVENT_DECODERS.get(raw.keys[0])
    if decoder is None:
        raise UnsupportedEventKind(raw.keys[0])
    return decoder(raw)
