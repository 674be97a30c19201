"""Entry point and event selectors of the bridge contract."""

from __future__ import annotations

from Crypto.Hash import keccak

_MASK_250 = 2**250 - 1


def starknet_keccak(data: bytes) -> int:
    """Keccak-256 truncated to the low 250 bits."""
    k = keccak.new(digest_bits=256)
    k.update(data)
    return int.from_bytes(k.digest(), "big") & _MASK_250


def get_selector_from_name(name: str) -> int:
    return starknet_keccak(name.encode("ascii"))


# starknet_keccak("mint")
MINT_FUNCTION_SELECTOR = 0x2F0B3C5710379609EB5495F1ECD348CB28167711B73609FE565A72734550354

# starknet_keccak("burn")
BURN_FUNCTION_SELECTOR = 0x3E8CFD4725C1E28FA4A6E3E468B4FCF75367166B850AC5F04E33EC843E82C1

# Mint event key
MINT_EVENT_SELECTOR = 0x34E55C1CD55F1338241B50D352F0E91C7E4FFAD0E4271D64EB347589EBDFD16

# Burn event key
BURN_EVENT_SELECTOR = 0x243E1DE00E8A6BC1DFA3E950E6ADE24C52E4A25DE4DEE7FB5AFFE918AD1E744

GET_LATEST_BLOCK_HEIGHT_SELECTOR = get_selector_from_name("get_latest_block_height")
GET_MIN_CONFIRMATIONS_SELECTOR = get_selector_from_name("get_min_confirmations")
