"""Starknet network identifiers."""

from __future__ import annotations

from enum import Enum

from bitvm_bridge.starknet.felt import encode_short_string


class StarknetChainId(str, Enum):
    """Networks the bridge is deployed on."""

    SEPOLIA = "sepolia"
    MAINNET = "mainnet"

    def to_felt(self) -> int:
        return encode_short_string(_CHAIN_ID_STRINGS[self])


_CHAIN_ID_STRINGS = {
    StarknetChainId.SEPOLIA: "SN_SEPOLIA",
    StarknetChainId.MAINNET: "SN_MAIN",
}
