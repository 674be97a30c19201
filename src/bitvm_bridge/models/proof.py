"""Bitcoin deposit context and the mint calldata records built from it."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from bitvm_bridge.errors import DecodeInputError
from bitvm_bridge.starknet.felt import parse_hex_bytes

HASH_LEN = 32


@dataclass
class DepositContext:
    """Application-level description of one Bitcoin-side deposit."""

    to: str  # Starknet address, hex
    amount: int  # satoshis
    block_height: int
    block_header: bytes
    tx_id: bytes  # 32 bytes
    tx_index: int
    raw_tx: bytes
    merkle_proof: list[bytes] = field(default_factory=list)  # 32-byte sibling hashes
    output_index: int = 0
    dest_script_hash: bytes = b"\x00" * HASH_LEN

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "DepositContext":
        """Build from a JSON-style mapping with hex-encoded byte fields."""
        try:
            return cls(
                to=str(raw["to"]),
                amount=int(raw["amount"]),
                block_height=int(raw["block_height"]),
                block_header=parse_hex_bytes(raw["block_header"]),
                tx_id=parse_hex_bytes(raw["tx_id"], HASH_LEN),
                tx_index=int(raw["tx_index"]),
                raw_tx=parse_hex_bytes(raw["raw_tx"]),
                merkle_proof=[parse_hex_bytes(h, HASH_LEN) for h in raw.get("merkle_proof", [])],
                output_index=int(raw.get("output_index", 0)),
                dest_script_hash=parse_hex_bytes(raw["dest_script_hash"], HASH_LEN),
            )
        except KeyError as exc:
            raise DecodeInputError(f"deposit context missing field {exc}") from None
        except (TypeError, ValueError) as exc:
            raise DecodeInputError(f"invalid deposit context: {exc}") from None


@dataclass(frozen=True)
class BtcTxProof:
    """Inclusion proof of a Bitcoin transaction in a block."""

    block_header: bytes
    tx_id: int  # u256
    tx_index: int  # u32
    merkle_proof: tuple[int, ...]  # u256 each
    raw_tx: bytes


@dataclass(frozen=True)
class Peg:
    """One ``mint`` argument record, in contract struct order."""

    to: int  # felt address
    value: int  # u64
    block_num: int  # u32
    inclusion_proof: BtcTxProof
    tx_out_ix: int  # u32
    dest_script_hash: int  # u256
