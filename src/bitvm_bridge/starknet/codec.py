"""Mint/burn calldata codec.

Turns Bitcoin deposit contexts into the felt sequence the bridge's
``mint(pegs: Array<Peg>)`` entry point expects, and back.

Byte order: the transaction id and destination script hash are read as
big-endian u256, Merkle sibling hashes as little-endian u256.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from bitvm_bridge.errors import DecodeInputError, EncodeError
from bitvm_bridge.models.proof import HASH_LEN, BtcTxProof, DepositContext, Peg
from bitvm_bridge.starknet.felt import (
    FeltReader,
    U32_MAX,
    encode_array,
    encode_byte_array,
    encode_bytes,
    encode_u32,
    encode_u64,
    encode_u256,
    parse_address,
)

log = logging.getLogger(__name__)


def _hash_to_int(value: bytes, byteorder: str, name: str) -> int:
    if len(value) != HASH_LEN:
        raise DecodeInputError(f"{name} must be {HASH_LEN} bytes, got {len(value)}")
    return int.from_bytes(value, byteorder)


def peg_from_context(ctx: DepositContext) -> Peg:
    """Convert one deposit context into its calldata record."""
    if not 0 <= ctx.block_height <= U32_MAX:
        raise EncodeError(f"block height {ctx.block_height} does not fit u32")

    merkle_proof = tuple(
        _hash_to_int(h, "little", f"merkle_proof[{i}]") for i, h in enumerate(ctx.merkle_proof)
    )
    proof = BtcTxProof(
        block_header=bytes(ctx.block_header),
        tx_id=_hash_to_int(ctx.tx_id, "big", "tx_id"),
        tx_index=ctx.tx_index,
        merkle_proof=merkle_proof,
        raw_tx=bytes(ctx.raw_tx),
    )
    return Peg(
        to=parse_address(ctx.to),
        value=ctx.amount,
        block_num=ctx.block_height,
        inclusion_proof=proof,
        tx_out_ix=ctx.output_index,
        dest_script_hash=_hash_to_int(ctx.dest_script_hash, "big", "dest_script_hash"),
    )


def encode_peg(peg: Peg) -> list[int]:
    proof = peg.inclusion_proof
    try:
        return [
            peg.to,
            *encode_u64(peg.value),
            *encode_u32(peg.block_num),
            *encode_bytes(proof.block_header),
            *encode_u256(proof.tx_id),
            *encode_u32(proof.tx_index),
            *encode_array(proof.merkle_proof, encode_u256),
            *encode_bytes(proof.raw_tx),
            *encode_u32(peg.tx_out_ix),
            *encode_u256(peg.dest_script_hash),
        ]
    except ValueError as exc:
        raise EncodeError(str(exc)) from None


def build_mint_calldata(contexts: Iterable[DepositContext]) -> list[int]:
    """Encode deposits as ``Array<Peg>`` calldata, one record per context in input order."""
    pegs = [peg_from_context(ctx) for ctx in contexts]
    calldata = encode_array(pegs, encode_peg)
    log.debug("Encoded %d peg(s) into %d calldata words", len(pegs), len(calldata))
    return calldata


def _read_peg(reader: FeltReader) -> Peg:
    to = reader.read_felt()
    value = reader.read_u64()
    block_num = reader.read_u32()
    proof = BtcTxProof(
        block_header=reader.read_bytes(),
        tx_id=reader.read_u256(),
        tx_index=reader.read_u32(),
        merkle_proof=tuple(reader.read_array(FeltReader.read_u256)),
        raw_tx=reader.read_bytes(),
    )
    return Peg(
        to=to,
        value=value,
        block_num=block_num,
        inclusion_proof=proof,
        tx_out_ix=reader.read_u32(),
        dest_script_hash=reader.read_u256(),
    )


def decode_mint_calldata(calldata: Sequence[int]) -> list[Peg]:
    """Inverse of build_mint_calldata. Raises ValueError on malformed input."""
    reader = FeltReader(calldata)
    pegs = reader.read_array(_read_peg)
    if reader.remaining:
        raise ValueError(f"{reader.remaining} trailing calldata word(s)")
    return pegs


def merkle_hash_bytes(value: int) -> bytes:
    """Recover the original 32-byte Merkle sibling hash from its u256."""
    return value.to_bytes(HASH_LEN, "little")


def build_burn_calldata(
    btc_address: str, fee_rate: int, amount: int, operator_id: int,
) -> list[int]:
    """Encode ``burn(btc_addr: ByteArray, fee_rate: u32, amount: u64, operator_id: u32)``."""
    try:
        return [
            *encode_byte_array(btc_address),
            *encode_u32(fee_rate),
            *encode_u64(amount),
            *encode_u32(operator_id),
        ]
    except ValueError as exc:
        raise EncodeError(str(exc)) from None
