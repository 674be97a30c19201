"""Mint calldata encoding from Bitcoin deposit contexts."""

from __future__ import annotations

import pytest

from bitvm_bridge.errors import DecodeInputError, EncodeError, InvalidAddress, InvalidHex
from bitvm_bridge.models.proof import DepositContext
from bitvm_bridge.starknet.codec import (
    build_burn_calldata,
    build_mint_calldata,
    decode_mint_calldata,
    merkle_hash_bytes,
    peg_from_context,
)
from bitvm_bridge.starknet.felt import U128_MAX, parse_address

from tests.factories import ACCOUNT_ADDRESS, deposit_context_dict, make_deposit_context

ONE_BE = b"\x00" * 31 + b"\x01"
ONE_LE = b"\x01" + b"\x00" * 31


def _u256(value: int) -> list[int]:
    return [value & U128_MAX, value >> 128]


# ── Layout ────────────────────────────────────────────────


def test_single_deposit_layout():
    ctx = make_deposit_context()
    calldata = build_mint_calldata([ctx])

    expected = [1, parse_address(ACCOUNT_ADDRESS), 100_000, 850_000]
    expected += [80, *range(80)]
    expected += _u256(int.from_bytes(bytes(range(32)), "big"))
    expected += [3]
    expected += [3]
    for h in ctx.merkle_proof:
        expected += _u256(int.from_bytes(h, "little"))
    expected += [5, 0x02, 0x00, 0x00, 0x00, 0x01]
    expected += [1]
    expected += _u256(int.from_bytes(bytes(range(32, 64)), "big"))

    assert calldata == expected


def test_tx_id_split_into_low_and_high_halves():
    calldata = build_mint_calldata([make_deposit_context()])
    tx_id_at = 4 + 1 + 80
    low, high = calldata[tx_id_at:tx_id_at + 2]
    assert high == int.from_bytes(bytes(range(16)), "big")
    assert low == int.from_bytes(bytes(range(16, 32)), "big")


def test_hash_byte_order():
    ctx = make_deposit_context(
        block_header=b"",
        tx_id=ONE_BE,
        merkle_proof=[ONE_LE],
        raw_tx=b"",
        dest_script_hash=ONE_LE,
    )
    calldata = build_mint_calldata([ctx])
    # [len, to, amount, height, hdr_len=0, tx_id(2), tx_index, proof_len, proof(2), raw_len=0, out_ix, dsh(2)]
    assert calldata[5:7] == [1, 0]
    assert calldata[8:11] == [1, 1, 0]
    # Read big-endian, the lone 0x01 lands in the top byte of the high half
    assert calldata[13:15] == [0, 1 << 120]


def test_empty_input_encodes_empty_array():
    assert build_mint_calldata([]) == [0]


def test_empty_merkle_proof():
    calldata = build_mint_calldata([make_deposit_context(merkle_proof=[])])
    pegs = decode_mint_calldata(calldata)
    assert pegs[0].inclusion_proof.merkle_proof == ()


def test_deposits_encoded_in_input_order():
    contexts = [make_deposit_context(amount=a) for a in (11, 22, 33)]
    calldata = build_mint_calldata(contexts)
    assert calldata[0] == 3
    assert [p.value for p in decode_mint_calldata(calldata)] == [11, 22, 33]


def test_calldata_length():
    ctx = make_deposit_context()
    per_peg = 1 + 1 + 1 + (1 + 80) + 2 + 1 + (1 + 2 * 3) + (1 + 5) + 1 + 2
    assert len(build_mint_calldata([ctx, ctx])) == 1 + 2 * per_peg


def test_decode_recovers_deposit_fields():
    ctx = make_deposit_context()
    (peg,) = decode_mint_calldata(build_mint_calldata([ctx]))
    assert peg == peg_from_context(ctx)
    assert peg.inclusion_proof.block_header == ctx.block_header
    assert peg.inclusion_proof.raw_tx == ctx.raw_tx
    assert peg.inclusion_proof.tx_id.to_bytes(32, "big") == ctx.tx_id
    assert [merkle_hash_bytes(h) for h in peg.inclusion_proof.merkle_proof] == ctx.merkle_proof
    assert peg.dest_script_hash.to_bytes(32, "big") == ctx.dest_script_hash


def test_decode_rejects_trailing_words():
    calldata = build_mint_calldata([make_deposit_context()])
    with pytest.raises(ValueError):
        decode_mint_calldata(calldata + [0])
    with pytest.raises(ValueError):
        decode_mint_calldata(calldata[:-1])


# ── Errors ────────────────────────────────────────────────


def test_block_height_must_fit_u32():
    with pytest.raises(EncodeError):
        build_mint_calldata([make_deposit_context(block_height=1 << 32)])


def test_amount_must_fit_u64():
    with pytest.raises(EncodeError):
        build_mint_calldata([make_deposit_context(amount=1 << 64)])


def test_short_hash_rejected():
    with pytest.raises(DecodeInputError):
        build_mint_calldata([make_deposit_context(tx_id=b"\x00" * 31)])
    with pytest.raises(DecodeInputError):
        build_mint_calldata([make_deposit_context(merkle_proof=[b"\x00" * 33])])


def test_invalid_destination_address():
    with pytest.raises(InvalidAddress):
        build_mint_calldata([make_deposit_context(to="0xnothex")])


def test_one_bad_context_fails_the_whole_batch():
    contexts = [make_deposit_context(), make_deposit_context(tx_index=-1)]
    with pytest.raises(EncodeError):
        build_mint_calldata(contexts)


# ── Deposit contexts from JSON ────────────────────────────


def test_deposit_context_from_dict():
    assert DepositContext.from_dict(deposit_context_dict()) == make_deposit_context()


def test_deposit_context_from_dict_defaults():
    doc = deposit_context_dict()
    del doc["merkle_proof"]
    del doc["output_index"]
    ctx = DepositContext.from_dict(doc)
    assert ctx.merkle_proof == []
    assert ctx.output_index == 0


def test_deposit_context_missing_field():
    doc = deposit_context_dict()
    del doc["tx_id"]
    with pytest.raises(DecodeInputError, match="tx_id"):
        DepositContext.from_dict(doc)


def test_deposit_context_bad_hex():
    with pytest.raises(InvalidHex):
        DepositContext.from_dict(deposit_context_dict(raw_tx="0xqq"))
    with pytest.raises(InvalidHex):
        DepositContext.from_dict(deposit_context_dict(tx_id="00" * 31))


def test_deposit_context_bad_number():
    with pytest.raises(DecodeInputError):
        DepositContext.from_dict(deposit_context_dict(amount="lots"))


# ── Burn ──────────────────────────────────────────────────


def test_burn_calldata():
    assert build_burn_calldata("abc", 5, 1000, 2) == [0, 0x616263, 3, 5, 1000, 2]


def test_burn_calldata_range_errors():
    with pytest.raises(EncodeError):
        build_burn_calldata("abc", 1 << 32, 1000, 2)
    with pytest.raises(EncodeError):
        build_burn_calldata("abc", 5, -1, 2)
