"""Starknet field element helpers and Cairo serde primitives.

Felts are plain Python ints in ``[0, FIELD_PRIME)``. On the JSON-RPC wire
they travel as ``0x``-prefixed hex strings.
"""

from __future__ import annotations

from typing import Callable, Sequence, TypeVar

from bitvm_bridge.errors import InvalidAddress, InvalidHex

FIELD_PRIME = 2**251 + 17 * 2**192 + 1

U32_MAX = 2**32 - 1
U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1
U256_MAX = 2**256 - 1

# Cairo ByteArray packs 31 bytes per word
BYTES_PER_WORD = 31
SHORT_STRING_MAX_LEN = 31

T = TypeVar("T")


def _parse_hex_int(text: str) -> int:
    if not isinstance(text, str):
        raise ValueError(f"expected hex string, got {type(text).__name__}")
    s = text.strip()
    if s[:2].lower() == "0x":
        s = s[2:]
    if not s:
        raise ValueError(f"empty hex string: {text!r}")
    try:
        value = int(s, 16)
    except ValueError:
        raise ValueError(f"not a hex string: {text!r}") from None
    if value >= FIELD_PRIME:
        raise ValueError(f"value out of felt range: {text!r}")
    return value


def parse_felt(text: str) -> int:
    """Parse a hex string into a felt. Raises InvalidHex."""
    try:
        return _parse_hex_int(text)
    except ValueError as exc:
        raise InvalidHex(str(exc)) from None


def parse_address(text: str) -> int:
    """Parse a contract/account address. Raises InvalidAddress."""
    try:
        return _parse_hex_int(text)
    except ValueError as exc:
        raise InvalidAddress(str(exc)) from None


def parse_hex_bytes(text: str, length: int | None = None) -> bytes:
    """Decode a hex string (optional ``0x``) to bytes, optionally of a fixed length."""
    if not isinstance(text, str):
        raise InvalidHex(f"expected hex string, got {type(text).__name__}")
    s = text.strip()
    if s[:2].lower() == "0x":
        s = s[2:]
    try:
        raw = bytes.fromhex(s)
    except ValueError:
        raise InvalidHex(f"not a hex string: {text!r}") from None
    if length is not None and len(raw) != length:
        raise InvalidHex(f"expected {length} bytes, got {len(raw)}: {text!r}")
    return raw


def to_hex(value: int) -> str:
    return f"{value:#x}"


def felt_to_u64(value: int) -> int:
    """Low 8 bytes of the felt's 32-byte big-endian form.

    Precondition: the contract emitted a u64. Wider values are truncated,
    not rejected.
    """
    return value & U64_MAX


# ── Short strings ──────────────────────────────────────────


def encode_short_string(text: str) -> int:
    if len(text) > SHORT_STRING_MAX_LEN:
        raise ValueError(f"short string longer than {SHORT_STRING_MAX_LEN} chars: {text!r}")
    if not text.isascii():
        raise ValueError(f"short string must be ASCII: {text!r}")
    return int.from_bytes(text.encode("ascii"), "big")


def decode_short_string(value: int) -> str:
    """Decode a felt holding a Cairo short string (leading zero bytes stripped)."""
    if value < 0 or value >= FIELD_PRIME:
        raise ValueError(f"value out of felt range: {value:#x}")
    raw = value.to_bytes(32, "big")
    if raw[0] != 0:
        raise ValueError(f"short string longer than {SHORT_STRING_MAX_LEN} bytes: {value:#x}")
    raw = raw.lstrip(b"\x00")
    if any(b > 0x7F for b in raw):
        raise ValueError(f"non-ASCII character in short string: {value:#x}")
    return raw.decode("ascii")


# ── Encoders ───────────────────────────────────────────────


def _check_range(value: int, upper: int, name: str) -> int:
    if not isinstance(value, int) or value < 0 or value > upper:
        raise ValueError(f"{name} out of range: {value!r}")
    return value


def encode_u32(value: int) -> list[int]:
    return [_check_range(value, U32_MAX, "u32")]


def encode_u64(value: int) -> list[int]:
    return [_check_range(value, U64_MAX, "u64")]


def encode_u256(value: int) -> list[int]:
    """u256 is two felts: low 128 bits first, then high 128 bits."""
    _check_range(value, U256_MAX, "u256")
    return [value & U128_MAX, value >> 128]


def encode_bytes(data: bytes) -> list[int]:
    """Array<u8>: length prefix, then one felt per byte."""
    return [len(data), *data]


def encode_array(items: Sequence[T], encode_item: Callable[[T], list[int]]) -> list[int]:
    out = [len(items)]
    for item in items:
        out.extend(encode_item(item))
    return out


def encode_byte_array(text: str) -> list[int]:
    """Cairo ByteArray: [n_full_words, *words, pending_word, pending_word_len]."""
    data = text.encode("utf-8")
    n_full = len(data) // BYTES_PER_WORD
    words = [
        int.from_bytes(data[i * BYTES_PER_WORD:(i + 1) * BYTES_PER_WORD], "big")
        for i in range(n_full)
    ]
    pending = data[n_full * BYTES_PER_WORD:]
    return [n_full, *words, int.from_bytes(pending, "big"), len(pending)]


# ── Reader ─────────────────────────────────────────────────


class FeltReader:
    """Sequential decoder over a list of felts.

    Every read raises ValueError when the data runs short or a value
    does not fit its declared Cairo type.
    """

    def __init__(self, data: Sequence[int]) -> None:
        self._data = list(data)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def read_felt(self) -> int:
        if self._pos >= len(self._data):
            raise ValueError(f"data exhausted at position {self._pos}")
        value = self._data[self._pos]
        self._pos += 1
        return value

    def read_u32(self) -> int:
        return _check_range(self.read_felt(), U32_MAX, "u32")

    def read_u64(self) -> int:
        return _check_range(self.read_felt(), U64_MAX, "u64")

    def read_u256(self) -> int:
        low = _check_range(self.read_felt(), U128_MAX, "u256.low")
        high = _check_range(self.read_felt(), U128_MAX, "u256.high")
        return (high << 128) | low

    def _read_len(self) -> int:
        length = self.read_felt()
        if length > self.remaining:
            raise ValueError(f"length prefix {length} exceeds remaining data {self.remaining}")
        return length

    def read_bytes(self) -> bytes:
        length = self._read_len()
        return bytes(_check_range(self.read_felt(), 0xFF, "u8") for _ in range(length))

    def read_array(self, read_item: Callable[["FeltReader"], T]) -> list[T]:
        length = self._read_len()
        return [read_item(self) for _ in range(length)]

    def read_byte_array(self) -> str:
        n_full = self._read_len()
        chunks = []
        for _ in range(n_full):
            word = self.read_felt()
            if word >= 2 ** (8 * BYTES_PER_WORD):
                raise ValueError(f"ByteArray word wider than {BYTES_PER_WORD} bytes")
            chunks.append(word.to_bytes(BYTES_PER_WORD, "big"))
        pending_word = self.read_felt()
        pending_len = self.read_felt()
        if pending_len >= BYTES_PER_WORD:
            raise ValueError(f"ByteArray pending length {pending_len} too large")
        try:
            chunks.append(pending_word.to_bytes(pending_len, "big"))
        except OverflowError:
            raise ValueError("ByteArray pending word wider than its length") from None
        try:
            return b"".join(chunks).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError(f"ByteArray is not valid UTF-8: {exc}") from None
