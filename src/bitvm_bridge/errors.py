"""Exception hierarchy for bridge encoding, event decoding and RPC access."""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for all bitvm_bridge errors."""


# ── Encoding (outbound calldata) ───────────────────────────


class EncodeError(BridgeError):
    """A value cannot be encoded into contract calldata."""


class DecodeInputError(EncodeError):
    """Malformed hex or identity string supplied by the application."""


class InvalidAddress(DecodeInputError):
    """Destination identity is not a valid Starknet address."""


class InvalidHex(DecodeInputError):
    """Hash or byte payload is not valid hex of the expected width."""


# ── Event decoding ─────────────────────────────────────────


class DecodeError(BridgeError):
    """A raw emitted event could not be turned into a typed record."""


class UnsupportedEventKind(DecodeError):
    """First event key does not match any known selector. Skip and continue."""

    def __init__(self, selector: int) -> None:
        super().__init__(f"unsupported event selector {selector:#x}")
        self.selector = selector


class MalformedEvent(DecodeError):
    """Missing keys or short/invalid data for a recognized event kind."""


# ── Ledger RPC ─────────────────────────────────────────────


class RpcFailure(BridgeError):
    """Transport, protocol or deserialization failure talking to the node."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message if code is None else f"RPC error {code}: {message}")
        self.code = code
        self.message = message


class TransactionNotFound(RpcFailure):
    """The node does not know the requested transaction hash (code 29)."""


# ── Handler ────────────────────────────────────────────────


class HandlerFailure(BridgeError):
    """An event handler callback raised while processing one event."""

    def __init__(self, kind: str, tx_hash: str, cause: BaseException) -> None:
        super().__init__(f"{kind} handler failed for tx {tx_hash}: {cause}")
        self.kind = kind
        self.tx_hash = tx_hash
        self.cause = cause
