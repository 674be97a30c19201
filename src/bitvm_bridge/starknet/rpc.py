"""Starknet JSON-RPC client - async httpx transport for the ledger boundary."""

from __future__ import annotations

import itertools
import logging
from typing import Any, Sequence

import httpx

from bitvm_bridge.errors import RpcFailure, TransactionNotFound
from bitvm_bridge.models.events import EventFilter, EventsPage, RawEvent
from bitvm_bridge.models.records import (
    ExecutionStatus,
    FinalityStatus,
    TransactionReceipt,
    TransactionStatus,
)
from bitvm_bridge.starknet.felt import to_hex

log = logging.getLogger(__name__)

# starknet JSON-RPC error code for TXN_HASH_NOT_FOUND
_TXN_HASH_NOT_FOUND = 29


def _felt(value: Any) -> int:
    """Parse a hex felt from a node response."""
    if isinstance(value, int):
        return value
    try:
        return int(str(value), 16)
    except ValueError:
        raise RpcFailure(f"invalid felt in response: {value!r}") from None


def _block_id(block_number: int) -> dict:
    return {"block_number": block_number}


def _parse_event(raw: dict) -> RawEvent:
    try:
        return RawEvent(
            from_address=_felt(raw["from_address"]),
            keys=tuple(_felt(k) for k in raw.get("keys", [])),
            data=tuple(_felt(d) for d in raw.get("data", [])),
            transaction_hash=_felt(raw["transaction_hash"]),
            block_number=raw.get("block_number"),
            block_hash=_felt(raw["block_hash"]) if raw.get("block_hash") else None,
        )
    except (KeyError, TypeError) as exc:
        raise RpcFailure(f"malformed emitted event: {exc!r}") from None


def _parse_transaction_status(result: dict) -> TransactionStatus:
    finality = result.get("finality_status")
    execution = result.get("execution_status")
    reason = result.get("failure_reason")

    if finality == "REJECTED":
        return TransactionStatus(
            FinalityStatus.REJECTED, reason=reason or "Transaction rejected",
        )
    if finality in ("ACCEPTED_ON_L1", "ACCEPTED_ON_L2"):
        if execution is None:
            return TransactionStatus(FinalityStatus.RECEIVED)
        if execution == "SUCCEEDED":
            return TransactionStatus(FinalityStatus.ACCEPTED_ON_L2, ExecutionStatus.SUCCEEDED)
        if execution == "REVERTED":
            return TransactionStatus(
                FinalityStatus.ACCEPTED_ON_L2,
                ExecutionStatus.REVERTED,
                reason=reason or "Transaction reverted",
            )
        raise RpcFailure(f"Unknown execution status: {execution}")
    # RECEIVED, CANDIDATE, PRE_CONFIRMED, ...
    return TransactionStatus(FinalityStatus.RECEIVED)


class StarknetRpcClient:
    """Minimal Starknet JSON-RPC 2.0 client.

    Covers exactly what the bridge needs: chain tip, paginated event
    queries, block timestamps, nonces, view calls and transaction status.
    Every failure surfaces as RpcFailure.
    """

    def __init__(self, rpc_url: str, timeout: float = 30) -> None:
        self._rpc_url = rpc_url
        self._client = httpx.AsyncClient(timeout=httpx.Timeout(timeout, connect=10))
        self._ids = itertools.count(1)

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "StarknetRpcClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def request(self, method: str, params: Any = None) -> Any:
        """Send one JSON-RPC request and return its ``result``."""
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params if params is not None else [],
            "id": next(self._ids),
        }
        try:
            resp = await self._client.post(self._rpc_url, json=payload)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as exc:
            raise RpcFailure(f"{method}: HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise RpcFailure(f"{method}: {exc.__class__.__name__}: {exc}") from exc
        except ValueError as exc:
            raise RpcFailure(f"{method}: invalid JSON response: {exc}") from exc

        if not isinstance(body, dict):
            raise RpcFailure(f"{method}: unexpected response {body!r}")

        if "error" in body:
            error = body["error"] or {}
            code = error.get("code")
            message = error.get("message", "unknown error")
            if code == _TXN_HASH_NOT_FOUND:
                raise TransactionNotFound(f"Transaction hash not found: {message}", code)
            raise RpcFailure(message, code)

        if "result" not in body:
            raise RpcFailure(f"{method}: response has neither result nor error")
        return body["result"]

    # ── Chain state ────────────────────────────────────────

    async def block_number(self) -> int:
        result = await self.request("starknet_blockNumber")
        if not isinstance(result, int):
            raise RpcFailure(f"starknet_blockNumber: unexpected result {result!r}")
        return result

    async def chain_id(self) -> int:
        return _felt(await self.request("starknet_chainId"))

    async def get_block_timestamp(self, block_number: int) -> int:
        result = await self.request(
            "starknet_getBlockWithTxHashes", {"block_id": _block_id(block_number)},
        )
        try:
            return int(result["timestamp"])
        except (KeyError, TypeError, ValueError):
            raise RpcFailure(f"block {block_number} has no timestamp") from None

    # ── Events ─────────────────────────────────────────────

    async def get_events(
        self,
        event_filter: EventFilter,
        continuation_token: str | None,
        chunk_size: int,
    ) -> EventsPage:
        flt: dict[str, Any] = {
            "from_block": _block_id(event_filter.from_block),
            "to_block": _block_id(event_filter.to_block),
            "address": to_hex(event_filter.address),
            "keys": [[to_hex(k) for k in group] for group in event_filter.keys],
            "chunk_size": chunk_size,
        }
        if continuation_token is not None:
            flt["continuation_token"] = continuation_token

        result = await self.request("starknet_getEvents", {"filter": flt})
        if not isinstance(result, dict):
            raise RpcFailure(f"starknet_getEvents: unexpected result {result!r}")
        events = [_parse_event(e) for e in result.get("events", [])]
        log.debug(
            "getEvents [%d, %d] returned %d event(s)%s",
            event_filter.from_block,
            event_filter.to_block,
            len(events),
            " (more pages)" if result.get("continuation_token") else "",
        )
        return EventsPage(events=events, continuation_token=result.get("continuation_token"))

    # ── Accounts and contracts ─────────────────────────────

    async def get_nonce(self, account: int) -> int:
        result = await self.request(
            "starknet_getNonce",
            {"block_id": "pending", "contract_address": to_hex(account)},
        )
        return _felt(result)

    async def call(
        self, contract_address: int, selector: int, calldata: Sequence[int] = (),
    ) -> list[int]:
        result = await self.request(
            "starknet_call",
            {
                "request": {
                    "contract_address": to_hex(contract_address),
                    "entry_point_selector": to_hex(selector),
                    "calldata": [to_hex(c) for c in calldata],
                },
                "block_id": "latest",
            },
        )
        if not isinstance(result, list):
            raise RpcFailure(f"starknet_call: unexpected result {result!r}")
        return [_felt(v) for v in result]

    # ── Transactions ───────────────────────────────────────

    async def get_transaction_status(self, tx_hash: str) -> TransactionStatus:
        result = await self.request(
            "starknet_getTransactionStatus", {"transaction_hash": tx_hash},
        )
        if not isinstance(result, dict) or "finality_status" not in result:
            raise RpcFailure(f"starknet_getTransactionStatus: unexpected result {result!r}")
        return _parse_transaction_status(result)

    async def get_transaction(self, tx_hash: str) -> dict:
        """Return the raw transaction object for ``tx_hash``."""
        result = await self.request(
            "starknet_getTransactionByHash", {"transaction_hash": tx_hash},
        )
        if not isinstance(result, dict):
            raise RpcFailure(f"starknet_getTransactionByHash: unexpected result {result!r}")
        return result

    async def get_transaction_receipt(self, tx_hash: str) -> TransactionReceipt:
        result = await self.request(
            "starknet_getTransactionReceipt", {"transaction_hash": tx_hash},
        )
        try:
            execution = ExecutionStatus(result["execution_status"])
        except (KeyError, TypeError, ValueError):
            raise RpcFailure(f"receipt for {tx_hash} has no valid execution_status") from None
        return TransactionReceipt(
            transaction_hash=result.get("transaction_hash", tx_hash),
            execution=execution,
            block_number=result.get("block_number"),
            revert_reason=result.get("revert_reason"),
        )
