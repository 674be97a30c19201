"""Bridge client - mint/burn submission and bridge state queries."""

from __future__ import annotations

import logging
from typing import Sequence

from bitvm_bridge.errors import BridgeError, RpcFailure
from bitvm_bridge.interfaces.ledger import ContractReader
from bitvm_bridge.interfaces.submitter import CallSubmitter
from bitvm_bridge.models.proof import DepositContext
from bitvm_bridge.models.records import TransactionStatus
from bitvm_bridge.starknet.codec import build_burn_calldata, build_mint_calldata
from bitvm_bridge.starknet.felt import felt_to_u64, parse_address
from bitvm_bridge.starknet.selectors import (
    BURN_FUNCTION_SELECTOR,
    GET_LATEST_BLOCK_HEIGHT_SELECTOR,
    GET_MIN_CONFIRMATIONS_SELECTOR,
    MINT_FUNCTION_SELECTOR,
)

log = logging.getLogger(__name__)


class BitvmBridgeClient:
    """Client for the bitvm bridge and btc light client contracts.

    Encodes calldata and looks up the account nonce; signing and sending
    are delegated to the injected CallSubmitter.
    """

    def __init__(
        self,
        reader: ContractReader,
        submitter: CallSubmitter | None = None,
        *,
        bridge_contract: str,
        light_client_contract: str,
        account_address: str | None = None,
    ) -> None:
        self._reader = reader
        self._submitter = submitter
        self._bridge_contract = parse_address(bridge_contract)
        self._light_client_contract = parse_address(light_client_contract)
        self._account_address = parse_address(account_address) if account_address else None

    async def _submit(self, selector: int, calldata: list[int]) -> str:
        if self._submitter is None or self._account_address is None:
            raise BridgeError("submitting transactions needs a submitter and an account address")
        nonce = await self._reader.get_nonce(self._account_address)
        log.debug("Account nonce %d", nonce)
        return await self._submitter.submit_call(
            self._bridge_contract, selector, calldata, nonce,
        )

    async def mint_tokens(self, contexts: Sequence[DepositContext]) -> str:
        """Submit ``mint`` for a batch of proven Bitcoin deposits."""
        calldata = build_mint_calldata(contexts)
        log.info("Submitting mint for %d deposit(s)", len(contexts))
        tx_hash = await self._submit(MINT_FUNCTION_SELECTOR, calldata)
        log.info("mint submitted: tx=%s", tx_hash)
        return tx_hash

    async def burn_tokens(
        self, btc_address: str, fee_rate: int, amount: int, operator_id: int,
    ) -> str:
        """Submit ``burn`` to withdraw ``amount`` to ``btc_address``."""
        calldata = build_burn_calldata(btc_address, fee_rate, amount, operator_id)
        log.info(
            "Submitting burn of %d to %s (fee_rate=%d, operator=%d)",
            amount, btc_address, fee_rate, operator_id,
        )
        tx_hash = await self._submit(BURN_FUNCTION_SELECTOR, calldata)
        log.info("burn submitted: tx=%s", tx_hash)
        return tx_hash

    async def get_transaction_status(self, tx_hash: str) -> TransactionStatus:
        return await self._reader.get_transaction_status(tx_hash)

    async def query_latest_block_height(self) -> int:
        """Latest Bitcoin block height known to the light client."""
        return await self._query_u64(
            self._light_client_contract, GET_LATEST_BLOCK_HEIGHT_SELECTOR, "block height",
        )

    async def query_min_confirmations(self) -> int:
        """Bitcoin confirmations the bridge requires before minting."""
        return await self._query_u64(
            self._bridge_contract, GET_MIN_CONFIRMATIONS_SELECTOR, "min confirmations",
        )

    async def _query_u64(self, contract: int, selector: int, what: str) -> int:
        result = await self._reader.call(contract, selector, [])
        if not result:
            raise RpcFailure(f"No {what} found")
        return felt_to_u64(result[0])
