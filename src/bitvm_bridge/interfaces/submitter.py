"""CallSubmitter protocol - signs and sends a single contract invocation."""

from __future__ import annotations

from typing import Protocol, Sequence


class CallSubmitter(Protocol):
    """Builds, signs and submits one invoke transaction."""

    async def submit_call(
        self,
        contract_address: int,
        selector: int,
        calldata: Sequence[int],
        nonce: int,
    ) -> str:
        """Return the transaction hash as a 0x-prefixed hex string."""
        ...
