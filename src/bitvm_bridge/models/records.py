"""Transaction status results and persisted event records."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FinalityStatus(str, Enum):
    RECEIVED = "RECEIVED"
    ACCEPTED_ON_L2 = "ACCEPTED_ON_L2"
    REJECTED = "REJECTED"


class ExecutionStatus(str, Enum):
    SUCCEEDED = "SUCCEEDED"
    REVERTED = "REVERTED"


@dataclass(frozen=True)
class TransactionStatus:
    """Received | AcceptedOnL2(Succeeded | Reverted{reason}) | Rejected{reason}."""

    finality: FinalityStatus
    execution: ExecutionStatus | None = None
    reason: str | None = None

    @property
    def succeeded(self) -> bool:
        return (
            self.finality == FinalityStatus.ACCEPTED_ON_L2
            and self.execution == ExecutionStatus.SUCCEEDED
        )

    def __str__(self) -> str:
        if self.finality == FinalityStatus.ACCEPTED_ON_L2 and self.execution:
            text = f"{self.finality.value} ({self.execution.value})"
        else:
            text = self.finality.value
        if self.reason:
            text += f": {self.reason}"
        return text


@dataclass(frozen=True)
class TransactionReceipt:
    """Execution outcome from starknet_getTransactionReceipt."""

    transaction_hash: str
    execution: ExecutionStatus
    block_number: int | None = None
    revert_reason: str | None = None


@dataclass
class EventRecord:
    """A bridge event as persisted in the event store."""

    id: int
    kind: str  # "mint" | "burn"
    block_number: int
    block_timestamp: int
    tx_hash: str
    event_index: int  # position within the transaction
    account: str  # mint recipient or burn sender
    value: int
    btc_addr: str | None = None
    fee_rate: int | None = None
    operator_id: int | None = None
    recorded_at: str = ""
