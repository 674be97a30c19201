"""Data models for the bitvm_bridge client."""

from bitvm_bridge.models.events import (
    BridgeEvent,
    BurnEvent,
    EventFilter,
    EventsPage,
    MintEvent,
    RawEvent,
)
from bitvm_bridge.models.proof import BtcTxProof, DepositContext, Peg
from bitvm_bridge.models.records import (
    EventRecord,
    ExecutionStatus,
    FinalityStatus,
    TransactionReceipt,
    TransactionStatus,
)
from bitvm_bridge.models.config import BridgeConfig

__all__ = [
    "BridgeEvent", "BurnEvent", "EventFilter", "EventsPage", "MintEvent", "RawEvent",
    "BtcTxProof", "DepositContext", "Peg",
    "EventRecord", "ExecutionStatus", "FinalityStatus", "TransactionReceipt",
    "TransactionStatus",
    "BridgeConfig",
]
