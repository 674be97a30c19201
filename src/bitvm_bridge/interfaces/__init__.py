"""Protocol interfaces for all bitvm_bridge components."""

from bitvm_bridge.interfaces.handler import EventHandler
from bitvm_bridge.interfaces.ledger import ContractReader, EventSource
from bitvm_bridge.interfaces.submitter import CallSubmitter
from bitvm_bridge.interfaces.store import EventStore

__all__ = [
    "EventHandler",
    "ContractReader", "EventSource",
    "CallSubmitter",
    "EventStore",
]
