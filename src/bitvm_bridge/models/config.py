"""Configuration model for the bridge watcher and client."""

from __future__ import annotations

from dataclasses import dataclass

CONFIRMED_BLOCKS = 6
BLOCKS_PER_BATCH = 100
CHUNK_SIZE = 100


@dataclass
class BridgeConfig:
    """Complete bridge configuration."""

    # Daemon
    idle_interval: float = 10  # seconds, caught up and no progress
    active_interval: float = 2  # seconds, caught up after progress
    error_backoff: float = 5  # seconds
    log_level: str = "info"

    # Starknet
    network: str = "sepolia"
    rpc_url: str = "https://starknet-sepolia.public.blastapi.io/rpc/v0_8"
    bridge_contract: str = ""  # bitvm bridge contract address
    light_client_contract: str = ""  # btc light client contract address
    account_address: str = ""  # submitting account, for nonce lookups
    request_timeout: float = 30  # seconds

    # Monitor
    start_block: int = 0  # last processed height when no cursor is stored
    confirmations: int = CONFIRMED_BLOCKS
    blocks_per_batch: int = BLOCKS_PER_BATCH
    chunk_size: int = CHUNK_SIZE

    # Storage
    db_path: str = "~/.bitvm_bridge/events.db"
