"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from bitvm_bridge.models.config import BridgeConfig
from bitvm_bridge.starknet.chain import StarknetChainId


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "BITVM_BRIDGE_",
) -> BridgeConfig:
    """Load bridge configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (BITVM_BRIDGE_RPC_URL, etc.)
        2. TOML config file
        3. Defaults from BridgeConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = BridgeConfig()

    # ── Daemon section ─────────────────────────────────────
    daemon = raw.get("daemon", {})
    if (v := daemon.get("idle_interval")) is not None:
        cfg.idle_interval = float(v)
    if (v := daemon.get("active_interval")) is not None:
        cfg.active_interval = float(v)
    if (v := daemon.get("error_backoff")) is not None:
        cfg.error_backoff = float(v)
    if v := daemon.get("log_level"):
        cfg.log_level = str(v)

    # ── Starknet section ───────────────────────────────────
    starknet = raw.get("starknet", {})
    if v := starknet.get("network"):
        cfg.network = str(v)
    if v := starknet.get("rpc_url"):
        cfg.rpc_url = str(v)
    if v := starknet.get("bridge_contract"):
        cfg.bridge_contract = str(v)
    if v := starknet.get("light_client_contract"):
        cfg.light_client_contract = str(v)
    if v := starknet.get("account_address"):
        cfg.account_address = str(v)
    if v := starknet.get("request_timeout"):
        cfg.request_timeout = float(v)

    # ── Monitor section ────────────────────────────────────
    monitor = raw.get("monitor", {})
    if (v := monitor.get("start_block")) is not None:
        cfg.start_block = int(v)
    if (v := monitor.get("confirmations")) is not None:
        cfg.confirmations = int(v)
    if v := monitor.get("blocks_per_batch"):
        cfg.blocks_per_batch = int(v)
    if v := monitor.get("chunk_size"):
        cfg.chunk_size = int(v)

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)

    # ── Environment variable overrides (highest priority) ──
    if rpc := os.environ.get(f"{env_prefix}RPC_URL"):
        cfg.rpc_url = rpc
    if net := os.environ.get(f"{env_prefix}NETWORK"):
        cfg.network = net
    if bridge := os.environ.get(f"{env_prefix}BRIDGE_CONTRACT"):
        cfg.bridge_contract = bridge
    if light := os.environ.get(f"{env_prefix}LIGHT_CLIENT_CONTRACT"):
        cfg.light_client_contract = light
    if start := os.environ.get(f"{env_prefix}START_BLOCK"):
        cfg.start_block = int(start)
    if db := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = db

    # Fail early on an unknown network name
    StarknetChainId(cfg.network)

    # Expand ~ in paths
    if cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg
