"""CLI entry point for the bitvm_bridge client and watcher."""

from __future__ import annotations

import asyncio
import json
import logging
import sys

import click

from bitvm_bridge.config import load_config
from bitvm_bridge.daemon import run_watcher
from bitvm_bridge.errors import BridgeError, DecodeInputError, EncodeError
from bitvm_bridge.models.proof import DepositContext
from bitvm_bridge.starknet.bridge import BitvmBridgeClient
from bitvm_bridge.starknet.codec import build_mint_calldata, decode_mint_calldata, merkle_hash_bytes
from bitvm_bridge.starknet.felt import parse_felt, to_hex
from bitvm_bridge.starknet.rpc import StarknetRpcClient
from bitvm_bridge.storage.sqlite import SQLiteEventStore


def _require_contract(cfg):
    """Exit with error if no bridge contract is configured."""
    if not cfg.bridge_contract:
        click.echo("Error: No bridge contract configured.", err=True)
        click.echo("Set BITVM_BRIDGE_BRIDGE_CONTRACT or bridge_contract in config.", err=True)
        sys.exit(1)


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """bitvm-bridge - Starknet bridge client and event watcher."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Watcher ────────────────────────────────────────────


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Start the bridge event watcher."""
    cfg = load_config(ctx.obj["config_path"])
    _require_contract(cfg)
    if not ctx.obj["verbose"]:
        logging.getLogger().setLevel(cfg.log_level.upper())

    click.echo(f"Starting bitvm-bridge watcher (network: {cfg.network})")
    asyncio.run(run_watcher(cfg))


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show watcher configuration."""
    cfg = load_config(ctx.obj["config_path"])
    click.echo(f"Network:       {cfg.network}")
    click.echo(f"RPC URL:       {cfg.rpc_url}")
    click.echo(f"Bridge:        {cfg.bridge_contract or '(not set)'}")
    click.echo(f"Light client:  {cfg.light_client_contract or '(not set)'}")
    click.echo(f"Account:       {cfg.account_address or '(not set)'}")
    click.echo(f"Start block:   {cfg.start_block}")
    click.echo(f"Confirmations: {cfg.confirmations}")
    click.echo(f"Batch size:    {cfg.blocks_per_batch} blocks, {cfg.chunk_size} events/page")
    click.echo(f"DB path:       {cfg.db_path}")


@cli.command()
@click.pass_context
def tip(ctx: click.Context) -> None:
    """Query the Starknet tip and the bridge's Bitcoin-side state."""
    cfg = load_config(ctx.obj["config_path"])
    _require_contract(cfg)

    async def _tip():
        async with StarknetRpcClient(cfg.rpc_url, cfg.request_timeout) as rpc:
            click.echo(f"Starknet tip:        {await rpc.block_number()}")
            if not cfg.light_client_contract:
                return
            client = BitvmBridgeClient(
                rpc,
                bridge_contract=cfg.bridge_contract,
                light_client_contract=cfg.light_client_contract,
            )
            click.echo(f"Light client height: {await client.query_latest_block_height()}")
            click.echo(f"Min confirmations:   {await client.query_min_confirmations()}")

    try:
        asyncio.run(_tip())
    except BridgeError as exc:
        raise click.ClickException(str(exc))


@cli.command("tx-status")
@click.argument("tx_hash")
@click.pass_context
def tx_status(ctx: click.Context, tx_hash: str) -> None:
    """Show the status of a Starknet transaction."""
    cfg = load_config(ctx.obj["config_path"])

    async def _status():
        async with StarknetRpcClient(cfg.rpc_url, cfg.request_timeout) as rpc:
            return await rpc.get_transaction_status(tx_hash)

    try:
        result = asyncio.run(_status())
    except BridgeError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"{tx_hash}: {result}")


# ── Calldata ───────────────────────────────────────────


@cli.command()
@click.argument("path", type=click.File("r"))
@click.option("--decode", "decode", is_flag=True, help="Decode a JSON list of hex felts instead")
def calldata(path, decode: bool) -> None:
    """Encode deposit contexts (JSON) into mint calldata, or decode it back."""
    try:
        doc = json.load(path)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"invalid JSON: {exc}")

    if decode:
        try:
            pegs = decode_mint_calldata([parse_felt(w) for w in doc])
        except (ValueError, DecodeInputError) as exc:
            raise click.ClickException(f"cannot decode calldata: {exc}")
        out = [
            {
                "to": to_hex(p.to),
                "amount": p.value,
                "block_height": p.block_num,
                "block_header": p.inclusion_proof.block_header.hex(),
                "tx_id": p.inclusion_proof.tx_id.to_bytes(32, "big").hex(),
                "tx_index": p.inclusion_proof.tx_index,
                "raw_tx": p.inclusion_proof.raw_tx.hex(),
                "merkle_proof": [merkle_hash_bytes(h).hex() for h in p.inclusion_proof.merkle_proof],
                "output_index": p.tx_out_ix,
                "dest_script_hash": p.dest_script_hash.to_bytes(32, "big").hex(),
            }
            for p in pegs
        ]
        click.echo(json.dumps(out, indent=2))
        return

    entries = doc if isinstance(doc, list) else [doc]
    try:
        contexts = [DepositContext.from_dict(e) for e in entries]
        words = build_mint_calldata(contexts)
    except EncodeError as exc:
        raise click.ClickException(str(exc))
    click.echo(json.dumps([to_hex(w) for w in words], indent=2))


# ── Stored events ──────────────────────────────────────


@cli.command()
@click.option("--limit", type=int, default=20, help="Number of events to show")
@click.option("--kind", type=click.Choice(["mint", "burn"]), default=None)
@click.pass_context
def events(ctx: click.Context, limit: int, kind: str | None) -> None:
    """List bridge events recorded by the watcher."""
    cfg = load_config(ctx.obj["config_path"])

    async def _events():
        store = SQLiteEventStore(cfg.db_path)
        await store.initialize()
        try:
            return (
                await store.get_cursor(),
                await store.count_events(kind),
                await store.get_recent_events(limit, kind),
            )
        finally:
            await store.close()

    cursor, total, records = asyncio.run(_events())
    click.echo(f"Cursor: {cursor if cursor is not None else '(none)'}  Events: {total}")
    for r in records:
        if r.kind == "mint":
            click.echo(f"  [{r.block_number}] MINT {r.value} -> {r.account}  tx={r.tx_hash}")
        else:
            click.echo(
                f"  [{r.block_number}] BURN {r.value} from {r.account} -> {r.btc_addr}"
                f" (fee_rate={r.fee_rate}, operator={r.operator_id})  tx={r.tx_hash}"
            )


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
