"""SQLite implementation of the EventStore protocol, plus a recording handler."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from bitvm_bridge.interfaces.store import EventStore
from bitvm_bridge.models.events import BurnEvent, MintEvent
from bitvm_bridge.models.records import EventRecord

log = logging.getLogger(__name__)

SCHEMA = """
-- Monitor cursor for resumption
CREATE TABLE IF NOT EXISTS cursor (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    last_block INTEGER NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Delivered Mint/Burn events
CREATE TABLE IF NOT EXISTS bridge_events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    kind TEXT NOT NULL,
    block_number INTEGER NOT NULL,
    block_timestamp INTEGER NOT NULL,
    tx_hash TEXT NOT NULL,
    event_index INTEGER NOT NULL DEFAULT 0,
    account TEXT NOT NULL,
    value INTEGER NOT NULL,
    btc_addr TEXT NOT NULL DEFAULT '',
    fee_rate INTEGER,
    operator_id INTEGER,
    recorded_at TEXT NOT NULL DEFAULT (datetime('now'))
);
-- One row per event position within a transaction
CREATE UNIQUE INDEX IF NOT EXISTS idx_bridge_events_key
    ON bridge_events(kind, tx_hash, block_number, event_index);
CREATE INDEX IF NOT EXISTS idx_bridge_events_block ON bridge_events(block_number);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_record(row: aiosqlite.Row) -> EventRecord:
    return EventRecord(
        id=row["id"],
        kind=row["kind"],
        block_number=row["block_number"],
        block_timestamp=row["block_timestamp"],
        tx_hash=row["tx_hash"],
        event_index=row["event_index"],
        account=row["account"],
        value=row["value"],
        btc_addr=row["btc_addr"] or None,
        fee_rate=row["fee_rate"],
        operator_id=row["operator_id"],
        recorded_at=row["recorded_at"],
    )


class SQLiteEventStore:
    """SQLite-backed implementation of the EventStore protocol."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    # ── Cursor ─────────────────────────────────────────────

    async def get_cursor(self) -> int | None:
        async with self.db.execute("SELECT last_block FROM cursor WHERE id=1") as cur:
            row = await cur.fetchone()
            return row["last_block"] if row else None

    async def set_cursor(self, block_number: int) -> None:
        await self.db.execute(
            "INSERT INTO cursor (id, last_block, updated_at) VALUES (1, ?, ?)"
            " ON CONFLICT(id) DO UPDATE SET last_block=excluded.last_block,"
            " updated_at=excluded.updated_at",
            (block_number, _now()),
        )
        await self.db.commit()

    # ── Events ─────────────────────────────────────────────

    async def _insert(
        self,
        kind: str,
        block_number: int,
        block_timestamp: int,
        tx_hash: str,
        account: str,
        value: int,
        event_index: int = 0,
        btc_addr: str = "",
        fee_rate: int | None = None,
        operator_id: int | None = None,
    ) -> bool:
        cur = await self.db.execute(
            "INSERT OR IGNORE INTO bridge_events"
            " (kind, block_number, block_timestamp, tx_hash, event_index, account,"
            "  value, btc_addr, fee_rate, operator_id, recorded_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                kind, block_number, block_timestamp, tx_hash, event_index, account,
                value, btc_addr, fee_rate, operator_id, _now(),
            ),
        )
        await self.db.commit()
        return cur.rowcount > 0

    async def save_mint(
        self, block_number: int, block_timestamp: int, tx_hash: str, event: MintEvent,
        event_index: int = 0,
    ) -> bool:
        return await self._insert(
            "mint", block_number, block_timestamp, tx_hash, event.to, event.value,
            event_index=event_index,
        )

    async def save_burn(
        self, block_number: int, block_timestamp: int, tx_hash: str, event: BurnEvent,
        event_index: int = 0,
    ) -> bool:
        return await self._insert(
            "burn", block_number, block_timestamp, tx_hash, event.sender, event.value,
            event_index=event_index,
            btc_addr=event.btc_addr,
            fee_rate=event.fee_rate,
            operator_id=event.operator_id,
        )

    async def get_recent_events(
        self, limit: int = 50, kind: str | None = None,
    ) -> list[EventRecord]:
        if kind:
            query = (
                "SELECT * FROM bridge_events WHERE kind=?"
                " ORDER BY block_number DESC, id DESC LIMIT ?"
            )
            params: tuple = (kind, limit)
        else:
            query = "SELECT * FROM bridge_events ORDER BY block_number DESC, id DESC LIMIT ?"
            params = (limit,)
        async with self.db.execute(query, params) as cur:
            rows = await cur.fetchall()
            return [_row_to_record(r) for r in rows]

    async def count_events(self, kind: str | None = None) -> int:
        if kind:
            query, params = "SELECT COUNT(*) AS n FROM bridge_events WHERE kind=?", (kind,)
        else:
            query, params = "SELECT COUNT(*) AS n FROM bridge_events", ()
        async with self.db.execute(query, params) as cur:
            row = await cur.fetchone()
            return row["n"] if row else 0


class StoreEventHandler:
    """EventHandler that logs each bridge event and records it in the store.

    Redelivered events are ignored by the store's (kind, tx, block, index) key.
    """

    def __init__(self, store: EventStore) -> None:
        self._store = store

    async def handle_mint(
        self,
        block_number: int,
        block_timestamp: int,
        tx_hash: str,
        to: str,
        value: int,
        *,
        event_index: int = 0,
    ) -> None:
        log.info("Mint: block=%d tx=%s to=%s value=%d", block_number, tx_hash, to, value)
        inserted = await self._store.save_mint(
            block_number, block_timestamp, tx_hash, MintEvent(to=to, value=value),
            event_index=event_index,
        )
        if not inserted:
            log.debug("Mint in tx %s already recorded", tx_hash)

    async def handle_burn(
        self,
        block_number: int,
        block_timestamp: int,
        tx_hash: str,
        sender: str,
        btc_addr: str,
        fee_rate: int,
        value: int,
        operator_id: int,
        *,
        event_index: int = 0,
    ) -> None:
        log.info(
            "Burn: block=%d tx=%s from=%s btc_addr=%s value=%d fee_rate=%d operator=%d",
            block_number, tx_hash, sender, btc_addr, value, fee_rate, operator_id,
        )
        event = BurnEvent(
            sender=sender,
            btc_addr=btc_addr,
            fee_rate=fee_rate,
            value=value,
            operator_id=operator_id,
        )
        inserted = await self._store.save_burn(
            block_number, block_timestamp, tx_hash, event, event_index=event_index,
        )
        if not inserted:
            log.debug("Burn in tx %s already recorded", tx_hash)
