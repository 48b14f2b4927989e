"""Persistent ship-metadata cache backed by SQLite.

Static vessel data (MMSI, IMO, callsign, type) rarely changes, so every
ship-detail response is stored under the vendor's ship id and reused across
polling cycles and process restarts. Entries never expire.

The SQLite file holds every ship ever seen; only a bounded working set of
``max_entries`` is kept in memory, evicting the least recently used.

Usage:
    cache = ShipCache(db_path=settings.data_dir / "ships.db")
    meta = await cache.resolve(ship_id, client.fetch_ship_detail)
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable, Iterator
from pathlib import Path

from marinetraffic.models import VesselMetadata

logger = logging.getLogger(__name__)

ShipFetcher = Callable[[str], Awaitable[VesselMetadata]]

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS ships (
    ship_id TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    updated_at REAL NOT NULL
)
"""


class ShipCache:
    """Cache-aside store of VesselMetadata keyed by vendor ship id."""

    def __init__(self, db_path: Path, max_entries: int = 1000) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self.max_entries = max_entries
        self._memory: OrderedDict[str, VesselMetadata] = OrderedDict()
        # ship_id -> pending fetch, so concurrent misses share one request
        self._inflight: dict[str, asyncio.Task[VesselMetadata]] = {}
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(db_path), timeout=5.0, check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute(_CREATE_TABLE)
        self._conn.commit()

    def close(self) -> None:
        """Close the SQLite connection."""
        self._conn.close()

    def __len__(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) FROM ships").fetchone()
        return int(row[0])

    @property
    def working_set_size(self) -> int:
        """Number of entries currently held in memory."""
        return len(self._memory)

    def has(self, ship_id: str | int) -> bool:
        """True if metadata for ``ship_id`` is cached. No side effects."""
        key = str(ship_id)
        if key in self._memory:
            return True
        row = self._conn.execute(
            "SELECT 1 FROM ships WHERE ship_id = ?", (key,),
        ).fetchone()
        return row is not None

    def get(self, ship_id: str | int) -> VesselMetadata:
        """Return cached metadata. Raises KeyError when not cached."""
        key = str(ship_id)
        meta = self._memory.get(key)
        if meta is not None:
            self._memory.move_to_end(key)
            return meta

        row = self._conn.execute(
            "SELECT data FROM ships WHERE ship_id = ?", (key,),
        ).fetchone()
        if row is None:
            raise KeyError(key)
        meta = VesselMetadata.model_validate_json(row[0])
        self._remember(key, meta)
        return meta

    def set(self, ship_id: str | int, meta: VesselMetadata) -> None:
        """Store metadata on disk and in the working set."""
        key = str(ship_id)
        self._conn.execute(
            "INSERT OR REPLACE INTO ships (ship_id, data, updated_at) VALUES (?, ?, ?)",
            (key, meta.model_dump_json(by_alias=True), time.time()),
        )
        self._conn.commit()
        self._remember(key, meta)

    async def resolve(self, ship_id: str | int, fetcher: ShipFetcher) -> VesselMetadata:
        """Return cached metadata, fetching and storing it on a miss.

        The fetcher runs at most once per ship id; exceptions propagate and
        nothing is stored.
        """
        key = str(ship_id)
        if self.has(key):
            logger.debug("Cache hit for ship %s", key)
            return self.get(key)

        task = self._inflight.get(key)
        if task is None:
            logger.debug("Cache miss for ship %s, fetching", key)
            task = asyncio.ensure_future(self._fetch_and_store(key, fetcher))
            self._inflight[key] = task
        else:
            logger.debug("Joining in-flight fetch for ship %s", key)
        return await asyncio.shield(task)

    def entries(self) -> Iterator[tuple[str, VesselMetadata, float]]:
        """Yield (ship_id, metadata, updated_at) for every stored ship, newest first."""
        rows = self._conn.execute(
            "SELECT ship_id, data, updated_at FROM ships ORDER BY updated_at DESC",
        ).fetchall()
        for ship_id, data, updated_at in rows:
            yield ship_id, VesselMetadata.model_validate_json(data), updated_at

    async def _fetch_and_store(self, key: str, fetcher: ShipFetcher) -> VesselMetadata:
        try:
            meta = await fetcher(key)
            self.set(key, meta)
            return meta
        finally:
            self._inflight.pop(key, None)

    def _remember(self, key: str, meta: VesselMetadata) -> None:
        self._memory[key] = meta
        self._memory.move_to_end(key)
        while len(self._memory) > self.max_entries:
            evicted, _ = self._memory.popitem(last=False)
            logger.debug("Evicted ship %s from working set", evicted)
