"""PollSession: the timer-driven fetch/enrich/emit loop.

Each cycle reads the own-ship position, derives the bounding box and the
tiles covering it, fetches every tile concurrently and pushes one record per
foreign vessel to the sink. Cycles never overlap: the timer waits for the
running cycle before scheduling the next one.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol

from marinetraffic.config import Settings
from marinetraffic.errors import FetchFailure, InvalidInput, MissingPosition, UnresolvedMetadata
from marinetraffic.geo import compute_bounding_box, tile_range
from marinetraffic.models import (
    Position,
    RawVesselRecord,
    TileCoordinate,
    VesselMetadata,
    VesselStateRecord,
)
from marinetraffic.normalizer import bounding_box_record, normalize
from marinetraffic.ship_cache import ShipCache
from marinetraffic.ship_types import ship_type_name
from marinetraffic.sinks import SINK_ID, DeltaSink, PositionProvider

logger = logging.getLogger(__name__)


class VesselSource(Protocol):
    """Remote data the cycle needs; MarineTrafficClient implements it."""

    async def fetch_tile(self, tile: TileCoordinate) -> list[RawVesselRecord]: ...

    async def fetch_ship_detail(self, ship_id: str | int) -> VesselMetadata: ...


class CycleState(str, Enum):
    """Session-wide phase of the current cycle.

    Tiles run concurrently, so NORMALIZING means at least one tile has
    answered; sibling tiles may still be fetching.
    """

    IDLE = "idle"
    TILING = "tiling"
    FETCHING = "fetching"
    NORMALIZING = "normalizing"


@dataclass
class CycleReport:
    """What one cycle did, for logging and tests."""

    tiles: int = 0
    tiles_failed: int = 0
    vessels_seen: int = 0
    records_emitted: int = 0
    vessels_dropped: int = 0
    skipped: bool = False

    def __str__(self) -> str:
        if self.skipped:
            return "skipped"
        return (
            f"{self.tiles} tiles ({self.tiles_failed} failed), "
            f"{self.vessels_seen} vessels, {self.records_emitted} emitted, "
            f"{self.vessels_dropped} dropped"
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PollSession:
    """Owns the timer, the ship cache and the per-cycle work."""

    def __init__(
        self,
        settings: Settings,
        source: VesselSource,
        cache: ShipCache,
        positions: PositionProvider,
        sink: DeltaSink,
        *,
        clock: Callable[[], datetime] = _utcnow,
        type_names: Callable[[int | None], str | None] = ship_type_name,
    ) -> None:
        self.settings = settings
        self._source = source
        self._cache = cache
        self._positions = positions
        self._sink = sink
        self._clock = clock
        self._type_names = type_names
        self._self_context = settings.self_context
        # Seconds between cycle starts
        self.interval = settings.effective_update_rate
        self._timer: asyncio.Task[None] | None = None
        self._stopped = False
        self.state = CycleState.IDLE

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def start(self) -> None:
        """Run a cycle now and then every ``update_rate`` seconds."""
        if self.running:
            return
        self._stopped = False
        if self.settings.list_enabled and self.settings.mmsi_list:
            logger.info(
                "MMSI list configured (%d entries); list polling is not implemented",
                len(self.settings.mmsi_list),
            )
        self._timer = asyncio.create_task(self._run_timer(), name="marinetraffic-timer")

    async def stop(self) -> None:
        """Stop the timer; results still in flight are discarded."""
        self._stopped = True
        if self._timer is not None:
            self._timer.cancel()
            try:
                await self._timer
            except asyncio.CancelledError:
                pass
            self._timer = None
        self.state = CycleState.IDLE

    async def _run_timer(self) -> None:
        interval = self.interval
        loop = asyncio.get_running_loop()
        logger.info("Polling every %.0fs", interval)
        while not self._stopped:
            started = loop.time()
            try:
                report = await self.run_cycle()
                if not report.skipped:
                    logger.info("Cycle done: %s", report)
            except Exception:
                logger.exception("Poll cycle failed")
            await asyncio.sleep(max(0.0, interval - (loop.time() - started)))

    def _self_position(self) -> Position:
        position = self._positions.get_self_position()
        if position is None:
            raise MissingPosition("No own-ship position available")
        return position

    async def run_cycle(self) -> CycleReport:
        """Run one complete cycle and wait for every tile to finish."""
        report = CycleReport()
        try:
            position = self._self_position()
        except MissingPosition:
            logger.debug("No position available, skipping cycle")
            report.skipped = True
            return report

        if not self.settings.box_enabled:
            logger.debug("Bounding box search disabled, nothing to poll")
            report.skipped = True
            return report

        self.state = CycleState.TILING
        try:
            box = compute_bounding_box(position, self.settings.effective_box_size)
            tiles = sorted(tile_range(box, self.settings.zoom))
        except InvalidInput as exc:
            logger.warning("Cannot tile around %s: %s", position, exc)
            self.state = CycleState.IDLE
            report.skipped = True
            return report

        self._emit(bounding_box_record(box, self._self_context))
        if not tiles:
            logger.warning("Bounding box %s covers no tiles", box)

        self.state = CycleState.FETCHING
        report.tiles = len(tiles)
        results = await asyncio.gather(
            *(self._poll_tile(tile, report) for tile in tiles),
            return_exceptions=True,
        )
        for tile, result in zip(tiles, results):
            if isinstance(result, Exception):
                report.tiles_failed += 1
                logger.error("Tile %s crashed", tile, exc_info=result)

        self.state = CycleState.IDLE
        return report

    async def _poll_tile(self, tile: TileCoordinate, report: CycleReport) -> None:
        try:
            vessels = await self._source.fetch_tile(tile)
        except FetchFailure as exc:
            report.tiles_failed += 1
            logger.warning("Tile %s failed: %s (%s)", tile, exc, exc.url)
            return
        if self._stopped:
            return

        if self.state is CycleState.FETCHING:
            self.state = CycleState.NORMALIZING
        report_time = self._clock()
        logger.debug("Tile %s: %d vessels", tile, len(vessels))
        for raw in vessels:
            report.vessels_seen += 1
            try:
                record = await self._process_vessel(raw, report_time)
            except Exception:
                logger.exception("Ship %s in tile %s could not be processed", raw.ship_id, tile)
                report.vessels_dropped += 1
                continue
            if record is None:
                report.vessels_dropped += 1
            elif self._emit(record):
                report.records_emitted += 1

    async def _resolve_metadata(self, ship_id: str | int) -> VesselMetadata:
        try:
            return await self._cache.resolve(ship_id, self._source.fetch_ship_detail)
        except FetchFailure as exc:
            logger.warning("Ship %s detail failed: %s", ship_id, exc)
            raise UnresolvedMetadata(str(ship_id)) from exc

    async def _process_vessel(
        self, raw: RawVesselRecord, report_time: datetime,
    ) -> VesselStateRecord | None:
        try:
            meta = await self._resolve_metadata(raw.ship_id)
        except UnresolvedMetadata:
            return None
        return normalize(
            raw, meta, report_time, self._self_context, type_names=self._type_names,
        )

    def _emit(self, record: VesselStateRecord) -> bool:
        if self._stopped:
            logger.debug("Session stopped, discarding record for %s", record.context)
            return False
        self._sink.emit(SINK_ID, record)
        return True
