"""Entry point: python -m marinetraffic

Subcommands:
    run    Poll tiles around the own-ship position, NDJSON deltas on stdout
    cache  Show the cached ship metadata (read-only, no network)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from datetime import datetime, timezone
from pathlib import Path

from rich.console import Console
from rich.table import Table

from marinetraffic.client import MarineTrafficClient
from marinetraffic.config import Settings, load_settings
from marinetraffic.normalizer import parse_int
from marinetraffic.poller import PollSession
from marinetraffic.ship_cache import ShipCache
from marinetraffic.ship_types import ship_type_name
from marinetraffic.sinks import NdjsonSink, StaticPositionProvider


def setup_logging(log_dir: Path, *, verbose: bool = False) -> None:
    """Configure logging for the poller.

    Console output goes to stderr because stdout carries the delta stream.
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "marinetraffic.log"

    formatter = logging.Formatter(
        "[%(asctime)s] %(message)s", datefmt="%H:%M:%S",
    )

    file_handler = logging.FileHandler(log_file, mode="a")
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)

    root = logging.getLogger("marinetraffic")
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.handlers.clear()
    root.addHandler(file_handler)
    root.addHandler(console_handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Logging to %s", log_file)


async def run(settings: Settings, *, once: bool = False) -> None:
    """Poll until SIGINT/SIGTERM (or a single cycle with ``once``)."""
    logger = logging.getLogger(__name__)
    positions = StaticPositionProvider.from_coordinates(
        settings.self_latitude, settings.self_longitude,
    )
    if positions.get_self_position() is None:
        logger.warning("No own-ship position configured; cycles will be skipped")

    cache = ShipCache(
        db_path=settings.data_dir / "ships.db",
        max_entries=settings.cache_max_entries,
    )
    try:
        async with MarineTrafficClient(settings) as client:
            session = PollSession(settings, client, cache, positions, NdjsonSink())
            if once:
                report = await session.run_cycle()
                logger.info("Cycle done: %s", report)
                return

            shutdown = asyncio.Event()
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, shutdown.set)

            session.start()
            await shutdown.wait()
            logger.info("Shutting down...")
            await session.stop()
    finally:
        cache.close()


def show_cache(settings: Settings, limit: int) -> None:
    """Print cached ship metadata as a table."""
    console = Console()
    db_path = settings.data_dir / "ships.db"
    if not db_path.exists():
        console.print(f"[yellow]No cache at {db_path}[/yellow]")
        return

    cache = ShipCache(db_path=db_path, max_entries=max(limit, 1))
    try:
        table = Table(title=f"Cached ships ({len(cache)})")
        table.add_column("Ship ID", style="cyan")
        table.add_column("MMSI")
        table.add_column("IMO")
        table.add_column("Callsign")
        table.add_column("Type")
        table.add_column("Updated", style="dim")

        for i, (ship_id, meta, updated_at) in enumerate(cache.entries()):
            if i >= limit:
                break
            type_id = parse_int(meta.type_id)
            type_label = "-"
            if type_id is not None:
                name = ship_type_name(type_id)
                type_label = f"{type_id} {name}" if name else str(type_id)
            updated = datetime.fromtimestamp(updated_at, tz=timezone.utc)
            table.add_row(
                ship_id,
                meta.mmsi or "-",
                meta.imo or "-",
                meta.callsign or "-",
                type_label,
                updated.strftime("%Y-%m-%d %H:%M"),
            )
        console.print(table)
    finally:
        cache.close()


def main() -> None:
    parser = argparse.ArgumentParser(
        description="MarineTraffic public tile poller",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    run_parser = sub.add_parser("run", help="Poll tiles and stream deltas (default)")
    run_parser.add_argument("--lat", type=float, help="Own-ship latitude")
    run_parser.add_argument("--lon", type=float, help="Own-ship longitude")
    run_parser.add_argument("--self-mmsi", help="Own-ship MMSI (filtered from output)")
    run_parser.add_argument("--once", action="store_true", help="Run a single cycle and exit")

    cache_parser = sub.add_parser("cache", help="Show cached ship metadata")
    cache_parser.add_argument("--limit", type=int, default=50)

    args = parser.parse_args()

    overrides: dict[str, object] = {}
    if getattr(args, "lat", None) is not None:
        overrides["self_latitude"] = args.lat
    if getattr(args, "lon", None) is not None:
        overrides["self_longitude"] = args.lon
    if getattr(args, "self_mmsi", None):
        overrides["self_mmsi"] = args.self_mmsi
    settings = load_settings(**overrides)

    if args.command == "cache":
        show_cache(settings, args.limit)
        return

    setup_logging(settings.data_dir / "logs", verbose=args.verbose)
    asyncio.run(run(settings, once=getattr(args, "once", False)))


if __name__ == "__main__":
    main()
