"""Async HTTP client for the MarineTraffic public map endpoints."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from marinetraffic.config import Settings
from marinetraffic.errors import FetchFailure
from marinetraffic.models import RawVesselRecord, TileCoordinate, VesselMetadata

logger = logging.getLogger(__name__)

# The public endpoints only answer requests that look like the map page's XHRs
BROWSER_HEADERS = {
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Priority": "u=1, i",
    "Sec-Ch-Ua": '"Not(A:Brand";v="8", "Chromium";v="144", "Google Chrome";v="144"',
    "Sec-Ch-Ua-Mobile": "?0",
    "Sec-Ch-Ua-Platform": '"Linux"',
    "Sec-Fetch-Dest": "empty",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Site": "same-origin",
    "X-Requested-With": "XMLHttpRequest",
    "Referer": "https://www.marinetraffic.com/en/ais/home/shipid:7814591/zoom:11",
}


def tile_path(tile: TileCoordinate) -> str:
    return f"/getData/get_data_json_4/z:{tile.zoom}/X:{tile.x}/Y:{tile.y}/station:0"


def ship_detail_path(ship_id: str | int) -> str:
    return f"/en/vessels/{ship_id}/general"


class MarineTrafficClient:
    """Async HTTP client for tile and ship-detail requests.

    Every request is attempted exactly once; any failure surfaces as
    FetchFailure and the caller decides what to drop.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.base_url = settings.base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=BROWSER_HEADERS,
            timeout=settings.request_timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> MarineTrafficClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _get_json(self, path: str) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("GET %s", url)
        try:
            response = await self._client.get(path)
        except httpx.TimeoutException as exc:
            raise FetchFailure(f"Timed out: {exc}", url) from exc
        except httpx.TransportError as exc:
            raise FetchFailure(f"Transport error: {exc}", url) from exc

        if response.status_code >= 400:
            raise FetchFailure(
                f"HTTP {response.status_code}", url, status=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise FetchFailure(
                f"Invalid JSON: {exc}", url, status=response.status_code,
            ) from exc

    async def fetch_tile(self, tile: TileCoordinate) -> list[RawVesselRecord]:
        """Fetch the vessel rows for one map tile."""
        body = await self._get_json(tile_path(tile))
        try:
            rows = body["data"]["rows"]
        except (KeyError, TypeError) as exc:
            raise FetchFailure(
                f"Unexpected tile payload: missing {exc}", f"{self.base_url}{tile_path(tile)}",
            ) from exc

        records: list[RawVesselRecord] = []
        for row in rows or []:
            try:
                records.append(RawVesselRecord.model_validate(row))
            except ValidationError as exc:
                logger.debug("Skipping malformed row in tile %s: %s", tile, exc)
        return records

    async def fetch_ship_detail(self, ship_id: str | int) -> VesselMetadata:
        """Fetch static metadata (MMSI, IMO, callsign, type) for one ship."""
        body = await self._get_json(ship_detail_path(ship_id))
        try:
            return VesselMetadata.model_validate(body)
        except ValidationError as exc:
            raise FetchFailure(
                f"Unexpected ship payload: {exc}", f"{self.base_url}{ship_detail_path(ship_id)}",
            ) from exc
