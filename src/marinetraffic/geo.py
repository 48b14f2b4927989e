"""Bounding-box and map-tile geometry for the tile poller.

MarineTraffic serves 512x512 px tiles, so at a nominal zoom ``z`` the world
is split into ``2**(z-1)`` columns and rows instead of the usual ``2**z``.
"""

from __future__ import annotations

import math

from marinetraffic.errors import InvalidInput
from marinetraffic.models import BoundingBox, Position, TileCoordinate

TILE_ZOOM = 10
DEFAULT_RADIUS_KM = 10.0

# Latitude at which a square Web-Mercator world ends; tan/sec blow up at 90
MAX_MERCATOR_LAT = 85.0511287798

# Bearings in radians as used by the projection below (not exact cardinals)
BEARING_NORTH = 0.0
BEARING_EAST = 1.5
BEARING_SOUTH = 3.0
BEARING_WEST = 4.5

NM_PER_KM = 1 / 1.852
ARC_MINUTES_PER_RADIAN = 180 * 60 / math.pi


def _mod(x: float, y: float) -> float:
    """Floored modulo (result has the sign of ``y``)."""
    return x - y * math.floor(x / y)


def _require_finite(pos: Position | None) -> Position:
    if pos is None:
        raise InvalidInput("Position is missing")
    lat = getattr(pos, "latitude", None)
    lon = getattr(pos, "longitude", None)
    if lat is None or lon is None:
        raise InvalidInput(f"Position has missing coordinates: {pos!r}")
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise InvalidInput(f"Position has non-finite coordinates: {pos!r}")
    return pos


def project(origin: Position, bearing: float, distance_km: float) -> Position:
    """Destination point ``distance_km`` away from ``origin`` on a sphere.

    Distance is taken in nautical miles (one arc-minute each), so the earth
    radius is implied by the 1852 m nautical mile.
    """
    dist = distance_km * NM_PER_KM / ARC_MINUTES_PER_RADIAN
    heading = 2 * math.pi - bearing

    lat1 = math.radians(origin.latitude)
    lat2 = math.asin(
        math.sin(lat1) * math.cos(dist)
        + math.cos(lat1) * math.sin(dist) * math.cos(heading)
    )
    dlon = math.atan2(
        math.sin(heading) * math.sin(dist) * math.cos(lat1),
        math.cos(dist) - math.sin(lat1) * math.sin(lat2),
    )
    lon2 = _mod(math.radians(origin.longitude) - dlon + math.pi, 2 * math.pi) - math.pi

    return Position(latitude=math.degrees(lat2), longitude=math.degrees(lon2))


def compute_bounding_box(
    center: Position | None, radius_km: float | None = DEFAULT_RADIUS_KM,
) -> BoundingBox:
    """Box spanned by the four points ``radius_km / 2`` from ``center``."""
    center = _require_finite(center)
    if radius_km is None or not math.isfinite(radius_km) or radius_km <= 0:
        radius_km = DEFAULT_RADIUS_KM
    distance = radius_km / 2

    west = project(center, BEARING_WEST, distance)
    east = project(center, BEARING_EAST, distance)
    north = project(center, BEARING_NORTH, distance)
    south = project(center, BEARING_SOUTH, distance)

    return BoundingBox(
        lat_min=south.latitude,
        lat_max=north.latitude,
        lon_min=west.longitude,
        lon_max=east.longitude,
    )


def position_to_tile(pos: Position, zoom: int = TILE_ZOOM) -> TileCoordinate:
    """Vendor tile containing ``pos``; latitude is clamped to the Mercator limit."""
    pos = _require_finite(pos)
    if zoom < 1:
        raise InvalidInput(f"Zoom must be at least 1, got {zoom}")

    n = 2 ** (zoom - 1)
    lat = min(max(pos.latitude, -MAX_MERCATOR_LAT), MAX_MERCATOR_LAT)
    lon = min(max(pos.longitude, -180.0), 180.0)
    lat_rad = math.radians(lat)

    x = math.floor((lon + 180.0) / 360.0 * n)
    y = math.floor(
        (1 - math.log(math.tan(lat_rad) + 1 / math.cos(lat_rad)) / math.pi) / 2 * n
    )
    return TileCoordinate(
        x=min(max(x, 0), n - 1),
        y=min(max(y, 0), n - 1),
        zoom=zoom,
    )


def tile_range(box: BoundingBox, zoom: int = TILE_ZOOM) -> set[TileCoordinate]:
    """All tiles between the box corners plus one extra column and row.

    Rows grow southward, so the southwest corner has the larger ``y``.
    The margin is dropped at the grid edge, where no such tile exists.
    A box crossing the antimeridian (``lon_min > lon_max``) yields no tiles.
    """
    sw = position_to_tile(Position(latitude=box.lat_min, longitude=box.lon_min), zoom)
    ne = position_to_tile(Position(latitude=box.lat_max, longitude=box.lon_max), zoom)

    last = 2 ** (zoom - 1) - 1
    x_hi = min(ne.x + 1, last)
    y_lo = min(sw.y, ne.y)
    y_hi = min(max(sw.y, ne.y + 1), last)
    return {
        TileCoordinate(x=x, y=y, zoom=zoom)
        for x in range(sw.x, x_hi + 1)
        for y in range(y_lo, y_hi + 1)
    }
