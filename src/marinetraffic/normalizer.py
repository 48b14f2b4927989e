"""Turn raw MarineTraffic vessel rows into normalized vessel-state records."""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from marinetraffic.config import vessel_context
from marinetraffic.models import BoundingBox, RawVesselRecord, VesselMetadata, VesselStateRecord
from marinetraffic.ship_types import navigation_state, ship_type_name

logger = logging.getLogger(__name__)

# Placeholder the vendor puts in DESTINATION for class B transponders
CLASS_B_DESTINATION = "CLASS B"

KNOTS_TO_MS = 0.514444

BOUNDING_BOX_PATH = "sensors.ais.boundingBox"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_int(value: Any) -> int | None:
    """Leading integer of a vendor value (``"12.7"`` -> 12), or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def parse_float(value: Any) -> float | None:
    """Leading decimal number of a vendor value (``"12.5abc"`` -> 12.5), or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    else:
        match = _LEADING_FLOAT.match(str(value))
        if not match:
            return None
        result = float(match.group(1))
    return result if math.isfinite(result) else None


def degrees_to_radians(degrees: int | None) -> float | None:
    if degrees is None:
        return None
    return degrees * (math.pi / 180.0)


def _report_timestamp(report_time: datetime, elapsed: int | None) -> datetime:
    """``report_time`` minus ``elapsed`` minutes; unusable ages count as 0."""
    if not elapsed:
        return report_time
    try:
        return report_time - timedelta(minutes=elapsed)
    except OverflowError:
        logger.debug("ELAPSED %s out of range, using report time", elapsed)
        return report_time


def _text(value: Any) -> str | None:
    return None if value is None else str(value)


def normalize(
    raw: RawVesselRecord,
    meta: VesselMetadata | None,
    report_time: datetime,
    self_context: str,
    *,
    type_names: Callable[[int | None], str | None] = ship_type_name,
) -> VesselStateRecord | None:
    """Build the vessel-state record for one tile row.

    Returns None for vessels without an MMSI and for the observing vessel
    itself. Entries whose value cannot be derived are left out.
    """
    # Downstream indexes vessels by MMSI, so no MMSI means nothing to emit
    if meta is None or not meta.mmsi:
        logger.debug("No MMSI for ship %s, dropping", raw.ship_id)
        return None

    context = vessel_context(meta.mmsi)
    if context == self_context:
        logger.debug("Ignoring own vessel %s", context)
        return None

    record = VesselStateRecord(
        context=context,
        timestamp=_report_timestamp(report_time, parse_int(raw.elapsed)),
    )

    record.add("", {"mmsi": meta.mmsi})
    if meta.imo is not None:
        record.add("", {"imo": meta.imo})
    if meta.callsign is not None:
        record.add("", {"callsign": meta.callsign})
    if raw.ship_name is not None:
        record.add("", {"name": str(raw.ship_name)})

    record.add("navigation.courseOverGroundTrue", degrees_to_radians(parse_int(raw.course)))
    record.add("navigation.headingTrue", degrees_to_radians(parse_int(raw.heading)))

    lat = parse_float(raw.lat)
    lon = parse_float(raw.lon)
    if lat is not None and lon is not None:
        record.add("navigation.position", {"latitude": lat, "longitude": lon})

    destination = _text(raw.destination)
    if destination != CLASS_B_DESTINATION:
        record.add("navigation.destination.commonName", destination)

    speed = parse_int(raw.speed)
    if speed is not None:
        # SPEED is in tenths of a knot
        record.add("navigation.speedOverGround", (speed / 10) * KNOTS_TO_MS)

    record.add("navigation.state", navigation_state(parse_int(raw.status)))

    record.add("design.beam", parse_int(raw.width))
    length = parse_int(raw.length)
    if length is not None:
        record.add("design.length", {"overall": length})
    record.add("sensors.ais.fromCenter", parse_int(raw.w_left))
    record.add("sensors.ais.fromBow", parse_int(raw.l_fore))

    type_id = parse_int(meta.type_id)
    if type_id is not None:
        ship_type: dict[str, Any] = {"id": type_id}
        name = type_names(type_id)
        if name:
            ship_type["name"] = name
        record.add("design.aisShipType", ship_type)

    return record


def bounding_box_record(box: BoundingBox, self_context: str) -> VesselStateRecord:
    """Diagnostic record announcing the area being polled."""
    record = VesselStateRecord(context=self_context)
    record.add(BOUNDING_BOX_PATH, box.model_dump(by_alias=True))
    return record
