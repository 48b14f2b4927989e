"""Pydantic models for MarineTraffic payloads and the emitted vessel stream."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Vendor rows carry numbers as strings, ints or floats depending on the field
VendorValue = Union[str, int, float, None]

SOURCE_LABEL = "marinetraffic"


# --- Geometry ---


class Position(BaseModel):
    """A WGS84 position in decimal degrees."""

    latitude: float = Field(ge=-90.0, le=90.0, allow_inf_nan=False)
    longitude: float = Field(ge=-180.0, le=180.0, allow_inf_nan=False)

    model_config = ConfigDict(frozen=True)


class BoundingBox(BaseModel):
    """Lat/lon rectangle around the observing vessel."""

    lat_min: float = Field(alias="latmin")
    lat_max: float = Field(alias="latmax")
    lon_min: float = Field(alias="lonmin")
    lon_max: float = Field(alias="lonmax")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @model_validator(mode="after")
    def _check_latitudes(self) -> BoundingBox:
        if self.lat_min > self.lat_max:
            raise ValueError(f"lat_min {self.lat_min} exceeds lat_max {self.lat_max}")
        return self


@dataclass(frozen=True, order=True)
class TileCoordinate:
    """Address of one vendor map tile."""

    x: int
    y: int
    zoom: int

    def __str__(self) -> str:
        return f"z{self.zoom}/{self.x}/{self.y}"


# --- Vendor payloads ---


class RawVesselRecord(BaseModel):
    """One vessel row from a tile response (``data.rows[]``)."""

    ship_id: Union[str, int] = Field(alias="SHIP_ID")
    ship_name: VendorValue = Field(None, alias="SHIPNAME")
    lat: VendorValue = Field(None, alias="LAT")
    lon: VendorValue = Field(None, alias="LON")
    speed: VendorValue = Field(None, alias="SPEED")
    course: VendorValue = Field(None, alias="COURSE")
    heading: VendorValue = Field(None, alias="HEADING")
    elapsed: VendorValue = Field(None, alias="ELAPSED")
    destination: VendorValue = Field(None, alias="DESTINATION")
    width: VendorValue = Field(None, alias="WIDTH")
    length: VendorValue = Field(None, alias="LENGTH")
    w_left: VendorValue = Field(None, alias="W_LEFT")
    l_fore: VendorValue = Field(None, alias="L_FORE")
    status: VendorValue = Field(None, alias="STATUS")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class VesselMetadata(BaseModel):
    """Static vessel identity from the ship-detail endpoint."""

    mmsi: str | None = None
    imo: str | None = None
    callsign: str | None = None
    type_id: Union[int, str, None] = Field(None, alias="typeId")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("mmsi", "imo", "callsign", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> Any:
        # The endpoint returns numeric identifiers as JSON numbers
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if not math.isfinite(value):
                raise ValueError(f"identifier must be finite, got {value}")
            return str(int(value))
        if isinstance(value, str) and not value.strip():
            return None
        return value


# --- Emitted stream ---


class PathValue(BaseModel):
    """A single (path, value) entry of a vessel-state record."""

    path: str
    value: Any


def _iso_timestamp(ts: datetime) -> str:
    """Format like JavaScript's toISOString: UTC with milliseconds and Z."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class VesselStateRecord(BaseModel):
    """Normalized vessel state handed to the downstream sink."""

    context: str
    timestamp: datetime | None = None
    source_label: str = SOURCE_LABEL
    values: list[PathValue] = Field(default_factory=list)

    def add(self, path: str, value: Any) -> None:
        """Append an entry unless the value is undefined."""
        if value is not None:
            self.values.append(PathValue(path=path, value=value))

    def get(self, path: str) -> Any:
        """Return the first value at ``path``, or None."""
        for entry in self.values:
            if entry.path == path:
                return entry.value
        return None

    def to_delta(self) -> dict[str, Any]:
        """Serialize to the ``{context, updates: [...]}`` delta shape."""
        update: dict[str, Any] = {
            "source": {"label": self.source_label},
            "values": [entry.model_dump() for entry in self.values],
        }
        if self.timestamp is not None:
            update["timestamp"] = _iso_timestamp(self.timestamp)
        return {"context": self.context, "updates": [update]}
