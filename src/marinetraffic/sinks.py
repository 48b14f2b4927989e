"""Collaborators around the poll cycle: where positions come from and where records go."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from typing import Protocol, TextIO

from marinetraffic.models import Position, VesselStateRecord

SINK_ID = "marinetraffic"


class DeltaSink(Protocol):
    """Downstream consumer of normalized records."""

    def emit(self, context_id: str, record: VesselStateRecord) -> None: ...


class PositionProvider(Protocol):
    """Source of the observing vessel's own position."""

    def get_self_position(self) -> Position | None: ...


class NdjsonSink:
    """Write one JSON delta per line to a text stream."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout

    def emit(self, context_id: str, record: VesselStateRecord) -> None:
        self._stream.write(json.dumps(record.to_delta()) + "\n")
        self._stream.flush()


@dataclass
class MemorySink:
    """Collect emitted records in a list."""

    records: list[tuple[str, VesselStateRecord]] = field(default_factory=list)

    def emit(self, context_id: str, record: VesselStateRecord) -> None:
        self.records.append((context_id, record))

    def contexts(self) -> list[str]:
        return [record.context for _, record in self.records]


@dataclass
class StaticPositionProvider:
    """Fixed own-ship position, e.g. for a moored station."""

    position: Position | None = None

    @classmethod
    def from_coordinates(
        cls, latitude: float | None, longitude: float | None,
    ) -> StaticPositionProvider:
        if latitude is None or longitude is None:
            return cls()
        return cls(Position(latitude=latitude, longitude=longitude))

    def get_self_position(self) -> Position | None:
        return self.position
