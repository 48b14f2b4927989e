"""Exception types shared across the poller."""

from __future__ import annotations


class MarineTrafficError(Exception):
    """Base class for all poller errors."""


class InvalidInput(MarineTrafficError, ValueError):
    """Raised when a position or radius cannot be used for tiling."""


class MissingPosition(MarineTrafficError):
    """Raised when the observing vessel has no position fix yet."""


class FetchFailure(MarineTrafficError):
    """Raised when a tile or ship-detail request fails."""

    def __init__(self, message: str, url: str, status: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


class UnresolvedMetadata(MarineTrafficError):
    """Raised when no vessel metadata could be produced for a ship id."""

    def __init__(self, ship_id: str) -> None:
        super().__init__(f"No metadata for ship {ship_id}")
        self.ship_id = ship_id
