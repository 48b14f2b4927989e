"""Application settings loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings

MIN_UPDATE_RATE = 60
DEFAULT_UPDATE_RATE = 61
DEFAULT_BOX_SIZE_KM = 10.0


def vessel_context(mmsi: str) -> str:
    """Return the stream context for a vessel identified by MMSI."""
    return f"vessels.urn:mrn:imo:mmsi:{mmsi}"


class Settings(BaseSettings):
    """MarineTraffic poller configuration from .env file."""

    update_rate: float | None = DEFAULT_UPDATE_RATE
    box_enabled: bool = True
    box_size: float | None = DEFAULT_BOX_SIZE_KM
    list_enabled: bool = False
    mmsi_list: list[str] = []

    self_mmsi: str = ""
    self_latitude: float | None = None
    self_longitude: float | None = None

    base_url: str = "https://www.marinetraffic.com"
    data_dir: Path = Path("data")
    cache_max_entries: int = 1000
    zoom: int = 10
    request_timeout: float = 30.0

    model_config = {"env_prefix": "MARINETRAFFIC_", "env_file": ".env"}

    @property
    def effective_update_rate(self) -> float:
        """Polling interval in seconds, never at or below the floor."""
        if not self.update_rate or self.update_rate <= MIN_UPDATE_RATE:
            return float(DEFAULT_UPDATE_RATE)
        return float(self.update_rate)

    @property
    def effective_box_size(self) -> float:
        if not self.box_size or self.box_size <= 0:
            return DEFAULT_BOX_SIZE_KM
        return float(self.box_size)

    @property
    def self_context(self) -> str:
        if self.self_mmsi:
            return vessel_context(self.self_mmsi)
        return "vessels.self"


def load_settings(**overrides: object) -> Settings:
    """Load and return application settings."""
    return Settings(**overrides)
