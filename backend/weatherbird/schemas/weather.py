from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field


class ProviderName(str, Enum):
    NWS = "nws"
    WEATHERBIT = "weatherbit"
    WEATHERSTACK = "weatherstack"
    VISUAL_CROSSING = "visualcrossing"
    OPENWEATHERMAP = "openweathermap"
    XWEATHER = "xweather"


class WeatherSnapshot(BaseModel):
    """One best-effort current reading. Always tagged with the provider that answered."""

    location: str
    temperature_c: float
    # None when the provider did not report it; validation rejects such snapshots
    humidity_pct: float | None = Field(default=None, ge=0, le=100)
    pressure_hpa: float | None = None
    description: str
    wind_speed_ms: float
    timestamp: datetime
    source: ProviderName


class ForecastDay(BaseModel):
    target_date: date
    temperature_c: float | None = None
    precipitation_mm: float | None = None
    snowfall_mm: float | None = None
    ice_mm: float | None = None
    wind_speed_ms: float | None = None
    condition: str = ""
    # Later-half minus earlier-half of the day, when the provider has sub-daily data
    snowfall_trend_mm: float | None = None
    wind_trend_ms: float | None = None
    estimated_fields: list[str] = []
    source: ProviderName | None = None

    @property
    def missing_fields(self) -> list[str]:
        core = {
            "snowfall_mm": self.snowfall_mm,
            "temperature_c": self.temperature_c,
            "wind_speed_ms": self.wind_speed_ms,
            "ice_mm": self.ice_mm,
        }
        missing = [name for name, value in core.items() if value is None]
        if not self.condition:
            missing.append("condition")
        return missing
