from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class RoadSurface(str, Enum):
    CLEAR = "clear"
    WET = "wet"
    SNOW_COVERED = "snow-covered"
    ICE = "ice"
    CLOSED = "closed"
    UNKNOWN = "unknown"


class RoadSource(str, Enum):
    NWS = "nws"
    XWEATHER = "xweather"
    TOMTOM = "tomtom"


class IncidentSeverity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"


class RoadCondition(BaseModel):
    """One road report, whatever the category: a weather warning, a forecast surface state or a traffic incident."""

    route: str = ""
    condition: RoadSurface
    source: RoadSource
    timestamp: datetime | None = None
    warning: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    temperature_c: float | None = None
    severity: IncidentSeverity | None = None
    delay_s: int | None = None


class RoadConditionFeed(BaseModel):
    location: str
    conditions: list[RoadCondition] = []
    count: int = 0
    sources: dict[str, int] = {}
    rejected: int = 0
    fetched_at: datetime
