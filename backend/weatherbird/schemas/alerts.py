from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, field_validator


class Severity(str, Enum):
    MINOR = "Minor"
    MODERATE = "Moderate"
    SEVERE = "Severe"
    EXTREME = "Extreme"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.MINOR: 1,
    Severity.MODERATE: 2,
    Severity.SEVERE: 3,
    Severity.EXTREME: 4,
}


class AlertSource(str, Enum):
    XWEATHER = "Xweather"
    NWS = "NWS"


class UnifiedAlert(BaseModel):
    id: str  # scoped to its source
    name: str
    type: str
    severity: Severity
    title: str
    body: str = ""
    issue_time: datetime | None = None
    expires_time: datetime | None = None
    source: AlertSource

    @field_validator("issue_time", "expires_time")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def dedup_key(self) -> tuple[str, str, str]:
        return (self.source.value, self.id, self.type)

    def is_active(self, now: datetime) -> bool:
        return self.expires_time is None or self.expires_time > now


class AlertFeed(BaseModel):
    location: str
    alerts: list[UnifiedAlert] = []
    count: int = 0
    sources: dict[str, int] = {}
    fetched_at: datetime
