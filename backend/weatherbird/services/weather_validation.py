"""Plausibility checks applied to a current-conditions snapshot before it is accepted.

Each check lowers a 0-100 confidence score; the result is averaged with the
provider's reliability. A snapshot is rejected when it has an invalid or
missing required field, or when the blended confidence is under 50.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from weatherbird.schemas.weather import ProviderName, WeatherSnapshot

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 50
MAX_AGE = timedelta(minutes=30)
CLOCK_SKEW = timedelta(minutes=1)

# Plausible for Vermont: -50 F to 110 F
TEMPERATURE_RANGE_C = (-45.0, 43.0)
PRESSURE_RANGE_HPA = (800.0, 1100.0)

SOURCE_RELIABILITY: dict[ProviderName, int] = {
    ProviderName.NWS: 95,
    ProviderName.WEATHERBIT: 85,
    ProviderName.WEATHERSTACK: 80,
    ProviderName.VISUAL_CROSSING: 75,
    ProviderName.OPENWEATHERMAP: 70,
    ProviderName.XWEATHER: 70,
}


@dataclass
class SnapshotAssessment:
    confidence: int
    reliability: int
    issues: list[str] = field(default_factory=list)
    blocking: list[str] = field(default_factory=list)

    @property
    def acceptable(self) -> bool:
        return not self.blocking and self.confidence >= MIN_CONFIDENCE


def assess_snapshot(snapshot: WeatherSnapshot, now: datetime | None = None) -> SnapshotAssessment:
    now = now or datetime.now(timezone.utc)
    score = 100.0
    issues: list[str] = []
    blocking: list[str] = []

    low, high = TEMPERATURE_RANGE_C
    if not low <= snapshot.temperature_c <= high:
        issues.append(f"temperature {snapshot.temperature_c:.1f}C outside plausible range")
        score -= 10

    if snapshot.humidity_pct is None:
        blocking.append("humidity missing")
        score -= 15
    elif not 0 <= snapshot.humidity_pct <= 100:
        blocking.append("invalid humidity")
        score -= 15

    low, high = PRESSURE_RANGE_HPA
    if snapshot.pressure_hpa is None:
        blocking.append("pressure missing")
        score -= 10
    elif not low <= snapshot.pressure_hpa <= high:
        blocking.append(f"invalid pressure {snapshot.pressure_hpa:.0f} hPa")
        score -= 10

    ts = snapshot.timestamp
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    if ts > now + CLOCK_SKEW:
        blocking.append("timestamp in the future")
        score -= 30
    elif now - ts > MAX_AGE:
        age_minutes = (now - ts).total_seconds() / 60
        issues.append(f"data is {age_minutes:.0f} minutes old")
        score -= min(30.0, age_minutes / 10)

    if not snapshot.location.strip():
        blocking.append("location missing")
        score -= 10

    reliability = SOURCE_RELIABILITY.get(snapshot.source, 50)
    confidence = round(max(0.0, min(100.0, (score + reliability) / 2)))
    return SnapshotAssessment(confidence=confidence, reliability=reliability, issues=issues + blocking, blocking=blocking)


def validate_snapshot(snapshot: WeatherSnapshot) -> list[str]:
    """Problems that disqualify the snapshot; empty when it is usable."""
    assessment = assess_snapshot(snapshot)
    if assessment.issues:
        logger.debug("%s snapshot issues: %s", snapshot.source.value, ", ".join(assessment.issues))
    if assessment.blocking:
        return assessment.blocking
    if assessment.confidence < MIN_CONFIDENCE:
        return [f"confidence {assessment.confidence} below {MIN_CONFIDENCE}"]
    return []


def validate_forecast(day) -> list[str]:
    """A forecast day with no temperature and no precipitation of any kind is useless."""
    if day.temperature_c is None and day.snowfall_mm is None and day.precipitation_mm is None:
        return ["forecast has no temperature or precipitation"]
    return []
