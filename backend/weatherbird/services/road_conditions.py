"""Road conditions from every configured source, normalized to one record type.

Three categories are fetched concurrently: road-relevant NWS warnings, Xweather
road surface forecasts and TomTom traffic incidents. A failing or slow source
contributes nothing and the others still come through. Reports are validated
and near-duplicates dropped before they are returned.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable

from weatherbird.config import settings
from weatherbird.schemas.alerts import UnifiedAlert
from weatherbird.schemas.road import RoadCondition, RoadConditionFeed, RoadSource, RoadSurface
from weatherbird.services import nws_client, tomtom_client, xweather_client

logger = logging.getLogger(__name__)

ROAD_EVENT_WORDS = ("winter", "ice", "snow", "flood", "wind", "freeze")
# Reports closer than this, in degrees, on the same route are the same report
DEDUP_DISTANCE_DEG = 0.01
STALE_AFTER = timedelta(hours=24)


@dataclass(frozen=True)
class RoadSourceAdapter:
    source: RoadSource
    fetch: Callable[[str], Awaitable[list[RoadCondition]]]


async def fetch_nws_road_warnings(location: str) -> list[RoadCondition]:
    return [warning_to_condition(a) for a in await nws_client.fetch_alerts(location) if is_road_relevant(a)]


ROAD_SOURCES: list[RoadSourceAdapter] = [
    RoadSourceAdapter(RoadSource.NWS, fetch_nws_road_warnings),
    RoadSourceAdapter(RoadSource.XWEATHER, xweather_client.fetch_road_weather),
    RoadSourceAdapter(RoadSource.TOMTOM, tomtom_client.fetch_incidents),
]


def is_road_relevant(alert: UnifiedAlert) -> bool:
    event = alert.type.lower()
    return any(word in event for word in ROAD_EVENT_WORDS)


def warning_to_condition(alert: UnifiedAlert) -> RoadCondition:
    event = alert.type.lower()
    if "ice" in event or "freeze" in event:
        surface = RoadSurface.ICE
    elif "snow" in event or "winter" in event:
        surface = RoadSurface.SNOW_COVERED
    elif "flood" in event:
        surface = RoadSurface.CLOSED
    elif "wind" in event or "storm" in event:
        surface = RoadSurface.WET
    else:
        surface = RoadSurface.UNKNOWN
    return RoadCondition(
        route=alert.name,
        condition=surface,
        source=RoadSource.NWS,
        timestamp=alert.issue_time or datetime.now(timezone.utc),
        warning=alert.title,
    )


async def _fetch_guarded(adapter: RoadSourceAdapter, location: str) -> list[RoadCondition]:
    try:
        return await asyncio.wait_for(adapter.fetch(location), timeout=settings.provider_timeout_seconds)
    except Exception as e:
        logger.warning("Road source %s failed for %s: %s", adapter.source.value, location, e)
        return []


def _has_coordinates(c: RoadCondition) -> bool:
    return c.latitude is not None and c.longitude is not None


def validate_condition(c: RoadCondition, now: datetime) -> list[str]:
    """Blocking problems only. Odd timestamps are logged and kept."""
    problems = []
    if _has_coordinates(c) and not (-90 <= c.latitude <= 90 and -180 <= c.longitude <= 180):
        problems.append(f"coordinates out of range: {c.latitude}, {c.longitude}")
    if not c.route.strip() and not _has_coordinates(c):
        problems.append("no route and no coordinates")
    if c.timestamp is None:
        problems.append("no timestamp")
    else:
        ts = c.timestamp if c.timestamp.tzinfo else c.timestamp.replace(tzinfo=timezone.utc)
        if ts > now + timedelta(minutes=5):
            logger.debug("Road report for %s is timestamped in the future: %s", c.route, ts)
        elif now - ts > STALE_AFTER:
            logger.debug("Road report for %s is older than a day: %s", c.route, ts)
    return problems


def _same_report(a: RoadCondition, b: RoadCondition) -> bool:
    if a.route != b.route or a.condition != b.condition:
        return False
    if _has_coordinates(a) and _has_coordinates(b):
        return (abs(a.latitude - b.latitude) < DEDUP_DISTANCE_DEG
                and abs(a.longitude - b.longitude) < DEDUP_DISTANCE_DEG)
    return not _has_coordinates(a) and not _has_coordinates(b)


def dedupe(conditions: list[RoadCondition]) -> list[RoadCondition]:
    """First report wins; source order is NWS, Xweather, TomTom."""
    kept: list[RoadCondition] = []
    for c in conditions:
        if not any(_same_report(c, k) for k in kept):
            kept.append(c)
    return kept


async def fetch_road_conditions(location: str) -> RoadConditionFeed:
    batches = await asyncio.gather(*(_fetch_guarded(a, location) for a in ROAD_SOURCES))
    now = datetime.now(timezone.utc)

    valid: list[RoadCondition] = []
    rejected = 0
    for c in (c for batch in batches for c in batch):
        problems = validate_condition(c, now)
        if problems:
            logger.debug("Dropping %s road report for %s: %s", c.source.value, c.route, "; ".join(problems))
            rejected += 1
            continue
        valid.append(c)

    conditions = dedupe(valid)
    sources = {a.source.value: len(batch) for a, batch in zip(ROAD_SOURCES, batches)}
    logger.info("Collected %d road reports for %s from %s (%d rejected)", len(conditions), location, sources, rejected)
    return RoadConditionFeed(
        location=location,
        conditions=conditions,
        count=len(conditions),
        sources=sources,
        rejected=rejected,
        fetched_at=now,
    )
