"""Merge alerts from every configured source into one deduplicated, ranked list.

Sources are fetched concurrently. A failing or slow source contributes an empty
list and never aborts the fusion. Expiry is not applied here because "now" is a
read-time concept and the fused list may be cached; see `active_alerts`.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable

from weatherbird.config import settings
from weatherbird.errors import InvalidInput
from weatherbird.schemas.alerts import AlertFeed, AlertSource, UnifiedAlert
from weatherbird.services import nws_client, xweather_client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlertSourceAdapter:
    source: AlertSource
    fetch: Callable[[str], Awaitable[list[UnifiedAlert]]]


ALERT_SOURCES: list[AlertSourceAdapter] = [
    AlertSourceAdapter(AlertSource.XWEATHER, xweather_client.fetch_alerts),
    AlertSourceAdapter(AlertSource.NWS, nws_client.fetch_alerts),
]

# Locations other than the scheduled region kept at most; the oldest is evicted
ALERT_CACHE_MAX_LOCATIONS = 64


@dataclass
class _CachedFeed:
    fetched_at: datetime
    alerts: list[UnifiedAlert]


# Latest fused list per location, untruncated. The scheduler keeps the default
# region fresh; other locations are re-fetched on read once stale.
_alert_cache: dict[str, _CachedFeed] = {}


async def _fetch_guarded(adapter: AlertSourceAdapter, location: str) -> list[UnifiedAlert]:
    try:
        return await asyncio.wait_for(adapter.fetch(location), timeout=settings.provider_timeout_seconds)
    except Exception as e:
        logger.warning("Alert source %s failed for %s: %s", adapter.source.value, location, e)
        return []


def fuse(batches: list[list[UnifiedAlert]]) -> list[UnifiedAlert]:
    """Dedup on (source, id, type) with the later-fetched alert winning, then rank."""
    merged: dict[tuple[str, str, str], UnifiedAlert] = {}
    for batch in batches:
        for alert in batch:
            merged[alert.dedup_key] = alert
    return sorted(merged.values(), key=_rank_key, reverse=True)


def _rank_key(alert: UnifiedAlert) -> tuple[int, float]:
    # Missing issue time sorts as oldest
    issued = alert.issue_time.timestamp() if alert.issue_time else float("-inf")
    return alert.severity.rank, issued


def _check_limit(limit) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise InvalidInput("limit must be a positive integer", field="limit", value=limit)
    return limit


async def fetch_alerts(location: str, limit: int | None = None) -> list[UnifiedAlert]:
    return (await fetch_alert_feed(location, limit)).alerts


async def fetch_alert_feed(location: str, limit: int | None = None) -> AlertFeed:
    """Fused alerts plus how many each source contributed before truncation."""
    limit = _check_limit(settings.alert_default_limit if limit is None else limit)

    batches = await asyncio.gather(*(_fetch_guarded(a, location) for a in ALERT_SOURCES))
    fused = fuse(list(batches))

    sources = {a.source.value: len(batch) for a, batch in zip(ALERT_SOURCES, batches)}
    logger.info("Fused %d alerts for %s from %s", len(fused), location, sources)

    alerts = fused[:limit]
    feed = AlertFeed(
        location=location,
        alerts=alerts,
        count=len(alerts),
        sources=sources,
        fetched_at=datetime.now(timezone.utc),
    )
    _store(location, fused, feed.fetched_at)
    return feed


def _cache_key(location: str) -> str:
    return " ".join(location.lower().split())


def _store(location: str, alerts: list[UnifiedAlert], fetched_at: datetime) -> None:
    key = _cache_key(location)
    _alert_cache.pop(key, None)
    _alert_cache[key] = _CachedFeed(fetched_at=fetched_at, alerts=alerts)

    region = _cache_key(settings.default_region)
    others = [k for k in _alert_cache if k != region]
    # Insertion order is fetch order, so the first keys are the stalest
    for stale in others[:max(0, len(others) - ALERT_CACHE_MAX_LOCATIONS)]:
        del _alert_cache[stale]


def _is_fresh(entry: _CachedFeed, now: datetime) -> bool:
    return now - entry.fetched_at < timedelta(minutes=settings.alert_refresh_interval)


def active_alerts(alerts: list[UnifiedAlert], now: datetime | None = None) -> list[UnifiedAlert]:
    """Drop alerts that have expired as of `now`. Order is preserved."""
    now = now or datetime.now(timezone.utc)
    return [a for a in alerts if a.is_active(now)]


async def get_active_alerts(location: str, limit: int | None = None) -> list[UnifiedAlert]:
    """Banner view: the cached feed while fresh, filtered for expiry at read time."""
    limit = _check_limit(settings.alert_default_limit if limit is None else limit)
    now = datetime.now(timezone.utc)
    entry = _alert_cache.get(_cache_key(location))
    if entry is None or not _is_fresh(entry, now):
        await fetch_alert_feed(location, limit)
        entry = _alert_cache[_cache_key(location)]
    return active_alerts(entry.alerts, now)[:limit]


async def refresh_cache(location: str | None = None) -> None:
    location = location or settings.default_region
    await fetch_alert_feed(location)
