import logging
from datetime import date, datetime, timezone

import httpx

from weatherbird.config import settings
from weatherbird.errors import ProviderUnavailable
from weatherbird.regions.definitions import coordinates_for
from weatherbird.schemas.weather import ForecastDay, ProviderName, WeatherSnapshot
from weatherbird.services.units import cm_to_mm, kmh_to_ms

logger = logging.getLogger(__name__)

VC_BASE = "https://weather.visualcrossing.com/VisualCrossingWebServices/rest/services/timeline"
PROVIDER = ProviderName.VISUAL_CROSSING

MORNING_HOURS = range(6, 12)
AFTERNOON_HOURS = range(12, 18)


def _location_param(location: str) -> str:
    lat, lon = coordinates_for(location)
    return f"{lat},{lon}"


async def _get(url: str, include: str) -> dict:
    params = {
        "key": settings.visual_crossing_api_key,
        "unitGroup": "metric",
        "include": include,
        "contentType": "json",
    }
    async with httpx.AsyncClient(timeout=15) as client:
        resp = await client.get(url, params=params)
        resp.raise_for_status()
        return resp.json()


async def fetch_current(location: str) -> WeatherSnapshot:
    """Fetch current conditions from Visual Crossing Timeline API."""
    if not settings.visual_crossing_api_key:
        raise ProviderUnavailable(PROVIDER.value, "not configured")
    try:
        data = await _get(f"{VC_BASE}/{_location_param(location)}/today", "current")
        return parse_current(data, location)
    except (httpx.HTTPError, KeyError, ValueError, TypeError) as e:
        logger.warning("Visual Crossing current fetch failed for %s: %s", location, e)
        raise ProviderUnavailable(PROVIDER.value, str(e)) from e


def parse_current(data: dict, location: str) -> WeatherSnapshot:
    current = data["currentConditions"]
    epoch = current.get("datetimeEpoch")
    return WeatherSnapshot(
        location=location,
        temperature_c=current["temp"],
        humidity_pct=current.get("humidity"),
        pressure_hpa=current.get("pressure"),
        description=current.get("conditions") or "",
        wind_speed_ms=kmh_to_ms(current.get("windspeed")) or 0.0,
        timestamp=datetime.fromtimestamp(epoch, tz=timezone.utc) if epoch else datetime.now(timezone.utc),
        source=PROVIDER,
    )


async def fetch_forecast(location: str, target_date: date) -> ForecastDay:
    """Daily totals for one date, with morning/afternoon trends from the hourly data."""
    day = (await fetch_forecast_days(location, [target_date])).get(target_date)
    if day is None:
        raise ProviderUnavailable(PROVIDER.value, f"no forecast day for {target_date}")
    return day


async def fetch_forecast_days(location: str, dates: list[date]) -> dict[date, ForecastDay]:
    """One timeline request spanning the first to the last date."""
    if not settings.visual_crossing_api_key:
        raise ProviderUnavailable(PROVIDER.value, "not configured")
    start, end = min(dates), max(dates)
    url = f"{VC_BASE}/{_location_param(location)}/{start.isoformat()}/{end.isoformat()}"
    try:
        data = await _get(url, "days,hours")
    except (httpx.HTTPError, ValueError, TypeError) as e:
        logger.warning("Visual Crossing forecast fetch failed for %s: %s", location, e)
        raise ProviderUnavailable(PROVIDER.value, str(e)) from e

    days: dict[date, ForecastDay] = {}
    for d in dates:
        try:
            days[d] = parse_forecast(data, d)
        except (KeyError, IndexError, ValueError, TypeError) as e:
            logger.debug("Visual Crossing has no usable day %s for %s: %s", d, location, e)
    return days


def parse_forecast(data: dict, target_date: date) -> ForecastDay:
    day = next((d for d in data["days"] if d.get("datetime") == target_date.isoformat()), None)
    if day is None:
        raise ValueError(f"no forecast day for {target_date}")
    hours = day.get("hours") or []

    # Hourly snow is in cm under the metric unit group
    morning = [h for h in hours if _hour(h) in MORNING_HOURS]
    afternoon = [h for h in hours if _hour(h) in AFTERNOON_HOURS]
    snow_trend = wind_trend = None
    if morning and afternoon:
        snow_trend = cm_to_mm(_total(afternoon, "snow") - _total(morning, "snow"))
        wind_trend = kmh_to_ms(_mean(afternoon, "windspeed") - _mean(morning, "windspeed"))

    return ForecastDay(
        target_date=target_date,
        temperature_c=day.get("temp"),
        precipitation_mm=day.get("precip"),
        snowfall_mm=cm_to_mm(day.get("snow")),
        ice_mm=None,
        wind_speed_ms=kmh_to_ms(day.get("windspeed")),
        condition=day.get("conditions") or day.get("description") or "",
        snowfall_trend_mm=snow_trend,
        wind_trend_ms=wind_trend,
        source=PROVIDER,
    )


def _hour(h: dict) -> int:
    return int(h.get("datetime", "00:00:00").split(":")[0])


def _total(hours: list[dict], key: str) -> float:
    return sum(h.get(key) or 0 for h in hours)


def _mean(hours: list[dict], key: str) -> float:
    return _total(hours, key) / len(hours)
