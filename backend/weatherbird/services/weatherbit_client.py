import logging
from datetime import date, datetime, timezone

import httpx

from weatherbird.config import settings
from weatherbird.errors import ProviderUnavailable
from weatherbird.regions.definitions import coordinates_for
from weatherbird.schemas.weather import ForecastDay, ProviderName, WeatherSnapshot

logger = logging.getLogger(__name__)

WEATHERBIT_BASE = "https://api.weatherbit.io/v2.0"
PROVIDER = ProviderName.WEATHERBIT


async def _get(path: str, location: str, **extra) -> dict:
    lat, lon = coordinates_for(location)
    params = {"lat": lat, "lon": lon, "key": settings.weatherbit_api_key, "units": "M", **extra}
    async with httpx.AsyncClient(timeout=15) as client:
        resp = await client.get(f"{WEATHERBIT_BASE}/{path}", params=params)
        resp.raise_for_status()
        return resp.json()


async def fetch_current(location: str) -> WeatherSnapshot:
    if not settings.weatherbit_api_key:
        raise ProviderUnavailable(PROVIDER.value, "not configured")
    try:
        return parse_current(await _get("current", location), location)
    except (httpx.HTTPError, KeyError, IndexError, ValueError, TypeError) as e:
        logger.warning("Weatherbit current fetch failed for %s: %s", location, e)
        raise ProviderUnavailable(PROVIDER.value, str(e)) from e


def parse_current(data: dict, location: str) -> WeatherSnapshot:
    obs = data["data"][0]
    ts = obs.get("ts")
    return WeatherSnapshot(
        location=location,
        temperature_c=obs["temp"],
        humidity_pct=obs.get("rh"),
        pressure_hpa=obs.get("slp") or obs.get("pres"),
        description=(obs.get("weather") or {}).get("description", ""),
        wind_speed_ms=obs.get("wind_spd") or 0.0,
        timestamp=datetime.fromtimestamp(ts, tz=timezone.utc) if ts else datetime.now(timezone.utc),
        source=PROVIDER,
    )


async def fetch_forecast(location: str, target_date: date) -> ForecastDay:
    """16-day daily forecast, picking the entry for target_date."""
    day = (await fetch_forecast_days(location, [target_date])).get(target_date)
    if day is None:
        raise ProviderUnavailable(PROVIDER.value, f"no forecast for {target_date}")
    return day


async def fetch_forecast_days(location: str, dates: list[date]) -> dict[date, ForecastDay]:
    if not settings.weatherbit_api_key:
        raise ProviderUnavailable(PROVIDER.value, "not configured")
    try:
        data = await _get("forecast/daily", location, days=16)
        days = {d: parse_forecast(data, d) for d in dates}
    except (httpx.HTTPError, KeyError, ValueError, TypeError) as e:
        logger.warning("Weatherbit forecast fetch failed for %s: %s", location, e)
        raise ProviderUnavailable(PROVIDER.value, str(e)) from e
    return {d: day for d, day in days.items() if day is not None}


def parse_forecast(data: dict, target_date: date) -> ForecastDay | None:
    for d in data.get("data", []):
        if d.get("valid_date") != target_date.isoformat():
            continue
        return ForecastDay(
            target_date=target_date,
            temperature_c=d.get("temp"),
            precipitation_mm=d.get("precip"),
            snowfall_mm=d.get("snow"),
            wind_speed_ms=d.get("wind_spd"),
            condition=(d.get("weather") or {}).get("description", ""),
            source=PROVIDER,
        )
    return None
