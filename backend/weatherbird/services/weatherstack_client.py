import logging
from datetime import datetime, timezone

import httpx

from weatherbird.config import settings
from weatherbird.errors import ProviderUnavailable
from weatherbird.regions.definitions import coordinates_for
from weatherbird.schemas.weather import ProviderName, WeatherSnapshot
from weatherbird.services.units import kmh_to_ms

logger = logging.getLogger(__name__)

WEATHERSTACK_BASE = "http://api.weatherstack.com/current"
PROVIDER = ProviderName.WEATHERSTACK


async def fetch_current(location: str) -> WeatherSnapshot:
    """Weatherstack current conditions. Reports errors in a 200 body, not the status code."""
    if not settings.weatherstack_api_key:
        raise ProviderUnavailable(PROVIDER.value, "not configured")

    lat, lon = coordinates_for(location)
    params = {"access_key": settings.weatherstack_api_key, "query": f"{lat},{lon}", "units": "m"}
    try:
        async with httpx.AsyncClient(timeout=15) as client:
            resp = await client.get(WEATHERSTACK_BASE, params=params)
            resp.raise_for_status()
            data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Weatherstack current fetch failed for %s: %s", location, e)
        raise ProviderUnavailable(PROVIDER.value, str(e)) from e

    if data.get("error"):
        info = data["error"].get("info") or data["error"].get("type", "unknown error")
        logger.warning("Weatherstack returned an error for %s: %s", location, info)
        raise ProviderUnavailable(PROVIDER.value, info)
    try:
        return parse_current(data, location)
    except (KeyError, TypeError) as e:
        raise ProviderUnavailable(PROVIDER.value, f"malformed payload: {e}") from e


def parse_current(data: dict, location: str) -> WeatherSnapshot:
    current = data["current"]
    descriptions = current.get("weather_descriptions") or [""]
    epoch = (data.get("location") or {}).get("localtime_epoch")
    return WeatherSnapshot(
        location=location,
        temperature_c=current["temperature"],
        humidity_pct=current.get("humidity"),
        pressure_hpa=current.get("pressure"),
        description=descriptions[0],
        wind_speed_ms=kmh_to_ms(current.get("wind_speed")) or 0.0,
        timestamp=datetime.fromtimestamp(epoch, tz=timezone.utc) if epoch else datetime.now(timezone.utc),
        source=PROVIDER,
    )
