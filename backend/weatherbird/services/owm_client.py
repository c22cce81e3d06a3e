import logging
from datetime import datetime, timezone

import httpx

from weatherbird.config import settings
from weatherbird.errors import ProviderUnavailable
from weatherbird.regions.definitions import coordinates_for
from weatherbird.schemas.weather import ProviderName, WeatherSnapshot

logger = logging.getLogger(__name__)

OWM_BASE = "https://api.openweathermap.org/data/3.0/onecall"
PROVIDER = ProviderName.OPENWEATHERMAP


async def fetch_current(location: str) -> WeatherSnapshot:
    """Fetch current weather from OpenWeatherMap One Call API."""
    if not settings.owm_api_key:
        raise ProviderUnavailable(PROVIDER.value, "not configured")

    lat, lon = coordinates_for(location)
    params = {
        "lat": lat,
        "lon": lon,
        "appid": settings.owm_api_key,
        "units": "metric",
        "exclude": "minutely,hourly,daily,alerts",
    }
    try:
        async with httpx.AsyncClient(timeout=15) as client:
            resp = await client.get(OWM_BASE, params=params)
            resp.raise_for_status()
            return parse_current(resp.json(), location)
    except (httpx.HTTPError, KeyError, ValueError, TypeError) as e:
        logger.warning("OWM current fetch failed for %s: %s", location, e)
        raise ProviderUnavailable(PROVIDER.value, str(e)) from e


def parse_current(data: dict, location: str) -> WeatherSnapshot:
    current = data["current"]
    return WeatherSnapshot(
        location=location,
        temperature_c=current["temp"],
        humidity_pct=current.get("humidity"),
        pressure_hpa=current.get("pressure"),
        description=(current.get("weather") or [{}])[0].get("description", ""),
        wind_speed_ms=current.get("wind_speed", 0.0),
        timestamp=datetime.fromtimestamp(current["dt"], tz=timezone.utc),
        source=PROVIDER,
    )
