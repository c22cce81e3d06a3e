import logging
import re
from datetime import date, datetime, timezone

import httpx

from weatherbird.config import settings
from weatherbird.errors import ProviderUnavailable
from weatherbird.regions.definitions import coordinates_for
from weatherbird.schemas.alerts import AlertSource, Severity, UnifiedAlert
from weatherbird.schemas.weather import ForecastDay, ProviderName, WeatherSnapshot
from weatherbird.services.units import f_to_c, kmh_to_ms, mph_to_ms, pa_to_hpa

logger = logging.getLogger(__name__)

NWS_BASE = "https://api.weather.gov"
PROVIDER = ProviderName.NWS

# NWS CAP vocabulary. An alert takes the higher of its severity and urgency mappings.
SEVERITY_MAP: dict[str, Severity] = {
    "extreme": Severity.EXTREME,
    "severe": Severity.SEVERE,
    "moderate": Severity.MODERATE,
    "minor": Severity.MINOR,
}
URGENCY_MAP: dict[str, Severity] = {
    "immediate": Severity.EXTREME,
    "expected": Severity.SEVERE,
    "future": Severity.MODERATE,
}


def _headers() -> dict[str, str]:
    return {"User-Agent": settings.nws_user_agent, "Accept": "application/geo+json"}


async def fetch_current(location: str) -> WeatherSnapshot:
    """Latest observation from the nearest station, described by the current forecast period."""
    lat, lon = coordinates_for(location)
    try:
        async with httpx.AsyncClient(headers=_headers(), timeout=15) as client:
            resp = await client.get(f"{NWS_BASE}/points/{lat},{lon}")
            resp.raise_for_status()
            props = resp.json()["properties"]

            forecast_resp = await client.get(props["forecast"])
            forecast_resp.raise_for_status()
            period = forecast_resp.json()["properties"]["periods"][0]

            obs = None
            station_url = props.get("observationStations")
            if station_url:
                stations_resp = await client.get(station_url)
                if stations_resp.status_code == 200:
                    features = stations_resp.json().get("features", [])
                    if features:
                        station_id = features[0]["properties"]["stationIdentifier"]
                        obs_resp = await client.get(f"{NWS_BASE}/stations/{station_id}/observations/latest")
                        if obs_resp.status_code == 200:
                            obs = obs_resp.json()["properties"]

            return parse_current(period, obs, location)
    except (httpx.HTTPError, KeyError, IndexError, ValueError, TypeError) as e:
        logger.warning("NWS current fetch failed for %s: %s", location, e)
        raise ProviderUnavailable(PROVIDER.value, str(e)) from e


def parse_current(period: dict, obs: dict | None, location: str) -> WeatherSnapshot:
    """Prefer the station observation, fall back to the forecast period."""
    obs = obs or {}
    temp_c = _value(obs, "temperature")
    if temp_c is None:
        temp_c = f_to_c(period.get("temperature"))

    wind_ms = kmh_to_ms(_value(obs, "windSpeed"))
    if wind_ms is None:
        wind_ms = mph_to_ms(_parse_wind_speed(period.get("windSpeed", ""))) or 0.0

    pressure = pa_to_hpa(_value(obs, "seaLevelPressure") or _value(obs, "barometricPressure"))
    humidity = _value(obs, "relativeHumidity")
    if humidity is None:
        humidity = _value(period, "relativeHumidity")

    timestamp = obs.get("timestamp")
    return WeatherSnapshot(
        location=location,
        temperature_c=temp_c,
        humidity_pct=humidity,
        pressure_hpa=pressure,
        description=obs.get("textDescription") or period.get("shortForecast") or period.get("detailedForecast", ""),
        wind_speed_ms=wind_ms,
        timestamp=timestamp or datetime.now(timezone.utc),
        source=PROVIDER,
    )


async def fetch_forecast(location: str, target_date: date) -> ForecastDay:
    """Daytime 12-hour period for the target date."""
    day = (await fetch_forecast_days(location, [target_date])).get(target_date)
    if day is None:
        raise ProviderUnavailable(PROVIDER.value, f"no daytime period for {target_date}")
    return day


async def fetch_forecast_days(location: str, dates: list[date]) -> dict[date, ForecastDay]:
    """One forecast download for several dates. Dates the 7-day window misses are absent."""
    lat, lon = coordinates_for(location)
    try:
        async with httpx.AsyncClient(headers=_headers(), timeout=15) as client:
            resp = await client.get(f"{NWS_BASE}/points/{lat},{lon}")
            resp.raise_for_status()
            forecast_resp = await client.get(resp.json()["properties"]["forecast"])
            forecast_resp.raise_for_status()
            periods = forecast_resp.json()["properties"]["periods"]
    except (httpx.HTTPError, KeyError, ValueError, TypeError) as e:
        logger.warning("NWS forecast fetch failed for %s: %s", location, e)
        raise ProviderUnavailable(PROVIDER.value, str(e)) from e

    days = {d: parse_forecast(periods, d) for d in dates}
    return {d: day for d, day in days.items() if day is not None}


def parse_forecast(periods: list[dict], target_date: date) -> ForecastDay | None:
    for p in periods:
        if not p.get("isDaytime"):
            continue
        start = datetime.fromisoformat(p["startTime"])
        if start.date() != target_date:
            continue

        temp_c = f_to_c(p.get("temperature"))
        # NWS only gives a probability of precipitation here; treat 100% as ~5 mm liquid
        pop = (p.get("probabilityOfPrecipitation") or {}).get("value")
        precip_mm = (pop / 100) * 5 if pop else 0.0
        return ForecastDay(
            target_date=target_date,
            temperature_c=temp_c,
            precipitation_mm=precip_mm,
            wind_speed_ms=mph_to_ms(_parse_wind_speed(p.get("windSpeed", ""))),
            condition=p.get("shortForecast") or p.get("detailedForecast") or "",
            estimated_fields=["precipitation_mm"],
            source=PROVIDER,
        )
    return None


async def fetch_alerts(location: str) -> list[UnifiedAlert]:
    """Active alerts for the configured NWS area. Location is not used by this source."""
    url = f"{NWS_BASE}/alerts/active"
    async with httpx.AsyncClient(headers=_headers(), timeout=15) as client:
        resp = await client.get(url, params={"area": settings.nws_alert_area})
        resp.raise_for_status()
        features = resp.json().get("features", [])
    return [normalize_alert(f) for f in features]


def normalize_alert(feature: dict) -> UnifiedAlert:
    p = feature.get("properties", {})
    event = p.get("event") or "Weather Alert"
    return UnifiedAlert(
        id=p.get("id") or feature.get("id", ""),
        name=event,
        type=p.get("event") or p.get("eventType") or "Unknown",
        severity=map_severity(p.get("severity"), p.get("urgency")),
        title=p.get("headline") or event,
        body=p.get("description") or p.get("summary") or "",
        issue_time=p.get("sent") or p.get("onset"),
        expires_time=p.get("expires"),
        source=AlertSource.NWS,
    )


def map_severity(severity: str | None, urgency: str | None) -> Severity:
    by_severity = SEVERITY_MAP.get((severity or "").lower(), Severity.MINOR)
    by_urgency = URGENCY_MAP.get((urgency or "").lower(), Severity.MINOR)
    return max(by_severity, by_urgency, key=lambda s: s.rank)


def _value(obs: dict, key: str) -> float | None:
    return (obs.get(key) or {}).get("value")


def _parse_wind_speed(wind_str: str) -> float | None:
    """Parse NWS wind speed string like '15 mph' or '10 to 20 mph'."""
    if not wind_str:
        return None
    numbers = re.findall(r"(\d+)", wind_str)
    if not numbers:
        return None
    return max(float(n) for n in numbers)
