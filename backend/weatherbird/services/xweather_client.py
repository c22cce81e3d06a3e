import logging
from datetime import date, datetime, timezone

import httpx

from weatherbird.config import settings
from weatherbird.errors import ProviderUnavailable
from weatherbird.regions.definitions import coordinates_for
from weatherbird.schemas.alerts import AlertSource, Severity, UnifiedAlert
from weatherbird.schemas.road import RoadCondition, RoadSource, RoadSurface
from weatherbird.schemas.weather import ForecastDay, ProviderName, WeatherSnapshot
from weatherbird.services.units import cm_to_mm, f_to_c, inhg_to_hpa, kmh_to_ms, mph_to_ms

logger = logging.getLogger(__name__)

XWEATHER_BASE = "https://data.api.xweather.com"
PROVIDER = ProviderName.XWEATHER

SEVERITY_MAP: dict[str, Severity] = {s.value.lower(): s for s in Severity}
# VTEC significance codes when no explicit severity is present
SIGNIFICANCE_MAP: dict[str, Severity] = {"W": Severity.SEVERE}


def _configured() -> bool:
    return bool(settings.xweather_client_id and settings.xweather_client_secret)


def _location_param(location: str) -> str:
    lat, lon = coordinates_for(location)
    return f"{lat},{lon}"


async def _get(endpoint: str, location: str, **extra) -> list[dict]:
    """Xweather wraps everything in {success, error, response}."""
    params = {
        "format": "json",
        "client_id": settings.xweather_client_id,
        "client_secret": settings.xweather_client_secret,
        **extra,
    }
    async with httpx.AsyncClient(timeout=15) as client:
        resp = await client.get(f"{XWEATHER_BASE}/{endpoint}/{_location_param(location)}", params=params)
        resp.raise_for_status()
        data = resp.json()

    if not data.get("success"):
        error = data.get("error") or {}
        raise ValueError(error.get("description") or error.get("code") or "request unsuccessful")
    response = data.get("response") or []
    # Single-location endpoints may return an object instead of a list
    return response if isinstance(response, list) else [response]


async def fetch_current(location: str) -> WeatherSnapshot:
    if not _configured():
        raise ProviderUnavailable(PROVIDER.value, "not configured")
    try:
        return parse_current(await _get("observations", location), location)
    except (httpx.HTTPError, KeyError, IndexError, ValueError, TypeError) as e:
        logger.warning("Xweather current fetch failed for %s: %s", location, e)
        raise ProviderUnavailable(PROVIDER.value, str(e)) from e


def parse_current(response: list[dict], location: str) -> WeatherSnapshot:
    ob = response[0]["ob"]
    temp_c = ob.get("tempC")
    if temp_c is None:
        temp_c = f_to_c(ob.get("tempF"))
    if temp_c is None:
        raise ValueError("observation has no temperature")

    wind_ms = kmh_to_ms(ob.get("windSpeedKPH"))
    if wind_ms is None:
        wind_ms = mph_to_ms(ob.get("windSpeedMPH"))

    pressure = ob.get("pressureMB") or inhg_to_hpa(ob.get("pressureIN"))
    ts = ob.get("timestamp")
    return WeatherSnapshot(
        location=location,
        temperature_c=temp_c,
        humidity_pct=ob.get("humidity"),
        pressure_hpa=pressure,
        description=ob.get("weather") or ob.get("weatherPrimary") or "",
        wind_speed_ms=wind_ms or 0.0,
        timestamp=datetime.fromtimestamp(ts, tz=timezone.utc) if ts else datetime.now(timezone.utc),
        source=PROVIDER,
    )


async def fetch_forecast(location: str, target_date: date) -> ForecastDay:
    day = (await fetch_forecast_days(location, [target_date])).get(target_date)
    if day is None:
        raise ProviderUnavailable(PROVIDER.value, f"no forecast period for {target_date}")
    return day


async def fetch_forecast_days(location: str, dates: list[date]) -> dict[date, ForecastDay]:
    if not _configured():
        raise ProviderUnavailable(PROVIDER.value, "not configured")
    try:
        response = await _get("forecasts", location, filter="day", limit=8)
    except (httpx.HTTPError, ValueError, TypeError) as e:
        logger.warning("Xweather forecast fetch failed for %s: %s", location, e)
        raise ProviderUnavailable(PROVIDER.value, str(e)) from e

    days = {d: parse_forecast(response, d) for d in dates}
    return {d: day for d, day in days.items() if day is not None}


def parse_forecast(response: list[dict], target_date: date) -> ForecastDay | None:
    for block in response:
        for p in block.get("periods") or []:
            iso = p.get("dateTimeISO")
            if not iso or datetime.fromisoformat(iso).date() != target_date:
                continue

            temp_c = p.get("avgTempC", p.get("tempC"))
            if temp_c is None:
                temp_c = f_to_c(p.get("avgTempF", p.get("tempF")))
            wind_ms = kmh_to_ms(p.get("windSpeedKPH"))
            if wind_ms is None:
                wind_ms = mph_to_ms(p.get("windSpeedMPH"))

            return ForecastDay(
                target_date=target_date,
                temperature_c=temp_c,
                precipitation_mm=p.get("precipMM"),
                snowfall_mm=cm_to_mm(p.get("snowCM")),
                ice_mm=p.get("iceaccumMM"),
                wind_speed_ms=wind_ms,
                condition=p.get("weather") or p.get("weatherPrimary") or "",
                source=PROVIDER,
            )
    return None


async def fetch_alerts(location: str) -> list[UnifiedAlert]:
    """Alerts near a location. The region name itself maps to Xweather's ':auto' lookup."""
    if not _configured():
        logger.info("Xweather credentials not configured, skipping alerts")
        return []
    params = {
        "format": "json",
        "limit": settings.alert_default_limit,
        "client_id": settings.xweather_client_id,
        "client_secret": settings.xweather_client_secret,
    }
    target = ":auto" if location.lower() == settings.default_region.lower() else _location_param(location)
    async with httpx.AsyncClient(timeout=15) as client:
        resp = await client.get(f"{XWEATHER_BASE}/alerts/{target}", params=params)
        resp.raise_for_status()
        data = resp.json()

    response = data.get("response")
    if not data.get("success") or not isinstance(response, list):
        # Xweather reports "no alerts" as an unsuccessful response with a warn code
        error = data.get("error") or {}
        logger.info("Xweather alerts: %s", error.get("description") or error.get("code") or "none")
        return []
    return [normalize_alert(a) for a in response]


def normalize_alert(raw: dict) -> UnifiedAlert:
    details = raw.get("details") or {}
    timestamps = raw.get("timestamps") or {}
    name = raw.get("name") or details.get("name") or raw.get("title") or "Weather Alert"
    return UnifiedAlert(
        id=str(raw.get("id") or raw.get("type") or details.get("type") or ""),
        name=name,
        type=raw.get("type") or details.get("type") or name,
        severity=map_severity(raw.get("severity"), raw.get("significance")),
        title=raw.get("title") or name,
        body=raw.get("body") or details.get("body") or raw.get("description") or "",
        issue_time=raw.get("issueTimeISO") or raw.get("issued") or timestamps.get("issuedISO"),
        expires_time=raw.get("expiresISO") or raw.get("expires") or timestamps.get("expiresISO"),
        source=AlertSource.XWEATHER,
    )


def map_severity(severity: str | None, significance: str | None) -> Severity:
    if severity and severity.lower() in SEVERITY_MAP:
        return SEVERITY_MAP[severity.lower()]
    return SIGNIFICANCE_MAP.get((significance or "").upper(), Severity.MODERATE)


# Road weather summary index: 0 green, 1 yellow, 2 red
ROAD_SUMMARY: dict[str, tuple[RoadSurface, str | None]] = {
    "GREEN": (RoadSurface.CLEAR, None),
    "YELLOW": (RoadSurface.WET, "Potential for wet roads - extend caution"),
    "RED": (RoadSurface.UNKNOWN, "Adverse road conditions expected - use caution"),
}


async def fetch_road_weather(location: str) -> list[RoadCondition]:
    """Current-period road surface outlook for roads near a location."""
    if not _configured():
        logger.info("Xweather credentials not configured, skipping road weather")
        return []
    return parse_road_weather(await _get("roadweather", location), location)


def parse_road_weather(response: list[dict], location: str) -> list[RoadCondition]:
    conditions = []
    for item in response:
        periods = item.get("periods") or []
        if not periods:
            continue
        current = periods[0]
        surface, warning = ROAD_SUMMARY.get((current.get("summary") or "").upper(), (RoadSurface.UNKNOWN, None))
        loc = item.get("loc") or item.get("location") or {}
        conditions.append(RoadCondition(
            route=(item.get("road") or {}).get("name") or (item.get("place") or {}).get("name") or location,
            condition=surface,
            source=RoadSource.XWEATHER,
            timestamp=current.get("dateTimeISO"),
            warning=warning,
            latitude=loc.get("lat"),
            longitude=loc.get("long", loc.get("lon")),
        ))
    return conditions
