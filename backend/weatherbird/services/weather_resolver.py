"""Single best-effort current reading and per-day forecast from the provider chains."""

import asyncio
import logging
from datetime import date

from sqlalchemy.orm import Session

from weatherbird.database import SessionLocal
from weatherbird.errors import ForecastUnavailable, InvalidInput, NoProviderAvailable, ProviderUnavailable
from weatherbird.models.weather import WeatherObservation
from weatherbird.schemas.weather import ForecastDay, ProviderName, WeatherSnapshot
from weatherbird.services import (
    nws_client,
    owm_client,
    visual_crossing_client,
    weatherbit_client,
    weatherstack_client,
    xweather_client,
)
from weatherbird.services.fallback import ProviderAdapter, run_chain, run_single
from weatherbird.services.forecast_estimates import fill_estimates
from weatherbird.services.weather_validation import validate_forecast, validate_snapshot
from weatherbird.tasks.background import spawn_background

logger = logging.getLogger(__name__)

AUTO = "auto"

# Free and most reliable first, paid or narrower coverage later
CURRENT_CHAIN: list[ProviderAdapter[WeatherSnapshot]] = [
    ProviderAdapter(ProviderName.NWS, nws_client.fetch_current),
    ProviderAdapter(ProviderName.WEATHERBIT, weatherbit_client.fetch_current),
    ProviderAdapter(ProviderName.WEATHERSTACK, weatherstack_client.fetch_current),
    ProviderAdapter(ProviderName.VISUAL_CROSSING, visual_crossing_client.fetch_current),
    ProviderAdapter(ProviderName.OPENWEATHERMAP, owm_client.fetch_current),
    ProviderAdapter(ProviderName.XWEATHER, xweather_client.fetch_current),
]

# Daily totals first, then hourly aggregation, then 12-hour periods
FORECAST_CHAIN: list[ProviderAdapter[ForecastDay]] = [
    ProviderAdapter(ProviderName.WEATHERBIT, weatherbit_client.fetch_forecast),
    ProviderAdapter(ProviderName.VISUAL_CROSSING, visual_crossing_client.fetch_forecast),
    ProviderAdapter(ProviderName.NWS, nws_client.fetch_forecast),
    ProviderAdapter(ProviderName.XWEATHER, xweather_client.fetch_forecast),
]

# Same order, one multi-day download per provider
FORECAST_DAYS_CHAIN: list[ProviderAdapter[dict[date, ForecastDay]]] = [
    ProviderAdapter(ProviderName.WEATHERBIT, weatherbit_client.fetch_forecast_days),
    ProviderAdapter(ProviderName.VISUAL_CROSSING, visual_crossing_client.fetch_forecast_days),
    ProviderAdapter(ProviderName.NWS, nws_client.fetch_forecast_days),
    ProviderAdapter(ProviderName.XWEATHER, xweather_client.fetch_forecast_days),
]


def _parse_hint(provider_hint: str | ProviderName | None) -> ProviderName | None:
    if provider_hint is None or provider_hint == AUTO:
        return None
    try:
        return ProviderName(provider_hint)
    except ValueError:
        valid = ", ".join([AUTO] + [p.value for p in ProviderName])
        raise InvalidInput(f"Unknown provider '{provider_hint}'. Expected one of: {valid}", field="provider") from None


async def resolve(location: str, provider_hint: str | ProviderName | None = AUTO) -> WeatherSnapshot:
    """Current conditions for a location.

    With a specific provider hint only that provider is tried and its failure
    surfaces as ProviderUnavailable. Otherwise the chain is walked in order
    and NoProviderAvailable is raised if every provider fails.
    """
    if not location or not location.strip():
        raise InvalidInput("Location is required", field="location")

    hint = _parse_hint(provider_hint)
    if hint is not None:
        adapter = next(a for a in CURRENT_CHAIN if a.name == hint)
        snapshot = await run_single(adapter, location, validate=validate_snapshot)
    else:
        snapshot = await run_chain(CURRENT_CHAIN, location, validate=validate_snapshot, label=f"current weather for {location}")

    spawn_background(asyncio.to_thread(persist_snapshot, snapshot), f"persist-snapshot-{snapshot.source.value}")
    return snapshot


async def resolve_forecast(location: str, target_date: date) -> ForecastDay:
    """Forecast for one day with gaps estimated. Raises ForecastUnavailable when no provider answers."""
    try:
        day = await run_chain(FORECAST_CHAIN, location, target_date, validate=validate_forecast, label=f"forecast {target_date}")
    except NoProviderAvailable as e:
        raise ForecastUnavailable(target_date, "; ".join(f"{k}: {v}" for k, v in e.attempts.items())) from e
    return fill_estimates(day)


async def resolve_forecast_days(location: str, dates: list[date]) -> dict[date, ForecastDay]:
    """Forecasts for several days with one download per provider.

    Each day falls back on its own: a day the first provider lacks or returns
    unusable is looked up in the next provider's payload. Days no provider
    covers are absent from the result.
    """
    pending = sorted(set(dates))
    resolved: dict[date, ForecastDay] = {}
    for adapter in FORECAST_DAYS_CHAIN:
        if not pending:
            break
        try:
            days = await run_single(adapter, location, pending)
        except ProviderUnavailable as e:
            logger.warning("forecast days for %s: %s failed (%s), trying next provider", location, adapter.name.value, e.reason)
            continue
        for d in pending:
            day = days.get(d)
            if day is not None and not validate_forecast(day):
                resolved[d] = fill_estimates(day)
        pending = [d for d in pending if d not in resolved]

    if pending:
        logger.error("No forecast for %s on %s", location, ", ".join(d.isoformat() for d in pending))
    return resolved


def persist_snapshot(snapshot: WeatherSnapshot) -> None:
    db: Session = SessionLocal()
    try:
        db.add(WeatherObservation(
            location=snapshot.location,
            source=snapshot.source.value,
            observed_at=snapshot.timestamp,
            temperature_c=snapshot.temperature_c,
            humidity_pct=snapshot.humidity_pct,
            pressure_hpa=snapshot.pressure_hpa,
            wind_speed_ms=snapshot.wind_speed_ms,
            description=snapshot.description[:200],
        ))
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error("Failed to persist weather snapshot for %s: %s", snapshot.location, e)
    finally:
        db.close()
