from fastapi import APIRouter, Query

from weatherbird.config import settings
from weatherbird.schemas.alerts import AlertFeed, UnifiedAlert
from weatherbird.schemas.weather import WeatherSnapshot
from weatherbird.services import alert_fusion, weather_resolver

router = APIRouter(prefix="/weather", tags=["weather"])


@router.get("", response_model=WeatherSnapshot)
async def get_current_weather(
    location: str = Query(settings.default_region),
    provider: str = Query(weather_resolver.AUTO),
):
    """Current conditions from the first provider that answers, or only `provider` when named."""
    return await weather_resolver.resolve(location, provider)


@router.get("/alerts", response_model=AlertFeed)
async def get_alerts(
    location: str = Query(settings.default_region),
    limit: int = Query(settings.alert_default_limit, ge=1),
):
    """Fused alerts from every source, most severe and newest first."""
    return await alert_fusion.fetch_alert_feed(location, limit)


@router.get("/alerts/active", response_model=list[UnifiedAlert])
async def get_active_alerts(
    location: str = Query(settings.default_region),
    limit: int = Query(settings.alert_default_limit, ge=1),
):
    """Banner view: cached fused alerts with expired ones removed."""
    return await alert_fusion.get_active_alerts(location, limit)
