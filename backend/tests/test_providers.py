from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from weatherbird.config import settings
from weatherbird.errors import ProviderUnavailable
from weatherbird.schemas.weather import ProviderName
from weatherbird.services import (
    nws_client,
    owm_client,
    visual_crossing_client,
    weatherbit_client,
    weatherstack_client,
    xweather_client,
)

TARGET = date(2026, 1, 15)


def _mock_async_client(mock_client_cls, payload, status_error: Exception | None = None):
    mock_resp = MagicMock()
    mock_resp.json.return_value = payload
    mock_resp.raise_for_status = MagicMock(side_effect=status_error)

    mock_client = AsyncMock()
    mock_client.get = AsyncMock(return_value=mock_resp)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return mock_client


def test_nws_current_prefers_station_observation():
    period = {"temperature": 20, "windSpeed": "10 mph", "shortForecast": "Snow Likely"}
    obs = {
        "temperature": {"value": -5.0},
        "windSpeed": {"value": 18.0},
        "relativeHumidity": {"value": 85.0},
        "barometricPressure": {"value": 101200},
        "textDescription": "Light Snow",
        "timestamp": "2026-01-15T11:54:00+00:00",
    }
    snapshot = nws_client.parse_current(period, obs, "Burlington")
    assert snapshot.temperature_c == -5.0
    assert snapshot.wind_speed_ms == pytest.approx(5.0)
    assert snapshot.pressure_hpa == pytest.approx(1012)
    assert snapshot.description == "Light Snow"
    assert snapshot.source == ProviderName.NWS


def test_nws_current_falls_back_to_forecast_period():
    period = {"temperature": 23, "windSpeed": "10 to 20 mph", "shortForecast": "Snow Showers"}
    snapshot = nws_client.parse_current(period, None, "Burlington")
    assert snapshot.temperature_c == pytest.approx(-5)
    assert snapshot.wind_speed_ms == pytest.approx(20 * 0.44704)


def test_nws_forecast_picks_daytime_period_for_date():
    periods = [
        {"isDaytime": False, "startTime": "2026-01-14T18:00:00-05:00", "temperature": 10},
        {
            "isDaytime": True,
            "startTime": "2026-01-15T06:00:00-05:00",
            "temperature": 23,
            "windSpeed": "15 mph",
            "shortForecast": "Heavy Snow",
            "probabilityOfPrecipitation": {"value": 80},
        },
    ]
    day = nws_client.parse_forecast(periods, TARGET)
    assert day.temperature_c == pytest.approx(-5)
    assert day.precipitation_mm == pytest.approx(4)
    assert day.condition == "Heavy Snow"
    assert nws_client.parse_forecast(periods, date(2026, 1, 20)) is None


def test_weatherbit_forecast_matches_valid_date():
    data = {"data": [
        {"valid_date": "2026-01-14", "temp": 1, "snow": 0},
        {"valid_date": "2026-01-15", "temp": -6, "precip": 12, "snow": 110, "wind_spd": 7.5,
         "weather": {"description": "Heavy snow"}},
    ]}
    day = weatherbit_client.parse_forecast(data, TARGET)
    assert day.snowfall_mm == 110
    assert day.wind_speed_ms == 7.5
    assert day.source == ProviderName.WEATHERBIT


def test_visual_crossing_forecast_converts_and_computes_trend():
    hours = [{"datetime": f"{h:02d}:00:00", "snow": 0.2 if h < 12 else 0.8, "windspeed": 10 if h < 12 else 28}
             for h in range(24)]
    data = {"days": [{"datetime": "2026-01-15", "temp": -3, "precip": 9, "snow": 12.0, "windspeed": 18,
                      "conditions": "Snow, Overcast", "hours": hours}]}
    day = visual_crossing_client.parse_forecast(data, TARGET)
    assert day.snowfall_mm == 120
    assert day.wind_speed_ms == pytest.approx(5)
    assert day.snowfall_trend_mm == pytest.approx(36)
    assert day.wind_trend_ms == pytest.approx(5)


def test_visual_crossing_forecast_missing_day_raises():
    with pytest.raises(ValueError):
        visual_crossing_client.parse_forecast({"days": []}, TARGET)


def test_xweather_forecast_period():
    response = [{"periods": [
        {"dateTimeISO": "2026-01-15T07:00:00-05:00", "avgTempC": -8, "precipMM": 8, "snowCM": 9.5,
         "iceaccumMM": 0, "windSpeedKPH": 36, "weather": "Snow"},
    ]}]
    day = xweather_client.parse_forecast(response, TARGET)
    assert day.snowfall_mm == 95
    assert day.ice_mm == 0
    assert day.wind_speed_ms == pytest.approx(10)


def test_weatherstack_current_uses_kmh():
    data = {"current": {"temperature": -2, "humidity": 70, "pressure": 1015, "wind_speed": 18,
                        "weather_descriptions": ["Light snow"]}}
    snapshot = weatherstack_client.parse_current(data, "Burlington")
    assert snapshot.wind_speed_ms == pytest.approx(5)
    assert snapshot.description == "Light snow"


@pytest.mark.asyncio
async def test_owm_current_fetch():
    payload = {"current": {"dt": 1768478400, "temp": -7.5, "humidity": 77, "pressure": 1019, "wind_speed": 4.1,
                           "weather": [{"description": "light snow"}]}}
    with patch.object(settings, "owm_api_key", "test-key"), \
            patch("weatherbird.services.owm_client.httpx.AsyncClient") as mock_client_cls:
        mock_client = _mock_async_client(mock_client_cls, payload)
        snapshot = await owm_client.fetch_current("Burlington")
    assert snapshot.temperature_c == -7.5
    assert snapshot.source == ProviderName.OPENWEATHERMAP
    assert mock_client.get.call_args.kwargs["params"]["units"] == "metric"


@pytest.mark.asyncio
async def test_missing_key_is_provider_unavailable():
    with patch.object(settings, "weatherbit_api_key", ""):
        with pytest.raises(ProviderUnavailable) as exc_info:
            await weatherbit_client.fetch_current("Burlington")
    assert exc_info.value.reason == "not configured"


@pytest.mark.asyncio
async def test_http_error_becomes_provider_unavailable():
    error = httpx.HTTPStatusError("429 Too Many Requests", request=MagicMock(), response=MagicMock())
    with patch.object(settings, "visual_crossing_api_key", "test-key"), \
            patch("weatherbird.services.visual_crossing_client.httpx.AsyncClient") as mock_client_cls:
        _mock_async_client(mock_client_cls, {}, status_error=error)
        with pytest.raises(ProviderUnavailable) as exc_info:
            await visual_crossing_client.fetch_current("Burlington")
    assert exc_info.value.provider == "visualcrossing"


@pytest.mark.asyncio
async def test_weatherstack_error_body_is_provider_unavailable():
    payload = {"success": False, "error": {"code": 104, "type": "usage_limit_reached", "info": "Monthly limit reached"}}
    with patch.object(settings, "weatherstack_api_key", "test-key"), \
            patch("weatherbird.services.weatherstack_client.httpx.AsyncClient") as mock_client_cls:
        _mock_async_client(mock_client_cls, payload)
        with pytest.raises(ProviderUnavailable) as exc_info:
            await weatherstack_client.fetch_current("Burlington")
    assert exc_info.value.reason == "Monthly limit reached"


def test_nws_current_leaves_unreported_fields_empty():
    obs = {
        "temperature": {"value": -5.0},
        "relativeHumidity": {"value": None},
        "seaLevelPressure": {"value": None},
        "barometricPressure": {"value": None},
    }
    snapshot = nws_client.parse_current({"windSpeed": "5 mph"}, obs, "Burlington")
    assert snapshot.humidity_pct is None
    assert snapshot.pressure_hpa is None


def test_nws_current_takes_humidity_from_forecast_period():
    period = {"temperature": 23, "windSpeed": "5 mph", "relativeHumidity": {"value": 88}}
    snapshot = nws_client.parse_current(period, None, "Burlington")
    assert snapshot.humidity_pct == 88


@pytest.mark.parametrize("parse, payload", [
    (weatherbit_client.parse_current, {"data": [{"temp": -3, "wind_spd": 4, "weather": {"description": "Snow"},
                                                 "ob_time": "2026-01-15 12:00"}]}),
    (weatherstack_client.parse_current, {"current": {"temperature": -3, "wind_speed": 10,
                                                     "weather_descriptions": ["Snow"]}}),
    (owm_client.parse_current, {"current": {"dt": 1768478400, "temp": -3, "wind_speed": 4,
                                            "weather": [{"description": "snow"}]}}),
])
def test_current_parsers_do_not_invent_humidity_or_pressure(parse, payload):
    snapshot = parse(payload, "Burlington")
    assert snapshot.humidity_pct is None
    assert snapshot.pressure_hpa is None


@pytest.mark.asyncio
async def test_weatherbit_forecast_days_share_one_download():
    payload = {"data": [
        {"valid_date": "2026-01-15", "temp": -4, "precip": 3, "snow": 30, "wind_spd": 4},
        {"valid_date": "2026-01-16", "temp": -6, "precip": 0, "snow": 0, "wind_spd": 2},
    ]}
    with patch.object(settings, "weatherbit_api_key", "test-key"), \
            patch("weatherbird.services.weatherbit_client.httpx.AsyncClient") as mock_cls:
        mock_client = _mock_async_client(mock_cls, payload)
        days = await weatherbit_client.fetch_forecast_days("Burlington", [TARGET, date(2026, 1, 16), date(2026, 1, 17)])
    assert sorted(days) == [TARGET, date(2026, 1, 16)]
    assert days[TARGET].snowfall_mm == 30
    mock_client.get.assert_awaited_once()
