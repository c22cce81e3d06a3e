from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from weatherbird.errors import ForecastUnavailable
from weatherbird.schemas.district import Defaulted, Matched, Thresholds
from weatherbird.schemas.road import RoadCondition, RoadConditionFeed, RoadSource, RoadSurface
from weatherbird.schemas.weather import ForecastDay, ProviderName
from weatherbird.services import snow_day
from weatherbird.services.district_resolver import default_district, resolve
from weatherbird.services.units import in_to_mm
from weatherbird.tasks.background import drain

REAL_RECORD = snow_day.record_prediction
TARGET = date(2026, 1, 15)


def _forecast(**kwargs) -> ForecastDay:
    defaults = {
        "target_date": TARGET,
        "temperature_c": -4.0,
        "precipitation_mm": 0.0,
        "snowfall_mm": 0.0,
        "ice_mm": 0.0,
        "wind_speed_ms": 3.0,
        "condition": "Cloudy",
        "source": ProviderName.WEATHERBIT,
    }
    defaults.update(kwargs)
    return ForecastDay(**defaults)


def _thresholds(full_in: float = 4, delay_in: float = 2, **kwargs) -> Thresholds:
    defaults = {
        "full_closing_snowfall_mm": in_to_mm(full_in),
        "delay_snowfall_mm": in_to_mm(delay_in),
        "ice_mm": in_to_mm(0.25),
        "cold_temperature_c": -17.8,
        "wind_speed_ms": 13.4,
    }
    defaults.update(kwargs)
    return Thresholds(**defaults)


@pytest.mark.parametrize(
    "probability, label",
    [(100, "high"), (75, "high"), (74, "moderate"), (55, "moderate"), (54, "low"), (1, "low"), (0, "none")],
)
def test_category_cut_points(probability, label):
    assert snow_day.category_for(probability) == label


def test_snowfall_score_is_monotonic():
    scores = [snow_day.snowfall_score(mm, 100) for mm in range(0, 300, 5)]
    assert scores == sorted(scores)
    assert snow_day.snowfall_score(100, 100) == 75


@pytest.mark.parametrize("snow_in", [0, 0.5, 1, 2, 3, 4, 6, 10, 20])
@pytest.mark.parametrize("ice_in", [0, 0.05, 0.25, 0.5])
@pytest.mark.parametrize("wind_mph", [0, 20, 45])
@pytest.mark.parametrize("temp_f", [-20, 5, 30])
@pytest.mark.parametrize("full_in, delay_in", [(4, 2), (6, 3), (3, 3), (2, 4)])
def test_delay_never_below_full_closing(snow_in, ice_in, wind_mph, temp_f, full_in, delay_in):
    forecast = _forecast(
        snowfall_mm=in_to_mm(snow_in),
        ice_mm=in_to_mm(ice_in),
        wind_speed_ms=wind_mph * 0.44704,
        temperature_c=(temp_f - 32) * 5 / 9,
        condition="Freezing rain developing later" if ice_in else "Snow",
    )
    probs = snow_day.score_day(forecast, _thresholds(full_in, delay_in)).probabilities()
    assert probs.delay >= probs.full_closing
    assert 0 <= probs.early_dismissal <= snow_day.EARLY_DISMISSAL_CAP


def test_six_inches_against_four_inch_threshold_is_high(lookup):
    resolution = resolve("05401", lookup)
    assert isinstance(resolution, Matched)
    forecast = _forecast(snowfall_mm=in_to_mm(6))
    result = snow_day.build_result(resolution, forecast)

    assert result.categories.full_closing == "high"
    assert result.probabilities.full_closing >= 75
    assert any("exceeding full-closing threshold of 4.0 inches" in f for f in result.factors)
    assert result.factors[0].startswith("6.0 inches of snowfall forecast")
    assert result.thresholds == resolution.district.thresholds


def test_no_snow_no_ice_is_none():
    probs = snow_day.score_day(_forecast(), _thresholds()).probabilities()
    assert probs.full_closing == 0
    assert probs.delay == 0


def test_ice_at_threshold_bumps_scores():
    plain = snow_day.score_day(_forecast(snowfall_mm=in_to_mm(1)), _thresholds()).probabilities()
    icy = snow_day.score_day(
        _forecast(snowfall_mm=in_to_mm(1), ice_mm=in_to_mm(0.3)), _thresholds()
    ).probabilities()
    assert icy.full_closing >= plain.full_closing + 30


def test_wind_and_cold_raise_all_scores():
    calm = snow_day.score_day(_forecast(snowfall_mm=in_to_mm(2)), _thresholds()).probabilities()
    harsh = snow_day.score_day(
        _forecast(snowfall_mm=in_to_mm(2), wind_speed_ms=20, temperature_c=-25), _thresholds()
    )
    probs = harsh.probabilities()
    assert probs.full_closing > calm.full_closing
    assert probs.early_dismissal > calm.early_dismissal
    assert any(f.startswith("High winds") for f in harsh.factors)
    assert any(f.startswith("Extreme cold") for f in harsh.factors)


def test_early_dismissal_prefers_trend_data():
    base = _forecast(snowfall_mm=in_to_mm(2))
    rising = base.model_copy(update={"snowfall_trend_mm": 10.0})
    assert (
        snow_day.score_day(rising, _thresholds()).probabilities().early_dismissal
        > snow_day.score_day(base, _thresholds()).probabilities().early_dismissal
    )


def test_early_dismissal_falls_back_to_condition_text():
    score = snow_day.score_day(_forecast(condition="Snow developing in the afternoon"), _thresholds())
    assert score.probabilities().early_dismissal > 0
    assert "Conditions expected to worsen later in the day" in score.factors


def test_early_dismissal_is_capped():
    forecast = _forecast(
        snowfall_mm=in_to_mm(20), snowfall_trend_mm=50, wind_trend_ms=10, wind_speed_ms=25, temperature_c=-30,
    )
    assert snow_day.score_day(forecast, _thresholds()).probabilities().early_dismissal == 70


def test_confidence_lower_for_defaulted_district_and_missing_fields(lookup):
    matched = resolve("05401", lookup)
    defaulted = Defaulted(default_district("Stowe"))
    full = _forecast(snowfall_mm=10)
    sparse = ForecastDay(target_date=TARGET, precipitation_mm=2.0, temperature_c=-2)

    assert snow_day.compute_confidence(full, matched) == snow_day.CONFIDENCE_BASE
    assert snow_day.compute_confidence(full, defaulted) < snow_day.compute_confidence(full, matched)
    assert snow_day.compute_confidence(sparse, matched) < snow_day.compute_confidence(full, matched)
    assert snow_day.compute_confidence(sparse, defaulted) >= snow_day.CONFIDENCE_FLOOR


def test_missing_inputs_still_produce_a_result(lookup):
    result = snow_day.build_result(Defaulted(default_district("Stowe")), ForecastDay(target_date=TARGET))
    assert result.defaulted_district
    assert result.confidence >= snow_day.CONFIDENCE_FLOOR
    assert result.categories.full_closing == "none"


@pytest.mark.asyncio
async def test_predict_single_day_records_in_background(lookup):
    forecast = _forecast(snowfall_mm=in_to_mm(6))
    with patch("weatherbird.services.snow_day.weather_resolver.resolve_forecast", AsyncMock(return_value=forecast)) as mock_fc:
        result = await snow_day.predict("05401", TARGET, lookup=lookup)
        await drain()
    assert result.district_name == "Burlington School District"
    assert result.predicted_for_date == TARGET
    mock_fc.assert_awaited_once_with("44.4759,-73.2121", TARGET)
    snow_day.record_prediction.assert_called_once_with(result)


@pytest.mark.asyncio
async def test_predict_single_day_fails_without_forecast(lookup):
    with patch(
        "weatherbird.services.snow_day.weather_resolver.resolve_forecast",
        AsyncMock(side_effect=ForecastUnavailable(TARGET, "all providers failed")),
    ):
        with pytest.raises(ForecastUnavailable):
            await snow_day.predict("05401", TARGET, lookup=lookup)


@pytest.mark.asyncio
async def test_recording_failure_does_not_fail_prediction(lookup):
    broken_session = MagicMock()
    broken_session.add.side_effect = RuntimeError("disk full")
    forecast = _forecast(snowfall_mm=in_to_mm(1))
    with patch("weatherbird.services.snow_day.weather_resolver.resolve_forecast", AsyncMock(return_value=forecast)), \
            patch.object(snow_day, "record_prediction", REAL_RECORD), \
            patch("weatherbird.services.snow_day.SessionLocal", return_value=broken_session):
        result = await snow_day.predict("05401", TARGET, lookup=lookup)
        await drain()
    assert result.probabilities.full_closing > 0
    broken_session.rollback.assert_called_once()


@pytest.mark.asyncio
async def test_week_is_in_date_order_whatever_the_payload_order(lookup):
    start = date(2026, 1, 10)
    days = [start + timedelta(days=i) for i in range(7)]
    forecasts = {d: _forecast(target_date=d, snowfall_mm=(d - start).days * 10) for d in reversed(days)}

    with patch.object(snow_day, "tomorrow", return_value=start), \
            patch("weatherbird.services.snow_day.weather_resolver.resolve_forecast_days",
                  AsyncMock(return_value=forecasts)) as mock_days:
        week = await snow_day.predict_week("05401", lookup=lookup)

    mock_days.assert_awaited_once_with("44.4759,-73.2121", days)
    dates = [p.predicted_for_date for p in week.predictions]
    assert dates == days
    assert all(p.thresholds is None for p in week.predictions)
    snow_day.record_prediction.assert_not_called()


@pytest.mark.asyncio
async def test_week_omits_days_without_forecast(lookup):
    start = date(2026, 1, 10)
    missing = {start + timedelta(days=2), start + timedelta(days=5)}
    forecasts = {
        start + timedelta(days=i): _forecast(target_date=start + timedelta(days=i))
        for i in range(7)
        if start + timedelta(days=i) not in missing
    }

    with patch.object(snow_day, "tomorrow", return_value=start), \
            patch("weatherbird.services.snow_day.weather_resolver.resolve_forecast_days",
                  AsyncMock(return_value=forecasts)):
        week = await snow_day.predict_week("05401", lookup=lookup)

    dates = [p.predicted_for_date for p in week.predictions]
    assert len(dates) == 5
    assert not missing & set(dates)
    assert dates == sorted(dates)


@pytest.mark.asyncio
async def test_week_with_no_forecast_at_all_fails(lookup):
    with patch("weatherbird.services.snow_day.weather_resolver.resolve_forecast_days", AsyncMock(return_value={})):
        with pytest.raises(ForecastUnavailable):
            await snow_day.predict_week("05401", lookup=lookup)


def test_format_prediction_converts_without_mutating(lookup):
    result = snow_day.build_result(
        resolve("05401", lookup),
        _forecast(snowfall_mm=in_to_mm(6), temperature_c=-10, wind_speed_ms=10, ice_mm=in_to_mm(0.1)),
    )
    before = result.model_dump()
    response = snow_day.format_prediction(result)

    assert response.forecast.temperature_f == 14
    assert response.forecast.snowfall_in == 6.0
    assert response.forecast.ice_in == 0.1
    assert response.forecast.wind_speed_mph == 22
    assert response.thresholds.full_closing_snowfall_in == 4.0
    assert response.district == "Burlington School District"
    assert result.model_dump() == before


@pytest.mark.asyncio
async def test_road_ice_report_raises_next_day_prediction(lookup):
    start = date(2026, 1, 10)
    icy = RoadConditionFeed(
        location="44.4759,-73.2121",
        conditions=[RoadCondition(route="I-89", condition=RoadSurface.ICE, source=RoadSource.TOMTOM)],
        fetched_at=datetime.now(timezone.utc),
    )
    forecast = _forecast(target_date=start)
    with patch.object(snow_day, "tomorrow", return_value=start), \
            patch("weatherbird.services.snow_day.weather_resolver.resolve_forecast", AsyncMock(return_value=forecast)), \
            patch("weatherbird.services.snow_day.road_conditions.fetch_road_conditions",
                  AsyncMock(return_value=icy)):
        iced = await snow_day.predict("05401", start, lookup=lookup)
    plain = snow_day.build_result(resolve("05401", lookup), forecast)

    assert iced.forecast.ice_mm > 0
    assert "ice_mm" in iced.forecast.estimated_fields
    assert iced.probabilities.full_closing > plain.probabilities.full_closing


@pytest.mark.asyncio
async def test_road_reports_only_touch_the_first_day_of_the_week(lookup):
    start = date(2026, 1, 10)
    days = [start + timedelta(days=i) for i in range(7)]
    icy = RoadConditionFeed(
        location="44.4759,-73.2121",
        conditions=[RoadCondition(route="VT-15", condition=RoadSurface.ICE, source=RoadSource.NWS)],
        fetched_at=datetime.now(timezone.utc),
    )
    with patch.object(snow_day, "tomorrow", return_value=start), \
            patch("weatherbird.services.snow_day.weather_resolver.resolve_forecast_days",
                  AsyncMock(return_value={d: _forecast(target_date=d) for d in days})), \
            patch("weatherbird.services.snow_day.road_conditions.fetch_road_conditions",
                  AsyncMock(return_value=icy)):
        week = await snow_day.predict_week("05401", lookup=lookup)

    assert week.predictions[0].forecast.ice_mm > 0
    assert all(p.forecast.ice_mm == 0 for p in week.predictions[1:])


@pytest.mark.asyncio
async def test_later_days_skip_road_reports(lookup):
    start = date(2026, 1, 10)
    with patch.object(snow_day, "tomorrow", return_value=start), \
            patch("weatherbird.services.snow_day.weather_resolver.resolve_forecast",
                  AsyncMock(return_value=_forecast(target_date=start + timedelta(days=3)))), \
            patch("weatherbird.services.snow_day.road_conditions.fetch_road_conditions", AsyncMock()) as mock_roads:
        await snow_day.predict("05401", start + timedelta(days=3), lookup=lookup)
    mock_roads.assert_not_called()
