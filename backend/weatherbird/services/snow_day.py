"""Snow-day prediction engine.

Turns one day's forecast plus a district's thresholds into three independent
probabilities (full closing, delay, early dismissal), a confidence score and
a list of human-readable factors. Everything here works in metric units; the
imperial view is produced separately by `format_prediction`.

Scoring curve
-------------
With r = snowfall / threshold the base score is ``75 * r**1.5`` below the
threshold and ``75 + min(25, 40 * (r - 1))`` at or above it, so a day that
meets the threshold always lands in the "high" band. Delay uses the same curve
against the (lower) delay threshold and is floored at the full-closing score.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from weatherbird.config import settings
from weatherbird.database import SessionLocal
from weatherbird.errors import ForecastUnavailable
from weatherbird.models.district import SnowDayPredictionRecord
from weatherbird.schemas.district import Defaulted, DistrictResolution, Thresholds
from weatherbird.schemas.prediction import (
    Categories,
    FormattedForecast,
    FormattedThresholds,
    PredictionResponse,
    PredictionResult,
    Probabilities,
    WeekPrediction,
    WeekPredictionResponse,
)
from weatherbird.schemas.weather import ForecastDay
from weatherbird.services import district_resolver, road_conditions, weather_resolver
from weatherbird.services.district_resolver import DistrictLookup
from weatherbird.services.forecast_estimates import apply_road_reports
from weatherbird.services.units import c_to_f, mm_to_in, ms_to_mph
from weatherbird.tasks.background import spawn_background

logger = logging.getLogger(__name__)

HORIZON_DAYS = 7
EARLY_DISMISSAL_CAP = 70
CONFIDENCE_BASE = 90
CONFIDENCE_FLOOR = 20

# Category cut points, highest first
CATEGORY_CUTS = [(75, "high"), (55, "moderate")]

MISSING_FIELD_PENALTY = {
    "snowfall_mm": 15,
    "temperature_c": 10,
    "wind_speed_ms": 5,
    "ice_mm": 5,
    "condition": 5,
}
ESTIMATED_FIELD_PENALTY = 3
DEFAULTED_DISTRICT_PENALTY = 15
REGIONAL_THRESHOLD_PENALTY = 10

WORSENING_CUES = ("afternoon", "increasing", "developing", "later", "becoming", "intensif")
FREEZING_RAIN_CUES = ("freezing rain", "freezing drizzle", "sleet")


def category_for(probability: int) -> str:
    for cut, label in CATEGORY_CUTS:
        if probability >= cut:
            return label
    return "low" if probability > 0 else "none"


def snowfall_score(snowfall_mm: float, threshold_mm: float) -> float:
    """Monotonic in snowfall; 75 at the threshold, 100 at 1.625x the threshold."""
    if snowfall_mm <= 0:
        return 0.0
    if threshold_mm <= 0:
        return 100.0
    r = snowfall_mm / threshold_mm
    if r >= 1:
        return min(100.0, 75 + min(25.0, (r - 1) * 40))
    return 75 * r ** 1.5


def wind_chill_f(temperature_f: float, wind_mph: float) -> float | None:
    """NWS wind chill; only defined at or below 50 F with wind above 3 mph."""
    if temperature_f > 50 or wind_mph <= 3:
        return None
    v = wind_mph ** 0.16
    return 35.74 + 0.6215 * temperature_f - 35.75 * v + 0.4275 * temperature_f * v


@dataclass
class DayScore:
    full_closing: float = 0.0
    delay: float = 0.0
    early_dismissal: float = 0.0
    factors: list[str] = field(default_factory=list)

    def bump(self, full: float = 0.0, delay: float = 0.0, early: float = 0.0):
        self.full_closing += full
        self.delay += delay
        self.early_dismissal += early

    def probabilities(self) -> Probabilities:
        full = _clamp(self.full_closing)
        # A closing implies conditions bad enough for a delay
        delay = max(_clamp(self.delay), full)
        early = min(_clamp(self.early_dismissal), EARLY_DISMISSAL_CAP)
        return Probabilities(full_closing=full, delay=delay, early_dismissal=early)


def _clamp(value: float) -> int:
    return int(round(max(0.0, min(100.0, value))))


def score_day(forecast: ForecastDay, thresholds: Thresholds) -> DayScore:
    score = DayScore()
    factors = score.factors
    snow = forecast.snowfall_mm or 0.0
    condition = forecast.condition.lower()

    score.full_closing = snowfall_score(snow, thresholds.full_closing_snowfall_mm)
    score.delay = snowfall_score(snow, thresholds.delay_snowfall_mm)

    snow_in = mm_to_in(snow)
    if snow >= thresholds.full_closing_snowfall_mm:
        factors.append(
            f"{snow_in:.1f} inches of snowfall forecast, exceeding full-closing threshold "
            f"of {mm_to_in(thresholds.full_closing_snowfall_mm):.1f} inches"
        )
    elif snow >= thresholds.delay_snowfall_mm:
        factors.append(
            f"{snow_in:.1f} inches of snowfall forecast, exceeding delay threshold "
            f"of {mm_to_in(thresholds.delay_snowfall_mm):.1f} inches"
        )
    elif snow >= thresholds.delay_snowfall_mm / 2:
        factors.append(
            f"{snow_in:.1f} inches of snowfall forecast, approaching delay threshold "
            f"of {mm_to_in(thresholds.delay_snowfall_mm):.1f} inches"
        )
    elif snow > 0:
        factors.append(f"{snow_in:.1f} inches of light snowfall forecast")
    if snow > 0 and "snowfall_mm" in forecast.estimated_fields:
        factors.append("Snowfall estimated from forecast precipitation and temperature")

    ice = forecast.ice_mm or 0.0
    if ice >= thresholds.ice_mm > 0:
        score.bump(full=30, delay=30)
        factors.append(
            f"{mm_to_in(ice):.2f} inches of ice accumulation, meeting ice threshold "
            f"of {mm_to_in(thresholds.ice_mm):.2f} inches"
        )
    elif ice > 0:
        bump = 20 * ice / thresholds.ice_mm if thresholds.ice_mm > 0 else 20
        score.bump(full=bump, delay=bump * 1.25)
        factors.append(f"{mm_to_in(ice):.2f} inches of ice forecast, even small amounts trigger closures")
    if any(cue in condition for cue in FREEZING_RAIN_CUES):
        score.bump(full=10, delay=15, early=10)
        factors.append("Freezing rain in forecast, high closure likelihood even with minimal precipitation")
    if ice > 0 and snow > 0:
        score.bump(full=5, delay=5)
        factors.append("Ice and snow mix, ice layers under snow")

    wind = forecast.wind_speed_ms
    if wind is not None:
        if wind >= thresholds.wind_speed_ms:
            adj = min(10.0, 5 + (wind - thresholds.wind_speed_ms))
            score.bump(full=adj, delay=adj, early=adj)
            factors.append(f"High winds: {ms_to_mph(wind):.0f} mph")
        if wind >= 0.6 * thresholds.wind_speed_ms and snow >= 25.4:
            score.bump(full=5, delay=5)
            factors.append("Wind with snow, drifting on rural roads")

    temp = forecast.temperature_c
    if temp is not None:
        if temp <= thresholds.cold_temperature_c:
            adj = min(10.0, 5 + (thresholds.cold_temperature_c - temp) * 0.5)
            score.bump(full=adj, delay=adj, early=adj)
            factors.append(f"Extreme cold: {c_to_f(temp):.0f}°F")
        if wind is not None:
            chill = wind_chill_f(c_to_f(temp), ms_to_mph(wind))
            if chill is not None and chill <= -20:
                score.bump(full=5, delay=5)
                factors.append(f"Very cold wind chill ({chill:.0f}°F), bus safety and frostbite risk")
            elif chill is not None and chill <= -10:
                score.bump(delay=5)
                factors.append(f"Cold wind chill ({chill:.0f}°F), bus safety concerns")

    _score_early_dismissal(score, forecast, condition)
    return score


def _score_early_dismissal(score: DayScore, forecast: ForecastDay, condition: str):
    """Worsening through the school day. Trend data wins over condition text."""
    score.early_dismissal += 0.35 * score.full_closing

    has_trend = forecast.snowfall_trend_mm is not None or forecast.wind_trend_ms is not None
    if forecast.snowfall_trend_mm is not None and forecast.snowfall_trend_mm > 0:
        score.early_dismissal += min(30.0, forecast.snowfall_trend_mm * 2)
        score.factors.append("Snowfall expected to intensify through the day")
    if forecast.wind_trend_ms is not None and forecast.wind_trend_ms > 0:
        score.early_dismissal += min(15.0, forecast.wind_trend_ms * 3)
        score.factors.append("Winds expected to strengthen through the day")
    if not has_trend and any(cue in condition for cue in WORSENING_CUES):
        score.early_dismissal += 15
        score.factors.append("Conditions expected to worsen later in the day")


def compute_confidence(forecast: ForecastDay, resolution: DistrictResolution) -> int:
    confidence = CONFIDENCE_BASE
    if isinstance(resolution, Defaulted):
        confidence -= DEFAULTED_DISTRICT_PENALTY
    elif resolution.district.thresholds.regional_default:
        confidence -= REGIONAL_THRESHOLD_PENALTY

    for name in forecast.missing_fields:
        confidence -= MISSING_FIELD_PENALTY.get(name, 0)
    confidence -= ESTIMATED_FIELD_PENALTY * len(forecast.estimated_fields)
    return max(CONFIDENCE_FLOOR, min(100, confidence))


def build_result(
    resolution: DistrictResolution,
    forecast: ForecastDay,
    include_thresholds: bool = True,
) -> PredictionResult:
    district = resolution.district
    score = score_day(forecast, district.thresholds)
    probs = score.probabilities()
    factors = list(score.factors)
    if isinstance(resolution, Defaulted):
        factors.append(f"No district record matched, using {settings.default_region} regional thresholds")
    elif district.thresholds.regional_default:
        factors.append(f"No district-specific thresholds on file, using {settings.default_region} regional thresholds")

    logger.debug(
        "%s %s: full=%d delay=%d early=%d",
        district.name, forecast.target_date, probs.full_closing, probs.delay, probs.early_dismissal,
    )
    return PredictionResult(
        district_id=district.id,
        district_name=district.name,
        defaulted_district=isinstance(resolution, Defaulted),
        prediction_date=datetime.now(timezone.utc),
        predicted_for_date=forecast.target_date,
        probabilities=probs,
        categories=Categories(
            full_closing=category_for(probs.full_closing),
            delay=category_for(probs.delay),
            early_dismissal=category_for(probs.early_dismissal),
        ),
        confidence=compute_confidence(forecast, resolution),
        factors=factors,
        forecast=forecast,
        thresholds=district.thresholds if include_thresholds else None,
    )


def tomorrow() -> date:
    return datetime.now(ZoneInfo(settings.local_timezone)).date() + timedelta(days=1)


async def _resolve_district(identifier: str, lookup: DistrictLookup | None) -> DistrictResolution:
    return await asyncio.to_thread(district_resolver.resolve, identifier, lookup)


async def predict(
    district_identifier: str,
    target_date: date | None = None,
    lookup: DistrictLookup | None = None,
) -> PredictionResult:
    """Single-day prediction. Raises ForecastUnavailable when no provider has a forecast."""
    resolution = await _resolve_district(district_identifier, lookup)
    target_date = target_date or tomorrow()
    location = resolution.district.forecast_location

    if target_date <= tomorrow():
        forecast, roads = await asyncio.gather(
            weather_resolver.resolve_forecast(location, target_date),
            road_conditions.fetch_road_conditions(location),
        )
        forecast = apply_road_reports(forecast, roads.conditions)
    else:
        forecast = await weather_resolver.resolve_forecast(location, target_date)

    result = build_result(resolution, forecast)
    spawn_background(asyncio.to_thread(record_prediction, result), f"record-prediction-{target_date}")
    return result


async def predict_week(district_identifier: str, lookup: DistrictLookup | None = None) -> WeekPrediction:
    """Tomorrow through seven days ahead, in date order. Days without a forecast are omitted."""
    resolution = await _resolve_district(district_identifier, lookup)
    district = resolution.district
    start = tomorrow()
    dates = [start + timedelta(days=i) for i in range(HORIZON_DAYS)]

    forecasts, roads = await asyncio.gather(
        weather_resolver.resolve_forecast_days(district.forecast_location, dates),
        road_conditions.fetch_road_conditions(district.forecast_location),
    )
    # Current road reports only say something about the next school day
    if start in forecasts:
        forecasts[start] = apply_road_reports(forecasts[start], roads.conditions)

    predictions: list[PredictionResult] = []
    for day in dates:
        if day not in forecasts:
            logger.warning("Skipping %s for %s: no forecast available", day, district.name)
            continue
        predictions.append(build_result(resolution, forecasts[day], include_thresholds=False))

    if not predictions:
        raise ForecastUnavailable(None, f"no forecast available for the next {HORIZON_DAYS} days")
    return WeekPrediction(district_id=district.id, district_name=district.name, predictions=predictions)


def record_prediction(result: PredictionResult) -> None:
    db: Session = SessionLocal()
    try:
        db.add(SnowDayPredictionRecord(
            district_id=result.district_id,
            district_name=result.district_name,
            prediction_date=result.prediction_date,
            predicted_for_date=result.predicted_for_date,
            full_closing_probability=result.probabilities.full_closing,
            delay_probability=result.probabilities.delay,
            early_dismissal_probability=result.probabilities.early_dismissal,
            confidence=result.confidence,
            source=result.forecast.source.value if result.forecast.source else None,
            factors=result.factors,
            forecast=result.forecast.model_dump(mode="json"),
        ))
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error("Failed to record prediction for %s: %s", result.district_name, e)
    finally:
        db.close()


def _round(value: float | None, digits: int) -> float | None:
    return None if value is None else round(value, digits)


def format_forecast(forecast: ForecastDay) -> FormattedForecast:
    temp_f = c_to_f(forecast.temperature_c)
    wind_mph = ms_to_mph(forecast.wind_speed_ms)
    return FormattedForecast(
        temperature_f=None if temp_f is None else round(temp_f),
        snowfall_in=_round(mm_to_in(forecast.snowfall_mm), 1),
        ice_in=_round(mm_to_in(forecast.ice_mm), 2),
        wind_speed_mph=None if wind_mph is None else round(wind_mph),
        condition=forecast.condition,
    )


def format_prediction(result: PredictionResult) -> PredictionResponse:
    """Imperial, consumer-facing view. Never mutates `result`."""
    thresholds = None
    if result.thresholds is not None:
        thresholds = FormattedThresholds(
            full_closing_snowfall_in=round(mm_to_in(result.thresholds.full_closing_snowfall_mm), 1),
            delay_snowfall_in=round(mm_to_in(result.thresholds.delay_snowfall_mm), 1),
            ice_in=round(mm_to_in(result.thresholds.ice_mm), 2),
        )
    return PredictionResponse(
        district=result.district_name,
        prediction_date=result.prediction_date,
        predicted_for_date=result.predicted_for_date,
        probabilities=result.probabilities,
        categories=result.categories,
        confidence=result.confidence,
        forecast=format_forecast(result.forecast),
        factors=result.factors,
        thresholds=thresholds,
    )


def format_week(week: WeekPrediction) -> WeekPredictionResponse:
    return WeekPredictionResponse(
        district=week.district_name,
        multi_day=True,
        predictions=[format_prediction(p) for p in week.predictions],
    )
