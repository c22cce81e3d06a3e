"""Gap-filling for daily forecasts.

Schools close for snow and ice, not rain, so snowfall is only estimated from
precipitation at or near freezing. Ice is estimated from the condition text
or, for the next school day, from current road reports of ice.
Every filled field is recorded in `estimated_fields`.
"""

from weatherbird.schemas.road import RoadCondition, RoadSurface
from weatherbird.schemas.weather import ForecastDay

# About 0.04 in, assumed when a road report says ice but the forecast has none
ROAD_ICE_MM = 1.0


def estimate_snowfall_mm(precipitation_mm: float, temperature_c: float) -> float:
    """Liquid precipitation to snow depth: 10:1 at or below 0 C, 5:1 up to 4.4 C (40 F)."""
    if temperature_c <= 0:
        return precipitation_mm * 10
    if temperature_c <= 4.4:
        return precipitation_mm * 5
    return 0.0


def estimate_ice_mm(condition: str) -> float | None:
    text = (condition or "").lower()
    if "freezing rain" in text or "freezing drizzle" in text:
        if "heavy" in text or "significant" in text:
            return 2.0
        if "moderate" in text:
            return 1.3
        return 0.5
    if "ice" in text and "nice" not in text:
        return 0.8
    return None


def fill_estimates(day: ForecastDay) -> ForecastDay:
    updates: dict = {}
    estimated = list(day.estimated_fields)

    if day.snowfall_mm is None and day.precipitation_mm is not None and day.temperature_c is not None:
        updates["snowfall_mm"] = estimate_snowfall_mm(day.precipitation_mm, day.temperature_c)
        estimated.append("snowfall_mm")

    if day.ice_mm is None:
        ice = estimate_ice_mm(day.condition)
        if ice is not None:
            updates["ice_mm"] = ice
            estimated.append("ice_mm")
        elif day.condition:
            # A condition that mentions no ice is an observation of zero ice
            updates["ice_mm"] = 0.0

    if not updates:
        return day
    updates["estimated_fields"] = estimated
    return day.model_copy(update=updates)


def apply_road_reports(day: ForecastDay, conditions: list[RoadCondition]) -> ForecastDay:
    """Icy roads reported now mean ice on the ground, whatever the forecast says."""
    if day.ice_mm or not any(c.condition == RoadSurface.ICE for c in conditions):
        return day
    estimated = [f for f in day.estimated_fields if f != "ice_mm"] + ["ice_mm"]
    return day.model_copy(update={"ice_mm": ROAD_ICE_MM, "estimated_fields": estimated})
