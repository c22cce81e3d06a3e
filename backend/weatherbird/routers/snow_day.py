from datetime import date

from fastapi import APIRouter, Query

from weatherbird.schemas.prediction import PredictionRequest, PredictionResponse, WeekPredictionResponse
from weatherbird.services import snow_day

router = APIRouter(prefix="/snow-day", tags=["snow-day"])


async def _predict(district: str, target_date: date | None, multi_day: bool):
    if target_date is not None or not multi_day:
        result = await snow_day.predict(district, target_date)
        return snow_day.format_prediction(result)
    week = await snow_day.predict_week(district)
    return snow_day.format_week(week)


@router.get("/predict", response_model=PredictionResponse | WeekPredictionResponse)
async def get_prediction(
    district: str = Query(..., min_length=1),
    target_date: date | None = Query(None, alias="date"),
    multi_day: bool = Query(True),
):
    """Single day when a date is given or multi_day is false, otherwise the next 7 days."""
    return await _predict(district, target_date, multi_day)


@router.post("/predict", response_model=PredictionResponse | WeekPredictionResponse)
async def post_prediction(req: PredictionRequest):
    return await _predict(req.district, req.target_date, req.multi_day)
