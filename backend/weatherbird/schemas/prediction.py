from datetime import date, datetime

from pydantic import BaseModel, Field

from weatherbird.schemas.district import Thresholds
from weatherbird.schemas.weather import ForecastDay


class Probabilities(BaseModel):
    full_closing: int = Field(ge=0, le=100)
    delay: int = Field(ge=0, le=100)
    early_dismissal: int = Field(ge=0, le=100)


class Categories(BaseModel):
    full_closing: str
    delay: str
    early_dismissal: str


class PredictionResult(BaseModel):
    district_id: int
    district_name: str
    defaulted_district: bool = False
    prediction_date: datetime
    predicted_for_date: date
    probabilities: Probabilities
    categories: Categories
    confidence: int = Field(ge=0, le=100)
    factors: list[str] = []
    forecast: ForecastDay
    thresholds: Thresholds | None = None  # single-day only


class WeekPrediction(BaseModel):
    district_id: int
    district_name: str
    predictions: list[PredictionResult] = []


class FormattedForecast(BaseModel):
    temperature_f: int | None = None
    snowfall_in: float | None = None
    ice_in: float | None = None
    wind_speed_mph: int | None = None
    condition: str = ""


class FormattedThresholds(BaseModel):
    full_closing_snowfall_in: float
    delay_snowfall_in: float
    ice_in: float


class PredictionResponse(BaseModel):
    """Consumer-facing view: imperial units, built from a stored PredictionResult."""

    district: str
    prediction_date: datetime
    predicted_for_date: date
    probabilities: Probabilities
    categories: Categories
    confidence: int
    forecast: FormattedForecast
    factors: list[str] = []
    thresholds: FormattedThresholds | None = None


class WeekPredictionResponse(BaseModel):
    district: str
    multi_day: bool = True
    predictions: list[PredictionResponse] = []


class PredictionRequest(BaseModel):
    model_config = {"populate_by_name": True}

    district: str = Field(min_length=1)
    target_date: date | None = Field(default=None, alias="date")
    multi_day: bool = True
