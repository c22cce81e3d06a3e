from datetime import datetime

from pydantic import BaseModel, Field


class PlowLocation(BaseModel):
    id: str
    latitude: float
    longitude: float
    route: str | None = None
    direction: float | None = None  # heading, degrees
    timestamp: datetime
    status: str = "active"  # active or inactive


class SafetyRating(BaseModel):
    route: str
    route_length_mi: float | None = None
    coverage_length_mi: float
    plow_count: int
    plow_density: float  # active plows per mile
    rating: int  # 1-10, 10 = safest
    label: str  # none, poor, minimal, moderate, good, excellent
    reasoning: str = ""
    recommendations: list[str] = []


class PlowDistribution(BaseModel):
    total_plows: int
    active_plows: int
    routes: dict[str, int] = {}
    clusters: int = 0
    mean_spacing_mi: float | None = None
    largest_gap_mi: float | None = None


# Spacing and spanning-tree passes are quadratic in the sample count
MAX_PLOW_SAMPLES = 500


class PlowAnalysisRequest(BaseModel):
    plows: list[dict] = Field(max_length=MAX_PLOW_SAMPLES)
    route: str = "Vermont"
    route_length_mi: float | None = None


class PlowAnalysisResponse(BaseModel):
    rating: SafetyRating
    distribution: PlowDistribution
    summary: str
