from fastapi import APIRouter

from weatherbird.schemas.plow import PlowAnalysisRequest, PlowAnalysisResponse
from weatherbird.services import plow_analysis

router = APIRouter(prefix="/plows", tags=["plows"])


@router.post("/analyze", response_model=PlowAnalysisResponse)
def analyze_plows(req: PlowAnalysisRequest):
    """Safety rating and spatial distribution for a set of plow positions."""
    plows = plow_analysis.parse_plow_samples(req.plows)
    rating, distribution = plow_analysis.rate(plows, req.route, req.route_length_mi)
    return PlowAnalysisResponse(
        rating=rating,
        distribution=distribution,
        summary=plow_analysis.summarize(rating, distribution),
    )
