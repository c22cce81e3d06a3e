from fastapi import APIRouter, Query

from weatherbird.config import settings
from weatherbird.schemas.road import RoadConditionFeed
from weatherbird.services import road_conditions

router = APIRouter(prefix="/roads", tags=["roads"])


@router.get("/conditions", response_model=RoadConditionFeed)
async def get_road_conditions(location: str = Query(settings.default_region)):
    """Road warnings, surface forecasts and traffic incidents from every configured source."""
    return await road_conditions.fetch_road_conditions(location)
