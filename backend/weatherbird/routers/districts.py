from fastapi import APIRouter, Query

from weatherbird.schemas.district import Defaulted
from weatherbird.services import district_resolver
from weatherbird.services.units import mm_to_in

router = APIRouter(prefix="/districts", tags=["districts"])


@router.get("/resolve")
def resolve_district(identifier: str = Query(..., min_length=1)):
    """Zip code, district name, district code or a town name."""
    resolution = district_resolver.resolve(identifier)
    d = resolution.district
    return {
        "matched": not isinstance(resolution, Defaulted),
        "district": d.model_dump(),
        "thresholds_in": {
            "full_closing_snowfall": round(mm_to_in(d.thresholds.full_closing_snowfall_mm), 1),
            "delay_snowfall": round(mm_to_in(d.thresholds.delay_snowfall_mm), 1),
            "ice": round(mm_to_in(d.thresholds.ice_mm), 2),
        },
    }
