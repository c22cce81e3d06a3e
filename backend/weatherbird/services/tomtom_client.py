"""TomTom traffic incidents for Vermont, normalized to road conditions."""

import asyncio
import logging

import httpx

from weatherbird.config import settings
from weatherbird.schemas.road import IncidentSeverity, RoadCondition, RoadSource, RoadSurface

logger = logging.getLogger(__name__)

TOMTOM_INCIDENTS_URL = "https://api.tomtom.com/traffic/services/5/incidentDetails"
INCIDENT_FIELDS = (
    "{incidents{type,geometry{type,coordinates},properties{id,iconCategory,magnitudeOfDelay,"
    "events{description,code},startTime,endTime,from,to,length,delay,roadNumbers}}}"
)

# The API caps the bbox area, so the state is split into two columns of four bands
_WEST, _MID, _EAST = -73.454, -72.459, -71.464
_LAT_BANDS = [(42.727, 43.3), (43.3, 44.0), (44.0, 44.5), (44.5, 45.016)]
VERMONT_BBOXES: list[tuple[float, float, float, float]] = [
    (lon_min, lat_min, lon_max, lat_max)
    for lat_min, lat_max in _LAT_BANDS
    for lon_min, lon_max in [(_WEST, _MID), (_MID, _EAST)]
]

ICON_CATEGORIES: dict[int, str] = {
    0: "ACCIDENT", 1: "ACCIDENT",
    2: "JAM", 3: "JAM", 10: "JAM",
    4: "ROADWORKS", 5: "ROADWORKS",
    6: "ROAD_CLOSED", 11: "ROAD_CLOSED",
    7: "HAZARD", 9: "HAZARD",
    8: "WEATHERHAZARD",
}


async def fetch_incidents(location: str) -> list[RoadCondition]:
    """Incidents across the whole state. Location is not used by this source."""
    if not settings.tomtom_api_key:
        logger.info("TomTom API key not configured, skipping traffic incidents")
        return []
    async with httpx.AsyncClient(timeout=15) as client:
        batches = await asyncio.gather(*[_fetch_bbox(client, bbox) for bbox in VERMONT_BBOXES])

    # Incidents on a band edge come back from both neighbouring boxes
    seen: dict[str, dict] = {}
    for batch in batches:
        for incident in batch:
            incident_id = (incident.get("properties") or {}).get("id")
            if incident_id is None:
                continue
            seen.setdefault(str(incident_id), incident)
    logger.debug("TomTom returned %d distinct incidents", len(seen))
    return [normalize_incident(i) for i in seen.values()]


async def _fetch_bbox(client: httpx.AsyncClient, bbox: tuple[float, float, float, float]) -> list[dict]:
    params = {
        "bbox": ",".join(str(v) for v in bbox),
        "key": settings.tomtom_api_key,
        "fields": INCIDENT_FIELDS,
        "language": "en-US",
    }
    resp = await client.get(TOMTOM_INCIDENTS_URL, params=params)
    resp.raise_for_status()
    return resp.json().get("incidents") or []


def normalize_incident(incident: dict) -> RoadCondition:
    props = incident.get("properties") or {}
    category = ICON_CATEGORIES.get(props.get("iconCategory"), "UNKNOWN")
    description = "; ".join(e.get("description", "") for e in props.get("events") or [] if e.get("description"))
    lon, lat = _first_point(incident.get("geometry") or {})
    delay = props.get("delay")
    road_numbers = props.get("roadNumbers") or []

    return RoadCondition(
        route=road_numbers[0] if road_numbers else props.get("from") or "Unknown Route",
        condition=map_surface(category, description),
        source=RoadSource.TOMTOM,
        timestamp=props.get("startTime"),
        warning=description or category.replace("_", " ").title(),
        latitude=lat,
        longitude=lon,
        severity=map_delay(delay),
        delay_s=delay,
    )


def map_surface(category: str, description: str) -> RoadSurface:
    if category in ("ROAD_CLOSED", "ACCIDENT", "ROADWORKS"):
        return RoadSurface.CLOSED
    if category == "JAM":
        return RoadSurface.CLEAR
    if category == "WEATHERHAZARD":
        text = description.lower()
        if "ice" in text or "icy" in text:
            return RoadSurface.ICE
        if "snow" in text:
            return RoadSurface.SNOW_COVERED
        return RoadSurface.WET
    return RoadSurface.UNKNOWN


def map_delay(delay_s: int | None) -> IncidentSeverity:
    if not delay_s or delay_s < 300:
        return IncidentSeverity.MINOR
    if delay_s < 900:
        return IncidentSeverity.MODERATE
    return IncidentSeverity.MAJOR


def _first_point(geometry: dict) -> tuple[float | None, float | None]:
    """GeoJSON point or line string; coordinates are [lon, lat]."""
    coords = geometry.get("coordinates") or []
    if geometry.get("type") == "LineString" and coords:
        coords = coords[0]
    if len(coords) >= 2 and all(isinstance(c, (int, float)) for c in coords[:2]):
        return coords[0], coords[1]
    return None, None
