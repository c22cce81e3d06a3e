import re
from dataclasses import dataclass


@dataclass(frozen=True)
class LocationDefinition:
    name: str
    county: str | None
    latitude: float
    longitude: float


# Static centroids used for best-effort geocoding. No live geocoder is consulted.
VERMONT = LocationDefinition(name="Vermont", county=None, latitude=44.0459, longitude=-72.7107)

VERMONT_LOCATIONS = [
    LocationDefinition(name="Burlington", county="Chittenden", latitude=44.4759, longitude=-73.2121),
    LocationDefinition(name="South Burlington", county="Chittenden", latitude=44.4669, longitude=-73.1710),
    LocationDefinition(name="Winooski", county="Chittenden", latitude=44.4909, longitude=-73.1857),
    LocationDefinition(name="Essex Junction", county="Chittenden", latitude=44.4906, longitude=-73.1110),
    LocationDefinition(name="Williston", county="Chittenden", latitude=44.4376, longitude=-73.0687),
    LocationDefinition(name="Montpelier", county="Washington", latitude=44.2601, longitude=-72.5754),
    LocationDefinition(name="Barre", county="Washington", latitude=44.1970, longitude=-72.5021),
    LocationDefinition(name="Rutland", county="Rutland", latitude=43.6106, longitude=-72.9726),
    LocationDefinition(name="Saint Albans", county="Franklin", latitude=44.8109, longitude=-73.0832),
    LocationDefinition(name="Middlebury", county="Addison", latitude=44.0153, longitude=-73.1673),
    LocationDefinition(name="Brattleboro", county="Windham", latitude=42.8509, longitude=-72.5579),
    LocationDefinition(name="Bennington", county="Bennington", latitude=42.8781, longitude=-73.1968),
    LocationDefinition(name="Springfield", county="Windsor", latitude=43.2984, longitude=-72.4823),
    LocationDefinition(name="Saint Johnsbury", county="Caledonia", latitude=44.4192, longitude=-72.0151),
    LocationDefinition(name="Newport", county="Orleans", latitude=44.9364, longitude=-72.2051),
    LocationDefinition(name="Morrisville", county="Lamoille", latitude=44.5617, longitude=-72.5984),
    LocationDefinition(name="Stowe", county="Lamoille", latitude=44.4654, longitude=-72.6874),
    LocationDefinition(name="Randolph", county="Orange", latitude=43.9251, longitude=-72.6654),
    LocationDefinition(name="North Hero", county="Grand Isle", latitude=44.8312, longitude=-73.2726),
    LocationDefinition(name="Island Pond", county="Essex", latitude=44.8134, longitude=-71.8795),
]

_ALIASES = {
    "st albans": "Saint Albans",
    "st. albans": "Saint Albans",
    "st johnsbury": "Saint Johnsbury",
    "st. johnsbury": "Saint Johnsbury",
    "essex": "Essex Junction",
}

LOCATION_MAP: dict[str, LocationDefinition] = {loc.name.lower(): loc for loc in VERMONT_LOCATIONS}
LOCATION_MAP[VERMONT.name.lower()] = VERMONT


def geocode(name: str) -> LocationDefinition | None:
    """Exact (case-insensitive) match first, then the first known name contained in `name`."""
    key = name.strip().lower()
    key = _ALIASES.get(key, key).lower()
    if key in LOCATION_MAP:
        return LOCATION_MAP[key]
    # Longest names first so "South Burlington" wins over "Burlington"
    for loc in sorted(VERMONT_LOCATIONS, key=lambda l: len(l.name), reverse=True):
        if re.search(rf"\b{re.escape(loc.name.lower())}\b", key):
            return loc
    return None


def coordinates_for(location: str) -> tuple[float, float]:
    """Resolve a free-form location or "lat,lon" string, defaulting to Burlington."""
    parts = location.split(",")
    if len(parts) == 2:
        try:
            return float(parts[0]), float(parts[1])
        except ValueError:
            pass
    loc = geocode(location)
    if loc is None or loc is VERMONT:
        loc = LOCATION_MAP["burlington"]
    return loc.latitude, loc.longitude
