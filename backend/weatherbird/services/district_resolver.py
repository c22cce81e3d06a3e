"""Map a free-form identifier to a district and its thresholds.

Resolution never fails. Anything that matches no record yields a synthetic
district built from the regional defaults and a best-effort static centroid,
returned as `Defaulted` so callers can tell the difference.
"""

import logging
import re
from typing import Protocol

from sqlalchemy.orm import Session

from weatherbird.config import settings
from weatherbird.database import SessionLocal
from weatherbird.errors import InvalidInput
from weatherbird.models.district import DistrictThreshold, SchoolDistrict
from weatherbird.regions.definitions import VERMONT, geocode
from weatherbird.regions.districts import VERMONT_DISTRICTS
from weatherbird.schemas.district import Defaulted, District, DistrictResolution, Matched, Thresholds

logger = logging.getLogger(__name__)

ZIP_RE = re.compile(r"^(\d{5})(?:-\d{4})?$")
DEFAULT_DISTRICT_ID = 0


class DistrictLookup(Protocol):
    def districts(self) -> list[District]: ...


class StaticDistrictLookup:
    def __init__(self, districts: list[District] | None = None):
        self._districts = list(VERMONT_DISTRICTS if districts is None else districts)

    def districts(self) -> list[District]:
        return self._districts


class SqlDistrictLookup:
    """Reads district records from the database. Read-only."""

    def districts(self) -> list[District]:
        db: Session = SessionLocal()
        try:
            rows = db.query(SchoolDistrict).all()
            return [_to_district(row) for row in rows]
        finally:
            db.close()


def regional_thresholds() -> Thresholds:
    return Thresholds(
        full_closing_snowfall_mm=settings.default_full_closing_snowfall_mm,
        delay_snowfall_mm=settings.default_delay_snowfall_mm,
        ice_mm=settings.default_ice_mm,
        cold_temperature_c=settings.default_cold_temperature_c,
        wind_speed_ms=settings.default_wind_speed_ms,
        regional_default=True,
    )


def _to_district(row: SchoolDistrict) -> District:
    t = row.threshold
    if t is None:
        thresholds = regional_thresholds()
    else:
        thresholds = Thresholds(
            full_closing_snowfall_mm=t.full_closing_snowfall_mm,
            delay_snowfall_mm=t.delay_snowfall_mm,
            ice_mm=t.ice_mm,
            cold_temperature_c=t.cold_temperature_c if t.cold_temperature_c is not None else settings.default_cold_temperature_c,
            wind_speed_ms=t.wind_speed_ms if t.wind_speed_ms is not None else settings.default_wind_speed_ms,
        )
    return District(
        id=row.id,
        name=row.name,
        code=row.code,
        county=row.county,
        city=row.city,
        zip_codes=tuple(row.zip_codes or ()),
        latitude=row.latitude,
        longitude=row.longitude,
        thresholds=thresholds,
    )


_default_lookup: DistrictLookup = SqlDistrictLookup()


def set_default_lookup(lookup: DistrictLookup) -> None:
    global _default_lookup
    _default_lookup = lookup


def match(identifier: str, districts: list[District]) -> District | None:
    """Zip code, then exact name, then code, then a district's city named in the identifier."""
    text = identifier.strip()
    key = text.lower()

    zip_match = ZIP_RE.match(text)
    if zip_match:
        for d in districts:
            if zip_match.group(1) in d.zip_codes:
                return d

    for d in districts:
        if d.name.lower() == key:
            return d

    for d in districts:
        if d.code and d.code.lower() == key:
            return d

    # A known place named inside the identifier, longest first and on word
    # boundaries. Generic words ("School", "Vermont") never match a district.
    for d in sorted(districts, key=lambda d: len(d.city or ""), reverse=True):
        if d.city and re.search(rf"\b{re.escape(d.city.lower())}\b", key):
            return d
    return None


def default_district(identifier: str) -> District:
    loc = geocode(identifier) or VERMONT
    return District(
        id=DEFAULT_DISTRICT_ID,
        name=identifier.strip() or settings.default_region,
        county=loc.county,
        city=None if loc is VERMONT else loc.name,
        latitude=loc.latitude,
        longitude=loc.longitude,
        thresholds=regional_thresholds(),
    )


def resolve(identifier: str, lookup: DistrictLookup | None = None) -> DistrictResolution:
    if identifier is None or not str(identifier).strip():
        raise InvalidInput("District identifier is required", field="district")

    lookup = lookup or _default_lookup
    try:
        districts = lookup.districts()
    except Exception as e:
        logger.error("District lookup failed, using regional defaults: %s", e)
        districts = []

    found = match(identifier, districts)
    if found is not None:
        logger.debug("Resolved '%s' to district %s (%s)", identifier, found.id, found.name)
        return Matched(found)

    logger.info("No district matched '%s', using %s regional defaults", identifier, settings.default_region)
    return Defaulted(default_district(identifier))


def seed_districts(db: Session, districts: list[District] | None = None) -> int:
    """Insert the static district records that are not present yet. Returns the number added."""
    added = 0
    for d in VERMONT_DISTRICTS if districts is None else districts:
        if db.query(SchoolDistrict).filter_by(code=d.code).first():
            continue
        row = SchoolDistrict(
            name=d.name,
            code=d.code,
            county=d.county,
            city=d.city,
            zip_codes=list(d.zip_codes),
            latitude=d.latitude,
            longitude=d.longitude,
        )
        if not d.thresholds.regional_default:
            row.threshold = DistrictThreshold(
                full_closing_snowfall_mm=d.thresholds.full_closing_snowfall_mm,
                delay_snowfall_mm=d.thresholds.delay_snowfall_mm,
                ice_mm=d.thresholds.ice_mm,
                cold_temperature_c=d.thresholds.cold_temperature_c,
                wind_speed_ms=d.thresholds.wind_speed_ms,
            )
        db.add(row)
        added += 1
    db.commit()
    return added
