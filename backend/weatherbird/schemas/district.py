from dataclasses import dataclass

from pydantic import BaseModel


class Thresholds(BaseModel):
    """Closing/delay/ice cutoffs in mm, with the secondary cold and wind cutoffs."""

    model_config = {"frozen": True}

    full_closing_snowfall_mm: float
    delay_snowfall_mm: float
    ice_mm: float
    cold_temperature_c: float
    wind_speed_ms: float
    regional_default: bool = False


class District(BaseModel):
    model_config = {"frozen": True, "from_attributes": True}

    id: int
    name: str
    code: str | None = None
    county: str | None = None
    city: str | None = None
    zip_codes: tuple[str, ...] = ()
    latitude: float | None = None
    longitude: float | None = None
    thresholds: Thresholds

    @property
    def forecast_location(self) -> str:
        """Coordinates when known, then city, then name."""
        if self.latitude is not None and self.longitude is not None:
            return f"{self.latitude},{self.longitude}"
        return self.city or self.name


@dataclass(frozen=True)
class Matched:
    district: District


@dataclass(frozen=True)
class Defaulted:
    """No record matched; district built from regional defaults."""

    district: District


DistrictResolution = Matched | Defaulted
