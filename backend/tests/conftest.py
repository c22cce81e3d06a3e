import os

# Keep the test run away from any developer database
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timezone  # noqa: E402
from unittest.mock import MagicMock, patch  # noqa: E402

import pytest  # noqa: E402

from weatherbird.schemas.weather import ProviderName, WeatherSnapshot  # noqa: E402
from weatherbird.services import alert_fusion, district_resolver, road_conditions  # noqa: E402
from weatherbird.services.district_resolver import StaticDistrictLookup  # noqa: E402


@pytest.fixture
def lookup():
    return StaticDistrictLookup()


@pytest.fixture(autouse=True)
def _isolate(lookup):
    """Static districts, no real persistence, empty alert cache, no road sources."""
    district_resolver.set_default_lookup(lookup)
    alert_fusion._alert_cache.clear()
    with patch("weatherbird.services.weather_resolver.persist_snapshot", MagicMock()), \
            patch("weatherbird.services.snow_day.record_prediction", MagicMock()), \
            patch.object(road_conditions, "ROAD_SOURCES", []):
        yield
    district_resolver.set_default_lookup(district_resolver.SqlDistrictLookup())


def make_snapshot(source: ProviderName = ProviderName.NWS, **kwargs) -> WeatherSnapshot:
    defaults = {
        "location": "Burlington",
        "temperature_c": -3.0,
        "humidity_pct": 80,
        "pressure_hpa": 1012,
        "description": "Light Snow",
        "wind_speed_ms": 4.0,
        "timestamp": datetime.now(timezone.utc),
        "source": source,
    }
    defaults.update(kwargs)
    return WeatherSnapshot(**defaults)
