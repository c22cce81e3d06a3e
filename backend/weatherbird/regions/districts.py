from weatherbird.schemas.district import District, Thresholds

# Seed records for the Vermont districts with known decision thresholds.
# Depths in mm (4 in = 101.6 mm). Used to seed the database and as the
# in-memory lookup when no database is configured.
VERMONT_DISTRICTS = [
    District(
        id=1,
        name="Burlington School District",
        code="VT-BSD",
        county="Chittenden",
        city="Burlington",
        zip_codes=("05401", "05402", "05405", "05406", "05408"),
        latitude=44.4759,
        longitude=-73.2121,
        thresholds=Thresholds(
            full_closing_snowfall_mm=101.6,
            delay_snowfall_mm=50.8,
            ice_mm=6.35,
            cold_temperature_c=-17.8,
            wind_speed_ms=13.4,
        ),
    ),
    District(
        id=2,
        name="Montpelier Roxbury Public Schools",
        code="VT-MRPS",
        county="Washington",
        city="Montpelier",
        zip_codes=("05601", "05602", "05604", "05609"),
        latitude=44.2601,
        longitude=-72.5754,
        thresholds=Thresholds(
            full_closing_snowfall_mm=152.4,
            delay_snowfall_mm=76.2,
            ice_mm=6.35,
            cold_temperature_c=-20.6,
            wind_speed_ms=13.4,
        ),
    ),
    District(
        id=3,
        name="Rutland City Public Schools",
        code="VT-RCPS",
        county="Rutland",
        city="Rutland",
        zip_codes=("05701", "05702"),
        latitude=43.6106,
        longitude=-72.9726,
        thresholds=Thresholds(
            full_closing_snowfall_mm=127.0,
            delay_snowfall_mm=63.5,
            ice_mm=5.08,
            cold_temperature_c=-17.8,
            wind_speed_ms=13.4,
        ),
    ),
    District(
        id=4,
        name="Barre Unified Union School District",
        code="VT-BUUSD",
        county="Washington",
        city="Barre",
        zip_codes=("05641",),
        latitude=44.1970,
        longitude=-72.5021,
        thresholds=Thresholds(
            full_closing_snowfall_mm=152.4,
            delay_snowfall_mm=76.2,
            ice_mm=6.35,
            cold_temperature_c=-20.6,
            wind_speed_ms=13.4,
        ),
    ),
    District(
        id=5,
        name="Maple Run Unified School District",
        code="VT-MRUSD",
        county="Franklin",
        city="Saint Albans",
        zip_codes=("05478", "05479", "05481"),
        latitude=44.8109,
        longitude=-73.0846,
        thresholds=Thresholds(
            full_closing_snowfall_mm=152.4,
            delay_snowfall_mm=76.2,
            ice_mm=6.35,
            cold_temperature_c=-23.3,
            wind_speed_ms=15.6,
        ),
    ),
    District(
        id=6,
        name="Windham Southeast Supervisory Union",
        code="VT-WSSU",
        county="Windham",
        city="Brattleboro",
        zip_codes=("05301", "05302", "05303", "05304"),
        latitude=42.8509,
        longitude=-72.5579,
        thresholds=Thresholds(
            full_closing_snowfall_mm=101.6,
            delay_snowfall_mm=50.8,
            ice_mm=5.08,
            cold_temperature_c=-17.8,
            wind_speed_ms=13.4,
        ),
    ),
    District(
        id=7,
        name="Southwest Vermont Supervisory Union",
        code="VT-SVSU",
        county="Bennington",
        city="Bennington",
        zip_codes=("05201",),
        latitude=42.8781,
        longitude=-73.1968,
        thresholds=Thresholds(
            full_closing_snowfall_mm=127.0,
            delay_snowfall_mm=63.5,
            ice_mm=6.35,
            cold_temperature_c=-17.8,
            wind_speed_ms=13.4,
        ),
    ),
    District(
        id=8,
        name="Addison Central School District",
        code="VT-ACSD",
        county="Addison",
        city="Middlebury",
        zip_codes=("05753",),
        latitude=44.0148,
        longitude=-73.1690,
        # No district-specific cutoffs on file
        thresholds=Thresholds(
            full_closing_snowfall_mm=152.4,
            delay_snowfall_mm=76.2,
            ice_mm=6.35,
            cold_temperature_c=-12.2,
            wind_speed_ms=13.4,
            regional_default=True,
        ),
    ),
]
