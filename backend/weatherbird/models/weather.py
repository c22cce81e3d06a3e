from sqlalchemy import Column, DateTime, Float, Integer, String
from sqlalchemy.sql import func

from weatherbird.database import Base


class WeatherObservation(Base):
    """Resolved current-weather snapshots, kept for historical trend queries."""

    __tablename__ = "weather_observations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    location = Column(String(200), nullable=False, index=True)
    source = Column(String(30), nullable=False)  # provider that answered
    observed_at = Column(DateTime, nullable=False)
    temperature_c = Column(Float)
    humidity_pct = Column(Float)
    pressure_hpa = Column(Float)
    wind_speed_ms = Column(Float)
    description = Column(String(200))
    created_at = Column(DateTime, server_default=func.now())
