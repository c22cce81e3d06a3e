from sqlalchemy import JSON, Column, Date, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from weatherbird.database import Base


class SchoolDistrict(Base):
    __tablename__ = "school_districts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False, index=True)
    code = Column(String(30), unique=True, index=True)
    county = Column(String(100))
    city = Column(String(100))
    zip_codes = Column(JSON, default=list)  # list of 5-digit strings
    latitude = Column(Float)
    longitude = Column(Float)

    threshold = relationship("DistrictThreshold", uselist=False, back_populates="district", lazy="joined")


class DistrictThreshold(Base):
    """Per-district decision cutoffs. Depths in mm, temperature in C, wind in m/s."""

    __tablename__ = "district_thresholds"

    id = Column(Integer, primary_key=True, autoincrement=True)
    district_id = Column(Integer, ForeignKey("school_districts.id"), nullable=False, unique=True)
    full_closing_snowfall_mm = Column(Float, nullable=False)
    delay_snowfall_mm = Column(Float, nullable=False)
    ice_mm = Column(Float, nullable=False)
    cold_temperature_c = Column(Float)
    wind_speed_ms = Column(Float)

    district = relationship("SchoolDistrict", back_populates="threshold")


class SnowDayPredictionRecord(Base):
    """Append-only log of single-day predictions for later accuracy tracking."""

    __tablename__ = "snow_day_predictions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    district_id = Column(Integer, index=True)  # 0 for regional-default districts
    district_name = Column(String(200), nullable=False)
    prediction_date = Column(DateTime, nullable=False)
    predicted_for_date = Column(Date, nullable=False, index=True)
    full_closing_probability = Column(Integer, nullable=False)
    delay_probability = Column(Integer, nullable=False)
    early_dismissal_probability = Column(Integer, nullable=False)
    confidence = Column(Integer, nullable=False)
    source = Column(String(30))
    factors = Column(JSON)
    forecast = Column(JSON)
    created_at = Column(DateTime, server_default=func.now())
