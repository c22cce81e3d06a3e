from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Database
    database_url: str = Field(default="sqlite:///./weatherbird.db")

    # Provider credentials (NWS needs none, only a User-Agent)
    nws_user_agent: str = Field(default="WEATHERbird/1.0 (weather safety app, contact@weatherbird.app)")
    weatherbit_api_key: str = Field(default="")
    weatherstack_api_key: str = Field(default="")
    visual_crossing_api_key: str = Field(default="")
    owm_api_key: str = Field(default="")
    xweather_client_id: str = Field(default="")
    xweather_client_secret: str = Field(default="")
    tomtom_api_key: str = Field(default="")

    # Per-attempt timeout applied to every provider/source call (seconds)
    provider_timeout_seconds: float = Field(default=10.0)

    # Alerts
    nws_alert_area: str = Field(default="VT")
    alert_default_limit: int = Field(default=10)
    alert_refresh_interval: int = Field(default=10)  # minutes

    # Region used when nothing more specific is known
    default_region: str = Field(default="Vermont")
    local_timezone: str = Field(default="America/New_York")

    # Regional default thresholds. Depths in mm, temperature in C, wind in m/s.
    default_full_closing_snowfall_mm: float = Field(default=152.4)  # 6 in
    default_delay_snowfall_mm: float = Field(default=76.2)  # 3 in
    default_ice_mm: float = Field(default=6.35)  # 0.25 in
    default_cold_temperature_c: float = Field(default=-12.2)  # 10 F
    default_wind_speed_ms: float = Field(default=13.4)  # 30 mph

    # CORS
    cors_origins: str = Field(default="http://localhost:5173,http://localhost:3000")

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


settings = Settings()
