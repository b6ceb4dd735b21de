import json
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    env: Literal["dev", "prod"] = "dev"
    project_name: str = "Heritage Routing"
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    frontend_origins: list[str] = Field(default_factory=list)

    osrm_base_url: str = "https://router.project-osrm.org"
    google_directions_url: str = "https://maps.googleapis.com/maps/api/directions/json"
    google_maps_api_key: str = ""
    directions_region: str = "LK"
    directions_language: str = "en"
    directions_avoid_tolls: bool = False
    directions_avoid_highways: bool = False
    directions_prefer_main_roads: bool = True
    routing_user_agent: str = "SriHeritageApp/1.0"
    # None leaves the HTTP call unbounded.
    route_request_timeout_sec: float | None = None

    fallback_average_speed_kmh: float = 50.0

    country_bounds_south: float = 5.9
    country_bounds_north: float = 9.9
    country_bounds_west: float = 79.5
    country_bounds_east: float = 82.0

    map_tile_url: str = "https://tile.openstreetmap.org/{z}/{x}/{y}.png"
    map_tile_attribution: str = (
        '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap contributors</a>'
    )
    map_max_zoom: int = 19
    map_default_zoom: int = 13
    map_fit_padding_px: int = 20
    fallback_message: str = "Routing failed. Showing straight line route."

    connectivity_probe_origin: tuple[float, float] = (6.9271, 79.8612)
    connectivity_probe_destination: tuple[float, float] = (6.9319, 79.8478)

    @field_validator("frontend_origins", mode="before")
    @classmethod
    def parse_origins(cls, value: object) -> list[str]:
        def _normalize_origin(origin_value: object) -> str:
            origin = str(origin_value).strip()
            if not origin:
                return ""
            # Browser `Origin` header never includes a trailing slash.
            return origin.rstrip("/")

        if isinstance(value, str):
            if not value.strip():
                return []
            if value.strip().startswith("["):
                try:
                    parsed = json.loads(value)
                    if isinstance(parsed, list):
                        return [_normalize_origin(origin) for origin in parsed if _normalize_origin(origin)]
                except json.JSONDecodeError:
                    pass
            return [_normalize_origin(origin) for origin in value.split(",") if _normalize_origin(origin)]
        if isinstance(value, list):
            return [_normalize_origin(item) for item in value if _normalize_origin(item)]
        return []

    @model_validator(mode="after")
    def apply_frontend_origin_defaults(self) -> "Settings":
        if self.frontend_origins:
            self.frontend_origins = list(dict.fromkeys(self.frontend_origins))
            return self

        if self.env == "dev":
            self.frontend_origins = [
                "http://localhost:3000",
                "http://127.0.0.1:3000",
            ]
        else:
            self.frontend_origins = []
        return self

    @model_validator(mode="after")
    def check_country_bounds(self) -> "Settings":
        if self.country_bounds_south > self.country_bounds_north:
            raise ValueError("country_bounds_south must not exceed country_bounds_north")
        if self.country_bounds_west > self.country_bounds_east:
            raise ValueError("country_bounds_west must not exceed country_bounds_east")
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
