"""Application configuration and settings management."""

import json
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="TIE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Territory Intelligence API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data/territory-map"), description="Root directory for territory data files.")
    boundaries_file: Optional[Path] = Field(
        default=None,
        description="Postal zone boundary GeoJSON (defaults to <data_root>/zipcode-boundaries.geojson).",
    )
    territories_file: Optional[Path] = Field(default=None, description="Territory records JSON document.")
    assignments_file: Optional[Path] = Field(default=None, description="Zone to territory assignment JSON document.")
    representatives_file: Optional[Path] = Field(default=None, description="Representative records JSON document.")
    coverage_cache_file: Optional[Path] = Field(default=None, description="Drive-time coverage cache JSON document.")
    funnel_data_file: Optional[Path] = Field(default=None, description="Uploaded funnel records JSON document.")
    zone_metadata_file: Optional[Path] = Field(default=None, description="Uploaded zone demographics JSON document.")

    mapbox_access_token: Optional[str] = Field(
        default=None,
        description="Access token for the Mapbox isochrone API. Checked when coverage is requested.",
    )
    mapbox_base_url: str = Field(default="https://api.mapbox.com", description="Base URL of the isochrone provider.")
    mapbox_profile: Literal["driving", "driving-traffic", "walking", "cycling"] = Field(
        default="driving",
        description="Mapbox routing profile used for isochrones.",
    )
    isochrone_timeout_seconds: float = Field(default=10.0, gt=0.0)
    isochrone_max_retries: int = Field(default=0, ge=0)
    isochrone_backoff_seconds: float = Field(default=1.0, ge=0.0)
    isochrone_max_parallel_requests: int = Field(default=8, ge=1)

    coverage_cache_ttl_hours: float = Field(default=24.0, gt=0.0)
    territory_reference_policy: Literal["reject", "allow"] = Field(
        default="reject",
        description="'reject' refuses assignments to unknown territory ids; 'allow' stores them as-is.",
    )
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @model_validator(mode="after")
    def _default_data_files(self) -> "Settings":
        defaults = {
            "boundaries_file": "zipcode-boundaries.geojson",
            "territories_file": "territories.json",
            "assignments_file": "assignments.json",
            "representatives_file": "representatives.json",
            "coverage_cache_file": "drive-time-cache.json",
            "funnel_data_file": "funnel-data.json",
            "zone_metadata_file": "zipcode-metadata.json",
        }
        for field_name, file_name in defaults.items():
            current = getattr(self, field_name)
            if current is None:
                setattr(self, field_name, self.data_root / file_name)
            else:
                setattr(self, field_name, Path(current).expanduser().resolve())
        return self

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()


settings = Settings()
