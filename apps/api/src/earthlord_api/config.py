"""Application configuration."""

import json
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TEMPLATES_PATH = Path(__file__).parent / "data" / "building_templates.json"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    database_url: str = "postgresql+asyncpg://localhost/earthlord"
    database_url_sync: str = "postgresql://localhost/earthlord"

    # Auth mode: "dev" falls back to DEV_USER_ID when X-User-Id is missing
    auth_mode: str = "dev"

    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Logging
    log_level: str = "info"

    # Path tracking
    closure_tolerance_meters: float = Field(default=30.0, gt=0)
    min_closure_points: int = Field(default=4, ge=4)
    min_point_spacing_meters: float = Field(default=10.0, ge=0)

    # Construction economy. The upgrade schedule and demolish refund are
    # not fixed by the game design, so they are tunable here.
    building_templates_path: Path = DEFAULT_TEMPLATES_PATH
    upgrade_cost_multiplier: float = Field(default=1.0, ge=0)
    demolish_refund_ratio: float = Field(default=0.0, ge=0, le=1)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string (JSON or comma-separated) or list."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                pass
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v


settings = Settings()
