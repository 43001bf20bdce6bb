from pathlib import Path
from typing import Dict, Literal

from dotenv import dotenv_values
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

import os

BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = BASE_DIR / ".env"


def load_env_file(env_file: Path = ENV_FILE, prefix: str = "LANDMARKS_") -> Dict[str, str]:
    """
    Copy ``prefix``-ed values from ``env_file`` into ``os.environ``.

    Values already present in the environment win over the file.

    Returns:
        The keys that were added
    """
    if not Path(env_file).exists():
        return {}

    file_env = dotenv_values(env_file)
    missing_keys = {
        k: v for k, v in file_env.items()
        if k.startswith(prefix) and k not in os.environ and v is not None
    }
    for k, v in missing_keys.items():
        os.environ[k] = v
    return missing_keys


class Settings(BaseSettings):
    """Landmark generator settings pulled from ``LANDMARKS_*`` environment variables."""

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "plain"] = Field(default="json", description="Logging format")

    # Landmark Generation Configuration
    default_landmark_count: int = Field(
        default=0, ge=0, description="Requested landmark count (0 = vertex count)"
    )
    resolution_epsilon: float = Field(
        default=0.99999, gt=0.0, lt=1.0,
        description="Added to sqrt(n) before truncation to obtain the grid resolution",
    )
    rounding_offset: float = Field(
        default=0.5, ge=0.0, lt=1.0,
        description="Added before truncation when snapping a query to a grid cell",
    )
    location_tolerance: float = Field(
        default=1e-9, ge=0.0, description="Distance under which a query lies on a feature"
    )

    model_config = SettingsConfigDict(
        env_prefix="LANDMARKS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {value!r}")
        return value


load_env_file()

# Instantiate singleton settings object
settings = Settings()


def get_settings(**overrides) -> Settings:
    """Return a copy of the default settings with ``overrides`` applied."""
    if not overrides:
        return settings
    return Settings(**{**settings.model_dump(), **overrides})
