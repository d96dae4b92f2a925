"""Configuration management."""

import os
from pathlib import Path

from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .terrain_settings import TerrainGenerationSettings

ENV_PREFIX = "HEIGHTWARP_"

# Load the project .env for local runs; real environment variables win
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    for key, value in file_env.items():
        if key.startswith(ENV_PREFIX) and key not in os.environ and value is not None:
            os.environ[key] = value


class Settings(BaseSettings):
    """
    Application settings pulled from environment variables.

    Nested terrain values use a double underscore, for example
    HEIGHTWARP_TERRAIN__WARP__WARP_BINS_X=64.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (plain or json)")

    # Generation
    terrain: TerrainGenerationSettings = Field(default_factory=TerrainGenerationSettings)


# Instantiate singleton settings object
settings = Settings()
