"""
Runtime configuration for the catalog scripts and API.

Values come from environment variables, with the .env file at the repo root
as a fallback. Variables already set in the environment take precedence.

Required:
  CATALOG_DB_URL          postgresql:// URL of the catalog database
  CATALOG_DB_AUTH_TOKEN   credential sent as the connection password
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

ENV_FILE = Path(__file__).parent.parent / ".env"


class CatalogError(Exception):
    """Base class for catalog failures that end a run."""


class ConfigError(CatalogError):
    """Required configuration is missing or invalid."""


class Settings(BaseSettings):
    """Configuration from environment variables."""

    catalog_db_url: str
    catalog_db_auth_token: str

    # "development" disables the query cache and switches prefetch to http
    app_env: str = "production"

    listing_revalidate_seconds: int = 60 * 60 * 24
    search_revalidate_seconds: int = 60 * 60 * 2
    cache_max_entries: int = Field(1024, gt=0)

    import_data_dir: Path = Path("data/convex")
    import_batch_size: int = Field(1000, gt=0)
    product_batch_size: int = Field(1000, gt=0)

    session_secret: str = ""

    # Prefetch host resolution
    public_host: str = ""
    production_host: str = ""
    branch_host: str = ""
    deploy_env: str = ""

    class Config:
        env_file = str(ENV_FILE)
        extra = "ignore"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


def load_settings(**overrides) -> Settings:
    """
    Build Settings, turning missing required values into ConfigError.

    Raises:
        ConfigError: If CATALOG_DB_URL or CATALOG_DB_AUTH_TOKEN is unset.
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        missing = [
            str(err["loc"][0]).upper()
            for err in e.errors()
            if err["type"] == "missing"
        ]
        if missing:
            raise ConfigError(
                f"Missing required environment variables: {', '.join(missing)}"
            ) from e
        raise ConfigError(f"Invalid configuration: {e}") from e
