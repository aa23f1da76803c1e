"""Configuration management for kusto-schema."""

from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional


def _find_env_file() -> Optional[str]:
    """Return the first .env file found in the working directory or ~/.kusto-schema."""
    for candidate in (Path(".env"), Path.home() / ".kusto-schema" / ".env"):
        if candidate.is_file():
            return str(candidate)
    return None


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    # Default cluster connection
    kusto_connection_string: Optional[str] = Field(
        default=None,
        description="Connection string (or URI) of the default cluster"
    )
    kusto_default_domain: str = Field(
        default=".kusto.windows.net",
        description="Domain appended to short cluster host names; must start with a dot"
    )
    kusto_admin_catalog: str = Field(
        default="NetDefaultDB",
        description="Initial catalog used for connections to non-default clusters"
    )

    # Loading behaviour
    kusto_follow_up_concurrency: int = Field(
        default=1,
        ge=1,
        description="Maximum concurrent per-object schema calls for external tables and materialized views"
    )

    class Config:
        env_file = _find_env_file()
        env_file_encoding = "utf-8"


# Global settings instance
settings = Settings()
