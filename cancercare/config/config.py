"""
Runtime settings for the CancerCare API.

Read once from the environment (and ``.env``) and logged at startup with
credentials redacted. The scoring coefficients have their own settings
class in ``scoring_config``.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """
    Service, storage and upstream settings.

    Defaults target a local ArangoDB and the public cBioPortal instance;
    production deployments set at least ``ARANGO_HOST`` and
    ``ARANGO_PASSWORD``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )

    app_name: str = Field(default="CancerCare AI")
    app_version: str = Field(default="1.0.0")
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = Field(default=False, description="Expose /docs and enable reload")

    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Dashboard origins allowed to call the API"
    )

    # Clinical record storage
    arango_host: str = Field(default="http://localhost:8529", description="ArangoDB URL")
    arango_database: str = Field(default="cancercare", min_length=1)
    arango_username: str = "root"
    arango_password: str = ""

    # cBioPortal proxy, clinical endpoints only
    cbioportal_base_url: str = Field(default="https://www.cbioportal.org/api")
    cbioportal_timeout_seconds: float = Field(default=15.0, gt=0)

    # Upper bound on how long a prediction waits for its audit write
    audit_timeout_seconds: float = Field(default=2.0, gt=0)

    log_level: LogLevel = "INFO"
    log_format: Literal["json", "console"] = "console"

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v

    @field_validator("cbioportal_base_url", "arango_host")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_safe_config_dict(self) -> dict:
        """Settings as a dict with the database password masked."""
        config = self.model_dump()
        if config["arango_password"]:
            config["arango_password"] = "***REDACTED***"
        return config


@lru_cache
def get_settings() -> Settings:
    """Settings loaded on first use and cached for the process lifetime."""
    return Settings()
