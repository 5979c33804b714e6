from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from skillex_server import __version__


class Settings(BaseSettings):
    """Service settings, read from the environment and ``.env``.

    Matching knobs use the ``MATCH_`` prefix (``MATCH_SCAN_LIMIT`` sets
    ``scan_limit``); the Mongo, logging and version settings keep their
    platform-wide names.
    """

    model_config = SettingsConfigDict(
        env_prefix="MATCH_",
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    # Database
    mongodb_url: str = Field("mongodb://localhost:27017", validation_alias="MONGODB_URL")
    mongodb_db: str = Field("skillex", validation_alias="MONGODB_DB")

    # Scoring
    weight_skill: float = Field(0.5, ge=0.0)
    weight_availability: float = Field(0.3, ge=0.0)
    weight_recency: float = Field(0.1, ge=0.0)
    weight_location: float = Field(0.1, ge=0.0)
    recency_half_life_days: float = Field(14.0, gt=0.0)

    # Request handling
    scan_limit: int = Field(10_000, ge=1)
    default_limit: int = Field(12, ge=1, le=100)
    timeout_seconds: float = Field(5.0, gt=0.0)

    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")
    version: str = Field(__version__, validation_alias="APP_VERSION")

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def _some_weight(self) -> "Settings":
        weights = (self.weight_skill, self.weight_availability, self.weight_recency, self.weight_location)
        if sum(weights) <= 0:
            raise ValueError("at least one MATCH_WEIGHT_* must be positive")
        return self


@lru_cache()
def get_settings() -> Settings:
    return Settings()
