from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    agent_env: Literal["dev", "staging", "prod"] = Field(default="dev", alias="AGENT_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    store_db_dsn: str = Field(default="sqlite:///./phucloi.db", alias="STORE_DB_DSN")
    store_statement_timeout_seconds: float = Field(default=5.0, alias="STORE_STATEMENT_TIMEOUT_SECONDS")

    business_timezone: str = Field(default="Asia/Ho_Chi_Minh", alias="BUSINESS_TIMEZONE")

    default_result_limit: int = Field(default=10, alias="DEFAULT_RESULT_LIMIT")
    max_result_limit: int = Field(default=50, alias="MAX_RESULT_LIMIT")

    entity_match_threshold: float = Field(default=0.80, alias="ENTITY_MATCH_THRESHOLD")
    entity_ambiguity_margin: float = Field(default=0.03, alias="ENTITY_AMBIGUITY_MARGIN")

    context_max_bytes: int = Field(default=16384, alias="CONTEXT_MAX_BYTES")

    agent_auth_mode: Literal["none", "api_key"] = Field(default="none", alias="AGENT_AUTH_MODE")
    agent_api_key: str = Field(default="", alias="AGENT_API_KEY")

    @field_validator("store_statement_timeout_seconds", mode="before")
    @classmethod
    def _clamp_statement_timeout(cls, value: object) -> float:
        """Keep store reads bounded (1..30s) even if env asks for more."""
        try:
            seconds = float(value)
        except Exception:
            return 5.0
        if seconds <= 0:
            return 1.0
        return min(seconds, 30.0)

    @field_validator("entity_match_threshold", "entity_ambiguity_margin", mode="before")
    @classmethod
    def _clamp_ratio(cls, value: object) -> float:
        ratio = float(value)
        return max(0.0, min(ratio, 1.0))

    @field_validator("context_max_bytes", mode="before")
    @classmethod
    def _min_context_size(cls, value: object) -> int:
        """Payload budget below 1 KiB cannot hold even an empty result."""
        return max(int(value), 1024)


@lru_cache
def get_settings() -> Settings:
    return Settings()
