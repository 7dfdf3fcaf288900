"""Settings loaded from environment variables and an optional .env file."""

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ABSTRACT_STRATEGIES = ("template", "llm")
TRANSPORTS = ("stdio", "sse", "http")


class Settings(BaseSettings):
    """Memory server settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    memory_db_path: str = "./memory.sqlite"
    storage_backend: str = "sqlite"

    # Logging
    log_level: str = "INFO"
    debug: bool = False

    # Save path
    min_message_length: int = Field(default=3, ge=1)
    sequence_cap: int = Field(default=1000, gt=0)
    sequence_eviction_seconds: float = Field(default=10.0, gt=0)

    # Queries and abstract windows
    query_row_limit: int = Field(default=1000, gt=0)
    rebuild_lookback_days: int = Field(default=14, gt=0)
    recent_days_default: int = Field(default=3, gt=0)
    incremental_window_size: int = Field(default=10, gt=0)
    rebuild_window_size: int = Field(default=5, gt=0)

    # Abstract strategy ("template" or "llm")
    abstract_strategy: str = "template"
    llm_model: str = "gpt-4o-mini"
    llm_api_key: Optional[SecretStr] = None
    llm_base_url: Optional[str] = None

    # Tool server transport
    transport: str = "stdio"
    host: str = "127.0.0.1"
    port: int = 8080

    @field_validator("abstract_strategy")
    @classmethod
    def _check_strategy(cls, value: str) -> str:
        value = value.lower()
        if value not in ABSTRACT_STRATEGIES:
            raise ValueError(
                f"abstract_strategy must be one of {', '.join(ABSTRACT_STRATEGIES)}"
            )
        return value

    @field_validator("transport")
    @classmethod
    def _check_transport(cls, value: str) -> str:
        value = value.lower()
        if value not in TRANSPORTS:
            raise ValueError(f"transport must be one of {', '.join(TRANSPORTS)}")
        return value

    @property
    def effective_log_level(self) -> str:
        """DEBUG when the debug flag is set, otherwise log_level."""
        return "DEBUG" if self.debug else self.log_level.upper()

    @property
    def llm_api_key_str(self) -> Optional[str]:
        return self.llm_api_key.get_secret_value() if self.llm_api_key else None


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
