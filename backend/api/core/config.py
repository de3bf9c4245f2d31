"""Application configuration using Pydantic Settings"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=Path(__file__).parent.parent.parent / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(..., description="PostgreSQL database URL")
    run_migrations: bool = Field(default=True, description="Apply pending migrations on startup")

    # Session verification (Supabase JWT secret)
    jwt_secret_key: str = Field(..., description="Secret key used to verify session JWTs")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_audience: str = Field(default="", description="Expected JWT audience, empty to skip")

    # Language model (OpenAI-compatible, OpenRouter by default)
    llm_api_key: str = Field(default="", description="Language model API key")
    llm_model: str = Field(
        default="anthropic/claude-sonnet-4", description="Model used for event extraction"
    )
    llm_base_url: str = Field(
        default="https://openrouter.ai/api/v1", description="OpenAI-compatible API base URL"
    )
    llm_max_tokens: int = Field(default=4096, description="Output token budget per extraction")

    # Page rendering proxy (Jina Reader)
    reader_base_url: str = Field(default="https://r.jina.ai", description="Reader proxy base URL")
    jina_api_key: str = Field(default="", description="Optional Jina Reader API key")
    http_timeout: float = Field(default=30.0, description="Timeout for outbound HTTP calls")

    # Timestamps without an offset are read in this zone
    default_timezone: str = Field(default="Asia/Tokyo", description="Zone for naive timestamps")

    # Server URLs
    frontend_url: str = Field(default="http://localhost:3000", description="Frontend URL for CORS")

    # Environment
    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL uses a PostgreSQL scheme"""
        if not v.startswith(("postgresql://", "postgres://")):
            raise ValueError("DATABASE_URL must start with postgresql:// or postgres://")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            logger.warning(f"Invalid log level '{v}', defaulting to INFO")
            return "INFO"
        return v_upper

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS allowed origins"""
        return [self.frontend_url]

    @property
    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()  # type: ignore[call-arg]
