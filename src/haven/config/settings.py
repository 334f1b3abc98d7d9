"""
HAVEN Application Settings

Production-grade configuration management using Pydantic Settings.
All sensitive values are loaded from environment variables.

SECURITY: Never log or expose settings containing secrets.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL database configuration."""
    
    model_config = SettingsConfigDict(env_prefix="HAVEN_DB_")
    
    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    name: str = Field(default="haven_db", description="Database name")
    user: str = Field(default="haven_user", description="Database user")
    password: SecretStr = Field(default=SecretStr("dev_password"), description="Database password")
    pool_size: int = Field(default=10, ge=1, le=100, description="Connection pool size")
    max_overflow: int = Field(default=20, ge=0, le=100, description="Max overflow connections")
    url: Optional[str] = Field(
        default=None,
        description="Full async URL override (e.g. sqlite+aiosqlite:///haven.db)",
    )
    
    @property
    def async_url(self) -> str:
        """Generate async database URL for SQLAlchemy."""
        if self.url:
            return self.url
        password = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{password}@{self.host}:{self.port}/{self.name}"
    
    @property
    def sync_url(self) -> str:
        """Generate sync database URL for Alembic migrations."""
        if self.url:
            return self.url.replace("+aiosqlite", "").replace("+asyncpg", "")
        password = self.password.get_secret_value()
        return f"postgresql://{self.user}:{password}@{self.host}:{self.port}/{self.name}"
    
    @property
    def is_sqlite(self) -> bool:
        return self.async_url.startswith("sqlite")


class OpenAISettings(BaseSettings):
    """OpenAI API configuration for guidance text."""
    
    model_config = SettingsConfigDict(env_prefix="HAVEN_OPENAI_")
    
    api_key: SecretStr = Field(default=SecretStr(""), description="OpenAI API key")
    model: str = Field(default="gpt-4o-mini", description="Model identifier")
    max_tokens: int = Field(default=256, ge=16, le=4096)
    temperature: float = Field(default=0.4, ge=0.0, le=2.0)


class SafetySettings(BaseSettings):
    """Safety assessment and trend cache configuration."""
    
    model_config = SettingsConfigDict(env_prefix="HAVEN_SAFETY_")
    
    recent_set_window: int = Field(default=5, ge=1, le=50, description="Sets included in a snapshot")
    recent_check_window: int = Field(default=3, ge=1, le=20, description="Safety checks included in a snapshot")
    trend_cache_ttl_seconds: int = Field(default=4 * 3600, ge=60, description="Idle TTL for cached trends")
    trend_cache_max_sessions: int = Field(default=1000, ge=1, description="Max sessions kept in trend cache")
    crisis_resources_path: Optional[str] = Field(default=None, description="JSON override for crisis resources")
    country_code: str = Field(default="US", description="Default jurisdiction for crisis resources")
    guidance_timeout_seconds: float = Field(
        default=5.0, gt=0, le=60, description="Upper bound on guidance text generation per assessment"
    )


class Settings(BaseSettings):
    """
    Main application settings.
    
    All configuration is loaded from environment variables with HAVEN_ prefix.
    Sensitive values use SecretStr to prevent accidental logging.
    
    Usage:
        settings = get_settings()
        db_url = settings.database.async_url
    """
    
    model_config = SettingsConfigDict(
        env_prefix="HAVEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
    
    # Application
    env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    debug: bool = Field(default=False, description="Debug mode - NEVER enable in production")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )
    
    # Collaborator selection
    persistence_backend: Literal["memory", "sql"] = Field(
        default="sql",
        description="Persistence store implementation"
    )
    guidance_provider: Literal["static", "openai"] = Field(
        default="static",
        description="Guidance text provider for user-facing messages"
    )
    
    # Nested settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    safety: SafetySettings = Field(default_factory=SafetySettings)
    
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.env == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.
    
    Uses LRU cache to ensure settings are only loaded once.
    For testing, construct Settings directly and pass it to create_core().
    
    Returns:
        Settings: Application settings instance
    """
    return Settings()
