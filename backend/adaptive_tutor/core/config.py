"""Configuration settings for the Adaptive Tutor core."""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "adaptive_tutor"
    APP_ENV: str = "development"
    DEBUG: bool = True

    # API
    API_V1_PREFIX: str = "/api/v1"

    # Database - Tutor
    TUTOR_DB_URL: str = Field(
        default="sqlite+aiosqlite:///./data/tutor.db"
    )

    # Database Pool Settings (ignored for SQLite)
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30

    # OpenAI-compatible LLM (LM Studio, Ollama proxy, cloud providers, etc.)
    LLM_BASE_URL: str = "http://127.0.0.1:1234/v1"
    LLM_API_KEY: str = Field(default="", description="API key for OpenAI-compatible LLM backend")
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 4096
    LLM_TIMEOUT_SECONDS: float = 60.0

    # LangSmith tracing
    LANGSMITH_TRACING: bool = False
    LANGSMITH_API_KEY: str = Field(default="", description="LangSmith API key")
    LANGSMITH_ENDPOINT: str = "https://api.smith.langchain.com"
    LANGSMITH_PROJECT: str = "adaptive-tutor"

    # CORS - Accept comma-separated string from .env
    CORS_ORIGINS: str = "http://localhost:3000"
    CORS_ALLOW_CREDENTIALS: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"

    # Tutoring
    RECENT_TURNS_LIMIT: int = 5
    ERROR_HISTORY_LIMIT: int = 50
    DEFAULT_TUTORING_MODE: str = "friendly_mentor"
    DEFAULT_GRADE_LEVEL: str = "high school"
    DEFAULT_ANSWER_CONFIDENCE: float = Field(default=0.7, ge=0.0, le=1.0)
    MIN_ANSWER_LENGTH: int = 10
    USE_LLM_GRADING: bool = False

    @property
    def cors_origins_list(self) -> List[str]:
        """Convert CORS_ORIGINS string to a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def is_sqlite(self) -> bool:
        return self.TUTOR_DB_URL.startswith("sqlite")


def get_settings() -> Settings:
    """Get settings instance."""
    return Settings()


settings = get_settings()
