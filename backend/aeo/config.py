"""
Configuration management for the AEO alignment backend
Environment-based settings with secure defaults
"""

from functools import lru_cache
from typing import Dict, List, Optional

from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "aeo"
    APP_ENV: str = "development"  # development, staging, production
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 4

    # Database
    DATABASE_URL: str = "postgresql://localhost:5432/aeo"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10

    # LLM Provider API Keys (a missing key marks the provider unavailable)
    OPENAI_API_KEY: Optional[str] = None
    ANTHROPIC_API_KEY: Optional[str] = None
    GEMINI_API_KEY: Optional[str] = None
    PPLX_API_KEY: Optional[str] = None
    XAI_API_KEY: Optional[str] = None

    # LLM Default Models
    OPENAI_DEFAULT_MODEL: str = "gpt-4o"
    ANTHROPIC_DEFAULT_MODEL: str = "claude-sonnet-4-6"
    GEMINI_DEFAULT_MODEL: str = "gemini-1.5-pro"
    PERPLEXITY_DEFAULT_MODEL: str = "sonar-pro"
    GROK_DEFAULT_MODEL: str = "grok-2-latest"

    # LLM Execution Settings
    LLM_DEFAULT_TEMPERATURE: float = 0.2
    LLM_DEFAULT_TOP_P: float = 1.0
    LLM_DEFAULT_MAX_TOKENS: int = 800
    LLM_REQUEST_TIMEOUT: float = 30.0  # seconds
    LLM_MAX_RETRIES: int = 3
    LLM_RETRY_MIN_WAIT: float = 1.0  # seconds
    LLM_RETRY_MAX_WAIT: float = 10.0  # seconds

    # Embeddings
    EMBEDDING_API_BASE: str = "https://api.openai.com/v1"
    EMBEDDING_MODEL: str = "text-embedding-3-large"

    # Brand identity
    BRAND_NAME: str = "Matey AI"
    BRAND_NAME_VARIANTS: str = "matey ai,mateyai,matey"
    BRAND_DESCRIPTION: Optional[str] = None

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"

    # Notifications & ingestion
    SLACK_WEBHOOK_URL: Optional[str] = None
    # Daily audit alerts when a provider's mention rate falls below this
    MENTION_ALERT_THRESHOLD: Optional[float] = None
    WEBHOOK_SECRET: Optional[str] = None

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    @field_validator(
        "OPENAI_API_KEY",
        "ANTHROPIC_API_KEY",
        "GEMINI_API_KEY",
        "PPLX_API_KEY",
        "XAI_API_KEY",
        mode="before",
    )
    @classmethod
    def blank_key_is_missing(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def brand_name_variants(self) -> List[str]:
        return [v.strip().lower() for v in self.BRAND_NAME_VARIANTS.split(",") if v.strip()]

    @property
    def provider_api_keys(self) -> Dict[str, Optional[str]]:
        return {
            "openai": self.OPENAI_API_KEY,
            "anthropic": self.ANTHROPIC_API_KEY,
            "gemini": self.GEMINI_API_KEY,
            "perplexity": self.PPLX_API_KEY,
            "grok": self.XAI_API_KEY,
        }

    @property
    def provider_default_models(self) -> Dict[str, str]:
        return {
            "openai": self.OPENAI_DEFAULT_MODEL,
            "anthropic": self.ANTHROPIC_DEFAULT_MODEL,
            "gemini": self.GEMINI_DEFAULT_MODEL,
            "perplexity": self.PERPLEXITY_DEFAULT_MODEL,
            "grok": self.GROK_DEFAULT_MODEL,
        }

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings loader"""
    return Settings()


# Canonical brand description used for the brand vector when neither the
# BRAND_DESCRIPTION setting nor a brand profile is available. Kept short:
# embedding quality drops on long multi-topic text.
DEFAULT_BRAND_DESCRIPTION = (
    "Matey AI: AI solutions for legal operations, investigations, and document "
    "automation; built for criminal defense and public defenders. Automates "
    "discovery ingestion, transcription, entity search, and timeline building "
    "for criminal defense and public defenders; free for many court-appointed "
    "defense matters."
)

# Per-provider concurrency ceilings
PROVIDER_CONCURRENCY = {
    "openai": 10,
    "anthropic": 5,
    "gemini": 5,
    "perplexity": 3,
    "grok": 2,
}
DEFAULT_PROVIDER_CONCURRENCY = 5

# Job pipelines
JOB_SCHEDULES = {
    "audit": {"hour": 9, "minute": 0},
    "reinforcement": {"hour": 15, "minute": 0},
    "content_build": {"hour": 10, "minute": 0, "day_of_week": "mon"},
}
