"""
Application configuration using Pydantic Settings v2
"""

from typing import List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Application Configuration
    APP_NAME: str = Field(default="Competitive Review Analyzer API")
    VERSION: str = Field(default="1.0.0")
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")

    # API Configuration
    API_PREFIX: str = Field(default="")
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Security Configuration (as strings to avoid JSON parsing issues)
    ALLOWED_HOSTS: str = Field(default="*")
    CORS_ORIGINS: str = Field(default="*")

    # OpenAI Configuration
    OPENAI_API_KEY: Optional[str] = Field(default=None)
    OPENAI_MODEL: str = Field(default="gpt-4o-mini")
    OPENAI_TEMPERATURE: float = Field(default=0.4)
    OPENAI_MAX_TOKENS: int = Field(default=4000)

    # Timeouts (seconds)
    MODEL_TIMEOUT_SECONDS: float = Field(default=25.0)
    SCRAPER_TIMEOUT_SECONDS: float = Field(default=15.0)
    PIPELINE_TIMEOUT_SECONDS: float = Field(default=55.0)

    # Model call rate limiting (fixed window, shared by clustering and synthesis)
    RATE_LIMIT_MAX_CALLS: int = Field(default=10)
    RATE_LIMIT_WINDOW_SECONDS: float = Field(default=60.0)

    # Review sources
    GOOGLE_PLAY_REVIEW_COUNT: int = Field(default=100)
    APP_STORE_REVIEW_COUNT: int = Field(default=50)
    DEFAULT_LANG: str = Field(default="en")
    DEFAULT_COUNTRY: str = Field(default="us")
    ITUNES_LOOKUP_URL: str = Field(default="https://itunes.apple.com/lookup")

    # Documentation
    DOCS_URL: Optional[str] = Field(default="/docs")
    REDOC_URL: Optional[str] = Field(default="/redoc")
    OPENAPI_URL: str = Field(default="/openapi.json")

    # Validation
    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        allowed = ["development", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"ENVIRONMENT must be one of {allowed}, got: {v}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}, got: {v}")
        return v.upper()

    @field_validator("PORT")
    @classmethod
    def validate_port(cls, v):
        if not 1 <= v <= 65535:
            raise ValueError("PORT must be between 1 and 65535")
        return v

    @field_validator(
        "MODEL_TIMEOUT_SECONDS",
        "SCRAPER_TIMEOUT_SECONDS",
        "PIPELINE_TIMEOUT_SECONDS",
        "RATE_LIMIT_WINDOW_SECONDS",
    )
    @classmethod
    def validate_positive_seconds(cls, v):
        if v <= 0:
            raise ValueError("Timeouts and windows must be greater than 0 seconds")
        return v

    @field_validator("RATE_LIMIT_MAX_CALLS")
    @classmethod
    def validate_max_calls(cls, v):
        if v < 1:
            raise ValueError("RATE_LIMIT_MAX_CALLS must be at least 1")
        return v

    # Helper methods to convert strings to lists
    def get_allowed_hosts(self) -> List[str]:
        """Convert ALLOWED_HOSTS string to list"""
        if self.ALLOWED_HOSTS == "*":
            return ["*"]
        return [host.strip() for host in self.ALLOWED_HOSTS.split(",") if host.strip()]

    def get_cors_origins(self) -> List[str]:
        """Convert CORS_ORIGINS string to list"""
        if self.CORS_ORIGINS == "*":
            return ["*"]
        return [
            origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()
        ]

    # Properties for convenience
    @property
    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.ENVIRONMENT == "production"

    @property
    def docs_enabled(self) -> bool:
        """Check if documentation should be enabled"""
        return not self.is_production

    @property
    def reload_enabled(self) -> bool:
        """Check if auto-reload should be enabled"""
        return self.is_development

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "validate_assignment": True,
        "extra": "ignore",
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we don't read environment variables multiple times.
    """
    return Settings()


# Global settings instance
settings = get_settings()


class OpenAIConfig:
    def __init__(self):
        self.api_key = settings.OPENAI_API_KEY

    def get_api_key(self):
        return self.api_key

    def get_model(self):
        return settings.OPENAI_MODEL

    def get_temperature(self):
        return settings.OPENAI_TEMPERATURE

    def get_max_tokens(self):
        return settings.OPENAI_MAX_TOKENS
