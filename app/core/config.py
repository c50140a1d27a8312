# python
# app/core/config.py
"""Configuration settings for the Chat Assistant API.

Uses Pydantic BaseSettings for environment variable management.
"""
from enum import Enum

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentEnum(str, Enum):
    development = "development"
    testing = "testing"
    staging = "staging"
    production = "production"


class LogLevelEnum(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LLMProviderEnum(str, Enum):
    groq = "groq"
    gemini = "gemini"


class Settings(BaseSettings):
    # Pydantic v2 settings configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===== Application Settings =====
    app_name: str = Field(default="Chat Assistant API", description="Application name")
    environment: EnvironmentEnum = Field(
        default=EnvironmentEnum.development, description="Environment type"
    )
    debug: bool = Field(default=False, description="Debug mode")
    version: str = Field(default="1.0.0", description="Application version")

    # ===== Database Settings =====
    database_url: str | None = Field(default=None, description="Database connection URL")
    test_database_url: str | None = Field(default=None, description="Test database URL")
    auto_create_tables: bool = Field(
        default=True, description="Create missing tables on startup in development"
    )

    # ===== Authentication (hosted identity provider) =====
    supabase_url: str | None = Field(default=None, description="Identity provider project URL")
    supabase_jwt_secret: str | None = Field(
        default=None, description="Secret used to verify access tokens (HS256)"
    )
    supabase_jwt_audience: str = Field(
        default="authenticated", description="Expected access token audience"
    )
    allow_user_id_header: bool = Field(
        default=True, description="Accept X-User-Id as caller identity when no token is sent"
    )

    # ===== LLM Providers =====
    groq_api_key: str | None = Field(default=None, description="Groq API key")
    groq_api_url: str = Field(
        default="https://api.groq.com/openai/v1", description="OpenAI-compatible endpoint base URL"
    )
    groq_model: str = Field(default="llama-3.3-70b-versatile", description="Groq model to use")
    gemini_api_key: str | None = Field(default=None, description="Google Gemini API key")
    gemini_model: str = Field(default="gemini-1.5-flash", description="Gemini model to use")
    default_llm_provider: LLMProviderEnum = Field(
        default=LLMProviderEnum.groq, description="Gateway used when a request names none"
    )
    llm_temperature: float = Field(default=0.7, description="Sampling temperature for chat replies")
    llm_max_tokens: int = Field(default=1024, description="Maximum tokens for chat replies")
    document_max_tokens: int = Field(
        default=4096, description="Maximum tokens for CV and quiz generation"
    )
    ai_request_timeout: int = Field(default=30, description="AI request timeout in seconds")

    # ===== Document Pipeline =====
    max_file_size: int = Field(default=10485760, description="Maximum upload size in bytes (10MB)")
    cv_prompt_name: str = Field(
        default="cv_normalizer_prompt", description="Prompt record used for CV generation"
    )
    quiz_prompt_name: str = Field(
        default="cv-offre-generate-quiz", description="Prompt record used for quiz generation"
    )

    # ===== Sharing =====
    public_base_url: str = Field(
        default="http://localhost:3000", description="Base URL of public share links"
    )

    # ===== CORS Settings =====
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000",
        description="Allowed CORS origins (comma-separated)",
    )

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    # ===== Monitoring & Logging =====
    log_level: LogLevelEnum = Field(default=LogLevelEnum.INFO, description="Logging level")

    # ===== Server Settings =====
    host: str = Field(default="127.0.0.1", description="Host to bind the server")
    port: int = Field(default=8000, description="Port to bind the server")

    # ===== Computed Properties =====
    @property
    def is_development(self) -> bool:
        return self.environment == EnvironmentEnum.development

    @property
    def is_production(self) -> bool:
        return self.environment == EnvironmentEnum.production

    @property
    def is_testing(self) -> bool:
        return self.environment == EnvironmentEnum.testing

    @property
    def has_groq(self) -> bool:
        return bool(self.groq_api_key)

    @property
    def has_gemini(self) -> bool:
        return bool(self.gemini_api_key)

    @property
    def has_token_verification(self) -> bool:
        return bool(self.supabase_jwt_secret)

    # ===== Validation Methods =====
    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        if v and isinstance(v, str):
            lv = v.lower()
            if lv in ["dev", "develop"]:
                return "development"
            if lv in ["prod"]:
                return "production"
            if lv in ["test"]:
                return "testing"
            return lv
        return v

    @field_validator("max_file_size")
    @classmethod
    def validate_file_size(cls, v):
        if v > 50 * 1024 * 1024:
            raise ValueError("Maximum file size cannot exceed 50MB")
        return v

    @field_validator("public_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


settings = Settings()


class ConfigValidator:
    @staticmethod
    def validate_required_settings():
        errors = []
        if not settings.database_url:
            errors.append("DATABASE_URL is required")
        if settings.is_production and not settings.supabase_jwt_secret:
            errors.append("SUPABASE_JWT_SECRET is required in production")
        if settings.is_production and not (settings.groq_api_key or settings.gemini_api_key):
            errors.append("GROQ_API_KEY or GEMINI_API_KEY is required in production")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

    @staticmethod
    def get_feature_status() -> dict:
        return {
            "groq_enabled": settings.has_groq,
            "gemini_enabled": settings.has_gemini,
            "default_llm_provider": settings.default_llm_provider.value,
            "token_verification": settings.has_token_verification,
            "user_id_header": settings.allow_user_id_header,
            "environment": settings.environment.value,
        }


def get_config_summary() -> dict:
    return {
        "app_name": settings.app_name,
        "version": settings.version,
        "environment": settings.environment.value,
        "debug": settings.debug,
        "features": ConfigValidator.get_feature_status(),
        "database_configured": bool(settings.database_url),
        "public_base_url": settings.public_base_url,
    }


__all__ = [
    "settings",
    "Settings",
    "ConfigValidator",
    "get_config_summary",
    "EnvironmentEnum",
    "LogLevelEnum",
    "LLMProviderEnum",
]
