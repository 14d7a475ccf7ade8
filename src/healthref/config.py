"""
Configuration management using pydantic-settings.

Loads configuration from environment variables and .env file.
"""

from functools import lru_cache
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -----------------
    # Model backend credentials (one per backend family)
    # -----------------
    groq_api_key: SecretStr | None = Field(
        default=None,
        description="Groq API key",
    )
    together_api_key: SecretStr | None = Field(
        default=None,
        description="Together AI API key",
    )
    openrouter_api_key: SecretStr | None = Field(
        default=None,
        description="OpenRouter API key",
    )
    anthropic_api_key: SecretStr | None = Field(
        default=None,
        description="Anthropic API key",
    )

    # -----------------
    # Model gateway
    # -----------------
    ai_backend: str = Field(
        default="groq",
        description="Backend family: groq, together, openrouter, anthropic",
    )
    ai_model: str | None = Field(
        default=None,
        description="Primary model override for the selected backend family",
    )
    ai_temperature: float = Field(
        default=0.3,
        description="Sampling temperature for every generation call",
    )
    ai_max_tokens: int = Field(
        default=4000,
        description="Maximum output tokens per generation call",
    )
    ai_json_mode: bool = Field(
        default=True,
        description="Ask backends that support it for a JSON object response",
    )
    ai_fallback_on_unclassified: bool = Field(
        default=True,
        description="Try the next candidate model on unclassified errors",
    )

    # -----------------
    # Extraction heuristics
    # -----------------
    prompt_content_chars: int = Field(
        default=600,
        description="Characters of each source document embedded in the prompt",
    )
    simplification_threshold: float = Field(
        default=0.9,
        description="Similarity at or above which a paraphrase counts as an echo",
    )
    mechanism_min_length: int = Field(
        default=50,
        description="Vague mechanisms shorter than this are rejected",
    )

    # -----------------
    # Search collaborators
    # -----------------
    semantic_scholar_api_key: SecretStr | None = Field(
        default=None,
        description="Optional Semantic Scholar key for higher rate limits",
    )
    search_results_default: int = Field(
        default=8,
        description="Results requested per source for a plain condition",
    )
    search_results_with_cause: int = Field(
        default=12,
        description="Results requested per source for a cause-scoped condition",
    )
    http_timeout: float = Field(
        default=10.0,
        description="Timeout in seconds for outbound search requests",
    )
    cache_ttl_seconds: int = Field(
        default=3600,
        description="Lifetime of cached search results and analyses",
    )
    pubmed_min_interval: float = Field(
        default=0.34,
        description="Minimum seconds between PubMed requests",
    )
    semantic_scholar_min_interval: float = Field(
        default=0.2,
        description="Minimum seconds between Semantic Scholar requests",
    )
    scholar_min_interval: float = Field(
        default=1.0,
        description="Minimum seconds between Google Scholar requests",
    )
    web_min_interval: float = Field(
        default=0.5,
        description="Minimum seconds between health website requests",
    )

    # -----------------
    # Application
    # -----------------
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    environment: str = Field(
        default="development",
        description="Environment: development, staging, production",
    )
    app_url: str = Field(
        default="http://localhost:8000",
        description="Public URL sent as referer to OpenRouter",
    )

    # -----------------
    # API
    # -----------------
    api_host: str = Field(
        default="0.0.0.0",
        description="API host",
    )
    api_port: int = Field(
        default=8000,
        description="API port",
    )

    def api_key_for(self, family: str) -> SecretStr | None:
        """Credential configured for a backend family, if any."""
        return getattr(self, f"{family}_api_key", None)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Convenience access
settings = get_settings()
