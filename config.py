"""
Configuration settings for the daypath-mentor service.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

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

    # ========================================
    # Model Providers
    # ========================================
    openai_api_key: str | None = Field(
        default=None,
        description="API key for the OpenAI-compatible completion/embedding endpoint",
    )
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL of the OpenAI-compatible API",
    )
    chat_model: str = Field(
        default="gpt-3.5-turbo",
        description="Model used for mentor answers and concept extraction",
    )
    generation_model: str = Field(
        default="gpt-4o-mini",
        description="Model used for syllabus generation, evaluation and suggestions",
    )

    # ========================================
    # Embeddings
    # ========================================
    embedding_provider: Literal["auto", "openai", "local", "none"] = Field(
        default="auto",
        description="auto picks openai when an API key is set, otherwise none",
    )
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Remote embedding model",
    )
    local_embedding_model: str = Field(
        default="all-MiniLM-L6-v2",
        description="Sentence transformer model for local embeddings (384-dim)",
    )

    # ========================================
    # Timeouts (single attempt, no retries)
    # ========================================
    llm_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound for one completion call",
    )
    embedding_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound for one embedding call",
    )

    # ========================================
    # Scope Gate Tuning
    # ========================================
    # Empirically tuned against text-embedding-3-small; recalibrate when
    # switching embedding models.
    scope_similarity_threshold: float = Field(
        default=0.22,
        ge=-1.0,
        le=1.0,
        description="Minimum cosine similarity between question and DKB",
    )
    min_context_words: int = Field(default=10, ge=0)
    min_context_tokens: int = Field(default=13, ge=0)
    context_soft_budget_tokens: int = Field(
        default=500,
        description="Context size above which a warning is logged (never truncated)",
    )

    # ========================================
    # Day Knowledge Base
    # ========================================
    dkb_concept_cap: int = Field(default=50, ge=1)
    dkb_max_entries: int = Field(
        default=10,
        ge=1,
        description="Maximum number of concurrently warm day knowledge bases",
    )
    embedding_cache_max_entries: int = Field(default=50, ge=1)
    max_concepts_per_answer: int = Field(default=8, ge=1)

    # ========================================
    # Curriculum
    # ========================================
    reflection_min_chars: int = Field(default=50, ge=1)
    max_leave_days: int = Field(default=30, ge=1)
    max_total_days: int = Field(default=365, ge=1)

    # ========================================
    # API Server
    # ========================================
    api_host: str = Field(default="127.0.0.1")
    api_port: int = Field(default=3001)
    cors_origins: str = Field(
        default="",
        description="Comma-separated list of allowed origins",
    )
    max_input_chars: int = Field(default=10000, ge=1)

    # ========================================
    # Logging
    # ========================================
    environment: Literal["development", "production", "test"] = Field(
        default="development",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_file: str | None = Field(
        default="logs/daypath_mentor.log",
        description="Log file path (None to disable file logging)",
    )

    # ========================================
    # Helper Methods
    # ========================================

    def has_ai_configured(self) -> bool:
        """Check if a completion provider is configured."""
        return bool(self.openai_api_key)

    def resolved_embedding_provider(self) -> str:
        """Resolve 'auto' into a concrete embedding provider name."""
        if self.embedding_provider != "auto":
            return self.embedding_provider
        return "openai" if self.openai_api_key else "none"

    def get_cors_origins(self) -> list[str]:
        """Parse the comma-separated origin allowlist."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_scope_config(self) -> dict[str, float | int]:
        """Get scope gate configuration as a dictionary."""
        return {
            "similarity_threshold": self.scope_similarity_threshold,
            "min_context_words": self.min_context_words,
            "min_context_tokens": self.min_context_tokens,
            "context_soft_budget_tokens": self.context_soft_budget_tokens,
            "concept_cap": self.dkb_concept_cap,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
