"""
Configuration settings for the entalk deck service.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

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
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///./entalk.db",
        description="SQLAlchemy connection string for the question/deck store",
    )

    # ========================================
    # AI Integration (question backfill)
    # ========================================
    gemini_api_key: str | None = Field(
        default=None,
        description="Google Generative AI (Gemini) API key",
    )
    ai_model: str = Field(
        default="gemini-2.0-flash",
        description="AI model used to generate conversation questions",
    )
    ai_timeout_seconds: float = Field(
        default=15.0,
        description="Upper bound for a single AI generation request",
    )
    ai_temperature: float = Field(
        default=0.8,
        description="Sampling temperature for question generation",
    )
    default_topic: str = Field(
        default="everyday life",
        description="Topic used in prompts and templates when the event has no name",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional log file path",
    )

    # ========================================
    # Deck Generation
    # ========================================
    deck_lookback_days: int = Field(
        default=28,
        description="Days a question stays ineligible at a location after use",
    )
    deck_main_size: int = Field(
        default=12,
        description="Target size of the coverage-balanced main slice",
    )
    deck_novelty_size: int = Field(
        default=3,
        description="Target size of the novelty slice",
    )
    deck_floor: int = Field(
        default=15,
        description="Minimum deck size; shortfalls are backfilled by the generator",
    )
    deck_access_code_length: int = Field(
        default=6,
        description="Length of participant access codes",
    )
    deck_access_code_attempts: int = Field(
        default=10,
        description="Maximum access code attempts before giving up",
    )

    # ========================================
    # Scoring
    # ========================================
    score_like_weight: float = Field(
        default=0.7,
        description="Weight of the like rate in the question score",
    )
    score_freshness_weight: float = Field(
        default=0.3,
        description="Weight of the freshness boost in the question score",
    )
    score_jitter: float = Field(
        default=0.1,
        description="Upper bound (exclusive) of the random tie-breaking jitter",
    )
    score_freshness_horizon_days: float = Field(
        default=30.0,
        description="Age in days after which a question earns no freshness credit",
    )

    def has_ai_configured(self) -> bool:
        """Check if an AI API key is configured."""
        return bool(self.gemini_api_key)

    def get_deck_config(self) -> dict[str, Any]:
        """Get deck generation configuration as a dictionary."""
        return {
            "lookback_days": self.deck_lookback_days,
            "main_size": self.deck_main_size,
            "novelty_size": self.deck_novelty_size,
            "floor": self.deck_floor,
            "access_code_length": self.deck_access_code_length,
            "access_code_attempts": self.deck_access_code_attempts,
        }

    def get_score_config(self) -> dict[str, float]:
        """Get scoring weights as a dictionary."""
        return {
            "like_weight": self.score_like_weight,
            "freshness_weight": self.score_freshness_weight,
            "jitter": self.score_jitter,
            "horizon_days": self.score_freshness_horizon_days,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
