"""Configuration management for the Finance Maturity Diagnostic engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Supabase configuration (required)
    SUPABASE_URL: str = Field(..., description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(..., description="Supabase service role key")
    SUPABASE_TIMEOUT_SECONDS: int = Field(default=10, description="PostgREST request timeout")

    # OpenAI configuration (required)
    OPENAI_API_KEY: str = Field(..., description="OpenAI API key")

    # Environment
    DIAGNOSTIC_ENV: str = Field(default="dev", description="Environment: dev, staging, prod")
    API_HOST: str = Field(default="0.0.0.0", description="Bind address for the API server")
    API_PORT: int = Field(default=8000, description="Port for the API server")

    # Clarifier generation (core + follow-up questions)
    CLARIFIER_MODEL: str = Field(default="gpt-4o-mini", description="Model for clarifier generation")
    CLARIFIER_TEMPERATURE: float = Field(default=0.0, description="Clarifier generation temperature")
    CLARIFIER_PROMPT_VERSION: str = Field(
        default="clarifiers_v1", description="Clarifier prompt version for tracking"
    )

    # Area evaluation (scoring call)
    EVALUATOR_MODEL: str = Field(default="gpt-4o-mini", description="Model for area evaluation")
    EVALUATOR_TEMPERATURE: float = Field(default=0.0, description="Area evaluation temperature")
    EVALUATOR_PROMPT_VERSION: str = Field(
        default="evaluate_area_v1", description="Evaluator prompt version for tracking"
    )
    EVALUATOR_SCHEMA_VERSION: str = Field(
        default="area_assessment_v1", description="Assessment schema version for tracking"
    )

    # Scoring tunables
    REPORTED_SCORE_MCQ_WEIGHT: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Share of the MCQ score in reported_score (rest is the clarifier score)",
    )
    CONTRADICTION_THRESHOLD: float = Field(
        default=1.5, description="MCQ vs clarifier gap on one axis that counts as a contradiction"
    )
    MCQ_STRENGTH_THRESHOLD: float = Field(
        default=4.0, description="MCQ axis signal at or above which the axis reads as a strength"
    )

    # Recommendation tunables
    MATURITY_THRESHOLD: float = Field(
        default=3.5, description="Subscore below which a weakness produces a non-zero severity"
    )
    PRIORITY_HIGH_SEVERITY: float = Field(default=2.0, description="Severity for high priority")
    PRIORITY_MEDIUM_SEVERITY: float = Field(default=1.0, description="Severity for medium priority")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()
