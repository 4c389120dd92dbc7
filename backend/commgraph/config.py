"""Application configuration."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_BACKEND_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "CommGraph API"
    database_url: str = "sqlite+pysqlite:///./commgraph.db"
    log_level: str = "INFO"

    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"
    openrouter_api_key: str | None = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    anthropic_api_key: str | None = None
    anthropic_base_url: str = "https://api.anthropic.com/v1"
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.1:8b"

    daily_cost_limit: float = 10.0
    llm_max_retries: int = 2
    llm_retry_backoff_seconds: float = 2.0

    batch_size: int = 3
    batch_delay_seconds: float = 1.0
    batch_high_cost_delay_seconds: float = 3.0
    batch_high_cost_threshold: float = 0.50

    complexity_high_score: int = 4
    complexity_medium_score: int = 2
    relationship_min_confidence: float = 0.7

    merge_suggest_threshold: float = 0.6
    merge_auto_threshold: float = 0.8
    merge_compare_across_categories: bool = False
    merge_candidate_limit: int = 20

    default_domain: str = "construction"

    model_config = SettingsConfigDict(
        env_file=str(_BACKEND_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
