"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "planstream"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://planstream@localhost:5432/planstream"

    openai_api_key: str | None = None
    openai_model: str = "gpt-4o"
    plan_temperature: float = 0.5
    plan_top_p: float = 0.9
    plan_max_output_tokens: int = 8192

    plan_max_retries: int = 2
    plan_min_task_ratio: float = 0.7
    # Jaccard similarity at which two task descriptions count as the same task.
    plan_dedup_threshold: float = 0.85
    plan_cache_size: int = 10
    goal_max_length: int = 4000
    plan_text_max_length: int = 100_000
    revision_instructions_max_length: int = 8000
    plan_revision_temperature: float = 0.6

    rate_limit_per_minute: int = 20
    rate_limit_burst: int = 10

    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "planstream"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
