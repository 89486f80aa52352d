"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Attune configuration. All values come from environment variables."""

    # Durable tier (local SQLite file)
    database_path: Path = Field(default=Path("data/attune.db"))

    # Semantic tier (OpenAI embeddings), disabled when no key is set
    openai_api_key: str = Field(default="")
    embedding_model: str = Field(default="text-embedding-3-small")
    embedding_max_retries: int = Field(default=3)
    embedding_retry_delay: float = Field(default=0.5)
    embedding_batch_delay: float = Field(default=0.2)
    similarity_threshold: float = Field(default=0.7)

    # Cache tier
    cache_ttl_seconds: int = Field(default=3600)
    cache_max_messages: int = Field(default=10)

    # Search
    search_max_results: int = Field(default=5)
    tier_timeout_seconds: float = Field(default=5.0)

    # Scoring
    relationship_window: int = Field(default=50)
    keyword_dictionary_path: Path | None = Field(default=None)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=_env_file(),
        env_file_encoding="utf-8",
        env_prefix="ATTUNE_",
        extra="forbid",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @property
    def semantic_enabled(self) -> bool:
        """The semantic tier needs an embedding key to do anything."""
        return bool(self.openai_api_key.strip())


settings = Settings()
