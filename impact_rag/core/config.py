"""
Application Configuration

Centralized settings management using Pydantic BaseSettings.
All values are loaded from environment variables or a ``.env`` file.

Credentials are validated at load time: a missing embedding API key or
database parameter is a startup failure, never a per-request one.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from impact_rag.core.exceptions import ConfigurationError


class Settings(BaseSettings):
    """
    Application settings with environment variable binding.

    Required env vars depend on the selected backends:
        - DOCUMENT_STORE=postgres: POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_DB
        - EMBEDDING_PROVIDER=cohere: COHERE_API_KEY
        - EMBEDDING_PROVIDER=openai: OPENAI_API_KEY

    Optional env vars:
        LOG_LEVEL (INFO), CHUNK_SIZE (1000), PRIMARY_THRESHOLD (0.5),
        FALLBACK_THRESHOLD (0.3), MATCH_COUNT (5), OLLAMA_* (generation).
    """

    PROJECT_NAME: str = "Impact RAG"
    ENVIRONMENT: str = "local"
    LOG_LEVEL: str = "INFO"

    # Document store
    DOCUMENT_STORE: Literal["postgres", "memory"] = "postgres"
    POSTGRES_USER: str | None = None
    POSTGRES_PASSWORD: str | None = None
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str | None = None

    # Embedding service
    EMBEDDING_PROVIDER: Literal["cohere", "openai", "local"] = "cohere"
    EMBEDDING_MODEL: str = "embed-english-v3.0"
    EMBEDDING_DIMENSION: int = 1024
    EMBEDDING_TIMEOUT: float = 30.0
    COHERE_API_KEY: str | None = None
    COHERE_BASE_URL: str = "https://api.cohere.com"
    OPENAI_API_KEY: str | None = None

    # Shared quota protection
    EMBEDDING_MIN_INTERVAL_MS: int = 100
    EMBEDDING_MAX_RETRIES: int = 3
    EMBEDDING_INITIAL_RETRY_DELAY_MS: int = 1000

    # Chunking and retrieval
    CHUNK_SIZE: int = 1000
    PRIMARY_THRESHOLD: float = 0.5
    FALLBACK_THRESHOLD: float = 0.3
    MATCH_COUNT: int = 5

    # Generation (Ollama)
    OLLAMA_BASE_URL: str = "http://host.docker.internal:11434"
    OLLAMA_MODEL: str = "mistral"
    OLLAMA_TIMEOUT: float = 120.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",  # Silently ignore unknown env vars
    )

    @model_validator(mode="after")
    def _check_credentials(self) -> Settings:
        if self.DOCUMENT_STORE == "postgres":
            missing = [
                name
                for name in ("POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_DB")
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(
                    f"{', '.join(missing)} must be set when DOCUMENT_STORE=postgres"
                )

        if self.EMBEDDING_PROVIDER == "cohere" and not self.COHERE_API_KEY:
            raise ValueError("COHERE_API_KEY must be set when EMBEDDING_PROVIDER=cohere")
        if self.EMBEDDING_PROVIDER == "openai" and not self.OPENAI_API_KEY:
            raise ValueError("OPENAI_API_KEY must be set when EMBEDDING_PROVIDER=openai")

        if not 0.0 <= self.FALLBACK_THRESHOLD <= self.PRIMARY_THRESHOLD <= 1.0:
            raise ValueError(
                "Thresholds must satisfy 0 <= FALLBACK_THRESHOLD "
                "<= PRIMARY_THRESHOLD <= 1"
            )
        if self.CHUNK_SIZE <= 0 or self.MATCH_COUNT <= 0:
            raise ValueError("CHUNK_SIZE and MATCH_COUNT must be positive")
        if self.EMBEDDING_DIMENSION <= 0:
            raise ValueError("EMBEDDING_DIMENSION must be positive")
        if self.EMBEDDING_MAX_RETRIES < 0:
            raise ValueError("EMBEDDING_MAX_RETRIES must not be negative")
        return self

    @property
    def DATABASE_URL(self) -> str:
        """Async PostgreSQL connection string using asyncpg driver."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


@lru_cache
def get_settings() -> Settings:
    """
    Load and cache the application settings.

    Raises:
        ConfigurationError: If required credentials are missing or values
            are out of range.
    """
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid configuration",
            {"errors": [err["msg"] for err in e.errors()]},
        ) from e
