"""
Configuration Unit Tests

Settings are validated at load time: missing credentials and out-of-range
retrieval parameters must fail before any request is served.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from pydantic import ValidationError

from impact_rag.core.config import Settings, get_settings
from impact_rag.core.exceptions import ConfigurationError

_MANAGED_VARS = (
    "DOCUMENT_STORE",
    "EMBEDDING_PROVIDER",
    "COHERE_API_KEY",
    "OPENAI_API_KEY",
    "POSTGRES_USER",
    "POSTGRES_PASSWORD",
    "POSTGRES_DB",
    "PRIMARY_THRESHOLD",
    "FALLBACK_THRESHOLD",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Strip the suite-wide defaults so each test states its own env."""
    for name in _MANAGED_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def fresh_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestSettings:
    """Tests for defaults and load-time validation."""

    def test_defaults(self, clean_env: pytest.MonkeyPatch) -> None:
        settings = _settings(DOCUMENT_STORE="memory", COHERE_API_KEY="k")

        assert settings.EMBEDDING_PROVIDER == "cohere"
        assert settings.EMBEDDING_DIMENSION == 1024
        assert settings.CHUNK_SIZE == 1000
        assert settings.PRIMARY_THRESHOLD == 0.5
        assert settings.FALLBACK_THRESHOLD == 0.3
        assert settings.MATCH_COUNT == 5
        assert settings.EMBEDDING_MIN_INTERVAL_MS == 100
        assert settings.EMBEDDING_MAX_RETRIES == 3

    def test_reads_environment(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("DOCUMENT_STORE", "memory")
        clean_env.setenv("EMBEDDING_PROVIDER", "openai")
        clean_env.setenv("OPENAI_API_KEY", "sk-test")

        settings = _settings()

        assert settings.EMBEDDING_PROVIDER == "openai"
        assert settings.OPENAI_API_KEY == "sk-test"

    def test_missing_cohere_key_fails(self, clean_env: pytest.MonkeyPatch) -> None:
        with pytest.raises(ValidationError, match="COHERE_API_KEY"):
            _settings(DOCUMENT_STORE="memory")

    def test_missing_openai_key_fails(self, clean_env: pytest.MonkeyPatch) -> None:
        with pytest.raises(ValidationError, match="OPENAI_API_KEY"):
            _settings(DOCUMENT_STORE="memory", EMBEDDING_PROVIDER="openai")

    def test_local_provider_needs_no_key(self, clean_env: pytest.MonkeyPatch) -> None:
        settings = _settings(DOCUMENT_STORE="memory", EMBEDDING_PROVIDER="local")

        assert settings.COHERE_API_KEY is None

    def test_postgres_requires_credentials(self, clean_env: pytest.MonkeyPatch) -> None:
        with pytest.raises(ValidationError, match="POSTGRES_USER"):
            _settings(COHERE_API_KEY="k")

    def test_database_url(self, clean_env: pytest.MonkeyPatch) -> None:
        settings = _settings(
            COHERE_API_KEY="k",
            POSTGRES_USER="app",
            POSTGRES_PASSWORD="secret",
            POSTGRES_DB="impact",
            POSTGRES_HOST="db",
        )

        assert settings.DATABASE_URL == "postgresql+asyncpg://app:secret@db:5432/impact"

    @pytest.mark.parametrize(
        "primary, fallback",
        [(0.3, 0.5), (1.2, 0.3), (0.5, -0.1)],
    )
    def test_threshold_order_enforced(
        self, clean_env: pytest.MonkeyPatch, primary: float, fallback: float
    ) -> None:
        with pytest.raises(ValidationError, match="Thresholds"):
            _settings(
                DOCUMENT_STORE="memory",
                COHERE_API_KEY="k",
                PRIMARY_THRESHOLD=primary,
                FALLBACK_THRESHOLD=fallback,
            )

    @pytest.mark.parametrize("field", ["CHUNK_SIZE", "MATCH_COUNT"])
    def test_sizes_must_be_positive(self, clean_env: pytest.MonkeyPatch, field: str) -> None:
        with pytest.raises(ValidationError, match="positive"):
            _settings(DOCUMENT_STORE="memory", COHERE_API_KEY="k", **{field: 0})


class TestGetSettings:
    """Tests for the cached accessor."""

    def test_is_cached(
        self,
        clean_env: pytest.MonkeyPatch,
        fresh_settings_cache: None,
        tmp_path: Path,
    ) -> None:
        clean_env.chdir(tmp_path)
        clean_env.setenv("DOCUMENT_STORE", "memory")
        clean_env.setenv("COHERE_API_KEY", "k")

        assert get_settings() is get_settings()

    def test_invalid_configuration_raises_configuration_error(
        self,
        clean_env: pytest.MonkeyPatch,
        fresh_settings_cache: None,
        tmp_path: Path,
    ) -> None:
        # no .env in the working directory
        clean_env.chdir(tmp_path)
        clean_env.setenv("DOCUMENT_STORE", "memory")

        with pytest.raises(ConfigurationError, match="Invalid configuration") as exc_info:
            get_settings()

        assert any("COHERE_API_KEY" in msg for msg in exc_info.value.details["errors"])
