"""
Tests for application settings.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from pos_core.core.config import Settings, get_settings


class TestSettings:
    """Environment-driven configuration."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("APP_DATABASE_URL", raising=False)
        monkeypatch.delenv("APP_ENVIRONMENT", raising=False)

        settings = Settings(_env_file=None)

        assert settings.database_url.startswith("postgresql+psycopg://")
        assert settings.order_number_prefix == "KWR"
        assert settings.order_number_max_retries == 3
        assert settings.is_development
        assert not settings.is_production
        assert not settings.is_sqlite

    def test_environment_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_DATABASE_URL", "sqlite://")
        monkeypatch.setenv("APP_ENVIRONMENT", "test")
        monkeypatch.setenv("APP_ORDER_NUMBER_PREFIX", " jkt ")

        settings = Settings(_env_file=None)

        assert settings.is_sqlite
        assert settings.is_test
        assert settings.order_number_prefix == "JKT"

    def test_rejects_unsupported_database(self) -> None:
        with pytest.raises(PydanticValidationError, match="postgresql"):
            Settings(_env_file=None, database_url="mysql://localhost/pos")

    def test_rejects_out_of_range_retries(self) -> None:
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, order_number_max_retries=0)

    def test_get_settings_is_cached(self) -> None:
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()
