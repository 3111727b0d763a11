# tests/test_config.py
"""
Tests for Settings validation per environment.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from app.config import Settings


def _settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


class TestDatabaseConfig:
    """Tests for the database URL rules."""

    def test_test_environment_uses_memory(self):
        settings = _settings(environment="test", database_url=None)

        assert settings.database_url == "sqlite:///:memory:"
        assert settings.is_sqlite
        assert settings.is_test

    def test_development_falls_back_to_sqlite_file(self):
        with pytest.warns(UserWarning, match="SQLite"):
            settings = _settings(environment="development", database_url=None)

        assert settings.database_url.endswith("portfolio.db")

    def test_production_requires_url(self):
        with pytest.raises(ValidationError, match="DATABASE_URL is required"):
            _settings(environment="production", database_url=None)

    def test_production_rejects_sqlite(self):
        with pytest.raises(ValidationError, match="must not be SQLite"):
            _settings(environment="production", database_url="sqlite:///prod.db")

    def test_production_with_postgres(self):
        settings = _settings(environment="production", database_url="postgresql://u:p@db:5432/portfolio")

        assert settings.is_production
        assert not settings.is_sqlite


class TestValuationConfig:
    """Tests for valuation and fetching defaults."""

    def test_defaults(self):
        settings = _settings(environment="test")

        assert settings.default_usd_jpy_rate == Decimal("150.0")
        assert settings.quote_batch_size == 5
        assert settings.equity_batch_delay_seconds == 0.2
        assert settings.fund_batch_delay_seconds == 0.5
        assert settings.base_currency == "JPY"

    @pytest.mark.parametrize("field,value", [
        ("default_usd_jpy_rate", Decimal("0")),
        ("quote_batch_size", 0),
        ("equity_batch_delay_seconds", -1),
        ("http_timeout_seconds", 0),
    ])
    def test_rejects_out_of_range(self, field, value):
        with pytest.raises(ValidationError):
            _settings(environment="test", **{field: value})

    def test_rejects_other_base_currency(self):
        with pytest.raises(ValidationError):
            _settings(environment="test", base_currency="EUR")
