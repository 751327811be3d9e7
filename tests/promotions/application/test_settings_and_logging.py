"""Tests for settings loading and logging configuration."""

import structlog
from promotions.config import PromotionsSettings, get_settings, reset_settings
from promotions.utils.logging import add_context, clear_context, get_log_level


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("PROMOTIONS_ENV", raising=False)
        settings = PromotionsSettings(_env_file=None)

        assert settings.env == "development"
        assert settings.default_currency == "USD"
        assert settings.decimal_places_for("jpy") == 0
        assert settings.decimal_places_for("EUR") == 2
        assert not settings.is_production

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("PROMOTIONS_ENV", "production")
        reset_settings()

        assert get_settings().is_production

    def test_settings_are_cached(self):
        assert get_settings() is get_settings()


class TestLogLevel:
    def test_level_follows_environment(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.delenv("PROMOTIONS_LOG_LEVEL", raising=False)
        monkeypatch.setenv("PROMOTIONS_ENV", "production")
        reset_settings()

        assert get_log_level() == "INFO"

    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        reset_settings()

        assert get_log_level() == "ERROR"


class TestLogContext:
    def test_clear_named_key_keeps_the_rest(self):
        add_context(order_id="order-1", request_id="req-1")

        clear_context("order_id")

        assert structlog.contextvars.get_contextvars() == {"request_id": "req-1"}
        clear_context()

    def test_clear_without_keys_drops_everything(self):
        add_context(order_id="order-1", request_id="req-1")

        clear_context()

        assert structlog.contextvars.get_contextvars() == {}
