"""Tests for application settings."""

import os

import pytest
from polyglot.core.config import Settings, get_settings, reset_settings
from pydantic import ValidationError


class TestSupportedLanguages:
    def test_comma_separated_string(self):
        settings = Settings(SUPPORTED_LANGUAGES=" EN, pt ,,es ")
        assert settings.SUPPORTED_LANGUAGES == ["en", "pt", "es"]

    def test_list_value(self):
        settings = Settings(SUPPORTED_LANGUAGES=["FR", "de"])
        assert settings.SUPPORTED_LANGUAGES == ["fr", "de"]

    def test_requires_two_languages(self):
        with pytest.raises(ValidationError, match="at least two"):
            Settings(SUPPORTED_LANGUAGES="en")


class TestLimits:
    @pytest.mark.parametrize(
        "field", ["MAX_TEXTS", "DOCUMENT_CHUNK_SIZE", "CIRCUIT_BREAKER_FAIL_MAX"]
    )
    def test_rejects_non_positive(self, field):
        with pytest.raises(ValidationError, match=field):
            Settings(**{field: 0})

    def test_rejects_negative_wait(self):
        with pytest.raises(ValidationError):
            Settings(RETRY_WAIT_MIN_SECONDS=-1)

    def test_rejects_out_of_range_temperature(self):
        with pytest.raises(ValidationError, match="LLM_TEMPERATURE"):
            Settings(LLM_TEMPERATURE=3.0)

    def test_rejects_model_without_provider(self):
        with pytest.raises(ValidationError, match="provider:model"):
            Settings(TRANSLATION_MODEL="gpt-4o-mini")


class TestCors:
    def test_parses_comma_separated_origins(self):
        settings = Settings(CORS_ORIGINS="http://a.test, http://b.test")
        assert settings.CORS_ORIGINS == ["http://a.test", "http://b.test"]

    def test_wildcard_rejected_in_production(self):
        with pytest.raises(ValidationError, match="wildcard"):
            Settings(ENVIRONMENT="production", CORS_ORIGINS="*")

    def test_wildcard_allowed_in_development(self):
        assert Settings(CORS_ORIGINS="*").CORS_ORIGINS == ["*"]


class TestPaths:
    def test_data_dir_is_absolute(self):
        settings = Settings(DATA_DIR="relative/data")
        assert os.path.isabs(settings.DATA_DIR)

    def test_database_paths(self, tmp_path):
        settings = Settings(DATA_DIR=str(tmp_path))
        assert settings.CACHE_DB_PATH == str(tmp_path / "translation_cache.db")
        assert settings.DICTIONARY_DB_PATH == str(
            tmp_path / "translation_dictionary.db"
        )

    def test_ensure_data_dirs(self, tmp_path):
        settings = Settings(DATA_DIR=str(tmp_path / "new"))
        settings.ensure_data_dirs()
        assert (tmp_path / "new").is_dir()


def test_get_settings_is_cached():
    reset_settings()
    assert get_settings() is get_settings()
    reset_settings()
