import logging
import os
from functools import lru_cache
from pathlib import Path

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # API settings
    DEBUG: bool = False
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Polyglot Translation API"

    # Environment settings (declared before CORS_ORIGINS, whose validator reads it)
    ENVIRONMENT: str = "development"

    # CORS settings - accepts string or list, normalized to list[str] by validator
    CORS_ORIGINS: str | list[str] = "*"

    # Directory settings
    DATA_DIR: str = "api/data"

    # Language settings (comma-separated or list)
    SUPPORTED_LANGUAGES: str | list[str] = "pt,en,es,fr,de,it,ja,ko,zh,ar,ru"

    # Request limits
    MAX_TEXTS: int = 1000
    MAX_TEXT_LENGTH: int = 10000
    MAX_PAYLOAD_BYTES: int = 10 * 1024 * 1024  # 10 MiB

    # Two-tier cache settings
    CACHE_LOCAL_MAXSIZE: int = 10000
    CACHE_LOCAL_TTL_SECONDS: int = 3600  # 1 hour
    CACHE_SHARED_TTL_SECONDS: int = 86400  # 24 hours
    CACHE_DB_FILENAME: str = "translation_cache.db"

    # Curated dictionary overrides
    DICTIONARY_ENABLED: bool = True
    DICTIONARY_DB_FILENAME: str = "translation_dictionary.db"

    # Strategy settings
    DOCUMENT_CHUNK_SIZE: int = 5000  # Characters per provider call
    TRANSLATION_MAX_CONCURRENCY: int = 4  # Parallel provider calls per batch

    # Resilience settings (applied per provider call)
    PROVIDER_CALL_TIMEOUT_SECONDS: float = 30.0
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_WAIT_MIN_SECONDS: float = 1.0
    RETRY_WAIT_MAX_SECONDS: float = 10.0
    CIRCUIT_BREAKER_FAIL_MAX: int = 5
    CIRCUIT_BREAKER_RESET_TIMEOUT: int = 60

    # LLM provider settings (AISuite "provider:model" identifiers)
    TRANSLATION_MODEL: str = "openai:gpt-4o-mini"
    VISION_MODEL: str = "openai:gpt-4o"
    MAX_TOKENS: int = 4096
    LLM_TEMPERATURE: float = 0.2

    # Privacy settings
    PII_DETECTION_ENABLED: bool = True  # Redact sensitive data in logs

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="allow",
    )

    @property
    def CACHE_DB_PATH(self) -> str:
        """Complete path to the shared-tier SQLite cache"""
        return os.path.join(self.DATA_DIR, self.CACHE_DB_FILENAME)

    @property
    def DICTIONARY_DB_PATH(self) -> str:
        """Complete path to the SQLite dictionary store"""
        return os.path.join(self.DATA_DIR, self.DICTIONARY_DB_FILENAME)

    @field_validator("SUPPORTED_LANGUAGES", mode="before")
    @classmethod
    def parse_supported_languages(cls, v: str | list[str]) -> list[str]:
        """Normalize SUPPORTED_LANGUAGES to a list of lower-case codes.

        Accepts either a comma-separated string or a list of strings.

        Args:
            v: Language codes as string (comma-separated) or list of strings

        Returns:
            List of lower-case language codes without empty entries
        """
        if isinstance(v, list):
            return [
                code.strip().lower()
                for code in v
                if isinstance(code, str) and code.strip()
            ]

        if isinstance(v, str):
            return [code.strip().lower() for code in v.split(",") if code.strip()]

        return []

    @field_validator("SUPPORTED_LANGUAGES")
    @classmethod
    def validate_supported_languages(cls, v: list[str]) -> list[str]:
        if len(v) < 2:
            raise ValueError("SUPPORTED_LANGUAGES must list at least two languages")
        return v

    @field_validator(
        "MAX_TEXTS",
        "MAX_TEXT_LENGTH",
        "MAX_PAYLOAD_BYTES",
        "CACHE_LOCAL_MAXSIZE",
        "CACHE_LOCAL_TTL_SECONDS",
        "CACHE_SHARED_TTL_SECONDS",
        "DOCUMENT_CHUNK_SIZE",
        "TRANSLATION_MAX_CONCURRENCY",
        "RETRY_MAX_ATTEMPTS",
        "CIRCUIT_BREAKER_FAIL_MAX",
        "CIRCUIT_BREAKER_RESET_TIMEOUT",
    )
    @classmethod
    def validate_positive(cls, v: int, info: ValidationInfo) -> int:
        """Reject zero or negative limits.

        Args:
            v: Configured value
            info: Validation info with the field name

        Returns:
            Validated value

        Raises:
            ValueError: If the value is not positive
        """
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive, got {v}")
        return v

    @field_validator("RETRY_WAIT_MIN_SECONDS", "RETRY_WAIT_MAX_SECONDS")
    @classmethod
    def validate_wait(cls, v: float, info: ValidationInfo) -> float:
        if v < 0:
            raise ValueError(f"{info.field_name} must not be negative, got {v}")
        return v

    @field_validator("PROVIDER_CALL_TIMEOUT_SECONDS")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"PROVIDER_CALL_TIMEOUT_SECONDS must be positive, got {v}")
        return v

    @field_validator("LLM_TEMPERATURE")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        """Validate LLM temperature is within acceptable range.

        Args:
            v: Temperature value

        Returns:
            Validated temperature value

        Raises:
            ValueError: If temperature is outside acceptable range
        """
        if not 0.0 <= v <= 2.0:
            raise ValueError(f"LLM_TEMPERATURE must be between 0.0 and 2.0, got {v}")
        return v

    @field_validator("TRANSLATION_MODEL", "VISION_MODEL")
    @classmethod
    def validate_model(cls, v: str, info: ValidationInfo) -> str:
        """Validate model identifiers use the AISuite "provider:model" format."""
        if ":" not in v:
            raise ValueError(
                f"{info.field_name} must be in format 'provider:model', got '{v}'"
            )
        return v

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Normalize CORS_ORIGINS to list of hosts.

        Accepts either a comma-separated string or a list of strings.
        Handles wildcards, trims whitespace, and ignores empty entries.

        Args:
            v: CORS origins as string (comma-separated), list of strings, or "*" for all

        Returns:
            List of CORS origin hosts with whitespace trimmed and empty entries removed
        """
        if isinstance(v, list):
            return [
                host.strip() for host in v if isinstance(host, str) and host.strip()
            ]

        if isinstance(v, str):
            if v.strip() == "*":
                return ["*"]
            return [host.strip() for host in v.split(",") if host.strip()]

        # Fallback for unexpected types: fail-closed (deny all origins)
        return []

    @classmethod
    def _is_production(cls, info: ValidationInfo) -> bool:
        raw_env = info.data.get("ENVIRONMENT", "development")
        environment = str(raw_env).strip().lower()
        if environment in {"prod"}:
            environment = "production"
        return environment == "production"

    @field_validator("CORS_ORIGINS")
    @classmethod
    def validate_cors_in_production(cls, v: list[str], info) -> list[str]:
        """Reject wildcard CORS in production environments."""
        if cls._is_production(info) and v == ["*"]:
            raise ValueError("CORS wildcard '*' not allowed in production")

        return v

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Make paths absolute
        self.DATA_DIR = os.path.abspath(self.DATA_DIR)

    def ensure_data_dirs(self) -> None:
        """Create required data directories if they don't exist.

        Called during application startup (lifespan) to avoid import-time I/O.
        """
        Path(self.DATA_DIR).mkdir(parents=True, exist_ok=True)


# Thread-safe lazy initialization using lru_cache
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings instance with lazy initialization.

    Settings are only created once on first access, then cached for subsequent calls.

    Returns:
        Settings: Application settings object
    """
    return Settings()


def reset_settings() -> None:
    """Reset the cached settings instance.

    Useful for testing when you need to reload settings with different values.
    """
    get_settings.cache_clear()
