"""
Pytest configuration and fixtures for the Polyglot Translation API.

This module provides:
- Test settings with isolated test environment
- Fake translation providers (no network access)
- Service fixtures wired with fakes and temporary SQLite files
- A FastAPI test client
"""

import shutil
import tempfile
import threading
from typing import Generator, Iterable, Optional

import pytest
from fastapi.testclient import TestClient
from polyglot.core.config import Settings
from polyglot.services.translation.cache import TieredCache
from polyglot.services.translation.dictionary import SQLiteDictionaryStore
from polyglot.services.translation.resilience import ResilientCaller
from polyglot.services.translation.translation_service import TranslationService


class FakeTextProvider:
    """Deterministic provider: prefixes the target language.

    Texts listed in ``fail_on`` raise on every call.
    """

    def __init__(self, fail_on: Iterable[str] = ()):
        self.fail_on = set(fail_on)
        self.calls: list[tuple[str, str, str]] = []
        self._lock = threading.Lock()

    def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        with self._lock:
            self.calls.append((text, source_lang, target_lang))
        if text in self.fail_on:
            raise ConnectionError(f"provider unavailable for {text!r}")
        return f"[{target_lang}] {text}"

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.calls)


class FakeExtractor:
    def __init__(self, text: str = "Document body"):
        self.text = text
        self.calls = 0

    def extract_text(self, payload: bytes, media_type: Optional[str] = None) -> str:
        self.calls += 1
        return self.text


class FakeVisionProvider:
    def __init__(self, result: str = "texto da imagem", error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.calls = 0

    def extract_and_translate(
        self,
        payload: bytes,
        source_lang: str,
        target_lang: str,
        media_type: Optional[str] = None,
    ) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


def make_caller(max_attempts: int = 3, fail_max: int = 5) -> ResilientCaller:
    """Resilience wrapper without backoff waits or timeout threads."""
    return ResilientCaller(
        name="test-provider",
        max_attempts=max_attempts,
        wait_min=0,
        wait_max=0,
        fail_max=fail_max,
        reset_timeout=60,
        call_timeout=None,
    )


@pytest.fixture(scope="session")
def test_data_dir() -> Generator[str, None, None]:
    """Create a temporary directory for test data.

    The directory is automatically cleaned up after all tests complete.

    Yields:
        str: Path to the temporary test data directory
    """
    temp_dir = tempfile.mkdtemp(prefix="polyglot_test_")
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture(scope="session")
def test_settings(test_data_dir: str) -> Settings:
    """Create test settings with isolated test environment.

    - Uses temporary data directory
    - Disables retry backoff waits
    - Uses a small document chunk size

    Args:
        test_data_dir: Temporary directory for test data

    Returns:
        Settings: Configured settings instance for testing
    """
    return Settings(
        DEBUG=True,
        DATA_DIR=test_data_dir,
        ENVIRONMENT="testing",
        RETRY_WAIT_MIN_SECONDS=0,
        RETRY_WAIT_MAX_SECONDS=0,
        DOCUMENT_CHUNK_SIZE=10,
        TRANSLATION_MAX_CONCURRENCY=4,
    )


@pytest.fixture
def fake_provider() -> FakeTextProvider:
    return FakeTextProvider()


@pytest.fixture
def tiered_cache(tmp_path) -> TieredCache:
    return TieredCache(local_maxsize=100, db_path=str(tmp_path / "cache.db"))


@pytest.fixture
def dictionary_store(tmp_path) -> SQLiteDictionaryStore:
    return SQLiteDictionaryStore(str(tmp_path / "dictionary.db"))


@pytest.fixture
def make_service(test_settings, tiered_cache, dictionary_store):
    """Factory for TranslationService instances wired with fakes."""
    created = []

    def _make(
        provider: Optional[FakeTextProvider] = None,
        extractor: Optional[FakeExtractor] = None,
        vision: Optional[FakeVisionProvider] = None,
        caller: Optional[ResilientCaller] = None,
    ) -> TranslationService:
        service = TranslationService(
            settings=test_settings,
            text_provider=provider or FakeTextProvider(),
            extractor=extractor or FakeExtractor(),
            vision_provider=vision or FakeVisionProvider(),
            cache=tiered_cache,
            dictionary=dictionary_store,
            caller=caller or make_caller(),
        )
        created.append(service)
        return service

    yield _make
    for service in created:
        service.close()


@pytest.fixture
def translation_service(make_service, fake_provider) -> TranslationService:
    return make_service(provider=fake_provider)


@pytest.fixture
def test_client(test_settings: Settings) -> Generator[TestClient, None, None]:
    """Create a FastAPI test client.

    The lifespan does not run, so tests place the services they need on
    ``test_client.app.state``.

    Args:
        test_settings: Test settings instance

    Returns:
        TestClient: FastAPI test client
    """
    # Import app here to avoid triggering Settings validation at module load time
    from polyglot.core.config import get_settings
    from polyglot.main import app

    app.dependency_overrides[get_settings] = lambda: test_settings
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
