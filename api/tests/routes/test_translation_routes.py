"""Tests for the translation and health endpoints."""

import pytest
from conftest import FakeVisionProvider

PREFIX = "/api/v1/translations"


@pytest.fixture
def client(test_client, translation_service):
    test_client.app.state.translation_service = translation_service
    yield test_client
    del test_client.app.state.translation_service


# =============================================================================
# Batch translation
# =============================================================================


class TestTranslateEndpoint:
    def test_translate_batch(self, client):
        response = client.post(
            PREFIX,
            json={
                "texts": ["Hello", "Hello", "world@test.com"],
                "source_language": "en",
                "target_language": "pt",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert [r["translated_text"] for r in data["results"]] == [
            "[pt] Hello",
            "[pt] [EMAIL REMOVED]",
        ]
        assert data["metadata"]["total_texts"] == 3
        assert data["metadata"]["duplicates_removed"] == 1
        assert data["metadata"]["sensitive_data_removed"] == 1

    def test_invalid_input_returns_400(self, client):
        response = client.post(
            PREFIX,
            json={"texts": [], "source_language": "en", "target_language": "pt"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_INPUT"

    def test_unsupported_language_returns_400(self, client):
        response = client.post(
            PREFIX,
            json={"texts": ["Hi"], "source_language": "en", "target_language": "xx"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "UNSUPPORTED_LANGUAGE"

    def test_quick_translate(self, client):
        response = client.post(
            f"{PREFIX}/quick", params={"texts": ["one", "two"], "target": "es"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["translations"] == ["[es] one", "[es] two"]
        assert data["count"] == 2

    def test_html_translate(self, client):
        response = client.post(
            f"{PREFIX}/html",
            json={"html_texts": ["<p>Hello</p>"], "source": "en", "target": "pt"},
        )

        assert response.status_code == 200
        assert response.json()["results"][0]["translated_text"] == "<p>[pt] Hello</p>"


# =============================================================================
# Uploads
# =============================================================================


class TestUploadEndpoints:
    def test_document_upload(self, client):
        response = client.post(
            f"{PREFIX}/document",
            files={"file": ("report.pdf", b"%PDF-1.4", "application/pdf")},
            data={"source": "en", "target": "pt"},
        )

        assert response.status_code == 200
        result = response.json()["results"][0]
        assert result["translated_text"] == "[pt] Document b[pt] ody"
        assert result["original_text"].startswith("application/pdf;sha256=")

    def test_document_wrong_media_type(self, client):
        response = client.post(
            f"{PREFIX}/document",
            files={"file": ("photo.png", b"\x89PNG", "image/png")},
            data={"source": "en", "target": "pt"},
        )

        assert response.status_code == 400

    def test_empty_upload_rejected(self, client):
        response = client.post(
            f"{PREFIX}/document",
            files={"file": ("empty.pdf", b"", "application/pdf")},
            data={"source": "en", "target": "pt"},
        )

        assert response.status_code == 400
        assert "empty" in response.json()["error"]["message"]

    def test_image_upload(self, test_client, make_service):
        service = make_service(vision=FakeVisionProvider(result="Olá mundo"))
        test_client.app.state.translation_service = service
        try:
            response = test_client.post(
                f"{PREFIX}/image",
                files={"file": ("sign.png", b"\x89PNG", "image/png")},
                data={"source": "en", "target": "pt"},
            )
        finally:
            del test_client.app.state.translation_service

        assert response.status_code == 200
        result = response.json()["results"][0]
        assert result["translated_text"] == "Olá mundo"
        assert result["from_cache"] is False


# =============================================================================
# Administration
# =============================================================================


class TestAdminEndpoints:
    def test_languages(self, client, test_settings):
        response = client.get(f"{PREFIX}/languages")

        assert response.status_code == 200
        data = response.json()
        assert data["languages"] == test_settings.SUPPORTED_LANGUAGES
        assert data["count"] == len(test_settings.SUPPORTED_LANGUAGES)

    def test_stats(self, client):
        response = client.get(f"{PREFIX}/stats")

        assert response.status_code == 200
        assert response.json()["pipeline_steps"][0] == "Deduplicate"

    def test_dictionary_entry(self, client):
        response = client.put(
            f"{PREFIX}/dictionary",
            json={"text": "Polyglot", "translation": "Poliglota", "source": "en", "target": "pt"},
        )
        assert response.status_code == 201

        translated = client.post(
            f"{PREFIX}/quick", params={"texts": ["Polyglot"], "target": "pt"}
        )
        assert translated.json()["translations"] == ["Poliglota"]

    def test_evict_cache_entry(self, client):
        response = client.delete(
            f"{PREFIX}/cache", params={"text": "Hello", "source": "en", "target": "pt"}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "evicted"

    def test_evict_unscrubbed_cache_entry(self, client):
        scrubbed = client.delete(
            f"{PREFIX}/cache",
            params={"text": "mail a@b.com", "source": "en", "target": "pt"},
        )
        raw = client.delete(
            f"{PREFIX}/cache",
            params={
                "text": "mail a@b.com",
                "source": "en",
                "target": "pt",
                "scrubbed": "false",
            },
        )

        assert raw.status_code == 200
        assert raw.json()["cache_key"] != scrubbed.json()["cache_key"]

    def test_cache_cleanup(self, client):
        response = client.post(f"{PREFIX}/cache/cleanup")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "removed": 0}


# =============================================================================
# Health
# =============================================================================


class TestHealthEndpoints:
    def test_ready_before_startup(self, test_client):
        assert test_client.get("/health/ready").status_code == 503

    def test_ready_with_service(self, client):
        assert client.get("/health/ready").json() == {"status": "ready"}

    def test_health_reports_breaker(self, client):
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert data["services"]["circuit_breaker"] == "closed"

    def test_live(self, test_client):
        assert test_client.get("/health/live").json() == {"status": "alive"}
