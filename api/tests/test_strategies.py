"""Tests for content-type strategies, the strategy factory and the dispatcher."""

import pytest
from bs4 import BeautifulSoup
from conftest import FakeExtractor, FakeTextProvider, FakeVisionProvider, make_caller
from polyglot.core.exceptions import UnsupportedTranslationTypeError
from polyglot.models.translation import TranslationType
from polyglot.services.translation.dispatcher import TranslationDispatcher
from polyglot.services.translation.strategies import (
    BatchTranslation,
    DocumentTranslationStrategy,
    HtmlTranslationStrategy,
    ImageTranslationStrategy,
    TextTranslationStrategy,
)
from polyglot.services.translation.strategy_factory import TranslationStrategyFactory

# =============================================================================
# TEXT
# =============================================================================


class TestTextStrategy:
    def test_translates_in_order(self, fake_provider):
        strategy = TextTranslationStrategy(fake_provider, make_caller(), max_concurrency=4)
        texts = [f"text {i}" for i in range(20)]

        result = strategy.translate_batch(texts, "en", "pt")

        assert result.translations == [f"[pt] text {i}" for i in range(20)]
        assert result.failed == [False] * 20

    def test_failed_item_passes_through(self):
        provider = FakeTextProvider(fail_on={"bad"})
        strategy = TextTranslationStrategy(provider, make_caller(max_attempts=2))

        result = strategy.translate_batch(["good", "bad", "fine"], "en", "pt")

        assert result.translations == ["[pt] good", "bad", "[pt] fine"]
        assert result.failed == [False, True, False]

    def test_blank_text_skips_provider(self, fake_provider):
        strategy = TextTranslationStrategy(fake_provider, make_caller())

        result = strategy.translate_batch(["   "], "en", "pt")

        assert result.translations == ["   "]
        assert fake_provider.call_count == 0

    def test_binary_payload_is_unsupported(self, fake_provider):
        strategy = TextTranslationStrategy(fake_provider, make_caller())
        with pytest.raises(UnsupportedTranslationTypeError):
            strategy.translate_binary(b"data", "en", "pt", "text/plain")


# =============================================================================
# DOCUMENT
# =============================================================================


class TestDocumentStrategy:
    def test_split_chunks(self, fake_provider):
        strategy = DocumentTranslationStrategy(
            fake_provider, make_caller(), FakeExtractor(), chunk_size=5
        )
        assert strategy.split_chunks("abcdefghijkl") == ["abcde", "fghij", "kl"]
        assert strategy.split_chunks("") == []

    def test_rejects_non_positive_chunk_size(self, fake_provider):
        with pytest.raises(ValueError):
            DocumentTranslationStrategy(
                fake_provider, make_caller(), FakeExtractor(), chunk_size=0
            )

    def test_binary_extracts_then_translates_chunks_in_order(self, fake_provider):
        extractor = FakeExtractor("0123456789abcdefghij")
        strategy = DocumentTranslationStrategy(
            fake_provider, make_caller(), extractor, chunk_size=10
        )

        outcome = strategy.translate_binary(b"%PDF", "en", "pt", "application/pdf")

        assert extractor.calls == 1
        assert outcome.text == "[pt] 0123456789[pt] abcdefghij"
        assert outcome.failed is False
        assert [call[0] for call in fake_provider.calls] == ["0123456789", "abcdefghij"]

    def test_failed_chunk_marks_document_failed(self):
        provider = FakeTextProvider(fail_on={"abcdefghij"})
        strategy = DocumentTranslationStrategy(
            provider,
            make_caller(max_attempts=1),
            FakeExtractor("0123456789abcdefghij"),
            chunk_size=10,
        )

        outcome = strategy.translate_binary(b"%PDF", "en", "pt", "application/pdf")

        assert outcome.text == "[pt] 0123456789abcdefghij"
        assert outcome.failed is True

    def test_batch_chunks_each_text(self, fake_provider):
        strategy = DocumentTranslationStrategy(
            fake_provider, make_caller(), FakeExtractor(), chunk_size=3
        )

        result = strategy.translate_batch(["abcdef", "xy"], "en", "pt")

        assert result.translations == ["[pt] abc[pt] def", "[pt] xy"]


# =============================================================================
# HTML
# =============================================================================


class TestHtmlStrategy:
    def _strategy(self, provider=None):
        return HtmlTranslationStrategy(provider or FakeTextProvider(), make_caller())

    def test_translates_text_nodes_and_keeps_markup(self):
        html = '<p class="intro">Hello <b>world</b></p>'

        translated, failed = self._strategy().translate_html(html, "en", "pt")

        soup = BeautifulSoup(translated, "html.parser")
        assert soup.p["class"] == ["intro"]
        assert soup.p.b.string == "[pt] world"
        assert soup.p.contents[0] == "[pt] Hello "
        assert failed is False

    def test_translates_attributes(self):
        html = (
            "<html><head><title>Home</title>"
            '<meta name="description" content="Welcome page"></head>'
            '<body><img src="a.png" alt="Logo">'
            '<input placeholder="Search"><textarea placeholder="Comment"></textarea>'
            "</body></html>"
        )

        translated, _ = self._strategy().translate_html(html, "en", "pt")

        soup = BeautifulSoup(translated, "html.parser")
        assert soup.title.string == "[pt] Home"
        assert soup.find("meta")["content"] == "[pt] Welcome page"
        assert soup.img["alt"] == "[pt] Logo"
        assert soup.img["src"] == "a.png"
        assert soup.input["placeholder"] == "[pt] Search"
        assert soup.textarea["placeholder"] == "[pt] Comment"

    def test_skips_script_style_and_comments(self):
        provider = FakeTextProvider()
        html = (
            "<body><script>var x = 'hi';</script><style>p {}</style>"
            "<!-- note --><p>Text</p></body>"
        )

        translated, _ = self._strategy(provider).translate_html(html, "en", "pt")

        assert "var x = 'hi';" in translated
        assert "<!-- note -->" in translated
        assert [call[0] for call in provider.calls] == ["Text"]

    def test_title_translated_once(self):
        provider = FakeTextProvider()
        html = "<html><head><title>Home</title></head><body><p>Hi</p></body></html>"

        self._strategy(provider).translate_html(html, "en", "pt")

        assert sorted(call[0] for call in provider.calls) == ["Hi", "Home"]

    def test_markup_without_text_is_unchanged(self):
        html = "<div><br/></div>"
        translated, failed = self._strategy().translate_html(html, "en", "pt")
        assert translated == html
        assert failed is False

    def test_failed_fragment_keeps_original(self):
        provider = FakeTextProvider(fail_on={"Broken"})
        strategy = HtmlTranslationStrategy(provider, make_caller(max_attempts=1))

        translated, failed = strategy.translate_html(
            "<p>Fine</p><p>Broken</p>", "en", "pt"
        )

        assert translated == "<p>[pt] Fine</p><p>Broken</p>"
        assert failed is True

    def test_binary_decodes_utf8(self):
        outcome = self._strategy().translate_binary(
            "<p>Olá</p>".encode("utf-8"), "pt", "en", "text/html"
        )
        assert outcome.text == "<p>[en] Olá</p>"


# =============================================================================
# IMAGE
# =============================================================================


class TestImageStrategy:
    def test_binary_uses_one_vision_call(self, fake_provider):
        vision = FakeVisionProvider(result="Bem-vindo")
        strategy = ImageTranslationStrategy(fake_provider, make_caller(), vision)

        outcome = strategy.translate_binary(b"\x89PNG", "en", "pt", "image/png")

        assert outcome.text == "Bem-vindo"
        assert outcome.failed is False
        assert vision.calls == 1
        assert fake_provider.call_count == 0

    def test_batch_passes_texts_through(self, fake_provider):
        strategy = ImageTranslationStrategy(
            fake_provider, make_caller(), FakeVisionProvider()
        )

        result = strategy.translate_batch(["caption"], "en", "pt")

        assert result.translations == ["caption"]
        assert result.failed == [True]


# =============================================================================
# Factory and dispatcher
# =============================================================================


@pytest.fixture
def factory(fake_provider):
    caller = make_caller(max_attempts=1)
    return TranslationStrategyFactory(
        [
            TextTranslationStrategy(fake_provider, caller),
            HtmlTranslationStrategy(fake_provider, caller),
            ImageTranslationStrategy(fake_provider, caller, FakeVisionProvider()),
        ]
    )


class TestStrategyFactory:
    def test_returns_registered_strategy(self, factory):
        assert isinstance(
            factory.get_strategy(TranslationType.HTML), HtmlTranslationStrategy
        )

    def test_missing_type_raises(self, factory):
        assert not factory.has_strategy(TranslationType.DOCUMENT)
        with pytest.raises(UnsupportedTranslationTypeError):
            factory.get_strategy(TranslationType.DOCUMENT)

    def test_duplicate_type_rejected(self, fake_provider):
        caller = make_caller()
        with pytest.raises(ValueError, match="Duplicate strategy"):
            TranslationStrategyFactory(
                [
                    TextTranslationStrategy(fake_provider, caller),
                    TextTranslationStrategy(fake_provider, caller),
                ]
            )

    def test_supported_types(self, factory):
        assert factory.supported_types() == [
            TranslationType.TEXT,
            TranslationType.HTML,
            TranslationType.IMAGE,
        ]


class TestDispatcher:
    def test_dispatch_batch(self, factory):
        dispatcher = TranslationDispatcher(factory)
        result = dispatcher.dispatch_batch(TranslationType.TEXT, ["a", "b"], "en", "pt")
        assert result.translations == ["[pt] a", "[pt] b"]

    def test_empty_batch_is_empty(self, factory):
        dispatcher = TranslationDispatcher(factory)
        result = dispatcher.dispatch_batch(TranslationType.TEXT, [], "en", "pt")
        assert result == BatchTranslation()

    def test_unknown_type_raises(self, factory):
        dispatcher = TranslationDispatcher(factory)
        with pytest.raises(UnsupportedTranslationTypeError):
            dispatcher.dispatch_batch(TranslationType.DOCUMENT, ["a"], "en", "pt")

    def test_strategy_crash_falls_back_to_passthrough(self, factory, monkeypatch):
        strategy = factory.get_strategy(TranslationType.TEXT)

        def explode(*args):
            raise RuntimeError("boom")

        monkeypatch.setattr(strategy, "translate_batch", explode)
        dispatcher = TranslationDispatcher(factory)

        result = dispatcher.dispatch_batch(TranslationType.TEXT, ["a", "b"], "en", "pt")

        assert result.translations == ["a", "b"]
        assert result.failed == [True, True]

    def test_misaligned_result_falls_back(self, factory, monkeypatch):
        strategy = factory.get_strategy(TranslationType.TEXT)
        monkeypatch.setattr(
            strategy,
            "translate_batch",
            lambda texts, src, tgt: BatchTranslation(["only one"], [False]),
        )
        dispatcher = TranslationDispatcher(factory)

        result = dispatcher.dispatch_batch(TranslationType.TEXT, ["a", "b"], "en", "pt")

        assert result.translations == ["a", "b"]

    def test_binary_failure_returns_fallback(self, fake_provider):
        vision = FakeVisionProvider(error=ConnectionError("vision down"))
        factory = TranslationStrategyFactory(
            [ImageTranslationStrategy(fake_provider, make_caller(max_attempts=1), vision)]
        )
        dispatcher = TranslationDispatcher(factory)

        outcome = dispatcher.dispatch_binary(
            TranslationType.IMAGE, b"\x89PNG", "en", "pt", "image/png", "descriptor"
        )

        assert outcome.text == "descriptor"
        assert outcome.failed is True
