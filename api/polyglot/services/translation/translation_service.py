"""Translation Service: the public entry point of the translation pipeline.

Flow per request:
1. Validate the request (validator chain)
2. Build a fresh PipelineContext
3. Run the six pipeline stages
4. Project the context into a TranslationResponse

Results are produced per unique text after deduplication; each result lists
the input positions it covers in ``source_indices``.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import aisuite as ai  # type: ignore[import-untyped]
from polyglot.core.config import Settings
from polyglot.core.exceptions import BaseAppException, InvalidInputError
from polyglot.metrics.translation_metrics import translation_requests_total
from polyglot.models.translation import (
    TranslationRequest,
    TranslationResponse,
    TranslationResult,
)
from polyglot.services.translation.cache import TieredCache, make_cache_key
from polyglot.services.translation.dictionary import (
    DictionaryStore,
    SQLiteDictionaryStore,
)
from polyglot.services.translation.dispatcher import TranslationDispatcher
from polyglot.services.translation.pipeline import PipelineContext, TranslationPipeline
from polyglot.services.translation.providers import (
    AISuiteTextProvider,
    AISuiteVisionProvider,
    DocumentTextExtractor,
    ExtractionProvider,
    TextTranslationProvider,
    VisionTranslationProvider,
)
from polyglot.services.translation.resilience import ResilientCaller
from polyglot.services.translation.sensitive_data import scrub, scrub_html
from polyglot.services.translation.strategies import (
    DocumentTranslationStrategy,
    HtmlTranslationStrategy,
    ImageTranslationStrategy,
    TextTranslationStrategy,
    TranslationStrategy,
)
from polyglot.services.translation.strategy_factory import TranslationStrategyFactory
from polyglot.services.translation.validators import RequestValidator

logger = logging.getLogger(__name__)


class TranslationService:
    """Validate, translate and cache batches of content.

    Collaborators not injected are built from settings: AISuite providers,
    a PyMuPDF/python-docx extractor, the SQLite-backed two-tier cache and,
    when enabled, the SQLite dictionary store.
    """

    def __init__(
        self,
        settings: Settings,
        text_provider: Optional[TextTranslationProvider] = None,
        extractor: Optional[ExtractionProvider] = None,
        vision_provider: Optional[VisionTranslationProvider] = None,
        cache: Optional[TieredCache] = None,
        dictionary: Optional[DictionaryStore] = None,
        caller: Optional[ResilientCaller] = None,
        strategies: Optional[Sequence[TranslationStrategy]] = None,
    ):
        """Initialize the TranslationService.

        Args:
            settings: Application settings
            text_provider: Provider used for TEXT, DOCUMENT and HTML content
            extractor: Document text extractor
            vision_provider: Provider used for IMAGE content
            cache: Pre-configured two-tier cache
            dictionary: Dictionary store consulted before the cache
            caller: Resilience wrapper shared by every provider call
            strategies: Replaces the default strategy set
        """
        self.settings = settings
        self.validator = RequestValidator(settings)
        self.cache = cache or TieredCache.from_settings(settings)
        self.dictionary = dictionary
        if self.dictionary is None and settings.DICTIONARY_ENABLED:
            self.dictionary = SQLiteDictionaryStore(settings.DICTIONARY_DB_PATH)
        self.caller = caller or ResilientCaller.from_settings(settings)

        if strategies is None:
            strategies = self._build_strategies(text_provider, extractor, vision_provider)
        self.factory = TranslationStrategyFactory(strategies)
        self.dispatcher = TranslationDispatcher(self.factory)
        self.pipeline = TranslationPipeline.default(
            self.cache, self.dispatcher, self.dictionary
        )

        self.stats = {
            "requests": 0,
            "binary_requests": 0,
            "rejected_requests": 0,
            "failed_requests": 0,
            "texts_received": 0,
            "degraded_items": 0,
        }

    def _build_strategies(
        self,
        text_provider: Optional[TextTranslationProvider],
        extractor: Optional[ExtractionProvider],
        vision_provider: Optional[VisionTranslationProvider],
    ) -> List[TranslationStrategy]:
        settings = self.settings
        if text_provider is None or vision_provider is None:
            client = ai.Client()
            text_provider = text_provider or AISuiteTextProvider(
                client,
                settings.TRANSLATION_MODEL,
                settings.MAX_TOKENS,
                settings.LLM_TEMPERATURE,
            )
            vision_provider = vision_provider or AISuiteVisionProvider(
                client,
                settings.VISION_MODEL,
                settings.MAX_TOKENS,
                settings.LLM_TEMPERATURE,
            )
            logger.info(
                f"AISuite providers initialized (text={settings.TRANSLATION_MODEL}, "
                f"vision={settings.VISION_MODEL})"
            )

        concurrency = settings.TRANSLATION_MAX_CONCURRENCY
        return [
            TextTranslationStrategy(text_provider, self.caller, concurrency),
            DocumentTranslationStrategy(
                text_provider,
                self.caller,
                extractor or DocumentTextExtractor(),
                chunk_size=settings.DOCUMENT_CHUNK_SIZE,
                max_concurrency=concurrency,
            ),
            HtmlTranslationStrategy(text_provider, self.caller, concurrency),
            ImageTranslationStrategy(text_provider, self.caller, vision_provider),
        ]

    async def translate(self, request: TranslationRequest) -> TranslationResponse:
        """Translate a TEXT or HTML request.

        Raises:
            InvalidInputError: Invalid request, or a binary content type
            UnsupportedLanguageError: Unsupported language pair
            PipelineError: A stage failed unexpectedly
        """
        return await self._process(request, binary=False)

    async def translate_binary(self, request: TranslationRequest) -> TranslationResponse:
        """Translate a DOCUMENT or IMAGE request carrying a payload.

        Raises:
            InvalidInputError: Invalid request, or a text content type
            UnsupportedLanguageError: Unsupported language pair
            PipelineError: A stage failed unexpectedly
        """
        return await self._process(request, binary=True)

    async def _process(
        self, request: TranslationRequest, binary: bool
    ) -> TranslationResponse:
        self.stats["requests"] += 1
        if binary:
            self.stats["binary_requests"] += 1

        try:
            warnings = self.validator.validate(request)
            if request.type.is_binary != binary:
                expected = "DOCUMENT or IMAGE" if binary else "TEXT or HTML"
                raise InvalidInputError(
                    f"{request.type.value} content cannot be handled here, "
                    f"expected {expected}"
                )
        except BaseAppException:
            self.stats["rejected_requests"] += 1
            type_label = request.type.value if request and request.type else "UNKNOWN"
            translation_requests_total.labels(type=type_label, outcome="rejected").inc()
            raise

        context = PipelineContext.from_request(request, warnings)
        self.stats["texts_received"] += context.total_texts

        try:
            context = await self.pipeline.run(context)
        except Exception:
            self.stats["failed_requests"] += 1
            translation_requests_total.labels(
                type=request.type.value, outcome="error"
            ).inc()
            raise

        self.stats["degraded_items"] += context.translation_failures
        outcome = "degraded" if context.translation_failures else "success"
        translation_requests_total.labels(type=request.type.value, outcome=outcome).inc()

        return self._build_response(context)

    @staticmethod
    def _build_response(context: PipelineContext) -> TranslationResponse:
        results = [
            TranslationResult(
                original_text=context.unique_texts[index],
                translated_text=context.translated[index],
                source_language=context.source_language,
                target_language=context.target_language,
                from_cache=context.from_cache[index],
                had_sensitive_data=context.had_sensitive_data[index],
                translation_failed=context.degraded[index],
                source_indices=context.source_indices[index],
            )
            for index in range(len(context.processed_texts))
        ]
        return TranslationResponse(results=results, metadata=context.metadata)

    def supported_languages(self) -> List[str]:
        return list(self.settings.SUPPORTED_LANGUAGES)

    def pipeline_steps(self) -> List[str]:
        return self.pipeline.step_names()

    async def evict(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
        scrubbed: bool = True,
        html: bool = False,
    ) -> str:
        """Remove a cached translation from both tiers.

        The key is derived the same way the pipeline stores it: from the
        scrubbed text by default, or from the raw text for entries written by
        runs with ``remove_sensitive_data`` off. ``html`` selects markup
        scrubbing.

        Returns:
            The evicted cache key
        """
        if scrubbed:
            text = (scrub_html if html else scrub)(text).text
        key = make_cache_key(text, source_lang, target_lang)
        await self.cache.evict(key)
        logger.info(f"Evicted cache entry {key}")
        return key

    async def add_dictionary_entry(
        self, text: str, translation: str, source_lang: str, target_lang: str
    ) -> None:
        """Store a curated translation that takes precedence over the cache.

        Raises:
            InvalidInputError: If the dictionary is disabled
            UnsupportedLanguageError: Unsupported language pair
        """
        if self.dictionary is None:
            raise InvalidInputError("Translation dictionary is disabled")

        request = TranslationRequest(
            texts=[text], source_language=source_lang, target_language=target_lang
        )
        self.validator.check_languages(request)
        await asyncio.to_thread(
            self.dictionary.save,
            text,
            translation,
            source_lang.strip().lower(),
            target_lang.strip().lower(),
        )

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self.stats,
            "supported_types": [t.value for t in self.factory.supported_types()],
            "pipeline_steps": self.pipeline_steps(),
            "cache": self.cache.get_stats(),
            "circuit_breaker": self.caller.get_stats(),
            "dictionary_enabled": self.dictionary is not None,
        }

    async def cleanup_cache(self) -> int:
        """Remove expired entries from the shared cache tier.

        Returns:
            Number of entries removed
        """
        removed = await asyncio.to_thread(self.cache.cleanup)
        logger.info(f"Removed {removed} expired cache entries")
        return removed

    def close(self) -> None:
        self.caller.shutdown()
