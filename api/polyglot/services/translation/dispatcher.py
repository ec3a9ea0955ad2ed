"""Strategy dispatch with passthrough fallback.

Nothing raised while a strategy runs escapes the dispatcher: the original
input comes back marked failed, so the pipeline always completes.
"""

import logging
from typing import Optional, Sequence

from polyglot.metrics.translation_metrics import translation_failures_total
from polyglot.models.translation import TranslationType
from polyglot.services.translation.strategies import (
    BatchTranslation,
    TranslationOutcome,
)
from polyglot.services.translation.strategy_factory import TranslationStrategyFactory

logger = logging.getLogger(__name__)


class TranslationDispatcher:
    def __init__(self, factory: TranslationStrategyFactory):
        self.factory = factory

    def dispatch_batch(
        self,
        translation_type: TranslationType,
        texts: Sequence[str],
        source_lang: str,
        target_lang: str,
    ) -> BatchTranslation:
        """Translate texts with the strategy for translation_type.

        Args:
            translation_type: Content type selecting the strategy
            texts: Texts to translate
            source_lang: Source language code
            target_lang: Target language code

        Returns:
            Index-aligned translations; the input itself for failed items

        Raises:
            UnsupportedTranslationTypeError: If no strategy is registered
        """
        strategy = self.factory.get_strategy(translation_type)
        if not texts:
            return BatchTranslation()

        try:
            result = strategy.translate_batch(texts, source_lang, target_lang)
            if len(result.translations) != len(texts) or len(result.failed) != len(
                texts
            ):
                raise RuntimeError(
                    f"{type(strategy).__name__} returned {len(result.translations)} "
                    f"translations for {len(texts)} texts"
                )
        except Exception as e:
            logger.error(
                f"{translation_type.value} batch of {len(texts)} failed, "
                f"falling back to passthrough: {e}"
            )
            result = BatchTranslation.passthrough(texts)

        failures = sum(result.failed)
        if failures:
            translation_failures_total.labels(type=translation_type.value).inc(failures)
        return result

    def dispatch_binary(
        self,
        translation_type: TranslationType,
        payload: bytes,
        source_lang: str,
        target_lang: str,
        media_type: Optional[str],
        fallback_text: str,
    ) -> TranslationOutcome:
        """Translate a binary payload with the strategy for translation_type.

        Args:
            translation_type: Content type selecting the strategy
            payload: Raw document or image bytes
            source_lang: Source language code
            target_lang: Target language code
            media_type: Declared media type of the payload
            fallback_text: Returned when the strategy fails

        Returns:
            Translated text, or fallback_text marked failed
        """
        strategy = self.factory.get_strategy(translation_type)
        try:
            outcome = strategy.translate_binary(
                payload, source_lang, target_lang, media_type
            )
        except Exception as e:
            logger.error(
                f"{translation_type.value} payload translation failed, "
                f"falling back to passthrough: {e}"
            )
            outcome = TranslationOutcome(fallback_text, failed=True)

        if outcome.failed:
            translation_failures_total.labels(type=translation_type.value).inc()
        return outcome
