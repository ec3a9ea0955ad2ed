"""The six pipeline stages.

Stages run strictly in order, each consuming the whole batch before the next
one starts. Every stage takes the run's context and returns it updated.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from polyglot.metrics.translation_metrics import (
    translation_cache_lookups_total,
    translation_duplicates_removed_total,
    translation_pipeline_duration_seconds,
    translation_sensitive_data_total,
    translation_texts_total,
)
from polyglot.models.translation import RunMetadata, TranslationType
from polyglot.services.translation.cache import TieredCache, make_cache_key
from polyglot.services.translation.dictionary import DictionaryStore
from polyglot.services.translation.dispatcher import TranslationDispatcher
from polyglot.services.translation.pipeline.context import PipelineContext
from polyglot.services.translation.sensitive_data import scrub, scrub_html

logger = logging.getLogger(__name__)


class PipelineStage(ABC):
    name: str

    @abstractmethod
    async def execute(self, context: PipelineContext) -> PipelineContext:
        """Run the stage over the whole batch."""


# =============================================================================
# Deduplicate
# =============================================================================


class DeduplicateStage(PipelineStage):
    """Order-preserving exact-match deduplication.

    Each unique slot remembers every position of the input it stands for.
    """

    name = "Deduplicate"

    async def execute(self, context: PipelineContext) -> PipelineContext:
        if context.remove_duplicates:
            positions: Dict[str, List[int]] = {}
            for index, text in enumerate(context.original_texts):
                positions.setdefault(text, []).append(index)
            unique_texts = list(positions)
            source_indices = list(positions.values())
        else:
            unique_texts = list(context.original_texts)
            source_indices = [[index] for index in range(len(unique_texts))]

        context.unique_texts = unique_texts
        context.processed_texts = list(unique_texts)
        context.source_indices = source_indices
        context.duplicates_removed = len(context.original_texts) - len(unique_texts)

        if context.duplicates_removed:
            logger.debug(f"Removed {context.duplicates_removed} duplicate texts")
        return context


# =============================================================================
# Scrub sensitive data
# =============================================================================


class ScrubSensitiveDataStage(PipelineStage):
    """Redact tax ids, emails, phone and card numbers before anything leaves.

    HTML runs are scrubbed node by node so markup and links survive.
    """

    name = "ScrubSensitiveData"

    async def execute(self, context: PipelineContext) -> PipelineContext:
        count = len(context.processed_texts)

        # Binary content is not visible before translation
        if not context.remove_sensitive_data or context.is_binary:
            context.had_sensitive_data = [False] * count
            context.sensitive_data_removed = 0
            return context

        scrubber = scrub_html if context.translation_type == TranslationType.HTML else scrub
        scrubbed: List[str] = []
        flags: List[bool] = []
        for text in context.processed_texts:
            result = scrubber(text)
            scrubbed.append(result.text)
            flags.append(result.had_sensitive_data)
            if result.had_sensitive_data:
                logger.info(f"Scrubbed sensitive data: {', '.join(result.categories)}")

        context.processed_texts = scrubbed
        context.had_sensitive_data = flags
        context.sensitive_data_removed = sum(flags)
        return context


# =============================================================================
# Cache consult
# =============================================================================


class CacheConsultStage(PipelineStage):
    """Resolve slots from the dictionary store, then the two-tier cache.

    Visits every slot once, in order, and never writes. Lookup errors are
    treated as misses.
    """

    name = "CacheConsult"

    def __init__(self, cache: TieredCache, dictionary: Optional[DictionaryStore] = None):
        self.cache = cache
        self.dictionary = dictionary

    async def execute(self, context: PipelineContext) -> PipelineContext:
        count = len(context.processed_texts)
        context.translated = [None] * count
        context.from_cache = [False] * count
        context.degraded = [False] * count

        if not context.use_cache:
            context.cache_misses = count
            return context

        for index, text in enumerate(context.processed_texts):
            value = await self._lookup(context, text)
            if value is not None:
                context.translated[index] = value
                context.from_cache[index] = True
                context.cache_hits += 1
            else:
                context.cache_misses += 1

        logger.debug(
            f"Cache consult: {context.cache_hits} hits "
            f"({context.dictionary_hits} dictionary), {context.cache_misses} misses"
        )
        return context

    async def _lookup(self, context: PipelineContext, text: str) -> Optional[str]:
        if self.dictionary is not None and not context.is_binary:
            try:
                value = await asyncio.to_thread(
                    self.dictionary.find_translation,
                    text,
                    context.source_language,
                    context.target_language,
                )
            except Exception as e:
                logger.warning(f"Dictionary lookup failed, treating as miss: {e}")
                value = None
            if value is not None:
                context.dictionary_hits += 1
                return value

        key = make_cache_key(text, context.source_language, context.target_language)
        try:
            return await self.cache.get(key)
        except Exception as e:
            logger.warning(f"Cache lookup failed, treating as miss: {e}")
            return None


# =============================================================================
# Translate
# =============================================================================


class TranslateStage(PipelineStage):
    """Resolve every slot the cache left open through the strategy dispatcher.

    Cached slots are never resubmitted. The blocking dispatch runs in a worker
    thread so the event loop stays free.
    """

    name = "Translate"

    def __init__(self, dispatcher: TranslationDispatcher):
        self.dispatcher = dispatcher

    async def execute(self, context: PipelineContext) -> PipelineContext:
        unresolved = context.unresolved_indices()

        if unresolved and context.is_binary:
            index = unresolved[0]
            outcome = await asyncio.to_thread(
                self.dispatcher.dispatch_binary,
                context.translation_type,
                context.payload or b"",
                context.source_language,
                context.target_language,
                context.media_type,
                context.processed_texts[index],
            )
            context.translated[index] = outcome.text
            context.degraded[index] = outcome.failed
        elif unresolved:
            batch = await asyncio.to_thread(
                self.dispatcher.dispatch_batch,
                context.translation_type,
                [context.processed_texts[i] for i in unresolved],
                context.source_language,
                context.target_language,
            )
            for index, translated, failed in zip(
                unresolved, batch.translations, batch.failed
            ):
                context.translated[index] = translated
                context.degraded[index] = failed

        context.translation_failures = sum(context.degraded)
        context.check_translated(self.name)

        logger.debug(
            f"Translated {len(unresolved)} slots, "
            f"{context.translation_failures} degraded to passthrough"
        )
        return context


# =============================================================================
# Cache save
# =============================================================================


class CacheSaveStage(PipelineStage):
    """Write new translations through to both cache tiers.

    Cached slots are never rewritten and passthrough fallbacks are never
    stored as translations. Write errors are logged and ignored.
    """

    name = "CacheSave"

    def __init__(self, cache: TieredCache):
        self.cache = cache

    async def execute(self, context: PipelineContext) -> PipelineContext:
        if not context.use_cache:
            return context

        for index, text in enumerate(context.processed_texts):
            if context.from_cache[index] or context.degraded[index]:
                continue
            key = make_cache_key(text, context.source_language, context.target_language)
            try:
                await self.cache.put(key, context.translated[index])
                context.cache_writes += 1
            except Exception as e:
                logger.warning(f"Cache write failed for slot {index}: {e}")

        return context


# =============================================================================
# Run summary
# =============================================================================


class RunSummaryStage(PipelineStage):
    """Compute aggregate statistics, log them and record metrics.

    Read-only with respect to translation content. Always the last stage.
    """

    name = "RunSummary"

    async def execute(self, context: PipelineContext) -> PipelineContext:
        context.processing_time_ms = context.elapsed_ms()
        lookups = context.cache_hits + context.cache_misses
        hit_rate = context.cache_hits / lookups if lookups else 0.0
        average = (
            context.processing_time_ms / context.total_texts
            if context.total_texts
            else 0.0
        )

        context.metadata = RunMetadata(
            total_texts=context.total_texts,
            duplicates_removed=context.duplicates_removed,
            sensitive_data_removed=context.sensitive_data_removed,
            cache_hits=context.cache_hits,
            cache_misses=context.cache_misses,
            dictionary_hits=context.dictionary_hits,
            translation_failures=context.translation_failures,
            cache_hit_rate=round(hit_rate, 4),
            processing_time_ms=round(context.processing_time_ms, 3),
            average_time_per_text_ms=round(average, 3),
            pipeline_steps=list(context.executed_stages),
            warnings=list(context.warnings),
        )

        self._record_metrics(context)

        logger.info(
            f"Translation run {context.source_language}->{context.target_language} "
            f"[{context.translation_type.value}]: "
            f"texts={context.total_texts}, "
            f"duplicates_removed={context.duplicates_removed}, "
            f"sensitive_data_removed={context.sensitive_data_removed}, "
            f"cache_hits={context.cache_hits}, cache_misses={context.cache_misses}, "
            f"hit_rate={hit_rate:.1%}, failures={context.translation_failures}, "
            f"time={context.processing_time_ms:.1f}ms ({average:.2f}ms/text)"
        )
        return context

    @staticmethod
    def _record_metrics(context: PipelineContext) -> None:
        type_label = context.translation_type.value
        translation_texts_total.labels(type=type_label).inc(context.total_texts)
        translation_duplicates_removed_total.inc(context.duplicates_removed)
        translation_sensitive_data_total.inc(context.sensitive_data_removed)
        translation_cache_lookups_total.labels(result="hit").inc(context.cache_hits)
        translation_cache_lookups_total.labels(result="miss").inc(context.cache_misses)
        translation_pipeline_duration_seconds.labels(type=type_label).observe(
            context.processing_time_ms / 1000
        )
