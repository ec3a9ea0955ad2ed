"""Pipeline orchestrator: runs the stages in their fixed order."""

import logging
import time
from typing import List, Optional, Sequence

from polyglot.core.exceptions import BaseAppException, PipelineError
from polyglot.metrics.translation_metrics import translation_stage_duration_seconds
from polyglot.services.translation.cache import TieredCache
from polyglot.services.translation.dictionary import DictionaryStore
from polyglot.services.translation.dispatcher import TranslationDispatcher
from polyglot.services.translation.pipeline.context import PipelineContext
from polyglot.services.translation.pipeline.stages import (
    CacheConsultStage,
    CacheSaveStage,
    DeduplicateStage,
    PipelineStage,
    RunSummaryStage,
    ScrubSensitiveDataStage,
    TranslateStage,
)

logger = logging.getLogger(__name__)


class TranslationPipeline:
    """Threads one context through every stage, strictly in sequence.

    Args:
        stages: Stages in execution order
    """

    def __init__(self, stages: Sequence[PipelineStage]):
        self.stages: List[PipelineStage] = list(stages)

    @classmethod
    def default(
        cls,
        cache: TieredCache,
        dispatcher: TranslationDispatcher,
        dictionary: Optional[DictionaryStore] = None,
    ) -> "TranslationPipeline":
        """Build the standard six-stage pipeline."""
        return cls(
            [
                DeduplicateStage(),
                ScrubSensitiveDataStage(),
                CacheConsultStage(cache, dictionary),
                TranslateStage(dispatcher),
                CacheSaveStage(cache),
                RunSummaryStage(),
            ]
        )

    def step_names(self) -> List[str]:
        return [stage.name for stage in self.stages]

    async def run(self, context: PipelineContext) -> PipelineContext:
        """Execute every stage over the context.

        Args:
            context: Fresh context built from a validated request

        Returns:
            The same context after the last stage

        Raises:
            PipelineError: If a stage fails; application errors raised by a
                stage propagate unchanged
        """
        context.started_at = time.perf_counter()

        for stage in self.stages:
            context.executed_stages.append(stage.name)
            stage_start = time.perf_counter()
            try:
                context = await stage.execute(context)
            except BaseAppException:
                logger.error(f"Pipeline stage {stage.name} failed")
                raise
            except Exception as e:
                logger.exception(f"Pipeline stage {stage.name} failed: {e}")
                raise PipelineError(stage.name, str(e)) from e
            finally:
                translation_stage_duration_seconds.labels(stage=stage.name).observe(
                    time.perf_counter() - stage_start
                )

        return context
