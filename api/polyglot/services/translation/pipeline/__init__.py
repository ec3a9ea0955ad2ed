from polyglot.services.translation.pipeline.context import PipelineContext
from polyglot.services.translation.pipeline.pipeline import TranslationPipeline

__all__ = ["PipelineContext", "TranslationPipeline"]
