"""Translation package.

This package provides:
- RequestValidator: Ordered validator chain run before any work
- TieredCache: Two-tier caching (local TTL memory + shared SQLite)
- TranslationPipeline: Six-stage request-processing pipeline
- TranslationStrategyFactory: Content type to strategy mapping
- TranslationService: Public translate()/translate_binary() entry point
"""

from polyglot.services.translation.cache import (
    LocalCache,
    SQLiteCache,
    TieredCache,
    make_cache_key,
)
from polyglot.services.translation.pipeline import PipelineContext, TranslationPipeline
from polyglot.services.translation.strategy_factory import TranslationStrategyFactory
from polyglot.services.translation.translation_service import TranslationService
from polyglot.services.translation.validators import RequestValidator

__all__ = [
    "LocalCache",
    "PipelineContext",
    "RequestValidator",
    "SQLiteCache",
    "TieredCache",
    "TranslationPipeline",
    "TranslationService",
    "TranslationStrategyFactory",
    "make_cache_key",
]
