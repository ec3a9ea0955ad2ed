"""Per-run state threaded through the pipeline stages."""

import hashlib
import time
from dataclasses import dataclass, field
from typing import List, Optional

from polyglot.core.exceptions import PipelineInvariantError
from polyglot.models.translation import (
    RunMetadata,
    TranslationRequest,
    TranslationType,
)


def payload_descriptor(payload: bytes, media_type: Optional[str]) -> str:
    """Stable text standing in for a binary payload.

    Used as the working text of binary runs, so the cache key of a document
    or image is addressed by its content hash.
    """
    digest = hashlib.sha256(payload).hexdigest()
    return f"{media_type or 'application/octet-stream'};sha256={digest}"


@dataclass
class PipelineContext:
    """Mutable state owned by exactly one pipeline run.

    Working arrays (processed_texts, translated, from_cache,
    had_sensitive_data, degraded, source_indices) are index aligned with
    unique_texts once the deduplicate stage has run.
    """

    original_texts: List[str]
    source_language: str
    target_language: str
    translation_type: TranslationType = TranslationType.TEXT
    payload: Optional[bytes] = None
    media_type: Optional[str] = None
    use_cache: bool = True
    remove_duplicates: bool = True
    remove_sensitive_data: bool = True

    unique_texts: List[str] = field(default_factory=list)
    processed_texts: List[str] = field(default_factory=list)
    source_indices: List[List[int]] = field(default_factory=list)
    translated: List[Optional[str]] = field(default_factory=list)
    from_cache: List[bool] = field(default_factory=list)
    had_sensitive_data: List[bool] = field(default_factory=list)
    degraded: List[bool] = field(default_factory=list)

    duplicates_removed: int = 0
    sensitive_data_removed: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    dictionary_hits: int = 0
    translation_failures: int = 0
    cache_writes: int = 0

    executed_stages: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    started_at: float = field(default_factory=time.perf_counter)
    processing_time_ms: float = 0.0
    metadata: Optional[RunMetadata] = None

    @classmethod
    def from_request(
        cls, request: TranslationRequest, warnings: Optional[List[str]] = None
    ) -> "PipelineContext":
        """Build the context of one run from a validated request.

        Binary runs get a single working text: the payload descriptor.
        """
        translation_type = request.type or TranslationType.TEXT
        if translation_type.is_binary:
            texts = [payload_descriptor(request.payload or b"", request.media_type)]
        else:
            texts = list(request.texts or [])

        return cls(
            original_texts=texts,
            source_language=request.source_language.strip().lower(),
            target_language=request.target_language.strip().lower(),
            translation_type=translation_type,
            payload=request.payload,
            media_type=request.media_type,
            use_cache=request.use_cache,
            remove_duplicates=request.remove_duplicates,
            remove_sensitive_data=request.remove_sensitive_data,
            warnings=list(warnings or []),
        )

    @property
    def is_binary(self) -> bool:
        return self.translation_type.is_binary

    @property
    def total_texts(self) -> int:
        return len(self.original_texts)

    def unresolved_indices(self) -> List[int]:
        return [i for i, value in enumerate(self.translated) if value is None]

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started_at) * 1000

    def check_translated(self, stage_name: str) -> None:
        """Assert the post-translate invariant.

        Raises:
            PipelineInvariantError: If the working arrays disagree in length
                or a slot is still unresolved
        """
        size = len(self.processed_texts)
        lengths = {
            "translated": len(self.translated),
            "from_cache": len(self.from_cache),
            "degraded": len(self.degraded),
            "had_sensitive_data": len(self.had_sensitive_data),
            "source_indices": len(self.source_indices),
        }
        misaligned = {name: n for name, n in lengths.items() if n != size}
        if misaligned:
            raise PipelineInvariantError(
                stage_name,
                f"{size} processed texts but misaligned arrays {misaligned}",
            )
        unresolved = self.unresolved_indices()
        if unresolved:
            raise PipelineInvariantError(
                stage_name, f"unresolved translation slots {unresolved}"
            )
