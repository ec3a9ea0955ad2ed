"""Request and response models for the translation pipeline."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TranslationType(str, Enum):
    """Content type of a translation request."""

    TEXT = "TEXT"
    DOCUMENT = "DOCUMENT"
    IMAGE = "IMAGE"
    HTML = "HTML"

    @property
    def media_types(self) -> tuple[str, ...]:
        return _MEDIA_TYPES[self]

    @property
    def is_binary(self) -> bool:
        return self in (TranslationType.DOCUMENT, TranslationType.IMAGE)

    def accepts(self, media_type: Optional[str]) -> bool:
        if not media_type:
            return False
        return _normalize_media_type(media_type) in self.media_types

    @classmethod
    def from_media_type(cls, media_type: Optional[str]) -> "TranslationType":
        """Map a media type to its content type, TEXT when unknown."""
        if media_type:
            normalized = _normalize_media_type(media_type)
            for translation_type in cls:
                if normalized in translation_type.media_types:
                    return translation_type
        return cls.TEXT


_MEDIA_TYPES = {
    TranslationType.TEXT: ("text/plain",),
    TranslationType.DOCUMENT: (
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ),
    TranslationType.IMAGE: ("image/jpeg", "image/png", "image/gif", "image/bmp"),
    TranslationType.HTML: ("text/html",),
}


def _normalize_media_type(media_type: str) -> str:
    # Drop parameters such as "; charset=utf-8"
    return media_type.split(";", 1)[0].strip().lower()


class TranslationRequest(BaseModel):
    """Immutable translation request.

    Fields are optional at the model level: the validator chain decides
    validity, and in which order problems are reported.
    """

    model_config = ConfigDict(frozen=True)

    texts: Optional[List[Optional[str]]] = None
    source_language: Optional[str] = None
    target_language: Optional[str] = None
    type: Optional[TranslationType] = TranslationType.TEXT
    media_type: Optional[str] = None
    payload: Optional[bytes] = Field(default=None, exclude=True)
    use_cache: bool = True
    remove_duplicates: bool = True
    remove_sensitive_data: bool = True


class TranslationResult(BaseModel):
    original_text: str
    translated_text: str
    source_language: str
    target_language: str
    from_cache: bool = False
    had_sensitive_data: bool = False
    translation_failed: bool = False
    source_indices: List[int] = Field(default_factory=list)


class RunMetadata(BaseModel):
    total_texts: int
    duplicates_removed: int = 0
    sensitive_data_removed: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    dictionary_hits: int = 0
    translation_failures: int = 0
    cache_hit_rate: float = 0.0
    processing_time_ms: float = 0.0
    average_time_per_text_ms: float = 0.0
    pipeline_steps: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    processed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TranslationResponse(BaseModel):
    results: List[TranslationResult]
    metadata: RunMetadata


class QuickTranslationResponse(BaseModel):
    translations: List[str]
    count: int
    cache_hits: int
    processing_time_ms: float


class HtmlTranslationRequest(BaseModel):
    html_texts: List[str]
    source: str
    target: str


class DictionaryEntryRequest(BaseModel):
    text: str = Field(..., min_length=1)
    translation: str = Field(..., min_length=1)
    source: str
    target: str
