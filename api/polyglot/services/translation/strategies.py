"""Content-type translation strategies.

Each strategy declares the TranslationType it handles and translates either a
batch of texts or a single binary payload. Provider calls go through the
shared ResilientCaller; a failed item passes through unchanged and is marked
failed instead of aborting the batch.
"""

import logging
import re
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from bs4 import BeautifulSoup, NavigableString
from bs4.element import PreformattedString
from polyglot.core.exceptions import (
    TranslationFailureError,
    UnsupportedTranslationTypeError,
)
from polyglot.models.translation import TranslationType
from polyglot.services.translation.providers import (
    ExtractionProvider,
    TextTranslationProvider,
    VisionTranslationProvider,
)
from polyglot.services.translation.resilience import ResilientCaller

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# Translated value plus whether it degraded to passthrough
ItemOutcome = Tuple[str, bool]


@dataclass
class TranslationOutcome:
    text: str
    failed: bool = False


@dataclass
class BatchTranslation:
    """Index-aligned batch result."""

    translations: List[str] = field(default_factory=list)
    failed: List[bool] = field(default_factory=list)

    @classmethod
    def from_outcomes(cls, outcomes: Sequence[ItemOutcome]) -> "BatchTranslation":
        return cls(
            translations=[text for text, _ in outcomes],
            failed=[failed for _, failed in outcomes],
        )

    @classmethod
    def passthrough(cls, texts: Sequence[str]) -> "BatchTranslation":
        return cls(translations=list(texts), failed=[True] * len(texts))


class TranslationStrategy(ABC):
    """Base class for content-type strategies.

    Args:
        provider: Text translation provider
        caller: Resilience wrapper shared by every provider call
        max_concurrency: Parallel provider calls per batch
    """

    translation_type: TranslationType

    def __init__(
        self,
        provider: TextTranslationProvider,
        caller: ResilientCaller,
        max_concurrency: int = 4,
    ):
        self.provider = provider
        self.caller = caller
        self.max_concurrency = max(1, max_concurrency)

    @abstractmethod
    def translate_batch(
        self, texts: Sequence[str], source_lang: str, target_lang: str
    ) -> BatchTranslation:
        """Translate texts, returning results in input order."""

    @abstractmethod
    def translate_binary(
        self,
        payload: bytes,
        source_lang: str,
        target_lang: str,
        media_type: Optional[str] = None,
    ) -> TranslationOutcome:
        """Translate the text carried by a binary payload."""

    def _map_ordered(self, func: Callable[[T], R], items: Sequence[T]) -> List[R]:
        """Apply func to items over a bounded pool, keeping input order."""
        if len(items) <= 1 or self.max_concurrency == 1:
            return [func(item) for item in items]

        workers = min(self.max_concurrency, len(items))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(func, items))

    def _translate_text(
        self, text: str, source_lang: str, target_lang: str
    ) -> ItemOutcome:
        """Translate one text, passing it through unchanged on failure."""
        if not text.strip():
            return text, False
        try:
            return (
                self.caller.call(
                    self.provider.translate, text, source_lang, target_lang
                ),
                False,
            )
        except TranslationFailureError as e:
            logger.warning(
                f"{self.translation_type.value} item degraded to passthrough: {e.detail}"
            )
            return text, True


class TextTranslationStrategy(TranslationStrategy):
    """One provider call per text, fanned out over a bounded pool."""

    translation_type = TranslationType.TEXT

    def translate_batch(
        self, texts: Sequence[str], source_lang: str, target_lang: str
    ) -> BatchTranslation:
        outcomes = self._map_ordered(
            lambda text: self._translate_text(text, source_lang, target_lang), texts
        )
        return BatchTranslation.from_outcomes(outcomes)

    def translate_binary(
        self,
        payload: bytes,
        source_lang: str,
        target_lang: str,
        media_type: Optional[str] = None,
    ) -> TranslationOutcome:
        raise UnsupportedTranslationTypeError(
            f"{self.translation_type.value} (binary payload)"
        )


class DocumentTranslationStrategy(TranslationStrategy):
    """Extract document text, then translate it in fixed-size chunks.

    Providers cap request size, so text is cut into slices of at most
    ``chunk_size`` characters in document order. Translated chunks are
    concatenated in the same order; a failed chunk passes through.
    """

    translation_type = TranslationType.DOCUMENT

    def __init__(
        self,
        provider: TextTranslationProvider,
        caller: ResilientCaller,
        extractor: ExtractionProvider,
        chunk_size: int = 5000,
        max_concurrency: int = 4,
    ):
        super().__init__(provider, caller, max_concurrency)
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.extractor = extractor
        self.chunk_size = chunk_size

    def split_chunks(self, text: str) -> List[str]:
        return [
            text[start : start + self.chunk_size]
            for start in range(0, len(text), self.chunk_size)
        ]

    def translate_batch(
        self, texts: Sequence[str], source_lang: str, target_lang: str
    ) -> BatchTranslation:
        outcomes = [
            self._translate_chunked(text, source_lang, target_lang) for text in texts
        ]
        return BatchTranslation.from_outcomes(outcomes)

    def translate_binary(
        self,
        payload: bytes,
        source_lang: str,
        target_lang: str,
        media_type: Optional[str] = None,
    ) -> TranslationOutcome:
        text = self.caller.call(self.extractor.extract_text, payload, media_type)
        logger.info(f"Extracted {len(text)} characters from {media_type} document")
        translated, failed = self._translate_chunked(text, source_lang, target_lang)
        return TranslationOutcome(translated, failed)

    def _translate_chunked(
        self, text: str, source_lang: str, target_lang: str
    ) -> ItemOutcome:
        chunks = self.split_chunks(text)
        if len(chunks) > 1:
            logger.debug(f"Translating document text in {len(chunks)} chunks")
        outcomes = self._map_ordered(
            lambda chunk: self._translate_text(chunk, source_lang, target_lang), chunks
        )
        return (
            "".join(chunk for chunk, _ in outcomes),
            any(failed for _, failed in outcomes),
        )


class HtmlTranslationStrategy(TranslationStrategy):
    """Translate the human-readable parts of an HTML document in place.

    Translated: <title>, meta description content, img alt, input and
    textarea placeholders, and every non-blank visible text node. Markup,
    other attributes and script/style content are left untouched.
    """

    translation_type = TranslationType.HTML

    SKIPPED_PARENTS = frozenset({"script", "style", "title", "head"})
    _LEADING_WS = re.compile(r"^\s*")
    _TRAILING_WS = re.compile(r"\s*$")

    def translate_batch(
        self, texts: Sequence[str], source_lang: str, target_lang: str
    ) -> BatchTranslation:
        outcomes = [
            self.translate_html(html, source_lang, target_lang) for html in texts
        ]
        return BatchTranslation.from_outcomes(outcomes)

    def translate_binary(
        self,
        payload: bytes,
        source_lang: str,
        target_lang: str,
        media_type: Optional[str] = None,
    ) -> TranslationOutcome:
        html = payload.decode("utf-8")
        translated, failed = self.translate_html(html, source_lang, target_lang)
        return TranslationOutcome(translated, failed)

    def translate_html(
        self, html: str, source_lang: str, target_lang: str
    ) -> ItemOutcome:
        """Translate one HTML document or fragment.

        Args:
            html: Markup to translate
            source_lang: Source language code
            target_lang: Target language code

        Returns:
            Serialized markup and whether any fragment failed
        """
        soup = BeautifulSoup(html, "html.parser")
        fragments = self._collect_fragments(soup)
        if not fragments:
            return html, False

        outcomes = self._map_ordered(
            lambda fragment: self._translate_text(
                fragment[0], source_lang, target_lang
            ),
            fragments,
        )
        for (_, apply), (translated, _) in zip(fragments, outcomes):
            apply(translated)

        logger.debug(f"Translated {len(fragments)} HTML fragments")
        return str(soup), any(failed for _, failed in outcomes)

    def _collect_fragments(
        self, soup: BeautifulSoup
    ) -> List[Tuple[str, Callable[[str], None]]]:
        fragments: List[Tuple[str, Callable[[str], None]]] = []

        if soup.title is not None and soup.title.string:
            fragments.append(self._text_node_fragment(soup.title.string))

        meta = soup.find("meta", attrs={"name": "description"})
        if meta is not None:
            fragments.extend(self._attribute_fragments([meta], "content"))

        fragments.extend(
            self._attribute_fragments(soup.find_all("img", alt=True), "alt")
        )
        fragments.extend(
            self._attribute_fragments(
                soup.find_all(["input", "textarea"], placeholder=True), "placeholder"
            )
        )

        root = soup.body or soup
        for node in root.find_all(string=True):
            if isinstance(node, PreformattedString) or not node.strip():
                continue
            if any(parent.name in self.SKIPPED_PARENTS for parent in node.parents):
                continue
            fragments.append(self._text_node_fragment(node))

        return fragments

    def _text_node_fragment(
        self, node: NavigableString
    ) -> Tuple[str, Callable[[str], None]]:
        original = str(node)
        leading = self._LEADING_WS.match(original).group()
        trailing = self._TRAILING_WS.search(original).group()

        def apply(translated: str) -> None:
            node.replace_with(NavigableString(f"{leading}{translated}{trailing}"))

        return original.strip(), apply

    @staticmethod
    def _attribute_fragments(
        tags, attribute: str
    ) -> List[Tuple[str, Callable[[str], None]]]:
        fragments = []
        for tag in tags:
            value = tag.get(attribute)
            if not isinstance(value, str) or not value.strip():
                continue

            def apply(translated: str, tag=tag) -> None:
                tag[attribute] = translated

            fragments.append((value, apply))
        return fragments


class ImageTranslationStrategy(TranslationStrategy):
    """Extract and translate image text with one vision call."""

    translation_type = TranslationType.IMAGE

    def __init__(
        self,
        provider: TextTranslationProvider,
        caller: ResilientCaller,
        vision_provider: VisionTranslationProvider,
    ):
        super().__init__(provider, caller, max_concurrency=1)
        self.vision_provider = vision_provider

    def translate_batch(
        self, texts: Sequence[str], source_lang: str, target_lang: str
    ) -> BatchTranslation:
        logger.warning("IMAGE translation has no text batch mode, passing texts through")
        return BatchTranslation.passthrough(texts)

    def translate_binary(
        self,
        payload: bytes,
        source_lang: str,
        target_lang: str,
        media_type: Optional[str] = None,
    ) -> TranslationOutcome:
        translated = self.caller.call(
            self.vision_provider.extract_and_translate,
            payload,
            source_lang,
            target_lang,
            media_type,
        )
        return TranslationOutcome(translated)
