"""Validator chain run before any pipeline stage.

Each check either raises or returns warnings. Checks run in order and the
first failure aborts the request, so clients always see the most basic
problem first.
"""

import logging
import re
from typing import Callable, List, Optional, Sequence

from polyglot.core.config import Settings
from polyglot.core.exceptions import InvalidInputError, UnsupportedLanguageError
from polyglot.models.translation import TranslationRequest, TranslationType

logger = logging.getLogger(__name__)

HTML_TAG_PATTERN = re.compile(r"<[^>]+>")

Check = Callable[[TranslationRequest], Optional[List[str]]]


class RequestValidator:
    """Ordered chain of request checks.

    Args:
        settings: Provides supported languages and size limits.
        checks: Optional replacement for the default check order.
    """

    def __init__(self, settings: Settings, checks: Optional[Sequence[Check]] = None):
        self.supported_languages = frozenset(settings.SUPPORTED_LANGUAGES)
        self.max_texts = settings.MAX_TEXTS
        self.max_text_length = settings.MAX_TEXT_LENGTH
        self.max_payload_bytes = settings.MAX_PAYLOAD_BYTES
        self.checks: List[Check] = list(
            checks
            if checks is not None
            else (
                self.check_required_fields,
                self.check_size,
                self.check_languages,
                self.check_format,
            )
        )

    def validate(self, request: Optional[TranslationRequest]) -> List[str]:
        """Run every check in order.

        Args:
            request: Request to validate. Never mutated.

        Returns:
            Warnings collected from the checks.

        Raises:
            InvalidInputError: Missing fields, size limits or format problems.
            UnsupportedLanguageError: Unknown language or identical pair.
        """
        if request is None:
            raise InvalidInputError("Request must not be empty")

        warnings: List[str] = []
        for check in self.checks:
            warnings.extend(check(request) or [])
        if warnings:
            logger.debug(f"Validation passed with warnings: {warnings}")
        return warnings

    def check_required_fields(self, request: TranslationRequest) -> None:
        if request.type is None:
            raise InvalidInputError("Translation type is required")

        binary_with_payload = request.type.is_binary and request.payload is not None
        if not request.texts and not binary_with_payload:
            raise InvalidInputError("Text list must not be empty")

        if not request.source_language or not request.source_language.strip():
            raise InvalidInputError("Source language is required")

        if not request.target_language or not request.target_language.strip():
            raise InvalidInputError("Target language is required")

    def check_size(self, request: TranslationRequest) -> None:
        texts = request.texts or []
        if len(texts) > self.max_texts:
            raise InvalidInputError(
                f"Maximum of {self.max_texts} texts per request, got {len(texts)}"
            )

        for index, text in enumerate(texts):
            if text is None:
                raise InvalidInputError(f"Text at index {index} is null")
            if len(text) > self.max_text_length:
                raise InvalidInputError(
                    f"Text at index {index} exceeds the maximum length of "
                    f"{self.max_text_length} characters"
                )

        if request.payload is not None and len(request.payload) > self.max_payload_bytes:
            raise InvalidInputError(
                f"Payload exceeds the maximum size of {self.max_payload_bytes} bytes"
            )

    def check_languages(self, request: TranslationRequest) -> None:
        source = request.source_language.strip().lower()
        target = request.target_language.strip().lower()

        if source not in self.supported_languages:
            raise UnsupportedLanguageError(
                f"Unsupported source language: {request.source_language}"
            )
        if target not in self.supported_languages:
            raise UnsupportedLanguageError(
                f"Unsupported target language: {request.target_language}"
            )
        if source == target:
            raise UnsupportedLanguageError(
                "Source and target languages must be different"
            )

    def check_format(self, request: TranslationRequest) -> List[str]:
        warnings: List[str] = []

        if request.type.is_binary:
            if not request.payload:
                raise InvalidInputError(
                    f"A non-empty payload is required for {request.type.value} translation"
                )
            if not request.type.accepts(request.media_type):
                raise InvalidInputError(
                    f"Media type {request.media_type!r} is not valid for "
                    f"{request.type.value} translation"
                )
            return warnings

        if request.payload is not None:
            raise InvalidInputError(
                f"{request.type.value} translation does not accept a binary payload"
            )

        if request.type is TranslationType.HTML:
            for index, text in enumerate(request.texts or []):
                if not HTML_TAG_PATTERN.search(text):
                    warnings.append(f"Text at index {index} contains no HTML markup")

        return warnings
