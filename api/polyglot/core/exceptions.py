"""
Custom exception hierarchy for the Polyglot Translation API.

This module defines a standardized exception hierarchy for consistent
error handling across the application.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class BaseAppException(HTTPException):
    """Base exception for all application errors."""

    def __init__(
        self,
        detail: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        headers: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code or self.__class__.__name__

    def __str__(self) -> str:
        return str(self.detail)


# Client Errors (never retried)


class InvalidInputError(BaseAppException):
    """Raised when a request is malformed, incomplete or oversized."""

    def __init__(self, detail: str):
        super().__init__(
            detail, status.HTTP_400_BAD_REQUEST, error_code="INVALID_INPUT"
        )


class UnsupportedLanguageError(BaseAppException):
    """Raised when a language code is not supported or the pair is invalid."""

    def __init__(self, detail: str):
        super().__init__(
            detail, status.HTTP_400_BAD_REQUEST, error_code="UNSUPPORTED_LANGUAGE"
        )


# Server Errors


class UnsupportedTranslationTypeError(BaseAppException):
    """Raised when no strategy handles a content type.

    Validation restricts content types to the known enumeration, so reaching
    this is a wiring bug rather than a client error.
    """

    def __init__(self, translation_type: Any):
        super().__init__(
            f"Unsupported translation type: {translation_type}",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="UNSUPPORTED_TRANSLATION_TYPE",
        )


class TranslationFailureError(BaseAppException):
    """Raised when a provider call fails after retries or the circuit is open.

    ``retry_after`` is the number of seconds until the provider may be tried
    again, when known.
    """

    def __init__(self, detail: str, retry_after: Optional[int] = None):
        super().__init__(
            f"Translation failed: {detail}",
            status.HTTP_502_BAD_GATEWAY,
            error_code="TRANSLATION_FAILURE",
        )
        self.retry_after = retry_after


class PipelineError(BaseAppException):
    """Raised when a pipeline stage fails unexpectedly."""

    def __init__(self, stage_name: str, detail: str):
        super().__init__(
            f"Pipeline failed at step {stage_name}: {detail}",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="PIPELINE_ERROR",
        )
        self.stage_name = stage_name


class PipelineInvariantError(PipelineError):
    """Raised when a stage leaves the context in an inconsistent state."""

    def __init__(self, stage_name: str, detail: str):
        super().__init__(stage_name, detail)
        self.error_code = "PIPELINE_INVARIANT_VIOLATION"
