"""PII (Personally Identifiable Information) logging filter.

Redacts sensitive information from log messages so that texts logged while
debugging a translation run never leak the data the pipeline scrubs.
"""

import logging
import re
from typing import Any, Pattern

from polyglot.services.translation.sensitive_data import DETECTORS


class PIIFilter(logging.Filter):
    """Logging filter that redacts PII from log messages."""

    # Scrub detectors first, in their fixed order, then log-only secrets
    PATTERNS: list[tuple[Pattern, str]] = [
        (detector.pattern, detector.placeholder) for detector in DETECTORS
    ] + [
        # API keys (generic pattern for keys with alphanumeric and special chars)
        (
            re.compile(r"api[_-]?key[_-]?[:=]\s*['\"]?[\w\-]{20,}['\"]?", re.I),
            "[API_KEY]",
        ),
        # Provider secret keys (sk-...)
        (re.compile(r"\bsk-[A-Za-z0-9_-]{16,}"), "[API_KEY]"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter log record by redacting PII from message.

        Args:
            record: The log record to filter

        Returns:
            True (always allow the record, but with redacted content)
        """
        if record.msg:
            record.msg = self._redact_string(str(record.msg))

        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    k: self._redact_string(v) for k, v in record.args.items()
                }
            elif isinstance(record.args, tuple):
                record.args = tuple(self._redact_string(arg) for arg in record.args)

        return True

    def _redact_string(self, value: Any) -> Any:
        """Redact PII from a string value.

        Args:
            value: The value to redact (if it's a string)

        Returns:
            Redacted value (unchanged if not a string)
        """
        if not isinstance(value, str):
            return value

        redacted = value
        for pattern, replacement in self.PATTERNS:
            redacted = pattern.sub(replacement, redacted)
        return redacted


def add_pii_filter_to_logger(logger: logging.Logger) -> None:
    """Add PII filter to a logger instance, once.

    Args:
        logger: The logger to add the filter to
    """
    if any(isinstance(f, PIIFilter) for f in logger.filters):
        return
    logger.addFilter(PIIFilter())


def add_pii_filter_to_all_loggers() -> None:
    """Add PII filter to all existing loggers and the root logger."""
    add_pii_filter_to_logger(logging.getLogger())

    for logger_name in logging.Logger.manager.loggerDict:
        logger = logging.getLogger(logger_name)
        if isinstance(logger, logging.Logger):
            add_pii_filter_to_logger(logger)
