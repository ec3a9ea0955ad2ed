"""Sensitive-data detectors shared by the scrub stage and the log filter.

Detectors run in a fixed order over the progressively redacted string, so an
earlier category claims overlapping digits before a later one can.
"""

import re
from typing import NamedTuple, Pattern

from bs4 import BeautifulSoup, NavigableString
from bs4.element import PreformattedString


class SensitiveDataDetector(NamedTuple):
    category: str
    pattern: Pattern
    placeholder: str


DETECTORS: tuple[SensitiveDataDetector, ...] = (
    # Brazilian individual tax id (CPF), with or without punctuation
    SensitiveDataDetector(
        "CPF", re.compile(r"\d{3}\.?\d{3}\.?\d{3}-?\d{2}"), "[CPF REMOVED]"
    ),
    # Brazilian company tax id (CNPJ)
    SensitiveDataDetector(
        "CNPJ",
        re.compile(r"\d{2}\.?\d{3}\.?\d{3}/?\d{4}-?\d{2}"),
        "[CNPJ REMOVED]",
    ),
    SensitiveDataDetector(
        "EMAIL",
        re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"),
        "[EMAIL REMOVED]",
    ),
    # Area code, optional mobile 9 prefix, 8 digits
    SensitiveDataDetector(
        "PHONE", re.compile(r"\(?\d{2}\)?\s?9?\d{4}-?\d{4}"), "[PHONE REMOVED]"
    ),
    SensitiveDataDetector(
        "CREDIT_CARD",
        re.compile(r"\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}"),
        "[CARD REMOVED]",
    ),
)


class ScrubResult(NamedTuple):
    text: str
    had_sensitive_data: bool
    categories: list[str]


def scrub(text: str) -> ScrubResult:
    """Replace every sensitive-data match with its category placeholder.

    Args:
        text: Text to redact.

    Returns:
        ScrubResult with the redacted text, whether anything matched and
        the matched categories in detector order.
    """
    categories: list[str] = []
    for detector in DETECTORS:
        text, count = detector.pattern.subn(detector.placeholder, text)
        if count:
            categories.append(detector.category)
    return ScrubResult(text, bool(categories), categories)


def contains_sensitive_data(text: str) -> bool:
    return any(detector.pattern.search(text) for detector in DETECTORS)


# Attributes whose values are sent for translation along with text nodes
_TRANSLATED_ATTRIBUTES = (
    ("meta", {"name": "description"}, "content"),
    ("img", {}, "alt"),
    ("input", {}, "placeholder"),
    ("textarea", {}, "placeholder"),
)


def scrub_html(html: str) -> ScrubResult:
    """Scrub the readable parts of markup only.

    Text nodes and translated attributes are redacted; tags and every other
    attribute (href, src, data-*) are left as they are. Unchanged markup is
    returned byte for byte. Categories are listed in order of first match.
    """
    soup = BeautifulSoup(html, "html.parser")
    categories: list[str] = []

    def _scrub(value: str) -> ScrubResult:
        result = scrub(value)
        categories.extend(c for c in result.categories if c not in categories)
        return result

    for node in soup.find_all(string=True):
        if isinstance(node, PreformattedString):
            continue
        result = _scrub(str(node))
        if result.had_sensitive_data:
            node.replace_with(NavigableString(result.text))

    for name, attrs, attribute in _TRANSLATED_ATTRIBUTES:
        for tag in soup.find_all(name, attrs={**attrs, attribute: True}):
            value = tag.get(attribute)
            if not isinstance(value, str):
                continue
            result = _scrub(value)
            if result.had_sensitive_data:
                tag[attribute] = result.text

    if not categories:
        return ScrubResult(html, False, [])
    return ScrubResult(str(soup), True, categories)
