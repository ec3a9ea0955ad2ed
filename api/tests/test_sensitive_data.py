"""Tests for sensitive-data detectors and the PII log filter."""

import logging

from polyglot.core.pii_filter import PIIFilter, add_pii_filter_to_logger
from polyglot.services.translation.sensitive_data import (
    DETECTORS,
    contains_sensitive_data,
    scrub,
    scrub_html,
)


class TestScrub:
    def test_email_is_replaced(self):
        result = scrub("contact me at a@b.com")
        assert result.text == "contact me at [EMAIL REMOVED]"
        assert result.had_sensitive_data is True
        assert result.categories == ["EMAIL"]

    def test_clean_text_is_unchanged(self):
        result = scrub("hello world")
        assert result.text == "hello world"
        assert result.had_sensitive_data is False
        assert result.categories == []

    def test_formatted_cpf(self):
        assert scrub("CPF 123.456.789-09").text == "CPF [CPF REMOVED]"

    def test_formatted_cnpj(self):
        assert scrub("CNPJ 12.345.678/0001-95").text == "CNPJ [CNPJ REMOVED]"

    def test_phone_number(self):
        assert scrub("ligue (11) 98765-4321").text == "ligue [PHONE REMOVED]"

    def test_spaced_card_number(self):
        assert scrub("card 4111 1111 1111 1111").text == "card [CARD REMOVED]"

    def test_unformatted_digits_resolve_by_detector_order(self):
        """Eleven plain digits match the tax id detector before the phone one."""
        result = scrub("id 12345678909")
        assert result.text == "id [CPF REMOVED]"
        assert result.categories == ["CPF"]

    def test_multiple_categories_in_one_text(self):
        result = scrub("mail x@y.org, cpf 123.456.789-09")
        assert "[EMAIL REMOVED]" in result.text
        assert "[CPF REMOVED]" in result.text
        assert result.categories == ["CPF", "EMAIL"]

    def test_scrub_is_deterministic(self):
        assert scrub("a@b.com and c@d.com") == scrub("a@b.com and c@d.com")

    def test_detector_order_is_fixed(self):
        assert [d.category for d in DETECTORS] == [
            "CPF",
            "CNPJ",
            "EMAIL",
            "PHONE",
            "CREDIT_CARD",
        ]

    def test_contains_sensitive_data(self):
        assert contains_sensitive_data("write to me@example.com")
        assert not contains_sensitive_data("nothing to see")


class TestScrubHtml:
    def test_link_target_is_kept(self):
        result = scrub_html('<a href="mailto:ana@example.com">ana@example.com</a>')

        assert result.text == '<a href="mailto:ana@example.com">[EMAIL REMOVED]</a>'
        assert result.had_sensitive_data is True
        assert result.categories == ["EMAIL"]

    def test_translated_attributes_are_scrubbed(self):
        result = scrub_html('<img alt="ligue (11) 98765-4321" src="/a.png"/>')

        assert 'alt="ligue [PHONE REMOVED]"' in result.text
        assert 'src="/a.png"' in result.text

    def test_clean_markup_is_returned_unchanged(self):
        html = "<P CLASS=x>Hello<br></P>"
        assert scrub_html(html) == (html, False, [])


class TestPIIFilter:
    def _record(self, msg, args=None) -> logging.LogRecord:
        return logging.LogRecord(
            name="test",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg=msg,
            args=args,
            exc_info=None,
        )

    def test_redacts_message(self):
        record = self._record("Translating 'mail me at user@example.com'")
        assert PIIFilter().filter(record) is True
        assert record.msg == "Translating 'mail me at [EMAIL REMOVED]'"

    def test_redacts_tuple_args(self):
        record = self._record("text=%s count=%d", ("123.456.789-09", 3))
        PIIFilter().filter(record)
        assert record.args == ("[CPF REMOVED]", 3)
        assert record.getMessage() == "text=[CPF REMOVED] count=3"

    def test_redacts_api_keys(self):
        record = self._record("using key sk-abcdefghijklmnopqrstuvwxyz")
        PIIFilter().filter(record)
        assert "sk-abcdef" not in record.msg

    def test_filter_added_once(self):
        logger = logging.getLogger("polyglot.test.pii")
        add_pii_filter_to_logger(logger)
        add_pii_filter_to_logger(logger)
        assert sum(isinstance(f, PIIFilter) for f in logger.filters) == 1
