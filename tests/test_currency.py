"""Unit tests for currency.py."""

import pytest

from monatsbericht.currency import (
    MalformedAmountError,
    clean_amount,
    parse_amount,
    parse_euro,
)


class TestParseEuro:
    """Tests for parse_euro function."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("-12,34 €", -12.34),
            ("1.234,56", 1234.56),
            ("344", 344),
            ("-0,50", -0.5),
        ],
    )
    def test_parse_valid_amounts(self, raw, expected):
        """Test parsing German formatted amounts."""
        assert parse_euro(raw) == expected

    @pytest.mark.parametrize("raw", ["", None, "abc"])
    def test_parse_malformed_amounts_returns_zero(self, raw):
        """Test that malformed amounts resolve to 0."""
        assert parse_euro(raw) == 0

    def test_parse_lone_minus(self):
        """Test that a lone minus sign resolves to 0."""
        assert parse_euro("-") == 0

    def test_parse_large_amount_with_thousands_separators(self):
        """Test parsing an amount with several thousands separators."""
        assert parse_euro("-1.234.567,89 €") == -1234567.89

    def test_parse_amount_with_spaces(self):
        """Test that whitespace inside the amount is ignored."""
        assert parse_euro(" - 1 234,50 € ") == -1234.5

    def test_parse_amount_with_currency_code(self):
        """Test that letters around the number are stripped."""
        assert parse_euro("EUR -5,00") == -5.0

    def test_parse_is_deterministic(self):
        """Test that parsing the same value twice yields the same result."""
        assert parse_euro("-45,67") == parse_euro("-45,67")


class TestParseAmount:
    """Tests for parse_amount function."""

    def test_parse_amount_valid(self):
        """Test that valid amounts are returned unchanged by the fallible parser."""
        assert parse_amount("-800,00 €") == -800.0

    def test_parse_amount_empty_raises(self):
        """Test that empty input raises MalformedAmountError."""
        with pytest.raises(MalformedAmountError, match="empty"):
            parse_amount("")

    def test_parse_amount_none_raises(self):
        """Test that None raises MalformedAmountError."""
        with pytest.raises(MalformedAmountError):
            parse_amount(None)

    def test_parse_amount_without_digits_raises(self):
        """Test that text without digits raises MalformedAmountError."""
        with pytest.raises(MalformedAmountError, match="No number"):
            parse_amount("abc")

    def test_malformed_amount_is_value_error(self):
        """Test that MalformedAmountError can be handled as ValueError."""
        with pytest.raises(ValueError):
            parse_amount("€")


class TestCleanAmount:
    """Tests for clean_amount function."""

    def test_clean_amount(self):
        """Test normalization of a German amount string."""
        assert clean_amount("-1.234,56 €") == "-1234.56"

    def test_clean_amount_only_first_comma_is_decimal_point(self):
        """Test that only the first comma becomes the decimal point."""
        assert clean_amount("1,2,3") == "1.23"
