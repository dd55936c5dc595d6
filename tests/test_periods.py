"""Unit tests for periods.py."""

from datetime import date

from monatsbericht.periods import (
    MONTH_NAMES,
    UNKNOWN_PERIOD,
    Period,
    parse_booking_date,
    period_for,
    period_from_date,
    period_from_preamble,
)


class TestPeriodFor:
    """Tests for period_for function."""

    def test_period_key_and_label(self):
        """Test key and German label of a month."""
        assert period_for(2025, 5) == Period(key="2025-05", label="Mai 2025")

    def test_period_label_with_umlaut(self):
        """Test the label of March."""
        assert period_for(2024, 3).label == "März 2024"

    def test_month_names_complete(self):
        """Test that every month has a name."""
        assert len(MONTH_NAMES) == 12
        assert MONTH_NAMES[0] == "Januar"
        assert MONTH_NAMES[11] == "Dezember"


class TestParseBookingDate:
    """Tests for parse_booking_date function."""

    def test_four_digit_year(self):
        """Test parsing DD.MM.YYYY."""
        assert parse_booking_date("05.05.2025") == date(2025, 5, 5)

    def test_two_digit_year(self):
        """Test parsing DD.MM.YY as used by DKB exports."""
        assert parse_booking_date("15.01.24") == date(2024, 1, 15)

    def test_surrounding_whitespace(self):
        """Test that whitespace around the date is ignored."""
        assert parse_booking_date(" 01.12.2023 ") == date(2023, 12, 1)

    def test_invalid_date(self):
        """Test that invalid dates yield None."""
        assert parse_booking_date("31.02.2025") is None
        assert parse_booking_date("not a date") is None


class TestPeriodFromDate:
    """Tests for period_from_date function."""

    def test_period_from_date(self):
        """Test deriving the period of a booking."""
        assert period_from_date(date(2025, 1, 31)) == Period("2025-01", "Januar 2025")

    def test_period_from_missing_date(self):
        """Test that a missing date maps to the unknown period."""
        assert period_from_date(None) == UNKNOWN_PERIOD


class TestPeriodFromPreamble:
    """Tests for period_from_preamble function."""

    def test_dkb_preamble(self):
        """Test extracting the period from a quoted DKB preamble cell."""
        lines = [
            '"Girokonto";"DE02120300000000202051"',
            '""',
            '"Zeitraum:";"01.05.2025 - 31.05.2025"',
            '"Kontostand vom 31.05.2025:";"1.234,56 €"',
        ]

        assert period_from_preamble(lines) == Period("2025-05", "Mai 2025")

    def test_first_date_of_range_wins(self):
        """Test that the first date of the range determines the period."""
        lines = ["Kontoumsätze;28.02.2025 - 31.03.2025;Girokonto"]

        assert period_from_preamble(lines).key == "2025-02"

    def test_first_range_in_file_wins(self):
        """Test that the first range found is used."""
        lines = [
            "Zeitraum;01.06.2024 - 30.06.2024",
            "Zeitraum;01.07.2024 - 31.07.2024",
        ]

        assert period_from_preamble(lines).key == "2024-06"

    def test_range_without_spaces(self):
        """Test a range without spaces around the dash."""
        assert period_from_preamble(["01.11.2023-30.11.2023"]).key == "2023-11"

    def test_no_range_falls_back_to_unknown(self):
        """Test the fallback when no date range exists."""
        lines = ["Buchungstag;Umsatz", "05.05.2025;-5,00"]

        period = period_from_preamble(lines)

        assert period == UNKNOWN_PERIOD
        assert period.key == "unbekannt"
        assert period.label == "Unbekannt"

    def test_invalid_range_is_ignored(self):
        """Test that an impossible date is skipped."""
        lines = ["Zeitraum;01.13.2025 - 31.13.2025"]

        assert period_from_preamble(lines) == UNKNOWN_PERIOD

    def test_custom_delimiter(self):
        """Test splitting with another delimiter."""
        lines = ['"Zeitraum:","01.09.2025 - 30.09.2025"']

        assert period_from_preamble(lines, delimiter=",").key == "2025-09"
