"""Unit tests for aggregator.py."""

from datetime import date

import pytest

from monatsbericht.aggregator import Aggregator, merge_buckets, merge_reports
from monatsbericht.models import Classification, Transaction
from monatsbericht.periods import Period

MAY = Period("2025-05", "Mai 2025")
JUNE = Period("2025-06", "Juni 2025")


def make_transaction(recipient, amount):
    return Transaction(
        booking_date_raw="05.05.2025",
        recipient=recipient,
        raw_amount=f"{amount:.2f}".replace(".", ","),
        amount=amount,
        booking_date=date(2025, 5, 5),
    )


def assert_totals_consistent(report):
    for bucket in report.buckets.values():
        for aggregate in bucket.categories.values():
            assert aggregate.total == pytest.approx(
                sum(t.amount for t in aggregate.matches),
                abs=1e-9,
            )


class TestAggregator:
    """Tests for Aggregator class."""

    def test_new_bucket_has_all_categories(self):
        """Test that a bucket holds every category in order, misc last."""
        aggregator = Aggregator(["groceries", "fixedCosts"])

        bucket = aggregator.bucket(MAY)

        assert list(bucket.categories) == ["groceries", "fixedCosts", "misc"]
        assert all(a.total == 0.0 for a in bucket.categories.values())
        assert bucket.excluded == []

    def test_admit_category(self):
        """Test that an admitted transaction is counted in its category."""
        aggregator = Aggregator(["groceries"])
        transaction = make_transaction("REWE", -45.67)

        aggregator.admit(MAY, Classification.of("groceries"), transaction)

        aggregate = aggregator.report.buckets["2025-05"].categories["groceries"]
        assert aggregate.total == -45.67
        assert aggregate.matches == [transaction]

    def test_admit_misc(self):
        """Test the catch-all category."""
        aggregator = Aggregator(["groceries"])

        aggregator.admit(MAY, Classification.misc(), make_transaction("Kiosk", -3.0))

        assert aggregator.report.buckets["2025-05"].categories["misc"].total == -3.0

    def test_admit_excluded_is_recorded_not_counted(self):
        """Test that excluded transactions are listed but not counted."""
        aggregator = Aggregator(["groceries"])
        transaction = make_transaction("Umbuchung", -500.0)

        aggregator.admit(MAY, Classification.excluded(), transaction)

        bucket = aggregator.report.buckets["2025-05"]
        assert bucket.excluded == [transaction]
        assert bucket.grand_total == 0.0
        assert all(a.matches == [] for a in bucket.categories.values())

    def test_admit_keeps_insertion_order(self):
        """Test that matches keep input order."""
        aggregator = Aggregator(["groceries"])
        recipients = ["REWE 1", "EDEKA", "REWE 2"]
        for recipient in recipients:
            aggregator.admit(MAY, Classification.of("groceries"), make_transaction(recipient, -1.0))

        matches = aggregator.report.buckets["2025-05"].categories["groceries"].matches
        assert [t.recipient for t in matches] == recipients

    def test_admit_splits_periods(self):
        """Test that transactions are bucketed per period."""
        aggregator = Aggregator(["groceries"])
        aggregator.admit(MAY, Classification.of("groceries"), make_transaction("REWE", -1.0))
        aggregator.admit(JUNE, Classification.of("groceries"), make_transaction("REWE", -2.0))

        assert set(aggregator.report.buckets) == {"2025-05", "2025-06"}
        assert aggregator.report.buckets["2025-06"].period == JUNE

    def test_totals_match_after_every_admit(self):
        """Test the total invariant while admitting many amounts."""
        aggregator = Aggregator(["groceries"])
        for cents in [1, 33, 999, 12345, 7, 10, 5]:
            aggregator.admit(
                MAY,
                Classification.of("groceries"),
                make_transaction("REWE", -cents / 100),
            )
            assert_totals_consistent(aggregator.report)


class TestMergeBuckets:
    """Tests for merge_buckets function."""

    def test_merge_sums_totals_and_keeps_order(self):
        """Test merging two files of the same period."""
        first = Aggregator(["groceries"])
        file_a_match = make_transaction("REWE A", -10.0)
        first.admit(MAY, Classification.of("groceries"), file_a_match)

        second = Aggregator(["groceries"])
        file_b_match = make_transaction("REWE B", -5.0)
        second.admit(MAY, Classification.of("groceries"), file_b_match)

        merged = merge_buckets(first.bucket(MAY), second.bucket(MAY))

        groceries = merged.categories["groceries"]
        assert groceries.total == pytest.approx(-15.0)
        assert groceries.matches == [file_a_match, file_b_match]

    def test_merge_concatenates_exclusions(self):
        """Test that exclusion lists are concatenated."""
        first = Aggregator()
        first.admit(MAY, Classification.excluded(), make_transaction("A", -1.0))
        second = Aggregator()
        second.admit(MAY, Classification.excluded(), make_transaction("B", -2.0))

        merged = merge_buckets(first.bucket(MAY), second.bucket(MAY))

        assert [t.recipient for t in merged.excluded] == ["A", "B"]

    def test_merge_does_not_modify_inputs(self):
        """Test that merging returns a new bucket."""
        first = Aggregator(["groceries"])
        first.admit(MAY, Classification.of("groceries"), make_transaction("A", -1.0))
        second = Aggregator(["groceries"])
        second.admit(MAY, Classification.of("groceries"), make_transaction("B", -2.0))

        merge_buckets(first.bucket(MAY), second.bucket(MAY))

        assert first.bucket(MAY).categories["groceries"].total == -1.0
        assert len(first.bucket(MAY).categories["groceries"].matches) == 1

    def test_merge_categories_only_in_second(self):
        """Test that categories missing on one side are kept."""
        first = Aggregator(["groceries"])
        second = Aggregator(["fixedCosts"])
        second.admit(MAY, Classification.of("fixedCosts"), make_transaction("Miete", -800.0))

        merged = merge_buckets(first.bucket(MAY), second.bucket(MAY))

        assert list(merged.categories) == ["groceries", "misc", "fixedCosts"]
        assert merged.categories["fixedCosts"].total == -800.0

    def test_merge_different_periods_raises(self):
        """Test that buckets of different periods cannot be merged."""
        aggregator = Aggregator()

        with pytest.raises(ValueError, match="Cannot merge"):
            merge_buckets(aggregator.bucket(MAY), aggregator.bucket(JUNE))


class TestMergeReports:
    """Tests for merge_reports function."""

    def test_merge_reports(self):
        """Test merging overlapping and distinct periods."""
        first = Aggregator(["groceries"])
        first.admit(MAY, Classification.of("groceries"), make_transaction("A", -10.0))
        second = Aggregator(["groceries"])
        second.admit(MAY, Classification.of("groceries"), make_transaction("B", -5.0))
        second.admit(JUNE, Classification.misc(), make_transaction("C", -7.5))

        merged = merge_reports(first.report, second.report)

        assert set(merged.buckets) == {"2025-05", "2025-06"}
        may = merged.buckets["2025-05"].categories["groceries"]
        assert may.total == pytest.approx(-15.0)
        assert [t.recipient for t in may.matches] == ["A", "B"]
        assert merged.buckets["2025-06"].categories["misc"].total == -7.5
        assert_totals_consistent(merged)

    def test_merge_with_empty_report(self):
        """Test that merging into an empty report keeps everything."""
        first = Aggregator(["groceries"])
        second = Aggregator(["groceries"])
        second.admit(MAY, Classification.of("groceries"), make_transaction("A", -1.0))

        merged = merge_reports(first.report, second.report)

        assert merged.buckets["2025-05"].categories["groceries"].total == -1.0

    def test_merge_order_matters_for_matches(self):
        """Test that swapping the inputs swaps the match order only."""
        first = Aggregator(["groceries"])
        first.admit(MAY, Classification.of("groceries"), make_transaction("A", -0.1))
        second = Aggregator(["groceries"])
        second.admit(MAY, Classification.of("groceries"), make_transaction("B", -0.2))

        forward = merge_reports(first.report, second.report)
        backward = merge_reports(second.report, first.report)

        def recipients(report):
            return [t.recipient for t in report.buckets["2025-05"].categories["groceries"].matches]

        assert recipients(forward) == ["A", "B"]
        assert recipients(backward) == ["B", "A"]
        assert forward.buckets["2025-05"].grand_total == pytest.approx(
            backward.buckets["2025-05"].grand_total,
        )
