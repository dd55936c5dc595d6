"""
Aggregation of classified transactions into per-period category totals.
"""

import logging
from collections.abc import Iterable

from .models import (
    MISC_CATEGORY,
    Aggregate,
    Classification,
    PeriodBucket,
    Report,
    Transaction,
)
from .periods import Period

logger = logging.getLogger(__name__)


class Aggregator:
    """Builds the period buckets of one input source.

    Every bucket gets an aggregate for each configured category, in configured
    order, followed by the catch-all category, so empty categories still show up
    in the report.
    """

    def __init__(self, category_names: Iterable[str] = ()):
        self.category_names = [*category_names, MISC_CATEGORY]
        self.report = Report()

    def bucket(self, period: Period) -> PeriodBucket:
        """Get or create the bucket of a period."""
        bucket = self.report.buckets.get(period.key)
        if bucket is None:
            bucket = PeriodBucket(
                period=period,
                categories={name: Aggregate() for name in self.category_names},
            )
            self.report.buckets[period.key] = bucket
        return bucket

    def admit(
        self,
        period: Period,
        classification: Classification,
        transaction: Transaction,
    ) -> None:
        """Record a classified transaction in the bucket of its period."""
        bucket = self.bucket(period)
        if classification.is_excluded:
            bucket.excluded.append(transaction)
            return
        bucket.aggregate(classification.category).add(transaction)


def merge_buckets(first: PeriodBucket, second: PeriodBucket) -> PeriodBucket:
    """
    Merge two buckets of the same period.

    Matches of ``first`` precede those of ``second``. Neither input is modified.
    """
    if first.period.key != second.period.key:
        raise ValueError(
            f"Cannot merge period {first.period.key} with {second.period.key}",
        )

    names = list(first.categories)
    names.extend(name for name in second.categories if name not in first.categories)

    categories = {}
    for name in names:
        left = first.categories.get(name, Aggregate())
        right = second.categories.get(name, Aggregate())
        categories[name] = Aggregate(
            total=left.total + right.total,
            matches=[*left.matches, *right.matches],
        )

    return PeriodBucket(
        period=first.period,
        categories=categories,
        excluded=[*first.excluded, *second.excluded],
    )


def merge_reports(first: Report, second: Report) -> Report:
    """Merge two reports period by period, ``first`` before ``second``."""
    merged = Report(buckets=dict(first.buckets))
    for key, bucket in second.buckets.items():
        if key in merged.buckets:
            logger.debug(f"Merging period {key}")
            merged.buckets[key] = merge_buckets(merged.buckets[key], bucket)
        else:
            merged.buckets[key] = bucket
    return merged
