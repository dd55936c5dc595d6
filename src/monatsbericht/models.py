"""
Data models for expense reports.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from .currency import parse_euro
from .periods import UNKNOWN_PERIOD, Period, parse_booking_date

MISC_CATEGORY = "misc"
MISC_DISPLAY_NAME = "Sonstiges"


class InadmissibleRowError(ValueError):
    """Raised when a CSV row lacks the fields required for a transaction."""


@dataclass(frozen=True)
class ExportFormat:
    """Column layout of one bank export variant."""

    name: str
    header_columns: tuple[str, ...]
    amount_column: str
    date_column: str
    recipient_column: str
    usage_column: str = "Verwendungszweck"


DKB_FORMAT = ExportFormat(
    name="dkb",
    header_columns=("Zahlungsempfänger*in", "Betrag (€)", "Buchungsdatum"),
    amount_column="Betrag (€)",
    date_column="Buchungsdatum",
    recipient_column="Zahlungsempfänger*in",
)

CLASSIC_FORMAT = ExportFormat(
    name="classic",
    header_columns=("Umsatz", "Buchungstag"),
    amount_column="Umsatz in EUR",
    date_column="Buchungstag",
    recipient_column="Buchungstext",
)


def _cell(row: dict, column: str) -> str | None:
    value = row.get(column)
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


@dataclass
class Transaction:
    """Represents a single bank transaction."""

    booking_date_raw: str
    recipient: str
    raw_amount: str
    amount: float
    usage: str = "-"
    booking_date: date | None = None

    @classmethod
    def from_csv_row(
        cls,
        row: dict,
        export_format: ExportFormat,
    ) -> "Transaction":
        """Create Transaction from CSV row data.

        Raises:
            InadmissibleRowError: If recipient, amount or booking date is missing
        """
        raw_amount = _cell(row, export_format.amount_column)
        booking_date_raw = _cell(row, export_format.date_column)
        recipient = _cell(row, export_format.recipient_column)

        if not raw_amount or not booking_date_raw or not recipient:
            raise InadmissibleRowError(
                f"Row is missing {export_format.recipient_column!r}, "
                f"{export_format.amount_column!r} or {export_format.date_column!r}",
            )

        return cls(
            booking_date_raw=booking_date_raw,
            recipient=recipient,
            raw_amount=raw_amount,
            amount=parse_euro(raw_amount),
            usage=_cell(row, export_format.usage_column) or "-",
            booking_date=parse_booking_date(booking_date_raw),
        )


@dataclass
class Category:
    """Represents a transaction category."""

    name: str
    display_name: str
    keywords: list[str] = field(default_factory=list)

    def __post_init__(self):
        self._compiled: list[re.Pattern] | None = None

    @property
    def patterns(self) -> list[re.Pattern]:
        """Keywords compiled as case-insensitive regular expressions."""
        if self._compiled is None:
            self._compiled = compile_keywords(self.keywords)
        return self._compiled

    def invalidate(self) -> None:
        """Drop compiled patterns after the keyword list was edited."""
        self._compiled = None

    def matches(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in self.patterns)


def compile_keywords(keywords: list[str]) -> list[re.Pattern]:
    """Compile keyword fragments case-insensitively, in declaration order."""
    return [re.compile(keyword, re.IGNORECASE) for keyword in keywords]


class ClassificationKind(Enum):
    """Outcome of classifying an admitted transaction."""

    EXCLUDED = "excluded"
    CATEGORY = "category"
    MISC = "misc"


@dataclass(frozen=True)
class Classification:
    """Tagged classification result."""

    kind: ClassificationKind
    category: str | None = None

    @classmethod
    def excluded(cls) -> "Classification":
        return cls(ClassificationKind.EXCLUDED)

    @classmethod
    def misc(cls) -> "Classification":
        return cls(ClassificationKind.MISC, MISC_CATEGORY)

    @classmethod
    def of(cls, category: str) -> "Classification":
        return cls(ClassificationKind.CATEGORY, category)

    @property
    def is_excluded(self) -> bool:
        return self.kind is ClassificationKind.EXCLUDED


@dataclass(frozen=True)
class ClassifiedEntry:
    """A transaction together with its classification."""

    transaction: Transaction
    classification: Classification


@dataclass
class Aggregate:
    """Running total and ordered matches of one category."""

    total: float = 0.0
    matches: list[Transaction] = field(default_factory=list)

    def add(self, transaction: Transaction) -> None:
        self.matches.append(transaction)
        self.total += transaction.amount


@dataclass
class PeriodBucket:
    """All aggregates of one reporting period."""

    period: Period
    categories: dict[str, Aggregate] = field(default_factory=dict)
    excluded: list[Transaction] = field(default_factory=list)

    @property
    def grand_total(self) -> float:
        """Sum over all non-excluded categories."""
        return sum(aggregate.total for aggregate in self.categories.values())

    def aggregate(self, category: str) -> Aggregate:
        if category not in self.categories:
            self.categories[category] = Aggregate()
        return self.categories[category]


@dataclass
class Report:
    """Per-period buckets of a whole run."""

    buckets: dict[str, PeriodBucket] = field(default_factory=dict)

    @property
    def labels(self) -> dict[str, str]:
        return {key: bucket.period.label for key, bucket in self.buckets.items()}

    def sorted_buckets(self) -> list[PeriodBucket]:
        """Buckets in ascending period order, unknown period last."""
        return sorted(
            self.buckets.values(),
            key=lambda bucket: (bucket.period.key == UNKNOWN_PERIOD.key, bucket.period.key),
        )


@dataclass
class FileFailure:
    """A single input file that could not be processed."""

    file_path: str
    error: str


@dataclass
class RunResult:
    """Result of processing a batch of input files."""

    report: Report
    processed_files: list[str] = field(default_factory=list)
    failures: list[FileFailure] = field(default_factory=list)
