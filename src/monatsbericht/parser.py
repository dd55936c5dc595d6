"""
Main parser class that orchestrates the report generation.
"""

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

from .aggregator import Aggregator, merge_reports
from .category_manager import CategoryManager
from .csv_parser import BankCSVParser, CSVParsingError, ParsedFile
from .models import MISC_CATEGORY, Category, FileFailure, Report, RunResult
from .output_formatter import SummaryFormatter, TextReportFormatter, XlsxReportWriter
from .periods import PeriodStrategy, period_from_date, period_from_preamble
from .suggestions import KeywordSuggestion

logger = logging.getLogger(__name__)


class MissingInputSourceError(Exception):
    """Exception raised when an input file or directory does not exist."""


def discover_input_files(inputs: Sequence[str | Path]) -> list[Path]:
    """
    Resolve input files and directories to the list of CSV files to process.

    Directories contribute their ``*.csv`` files sorted by name, so the merge
    order does not depend on the file system. Explicitly named files keep the
    order they were given in.

    Raises:
        MissingInputSourceError: If an input does not exist
    """
    files: list[Path] = []
    for entry in inputs:
        path = Path(entry).expanduser()
        if not path.exists():
            raise MissingInputSourceError(f"Input {path} does not exist")

        if path.is_dir():
            found = sorted(
                (p for p in path.iterdir() if p.is_file() and p.suffix.lower() == ".csv"),
                key=lambda p: p.name,
            )
            logger.debug(f"Found {len(found)} CSV files in {path}")
            files.extend(found)
        else:
            files.append(path)
    return files


class ExpenseParser:
    """Main parser class for bank exports."""

    def __init__(
        self,
        category_file: Path,
        period_strategy: str = PeriodStrategy.ROW,
    ):
        if period_strategy not in PeriodStrategy.ALL:
            raise ValueError(
                f"Unknown period strategy '{period_strategy}', expected one of {PeriodStrategy.ALL}",
            )
        self.period_strategy = period_strategy
        self.csv_parser = BankCSVParser()
        self.category_manager = CategoryManager(category_file)
        self.text_formatter = TextReportFormatter(self.category_manager.display_name)
        self.summary_formatter = SummaryFormatter()

    def parse_file(self, file_path: str | Path) -> Report:
        """
        Parse and categorize a single export file.

        Raises:
            HeaderNotFoundError: If the file has no recognizable header
            CSVParsingError: If the file cannot be read
        """
        parsed = self.csv_parser.parse_file(file_path)
        return self.build_report(parsed)

    def parse_lines(self, lines: list[str], source: str = "<input>") -> Report:
        """Parse and categorize the lines of an export."""
        parsed = self.csv_parser.parse_lines(lines, source=source)
        return self.build_report(parsed)

    def build_report(self, parsed: ParsedFile) -> Report:
        """Classify the transactions of one file and aggregate them."""
        aggregator = Aggregator(
            category.name for category in self.category_manager.list_categories()
        )

        file_period = None
        if self.period_strategy == PeriodStrategy.PREAMBLE:
            file_period = period_from_preamble(parsed.lines, self.csv_parser.delimiter)

        for entry in self.category_manager.classify_entries(parsed.transactions):
            period = file_period or period_from_date(entry.transaction.booking_date)
            aggregator.admit(period, entry.classification, entry.transaction)

        logger.debug(
            f"{parsed.source}: {len(aggregator.report.buckets)} periods",
        )
        return aggregator.report

    def parse_files(self, file_paths: Iterable[str | Path]) -> RunResult:
        """
        Parse several files and merge their reports in the given order.

        A file that fails is logged and recorded in the result; the remaining
        files are still processed.
        """
        result = RunResult(report=Report())
        for file_path in file_paths:
            try:
                report = self.parse_file(file_path)
            except CSVParsingError as e:
                logger.error(f"Skipping {file_path}: {e}")
                result.failures.append(FileFailure(file_path=str(file_path), error=str(e)))
                continue

            result.report = merge_reports(result.report, report)
            result.processed_files.append(str(file_path))

        logger.info(
            f"Processed {len(result.processed_files)} files, {len(result.failures)} failed",
        )
        return result

    def uncategorized_entries(self, report: Report) -> list[dict[str, str | float]]:
        """Distinct catch-all recipients with their summed amount."""
        entries: dict[str, float] = {}
        for bucket in report.sorted_buckets():
            aggregate = bucket.categories.get(MISC_CATEGORY)
            if aggregate is None:
                continue
            for transaction in aggregate.matches:
                entries[transaction.recipient] = (
                    entries.get(transaction.recipient, 0.0) + transaction.amount
                )
        return [
            {"recipient": recipient, "amount": round(amount, 2)}
            for recipient, amount in entries.items()
        ]

    def add_category(
        self,
        name: str,
        display_name: str,
        keywords: list[str] | None = None,
    ) -> None:
        """Add a new category."""
        category = Category(
            name=name,
            display_name=display_name,
            keywords=keywords or [],
        )
        self.category_manager.add_category(category)

    def add_keyword(self, category_name: str, keyword: str) -> None:
        """Add a keyword to a category."""
        self.category_manager.add_keyword(category_name, keyword)

    def remove_keyword(self, category_name: str, keyword: str) -> None:
        """Remove a keyword from a category."""
        self.category_manager.remove_keyword(category_name, keyword)

    def apply_suggestions(self, suggestions: Iterable[KeywordSuggestion]) -> int:
        """Add suggested keywords to their categories, returning how many were new."""
        added = 0
        for suggestion in suggestions:
            category = self.category_manager.get_category(suggestion.category)
            if category is None or suggestion.keyword in category.keywords:
                continue
            self.category_manager.add_keyword(suggestion.category, suggestion.keyword)
            added += 1
        return added

    def add_exclusion(self, keyword: str) -> None:
        """Add an exclusion pattern."""
        self.category_manager.add_exclusion(keyword)

    def format_text(self, report: Report) -> str:
        """Format the report as text."""
        return self.text_formatter.format_report(report)

    def write_text(self, report: Report, output_file: str | Path) -> Path:
        """Write the report as text file."""
        return self.text_formatter.write(report, output_file)

    def format_summary(self, result: RunResult) -> str:
        """Format summary information."""
        return self.summary_formatter.format_summary(result)

    def write_xlsx(self, report: Report, output_file: str | Path) -> Path:
        """Write the report as spreadsheet, one sheet per period."""
        writer = XlsxReportWriter(self.category_manager.display_name)
        return writer.write(report, output_file)
