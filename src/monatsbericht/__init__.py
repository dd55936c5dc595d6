"""
Monatsbericht - categorized monthly expense reports from bank CSV exports.

This package locates the table inside DKB style CSV exports, classifies
expenses by ordered keyword matching and aggregates them per month into a
text or spreadsheet report.
"""

from .aggregator import Aggregator, merge_buckets, merge_reports
from .category_manager import CategoryManager, classify_transaction
from .csv_parser import BankCSVParser, HeaderNotFoundError, locate_header
from .currency import MalformedAmountError, parse_amount, parse_euro
from .models import (
    Aggregate,
    Category,
    Classification,
    ClassificationKind,
    ClassifiedEntry,
    PeriodBucket,
    Report,
    RunResult,
    Transaction,
)
from .output_formatter import SummaryFormatter, TextReportFormatter, XlsxReportWriter
from .parser import ExpenseParser, MissingInputSourceError, discover_input_files
from .periods import Period, period_from_date, period_from_preamble

__version__ = "0.1.0"
__all__ = [
    "Aggregate",
    "Aggregator",
    "BankCSVParser",
    "Category",
    "CategoryManager",
    "Classification",
    "ClassificationKind",
    "ClassifiedEntry",
    "ExpenseParser",
    "HeaderNotFoundError",
    "MalformedAmountError",
    "MissingInputSourceError",
    "Period",
    "PeriodBucket",
    "Report",
    "RunResult",
    "SummaryFormatter",
    "TextReportFormatter",
    "Transaction",
    "XlsxReportWriter",
    "classify_transaction",
    "discover_input_files",
    "locate_header",
    "merge_buckets",
    "merge_reports",
    "parse_amount",
    "parse_euro",
    "period_from_date",
    "period_from_preamble",
]
