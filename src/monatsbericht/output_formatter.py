"""
Output formatting for text and spreadsheet reports.
"""

import logging
import re
from collections.abc import Callable
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from .models import PeriodBucket, Report, RunResult, Transaction

logger = logging.getLogger(__name__)

MAX_SHEET_TITLE = 31
AMOUNT_FORMAT = '#,##0.00 "€"'

TITLE_FONT = Font(size=14, bold=True)
SECTION_FONT = Font(size=11, bold=True)
HEADER_FONT = Font(bold=True)

ENTRY_HEADER = ("Buchungsdatum", "Empfänger", "Verwendungszweck", "Betrag (roh)", "Betrag")
TEXT_COLUMNS = 4

_INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")


class ReportWritingError(Exception):
    """Exception raised when a report file cannot be written."""


def format_amount(amount: float) -> str:
    """Format amount for German output (comma as decimal separator)."""
    return f"{amount:.2f} €".replace(".", ",")


def sheet_title(label: str) -> str:
    """Worksheet title for a period label, within Excel's 31 character limit."""
    return _INVALID_SHEET_CHARS.sub("_", label)[:MAX_SHEET_TITLE]


def entry_values(transaction: Transaction) -> tuple[str, str, str, str, float]:
    return (
        transaction.booking_date_raw,
        transaction.recipient,
        transaction.usage,
        transaction.raw_amount,
        transaction.amount,
    )


class TextReportFormatter:
    """Formats a report as plain text, one section per period."""

    def __init__(self, display_name: Callable[[str], str] = str):
        self.display_name = display_name

    def format_report(self, report: Report) -> str:
        if not report.buckets:
            return "Keine Ausgaben gefunden."

        sections = [self.format_bucket(bucket) for bucket in report.sorted_buckets()]
        return "\n\n".join(sections)

    def format_bucket(self, bucket: PeriodBucket) -> str:
        lines = [f"=== Bericht für: {bucket.period.label} ({bucket.period.key}) ==="]

        for name, aggregate in bucket.categories.items():
            display_name = self.display_name(name)
            lines.append("")
            lines.append(f"Kategorie: {display_name}")
            for transaction in aggregate.matches:
                lines.append(f"  {self._format_entry(transaction)}")
            lines.append(f"  Summe {display_name}: {format_amount(aggregate.total)}")

        lines.append("")
        lines.append(f"Gesamtsumme: {format_amount(bucket.grand_total)}")

        lines.append("")
        lines.append("Ignorierte Buchungen:")
        if not bucket.excluded:
            lines.append("  -")
        for transaction in bucket.excluded:
            lines.append(f"  {self._format_entry(transaction)}")

        return "\n".join(lines)

    def write(self, report: Report, output_file: str | Path) -> Path:
        """
        Save the text report.

        Raises:
            ReportWritingError: If the file cannot be written
        """
        output_path = Path(output_file)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, "w", encoding="utf-8") as f:
                f.write(self.format_report(report) + "\n")
        except OSError as e:
            logger.error(f"Failed to write report to {output_path}: {e}")
            raise ReportWritingError(f"Failed to write report to {output_path}: {e}") from e

        logger.info(f"Report saved to {output_path}")
        return output_path

    def _format_entry(self, transaction: Transaction) -> str:
        date, recipient, usage, raw_amount, amount = entry_values(transaction)
        return f"{date} | {recipient} | {usage} | {raw_amount} | {format_amount(amount)}"


class XlsxReportWriter:
    """Writes a report as workbook with one worksheet per period."""

    def __init__(self, display_name: Callable[[str], str] = str):
        self.display_name = display_name

    def build_workbook(self, report: Report) -> Workbook:
        wb = Workbook()
        buckets = report.sorted_buckets()

        if not buckets:
            ws = wb.active
            ws.title = "Bericht"
            ws.append(["Keine Ausgaben gefunden."])
            return wb

        first = True
        for bucket in buckets:
            if first:
                ws = wb.active
                ws.title = sheet_title(bucket.period.label)
                first = False
            else:
                ws = wb.create_sheet(title=sheet_title(bucket.period.label))
            self._write_bucket(ws, bucket)
        return wb

    def write(self, report: Report, output_file: str | Path) -> Path:
        """
        Save the report to an ``.xlsx`` file.

        Raises:
            ReportWritingError: If the file cannot be written
        """
        output_path = Path(output_file)
        wb = self.build_workbook(report)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(output_path)
        except OSError as e:
            logger.error(f"Failed to write report to {output_path}: {e}")
            raise ReportWritingError(f"Failed to write report to {output_path}: {e}") from e

        logger.info(f"Report saved to {output_path}")
        return output_path

    def _write_bucket(self, ws: Worksheet, bucket: PeriodBucket) -> None:
        ws.append([f"Bericht für: {bucket.period.label}"])
        ws.cell(row=ws.max_row, column=1).font = TITLE_FONT
        ws.append([])

        for name, aggregate in bucket.categories.items():
            display_name = self.display_name(name)
            self._append_section(ws, f"Kategorie: {display_name}", aggregate.matches)
            self._append_amount_row(ws, f"Summe {display_name}", aggregate.total)
            ws.append([])

        self._append_amount_row(ws, "Gesamtsumme", bucket.grand_total)
        ws.cell(row=ws.max_row, column=1).font = SECTION_FONT
        ws.append([])

        self._append_section(ws, "Ignorierte Buchungen", bucket.excluded)

        for col, width in enumerate((14, 36, 48, 14, 14), start=1):
            ws.column_dimensions[get_column_letter(col)].width = width

    def _append_section(
        self,
        ws: Worksheet,
        title: str,
        transactions: list[Transaction],
    ) -> None:
        ws.append([title])
        ws.cell(row=ws.max_row, column=1).font = SECTION_FONT
        ws.append(list(ENTRY_HEADER))
        for cell in ws[ws.max_row]:
            cell.font = HEADER_FONT
        for transaction in transactions:
            ws.append(list(entry_values(transaction)))
            row = ws.max_row
            # bank free text starting with "=" must not become a formula
            for col in range(1, TEXT_COLUMNS + 1):
                ws.cell(row=row, column=col).data_type = "s"
            ws.cell(row=row, column=5).number_format = AMOUNT_FORMAT

    def _append_amount_row(self, ws: Worksheet, label: str, amount: float) -> None:
        ws.append([label, "", "", "", amount])
        ws.cell(row=ws.max_row, column=5).number_format = AMOUNT_FORMAT


class SummaryFormatter:
    """Formats summary information."""

    @staticmethod
    def format_summary(result: RunResult) -> str:
        """Format a summary of a run: files, periods and their totals."""
        report = result.report
        lines = []
        lines.append("=== Monatsbericht Summary ===")
        lines.append(f"Files processed: {len(result.processed_files)}")
        lines.append(f"Files failed: {len(result.failures)}")
        lines.append(f"Periods: {len(report.buckets)}")
        lines.append("")

        for bucket in report.sorted_buckets():
            count = sum(len(aggregate.matches) for aggregate in bucket.categories.values())
            lines.append(
                f"{bucket.period.label}: {count} expenses, "
                f"{len(bucket.excluded)} excluded, total {bucket.grand_total:.2f} €",
            )

        if result.failures:
            lines.append("")
            lines.append("⚠️  Failed files:")
            for failure in result.failures:
                lines.append(f"  • {failure.file_path}: {failure.error}")

        return "\n".join(lines)
