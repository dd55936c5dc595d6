"""
CSV parsing functionality for bank exports.
"""

import io
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from .models import (
    CLASSIC_FORMAT,
    DKB_FORMAT,
    ExportFormat,
    InadmissibleRowError,
    Transaction,
)

logger = logging.getLogger(__name__)

DKB_DISCRIMINATOR = "Zahlungsempfänger*in"


class CSVParsingError(Exception):
    """Exception raised when an export file cannot be parsed."""


class HeaderNotFoundError(CSVParsingError):
    """Exception raised when no line holds all expected column names."""


def detect_format(lines: Sequence[str]) -> ExportFormat:
    """Pick the export format by looking for the DKB recipient column."""
    if any(DKB_DISCRIMINATOR in line for line in lines):
        return DKB_FORMAT
    return CLASSIC_FORMAT


def locate_header(lines: Sequence[str], required_columns: Sequence[str]) -> int:
    """
    Find the header row of the table.

    Args:
        lines: Raw lines of the file, preamble included
        required_columns: Column names that must all appear in the header

    Returns:
        Index of the first line containing every required column name

    Raises:
        HeaderNotFoundError: If no such line exists
    """
    for index, line in enumerate(lines):
        if all(column in line for column in required_columns):
            return index
    raise HeaderNotFoundError(
        f"No header row with columns {list(required_columns)} found",
    )


@dataclass
class ParsedFile:
    """Transactions read from one export, plus what is needed to place them."""

    source: str
    export_format: ExportFormat
    lines: list[str]
    header_index: int
    transactions: list[Transaction] = field(default_factory=list)
    skipped_rows: int = 0

    @property
    def preamble(self) -> list[str]:
        return self.lines[: self.header_index]


class BankCSVParser:
    """Parser for semicolon separated bank exports with a preamble."""

    def __init__(
        self,
        encoding: str = "utf-8-sig",
        delimiter: str = ";",
    ):
        self.encoding = encoding
        self.delimiter = delimiter

    def read_lines(self, file_path: str | Path) -> list[str]:
        """Read a file and split it into lines."""
        try:
            with open(file_path, encoding=self.encoding) as f:
                return f.read().splitlines()
        except (OSError, UnicodeDecodeError) as e:
            raise CSVParsingError(f"Error reading CSV file {file_path}: {e}") from e

    def parse_file(self, file_path: str | Path) -> ParsedFile:
        """
        Parse an export file.

        Args:
            file_path: Path to the CSV file

        Returns:
            ParsedFile with all admissible transactions in file order

        Raises:
            HeaderNotFoundError: If the file has no recognizable header
            CSVParsingError: If the file cannot be read or decoded
        """
        lines = self.read_lines(file_path)
        return self.parse_lines(lines, source=str(file_path))

    def parse_lines(self, lines: list[str], source: str = "<input>") -> ParsedFile:
        """Parse the lines of an export, see parse_file."""
        export_format = detect_format(lines)
        header_index = locate_header(lines, export_format.header_columns)
        logger.debug(
            f"{source}: {export_format.name} export, header in line {header_index + 1}",
        )

        rows = self._read_table(lines[header_index:], source)
        parsed = ParsedFile(
            source=source,
            export_format=export_format,
            lines=lines,
            header_index=header_index,
        )

        for row in rows:
            try:
                parsed.transactions.append(Transaction.from_csv_row(row, export_format))
            except InadmissibleRowError as e:
                logger.debug(f"{source}: skipping row: {e}")
                parsed.skipped_rows += 1

        logger.info(
            f"Read {len(parsed.transactions)} transactions from {source}"
            f" ({parsed.skipped_rows} rows skipped)",
        )
        return parsed

    def _read_table(self, table_lines: list[str], source: str) -> list[dict]:
        def on_bad_line(fields: list[str]) -> None:
            logger.warning(f"{source}: skipping malformed line {fields}")
            return None

        try:
            df = pd.read_csv(
                io.StringIO("\n".join(table_lines)),
                sep=self.delimiter,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                engine="python",
                on_bad_lines=on_bad_line,
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise CSVParsingError(f"Error parsing CSV file {source}: {e}") from e

        # Clean up column names
        df.columns = df.columns.str.strip()

        return df.to_dict("records")
