"""
Command-line interface for monthly expense reports.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .category_manager import CategoryConfigError, FileLoadingError, FileSavingError
from .models import Report
from .output_formatter import ReportWritingError
from .parser import ExpenseParser, MissingInputSourceError, discover_input_files
from .periods import PeriodStrategy
from .suggestions import DEFAULT_MODEL, KeywordSuggester, SuggestionError

logger = logging.getLogger(__name__)

DEFAULT_INPUT_DIR = "~/Documents/bank-statements"
DEFAULT_REPORT_NAME = "monatsbericht"
OUTPUT_FORMATS = ("xlsx", "text", "summary", "both")


def load_config(config_file: str) -> dict:
    """Load CLI configuration from JSON file."""

    config_path = Path(config_file)
    if not config_path.exists():
        logger.debug(f"CLI config file {config_file} does not exist")
        return {}

    try:
        with open(config_path, encoding="utf-8") as f:
            config = json.load(f)
        logger.debug(f"Loaded CLI config from {config_file}")
        return config
    except json.JSONDecodeError as e:
        logger.warning(f"Invalid JSON in CLI config file {config_file}: {e}")
        return {}
    except OSError as e:
        logger.warning(f"Failed to load CLI config from {config_file}: {e}")
        return {}


def default_output_file(inputs: list[str], output_format: str) -> Path:
    """Report path next to the inputs: in the input directory or beside the first file."""
    first = Path(inputs[0]).expanduser()
    base_dir = first if first.is_dir() else first.parent
    suffix = ".txt" if output_format == "text" else ".xlsx"
    return base_dir / f"{DEFAULT_REPORT_NAME}{suffix}"


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Categorize bank CSV exports into a monthly expense report",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    parser.add_argument(
        "--config",
        help="Path to CLI configuration file (contains category_config, input_dir, output_file, output_format)",
    )

    parser.add_argument(
        "inputs",
        nargs="*",
        help="CSV files or directories with CSV files (default: input_dir from config)",
    )

    parser.add_argument(
        "--output",
        "-o",
        help="Report file to write (default: monatsbericht.xlsx in the input directory)",
    )

    parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        help="Output format (default: output_format from config, else xlsx)",
    )

    parser.add_argument(
        "--period-strategy",
        choices=PeriodStrategy.ALL,
        help="Assign periods per booking date (row) or per file date range (preamble)",
    )

    parser.add_argument(
        "--add-category",
        nargs=3,
        metavar=("NAME", "DISPLAY_NAME", "KEYWORD"),
        help="Add a new category. Requires --config with category_config set.",
    )

    parser.add_argument(
        "--add-keyword",
        nargs=2,
        metavar=("CATEGORY", "KEYWORD"),
        help="Add a keyword to an existing category",
    )

    parser.add_argument(
        "--remove-keyword",
        nargs=2,
        metavar=("CATEGORY", "KEYWORD"),
        help="Remove a keyword from a category",
    )

    parser.add_argument(
        "--add-exclusion",
        metavar="KEYWORD",
        help="Add a recipient pattern whose bookings are listed but not counted",
    )

    parser.add_argument(
        "--suggest-keywords",
        action="store_true",
        help="Ask OpenRouter for keywords for uncategorized recipients",
    )

    parser.add_argument(
        "--apply-suggestions",
        action="store_true",
        help="Add the suggested keywords to the category file (implies --suggest-keywords)",
    )

    args = parser.parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(message)s",
    )

    if not args.config:
        logger.error(
            "Error: --config is required. Please provide a CLI config file with category_config set.",
        )
        sys.exit(1)

    config = load_config(args.config)

    category_file_str = config.get("category_config")
    if not category_file_str:
        logger.error("Error: category_config must be set in CLI config file")
        sys.exit(1)

    output_format = args.format or config.get("output_format", "xlsx")
    if output_format not in OUTPUT_FORMATS:
        logger.error(
            f"Error: output_format must be one of {OUTPUT_FORMATS}, got '{output_format}'",
        )
        sys.exit(1)

    period_strategy = args.period_strategy or config.get("period_strategy", PeriodStrategy.ROW)

    try:
        expense_parser = ExpenseParser(
            Path(category_file_str).expanduser(),
            period_strategy=period_strategy,
        )
    except (CategoryConfigError, FileLoadingError, ValueError) as e:
        logger.error(f"Error loading configuration: {e}")
        sys.exit(1)

    # Handle category management
    try:
        if args.add_category:
            name, display_name, keyword = args.add_category
            expense_parser.add_category(name, display_name, [keyword])
            logger.info(f"Added category '{name}' with keyword '{keyword}'")
            return

        if args.add_keyword:
            category_name, keyword = args.add_keyword
            expense_parser.add_keyword(category_name, keyword)
            return

        if args.remove_keyword:
            category_name, keyword = args.remove_keyword
            expense_parser.remove_keyword(category_name, keyword)
            return

        if args.add_exclusion:
            expense_parser.add_exclusion(args.add_exclusion)
            return
    except (CategoryConfigError, FileSavingError) as e:
        logger.error(f"Error updating categories: {e}")
        sys.exit(1)

    inputs = args.inputs or [config.get("input_dir", DEFAULT_INPUT_DIR)]

    try:
        files = discover_input_files(inputs)
    except MissingInputSourceError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    if not files:
        logger.warning(f"No CSV files found in {', '.join(map(str, inputs))}")
        return

    result = expense_parser.parse_files(files)
    if not result.processed_files:
        logger.error("Error: none of the input files could be processed")
        sys.exit(1)

    output_file = args.output or config.get("output_file")

    def report_path(kind: str) -> Path:
        if not output_file:
            return default_output_file(inputs, kind)
        path = Path(output_file).expanduser()
        if output_format == "both":
            return path.with_suffix(".txt" if kind == "text" else ".xlsx")
        return path

    try:
        if output_format in ["xlsx", "both"]:
            expense_parser.write_xlsx(result.report, report_path("xlsx"))

        if output_format in ["text", "both"]:
            expense_parser.write_text(result.report, report_path("text"))
            logger.info(expense_parser.format_text(result.report))

        if output_format == "summary":
            logger.info(expense_parser.format_summary(result))
    except ReportWritingError as e:
        logger.error(f"Error writing report: {e}")
        sys.exit(1)

    if args.suggest_keywords or args.apply_suggestions:
        _suggest_keywords(expense_parser, result.report, config, apply=args.apply_suggestions)


def _suggest_keywords(
    expense_parser: ExpenseParser,
    report: Report,
    config: dict,
    apply: bool = False,
) -> None:
    api_key = config.get("openrouter_api_key")
    if not api_key:
        logger.error(
            "Error: openrouter_api_key must be set in CLI config file for keyword suggestions",
        )
        sys.exit(1)

    uncategorized = expense_parser.uncategorized_entries(report)
    if not uncategorized:
        logger.info("No uncategorized recipients, nothing to suggest")
        return

    suggester = KeywordSuggester(api_key, model=config.get("openrouter_model", DEFAULT_MODEL))
    try:
        suggestions = suggester.suggest(
            expense_parser.category_manager.list_categories(),
            uncategorized,
        )
    except SuggestionError as e:
        logger.error(f"Error getting keyword suggestions: {e}")
        sys.exit(1)

    if not suggestions:
        logger.info("No usable keyword suggestions")
        return

    logger.info("Keyword suggestions:")
    for suggestion in suggestions:
        logger.info(
            f"  {expense_parser.category_manager.display_name(suggestion.category)}: "
            f"'{suggestion.keyword}' ({suggestion.recipient})",
        )

    if apply:
        try:
            added = expense_parser.apply_suggestions(suggestions)
        except (CategoryConfigError, FileSavingError) as e:
            logger.error(f"Error updating categories: {e}")
            sys.exit(1)
        logger.info(f"Added {added} keywords to {expense_parser.category_manager.category_file}")


if __name__ == "__main__":
    main()
