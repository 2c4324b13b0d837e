"""
Command-line interface for the cash-flow ledger.
"""

import argparse
import json
import logging
import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path

from .classifier import TransactionClassifier
from .keywords import DEFAULT_KEYWORDS, FileLoadingError, KeywordConfigError, load_keywords
from .models import MergeMode
from .output_formatter import LedgerCSVFormatter, SummaryFormatter
from .storage import InMemoryStore, JsonFileStore, StorageError
from .tracker import DEFAULT_PLANNED_INCOME, CashFlowTracker

logger = logging.getLogger(__name__)


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


def parse_month(value: str) -> tuple[int, int]:
    """Parse a YYYY-MM month argument."""
    try:
        year_str, month_str = value.split("-")
        year, month = int(year_str), int(month_str)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid month '{value}', expected YYYY-MM") from e
    if not 1 <= month <= 12:
        raise argparse.ArgumentTypeError(f"Invalid month '{value}', expected YYYY-MM")
    return year, month


def parse_iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(
            f"Invalid date '{value}', expected YYYY-MM-DD",
        ) from e


def build_tracker(config: dict, dry_run: bool = False) -> CashFlowTracker:
    """Create a tracker from CLI configuration."""
    keywords = DEFAULT_KEYWORDS
    keywords_file = config.get("keywords_file")
    if keywords_file:
        keywords = load_keywords(Path(keywords_file))

    if dry_run:
        store = InMemoryStore()
    else:
        store = JsonFileStore(Path(config["data_file"]))

    return CashFlowTracker(
        store,
        classifier=TransactionClassifier(keywords),
        merge_mode=MergeMode(config.get("merge_mode", MergeMode.ACCUMULATE.value)),
    )


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Import bank CSV exports into a daily gig-income ledger",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    parser.add_argument(
        "--config",
        help="Path to CLI configuration file (contains data_file, keywords_file, user_id, merge_mode)",
    )

    parser.add_argument(
        "csv_file",
        nargs="?",
        help="Path to a bank CSV export to import",
    )

    parser.add_argument(
        "--source",
        help="Tag stored on every imported transaction (default from config or 'csv')",
    )

    parser.add_argument(
        "--start-date",
        type=parse_iso_date,
        help="Only import transactions on or after this date (YYYY-MM-DD)",
    )

    parser.add_argument(
        "--end-date",
        type=parse_iso_date,
        help="Only import transactions on or before this date (YYYY-MM-DD)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Classify and report without writing to the ledger",
    )

    parser.add_argument(
        "--month",
        type=parse_month,
        help="Show the summary for a month (YYYY-MM)",
    )

    parser.add_argument(
        "--export",
        nargs="?",
        const="",
        metavar="PATH",
        help=(
            "Write the --month ledger as CSV. PATH may be a file or a directory; "
            "without PATH it is written as cashflow-YYYY-MM.csv in the current directory"
        ),
    )

    parser.add_argument(
        "--add-recurring",
        nargs=3,
        metavar=("NAME", "AMOUNT", "DAY"),
        help="Add a monthly recurring expense",
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
            "Error: --config is required. Please provide a CLI config file with data_file set.",
        )
        sys.exit(1)

    config = load_config(args.config)

    if not args.dry_run and not config.get("data_file"):
        logger.error("Error: data_file must be set in CLI config file")
        sys.exit(1)

    if args.export is not None and not args.month:
        parser.error("--export requires --month")

    try:
        tracker = build_tracker(config, dry_run=args.dry_run)
    except (FileLoadingError, KeywordConfigError, StorageError) as e:
        logger.error(f"Error loading configuration: {e}")
        sys.exit(1)
    except ValueError as e:
        logger.error(f"Error: invalid merge_mode in CLI config: {e}")
        sys.exit(1)

    user_id = int(config.get("user_id", 1))

    # Handle recurring expenses
    if args.add_recurring:
        name, amount_str, day_str = args.add_recurring
        try:
            amount = Decimal(amount_str)
            expense = tracker.add_recurring_expense(user_id, name, amount, int(day_str))
        except (InvalidOperation, ValueError) as e:
            logger.error(f"Error: invalid recurring expense: {e}")
            sys.exit(1)
        logger.info(f"Added recurring expense {expense.id}: {name} £{amount} on day {day_str}")
        return

    if not args.csv_file and not args.month:
        parser.error("csv_file is required unless --month or --add-recurring is given")

    if args.csv_file:
        try:
            parsed = tracker.parse_csv_file(args.csv_file)
        except ValueError as e:
            logger.error(f"Error parsing file: {e}")
            sys.exit(1)

        transactions = parsed.transactions
        if args.start_date or args.end_date:
            transactions = tracker.csv_parser.filter_by_date_range(
                transactions,
                args.start_date,
                args.end_date,
            )

        source = args.source or config.get("source", "csv")
        if args.dry_run:
            kept, summary = tracker.preview(transactions, source)
            for transaction in kept:
                logger.info(
                    f"{transaction.date.isoformat()} | {transaction.description} | "
                    f"{transaction.category} | {transaction.amount:.2f}",
                )
        else:
            summary = tracker.import_transactions(user_id, transactions, source)
        summary.parse_skipped = parsed.skipped
        logger.info(SummaryFormatter.format_import_summary(summary))

    if args.month:
        year, month = args.month
        planned_income = Decimal(str(config.get("planned_income", DEFAULT_PLANNED_INCOME)))
        month_summary = tracker.month_summary(user_id, year, month, planned_income)
        logger.info(SummaryFormatter.format_month_summary(month_summary))

        if args.export is not None:
            entries = tracker.get_month(user_id, year, month)
            content = LedgerCSVFormatter().format_month(entries)
            filename = LedgerCSVFormatter.export_filename(year, month)
            export_path = Path(args.export) if args.export else Path(filename)
            if export_path.is_dir():
                export_path = export_path / filename
            try:
                export_path.parent.mkdir(parents=True, exist_ok=True)
                with open(export_path, "w", encoding="utf-8", newline="") as f:
                    f.write(content)
            except OSError as e:
                logger.error(f"Failed to write export to {export_path}: {e}")
                sys.exit(1)
            logger.info(f"Exported {len(entries)} days to {export_path}")


if __name__ == "__main__":
    main()
