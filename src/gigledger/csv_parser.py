"""
CSV parsing for arbitrary bank statement exports.
"""

import csv
import io
import logging
import re
from collections import Counter
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

import pandas as pd

from .models import ZERO, CSVParseResult, ParsedTransaction

logger = logging.getLogger(__name__)

DESCRIPTION_HEADERS = ("description", "name", "memo")
AMOUNT_HEADERS = ("amount", "value")

_TEXTUAL_DATE = re.compile(r"^\d{1,2}\s+[A-Za-z]{3}\s+\d{4}$")
_AMOUNT_NOISE = re.compile(r"[£$€,\s]")


class BankCSVParser:
    """Permissive parser for comma-separated bank exports.

    Column layout is discovered from the header row. Rows that cannot be
    turned into a transaction are skipped and counted by reason instead of
    failing the whole file.
    """

    def __init__(self, encoding: str = "utf-8", delimiter: str = ","):
        self.encoding = encoding
        self.delimiter = delimiter

    def parse_file(self, file_path: str) -> CSVParseResult:
        """
        Parse a bank export file.

        Args:
            file_path: Path to the CSV file

        Returns:
            CSVParseResult with the parsed transactions and skip counts
        """
        try:
            with open(file_path, encoding=self.encoding) as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ValueError(f"Error parsing CSV file: {e}") from e

        result = self.parse_text(text)
        logger.info(
            f"Parsed {len(result.transactions)} transactions from {file_path}, "
            f"skipped {result.skipped_count}",
        )
        return result

    def parse_text(self, text: str) -> CSVParseResult:
        """Parse raw CSV text. Never raises for malformed content."""
        skipped: Counter = Counter()
        lines = [line for line in text.lstrip("\ufeff").splitlines() if line.strip()]
        if len(lines) < 2:
            logger.debug("CSV text has no data rows")
            return CSVParseResult(transactions=[], skipped=skipped)

        def on_bad_line(bad_line: list[str]) -> None:
            logger.debug(f"Skipping malformed row: {bad_line}")
            skipped["malformed_row"] += 1

        # The header is read as a data row so its width fixes the column
        # count and longer rows reach on_bad_line instead of being truncated
        try:
            df = pd.read_csv(
                io.StringIO("\n".join(lines)),
                sep=self.delimiter,
                header=None,
                dtype=str,
                keep_default_na=False,
                skipinitialspace=True,
                engine="python",
                on_bad_lines=on_bad_line,
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError, csv.Error) as e:
            logger.warning(f"Could not tokenise CSV text: {e}")
            skipped["malformed_row"] += len(lines) - 1
            return CSVParseResult(transactions=[], skipped=skipped)

        headers = [_cell(value).lower() for value in df.iloc[0]]
        rows = df.iloc[1:]
        date_index = _find_column(headers, ("date",))
        desc_index = _find_column(headers, DESCRIPTION_HEADERS)
        amount_index = _find_column(headers, AMOUNT_HEADERS)
        money_in_index = _find_column(headers, ("money in",))
        money_out_index = _find_column(headers, ("money out",))

        if date_index is None:
            logger.warning(f"No date column found in headers {headers}")
            skipped["missing_date_column"] += len(rows)
            return CSVParseResult(transactions=[], skipped=skipped)

        transactions = []
        for row in rows.itertuples(index=False, name=None):
            values = [_cell(value) for value in row]

            if money_in_index is not None and money_out_index is not None:
                money_in = _parse_amount(values[money_in_index])
                money_out = _parse_amount(values[money_out_index])
                # Money out is exported already negative
                amount = (
                    money_in + money_out
                    if money_in is not None and money_out is not None
                    else None
                )
            elif amount_index is not None:
                amount = _parse_amount(values[amount_index])
            else:
                amount = ZERO

            if amount is None:
                logger.debug(f"Skipping row with invalid amount: {values}")
                skipped["invalid_amount"] += 1
                continue

            parsed_date = parse_date(values[date_index])
            if parsed_date is None:
                logger.debug(f"Skipping row with invalid date: {values}")
                skipped["invalid_date"] += 1
                continue

            transactions.append(
                ParsedTransaction(
                    date=parsed_date,
                    description=values[desc_index] if desc_index is not None else "",
                    amount=amount,
                ),
            )

        return CSVParseResult(transactions=transactions, skipped=skipped)

    def filter_by_date_range(
        self,
        transactions: list[ParsedTransaction],
        start_date: date | None,
        end_date: date | None,
    ) -> list[ParsedTransaction]:
        """
        Filter transactions by date range.

        Args:
            transactions: List of transactions to filter
            start_date: Start date (inclusive), None for no lower bound
            end_date: End date (inclusive), None for no upper bound

        Returns:
            Filtered list of transactions
        """
        return [
            t
            for t in transactions
            if (start_date is None or t.date >= start_date)
            and (end_date is None or t.date <= end_date)
        ]


def parse_date(value: str) -> date | None:
    """Parse a bank export date, day-first for slash dates.

    Slash dates need a two or four digit year. Two digit years are read
    as 20YY, matching how UK bank apps shorten statement dates.
    """
    value = value.strip()
    if not value:
        return None

    if "/" in value:
        parts = value.split("/")
        if len(parts) != 3:
            return None
        day, month, year = (part.strip() for part in parts)
        # Drop a trailing time component, e.g. "01/02/2024 10:15"
        year = year.split(" ")[0]
        if len(year) == 2 and year.isdigit():
            year = "20" + year
        elif len(year) != 4:
            return None
        try:
            return date(int(year), int(month), int(day))
        except ValueError:
            return None

    if _TEXTUAL_DATE.match(value):
        try:
            return datetime.strptime(value, "%d %b %Y").date()
        except ValueError:
            pass

    # Relative words like "today" are not statement dates
    if not any(ch.isdigit() for ch in value):
        return None

    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def _find_column(headers: list[str], names: tuple[str, ...]) -> int | None:
    for index, header in enumerate(headers):
        if any(name in header for name in names):
            return index
    return None


def _cell(value) -> str:
    if isinstance(value, str):
        return value.strip()
    return ""


def _parse_amount(value: str) -> Decimal | None:
    cleaned = _AMOUNT_NOISE.sub("", value)
    if not cleaned:
        return ZERO

    negative = cleaned.startswith("(") and cleaned.endswith(")")
    if negative:
        cleaned = cleaned[1:-1]

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return -amount if negative else amount
