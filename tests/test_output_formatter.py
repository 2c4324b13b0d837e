"""Unit tests for output_formatter.py."""

import io
from collections import Counter
from datetime import date
from decimal import Decimal

import pandas as pd
import pytest

from gigledger.models import DailyEntry, ImportSummary, MonthSummary
from gigledger.output_formatter import (
    EXPORT_HEADERS,
    LedgerCSVFormatter,
    SummaryFormatter,
)


class TestLedgerCSVFormatter:
    """Tests for LedgerCSVFormatter class."""

    def test_header_only_for_no_entries(self):
        """Test exporting an empty month."""
        output = LedgerCSVFormatter().format_month([])
        assert output == ",".join(EXPORT_HEADERS) + "\r\n"

    def test_row_format(self):
        """Test a single exported row."""
        entry = DailyEntry(
            user_id=1,
            date=date(2024, 1, 15),
            uber=Decimal("25.5"),
            bolt=Decimal("40"),
            expenses=Decimal("34.12"),
            balance=Decimal("31.38"),
        )

        lines = LedgerCSVFormatter().format_month([entry]).split("\r\n")

        assert lines[0].startswith("Date,Day,Uber,Bolt")
        assert lines[1] == "2024-01-15,Mon,25.50,40.00,0.00,0.00,0.00,65.50,34.12,31.38,"

    def test_notes_with_commas_are_quoted(self):
        """Test that notes cannot break the CSV row."""
        entry = DailyEntry(user_id=1, date=date(2024, 1, 15), notes='Late, "busy" shift')

        lines = LedgerCSVFormatter().format_month([entry]).split("\r\n")
        assert lines[1].endswith(',"Late, ""busy"" shift"')

    def test_plain_notes_are_unquoted(self):
        """Test that simple notes are written as-is."""
        entry = DailyEntry(user_id=1, date=date(2024, 1, 15), notes="Airport run")
        lines = LedgerCSVFormatter().format_month([entry]).split("\r\n")
        assert lines[1].endswith(",Airport run")

    @pytest.mark.parametrize(
        "notes",
        ["line1\rline2", "line1\nline2", "a, b", 'Late, "busy" shift', "crlf\r\nend"],
    )
    def test_notes_survive_reading_back(self, notes):
        """Test that notes with CSV special characters stay in one row."""
        entry = DailyEntry(user_id=1, date=date(2024, 1, 15), uber=Decimal("10"), notes=notes)

        output = LedgerCSVFormatter().format_month([entry])
        df = pd.read_csv(io.StringIO(output), dtype=str, keep_default_na=False)

        assert len(df) == 1
        assert df.loc[0, "Notes"] == notes
        assert df.loc[0, "Uber"] == "10.00"

    def test_export_filename(self):
        """Test the suggested export file name."""
        assert LedgerCSVFormatter.export_filename(2024, 3) == "cashflow-2024-03.csv"


class TestSummaryFormatter:
    """Tests for SummaryFormatter class."""

    def test_import_summary(self):
        """Test the import summary text."""
        summary = ImportSummary(
            accepted_count=3,
            dates_affected=2,
            excluded_count=1,
            skipped_zero_count=1,
            parse_skipped=Counter({"invalid_date": 2}),
        )

        output = SummaryFormatter.format_import_summary(summary)

        assert "=== Import Summary ===" in output
        assert "Transactions imported: 3" in output
        assert "Days updated: 2" in output
        assert "Internal transfers excluded: 1" in output
        assert "Zero-amount rows skipped: 1" in output
        assert "invalid_date: 2" in output
        assert "Nothing to import." not in output

    def test_import_summary_nothing_imported(self):
        """Test the hint shown for an empty import."""
        summary = ImportSummary(
            accepted_count=0,
            dates_affected=0,
            excluded_count=0,
            skipped_zero_count=0,
        )

        output = SummaryFormatter.format_import_summary(summary)

        assert "Nothing to import." in output
        assert "Rows skipped while parsing" not in output

    def test_month_summary(self):
        """Test the month summary text."""
        summary = MonthSummary(
            year=2024,
            month=1,
            planned_income=Decimal("6000"),
            actual_income=Decimal("200"),
            planned_expenses=Decimal("720"),
            actual_expenses=Decimal("45"),
        )

        output = SummaryFormatter.format_month_summary(summary)

        assert "=== 2024-01 ===" in output
        assert "Actual income: £200.00" in output
        assert "Net position: £155.00" in output
        assert "Variance: £-5800.00" in output
