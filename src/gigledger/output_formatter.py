"""
Output formatting for ledger exports and summaries.
"""

import logging
from decimal import Decimal

import pandas as pd

from .models import DailyEntry, ImportSummary, MonthSummary

logger = logging.getLogger(__name__)

EXPORT_HEADERS = [
    "Date",
    "Day",
    "Uber",
    "Bolt",
    "FreeNow",
    "Horizon Cars",
    "Other",
    "Total Income",
    "Expenses",
    "Balance",
    "Notes",
]


class LedgerCSVFormatter:
    """Formats a month of daily entries as a CSV export."""

    def format_month(self, entries: list[DailyEntry]) -> str:
        """
        Format daily entries as CSV text.

        Args:
            entries: Daily entries, usually one month

        Returns:
            CSV text with a header row, CRLF line endings
        """
        rows = [
            [
                entry.date.isoformat(),
                entry.date.strftime("%a"),
                self._format_amount(entry.uber),
                self._format_amount(entry.bolt),
                self._format_amount(entry.freenow),
                self._format_amount(entry.horizoncars),
                self._format_amount(entry.other),
                self._format_amount(entry.total_income),
                self._format_amount(entry.expenses),
                self._format_amount(entry.balance),
                entry.notes or "",
            ]
            for entry in entries
        ]
        df = pd.DataFrame(rows, columns=EXPORT_HEADERS)
        return df.to_csv(index=False, lineterminator="\r\n")

    @staticmethod
    def export_filename(year: int, month: int) -> str:
        return f"cashflow-{year}-{month:02d}.csv"

    def _format_amount(self, amount: Decimal) -> str:
        return f"{amount:.2f}"


class SummaryFormatter:
    """Formats summary information."""

    @staticmethod
    def format_import_summary(summary: ImportSummary) -> str:
        """Format the result of an import."""
        lines = []
        lines.append("=== Import Summary ===")
        lines.append(f"Transactions imported: {summary.accepted_count}")
        lines.append(f"Days updated: {summary.dates_affected}")
        lines.append(f"Internal transfers excluded: {summary.excluded_count}")
        lines.append(f"Zero-amount rows skipped: {summary.skipped_zero_count}")

        if summary.parse_skipped:
            lines.append("")
            lines.append("Rows skipped while parsing:")
            for reason, count in sorted(summary.parse_skipped.items()):
                lines.append(f"  {reason}: {count}")

        if summary.accepted_count == 0:
            lines.append("")
            lines.append("Nothing to import.")

        return "\n".join(lines)

    @staticmethod
    def format_month_summary(summary: MonthSummary) -> str:
        """Format planned versus actual figures for a month."""
        lines = []
        lines.append(f"=== {summary.year}-{summary.month:02d} ===")
        lines.append(f"Planned income: £{summary.planned_income:.2f}")
        lines.append(f"Actual income: £{summary.actual_income:.2f}")
        lines.append(f"Planned expenses: £{summary.planned_expenses:.2f}")
        lines.append(f"Actual expenses: £{summary.actual_expenses:.2f}")
        lines.append(f"Net position: £{summary.net_position:.2f}")
        lines.append(f"Variance: £{summary.variance:.2f}")
        return "\n".join(lines)
