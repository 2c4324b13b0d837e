"""
Main tracker class that orchestrates parsing, classification and persistence.
"""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from .aggregator import ImportAggregator, merge_into_entry
from .classifier import TransactionClassifier
from .csv_parser import BankCSVParser, parse_date
from .models import (
    INCOME_BUCKETS,
    ZERO,
    CalendarItem,
    CalendarItemType,
    ClassifiedTransaction,
    CSVParseResult,
    DailyEntry,
    ImportedTransaction,
    ImportSummary,
    MergeMode,
    MonthSummary,
    ParsedTransaction,
    RecurringExpense,
    TodoItem,
)
from .storage import LedgerStore

logger = logging.getLogger(__name__)

DEFAULT_PLANNED_INCOME = Decimal("6000")


class CashFlowTracker:
    """User-scoped operations over a ledger store."""

    def __init__(
        self,
        store: LedgerStore,
        classifier: TransactionClassifier | None = None,
        merge_mode: MergeMode = MergeMode.ACCUMULATE,
    ):
        self.store = store
        self.csv_parser = BankCSVParser()
        self.aggregator = ImportAggregator(classifier)
        self.merge_mode = merge_mode

    @property
    def classifier(self) -> TransactionClassifier:
        return self.aggregator.classifier

    def parse_csv(self, text: str) -> CSVParseResult:
        """Parse raw CSV text into transactions."""
        return self.csv_parser.parse_text(text)

    def parse_csv_file(self, file_path: str) -> CSVParseResult:
        """Parse a CSV file into transactions."""
        return self.csv_parser.parse_file(file_path)

    def import_transactions(
        self,
        user_id: int,
        transactions: list[ParsedTransaction],
        source: str | None = None,
    ) -> ImportSummary:
        """
        Import a batch of parsed transactions for a user.

        Kept rows are appended to the transaction log in one call and every
        touched day is merged into the daily ledger.

        Args:
            user_id: Owner of the imported data
            transactions: Parsed transactions from one upload
            source: Batch tag stored on every log row

        Returns:
            ImportSummary with accepted, date, excluded and zero counts
        """
        batch = self.aggregator.aggregate(transactions, source)

        if batch.transactions:
            self.store.create_imported_transactions(user_id, batch.transactions)

        for day, aggregate in sorted(batch.daily.items()):
            existing = self.store.get_daily_entry(user_id, day)
            entry = merge_into_entry(aggregate, existing, user_id, self.merge_mode)
            self.store.upsert_daily_entry(entry)

        summary = ImportSummary(
            accepted_count=len(batch.transactions),
            dates_affected=len(batch.daily),
            excluded_count=batch.excluded_count,
            skipped_zero_count=batch.skipped_zero_count,
        )
        logger.info(
            f"Imported {summary.accepted_count} transactions for user {user_id} "
            f"across {summary.dates_affected} days",
        )
        return summary

    def import_csv(
        self,
        user_id: int,
        text: str,
        source: str | None = None,
    ) -> ImportSummary:
        """Parse CSV text and import the result."""
        parsed = self.parse_csv(text)
        summary = self.import_transactions(user_id, parsed.transactions, source)
        summary.parse_skipped = parsed.skipped
        return summary

    def preview(
        self,
        transactions: list[ParsedTransaction],
        source: str | None = None,
    ) -> tuple[list[ClassifiedTransaction], ImportSummary]:
        """Classify a batch without touching the store."""
        batch = self.aggregator.aggregate(transactions, source)
        summary = ImportSummary(
            accepted_count=len(batch.transactions),
            dates_affected=len(batch.daily),
            excluded_count=batch.excluded_count,
            skipped_zero_count=batch.skipped_zero_count,
        )
        return batch.transactions, summary

    def get_month(self, user_id: int, year: int, month: int) -> list[DailyEntry]:
        """Get the daily entries of one month, oldest first."""
        if not 1 <= month <= 12:
            raise ValueError(f"month must be between 1 and 12, got {month}")
        return self.store.get_daily_entries_by_month(user_id, year, month)

    def upsert_daily_entry(
        self,
        user_id: int,
        day: date,
        notes: str | None = None,
        balance: Decimal | None = None,
        **buckets: Decimal,
    ) -> DailyEntry:
        """Create or replace a manually edited daily entry."""
        unknown = set(buckets) - {*INCOME_BUCKETS, "expenses"}
        if unknown:
            raise ValueError(f"Unknown ledger fields: {sorted(unknown)}")

        entry = DailyEntry(
            user_id=user_id,
            date=day,
            notes=notes,
            **{name: Decimal(str(value)) for name, value in buckets.items()},
        )
        if balance is None:
            entry.recompute_balance()
        else:
            entry.balance = Decimal(str(balance))
        self.store.upsert_daily_entry(entry)
        return entry

    def add_recurring_expense(
        self,
        user_id: int,
        name: str,
        amount: Decimal,
        day_of_month: int,
        category: str | None = None,
    ) -> RecurringExpense:
        """Add an expense that repeats every month."""
        expense = RecurringExpense(
            user_id=user_id,
            name=name,
            amount=amount,
            day_of_month=day_of_month,
            category=category,
        )
        created = self.store.create_recurring_expense(expense)
        logger.info(f"Added recurring expense '{name}' on day {day_of_month}")
        return created

    def list_recurring_expenses(self, user_id: int) -> list[RecurringExpense]:
        return self.store.list_recurring_expenses(user_id)

    def delete_recurring_expense(self, user_id: int, expense_id: int) -> None:
        self.store.delete_recurring_expense(user_id, expense_id)

    def recurring_for_day(self, user_id: int, day: int) -> list[RecurringExpense]:
        """Recurring expenses that fall on a given day of the month."""
        return [
            e for e in self.store.list_recurring_expenses(user_id) if e.day_of_month == day
        ]

    def list_transactions(self, user_id: int) -> list[ImportedTransaction]:
        return self.store.list_imported_transactions(user_id)

    def delete_transaction(self, user_id: int, transaction_id: int) -> None:
        self.store.delete_imported_transaction(user_id, transaction_id)

    def clear_transactions(self, user_id: int) -> None:
        self.store.clear_imported_transactions(user_id)
        logger.info(f"Cleared imported transactions for user {user_id}")

    def add_calendar_item(
        self,
        user_id: int,
        title: str,
        day: date,
        item_type: CalendarItemType | str,
        amount: Decimal | None = None,
        description: str | None = None,
    ) -> CalendarItem:
        """Add a dated income, expense or reminder to the calendar."""
        item = CalendarItem(
            user_id=user_id,
            title=title,
            date=day,
            type=item_type,
            amount=amount,
            description=description,
        )
        return self.store.create_calendar_item(item)

    def list_calendar_items(
        self,
        user_id: int,
        year: int | None = None,
        month: int | None = None,
    ) -> list[CalendarItem]:
        """List calendar items by date, optionally limited to one month."""
        items = self.store.list_calendar_items(user_id)
        if year is not None:
            items = [i for i in items if i.date.year == year]
        if month is not None:
            items = [i for i in items if i.date.month == month]
        return items

    def delete_calendar_item(self, user_id: int, item_id: int) -> None:
        self.store.delete_calendar_item(user_id, item_id)

    def add_todo(self, user_id: int, text: str) -> TodoItem:
        return self.store.create_todo_item(TodoItem(user_id=user_id, text=text))

    def list_todos(self, user_id: int) -> list[TodoItem]:
        return self.store.list_todo_items(user_id)

    def update_todo(
        self,
        user_id: int,
        item_id: int,
        text: str | None = None,
        completed: bool | None = None,
    ) -> None:
        self.store.update_todo_item(user_id, item_id, text=text, completed=completed)

    def delete_todo(self, user_id: int, item_id: int) -> None:
        self.store.delete_todo_item(user_id, item_id)

    def month_summary(
        self,
        user_id: int,
        year: int,
        month: int,
        planned_income: Decimal = DEFAULT_PLANNED_INCOME,
    ) -> MonthSummary:
        """Compare planned and actual income and expenses for a month."""
        entries = self.get_month(user_id, year, month)
        recurring = self.store.list_recurring_expenses(user_id)
        return MonthSummary(
            year=year,
            month=month,
            planned_income=Decimal(str(planned_income)),
            actual_income=sum((e.total_income for e in entries), ZERO),
            planned_expenses=sum((e.amount for e in recurring), ZERO),
            actual_expenses=sum((e.expenses for e in entries), ZERO),
        )

    def migrate_legacy_data(self, user_id: int, payload: dict[str, Any]) -> int:
        """
        Import data kept by the old browser-only version of the tracker.

        The payload uses the browser's camelCase keys: ``dailyEntries`` maps
        ISO dates to bucket values, while ``recurringExpenses``,
        ``importedTransactions``, ``todoItems`` and ``calendarItems`` are
        lists of records. Records with unreadable dates are skipped.

        Returns:
            Number of migrated items
        """
        migrated = 0

        for day, values in (payload.get("dailyEntries") or {}).items():
            parsed_day = parse_date(day)
            if parsed_day is None:
                logger.warning(f"Skipping legacy daily entry with invalid date '{day}'")
                continue
            entry = DailyEntry(
                user_id=user_id,
                date=parsed_day,
                notes=values.get("notes"),
                **{
                    name: _to_decimal(values.get(name, 0))
                    for name in (*INCOME_BUCKETS, "expenses", "balance")
                },
            )
            self.store.upsert_daily_entry(entry)
            migrated += 1

        for item in payload.get("recurringExpenses") or []:
            self.store.create_recurring_expense(
                RecurringExpense(
                    user_id=user_id,
                    name=item["name"],
                    amount=_to_decimal(item["amount"]),
                    day_of_month=int(item["dayOfMonth"]),
                    category=item.get("category"),
                ),
            )
            migrated += 1

        rows = []
        for item in payload.get("importedTransactions") or []:
            parsed_day = parse_date(str(item.get("date", "")))
            if parsed_day is None:
                logger.warning(f"Skipping legacy transaction with invalid date: {item}")
                continue
            rows.append(
                ClassifiedTransaction(
                    date=parsed_day,
                    description=item.get("description") or "",
                    amount=_to_decimal(item["amount"]),
                    category=item.get("category"),
                    source=item.get("source"),
                ),
            )
        if rows:
            self.store.create_imported_transactions(user_id, rows)
            migrated += len(rows)

        for item in payload.get("todoItems") or []:
            self.store.create_todo_item(
                TodoItem(
                    user_id=user_id,
                    text=item["text"],
                    completed=bool(item.get("completed", False)),
                ),
            )
            migrated += 1

        for item in payload.get("calendarItems") or []:
            parsed_day = parse_date(str(item.get("date", "")))
            if parsed_day is None:
                logger.warning(f"Skipping legacy calendar item with invalid date: {item}")
                continue
            amount = item.get("amount")
            self.store.create_calendar_item(
                CalendarItem(
                    user_id=user_id,
                    title=item["title"],
                    date=parsed_day,
                    type=item["type"],
                    amount=None if amount is None else _to_decimal(amount),
                    description=item.get("description"),
                ),
            )
            migrated += 1

        logger.info(f"Migrated {migrated} items for user {user_id}")
        return migrated


def _to_decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Invalid amount: {value!r}") from e
