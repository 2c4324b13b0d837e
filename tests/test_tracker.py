"""Unit tests for tracker.py."""

from datetime import date
from decimal import Decimal

import pytest

from gigledger.models import CalendarItemType, MergeMode, ParsedTransaction
from gigledger.storage import InMemoryStore
from gigledger.tracker import CashFlowTracker

MONZO_CSV = """Transaction ID,Date,Time,Type,Name,Category,Money Out,Money In
tx_1,15/01/2024,08:12:01,Faster payment,UBER BV payout,income,,120.00
tx_2,15/01/2024,09:30:00,Card payment,SHELL 1234,transport,-45.00,
tx_3,15/01/2024,12:00:00,Faster payment,Transfer to Olu Olowogboye,transfers,-50.00,
tx_4,16/01/2024,07:00:00,Faster payment,Bolt.eu payout,income,,80.00
tx_5,16/01/2024,07:05:00,Monzo-to-Monzo,Monzo-to-Monzo,transfers,,
tx_6,bad date,07:05:00,Card payment,TESCO,groceries,-10.00,
"""


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def tracker(store):
    return CashFlowTracker(store)


class TestImportCSV:
    """Tests for importing a CSV export."""

    def test_summary(self, tracker):
        """Test the statistics returned by an import."""
        summary = tracker.import_csv(1, MONZO_CSV, source="monzo")

        assert summary.accepted_count == 3
        assert summary.dates_affected == 2
        assert summary.excluded_count == 1
        assert summary.skipped_zero_count == 1
        assert summary.parse_skipped["invalid_date"] == 1

    def test_daily_ledger_is_updated(self, tracker):
        """Test the ledger rows written by an import."""
        tracker.import_csv(1, MONZO_CSV)

        entries = tracker.get_month(1, 2024, 1)
        assert [e.date for e in entries] == [date(2024, 1, 15), date(2024, 1, 16)]
        assert entries[0].uber == Decimal("120.00")
        assert entries[0].expenses == Decimal("45.00")
        assert entries[0].balance == Decimal("75.00")
        assert entries[1].bolt == Decimal("80.00")
        assert entries[1].balance == Decimal("80.00")

    def test_transaction_log_is_written(self, tracker):
        """Test the persisted log rows."""
        tracker.import_csv(1, MONZO_CSV, source="monzo")

        transactions = tracker.list_transactions(1)
        assert len(transactions) == 3
        assert {t.source for t in transactions} == {"monzo"}
        assert sorted(t.category for t in transactions) == ["bolt", "expense", "uber"]
        assert tracker.list_transactions(2) == []

    def test_empty_csv(self, tracker, store):
        """Test that an empty file imports nothing."""
        summary = tracker.import_csv(1, "Date,Description,Amount\n")

        assert summary.accepted_count == 0
        assert summary.dates_affected == 0
        assert store.transactions == {}
        assert store.daily_entries == {}

    def test_reimport_accumulates_by_default(self, tracker):
        """Test that a second import adds to the first."""
        tracker.import_csv(1, MONZO_CSV)
        tracker.import_csv(1, MONZO_CSV)

        entry = tracker.get_month(1, 2024, 1)[0]
        assert entry.uber == Decimal("240.00")
        assert entry.expenses == Decimal("90.00")
        assert len(tracker.list_transactions(1)) == 6

    def test_reimport_overwrites_when_configured(self, store):
        """Test the overwrite merge mode."""
        tracker = CashFlowTracker(store, merge_mode=MergeMode.OVERWRITE)
        tracker.import_csv(1, MONZO_CSV)
        tracker.import_csv(1, MONZO_CSV)

        entry = tracker.get_month(1, 2024, 1)[0]
        assert entry.uber == Decimal("120.00")
        assert entry.balance == Decimal("75.00")

    def test_import_keeps_manual_notes(self, tracker):
        """Test that notes on an existing entry survive an import."""
        tracker.upsert_daily_entry(1, date(2024, 1, 15), notes="Airport run", other=Decimal("20"))
        tracker.import_csv(1, MONZO_CSV)

        entry = tracker.get_month(1, 2024, 1)[0]
        assert entry.notes == "Airport run"
        assert entry.other == Decimal("20")
        assert entry.balance == Decimal("95.00")


class TestImportTransactions:
    """Tests for importing already parsed transactions."""

    def test_literal_uber_row(self, tracker):
        """Test a single ride-share payout."""
        summary = tracker.import_transactions(
            1,
            [
                ParsedTransaction(
                    date=date(2024, 1, 15),
                    description="UBER TRIP 123",
                    amount=Decimal("25.50"),
                ),
            ],
        )

        assert summary.accepted_count == 1
        assert tracker.get_month(1, 2024, 1)[0].uber == Decimal("25.50")

    def test_excluded_row_has_no_effect(self, tracker, store):
        """Test that an internal transfer leaves no trace."""
        summary = tracker.import_transactions(
            1,
            [
                ParsedTransaction(
                    date=date(2024, 1, 15),
                    description="Transfer to Olu Olowogboye",
                    amount=Decimal("-50.00"),
                ),
            ],
        )

        assert summary.excluded_count == 1
        assert store.transactions == {}
        assert store.daily_entries == {}

    def test_preview_does_not_persist(self, tracker, store):
        """Test that preview classifies without writing."""
        transactions = tracker.parse_csv(MONZO_CSV).transactions
        kept, summary = tracker.preview(transactions)

        assert len(kept) == 3
        assert summary.excluded_count == 1
        assert store.transactions == {}


class TestDailyEntries:
    """Tests for manual daily entries."""

    def test_upsert_recomputes_balance(self, tracker):
        """Test that balance defaults to income minus expenses."""
        entry = tracker.upsert_daily_entry(
            1,
            date(2026, 2, 3),
            uber=150.50,
            bolt=75.25,
            freenow=50,
            horizoncars=100,
            other=25,
            expenses=50,
            notes="Test entry",
        )

        assert entry.balance == Decimal("350.75")
        assert tracker.get_month(1, 2026, 2) == [entry]

    def test_upsert_explicit_balance(self, tracker):
        """Test that an explicit balance is kept."""
        entry = tracker.upsert_daily_entry(1, date(2026, 2, 3), uber=10, balance=5)
        assert entry.balance == Decimal("5")

    def test_upsert_unknown_field(self, tracker):
        """Test that unknown bucket names are rejected."""
        with pytest.raises(ValueError, match="Unknown ledger fields"):
            tracker.upsert_daily_entry(1, date(2026, 2, 3), lyft=10)

    def test_invalid_month(self, tracker):
        """Test month validation."""
        with pytest.raises(ValueError, match="month"):
            tracker.get_month(1, 2026, 13)


class TestRecurringExpenses:
    """Tests for recurring expenses."""

    def test_add_and_list(self, tracker):
        """Test creating a recurring expense."""
        expense = tracker.add_recurring_expense(1, "Test Rent", Decimal("700"), 15, "Housing")

        assert expense.name == "Test Rent"
        assert expense.amount == Decimal("700")
        assert tracker.list_recurring_expenses(1) == [expense]

    def test_recurring_for_day(self, tracker):
        """Test finding the expenses due on a day."""
        tracker.add_recurring_expense(1, "Rent", Decimal("700"), 15)
        tracker.add_recurring_expense(1, "Phone", Decimal("20"), 3)

        assert [e.name for e in tracker.recurring_for_day(1, 15)] == ["Rent"]
        assert tracker.recurring_for_day(1, 1) == []

    def test_delete(self, tracker):
        """Test deleting a recurring expense."""
        expense = tracker.add_recurring_expense(1, "Rent", Decimal("700"), 15)
        tracker.delete_recurring_expense(1, expense.id)
        assert tracker.list_recurring_expenses(1) == []


class TestTransactions:
    """Tests for transaction log management."""

    def test_delete_and_clear(self, tracker):
        """Test deleting one and then all imported transactions."""
        tracker.import_csv(1, MONZO_CSV)
        first = tracker.list_transactions(1)[0]

        tracker.delete_transaction(1, first.id)
        assert len(tracker.list_transactions(1)) == 2

        tracker.clear_transactions(1)
        assert tracker.list_transactions(1) == []


class TestCalendarItems:
    """Tests for calendar items."""

    def test_add_list_and_filter_by_month(self, tracker):
        """Test adding items and listing them by date."""
        payout = tracker.add_calendar_item(
            1,
            "Horizon payout",
            date(2026, 2, 27),
            "income",
            amount=Decimal("450"),
        )
        tracker.add_calendar_item(1, "Road tax", date(2026, 3, 1), CalendarItemType.EXPENSE, 190)
        tracker.add_calendar_item(1, "Check tyres", date(2026, 2, 3), "reminder")
        tracker.add_calendar_item(2, "Other user", date(2026, 2, 5), "reminder")

        assert payout.type == CalendarItemType.INCOME
        assert payout.amount == Decimal("450")
        assert [i.title for i in tracker.list_calendar_items(1)] == [
            "Check tyres",
            "Horizon payout",
            "Road tax",
        ]
        assert [i.title for i in tracker.list_calendar_items(1, 2026, 2)] == [
            "Check tyres",
            "Horizon payout",
        ]

    def test_invalid_type(self, tracker):
        """Test that unknown item types are rejected."""
        with pytest.raises(ValueError):
            tracker.add_calendar_item(1, "x", date(2026, 2, 3), "holiday")

    def test_delete_is_user_scoped(self, tracker):
        """Test that only the owner can delete an item."""
        item = tracker.add_calendar_item(1, "Road tax", date(2026, 3, 1), "expense", 190)

        tracker.delete_calendar_item(2, item.id)
        assert len(tracker.list_calendar_items(1)) == 1

        tracker.delete_calendar_item(1, item.id)
        assert tracker.list_calendar_items(1) == []


class TestTodos:
    """Tests for todo items."""

    def test_add_update_delete(self, tracker):
        """Test the todo lifecycle."""
        first = tracker.add_todo(1, "Renew PCO licence")
        second = tracker.add_todo(1, "Book MOT")

        tracker.update_todo(1, first.id, completed=True)
        tracker.update_todo(1, second.id, text="Book MOT for March")

        todos = tracker.list_todos(1)
        assert [(t.text, t.completed) for t in todos] == [
            ("Renew PCO licence", True),
            ("Book MOT for March", False),
        ]

        tracker.delete_todo(1, first.id)
        assert [t.id for t in tracker.list_todos(1)] == [second.id]

    def test_other_user_cannot_update(self, tracker):
        """Test that updates for another user's item are ignored."""
        todo = tracker.add_todo(1, "Renew PCO licence")
        tracker.update_todo(2, todo.id, completed=True)
        assert tracker.list_todos(1)[0].completed is False


class TestMonthSummary:
    """Tests for month_summary."""

    def test_summary_figures(self, tracker):
        """Test planned and actual figures."""
        tracker.import_csv(1, MONZO_CSV)
        tracker.add_recurring_expense(1, "Rent", Decimal("700"), 1)
        tracker.add_recurring_expense(1, "Phone", Decimal("20"), 3)

        summary = tracker.month_summary(1, 2024, 1)

        assert summary.planned_income == Decimal("6000")
        assert summary.actual_income == Decimal("200.00")
        assert summary.planned_expenses == Decimal("720")
        assert summary.actual_expenses == Decimal("45.00")
        assert summary.net_position == Decimal("155.00")
        assert summary.variance == Decimal("-5800.00")

    def test_custom_planned_income(self, tracker):
        """Test overriding the planned income."""
        summary = tracker.month_summary(1, 2024, 1, planned_income=Decimal("4000"))
        assert summary.planned_income == Decimal("4000")
        assert summary.actual_income == Decimal("0")


class TestMigrateLegacyData:
    """Tests for migrate_legacy_data."""

    def test_migrates_all_sections(self, tracker):
        """Test migrating entries, recurring expenses and transactions."""
        count = tracker.migrate_legacy_data(
            1,
            {
                "dailyEntries": {
                    "2026-02-01": {
                        "uber": 100,
                        "bolt": 50,
                        "freenow": 25,
                        "horizoncars": 75,
                        "other": 10,
                        "expenses": 30,
                        "balance": 230,
                        "notes": "Migrated entry",
                    },
                },
                "recurringExpenses": [
                    {"name": "Migrated Expense", "amount": 500, "dayOfMonth": 10, "category": "Bills"},
                ],
                "importedTransactions": [
                    {"date": "2026-02-01", "description": "UBER", "amount": 100, "category": "uber"},
                ],
            },
        )

        assert count == 3
        entry = tracker.get_month(1, 2026, 2)[0]
        assert entry.uber == Decimal("100")
        assert entry.balance == Decimal("230")
        assert entry.notes == "Migrated entry"
        assert tracker.list_recurring_expenses(1)[0].day_of_month == 10
        assert tracker.list_transactions(1)[0].amount == Decimal("100")

    def test_missing_sections_and_bad_dates(self, tracker):
        """Test that absent sections are fine and bad dates are skipped."""
        count = tracker.migrate_legacy_data(
            1,
            {
                "dailyEntries": {"someday": {"uber": 1}},
                "calendarItems": [{"title": "x", "date": "soon", "type": "reminder"}],
            },
        )
        assert count == 0
        assert tracker.list_calendar_items(1) == []

    def test_migrates_todos_and_calendar_items(self, tracker):
        """Test migrating todo and calendar items."""
        count = tracker.migrate_legacy_data(
            1,
            {
                "todoItems": [
                    {"text": "Renew PCO licence", "completed": False},
                    {"text": "MOT booked", "completed": True},
                ],
                "calendarItems": [
                    {
                        "title": "Insurance renewal",
                        "date": "2026-03-01",
                        "amount": 120.5,
                        "type": "expense",
                        "description": "Annual",
                    },
                    {"title": "Call garage", "date": "2026-02-20", "type": "reminder"},
                ],
            },
        )

        assert count == 4
        todos = tracker.list_todos(1)
        assert [(t.text, t.completed) for t in todos] == [
            ("Renew PCO licence", False),
            ("MOT booked", True),
        ]
        items = tracker.list_calendar_items(1)
        assert [i.title for i in items] == ["Call garage", "Insurance renewal"]
        assert items[0].amount is None
        assert items[1].amount == Decimal("120.5")
        assert items[1].type == CalendarItemType.EXPENSE

    def test_invalid_amount(self, tracker):
        """Test that a non-numeric amount is rejected."""
        with pytest.raises(ValueError, match="Invalid amount"):
            tracker.migrate_legacy_data(
                1,
                {"recurringExpenses": [{"name": "x", "amount": "lots", "dayOfMonth": 1}]},
            )
