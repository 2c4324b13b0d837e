"""
Persistence backends for daily entries, recurring expenses, the imported
transaction log, calendar items and todo items. Every operation is scoped to
a user id.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from .models import (
    INCOME_BUCKETS,
    CalendarItem,
    CalendarItemType,
    ClassifiedTransaction,
    DailyEntry,
    ImportedTransaction,
    RecurringExpense,
    TodoItem,
)

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for storage failures."""


class FileLoadingError(StorageError):
    """Exception raised when the ledger file cannot be loaded."""


class FileSavingError(StorageError):
    """Exception raised when the ledger file cannot be saved."""


class LedgerStore(ABC):
    """Interface the tracker uses to persist its records."""

    @abstractmethod
    def get_daily_entry(self, user_id: int, day: date) -> DailyEntry | None: ...

    @abstractmethod
    def get_daily_entries_by_month(
        self,
        user_id: int,
        year: int,
        month: int,
    ) -> list[DailyEntry]: ...

    @abstractmethod
    def upsert_daily_entry(self, entry: DailyEntry) -> None: ...

    @abstractmethod
    def list_recurring_expenses(self, user_id: int) -> list[RecurringExpense]: ...

    @abstractmethod
    def create_recurring_expense(
        self,
        expense: RecurringExpense,
    ) -> RecurringExpense: ...

    @abstractmethod
    def delete_recurring_expense(self, user_id: int, expense_id: int) -> None: ...

    @abstractmethod
    def list_imported_transactions(
        self,
        user_id: int,
    ) -> list[ImportedTransaction]: ...

    @abstractmethod
    def create_imported_transactions(
        self,
        user_id: int,
        rows: list[ClassifiedTransaction],
    ) -> list[ImportedTransaction]: ...

    @abstractmethod
    def delete_imported_transaction(self, user_id: int, transaction_id: int) -> None: ...

    @abstractmethod
    def clear_imported_transactions(self, user_id: int) -> None: ...

    @abstractmethod
    def list_calendar_items(self, user_id: int) -> list[CalendarItem]: ...

    @abstractmethod
    def create_calendar_item(self, item: CalendarItem) -> CalendarItem: ...

    @abstractmethod
    def delete_calendar_item(self, user_id: int, item_id: int) -> None: ...

    @abstractmethod
    def list_todo_items(self, user_id: int) -> list[TodoItem]: ...

    @abstractmethod
    def create_todo_item(self, item: TodoItem) -> TodoItem: ...

    @abstractmethod
    def update_todo_item(
        self,
        user_id: int,
        item_id: int,
        text: str | None = None,
        completed: bool | None = None,
    ) -> None: ...

    @abstractmethod
    def delete_todo_item(self, user_id: int, item_id: int) -> None: ...


class InMemoryStore(LedgerStore):
    """Dictionary-backed store, used for tests and dry runs."""

    def __init__(self):
        self.daily_entries: dict[tuple[int, date], DailyEntry] = {}
        self.recurring_expenses: dict[int, RecurringExpense] = {}
        self.transactions: dict[int, ImportedTransaction] = {}
        self.calendar_items: dict[int, CalendarItem] = {}
        self.todo_items: dict[int, TodoItem] = {}
        self.next_ids = {
            "recurring_expense": 1,
            "transaction": 1,
            "calendar_item": 1,
            "todo_item": 1,
        }

    def _commit(self) -> None:
        """Hook called after every mutation."""

    def _next_id(self, kind: str) -> int:
        next_id = self.next_ids[kind]
        self.next_ids[kind] = next_id + 1
        return next_id

    def get_daily_entry(self, user_id: int, day: date) -> DailyEntry | None:
        entry = self.daily_entries.get((user_id, day))
        return replace(entry) if entry else None

    def get_daily_entries_by_month(
        self,
        user_id: int,
        year: int,
        month: int,
    ) -> list[DailyEntry]:
        entries = [
            replace(entry)
            for (owner, day), entry in self.daily_entries.items()
            if owner == user_id and day.year == year and day.month == month
        ]
        return sorted(entries, key=lambda e: e.date)

    def upsert_daily_entry(self, entry: DailyEntry) -> None:
        self.daily_entries[(entry.user_id, entry.date)] = replace(entry)
        self._commit()

    def list_recurring_expenses(self, user_id: int) -> list[RecurringExpense]:
        expenses = [e for e in self.recurring_expenses.values() if e.user_id == user_id]
        return sorted(expenses, key=lambda e: e.day_of_month)

    def create_recurring_expense(self, expense: RecurringExpense) -> RecurringExpense:
        created = replace(expense, id=self._next_id("recurring_expense"))
        self.recurring_expenses[created.id] = created
        self._commit()
        logger.debug(f"Created recurring expense {created.id} '{created.name}'")
        return created

    def delete_recurring_expense(self, user_id: int, expense_id: int) -> None:
        expense = self.recurring_expenses.get(expense_id)
        if expense and expense.user_id == user_id:
            del self.recurring_expenses[expense_id]
            self._commit()

    def list_imported_transactions(self, user_id: int) -> list[ImportedTransaction]:
        rows = [t for t in self.transactions.values() if t.user_id == user_id]
        return sorted(rows, key=lambda t: t.date, reverse=True)

    def create_imported_transactions(
        self,
        user_id: int,
        rows: list[ClassifiedTransaction],
    ) -> list[ImportedTransaction]:
        created = []
        for row in rows:
            transaction = ImportedTransaction(
                id=self._next_id("transaction"),
                user_id=user_id,
                date=row.date,
                description=row.description,
                amount=row.amount,
                category=row.category,
                source=row.source,
                verified=row.verified,
            )
            self.transactions[transaction.id] = transaction
            created.append(transaction)
        self._commit()
        return created

    def delete_imported_transaction(self, user_id: int, transaction_id: int) -> None:
        transaction = self.transactions.get(transaction_id)
        if transaction and transaction.user_id == user_id:
            del self.transactions[transaction_id]
            self._commit()

    def clear_imported_transactions(self, user_id: int) -> None:
        self.transactions = {
            tid: t for tid, t in self.transactions.items() if t.user_id != user_id
        }
        self._commit()

    def list_calendar_items(self, user_id: int) -> list[CalendarItem]:
        items = [replace(i) for i in self.calendar_items.values() if i.user_id == user_id]
        return sorted(items, key=lambda i: (i.date, i.id))

    def create_calendar_item(self, item: CalendarItem) -> CalendarItem:
        created = replace(item, id=self._next_id("calendar_item"))
        self.calendar_items[created.id] = created
        self._commit()
        logger.debug(f"Created calendar item {created.id} '{created.title}'")
        return replace(created)

    def delete_calendar_item(self, user_id: int, item_id: int) -> None:
        item = self.calendar_items.get(item_id)
        if item and item.user_id == user_id:
            del self.calendar_items[item_id]
            self._commit()

    def list_todo_items(self, user_id: int) -> list[TodoItem]:
        items = [replace(i) for i in self.todo_items.values() if i.user_id == user_id]
        return sorted(items, key=lambda i: (i.created_at, i.id))

    def create_todo_item(self, item: TodoItem) -> TodoItem:
        created = replace(item, id=self._next_id("todo_item"))
        self.todo_items[created.id] = created
        self._commit()
        return replace(created)

    def update_todo_item(
        self,
        user_id: int,
        item_id: int,
        text: str | None = None,
        completed: bool | None = None,
    ) -> None:
        item = self.todo_items.get(item_id)
        if not item or item.user_id != user_id:
            return
        changes: dict[str, Any] = {"updated_at": datetime.now()}
        if text is not None:
            changes["text"] = text
        if completed is not None:
            changes["completed"] = completed
        self.todo_items[item_id] = replace(item, **changes)
        self._commit()

    def delete_todo_item(self, user_id: int, item_id: int) -> None:
        item = self.todo_items.get(item_id)
        if item and item.user_id == user_id:
            del self.todo_items[item_id]
            self._commit()


class JsonFileStore(InMemoryStore):
    """Store that keeps the whole ledger in one JSON document on disk."""

    def __init__(self, file_path: Path):
        super().__init__()
        self.file_path = file_path
        if file_path.exists():
            logger.info(f"Loading ledger from {file_path}")
            self.load()
        else:
            logger.debug(
                f"Ledger file {file_path} does not exist, will be created on first save",
            )

    def _commit(self) -> None:
        self.save()

    def load(self) -> None:
        """Load the ledger from the JSON file."""
        try:
            with open(self.file_path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in ledger file {self.file_path}: {e}")
            raise FileLoadingError(
                f"Invalid JSON in ledger file {self.file_path}: {e}",
            ) from e
        except OSError as e:
            logger.error(f"Failed to load ledger from {self.file_path}: {e}")
            raise FileLoadingError(
                f"Failed to load ledger from {self.file_path}: {e}",
            ) from e

        try:
            self.next_ids.update(data.get("next_ids", {}))
            for item in data.get("daily_entries", []):
                entry = _entry_from_dict(item)
                self.daily_entries[(entry.user_id, entry.date)] = entry
            for item in data.get("recurring_expenses", []):
                expense = _expense_from_dict(item)
                self.recurring_expenses[expense.id] = expense
            for item in data.get("imported_transactions", []):
                transaction = _transaction_from_dict(item)
                self.transactions[transaction.id] = transaction
            for item in data.get("calendar_items", []):
                calendar_item = _calendar_item_from_dict(item)
                self.calendar_items[calendar_item.id] = calendar_item
            for item in data.get("todo_items", []):
                todo_item = _todo_item_from_dict(item)
                self.todo_items[todo_item.id] = todo_item
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise FileLoadingError(
                f"Malformed record in ledger file {self.file_path}: {e}",
            ) from e

        logger.debug(
            f"Loaded {len(self.daily_entries)} daily entries, "
            f"{len(self.recurring_expenses)} recurring expenses, "
            f"{len(self.transactions)} transactions, "
            f"{len(self.calendar_items)} calendar items and "
            f"{len(self.todo_items)} todo items from {self.file_path}",
        )

    def save(self) -> None:
        """Save the ledger to the JSON file."""
        data = {
            "next_ids": self.next_ids,
            "daily_entries": [_entry_to_dict(e) for e in self.daily_entries.values()],
            "recurring_expenses": [
                _expense_to_dict(e) for e in self.recurring_expenses.values()
            ],
            "imported_transactions": [
                _transaction_to_dict(t) for t in self.transactions.values()
            ],
            "calendar_items": [
                _calendar_item_to_dict(i) for i in self.calendar_items.values()
            ],
            "todo_items": [_todo_item_to_dict(i) for i in self.todo_items.values()],
        }
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.file_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            logger.debug(f"Saved ledger to {self.file_path}")
        except OSError as e:
            logger.error(f"Failed to save ledger to {self.file_path}: {e}")
            raise FileSavingError(
                f"Failed to save ledger to {self.file_path}: {e}",
            ) from e


def _entry_to_dict(entry: DailyEntry) -> dict[str, Any]:
    data: dict[str, Any] = {"user_id": entry.user_id, "date": entry.date.isoformat()}
    for bucket in (*INCOME_BUCKETS, "expenses", "balance"):
        data[bucket] = str(getattr(entry, bucket))
    data["notes"] = entry.notes
    return data


def _entry_from_dict(data: dict[str, Any]) -> DailyEntry:
    return DailyEntry(
        user_id=data["user_id"],
        date=date.fromisoformat(data["date"]),
        **{
            bucket: Decimal(data.get(bucket, "0"))
            for bucket in (*INCOME_BUCKETS, "expenses", "balance")
        },
        notes=data.get("notes"),
    )


def _expense_to_dict(expense: RecurringExpense) -> dict[str, Any]:
    return {
        "id": expense.id,
        "user_id": expense.user_id,
        "name": expense.name,
        "amount": str(expense.amount),
        "day_of_month": expense.day_of_month,
        "category": expense.category,
    }


def _expense_from_dict(data: dict[str, Any]) -> RecurringExpense:
    return RecurringExpense(
        id=data["id"],
        user_id=data["user_id"],
        name=data["name"],
        amount=Decimal(data["amount"]),
        day_of_month=data["day_of_month"],
        category=data.get("category"),
    )


def _transaction_to_dict(transaction: ImportedTransaction) -> dict[str, Any]:
    return {
        "id": transaction.id,
        "user_id": transaction.user_id,
        "date": transaction.date.isoformat(),
        "description": transaction.description,
        "amount": str(transaction.amount),
        "category": transaction.category,
        "source": transaction.source,
        "verified": transaction.verified,
        "created_at": transaction.created_at.isoformat(),
    }


def _transaction_from_dict(data: dict[str, Any]) -> ImportedTransaction:
    return ImportedTransaction(
        id=data["id"],
        user_id=data["user_id"],
        date=date.fromisoformat(data["date"]),
        description=data.get("description", ""),
        amount=Decimal(data["amount"]),
        category=data.get("category"),
        source=data.get("source"),
        verified=data.get("verified", False),
        created_at=datetime.fromisoformat(data["created_at"]),
    )


def _calendar_item_to_dict(item: CalendarItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "user_id": item.user_id,
        "title": item.title,
        "date": item.date.isoformat(),
        "type": item.type.value,
        "amount": None if item.amount is None else str(item.amount),
        "description": item.description,
        "created_at": item.created_at.isoformat(),
    }


def _calendar_item_from_dict(data: dict[str, Any]) -> CalendarItem:
    amount = data.get("amount")
    return CalendarItem(
        id=data["id"],
        user_id=data["user_id"],
        title=data["title"],
        date=date.fromisoformat(data["date"]),
        type=CalendarItemType(data["type"]),
        amount=None if amount is None else Decimal(amount),
        description=data.get("description"),
        created_at=datetime.fromisoformat(data["created_at"]),
    )


def _todo_item_to_dict(item: TodoItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "user_id": item.user_id,
        "text": item.text,
        "completed": item.completed,
        "created_at": item.created_at.isoformat(),
        "updated_at": item.updated_at.isoformat(),
    }


def _todo_item_from_dict(data: dict[str, Any]) -> TodoItem:
    return TodoItem(
        id=data["id"],
        user_id=data["user_id"],
        text=data["text"],
        completed=data.get("completed", False),
        created_at=datetime.fromisoformat(data["created_at"]),
        updated_at=datetime.fromisoformat(data["updated_at"]),
    )
